from __future__ import annotations

"""
VideoDrop - HTTP Rate Limiting (SlowAPI)
========================================

Highlights
----------
- Per-client-IP keying (XFF/X-Real-IP/client.host).
- Only routes decorated with `rate_limit(...)` are limited (login).
- **Test/CI friendly**:
    - `RATE_LIMIT_NAMESPACE`: prefixes keys so parallel runs don't collide.
    - `RATE_LIMIT_TEST_BYPASS`: disables limits when truthy.
- **Backends**: `RATELIMIT_STORAGE_URI` or in-memory.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
RATELIMIT_STORAGE_URI        default: "" (falls back to "memory://")
RATE_LIMIT_NAMESPACE         default: ""
RATE_LIMIT_TEST_BYPASS       default: "" (truthy to bypass in tests/CI)

Usage
-----
    from app.core.limiter import install_rate_limiter, rate_limit

    app = FastAPI()
    install_rate_limiter(app)

    @router.post("/auth/login")
    @rate_limit("5/minute")
    async def login(request: Request, ...): ...
"""

import os
from typing import Callable

from dotenv import load_dotenv
from loguru import logger
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request

load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}

STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "").strip() or "memory://"
NAMESPACE = os.getenv("RATE_LIMIT_NAMESPACE", "").strip()


# ──────────────────────────────────────────────────────────────
# 🧠 Keying & exemptions
# ──────────────────────────────────────────────────────────────
def _client_ip(request: Request) -> str:
    """
    Best-effort client IP:
    1) X-Forwarded-For (first hop)
    2) X-Real-IP
    3) ASGI client.host
    """
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(",")[0].strip()
        if ip:
            return ip
    xri = request.headers.get("x-real-ip")
    if xri:
        return xri.strip()
    return get_remote_address(request) or "unknown"


def get_rate_limit_key(request: Request) -> str:
    key = f"ip:{_client_ip(request)}"
    return f"{NAMESPACE}:{key}" if NAMESPACE else key


def limits_enabled() -> bool:
    """Re-read env at call time so tests can toggle without re-importing."""
    if os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() != "true":
        return False
    return os.getenv("RATE_LIMIT_TEST_BYPASS", "").strip().lower() not in _TRUTHY


def _exempt_when(*_args) -> bool:
    # SlowAPI calls this with or without the request depending on version.
    return not limits_enabled()


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance
# ──────────────────────────────────────────────────────────────
limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[],
    headers_enabled=False,
    storage_uri=STORAGE_URI,
)


def rate_limit(*limits: str) -> Callable:
    """
    Apply per-route limits (the route must accept `request: Request`).

    Examples
    --------
    @rate_limit("5/minute")
    """
    def _apply(fn: Callable) -> Callable:
        for limit_value in reversed(limits):
            fn = limiter.limit(limit_value, exempt_when=_exempt_when)(fn)
        return fn
    return _apply


# ──────────────────────────────────────────────────────────────
# 🔧 Installer
# ──────────────────────────────────────────────────────────────
def install_rate_limiter(app) -> None:
    """Attach the limiter to `app.state` and install SlowAPI middleware."""
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    logger.info("SlowAPI middleware installed | storage={} | enabled={}", STORAGE_URI, limits_enabled())
