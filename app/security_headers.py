from __future__ import annotations

"""
VideoDrop - response hardening helpers
--------------------------------------
- `set_sensitive_cache`: mark admin/token responses uncacheable
- `configure_cors`: strict CORS from `BACKEND_CORS_ORIGINS`
"""

from typing import Iterable, Optional, Sequence

from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response


def set_sensitive_cache(response: Response, *, seconds: int = 0) -> None:
    """
    Mark a **Response** as sensitive for caching (idempotent).

    `seconds > 0` enables a short **private** cache and adds a conservative
    `Vary: Authorization` to prevent proxy leakage.
    """
    if seconds <= 0:
        response.headers["Cache-Control"] = "no-store"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return
    response.headers["Cache-Control"] = f"private, max-age={seconds}"
    vary = response.headers.get("Vary")
    existing = {v.strip() for v in (vary or "").split(",") if v.strip()}
    response.headers["Vary"] = ", ".join(sorted(existing | {"Authorization"}))


def configure_cors(
    app,
    origins: Sequence[str],
    *,
    allow_methods: Optional[Iterable[str]] = None,
    allow_headers: Optional[Iterable[str]] = None,
) -> None:
    """Install strict CORS for the configured frontend origins."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins),
        allow_credentials=False,
        allow_methods=list(allow_methods or ["GET", "HEAD", "OPTIONS", "POST", "PATCH", "DELETE"]),
        allow_headers=list(allow_headers or ["Authorization", "Content-Type", "X-Request-ID"]),
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=3600,
    )


__all__ = ["set_sensitive_cache", "configure_cors"]
