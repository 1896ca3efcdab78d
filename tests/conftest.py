# tests/conftest.py
"""
Global test bootstrap
- Seeds the required settings (admin identity, JWT secret, bucket) before
  anything imports `app.core.config`
- Makes SlowAPI rate-limiting test-friendly (bypass by default)
- Uses the in-memory metadata backend unless a test builds its own
- Exposes an opt-in ratelimit_on fixture
"""

from __future__ import annotations

import os
import random

import email_validator
import pytest

# Fixture identities use the reserved ".test" TLD; email-validator only
# accepts it when its documented test-environment switch is on.
email_validator.TEST_ENVIRONMENT = True

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (set BEFORE importing the app/fixtures so it takes effect)
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.auth import ADMIN_EMAIL, ADMIN_PASSWORD

os.environ.setdefault("ENV", "development")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-please-change-0123456789")
os.environ.setdefault("ADMIN_EMAIL", ADMIN_EMAIL)
os.environ.setdefault("AWS_BUCKET_NAME", "videodrop-test")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("METADATA_BACKEND", "memory")
os.environ.setdefault("REAPER_SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("RATE_LIMIT_NAMESPACE", f"pytest-{random.getrandbits(32)}")

if "ADMIN_PASSWORD_HASH" not in os.environ:
    from app.core.security import get_password_hash

    os.environ["ADMIN_PASSWORD_HASH"] = get_password_hash(ADMIN_PASSWORD)

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Pull in the rest of the fixtures (s3 fake, services, app, auth)
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.services import *  # noqa: E402,F401,F403
from tests.fixtures.app import *       # noqa: E402,F401,F403
from tests.fixtures.auth import *      # noqa: E402,F401,F403


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ──────────────────────────────────────────────────────────────────────────────
# 🚦 Opt-in fixture to actually enforce rate limits in a specific test
#    Usage:
#       async def test_login_rate_limited(ratelimit_on, async_client): ...
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def ratelimit_on(monkeypatch):
    """Enable rate limiting for one test; counters start from zero."""
    from app.core.limiter import limiter

    monkeypatch.setenv("RATE_LIMIT_TEST_BYPASS", "0")
    limiter.reset()
    yield
    limiter.reset()
