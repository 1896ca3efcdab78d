# app/core/security.py
from __future__ import annotations

"""
VideoDrop - Password & Token Helpers
====================================
- bcrypt verification through Passlib (constant time)
- Signed access tokens (iat/nbf/exp/jti) for the single administrator

Decoding lives in `app.core.jwt`.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from jose import jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ADMIN_ROLE = "admin"


# ───────────────────────────────────────────────
# 🔐 Password Hashing Utilities
# ───────────────────────────────────────────────
def get_password_hash(password: str) -> str:
    """Return a salted hash using Passlib's bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time verify of a plaintext password against a stored hash.

    A malformed stored hash verifies as False rather than raising.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


# ───────────────────────────────────────────────
# 🪪 JWT - Access Token Generation
# ───────────────────────────────────────────────
def create_access_token(
    subject: str,
    *,
    secret_key: str,
    algorithm: str,
    expires_delta: timedelta,
    extra_claims: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Tuple[str, Dict[str, Any]]:
    """Create a signed **access token**. Returns `(token, payload)`."""
    issued = now or datetime.now(timezone.utc)
    expire = issued + expires_delta

    payload: Dict[str, Any] = {
        "sub": subject,
        "iat": int(issued.timestamp()),
        "nbf": int(issued.timestamp()),
        "exp": int(expire.timestamp()),
        "jti": str(uuid4()),
    }
    if extra_claims:
        payload.update(extra_claims)

    token = jwt.encode(payload, secret_key, algorithm=algorithm)
    return token, payload


__all__ = [
    "ADMIN_ROLE",
    "pwd_context",
    "get_password_hash",
    "verify_password",
    "create_access_token",
]
