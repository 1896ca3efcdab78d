# app/core/jwt.py
from __future__ import annotations

"""
VideoDrop - JWT helpers
=======================
- `decode_token` verifies signature + standard claims (exp/nbf/iat) and
  requires `sub`, `jti` and `role`

Notes
-----
- Token *creation* lives in `app.core.security`.
- No `leeway` is passed to python-jose (unsupported); standard `exp`/`nbf`/`iat` checks apply.
"""

from typing import Any, Dict, Sequence
import logging

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.exceptions import InvalidTokenException

logger = logging.getLogger("app.auth")

REQUIRED_CLAIMS: Sequence[str] = ("sub", "jti", "role", "exp")


# ─────────────────────────────────────────────────────────────
# 🔓 Decode JWT
# ─────────────────────────────────────────────────────────────
def decode_token(
    token: str,
    *,
    secret_key: str,
    algorithm: str,
    required_claims: Sequence[str] = REQUIRED_CLAIMS,
) -> Dict[str, Any]:
    """Decode and validate a JWT.

    Raises
    ------
    InvalidTokenException
        Bad signature, expired, not yet valid, or a required claim missing.
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except ExpiredSignatureError:
        logger.info("Token expired.")
        raise InvalidTokenException("Token has expired.")
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        raise InvalidTokenException("Invalid token.")

    missing = [c for c in required_claims if not payload.get(c)]
    if missing:
        logger.warning("Token missing claims: %s", missing)
        raise InvalidTokenException("Token missing required claims.")

    return payload


__all__ = ["REQUIRED_CLAIMS", "decode_token"]
