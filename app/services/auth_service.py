# app/services/auth_service.py

from __future__ import annotations

"""
VideoDrop - Admin Authentication
================================
Single administrator, configured by `ADMIN_EMAIL` + bcrypt
`ADMIN_PASSWORD_HASH`. A successful login yields a short-lived HS256 access
token carrying `role=admin`; `verify_token` is what the `require_admin`
dependency uses on every protected route.

The email comparison and the bcrypt check both always run, so a wrong email
and a wrong password take the same path and produce the same message.
"""

import asyncio
import hmac
import logging
from datetime import timedelta
from typing import Any, Dict

from app.core.config import Settings
from app.core.exceptions import InvalidCredentialsException
from app.core.jwt import decode_token
from app.core.security import ADMIN_ROLE, create_access_token, verify_password
from app.schemas.auth import TokenResponse

logger = logging.getLogger("app.auth")


def _same_email(a: str, b: str) -> bool:
    return hmac.compare_digest(a.strip().casefold().encode("utf-8"), b.strip().casefold().encode("utf-8"))


class AuthService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def login(self, email: str, password: str) -> TokenResponse:
        email_ok = _same_email(email or "", self.settings.ADMIN_EMAIL)
        password_ok = await asyncio.to_thread(
            verify_password, password or "", self.settings.ADMIN_PASSWORD_HASH.get_secret_value()
        )
        if not (email_ok and password_ok):
            logger.info("Admin login rejected")
            raise InvalidCredentialsException()

        admin_email = self.settings.ADMIN_EMAIL
        token, _ = create_access_token(
            admin_email,
            secret_key=self.settings.JWT_SECRET_KEY.get_secret_value(),
            algorithm=self.settings.JWT_ALGORITHM,
            expires_delta=timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            extra_claims={"email": admin_email, "role": ADMIN_ROLE},
        )
        logger.info("Admin login succeeded")
        return TokenResponse(access_token=token, expires_in=self.settings.access_token_expiry_seconds)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Claims of a valid token; `InvalidTokenException` otherwise."""
        return decode_token(
            token,
            secret_key=self.settings.JWT_SECRET_KEY.get_secret_value(),
            algorithm=self.settings.JWT_ALGORITHM,
        )


__all__ = ["AuthService"]
