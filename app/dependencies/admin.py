from __future__ import annotations

"""
Admin guard
-----------
`require_admin` protects every administrator route:

- 401 `unauthenticated`  no or malformed `Authorization: Bearer` header
- 401 `invalid_token`    bad signature, expired, or missing claims
- 403 `forbidden`        valid token without `role=admin` (reason `not_admin`)

On success the verified claims are returned and `request.state.admin_email`
is set for logging.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.dependencies import get_auth_service
from app.core.exceptions import ForbiddenException, UnauthenticatedException
from app.core.security import ADMIN_ROLE
from app.services.auth_service import AuthService

bearer_scheme = HTTPBearer(auto_error=False)


def require_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Verified claims of the presented bearer token (any role)."""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedException()
    return auth.verify_token(credentials.credentials)


def require_admin(request: Request, claims: Dict[str, Any] = Depends(require_token)) -> Dict[str, Any]:
    if claims.get("role") != ADMIN_ROLE:
        raise ForbiddenException("Access denied. Admin role required.", reason="not_admin")
    request.state.admin_email = claims.get("email") or claims.get("sub")
    return claims


__all__ = ["bearer_scheme", "require_token", "require_admin"]
