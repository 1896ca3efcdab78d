"""
🔐 VideoDrop · Admin Auth API
=============================

- POST /auth/login   → email + password → bearer token (rate limited 5/minute)
- GET  /auth/verify  → claims of the presented bearer token

Token responses carry `Cache-Control: no-store`.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response

from app.core.dependencies import get_auth_service
from app.core.limiter import rate_limit
from app.dependencies.admin import require_token
from app.schemas.auth import LoginRequest, TokenClaims, TokenResponse, VerifyResponse
from app.security_headers import set_sensitive_cache
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse, summary="Admin login")
@rate_limit("5/minute")
async def login(
    request: Request,
    payload: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """Exchange the administrator's credentials for an access token."""
    set_sensitive_cache(response)
    return await auth.login(payload.email, payload.password)


@router.get("/verify", response_model=VerifyResponse, summary="Verify bearer token")
async def verify(
    response: Response,
    claims: Dict[str, Any] = Depends(require_token),
) -> VerifyResponse:
    set_sensitive_cache(response)
    return VerifyResponse(user=TokenClaims.model_validate(claims))


__all__ = ["router"]
