# app/schemas/auth.py

from typing import Optional

from pydantic import BaseModel, EmailStr


# ──────────────── Login ────────────────
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ──────────────── Verify ────────────────
class TokenClaims(BaseModel):
    sub: str
    email: Optional[str] = None
    role: str
    exp: int
    iat: Optional[int] = None
    jti: Optional[str] = None


class VerifyResponse(BaseModel):
    valid: bool = True
    user: TokenClaims
