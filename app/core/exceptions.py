# app/core/exceptions.py
from __future__ import annotations

"""
VideoDrop - Application Exceptions
==================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets services raise domain errors carrying a machine-readable `code` (and,
for 403s, a `reason`) which `app.core.exception_handlers` renders as
problem+json.

Taxonomy
--------
    ValidationError               400  validation_error
    UnauthenticatedException      401  unauthenticated
    InvalidTokenException         401  invalid_token
    InvalidCredentialsException   401  invalid_credentials
    ForbiddenException            403  forbidden (+ reason)
    NotFoundException             404  not_found
    ExpiredException              410  expired
    IncompleteUploadException     409  incomplete_upload
    UploadNotFoundException       409  upload_not_found
    StorageUnavailableException   503  storage_unavailable

Usage
-----
    raise ForbiddenException(reason="already_downloaded",
                             message="This video has already been downloaded")
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "ValidationError",
    "UnauthenticatedException",
    "InvalidTokenException",
    "InvalidCredentialsException",
    "ForbiddenException",
    "NotFoundException",
    "ExpiredException",
    "IncompleteUploadException",
    "UploadNotFoundException",
    "StorageUnavailableException",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable error message (serialized as `detail` as well).
    code : str
        Stable machine-readable error code.
    details : Any
        Machine-readable details (e.g., limits, ids).
    headers : dict | None
        Optional headers (e.g., `{"WWW-Authenticate": "Bearer"}`).
    """

    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "error"
    default_message: str = "Unexpected error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        message = message or self.default_message
        super().__init__(status_code=status_code or self.default_status, detail=message, headers=headers)
        self.message: str = message
        self.code: str = code or self.default_code
        self.details: Optional[Any] = details

    def __str__(self) -> str:
        return self.message

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self) -> Dict[str, Any]:
        """Extra problem+json members contributed by this exception."""
        body: Dict[str, Any] = {"code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppException):
    """Bad or missing input."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_code = "validation_error"
    default_message = "Invalid request"


# ──────────────────────────────────────────────────────────────
# 🔑 Auth
# ──────────────────────────────────────────────────────────────
class UnauthenticatedException(AppException):
    """No credentials were presented."""

    default_status = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthenticated"
    default_message = "Access denied. No token provided."

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class InvalidTokenException(UnauthenticatedException):
    """Raised for invalid or expired tokens."""

    default_code = "invalid_token"
    default_message = "Invalid or expired token"


class InvalidCredentialsException(AppException):
    """Email/password pair rejected. The message never says which part failed."""

    default_status = status.HTTP_401_UNAUTHORIZED
    default_code = "invalid_credentials"
    default_message = "Invalid email or password"


class ForbiddenException(AppException):
    """Authenticated or public caller is not allowed to proceed.

    `reason` is machine-readable (e.g. `already_downloaded`, `disabled_by_admin`,
    `upload_pending`, `not_admin`).
    """

    default_status = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"
    default_message = "Forbidden"

    def __init__(self, message: Optional[str] = None, *, reason: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason

    def to_problem(self) -> Dict[str, Any]:
        body = super().to_problem()
        body["reason"] = self.reason
        return body


# ──────────────────────────────────────────────────────────────
# 🎞️ Video lifecycle
# ──────────────────────────────────────────────────────────────
class NotFoundException(AppException):
    default_status = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_message = "Video not found"


class ExpiredException(AppException):
    default_status = status.HTTP_410_GONE
    default_code = "expired"
    default_message = "Video has expired and is no longer available"


class IncompleteUploadException(AppException):
    """The object store rejected the multipart part list."""

    default_status = status.HTTP_409_CONFLICT
    default_code = "incomplete_upload"
    default_message = "Multipart upload is incomplete or its part list is invalid"


class UploadNotFoundException(AppException):
    """The blob never became visible while confirming an upload."""

    default_status = status.HTTP_409_CONFLICT
    default_code = "upload_not_found"
    default_message = "Video file not found in storage. Upload may have failed."


class StorageUnavailableException(AppException):
    """Underlying object or metadata store failed; not retried by this layer."""

    default_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "storage_unavailable"
    default_message = "Storage temporarily unavailable"
