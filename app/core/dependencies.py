# app/core/dependencies.py
from __future__ import annotations

"""
Request dependencies - VideoDrop
================================
Routers never build collaborators; they ask for them here. Everything comes
from the `Container` that the lifespan (or a test) put on `app.state`.
"""

from fastapi import Request

from app.core.container import Container
from app.services.auth_service import AuthService
from app.services.download_service import DownloadService
from app.services.upload_service import UploadService

__all__ = [
    "get_container",
    "get_upload_service",
    "get_download_service",
    "get_auth_service",
]


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_upload_service(request: Request) -> UploadService:
    return get_container(request).uploads


def get_download_service(request: Request) -> DownloadService:
    return get_container(request).downloads


def get_auth_service(request: Request) -> AuthService:
    return get_container(request).auth
