"""
🧭 VideoDrop • API v1 Router Aggregator
=======================================

Composes the v1 surface into one `router`:

    from app.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")

Auth and rate limits live in the child routers.
"""

from fastapi import APIRouter

from .auth import router as auth_router
from .videos import router as videos_router


def build_v1_router() -> APIRouter:
    r = APIRouter()
    r.include_router(auth_router)
    r.include_router(videos_router)
    return r


router = build_v1_router()

__all__ = ["router", "build_v1_router", "auth_router", "videos_router"]
