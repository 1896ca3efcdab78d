# app/core/container.py
from __future__ import annotations

"""
VideoDrop - Composition root
============================
`build_container(settings)` wires every collaborator exactly once: the
SQLAlchemy engine + session maker (or the in-memory store), the S3 client and
the services on top of them. `app.main` stores the result on `app.state` and
request dependencies read it from there; `scripts/reap.py` builds its own.

Nothing here runs at import time.
"""

from dataclasses import dataclass
from typing import Any, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.config import Settings
from app.db.session import build_engine, build_session_maker, db_healthcheck
from app.repositories.videos import MemoryVideoRepository, SQLVideoRepository, VideoRepositoryProtocol
from app.services.auth_service import AuthService
from app.services.common import Clock
from app.services.download_service import DownloadService
from app.services.reaper_service import ReaperService
from app.services.upload_service import UploadService
from app.utils.aws import S3Client

logger = logging.getLogger("app.container")


@dataclass
class Container:
    settings: Settings
    repo: VideoRepositoryProtocol
    s3: Any
    uploads: UploadService
    downloads: DownloadService
    reaper: ReaperService
    auth: AuthService
    engine: Optional[AsyncEngine] = None

    async def ready(self) -> bool:
        """Readiness of the metadata store (memory backend is always ready)."""
        if self.engine is None:
            return True
        return await db_healthcheck(self.engine)

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database engine disposed")


def build_services(
    settings: Settings,
    *,
    repo: VideoRepositoryProtocol,
    s3: Any,
    clock: Optional[Clock] = None,
    engine: Optional[AsyncEngine] = None,
    **upload_kwargs: Any,
) -> Container:
    """Assemble services over already-built backends (tests pass fakes here)."""
    return Container(
        settings=settings,
        repo=repo,
        s3=s3,
        uploads=UploadService(repo=repo, s3=s3, settings=settings, clock=clock, **upload_kwargs),
        downloads=DownloadService(repo=repo, s3=s3, settings=settings, clock=clock),
        reaper=ReaperService(repo=repo, s3=s3, settings=settings, clock=clock),
        auth=AuthService(settings),
        engine=engine,
    )


def build_container(settings: Settings) -> Container:
    engine: Optional[AsyncEngine] = None
    repo: VideoRepositoryProtocol
    if settings.METADATA_BACKEND == "memory":
        repo = MemoryVideoRepository()
    else:
        engine = build_engine(settings.DATABASE_URL)
        repo = SQLVideoRepository(build_session_maker(engine))

    s3 = S3Client(settings)
    logger.info("Container built | metadata=%s | %r", settings.METADATA_BACKEND, s3)
    return build_services(settings, repo=repo, s3=s3, engine=engine)


__all__ = ["Container", "build_services", "build_container"]
