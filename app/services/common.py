# app/services/common.py

from __future__ import annotations

"""
Plumbing shared by the video services.

- Blocking boto3 calls are offloaded with `asyncio.to_thread`.
- Backend failures (`S3StorageError`, `MetadataStoreError`) surface as
  `StorageUnavailableException`; services catch the narrower S3 errors
  themselves where they mean something.
- `clock` is injectable so lifecycle tests can move time.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

from app.core.config import Settings
from app.core.exceptions import NotFoundException, StorageUnavailableException
from app.repositories.videos import MetadataStoreError, VideoRepositoryProtocol
from app.schemas.video import VideoRecord
from app.utils.aws import S3StorageError

logger = logging.getLogger("app.services")

T = TypeVar("T")
Clock = Callable[[], datetime]
Sleeper = Callable[[float], Awaitable[Any]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoServiceBase:
    def __init__(
        self,
        *,
        repo: VideoRepositoryProtocol,
        s3: Any,
        settings: Settings,
        clock: Optional[Clock] = None,
    ) -> None:
        self.repo = repo
        self.s3 = s3
        self.settings = settings
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return self._clock()

    async def storage(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking S3 call off the event loop."""
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except S3StorageError as e:
            logger.warning("S3 call %s failed: %s", getattr(fn, "__name__", fn), e)
            raise StorageUnavailableException() from e

    async def metadata(self, coro: Awaitable[T]) -> T:
        try:
            return await coro
        except MetadataStoreError as e:
            logger.error("Metadata store failure: %s", e)
            raise StorageUnavailableException() from e

    async def load(self, video_id: str) -> VideoRecord:
        record = await self.metadata(self.repo.get(video_id))
        if record is None:
            raise NotFoundException()
        return record
