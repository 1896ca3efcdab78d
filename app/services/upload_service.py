# app/services/upload_service.py

from __future__ import annotations

"""
VideoDrop - Upload Orchestrator
===============================
Drives a video from "admin wants to upload" to "blob verified in S3":

1) `request_upload` creates a pending record and hands out either a single
   presigned PUT (small files) or a multipart session id (large files).
2) Multipart clients fetch one presigned URL per part, then complete (or
   abort) the session.
3) `confirm_upload` polls S3 until the blob is visible, records its real
   size and marks the record confirmed. Nothing is downloadable before this.

Part state lives in S3 only; we never persist parts.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union
from uuid import uuid4

from app.core.config import MIB, Settings
from app.core.exceptions import (
    IncompleteUploadException,
    NotFoundException,
    StorageUnavailableException,
    UploadNotFoundException,
    ValidationError,
)
from app.core.storage import build_object_key
from app.repositories.videos import ConditionFailed, VideoCondition, VideoRepositoryProtocol
from app.schemas.video import AdminVideo, CompletedPart, UploadTicket, VideoRecord
from app.services.common import Clock, Sleeper, VideoServiceBase
from app.utils.aws import S3MultipartRejected, S3ObjectNotFound, S3StorageError

logger = logging.getLogger("app.services.upload")

PartLike = Union[CompletedPart, Mapping[str, Any]]


def _part_fields(part: PartLike) -> tuple[Any, Any]:
    if isinstance(part, CompletedPart):
        return part.part_number, part.etag
    return part.get("part_number"), part.get("etag")


class UploadService(VideoServiceBase):
    def __init__(
        self,
        *,
        repo: VideoRepositoryProtocol,
        s3: Any,
        settings: Settings,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        super().__init__(repo=repo, s3=s3, settings=settings, clock=clock)
        self._sleep = sleep or asyncio.sleep
        self._new_id = id_factory or (lambda: str(uuid4()))

    # ─────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────
    async def _load_for_key(self, video_id: str, key: str) -> VideoRecord:
        if not key:
            raise ValidationError("key is required")
        record = await self.load(video_id)
        if key != record.object_key:
            raise ValidationError("key does not belong to this video")
        return record

    # ─────────────────────────────────────────────────────────
    # Request
    # ─────────────────────────────────────────────────────────
    async def request_upload(self, file_name: str, content_type: str, declared_size: int) -> UploadTicket:
        """Create a pending record plus the means to upload its blob."""
        file_name = (file_name or "").strip()
        content_type = (content_type or "").strip()
        if not file_name or not content_type:
            raise ValidationError("file_name, content_type and file_size are required")
        if declared_size is None or declared_size <= 0:
            raise ValidationError("file_size must be a positive number of bytes")
        if declared_size > self.settings.max_file_size_bytes:
            raise ValidationError(
                f"File size exceeds maximum of {self.settings.MAX_FILE_SIZE_GB}GB",
                details={"max_bytes": self.settings.max_file_size_bytes},
            )

        video_id = self._new_id()
        key = build_object_key(video_id, file_name)
        multipart = declared_size >= self.settings.multipart_threshold_bytes

        upload_url: Optional[str] = None
        upload_id: Optional[str] = None
        if multipart:
            upload_id = await self.storage(self.s3.create_multipart, key, content_type=content_type)
        else:
            upload_url = await self.storage(
                self.s3.presigned_put,
                key,
                content_type=content_type,
                expires_in=self.settings.UPLOAD_URL_EXPIRY_SECONDS,
            )

        now = self.now()
        record = VideoRecord(
            video_id=video_id,
            file_name=file_name,
            content_type=content_type,
            declared_file_size=declared_size,
            object_key=key,
            created_at=now,
            expires_at=now + timedelta(hours=self.settings.VIDEO_EXPIRY_HOURS),
        )
        try:
            await self.metadata(self.repo.put(record))
        except StorageUnavailableException:
            if upload_id:
                await self._abort_quietly(key, upload_id)
            raise

        logger.info(
            "Upload requested video=%s size=%.2fMB multipart=%s",
            video_id, declared_size / MIB, multipart,
        )
        return UploadTicket(
            video_id=video_id,
            key=key,
            multipart=multipart,
            upload_url=upload_url,
            upload_id=upload_id,
            expires_at=record.expires_at,
            video=AdminVideo.from_record(record, now),
        )

    async def _abort_quietly(self, key: str, upload_id: str) -> None:
        try:
            await asyncio.to_thread(self.s3.abort_multipart, key, upload_id=upload_id)
        except S3StorageError as e:
            logger.warning("Orphaned multipart session %s for %s: %s", upload_id, key, e)

    # ─────────────────────────────────────────────────────────
    # Multipart
    # ─────────────────────────────────────────────────────────
    async def request_part_url(self, video_id: str, upload_id: str, part_number: int, key: str) -> str:
        """Presigned PUT for one part. Gaps and re-requests are allowed."""
        if not upload_id:
            raise ValidationError("upload_id is required")
        if part_number is None or part_number < 1:
            raise ValidationError("part_number must be >= 1")
        record = await self._load_for_key(video_id, key)
        return await self.storage(
            self.s3.presigned_part_put,
            record.object_key,
            upload_id=upload_id,
            part_number=part_number,
            expires_in=self.settings.UPLOAD_URL_EXPIRY_SECONDS,
        )

    async def complete_multipart_upload(
        self, video_id: str, key: str, upload_id: str, parts: Iterable[PartLike]
    ) -> None:
        if not upload_id:
            raise ValidationError("upload_id is required")

        normalized: List[dict] = []
        seen: set[int] = set()
        for part in parts or []:
            number, etag = _part_fields(part)
            if not isinstance(number, int) or number < 1 or not etag:
                raise ValidationError("each part needs part_number >= 1 and an etag")
            if number in seen:
                raise ValidationError(f"duplicate part_number {number}")
            seen.add(number)
            normalized.append({"PartNumber": number, "ETag": str(etag)})
        if not normalized:
            raise ValidationError("parts must not be empty")
        normalized.sort(key=lambda p: p["PartNumber"])

        record = await self._load_for_key(video_id, key)
        try:
            await asyncio.to_thread(
                self.s3.complete_multipart, record.object_key, upload_id=upload_id, parts=normalized
            )
        except S3MultipartRejected as e:
            logger.info("Multipart completion rejected video=%s code=%s", video_id, e.code)
            raise IncompleteUploadException(details={"s3_code": e.code}) from e
        except S3StorageError as e:
            logger.warning("Multipart completion failed video=%s: %s", video_id, e)
            raise StorageUnavailableException() from e

        logger.info("Multipart upload completed video=%s parts=%d", video_id, len(normalized))

    async def abort_multipart_upload(self, video_id: str, key: str, upload_id: str) -> None:
        """Abort the session, remove any blob at the key, then the record."""
        if not upload_id:
            raise ValidationError("upload_id is required")
        record = await self._load_for_key(video_id, key)
        # Finished videos are removed through delete_video, never through abort
        if record.is_confirmed:
            raise ValidationError("upload is already confirmed; nothing to abort")
        if record.declared_file_size < self.settings.multipart_threshold_bytes:
            raise ValidationError("video was not uploaded through multipart")
        await self.storage(self.s3.abort_multipart, record.object_key, upload_id=upload_id)
        await self.storage(self.s3.delete, record.object_key)
        await self.metadata(self.repo.delete(video_id))
        logger.info("Multipart upload aborted video=%s", video_id)

    # ─────────────────────────────────────────────────────────
    # Confirm
    # ─────────────────────────────────────────────────────────
    async def confirm_upload(self, video_id: str) -> VideoRecord:
        """Verify the blob exists and mark the record confirmed.

        Polls `exists` up to CONFIRM_UPLOAD_MAX_ATTEMPTS times with a fixed
        backoff between attempts (multipart completion is not instantly
        visible on every S3-compatible store).
        """
        record = await self.load(video_id)
        attempts = self.settings.CONFIRM_UPLOAD_MAX_ATTEMPTS
        backoff = self.settings.CONFIRM_UPLOAD_BACKOFF_SECONDS

        for attempt in range(1, attempts + 1):
            if await self.storage(self.s3.exists, record.object_key):
                break
            if attempt < attempts:
                logger.debug(
                    "Blob not visible yet video=%s (attempt %d/%d)", video_id, attempt, attempts
                )
                await self._sleep(backoff)
        else:
            logger.warning("Blob never appeared video=%s key=%s", video_id, record.object_key)
            raise UploadNotFoundException()

        try:
            stat = await asyncio.to_thread(self.s3.stat, record.object_key)
        except S3ObjectNotFound as e:
            raise UploadNotFoundException() from e
        except S3StorageError as e:
            raise StorageUnavailableException() from e

        try:
            confirmed = await self.metadata(
                self.repo.conditional_update(
                    video_id,
                    VideoCondition(),
                    {"actual_file_size": stat.size, "is_confirmed": True, "confirmed_at": self.now()},
                )
            )
        except ConditionFailed as e:
            # Deleted while we were polling
            raise NotFoundException() from e

        logger.info("Upload confirmed video=%s size=%.2fMB", video_id, stat.size / MIB)
        return confirmed


__all__ = ["UploadService"]
