# app/services/download_service.py

from __future__ import annotations

"""
VideoDrop - Download Gate
=========================
Enforces the one-time download rule and the administrator's controls over it.

One-time guarantee
------------------
`issue_download_link` signs a GET URL first and only then commits the
"downloaded" mark with a conditional update whose predicate is "still
servable right now". The URL is returned only if that commit wins, so two
concurrent callers can never both leave with a link. A signing failure leaves
the record untouched.
"""

import logging
from datetime import datetime
from typing import List

from app.core.exceptions import (
    ExpiredException,
    ForbiddenException,
    NotFoundException,
    StorageUnavailableException,
)
from app.core.storage import attachment_disposition
from app.repositories.videos import ConditionFailed, VideoCondition, servable_at
from app.schemas.video import AdminVideo, DownloadLink, PublicVideoInfo, VideoRecord
from app.services.common import VideoServiceBase

logger = logging.getLogger("app.services.download")


def ensure_servable(record: VideoRecord, now: datetime) -> None:
    """Raise the error explaining why `record` cannot be handed out at `now`."""
    if record.is_expired(now):
        raise ExpiredException()
    if record.is_downloaded:
        raise ForbiddenException("This video has already been downloaded", reason="already_downloaded")
    if not record.is_enabled:
        raise ForbiddenException("Download has been disabled by the administrator", reason="disabled_by_admin")
    if not record.is_confirmed:
        raise ForbiddenException("The upload for this video has not been confirmed yet", reason="upload_pending")


class DownloadService(VideoServiceBase):
    # ─────────────────────────────────────────────────────────
    # Public
    # ─────────────────────────────────────────────────────────
    async def get_public_info(self, video_id: str) -> PublicVideoInfo:
        now = self.now()
        record = await self.load(video_id)
        if record.is_expired(now):
            raise ExpiredException()
        return PublicVideoInfo(
            video_id=record.video_id,
            file_name=record.file_name,
            file_size=record.file_size,
            is_enabled=record.is_enabled,
            is_downloaded=record.is_downloaded,
            status=record.status_at(now),
            expires_at=record.expires_at,
        )

    async def issue_download_link(self, video_id: str) -> DownloadLink:
        now = self.now()
        record = await self.load(video_id)
        ensure_servable(record, now)

        expires_in = self.settings.download_url_expiry_seconds
        url = await self.storage(
            self.s3.presigned_get,
            record.object_key,
            expires_in=expires_in,
            response_content_type=record.content_type,
            response_content_disposition=attachment_disposition(record.file_name),
        )

        try:
            await self.metadata(
                self.repo.conditional_update(
                    video_id,
                    servable_at(now),
                    {"is_downloaded": True, "is_enabled": False, "downloaded_at": now},
                )
            )
        except ConditionFailed:
            # Lost the race (or state moved under us): discard the URL and explain.
            fresh = await self.metadata(self.repo.get(video_id))
            if fresh is None:
                raise NotFoundException()
            ensure_servable(fresh, self.now())
            raise ForbiddenException("This video has already been downloaded", reason="already_downloaded")

        logger.info("Download link issued video=%s (marked downloaded)", video_id)
        return DownloadLink(download_url=url, expires_in=expires_in, file_name=record.file_name)

    # ─────────────────────────────────────────────────────────
    # Admin
    # ─────────────────────────────────────────────────────────
    async def set_enabled(self, video_id: str, enabled: bool) -> VideoRecord:
        """Enable (clearing the consumed mark) or disable a video."""
        if enabled:
            changes = {"is_enabled": True, "is_downloaded": False, "downloaded_at": None}
        else:
            changes = {"is_enabled": False}
        try:
            record = await self.metadata(self.repo.conditional_update(video_id, VideoCondition(), changes))
        except ConditionFailed as e:
            raise NotFoundException() from e
        logger.info("Video %s %s", video_id, "enabled" if enabled else "disabled")
        return record

    async def list_videos(self) -> List[AdminVideo]:
        now = self.now()
        records = await self.metadata(self.repo.list_all())
        return [AdminVideo.from_record(r, now) for r in records]

    async def get_video(self, video_id: str) -> AdminVideo:
        return AdminVideo.from_record(await self.load(video_id), self.now())

    async def delete_video(self, video_id: str) -> None:
        """Delete the blob, then the record. A blob failure keeps the record."""
        record = await self.load(video_id)
        try:
            await self.storage(self.s3.delete, record.object_key)
        except StorageUnavailableException:
            logger.warning("Delete aborted, blob still present video=%s", video_id)
            raise
        await self.metadata(self.repo.delete(video_id))
        logger.info("Video deleted video=%s", video_id)


__all__ = ["DownloadService", "ensure_servable"]
