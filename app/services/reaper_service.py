# app/services/reaper_service.py
from __future__ import annotations

"""
VideoDrop - expiry reaper
-------------------------
- Sweeps records whose `expires_at` has passed: blob first, then record
- Per-item isolation: one bad item never stops the sweep
- A blob that could not be deleted keeps its record, so the next sweep retries
- Bounded concurrency via `REAPER_CONCURRENCY` (default 1, sequential)
- Optional in-process APScheduler job; `scripts/reap.py` for one-shot runs
"""

import asyncio
import logging
from datetime import timezone
from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.exceptions import StorageUnavailableException
from app.repositories.videos import MetadataStoreError
from app.schemas.video import ReapError, ReapReport, VideoRecord
from app.services.common import VideoServiceBase
from app.utils.aws import S3StorageError

logger = logging.getLogger("app.reaper")


class ReaperService(VideoServiceBase):
    async def _reap_one(self, record: VideoRecord, gate: asyncio.Semaphore) -> Optional[ReapError]:
        async with gate:
            try:
                await asyncio.to_thread(self.s3.delete, record.object_key)
            except S3StorageError as e:
                logger.warning("Reaper: blob delete failed video=%s: %s", record.video_id, e)
                return ReapError(video_id=record.video_id, error=f"blob delete failed: {e}")

            try:
                await self.repo.delete(record.video_id)
            except MetadataStoreError as e:
                logger.error("Reaper: record delete failed video=%s: %s", record.video_id, e)
                return ReapError(video_id=record.video_id, error=f"record delete failed: {e}")

            logger.debug("Reaper: removed video=%s", record.video_id)
            return None

    async def reap(self) -> ReapReport:
        """Delete every expired video. Raises only if the scan itself fails."""
        now = self.now()
        try:
            expired: List[VideoRecord] = await self.repo.scan_expired(now)
        except MetadataStoreError as e:
            logger.error("Reaper: scan failed: %s", e)
            raise StorageUnavailableException() from e

        gate = asyncio.Semaphore(max(1, self.settings.REAPER_CONCURRENCY))
        results = await asyncio.gather(*(self._reap_one(r, gate) for r in expired))
        errors = [r for r in results if r is not None]

        report = ReapReport(
            total_expired=len(expired),
            deleted_count=len(expired) - len(errors),
            errors=errors,
            timestamp=now,
        )
        if expired:
            logger.info(
                "Reaper: expired=%s deleted=%s errors=%s",
                report.total_expired, report.deleted_count, len(errors),
            )
        else:
            logger.debug("Reaper: nothing to reap")
        return report


# ─────────────────────────────────────────────
# ⏰ Optional: in-process scheduler
# ─────────────────────────────────────────────
async def _scheduled_reap(reaper: ReaperService) -> None:
    try:
        await reaper.reap()
    except StorageUnavailableException:
        logger.error("Reaper: scheduled sweep skipped, metadata store unavailable")


def start_reaper_scheduler(
    reaper: ReaperService,
    *,
    interval_minutes: int = 60,
    jitter_seconds: int = 15,
) -> AsyncIOScheduler:
    """
    Start an APScheduler interval job running `reaper.reap()`.

    Must be called from within a running event loop (the app lifespan).
    The caller owns the returned scheduler and shuts it down.
    """
    scheduler = AsyncIOScheduler(timezone=timezone.utc)
    scheduler.add_job(
        _scheduled_reap,
        IntervalTrigger(minutes=interval_minutes, jitter=jitter_seconds, timezone=timezone.utc),
        args=[reaper],
        id="video_reaper",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Reaper scheduler started | interval=%sm, jitter=%ss", interval_minutes, jitter_seconds)
    return scheduler


__all__ = ["ReaperService", "start_reaper_scheduler"]
