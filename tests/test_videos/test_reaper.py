# tests/test_videos/test_reaper.py

import pytest

from app.core.exceptions import StorageUnavailableException
from app.repositories.videos import MetadataStoreError
from app.services.reaper_service import ReaperService, start_reaper_scheduler

pytestmark = pytest.mark.anyio


async def test_nothing_to_reap(reaper, confirmed_video, clock):
    await confirmed_video()
    report = await reaper.reap()
    assert report.total_expired == 0
    assert report.deleted_count == 0
    assert report.errors == []
    assert report.timestamp == clock()


async def test_reaps_only_expired_videos(reaper, uploads, confirmed_video, fake_s3, memory_repo, clock):
    old = await confirmed_video("old.mp4")
    clock.advance(hours=10)
    fresh = await confirmed_video("fresh.mp4")
    clock.advance(hours=5)  # `old` expires exactly now

    report = await reaper.reap()

    assert report.total_expired == 1
    assert report.deleted_count == 1
    assert await memory_repo.get(old.video_id) is None
    assert old.object_key not in fake_s3.objects
    assert await memory_repo.get(fresh.video_id) is not None
    assert fresh.object_key in fake_s3.objects


async def test_reap_is_idempotent(reaper, confirmed_video, clock):
    await confirmed_video()
    clock.advance(hours=15)

    first = await reaper.reap()
    second = await reaper.reap()

    assert first.deleted_count == 1
    assert second.total_expired == 0


async def test_pending_and_downloaded_videos_are_reaped_too(reaper, uploads, downloads, confirmed_video, memory_repo, clock):
    pending = await uploads.request_upload("never-uploaded.mp4", "video/mp4", 10)
    consumed = await confirmed_video()
    await downloads.issue_download_link(consumed.video_id)
    clock.advance(hours=15, seconds=1)

    report = await reaper.reap()

    assert report.deleted_count == 2
    assert await memory_repo.list_all() == []
    assert pending.video_id not in {e.video_id for e in report.errors}


async def test_blob_failure_keeps_record_for_next_sweep(reaper, confirmed_video, fake_s3, memory_repo, clock):
    video = await confirmed_video()
    clock.advance(hours=20)
    fake_s3.fail.add("delete")

    report = await reaper.reap()

    assert report.total_expired == 1
    assert report.deleted_count == 0
    (error,) = report.errors
    assert error.video_id == video.video_id
    assert error.error.startswith("blob delete failed")
    assert await memory_repo.get(video.video_id) is not None

    fake_s3.fail.clear()
    retry = await reaper.reap()
    assert retry.deleted_count == 1
    assert await memory_repo.get(video.video_id) is None


async def test_one_bad_item_does_not_stop_the_sweep(reaper, confirmed_video, fake_s3, memory_repo, clock, monkeypatch):
    a = await confirmed_video("a.mp4")
    b = await confirmed_video("b.mp4")
    clock.advance(hours=16)

    real_delete = memory_repo.delete

    async def _flaky_delete(video_id):
        if video_id == a.video_id:
            raise MetadataStoreError("row locked")
        return await real_delete(video_id)

    monkeypatch.setattr(memory_repo, "delete", _flaky_delete)

    report = await reaper.reap()

    assert report.total_expired == 2
    assert report.deleted_count == 1
    (error,) = report.errors
    assert error.video_id == a.video_id
    assert error.error.startswith("record delete failed")
    assert await memory_repo.get(b.video_id) is None


async def test_scan_failure_raises(reaper, memory_repo, monkeypatch):
    async def _broken_scan(now):
        raise MetadataStoreError("db down")

    monkeypatch.setattr(memory_repo, "scan_expired", _broken_scan)
    with pytest.raises(StorageUnavailableException):
        await reaper.reap()


async def test_bounded_concurrency(memory_repo, fake_s3, clock, settings, confirmed_video):
    for i in range(6):
        await confirmed_video(f"v{i}.mp4")
    clock.advance(hours=15)

    wide = ReaperService(
        repo=memory_repo,
        s3=fake_s3,
        settings=settings.model_copy(update={"REAPER_CONCURRENCY": 4}),
        clock=clock,
    )
    report = await wide.reap()
    assert report.deleted_count == 6
    assert fake_s3.objects == {}


async def test_scheduler_registers_interval_job(reaper):
    scheduler = start_reaper_scheduler(reaper, interval_minutes=30)
    try:
        job = scheduler.get_job("video_reaper")
        assert job is not None
        assert job.trigger.interval.total_seconds() == 30 * 60
    finally:
        scheduler.shutdown(wait=False)
