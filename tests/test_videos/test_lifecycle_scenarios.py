# tests/test_videos/test_lifecycle_scenarios.py

"""
End-to-end lifecycles over the HTTP surface with a fake bucket.
"""

import pytest

from app.core.config import MIB

pytestmark = pytest.mark.anyio

BASE = "/api/v1/videos"


async def test_single_shot_upload_then_one_download(async_client, admin_headers, fake_s3, sleeps):
    r = await async_client.post(
        f"{BASE}/upload-url",
        json={"file_name": "birthday.mp4", "content_type": "video/mp4", "file_size": 50 * MIB},
        headers=admin_headers,
    )
    ticket = r.json()
    assert ticket["multipart"] is False

    fake_s3.upload(ticket["key"], 50 * MIB)
    r = await async_client.post(f"{BASE}/{ticket['video_id']}/confirm-upload", headers=admin_headers)
    assert r.json()["status"] == "available"
    assert len(fake_s3.calls_to("exists")) == 1
    assert sleeps.calls == []

    first = await async_client.post(f"{BASE}/{ticket['video_id']}/download")
    second = await async_client.post(f"{BASE}/{ticket['video_id']}/download")
    assert first.status_code == 200
    assert second.status_code == 403
    assert second.json()["reason"] == "already_downloaded"


async def test_multipart_upload_aborted_before_completion(async_client, admin_headers, fake_s3, memory_repo):
    r = await async_client.post(
        f"{BASE}/upload-url",
        json={"file_name": "wedding.mov", "content_type": "video/quicktime", "file_size": 500 * MIB},
        headers=admin_headers,
    )
    ticket = r.json()
    assert ticket["multipart"] is True and ticket["upload_url"] is None

    for n in range(1, 6):
        r = await async_client.post(
            f"{BASE}/{ticket['video_id']}/part-url",
            json={"upload_id": ticket["upload_id"], "part_number": n, "key": ticket["key"]},
            headers=admin_headers,
        )
        assert r.status_code == 200

    r = await async_client.post(
        f"{BASE}/{ticket['video_id']}/abort-multipart",
        json={"upload_id": ticket["upload_id"], "key": ticket["key"]},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert await memory_repo.get(ticket["video_id"]) is None
    assert ticket["key"] not in fake_s3.objects
    assert (await async_client.get(f"{BASE}/{ticket['video_id']}")).status_code == 404


async def test_multipart_upload_completed_and_confirmed(async_client, admin_headers, fake_s3):
    fake_s3.part_size = 100 * MIB
    r = await async_client.post(
        f"{BASE}/upload-url",
        json={"file_name": "wedding.mov", "content_type": "video/quicktime", "file_size": 500 * MIB},
        headers=admin_headers,
    )
    ticket = r.json()
    parts = [{"part_number": n, "etag": f"etag-{n}"} for n in (5, 3, 1, 4, 2)]

    r = await async_client.post(
        f"{BASE}/{ticket['video_id']}/complete-multipart",
        json={"upload_id": ticket["upload_id"], "key": ticket["key"], "parts": parts},
        headers=admin_headers,
    )
    assert r.status_code == 200

    fake_s3.visible_after = 1
    r = await async_client.post(f"{BASE}/{ticket['video_id']}/confirm-upload", headers=admin_headers)
    body = r.json()
    assert body["status"] == "available"
    assert body["actual_size"] == 500 * MIB


async def test_confirm_before_blob_is_visible(async_client, admin_headers, fake_s3, sleeps):
    r = await async_client.post(
        f"{BASE}/upload-url",
        json={"file_name": "late.mp4", "content_type": "video/mp4", "file_size": 10 * MIB},
        headers=admin_headers,
    )
    ticket = r.json()

    r = await async_client.post(f"{BASE}/{ticket['video_id']}/confirm-upload", headers=admin_headers)

    assert r.status_code == 409
    assert r.json()["code"] == "upload_not_found"
    assert len(fake_s3.calls_to("exists")) == 5
    assert sleeps.calls == [1.0, 1.0, 1.0, 1.0]
