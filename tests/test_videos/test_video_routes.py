# tests/test_videos/test_video_routes.py

"""
HTTP surface of /api/v1/videos: admin guard, payload shapes, error bodies.
"""

import pytest

from app.core.config import MIB

pytestmark = pytest.mark.anyio

BASE = "/api/v1/videos"


async def _start_upload(client, headers, *, name="clip.mp4", size=50 * MIB):
    r = await client.post(
        f"{BASE}/upload-url",
        json={"file_name": name, "content_type": "video/mp4", "file_size": size},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    return r.json()


# ─────────────────────────────────────────────────────────────
# Admin guard
# ─────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "method, path",
    [
        ("post", f"{BASE}/upload-url"),
        ("get", BASE),
        ("patch", f"{BASE}/abc/toggle"),
        ("delete", f"{BASE}/abc"),
        ("get", f"{BASE}/abc/details"),
        ("post", f"{BASE}/abc/confirm-upload"),
    ],
)
async def test_admin_routes_require_bearer(async_client, method, path):
    r = await async_client.request(method.upper(), path, json={})
    assert r.status_code == 401
    assert r.json()["code"] == "unauthenticated"


async def test_non_admin_token_is_forbidden(async_client, make_token):
    headers = {"Authorization": f"Bearer {make_token(role='viewer')}"}
    r = await async_client.get(BASE, headers=headers)
    assert r.status_code == 403
    body = r.json()
    assert body["code"] == "forbidden"
    assert body["reason"] == "not_admin"


async def test_expired_token_is_rejected(async_client, make_token):
    headers = {"Authorization": f"Bearer {make_token(minutes=-1)}"}
    r = await async_client.get(BASE, headers=headers)
    assert r.status_code == 401
    assert r.json()["code"] == "invalid_token"


# ─────────────────────────────────────────────────────────────
# Upload flow
# ─────────────────────────────────────────────────────────────
async def test_upload_url_then_confirm(async_client, admin_headers, fake_s3):
    ticket = await _start_upload(async_client, admin_headers)
    assert ticket["multipart"] is False
    assert ticket["upload_url"].startswith("https://s3.test/")
    assert ticket["video"]["status"] == "pending"

    fake_s3.upload(ticket["key"], 50 * MIB)
    r = await async_client.post(f"{BASE}/{ticket['video_id']}/confirm-upload", headers=admin_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "available"
    assert body["actual_size"] == 50 * MIB
    assert body["video"]["is_confirmed"] is True
    assert r.headers["cache-control"] == "no-store"


async def test_upload_url_validation_error_body(async_client, admin_headers):
    r = await async_client.post(
        f"{BASE}/upload-url",
        json={"file_name": "a.mp4", "content_type": "video/mp4", "file_size": 0},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.headers["content-type"].startswith("application/problem+json")
    body = r.json()
    assert body["code"] == "validation_error"
    assert body["title"] == "ValidationError"


async def test_upload_url_missing_fields_is_422(async_client, admin_headers):
    r = await async_client.post(f"{BASE}/upload-url", json={"file_name": "a.mp4"}, headers=admin_headers)
    assert r.status_code == 422


async def test_confirm_without_blob_is_409(async_client, admin_headers, sleeps):
    ticket = await _start_upload(async_client, admin_headers)
    r = await async_client.post(f"{BASE}/{ticket['video_id']}/confirm-upload", headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["code"] == "upload_not_found"


async def test_multipart_routes(async_client, admin_headers, fake_s3):
    ticket = await _start_upload(async_client, admin_headers, name="big.mov", size=300 * MIB)
    assert ticket["multipart"] is True
    vid, key, upload_id = ticket["video_id"], ticket["key"], ticket["upload_id"]

    r = await async_client.post(
        f"{BASE}/{vid}/part-url",
        json={"upload_id": upload_id, "part_number": 2, "key": key},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["part_number"] == 2
    assert "partNumber=2" in r.json()["url"]

    r = await async_client.post(
        f"{BASE}/{vid}/complete-multipart",
        json={"upload_id": upload_id, "key": key, "parts": [{"part_number": 2, "etag": "b"}, {"part_number": 1, "etag": "a"}]},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json() == {"video_id": vid, "success": True, "message": "Multipart upload completed"}


async def test_multipart_key_mismatch(async_client, admin_headers):
    ticket = await _start_upload(async_client, admin_headers, name="big.mov", size=300 * MIB)
    r = await async_client.post(
        f"{BASE}/{ticket['video_id']}/part-url",
        json={"upload_id": ticket["upload_id"], "part_number": 1, "key": "videos/other/x.mov"},
        headers=admin_headers,
    )
    assert r.status_code == 400


async def test_complete_rejected_by_s3_is_409(async_client, admin_headers, fake_s3):
    ticket = await _start_upload(async_client, admin_headers, name="big.mov", size=300 * MIB)
    fake_s3.reject_complete = "InvalidPartOrder"
    r = await async_client.post(
        f"{BASE}/{ticket['video_id']}/complete-multipart",
        json={"upload_id": ticket["upload_id"], "key": ticket["key"], "parts": [{"part_number": 1, "etag": "a"}]},
        headers=admin_headers,
    )
    assert r.status_code == 409
    assert r.json()["code"] == "incomplete_upload"


async def test_abort_multipart_route(async_client, admin_headers, memory_repo):
    ticket = await _start_upload(async_client, admin_headers, name="big.mov", size=300 * MIB)
    r = await async_client.post(
        f"{BASE}/{ticket['video_id']}/abort-multipart",
        json={"upload_id": ticket["upload_id"], "key": ticket["key"]},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert await memory_repo.get(ticket["video_id"]) is None


# ─────────────────────────────────────────────────────────────
# Recipient flow
# ─────────────────────────────────────────────────────────────
async def test_public_info_and_one_time_download(async_client, admin_headers, confirmed_video):
    video = await confirmed_video("Summer.mp4")

    r = await async_client.get(f"{BASE}/{video.video_id}")
    assert r.status_code == 200
    info = r.json()
    assert info["status"] == "available"
    assert info["file_name"] == "Summer.mp4"
    assert "object_key" not in info

    r = await async_client.post(f"{BASE}/{video.video_id}/download")
    assert r.status_code == 200
    link = r.json()
    assert link["expires_in"] == 600
    assert link["file_name"] == "Summer.mp4"
    assert r.headers["cache-control"] == "no-store"

    r = await async_client.post(f"{BASE}/{video.video_id}/download")
    assert r.status_code == 403
    body = r.json()
    assert body["reason"] == "already_downloaded"
    assert body["code"] == "forbidden"


async def test_download_unknown_is_404(async_client):
    r = await async_client.post(f"{BASE}/nope/download")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


async def test_download_expired_is_410(async_client, confirmed_video, clock):
    video = await confirmed_video()
    clock.advance(hours=15)
    r = await async_client.post(f"{BASE}/{video.video_id}/download")
    assert r.status_code == 410
    assert r.json()["code"] == "expired"


async def test_storage_outage_is_503(async_client, confirmed_video, fake_s3):
    video = await confirmed_video()
    fake_s3.fail.add("presigned_get")
    r = await async_client.post(f"{BASE}/{video.video_id}/download")
    assert r.status_code == 503
    assert r.json()["code"] == "storage_unavailable"


# ─────────────────────────────────────────────────────────────
# Admin controls
# ─────────────────────────────────────────────────────────────
async def test_toggle_list_delete(async_client, admin_headers, confirmed_video, fake_s3):
    video = await confirmed_video()
    await async_client.post(f"{BASE}/{video.video_id}/download")

    r = await async_client.patch(f"{BASE}/{video.video_id}/toggle", json={"enabled": True}, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["is_enabled"] is True
    assert body["is_downloaded"] is False
    assert body["status"] == "available"

    r = await async_client.patch(f"{BASE}/{video.video_id}/toggle", json={"enabled": False}, headers=admin_headers)
    assert r.json()["status"] == "disabled"

    r = await async_client.get(BASE, headers=admin_headers)
    assert r.status_code == 200
    listing = r.json()
    assert listing["count"] == 1
    assert listing["videos"][0]["video_id"] == video.video_id
    assert listing["videos"][0]["status"] == "disabled"
    assert r.headers["cache-control"] == "no-store"

    r = await async_client.delete(f"{BASE}/{video.video_id}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert video.object_key not in fake_s3.objects

    r = await async_client.get(f"{BASE}/{video.video_id}")
    assert r.status_code == 404


async def test_admin_details_route(async_client, admin_headers, confirmed_video):
    video = await confirmed_video()

    r = await async_client.get(f"{BASE}/{video.video_id}/details", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["object_key"] == video.object_key
    assert body["actual_file_size"] == video.actual_file_size
    assert body["status"] == "available"
    assert r.headers["cache-control"] == "no-store"

    r = await async_client.get(f"{BASE}/missing/details", headers=admin_headers)
    assert r.status_code == 404


async def test_toggle_unknown_is_404(async_client, admin_headers):
    r = await async_client.patch(f"{BASE}/missing/toggle", json={"enabled": True}, headers=admin_headers)
    assert r.status_code == 404


async def test_toggle_requires_boolean(async_client, admin_headers):
    r = await async_client.patch(f"{BASE}/x/toggle", json={}, headers=admin_headers)
    assert r.status_code == 422
