"""
🎞️ VideoDrop · Videos API
=========================

Routes under `/api/v1/videos`. Admin routes require `require_admin`; the
two recipient routes (public info, download) are open and rely on the
one-time rule enforced by the download gate.

Routes
------
- POST   /videos/upload-url                 → pending record + PUT URL or multipart id (admin)
- POST   /videos/{video_id}/part-url        → presigned URL for one multipart part (admin)
- POST   /videos/{video_id}/complete-multipart                                     (admin)
- POST   /videos/{video_id}/abort-multipart → abort, remove blob and record        (admin)
- POST   /videos/{video_id}/confirm-upload  → verify blob, make downloadable       (admin)
- GET    /videos                            → every record with status             (admin)
- GET    /videos/{video_id}/details        → full record with status              (admin)
- GET    /videos/{video_id}                 → public info for the download page
- POST   /videos/{video_id}/download        → one-time signed GET URL
- PATCH  /videos/{video_id}/toggle          → enable / disable                     (admin)
- DELETE /videos/{video_id}                 → delete blob then record              (admin)

Admin responses carry `Cache-Control: no-store`.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Response

from app.core.dependencies import get_download_service, get_upload_service
from app.dependencies.admin import require_admin
from app.schemas.video import (
    AbortMultipartRequest,
    ActionResponse,
    AdminVideo,
    CompleteMultipartRequest,
    ConfirmUploadResponse,
    DownloadLink,
    PartUrlRequest,
    PartUrlResponse,
    PublicVideoInfo,
    ToggleRequest,
    ToggleResponse,
    UploadTicket,
    UploadUrlRequest,
    VideoListResponse,
)
from app.security_headers import set_sensitive_cache
from app.services.download_service import DownloadService
from app.services.upload_service import UploadService

router = APIRouter(prefix="/videos", tags=["Videos"])

Claims = Dict[str, Any]


# ─────────────────────────────────────────────────────────────────────────────
# 📤 Upload (admin)
# ─────────────────────────────────────────────────────────────────────────────
@router.post("/upload-url", response_model=UploadTicket, summary="Start an upload")
async def request_upload_url(
    payload: UploadUrlRequest,
    response: Response,
    uploads: UploadService = Depends(get_upload_service),
    _admin: Claims = Depends(require_admin),
) -> UploadTicket:
    """
    Create a pending video and return how to upload it.

    Below the multipart threshold the ticket carries `upload_url` (single PUT);
    above it, `upload_id` for the multipart flow.
    """
    set_sensitive_cache(response)
    return await uploads.request_upload(payload.file_name, payload.content_type, payload.file_size)


@router.post("/{video_id}/part-url", response_model=PartUrlResponse, summary="Presigned URL for one part")
async def multipart_part_url(
    video_id: str,
    payload: PartUrlRequest,
    response: Response,
    uploads: UploadService = Depends(get_upload_service),
    _admin: Claims = Depends(require_admin),
) -> PartUrlResponse:
    set_sensitive_cache(response)
    url = await uploads.request_part_url(video_id, payload.upload_id, payload.part_number, payload.key)
    return PartUrlResponse(url=url, part_number=payload.part_number)


@router.post("/{video_id}/complete-multipart", response_model=ActionResponse, summary="Complete multipart upload")
async def complete_multipart(
    video_id: str,
    payload: CompleteMultipartRequest,
    response: Response,
    uploads: UploadService = Depends(get_upload_service),
    _admin: Claims = Depends(require_admin),
) -> ActionResponse:
    """Parts may arrive in any order; they are sorted before completion."""
    set_sensitive_cache(response)
    await uploads.complete_multipart_upload(video_id, payload.key, payload.upload_id, payload.parts)
    return ActionResponse(video_id=video_id, message="Multipart upload completed")


@router.post("/{video_id}/abort-multipart", response_model=ActionResponse, summary="Abort multipart upload")
async def abort_multipart(
    video_id: str,
    payload: AbortMultipartRequest,
    response: Response,
    uploads: UploadService = Depends(get_upload_service),
    _admin: Claims = Depends(require_admin),
) -> ActionResponse:
    set_sensitive_cache(response)
    await uploads.abort_multipart_upload(video_id, payload.key, payload.upload_id)
    return ActionResponse(video_id=video_id, message="Multipart upload aborted")


@router.post("/{video_id}/confirm-upload", response_model=ConfirmUploadResponse, summary="Confirm upload")
async def confirm_upload(
    video_id: str,
    response: Response,
    uploads: UploadService = Depends(get_upload_service),
    _admin: Claims = Depends(require_admin),
) -> ConfirmUploadResponse:
    """Poll S3 for the blob; on success the video becomes downloadable."""
    set_sensitive_cache(response)
    record = await uploads.confirm_upload(video_id)
    video = AdminVideo.from_record(record, uploads.now())
    return ConfirmUploadResponse(
        video_id=video_id,
        status=video.status,
        actual_size=record.actual_file_size or 0,
        video=video,
    )


# ─────────────────────────────────────────────────────────────────────────────
# 🗂️ Admin listing & controls
# ─────────────────────────────────────────────────────────────────────────────
@router.get("", response_model=VideoListResponse, summary="List all videos")
async def list_videos(
    response: Response,
    downloads: DownloadService = Depends(get_download_service),
    _admin: Claims = Depends(require_admin),
) -> VideoListResponse:
    set_sensitive_cache(response)
    videos = await downloads.list_videos()
    return VideoListResponse(videos=videos, count=len(videos))


@router.get("/{video_id}/details", response_model=AdminVideo, summary="Full record for the admin")
async def get_video_details(
    video_id: str,
    response: Response,
    downloads: DownloadService = Depends(get_download_service),
    _admin: Claims = Depends(require_admin),
) -> AdminVideo:
    set_sensitive_cache(response)
    return await downloads.get_video(video_id)


@router.patch("/{video_id}/toggle", response_model=ToggleResponse, summary="Enable or disable download")
async def toggle_video(
    video_id: str,
    payload: ToggleRequest,
    response: Response,
    downloads: DownloadService = Depends(get_download_service),
    _admin: Claims = Depends(require_admin),
) -> ToggleResponse:
    """Re-enabling also clears the downloaded mark, allowing one more download."""
    set_sensitive_cache(response)
    record = await downloads.set_enabled(video_id, payload.enabled)
    return ToggleResponse(
        video_id=video_id,
        is_enabled=record.is_enabled,
        is_downloaded=record.is_downloaded,
        status=record.status_at(downloads.now()),
        message="Download re-enabled" if payload.enabled else "Download disabled",
    )


@router.delete("/{video_id}", response_model=ActionResponse, summary="Delete video")
async def delete_video(
    video_id: str,
    response: Response,
    downloads: DownloadService = Depends(get_download_service),
    _admin: Claims = Depends(require_admin),
) -> ActionResponse:
    set_sensitive_cache(response)
    await downloads.delete_video(video_id)
    return ActionResponse(video_id=video_id, message="Video deleted successfully")


# ─────────────────────────────────────────────────────────────────────────────
# 📥 Recipient (public)
# ─────────────────────────────────────────────────────────────────────────────
@router.get("/{video_id}", response_model=PublicVideoInfo, summary="Public video info")
async def get_video_info(
    video_id: str,
    downloads: DownloadService = Depends(get_download_service),
) -> PublicVideoInfo:
    return await downloads.get_public_info(video_id)


@router.post("/{video_id}/download", response_model=DownloadLink, summary="One-time download link")
async def download_video(
    video_id: str,
    response: Response,
    downloads: DownloadService = Depends(get_download_service),
) -> DownloadLink:
    """
    Hand out a short-lived signed URL and consume the video.

    Errors: 404 unknown, 410 expired, 403 with `reason` in
    {`already_downloaded`, `disabled_by_admin`, `upload_pending`}.
    """
    set_sensitive_cache(response)
    return await downloads.issue_download_link(video_id)


__all__ = ["router"]
