from __future__ import annotations

"""
Video lifecycle schemas.

`VideoRecord` is the in-memory shape of one row of `videos`; it is what the
repositories hand out and what the services reason about. The remaining
models are request bodies and response payloads of the HTTP surface.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class VideoStatus(str, PyEnum):
    """Derived, never stored."""
    PENDING = "pending"
    AVAILABLE = "available"
    DOWNLOADED = "downloaded"
    DISABLED = "disabled"
    EXPIRED = "expired"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ──────────────────────────────────────────────────────────────
# Record
# ──────────────────────────────────────────────────────────────
class VideoRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    video_id: str
    file_name: str
    content_type: str
    declared_file_size: int
    object_key: str
    actual_file_size: Optional[int] = None
    is_enabled: bool = True
    is_downloaded: bool = False
    is_confirmed: bool = False
    created_at: datetime
    expires_at: datetime
    confirmed_at: Optional[datetime] = None
    downloaded_at: Optional[datetime] = None

    @property
    def file_size(self) -> int:
        """Verified size once confirmed, otherwise what the client declared."""
        return self.actual_file_size if self.actual_file_size is not None else self.declared_file_size

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or _utcnow()) >= self.expires_at

    def status_at(self, now: Optional[datetime] = None, *, report_expired: bool = False) -> VideoStatus:
        """Project the flags onto one status.

        Precedence is downloaded > disabled > pending > available; with
        `report_expired` an expired record reports `expired` first.
        """
        if report_expired and self.is_expired(now):
            return VideoStatus.EXPIRED
        if self.is_downloaded:
            return VideoStatus.DOWNLOADED
        if not self.is_enabled:
            return VideoStatus.DISABLED
        if not self.is_confirmed:
            return VideoStatus.PENDING
        return VideoStatus.AVAILABLE


# ──────────────────────────────────────────────────────────────
# Requests
# ──────────────────────────────────────────────────────────────
class UploadUrlRequest(BaseModel):
    file_name: str
    content_type: str
    file_size: int


class PartUrlRequest(BaseModel):
    upload_id: str
    part_number: int
    key: str


class CompletedPart(BaseModel):
    part_number: int
    etag: str


class CompleteMultipartRequest(BaseModel):
    upload_id: str
    key: str
    parts: List[CompletedPart] = Field(default_factory=list)


class AbortMultipartRequest(BaseModel):
    upload_id: str
    key: str


class ToggleRequest(BaseModel):
    enabled: bool


# ──────────────────────────────────────────────────────────────
# Responses
# ──────────────────────────────────────────────────────────────
class AdminVideo(VideoRecord):
    status: VideoStatus

    @classmethod
    def from_record(cls, record: VideoRecord, now: Optional[datetime] = None) -> "AdminVideo":
        return cls(**record.model_dump(), status=record.status_at(now, report_expired=True))


class UploadTicket(BaseModel):
    video_id: str
    key: str
    multipart: bool
    upload_url: Optional[str] = None
    upload_id: Optional[str] = None
    expires_at: datetime
    video: AdminVideo


class PartUrlResponse(BaseModel):
    url: str
    part_number: int


class ConfirmUploadResponse(BaseModel):
    video_id: str
    status: VideoStatus
    actual_size: int
    video: AdminVideo


class PublicVideoInfo(BaseModel):
    video_id: str
    file_name: str
    file_size: int
    is_enabled: bool
    is_downloaded: bool
    status: VideoStatus
    expires_at: datetime


class DownloadLink(BaseModel):
    download_url: str
    expires_in: int
    file_name: str


class VideoListResponse(BaseModel):
    videos: List[AdminVideo]
    count: int


class ToggleResponse(BaseModel):
    video_id: str
    is_enabled: bool
    is_downloaded: bool
    status: VideoStatus
    message: str


class ActionResponse(BaseModel):
    video_id: str
    success: bool = True
    message: str


class ReapError(BaseModel):
    video_id: str
    error: str


class ReapReport(BaseModel):
    total_expired: int
    deleted_count: int
    errors: List[ReapError] = Field(default_factory=list)
    timestamp: datetime


__all__ = [
    "VideoStatus",
    "VideoRecord",
    "UploadUrlRequest",
    "PartUrlRequest",
    "CompletedPart",
    "CompleteMultipartRequest",
    "AbortMultipartRequest",
    "ToggleRequest",
    "AdminVideo",
    "UploadTicket",
    "PartUrlResponse",
    "ConfirmUploadResponse",
    "PublicVideoInfo",
    "DownloadLink",
    "VideoListResponse",
    "ToggleResponse",
    "ActionResponse",
    "ReapError",
    "ReapReport",
]
