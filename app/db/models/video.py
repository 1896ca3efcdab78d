from __future__ import annotations

"""
🎞️ VideoDrop - Video (one-time shareable upload)
================================================

One row per uploaded video. The row is the single source of truth for
whether the blob at `object_key` may be handed out.

Lifecycle
---------
• created pending by the upload orchestrator (`is_confirmed = false`)
• confirmed once the blob is verified in S3 (`actual_file_size` set)
• consumed by the first successful download (`is_downloaded = true`,
  `is_enabled = false` in the same write)
• re-enabled by the administrator, or reaped after `expires_at`

Integrity
---------
• `ck_videos_downloaded_disables`: a downloaded row is never enabled.
• `object_key` is unique; `expires_at` is indexed for the reaper scan.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    String,
    false,
    true,
)

from app.db.base_class import Base


class Video(Base):
    """Metadata for one shared video."""

    __tablename__ = "videos"
    __table_args__ = (
        CheckConstraint("NOT (is_downloaded AND is_enabled)", name="downloaded_disables"),
        CheckConstraint("declared_file_size > 0", name="declared_size_positive"),
        Index("ix_videos_expires_at", "expires_at"),
    )

    # ── Identity ────────────────────────────────────────────────────────────
    video_id = Column(String(36), primary_key=True, doc="uuid4, generated at creation")
    object_key = Column(String(1024), nullable=False, unique=True, doc="videos/{video_id}/{safe_file_name}")

    # ── Client-declared ─────────────────────────────────────────────────────
    file_name = Column(String(512), nullable=False)
    content_type = Column(String(255), nullable=False)
    declared_file_size = Column(BigInteger, nullable=False)

    # ── Verified ────────────────────────────────────────────────────────────
    actual_file_size = Column(BigInteger, nullable=True, doc="Size from HEAD at confirmation")

    # ── Flags ───────────────────────────────────────────────────────────────
    is_enabled = Column(Boolean, nullable=False, server_default=true())
    is_downloaded = Column(Boolean, nullable=False, server_default=false())
    is_confirmed = Column(Boolean, nullable=False, server_default=false())

    # ── Timestamps (UTC) ────────────────────────────────────────────────────
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    downloaded_at = Column(DateTime(timezone=True), nullable=True)
