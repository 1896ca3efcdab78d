from __future__ import annotations

"""
Video metadata repositories.

`VideoRepositoryProtocol` is the metadata store contract used by the
services. Two implementations ship:

- `SQLVideoRepository`: SQLAlchemy async (Postgres in production, SQLite in
  tests). Conditional updates are a single `UPDATE ... WHERE ... RETURNING`.
- `MemoryVideoRepository`: dict-backed, for local runs and service tests.
  Conditional updates run under one `asyncio.Lock`.

Only `conditional_update` may mutate an existing record, and it never touches
`video_id` or `object_key`.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.video import Video
from app.schemas.video import VideoRecord

_MUTABLE_FIELDS = frozenset(
    {
        "actual_file_size",
        "is_enabled",
        "is_downloaded",
        "is_confirmed",
        "confirmed_at",
        "downloaded_at",
    }
)


class ConditionFailed(Exception):
    """The record is missing or no longer satisfies the update predicate."""

    def __init__(self, video_id: str) -> None:
        super().__init__(f"condition failed for video {video_id}")
        self.video_id = video_id


class MetadataStoreError(RuntimeError):
    """The metadata backend could not complete the operation."""


@dataclass(frozen=True)
class VideoCondition:
    """Predicate for `conditional_update`.

    Each flag left as None is not checked. `not_expired_at` requires
    `expires_at > not_expired_at`.
    """

    is_enabled: Optional[bool] = None
    is_downloaded: Optional[bool] = None
    is_confirmed: Optional[bool] = None
    not_expired_at: Optional[datetime] = None

    def flag_checks(self) -> Dict[str, bool]:
        return {
            name: value
            for name, value in (
                ("is_enabled", self.is_enabled),
                ("is_downloaded", self.is_downloaded),
                ("is_confirmed", self.is_confirmed),
            )
            if value is not None
        }

    def matches(self, record: VideoRecord) -> bool:
        for name, value in self.flag_checks().items():
            if getattr(record, name) is not value:
                return False
        if self.not_expired_at is not None and not record.expires_at > self.not_expired_at:
            return False
        return True


# Download commit predicate; also what "servable" means.
def servable_at(now: datetime) -> VideoCondition:
    return VideoCondition(is_enabled=True, is_downloaded=False, is_confirmed=True, not_expired_at=now)


def _check_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(changes) - _MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Immutable or unknown video fields: {sorted(unknown)}")
    return dict(changes)


class VideoRepositoryProtocol:
    async def put(self, record: VideoRecord) -> None:
        raise NotImplementedError

    async def get(self, video_id: str) -> Optional[VideoRecord]:
        raise NotImplementedError

    async def conditional_update(
        self, video_id: str, predicate: VideoCondition, changes: Mapping[str, Any]
    ) -> VideoRecord:
        raise NotImplementedError

    async def delete(self, video_id: str) -> bool:
        raise NotImplementedError

    async def scan_expired(self, now: datetime) -> List[VideoRecord]:
        raise NotImplementedError

    async def list_all(self) -> List[VideoRecord]:
        raise NotImplementedError


# ─────────────────────────────────────────────────────────────
# SQL (SQLAlchemy async)
# ─────────────────────────────────────────────────────────────
def _aware(value: Any) -> Any:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utc(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


def _to_record(row: Mapping[str, Any]) -> VideoRecord:
    return VideoRecord.model_validate({k: _aware(v) for k, v in row.items()})


_COLUMNS = tuple(Video.__table__.columns)


class SQLVideoRepository(VideoRepositoryProtocol):
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_maker() as db:
            try:
                yield db
            except SQLAlchemyError as e:
                await db.rollback()
                raise MetadataStoreError(str(e)) from e

    async def put(self, record: VideoRecord) -> None:
        values = {k: _utc(v) for k, v in record.model_dump().items()}
        async with self._session() as db:
            db.add(Video(**values))
            await db.commit()

    async def get(self, video_id: str) -> Optional[VideoRecord]:
        async with self._session() as db:
            row = (await db.execute(select(*_COLUMNS).where(Video.video_id == video_id))).mappings().first()
        return _to_record(row) if row is not None else None

    async def conditional_update(
        self, video_id: str, predicate: VideoCondition, changes: Mapping[str, Any]
    ) -> VideoRecord:
        values = {k: _utc(v) for k, v in _check_changes(changes).items()}
        clauses = [Video.video_id == video_id]
        for name, expected in predicate.flag_checks().items():
            clauses.append(getattr(Video, name).is_(expected))
        if predicate.not_expired_at is not None:
            clauses.append(Video.expires_at > _utc(predicate.not_expired_at))

        stmt = (
            update(Video)
            .where(*clauses)
            .values(**values)
            .returning(*_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as db:
            row = (await db.execute(stmt)).mappings().first()
            await db.commit()
        if row is None:
            raise ConditionFailed(video_id)
        return _to_record(row)

    async def delete(self, video_id: str) -> bool:
        async with self._session() as db:
            result = await db.execute(
                delete(Video).where(Video.video_id == video_id).execution_options(synchronize_session=False)
            )
            await db.commit()
        return bool(result.rowcount)

    async def scan_expired(self, now: datetime) -> List[VideoRecord]:
        stmt = select(*_COLUMNS).where(Video.expires_at <= _utc(now)).order_by(Video.expires_at)
        async with self._session() as db:
            rows = (await db.execute(stmt)).mappings().all()
        return [_to_record(r) for r in rows]

    async def list_all(self) -> List[VideoRecord]:
        stmt = select(*_COLUMNS).order_by(Video.created_at.desc())
        async with self._session() as db:
            rows = (await db.execute(stmt)).mappings().all()
        return [_to_record(r) for r in rows]


# ─────────────────────────────────────────────────────────────
# Memory
# ─────────────────────────────────────────────────────────────
class MemoryVideoRepository(VideoRepositoryProtocol):
    def __init__(self) -> None:
        self._videos: Dict[str, VideoRecord] = {}
        self._lock = asyncio.Lock()

    async def put(self, record: VideoRecord) -> None:
        async with self._lock:
            if record.video_id in self._videos:
                raise MetadataStoreError(f"duplicate video_id {record.video_id}")
            self._videos[record.video_id] = record.model_copy()

    async def get(self, video_id: str) -> Optional[VideoRecord]:
        rec = self._videos.get(video_id)
        return rec.model_copy() if rec else None

    async def conditional_update(
        self, video_id: str, predicate: VideoCondition, changes: Mapping[str, Any]
    ) -> VideoRecord:
        values = _check_changes(changes)
        async with self._lock:
            current = self._videos.get(video_id)
            if current is None or not predicate.matches(current):
                raise ConditionFailed(video_id)
            updated = current.model_copy(update=values)
            self._videos[video_id] = updated
            return updated.model_copy()

    async def delete(self, video_id: str) -> bool:
        async with self._lock:
            return self._videos.pop(video_id, None) is not None

    async def scan_expired(self, now: datetime) -> List[VideoRecord]:
        expired = [r for r in self._videos.values() if r.expires_at <= now]
        return [r.model_copy() for r in sorted(expired, key=lambda r: r.expires_at)]

    async def list_all(self) -> List[VideoRecord]:
        return [r.model_copy() for r in sorted(self._videos.values(), key=lambda r: r.created_at, reverse=True)]


__all__ = [
    "ConditionFailed",
    "MetadataStoreError",
    "VideoCondition",
    "servable_at",
    "VideoRepositoryProtocol",
    "SQLVideoRepository",
    "MemoryVideoRepository",
]
