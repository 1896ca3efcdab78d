from __future__ import annotations

"""
VideoDrop • S3 Layout
=====================

Documented S3 key layout (single private bucket):

    s3://{bucket}/
      videos/{video_id}/{safe_file_name}

Security
--------
- All objects private; access only via presigned URLs.
- Keys are derived server-side from the generated video id and a sanitized
  file name, so clients never choose a key.
"""

import re
from typing import Optional
from urllib.parse import quote

# Prefix constants (string templates)
S3_PREFIX_VIDEOS = "videos/{video_id}/"

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")
_DOT_RUN_RE = re.compile(r"\.{2,}")


def sanitize_file_name(name: Optional[str], fallback: str = "video.bin") -> str:
    """Return a key-safe file name limited to ``[A-Za-z0-9._-]``.

    Whitespace runs become a single underscore, dot runs collapse so the
    result can never contain ``..``, and leading dots are dropped.

    >>> sanitize_file_name("  My Clip (final).mp4 ")
    'My_Clip_final.mp4'
    >>> sanitize_file_name("../../etc/passwd")
    'etcpasswd'
    """
    s = (name or "").strip()
    s = re.sub(r"\s+", "_", s)
    s = _UNSAFE_CHARS_RE.sub("", s)
    s = _DOT_RUN_RE.sub(".", s).lstrip(".")
    return s or fallback


def build_object_key(video_id: str, file_name: str) -> str:
    """`videos/{video_id}/{safe_file_name}`."""
    return S3_PREFIX_VIDEOS.format(video_id=video_id) + sanitize_file_name(file_name)


def attachment_disposition(file_name: str) -> str:
    """`Content-Disposition` forcing a download under the original name.

    Non-ASCII names get an RFC 6266 `filename*` parameter next to an ASCII
    fallback.
    """
    ascii_name = file_name.encode("ascii", "ignore").decode("ascii")
    ascii_name = "".join(ch for ch in ascii_name if ch.isprintable() and ch not in '"\\').strip()
    if not ascii_name.split(".")[0].strip():
        ascii_name = "video" + ascii_name if ascii_name else "video.bin"
    disposition = f'attachment; filename="{ascii_name}"'
    if ascii_name != file_name:
        disposition += f"; filename*=UTF-8''{quote(file_name, safe='')}"
    return disposition


__all__ = [
    "S3_PREFIX_VIDEOS",
    "sanitize_file_name",
    "build_object_key",
    "attachment_disposition",
]
