# app/utils/aws.py
from __future__ import annotations

"""
🎞️ VideoDrop • S3 Utilities
===========================

The one place VideoDrop talks to the bucket. Uploads never pass through the
API: clients PUT bytes to presigned URLs (whole file or one multipart part),
recipients GET through a presigned URL with a forced attachment disposition,
and the service itself only HEADs and deletes.

Contract
--------
- `S3Client`; errors `S3StorageError` > `S3ObjectNotFound`, `S3MultipartRejected`
- Single shot: `presigned_put`
- Multipart:   `create_multipart`, `presigned_part_put`,
               `complete_multipart`, `abort_multipart`
- Read:        `presigned_get`, `head`, `exists`, `stat`
- Write:       `delete`

Every method is blocking boto3; services call them through `asyncio.to_thread`.
Secrets never appear in log lines or in `repr()`.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional
import logging
import re

import boto3
import botocore.exceptions
from botocore.config import Config as BotoConfig
from pydantic import SecretStr

from app.core.config import Settings

logger = logging.getLogger(__name__)

# S3 error codes meaning "the part list you sent does not describe a finished upload"
MULTIPART_REJECTION_CODES = frozenset({"InvalidPart", "InvalidPartOrder", "NoSuchUpload", "EntityTooSmall"})
_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})

# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class S3StorageError(RuntimeError):
    """Any bucket failure: network, credentials, policy, bad key."""


class S3ObjectNotFound(S3StorageError):
    """HEAD answered 404 for the key."""


class S3MultipartRejected(S3StorageError):
    """S3 refused to complete a multipart upload with the given part list."""

    def __init__(self, message: str, *, code: str) -> None:
        super().__init__(message)
        self.code = code


def _error_code(exc: botocore.exceptions.ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code") or "")


@contextmanager
def _boto_errors(action: str) -> Iterator[None]:
    """Re-raise anything boto throws as `S3StorageError`, keeping our own errors intact."""
    try:
        yield
    except S3StorageError:
        raise
    except Exception as e:
        raise S3StorageError(f"Failed to {action}: {e}") from e


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Keys
# ─────────────────────────────────────────────────────────────────────────────

# Video keys are built by app.core.storage; anything else is refused.
_KEY_ALLOWED_RE = re.compile(r"[A-Za-z0-9._\-/+=@() ]+")

def _normalize_key(key: str) -> str:
    """
    Canonical form of an object key: trimmed, no leading slash, single
    slashes. Empty keys, `..` segments and characters outside
    `_KEY_ALLOWED_RE` raise `S3StorageError`.
    """
    k = re.sub(r"/{2,}", "/", str(key or "").strip().lstrip("/"))
    if not k:
        raise S3StorageError("Invalid storage key: empty")
    if ".." in k:
        raise S3StorageError("Invalid storage key: path traversal detected")
    if not _KEY_ALLOWED_RE.fullmatch(k):
        raise S3StorageError("Invalid storage key: contains forbidden characters")
    return k


def _secret_value(v: Optional[SecretStr | str]) -> Optional[str]:
    if v is None:
        return None
    return v.get_secret_value() if isinstance(v, SecretStr) else str(v)


@dataclass(frozen=True)
class ObjectStat:
    """What HEAD tells us about a stored blob."""

    size: int
    content_type: Optional[str]
    modified_at: Optional[datetime]
    etag: Optional[str]


# ─────────────────────────────────────────────────────────────────────────────
# 📦 S3 Client
# ─────────────────────────────────────────────────────────────────────────────

class S3Client:
    """
    Bucket-scoped S3 access for video blobs, configured from the `Settings`
    instance it is handed (`AWS_BUCKET_NAME`, `AWS_REGION`,
    `AWS_S3_ENDPOINT_URL` and the credentials). A custom endpoint (MinIO,
    LocalStack) switches to path-style addressing.

    Explicit keys are used when both halves are present; otherwise boto3
    resolves credentials from its usual chain. botocore's `standard` retry
    mode (5 attempts) is the only retry layer here.
    """

    def __init__(self, settings: Settings) -> None:
        self.bucket = settings.AWS_BUCKET_NAME
        if not self.bucket:
            raise S3StorageError("AWS_BUCKET_NAME not configured")
        self.region = settings.AWS_REGION
        endpoint = settings.AWS_S3_ENDPOINT_URL

        client_kwargs: Dict[str, Any] = {
            "region_name": self.region,
            "config": BotoConfig(
                signature_version="s3v4",
                retries={"max_attempts": 5, "mode": "standard"},
                connect_timeout=3,
                read_timeout=10,
                s3={"addressing_style": "path" if endpoint else "virtual"},
            ),
        }
        if endpoint:
            client_kwargs["endpoint_url"] = endpoint

        access_key = settings.AWS_ACCESS_KEY_ID
        secret_key = _secret_value(settings.AWS_SECRET_ACCESS_KEY)
        if access_key and secret_key:
            client_kwargs.update(aws_access_key_id=access_key, aws_secret_access_key=secret_key)
            token = _secret_value(settings.AWS_SESSION_TOKEN)
            if token:
                client_kwargs["aws_session_token"] = token

        with _boto_errors("create S3 client"):
            self.client = boto3.client("s3", **client_kwargs)

        self._repr = f"S3Client(bucket={self.bucket}, region={self.region}, endpoint={'yes' if endpoint else 'no'})"

    def _sign(self, client_method: str, params: Dict[str, Any], expires_in: int, *, http_method: Optional[str] = None) -> str:
        extra = {"HttpMethod": http_method} if http_method else {}
        with _boto_errors(f"presign {client_method}"):
            return self.client.generate_presigned_url(
                ClientMethod=client_method,
                Params={"Bucket": self.bucket, **params},
                ExpiresIn=int(expires_in),
                **extra,
            )

    # ────────────────────────────────────────────────────────────────────────
    # 🔐 Single-shot upload
    # ────────────────────────────────────────────────────────────────────────

    def presigned_put(self, key: str, *, content_type: str, expires_in: int = 3600) -> str:
        """
        Presigned PUT for the whole file.

        `Content-Type` is part of the signature, so the uploader must send
        exactly the type it declared.
        """
        k = _normalize_key(key)
        return self._sign("put_object", {"Key": k, "ContentType": content_type}, expires_in, http_method="PUT")

    # ────────────────────────────────────────────────────────────────────────
    # 🧩 Multipart upload
    # ────────────────────────────────────────────────────────────────────────

    def create_multipart(self, key: str, *, content_type: str) -> str:
        """Initiate a multipart session and return its `UploadId`."""
        k = _normalize_key(key)
        with _boto_errors("create multipart upload"):
            resp = self.client.create_multipart_upload(Bucket=self.bucket, Key=k, ContentType=content_type)
        upload_id = resp.get("UploadId")
        if not upload_id:
            raise S3StorageError("Multipart upload created without an UploadId")
        return upload_id

    def presigned_part_put(self, key: str, *, upload_id: str, part_number: int, expires_in: int = 3600) -> str:
        """Presigned PUT for a single `upload_part` call."""
        k = _normalize_key(key)
        params = {"Key": k, "UploadId": upload_id, "PartNumber": int(part_number)}
        return self._sign("upload_part", params, expires_in, http_method="PUT")

    def complete_multipart(self, key: str, *, upload_id: str, parts: Iterable[Dict[str, Any]]) -> None:
        """
        Complete a multipart upload.

        `parts` are `{"PartNumber": int, "ETag": str}` dicts in ascending order.
        A refused part list raises `S3MultipartRejected` carrying the S3 code;
        anything else is a plain `S3StorageError`.
        """
        k = _normalize_key(key)
        part_list: List[Dict[str, Any]] = [
            {"PartNumber": int(p["PartNumber"]), "ETag": str(p["ETag"])} for p in parts
        ]
        with _boto_errors("complete multipart upload"):
            try:
                self.client.complete_multipart_upload(
                    Bucket=self.bucket,
                    Key=k,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": part_list},
                )
            except botocore.exceptions.ClientError as e:
                code = _error_code(e)
                if code in MULTIPART_REJECTION_CODES:
                    raise S3MultipartRejected(f"Multipart completion rejected: {code}", code=code) from e
                raise

    def abort_multipart(self, key: str, *, upload_id: str) -> None:
        """Abort a multipart session. An already-gone session counts as aborted."""
        k = _normalize_key(key)
        with _boto_errors("abort multipart upload"):
            try:
                self.client.abort_multipart_upload(Bucket=self.bucket, Key=k, UploadId=upload_id)
            except botocore.exceptions.ClientError as e:
                if _error_code(e) != "NoSuchUpload":
                    raise
                logger.debug("abort_multipart: session already gone for %s", k)

    # ────────────────────────────────────────────────────────────────────────
    # 📥 Download
    # ────────────────────────────────────────────────────────────────────────

    def presigned_get(
        self,
        key: str,
        *,
        expires_in: int = 600,
        response_content_type: Optional[str] = None,
        response_content_disposition: Optional[str] = None,
    ) -> str:
        """
        Presigned GET for the recipient.

        The `response_*` overrides are baked into the signature, so S3 serves
        the blob with that type and disposition no matter what was stored.
        """
        params: Dict[str, Any] = {"Key": _normalize_key(key)}
        if response_content_type:
            params["ResponseContentType"] = response_content_type
        if response_content_disposition:
            params["ResponseContentDisposition"] = response_content_disposition
        return self._sign("get_object", params, expires_in)

    # ────────────────────────────────────────────────────────────────────────
    # 🔎 Metadata helpers
    # ────────────────────────────────────────────────────────────────────────

    def head(self, key: str) -> Optional[Dict[str, Any]]:
        """
        HEAD metadata, or None when the key does not exist.

        Only not-found codes map to None; an outage raises `S3StorageError`.
        """
        k = _normalize_key(key)
        with _boto_errors("HEAD object"):
            try:
                return dict(self.client.head_object(Bucket=self.bucket, Key=k) or {})
            except botocore.exceptions.ClientError as e:
                if _error_code(e) in _NOT_FOUND_CODES:
                    return None
                raise

    def exists(self, key: str) -> bool:
        return self.head(key) is not None

    def stat(self, key: str) -> ObjectStat:
        """Size, type, mtime and etag of a stored object."""
        meta = self.head(key)
        if meta is None:
            raise S3ObjectNotFound(f"Object not found: {key}")
        return ObjectStat(
            size=int(meta.get("ContentLength") or 0),
            content_type=meta.get("ContentType"),
            modified_at=meta.get("LastModified"),
            etag=(meta.get("ETag") or "").strip('"') or None,
        )

    # ────────────────────────────────────────────────────────────────────────
    # 🗑️ Delete
    # ────────────────────────────────────────────────────────────────────────

    def delete(self, key: str) -> None:
        """
        Delete an object; a missing key counts as deleted.

        Other failures raise so callers keep the record that points at the blob.
        """
        k = _normalize_key(key)
        with _boto_errors("delete object"):
            try:
                self.client.delete_object(Bucket=self.bucket, Key=k)
            except botocore.exceptions.ClientError as e:
                if _error_code(e) not in _NOT_FOUND_CODES:
                    raise

    def __repr__(self) -> str:  # pragma: no cover
        return self._repr


__all__ = [
    "S3Client",
    "S3StorageError",
    "S3ObjectNotFound",
    "S3MultipartRejected",
    "ObjectStat",
    "MULTIPART_REJECTION_CODES",
]
