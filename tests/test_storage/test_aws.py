# tests/test_storage/test_aws.py

"""
S3Client against botocore's Stubber: error classification and presigning.
"""

from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest
from botocore.stub import ANY, Stubber

from app.core.config import Settings
from app.utils.aws import (
    S3Client,
    S3MultipartRejected,
    S3ObjectNotFound,
    S3StorageError,
)

BUCKET = "videodrop-test"
KEY = "videos/abc/clip.mp4"


@pytest.fixture()
def s3():
    return S3Client(Settings(AWS_BUCKET_NAME=BUCKET, AWS_REGION="us-east-1"))


@pytest.fixture()
def stub(s3):
    with Stubber(s3.client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


# ─────────────────────────────────────────────────────────────
# Presigning (local, no HTTP)
# ─────────────────────────────────────────────────────────────
def test_presigned_put_is_sigv4_and_bound_to_key(s3):
    url = s3.presigned_put(KEY, content_type="video/mp4", expires_in=900)
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    assert parsed.path.endswith("/" + KEY)
    assert qs["X-Amz-Algorithm"] == ["AWS4-HMAC-SHA256"]
    assert qs["X-Amz-Expires"] == ["900"]


def test_presigned_get_carries_response_overrides(s3):
    url = s3.presigned_get(
        KEY,
        expires_in=600,
        response_content_type="video/mp4",
        response_content_disposition='attachment; filename="clip.mp4"',
    )
    qs = parse_qs(urlparse(url).query)
    assert qs["response-content-disposition"] == ['attachment; filename="clip.mp4"']
    assert qs["response-content-type"] == ["video/mp4"]
    assert qs["X-Amz-Expires"] == ["600"]


def test_presigned_part_put(s3):
    url = s3.presigned_part_put(KEY, upload_id="u-1", part_number=7, expires_in=3600)
    qs = parse_qs(urlparse(url).query)
    assert qs["partNumber"] == ["7"]
    assert qs["uploadId"] == ["u-1"]


@pytest.mark.parametrize("bad", ["", "/", "videos/../etc/passwd", "videos/a/b\nc.mp4"])
def test_unsafe_keys_are_refused(s3, bad):
    with pytest.raises(S3StorageError):
        s3.presigned_put(bad, content_type="video/mp4")


def test_bucket_is_required():
    with pytest.raises(S3StorageError):
        S3Client(Settings(AWS_BUCKET_NAME=""))


def test_client_uses_the_settings_it_is_given():
    s3 = S3Client(
        Settings(
            AWS_BUCKET_NAME="injected-bucket",
            AWS_REGION="eu-west-1",
            AWS_ACCESS_KEY_ID="INJECTEDKEY",
            AWS_SECRET_ACCESS_KEY="injected-secret",
        )
    )
    assert s3.bucket == "injected-bucket"
    assert s3.client.meta.region_name == "eu-west-1"

    url = s3.presigned_put(KEY, content_type="video/mp4")
    parsed = urlparse(url)
    assert "injected-bucket" in parsed.netloc + parsed.path
    credential = parse_qs(parsed.query)["X-Amz-Credential"][0]
    assert credential.startswith("INJECTEDKEY/")
    assert "/eu-west-1/s3/" in credential


# ─────────────────────────────────────────────────────────────
# HEAD / stat / exists
# ─────────────────────────────────────────────────────────────
def test_stat_reads_head_metadata(s3, stub):
    modified = datetime(2026, 3, 1, tzinfo=timezone.utc)
    stub.add_response(
        "head_object",
        {"ContentLength": 1234, "ContentType": "video/mp4", "LastModified": modified, "ETag": '"abc123"'},
        {"Bucket": BUCKET, "Key": KEY},
    )
    stat = s3.stat(KEY)
    assert stat.size == 1234
    assert stat.content_type == "video/mp4"
    assert stat.modified_at == modified
    assert stat.etag == "abc123"


def test_missing_object(s3, stub):
    stub.add_client_error("head_object", service_error_code="404", http_status_code=404)
    stub.add_client_error("head_object", service_error_code="NoSuchKey", http_status_code=404)
    assert s3.exists(KEY) is False
    with pytest.raises(S3ObjectNotFound):
        s3.stat(KEY)


def test_head_outage_is_not_a_missing_object(s3, stub):
    stub.add_client_error("head_object", service_error_code="AccessDenied", http_status_code=403)
    with pytest.raises(S3StorageError) as exc:
        s3.exists(KEY)
    assert not isinstance(exc.value, S3ObjectNotFound)


# ─────────────────────────────────────────────────────────────
# Multipart
# ─────────────────────────────────────────────────────────────
def test_create_multipart_returns_upload_id(s3, stub):
    stub.add_response(
        "create_multipart_upload",
        {"UploadId": "u-42", "Bucket": BUCKET, "Key": KEY},
        {"Bucket": BUCKET, "Key": KEY, "ContentType": "video/mp4"},
    )
    assert s3.create_multipart(KEY, content_type="video/mp4") == "u-42"


def test_complete_multipart_sends_part_list(s3, stub):
    parts = [{"PartNumber": 1, "ETag": "a"}, {"PartNumber": 2, "ETag": "b"}]
    stub.add_response(
        "complete_multipart_upload",
        {"Bucket": BUCKET, "Key": KEY},
        {"Bucket": BUCKET, "Key": KEY, "UploadId": "u-1", "MultipartUpload": {"Parts": parts}},
    )
    s3.complete_multipart(KEY, upload_id="u-1", parts=parts)


@pytest.mark.parametrize("code", ["InvalidPart", "InvalidPartOrder", "NoSuchUpload", "EntityTooSmall"])
def test_complete_rejections_are_classified(s3, stub, code):
    stub.add_client_error("complete_multipart_upload", service_error_code=code, http_status_code=400)
    with pytest.raises(S3MultipartRejected) as exc:
        s3.complete_multipart(KEY, upload_id="u-1", parts=[{"PartNumber": 1, "ETag": "a"}])
    assert exc.value.code == code


def test_complete_other_failures_are_storage_errors(s3, stub):
    stub.add_client_error("complete_multipart_upload", service_error_code="AccessDenied", http_status_code=403)
    with pytest.raises(S3StorageError) as exc:
        s3.complete_multipart(KEY, upload_id="u-1", parts=[{"PartNumber": 1, "ETag": "a"}])
    assert not isinstance(exc.value, S3MultipartRejected)


def test_abort_of_vanished_session_is_ok(s3, stub):
    stub.add_client_error("abort_multipart_upload", service_error_code="NoSuchUpload", http_status_code=404)
    s3.abort_multipart(KEY, upload_id="u-1")


# ─────────────────────────────────────────────────────────────
# Delete
# ─────────────────────────────────────────────────────────────
def test_delete(s3, stub):
    stub.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": KEY})
    stub.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)
    s3.delete(KEY)
    s3.delete(KEY)


def test_delete_failure_raises(s3, stub):
    stub.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)
    with pytest.raises(S3StorageError):
        s3.delete(KEY)


def test_head_request_params(s3, stub):
    stub.add_response("head_object", {"ContentLength": 1}, {"Bucket": BUCKET, "Key": ANY})
    assert s3.exists("/" + KEY) is True
