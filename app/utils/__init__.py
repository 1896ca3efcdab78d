"""Utility helpers for the VideoDrop backend.

Submodules:
- aws: boto3 S3 wrapper (presigned PUT/GET, multipart, HEAD, delete)
"""

__all__: list[str] = []
