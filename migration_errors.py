"""Exception types shared by the migration and purge tools."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""


class MigrationFatalError(Exception):
    """Fatal error that stops the migration process."""


class BucketNameCollisionError(MigrationFatalError):
    """Raised when a destination bucket name is taken by another account."""

    def __init__(self, bucket: str, reason: str) -> None:
        super().__init__(f"Bucket name '{bucket}' is already taken: {reason}")
        self.bucket = bucket


class MultipartUploadError(RuntimeError):
    """Raised when a chunked transfer fails after its upload session was opened."""

    def __init__(self, bucket: str, key: str, upload_id: str, reason: str) -> None:
        super().__init__(f"Multipart upload failed for {bucket}/{key} (upload {upload_id}): {reason}")
        self.bucket = bucket
        self.key = key
        self.upload_id = upload_id


__all__ = [
    "BucketNameCollisionError",
    "ConfigurationError",
    "MigrationFatalError",
    "MultipartUploadError",
]
