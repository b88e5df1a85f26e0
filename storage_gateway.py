"""Narrow S3 capability wrapper used by the migration and purge tools."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional

from botocore.exceptions import ClientError

# Chunk size used when reading source object bodies
STREAM_READ_SIZE = 1024 * 1024


@dataclass(frozen=True)
class ObjectDescriptor:
    """An object key and its size in bytes, as reported by a listing."""

    key: str
    size: int


@dataclass
class ObjectStream:
    """A lazily read object body with its declared length."""

    content_length: int
    chunks: Iterator[bytes]
    body: Any = None

    def read_all(self) -> bytes:
        """Drain the stream into memory. Only used for single-shot copies."""
        return b"".join(self.chunks)

    def close(self) -> None:
        """Release the underlying HTTP body, returning its connection to the pool."""
        if self.body is not None:
            self.body.close()


class BucketCreateStatus(Enum):
    """Outcome of a create_bucket call that did not fail outright."""

    CREATED = "created"
    ALREADY_OWNED_BY_YOU = "already_owned_by_you"
    ALREADY_EXISTS = "already_exists"


_CREATE_CONFLICT_CODES = {
    "BucketAlreadyOwnedByYou": BucketCreateStatus.ALREADY_OWNED_BY_YOU,
    "BucketAlreadyExists": BucketCreateStatus.ALREADY_EXISTS,
}


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def _descriptors(bucket: str, response: dict) -> list[ObjectDescriptor]:
    """Extract object descriptors from a listing response, validating key counts."""
    contents = response.get("Contents")
    if contents is None:
        key_count = response.get("KeyCount")
        if key_count not in (None, 0):
            raise RuntimeError(
                f"listing missing Contents while reporting {key_count} keys for bucket {bucket}"
            )
        return []
    return [ObjectDescriptor(key=obj["Key"], size=obj.get("Size", 0)) for obj in contents]


class S3Gateway:
    """
    Storage operations against one S3-compatible endpoint.

    Wraps a boto3 S3 client; boto3 clients are safe to share between threads,
    so one gateway may serve concurrent part uploads.
    """

    def __init__(self, s3, name: str = "s3"):
        self.s3 = s3
        self.name = name

    def list_buckets(self) -> list[str]:
        """Return bucket names in the order the service lists them."""
        response = self.s3.list_buckets()
        return [bucket["Name"] for bucket in response.get("Buckets", [])]

    def list_objects(
        self, bucket: str, marker: Optional[str] = None
    ) -> tuple[list[ObjectDescriptor], Optional[str]]:
        """
        Return one page of objects and the marker for the next page.

        The next marker is NextMarker when the service provides it, otherwise
        the last key of a truncated page. None means the listing is complete.
        """
        params = {"Bucket": bucket}
        if marker is not None:
            params["Marker"] = marker
        response = self.s3.list_objects(**params)
        objects = _descriptors(bucket, response)
        next_marker = response.get("NextMarker")
        if next_marker is None and response.get("IsTruncated") and objects:
            next_marker = objects[-1].key
        return objects, next_marker

    def list_objects_v2(self, bucket: str, max_keys: int) -> list[ObjectDescriptor]:
        """Return a single listing page bounded by max_keys."""
        response = self.s3.list_objects_v2(Bucket=bucket, MaxKeys=max_keys)
        return _descriptors(bucket, response)

    def create_bucket(self, bucket: str, location_constraint: Optional[str] = None) -> BucketCreateStatus:
        """
        Create a bucket, folding the two name-conflict errors into a status.

        Raises:
            ClientError: For any failure other than a name conflict
        """
        params = {"Bucket": bucket}
        if location_constraint is not None:
            params["CreateBucketConfiguration"] = {"LocationConstraint": location_constraint}
        try:
            self.s3.create_bucket(**params)
        except ClientError as e:
            status = _CREATE_CONFLICT_CODES.get(_error_code(e))
            if status is None:
                raise
            logging.debug("create_bucket %s on %s: %s", bucket, self.name, status.value)
            return status
        logging.info("Created bucket %s on %s", bucket, self.name)
        return BucketCreateStatus.CREATED

    def get_object(self, bucket: str, key: str) -> ObjectStream:
        """Open an object for streaming reads."""
        response = self.s3.get_object(Bucket=bucket, Key=key)
        body = response["Body"]
        return ObjectStream(
            content_length=response.get("ContentLength", 0),
            chunks=body.iter_chunks(chunk_size=STREAM_READ_SIZE),
            body=body,
        )

    def put_object(self, bucket: str, key: str, body: bytes) -> None:
        """Store an object in a single request."""
        self.s3.put_object(Bucket=bucket, Key=key, Body=body)

    def create_multipart_upload(self, bucket: str, key: str) -> str:
        """Open a multipart upload session and return its upload id."""
        response = self.s3.create_multipart_upload(Bucket=bucket, Key=key)
        return response["UploadId"]

    def upload_part(self, bucket: str, key: str, upload_id: str, part_number: int, body: bytes) -> str:
        """Upload one part and return its ETag."""
        response = self.s3.upload_part(
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=body,
        )
        return response["ETag"]

    def complete_multipart_upload(self, bucket: str, key: str, upload_id: str, parts: list[dict]) -> None:
        """Finalize an upload from its ordered part manifest."""
        self.s3.complete_multipart_upload(
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={"Parts": parts},
        )

    def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        """Discard an upload session and the parts stored for it."""
        self.s3.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete a single object."""
        self.s3.delete_object(Bucket=bucket, Key=key)

    def delete_bucket(self, bucket: str) -> None:
        """Delete an empty bucket."""
        self.s3.delete_bucket(Bucket=bucket)


__all__ = [
    "BucketCreateStatus",
    "ObjectDescriptor",
    "ObjectStream",
    "S3Gateway",
]
