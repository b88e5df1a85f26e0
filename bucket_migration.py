"""Orchestration: migrating every bucket of the source account to the destination"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from botocore.exceptions import ClientError

from config import DEFAULT_REGION, MAX_KEYS, MULTIPART_THRESHOLD
from migration_errors import BucketNameCollisionError
from migration_utils import format_duration, format_size, format_throughput
from multipart_transfer import MultipartTransfer
from object_diff import pending_objects
from storage_gateway import BucketCreateStatus, ObjectDescriptor
from transfer_strategy import TransferStrategy, select_strategy


@dataclass
class MigrationSummary:
    """Counters reported at the end of a migration run."""

    buckets: int = 0
    objects_transferred: int = 0
    objects_skipped: int = 0
    multipart_objects: int = 0
    bytes_transferred: int = 0


class ObjectCopier:  # pylint: disable=too-few-public-methods
    """Copies one object from source to destination using the strategy its size calls for"""

    def __init__(self, source, dest, multipart: MultipartTransfer, threshold: int = MULTIPART_THRESHOLD):
        self.source = source
        self.dest = dest
        self.multipart = multipart
        self.threshold = threshold

    def copy_object(
        self, src_bucket: str, dest_bucket: str, obj: ObjectDescriptor
    ) -> tuple[TransferStrategy, int]:
        """Stream obj from src_bucket into dest_bucket and return (strategy, bytes)."""
        stream = self.source.get_object(src_bucket, obj.key)
        strategy = select_strategy(stream.content_length, self.threshold)
        if strategy is TransferStrategy.SINGLE:
            try:
                self.dest.put_object(dest_bucket, obj.key, stream.read_all())
            finally:
                stream.close()
            return strategy, stream.content_length
        session = self.multipart.transfer(dest_bucket, obj.key, stream)
        return strategy, session.total_bytes


class BucketMigrationOrchestrator:
    """Migrates all source buckets one by one, objects one at a time"""

    def __init__(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        source,
        dest,
        copier: ObjectCopier,
        dest_region: str = DEFAULT_REGION,
        bucket_suffix: Optional[str] = None,
        excluded_buckets: Iterable[str] = (),
        max_keys: int = MAX_KEYS,
    ):
        self.source = source
        self.dest = dest
        self.copier = copier
        self.dest_region = dest_region
        self.bucket_suffix = bucket_suffix
        self.excluded_buckets = set(excluded_buckets)
        self.max_keys = max_keys

    def migrate_all_buckets(self) -> MigrationSummary:
        """Migrate every source bucket in listing order"""
        summary = MigrationSummary()
        start_time = time.time()
        buckets = self.source.list_buckets()
        excluded = [b for b in buckets if b in self.excluded_buckets]
        if excluded:
            print(f"Excluded {len(excluded)} bucket(s): {', '.join(excluded)}")
        for bucket in buckets:
            if bucket in self.excluded_buckets:
                continue
            self.migrate_bucket(bucket, summary)
            summary.buckets += 1
        print("Done!")
        self.print_summary(summary, time.time() - start_time)
        return summary

    def provision_bucket(self, bucket: str) -> str:
        """
        Create the destination bucket and return the name actually used.

        A name owned by another account is retried once with the configured
        suffix; a name already owned by the destination credentials is reused.

        Raises:
            BucketNameCollisionError: If the name is taken and no usable suffix exists
        """
        status = self.dest.create_bucket(bucket)
        if status is not BucketCreateStatus.ALREADY_EXISTS:
            return bucket
        if not self.bucket_suffix:
            raise BucketNameCollisionError(
                bucket, "NEW_BUCKET_SUFFIX must be set to avoid conflicts with existing buckets"
            )
        renamed = bucket + self.bucket_suffix
        logging.info("Bucket name %s is taken, retrying as %s", bucket, renamed)
        if self.dest.create_bucket(renamed) is BucketCreateStatus.ALREADY_EXISTS:
            raise BucketNameCollisionError(renamed, "name with suffix is also owned by another account")
        return renamed

    def _location_constraint(self) -> Optional[str]:
        # us-east-1 is the default location and may not be named explicitly
        if self.dest_region == DEFAULT_REGION:
            return None
        return self.dest_region

    def migrate_bucket(self, bucket: str, summary: MigrationSummary) -> None:
        """Transfer every object of bucket that the destination does not have yet"""
        print(f"Bucket: {bucket}")
        dest_bucket = self.provision_bucket(bucket)
        print(f"New Bucket: {dest_bucket}")

        migrated = self.dest.list_objects_v2(dest_bucket, self.max_keys)
        objects = self.source.list_objects_v2(bucket, self.max_keys)
        pending = pending_objects(objects, migrated)

        try:
            self.dest.create_bucket(dest_bucket, self._location_constraint())
        except ClientError as e:
            # Bucket was provisioned above; only its location can be refused here
            logging.warning("Could not set location for bucket %s: %s", dest_bucket, e)

        skipped = len(objects) - len(pending)
        summary.objects_skipped += skipped
        if skipped:
            print(f"  Skipping {skipped:,} object(s) already at destination")

        for obj in pending:
            print(f"Object: {obj.key}")
            strategy, copied = self.copier.copy_object(bucket, dest_bucket, obj)
            summary.objects_transferred += 1
            summary.bytes_transferred += copied
            if strategy is TransferStrategy.CHUNKED:
                summary.multipart_objects += 1

    @staticmethod
    def print_summary(summary: MigrationSummary, elapsed: float) -> None:
        """Print end-of-run totals"""
        print("=" * 70)
        print(f"Buckets migrated:    {summary.buckets:,}")
        print(f"Objects transferred: {summary.objects_transferred:,} ({summary.multipart_objects:,} multipart)")
        print(f"Objects skipped:     {summary.objects_skipped:,}")
        print(f"Data transferred:    {format_size(summary.bytes_transferred)}")
        print(f"Elapsed:             {format_duration(elapsed)}")
        print(f"Throughput:          {format_throughput(summary.bytes_transferred, elapsed)}")
        print("=" * 70)
