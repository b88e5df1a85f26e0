"""Emptying and deleting every bucket of an account."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable

from migration_utils import format_duration


@dataclass
class PurgeSummary:
    """Counters reported at the end of a purge run."""

    buckets_deleted: int = 0
    objects_deleted: int = 0


class BucketPurger:
    """Handles deleting bucket contents and then the bucket itself."""

    def __init__(self, gateway, excluded_buckets: Iterable[str] = ()):
        self.gateway = gateway
        self.excluded_buckets = set(excluded_buckets)

    def collect_keys(self, bucket: str) -> set[str]:
        """Page through the full listing of bucket, deduplicating keys across pages."""
        keys: set[str] = set()
        pages = 0
        marker = None
        while True:
            objects, marker = self.gateway.list_objects(bucket, marker)
            pages += 1
            keys.update(obj.key for obj in objects)
            if marker is None:
                break
        logging.debug("Listed %d key(s) in %d page(s) for %s", len(keys), pages, bucket)
        return keys

    def purge_bucket(self, bucket: str) -> int:
        """Delete every object in bucket, then the bucket. Returns the object count."""
        keys = self.collect_keys(bucket)
        for key in keys:
            print(f"Deleting object: {key}")
            self.gateway.delete_object(bucket, key)
        self.gateway.delete_bucket(bucket)
        logging.info("Deleted bucket %s (%d object(s))", bucket, len(keys))
        return len(keys)

    def purge_all_buckets(self) -> PurgeSummary:
        """Purge every bucket in the account except the excluded ones."""
        summary = PurgeSummary()
        start_time = time.time()
        for bucket in self.gateway.list_buckets():
            if bucket in self.excluded_buckets:
                print(f"Skipping excluded bucket: {bucket}")
                continue
            print(f"Bucket: {bucket}")
            summary.objects_deleted += self.purge_bucket(bucket)
            summary.buckets_deleted += 1
        duration = format_duration(time.time() - start_time)
        print(
            f"✓ Deleted {summary.buckets_deleted:,} bucket(s) and "
            f"{summary.objects_deleted:,} object(s) in {duration}"
        )
        return summary


__all__ = ["BucketPurger", "PurgeSummary"]
