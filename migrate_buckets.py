#!/usr/bin/env python3
"""
S3 Account Migration - copy every bucket from one endpoint to another.

For each source bucket (in listing order):
1. Creates the destination bucket (renaming with NEW_BUCKET_SUFFIX on collision)
2. Diffs source and destination listings to skip objects already migrated
3. Copies each remaining object, small ones in one request and large ones
   as concurrently uploaded multipart parts

Re-running the script re-diffs and continues where the last run stopped.

Usage:
    python migrate_buckets.py
"""

import argparse
import logging
import sys

from botocore.exceptions import BotoCoreError, ClientError

from aws_client_factory import create_s3_client
from bucket_migration import BucketMigrationOrchestrator, ObjectCopier
from config import MigrationSettings, load_settings
from migration_errors import ConfigurationError, MigrationFatalError, MultipartUploadError
from multipart_transfer import MultipartTransfer
from storage_gateway import S3Gateway

EXIT_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2


def create_orchestrator(settings: MigrationSettings) -> BucketMigrationOrchestrator:
    """Factory function to create the orchestrator with all dependencies"""
    source = S3Gateway(create_s3_client(settings.source, settings.max_retry_attempts), name="source")
    dest = S3Gateway(create_s3_client(settings.destination, settings.max_retry_attempts), name="destination")
    multipart = MultipartTransfer(
        dest,
        chunk_size=settings.chunk_size,
        max_workers=settings.part_upload_workers,
        abort_on_failure=settings.abort_failed_uploads,
    )
    copier = ObjectCopier(source, dest, multipart)
    return BucketMigrationOrchestrator(
        source,
        dest,
        copier,
        dest_region=settings.destination.region,
        bucket_suffix=settings.bucket_suffix,
        excluded_buckets=settings.excluded_buckets,
    )


def main(argv=None) -> int:
    """Main entry point for the S3 account migration"""
    parser = argparse.ArgumentParser(
        description="Copy every bucket and object from the OLD_* endpoint to the NEW_* endpoint",
        epilog="Configuration is read from the environment and an optional .env file.",
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    try:
        settings = load_settings()
        orchestrator = create_orchestrator(settings)
    except ConfigurationError as exc:
        print(f"✗ Configuration error: {exc}")
        return EXIT_CONFIGURATION_ERROR

    try:
        orchestrator.migrate_all_buckets()
    except (MigrationFatalError, MultipartUploadError, ClientError, BotoCoreError) as exc:
        print()
        print("=" * 70)
        print("MIGRATION STOPPED - ERROR ENCOUNTERED")
        print("=" * 70)
        print(f"Error: {exc}")
        print()
        print("Fix the issue and run 'python migrate_buckets.py' to resume.")
        print("=" * 70)
        return EXIT_FAILURE
    return 0


if __name__ == "__main__":
    sys.exit(main())
