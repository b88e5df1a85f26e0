#!/usr/bin/env python3
"""
S3 Account Purge - empty and delete every bucket at the OLD_* endpoint.

Each bucket listing is paged to completion, every object is deleted, and
then the empty bucket is deleted. This cannot be undone.

Usage:
    python purge_buckets.py
"""

import argparse
import logging
import sys

from botocore.exceptions import BotoCoreError, ClientError

from aws_client_factory import create_s3_client
from bucket_purge import BucketPurger
from config import MigrationSettings, load_settings
from migration_errors import ConfigurationError
from storage_gateway import S3Gateway

EXIT_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2


def create_purger(settings: MigrationSettings) -> BucketPurger:
    """Factory function to create the purger for the source account"""
    gateway = S3Gateway(create_s3_client(settings.source, settings.max_retry_attempts), name="source")
    return BucketPurger(gateway, excluded_buckets=settings.excluded_buckets)


def main(argv=None) -> int:
    """Main entry point for the S3 account purge"""
    parser = argparse.ArgumentParser(
        description="Delete every object and bucket at the OLD_* endpoint",
        epilog="Configuration is read from the environment and an optional .env file.",
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    try:
        purger = create_purger(load_settings())
    except ConfigurationError as exc:
        print(f"✗ Configuration error: {exc}")
        return EXIT_CONFIGURATION_ERROR

    try:
        purger.purge_all_buckets()
    except (ClientError, BotoCoreError) as exc:
        print()
        print(f"✗ Purge stopped: {exc}")
        return EXIT_FAILURE
    return 0


if __name__ == "__main__":
    sys.exit(main())
