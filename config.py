"""
Configuration for the S3 account migration and purge tools.

Settings are read once from the environment (optionally seeded from a .env
file in the working directory) and validated eagerly, so misconfiguration
fails before any network activity.

Transfer tuning:
- Objects smaller than MULTIPART_THRESHOLD are copied with a single put
- Larger objects are streamed in MULTIPART_CHUNK_SIZE parts
- Parts of one object are uploaded by PART_UPLOAD_WORKERS threads
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from migration_errors import ConfigurationError
from migration_utils import BYTES_PER_MIB, parse_size

# Objects at or above this size use the multipart protocol
MULTIPART_THRESHOLD: int = 5 * BYTES_PER_MIB

# S3 rejects non-final parts smaller than 5 MiB
MIN_CHUNK_SIZE: int = 5 * BYTES_PER_MIB
DEFAULT_CHUNK_SIZE: str = "5M"

# S3 accepts part numbers 1 through 10,000
MAX_PARTS: int = 10_000

# Upper bound for the single-page listings used when diffing
MAX_KEYS: int = 1_000_000

DEFAULT_REGION: str = "us-east-1"
SUPPORTED_REGIONS: tuple[str, ...] = ("us-east-1", "ap-northeast-1", "ap-northeast-3")

DEFAULT_PART_UPLOAD_WORKERS: int = 8
DEFAULT_MAX_RETRY_ATTEMPTS: int = 1000

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class EndpointSettings:
    """Connection settings for one side of the migration."""

    region: str
    endpoint_url: Optional[str]
    credentials_file: str


@dataclass(frozen=True)
class MigrationSettings:  # pylint: disable=too-many-instance-attributes
    """Resolved configuration shared by the migration and purge tools."""

    source: EndpointSettings
    destination: EndpointSettings
    bucket_suffix: Optional[str] = None
    excluded_buckets: tuple[str, ...] = ()
    chunk_size: int = MIN_CHUNK_SIZE
    part_upload_workers: int = DEFAULT_PART_UPLOAD_WORKERS
    abort_failed_uploads: bool = False
    max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS


def validate_region(region: str, variable: str) -> str:
    """Return the region if supported, otherwise raise ConfigurationError."""
    if region not in SUPPORTED_REGIONS:
        raise ConfigurationError(
            f"{variable}={region!r} is not a supported region "
            f"(expected one of: {', '.join(SUPPORTED_REGIONS)})"
        )
    return region


def _read_endpoint(env: Mapping[str, str], prefix: str, default_credentials: str) -> EndpointSettings:
    region_var = f"{prefix}_AWS_REGION"
    region = validate_region(env.get(region_var) or DEFAULT_REGION, region_var)
    endpoint_url = env.get(f"{prefix}_AWS_ENDPOINT_URL") or None
    credentials_file = env.get(f"{prefix}_AWS_CREDENTIALS_FILE") or default_credentials
    return EndpointSettings(region=region, endpoint_url=endpoint_url, credentials_file=credentials_file)


def _read_bool(env: Mapping[str, str], variable: str) -> bool:
    raw = env.get(variable, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{variable}={raw!r} is not a boolean value")


def _read_positive_int(env: Mapping[str, str], variable: str, default: int) -> int:
    raw = env.get(variable)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{variable}={raw!r} is not an integer") from exc
    if value < 1:
        raise ConfigurationError(f"{variable} must be at least 1 (got {value})")
    return value


def _read_chunk_size(env: Mapping[str, str]) -> int:
    raw = env.get("MULTIPART_CHUNK_SIZE") or DEFAULT_CHUNK_SIZE
    try:
        chunk_size = parse_size(raw)
    except ValueError as exc:
        raise ConfigurationError(f"MULTIPART_CHUNK_SIZE={raw!r}: {exc}") from exc
    if chunk_size < MIN_CHUNK_SIZE:
        raise ConfigurationError(
            f"MULTIPART_CHUNK_SIZE must be at least {MIN_CHUNK_SIZE} bytes (got {chunk_size})"
        )
    return chunk_size


def _read_excluded_buckets(env: Mapping[str, str]) -> tuple[str, ...]:
    raw = env.get("EXCLUDED_BUCKETS", "")
    return tuple(name.strip() for name in raw.split(",") if name.strip())


def settings_from_env(env: Mapping[str, str]) -> MigrationSettings:
    """Build validated settings from an environment mapping."""
    return MigrationSettings(
        source=_read_endpoint(env, "OLD", ".old.credentials"),
        destination=_read_endpoint(env, "NEW", ".new.credentials"),
        bucket_suffix=env.get("NEW_BUCKET_SUFFIX") or None,
        excluded_buckets=_read_excluded_buckets(env),
        chunk_size=_read_chunk_size(env),
        part_upload_workers=_read_positive_int(env, "PART_UPLOAD_WORKERS", DEFAULT_PART_UPLOAD_WORKERS),
        abort_failed_uploads=_read_bool(env, "ABORT_FAILED_UPLOADS"),
        max_retry_attempts=_read_positive_int(env, "MAX_RETRY_ATTEMPTS", DEFAULT_MAX_RETRY_ATTEMPTS),
    )


def load_settings(dotenv_path: Optional[str] = None) -> MigrationSettings:
    """
    Load settings from the process environment.

    A .env file (dotenv_path, or one found from the working directory) seeds
    variables that are not already set.

    Raises:
        ConfigurationError: If any setting is missing or invalid
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True), override=False)
    return settings_from_env(os.environ)
