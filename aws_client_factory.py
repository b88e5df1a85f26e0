"""
AWS Client Factory Module
Provides boto3 S3 client creation for the source and destination endpoints.
"""

import logging
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config
from dotenv import dotenv_values

from config import EndpointSettings
from migration_errors import ConfigurationError


def load_credentials_from_file(credentials_file: str) -> tuple[str, str, Optional[str]]:
    """
    Load AWS credentials from a KEY=value credentials file.

    Args:
        credentials_file: Path to a file defining AWS_ACCESS_KEY_ID and
            AWS_SECRET_ACCESS_KEY (and optionally AWS_SESSION_TOKEN)

    Returns:
        tuple: (aws_access_key_id, aws_secret_access_key, aws_session_token)

    Raises:
        ConfigurationError: If the file is missing or lacks credentials
    """
    path = Path(credentials_file).expanduser()
    if not path.is_file():
        raise ConfigurationError(f"AWS credentials file not found: {path}")

    values = dotenv_values(path)
    aws_access_key_id = values.get("AWS_ACCESS_KEY_ID")
    aws_secret_access_key = values.get("AWS_SECRET_ACCESS_KEY")
    aws_session_token = values.get("AWS_SESSION_TOKEN") or None
    if aws_access_key_id and aws_secret_access_key:
        logging.info("✅ AWS credentials loaded from %s", path)
        if aws_session_token:
            logging.info("✅ AWS session token loaded from %s", path)
        return aws_access_key_id, aws_secret_access_key, aws_session_token

    raise ConfigurationError(f"AWS credentials not found in {path}")


def build_client_config(max_retry_attempts: int) -> Config:
    """Retry policy and addressing style shared by every S3 client."""
    return Config(
        retries={"mode": "standard", "max_attempts": max_retry_attempts},
        s3={"addressing_style": "path"},
    )


def create_s3_client(endpoint: EndpointSettings, max_retry_attempts: int):
    """
    Create an S3 boto3 client for one endpoint.

    Args:
        endpoint: Region, optional endpoint URL and credentials file
        max_retry_attempts: Attempts botocore makes before surfacing an error

    Returns:
        boto3.client: Configured S3 client
    """
    aws_access_key_id, aws_secret_access_key, aws_session_token = load_credentials_from_file(
        endpoint.credentials_file
    )

    client_kwargs = {
        "aws_access_key_id": aws_access_key_id,
        "aws_secret_access_key": aws_secret_access_key,
        "region_name": endpoint.region,
        "config": build_client_config(max_retry_attempts),
    }

    if aws_session_token:
        client_kwargs["aws_session_token"] = aws_session_token

    if endpoint.endpoint_url is not None:
        client_kwargs["endpoint_url"] = endpoint.endpoint_url

    return boto3.client("s3", **client_kwargs)
