"""Pytest configuration and shared fixtures for the S3 account migration tools."""

# pylint: disable=wrong-import-position

import sys
from pathlib import Path
from unittest import mock

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest


@pytest.fixture(autouse=True)
def clean_migration_env(monkeypatch):
    """Keep settings read from the real environment out of every test."""
    for variable in (
        "OLD_AWS_REGION",
        "OLD_AWS_ENDPOINT_URL",
        "OLD_AWS_CREDENTIALS_FILE",
        "NEW_AWS_REGION",
        "NEW_AWS_ENDPOINT_URL",
        "NEW_AWS_CREDENTIALS_FILE",
        "NEW_BUCKET_SUFFIX",
        "EXCLUDED_BUCKETS",
        "MULTIPART_CHUNK_SIZE",
        "PART_UPLOAD_WORKERS",
        "ABORT_FAILED_UPLOADS",
        "MAX_RETRY_ATTEMPTS",
    ):
        monkeypatch.delenv(variable, raising=False)


@pytest.fixture(name="credentials_files")
def fixture_credentials_files(tmp_path, monkeypatch):
    """Write source and destination credential files and point the settings at them."""
    old_file = tmp_path / ".old.credentials"
    old_file.write_text("AWS_ACCESS_KEY_ID=old_key\nAWS_SECRET_ACCESS_KEY=old_secret\n")
    new_file = tmp_path / ".new.credentials"
    new_file.write_text("AWS_ACCESS_KEY_ID=new_key\nAWS_SECRET_ACCESS_KEY=new_secret\n")
    monkeypatch.setenv("OLD_AWS_CREDENTIALS_FILE", str(old_file))
    monkeypatch.setenv("NEW_AWS_CREDENTIALS_FILE", str(new_file))
    return old_file, new_file


@pytest.fixture(name="mock_print")
def fixture_mock_print(monkeypatch):
    """Patch builtins.print and return the mock for assertions."""
    patched = mock.Mock()
    monkeypatch.setattr("builtins.print", patched)
    return patched
