"""Shared pytest fixtures for test files."""

from __future__ import annotations

import pytest

from tests.gateway_test_utils import FakeGateway


@pytest.fixture(name="source")
def fixture_source():
    """Empty in-memory source account."""
    return FakeGateway()


@pytest.fixture(name="dest")
def fixture_dest():
    """Empty in-memory destination account."""
    return FakeGateway()
