"""Shared fixtures for unit tests."""

from __future__ import annotations

import pytest

from hidlicense.log import MemorySink


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def uuid_bytes() -> bytes:
    return bytes(i % 255 for i in range(128))


@pytest.fixture
def license_bytes() -> bytes:
    return bytes((i * 7 + 3) % 256 for i in range(256))
