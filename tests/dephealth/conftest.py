"""Shared fixtures for dephealth tests (no network, no Redis)."""

import pytest

from fakes import RecordingCache


@pytest.fixture
def recording_cache() -> RecordingCache:
    return RecordingCache()
