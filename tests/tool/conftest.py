"""Fixtures for rbd-operator tool tests."""

from collections.abc import Generator

import pytest


@pytest.fixture(autouse=True)
def clear_storage_requests(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run commands with the default claim sizes."""
    monkeypatch.delenv("CHAOS_CACHE_STORAGE_REQUEST", raising=False)
    monkeypatch.delenv("GRDATA_STORAGE_REQUEST", raising=False)
    yield
