"""Pytest configuration and fixtures for media_upload.

HTTP is faked with httpx.MockTransport (see factories.FakeTusServer);
source files live in tmp_path. No network, Redis or backend is needed.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from media_upload.core.config import Settings, get_settings
from media_upload.domain.value_objects.core import SourceFile
from tests.factories import FakeTusServer


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with small chunks and an immediate retry schedule."""
    return Settings(
        api_base_url="https://api.test",
        api_token="test-token",
        resumable_chunk_size=4,
        resumable_retry_delays=(0, 0, 0),
    )


@pytest.fixture
def make_source(tmp_path: Path) -> Callable[..., SourceFile]:
    """Factory: write content to tmp_path/name and return its SourceFile."""

    def _make(
        name: str = "lecture.mp4",
        content: bytes = b"0123456789",
        content_type: str | None = None,
    ) -> SourceFile:
        path = tmp_path / name
        path.write_bytes(content)
        return SourceFile.from_path(path, content_type=content_type)

    return _make


@pytest.fixture
def tus_server() -> FakeTusServer:
    return FakeTusServer()


class RecordingSleep:
    """Async sleep replacement that records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()
