"""Fixtures for the tracker: an in-memory storage endpoint and a manual clock."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from ascent.tracker.kv_client import StorageClient
from ascent.tracker.local_store import LocalStore
from ascent.tracker.sounds import LoggingSoundSink, SoundBoard


class FakeStorage:
    """Speaks the /storage contract from a dict. Flip the flags to fail."""

    def __init__(self) -> None:
        self.data: dict[str, object] = {}
        self.fail_gets = False
        self.fail_posts = False
        self.requests: list[httpx.Request] = []
        self.on_post: list[object] = []

    @property
    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            if self.fail_gets:
                return httpx.Response(500, json={"success": False, "error": "Database unavailable", "value": None})
            key = request.url.params.get("key")
            return httpx.Response(200, json={"success": True, "value": self.data.get(key)})

        body = json.loads(request.content)
        for hook in self.on_post:
            hook(body)  # type: ignore[operator]
        if self.fail_posts:
            return httpx.Response(500, json={"success": False, "error": "Database unavailable", "value": None})
        self.data[body["key"]] = body["value"]
        return httpx.Response(200, json={"success": True, "value": body["value"]})


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest_asyncio.fixture
async def storage_client(fake_storage: FakeStorage) -> AsyncGenerator[StorageClient, None]:
    async with StorageClient("http://storage.test", transport=httpx.MockTransport(fake_storage.handler)) as client:
        yield client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def local_store(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "local")


@pytest.fixture
def sink() -> LoggingSoundSink:
    return LoggingSoundSink()


@pytest.fixture
def sounds(sink: LoggingSoundSink) -> SoundBoard:
    return SoundBoard(sink)
