"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from ascent.config import get_settings
from ascent.database import close_db, get_session, init_db
from ascent.main import create_app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point every test at a throwaway SQLite file and data directory."""
    monkeypatch.setenv("ASCENT_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'storage.db'}")
    monkeypatch.setenv("ASCENT_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("ASCENT_GEMINI_API_KEY", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def app() -> AsyncGenerator[FastAPI, None]:
    """The storage service with its schema created. Redis stays unconfigured."""
    application = create_app()
    await init_db(get_settings().database_url, create_tables=True)
    yield application
    await close_db()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP test client for the storage service."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test assertions."""
    async for session in get_session():
        yield session
        break
