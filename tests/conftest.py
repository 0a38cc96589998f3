"""Pytest configuration and shared fixtures.

Tests run against a throwaway SQLite database (aiosqlite) created per
test in a temporary directory, and a file store rooted in the same
directory. No PostgreSQL, SMTP server or network access is needed.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from argon2 import PasswordHasher
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from soochna.api import create_app
from soochna.api.dependencies import get_db_session
from soochna.core.config import NotificationSettings, Settings, StorageSettings
from soochna.db import create_session_factory
from soochna.db.models import Base
from soochna.services.notifications import NotificationDispatcher
from soochna.services.storage import FileStore


# ---------------------------------------------------------------------------
# Settings and collaborators
# ---------------------------------------------------------------------------
@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    """Directory backing the file store for one test."""
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(uploads_dir: Path) -> Settings:
    """Settings for tests: dev environment, tmp uploads, small upload limit."""
    return Settings(
        environment="dev",
        debug=True,
        storage=StorageSettings(uploads_dir=str(uploads_dir), max_upload_bytes=64 * 1024),
        notifications=NotificationSettings(enabled=True, queue_size=10),
    )


@pytest.fixture
def file_store(uploads_dir: Path) -> FileStore:
    """File store rooted in the test's uploads directory."""
    return FileStore(uploads_dir)


@pytest.fixture
def password_hasher() -> PasswordHasher:
    """Argon2 hasher with minimal cost so tests stay fast."""
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def mock_dispatcher() -> MagicMock:
    """Stand-in notification dispatcher recording dispatched messages."""
    dispatcher = MagicMock(spec=NotificationDispatcher)
    dispatcher.dispatch.return_value = True
    return dispatcher


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Async engine over a fresh SQLite file with the full schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'soochna.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory matching the application's session settings."""
    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A database session for service-level tests."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# API client fixture (in-process testing via ASGI transport)
# ---------------------------------------------------------------------------
@pytest.fixture
def test_app(
    test_settings: Settings,
    file_store: FileStore,
    mock_dispatcher: MagicMock,
    password_hasher: PasswordHasher,
    session_factory: async_sessionmaker[AsyncSession],
):
    """Create a test application instance wired to the test database."""
    app = create_app(
        test_settings,
        file_store=file_store,
        notification_dispatcher=mock_dispatcher,
        password_hasher=password_hasher,
    )

    async def _override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_db_session
    return app


@pytest.fixture
async def api_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing.

    Uses httpx AsyncClient with ASGI transport for in-process testing
    without network overhead.
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
