"""Database engine and session management.

One async engine per process, created from settings the first time a
session is requested and disposed at application shutdown. Alembic
applies the same URL rules through to_psycopg_url().
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from soochna.core.config import DatabaseSettings

PSYCOPG_SCHEME = "postgresql+psycopg://"
_PLAIN_SCHEMES = ("postgresql://", "postgres://")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def to_psycopg_url(url: str) -> str:
    """Point a plain PostgreSQL URL at the psycopg 3 driver.

    URLs that already name a driver (or another database) are returned
    unchanged.
    """
    for scheme in _PLAIN_SCHEMES:
        if url.startswith(scheme):
            return PSYCOPG_SCHEME + url[len(scheme) :]
    return url


def create_engine_from_settings(settings: DatabaseSettings) -> AsyncEngine:
    """Build the pooled async engine described by DatabaseSettings."""
    return create_async_engine(
        to_psycopg_url(str(settings.url)),
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_pre_ping=True,
        echo=settings.echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the API and the test suite.

    Objects keep their loaded attributes after commit; notice and
    objection commands commit and then return the committed rows.
    """
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory, creating the engine if needed."""
    global _engine, _session_factory

    if _session_factory is None:
        from soochna.core.settings import get_settings

        _engine = create_engine_from_settings(get_settings().database)
        _session_factory = create_session_factory(_engine)
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session, rolling back if the block raises.

    Committing is the caller's job:

        async with get_async_session() as session:
            session.add(row)
            await session.commit()
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def close_engine() -> None:
    """Dispose of the engine's pooled connections (application shutdown)."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
