"""Shared FastAPI dependencies.

Long-lived collaborators (settings, file store, notification
dispatcher, password hasher) are created once by the app factory and
kept on app.state. Each request gets its own database session.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from argon2 import PasswordHasher  # noqa: TC002
from fastapi import Depends, Request

# NOTE: needed at runtime for the Annotated dependency aliases below
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002

from soochna.core.config import Settings  # noqa: TC001
from soochna.services.notifications import NotificationDispatcher  # noqa: TC001
from soochna.services.storage import FileStore  # noqa: TC001


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the duration of one request.

    Uses the application's async session factory.
    """
    from soochna.db import get_async_session

    async with get_async_session() as session:
        yield session


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_file_store(request: Request) -> FileStore:
    """File store rooted at the configured uploads directory."""
    return request.app.state.file_store


def get_notification_dispatcher(request: Request) -> NotificationDispatcher:
    """Background dispatcher for objection notifications."""
    return request.app.state.notification_dispatcher


def get_password_hasher(request: Request) -> PasswordHasher:
    """Argon2 hasher for account passwords."""
    return request.app.state.password_hasher


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Store = Annotated[FileStore, Depends(get_file_store)]
Dispatcher = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]
Hasher = Annotated[PasswordHasher, Depends(get_password_hasher)]
