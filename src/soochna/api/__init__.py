"""Soochna HTTP API.

create_app() assembles the notice board: auth and notice routers under
/api, stored documents under /uploads, and the objection email
dispatcher running for the lifetime of the app. Collaborators with side
effects (file store, dispatcher, password hasher) can be injected, which
is how the test suite swaps in temporary directories and mocks.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from soochna.api.middleware import (
    ErrorHandlerMiddleware,
    RequestIDMiddleware,
    request_validation_handler,
)
from soochna.api.routers import auth_router, notices_router
from soochna.db import close_engine
from soochna.services.accounts import build_password_hasher
from soochna.services.email import EmailNotificationService
from soochna.services.notifications import NotificationDispatcher
from soochna.services.storage import FileStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from argon2 import PasswordHasher

    from soochna.core.config import Settings

logger = logging.getLogger(__name__)

API_DESCRIPTION = """
Public legal notice board.

Anyone can browse, search and download notices and file objections.
Lawyers publish, edit and withdraw their own notices; the publishing
lawyer is emailed when an objection arrives.

- `/api/auth/*`: register, login, current account, logout
- `/api/notices/*`: listing, category counts, publishing, objections
- `/uploads/*`: stored notice documents
"""


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    dispatcher: NotificationDispatcher = app.state.notification_dispatcher
    await dispatcher.start()
    try:
        yield
    finally:
        await dispatcher.stop()
        await close_engine()


def _default_dispatcher(settings: Settings) -> NotificationDispatcher:
    return NotificationDispatcher(
        EmailNotificationService(settings.smtp, app_name=settings.app_name),
        queue_size=settings.notifications.queue_size,
        enabled=settings.notifications.enabled,
    )


def create_app(
    settings: Settings | None = None,
    *,
    file_store: FileStore | None = None,
    notification_dispatcher: NotificationDispatcher | None = None,
    password_hasher: PasswordHasher | None = None,
) -> FastAPI:
    """Build the notice board application.

    Args:
        settings: Defaults to get_settings(), i.e. the environment.
        file_store: Defaults to a store rooted at settings.storage.uploads_dir.
        notification_dispatcher: Defaults to SMTP delivery per settings.smtp.
        password_hasher: Defaults to the production Argon2 parameters.

    Returns:
        The FastAPI app, with routes, /uploads and middleware in place.
    """
    if settings is None:
        from soochna.core.settings import get_settings

        settings = get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description=API_DESCRIPTION,
        version=settings.app_version,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.file_store = file_store or FileStore.from_settings(settings.storage)
    app.state.notification_dispatcher = notification_dispatcher or _default_dispatcher(settings)
    app.state.password_hasher = password_hasher or build_password_hasher()

    app.include_router(auth_router, prefix="/api")
    app.include_router(notices_router, prefix="/api")
    app.mount(
        "/uploads", StaticFiles(directory=str(app.state.file_store.root)), name="uploads"
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    # Added last means outermost: the request ID must already be bound
    # when the error handler renders a body.
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    logger.info(
        "Application ready",
        extra={"version": settings.app_version, "uploads": str(app.state.file_store.root)},
    )
    return app
