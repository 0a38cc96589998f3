"""Soochna service layer.

This package contains business logic and external integrations:
- NoticeQueryService / CategoryAggregator: notice listing and category counts
- NoticeCommandService: notice publishing, editing and soft deletion
- ObjectionCommandService: objection filing and owner notification
- AccountService / SessionService: registration, login and bearer tokens
- NotificationDispatcher / EmailNotificationService: background SMTP alerts
- FileStore: disk-backed storage for notice documents
"""

from soochna.services.accounts import (
    AccountService,
    DuplicateEmailError,
    InvalidCredentialsError,
    WeakPasswordError,
)
from soochna.services.email import EmailNotificationService, NotificationResult
from soochna.services.notices import (
    CategoryAggregator,
    NoticeCommandService,
    NoticeListParams,
    NoticeNotFoundError,
    NoticePermissionError,
    NoticeQueryError,
    NoticeQueryService,
    NoticeValidationError,
)
from soochna.services.notifications import NotificationDispatcher, ObjectionNotification
from soochna.services.objections import ObjectionCommandService, ObjectionInput
from soochna.services.session import SessionService
from soochna.services.storage import FileStore, StorageError

__all__ = [
    "AccountService",
    "CategoryAggregator",
    "DuplicateEmailError",
    "EmailNotificationService",
    "FileStore",
    "InvalidCredentialsError",
    "NoticeCommandService",
    "NoticeListParams",
    "NoticeNotFoundError",
    "NoticePermissionError",
    "NoticeQueryError",
    "NoticeQueryService",
    "NoticeValidationError",
    "NotificationDispatcher",
    "NotificationResult",
    "ObjectionCommandService",
    "ObjectionInput",
    "ObjectionNotification",
    "SessionService",
    "StorageError",
    "WeakPasswordError",
]
