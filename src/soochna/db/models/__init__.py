"""SQLAlchemy ORM models for Soochna.

This package contains all database models organized by domain:
- base: Common metadata, annotated column types and enums
- accounts: Lawyer and citizen accounts
- notices: Published notices and objections filed against them
- session: Bearer token sessions
"""

from soochna.db.models.accounts import Account
from soochna.db.models.base import (
    ALL_CATEGORIES,
    AccountRole,
    Base,
    NoticeCategory,
    metadata,
)
from soochna.db.models.notices import Notice, Objection
from soochna.db.models.session import Session

__all__ = [
    "ALL_CATEGORIES",
    "Account",
    "AccountRole",
    "Base",
    "Notice",
    "NoticeCategory",
    "Objection",
    "Session",
    "metadata",
]
