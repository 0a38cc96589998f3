"""Declarative base, shared column types and enums for Soochna tables."""

import enum
import uuid
from datetime import UTC, datetime
from typing import Annotated

from sqlalchemy import DateTime, MetaData, Uuid, func
from sqlalchemy.orm import DeclarativeBase, mapped_column

# Deterministic constraint names keep Alembic autogenerate diffs stable
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def utcnow() -> datetime:
    """Current time, timezone-aware in UTC. All stored timestamps are UTC."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Read a stored timestamp back as aware UTC.

    SQLite returns naive values; PostgreSQL returns aware ones.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UUIDPrimaryKey = Annotated[
    uuid.UUID,
    mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
]

TimestampTZ = Annotated[
    datetime,
    mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False),
]

OptionalTimestampTZ = Annotated[datetime | None, mapped_column(DateTime(timezone=True), nullable=True)]


class Base(DeclarativeBase):
    metadata = metadata


class AccountRole(enum.Enum):
    """Lawyers publish and manage notices; citizens only browse."""

    LAWYER = "lawyer"
    CITIZEN = "citizen"


class NoticeCategory(enum.Enum):
    """Categories a notice may be published under."""

    HOME = "home"
    LAND = "land"
    NAME_CHANGE = "namechange"
    PROPERTY = "property"
    LEGAL = "legal"
    PUBLIC = "public"
    COURT = "court"
    TENDER = "tender"


# Listing filter and aggregate key meaning "every category"; never stored
ALL_CATEGORIES = "all"
