"""Login sessions: one row per issued bearer token, keyed by the token's SHA-256."""

from __future__ import annotations

import uuid  # noqa: TC003 - required at runtime for SQLAlchemy type resolution
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from soochna.db.models.base import (
    Base,
    OptionalTimestampTZ,
    TimestampTZ,
    UUIDPrimaryKey,
    as_utc,
    utcnow,
)

if TYPE_CHECKING:
    from soochna.db.models.accounts import Account


class Session(Base):
    """A bearer token issued at login or registration."""

    __tablename__ = "sessions"

    session_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.account_id", ondelete="CASCADE"),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[TimestampTZ]
    last_activity_at: Mapped[TimestampTZ]

    # Recorded at login
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    revoked_at: Mapped[OptionalTimestampTZ]

    account: Mapped[Account] = relationship("Account", lazy="joined")

    __table_args__ = (
        Index("ix_sessions_account_id", "account_id"),
        Index("ix_sessions_expires_at", "expires_at"),
    )

    @property
    def is_expired(self) -> bool:
        """Past expires_at."""
        return utcnow() > as_utc(self.expires_at)

    @property
    def is_revoked(self) -> bool:
        """Ended by logout."""
        return self.revoked_at is not None

    @property
    def is_valid(self) -> bool:
        """Accepted for authentication."""
        return self.is_active and not self.is_expired and not self.is_revoked
