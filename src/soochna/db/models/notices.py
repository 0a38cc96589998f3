"""Notice-related models: published notices and the objections filed against them."""

from __future__ import annotations

import uuid  # noqa: TC003 - required at runtime for SQLAlchemy type resolution
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from soochna.db.models.base import (
    Base,
    TimestampTZ,
    UUIDPrimaryKey,
)

if TYPE_CHECKING:
    from soochna.db.models.accounts import Account


class Notice(Base):
    """A published legal or public notice with an attached document.

    Soft-deleted notices keep their row with is_active=False and are
    excluded from every listing and count.
    """

    __tablename__ = "notices"

    notice_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False)

    # Name printed on the notice; ownership is tracked by owner_account_id
    lawyer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)

    owner_account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.account_id", ondelete="RESTRICT"),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # File store reference, relative to the uploads root
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_type: Mapped[str] = mapped_column(String(255), nullable=False)

    owner: Mapped[Account] = relationship("Account", back_populates="notices")
    objections: Mapped[list[Objection]] = relationship(
        "Objection",
        back_populates="notice",
    )

    __table_args__ = (
        Index("ix_notices_created_at", "created_at"),
        Index("ix_notices_category", "category"),
        Index("ix_notices_is_active", "is_active"),
        Index("ix_notices_owner_account_id", "owner_account_id"),
    )


class Objection(Base):
    """A citizen-filed objection against a notice.

    Immutable once created and never deleted.
    """

    __tablename__ = "objections"

    objection_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    notice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("notices.notice_id", ondelete="RESTRICT"),
        nullable=False,
    )

    reason: Mapped[str] = mapped_column(Text, nullable=False)
    objector_name: Mapped[str] = mapped_column(String(255), nullable=False)
    objector_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    objector_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    notice: Mapped[Notice] = relationship("Notice", back_populates="objections")

    __table_args__ = (Index("ix_objections_notice_id", "notice_id"),)
