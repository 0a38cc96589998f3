"""Account model: lawyers and citizens who sign in to the service."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Enum, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from soochna.db.models.base import (
    AccountRole,
    Base,
    TimestampTZ,
    UUIDPrimaryKey,
)

if TYPE_CHECKING:
    from soochna.db.models.notices import Notice


class Account(Base):
    """Registered user account.

    Created on registration and never deleted. The email is stored
    lowercased and is unique across all accounts.
    """

    __tablename__ = "accounts"

    account_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    # Display name; also the default lawyer name shown on notices
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # argon2id hash
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[AccountRole] = mapped_column(
        Enum(
            AccountRole,
            name="account_role",
            create_constraint=True,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
    )

    notices: Mapped[list[Notice]] = relationship(
        "Notice",
        back_populates="owner",
    )

    __table_args__ = (Index("ix_accounts_role", "role"),)
