"""Test data factories for Soochna.

This module provides factory functions that insert consistent, valid
rows for tests. Timestamps are always written in UTC so that they
compare correctly on databases that drop timezone information.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from soochna.db.models import Account, AccountRole, Notice, Objection

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def create_account(
    db: AsyncSession,
    *,
    name: str = "Test Lawyer",
    email: str | None = None,
    role: AccountRole = AccountRole.LAWYER,
    password_hash: str = "not-a-real-hash",
) -> Account:
    """Insert an account.

    Args:
        db: Session to add the account to (flushed, not committed).
        name: Display name.
        email: Email address. Auto-generated if None.
        role: Account role.
        password_hash: Stored hash; tests that log in should hash for real.

    Returns:
        The flushed Account.
    """
    account = Account(
        name=name,
        email=email or f"user-{uuid4().hex[:12]}@example.com",
        password_hash=password_hash,
        role=role,
    )
    db.add(account)
    await db.flush()
    return account


async def create_notice(
    db: AsyncSession,
    owner: Account,
    *,
    title: str = "Public notice",
    category: str = "legal",
    lawyer_name: str | None = None,
    location: str | None = "Jaipur",
    content: str | None = None,
    created_at: datetime | None = None,
    is_active: bool = True,
    file_path: str | None = None,
    file_name: str = "notice.pdf",
    file_type: str = "application/pdf",
) -> Notice:
    """Insert a notice owned by `owner`.

    Args:
        db: Session to add the notice to (flushed, not committed).
        owner: Publishing account.
        created_at: Creation time (any timezone). Defaults to now.
        file_path: Stored relative path. Auto-generated if None.

    Returns:
        The flushed Notice.
    """
    created = (created_at or datetime.now(UTC)).astimezone(UTC)
    notice = Notice(
        title=title,
        category=category,
        lawyer_name=lawyer_name or owner.name,
        location=location,
        content=content,
        owner_account_id=owner.account_id,
        is_active=is_active,
        file_path=file_path or f"file-{uuid4().hex}.pdf",
        file_name=file_name,
        file_type=file_type,
        created_at=created,
        updated_at=created,
    )
    db.add(notice)
    await db.flush()
    return notice


async def create_objection(
    db: AsyncSession,
    notice: Notice,
    *,
    objector_name: str = "R. Verma",
    reason: str = "I hold a prior claim on this land",
) -> Objection:
    """Insert an objection against `notice`."""
    objection = Objection(
        notice_id=notice.notice_id,
        objector_name=objector_name,
        reason=reason,
    )
    db.add(objection)
    await db.flush()
    return objection
