"""Bearer tokens for logged-in accounts.

A token is 32 random bytes, URL-safe encoded, handed to the client once.
Only its SHA-256 digest is kept in the sessions table, so looking a
token up means hashing what the client presents. Tokens live for a fixed
number of hours and end early only through logout.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, select, update

from soochna.db.models.base import utcnow
from soochna.db.models.session import Session

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

DEFAULT_SESSION_DURATION_HOURS = 24
SESSION_TOKEN_BYTES = 32


def hash_token(token: str) -> str:
    """Hex SHA-256 of a bearer token, as stored in sessions.token_hash."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class SessionToken:
    """A freshly issued token. `access_token` cannot be recovered later."""

    session_id: UUID
    access_token: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class DeviceInfo:
    """Client address and user agent recorded with a session."""

    ip_address: str | None = None
    user_agent: str | None = None


class SessionService:
    """Issue, resolve and revoke bearer tokens.

    The service flushes but never commits; the caller owns the transaction.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        *,
        session_duration_hours: int = DEFAULT_SESSION_DURATION_HOURS,
    ) -> None:
        self._db = db_session
        self._lifetime = timedelta(hours=session_duration_hours)

    async def create_session(
        self, account_id: UUID, *, device_info: DeviceInfo | None = None
    ) -> SessionToken:
        """Start a session for `account_id` and return its token."""
        device = device_info or DeviceInfo()
        access_token = secrets.token_urlsafe(SESSION_TOKEN_BYTES)
        issued_at = utcnow()

        session = Session(
            token_hash=hash_token(access_token),
            account_id=account_id,
            is_active=True,
            expires_at=issued_at + self._lifetime,
            last_activity_at=issued_at,
            ip_address=device.ip_address,
            user_agent=device.user_agent,
        )
        self._db.add(session)
        await self._db.flush()

        logger.info(
            "Session started",
            extra={"session_id": str(session.session_id), "account_id": str(account_id)},
        )
        return SessionToken(
            session_id=session.session_id,
            access_token=access_token,
            expires_at=session.expires_at,
        )

    async def validate_session(
        self, token: str, *, update_activity: bool = True
    ) -> Session | None:
        """Resolve a presented token to its live session, with the account loaded.

        Unknown, expired and revoked tokens all resolve to None.
        """
        session = (
            await self._db.execute(select(Session).where(Session.token_hash == hash_token(token)))
        ).unique().scalar_one_or_none()

        if session is None or not session.is_valid:
            logger.debug("Bearer token rejected")
            return None

        if update_activity:
            await self._db.execute(
                update(Session)
                .where(Session.session_id == session.session_id)
                .values(last_activity_at=utcnow())
            )
        return session

    async def revoke_token(self, token: str) -> bool:
        """End the session behind `token`. False if it was unknown or already ended."""
        result = await self._db.execute(
            update(Session)
            .where(Session.token_hash == hash_token(token), Session.revoked_at.is_(None))
            .values(is_active=False, revoked_at=utcnow())
        )
        revoked = result.rowcount > 0
        if revoked:
            logger.info("Session revoked on logout")
        return revoked

    async def cleanup_expired_sessions(self, *, older_than_days: int = 30) -> int:
        """Delete sessions that expired over `older_than_days` ago; returns how many."""
        cutoff = utcnow() - timedelta(days=older_than_days)
        result = await self._db.execute(delete(Session).where(Session.expires_at < cutoff))
        if result.rowcount:
            logger.info("Deleted %d expired sessions", result.rowcount)
        return result.rowcount
