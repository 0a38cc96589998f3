"""Account registration and credential verification.

Passwords are hashed with Argon2id. Hashing and verification take tens
of MiB and a noticeable fraction of a second, so they run in a worker
thread. Successful registration and login both issue a bearer token
through SessionService.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from sqlalchemy import func, select

from soochna.db.models.accounts import Account
from soochna.db.models.base import AccountRole
from soochna.services.session import DEFAULT_SESSION_DURATION_HOURS, SessionService

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from soochna.services.session import DeviceInfo, SessionToken

logger = logging.getLogger(__name__)

DEFAULT_MIN_PASSWORD_LENGTH = 6


class AccountError(Exception):
    """Base exception for account operations."""


class DuplicateEmailError(AccountError):
    """Raised when registering an email that already has an account."""


class InvalidCredentialsError(AccountError):
    """Raised when an email/password pair does not match an account."""


class WeakPasswordError(AccountError):
    """Raised when a password is shorter than the configured minimum."""


@dataclass(frozen=True, slots=True)
class AuthResult:
    """Outcome of a successful register or login.

    Attributes:
        account: The authenticated account
        token: The bearer token issued for it
    """

    account: Account
    token: SessionToken


def build_password_hasher() -> PasswordHasher:
    """Create the Argon2id hasher used for account passwords."""
    return PasswordHasher(
        time_cost=3,
        memory_cost=65536,
        parallelism=4,
        hash_len=32,
        salt_len=16,
    )


def normalize_email(email: str) -> str:
    """Lowercase and trim an email for storage and lookup."""
    return email.strip().lower()


class AccountService:
    """Registers accounts and verifies credentials.

    Example:
        service = AccountService(db)
        result = await service.register(
            name="A. Sharma",
            email="sharma@example.com",
            password="s3cret!",
            role=AccountRole.LAWYER,
        )
        await db.commit()
        print(result.token.access_token)
    """

    def __init__(
        self,
        db_session: AsyncSession,
        *,
        password_hasher: PasswordHasher | None = None,
        session_duration_hours: int = DEFAULT_SESSION_DURATION_HOURS,
        min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
    ) -> None:
        """Initialize the account service.

        Args:
            db_session: SQLAlchemy async session for database operations.
            password_hasher: Argon2 hasher; defaults to build_password_hasher().
            session_duration_hours: Lifetime of issued tokens.
            min_password_length: Minimum accepted password length.
        """
        self._db = db_session
        self._hasher = password_hasher or build_password_hasher()
        self._sessions = SessionService(
            db_session,
            session_duration_hours=session_duration_hours,
        )
        self._min_password_length = min_password_length

    async def get_by_email(self, email: str) -> Account | None:
        """Look up an account by email, case-insensitively."""
        result = await self._db.execute(
            select(Account).where(func.lower(Account.email) == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get_account(self, account_id: UUID) -> Account | None:
        """Look up an account by ID."""
        return await self._db.get(Account, account_id)

    async def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: AccountRole,
        device_info: DeviceInfo | None = None,
    ) -> AuthResult:
        """Create an account and issue its first token.

        The caller commits the unit of work.

        Raises:
            WeakPasswordError: If the password is too short.
            DuplicateEmailError: If the email is already registered.
        """
        if len(password) < self._min_password_length:
            msg = f"Password must be at least {self._min_password_length} characters"
            raise WeakPasswordError(msg)

        if await self.get_by_email(email) is not None:
            msg = "User already exists"
            raise DuplicateEmailError(msg)

        account = Account(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=await self.hash_password(password),
            role=role,
        )
        self._db.add(account)
        await self._db.flush()

        token = await self._sessions.create_session(account.account_id, device_info=device_info)

        logger.info(
            "Account registered",
            extra={"account_id": str(account.account_id), "role": role.value},
        )
        return AuthResult(account=account, token=token)

    async def login(
        self,
        *,
        email: str,
        password: str,
        device_info: DeviceInfo | None = None,
    ) -> AuthResult:
        """Verify credentials and issue a token.

        Raises:
            InvalidCredentialsError: If no account matches or the password is wrong.
        """
        account = await self.get_by_email(email)
        if account is None or not await self.verify_password(password, account.password_hash):
            logger.info("Login failed")
            msg = "Invalid credentials"
            raise InvalidCredentialsError(msg)

        if self._hasher.check_needs_rehash(account.password_hash):
            account.password_hash = await self.hash_password(password)

        token = await self._sessions.create_session(account.account_id, device_info=device_info)

        logger.info("Login succeeded", extra={"account_id": str(account.account_id)})
        return AuthResult(account=account, token=token)

    async def hash_password(self, password: str) -> str:
        """Argon2id hash of `password`, computed off the event loop."""
        return await asyncio.to_thread(self._hasher.hash, password)

    async def verify_password(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored Argon2 hash, off the event loop."""
        try:
            return await asyncio.to_thread(self._hasher.verify, password_hash, password)
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError):
            logger.warning("Stored password hash could not be verified")
            return False
