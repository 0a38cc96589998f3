"""Bearer token authentication for API routes.

Tokens are resolved per request by a FastAPI dependency that looks up
the session in the database. Public routes do not resolve tokens at
all; protected routes declare one of:
- require_authenticated_user: any valid token
- require_role(role): a valid token for an account holding that role
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from soochna.api.dependencies import DbSession
from soochna.api.middleware.errors import AuthenticationError, AuthorizationError
from soochna.db.models.base import AccountRole
from soochna.services.session import SessionService

if TYPE_CHECKING:
    from uuid import UUID

    from soochna.db.models.session import Session

logger = logging.getLogger(__name__)

# auto_error off: anonymous requests reach public routes
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    """The account behind a validated bearer token.

    Attributes:
        account_id: UUID of the account
        name: Display name
        email: Account email
        role: Account role
        session_id: Session the token belongs to
        ip_address: Request IP address
    """

    account_id: UUID
    name: str
    email: str
    role: AccountRole
    session_id: UUID
    ip_address: str | None = None

    def has_role(self, role: AccountRole | str) -> bool:
        """Check if the user holds a specific role."""
        wanted = role if isinstance(role, AccountRole) else AccountRole(role)
        return self.role == wanted

    @classmethod
    def from_session(cls, session: Session, ip_address: str | None = None) -> AuthenticatedUser:
        """Build from a validated session with its account loaded."""
        account = session.account
        return cls(
            account_id=account.account_id,
            name=account.name,
            email=account.email,
            role=account.role,
            session_id=session.session_id,
            ip_address=ip_address,
        )


def get_client_ip(request: Request) -> str | None:
    """Extract the client IP, honouring X-Forwarded-For from a proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


BearerCredentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


async def optional_authenticated_user(
    request: Request,
    credentials: BearerCredentials,
    db: DbSession,
) -> AuthenticatedUser | None:
    """Resolve the bearer token if one is presented.

    Returns:
        The authenticated user, or None when no valid token was sent.
    """
    if credentials is None or not credentials.credentials:
        return None

    session = await SessionService(db).validate_session(credentials.credentials)
    if session is None:
        return None

    # Persist the activity timestamp bump
    await db.commit()

    return AuthenticatedUser.from_session(session, ip_address=get_client_ip(request))


async def require_authenticated_user(
    credentials: BearerCredentials,
    user: Annotated[AuthenticatedUser | None, Depends(optional_authenticated_user)],
) -> AuthenticatedUser:
    """Dependency that requires a valid bearer token.

    Use this in route definitions to protect endpoints:

        @router.get("/me")
        async def me(user: Annotated[AuthenticatedUser, Depends(require_authenticated_user)]):
            ...

    Raises:
        AuthenticationError: If no token was sent or it is invalid or expired.
    """
    if user is None:
        if credentials is None:
            raise AuthenticationError("Authentication required")
        raise AuthenticationError("Invalid or expired token")
    return user


def require_role(role: AccountRole | str) -> Callable:
    """Factory for creating role-checking dependencies.

    Usage:
        LawyerUser = Annotated[AuthenticatedUser, Depends(require_role(AccountRole.LAWYER))]

    Args:
        role: The required role.

    Returns:
        A FastAPI dependency function.
    """
    wanted = role if isinstance(role, AccountRole) else AccountRole(role)

    async def _check_role(
        user: Annotated[AuthenticatedUser, Depends(require_authenticated_user)],
    ) -> AuthenticatedUser:
        if not user.has_role(wanted):
            logger.info(
                "Role check failed",
                extra={"account_id": str(user.account_id), "required_role": wanted.value},
            )
            raise AuthorizationError(
                "Access denied: insufficient role",
                detail={"required_role": wanted.value},
            )
        return user

    return _check_role
