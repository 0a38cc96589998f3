"""Account API router.

Handles registration, login, identity lookup and logout. Registration
and login return an opaque bearer token valid for a fixed period.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from soochna.api.dependencies import AppSettings, DbSession, Hasher
from soochna.api.middleware.auth import (
    AuthenticatedUser,
    BearerCredentials,
    get_client_ip,
    require_authenticated_user,
)
from soochna.api.middleware.errors import AuthenticationError, ServiceError, ValidationAPIError
from soochna.api.schemas.auth import AccountResponse, AuthResponse, LoginRequest, RegisterRequest
from soochna.api.schemas.common import MessageResponse
from soochna.services.accounts import (
    AccountService,
    AuthResult,
    DuplicateEmailError,
    InvalidCredentialsError,
    WeakPasswordError,
)
from soochna.services.session import DeviceInfo, SessionService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)

CurrentUser = Annotated[AuthenticatedUser, Depends(require_authenticated_user)]


def _account_service(db: DbSession, settings: AppSettings, hasher: Hasher) -> AccountService:
    return AccountService(
        db,
        password_hasher=hasher,
        session_duration_hours=settings.auth.session_duration_hours,
        min_password_length=settings.auth.min_password_length,
    )


def _device_info(request: Request) -> DeviceInfo:
    return DeviceInfo(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        token=result.token.access_token,
        expires_at=result.token.expires_at,
        user=AccountResponse.model_validate(result.account),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    request: Request,
    db: DbSession,
    settings: AppSettings,
    hasher: Hasher,
) -> AuthResponse:
    """Register a lawyer or citizen account and issue its first token.

    Raises:
        ValidationAPIError: If the email is taken or the password too short.
    """
    service = _account_service(db, settings, hasher)
    try:
        result = await service.register(
            name=body.name,
            email=body.email,
            password=body.password,
            role=body.role,
            device_info=_device_info(request),
        )
        await db.commit()
    except (DuplicateEmailError, IntegrityError) as e:
        await db.rollback()
        raise ValidationAPIError("User already exists", detail={"field": "email"}) from e
    except WeakPasswordError as e:
        raise ValidationAPIError(str(e), detail={"field": "password"}) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Account registration failed")
        raise ServiceError("Failed to register user") from e

    return _auth_response(result)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Exchange credentials for a token",
)
async def login(
    body: LoginRequest,
    request: Request,
    db: DbSession,
    settings: AppSettings,
    hasher: Hasher,
) -> AuthResponse:
    """Verify credentials and issue a bearer token.

    Raises:
        AuthenticationError: If the email/password pair does not match.
    """
    service = _account_service(db, settings, hasher)
    try:
        result = await service.login(
            email=body.email,
            password=body.password,
            device_info=_device_info(request),
        )
        await db.commit()
    except InvalidCredentialsError as e:
        raise AuthenticationError("Invalid credentials") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Login failed")
        raise ServiceError("Failed to login") from e

    return _auth_response(result)


@router.get(
    "/me",
    response_model=AccountResponse,
    summary="Identify the caller",
)
async def me(user: CurrentUser) -> AccountResponse:
    """Return the account behind the presented bearer token."""
    return AccountResponse(
        id=user.account_id,
        name=user.name,
        email=user.email,
        role=user.role,
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Revoke the presented token",
)
async def logout(credentials: BearerCredentials, db: DbSession) -> MessageResponse:
    """Revoke the bearer token if one is presented.

    Always succeeds; without a token this is a no-op.
    """
    if credentials is not None and credentials.credentials:
        revoked = await SessionService(db).revoke_token(credentials.credentials)
        await db.commit()
        logger.debug("Logout processed: revoked=%s", revoked)

    return MessageResponse(message="Logged out successfully")
