"""Pydantic schemas for account registration and login."""

from __future__ import annotations

# NOTE: datetime and UUID must remain at runtime for Pydantic validation
from datetime import datetime  # noqa: TC003
from uuid import UUID  # noqa: TC003

from pydantic import ConfigDict, EmailStr, Field

from soochna.api.schemas.common import CamelModel
from soochna.db.models.base import AccountRole


class RegisterRequest(CamelModel):
    """Request schema for creating an account."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: EmailStr = Field(..., description="Login email, unique across accounts")
    password: str = Field(..., min_length=1, max_length=1024, description="Account password")
    role: AccountRole = Field(..., description="lawyer or citizen")

    model_config = ConfigDict(extra="forbid")


class LoginRequest(CamelModel):
    """Request schema for exchanging credentials for a token."""

    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=1, max_length=1024, description="Account password")

    model_config = ConfigDict(extra="forbid")


class AccountResponse(CamelModel):
    """Public view of an account."""

    id: UUID = Field(..., validation_alias="account_id", description="Account identifier")
    name: str
    email: str
    role: AccountRole


class AuthResponse(CamelModel):
    """Token issued on register or login."""

    token: str = Field(..., description="Bearer token for the Authorization header")
    expires_at: datetime = Field(..., description="When the token stops being accepted")
    user: AccountResponse
