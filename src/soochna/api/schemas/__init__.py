"""Pydantic schemas for the Soochna API.

This package contains request/response schemas organized by API namespace.
"""

from soochna.api.schemas.auth import AccountResponse, AuthResponse, LoginRequest, RegisterRequest
from soochna.api.schemas.common import CamelModel, MessageResponse
from soochna.api.schemas.notices import (
    GeneratedNoticeRequest,
    NoticeListResponse,
    NoticeResponse,
    ObjectionRequest,
    ObjectionResponse,
)

__all__ = [
    "AccountResponse",
    "AuthResponse",
    "CamelModel",
    "GeneratedNoticeRequest",
    "LoginRequest",
    "MessageResponse",
    "NoticeListResponse",
    "NoticeResponse",
    "ObjectionRequest",
    "ObjectionResponse",
    "RegisterRequest",
]
