"""Pydantic schemas for notice and objection endpoints.

Multipart notice forms (create/update) are read as individual Form
fields in the router; JSON bodies and all responses are modelled here.
"""

from __future__ import annotations

# NOTE: datetime and UUID must remain at runtime for Pydantic validation
from datetime import datetime  # noqa: TC003
from uuid import UUID  # noqa: TC003

from pydantic import Field

from soochna.api.schemas.common import CamelModel

UPLOADS_URL_PREFIX = "/uploads"


class NoticeResponse(CamelModel):
    """A notice as returned to clients."""

    id: UUID = Field(..., description="Notice identifier")
    title: str
    content: str | None = None
    category: str
    lawyer_name: str
    location: str | None = None
    created_at: datetime
    updated_at: datetime
    file_path: str = Field(..., description="Path relative to the uploads root")
    file_name: str = Field(..., description="Original file name")
    file_type: str = Field(..., description="MIME type of the file")
    file_url: str = Field(..., description="URL under which the file is served statically")
    objection_count: int = Field(0, ge=0, description="Objections filed against this notice")


class NoticeListResponse(CamelModel):
    """One page of notices."""

    notices: list[NoticeResponse]
    total: int = Field(..., ge=0, description="Matching notices across all pages")
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    has_more: bool = Field(..., description="Whether a further page exists")


class GeneratedNoticeRequest(CamelModel):
    """Request schema for publishing a client-rendered notice image."""

    image_data: str | None = Field(None, description="Base64 PNG, optionally as a data URL")
    title: str | None = Field(None, max_length=500)
    lawyer_name: str | None = Field(None, max_length=255)
    location: str | None = Field(None, max_length=500)
    category: str | None = Field(None, max_length=50, description="Defaults to public")
    content: str | None = Field(None, max_length=20000)


class ObjectionRequest(CamelModel):
    """Request schema for filing an objection."""

    objector_name: str | None = Field(None, max_length=255)
    reason: str | None = Field(None, max_length=10000)
    objector_email: str | None = Field(None, max_length=255)
    objector_phone: str | None = Field(None, max_length=50)


class ObjectionResponse(CamelModel):
    """A filed objection."""

    id: UUID = Field(..., description="Objection identifier")
    notice_id: UUID
    objector_name: str
    reason: str
    objector_email: str | None = None
    objector_phone: str | None = None
    created_at: datetime
