"""Notice API router.

Public endpoints list notices, report category counts, serve files for
download and accept objections. Publishing, editing and deleting
notices require a lawyer's bearer token; editing and deleting further
require being the lawyer who published the notice.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse

from soochna.api.dependencies import AppSettings, DbSession, Dispatcher, Store
from soochna.api.middleware.auth import AuthenticatedUser, require_role
from soochna.api.middleware.errors import (
    APIError,
    AuthorizationError,
    NotFoundError,
    ServiceError,
    ValidationAPIError,
)
from soochna.api.schemas.common import MessageResponse
from soochna.api.schemas.notices import (
    UPLOADS_URL_PREFIX,
    GeneratedNoticeRequest,
    NoticeListResponse,
    NoticeResponse,
    ObjectionRequest,
    ObjectionResponse,
)
from soochna.db.models.base import AccountRole
from soochna.db.models.notices import Notice  # noqa: TC001
from soochna.services.notices import (
    Actor,
    CategoryAggregator,
    NoticeChanges,
    NoticeCommandService,
    NoticeError,
    NoticeListParams,
    NoticeNotFoundError,
    NoticePermissionError,
    NoticeQueryError,
    NoticeQueryService,
    NoticeValidationError,
    UploadedFile,
)
from soochna.services.objections import (
    ObjectionCommandService,
    ObjectionInput,
    ObjectionPersistenceError,
)
from soochna.services.storage import StorageError, UnsafePathError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/notices",
    tags=["notices"],
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Insufficient permissions"},
    },
)

LawyerUser = Annotated[AuthenticatedUser, Depends(require_role(AccountRole.LAWYER))]


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _notice_response(notice: Notice, objection_count: int = 0) -> NoticeResponse:
    return NoticeResponse(
        id=notice.notice_id,
        title=notice.title,
        content=notice.content,
        category=notice.category,
        lawyer_name=notice.lawyer_name,
        location=notice.location,
        created_at=notice.created_at,
        updated_at=notice.updated_at,
        file_path=notice.file_path,
        file_name=notice.file_name,
        file_type=notice.file_type,
        file_url=f"{UPLOADS_URL_PREFIX}/{notice.file_path}",
        objection_count=objection_count,
    )


def _actor(user: AuthenticatedUser) -> Actor:
    return Actor(account_id=user.account_id, role=user.role)


def _command_error(exc: NoticeError | StorageError, fallback: str) -> APIError:
    """Map a notice command failure onto an API error."""
    if isinstance(exc, NoticeValidationError):
        return ValidationAPIError(exc.message, detail={"field": exc.field} if exc.field else None)
    if isinstance(exc, NoticeNotFoundError):
        return NotFoundError("Notice", str(exc.notice_id))
    if isinstance(exc, NoticePermissionError):
        return AuthorizationError(str(exc))
    return ServiceError(fallback)


async def _read_upload(file: UploadFile | None, max_bytes: int) -> UploadedFile | None:
    """Read an uploaded file, stopping one byte past the size limit."""
    if file is None or not file.filename:
        return None
    data = await file.read(max_bytes + 1)
    return UploadedFile(
        data=data,
        file_name=file.filename,
        content_type=file.content_type or "application/octet-stream",
    )


def _command_service(db: DbSession, store: Store, settings: AppSettings) -> NoticeCommandService:
    return NoticeCommandService(
        db,
        store,
        max_upload_bytes=settings.storage.max_upload_bytes,
        allowed_mime_types=settings.storage.allowed_mime_types,
    )


# -----------------------------------------------------------------------------
# Listing
# -----------------------------------------------------------------------------


@router.get(
    "",
    response_model=NoticeListResponse,
    summary="List active notices",
)
async def list_notices(
    db: DbSession,
    page: Annotated[str | None, Query(description="1-based page number")] = None,
    limit: Annotated[str | None, Query(description="Page size (max 100)")] = None,
    category: Annotated[str | None, Query(description="Category, or 'all'")] = None,
    search: Annotated[
        str | None, Query(description="Matches title, lawyer name or location")
    ] = None,
    date_filter: Annotated[
        str | None,
        Query(alias="dateFilter", description="today, last7days, thismonth or all"),
    ] = None,
    sort_by: Annotated[str | None, Query(alias="sortBy", description="newest or oldest")] = None,
) -> NoticeListResponse:
    """List active notices with their objection counts.

    Invalid page or limit values fall back to page 1 and 10 per page.

    Raises:
        ServiceError: If the database query fails.
    """
    params = NoticeListParams.from_query(
        page=page,
        limit=limit,
        category=category,
        search=search,
        date_filter=date_filter,
        sort_by=sort_by,
    )
    try:
        result = await NoticeQueryService(db).list_notices(params)
    except NoticeQueryError as e:
        raise ServiceError("Failed to fetch notices") from e

    return NoticeListResponse(
        notices=[_notice_response(item.notice, item.objection_count) for item in result.notices],
        total=result.total,
        page=result.page,
        limit=result.limit,
        has_more=result.has_more,
    )


@router.get(
    "/categories",
    response_model=dict[str, int],
    summary="Count active notices per category",
)
async def category_counts(db: DbSession) -> dict[str, int]:
    """Return {category: count} for active notices, plus "all"."""
    try:
        return await CategoryAggregator(db).counts()
    except NoticeQueryError as e:
        raise ServiceError("Failed to fetch category counts") from e


# -----------------------------------------------------------------------------
# Publishing
# -----------------------------------------------------------------------------


@router.post(
    "",
    response_model=NoticeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a notice with an uploaded document",
)
async def create_notice(
    user: LawyerUser,
    db: DbSession,
    store: Store,
    settings: AppSettings,
    title: Annotated[str | None, Form()] = None,
    lawyer_name: Annotated[str | None, Form(alias="lawyerName")] = None,
    category: Annotated[str | None, Form()] = None,
    location: Annotated[str | None, Form()] = None,
    content: Annotated[str | None, Form()] = None,
    file: Annotated[UploadFile | None, File(description="PDF, DOC, DOCX, JPEG or PNG")] = None,
) -> NoticeResponse:
    """Publish a notice. Requires the lawyer role.

    Raises:
        ValidationAPIError: If a required field or the file is invalid.
    """
    upload = await _read_upload(file, settings.storage.max_upload_bytes)
    try:
        notice = await _command_service(db, store, settings).create_uploaded(
            _actor(user),
            title=title,
            lawyer_name=lawyer_name,
            category=category,
            location=location,
            content=content,
            upload=upload,
        )
    except (NoticeError, StorageError) as e:
        raise _command_error(e, "Failed to create notice") from e

    return _notice_response(notice)


@router.post(
    "/generated",
    response_model=NoticeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a notice from a generated image",
)
async def create_generated_notice(
    body: GeneratedNoticeRequest,
    user: LawyerUser,
    db: DbSession,
    store: Store,
    settings: AppSettings,
) -> NoticeResponse:
    """Publish a notice rendered client-side as a PNG. Requires the lawyer role.

    Raises:
        ValidationAPIError: If a required field or the image data is invalid.
    """
    try:
        notice = await _command_service(db, store, settings).create_generated(
            _actor(user),
            image_data=body.image_data,
            title=body.title,
            lawyer_name=body.lawyer_name,
            category=body.category,
            location=body.location,
            content=body.content,
        )
    except (NoticeError, StorageError) as e:
        raise _command_error(e, "Failed to save generated notice") from e

    return _notice_response(notice)


@router.put(
    "/{notice_id}",
    response_model=NoticeResponse,
    summary="Update a notice",
)
async def update_notice(
    notice_id: UUID,
    user: LawyerUser,
    db: DbSession,
    store: Store,
    settings: AppSettings,
    title: Annotated[str | None, Form()] = None,
    lawyer_name: Annotated[str | None, Form(alias="lawyerName")] = None,
    category: Annotated[str | None, Form()] = None,
    location: Annotated[str | None, Form()] = None,
    content: Annotated[str | None, Form()] = None,
    file: Annotated[UploadFile | None, File(description="Replacement document")] = None,
) -> NoticeResponse:
    """Partially update a notice the caller published.

    Omitted fields keep their values. A new file replaces the old one,
    which is then removed from storage.

    Raises:
        NotFoundError: If the notice does not exist or was deleted.
        AuthorizationError: If the caller did not publish the notice.
    """
    upload = await _read_upload(file, settings.storage.max_upload_bytes)
    changes = NoticeChanges(
        title=title,
        content=content,
        category=category,
        lawyer_name=lawyer_name,
        location=location,
    )
    try:
        notice = await _command_service(db, store, settings).update(
            _actor(user),
            notice_id,
            changes,
            upload=upload,
        )
        objection_count = await NoticeQueryService(db).count_objections(notice_id)
    except (NoticeError, StorageError) as e:
        raise _command_error(e, "Failed to update notice") from e

    return _notice_response(notice, objection_count)


@router.delete(
    "/{notice_id}",
    response_model=MessageResponse,
    summary="Delete a notice",
)
async def delete_notice(
    notice_id: UUID,
    user: LawyerUser,
    db: DbSession,
    store: Store,
    settings: AppSettings,
) -> MessageResponse:
    """Soft-delete a notice the caller published and remove its file.

    Raises:
        NotFoundError: If the notice does not exist or was already deleted.
        AuthorizationError: If the caller did not publish the notice.
    """
    try:
        await _command_service(db, store, settings).delete(_actor(user), notice_id)
    except (NoticeError, StorageError) as e:
        raise _command_error(e, "Failed to delete notice") from e

    return MessageResponse(message="Notice deleted successfully")


# -----------------------------------------------------------------------------
# Public per-notice endpoints
# -----------------------------------------------------------------------------


@router.get(
    "/{notice_id}/download",
    response_class=FileResponse,
    summary="Download a notice's document",
)
async def download_notice(notice_id: UUID, db: DbSession, store: Store) -> FileResponse:
    """Stream the notice file under its original file name.

    Raises:
        NotFoundError: If the notice or its file does not exist.
    """
    notice = await NoticeQueryService(db).get_active_notice(notice_id)
    if notice is None:
        raise NotFoundError("Notice", str(notice_id))

    try:
        path = store.resolve(notice.file_path)
    except UnsafePathError as e:
        logger.error("Notice references an invalid file path", extra={"notice_id": str(notice_id)})
        raise NotFoundError("File", notice.file_name) from e

    if not path.is_file():
        logger.warning("Notice file missing from store", extra={"notice_id": str(notice_id)})
        raise NotFoundError("File", notice.file_name)

    return FileResponse(path, media_type=notice.file_type, filename=notice.file_name)


@router.post(
    "/{notice_id}/objections",
    response_model=ObjectionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="File an objection against a notice",
)
async def file_objection(
    notice_id: UUID,
    body: ObjectionRequest,
    db: DbSession,
    dispatcher: Dispatcher,
) -> ObjectionResponse:
    """File an objection. No authentication required.

    The publishing lawyer is emailed in the background.

    Raises:
        NotFoundError: If the notice does not exist or was deleted.
        ValidationAPIError: If objector name or reason is missing.
    """
    service = ObjectionCommandService(db, dispatcher)
    try:
        objection = await service.file_objection(
            notice_id,
            ObjectionInput(
                objector_name=body.objector_name or "",
                reason=body.reason or "",
                objector_email=body.objector_email,
                objector_phone=body.objector_phone,
            ),
        )
    except ObjectionPersistenceError as e:
        raise ServiceError("Failed to file objection") from e
    except NoticeError as e:
        raise _command_error(e, "Failed to file objection") from e

    return ObjectionResponse(
        id=objection.objection_id,
        notice_id=objection.notice_id,
        objector_name=objection.objector_name,
        reason=objection.reason,
        objector_email=objection.objector_email,
        objector_phone=objection.objector_phone,
        created_at=objection.created_at,
    )
