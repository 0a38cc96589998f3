"""Notice listing, category aggregation and notice commands.

This module holds the query side (filtered, sorted, paginated listing
with live objection counts, and per-category counts) and the command
side (create from upload, create from a generated image, partial update
with file replacement, soft delete).

File and record mutations are not covered by one transaction. Commands
order them so that a failure leaves at worst an orphaned file, never a
record pointing at a missing file:
- create: write file, insert record; on insert failure remove the file
- update: write new file, update record, then remove the old file
- delete: deactivate record, then remove the file
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, time, timedelta
from enum import Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from soochna.db.models.base import ALL_CATEGORIES, AccountRole, NoticeCategory, utcnow
from soochna.db.models.notices import Notice, Objection
from soochna.services.storage import ALLOWED_EXTENSIONS

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

    from soochna.services.storage import FileStore, StoredFile

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_ALLOWED_MIME_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/jpg",
    "image/png",
)

GENERATED_FILE_PREFIX = "generated-notice"
GENERATED_FILE_TYPE = "image/png"
UPLOADED_FILE_PREFIX = "file"

_DATA_URL_PREFIX = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,", re.IGNORECASE)
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class SortOrder(str, Enum):
    """Listing order by creation time."""

    NEWEST = "newest"
    OLDEST = "oldest"


class DateFilter(str, Enum):
    """Named creation-time windows, relative to the current moment."""

    ALL = "all"
    TODAY = "today"
    LAST_7_DAYS = "last7days"
    THIS_MONTH = "thismonth"


# =============================================================================
# Errors
# =============================================================================


class NoticeError(Exception):
    """Base exception for notice operations."""


class NoticeQueryError(NoticeError):
    """Raised when the listing or aggregation query fails in the database."""


class NoticeNotFoundError(NoticeError):
    """Raised when a notice does not exist or is no longer active."""

    def __init__(self, notice_id: UUID) -> None:
        self.notice_id = notice_id
        super().__init__(f"Notice not found: {notice_id}")


class NoticePermissionError(NoticeError):
    """Raised when the actor may not perform a command on a notice."""


class NoticeValidationError(NoticeError):
    """Raised when notice metadata or its file fails validation.

    Attributes:
        message: Human-readable description.
        field: Wire name of the offending field, if one applies.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class NoticePersistenceError(NoticeError):
    """Raised when a notice command cannot be written to the database."""


# =============================================================================
# Query parameters and results
# =============================================================================


def parse_positive_int(value: Any, default: int) -> int:
    """Parse a positive integer, falling back to default on anything else.

    Args:
        value: Raw value, typically a query string parameter.
        default: Returned when value is missing, non-numeric or < 1.

    Returns:
        The parsed integer or the default.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return default
    return parsed if parsed >= 1 else default


@dataclass(frozen=True, slots=True)
class NoticeListParams:
    """Validated listing parameters.

    Attributes:
        page: 1-based page number
        limit: Page size, at most MAX_LIMIT
        category: Category to match, or None for any
        search: Substring matched against title, lawyer name and location
        date_filter: Creation-time window
        sort_order: Newest or oldest first
    """

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    category: str | None = None
    search: str | None = None
    date_filter: DateFilter = DateFilter.ALL
    sort_order: SortOrder = SortOrder.NEWEST

    @classmethod
    def from_query(
        cls,
        *,
        page: Any = None,
        limit: Any = None,
        category: str | None = None,
        search: str | None = None,
        date_filter: str | None = None,
        sort_by: str | None = None,
    ) -> NoticeListParams:
        """Build parameters from raw request values.

        Never fails: invalid page or limit fall back to the defaults,
        unknown date filters impose no window and any sort other than
        "oldest" means newest first.
        """
        normalized_category = (category or "").strip().lower()
        normalized_search = (search or "").strip()

        try:
            window = DateFilter((date_filter or DateFilter.ALL.value).strip().lower())
        except ValueError:
            window = DateFilter.ALL

        order = (
            SortOrder.OLDEST
            if (sort_by or "").strip().lower() == SortOrder.OLDEST.value
            else SortOrder.NEWEST
        )

        return cls(
            page=parse_positive_int(page, DEFAULT_PAGE),
            limit=min(parse_positive_int(limit, DEFAULT_LIMIT), MAX_LIMIT),
            category=(
                None
                if not normalized_category or normalized_category == ALL_CATEGORIES
                else normalized_category
            ),
            search=normalized_search or None,
            date_filter=window,
            sort_order=order,
        )

    @property
    def offset(self) -> int:
        """Row offset of the first notice on this page."""
        return (self.page - 1) * self.limit


@dataclass(frozen=True, slots=True)
class NoticeSummary:
    """A notice together with its current objection count."""

    notice: Notice
    objection_count: int


@dataclass(frozen=True, slots=True)
class NoticePage:
    """One page of listing results.

    Attributes:
        notices: Notices on this page, in listing order
        total: Number of notices matching the filters across all pages
        page: Page number that was requested
        limit: Page size that was applied
    """

    notices: list[NoticeSummary] = field(default_factory=list)
    total: int = 0
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def has_more(self) -> bool:
        """Whether at least one further page exists."""
        return self.page * self.limit < self.total


def _local_now() -> datetime:
    """Current server-local wall-clock time, naive."""
    return datetime.now()


def date_window(
    date_filter: DateFilter,
    now: datetime | None = None,
) -> tuple[datetime | None, datetime | None]:
    """Compute the [start, end) creation-time bounds for a date filter.

    Calendar boundaries (midnight, first of month) are wall-clock times in
    the timezone of `now`, or in the server's local timezone when `now` is
    omitted. Each bound is converted to UTC with its own offset, so a DST
    change between midnight and now does not shift the window. The
    returned bounds are in UTC; None means unbounded.

    Args:
        date_filter: Window to compute.
        now: Reference moment; must be timezone-aware if given.

    Returns:
        (start, end) tuple.
    """
    if date_filter == DateFilter.ALL:
        return None, None

    tz = now.tzinfo if now is not None else None
    wall = now.replace(tzinfo=None) if now is not None else _local_now()

    def to_utc(local: datetime) -> datetime:
        # Naive astimezone() interprets the value as server-local time
        return (local.replace(tzinfo=tz) if tz is not None else local).astimezone(UTC)

    if date_filter == DateFilter.LAST_7_DAYS:
        return to_utc(wall) - timedelta(days=7), None

    midnight = datetime.combine(wall.date(), time())

    if date_filter == DateFilter.TODAY:
        return to_utc(midnight), to_utc(midnight + timedelta(days=1))

    month_start = midnight.replace(day=1)
    if month_start.month == 12:
        next_month_start = month_start.replace(year=month_start.year + 1, month=1)
    else:
        next_month_start = month_start.replace(month=month_start.month + 1)
    return to_utc(month_start), to_utc(next_month_start)


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so the text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# =============================================================================
# Query side
# =============================================================================


class NoticeQueryService:
    """Read-only access to active notices.

    Example:
        service = NoticeQueryService(db)
        params = NoticeListParams.from_query(page="2", limit="5", search="sharma")
        page = await service.list_notices(params)
        for item in page.notices:
            print(item.notice.title, item.objection_count)
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    def _build_filters(
        self,
        params: NoticeListParams,
        now: datetime | None,
    ) -> list[ColumnElement[bool]]:
        """Translate listing parameters into AND-combined predicates."""
        filters: list[ColumnElement[bool]] = [Notice.is_active.is_(True)]

        if params.category:
            filters.append(Notice.category == params.category)

        if params.search:
            pattern = f"%{escape_like(params.search)}%"
            filters.append(
                or_(
                    Notice.title.ilike(pattern, escape="\\"),
                    Notice.lawyer_name.ilike(pattern, escape="\\"),
                    Notice.location.ilike(pattern, escape="\\"),
                )
            )

        start, end = date_window(params.date_filter, now)
        if start is not None:
            filters.append(Notice.created_at >= start)
        if end is not None:
            filters.append(Notice.created_at < end)

        return filters

    async def list_notices(
        self,
        params: NoticeListParams,
        *,
        now: datetime | None = None,
    ) -> NoticePage:
        """List one page of active notices with their objection counts.

        Args:
            params: Filters, ordering and pagination.
            now: Reference moment for date windows (defaults to local now).

        Returns:
            NoticePage with the requested slice and the total match count.

        Raises:
            NoticeQueryError: If the database query fails.
        """
        filters = self._build_filters(params, now)

        objection_count = func.count(Objection.objection_id).label("objection_count")
        if params.sort_order == SortOrder.OLDEST:
            ordering = (Notice.created_at.asc(), Notice.notice_id.asc())
        else:
            ordering = (Notice.created_at.desc(), Notice.notice_id.desc())

        page_query = (
            select(Notice, objection_count)
            .outerjoin(Objection, Objection.notice_id == Notice.notice_id)
            .where(*filters)
            .group_by(Notice.notice_id)
            .order_by(*ordering)
            .offset(params.offset)
            .limit(params.limit)
        )
        count_query = select(func.count()).select_from(Notice).where(*filters)

        try:
            total = (await self._db.execute(count_query)).scalar() or 0
            rows = (await self._db.execute(page_query)).all()
        except SQLAlchemyError as e:
            logger.exception("Notice listing query failed")
            raise NoticeQueryError("Failed to fetch notices") from e

        return NoticePage(
            notices=[NoticeSummary(notice=row[0], objection_count=row[1]) for row in rows],
            total=total,
            page=params.page,
            limit=params.limit,
        )

    async def get_active_notice(self, notice_id: UUID) -> Notice | None:
        """Fetch a notice if it exists and has not been deleted."""
        result = await self._db.execute(
            select(Notice).where(Notice.notice_id == notice_id, Notice.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def count_objections(self, notice_id: UUID) -> int:
        """Count objections filed against a notice."""
        result = await self._db.execute(
            select(func.count(Objection.objection_id)).where(Objection.notice_id == notice_id)
        )
        return result.scalar() or 0


class CategoryAggregator:
    """Counts active notices per category.

    Recomputed on every call. The result always contains the synthetic
    key "all" holding the total number of active notices, even when
    there are none.
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def counts(self) -> dict[str, int]:
        """Return {category: count} plus "all".

        Raises:
            NoticeQueryError: If the database query fails.
        """
        query = (
            select(Notice.category, func.count(Notice.notice_id))
            .where(Notice.is_active.is_(True))
            .group_by(Notice.category)
            .order_by(Notice.category)
        )
        try:
            rows = (await self._db.execute(query)).all()
        except SQLAlchemyError as e:
            logger.exception("Category aggregation query failed")
            raise NoticeQueryError("Failed to fetch categories") from e

        per_category = {category: count for category, count in rows}
        return {ALL_CATEGORIES: sum(per_category.values()), **per_category}


# =============================================================================
# Command side
# =============================================================================


@dataclass(frozen=True, slots=True)
class Actor:
    """The authenticated account performing a notice command."""

    account_id: UUID
    role: AccountRole


@dataclass(frozen=True, slots=True)
class UploadedFile:
    """A file received from the client, not yet stored.

    Attributes:
        data: File content
        file_name: Client-supplied file name
        content_type: Client-declared MIME type
    """

    data: bytes
    file_name: str
    content_type: str


@dataclass(slots=True)
class NoticeChanges:
    """Partial update; None leaves the stored value unchanged."""

    title: str | None = None
    content: str | None = None
    category: str | None = None
    lawyer_name: str | None = None
    location: str | None = None


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _required_text(value: str | None, field_name: str, label: str) -> str:
    stripped = (value or "").strip()
    if not stripped:
        raise NoticeValidationError(f"{label} is required", field=field_name)
    return stripped


def _validate_category(value: str | None) -> str:
    category = _required_text(value, "category", "Category").lower()
    allowed = {member.value for member in NoticeCategory}
    if category not in allowed:
        raise NoticeValidationError(
            f"Unknown category '{category}'; expected one of: {', '.join(sorted(allowed))}",
            field="category",
        )
    return category


def decode_image_data(image_data: str) -> bytes:
    """Decode a base64 PNG payload, with or without a data URL prefix.

    Generated notices are always stored as PNG, so anything else is refused
    rather than saved under a .png name.

    Raises:
        NoticeValidationError: If the payload is empty, not valid base64,
            or not a PNG image.
    """
    payload = (image_data or "").strip()
    prefix = _DATA_URL_PREFIX.match(payload)
    if prefix is not None:
        if prefix.group("mime").lower() != GENERATED_FILE_TYPE:
            raise NoticeValidationError("Generated notices must be PNG images", field="imageData")
        payload = payload[prefix.end():]
    if not payload:
        raise NoticeValidationError("Image data is required", field="imageData")
    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise NoticeValidationError("Image data is not valid base64", field="imageData") from e
    if not decoded:
        raise NoticeValidationError("Image data is empty", field="imageData")
    if not decoded.startswith(PNG_SIGNATURE):
        raise NoticeValidationError("Generated notices must be PNG images", field="imageData")
    return decoded


class NoticeCommandService:
    """Creates, updates and soft-deletes notices.

    Unlike the query side, this service commits its own unit of work so
    that file cleanup can follow the outcome of the database write.

    Example:
        service = NoticeCommandService(db, store)
        notice = await service.create_uploaded(
            actor,
            title="Change of name",
            lawyer_name="A. Sharma",
            category="namechange",
            upload=UploadedFile(data=pdf, file_name="deed.pdf", content_type="application/pdf"),
        )
    """

    def __init__(
        self,
        db_session: AsyncSession,
        file_store: FileStore,
        *,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        allowed_mime_types: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_MIME_TYPES,
    ) -> None:
        """Initialize the command service.

        Args:
            db_session: SQLAlchemy async session for database operations.
            file_store: Store holding notice files.
            max_upload_bytes: Largest accepted file.
            allowed_mime_types: MIME types accepted for uploads.
        """
        self._db = db_session
        self._store = file_store
        self._max_upload_bytes = max_upload_bytes
        self._allowed_mime_types = frozenset(t.lower() for t in allowed_mime_types)

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def _require_lawyer(self, actor: Actor) -> None:
        if actor.role != AccountRole.LAWYER:
            raise NoticePermissionError("Only lawyers may publish notices")

    async def _load_owned_notice(self, actor: Actor, notice_id: UUID) -> Notice:
        self._require_lawyer(actor)
        result = await self._db.execute(
            select(Notice).where(Notice.notice_id == notice_id, Notice.is_active.is_(True))
        )
        notice = result.scalar_one_or_none()
        if notice is None:
            raise NoticeNotFoundError(notice_id)
        if notice.owner_account_id != actor.account_id:
            raise NoticePermissionError("Only the publishing lawyer may modify this notice")
        return notice

    def _validate_upload(self, upload: UploadedFile) -> None:
        extension = PurePosixPath(upload.file_name or "").suffix.lower()
        content_type = (upload.content_type or "").split(";")[0].strip().lower()

        if content_type not in self._allowed_mime_types or extension not in ALLOWED_EXTENSIONS:
            raise NoticeValidationError(
                "Only PDF, DOC, DOCX, JPEG and PNG files are allowed",
                field="file",
            )
        self._validate_size(upload.data, "file")

    def _validate_size(self, data: bytes, field_name: str) -> None:
        if not data:
            raise NoticeValidationError("File is empty", field=field_name)
        if len(data) > self._max_upload_bytes:
            raise NoticeValidationError(
                f"File exceeds the maximum size of {self._max_upload_bytes} bytes",
                field=field_name,
            )

    # -------------------------------------------------------------------------
    # Persistence helpers
    # -------------------------------------------------------------------------

    async def _commit_or_compensate(
        self,
        *,
        operation: str,
        new_file: StoredFile | None,
        notice_id: UUID | None,
    ) -> None:
        """Commit; on failure roll back and remove a file written for this command."""
        try:
            await self._db.commit()
        except SQLAlchemyError as e:
            await self._db.rollback()
            removed = self._store.delete_quietly(new_file.relative_path) if new_file else False
            logger.error(
                "Notice %s failed; database write rolled back",
                operation,
                extra={
                    "notice_id": str(notice_id) if notice_id else None,
                    "orphan_path": new_file.relative_path if new_file and not removed else None,
                },
            )
            raise NoticePersistenceError(f"Failed to {operation} notice") from e

    async def _insert(
        self,
        actor: Actor,
        *,
        title: str,
        lawyer_name: str,
        category: str,
        location: str | None,
        content: str | None,
        stored: StoredFile,
        file_name: str,
        file_type: str,
    ) -> Notice:
        now = utcnow()
        notice = Notice(
            title=title,
            content=content,
            category=category,
            lawyer_name=lawyer_name,
            location=location,
            owner_account_id=actor.account_id,
            is_active=True,
            file_path=stored.relative_path,
            file_name=file_name,
            file_type=file_type,
            created_at=now,
            updated_at=now,
        )
        self._db.add(notice)
        await self._commit_or_compensate(
            operation="create",
            new_file=stored,
            notice_id=notice.notice_id,
        )
        logger.info(
            "Notice created",
            extra={
                "notice_id": str(notice.notice_id),
                "owner_account_id": str(actor.account_id),
                "category": category,
            },
        )
        return notice

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def create_uploaded(
        self,
        actor: Actor,
        *,
        title: str | None,
        lawyer_name: str | None,
        category: str | None,
        upload: UploadedFile | None,
        location: str | None = None,
        content: str | None = None,
    ) -> Notice:
        """Publish a notice backed by an uploaded document.

        Raises:
            NoticePermissionError: If the actor is not a lawyer.
            NoticeValidationError: If a required field or the file is invalid.
            StorageError: If the file cannot be written.
            NoticePersistenceError: If the record cannot be written.
        """
        self._require_lawyer(actor)
        clean_title = _required_text(title, "title", "Title")
        clean_lawyer = _required_text(lawyer_name, "lawyerName", "Lawyer name")
        clean_category = _validate_category(category)
        if upload is None:
            raise NoticeValidationError("File is required", field="file")
        self._validate_upload(upload)

        stored = self._store.save(
            upload.data,
            original_name=upload.file_name,
            prefix=UPLOADED_FILE_PREFIX,
        )
        return await self._insert(
            actor,
            title=clean_title,
            lawyer_name=clean_lawyer,
            category=clean_category,
            location=_optional_text(location),
            content=_optional_text(content),
            stored=stored,
            file_name=upload.file_name,
            file_type=upload.content_type,
        )

    async def create_generated(
        self,
        actor: Actor,
        *,
        image_data: str | None,
        title: str | None,
        lawyer_name: str | None,
        category: str | None = None,
        location: str | None = None,
        content: str | None = None,
    ) -> Notice:
        """Publish a notice from a client-rendered PNG image.

        The category defaults to "public" when not given.

        Raises:
            NoticePermissionError: If the actor is not a lawyer.
            NoticeValidationError: If a required field or the image is invalid.
            StorageError: If the file cannot be written.
            NoticePersistenceError: If the record cannot be written.
        """
        self._require_lawyer(actor)
        clean_title = _required_text(title, "title", "Title")
        clean_lawyer = _required_text(lawyer_name, "lawyerName", "Lawyer name")
        clean_category = _validate_category(category or NoticeCategory.PUBLIC.value)
        data = decode_image_data(image_data or "")
        self._validate_size(data, "imageData")

        stored = self._store.save(data, original_name="notice.png", prefix=GENERATED_FILE_PREFIX)
        return await self._insert(
            actor,
            title=clean_title,
            lawyer_name=clean_lawyer,
            category=clean_category,
            location=_optional_text(location),
            content=_optional_text(content),
            stored=stored,
            file_name=stored.file_name,
            file_type=GENERATED_FILE_TYPE,
        )

    async def update(
        self,
        actor: Actor,
        notice_id: UUID,
        changes: NoticeChanges,
        *,
        upload: UploadedFile | None = None,
    ) -> Notice:
        """Apply a partial update, optionally replacing the file.

        The replacement file is written before the record is updated and
        the previous file is removed only after the update commits.

        Raises:
            NoticeNotFoundError: If the notice is missing or deleted.
            NoticePermissionError: If the actor does not own the notice.
            NoticeValidationError: If a supplied field or the file is invalid.
            StorageError: If the replacement file cannot be written.
            NoticePersistenceError: If the record cannot be written.
        """
        notice = await self._load_owned_notice(actor, notice_id)

        # Validate everything before touching the record
        values: dict[str, str | None] = {}
        if changes.title is not None:
            values["title"] = _required_text(changes.title, "title", "Title")
        if changes.lawyer_name is not None:
            values["lawyer_name"] = _required_text(
                changes.lawyer_name, "lawyerName", "Lawyer name"
            )
        if changes.category is not None:
            values["category"] = _validate_category(changes.category)
        if changes.content is not None:
            values["content"] = _optional_text(changes.content)
        if changes.location is not None:
            values["location"] = _optional_text(changes.location)
        if upload is not None:
            self._validate_upload(upload)

        for name, value in values.items():
            setattr(notice, name, value)

        stored: StoredFile | None = None
        previous_path: str | None = None
        if upload is not None:
            stored = self._store.save(
                upload.data,
                original_name=upload.file_name,
                prefix=UPLOADED_FILE_PREFIX,
            )
            previous_path = notice.file_path
            notice.file_path = stored.relative_path
            notice.file_name = upload.file_name
            notice.file_type = upload.content_type

        notice.updated_at = utcnow()
        await self._commit_or_compensate(operation="update", new_file=stored, notice_id=notice_id)

        if previous_path and previous_path != notice.file_path:
            self._store.delete_quietly(previous_path)

        logger.info(
            "Notice updated",
            extra={"notice_id": str(notice_id), "file_replaced": stored is not None},
        )
        return notice

    async def delete(self, actor: Actor, notice_id: UUID) -> None:
        """Soft-delete a notice and remove its file.

        File removal is best-effort; failures are logged only.

        Raises:
            NoticeNotFoundError: If the notice is missing or already deleted.
            NoticePermissionError: If the actor does not own the notice.
            NoticePersistenceError: If the record cannot be written.
        """
        notice = await self._load_owned_notice(actor, notice_id)
        file_path = notice.file_path

        notice.is_active = False
        notice.updated_at = utcnow()
        await self._commit_or_compensate(operation="delete", new_file=None, notice_id=notice_id)

        self._store.delete_quietly(file_path)
        logger.info("Notice deleted", extra={"notice_id": str(notice_id)})
