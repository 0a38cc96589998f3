"""Tests for notice publishing, editing and deletion.

Tests cover:
- Only lawyers may publish; nothing is written otherwise
- Upload validation (required fields, MIME type, extension, size)
- Generated image notices from base64 data
- Partial updates with file replacement and old-file cleanup
- Owner-only edit and delete, soft delete semantics
- Compensation when the database write fails after a file write
"""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from soochna.db.models import AccountRole, Notice
from soochna.services.notices import (
    GENERATED_FILE_TYPE,
    Actor,
    NoticeChanges,
    NoticeCommandService,
    NoticeNotFoundError,
    NoticePermissionError,
    NoticePersistenceError,
    NoticeValidationError,
    UploadedFile,
    decode_image_data,
)
from tests.factories import create_account

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _pdf(name: str = "deed.pdf", data: bytes = b"%PDF-1.4 notice") -> UploadedFile:
    return UploadedFile(data=data, file_name=name, content_type="application/pdf")


def _stored_files(file_store) -> list[str]:
    return sorted(path.name for path in file_store.root.iterdir())


@pytest.fixture
def service(db_session, file_store) -> NoticeCommandService:
    """Command service with a small upload limit."""
    return NoticeCommandService(db_session, file_store, max_upload_bytes=1024)


@pytest.fixture
async def lawyer_actor(db_session) -> Actor:
    """A lawyer allowed to publish."""
    account = await create_account(db_session, name="A. Sharma", role=AccountRole.LAWYER)
    await db_session.commit()
    return Actor(account_id=account.account_id, role=AccountRole.LAWYER)


@pytest.fixture
async def other_lawyer_actor(db_session) -> Actor:
    """A second lawyer who does not own the first lawyer's notices."""
    account = await create_account(db_session, name="B. Gupta", role=AccountRole.LAWYER)
    await db_session.commit()
    return Actor(account_id=account.account_id, role=AccountRole.LAWYER)


@pytest.fixture
async def citizen_actor(db_session) -> Actor:
    """A citizen, who may not publish."""
    account = await create_account(db_session, name="C. Citizen", role=AccountRole.CITIZEN)
    await db_session.commit()
    return Actor(account_id=account.account_id, role=AccountRole.CITIZEN)


async def _publish(service, actor, **overrides) -> Notice:
    fields = {
        "title": "Change of name",
        "lawyer_name": "A. Sharma",
        "category": "namechange",
        "upload": _pdf(),
        "location": "Jaipur",
    }
    fields.update(overrides)
    return await service.create_uploaded(actor, **fields)


async def _notice_rows(db_session) -> list[Notice]:
    return list((await db_session.execute(select(Notice))).scalars().all())


# ---------------------------------------------------------------------------
# Create from upload
# ---------------------------------------------------------------------------
class TestCreateUploaded:
    """Tests for NoticeCommandService.create_uploaded."""

    @pytest.mark.asyncio
    async def test_lawyer_publishes_notice(self, service, lawyer_actor, file_store):
        """Test a lawyer's upload is stored and recorded."""
        notice = await _publish(service, lawyer_actor, content="  ")

        assert notice.is_active is True
        assert notice.owner_account_id == lawyer_actor.account_id
        assert notice.category == "namechange"
        assert notice.file_name == "deed.pdf"
        assert notice.file_type == "application/pdf"
        assert notice.content is None
        assert notice.file_path.startswith("file-")
        assert file_store.read(notice.file_path) == b"%PDF-1.4 notice"

    @pytest.mark.asyncio
    async def test_citizen_is_forbidden(self, service, citizen_actor, db_session, file_store):
        """Test a non-lawyer cannot publish and nothing is written."""
        with pytest.raises(NoticePermissionError):
            await _publish(service, citizen_actor)

        assert await _notice_rows(db_session) == []
        assert _stored_files(file_store) == []

    @pytest.mark.parametrize(
        ("overrides", "field"),
        [
            ({"title": "  "}, "title"),
            ({"lawyer_name": None}, "lawyerName"),
            ({"category": None}, "category"),
            ({"category": "gossip"}, "category"),
            ({"upload": None}, "file"),
        ],
    )
    @pytest.mark.asyncio
    async def test_required_fields(self, service, lawyer_actor, file_store, overrides, field):
        """Test missing or invalid fields are reported against the field."""
        with pytest.raises(NoticeValidationError) as exc_info:
            await _publish(service, lawyer_actor, **overrides)

        assert exc_info.value.field == field
        assert _stored_files(file_store) == []

    @pytest.mark.parametrize(
        "upload",
        [
            UploadedFile(data=b"hello", file_name="notes.txt", content_type="text/plain"),
            UploadedFile(data=b"hello", file_name="notes.txt", content_type="application/pdf"),
            UploadedFile(data=b"MZ", file_name="deed.pdf", content_type="application/x-msdownload"),
        ],
    )
    @pytest.mark.asyncio
    async def test_rejects_disallowed_files(self, service, lawyer_actor, upload):
        """Test both MIME type and extension must be allowed."""
        with pytest.raises(NoticeValidationError, match="Only PDF"):
            await _publish(service, lawyer_actor, upload=upload)

    @pytest.mark.asyncio
    async def test_rejects_oversized_and_empty_files(self, service, lawyer_actor):
        """Test the size limit and empty files."""
        with pytest.raises(NoticeValidationError, match="maximum size"):
            await _publish(service, lawyer_actor, upload=_pdf(data=b"x" * 1025))
        with pytest.raises(NoticeValidationError, match="empty"):
            await _publish(service, lawyer_actor, upload=_pdf(data=b""))

    @pytest.mark.asyncio
    async def test_category_is_normalized(self, service, lawyer_actor):
        """Test category matching ignores case and whitespace."""
        notice = await _publish(service, lawyer_actor, category=" LAND ")
        assert notice.category == "land"

    @pytest.mark.asyncio
    async def test_commit_failure_removes_new_file(
        self, service, lawyer_actor, db_session, file_store
    ):
        """Test a failed insert rolls back and cleans up the written file."""
        with (
            patch.object(db_session, "commit", AsyncMock(side_effect=SQLAlchemyError("boom"))),
            pytest.raises(NoticePersistenceError),
        ):
            await _publish(service, lawyer_actor)

        assert _stored_files(file_store) == []
        assert await _notice_rows(db_session) == []


# ---------------------------------------------------------------------------
# Create from generated image
# ---------------------------------------------------------------------------
class TestCreateGenerated:
    """Tests for NoticeCommandService.create_generated."""

    @pytest.mark.asyncio
    async def test_data_url_is_decoded_and_stored(self, service, lawyer_actor, file_store):
        """Test a PNG data URL becomes a public notice with a generated file."""
        image = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()

        notice = await service.create_generated(
            lawyer_actor, image_data=image, title="Public notice", lawyer_name="A. Sharma"
        )

        assert notice.category == "public"
        assert notice.file_type == GENERATED_FILE_TYPE
        assert notice.file_path.startswith("generated-notice-")
        assert notice.file_path.endswith(".png")
        assert notice.file_name == notice.file_path
        assert file_store.read(notice.file_path) == PNG_BYTES

    @pytest.mark.asyncio
    async def test_explicit_category(self, service, lawyer_actor):
        """Test a supplied category overrides the default."""
        notice = await service.create_generated(
            lawyer_actor,
            image_data=base64.b64encode(PNG_BYTES).decode(),
            title="Tender notice",
            lawyer_name="A. Sharma",
            category="tender",
        )
        assert notice.category == "tender"

    @pytest.mark.asyncio
    async def test_invalid_base64(self, service, lawyer_actor, db_session):
        """Test malformed image data is a validation error."""
        with pytest.raises(NoticeValidationError) as exc_info:
            await service.create_generated(
                lawyer_actor, image_data="not base64!!", title="T", lawyer_name="L"
            )

        assert exc_info.value.field == "imageData"
        assert await _notice_rows(db_session) == []

    @pytest.mark.asyncio
    async def test_citizen_is_forbidden(self, service, citizen_actor):
        """Test non-lawyers cannot publish generated notices either."""
        with pytest.raises(NoticePermissionError):
            await service.create_generated(
                citizen_actor,
                image_data=base64.b64encode(PNG_BYTES).decode(),
                title="T",
                lawyer_name="L",
            )

    def test_decode_rejects_empty_payload(self):
        """Test an empty data URL is refused."""
        with pytest.raises(NoticeValidationError, match="required"):
            decode_image_data("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_jpeg_data_url_refused(self, service, lawyer_actor, db_session, file_store):
        """Test a JPEG data URL is not stored under a .png name."""
        jpeg = b"\xff\xd8\xff\xe0" + b"\x00" * 32
        image = "data:image/jpeg;base64," + base64.b64encode(jpeg).decode()

        with pytest.raises(NoticeValidationError, match="PNG") as exc_info:
            await service.create_generated(
                lawyer_actor, image_data=image, title="T", lawyer_name="L"
            )

        assert exc_info.value.field == "imageData"
        assert await _notice_rows(db_session) == []
        assert _stored_files(file_store) == []

    def test_decode_rejects_non_png_bytes(self):
        """Test a bare payload that is not a PNG is refused."""
        with pytest.raises(NoticeValidationError, match="PNG"):
            decode_image_data(base64.b64encode(b"GIF89a" + b"\x00" * 16).decode())

    def test_decode_rejects_png_label_on_other_bytes(self):
        """Test a PNG data URL must actually carry PNG bytes."""
        payload = base64.b64encode(b"<svg xmlns='http://www.w3.org/2000/svg'/>").decode()
        with pytest.raises(NoticeValidationError, match="PNG"):
            decode_image_data("data:image/png;base64," + payload)

    def test_decode_accepts_uppercase_png_data_url(self):
        """Test the data URL media type is matched case-insensitively."""
        image = "data:IMAGE/PNG;base64," + base64.b64encode(PNG_BYTES).decode()
        assert decode_image_data(image) == PNG_BYTES


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------
class TestUpdate:
    """Tests for NoticeCommandService.update."""

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, service, lawyer_actor):
        """Test omitted fields are left unchanged."""
        notice = await _publish(service, lawyer_actor)
        original_path = notice.file_path

        updated = await service.update(
            lawyer_actor, notice.notice_id, NoticeChanges(title="Corrected title")
        )

        assert updated.title == "Corrected title"
        assert updated.category == "namechange"
        assert updated.location == "Jaipur"
        assert updated.file_path == original_path

    @pytest.mark.asyncio
    async def test_file_replacement_deletes_old_file(self, service, lawyer_actor, file_store):
        """Test a new file replaces the old one, which is removed from storage."""
        notice = await _publish(service, lawyer_actor)
        old_path = notice.file_path

        updated = await service.update(
            lawyer_actor,
            notice.notice_id,
            NoticeChanges(),
            upload=UploadedFile(data=PNG_BYTES, file_name="scan.png", content_type="image/png"),
        )

        assert updated.file_path != old_path
        assert file_store.exists(old_path) is False
        assert file_store.read(updated.file_path) == PNG_BYTES
        assert updated.file_name == "scan.png"
        assert updated.file_type == "image/png"

    @pytest.mark.asyncio
    async def test_invalid_change_leaves_notice_untouched(self, service, lawyer_actor, file_store):
        """Test validation happens before anything is modified or stored."""
        notice = await _publish(service, lawyer_actor)
        files_before = _stored_files(file_store)

        with pytest.raises(NoticeValidationError):
            await service.update(
                lawyer_actor,
                notice.notice_id,
                NoticeChanges(title="New title", category="gossip"),
                upload=_pdf(name="other.pdf"),
            )

        assert notice.title == "Change of name"
        assert _stored_files(file_store) == files_before

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden(self, service, lawyer_actor, other_lawyer_actor):
        """Test only the publishing lawyer may edit."""
        notice = await _publish(service, lawyer_actor)

        with pytest.raises(NoticePermissionError):
            await service.update(other_lawyer_actor, notice.notice_id, NoticeChanges(title="Mine"))

    @pytest.mark.asyncio
    async def test_missing_notice(self, service, lawyer_actor):
        """Test updating an unknown notice is not-found."""
        with pytest.raises(NoticeNotFoundError):
            await service.update(lawyer_actor, uuid4(), NoticeChanges(title="x"))

    @pytest.mark.asyncio
    async def test_commit_failure_keeps_old_file(
        self, service, lawyer_actor, db_session, file_store
    ):
        """Test a failed update removes the new file and keeps the old one."""
        notice = await _publish(service, lawyer_actor)
        old_path = notice.file_path

        with (
            patch.object(db_session, "commit", AsyncMock(side_effect=SQLAlchemyError("boom"))),
            pytest.raises(NoticePersistenceError),
        ):
            await service.update(
                lawyer_actor, notice.notice_id, NoticeChanges(), upload=_pdf(name="new.pdf")
            )

        assert _stored_files(file_store) == [old_path]


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------
class TestDelete:
    """Tests for NoticeCommandService.delete."""

    @pytest.mark.asyncio
    async def test_soft_delete_removes_file(self, service, lawyer_actor, db_session, file_store):
        """Test delete deactivates the row and removes the file."""
        notice = await _publish(service, lawyer_actor)

        await service.delete(lawyer_actor, notice.notice_id)

        rows = await _notice_rows(db_session)
        assert len(rows) == 1
        assert rows[0].is_active is False
        assert file_store.exists(notice.file_path) is False

    @pytest.mark.asyncio
    async def test_delete_twice_is_not_found(self, service, lawyer_actor):
        """Test a deleted notice cannot be deleted again."""
        notice = await _publish(service, lawyer_actor)
        await service.delete(lawyer_actor, notice.notice_id)

        with pytest.raises(NoticeNotFoundError):
            await service.delete(lawyer_actor, notice.notice_id)

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden(
        self, service, lawyer_actor, other_lawyer_actor, file_store
    ):
        """Test only the publishing lawyer may delete."""
        notice = await _publish(service, lawyer_actor)

        with pytest.raises(NoticePermissionError):
            await service.delete(other_lawyer_actor, notice.notice_id)

        assert file_store.exists(notice.file_path) is True

    @pytest.mark.asyncio
    async def test_citizen_is_forbidden(self, service, lawyer_actor, citizen_actor):
        """Test citizens cannot delete notices."""
        notice = await _publish(service, lawyer_actor)

        with pytest.raises(NoticePermissionError):
            await service.delete(citizen_actor, notice.notice_id)

    @pytest.mark.asyncio
    async def test_missing_file_does_not_fail_delete(
        self, service, lawyer_actor, db_session, file_store
    ):
        """Test file removal is best-effort."""
        notice = await _publish(service, lawyer_actor)
        file_store.delete(notice.file_path)

        await service.delete(lawyer_actor, notice.notice_id)

        assert (await _notice_rows(db_session))[0].is_active is False
