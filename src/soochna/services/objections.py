"""Objection filing.

Anyone may file an objection against an active notice. Once the
objection is committed, the notice owner is notified through the
NotificationDispatcher; notification problems never affect the write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from soochna.db.models.accounts import Account
from soochna.db.models.notices import Notice, Objection
from soochna.services.notices import NoticeNotFoundError, NoticeValidationError
from soochna.services.notifications import ObjectionNotification

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from soochna.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


class ObjectionPersistenceError(Exception):
    """Raised when an objection cannot be written to the database."""


@dataclass(frozen=True, slots=True)
class ObjectionInput:
    """Objection fields supplied by the objector."""

    objector_name: str
    reason: str
    objector_email: str | None = None
    objector_phone: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class ObjectionCommandService:
    """Records objections and triggers owner notification.

    Example:
        service = ObjectionCommandService(db, dispatcher)
        objection = await service.file_objection(
            notice_id,
            ObjectionInput(objector_name="R. Verma", reason="Prior claim"),
        )
    """

    def __init__(
        self,
        db_session: AsyncSession,
        dispatcher: NotificationDispatcher | None,
    ) -> None:
        """Initialize the service.

        Args:
            db_session: SQLAlchemy async session for database operations.
            dispatcher: Where owner notifications are handed off; None disables them.
        """
        self._db = db_session
        self._dispatcher = dispatcher

    async def file_objection(self, notice_id: UUID, data: ObjectionInput) -> Objection:
        """Persist an objection and notify the notice owner.

        Raises:
            NoticeValidationError: If objector name or reason is blank.
            NoticeNotFoundError: If the notice is missing or deleted.
            ObjectionPersistenceError: If the objection cannot be written.
        """
        objector_name = _clean(data.objector_name)
        reason = _clean(data.reason)
        if not objector_name:
            raise NoticeValidationError("Objector name is required", field="objectorName")
        if not reason:
            raise NoticeValidationError("Reason is required", field="reason")

        result = await self._db.execute(
            select(Notice, Account.email)
            .join(Account, Account.account_id == Notice.owner_account_id, isouter=True)
            .where(Notice.notice_id == notice_id, Notice.is_active.is_(True))
        )
        row = result.one_or_none()
        if row is None:
            raise NoticeNotFoundError(notice_id)
        notice, owner_email = row

        objection = Objection(
            notice_id=notice.notice_id,
            reason=reason,
            objector_name=objector_name,
            objector_email=_clean(data.objector_email),
            objector_phone=_clean(data.objector_phone),
        )
        self._db.add(objection)
        try:
            await self._db.commit()
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.exception("Failed to record objection", extra={"notice_id": str(notice_id)})
            raise ObjectionPersistenceError("Failed to file objection") from e

        logger.info(
            "Objection filed",
            extra={"notice_id": str(notice_id), "objection_id": str(objection.objection_id)},
        )

        self._notify_owner(notice, owner_email, objection)
        return objection

    def _notify_owner(self, notice: Notice, owner_email: str | None, objection: Objection) -> None:
        if self._dispatcher is None:
            return
        if not owner_email:
            logger.info(
                "Notice owner has no email; skipping objection notification",
                extra={"notice_id": str(notice.notice_id)},
            )
            return

        try:
            self._dispatcher.dispatch(
                ObjectionNotification(
                    to_email=owner_email,
                    notice_id=notice.notice_id,
                    notice_title=notice.title,
                    objector_name=objection.objector_name,
                    reason=objection.reason,
                    objector_email=objection.objector_email,
                    objector_phone=objection.objector_phone,
                )
            )
        except Exception:
            logger.exception(
                "Failed to hand off objection notification",
                extra={"notice_id": str(notice.notice_id)},
            )
