"""In-process notification dispatcher.

Objection alerts are handed off as messages to an asyncio queue and
sent by a background task, so the request that filed the objection
never waits on SMTP and never fails because of it.

The dispatcher is started and stopped with the application lifespan:

    dispatcher = NotificationDispatcher(EmailNotificationService(settings.smtp))
    await dispatcher.start()
    ...
    dispatcher.dispatch(ObjectionNotification(...))
    ...
    await dispatcher.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from soochna.services.email import EmailNotificationService, NotificationResult

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000
DEFAULT_SHUTDOWN_TIMEOUT = 10.0


@dataclass(frozen=True, slots=True)
class ObjectionNotification:
    """Outbound message telling a notice owner about a new objection.

    Attributes:
        to_email: Owner's email address
        notice_id: Notice the objection was filed against
        notice_title: Title of that notice
        objector_name: Name given by the objector
        reason: Objection text
        objector_email: Optional objector contact email
        objector_phone: Optional objector contact phone
    """

    to_email: str
    notice_id: UUID
    notice_title: str
    objector_name: str
    reason: str
    objector_email: str | None = None
    objector_phone: str | None = None


class NotificationDispatcher:
    """Queues objection notifications and sends them in the background.

    Sending happens in a worker thread because smtplib blocks. Failures
    are logged and counted; they are never raised to callers.
    """

    def __init__(
        self,
        email_service: EmailNotificationService,
        *,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        enabled: bool = True,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            email_service: Service that renders and sends the email.
            queue_size: Maximum number of pending messages.
            enabled: When False, dispatch() drops every message.
        """
        self._email_service = email_service
        self._queue_size = queue_size
        self._enabled = enabled
        self._queue: asyncio.Queue[ObjectionNotification] | None = None
        self._task: asyncio.Task[None] | None = None
        self.sent_count = 0
        self.failed_count = 0

    @property
    def is_running(self) -> bool:
        """Whether the background task is accepting messages."""
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        """Number of messages waiting to be sent."""
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        """Start the background sender task."""
        if self.is_running:
            return
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._task = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.info(
            "Notification dispatcher started: enabled=%s, queue_size=%d",
            self._enabled,
            self._queue_size,
        )

    async def stop(self, *, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        """Stop the sender task, giving pending messages up to `timeout` seconds."""
        if self._task is None or self._queue is None:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Notification dispatcher stopped with %d message(s) unsent",
                self._queue.qsize(),
            )

        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info(
            "Notification dispatcher stopped: sent=%d, failed=%d",
            self.sent_count,
            self.failed_count,
        )

    def dispatch(self, message: ObjectionNotification) -> bool:
        """Queue a message without waiting for it to be sent.

        Returns:
            True if the message was queued, False if it was dropped.
        """
        if not self._enabled:
            logger.debug("Notifications disabled; dropping message for notice %s", message.notice_id)
            return False

        if not self.is_running or self._queue is None:
            logger.warning(
                "Notification dispatcher not running; dropping message",
                extra={"notice_id": str(message.notice_id)},
            )
            return False

        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                "Notification queue full; dropping message",
                extra={"notice_id": str(message.notice_id)},
            )
            return False

        return True

    async def drain(self) -> None:
        """Wait until every queued message has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def _run(self) -> None:
        """Take messages off the queue and send them until cancelled."""
        assert self._queue is not None
        while True:
            message = await self._queue.get()
            try:
                result = await self._send(message)
                if result.success:
                    self.sent_count += 1
                else:
                    self.failed_count += 1
            except Exception:
                self.failed_count += 1
                logger.exception(
                    "Unexpected error sending objection notification",
                    extra={"notice_id": str(message.notice_id)},
                )
            finally:
                self._queue.task_done()

    async def _send(self, message: ObjectionNotification) -> NotificationResult:
        return await asyncio.to_thread(
            self._email_service.send_objection_notification,
            to_email=message.to_email,
            notice_title=message.notice_title,
            objector_name=message.objector_name,
            reason=message.reason,
            objector_email=message.objector_email,
            objector_phone=message.objector_phone,
        )
