"""Objection emails to notice owners.

The owner of a notice learns by email that someone objected, with the
objector's name, reason and any contact details they left. Bodies come
from the objection.html and objection.txt Jinja2 templates; delivery is
a single synchronous SMTP conversation (plain, STARTTLS or implicit TLS
depending on settings).

Sending never raises. Each attempt yields a NotificationResult, and the
recipient appears in logs only as a hash.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import smtplib
import ssl
from dataclasses import dataclass
from datetime import UTC, datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

if TYPE_CHECKING:
    from soochna.core.config import SMTPSettings


logger = logging.getLogger(__name__)

TEMPLATE_VERSION = "2026.1.0"

ANONYMOUS_OBJECTOR = "Anonymous"
MISSING_REASON = "No reason provided"


class NotificationStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class NotificationResult:
    """Outcome of one objection email.

    Attributes:
        success: True when the relay accepted the message.
        message_id: Message-ID header of the sent message.
        status: SENT or FAILED.
        recipient_hash: SHA-256 of the normalized owner address.
        template_version: Version of the templates rendered.
        error: Why delivery failed, if it did.
        sent_at: When the relay accepted the message.
    """

    success: bool
    message_id: str | None
    status: NotificationStatus
    recipient_hash: str
    template_version: str
    error: str | None
    sent_at: datetime | None


class EmailDeliveryError(Exception):
    """The SMTP relay could not be reached or refused the message."""


def recipient_hash(address: str) -> str:
    return hashlib.sha256(address.strip().lower().encode()).hexdigest()


class EmailNotificationService:
    """Render and send objection emails over SMTP.

    smtplib blocks, so async code should call this from a worker thread
    (NotificationDispatcher does).
    """

    def __init__(self, smtp_settings: SMTPSettings, *, app_name: str = "Soochna") -> None:
        self.smtp_settings = smtp_settings
        self.app_name = app_name
        self._templates = Environment(
            loader=PackageLoader("soochna", "templates/email"),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def send_objection_notification(
        self,
        *,
        to_email: str,
        notice_title: str,
        objector_name: str | None,
        reason: str | None,
        objector_email: str | None = None,
        objector_phone: str | None = None,
    ) -> NotificationResult:
        """Email the notice owner about a new objection.

        Blank objector names are shown as "Anonymous" and blank reasons as
        "No reason provided".
        """
        hashed = recipient_hash(to_email)
        try:
            message = self.compose(
                to_email=to_email,
                notice_title=notice_title,
                context={
                    "objector_name": (objector_name or "").strip() or ANONYMOUS_OBJECTOR,
                    "reason": (reason or "").strip() or MISSING_REASON,
                    "objector_email": objector_email,
                    "objector_phone": objector_phone,
                },
            )
            self._deliver(to_email, message)
        except (EmailDeliveryError, TemplateError) as e:
            logger.error(
                "Objection email not delivered",
                extra={"recipient_hash": hashed[:16], "error": str(e)},
            )
            return self._result(NotificationStatus.FAILED, hashed, error=str(e))

        logger.info(
            "Objection email delivered",
            extra={"recipient_hash": hashed[:16], "message_id": message["Message-ID"]},
        )
        return self._result(
            NotificationStatus.SENT,
            hashed,
            message_id=message["Message-ID"],
            sent_at=datetime.now(UTC),
        )

    def compose(self, *, to_email: str, notice_title: str, context: dict) -> MIMEMultipart:
        """Build the multipart/alternative message for one objection."""
        variables = {
            **context,
            "app_name": self.app_name,
            "notice_title": notice_title,
            "template_version": TEMPLATE_VERSION,
        }
        sender = self.smtp_settings.from_address
        _, _, domain = sender.partition("@")

        message = MIMEMultipart("alternative")
        message["Subject"] = f"New Objection on Notice: {notice_title}"
        message["From"] = f"{self.smtp_settings.from_name} <{sender}>"
        message["To"] = to_email
        message["Message-ID"] = f"<{secrets.token_hex(16)}@{domain or 'soochna.local'}>"
        message.attach(
            MIMEText(self._templates.get_template("objection.txt").render(variables), "plain", "utf-8")
        )
        message.attach(
            MIMEText(self._templates.get_template("objection.html").render(variables), "html", "utf-8")
        )
        return message

    def _connect(self) -> smtplib.SMTP:
        smtp = self.smtp_settings
        if smtp.use_ssl:
            return smtplib.SMTP_SSL(
                smtp.host, smtp.port, timeout=smtp.timeout, context=ssl.create_default_context()
            )
        server = smtplib.SMTP(smtp.host, smtp.port, timeout=smtp.timeout)
        if smtp.use_tls:
            try:
                server.starttls(context=ssl.create_default_context())
            except (smtplib.SMTPException, OSError):
                server.close()
                raise
        return server

    def _deliver(self, to_email: str, message: MIMEMultipart) -> None:
        smtp = self.smtp_settings
        try:
            server = self._connect()
            try:
                if smtp.username and smtp.password:
                    server.login(smtp.username, smtp.password.get_secret_value())
                server.sendmail(smtp.from_address, [to_email], message.as_string())
            except (smtplib.SMTPException, OSError):
                server.close()
                raise
            server.quit()
        except smtplib.SMTPException as e:
            raise EmailDeliveryError(f"SMTP error: {e}") from e
        except OSError as e:
            raise EmailDeliveryError(f"Connection error: {e}") from e

    @staticmethod
    def _result(
        status: NotificationStatus,
        hashed: str,
        *,
        message_id: str | None = None,
        error: str | None = None,
        sent_at: datetime | None = None,
    ) -> NotificationResult:
        return NotificationResult(
            success=status is NotificationStatus.SENT,
            message_id=message_id,
            status=status,
            recipient_hash=hashed,
            template_version=TEMPLATE_VERSION,
            error=error,
            sent_at=sent_at,
        )
