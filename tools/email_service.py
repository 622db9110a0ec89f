"""
Email Service Tool
Sends missed-medication emails to the account's contact address
"""

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from typing import Dict, Optional

from config import settings
from errors import ErrorKind, Result


logger = logging.getLogger(__name__)


# Email templates
EMAIL_TEMPLATES: Dict[str, str] = {
    "missed_subject": "Medication Missed: {medication}{slot_text}",
    "missed_html": """
<h2>Medication Reminder</h2>
<p>This is to notify you that the medication <strong>{medication}</strong>{slot_text} was not marked as taken.</p>
<p><strong>Time:</strong> {timestamp}</p>
<p>Please check with the patient to ensure they have taken their medication.</p>
<p>You can mark this medication as taken from the Caretaker Dashboard if you have administered it.</p>
""",
    "missed_text": (
        "The medication {medication}{slot_text} was not marked as taken.\n"
        "Time: {timestamp}\n"
        "Please check with the patient to ensure they have taken their medication."
    ),
}


@dataclass
class EmailDraft:
    """A rendered email ready to send"""
    to: str
    subject: str
    html: str
    text: str


def slot_suffix(time_slot: Optional[str]) -> str:
    return f" ({time_slot})" if time_slot else ""


def render_missed_medication_email(
    to: str,
    medication_name: str,
    time_slot: Optional[str],
    timestamp: datetime
) -> EmailDraft:
    fields = {
        "medication": medication_name,
        "slot_text": slot_suffix(time_slot),
        "timestamp": timestamp.strftime("%Y-%m-%d %H:%M"),
    }
    return EmailDraft(
        to=to,
        subject=EMAIL_TEMPLATES["missed_subject"].format(**fields),
        html=EMAIL_TEMPLATES["missed_html"].format(**fields),
        text=EMAIL_TEMPLATES["missed_text"].format(**fields),
    )


class EmailService:
    """
    SMTP email sender.

    Sending is disabled when no SMTP host is configured; every call returns a
    Result and never raises.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        use_tls: Optional[bool] = None
    ):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.sender = sender or settings.EMAIL_FROM or self.user
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def _build(self, draft: EmailDraft) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender or ""
        message["To"] = draft.to
        message["Subject"] = draft.subject
        message.set_content(draft.text)
        message.add_alternative(draft.html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage):
        with smtplib.SMTP(self.host, self.port, timeout=settings.OPERATION_TIMEOUT_SECONDS) as server:
            if self.use_tls:
                server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(message)

    async def send(self, draft: EmailDraft) -> Result:
        if not self.enabled:
            logger.warning("Email not configured; skipping send")
            return Result.failure(ErrorKind.NOT_CONFIGURED, "Email sending is not configured")

        try:
            await asyncio.to_thread(self._deliver, self._build(draft))
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email send error: {e}")
            return Result.from_exception(e)

        logger.info(f"[EMAIL] Sent '{draft.subject}' to {draft.to}")
        return Result.success(draft.to)

    async def send_missed_medication(
        self,
        to: str,
        medication_name: str,
        time_slot: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> Result:
        draft = render_missed_medication_email(to, medication_name, time_slot, timestamp or datetime.now())
        return await self.send(draft)


# Singleton instance
email_service = EmailService()
