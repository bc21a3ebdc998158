"""
Notification sender for leave workflow events

Notifications are fire-and-forget: services queue them on the session while the
transaction runs, and they are dispatched only after a successful commit.
Send failures are logged and never affect the workflow.
"""
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from leave_engine.core.config import Settings

logger = logging.getLogger(__name__)

_QUEUE_KEY = "leave_engine.pending_notifications"


@dataclass
class Notification:
    recipient: str
    subject: str
    body: str


class Notifier(Protocol):
    def notify(self, recipient: str, subject: str, body: str) -> None:
        ...


class LoggingNotifier:
    """Writes notifications to the log; used when no SMTP host is configured."""

    def notify(self, recipient: str, subject: str, body: str) -> None:
        logger.info("[MOCK EMAIL] To: %s | Subject: %s", recipient, subject)


class SmtpNotifier:
    """Sends plain-text notification emails over SMTP."""

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.EMAIL_FROM

    def notify(self, recipient: str, subject: str, body: str) -> None:
        msg = MIMEText(body, "plain")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = recipient

        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(self.from_email, [recipient], msg.as_string())

        logger.info("Email sent via SMTP to %s", recipient)


def build_notifier(settings: Settings) -> Notifier:
    """Pick the SMTP sender when a host is configured, logging otherwise."""
    if settings.SMTP_HOST:
        return SmtpNotifier(settings)
    return LoggingNotifier()


def safe_notify(notifier: Notifier, recipient: Optional[str], subject: str, body: str) -> bool:
    """Send one notification; failures are logged, never raised."""
    if not recipient:
        logger.debug("Skipping notification '%s': recipient has no email", subject)
        return False
    try:
        notifier.notify(recipient, subject, body)
        return True
    except Exception:
        logger.exception("Failed to send notification '%s' to %s", subject, recipient)
        return False


def queue_notification(db: Session, recipient: Optional[str], subject: str, body: str) -> None:
    """Queue a notification to be sent once the current transaction commits."""
    db.info.setdefault(_QUEUE_KEY, []).append(Notification(recipient, subject, body))


def clear_queued(db: Session) -> None:
    db.info.pop(_QUEUE_KEY, None)


def dispatch_queued(db: Session, notifier: Notifier) -> int:
    """Send and clear every queued notification. Returns the number delivered."""
    queued = db.info.pop(_QUEUE_KEY, [])
    return sum(1 for n in queued if safe_notify(notifier, n.recipient, n.subject, n.body))
