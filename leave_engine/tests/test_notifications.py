"""
Tests for notification delivery
"""
import logging
import smtplib

from leave_engine.core.config import Settings
from leave_engine.services.notification_service import (
    LoggingNotifier,
    SmtpNotifier,
    build_notifier,
    safe_notify,
)
from leave_engine.tests.conftest import RecordingNotifier


class BrokenNotifier:
    def notify(self, recipient, subject, body):
        raise smtplib.SMTPServerDisconnected("connection lost")


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username))

    def sendmail(self, from_addr, to_addrs, message):
        self.calls.append(("sendmail", from_addr, tuple(to_addrs)))


def test_build_notifier_without_smtp_host():
    assert isinstance(build_notifier(Settings(SMTP_HOST=None)), LoggingNotifier)


def test_build_notifier_with_smtp_host():
    assert isinstance(build_notifier(Settings(SMTP_HOST="smtp.acme.test")), SmtpNotifier)


def test_safe_notify_swallows_send_failures():
    assert safe_notify(BrokenNotifier(), "staff@acme.test", "Subject", "Body") is False


def test_safe_notify_skips_missing_recipient():
    notifier = RecordingNotifier()

    assert safe_notify(notifier, None, "Subject", "Body") is False
    assert notifier.sent == []


def test_smtp_notifier_sends_plain_text(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    notifier = SmtpNotifier(Settings(
        SMTP_HOST="smtp.acme.test",
        SMTP_PORT=2525,
        SMTP_USERNAME="mailer",
        SMTP_PASSWORD="secret",
        EMAIL_FROM="leave@acme.test",
    ))

    assert safe_notify(notifier, "staff@acme.test", "Leave application approved", "Enjoy") is True

    server = FakeSMTP.instances[0]
    assert (server.host, server.port) == ("smtp.acme.test", 2525)
    assert server.calls == [
        "starttls",
        ("login", "mailer"),
        ("sendmail", "leave@acme.test", ("staff@acme.test",)),
    ]


class HeaderErrorNotifier:
    def notify(self, recipient, subject, body):
        raise ValueError("bad header")


def test_safe_notify_swallows_unexpected_errors(caplog):
    with caplog.at_level(logging.ERROR, logger="leave_engine.services.notification_service"):
        assert safe_notify(HeaderErrorNotifier(), "staff@acme.test", "Subject", "Body") is False

    assert "Failed to send notification 'Subject' to staff@acme.test" in caplog.text


def test_logging_notifier_keeps_nothing():
    notifier = LoggingNotifier()

    notifier.notify("staff@acme.test", "Subject", "Body")

    assert not hasattr(notifier, "sent")
