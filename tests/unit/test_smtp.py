"""
Module: tests/unit/test_smtp.py

What:
    Validate :meth:`MailOperations.send` over the SMTP adapter: security mode
    per port, authentication, composed headers, and ``False`` on rejection.

How:
    Replace ``smtplib.SMTP``/``SMTP_SSL`` inside the adapter with
    :class:`FakeSmtp` and inspect the recorded calls and messages.
"""

from typing import Any

import pytest

from fakes import FakeSmtp, make_settings

from mailctl.core.models import MessageDraft
from mailctl.core.operations import MailOperations
from mailctl.smtp.client import compose

DRAFT = MessageDraft(to="friend@example.com", subject="Hi", body="See you at noon.")


def test_send_uses_starttls_on_587(smtp_server: FakeSmtp, settings, logger) -> None:
    operations = MailOperations(settings, logger=logger)

    assert operations.send(DRAFT) is True

    assert smtp_server.calls == ["starttls", "ehlo", "login", "send_message", "quit"]
    assert smtp_server.credentials == ("me@example.com", "secret")
    message = smtp_server.sent[0]
    assert message["From"] == "me@example.com"
    assert message["To"] == "friend@example.com"
    assert message["Subject"] == "Hi"
    assert message.get_content().strip() == "See you at noon."


def test_send_uses_implicit_tls_on_465(smtp_server: FakeSmtp, logger) -> None:
    operations = MailOperations(make_settings(smtp_port=465), logger=logger)

    assert operations.send(DRAFT) is True

    assert smtp_server.connections[-1]["ssl"] is True
    assert "starttls" not in smtp_server.calls


@pytest.mark.parametrize("port", [25, 1025])
def test_send_plaintext_ports(smtp_server: FakeSmtp, logger, log_stream, port: int) -> None:
    operations = MailOperations(make_settings(smtp_port=port), logger=logger)

    assert operations.send(DRAFT) is True

    assert smtp_server.connections[-1] == {
        "host": "mail.example.com",
        "port": port,
        "ssl": False,
        "timeout": 30.0,
    }
    assert "starttls" not in smtp_server.calls
    assert ('"msg":"smtp_port_caveat"' in log_stream.getvalue()) is (port == 1025)


def test_send_without_auth_extension_skips_login(smtp_server: FakeSmtp, logger, log_stream) -> None:
    """
    What:
        A relay that advertises no ``AUTH`` (a MailHog-style sandbox on 1025)
        receives the message without a login attempt.

    Why:
        ``smtplib`` refuses to log in when ``AUTH`` is missing, which would
        turn every send to such a relay into a failure.
    """

    smtp_server.auth = False
    operations = MailOperations(make_settings(smtp_port=1025), logger=logger)

    assert operations.send(DRAFT) is True

    assert smtp_server.calls == ["ehlo", "send_message", "quit"]
    assert smtp_server.credentials is None
    assert len(smtp_server.sent) == 1
    assert '"msg":"smtp_auth_skipped"' in log_stream.getvalue()


def test_send_rejected_recipient_returns_false(smtp_server: FakeSmtp, settings, logger, log_stream) -> None:
    smtp_server.refuse.add("friend@example.com")
    operations = MailOperations(settings, logger=logger)

    assert operations.send(DRAFT) is False
    assert smtp_server.calls[-1] == "quit"
    assert '"msg":"send_failed"' in log_stream.getvalue()


def test_send_connection_refused_returns_false(monkeypatch: pytest.MonkeyPatch, settings, logger) -> None:
    def _refuse(host: str, port: int, **kwargs: Any):
        raise ConnectionRefusedError(111, "Connection refused")

    monkeypatch.setattr("mailctl.smtp.client.smtplib.SMTP", _refuse)

    assert MailOperations(settings, logger=logger).send(DRAFT) is False


def test_send_logs_redact_subject(smtp_server: FakeSmtp, settings, logger, log_stream) -> None:
    MailOperations(settings, logger=logger).send(DRAFT)

    output = log_stream.getvalue()
    assert '"msg":"message_sent"' in output
    assert '"subject":"[redacted]"' in output


def test_compose_sets_plain_text_body() -> None:
    message = compose("me@example.com", DRAFT)

    assert message.get_content_type() == "text/plain"
    assert message["From"] == "me@example.com"
