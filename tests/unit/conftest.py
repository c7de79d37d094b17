"""Pytest fixtures for unit tests requiring mail server fakes.

What:
  Make ``tests/unit`` importable and expose fixtures that wire
  :class:`FakeImapBackend`, :class:`FakePop3Server` and :class:`FakeSmtp` into
  the session adapters.

Why:
  Operations, sessions and the CLI all reach the network through the library
  constructors. Replacing those constructors keeps the real adapters under
  test while staying offline and deterministic.

How:
  Monkeypatch ``IMAPClient``, ``poplib.POP3`` and ``smtplib.SMTP`` inside the
  adapter modules with factories that record their arguments and return the
  shared fake instance.

Invariants & Safety:
  - Each test receives fresh fakes so no state leaks between tests.
"""

import io
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import pytest

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapBackend, FakePop3Server, FakeSmtp, make_settings

from mailctl.config.schema import MailSettings
from mailctl.utils.logging import JsonLogger


@pytest.fixture
def settings() -> MailSettings:
    return make_settings()


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> JsonLogger:
    return JsonLogger(stream=log_stream, component="test")


@pytest.fixture
def imap_backend(monkeypatch: pytest.MonkeyPatch) -> FakeImapBackend:
    """Route ``IMAPClient(...)`` in the IMAP adapter to an in-memory backend.

    The constructor arguments of every connection are appended to
    ``backend.connections``.
    """

    backend = FakeImapBackend(folders=("INBOX", "Archive", "Sent"))
    backend.connections: List[Dict[str, Any]] = []

    def _factory(host: str, **kwargs: Any) -> FakeImapBackend:
        backend.connections.append({"host": host, **kwargs})
        return backend

    monkeypatch.setattr("mailctl.imap.client.IMAPClient", _factory)
    return backend


@pytest.fixture
def boss_backend(imap_backend: FakeImapBackend) -> FakeImapBackend:
    """INBOX with two unread and one read boss mails plus one unread other mail."""

    sent = datetime(2024, 3, 10, 9, 30)
    imap_backend.add(sender="boss@x.com", subject="Quarterly numbers", sent_at=sent)
    imap_backend.add(sender="boss@x.com", subject="Offsite agenda", sent_at=sent)
    imap_backend.add(sender="boss@x.com", subject="Already handled", sent_at=sent, seen=True)
    imap_backend.add(sender="other@y.com", subject="Lunch?", sent_at=sent)
    return imap_backend


@pytest.fixture
def pop3_server(monkeypatch: pytest.MonkeyPatch) -> FakePop3Server:
    server = FakePop3Server()
    server.connections: List[Dict[str, Any]] = []

    def _factory(host: str, port: int, **kwargs: Any) -> FakePop3Server:
        server.connections.append({"host": host, "port": port, **kwargs})
        return server

    monkeypatch.setattr("mailctl.pop3.client.poplib.POP3", _factory)
    monkeypatch.setattr("mailctl.pop3.client.poplib.POP3_SSL", _factory)
    return server


@pytest.fixture
def smtp_server(monkeypatch: pytest.MonkeyPatch) -> FakeSmtp:
    server = FakeSmtp()
    server.connections: List[Dict[str, Any]] = []

    def _plain(host: str, port: int, **kwargs: Any) -> FakeSmtp:
        server.connections.append({"host": host, "port": port, "ssl": False, **kwargs})
        return server

    def _ssl(host: str, port: int, **kwargs: Any) -> FakeSmtp:
        server.connections.append({"host": host, "port": port, "ssl": True, **kwargs})
        return server

    monkeypatch.setattr("mailctl.smtp.client.smtplib.SMTP", _plain)
    monkeypatch.setattr("mailctl.smtp.client.smtplib.SMTP_SSL", _ssl)
    return server
