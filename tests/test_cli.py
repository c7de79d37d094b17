"""CLI wiring tests ensuring Typer commands drive the mail operations correctly.

What:
  Validate ``list-folders``, ``list-emails``, ``delete-emails`` and ``send``:
  argument parsing, filter folding, output formats, and exit codes for
  configuration errors, unsupported ports and missing filters.

Why:
  The CLI is the contract scripts depend on; regressions in messages or exit
  codes break automation silently.

How:
  Use :class:`typer.testing.CliRunner` with ``EMAIL_*`` variables set through
  monkeypatch. Most tests replace :class:`MailOperations` in ``mailctl.cli``
  with a recording stub; one test runs the real stack against the in-memory
  IMAP backend.
"""
from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

import pytest
from typer.testing import CliRunner

sys.path.insert(0, str(Path(__file__).resolve().parent / "unit"))

from fakes import FakeImapBackend

from mailctl.cli import app
from mailctl.core import predicates as p
from mailctl.core.models import MessageDraft, MessageSummary
from mailctl.protocol import UnsupportedPortError


runner = CliRunner()


class _RecordingOperations:
    """Stand-in for :class:`MailOperations` capturing every call."""

    messages: List[MessageSummary] = []
    folders: List[str] = []
    delete_result = True
    send_result = True
    raise_port: Optional[int] = None
    calls: List[Any] = []

    def __init__(self, settings: Any, **kwargs: Any) -> None:
        self.settings = settings

    def _check_port(self) -> None:
        if self.raise_port is not None:
            raise UnsupportedPortError(self.raise_port)

    def list_folders(self) -> List[str]:
        self._check_port()
        self.calls.append(("list_folders",))
        return list(self.folders)

    def list_messages(self, folder: str, predicate=None) -> List[MessageSummary]:
        self._check_port()
        self.calls.append(("list_messages", folder, predicate))
        return list(self.messages)

    def delete_messages(self, folder: str, predicate) -> bool:
        self._check_port()
        self.calls.append(("delete_messages", folder, predicate))
        return self.delete_result

    def send(self, draft: MessageDraft) -> bool:
        self.calls.append(("send", draft))
        return self.send_result


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EMAIL_HOSTNAME", "mail.example.com")
    monkeypatch.setenv("EMAIL_IMAP_PORT", "143")
    monkeypatch.setenv("EMAIL_SMTP_PORT", "587")
    monkeypatch.setenv("EMAIL_USER", "me@example.com")
    monkeypatch.setenv("EMAIL_PASSWORD", "secret")


@pytest.fixture
def ops(monkeypatch: pytest.MonkeyPatch, env: None) -> type:
    """Install a fresh :class:`_RecordingOperations` subclass in the CLI module."""

    recording = type(
        "Ops",
        (_RecordingOperations,),
        {"messages": [], "folders": [], "calls": [], "delete_result": True, "send_result": True, "raise_port": None},
    )
    monkeypatch.setattr("mailctl.cli.MailOperations", recording)
    return recording


def _summary(subject: str, sender: str = "boss@x.com") -> MessageSummary:
    return MessageSummary(
        uid=1,
        sender=sender,
        subject=subject,
        sent_at=datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc),
    )


def test_list_folders_prints_each_folder(ops: type) -> None:
    ops.folders = ["INBOX", "Sent"]

    result = runner.invoke(app, ["list-folders"])

    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["Folders:", "  - INBOX", "  - Sent"]


def test_list_folders_empty(ops: type) -> None:
    result = runner.invoke(app, ["list-folders"])

    assert result.exit_code == 0
    assert "No folders found." in result.stdout


def test_list_emails_json_output(ops: type) -> None:
    ops.messages = [_summary("Numbers"), _summary("", sender="")]

    result = runner.invoke(app, ["list-emails", "Archive", "--unread", "--from", "boss"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["folder"] == "Archive"
    assert payload["count"] == 2
    assert payload["emails"][1]["from"] == "Unknown"
    assert payload["emails"][1]["subject"] == "(No Subject)"
    _, folder, predicate = ops.calls[0]
    assert folder == "Archive"
    assert predicate == p.And(p.Unread(), p.FromContains("boss"))


def test_list_emails_defaults_to_inbox_without_filter(ops: type) -> None:
    result = runner.invoke(app, ["list-emails"])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"folder": "INBOX", "count": 0, "emails": []}
    assert ops.calls == [("list_messages", "INBOX", None)]


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        (["list-emails", "--text"], "No emails found in folder: INBOX"),
        (["list-emails", "--text", "--read"], "No emails found matching the criteria in folder: INBOX"),
    ],
)
def test_list_emails_text_empty_messages(ops: type, args: List[str], expected: str) -> None:
    result = runner.invoke(app, args)

    assert result.exit_code == 0
    assert result.stdout.strip() == expected


def test_list_emails_text_output(ops: type) -> None:
    ops.messages = [_summary("Numbers")]

    result = runner.invoke(app, ["list-emails", "--text"])

    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0] == "Emails in folder 'INBOX' (1):"
    assert lines[2].startswith("1. [") and lines[2].endswith("] boss@x.com - Numbers")


def test_invalid_date_exits_with_message(ops: type) -> None:
    result = runner.invoke(app, ["list-emails", "--received-after", "yesterday"])

    assert result.exit_code == 1
    assert "Invalid date format for --received-after. Use yyyy-MM-dd format." in result.output
    assert ops.calls == []


def test_delete_requires_a_filter(ops: type) -> None:
    """
    What:
        ``delete-emails`` without filters exits 1 and never calls the operation.

    Why:
        Deleting a whole folder by omission is irreversible.
    """

    result = runner.invoke(app, ["delete-emails", "INBOX"])

    assert result.exit_code == 1
    assert "At least one filter option must be specified" in result.output
    assert ops.calls == []


@pytest.mark.parametrize(
    ("deleted", "expected"),
    [
        (True, "Emails deleted successfully from folder: INBOX"),
        (False, "No emails found matching the criteria in folder: INBOX"),
    ],
)
def test_delete_reports_outcome(ops: type, deleted: bool, expected: str) -> None:
    ops.delete_result = deleted

    result = runner.invoke(app, ["delete-emails", "--subject", "spam", "--sent-before", "2024-01-31"])

    assert result.exit_code == 0
    assert result.stdout.strip() == expected
    _, _, predicate = ops.calls[0]
    assert predicate == p.And(p.SubjectContains("spam"), p.sent_before(datetime(2024, 1, 31)))


def test_unsupported_port_exits_1(ops: type) -> None:
    ops.raise_port = 9999

    result = runner.invoke(app, ["list-folders"])

    assert result.exit_code == 1
    assert "Unsupported IMAP/POP3 port: 9999" in result.output


def test_missing_settings_exit_1(monkeypatch: pytest.MonkeyPatch) -> None:
    result = runner.invoke(app, ["list-folders"])

    assert result.exit_code == 1
    assert "Required environment variable EMAIL_HOSTNAME is not set" in result.output


def test_send_command(ops: type) -> None:
    result = runner.invoke(app, ["send", "friend@example.com", "--subject", "Hi", "--body", "Noon?"])

    assert result.exit_code == 0
    assert "Email sent to friend@example.com" in result.stdout
    assert ops.calls == [("send", MessageDraft(to="friend@example.com", subject="Hi", body="Noon?"))]


def test_send_failure_exits_1(ops: type) -> None:
    ops.send_result = False

    result = runner.invoke(app, ["send", "friend@example.com", "-s", "Hi", "-b", "Noon?"])

    assert result.exit_code == 1
    assert "failed to send email to friend@example.com" in result.output


def test_config_option_reads_yaml(ops: type, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "mailctl.yaml"
    path.write_text("hostname: yaml.example.com\nimap_port: 993\nsmtp_port: 465\nuser: u\npassword: p\n")
    seen: List[Any] = []

    class Capturing(ops):  # type: ignore[misc, valid-type]
        def __init__(self, settings: Any, **kwargs: Any) -> None:
            super().__init__(settings, **kwargs)
            seen.append(settings)

    monkeypatch.setattr("mailctl.cli.MailOperations", Capturing)
    result = runner.invoke(app, ["--config", str(path), "list-folders"])

    assert result.exit_code == 0
    assert seen[0].hostname == "yaml.example.com"


def test_delete_end_to_end_against_fake_backend(monkeypatch: pytest.MonkeyPatch, env: None) -> None:
    backend = FakeImapBackend()
    backend.add(sender="boss@x.com", subject="one")
    backend.add(sender="boss@x.com", subject="two", seen=True)
    monkeypatch.setattr("mailctl.imap.client.IMAPClient", lambda host, **kwargs: backend)

    result = runner.invoke(app, ["delete-emails", "--unread", "--from", "boss"])

    assert result.exit_code == 0
    assert "Emails deleted successfully from folder: INBOX" in result.output
    assert backend.subjects() == ["two"]
