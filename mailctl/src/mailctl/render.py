"""Render listed messages for the terminal.

The JSON layout is ``{"folder", "count", "emails": [{"index", "from",
"subject", "sentDate"}]}`` with ``sentDate`` in ISO-8601 local time with its
UTC offset. The text layout prints one ``i. [date] from - subject`` line per
message. Missing senders, blank subjects and missing dates fall back to
``Unknown``, ``(No Subject)`` and the current time.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .core.models import MessageSummary

UNKNOWN_SENDER = "Unknown"
NO_SUBJECT = "(No Subject)"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _sender(message: MessageSummary) -> str:
    return message.sender.strip() or UNKNOWN_SENDER


def _subject(message: MessageSummary) -> str:
    return message.subject if message.subject and message.subject.strip() else NO_SUBJECT


def _sent(message: MessageSummary, now: Optional[datetime]) -> datetime:
    moment = message.sent_at or now or datetime.now()
    return moment.astimezone()


def email_entries(
    messages: Sequence[MessageSummary], *, now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """Return the JSON-ready entries for ``messages``, numbered from 1."""

    return [
        {
            "index": index,
            "from": _sender(message),
            "subject": _subject(message),
            "sentDate": _sent(message, now).isoformat(),
        }
        for index, message in enumerate(messages, start=1)
    ]


def render_json(folder: str, messages: Sequence[MessageSummary], *, now: Optional[datetime] = None) -> str:
    entries = email_entries(messages, now=now)
    payload = {"folder": folder, "count": len(entries), "emails": entries}
    return json.dumps(payload, indent=2, ensure_ascii=False)


def render_text(folder: str, messages: Sequence[MessageSummary], *, now: Optional[datetime] = None) -> str:
    lines = [f"Emails in folder '{folder}' ({len(messages)}):", ""]
    for index, message in enumerate(messages, start=1):
        stamp = _sent(message, now).strftime(TEXT_DATE_FORMAT)
        lines.append(f"{index}. [{stamp}] {_sender(message)} - {_subject(message)}")
    return "\n".join(lines)


def empty_text(folder: str, *, filtered: bool) -> str:
    """Message shown by ``--text`` when nothing was listed."""

    if filtered:
        return f"No emails found matching the criteria in folder: {folder}"
    return f"No emails found in folder: {folder}"


def render_folders(folders: Sequence[str]) -> str:
    if not folders:
        return "No folders found."
    return "\n".join(["Folders:", *(f"  - {name}" for name in folders)])


__all__ = [
    "NO_SUBJECT",
    "UNKNOWN_SENDER",
    "email_entries",
    "empty_text",
    "render_folders",
    "render_json",
    "render_text",
]
