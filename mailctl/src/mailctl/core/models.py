"""Value objects exchanged between the operations layer and its callers.

What:
  Define :class:`MessageDraft` for outbound mail and :class:`MessageSummary`
  for messages listed from a store, plus :func:`summary_from_headers` which
  builds a summary from a raw RFC822 header block.

Why:
  Listing only needs sender, subject, recipients, dates and flags. Parsing the
  header block once, with the standard library parser and the default policy,
  keeps store adapters small and never touches MIME bodies.

How:
  Frozen dataclasses carry the values; the header helper decodes encoded
  words through :mod:`email.policy` and normalises dates to aware datetimes.

Interfaces:
  :class:`MessageDraft`, :class:`MessageSummary`, :func:`summary_from_headers`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from email import policy
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class MessageDraft:
    """Outbound message: one recipient, a subject and a plain-text body."""

    to: str
    subject: str
    body: str


@dataclass(frozen=True)
class MessageSummary:
    """Header-level view of a stored message.

    Attributes:
      uid: Store identifier (IMAP UID or POP3 message number).
      sender: Raw ``From`` header value, empty when absent.
      subject: Decoded ``Subject`` header, empty when absent.
      sent_at: ``Date`` header as an aware datetime, ``None`` when missing or
        malformed.
      received_at: Server internal date, ``None`` when the store has none.
      to: Addresses listed in ``To``.
      cc: Addresses listed in ``Cc``.
      bcc: Addresses listed in ``Bcc`` (rarely present on received mail).
      flags: Store flags such as ``\\Seen``.
    """

    uid: Union[int, str]
    sender: str = ""
    subject: str = ""
    sent_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    to: Tuple[str, ...] = ()
    cc: Tuple[str, ...] = ()
    bcc: Tuple[str, ...] = ()
    flags: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def seen(self) -> bool:
        return any(flag.lower() == "\\seen" for flag in self.flags)


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(str(value))
    except (TypeError, ValueError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _addresses(values: Optional[list]) -> Tuple[str, ...]:
    if not values:
        return ()
    pairs = getaddresses([str(value) for value in values])
    return tuple(address for _, address in pairs if address)


def summary_from_headers(
    uid: Union[int, str],
    header_bytes: bytes,
    *,
    flags: Tuple[str, ...] = (),
    received_at: Optional[datetime] = None,
) -> MessageSummary:
    """Build a :class:`MessageSummary` from a raw header block.

    Args:
      uid: Identifier assigned by the store.
      header_bytes: RFC822 headers, optionally followed by a body that is
        ignored.
      flags: Flags reported by the store.
      received_at: Internal date reported by the store, if any.

    Returns:
      Populated summary; missing headers become empty values.
    """

    message = BytesParser(policy=policy.default).parsebytes(header_bytes, headersonly=True)
    if received_at is not None and received_at.tzinfo is None:
        received_at = received_at.astimezone()
    return MessageSummary(
        uid=uid,
        sender=str(message.get("From", "") or ""),
        subject=str(message.get("Subject", "") or ""),
        sent_at=_parse_date(message.get("Date")),
        received_at=received_at,
        to=_addresses(message.get_all("To")),
        cc=_addresses(message.get_all("Cc")),
        bcc=_addresses(message.get_all("Bcc")),
        flags=tuple(flags),
    )


__all__ = ["MessageDraft", "MessageSummary", "summary_from_headers"]
