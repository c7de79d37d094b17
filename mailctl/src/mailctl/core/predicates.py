"""Composable search predicates evaluated by the remote mail store.

What:
  An immutable expression tree describing which messages an operation should
  touch: atomic criteria (read state, sender, subject, body, recipients,
  received/sent date bounds) and the ``And``/``Or``/``Not`` combinators.

Why:
  Filters are assembled independently (one per CLI flag, or programmatically)
  and must combine without side effects. A plain tree of frozen dataclasses
  can be reused, compared and translated any number of times, and keeps the
  store-specific query syntax out of the callers.

How:
  Every node derives from :class:`SearchPredicate`, which provides the
  ``and_``/``or_``/``not_`` builders (also spelled ``&``, ``|``, ``~``). Factory
  functions build the atoms; date factories convert a calendar day into the
  local start-of-day instant (``*_after``) or the last second of that day
  (``*_before``). :func:`matches` evaluates a tree locally for stores with no
  server-side search; IMAP translation lives in :mod:`mailctl.imap.search`.

Interfaces:
  Node classes, factory functions, :func:`fold_all`, :func:`matches`,
  :func:`needs_body`.

Invariants & Safety:
  - Nodes are frozen; combinators always return new nodes and never touch
    their operands.
  - "No predicate" is represented by ``None`` and is never conflated with a
    predicate that happens to match nothing.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Union

from .models import MessageSummary


DayLike = Union[date, datetime]


class SearchPredicate:
    """Base class of every predicate node."""

    __slots__ = ()

    def and_(self, other: "SearchPredicate") -> "SearchPredicate":
        return And(self, other)

    def or_(self, other: "SearchPredicate") -> "SearchPredicate":
        return Or(self, other)

    def not_(self) -> "SearchPredicate":
        return Not(self)

    def __and__(self, other: "SearchPredicate") -> "SearchPredicate":
        return self.and_(other)

    def __or__(self, other: "SearchPredicate") -> "SearchPredicate":
        return self.or_(other)

    def __invert__(self) -> "SearchPredicate":
        return self.not_()


# Atoms -----------------------------------------------------------------


@dataclass(frozen=True)
class Unread(SearchPredicate):
    """Messages without the ``\\Seen`` flag."""


@dataclass(frozen=True)
class Read(SearchPredicate):
    """Messages carrying the ``\\Seen`` flag."""


@dataclass(frozen=True)
class FromContains(SearchPredicate):
    text: str


@dataclass(frozen=True)
class SubjectContains(SearchPredicate):
    text: str


@dataclass(frozen=True)
class BodyContains(SearchPredicate):
    text: str


@dataclass(frozen=True)
class ToContains(SearchPredicate):
    text: str


@dataclass(frozen=True)
class CcContains(SearchPredicate):
    text: str


@dataclass(frozen=True)
class BccContains(SearchPredicate):
    text: str


@dataclass(frozen=True)
class ReceivedAfter(SearchPredicate):
    """Server receipt instant is at or after ``instant``."""

    instant: datetime


@dataclass(frozen=True)
class ReceivedBefore(SearchPredicate):
    """Server receipt instant is at or before ``instant``."""

    instant: datetime


@dataclass(frozen=True)
class SentAfter(SearchPredicate):
    """``Date`` header is at or after ``instant``."""

    instant: datetime


@dataclass(frozen=True)
class SentBefore(SearchPredicate):
    """``Date`` header is at or before ``instant``."""

    instant: datetime


# Combinators -----------------------------------------------------------


@dataclass(frozen=True)
class And(SearchPredicate):
    left: SearchPredicate
    right: SearchPredicate


@dataclass(frozen=True)
class Or(SearchPredicate):
    left: SearchPredicate
    right: SearchPredicate


@dataclass(frozen=True)
class Not(SearchPredicate):
    expr: SearchPredicate


# Factories -------------------------------------------------------------


def _as_day(value: DayLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def start_of_day(value: DayLike) -> datetime:
    """Return local midnight of ``value`` as an aware datetime."""

    return datetime.combine(_as_day(value), time.min).astimezone()


def end_of_day(value: DayLike) -> datetime:
    """Return 23:59:59 local time of ``value`` as an aware datetime."""

    next_midnight = datetime.combine(_as_day(value) + timedelta(days=1), time.min).astimezone()
    return next_midnight - timedelta(seconds=1)


def unread() -> SearchPredicate:
    return Unread()


def read() -> SearchPredicate:
    return Read()


def from_contains(text: str) -> SearchPredicate:
    return FromContains(text)


def subject_contains(text: str) -> SearchPredicate:
    return SubjectContains(text)


def body_contains(text: str) -> SearchPredicate:
    return BodyContains(text)


def to_contains(text: str) -> SearchPredicate:
    return ToContains(text)


def cc_contains(text: str) -> SearchPredicate:
    return CcContains(text)


def bcc_contains(text: str) -> SearchPredicate:
    return BccContains(text)


def received_after(day: DayLike) -> SearchPredicate:
    return ReceivedAfter(start_of_day(day))


def received_before(day: DayLike) -> SearchPredicate:
    return ReceivedBefore(end_of_day(day))


def sent_after(day: DayLike) -> SearchPredicate:
    return SentAfter(start_of_day(day))


def sent_before(day: DayLike) -> SearchPredicate:
    return SentBefore(end_of_day(day))


def fold_all(predicates: Iterable[SearchPredicate]) -> Optional[SearchPredicate]:
    """AND together ``predicates`` left-to-right.

    What:
      Collapses a sequence of atoms into one tree, ``((a & b) & c)``.

    Why:
      The CLI turns each supplied filter flag into an atom and must preserve
      the "no filter at all" state, which is why an empty input yields
      ``None`` rather than a catch-all predicate.

    Args:
      predicates: Atoms in flag-recognition order.

    Returns:
      The folded predicate, or ``None`` when ``predicates`` is empty.
    """

    combined: Optional[SearchPredicate] = None
    for predicate in predicates:
        combined = predicate if combined is None else combined.and_(predicate)
    return combined


# Local evaluation ------------------------------------------------------


def needs_body(predicate: SearchPredicate) -> bool:
    """Return ``True`` when evaluating ``predicate`` requires body text."""

    if isinstance(predicate, BodyContains):
        return True
    if isinstance(predicate, (And, Or)):
        return needs_body(predicate.left) or needs_body(predicate.right)
    if isinstance(predicate, Not):
        return needs_body(predicate.expr)
    return False


def _contains(haystack: str, needle: str) -> bool:
    return needle.casefold() in (haystack or "").casefold()


def _any_contains(values: Iterable[str], needle: str) -> bool:
    return any(_contains(value, needle) for value in values)


def _at_or_after(moment: Optional[datetime], bound: datetime) -> bool:
    return moment is not None and moment >= bound


def _at_or_before(moment: Optional[datetime], bound: datetime) -> bool:
    return moment is not None and moment <= bound


def matches(
    predicate: SearchPredicate,
    message: MessageSummary,
    body: Optional[str] = None,
) -> bool:
    """Evaluate ``predicate`` against a single message.

    What:
      Client-side counterpart of the server search, used by stores that cannot
      search (POP3) and by tests.

    How:
      Text atoms are case-insensitive substring checks against the header
      values; date atoms compare aware instants inclusively. Stores without an
      internal date fall back to the ``Date`` header for received bounds.
      ``BodyContains`` is false when ``body`` was not supplied.

    Args:
      predicate: Tree to evaluate.
      message: Header summary of the message.
      body: Decoded body text when the caller fetched it.

    Returns:
      Whether the message satisfies the predicate.

    Raises:
      TypeError: If ``predicate`` is not a known node type.
    """

    if isinstance(predicate, And):
        return matches(predicate.left, message, body) and matches(predicate.right, message, body)
    if isinstance(predicate, Or):
        return matches(predicate.left, message, body) or matches(predicate.right, message, body)
    if isinstance(predicate, Not):
        return not matches(predicate.expr, message, body)
    if isinstance(predicate, Unread):
        return not message.seen
    if isinstance(predicate, Read):
        return message.seen
    if isinstance(predicate, FromContains):
        return _contains(message.sender, predicate.text)
    if isinstance(predicate, SubjectContains):
        return _contains(message.subject, predicate.text)
    if isinstance(predicate, BodyContains):
        return body is not None and _contains(body, predicate.text)
    if isinstance(predicate, ToContains):
        return _any_contains(message.to, predicate.text)
    if isinstance(predicate, CcContains):
        return _any_contains(message.cc, predicate.text)
    if isinstance(predicate, BccContains):
        return _any_contains(message.bcc, predicate.text)
    received = message.received_at or message.sent_at
    if isinstance(predicate, ReceivedAfter):
        return _at_or_after(received, predicate.instant)
    if isinstance(predicate, ReceivedBefore):
        return _at_or_before(received, predicate.instant)
    if isinstance(predicate, SentAfter):
        return _at_or_after(message.sent_at, predicate.instant)
    if isinstance(predicate, SentBefore):
        return _at_or_before(message.sent_at, predicate.instant)
    raise TypeError(f"Unsupported predicate node {type(predicate).__name__}")


__all__ = [
    "SearchPredicate",
    "Unread",
    "Read",
    "FromContains",
    "SubjectContains",
    "BodyContains",
    "ToContains",
    "CcContains",
    "BccContains",
    "ReceivedAfter",
    "ReceivedBefore",
    "SentAfter",
    "SentBefore",
    "And",
    "Or",
    "Not",
    "unread",
    "read",
    "from_contains",
    "subject_contains",
    "body_contains",
    "to_contains",
    "cc_contains",
    "bcc_contains",
    "received_after",
    "received_before",
    "sent_after",
    "sent_before",
    "start_of_day",
    "end_of_day",
    "fold_all",
    "matches",
    "needs_body",
]
