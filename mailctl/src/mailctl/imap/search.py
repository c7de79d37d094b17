"""Translate search predicates into IMAP search criteria.

What:
  Provide a deterministic mapping from :mod:`mailctl.core.predicates` trees to
  the nested criteria lists consumed by ``imapclient`` search operations.

Why:
  Keeping the translation logic centralised ensures the server receives the
  same query for the same predicate and facilitates unit testing for the
  tricky date handling (IMAP date keys are day-granular and ``BEFORE`` is
  exclusive).

How:
  Walks the tree post-order and emits one criteria list per node. Nested lists
  are rendered by ``imapclient`` as parenthesised groups, so ``And`` needs no
  keyword, while ``Or`` and ``Not`` map to the IMAP ``OR``/``NOT`` prefixes.

Interfaces:
  :func:`build_search` (alias :func:`translate`), :func:`search_charset`,
  :data:`ALL`.

Invariants & Safety:
  - User text is only ever placed in argument position; ``imapclient`` quotes
    it, so it cannot inject search keywords.
  - Translating the same tree twice yields equal lists.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Union

from ..core.predicates import (
    And,
    BccContains,
    BodyContains,
    CcContains,
    FromContains,
    Not,
    Or,
    Read,
    ReceivedAfter,
    ReceivedBefore,
    SearchPredicate,
    SentAfter,
    SentBefore,
    SubjectContains,
    ToContains,
    Unread,
)

ALL: List[object] = ["ALL"]

_TEXT_KEYS = (
    (FromContains, "FROM"),
    (SubjectContains, "SUBJECT"),
    (BodyContains, "BODY"),
    (ToContains, "TO"),
    (CcContains, "CC"),
    (BccContains, "BCC"),
)


def _local_day(instant: datetime) -> date:
    return instant.astimezone().date() if instant.tzinfo else instant.date()


def _day_after(instant: datetime) -> date:
    # BEFORE is exclusive; the following day keeps the bound inclusive.
    return _local_day(instant) + timedelta(days=1)


def _text_atom(text: str) -> Union[str, bytes]:
    # imapclient encodes str atoms as us-ascii at every nesting level but
    # passes bytes through, so non-ASCII text is sent pre-encoded.
    try:
        text.encode("ascii")
    except UnicodeEncodeError:
        return text.encode("utf-8")
    return text


def search_charset(criteria: Sequence[object]) -> Optional[str]:
    """Return ``"UTF-8"`` when ``criteria`` carries pre-encoded text, else ``None``.

    The charset has to be announced with ``SEARCH CHARSET UTF-8`` for the
    server to interpret the raw bytes of a non-ASCII atom.
    """

    for item in criteria:
        if isinstance(item, bytes):
            return "UTF-8"
        if isinstance(item, (list, tuple)) and search_charset(item):
            return "UTF-8"
    return None


def build_search(predicate: SearchPredicate) -> List[object]:
    """Convert ``predicate`` into an ``imapclient`` criteria list.

    Args:
      predicate: Tree to translate.

    Returns:
      Criteria list, e.g. ``[["UNSEEN"], ["FROM", "boss"]]`` for
      ``unread() & from_contains("boss")``.

    Raises:
      TypeError: If the tree contains an unknown node.
    """

    if isinstance(predicate, And):
        return [build_search(predicate.left), build_search(predicate.right)]
    if isinstance(predicate, Or):
        return ["OR", build_search(predicate.left), build_search(predicate.right)]
    if isinstance(predicate, Not):
        return ["NOT", build_search(predicate.expr)]
    if isinstance(predicate, Unread):
        return ["UNSEEN"]
    if isinstance(predicate, Read):
        return ["SEEN"]
    for node_type, keyword in _TEXT_KEYS:
        if isinstance(predicate, node_type):
            return [keyword, _text_atom(predicate.text)]
    if isinstance(predicate, ReceivedAfter):
        return ["SINCE", _local_day(predicate.instant)]
    if isinstance(predicate, ReceivedBefore):
        return ["BEFORE", _day_after(predicate.instant)]
    if isinstance(predicate, SentAfter):
        return ["SENTSINCE", _local_day(predicate.instant)]
    if isinstance(predicate, SentBefore):
        return ["SENTBEFORE", _day_after(predicate.instant)]
    raise TypeError(f"Unsupported predicate node {type(predicate).__name__}")


translate = build_search


__all__ = ["ALL", "build_search", "search_charset", "translate"]
