"""Turn CLI filter options into a search predicate.

What:
  Convert the filter flags shared by ``list-emails`` and ``delete-emails``
  into one :class:`~mailctl.core.predicates.SearchPredicate`, or ``None`` when
  no filter was supplied.

How:
  Each non-blank option becomes one atom, in a fixed recognition order, and
  the atoms are folded with ``and_`` by :func:`~mailctl.core.predicates.fold_all`.
  Dates use the ``YYYY-MM-DD`` format; anything else raises
  :class:`InvalidDateError` before a predicate is built.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple

from .core import predicates as p

DATE_FORMAT = "%Y-%m-%d"


class InvalidDateError(ValueError):
    """Raised when a date filter is not in ``YYYY-MM-DD`` format."""

    def __init__(self, option: str, value: str) -> None:
        self.option = option
        self.value = value
        super().__init__(f"Invalid date format for {option}. Use yyyy-MM-dd format.")


@dataclass(frozen=True)
class FilterOptions:
    """Raw filter values as received from the command line."""

    unread: bool = False
    read: bool = False
    sender: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    to: Optional[str] = None
    cc: Optional[str] = None
    bcc: Optional[str] = None
    received_after: Optional[str] = None
    received_before: Optional[str] = None
    sent_after: Optional[str] = None
    sent_before: Optional[str] = None


def parse_day(option: str, value: str) -> date:
    """Parse ``value`` as a calendar day for the flag named ``option``."""

    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise InvalidDateError(option, value) from None


def _present(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


def build_predicate(options: FilterOptions) -> Optional[p.SearchPredicate]:
    """Build the conjunction of every supplied filter.

    Args:
      options: Values collected by the CLI.

    Returns:
      The folded predicate, or ``None`` when no filter was supplied.

    Raises:
      InvalidDateError: If a date option cannot be parsed.
    """

    atoms: List[p.SearchPredicate] = []
    if options.unread:
        atoms.append(p.unread())
    if options.read:
        atoms.append(p.read())

    text_filters = (
        (options.sender, p.from_contains),
        (options.subject, p.subject_contains),
        (options.body, p.body_contains),
        (options.to, p.to_contains),
        (options.cc, p.cc_contains),
        (options.bcc, p.bcc_contains),
    )
    for value, factory in text_filters:
        if _present(value):
            atoms.append(factory(value))

    date_filters: List[Tuple[str, Optional[str], Callable[[date], p.SearchPredicate]]] = [
        ("--received-after", options.received_after, p.received_after),
        ("--received-before", options.received_before, p.received_before),
        ("--sent-after", options.sent_after, p.sent_after),
        ("--sent-before", options.sent_before, p.sent_before),
    ]
    for option, value, factory in date_filters:
        if _present(value):
            atoms.append(factory(parse_day(option, value)))

    return p.fold_all(atoms)


__all__ = ["DATE_FORMAT", "FilterOptions", "InvalidDateError", "build_predicate", "parse_day"]
