"""Facade for the IMAP integration layer.

What:
  Surface :class:`~mailctl.imap.client.ImapSession` and the predicate
  translator :func:`~mailctl.imap.search.build_search`.

Invariants & Safety:
  - Consumers operate in UID mode.
  - Folders are deselected without an implicit expunge.
"""

from .client import ImapFolder, ImapSession
from .search import build_search

__all__ = ["ImapFolder", "ImapSession", "build_search"]
