"""mailctl: list, filter, delete and send mail over IMAP, POP3 and SMTP.

What:
  Expose the package version and the names most callers need:
  :class:`~mailctl.core.operations.MailOperations`, the predicate factories
  and the settings loader.

Interfaces:
  ``MailOperations``, ``MissingFilterError``, ``MessageDraft``,
  ``load_settings``, ``resolve_store``, ``resolve_smtp``.
"""

from .config import load_settings
from .core.models import MessageDraft, MessageSummary
from .core.operations import MailOperations, MissingFilterError
from .protocol import UnsupportedPortError, resolve_smtp, resolve_store

__version__ = "0.1.0"

__all__ = [
    "MailOperations",
    "MessageDraft",
    "MessageSummary",
    "MissingFilterError",
    "UnsupportedPortError",
    "load_settings",
    "resolve_smtp",
    "resolve_store",
]
