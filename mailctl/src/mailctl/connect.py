"""Select and open the session adapter for a resolved protocol.

What:
  Map a :class:`~mailctl.protocol.ProtocolDescriptor` onto the matching
  :class:`~mailctl.session.ScopedSession` subclass and the configured port,
  and run a callable inside that scoped session.

Why:
  The operations layer only knows descriptors. Keeping the adapter choice in
  one function lets tests swap in fakes through a single ``session_factory``
  argument.

Interfaces:
  :func:`open_session`, :func:`with_session`, :data:`SessionFactory`.
"""
from __future__ import annotations

from typing import Callable, Optional, TypeVar

from .config.schema import MailSettings
from .imap.client import ImapSession
from .pop3.client import Pop3Session
from .protocol import Protocol, ProtocolDescriptor
from .session import ScopedSession
from .smtp.client import SmtpSession
from .utils.logging import JsonLogger

T = TypeVar("T")

SessionFactory = Callable[..., ScopedSession]

_ADAPTERS = {
    Protocol.IMAP: ImapSession,
    Protocol.POP3: Pop3Session,
    Protocol.SMTP: SmtpSession,
}


def open_session(
    settings: MailSettings,
    descriptor: ProtocolDescriptor,
    *,
    logger: Optional[JsonLogger] = None,
) -> ScopedSession:
    """Return an unopened session for ``descriptor``.

    Store protocols connect to ``settings.imap_port``; SMTP connects to
    ``settings.smtp_port``. The caller enters the returned context manager.
    """

    port = settings.imap_port if descriptor.is_store else settings.smtp_port
    adapter = _ADAPTERS[descriptor.protocol]
    return adapter(settings, descriptor, port=port, logger=logger)


def with_session(
    settings: MailSettings,
    descriptor: ProtocolDescriptor,
    body: Callable[[ScopedSession], T],
    *,
    factory: SessionFactory = open_session,
    logger: Optional[JsonLogger] = None,
) -> T:
    """Open a session, run ``body`` with it and release it on every path."""

    with factory(settings, descriptor, logger=logger) as session:
        return body(session)


__all__ = ["SessionFactory", "open_session", "with_session"]
