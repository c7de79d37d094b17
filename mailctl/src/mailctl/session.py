"""Scoped, single-use connections to a mail store or transport.

What:
  Define the lifecycle shared by every connection (IMAP, POP3, SMTP): the
  :class:`ScopedSession` base class, its :class:`SessionState` machine, the
  connection error types, and the structural protocols describing what the
  operations layer may do with an open store.

Why:
  Each public operation opens its own connection and must release it on every
  exit path, including failures half-way through a delete. Putting the
  state machine and the error mapping in one base class keeps the protocol
  adapters down to "connect", "talk" and "disconnect".

How:
  :class:`ScopedSession` implements ``__enter__``/``__exit__``. Subclasses
  provide ``_open`` and ``_close``. ``__enter__`` moves ``Unopened → Opening →
  Open``; if ``_open`` fails the state goes straight to ``Closed`` and nothing
  is released. ``__exit__`` always runs ``Closing → Closed``. Library errors
  are translated into :class:`MailConnectionError` via :meth:`_guard`, and
  connection failures whose text carries an SMTP banner become
  :class:`GreetingMismatchError`.

Interfaces:
  :class:`SessionState`, :class:`ScopedSession`, :class:`MailConnectionError`,
  :class:`GreetingMismatchError`, :class:`StoreSession`, :class:`FolderHandle`,
  :class:`TransportSession`.

Invariants & Safety:
  - Sessions are never reused: a closed session cannot be entered again.
  - Release failures are logged, never raised, so they cannot mask the error
    that caused the exit.
"""
from __future__ import annotations

import contextlib
import re
from enum import Enum
from typing import ContextManager, Iterator, List, Optional, Protocol, Sequence, Tuple, Type, Union

from .config.schema import MailSettings
from .core.models import MessageDraft, MessageSummary
from .core.predicates import SearchPredicate
from .protocol import ProtocolDescriptor
from .utils.logging import JsonLogger, get_logger


MessageId = Union[int, str]

_SMTP_GREETING = re.compile(r"\bESMTP\b|\b220[ -][^\n]*\bSMTP\b")


class MailConnectionError(ConnectionError):
    """Transport, authentication or protocol failure inside a session.

    Attributes:
      host: Server host name.
      port: Server port.
      protocol: Protocol name (``imap``, ``pop3``, ``smtp``).
    """

    def __init__(self, message: str, *, host: str = "", port: int = 0, protocol: str = "") -> None:
        super().__init__(message)
        self.host = host
        self.port = port
        self.protocol = protocol


class GreetingMismatchError(MailConnectionError):
    """The server greeted with a banner from a different protocol.

    Raised when, for example, an SMTP ``220 ... ESMTP`` banner arrives while
    an IMAP or POP3 greeting was expected. This points at a misconfigured
    port rather than a transient network problem.
    """


class SessionState(str, Enum):
    UNOPENED = "unopened"
    OPENING = "opening"
    OPEN = "open"
    MARKING = "marking"
    EXPUNGING = "expunging"
    CLOSING = "closing"
    CLOSED = "closed"


class FolderHandle(Protocol):
    """Operations available on a selected folder."""

    name: str
    readonly: bool

    def search(self, predicate: Optional[SearchPredicate]) -> List[MessageId]:
        """Return ids of messages matching ``predicate`` (all when ``None``)."""

    def fetch_summaries(self, ids: Sequence[MessageId]) -> List[MessageSummary]:
        """Return header summaries for ``ids`` in the same order."""

    def mark_deleted(self, ids: Sequence[MessageId]) -> None:
        """Flag ``ids`` for deletion without removing them."""

    def expunge(self) -> None:
        """Permanently remove every message flagged for deletion."""


class StoreSession(Protocol):
    """Operations available on an open IMAP or POP3 session."""

    state: SessionState

    def __enter__(self) -> "StoreSession": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def list_folders(self) -> List[str]:
        """Return the full names of every folder in the store."""

    def folder(self, name: str, *, readonly: bool = True) -> ContextManager[FolderHandle]:
        """Open ``name`` for the duration of the ``with`` block."""


class TransportSession(Protocol):
    """Operations available on an open SMTP session."""

    state: SessionState

    def __enter__(self) -> "TransportSession": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def send(self, draft: MessageDraft) -> None:
        """Compose and transmit ``draft``."""


class ScopedSession:
    """Context-managed connection with a guaranteed release.

    What:
      Base class for the protocol adapters. Owns the host/port/credentials of
      one connection attempt and tracks its :class:`SessionState`.

    Why:
      Gives every adapter the same release guarantee and the same error
      vocabulary without each one re-implementing ``try``/``finally`` chains.

    How:
      ``__enter__`` calls :meth:`_open` inside :meth:`_guard` and
      ``__exit__`` calls :meth:`_close`, swallowing and logging release
      errors. Subclasses set :attr:`errors` to the library exception types
      that must be translated.
    """

    errors: Tuple[Type[BaseException], ...] = (OSError,)

    def __init__(
        self,
        settings: MailSettings,
        descriptor: ProtocolDescriptor,
        *,
        port: int,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._settings = settings
        self._descriptor = descriptor
        self._port = port
        self._logger = (logger or get_logger(f"mailctl.{descriptor.protocol.value}")).bind(
            protocol=descriptor.protocol.name, host=settings.hostname, port=port
        )
        self.state = SessionState.UNOPENED

    @property
    def host(self) -> str:
        return self._settings.hostname

    @property
    def port(self) -> int:
        return self._port

    @property
    def descriptor(self) -> ProtocolDescriptor:
        return self._descriptor

    @property
    def protocol_name(self) -> str:
        return self._descriptor.protocol.name

    def __enter__(self):
        if self.state is not SessionState.UNOPENED:
            raise RuntimeError(f"Session already used (state={self.state.value})")
        self.state = SessionState.OPENING
        self._logger.info(
            "connect_attempt",
            ssl=self._descriptor.use_ssl,
            starttls=self._descriptor.use_starttls,
        )
        try:
            self._open()
        except self.errors as exc:
            self.state = SessionState.CLOSED
            raise self._connect_error(exc) from exc
        except BaseException:
            self.state = SessionState.CLOSED
            raise
        self.state = SessionState.OPEN
        self._logger.info("connected")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSING
        try:
            self._close()
        except self.errors as close_exc:
            self._logger.warning("close_failed", error=str(close_exc))
        finally:
            self.state = SessionState.CLOSED
            self._logger.debug("closed")

    # Hooks ---------------------------------------------------------------
    def _open(self) -> None:  # pragma: no cover - abstract
        raise NotImplementedError

    def _close(self) -> None:  # pragma: no cover - abstract
        raise NotImplementedError

    # Error mapping -------------------------------------------------------
    def _connect_error(self, exc: BaseException) -> MailConnectionError:
        """Translate a failure raised while opening the connection."""

        text = str(exc)
        if not self._descriptor.is_store or not _SMTP_GREETING.search(text):
            self._logger.error("connect_failed", error=text)
            return MailConnectionError(
                f"Connection to {self.protocol_name} server {self.host}:{self.port} failed: {text}",
                host=self.host,
                port=self.port,
                protocol=self._descriptor.protocol.value,
            )
        self._logger.error("greeting_mismatch", error=text)
        return GreetingMismatchError(
            f"The server at {self.host}:{self.port} responded with an SMTP greeting, "
            f"but {self.protocol_name} was expected. Check the configured store port "
            "(supported: 143 IMAP, 993 IMAP SSL, 110 POP3, 995 POP3 SSL).",
            host=self.host,
            port=self.port,
            protocol=self._descriptor.protocol.value,
        )

    @contextlib.contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        """Translate library errors raised by ``action`` into :class:`MailConnectionError`."""

        try:
            yield
        except MailConnectionError:
            raise
        except self.errors as exc:
            raise MailConnectionError(
                f"{self.protocol_name} {action} failed on {self.host}:{self.port}: {exc}",
                host=self.host,
                port=self.port,
                protocol=self._descriptor.protocol.value,
            ) from exc


__all__ = [
    "FolderHandle",
    "GreetingMismatchError",
    "MailConnectionError",
    "MessageId",
    "ScopedSession",
    "SessionState",
    "StoreSession",
    "TransportSession",
]
