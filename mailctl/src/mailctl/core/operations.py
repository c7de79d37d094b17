"""Public mail operations: list folders, list messages, delete, send.

What:
  Expose :class:`MailOperations`, the orchestration surface consumed by the
  CLI. Every call resolves the protocol from the configured port, opens its
  own scoped session, performs one protocol exchange and releases the
  session before returning.

Why:
  Callers want a small synchronous API whose failures degrade predictably: a
  flaky server should yield "nothing found" or "did not happen" rather than a
  traceback, while configuration mistakes (unknown store port, delete without
  a filter) must surface immediately and distinctly.

How:
  Store operations call :func:`~mailctl.protocol.resolve_store` before any
  network activity so :class:`~mailctl.protocol.UnsupportedPortError`
  propagates untouched. Session work runs as a callable passed to
  :func:`~mailctl.connect.with_session`; any
  :class:`~mailctl.session.MailConnectionError` is logged at the point of
  failure and converted into ``[]`` or ``False``.

Interfaces:
  :class:`MailOperations`, :class:`MissingFilterError`.

Invariants & Safety:
  - No session is cached; operations share only immutable settings.
  - ``delete_messages`` never connects without a predicate.
  - Mark and expunge are two separate server steps; a failure between them
    leaves messages flagged but not removed.
"""
from __future__ import annotations

from typing import Callable, List, Optional, TypeVar

from ..config.schema import MailSettings
from ..connect import SessionFactory, open_session, with_session
from ..protocol import ProtocolDescriptor, resolve_smtp, resolve_store
from ..session import MailConnectionError
from ..utils.logging import JsonLogger, get_logger
from .models import MessageDraft, MessageSummary
from .predicates import SearchPredicate

T = TypeVar("T")


class MissingFilterError(ValueError):
    """Raised when a delete is requested without any filter."""

    def __init__(self, folder: str) -> None:
        self.folder = folder
        super().__init__(
            "At least one filter option must be specified to prevent accidental "
            f"deletion of all emails in folder: {folder}"
        )


def _listing(folder: str, predicate: Optional[SearchPredicate]) -> Callable[..., List[MessageSummary]]:
    def body(session) -> List[MessageSummary]:
        with session.folder(folder, readonly=True) as handle:
            return handle.fetch_summaries(handle.search(predicate))

    return body


def _purge(folder: str, predicate: SearchPredicate) -> Callable[..., list]:
    # An empty match set leaves the folder without marking or expunging.
    def body(session) -> list:
        with session.folder(folder, readonly=False) as handle:
            ids = handle.search(predicate)
            if ids:
                handle.mark_deleted(ids)
                handle.expunge()
            return ids

    return body


class MailOperations:
    """Run list/delete/send operations against the configured servers.

    What:
      Stateless facade over the session layer. Holds the validated settings, a
      session factory and a structured logger.

    Why:
      Injecting the factory lets tests substitute in-memory sessions and count
      connection attempts without patching network libraries.

    How:
      Each public method resolves a :class:`ProtocolDescriptor`, enters a
      session from ``session_factory`` and translates connection failures into
      safe default results.
    """

    def __init__(
        self,
        settings: MailSettings,
        *,
        session_factory: SessionFactory = open_session,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._settings = settings
        self._session_factory = session_factory
        self._logger = logger or get_logger("mailctl.operations")

    @property
    def settings(self) -> MailSettings:
        return self._settings

    def _store(self) -> ProtocolDescriptor:
        return resolve_store(self._settings.imap_port)

    def _run(self, descriptor: ProtocolDescriptor, body: Callable[..., T]) -> T:
        return with_session(
            self._settings,
            descriptor,
            body,
            factory=self._session_factory,
            logger=self._logger,
        )

    def list_folders(self) -> List[str]:
        """Return every folder name, or ``[]`` when the store is unavailable.

        Raises:
          UnsupportedPortError: If the store port is not a known IMAP/POP3 port.
        """

        descriptor = self._store()
        try:
            folders = self._run(descriptor, lambda session: session.list_folders())
        except MailConnectionError as exc:
            self._logger.error("list_folders_failed", error=str(exc))
            return []
        self._logger.info("folders_listed", count=len(folders))
        return folders

    def list_messages(
        self, folder: str, predicate: Optional[SearchPredicate] = None
    ) -> List[MessageSummary]:
        """List messages in ``folder``, optionally filtered by ``predicate``.

        What:
          Opens ``folder`` read-only, searches it and returns header summaries
          in store order.

        Why:
          ``None`` means "every message"; callers decide which empty-result
          message to show from whether they passed a predicate, never from the
          result shape.

        Args:
          folder: Folder to inspect.
          predicate: Filter evaluated by the store, or ``None`` for all.

        Returns:
          Matching summaries, ``[]`` on any connection or protocol error.

        Raises:
          UnsupportedPortError: If the store port is not a known IMAP/POP3 port.
        """

        descriptor = self._store()
        try:
            summaries = self._run(descriptor, _listing(folder, predicate))
        except MailConnectionError as exc:
            self._logger.error("list_messages_failed", folder=folder, error=str(exc))
            return []
        self._logger.info(
            "messages_listed",
            folder=folder,
            filtered=predicate is not None,
            count=len(summaries),
        )
        return summaries

    def delete_messages(self, folder: str, predicate: Optional[SearchPredicate]) -> bool:
        """Permanently delete messages in ``folder`` matching ``predicate``.

        What:
          Opens the folder read-write, searches, flags every match as deleted,
          expunges, then closes the folder and the store in that order.

        Why:
          Deleting a whole folder by omission is irreversible, so a missing
          predicate is rejected before any connection is attempted. An empty
          match set is not an error and leaves the folder untouched.

        Args:
          folder: Folder to purge.
          predicate: Required filter selecting the messages to remove.

        Returns:
          ``True`` when matches were marked and expunged; ``False`` when nothing
          matched or a connection/protocol error interrupted the sequence.

        Raises:
          MissingFilterError: If ``predicate`` is ``None``.
          UnsupportedPortError: If the store port is not a known IMAP/POP3 port.
        """

        if predicate is None:
            raise MissingFilterError(folder)
        descriptor = self._store()
        try:
            ids = self._run(descriptor, _purge(folder, predicate))
        except MailConnectionError as exc:
            self._logger.error("delete_messages_failed", folder=folder, error=str(exc))
            return False
        if not ids:
            self._logger.info("delete_nothing_matched", folder=folder)
            return False
        self._logger.info("messages_deleted", folder=folder, count=len(ids))
        return True

    def send(self, draft: MessageDraft) -> bool:
        """Send ``draft`` through the configured SMTP relay.

        Returns:
          ``True`` once the relay accepted the message, ``False`` on any
          messaging error.
        """

        descriptor = resolve_smtp(self._settings.smtp_port)
        if descriptor.caveat:
            self._logger.warning("smtp_port_caveat", port=self._settings.smtp_port, caveat=descriptor.caveat)
        try:
            self._run(descriptor, lambda session: session.send(draft))
        except MailConnectionError as exc:
            self._logger.error("send_failed", to=draft.to, error=str(exc))
            return False
        return True


__all__ = ["MailOperations", "MissingFilterError"]
