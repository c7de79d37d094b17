"""IMAP store session built on ``imapclient``.

What:
  Wrap the third-party ``imapclient`` library in a :class:`ScopedSession`
  that lists folders, selects a folder read-only or read-write, runs
  server-side searches, fetches header summaries and performs the
  mark-then-expunge delete sequence.

Why:
  Direct use of ``imapclient`` exposes sharp edges: ``CLOSE`` silently
  expunges a read-write folder, fetch keys come back as bytes, and library
  errors are a mix of ``imaplib`` and socket exceptions. Centralised
  guardrails keep IMAP usage predictable for the operations layer.

How:
  ``_open`` connects with the descriptor's TLS mode and logs in; ``folder``
  selects a mailbox and yields an :class:`ImapFolder`; leaving the folder
  deselects it without expunging (``UNSELECT`` when advertised, otherwise an
  ``EXAMINE`` followed by ``CLOSE``); ``_close`` logs out.

Interfaces:
  :class:`ImapSession`, :class:`ImapFolder`.

Invariants & Safety:
  - All operations run in UID mode; sequence numbers are never used.
  - Expunge only happens through an explicit :meth:`ImapFolder.expunge`.
"""
from __future__ import annotations

import contextlib
import ssl
from typing import Dict, Iterator, List, Optional, Sequence

from imapclient import DELETED, IMAPClient
from imapclient.exceptions import IMAPClientError

from ..core.models import MessageSummary, summary_from_headers
from ..core.predicates import SearchPredicate
from ..session import MailConnectionError, MessageId, ScopedSession, SessionState
from .search import ALL, build_search, search_charset

_FETCH_PARTS = ["BODY.PEEK[HEADER]", "FLAGS", "INTERNALDATE"]
_HEADER_KEYS = (b"BODY[HEADER]", b"BODY.PEEK[HEADER]", b"RFC822.HEADER")


def _decode(value: object) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


class ImapFolder:
    """A folder selected on an open :class:`ImapSession`."""

    def __init__(self, session: "ImapSession", name: str, *, readonly: bool) -> None:
        self._session = session
        self.name = name
        self.readonly = readonly

    def search(self, predicate: Optional[SearchPredicate]) -> List[MessageId]:
        """Run a UID search for ``predicate`` on the server.

        Args:
          predicate: Tree to translate, or ``None`` for every message.

        Returns:
          Matching UIDs in server order.
        """

        criteria = ALL if predicate is None else build_search(predicate)
        with self._session._guard("search"):
            return list(self._session.client.search(criteria, charset=search_charset(criteria)))

    def fetch_summaries(self, ids: Sequence[MessageId]) -> List[MessageSummary]:
        """Fetch header blocks, flags and internal dates for ``ids``."""

        if not ids:
            return []
        with self._session._guard("fetch"):
            response = self._session.client.fetch(list(ids), _FETCH_PARTS)
        summaries: List[MessageSummary] = []
        for uid in ids:
            data: Dict[bytes, object] = response.get(uid, {})
            if not data:
                continue
            header = next((data[key] for key in _HEADER_KEYS if key in data), b"")
            flags = tuple(_decode(flag) for flag in data.get(b"FLAGS", ()))
            summaries.append(
                summary_from_headers(
                    uid,
                    header if isinstance(header, bytes) else bytes(header),
                    flags=flags,
                    received_at=data.get(b"INTERNALDATE"),
                )
            )
        return summaries

    def mark_deleted(self, ids: Sequence[MessageId]) -> None:
        if self.readonly:
            raise RuntimeError(f"Folder {self.name!r} is open read-only")
        self._session.state = SessionState.MARKING
        with self._session._guard("store"):
            self._session.client.add_flags(list(ids), [DELETED])

    def expunge(self) -> None:
        if self.readonly:
            raise RuntimeError(f"Folder {self.name!r} is open read-only")
        self._session.state = SessionState.EXPUNGING
        with self._session._guard("expunge"):
            self._session.client.expunge()


class ImapSession(ScopedSession):
    """Context manager owning one ``imapclient.IMAPClient`` connection.

    What:
      Connects, authenticates and exposes the store operations used by
      :class:`~mailctl.core.operations.MailOperations`.

    Why:
      Keeps connection setup, TLS selection and teardown in one place so the
      orchestration code only deals with folders and messages.

    How:
      ``IMAPClient`` is created with ``ssl`` taken from the descriptor; a
      verifying TLS context is used unless ``verify_tls`` is disabled in the
      settings (self-signed test servers).
    """

    errors = (IMAPClientError, OSError, UnicodeError)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._client: Optional[IMAPClient] = None

    @property
    def client(self) -> IMAPClient:
        """Expose the underlying ``IMAPClient`` connection.

        Raises:
          RuntimeError: If accessed outside the ``with`` block.
        """

        if self._client is None:
            raise RuntimeError("IMAP client not connected")
        return self._client

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        if not self._descriptor.use_ssl:
            return None
        context = ssl.create_default_context()
        if not self._settings.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _open(self) -> None:
        client = IMAPClient(
            self.host,
            port=self.port,
            ssl=self._descriptor.use_ssl,
            ssl_context=self._ssl_context(),
            timeout=self._settings.timeout,
        )
        try:
            client.login(self._settings.user, self._settings.password.get_secret_value())
        except BaseException:
            with contextlib.suppress(*self.errors):
                client.shutdown()
            raise
        self._client = client

    def _close(self) -> None:
        if self._client is None:
            return
        try:
            self._client.logout()
        finally:
            self._client = None

    def list_folders(self) -> List[str]:
        """Return folder names as reported by ``LIST``."""

        with self._guard("list"):
            listing = self.client.list_folders()
        return [_decode(name) for _flags, _delimiter, name in listing]

    @contextlib.contextmanager
    def folder(self, name: str, *, readonly: bool = True) -> Iterator[ImapFolder]:
        """Select ``name`` for the duration of the ``with`` block.

        What:
          Selects (read-write) or examines (read-only) the folder and yields an
          :class:`ImapFolder`.

        How:
          Leaving the block deselects the folder without an implicit expunge,
          even when the body raised, before the session itself is closed.

        Args:
          name: Folder to open.
          readonly: Whether to open with ``EXAMINE`` semantics.

        Yields:
          Handle for searching and modifying messages in the folder.
        """

        with self._guard("select"):
            self.client.select_folder(name, readonly=readonly)
        try:
            yield ImapFolder(self, name, readonly=readonly)
        finally:
            self._deselect(name, readonly=readonly)

    def _deselect(self, name: str, *, readonly: bool) -> None:
        try:
            with self._guard("close folder"):
                if self.client.has_capability("UNSELECT"):
                    self.client.unselect_folder()
                    return
                if not readonly:
                    # CLOSE expunges a read-write mailbox; re-examine first.
                    self.client.select_folder(name, readonly=True)
                self.client.close_folder()
        except MailConnectionError as exc:
            self._logger.warning("folder_close_failed", folder=name, error=str(exc))


__all__ = ["ImapFolder", "ImapSession"]
