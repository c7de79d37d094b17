"""POP3 store session built on :mod:`poplib`.

What:
  Present a POP3 maildrop through the same folder interface as IMAP: a single
  ``INBOX`` folder that can be searched, summarised and purged.

Why:
  POP3 has no folders, no flags and no server-side search, yet the store port
  may legitimately point at a POP3 server (110/995). Emulating the missing
  pieces locally lets the operations layer stay protocol-agnostic.

How:
  Searching downloads each message's header block with ``TOP n 0`` and
  evaluates the predicate with :func:`~mailctl.core.predicates.matches`; the
  full message is retrieved only when the predicate inspects body text.
  ``DELE`` marks messages, and deletions are committed by ``QUIT``. Closing a
  folder that was never expunged sends ``RSET`` first so marks are discarded.

Interfaces:
  :class:`Pop3Session`, :class:`Pop3Folder`, :data:`INBOX`.

Invariants & Safety:
  - POP3 servers keep no read state; every message counts as unread.
  - Nothing is removed unless :meth:`Pop3Folder.expunge` was called.
"""
from __future__ import annotations

import contextlib
import poplib
import ssl
from email import policy
from email.parser import BytesParser
from typing import Dict, Iterator, List, Optional, Sequence

from ..core.models import MessageSummary, summary_from_headers
from ..core.predicates import SearchPredicate, matches, needs_body
from ..session import MailConnectionError, MessageId, ScopedSession, SessionState

INBOX = "INBOX"


def _body_text(raw: bytes) -> str:
    message = BytesParser(policy=policy.default).parsebytes(raw)
    part = message.get_body(preferencelist=("plain", "html"))
    if part is None:
        return ""
    try:
        return part.get_content()
    except (LookupError, ValueError):
        return ""


class Pop3Folder:
    """The maildrop of an open :class:`Pop3Session`, exposed as ``INBOX``."""

    def __init__(self, session: "Pop3Session", *, readonly: bool) -> None:
        self._session = session
        self.name = INBOX
        self.readonly = readonly
        self._summaries: Dict[int, MessageSummary] = {}

    def _summary(self, number: int) -> MessageSummary:
        cached = self._summaries.get(number)
        if cached is None:
            with self._session._guard("top"):
                _, lines, _ = self._session.client.top(number, 0)
            cached = summary_from_headers(number, b"\r\n".join(lines) + b"\r\n")
            self._summaries[number] = cached
        return cached

    def _body(self, number: int) -> str:
        with self._session._guard("retr"):
            _, lines, _ = self._session.client.retr(number)
        return _body_text(b"\r\n".join(lines))

    def search(self, predicate: Optional[SearchPredicate]) -> List[MessageId]:
        """Return message numbers matching ``predicate``, evaluated locally."""

        with self._session._guard("stat"):
            count, _ = self._session.client.stat()
        numbers = list(range(1, count + 1))
        if predicate is None:
            return numbers
        with_body = needs_body(predicate)
        result: List[MessageId] = []
        for number in numbers:
            body = self._body(number) if with_body else None
            if matches(predicate, self._summary(number), body):
                result.append(number)
        return result

    def fetch_summaries(self, ids: Sequence[MessageId]) -> List[MessageSummary]:
        return [self._summary(int(number)) for number in ids]

    def mark_deleted(self, ids: Sequence[MessageId]) -> None:
        if self.readonly:
            raise RuntimeError("POP3 maildrop is open read-only")
        self._session.state = SessionState.MARKING
        with self._session._guard("dele"):
            for number in ids:
                self._session.client.dele(int(number))
        self._session._pending_deletes = True

    def expunge(self) -> None:
        if self.readonly:
            raise RuntimeError("POP3 maildrop is open read-only")
        # Deletions are applied when QUIT ends the transaction.
        self._session.state = SessionState.EXPUNGING
        self._session._commit = True


class Pop3Session(ScopedSession):
    """Context manager owning one :class:`poplib.POP3` connection."""

    errors = (poplib.error_proto, OSError)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._client: Optional[poplib.POP3] = None
        self._pending_deletes = False
        self._commit = False

    @property
    def client(self) -> poplib.POP3:
        if self._client is None:
            raise RuntimeError("POP3 client not connected")
        return self._client

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self._settings.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _open(self) -> None:
        if self._descriptor.use_ssl:
            client: poplib.POP3 = poplib.POP3_SSL(
                self.host, self.port, timeout=self._settings.timeout, context=self._ssl_context()
            )
        else:
            client = poplib.POP3(self.host, self.port, timeout=self._settings.timeout)
        try:
            client.user(self._settings.user)
            client.pass_(self._settings.password.get_secret_value())
        except BaseException:
            with contextlib.suppress(*self.errors):
                client.close()
            raise
        self._client = client

    def _close(self) -> None:
        if self._client is None:
            return
        try:
            if self._pending_deletes and not self._commit:
                self._client.rset()
            self._client.quit()
        finally:
            self._client = None

    def list_folders(self) -> List[str]:
        return [INBOX]

    @contextlib.contextmanager
    def folder(self, name: str, *, readonly: bool = True) -> Iterator[Pop3Folder]:
        """Open the maildrop; only ``INBOX`` exists on a POP3 server.

        Raises:
          MailConnectionError: If ``name`` is not ``INBOX``.
        """

        if name.upper() != INBOX:
            raise MailConnectionError(
                f"POP3 only provides the {INBOX} folder, not {name!r}",
                host=self.host,
                port=self.port,
                protocol=self._descriptor.protocol.value,
            )
        yield Pop3Folder(self, readonly=readonly)


__all__ = ["INBOX", "Pop3Folder", "Pop3Session"]
