"""SMTP transport session built on :mod:`smtplib`.

What:
  Connect to the configured relay with the security mode inferred from the
  SMTP port, authenticate when the relay advertises ``AUTH``, and submit one
  plain-text message per call to :meth:`SmtpSession.send`.

How:
  Port 465 uses :class:`smtplib.SMTP_SSL`; every other port starts in
  plaintext and 587 upgrades with ``STARTTLS`` before ``AUTH``. Relays that
  advertise no ``AUTH`` (local sandboxes such as MailHog) get the message
  unauthenticated. The message is composed as an
  :class:`email.message.EmailMessage` with ``From`` set to the configured user.
"""
from __future__ import annotations

import contextlib
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from ..core.models import MessageDraft
from ..session import ScopedSession


def compose(sender: str, draft: MessageDraft) -> EmailMessage:
    """Build the MIME message sent for ``draft``."""

    message = EmailMessage()
    message["From"] = sender
    message["To"] = draft.to
    message["Subject"] = draft.subject
    message.set_content(draft.body)
    return message


class SmtpSession(ScopedSession):
    """Context manager owning one :class:`smtplib.SMTP` connection."""

    errors = (smtplib.SMTPException, OSError, ValueError)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._client: Optional[smtplib.SMTP] = None

    @property
    def client(self) -> smtplib.SMTP:
        if self._client is None:
            raise RuntimeError("SMTP client not connected")
        return self._client

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self._settings.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _open(self) -> None:
        timeout = self._settings.timeout
        if self._descriptor.use_ssl:
            client: smtplib.SMTP = smtplib.SMTP_SSL(
                self.host, self.port, timeout=timeout, context=self._ssl_context()
            )
        else:
            client = smtplib.SMTP(self.host, self.port, timeout=timeout)
        try:
            if self._descriptor.use_starttls:
                client.starttls(context=self._ssl_context())
            client.ehlo_or_helo_if_needed()
            if client.has_extn("auth"):
                client.login(self._settings.user, self._settings.password.get_secret_value())
            else:
                self._logger.info("smtp_auth_skipped")
        except BaseException:
            with contextlib.suppress(*self.errors):
                client.close()
            raise
        self._client = client

    def _close(self) -> None:
        if self._client is None:
            return
        try:
            self._client.quit()
        finally:
            self._client = None

    def send(self, draft: MessageDraft) -> None:
        """Submit ``draft`` to the relay.

        Raises:
          MailConnectionError: If the relay rejects the message or the
            connection drops.
        """

        with self._guard("send"):
            message = compose(self._settings.user, draft)
            self.client.send_message(message)
        self._logger.info("message_sent", to=draft.to, subject=draft.subject)


__all__ = ["SmtpSession", "compose"]
