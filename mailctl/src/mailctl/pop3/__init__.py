"""POP3 maildrop adapter exposing a single ``INBOX`` folder."""

from .client import INBOX, Pop3Folder, Pop3Session

__all__ = ["INBOX", "Pop3Folder", "Pop3Session"]
