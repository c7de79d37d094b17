"""SMTP transport adapter."""

from .client import SmtpSession, compose

__all__ = ["SmtpSession", "compose"]
