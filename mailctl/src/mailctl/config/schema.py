"""Pydantic models describing mailctl connection settings."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class MailSettings(BaseModel):
    """Immutable connection settings shared by every operation.

    ``imap_port`` is the store port and may point at an IMAP or a POP3
    server; the protocol is inferred from its value when an operation runs.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    hostname: str
    imap_port: int
    smtp_port: int
    user: str
    password: SecretStr
    timeout: float = Field(default=30.0, gt=0)
    verify_tls: bool = True

    @field_validator("hostname", "user")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator("password")
    @classmethod
    def _password_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("must not be blank")
        return value


__all__ = ["MailSettings"]
