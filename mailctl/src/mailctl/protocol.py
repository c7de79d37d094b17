"""Port-driven protocol and transport-security inference.

What:
  Map a bare port number onto the wire protocol (IMAP, POP3, SMTP) and the
  transport-security mode (plaintext, implicit TLS, STARTTLS) used to reach a
  mail server.

Why:
  Operators only configure host and port numbers. Deriving everything else
  from the port keeps configuration files short, but an unknown store port
  would otherwise surface later as an ambiguous network failure. Store ports
  therefore fail fast, while SMTP relays in sandboxes routinely listen on
  arbitrary ports and are accepted with a caveat.

How:
  Two pure lookup functions return immutable :class:`ProtocolDescriptor`
  values. :func:`resolve_store` raises :class:`UnsupportedPortError` for any
  port outside the known table; :func:`resolve_smtp` never raises and records
  a caveat when it falls back to plaintext.

Interfaces:
  :class:`Protocol`, :class:`ProtocolDescriptor`, :class:`UnsupportedPortError`,
  :func:`resolve_store`, :func:`resolve_smtp`.

Invariants & Safety:
  - Both functions are deterministic and perform no I/O besides logging.
  - Store protocols never negotiate STARTTLS; only SMTP 587 does.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

LOGGER = logging.getLogger("mailctl.protocol")


class Protocol(str, Enum):
    """Wire protocols understood by the session layer."""

    IMAP = "imap"
    POP3 = "pop3"
    SMTP = "smtp"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProtocolDescriptor:
    """Resolved protocol and security mode for one connection attempt.

    Attributes:
      protocol: Wire protocol to speak.
      use_ssl: Whether the socket is wrapped in TLS from the first byte.
      use_starttls: Whether a plaintext connection is upgraded with STARTTLS.
      caveat: Human-readable note when the mapping is a fallback rather than
        a known port.
    """

    protocol: Protocol
    use_ssl: bool = False
    use_starttls: bool = False
    caveat: Optional[str] = None

    @property
    def is_store(self) -> bool:
        return self.protocol in (Protocol.IMAP, Protocol.POP3)


class UnsupportedPortError(ValueError):
    """Raised when a store port is not one of the known IMAP/POP3 ports.

    What:
      Configuration error signalling that no protocol can be inferred for the
      requested store port.

    Why:
      Guessing a protocol for an unknown port leads to confusing greeting or
      TLS errors deep inside a session; refusing up front points the operator
      at the misconfigured value instead.

    How:
      Subclasses :class:`ValueError` and keeps the offending ``port`` for
      callers that want to render it.
    """

    def __init__(self, port: int) -> None:
        self.port = port
        supported = ", ".join(
            f"{number} ({label})" for number, label in _STORE_PORT_LABELS
        )
        super().__init__(f"Unsupported IMAP/POP3 port: {port}. Supported ports: {supported}")


_STORE_PORTS: Dict[int, ProtocolDescriptor] = {
    143: ProtocolDescriptor(Protocol.IMAP, use_ssl=False),
    3143: ProtocolDescriptor(Protocol.IMAP, use_ssl=False),
    993: ProtocolDescriptor(Protocol.IMAP, use_ssl=True),
    3993: ProtocolDescriptor(Protocol.IMAP, use_ssl=True),
    110: ProtocolDescriptor(Protocol.POP3, use_ssl=False),
    995: ProtocolDescriptor(Protocol.POP3, use_ssl=True),
}

_STORE_PORT_LABELS: Tuple[Tuple[int, str], ...] = (
    (143, "IMAP"),
    (993, "IMAP SSL"),
    (110, "POP3"),
    (995, "POP3 SSL"),
    (3143, "IMAP test"),
    (3993, "IMAP SSL test"),
)

_SMTP_PORTS: Dict[int, ProtocolDescriptor] = {
    25: ProtocolDescriptor(Protocol.SMTP),
    587: ProtocolDescriptor(Protocol.SMTP, use_starttls=True),
    465: ProtocolDescriptor(Protocol.SMTP, use_ssl=True),
}


def resolve_store(port: int) -> ProtocolDescriptor:
    """Resolve an IMAP or POP3 port into its :class:`ProtocolDescriptor`.

    What:
      Looks ``port`` up in the fixed store-port table.

    Why:
      Store access must never start against an unknown port; the lookup is the
      single place where that contract is enforced.

    How:
      Returns the shared immutable descriptor for known ports and raises for
      everything else.

    Args:
      port: Configured store port.

    Returns:
      Descriptor with ``protocol`` set to IMAP or POP3.

    Raises:
      UnsupportedPortError: If ``port`` is not a known store port.
    """

    try:
        return _STORE_PORTS[port]
    except KeyError:
        raise UnsupportedPortError(port) from None


def resolve_smtp(port: int) -> ProtocolDescriptor:
    """Resolve an SMTP port, falling back to plaintext for unknown ports.

    Standard ports map to plain (25), STARTTLS (587) and implicit TLS (465).
    Any other port is accepted as plaintext and the returned descriptor
    carries a ``caveat`` describing the fallback.
    """

    descriptor = _SMTP_PORTS.get(port)
    if descriptor is not None:
        return descriptor
    caveat = (
        f"Unusual SMTP port {port}; standard ports are 25 (SMTP), "
        "587 (SMTP STARTTLS), 465 (SMTP SSL). No security upgrade applied."
    )
    LOGGER.warning(caveat)
    return ProtocolDescriptor(Protocol.SMTP, caveat=caveat)


__all__ = [
    "Protocol",
    "ProtocolDescriptor",
    "UnsupportedPortError",
    "resolve_store",
    "resolve_smtp",
]
