"""
Module: tests/unit/test_protocol.py

What:
    Validate the port tables used to infer the store and SMTP protocols and
    their transport-security modes.

Why:
    An unknown store port must fail before any network attempt, while SMTP
    accepts arbitrary sandbox ports with a caveat. Regressions here surface as
    confusing TLS or greeting errors deep inside a session.

How:
    Parametrised lookups over every known port plus representative unknown
    ports, asserting on descriptor values, raised errors and log output.

Interfaces:
    test_resolve_store_known_ports, test_resolve_store_rejects_unknown_port,
    test_resolve_smtp_standard_ports, test_resolve_smtp_accepts_unusual_port

Invariants & Safety Rules:
    - Store resolution never guesses.
    - SMTP resolution never raises.
"""

import logging

import pytest

from mailctl.protocol import (
    Protocol,
    ProtocolDescriptor,
    UnsupportedPortError,
    resolve_smtp,
    resolve_store,
)


@pytest.mark.parametrize(
    ("port", "protocol", "use_ssl"),
    [
        (143, Protocol.IMAP, False),
        (3143, Protocol.IMAP, False),
        (993, Protocol.IMAP, True),
        (3993, Protocol.IMAP, True),
        (110, Protocol.POP3, False),
        (995, Protocol.POP3, True),
    ],
)
def test_resolve_store_known_ports(port: int, protocol: Protocol, use_ssl: bool) -> None:
    descriptor = resolve_store(port)

    assert descriptor.protocol is protocol
    assert descriptor.use_ssl is use_ssl
    assert descriptor.use_starttls is False
    assert descriptor.is_store


@pytest.mark.parametrize("port", [0, 25, 587, 8080, 9999])
def test_resolve_store_rejects_unknown_port(port: int) -> None:
    """
    What:
        Unknown store ports raise :class:`UnsupportedPortError`.

    Why:
        Fail-fast configuration errors must be distinguishable from network
        failures and must name the supported ports for the operator.
    """

    with pytest.raises(UnsupportedPortError) as excinfo:
        resolve_store(port)

    assert excinfo.value.port == port
    assert isinstance(excinfo.value, ValueError)
    message = str(excinfo.value)
    assert f"Unsupported IMAP/POP3 port: {port}" in message
    for supported in ("143", "993", "110", "995"):
        assert supported in message


@pytest.mark.parametrize(
    ("port", "use_ssl", "use_starttls"),
    [(25, False, False), (587, False, True), (465, True, False)],
)
def test_resolve_smtp_standard_ports(port: int, use_ssl: bool, use_starttls: bool) -> None:
    descriptor = resolve_smtp(port)

    assert descriptor == ProtocolDescriptor(Protocol.SMTP, use_ssl=use_ssl, use_starttls=use_starttls)
    assert descriptor.caveat is None
    assert not descriptor.is_store


def test_resolve_smtp_accepts_unusual_port(caplog: pytest.LogCaptureFixture) -> None:
    """Non-standard SMTP ports degrade to plaintext and log the caveat."""

    with caplog.at_level(logging.WARNING, logger="mailctl.protocol"):
        descriptor = resolve_smtp(1025)

    assert descriptor.protocol is Protocol.SMTP
    assert descriptor.use_ssl is False
    assert descriptor.use_starttls is False
    assert descriptor.caveat is not None and "1025" in descriptor.caveat
    assert "Unusual SMTP port 1025" in caplog.text


def test_resolution_is_deterministic() -> None:
    assert resolve_store(993) == resolve_store(993)
    assert resolve_smtp(2525) == resolve_smtp(2525)
