"""Socket address parsing for chassis connections.

Addresses are written ``ip:port`` with IPv6 hosts in brackets::

    192.168.1.50:22606
    [fe80::1]:22606

Host names are not resolved; the host part must be an IP literal.
"""

from __future__ import annotations

import ipaddress

from overseer_core.errors import AddressParseError

DEFAULT_PORT = 22606
"""TCP port of the chassis scripting interface."""


def parse_address(text: str) -> tuple[str, int]:
    """Parse ``ip:port`` text into a ``(host, port)`` tuple.

    Args:
        text: Address text as typed by the user.

    Returns:
        The normalized IP string and the port number.

    Raises:
        AddressParseError: If the text is not an IP literal followed by a
            decimal port in 0-65535.

    Example:
        >>> parse_address("[::1]:22606")
        ('::1', 22606)
    """
    if text != text.strip() or ":" not in text:
        raise AddressParseError(f"Invalid socket address: {text!r}")

    if text.startswith("["):
        host_part, sep, port_part = text[1:].partition("]:")
        if not sep:
            raise AddressParseError(f"Invalid socket address: {text!r}")
        version = 6
    else:
        host_part, _, port_part = text.rpartition(":")
        version = 4

    try:
        host = ipaddress.ip_address(host_part)
    except ValueError as exc:
        raise AddressParseError(f"Invalid IP address in {text!r}") from exc
    if host.version != version:
        raise AddressParseError(f"Invalid socket address: {text!r}")

    if not port_part.isascii() or not port_part.isdigit():
        raise AddressParseError(f"Invalid port in {text!r}")
    port = int(port_part)
    if port > 65535:
        raise AddressParseError(f"Port out of range in {text!r}")

    return str(host), port


def format_address(address: tuple[str, int]) -> str:
    """Format a ``(host, port)`` tuple back into address text."""
    host, port = address
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
