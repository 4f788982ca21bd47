"""Byte transports for the chassis line protocol.

This module defines the :class:`LineTransport` protocol the session reads and
writes through, and :class:`SocketTransport`, its TCP implementation.

Implementations include:
- :class:`SocketTransport`: TCP socket to a real chassis or an emulator server
- Scripted in-memory transports in the test suite
"""

from __future__ import annotations

import logging
import socket
from typing import Protocol

from overseer_core.errors import ChassisIOError, ResponseTimeoutError

logger = logging.getLogger(__name__)

_RECV_SIZE = 4096


class LineTransport(Protocol):
    """Protocol for the byte stream underneath a chassis session.

    This is a structural subtyping protocol. Any class that implements
    ``send()``, ``recv()`` and ``close()`` with these signatures can carry a
    :class:`~overseer_xena.session.Session`.
    """

    def send(self, data: bytes) -> None:
        """Write all of ``data``.

        Raises:
            ChassisIOError: If the write fails.
        """
        ...

    def recv(self, timeout: float) -> bytes:
        """Perform one read of whatever bytes are available.

        Args:
            timeout: Seconds to wait for data.

        Returns:
            The bytes read; may end mid-line. Empty at end of stream.

        Raises:
            ResponseTimeoutError: If nothing arrives within ``timeout``.
            ChassisIOError: If the read fails.
        """
        ...

    def close(self) -> None:
        """Close the transport and release resources."""
        ...


class SocketTransport:
    """TCP transport to a chassis.

    Args:
        sock: A connected stream socket. The transport takes ownership.
        write_timeout: Seconds allowed for each :meth:`send`.

    Example:
        >>> transport = SocketTransport.connect(("192.168.1.50", 22606), timeout=5.0)
        >>> transport.send(b"C_LOGOFF\\n")
        >>> transport.close()
    """

    def __init__(self, sock: socket.socket, *, write_timeout: float = 5.0) -> None:
        self._sock: socket.socket | None = sock
        self._write_timeout = write_timeout

    @property
    def write_timeout(self) -> float:
        """Seconds allowed for each :meth:`send`."""
        return self._write_timeout

    @classmethod
    def connect(
        cls,
        address: tuple[str, int],
        *,
        timeout: float = 5.0,
        write_timeout: float | None = None,
    ) -> SocketTransport:
        """Open a TCP connection to ``address``.

        Args:
            address: ``(host, port)`` of the chassis.
            timeout: Seconds allowed for the connect.
            write_timeout: Seconds allowed for each write; defaults to ``timeout``.

        Raises:
            ResponseTimeoutError: If the connection attempt times out.
            ChassisIOError: If the connection cannot be established.
        """
        try:
            sock = socket.create_connection(address, timeout=timeout)
        except socket.timeout as exc:
            raise ResponseTimeoutError(f"Timed out connecting to {address[0]}:{address[1]}") from exc
        except OSError as exc:
            raise ChassisIOError(f"Failed to connect to {address[0]}:{address[1]}: {exc}") from exc
        logger.debug("Connected socket to %s:%s", address[0], address[1])
        return cls(sock, write_timeout=timeout if write_timeout is None else write_timeout)

    @property
    def is_open(self) -> bool:
        """Return True until :meth:`close` is called."""
        return self._sock is not None

    def _socket(self) -> socket.socket:
        if self._sock is None:
            raise ChassisIOError("Socket transport is closed")
        return self._sock

    def send(self, data: bytes) -> None:
        sock = self._socket()
        try:
            sock.settimeout(self._write_timeout)
            sock.sendall(data)
        except socket.timeout as exc:
            raise ResponseTimeoutError("Timed out writing to chassis") from exc
        except OSError as exc:
            raise ChassisIOError(f"Failed to write to chassis: {exc}") from exc

    def recv(self, timeout: float) -> bytes:
        sock = self._socket()
        try:
            sock.settimeout(timeout)
            return sock.recv(_RECV_SIZE)
        except socket.timeout as exc:
            raise ResponseTimeoutError(f"No data from chassis within {timeout:.3g}s") from exc
        except OSError as exc:
            raise ChassisIOError(f"Failed to read from chassis: {exc}") from exc

    def close(self) -> None:
        """Close the socket. Safe to call multiple times."""
        if self._sock is None:
            return
        try:
            self._sock.close()
        finally:
            self._sock = None
