"""Logged-on chassis session over a byte transport.

A :class:`Session` performs one wire exchange at a time: the logon
handshake, the reservation query, reservation commands, and logoff. It is not
thread-safe; :class:`~overseer_xena.actor.SessionActor` owns it and
serializes all access.

Typical usage::

    transport = SocketTransport.connect(("192.168.1.50", 22606))
    session = Session.establish(transport, SessionConfig())
    interfaces = session.list_interfaces()
    session.reservation("RESERVE", 0, 1)
    session.logoff()
    session.close()
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from overseer_core.errors import (
    AuthenticationError,
    ChassisIOError,
    NotAcknowledgedError,
    ProtocolParseError,
    ResponseTimeoutError,
)
from overseer_core.types.reservation import Interfaces

from overseer_xena import codec
from overseer_xena.config import SessionConfig

if TYPE_CHECKING:
    from overseer_xena.transport import LineTransport

logger = logging.getLogger(__name__)


class Session:
    """Chassis session that owns a transport.

    Args:
        transport: An open transport. The session takes ownership.
        timeout: Seconds allowed for each complete line to arrive.
    """

    def __init__(self, transport: LineTransport, *, timeout: float = 5.0) -> None:
        self._transport = transport
        self._timeout = timeout
        self._buffer = codec.LineBuffer()
        self._logged_on = False

    @classmethod
    def establish(cls, transport: LineTransport, config: SessionConfig) -> Session:
        """Create a session and perform the logon handshake.

        The transport is closed if the handshake fails.

        Raises:
            AuthenticationError: If the chassis rejects the logon or owner.
            ChassisIOError: If the transport fails or times out.
        """
        session = cls(transport, timeout=config.timeout)
        try:
            session.logon(config.password, config.owner)
        except BaseException:
            session.close()
            raise
        return session

    @property
    def logged_on(self) -> bool:
        """True after a successful :meth:`logon`."""
        return self._logged_on

    # -- Line I/O ------------------------------------------------------------

    def _send(self, data: bytes) -> None:
        logger.debug("-> %r", data)
        self._transport.send(data)

    def _read_line(self) -> str:
        """Return the next complete line, reading from the transport as needed."""
        deadline = time.monotonic() + self._timeout
        while True:
            line = self._buffer.pop_line()
            if line is not None:
                logger.debug("<- %r", line)
                return line
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ResponseTimeoutError(
                    f"No complete line from chassis within {self._timeout:.3g}s"
                )
            chunk = self._transport.recv(remaining)
            if not chunk:
                raise ChassisIOError("Connection closed by chassis")
            self._buffer.feed(chunk)

    def _read_handshake_reply(self, step: str) -> str:
        try:
            return self._read_line()
        except ProtocolParseError as exc:
            raise AuthenticationError(f"Chassis rejected {step}: {exc}", exc.line) from exc

    # -- Operations ----------------------------------------------------------

    def logon(self, password: str, owner: str) -> None:
        """Log on and claim ownership.

        Raises:
            AuthenticationError: If either reply is not ``<OK>`` or is not valid UTF-8.
        """
        self._send(codec.encode_logon(password))
        reply = self._read_handshake_reply("logon")
        if not codec.is_ok(reply):
            raise AuthenticationError(f"Chassis rejected logon: {reply!r}", reply)

        self._send(codec.encode_owner(owner))
        reply = self._read_handshake_reply(f"owner {owner!r}")
        if not codec.is_ok(reply):
            raise AuthenticationError(f"Chassis rejected owner {owner!r}: {reply!r}", reply)

        self._logged_on = True
        logger.info("Logged on as %s", owner)

    def list_interfaces(self) -> Interfaces:
        """Query the reservation state of every port.

        Returns:
            A snapshot built only from this query's lines.

        Raises:
            ProtocolParseError: If any line of the response is malformed. The
                response is still read up to its sync marker.
            ChassisIOError: If the transport fails or times out.
        """
        self._send(codec.encode_query())
        decoder = codec.ReservationDecoder()
        while True:
            try:
                line = self._read_line()
            except ProtocolParseError as exc:
                decoder.fail(exc)
                continue
            if decoder.feed_line(line):
                return decoder.result()

    def reservation(self, verb: str, module: int, port: int) -> None:
        """Send one reservation command and wait for its acknowledgement.

        Args:
            verb: ``RESERVE``, ``RELEASE`` or ``RELINQUISH``.
            module: Module id.
            port: Port id.

        Raises:
            NotAcknowledgedError: If the reply is not ``<OK>`` or is not valid UTF-8.
            ChassisIOError: If the transport fails or times out.
        """
        command = codec.reservation_command(verb, module, port)
        self._send(codec.encode_reservation(verb, module, port))
        try:
            reply = self._read_line()
        except ProtocolParseError as exc:
            raise NotAcknowledgedError(command, exc.line or "") from exc
        if not codec.is_ok(reply):
            raise NotAcknowledgedError(command, reply)

    def logoff(self) -> None:
        """Send ``C_LOGOFF`` without waiting for a reply.

        Failures are logged and swallowed.
        """
        try:
            self._send(codec.encode_logoff())
        except ChassisIOError as exc:
            logger.warning("Logoff failed: %s", exc)
        self._logged_on = False

    def close(self) -> None:
        """Close the underlying transport."""
        self._transport.close()
