"""Tests for connect() with injected transports."""

from __future__ import annotations

import threading

import pytest

from overseer_core.errors import AddressParseError, AuthenticationError, ChassisIOError

from overseer_xena.config import SessionConfig
from overseer_xena.connection import connect
from overseer_xena.transport import SocketTransport


class HandshakeTransport:
    """Transport replying to the logon and owner lines with fixed replies."""

    def __init__(self, replies: list[bytes]) -> None:
        self.replies = list(replies)
        self.written: list[bytes] = []
        self.closed = False
        self._pending: list[bytes] = []

    def send(self, data: bytes) -> None:
        self.written.append(data)
        if data.startswith((b"C_LOGON", b"C_OWNER")) and self.replies:
            self._pending.append(self.replies.pop(0))
        elif data.startswith(b"0/"):
            self._pending.append(b"<OK>\n")

    def recv(self, timeout: float) -> bytes:
        if not self._pending:
            return b""
        return self._pending.pop(0)

    def close(self) -> None:
        self.closed = True


def _actor_threads(address: str) -> list[threading.Thread]:
    return [t for t in threading.enumerate() if t.name == f"overseer-{address}"]


class TestConnect:
    """Tests for connect()."""

    def test_factory_receives_address_and_timeout(self) -> None:
        calls: list[tuple[tuple[str, int], float]] = []
        transport = HandshakeTransport([b"<OK>\n", b"<OK>\n"])

        def factory(address: tuple[str, int], timeout: float) -> HandshakeTransport:
            calls.append((address, timeout))
            return transport

        conn = connect(
            "10.0.0.7:22611", SessionConfig(connect_timeout=2.5), transport_factory=factory
        )
        try:
            assert calls == [(("10.0.0.7", 22611), 2.5)]
            assert conn.address == ("10.0.0.7", 22611)
            conn.lock_interface(0, 1)
        finally:
            conn.close()
        assert transport.written[:3] == [
            b'C_LOGON "xena"\n',
            b'C_OWNER "overseer"\n',
            b"0/1 P_RESERVATION RESERVE\n",
        ]

    def test_rejected_logon_closes_transport_without_actor(self) -> None:
        transport = HandshakeTransport([b"<ERR>\n"])
        with pytest.raises(AuthenticationError):
            connect("10.0.0.9:22606", transport_factory=lambda a, t: transport)
        assert transport.closed
        assert transport.written == [b'C_LOGON "xena"\n']
        assert _actor_threads("10.0.0.9:22606") == []

    def test_closed_during_handshake(self) -> None:
        transport = HandshakeTransport([])
        with pytest.raises(ChassisIOError):
            connect("10.0.0.7:22606", transport_factory=lambda a, t: transport)
        assert transport.closed

    def test_bad_address_opens_nothing(self) -> None:
        opened: list[object] = []
        with pytest.raises(AddressParseError):
            connect("chassis.lab:22606", transport_factory=lambda a, t: opened.append(a))
        assert opened == []

    def test_connection_refused(self) -> None:
        def refuse(address: tuple[str, int], timeout: float) -> HandshakeTransport:
            raise ChassisIOError("Failed to connect to 10.0.0.7:22606: refused")

        with pytest.raises(ChassisIOError, match="refused"):
            connect("10.0.0.7:22606", transport_factory=refuse)

    def test_socket_writes_bounded_by_io_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        opened: list[dict[str, object]] = []
        transport = HandshakeTransport([b"<OK>\n", b"<OK>\n"])

        def fake_connect(address: tuple[str, int], **kwargs: float) -> HandshakeTransport:
            opened.append({"address": address, **kwargs})
            return transport

        monkeypatch.setattr(SocketTransport, "connect", fake_connect)
        conn = connect("10.0.0.7:22612", SessionConfig(timeout=0.75, connect_timeout=3.0))
        conn.close()
        assert opened == [
            {"address": ("10.0.0.7", 22612), "timeout": 3.0, "write_timeout": 0.75}
        ]
