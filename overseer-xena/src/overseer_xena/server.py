"""TCP server exposing a chassis emulator.

Serves a :class:`~overseer_xena.emulator.ChassisEmulator` on a TCP port so
that :func:`~overseer_xena.connection.connect`, telnet or netcat can talk to
it like a real chassis. Each client gets its own emulator session; all
clients share the reservation state.

Example:
    Start an emulator server on an ephemeral port::

        from overseer_xena import EmulatorServer, connect, make_chassis_emulator

        server = EmulatorServer(make_chassis_emulator(), port=0)
        server.start()

        host, port = server.address
        with connect(f"{host}:{port}") as conn:
            print(conn.list_interfaces().as_dict())

        server.stop()
"""

from __future__ import annotations

import logging
import socketserver
import threading
from typing import Any

from overseer_xena.emulator import ChassisEmulator

logger = logging.getLogger(__name__)


class _ChassisRequestHandler(socketserver.StreamRequestHandler):
    """Handle one TCP client, answering each line through its emulator session."""

    server: _ChassisTcpServer

    def handle(self) -> None:
        session = self.server.chassis.open_session()
        logger.debug("Client connected: %s", self.client_address)
        for raw_line in self.rfile:
            line = raw_line.decode("utf-8", errors="replace")
            replies = session.handle_line(line)
            if replies:
                self.wfile.write("".join(reply + "\n" for reply in replies).encode("utf-8"))
                self.wfile.flush()
            if session.closed:
                break
        logger.debug("Client disconnected: %s", self.client_address)


class _ChassisTcpServer(socketserver.ThreadingTCPServer):
    """Threading TCP server holding the shared chassis emulator."""

    allow_reuse_address = True
    daemon_threads = True

    def __init__(
        self,
        server_address: tuple[str, int],
        chassis: ChassisEmulator,
        **kwargs: Any,
    ) -> None:
        self.chassis = chassis
        super().__init__(server_address, _ChassisRequestHandler, **kwargs)


class EmulatorServer:
    """TCP server wrapping a :class:`ChassisEmulator` for external access.

    Runs in a background daemon thread and accepts any number of concurrent
    clients.

    Args:
        chassis: The emulator to serve.
        host: Bind address (default ``"127.0.0.1"``).
        port: Bind port (default ``22606``). Use ``0`` for an OS-assigned
            ephemeral port.
    """

    def __init__(
        self,
        chassis: ChassisEmulator,
        host: str = "127.0.0.1",
        port: int = 22606,
    ) -> None:
        self._server = _ChassisTcpServer((host, port), chassis)
        self._thread: threading.Thread | None = None

    @property
    def chassis(self) -> ChassisEmulator:
        return self._server.chassis

    def start(self) -> None:
        """Start serving in a daemon thread."""
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info("Chassis emulator listening on %s:%s", *self.address)

    def stop(self) -> None:
        """Shut down the server and wait for the thread to exit."""
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join()
            self._thread = None
        self._server.server_close()

    @property
    def address(self) -> tuple[str, int]:
        """Return the actual bound ``(host, port)`` address."""
        addr = self._server.server_address
        return (str(addr[0]), int(addr[1]))

    def __enter__(self) -> EmulatorServer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
