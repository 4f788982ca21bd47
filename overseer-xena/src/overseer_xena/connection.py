"""Shareable connection handle to a chassis session actor.

:func:`connect` opens the socket, logs on, starts a
:class:`~overseer_xena.actor.SessionActor` and returns a :class:`Connection`.
The connection only holds the sending side of the actor's mailbox, so it can
be cloned and used from any number of threads; every call blocks until the
actor has executed its command.

Typical usage::

    from overseer_xena import Lock, connect

    with connect("192.168.1.50:22606") as conn:
        interfaces = conn.list_interfaces()
        current = interfaces.lock_of(0, 1)
        conn.lock_action_on(current, 0, 1)
        interfaces = conn.list_interfaces()  # re-query for the new state

The actor stops when :meth:`Connection.close` is called on any clone or when
the last clone is garbage collected. Actors still running at interpreter
exit are stopped by an :mod:`atexit` hook that waits a bounded time for each
to log off.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import TYPE_CHECKING, Any, Callable

from overseer_core.errors import InternalConsistencyError
from overseer_core.types.reservation import Interfaces, Lock

from overseer_xena.actor import (
    Command,
    ListInterfaces,
    LockInterface,
    Mailbox,
    RelinquishInterface,
    SessionActor,
    UnlockInterface,
    command_for,
)
from overseer_xena.address import format_address, parse_address
from overseer_xena.config import SessionConfig
from overseer_xena.session import Session
from overseer_xena.transport import SocketTransport

if TYPE_CHECKING:
    from overseer_xena.transport import LineTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[tuple[str, int], float], "LineTransport"]


class CommandSender:
    """Sending side of an actor mailbox, shared by all clones of a connection.

    When this object is garbage collected, or :meth:`close` is called, the
    actor is asked to shut down after the commands already queued.

    Args:
        mailbox: The actor's mailbox.
        address: ``(host, port)`` of the chassis, for display.
    """

    def __init__(self, mailbox: Mailbox, address: tuple[str, int]) -> None:
        self._mailbox = mailbox
        self._address = address
        self._lock = threading.Lock()
        self._closed = False
        self._finalizer = weakref.finalize(self, mailbox.request_shutdown)

    @property
    def address(self) -> tuple[str, int]:
        return self._address

    @property
    def closed(self) -> bool:
        """True after :meth:`close` or once the actor has stopped."""
        return self._closed or self._mailbox.closed

    def submit(self, command: Command) -> Any:
        """Enqueue ``command`` and block until the actor replies.

        Returns:
            The command's result.

        Raises:
            InternalConsistencyError: If the connection is closed or the actor
                has stopped.
            OverseerError: Whatever error the actor reported for the command.
        """
        with self._lock:
            if self._closed:
                raise InternalConsistencyError("Connection is closed")
            self._mailbox.put(command)
        return command.reply.result()

    def close(self) -> None:
        """Request actor shutdown. Safe to call multiple times."""
        with self._lock:
            self._closed = True
        self._finalizer()


class Connection:
    """Handle for issuing commands to one chassis.

    Instances are cheap; :meth:`clone` returns another handle on the same
    actor. Calls are serialized by the actor in the order they are made.

    Args:
        sender: Shared sending side of the actor's mailbox.
    """

    def __init__(self, sender: CommandSender) -> None:
        self._sender = sender

    def __repr__(self) -> str:
        state = "closed" if self._sender.closed else "open"
        return f"<Connection {format_address(self.address)} {state}>"

    @property
    def address(self) -> tuple[str, int]:
        """``(host, port)`` of the chassis."""
        return self._sender.address

    @property
    def closed(self) -> bool:
        """True once no further commands can be issued."""
        return self._sender.closed

    def clone(self) -> Connection:
        """Return another handle sharing this connection's actor."""
        return Connection(self._sender)

    # -- Commands ------------------------------------------------------------

    def list_interfaces(self) -> Interfaces:
        """Query the reservation state of every port.

        Returns:
            A fresh snapshot owned by the caller.

        Raises:
            ProtocolParseError: If the chassis reply is malformed.
            ChassisIOError: If the socket fails or times out.
            InternalConsistencyError: If the connection is closed.
        """
        return self._sender.submit(ListInterfaces())

    def lock_action_on(self, current: Lock, module: int, port: int) -> None:
        """Toggle a port's reservation based on its last-known lock.

        ``current`` is advisory: it only selects the command sent
        (``RELEASED`` reserves, ``RESERVED_BY_YOU`` releases,
        ``RESERVED_BY_OTHER`` relinquishes). The chassis may have changed
        state meanwhile; call :meth:`list_interfaces` to see the outcome.

        Raises:
            NotAcknowledgedError: If the chassis refuses the command.
            ChassisIOError: If the socket fails or times out.
            InternalConsistencyError: If the connection is closed.
            ValueError: If ``module`` or ``port`` is outside 0-255.
        """
        self._sender.submit(command_for(current, module, port))

    def lock_interface(self, module: int, port: int) -> None:
        """Reserve a port (``RESERVE``)."""
        self._sender.submit(LockInterface(module, port))

    def unlock_interface(self, module: int, port: int) -> None:
        """Release a port held by this owner (``RELEASE``)."""
        self._sender.submit(UnlockInterface(module, port))

    def relinquish_interface(self, module: int, port: int) -> None:
        """Force release of a port held by another owner (``RELINQUISH``)."""
        self._sender.submit(RelinquishInterface(module, port))

    # -- Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        """Stop the actor for every clone of this connection.

        Commands already queued still run; the actor then logs off and
        closes the socket.
        """
        self._sender.close()

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def connect(
    address: str,
    config: SessionConfig | None = None,
    *,
    transport_factory: TransportFactory | None = None,
) -> Connection:
    """Connect and log on to a chassis.

    The session actor is only started once the handshake has succeeded; on
    any failure the socket is closed and nothing keeps running.

    Args:
        address: ``ip:port`` of the chassis.
        config: Logon settings; defaults to :class:`SessionConfig` defaults.
        transport_factory: Called with ``(address, connect_timeout)`` to open
            the transport. Defaults to a TCP :class:`SocketTransport` whose
            writes are bounded by ``config.timeout``.

    Returns:
        A handle on the running session actor.

    Raises:
        AddressParseError: If ``address`` is not a valid socket address.
        ChassisIOError: If the socket cannot be opened or fails during logon.
        AuthenticationError: If the chassis rejects the logon or owner.
    """
    config = config or SessionConfig()
    sock_address = parse_address(address)
    if transport_factory is None:
        transport: LineTransport = SocketTransport.connect(
            sock_address, timeout=config.connect_timeout, write_timeout=config.timeout
        )
    else:
        transport = transport_factory(sock_address, config.connect_timeout)
    session = Session.establish(transport, config)

    actor = SessionActor(session, name=f"overseer-{format_address(sock_address)}")
    actor.start()
    logger.info("Connected to %s", format_address(sock_address))
    return Connection(CommandSender(actor.mailbox, sock_address))
