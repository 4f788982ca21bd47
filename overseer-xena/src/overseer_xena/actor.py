"""Session actor serializing all chassis traffic on one thread.

The actor owns a :class:`~overseer_xena.session.Session` exclusively. Callers
never touch the socket; they put commands in the actor's :class:`Mailbox`
and wait on each command's reply future. Commands run strictly in the order
they were enqueued, one wire exchange at a time.

Lifecycle:
    - The actor thread starts after the session has logged on.
    - A command failing with a protocol-level error (parse error, missing
      acknowledgement) is answered with that error and the loop continues.
    - A :class:`ChassisIOError` is terminal: the failing command and every
      command already queued receive it, and the loop stops.
    - On shutdown request or terminal error the mailbox is closed, a single
      best-effort ``C_LOGOFF`` is written and the transport is closed.
"""

from __future__ import annotations

import atexit
import logging
import queue
import threading
import weakref
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from overseer_core.errors import ChassisIOError, InternalConsistencyError, OverseerError
from overseer_core.types.common import check_resource_id
from overseer_core.types.reservation import Interfaces, Lock

from overseer_xena import codec
from overseer_xena.session import Session

logger = logging.getLogger(__name__)

_EXIT_JOIN_TIMEOUT = 2.0

_live_actors: weakref.WeakSet[SessionActor] = weakref.WeakSet()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ListInterfaces:
    """Query the reservation state of every port."""

    reply: Future[Interfaces] = field(default_factory=Future, compare=False, repr=False)


@dataclass(frozen=True)
class _PortCommand:
    module: int
    port: int
    reply: Future[None] = field(default_factory=Future, compare=False, repr=False)

    verb: ClassVar[str] = ""

    def __post_init__(self) -> None:
        check_resource_id(self.module, "module")
        check_resource_id(self.port, "port")


@dataclass(frozen=True)
class LockInterface(_PortCommand):
    """Reserve a released port."""

    verb: ClassVar[str] = "RESERVE"


@dataclass(frozen=True)
class UnlockInterface(_PortCommand):
    """Release a port reserved by this session's owner."""

    verb: ClassVar[str] = "RELEASE"


@dataclass(frozen=True)
class RelinquishInterface(_PortCommand):
    """Force release of a port reserved by another owner."""

    verb: ClassVar[str] = "RELINQUISH"


Command = Union[ListInterfaces, LockInterface, UnlockInterface, RelinquishInterface]

_COMMAND_FOR_VERB: dict[str, type[_PortCommand]] = {
    cls.verb: cls for cls in (LockInterface, UnlockInterface, RelinquishInterface)
}


def command_for(current: Lock, module: int, port: int) -> Command:
    """Return the reservation command that acts on a port in state ``current``."""
    return _COMMAND_FOR_VERB[codec.verb_for(current)](module, port)


# ---------------------------------------------------------------------------
# Mailbox
# ---------------------------------------------------------------------------


class Mailbox:
    """Thread-safe FIFO of commands feeding one actor.

    Once closed, :meth:`put` raises :class:`InternalConsistencyError` so that a
    command can never be stranded without a reply.
    """

    _SHUTDOWN: ClassVar[None] = None

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[Command | None] = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        """True once the actor has stopped accepting commands."""
        return self._closed

    def put(self, command: Command) -> None:
        """Enqueue a command.

        Raises:
            InternalConsistencyError: If the actor has already stopped.
        """
        with self._lock:
            if self._closed:
                raise InternalConsistencyError("Session actor is no longer running")
            self._queue.put(command)

    def request_shutdown(self) -> None:
        """Ask the actor to stop after the commands already queued."""
        with self._lock:
            if not self._closed:
                self._queue.put(self._SHUTDOWN)

    def get(self) -> Command | None:
        """Block for the next command; None means shutdown."""
        return self._queue.get()

    def close(self) -> list[Command]:
        """Stop accepting commands and return those still queued."""
        with self._lock:
            self._closed = True
            remaining: list[Command] = []
            while True:
                try:
                    item = self._queue.get_nowait()
                except queue.Empty:
                    break
                if item is not None:
                    remaining.append(item)
            return remaining


# ---------------------------------------------------------------------------
# Actor
# ---------------------------------------------------------------------------


class SessionActor:
    """Dedicated worker thread executing commands against one session.

    Args:
        session: A logged-on session. The actor takes ownership.
        mailbox: Command queue to read from; a new one by default.
        name: Thread name, used in log records.

    Example:
        >>> actor = SessionActor(session)
        >>> actor.start()
        >>> command = ListInterfaces()
        >>> actor.mailbox.put(command)
        >>> interfaces = command.reply.result()
        >>> actor.mailbox.request_shutdown()
        >>> actor.join()
    """

    def __init__(
        self,
        session: Session,
        *,
        mailbox: Mailbox | None = None,
        name: str = "overseer-session",
    ) -> None:
        self._session = session
        self._mailbox = mailbox or Mailbox()
        self._terminal: ChassisIOError | None = None
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def mailbox(self) -> Mailbox:
        """The actor's command queue."""
        return self._mailbox

    @property
    def is_alive(self) -> bool:
        """True while the command loop is running."""
        return self._thread.is_alive()

    def start(self) -> None:
        """Start the command loop in a daemon thread."""
        self._thread.start()
        _live_actors.add(self)

    def join(self, timeout: float | None = None) -> None:
        """Wait for the command loop to finish teardown."""
        self._thread.join(timeout)

    def stop(self, timeout: float | None = None) -> None:
        """Request shutdown after the queued commands and wait for teardown.

        Does not wait when called from the actor thread itself.
        """
        self._mailbox.request_shutdown()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    def _execute(self, command: Command) -> Any:
        if isinstance(command, ListInterfaces):
            return self._session.list_interfaces()
        if isinstance(command, _PortCommand):
            return self._session.reservation(command.verb, command.module, command.port)
        raise TypeError(f"Unsupported command: {command!r}")

    def _process_next(self) -> bool:
        """Run the next queued command; return False when the loop must stop."""
        command = self._mailbox.get()
        if command is None:
            logger.debug("Shutdown requested")
            return False
        try:
            result = self._execute(command)
        except ChassisIOError as exc:
            logger.error("Session I/O failed, stopping: %s", exc)
            command.reply.set_exception(exc)
            self._terminal = exc
            return False
        except OverseerError as exc:
            command.reply.set_exception(exc)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error executing %r", command)
            command.reply.set_exception(exc)
        else:
            command.reply.set_result(result)
        return True

    def _run(self) -> None:
        try:
            while self._process_next():
                pass
        finally:
            self._teardown()

    def _teardown(self) -> None:
        terminal = self._terminal
        for command in self._mailbox.close():
            if terminal is not None:
                command.reply.set_exception(terminal)
            else:
                command.reply.set_exception(
                    InternalConsistencyError("Session actor stopped before the command ran")
                )
        self._session.logoff()
        self._session.close()
        logger.info("Session closed")


def shutdown_actors(timeout: float = _EXIT_JOIN_TIMEOUT) -> None:
    """Stop every running session actor, waiting up to ``timeout`` for each.

    Registered with :mod:`atexit` so that daemon actor threads get to write
    ``C_LOGOFF`` before the interpreter kills them.
    """
    for actor in list(_live_actors):
        actor.stop(timeout)


atexit.register(shutdown_actors)
