"""Xena chassis reservation emulator.

Provides an in-process model of a chassis' reservation scripting interface.
One :class:`ChassisEmulator` holds the port reservations shared by every
client; each client connection gets its own :class:`EmulatorSession` with its
logon and owner state. Serve it over TCP with
:class:`~overseer_xena.server.EmulatorServer`.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass

from overseer_core.types.reservation import Lock

from overseer_xena import codec

NOT_VALID = "<NOTVALID>"
NOT_LOGGED_ON = "<NOTLOGGEDON>"
BAD_INDEX = "<BADINDEX>"

_QUOTED_RE = re.compile(r'^(C_LOGON|C_OWNER)\s+"([^"]*)"$')
_RESERVATION_RE = re.compile(r"^(\d+)/(\d+)\s+P_RESERVATION\s+(\S+)$")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChassisEmulatorConfig:
    """Configuration for a chassis emulator instance.

    Args:
        password: Password accepted by ``C_LOGON``.
        modules: Number of modules (>= 1).
        ports_per_module: Number of ports in every module (>= 1).
    """

    password: str = "xena"
    modules: int = 2
    ports_per_module: int = 4

    def __post_init__(self) -> None:
        if not self.password:
            raise ValueError("password must be non-empty")
        if not 1 <= self.modules <= 256:
            raise ValueError("modules must be 1-256")
        if not 1 <= self.ports_per_module <= 256:
            raise ValueError("ports_per_module must be 1-256")


# ---------------------------------------------------------------------------
# Shared chassis state
# ---------------------------------------------------------------------------


class ChassisEmulator:
    """Reservation state of an emulated chassis.

    Args:
        config: Emulator configuration; defaults to two modules of four ports.
    """

    def __init__(self, config: ChassisEmulatorConfig | None = None) -> None:
        self._config = config or ChassisEmulatorConfig()
        self._lock = threading.Lock()
        self._owners: dict[tuple[int, int], str | None] = {
            (module, port): None
            for module in range(self._config.modules)
            for port in range(self._config.ports_per_module)
        }

    @property
    def config(self) -> ChassisEmulatorConfig:
        return self._config

    def open_session(self) -> EmulatorSession:
        """Return the per-connection state for a new client."""
        return EmulatorSession(self)

    def owner_of(self, module: int, port: int) -> str | None:
        """Return who holds a port, or None if it is released.

        Raises:
            KeyError: If the port does not exist.
        """
        with self._lock:
            return self._owners[(module, port)]

    def set_owner(self, module: int, port: int, owner: str | None) -> None:
        """Force a port's reservation, e.g. to simulate another user.

        Raises:
            KeyError: If the port does not exist.
        """
        with self._lock:
            if (module, port) not in self._owners:
                raise KeyError((module, port))
            self._owners[(module, port)] = owner

    def snapshot(self, owner: str | None) -> list[tuple[int, int, Lock]]:
        """Return every port's lock as seen by ``owner``."""
        with self._lock:
            return [
                (module, port, _lock_seen_by(holder, owner))
                for (module, port), holder in sorted(self._owners.items())
            ]

    def reserve(self, module: int, port: int, verb: str, owner: str) -> str:
        """Apply a reservation verb for ``owner`` and return the reply token."""
        with self._lock:
            key = (module, port)
            if key not in self._owners:
                return BAD_INDEX
            holder = self._owners[key]
            if verb == "RESERVE" and holder is None:
                self._owners[key] = owner
            elif verb == "RELEASE" and holder == owner:
                self._owners[key] = None
            elif verb == "RELINQUISH" and holder is not None:
                self._owners[key] = None
            else:
                return NOT_VALID
            return codec.OK


def _lock_seen_by(holder: str | None, owner: str | None) -> Lock:
    if holder is None:
        return Lock.RELEASED
    if holder == owner:
        return Lock.RESERVED_BY_YOU
    return Lock.RESERVED_BY_OTHER


# ---------------------------------------------------------------------------
# Per-connection session
# ---------------------------------------------------------------------------


class EmulatorSession:
    """Logon state of one client connected to a :class:`ChassisEmulator`."""

    def __init__(self, chassis: ChassisEmulator) -> None:
        self._chassis = chassis
        self.logged_on = False
        self.owner: str | None = None
        self.closed = False

    def handle_line(self, line: str) -> list[str]:
        """Process one command line and return the reply lines.

        ``C_LOGOFF`` returns no reply and marks the session closed.
        """
        line = line.strip()
        if not line:
            return []

        quoted = _QUOTED_RE.match(line)
        if quoted is not None:
            return [self._handle_quoted(quoted.group(1), quoted.group(2))]

        if line == "C_LOGOFF":
            self.logged_on = False
            self.closed = True
            return []
        if not self.logged_on:
            return [NOT_LOGGED_ON]
        if line == "SYNC":
            return [codec.SYNC_MARKER]
        if line == "*/* P_RESERVATION ?":
            return [
                f"{module}/{port}  P_RESERVATION  {lock.token}"
                for module, port, lock in self._chassis.snapshot(self.owner)
            ]

        reservation = _RESERVATION_RE.match(line)
        if reservation is not None and reservation.group(3) in codec.RESERVATION_VERBS:
            if self.owner is None:
                return [NOT_VALID]
            return [
                self._chassis.reserve(
                    int(reservation.group(1)),
                    int(reservation.group(2)),
                    reservation.group(3),
                    self.owner,
                )
            ]
        return [NOT_VALID]

    def _handle_quoted(self, command: str, value: str) -> str:
        if command == "C_LOGON":
            self.logged_on = value == self._chassis.config.password
            return codec.OK if self.logged_on else NOT_LOGGED_ON
        if not self.logged_on:
            return NOT_LOGGED_ON
        if not value:
            return NOT_VALID
        self.owner = value
        return codec.OK


def make_chassis_emulator(
    *, modules: int = 2, ports_per_module: int = 4, password: str = "xena"
) -> ChassisEmulator:
    """Create a chassis emulator with a uniform module layout."""
    return ChassisEmulator(
        ChassisEmulatorConfig(
            password=password, modules=modules, ports_per_module=ports_per_module
        )
    )
