"""Reservation state types for chassis ports.

This module provides the typed directory of port reservations produced by a
single ``*/* P_RESERVATION ?`` query.

Classes:
    Lock: Reservation state of one port, with its wire token.
    State: Per-port state record.
    Interfaces: Snapshot mapping module -> port -> State.

Example:
    >>> interfaces = Interfaces.from_entries([
    ...     (1, 2, State(Lock.RESERVED_BY_YOU)),
    ...     (1, 3, State(Lock.RELEASED)),
    ... ])
    >>> interfaces.lock_of(1, 2)
    <Lock.RESERVED_BY_YOU: 'RESERVED_BY_YOU'>
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from overseer_core.types.common import ModuleId, PortId


class Lock(Enum):
    """Reservation state of a port.

    Each member's value is its token in the chassis line protocol, so
    ``Lock(token)`` decodes and ``lock.token`` encodes.

    Attributes:
        RELEASED: Nobody holds the port.
        RESERVED_BY_YOU: This session's owner holds the port.
        RESERVED_BY_OTHER: Another owner holds the port.
    """

    RELEASED = "RELEASED"
    RESERVED_BY_YOU = "RESERVED_BY_YOU"
    RESERVED_BY_OTHER = "RESERVED_BY_OTHER"

    @property
    def token(self) -> str:
        """Return the wire token for this state."""
        return self.value


@dataclass(frozen=True)
class State:
    """Reservation state record of a single port.

    Attributes:
        lock: Reservation state reported by the chassis.
    """

    lock: Lock


def _freeze(modules: Mapping[int, Mapping[int, State]]) -> Mapping[ModuleId, Mapping[PortId, State]]:
    ordered = {
        ModuleId(module): MappingProxyType(
            {PortId(port): ports[port] for port in sorted(ports)}
        )
        for module, ports in sorted(modules.items())
        if ports
    }
    return MappingProxyType(ordered)


@dataclass(frozen=True, eq=False)
class Interfaces:
    """Snapshot of every port reservation on a chassis.

    Built wholesale from the lines of one query and never patched
    afterwards; a new query produces a new snapshot. Modules and ports
    iterate in ascending numeric order.

    Attributes:
        modules: Read-only mapping of module id to (port id -> State).
    """

    modules: Mapping[ModuleId, Mapping[PortId, State]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "modules", _freeze(self.modules))

    @classmethod
    def from_entries(cls, entries: Iterable[tuple[int, int, State]]) -> Interfaces:
        """Build a snapshot from ``(module, port, state)`` triples.

        A later triple for the same module/port replaces an earlier one.

        Args:
            entries: Decoded reservation entries.

        Returns:
            The assembled snapshot.
        """
        modules: dict[int, dict[int, State]] = {}
        for module, port, state in entries:
            modules.setdefault(module, {})[port] = state
        return cls(modules)

    def __iter__(self) -> Iterator[tuple[ModuleId, PortId, State]]:
        """Iterate ``(module, port, state)`` in numeric order."""
        for module, ports in self.modules.items():
            for port, state in ports.items():
                yield module, port, state

    def __len__(self) -> int:
        """Return the number of ports in the snapshot."""
        return sum(len(ports) for ports in self.modules.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Interfaces):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self) -> int:
        return hash(tuple(self))

    def get(self, module: int, port: int) -> State | None:
        """Return the state of one port, or None if the chassis did not report it."""
        return self.modules.get(ModuleId(module), {}).get(PortId(port))

    def lock_of(self, module: int, port: int) -> Lock | None:
        """Return the lock of one port, or None if the port is unknown."""
        state = self.get(module, port)
        return None if state is None else state.lock

    def as_dict(self) -> dict[int, dict[int, Lock]]:
        """Return a plain ``{module: {port: Lock}}`` copy of the snapshot."""
        return {
            module: {port: state.lock for port, state in ports.items()}
            for module, ports in self.modules.items()
        }
