"""Xena chassis reservation session engine.

This package talks to a test-equipment chassis over its line-oriented
scripting protocol. It includes:

- Wire codec for the logon, reservation query and reservation commands
- Socket transport with per-step I/O timeouts
- Session actor owning the socket and serializing all commands
- Thread-safe, cloneable connection handle
- YAML configuration loading
- Chassis emulator and TCP emulator server for testing without hardware

Typical usage::

    from overseer_xena import connect

    with connect("192.168.1.50:22606") as conn:
        for module, port, state in conn.list_interfaces():
            print(f"{module}/{port}: {state.lock.token}")
"""

from overseer_core.types.reservation import Interfaces, Lock, State

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
from overseer_xena.address import DEFAULT_PORT, format_address, parse_address
from overseer_xena.codec import (
    LineBuffer,
    ReservationDecoder,
    decode_reservations,
    encode_lock_action,
    parse_reservation_line,
)
from overseer_xena.config import OverseerConfig, SessionConfig, load_config
from overseer_xena.connection import CommandSender, Connection, connect
from overseer_xena.emulator import (
    ChassisEmulator,
    ChassisEmulatorConfig,
    EmulatorSession,
    make_chassis_emulator,
)
from overseer_xena.server import EmulatorServer
from overseer_xena.session import Session
from overseer_xena.transport import LineTransport, SocketTransport

__all__ = [
    # Connection
    "CommandSender",
    "Connection",
    "connect",
    # Actor
    "Command",
    "ListInterfaces",
    "LockInterface",
    "Mailbox",
    "RelinquishInterface",
    "SessionActor",
    "UnlockInterface",
    "command_for",
    # Session and transport
    "LineTransport",
    "Session",
    "SocketTransport",
    # Address
    "DEFAULT_PORT",
    "format_address",
    "parse_address",
    # Codec
    "LineBuffer",
    "ReservationDecoder",
    "decode_reservations",
    "encode_lock_action",
    "parse_reservation_line",
    # Types
    "Interfaces",
    "Lock",
    "State",
    # Config
    "OverseerConfig",
    "SessionConfig",
    "load_config",
    # Emulator
    "ChassisEmulator",
    "ChassisEmulatorConfig",
    "EmulatorServer",
    "EmulatorSession",
    "make_chassis_emulator",
]
