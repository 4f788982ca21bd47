"""Exception types for overseer-core.

This module defines the exception hierarchy used by the chassis session
engine. All overseer exceptions inherit from OverseerError, allowing front-ends
to catch every engine failure with a single except clause.

Exception hierarchy:
    OverseerError (base)
    +-- AddressParseError: Malformed ``host:port`` address text
    +-- ChassisIOError: Socket connect/read/write failures (terminal)
    |   +-- ResponseTimeoutError: No complete reply within the I/O timeout
    +-- AuthenticationError: Logon or ownership claim rejected
    +-- ProtocolParseError: Malformed line received from the chassis
    +-- NotAcknowledgedError: Reservation command not answered with ``<OK>``
    +-- InternalConsistencyError: Call made after the session actor ended
"""

from __future__ import annotations


class OverseerError(Exception):
    """Base exception for all overseer errors.

    This is the root of the overseer exception hierarchy. Catch this to handle
    any engine-specific error.
    """


class AddressParseError(OverseerError):
    """Raised when an address string is not a valid ``ip:port`` socket address."""


class ChassisIOError(OverseerError):
    """Raised when reading from or writing to the chassis socket fails.

    This includes refused connections, resets, and the chassis closing the
    connection while a reply is pending. A session that raised this error is
    no longer usable.
    """


class ResponseTimeoutError(ChassisIOError):
    """Raised when the chassis does not deliver a complete line in time."""


class AuthenticationError(OverseerError):
    """Raised when the chassis rejects ``C_LOGON`` or ``C_OWNER``.

    Attributes:
        line: The reply line received instead of ``<OK>``.
    """

    def __init__(self, message: str, line: str | None = None) -> None:
        self.line = line
        super().__init__(message)


class ProtocolParseError(OverseerError):
    """Raised when a reply line does not follow the reservation line grammar.

    Common causes are a missing ``/`` separator, non-numeric or out of range
    module/port ids, and unknown reservation state tokens.

    Attributes:
        line: The offending line, if one was available.
    """

    def __init__(self, message: str, line: str | None = None) -> None:
        self.line = line
        super().__init__(message)


class NotAcknowledgedError(OverseerError):
    """Raised when a reservation command is answered with anything but ``<OK>``.

    Attributes:
        command: The command line that was sent, without terminator.
        line: The reply line received.
    """

    def __init__(self, command: str, line: str) -> None:
        self.command = command
        self.line = line
        super().__init__(f"Chassis did not acknowledge {command!r}: {line!r}")


class InternalConsistencyError(OverseerError):
    """Raised when a connection is used after its session actor has stopped."""
