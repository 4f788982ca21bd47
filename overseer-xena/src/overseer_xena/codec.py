"""Line protocol codec for Xena chassis reservation commands.

This module translates between domain values and the chassis' newline
terminated text protocol. It performs no I/O: encoders return the bytes to
write and decoders consume bytes or complete lines handed to them.

Wire summary::

    -> C_LOGON "xena"            <- <OK>
    -> C_OWNER "overseer"        <- <OK>
    -> */* P_RESERVATION ?       <- 0/0  P_RESERVATION  RELEASED
    -> SYNC                      <- ...
                                 <- <SYNC>
    -> 3/7 P_RESERVATION RESERVE <- <OK>
    -> C_LOGOFF                  (reply ignored)

Reads from a socket may end anywhere inside a line, so :class:`LineBuffer`
keeps the unterminated tail between reads and only hands out complete lines.
"""

from __future__ import annotations

import re

from overseer_core.errors import ProtocolParseError
from overseer_core.types.common import MAX_RESOURCE_ID, check_resource_id
from overseer_core.types.reservation import Interfaces, Lock, State

OK = "<OK>"
SYNC_MARKER = "<SYNC>"
TERMINATOR = b"\n"

# Reservation verb selected by the caller's last-known lock.
_VERB_FOR_LOCK: dict[Lock, str] = {
    Lock.RELEASED: "RESERVE",
    Lock.RESERVED_BY_YOU: "RELEASE",
    Lock.RESERVED_BY_OTHER: "RELINQUISH",
}

RESERVATION_VERBS = frozenset(_VERB_FOR_LOCK.values())

_DECIMAL_RE = re.compile(r"[0-9]+")


# ---------------------------------------------------------------------------
# Encoders
# ---------------------------------------------------------------------------


def _line(text: str) -> bytes:
    return text.encode("utf-8") + TERMINATOR


def encode_logon(password: str) -> bytes:
    """Encode the ``C_LOGON`` command for the given password."""
    return _line(f'C_LOGON "{password}"')


def encode_owner(owner: str) -> bytes:
    """Encode the ``C_OWNER`` command claiming ownership as ``owner``."""
    return _line(f'C_OWNER "{owner}"')


def encode_query() -> bytes:
    """Encode the reservation query followed by the ``SYNC`` request."""
    return b"*/* P_RESERVATION ?\nSYNC\n"


def encode_logoff() -> bytes:
    """Encode the ``C_LOGOFF`` command."""
    return _line("C_LOGOFF")


def verb_for(current: Lock) -> str:
    """Return the reservation verb that acts on a port in state ``current``.

    ``RELEASED`` ports are reserved, ports reserved by this owner are
    released, and ports reserved by another owner are relinquished.
    """
    return _VERB_FOR_LOCK[current]


def reservation_command(verb: str, module: int, port: int) -> str:
    """Return the reservation command text, without line terminator.

    Args:
        verb: One of ``RESERVE``, ``RELEASE``, ``RELINQUISH``.
        module: Module id (0-255).
        port: Port id (0-255).

    Raises:
        ValueError: If the verb is unknown or an id is out of range.
    """
    if verb not in RESERVATION_VERBS:
        raise ValueError(f"Unknown reservation verb: {verb!r}")
    check_resource_id(module, "module")
    check_resource_id(port, "port")
    return f"{module}/{port} P_RESERVATION {verb}"


def encode_reservation(verb: str, module: int, port: int) -> bytes:
    """Encode a reservation command for one port."""
    return _line(reservation_command(verb, module, port))


def encode_lock_action(current: Lock, module: int, port: int) -> bytes:
    """Encode the reservation command chosen by the caller's current lock.

    Example:
        >>> encode_lock_action(Lock.RELEASED, 3, 7)
        b'3/7 P_RESERVATION RESERVE\\n'
    """
    return encode_reservation(verb_for(current), module, port)


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------


def is_ok(line: str) -> bool:
    """Return True if ``line`` is exactly the ``<OK>`` acknowledgement."""
    return line == OK


def _parse_id(text: str, kind: str, line: str) -> int:
    if not _DECIMAL_RE.fullmatch(text):
        raise ProtocolParseError(f"Non-numeric {kind} id {text!r}", line)
    value = int(text)
    if value > MAX_RESOURCE_ID:
        raise ProtocolParseError(f"{kind} id {value} out of range 0-{MAX_RESOURCE_ID}", line)
    return value


def parse_reservation_line(line: str) -> tuple[int, int, Lock]:
    """Parse one reservation line into ``(module, port, lock)``.

    The line format is ``M/P [tokens ...] STATE``: the first whitespace
    separated token holds the module and port ids, the last token is the
    reservation state.

    Args:
        line: A single line without its terminator.

    Returns:
        The decoded module id, port id and lock.

    Raises:
        ProtocolParseError: If the ``/`` separator is missing, an id is not a
            decimal number in 0-255, or the state token is unknown.

    Example:
        >>> parse_reservation_line("1/2  P_RESERVATION  RESERVED_BY_YOU")
        (1, 2, <Lock.RESERVED_BY_YOU: 'RESERVED_BY_YOU'>)
    """
    tokens = line.split()
    if not tokens:
        raise ProtocolParseError("Empty reservation line", line)
    address = tokens[0].split("/")
    if len(address) != 2:
        raise ProtocolParseError(f"Expected '<module>/<port>', got {tokens[0]!r}", line)
    module = _parse_id(address[0], "module", line)
    port = _parse_id(address[1], "port", line)
    try:
        lock = Lock(tokens[-1])
    except ValueError:
        raise ProtocolParseError(
            f"Unknown reservation state {tokens[-1]!r}",
            line,
        ) from None
    return module, port, lock


class LineBuffer:
    """Reassemble newline terminated lines from arbitrary read chunks.

    Bytes are appended with :meth:`feed`; :meth:`pop_line` returns the next
    complete line (decoded, terminator removed) or None while only a
    partial line is buffered.

    Example:
        >>> buf = LineBuffer()
        >>> buf.feed(b"1/2 x RESER")
        >>> buf.pop_line() is None
        True
        >>> buf.feed(b"VED_BY_YOU\\n")
        >>> buf.pop_line()
        '1/2 x RESERVED_BY_YOU'
    """

    def __init__(self) -> None:
        self._pending = bytearray()

    def feed(self, data: bytes) -> None:
        """Append bytes read from the transport."""
        self._pending.extend(data)

    def pop_line(self) -> str | None:
        """Remove and return the next complete line.

        Raises:
            ProtocolParseError: If the line is not valid UTF-8.
        """
        end = self._pending.find(TERMINATOR)
        if end < 0:
            return None
        raw = bytes(self._pending[:end])
        del self._pending[: end + 1]
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProtocolParseError(
                f"Line is not valid UTF-8: {raw!r}",
                raw.decode("utf-8", errors="replace"),
            ) from exc

    @property
    def pending(self) -> bytes:
        """Bytes received after the last complete line."""
        return bytes(self._pending)

    def __len__(self) -> int:
        return len(self._pending)


class ReservationDecoder:
    """Accumulate the lines of one reservation query into :class:`Interfaces`.

    Feed each received line to :meth:`feed_line` until it returns True (the
    ``<SYNC>`` marker was seen), then call :meth:`result`. Blank lines are
    skipped. The first malformed line is remembered and the rest of the
    response is still consumed, so the stream stays aligned for the next
    command; :meth:`result` then raises instead of returning a partial
    directory.
    """

    def __init__(self) -> None:
        self._entries: list[tuple[int, int, State]] = []
        self._error: ProtocolParseError | None = None
        self._done = False

    @property
    def done(self) -> bool:
        """True once the sync marker has been consumed."""
        return self._done

    def feed_line(self, line: str) -> bool:
        """Consume one line of the response.

        Returns:
            True when the line was the sync marker and the response is complete.
        """
        if self._done:
            raise RuntimeError("Reservation response already complete")
        if line == SYNC_MARKER:
            self._done = True
            return True
        if not line.strip() or self._error is not None:
            return False
        try:
            module, port, lock = parse_reservation_line(line)
        except ProtocolParseError as exc:
            self.fail(exc)
        else:
            self._entries.append((module, port, State(lock)))
        return False

    def fail(self, error: ProtocolParseError) -> None:
        """Record a line that could not be decoded at all."""
        if self._error is None:
            self._error = error
            self._entries.clear()

    def result(self) -> Interfaces:
        """Return the decoded directory.

        Raises:
            ProtocolParseError: If any line of the response was malformed.
            RuntimeError: If the sync marker has not been seen yet.
        """
        if not self._done:
            raise RuntimeError("Reservation response is incomplete")
        if self._error is not None:
            raise self._error
        return Interfaces.from_entries(self._entries)


def decode_reservations(data: bytes) -> Interfaces:
    """Decode a complete reservation response held in memory.

    Args:
        data: Response bytes up to and including the ``<SYNC>`` line.

    Raises:
        ProtocolParseError: If a line is malformed or the sync marker is missing.
    """
    buffer = LineBuffer()
    buffer.feed(data)
    decoder = ReservationDecoder()
    while (line := buffer.pop_line()) is not None:
        if decoder.feed_line(line):
            return decoder.result()
    raise ProtocolParseError("Response ended before the <SYNC> marker")
