"""Identifier types for chassis resources.

Type Aliases:
    ModuleId: Identifies a chassis module (0-255).
    PortId: Identifies a port within a module (0-255).
"""

from __future__ import annotations

from typing import NewType

ModuleId = NewType("ModuleId", int)
"""Type alias for chassis module identifiers."""

PortId = NewType("PortId", int)
"""Type alias for port identifiers within a module."""

MAX_RESOURCE_ID = 255
"""Largest module or port id; ids are 8-bit unsigned on the wire."""


def check_resource_id(value: int, kind: str) -> int:
    """Validate a module or port id supplied by a caller.

    Args:
        value: The id to check.
        kind: ``"module"`` or ``"port"``, used in the error message.

    Returns:
        The id, unchanged.

    Raises:
        ValueError: If the id is not an int in the range 0-255.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{kind} id must be an int, got {value!r}")
    if not 0 <= value <= MAX_RESOURCE_ID:
        raise ValueError(f"{kind} id must be 0-{MAX_RESOURCE_ID}, got {value}")
    return value
