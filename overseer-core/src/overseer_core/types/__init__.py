"""Core data types for overseer.

Submodules:
    common: Resource identifiers (ModuleId, PortId) and id validation
    reservation: Port reservation types (Lock, State, Interfaces)

All types are exported from this package for convenience.
"""

from overseer_core.types.common import (
    MAX_RESOURCE_ID,
    ModuleId,
    PortId,
    check_resource_id,
)
from overseer_core.types.reservation import Interfaces, Lock, State

__all__ = [
    # Common types
    "MAX_RESOURCE_ID",
    "ModuleId",
    "PortId",
    "check_resource_id",
    # Reservation types
    "Interfaces",
    "Lock",
    "State",
]
