"""Core library for the overseer chassis reservation engine.

This package provides the error hierarchy and the pure value types shared by
the protocol engine and its front-ends. It has no external dependencies.

Key components:
    - Types: Module/port identifiers, the Lock reservation state, and the
      Interfaces snapshot of every port on a chassis.
    - Errors: Hierarchy of exception types for the engine's failure modes.

Example:
    >>> from overseer_core import Interfaces, Lock, State
    >>> snapshot = Interfaces.from_entries([(0, 1, State(Lock.RELEASED))])
    >>> snapshot.as_dict()
    {0: {1: <Lock.RELEASED: 'RELEASED'>}}
"""

from overseer_core.errors import (
    AddressParseError,
    AuthenticationError,
    ChassisIOError,
    InternalConsistencyError,
    NotAcknowledgedError,
    OverseerError,
    ProtocolParseError,
    ResponseTimeoutError,
)
from overseer_core.types import (
    MAX_RESOURCE_ID,
    Interfaces,
    Lock,
    ModuleId,
    PortId,
    State,
    check_resource_id,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Types
    "MAX_RESOURCE_ID",
    "Interfaces",
    "Lock",
    "ModuleId",
    "PortId",
    "State",
    "check_resource_id",
    # Errors
    "AddressParseError",
    "AuthenticationError",
    "ChassisIOError",
    "InternalConsistencyError",
    "NotAcknowledgedError",
    "OverseerError",
    "ProtocolParseError",
    "ResponseTimeoutError",
]
