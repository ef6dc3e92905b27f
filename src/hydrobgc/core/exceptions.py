# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Custom exception hierarchy for HydroBGC.

This module defines the exceptions raised by the mesh, solver, biogeochemistry
and balance layers so that callers can distinguish configuration mistakes
from numerical failures.
"""

from typing import Optional


class HydroBGCError(Exception):
    """
    Base exception for all HydroBGC-specific errors.

    All custom exceptions in HydroBGC inherit from this class, which allows
    catching every domain error with a single except clause.
    """
    pass


class ConfigurationError(HydroBGCError):
    """
    Configuration-related errors.

    Raised when:
    - Required configuration keys are missing
    - Configuration values are out of range
    - Configuration file cannot be loaded or parsed
    """
    pass


class ConfigValidationError(ConfigurationError):
    """Raised when a configuration object fails schema validation."""
    pass


class MeshValidationError(HydroBGCError):
    """
    Mesh and river network consistency errors.

    Raised when:
    - A neighbour or parameter table index is out of range
    - Element adjacency is not symmetric
    - A river downstream chain never reaches an outlet or forms a cycle
    """
    pass


class ForcingError(HydroBGCError):
    """
    Meteorological forcing errors.

    Raised when:
    - A required forcing variable is missing
    - Forcing does not cover the simulation period
    - Station mapping references an unknown station
    """
    pass


class SolverConvergenceError(HydroBGCError):
    """
    Stiff integrator failure after all retries.

    Raised when:
    - The integrator cannot advance between two stop times
    - The derivative becomes non-finite

    Attributes:
        time: Model time (seconds) at which integration failed
        element: Index of the element with the worst derivative, if known
    """

    def __init__(self, message: str, time: Optional[float] = None,
                 element: Optional[int] = None):
        super().__init__(message)
        self.time = time
        self.element = element


class MassBalanceError(HydroBGCError):
    """
    Conservation violation beyond tolerance.

    Raised when:
    - Daily carbon or nitrogen balance drifts during a strict spinup
    - Catchment water balance residual exceeds tolerance in strict mode
    """
    pass


class RestartError(HydroBGCError):
    """
    Restart snapshot errors.

    Raised when:
    - The snapshot file cannot be read
    - Snapshot dimensions do not match the mesh
    """
    pass
