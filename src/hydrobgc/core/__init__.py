# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Core infrastructure: configuration, exceptions, logging and constants."""

from .exceptions import (
    ConfigurationError,
    ConfigValidationError,
    ForcingError,
    HydroBGCError,
    MassBalanceError,
    MeshValidationError,
    RestartError,
    SolverConvergenceError,
)
from .logging import configure_logging
from .mixins import LoggingMixin

__all__ = [
    'HydroBGCError',
    'ConfigurationError',
    'ConfigValidationError',
    'ForcingError',
    'MeshValidationError',
    'SolverConvergenceError',
    'MassBalanceError',
    'RestartError',
    'LoggingMixin',
    'configure_logging',
]
