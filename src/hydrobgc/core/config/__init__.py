# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Typed run configuration."""

from .factories import from_dict_factory, from_file_factory, nest_flat_config
from .models import (
    BGCConfig,
    CalibrationConfig,
    HydroBGCConfig,
    InitialStateConfig,
    OutputConfig,
    SolverConfig,
    SystemConfig,
    TimeConfig,
)

__all__ = [
    'HydroBGCConfig',
    'SystemConfig',
    'SolverConfig',
    'TimeConfig',
    'OutputConfig',
    'InitialStateConfig',
    'BGCConfig',
    'CalibrationConfig',
    'from_dict_factory',
    'from_file_factory',
    'nest_flat_config',
]
