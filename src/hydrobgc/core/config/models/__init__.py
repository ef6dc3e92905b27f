# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Pydantic configuration models."""

from .base import FROZEN_CONFIG
from .bgc import BGCConfig
from .calibration import CalibrationConfig
from .initial import InitialStateConfig
from .output import HYDRO_OUTPUT_VARIABLES, OutputConfig
from .period import TimeConfig
from .root import SECTION_MODELS, HydroBGCConfig
from .solver import SolverConfig
from .system import SystemConfig

__all__ = [
    'FROZEN_CONFIG',
    'HydroBGCConfig',
    'SystemConfig',
    'SolverConfig',
    'TimeConfig',
    'OutputConfig',
    'InitialStateConfig',
    'BGCConfig',
    'CalibrationConfig',
    'SECTION_MODELS',
    'HYDRO_OUTPUT_VARIABLES',
]
