# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Root configuration model combining all section models.
"""

from pathlib import Path
from typing import Any, Dict, Union

from pydantic import BaseModel, Field

from .base import FROZEN_CONFIG
from .bgc import BGCConfig
from .calibration import CalibrationConfig
from .initial import InitialStateConfig
from .output import OutputConfig
from .period import TimeConfig
from .solver import SolverConfig
from .system import SystemConfig

SECTION_MODELS = {
    'system': SystemConfig,
    'solver': SolverConfig,
    'time': TimeConfig,
    'output': OutputConfig,
    'initial': InitialStateConfig,
    'bgc': BGCConfig,
    'calibration': CalibrationConfig,
}


class HydroBGCConfig(BaseModel):
    """Complete, immutable run configuration."""
    model_config = FROZEN_CONFIG

    system: SystemConfig = Field(default_factory=SystemConfig)
    solver: SolverConfig
    time: TimeConfig
    output: OutputConfig = Field(default_factory=OutputConfig)
    initial: InitialStateConfig = Field(default_factory=InitialStateConfig)
    bgc: BGCConfig = Field(default_factory=BGCConfig)
    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'HydroBGCConfig':
        """Load configuration from a YAML file."""
        from ..factories import from_file_factory
        return from_file_factory(cls, path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HydroBGCConfig':
        """Build configuration from a nested or flat (upper-case key) mapping."""
        from ..factories import from_dict_factory
        return from_dict_factory(cls, data)

    def to_dict(self, flatten: bool = False) -> Dict[str, Any]:
        """Return the configuration as a mapping.

        Args:
            flatten: Return a single-level mapping keyed by upper-case aliases
        """
        if not flatten:
            return self.model_dump(mode='json')
        flat: Dict[str, Any] = {}
        for name in SECTION_MODELS:
            flat.update(getattr(self, name).model_dump(mode='json', by_alias=True))
        return flat
