# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Output and restart configuration.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import FROZEN_CONFIG

HYDRO_OUTPUT_VARIABLES = (
    'IS', 'SNOW', 'SURF', 'UNSAT', 'GW', 'STAGE',
    'ACC_PRCP', 'ACC_EC', 'ACC_ETT', 'ACC_EDIR', 'ACC_BC', 'ACC_DRAIN',
    'ACC_OUTFLOW', 'ACC_RIVBC',
)


class OutputConfig(BaseModel):
    """Selection of recorded variables and restart files."""
    model_config = FROZEN_CONFIG

    print_variables: List[str] = Field(
        default_factory=lambda: ['SURF', 'UNSAT', 'GW', 'SNOW', 'IS', 'STAGE'],
        alias='PRINT_VARIABLES'
    )
    output_file: Optional[Path] = Field(default=None, alias='OUTPUT_FILE')
    restart_output: Optional[Path] = Field(default=None, alias='RESTART_OUTPUT')
    restart_input: Optional[Path] = Field(default=None, alias='RESTART_INPUT')

    @field_validator('print_variables', mode='before')
    @classmethod
    def _split_variables(cls, v):
        if isinstance(v, str):
            v = [item.strip() for item in v.split(',') if item.strip()]
        unknown = [name for name in v if name not in HYDRO_OUTPUT_VARIABLES]
        if unknown:
            raise ValueError(f"Unknown PRINT_VARIABLES entries: {unknown}")
        return v
