# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Default (relaxation) initial conditions used when no restart is given.
"""

from pydantic import BaseModel, Field

from .base import FROZEN_CONFIG


class InitialStateConfig(BaseModel):
    """Uniform initial storages."""
    model_config = FROZEN_CONFIG

    interception: float = Field(default=0.0, alias='INIT_IS', ge=0)
    snow: float = Field(default=0.0, alias='INIT_SNOW', ge=0)
    surface: float = Field(default=0.0, alias='INIT_SURF', ge=0)
    unsat_fraction: float = Field(default=0.1, alias='INIT_UNSAT_FRAC', ge=0, le=1,
                                  description='Fraction of the unsaturated column height')
    gw_fraction: float = Field(default=0.5, alias='INIT_GW_FRAC', ge=0, le=1,
                               description='Water table height as fraction of soil depth')
    stage: float = Field(default=0.0, alias='INIT_STAGE', ge=0)
