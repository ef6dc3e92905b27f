# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Stiff integrator configuration model.

Tolerances and step sizes have no defaults: a run without them is rejected
at startup with a ``must be defined`` message.
"""

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from .base import FROZEN_CONFIG


class SolverConfig(BaseModel):
    """Configuration of the implicit ODE integrator."""
    model_config = FROZEN_CONFIG

    abstol: float = Field(alias='ABSTOL', gt=0, description='Absolute tolerance (m)')
    reltol: float = Field(alias='RELTOL', gt=0, lt=1, description='Relative tolerance')
    init_step: float = Field(alias='INIT_SOLVER_STEP', gt=0, description='Initial step (s)')
    max_step: float = Field(alias='MAX_SOLVER_STEP', gt=0, description='Maximum step (s)')
    max_krylov: int = Field(default=5, alias='MAXK', ge=1, le=5,
                            description='Maximum BDF order; the scipy backend always allows 5')
    method: Literal['BDF', 'Radau', 'LSODA'] = Field(default='BDF', alias='SOLVER_METHOD')
    max_retries: int = Field(default=4, alias='MAX_RETRIES', ge=0)
    use_sparsity: bool = Field(default=True, alias='USE_JAC_SPARSITY')

    @model_validator(mode='after')
    def _check_steps(self):
        if self.init_step > self.max_step:
            raise ValueError(
                f"INIT_SOLVER_STEP ({self.init_step}) must not exceed "
                f"MAX_SOLVER_STEP ({self.max_step})"
            )
        return self
