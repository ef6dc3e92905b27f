# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Simulation period and output schedule configuration.

Model time is expressed in seconds since 1970-01-01 00:00 UTC so that day
boundaries fall on multiples of 86400.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator

from .base import FROZEN_CONFIG


class TimeConfig(BaseModel):
    """Simulation window and output step growth rule."""
    model_config = FROZEN_CONFIG

    start: datetime = Field(alias='START')
    end: datetime = Field(alias='END')
    stepsize_factor: float = Field(default=1.0, alias='STEPSIZE_FACTOR', ge=1.0,
                                   description='Geometric growth of output interval')
    model_stepsize: float = Field(alias='MODEL_STEPSIZE', gt=0,
                                  description='Base output interval (s)')

    @field_validator('start', 'end')
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode='after')
    def _check_window(self):
        if self.end <= self.start:
            raise ValueError(f"END ({self.end}) must be after START ({self.start})")
        return self

    @property
    def start_seconds(self) -> float:
        return self.start.timestamp()

    @property
    def end_seconds(self) -> float:
        return self.end.timestamp()
