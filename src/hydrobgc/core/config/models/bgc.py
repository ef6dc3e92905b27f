# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Biogeochemistry and spinup configuration model.

Covers the daily carbon/nitrogen update, the atmospheric CO2 and nitrogen
deposition drivers, and the spinup convergence controls.
"""

from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...constants import CarbonNitrogenConstants
from .base import FROZEN_CONFIG


class BGCConfig(BaseModel):
    """Configuration for the daily biogeochemistry updater and spinup."""
    model_config = FROZEN_CONFIG

    enabled: bool = Field(default=True, alias='BGC_ENABLED')
    latitude: float = Field(default=40.0, alias='LATITUDE', ge=-90, le=90,
                            description='Site latitude for day length (degrees)')

    # Spinup
    spinup: bool = Field(default=False, alias='SPINUP_MODE')
    max_spinup_years: int = Field(default=2000, alias='MAX_SPINUP_YEARS', ge=1)
    spinup_tolerance: float = Field(
        default=0.0005, alias='SPINUP_TOLERANCE', gt=0,
        description='Maximum annual total-C trend (kgC/m2/yr) accepted as steady state'
    )
    spinup_trend_window: int = Field(default=3, alias='SPINUP_TREND_WINDOW', ge=2)
    carry_phenology: bool = Field(
        default=True, alias='CARRY_PHENOLOGY',
        description='Keep phenology counters between spinup forcing cycles'
    )
    strict_spinup_balance: bool = Field(default=True, alias='STRICT_SPINUP_BALANCE')
    balance_tolerance: float = Field(default=1.0e-6, alias='BALANCE_TOLERANCE', gt=0)

    # Atmospheric drivers
    co2_ppm: float = Field(default=CarbonNitrogenConstants.CO2_DEFAULT_PPM, alias='CO2_PPM', gt=0)
    co2_series: Optional[Dict[int, float]] = Field(default=None, alias='CO2_SERIES')
    ndep: float = Field(default=0.0001, alias='NDEP', ge=0,
                        description='Nitrogen deposition (kgN/m2/yr)')
    ndep_series: Optional[Dict[int, float]] = Field(default=None, alias='NDEP_SERIES')
    nfix: float = Field(default=0.0008, alias='NFIX', ge=0,
                        description='Symbiotic plus asymbiotic fixation (kgN/m2/yr)')

    n_arbitration: Literal['proportional', 'plant_priority', 'microbe_priority'] = Field(
        default='proportional', alias='N_ARBITRATION'
    )

    @field_validator('co2_series', 'ndep_series')
    @classmethod
    def _non_empty(cls, v):
        if v is not None and len(v) == 0:
            raise ValueError('annual series must contain at least one year')
        return v

    def co2_for_year(self, year: int) -> float:
        """CO2 (ppm) for a calendar year, holding the nearest end value."""
        return _series_value(self.co2_series, year, self.co2_ppm)

    def ndep_for_year(self, year: int) -> float:
        """Nitrogen deposition (kgN/m2/yr) for a calendar year."""
        return _series_value(self.ndep_series, year, self.ndep)


def _series_value(series: Optional[Dict[int, float]], year: int, default: float) -> float:
    if not series:
        return default
    if year in series:
        return float(series[year])
    years = sorted(series)
    if year < years[0]:
        return float(series[years[0]])
    if year > years[-1]:
        return float(series[years[-1]])
    # interior gap: hold previous year
    previous = max(y for y in years if y < year)
    return float(series[previous])
