# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Global calibration multipliers.

Every multiplier scales the corresponding parameter of every element (or
river segment) when parameter arrays are built and defaults to 1.0.
SFCTMP is the exception: an additive air temperature offset.
"""

from pydantic import BaseModel, Field

from .base import FROZEN_CONFIG


def _mult(alias: str):
    return Field(default=1.0, alias=alias, gt=0)


class CalibrationConfig(BaseModel):
    """Multiplicative calibration factors."""
    model_config = FROZEN_CONFIG

    ksath: float = _mult('KSATH')
    ksatv: float = _mult('KSATV')
    kinf: float = _mult('KINF')
    kmacsath: float = _mult('KMACSATH')
    kmacsatv: float = _mult('KMACSATV')
    dinf: float = _mult('DINF')
    rzd: float = _mult('RZD')
    macd: float = _mult('MACD')
    porosity: float = _mult('POROSITY')
    alpha: float = _mult('ALPHA')
    beta: float = _mult('BETA')
    areafv: float = _mult('AREAFV')
    areafh: float = _mult('AREAFH')
    vegfrac: float = _mult('VEGFRAC')
    albedo: float = _mult('ALBEDO')
    rough: float = _mult('ROUGH')
    prcp: float = _mult('PRCP')
    sfctmp: float = Field(default=0.0, alias='SFCTMP',
                          description='Additive air temperature offset (°C)')
    ec: float = _mult('EC')
    ett: float = _mult('ETT')
    edir: float = _mult('EDIR')
    rsmin: float = _mult('RSMIN')
    riv_rough: float = _mult('RIV_ROUGH')
    riv_ksath: float = _mult('RIV_KSATH')
    riv_ksatv: float = _mult('RIV_KSATV')
    riv_bedthick: float = _mult('RIV_BEDTHICK')
    riv_depth: float = _mult('RIV_DEPTH')
    riv_shpcoeff: float = _mult('RIV_SHPCOEFF')
