# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Maintenance respiration.

Respiration is proportional to tissue nitrogen with a Q10 temperature
response referenced to 20 °C. Leaves respire at the daylight temperature
during the day and the night temperature otherwise; fine and coarse roots
use soil temperature.
"""

from typing import NamedTuple

import numpy as np

from ..core.constants import CarbonNitrogenConstants, UnitConversion


class MaintenanceRespiration(NamedTuple):
    """Daily maintenance respiration by tissue (kgC/m2/day)."""
    leaf_day: np.ndarray
    leaf_night: np.ndarray
    froot: np.ndarray
    livestem: np.ndarray
    livecroot: np.ndarray

    @property
    def total(self) -> np.ndarray:
        return self.leaf_day + self.leaf_night + self.froot + self.livestem + self.livecroot


def q10_factor(temperature, q10: float = CarbonNitrogenConstants.MR_Q10, tref: float = 20.0):
    return q10 ** ((np.asarray(temperature, dtype=float) - tref) / 10.0)


def maintenance_respiration(nitrogen, met) -> MaintenanceRespiration:
    """Maintenance respiration from tissue N and daily temperatures."""
    base = CarbonNitrogenConstants.MR_BASE
    day_frac = met.dayl / UnitConversion.SECONDS_PER_DAY
    leaf_rate = base * nitrogen.leafn
    return MaintenanceRespiration(
        leaf_day=leaf_rate * q10_factor(met.tday) * day_frac,
        leaf_night=leaf_rate * q10_factor(met.tnight) * (1.0 - day_frac),
        froot=base * nitrogen.frootn * q10_factor(met.tsoil),
        livestem=base * nitrogen.livestemn * q10_factor(met.tavg),
        livecroot=base * nitrogen.livecrootn * q10_factor(met.tsoil),
    )
