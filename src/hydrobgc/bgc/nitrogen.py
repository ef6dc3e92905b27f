# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Mineral nitrogen reconciliation and losses.

The arbiter divides the mineral N available in a day between the plant and
the decomposers. Whatever the policy, the total granted never exceeds what
is available and each party never receives more than it asked for.
"""

import logging
from typing import NamedTuple

import numpy as np

from ..core.constants import CarbonNitrogenConstants
from ..core.exceptions import ConfigurationError
from .flows import move

logger = logging.getLogger(__name__)

ARBITRATION_MODES = ('proportional', 'plant_priority', 'microbe_priority')


class NitrogenDecision(NamedTuple):
    """Mineral N granted to each competitor (kgN/m2/day)."""
    available: np.ndarray
    plant: np.ndarray
    microbe: np.ndarray
    fpi_plant: np.ndarray
    fpi_microbe: np.ndarray

    @property
    def surplus(self) -> np.ndarray:
        return np.maximum(self.available - self.plant - self.microbe, 0.0)


def _fraction(granted, demand):
    return np.where(demand > 0.0, granted / np.where(demand > 0.0, demand, 1.0), 1.0)


class NitrogenArbiter:
    """Competition for mineral N between plant uptake and immobilization.

    Modes:
        proportional: one fraction ``fpi`` applied to both demands
        plant_priority: the plant is served first, microbes take the rest
        microbe_priority: immobilization is served first
    """

    def __init__(self, mode: str = 'proportional'):
        if mode not in ARBITRATION_MODES:
            raise ConfigurationError(
                f"Unknown nitrogen arbitration mode '{mode}'. Use one of {ARBITRATION_MODES}"
            )
        self.mode = mode

    def reconcile(self, available: np.ndarray, plant_demand: np.ndarray,
                  immob_demand: np.ndarray) -> NitrogenDecision:
        available = np.maximum(available, 0.0)
        plant_demand = np.maximum(plant_demand, 0.0)
        immob_demand = np.maximum(immob_demand, 0.0)

        if self.mode == 'proportional':
            total = plant_demand + immob_demand
            fpi = np.where(total > available, available / np.where(total > 0.0, total, 1.0), 1.0)
            plant = plant_demand * fpi
            microbe = immob_demand * fpi
        elif self.mode == 'plant_priority':
            plant = np.minimum(plant_demand, available)
            microbe = np.minimum(immob_demand, available - plant)
        else:
            microbe = np.minimum(immob_demand, available)
            plant = np.minimum(plant_demand, available - microbe)

        # round-off must not push the draw past availability
        overshoot = plant + microbe - available
        plant = np.where(overshoot > 0.0, np.maximum(plant - overshoot, 0.0), plant)

        return NitrogenDecision(
            available=available,
            plant=plant,
            microbe=microbe,
            fpi_plant=_fraction(plant, plant_demand),
            fpi_microbe=_fraction(microbe, immob_demand),
        )


def add_inputs(ns, ndep: np.ndarray, nfix: np.ndarray) -> None:
    """Book daily deposition and fixation into soil mineral N."""
    ns.ndep_src = ns.ndep_src + ndep
    ns.nfix_src = ns.nfix_src + nfix
    ns.sminn = ns.sminn + ndep + nfix


def mineral_losses(ns, gross_nmin: np.ndarray, surplus: np.ndarray,
                   drainage: np.ndarray, soil_water: np.ndarray) -> dict:
    """Volatilization, bulk denitrification and leaching of soil mineral N.

    Args:
        ns: Nitrogen pools (modified in place)
        gross_nmin: Gross mineralization of the day
        surplus: Mineral N left after all demands were met
        drainage: Water drained from the soil column today (m)
        soil_water: Soil water in the column (m)
    """
    c = CarbonNitrogenConstants
    pool = np.maximum(ns.sminn, 0.0)

    volatilized = np.minimum(c.MINERAL_VOL_FRAC * gross_nmin, pool)
    denitrified = np.minimum(c.DENITRIF_PROPORTION * surplus, pool - volatilized)
    move(ns, 'sminn', 'nvol_snk', volatilized + denitrified)

    remaining = np.maximum(ns.sminn, 0.0)
    flushed = np.where(soil_water > 0.0, drainage / np.where(soil_water > 0.0, soil_water, 1.0), 0.0)
    leached = remaining * c.LEACH_MOBILE_FRAC * np.clip(flushed, 0.0, 1.0)
    move(ns, 'sminn', 'nleached_snk', leached)

    return {'nvol': volatilized + denitrified, 'nleached': leached}
