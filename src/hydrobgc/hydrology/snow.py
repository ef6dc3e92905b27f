# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Precipitation phase partitioning and degree-day snowmelt.
"""

import numpy as np

from ..core.constants import HydrologyConstants


def snow_fraction(temperature):
    """Fraction of precipitation falling as snow.

    1 below ``TSNOW``, 0 above ``TRAIN`` and linear in between.
    """
    span = HydrologyConstants.TRAIN - HydrologyConstants.TSNOW
    return np.clip((HydrologyConstants.TRAIN - temperature) / span, 0.0, 1.0)


def degree_day_melt(temperature, melt_factor: float = HydrologyConstants.MELT_FACTOR):
    """Potential melt rate (m/s) before limiting by the snow store."""
    return melt_factor * np.maximum(temperature - HydrologyConstants.TMELT, 0.0)
