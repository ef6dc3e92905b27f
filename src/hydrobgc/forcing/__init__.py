# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Meteorological forcing."""

from .meteo import (
    DailyMeteorology,
    ForcingSnapshot,
    MeteorologicalForcing,
    day_length,
    saturation_vapor_pressure,
)

__all__ = [
    'MeteorologicalForcing',
    'ForcingSnapshot',
    'DailyMeteorology',
    'day_length',
    'saturation_vapor_pressure',
]
