# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Model state containers."""

from .layout import (
    BLOCK_ORDER,
    ELEMENT_ACCUMULATORS,
    ELEMENT_STORAGES,
    RIVER_ACCUMULATORS,
    RIVER_STORAGES,
    HydroState,
    StateLayout,
)
from .pools import (
    CARBON_POOLS,
    NITROGEN_POOLS,
    CarbonState,
    NitrogenState,
)
from .restart import RestartSnapshot
from .vegetation import AnnualState, PhenologyPhase, PhenologyState

__all__ = [
    'StateLayout',
    'HydroState',
    'BLOCK_ORDER',
    'ELEMENT_STORAGES',
    'RIVER_STORAGES',
    'ELEMENT_ACCUMULATORS',
    'RIVER_ACCUMULATORS',
    'CarbonState',
    'NitrogenState',
    'CARBON_POOLS',
    'NITROGEN_POOLS',
    'PhenologyState',
    'PhenologyPhase',
    'AnnualState',
    'RestartSnapshot',
]
