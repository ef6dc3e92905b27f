# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Daily carbon and nitrogen biogeochemistry."""

from .nitrogen import ARBITRATION_MODES, NitrogenArbiter, NitrogenDecision
from .parameters import ECOPHYS_DEFAULTS, EcophysArrays, EcophysConstants, ecophys_for
from .phenology import PhenologyModel
from .summary import DailySummary
from .updater import DailyBGCUpdater, initial_pools

__all__ = [
    'ARBITRATION_MODES',
    'DailyBGCUpdater',
    'DailySummary',
    'ECOPHYS_DEFAULTS',
    'EcophysArrays',
    'EcophysConstants',
    'NitrogenArbiter',
    'NitrogenDecision',
    'PhenologyModel',
    'ecophys_for',
    'initial_pools',
]
