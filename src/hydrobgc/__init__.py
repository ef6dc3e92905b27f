# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""HydroBGC: coupled watershed hydrology and carbon/nitrogen biogeochemistry."""

from .hydrobgc_version import __version__
from .core.config import HydroBGCConfig
from .simulation import Simulation, StateRecorder

__all__ = ['HydroBGCConfig', 'Simulation', 'StateRecorder', '__version__']
