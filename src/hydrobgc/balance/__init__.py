# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Mass balance and spinup monitoring."""

from .monitor import MassBalanceMonitor
from .spinup import SpinupMonitor, SpinupResult

__all__ = ['MassBalanceMonitor', 'SpinupMonitor', 'SpinupResult']
