# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Spinup convergence tracking.

Total ecosystem carbon is recorded once per pass over the recycled forcing
period, each pass counting as one spinup year. The system is at steady
state when, for every element, the least-squares slope over the last
``trend_window`` years is below the tolerance.
"""

from dataclasses import dataclass
from typing import List

import numpy as np

from ..core.mixins import LoggingMixin


@dataclass
class SpinupResult:
    """Outcome of a spinup run."""
    converged: bool
    years: int
    max_trend: float
    history: np.ndarray   # (years, elements) total C at each year end

    def __str__(self) -> str:
        state = 'converged' if self.converged else 'did not converge'
        return f"Spinup {state} after {self.years} year(s), max trend {self.max_trend:.3e} kgC/m2/yr"


class SpinupMonitor(LoggingMixin):
    """Annual total-carbon trend monitor.

    Args:
        tolerance: Largest absolute slope (kgC/m2/yr) accepted as steady state
        trend_window: Number of most recent years the slope is fitted over
        max_years: Year count after which spinup stops regardless
    """

    def __init__(self, tolerance: float, trend_window: int = 3, max_years: int = 2000):
        if trend_window < 2:
            raise ValueError("trend_window must be at least 2")
        self.tolerance = tolerance
        self.trend_window = trend_window
        self.max_years = max_years
        self._history: List[np.ndarray] = []

    @property
    def years(self) -> int:
        return len(self._history)

    def record_year(self, year: int, totalc: np.ndarray) -> None:
        self._history.append(np.asarray(totalc, dtype=float).copy())
        self.logger.debug(f"Spinup year {self.years} (period starting {year}): "
                          f"mean total C {float(np.mean(totalc)):.4f} kgC/m2")

    def trend(self) -> np.ndarray:
        """Per-element slope over the trend window (NaN until the window is full)."""
        if self.years < self.trend_window:
            n = self._history[0].size if self._history else 0
            return np.full(n, np.nan)
        window = np.array(self._history[-self.trend_window:])
        x = np.arange(self.trend_window, dtype=float)
        return np.polyfit(x, window, 1)[0]

    @property
    def converged(self) -> bool:
        slope = self.trend()
        return bool(slope.size) and bool(np.all(np.abs(slope) < self.tolerance))

    @property
    def finished(self) -> bool:
        return self.converged or self.years >= self.max_years

    def result(self) -> SpinupResult:
        slope = self.trend()
        max_trend = float(np.max(np.abs(slope))) if slope.size and np.all(np.isfinite(slope)) else float('nan')
        history = np.array(self._history) if self._history else np.zeros((0, 0))
        result = SpinupResult(converged=self.converged, years=self.years,
                              max_trend=max_trend, history=history)
        if result.converged:
            self.logger.info(str(result))
        else:
            self.logger.warning(str(result))
        return result
