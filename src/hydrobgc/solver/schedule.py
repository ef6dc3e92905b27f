# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Output time schedule.

With a step factor ``a`` of 1 outputs are evenly spaced by the base step
``b``; otherwise interval ``i`` is ``a**i * b`` so that output becomes
sparser as the run proceeds. The final time is always the end of the run.
"""

from typing import Iterator

import numpy as np

from ..core.exceptions import ConfigurationError


class OutputSchedule:
    """Strictly increasing output times from ``start`` to ``end`` inclusive."""

    def __init__(self, start: float, end: float, step_factor: float = 1.0, base_step: float = 3600.0):
        if end <= start:
            raise ConfigurationError(f"End time {end} must be after start time {start}")
        if base_step <= 0:
            raise ConfigurationError("MODEL_STEPSIZE must be positive")
        if step_factor < 1.0:
            raise ConfigurationError("STEPSIZE_FACTOR must be >= 1")
        self.start = float(start)
        self.end = float(end)
        self.step_factor = float(step_factor)
        self.base_step = float(base_step)
        self.times = self._build()

    @classmethod
    def from_config(cls, time_config) -> 'OutputSchedule':
        return cls(time_config.start_seconds, time_config.end_seconds,
                   time_config.stepsize_factor, time_config.model_stepsize)

    def _build(self) -> np.ndarray:
        times = [self.start]
        i = 1
        while True:
            nxt = times[-1] + (self.step_factor ** i) * self.base_step
            if nxt >= self.end:
                break
            times.append(nxt)
            i += 1
        times.append(self.end)
        return np.array(times)

    def __iter__(self) -> Iterator[float]:
        return iter(float(t) for t in self.times)

    def __len__(self) -> int:
        return int(self.times.size)

    def __contains__(self, t: float) -> bool:
        return bool(np.any(np.isclose(self.times, t, rtol=0.0, atol=1.0e-6)))
