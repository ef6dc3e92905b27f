# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Integration driver.

Advances the hydrologic state from stop to stop, where stops are the output
times plus (when a daily callback is registered) every midnight. Between
stops the integrator owns the state; at a stop the driver clamps negative
storages, fires the daily callback once for each completed day and passes
the state to observers and output sinks.
"""

from typing import Callable, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from ..core.constants import UnitConversion
from ..core.mixins import LoggingMixin
from ..hydrology.flux_assembly import FluxAssembly
from ..hydrology.river import FLOOR_WIDTH
from ..state.layout import ELEMENT_STORAGES, HydroState, StateLayout
from .integrator import StiffIntegrator
from .schedule import OutputSchedule

DAY = UnitConversion.SECONDS_PER_DAY

DailyCallback = Callable[[float, HydroState], None]


class OutputSink(Protocol):
    """Receiver of the state at output times."""

    def record(self, t: float, state: HydroState) -> None:
        ...


class StopObserver(Protocol):
    """Receiver of the state at every stop (e.g. a balance monitor)."""

    def on_stop(self, t: float, state: HydroState, clamped_water: float) -> None:
        ...


class IntegrationDriver(LoggingMixin):
    """Stop-to-stop integration loop.

    Args:
        assembly: Right-hand side provider, used for volumes when clamping
        integrator: Stiff integrator
        layout: State vector layout
        schedule: Output times
        daily_callback: Called as ``callback(day_start, state)`` at each midnight
        output_sinks: Receivers of the state at output times
        observers: Receivers of the state at every stop
        day_origin: Start of the simulated history; days beginning earlier are
            incomplete and get no daily callback (``None``: no limit)
        clamped_water: Clamped volume (m3) carried over from earlier runs
    """

    def __init__(
        self,
        assembly: FluxAssembly,
        integrator: StiffIntegrator,
        layout: StateLayout,
        schedule: OutputSchedule,
        daily_callback: Optional[DailyCallback] = None,
        output_sinks: Sequence[OutputSink] = (),
        observers: Sequence[StopObserver] = (),
        day_origin: Optional[float] = None,
        clamped_water: float = 0.0,
    ):
        self.assembly = assembly
        self.integrator = integrator
        self.layout = layout
        self.schedule = schedule
        self.daily_callback = daily_callback
        self.output_sinks: List[OutputSink] = list(output_sinks)
        self.observers: List[StopObserver] = list(observers)
        self.day_origin = day_origin
        self.clamped_water = clamped_water
        self.days_completed = 0
        self._last_day_end: Optional[float] = None

    # ------------------------------------------------------------------

    def stop_times(self, t0: float, t_end: float) -> np.ndarray:
        """Sorted stops in ``(t0, t_end]``."""
        outputs = self.schedule.times[(self.schedule.times > t0) & (self.schedule.times <= t_end)]
        stops = [outputs, np.array([t_end])]
        if self.daily_callback is not None:
            first = (np.floor(t0 / DAY) + 1.0) * DAY
            if first <= t_end:
                stops.append(np.arange(first, t_end + 0.5, DAY))
        merged = np.unique(np.concatenate(stops))
        return merged[(merged > t0) & (merged <= t_end)]

    def clamp(self, y: np.ndarray) -> Tuple[np.ndarray, float]:
        """Zero negative storages; return the state and the water volume added (m3)."""
        lay = self.layout
        mesh = self.assembly.mesh
        porosity = self.assembly.params.porosity
        added = 0.0
        for name in ELEMENT_STORAGES:
            block = y[lay[name]]
            negative = block < 0.0
            if np.any(negative):
                factor = porosity if name in ('UNSAT', 'GW') else 1.0
                added += float(np.sum(-np.where(negative, block, 0.0) * factor * mesh.area))
                block[negative] = 0.0
                y[lay[name]] = block
        stage = y[lay['STAGE']]
        negative = stage < 0.0
        if np.any(negative):
            # below zero stage the channel stores water over the floor width only
            added += float(np.sum(-stage[negative] * FLOOR_WIDTH * mesh.river_length[negative]))
            stage[negative] = 0.0
            y[lay['STAGE']] = stage
        return y, added

    def _day_complete(self, t: float) -> bool:
        """Whether the stop at ``t`` closes a fully simulated day."""
        if self.daily_callback is None or t % DAY != 0.0 or t == self._last_day_end:
            return False
        return self.day_origin is None or t - DAY >= self.day_origin

    def _record_outputs(self, t: float, state: HydroState) -> None:
        for sink in self.output_sinks:
            sink.record(t, state)

    def run(self, t0: float, y0: np.ndarray, t_end: Optional[float] = None) -> Tuple[float, np.ndarray]:
        """Integrate from ``t0`` to ``t_end`` (default: end of schedule).

        Returns:
            Final time and state vector
        """
        t_end = self.schedule.end if t_end is None else float(t_end)
        y = np.array(y0, dtype=float)
        t = float(t0)
        self._last_day_end = None

        if t in self.schedule:
            self._record_outputs(t, self.layout.unflatten(y))

        stops = self.stop_times(t, t_end)
        self.logger.info(
            f"Integrating {t:.0f} -> {t_end:.0f} s over {stops.size} stop(s)"
        )
        for stop in stops:
            result = self.integrator.advance(t, y, float(stop))
            t = float(stop)
            y, added = self.clamp(result.y)
            if added > 0.0:
                self.clamped_water += added
                self.logger.debug(f"Clamped {added:.3e} m3 of negative storage at t={t:.0f} s")

            state = self.layout.unflatten(y)
            for observer in self.observers:
                observer.on_stop(t, state, self.clamped_water)

            if self._day_complete(t):
                self._last_day_end = t
                self.days_completed += 1
                self.daily_callback(t - DAY, state)

            if t in self.schedule:
                self._record_outputs(t, state)

        return t, y
