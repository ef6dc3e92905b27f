# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Mass balance checks.

Water is checked at catchment scale at every integration stop from the
cumulative flux accumulators:

    change in stored volume = precipitation - canopy evaporation
                              - transpiration - soil evaporation
                              + element boundary inflow + river boundary inflow
                              - outlet discharge + clamped volume

Carbon and nitrogen are checked per element after every daily update:
``pools + sinks - sources`` must stay at its starting value.
"""

from typing import List, Optional, Tuple

import numpy as np

from ..core.exceptions import MassBalanceError
from ..core.mixins import LoggingMixin
from ..state.layout import HydroState


class MassBalanceMonitor(LoggingMixin):
    """Water, carbon and nitrogen conservation monitor.

    Args:
        assembly: Flux assembly, used to convert storages to volumes
        tolerance: Relative tolerance of the per-element C and N balance
        water_tolerance: Relative tolerance of the catchment water balance
        strict: Raise ``MassBalanceError`` instead of logging a warning
    """

    def __init__(self, assembly, tolerance: float = 1.0e-6,
                 water_tolerance: float = 1.0e-3, strict: bool = False):
        self.assembly = assembly
        self.tolerance = tolerance
        self.water_tolerance = water_tolerance
        self.strict = strict
        self.violations = 0
        self.water_residuals: List[Tuple[float, float]] = []
        self.max_carbon_error = 0.0
        self.max_nitrogen_error = 0.0
        self._water_ref: Optional[dict] = None
        self._carbon_ref: Optional[np.ndarray] = None
        self._nitrogen_ref: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # Water
    # ------------------------------------------------------------------

    def _storage_volume(self, state: HydroState) -> float:
        return float(np.sum(self.assembly.element_water_volume(state))
                     + np.sum(self.assembly.river_volume(state.STAGE)))

    @staticmethod
    def _flux_terms(state: HydroState) -> dict:
        return {
            'prcp': float(np.sum(state.ACC_PRCP)),
            'ec': float(np.sum(state.ACC_EC)),
            'ett': float(np.sum(state.ACC_ETT)),
            'edir': float(np.sum(state.ACC_EDIR)),
            'bc': float(np.sum(state.ACC_BC)),
            'rivbc': float(np.sum(state.ACC_RIVBC)),
            'outflow': float(np.sum(state.ACC_OUTFLOW)),
        }

    def start_water(self, state: HydroState, clamped_water: float = 0.0) -> None:
        self._water_ref = {
            'storage': self._storage_volume(state),
            'clamped': clamped_water,
            **self._flux_terms(state),
        }

    def water_residual(self, state: HydroState, clamped_water: float) -> Tuple[float, float]:
        """Absolute water balance residual (m3) and the volume scale it is judged against."""
        if self._water_ref is None:
            self.start_water(state, clamped_water)
        ref = self._water_ref
        now = self._flux_terms(state)
        d = {k: now[k] - ref[k] for k in now}
        clamped = clamped_water - ref['clamped']
        net_in = (d['prcp'] - d['ec'] - d['ett'] - d['edir']
                  + d['bc'] + d['rivbc'] - d['outflow'] + clamped)
        change = self._storage_volume(state) - ref['storage']
        scale = max(sum(abs(v) for v in d.values()) + abs(clamped), ref['storage'], 1.0e-9)
        return change - net_in, scale

    def on_stop(self, t: float, state: HydroState, clamped_water: float) -> None:
        residual, scale = self.water_residual(state, clamped_water)
        self.water_residuals.append((t, residual))
        if abs(residual) > self.water_tolerance * scale:
            self._violation(
                f"Water balance residual {residual:.4e} m3 at t={t:.0f} s "
                f"exceeds {self.water_tolerance:g} of {scale:.4e} m3"
            )

    # ------------------------------------------------------------------
    # Carbon and nitrogen
    # ------------------------------------------------------------------

    def start_bgc(self, carbon, nitrogen) -> None:
        self._carbon_ref = carbon.balance().copy()
        self._nitrogen_ref = nitrogen.balance().copy()

    @staticmethod
    def _relative_error(pools, reference: np.ndarray) -> np.ndarray:
        scale = np.maximum.reduce([np.abs(reference), pools.total(), pools.sources(),
                                   pools.sinks(), np.full_like(reference, 1.0e-12)])
        return np.abs(pools.balance() - reference) / scale

    def check_bgc(self, day_start: float, updater) -> None:
        """Daily per-element carbon and nitrogen conservation check."""
        cs, ns = updater.carbon, updater.nitrogen
        if self._carbon_ref is None:
            self.start_bgc(cs, ns)
            return
        c_err = self._relative_error(cs, self._carbon_ref)
        n_err = self._relative_error(ns, self._nitrogen_ref)
        self.max_carbon_error = max(self.max_carbon_error, float(c_err.max()))
        self.max_nitrogen_error = max(self.max_nitrogen_error, float(n_err.max()))
        for label, err in (('Carbon', c_err), ('Nitrogen', n_err)):
            if np.any(err > self.tolerance):
                element = int(np.argmax(err))
                self._violation(
                    f"{label} balance error {err[element]:.3e} in element {element} "
                    f"on day starting t={day_start:.0f} s"
                )

    def _violation(self, message: str) -> None:
        self.violations += 1
        if self.strict:
            raise MassBalanceError(message)
        self.logger.warning(message)
