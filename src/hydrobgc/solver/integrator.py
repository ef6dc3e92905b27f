# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Stiff ODE integrator contract and its scipy implementation.

``ScipyStiffIntegrator`` advances between two stop times with a fresh
``scipy.integrate.solve_ivp`` call, so a run restarted at any stop reproduces
the uninterrupted run. A failed segment is retried with a halved initial
step before ``SolverConvergenceError`` is raised.
"""

import logging
from typing import Callable, NamedTuple, Optional, Protocol

import numpy as np
from scipy.integrate import solve_ivp

from ..core.config.models.solver import SolverConfig
from ..core.exceptions import SolverConvergenceError
from ..state.layout import ELEMENT_STORAGES, StateLayout

logger = logging.getLogger(__name__)

RHS = Callable[[float, np.ndarray], np.ndarray]


class StepResult(NamedTuple):
    """Outcome of advancing from ``t0`` to ``t``."""
    success: bool
    t: float
    y: np.ndarray
    message: str
    nfev: int
    attempts: int


class StiffIntegrator(Protocol):
    """Contract consumed by the integration driver."""

    def advance(self, t0: float, y0: np.ndarray, t1: float) -> StepResult:
        ...


class ScipyStiffIntegrator:
    """Implicit integration with ``solve_ivp``.

    Args:
        rhs: Right-hand side ``f(t, y)``
        config: Tolerances and step limits
        jac_sparsity: Optional Jacobian sparsity pattern
        layout: State layout, used to name the failing element
    """

    def __init__(self, rhs: RHS, config: SolverConfig, jac_sparsity=None,
                 layout: Optional[StateLayout] = None):
        self.rhs = rhs
        self.config = config
        self.jac_sparsity = jac_sparsity if config.use_sparsity else None
        self.layout = layout
        self.total_nfev = 0
        if config.max_krylov != 5:
            logger.warning(
                f"MAXK={config.max_krylov} is ignored: scipy {config.method} selects its own "
                f"order up to 5"
            )

    def _solve(self, t0, y0, t1, first_step):
        options = dict(
            method=self.config.method,
            rtol=self.config.reltol,
            atol=self.config.abstol,
            first_step=first_step,
            max_step=self.config.max_step,
        )
        if self.jac_sparsity is not None and self.config.method in ('BDF', 'Radau'):
            options['jac_sparsity'] = self.jac_sparsity
        return solve_ivp(self._checked_rhs, (t0, t1), y0, **options)

    def _checked_rhs(self, t, y):
        dy = self.rhs(t, y)
        if not np.all(np.isfinite(dy)):
            raise FloatingPointError(f"Non-finite derivative at t={t:.0f} s")
        return dy

    def advance(self, t0: float, y0: np.ndarray, t1: float) -> StepResult:
        span = t1 - t0
        if span <= 0:
            return StepResult(True, t0, np.array(y0, dtype=float), 'empty interval', 0, 0)

        first_step = min(self.config.init_step, span)
        message = ''
        for attempt in range(1, self.config.max_retries + 2):
            try:
                sol = self._solve(t0, y0, t1, first_step)
            except (ValueError, FloatingPointError, RuntimeError, np.linalg.LinAlgError) as e:
                message = str(e)
                sol = None
            if sol is not None:
                self.total_nfev += sol.nfev
                if sol.success and np.all(np.isfinite(sol.y[:, -1])):
                    return StepResult(True, float(sol.t[-1]), sol.y[:, -1].copy(),
                                      sol.message, sol.nfev, attempt)
                message = sol.message if not sol.success else 'non-finite state'
            logger.warning(
                f"Integration {t0:.0f}->{t1:.0f} s failed (attempt {attempt}): {message}; "
                f"retrying with initial step {first_step / 2:.3g} s"
            )
            first_step /= 2.0

        time, element = self._locate_failure(t0, y0)
        raise SolverConvergenceError(
            f"Integrator failed between t={t0:.0f} s and t={t1:.0f} s after "
            f"{self.config.max_retries + 1} attempts ({message}); worst element: {element}",
            time=time,
            element=element,
        )

    def _locate_failure(self, t0: float, y0: np.ndarray):
        """Element whose storage derivative is non-finite or largest."""
        try:
            dy = np.asarray(self.rhs(t0, y0), dtype=float)
        except (ValueError, FloatingPointError, ArithmeticError):
            return t0, None
        if self.layout is None:
            return t0, None
        best, score = None, -1.0
        for name in ELEMENT_STORAGES:
            block = dy[self.layout[name]]
            bad = ~np.isfinite(block)
            if np.any(bad):
                return t0, int(np.flatnonzero(bad)[0])
            if block.size:
                k = int(np.argmax(np.abs(block)))
                if abs(block[k]) > score:
                    best, score = k, abs(block[k])
        return t0, best
