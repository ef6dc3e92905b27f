# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Simulation orchestration.

Wires configuration, mesh and forcing into the flux assembly, the stiff
integrator, the integration driver, the daily biogeochemistry updater and
the balance monitors. Provides the normal run, the spinup loop, output
recording and restart snapshots.
"""

from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
import xarray as xr

from .balance import MassBalanceMonitor, SpinupMonitor, SpinupResult
from .bgc import DailyBGCUpdater, DailySummary, EcophysArrays
from .core.config import HydroBGCConfig
from .core.constants import UnitConversion
from .core.exceptions import ConfigurationError, RestartError
from .core.mixins import LoggingMixin
from .forcing import MeteorologicalForcing
from .hydrology import FluxAssembly, jacobian_sparsity
from .mesh import ElementParameters, MeshNetwork, RiverParameters
from .solver import IntegrationDriver, OutputSchedule, ScipyStiffIntegrator
from .state import ELEMENT_STORAGES, HydroState, RestartSnapshot, StateLayout
from .state.layout import ELEMENT_ACCUMULATORS

DAY = UnitConversion.SECONDS_PER_DAY


# =============================================================================
# OUTPUT RECORDING
# =============================================================================


class StateRecorder:
    """In-memory output sink producing an ``xarray.Dataset``.

    Args:
        variables: Hydrologic state fields to record
        num_elements: Element count
        num_rivers: River segment count
    """

    def __init__(self, variables: List[str], num_elements: int, num_rivers: int):
        self.variables = list(variables)
        self.num_elements = num_elements
        self.num_rivers = num_rivers
        self.times: List[float] = []
        self._values: Dict[str, List[np.ndarray]] = {name: [] for name in self.variables}
        self.summary_days: List[float] = []
        self._summaries: Dict[str, List[np.ndarray]] = {}

    def record(self, t: float, state: HydroState) -> None:
        if self.times and np.isclose(self.times[-1], t):
            return
        self.times.append(float(t))
        for name in self.variables:
            self._values[name].append(np.asarray(getattr(state, name), dtype=float).copy())

    def record_summary(self, day_start: float, summary: DailySummary) -> None:
        self.summary_days.append(float(day_start))
        for name, values in summary.to_dict().items():
            self._summaries.setdefault(name, []).append(np.asarray(values, dtype=float).copy())

    def to_dataset(self) -> xr.Dataset:
        data_vars = {}
        for name in self.variables:
            dim = 'element' if name in ELEMENT_STORAGES + ELEMENT_ACCUMULATORS else 'river'
            n = self.num_elements if dim == 'element' else self.num_rivers
            values = np.array(self._values[name]) if self._values[name] else np.zeros((0, n))
            data_vars[name] = (('time', dim), values)
        coords = {
            'time': pd.to_datetime(np.array(self.times), unit='s', utc=True).tz_localize(None),
            'element': np.arange(self.num_elements),
            'river': np.arange(self.num_rivers),
        }
        if self.summary_days:
            coords['day'] = pd.to_datetime(np.array(self.summary_days), unit='s', utc=True).tz_localize(None)
            for name, values in self._summaries.items():
                data_vars[f'bgc_{name}'] = (('day', 'element'), np.array(values))
        return xr.Dataset(data_vars, coords=coords)


# =============================================================================
# SIMULATION
# =============================================================================


class Simulation(LoggingMixin):
    """One model domain with its state and run loops.

    Args:
        config: Validated configuration
        mesh: Catchment mesh and river network
        forcing: Meteorological forcing
        ecophys_overrides: Per vegetation key field overrides of the ecophysiological constants
    """

    def __init__(
        self,
        config: HydroBGCConfig,
        mesh: MeshNetwork,
        forcing: MeteorologicalForcing,
        ecophys_overrides: Optional[Dict[str, Dict[str, float]]] = None,
    ):
        self.config = config
        self.mesh = mesh
        self.forcing = forcing
        self.bgc_enabled = config.bgc.enabled

        self.params = ElementParameters.build(mesh, config.calibration)
        self.river_params = RiverParameters.build(mesh, config.calibration)
        self.layout = StateLayout(mesh.num_elements, mesh.num_rivers)
        self.assembly = FluxAssembly(
            mesh, self.params, self.river_params, forcing, self.layout,
            calibration=config.calibration,
            lai_from_forcing=(not self.bgc_enabled) and forcing.has_lai,
        )
        self.schedule = OutputSchedule.from_config(config.time)
        sparsity = jacobian_sparsity(mesh, self.layout) if config.solver.use_sparsity else None
        self.integrator = ScipyStiffIntegrator(self.assembly.evaluate, config.solver,
                                               jac_sparsity=sparsity, layout=self.layout)

        self.balance = MassBalanceMonitor(self.assembly, tolerance=config.bgc.balance_tolerance)
        self.recorder = StateRecorder(config.output.print_variables,
                                      mesh.num_elements, mesh.num_rivers)

        self.updater: Optional[DailyBGCUpdater] = None
        if self.bgc_enabled:
            epc = EcophysArrays.from_mesh(mesh, ecophys_overrides)
            self.updater = DailyBGCUpdater(self.params, forcing, config.bgc, epc,
                                           mesh.area, assembly=self.assembly)
            self.updater.daily_observers.append(self.balance.check_bgc)
            self.updater.daily_observers.append(self._record_summary)

        self.record_summaries = True
        self.t: Optional[float] = None
        self.y: Optional[np.ndarray] = None
        self.driver: Optional[IntegrationDriver] = None
        self.day_origin: Optional[float] = None
        self.clamped_water = 0.0

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def default_hydro_state(self) -> HydroState:
        """Uniform initial storages from the initial-state configuration."""
        init = self.config.initial
        ne, nr = self.mesh.num_elements, self.mesh.num_rivers
        depth = self.params.soil_depth
        gw = init.gw_fraction * depth
        return HydroState(
            IS=np.full(ne, init.interception),
            SNOW=np.full(ne, init.snow),
            SURF=np.full(ne, init.surface),
            UNSAT=init.unsat_fraction * (depth - gw),
            GW=gw,
            STAGE=np.full(nr, init.stage),
            **{name: np.zeros(ne) for name in ELEMENT_ACCUMULATORS},
            ACC_OUTFLOW=np.zeros(nr),
            ACC_RIVBC=np.zeros(nr),
        )

    def initialize(self, restart: Optional[RestartSnapshot] = None) -> None:
        """Set the initial state from a restart snapshot or from defaults."""
        if restart is None and self.config.output.restart_input is not None:
            restart = RestartSnapshot.from_netcdf(
                self.config.output.restart_input, self.mesh.num_elements, self.mesh.num_rivers)

        start_year = pd.Timestamp(self.config.time.start).year
        drain_mark = None
        if restart is not None:
            if restart.time >= self.schedule.end:
                raise RestartError(
                    f"Restart time {restart.time:.0f} s is not before the run end {self.schedule.end:.0f} s"
                )
            self.t = float(restart.time)
            hydro = restart.hydro.copy()
            if self.updater is not None:
                if restart.has_bgc:
                    self.updater.restore(restart.carbon, restart.nitrogen,
                                         restart.phenology, restart.annual)
                    drain_mark = restart.drain_mark
                else:
                    self.logger.warning("Restart has no biogeochemistry state; cold-starting pools")
                    self.updater.cold_start(pd.Timestamp(self.t, unit='s').year)
            # the restored history may end part way through a day
            self.day_origin = None
            self.logger.info(f"Initialized from restart at t={self.t:.0f} s")
        else:
            self.t = self.schedule.start
            hydro = self.default_hydro_state()
            self.day_origin = self.t
            if self.updater is not None:
                self.updater.cold_start(start_year)
            self.logger.info("Initialized from default state")

        self.forcing.check_coverage(self.t, self.schedule.end)
        self.assembly.update_soil_temperature(np.floor(self.t / DAY) * DAY - DAY)
        self.y = self.layout.flatten(hydro)
        self.clamped_water = 0.0
        self.driver = None
        self.balance.start_water(hydro)
        if self.updater is not None:
            self.updater.sync_drainage(hydro, drain_mark)
            self.balance.start_bgc(self.updater.carbon, self.updater.nitrogen)

    def _end_of_day(self, day_start: float, state: HydroState) -> None:
        self.assembly.update_soil_temperature(day_start)
        if self.updater is not None:
            self.updater(day_start, state)

    def _record_summary(self, day_start: float, updater: DailyBGCUpdater) -> None:
        if self.record_summaries:
            self.recorder.record_summary(day_start, updater.last_summary)

    def _build_driver(self, record_outputs: bool) -> IntegrationDriver:
        return IntegrationDriver(
            self.assembly,
            self.integrator,
            self.layout,
            self.schedule,
            daily_callback=self._end_of_day,
            output_sinks=[self.recorder] if record_outputs else [],
            observers=[self.balance],
            day_origin=self.day_origin,
            clamped_water=self.clamped_water,
        )

    def _require_initialized(self) -> None:
        if self.y is None:
            self.initialize()

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def run(self, t_end: Optional[float] = None) -> xr.Dataset:
        """Integrate to ``t_end`` (default: configured end) recording outputs."""
        self._require_initialized()
        if self.driver is None:
            self.driver = self._build_driver(record_outputs=True)
        self.logger.info(
            f"Running {self.mesh.num_elements} element(s), {self.mesh.num_rivers} river segment(s), "
            f"biogeochemistry {'on' if self.bgc_enabled else 'off'}"
        )
        self.t, self.y = self.driver.run(self.t, self.y, t_end)
        self.clamped_water = self.driver.clamped_water
        self.logger.info(
            f"Run finished at t={self.t:.0f} s after {self.integrator.total_nfev} RHS evaluations"
        )
        return self.recorder.to_dataset()

    def run_spinup(self) -> SpinupResult:
        """Cycle the configured period until total carbon is steady.

        Each cycle integrates the configured period from its start with the
        state carried over. The period must be whole days so that every day
        is closed by a daily update.
        """
        if self.updater is None:
            raise ConfigurationError("Spinup requires BGC_ENABLED: true")
        span = self.schedule.end - self.schedule.start
        if self.schedule.start % DAY != 0 or span % DAY != 0:
            raise ConfigurationError("Spinup period must start at midnight and span whole days")

        self._require_initialized()
        bgc = self.config.bgc
        self.balance.strict = bgc.strict_spinup_balance
        self.record_summaries = False
        monitor = SpinupMonitor(bgc.spinup_tolerance, bgc.spinup_trend_window, bgc.max_spinup_years)
        self.day_origin = self.schedule.start
        driver = self._build_driver(record_outputs=False)
        start_year = pd.Timestamp(self.config.time.start).year

        cycles = 0
        try:
            while not monitor.finished:
                if cycles and not bgc.carry_phenology:
                    self.updater.reset_phenology()
                _, self.y = driver.run(self.schedule.start, self.y, self.schedule.end)
                self.clamped_water = driver.clamped_water
                monitor.record_year(start_year, self.updater.carbon.total())
                self.updater.end_cycle(start_year)
                cycles += 1
                self.logger.info(f"Spinup cycle {cycles}: {monitor.years} year(s) simulated")
        finally:
            self.balance.strict = False
            self.record_summaries = True

        self.t = self.schedule.start
        self.driver = None
        return monitor.result()

    # ------------------------------------------------------------------
    # State export
    # ------------------------------------------------------------------

    @property
    def state(self) -> HydroState:
        self._require_initialized()
        return self.layout.unflatten(self.y)

    def snapshot(self) -> RestartSnapshot:
        hydro = self.state.copy()
        if self.updater is None:
            return RestartSnapshot(time=self.t, hydro=hydro)
        return RestartSnapshot(
            time=self.t,
            hydro=hydro,
            carbon=self.updater.carbon.copy(),
            nitrogen=self.updater.nitrogen.copy(),
            phenology=self.updater.phenology.copy(),
            annual=self.updater.annual.copy(),
            drain_mark=self.updater.drain_mark.copy(),
        )

    def finalize(self) -> Optional[Path]:
        """Write the configured restart and output files."""
        out = self.config.output
        if out.output_file is not None:
            path = Path(out.output_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            self.recorder.to_dataset().to_netcdf(path, engine='netcdf4')
            self.logger.info(f"Output written to {path}")
        if out.restart_output is not None:
            return self.snapshot().to_netcdf(out.restart_output)
        return None
