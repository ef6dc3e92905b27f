# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Daily carbon/nitrogen update.

Called by the integration driver once per completed day with the
hydrologic state at midnight. The update runs, in order:

1. Maintenance respiration and potential photosynthesis
2. Phenology (transfer growth, litterfall, storage to transfer)
3. Allocation potential and plant N demand
4. Potential decomposition
5. Nitrogen reconciliation between plant and decomposers
6. Application of decomposition and allocation
7. Mineral N losses, live wood turnover, mortality and fire
8. Clamping, daily summary and annual bookkeeping

The resulting leaf area is handed back to the flux assembly for the next
day.
"""

from typing import Callable, List, Optional

import numpy as np

from ..core.config.models.bgc import BGCConfig
from ..core.constants import UnitConversion
from ..core.mixins import LoggingMixin
from ..hydrology import soil
from ..mesh.parameters import ElementParameters
from ..state.layout import HydroState
from ..state.pools import CarbonState, NitrogenState
from ..state.vegetation import AnnualState, PhenologyState
from .allocation import allocate, allocation_demand
from .decomposition import apply_decomposition, potential_decomposition
from .mortality import fire, livewood_turnover, mortality
from .nitrogen import NitrogenArbiter, add_inputs, mineral_losses
from .parameters import EcophysArrays
from .phenology import PhenologyModel
from .photosynthesis import canopy_photosynthesis
from .respiration import maintenance_respiration
from .summary import DailySummary, summarize

M_TO_MPA = 1.0 / UnitConversion.MPA_TO_M

# Seed pools of a fresh start (kgC/m2)
INITIAL_LEAFC = 0.001
INITIAL_FROOTC = 0.001
INITIAL_SMINN = 0.001


def initial_pools(epc: EcophysArrays):
    """Seed carbon and nitrogen pools for a cold start.

    Deciduous vegetation starts with its seed carbon in storage, evergreen
    vegetation with displayed leaves and fine roots.
    """
    n = epc.size
    cs = CarbonState.zeros(n)
    ns = NitrogenState.zeros(n)
    display = epc.evergreen
    for tissue, seed, cn in (('leaf', INITIAL_LEAFC, epc.leaf_cn),
                             ('froot', INITIAL_FROOTC, epc.froot_cn)):
        c_display = np.where(display, seed, 0.0)
        c_storage = np.where(display, 0.0, seed)
        setattr(cs, f'{tissue}c', c_display)
        setattr(cs, f'{tissue}c_storage', c_storage)
        setattr(ns, f'{tissue}n', c_display / cn)
        setattr(ns, f'{tissue}n_storage', c_storage / cn)
    ns.sminn = np.full(n, INITIAL_SMINN)
    return cs, ns


class DailyBGCUpdater(LoggingMixin):
    """Per-day carbon/nitrogen state machine over all elements.

    Args:
        params: Element parameters (hydraulics for soil water potential)
        forcing: Meteorological forcing
        config: Biogeochemistry configuration
        epc: Per-element ecophysiological arrays
        assembly: Flux assembly receiving the daily leaf area (optional)
    """

    def __init__(self, params: ElementParameters, forcing, config: BGCConfig,
                 epc: EcophysArrays, area: np.ndarray, assembly=None):
        self.params = params
        self.forcing = forcing
        self.config = config
        self.epc = epc
        self.area = np.asarray(area, dtype=float)
        self.assembly = assembly
        self.arbiter = NitrogenArbiter(config.n_arbitration)
        self.phenology_model = PhenologyModel(epc)

        self.carbon: Optional[CarbonState] = None
        self.nitrogen: Optional[NitrogenState] = None
        self.phenology: Optional[PhenologyState] = None
        self.annual: Optional[AnnualState] = None
        self.last_summary: Optional[DailySummary] = None
        self.days_updated = 0
        self.drain_mark = np.zeros(epc.size)

        self.daily_observers: List[Callable[[float, 'DailyBGCUpdater'], None]] = []
        self.year_observers: List[Callable[[int, np.ndarray], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def cold_start(self, year: int) -> None:
        n = self.epc.size
        self.carbon, self.nitrogen = initial_pools(self.epc)
        self.phenology = PhenologyState.initial(n, self.epc.evergreen)
        self.annual = AnnualState.initial(n, year)
        self.logger.info(f"Biogeochemistry cold start for {n} element(s)")
        self.publish_canopy()

    def restore(self, carbon: CarbonState, nitrogen: NitrogenState,
                phenology: PhenologyState, annual: AnnualState) -> None:
        self.carbon = carbon.copy()
        self.nitrogen = nitrogen.copy()
        self.phenology = phenology.copy()
        self.annual = annual.copy()
        self.publish_canopy()

    def close_year(self, next_year: int) -> None:
        """Report the finished year to the year observers and start ``next_year``."""
        totalc = self.carbon.total()
        for observer in self.year_observers:
            observer(int(self.annual.year[0]), totalc)
        self.annual.rollover(next_year)

    def end_cycle(self, start_year: int) -> None:
        """Close a pass over a recycled forcing period that began in ``start_year``.

        A period that stays inside one calendar year is closed here; one that
        crossed into the next year is rolled back by the first update of the
        following pass.
        """
        if int(self.annual.year[0]) == start_year:
            self.close_year(start_year)

    def reset_phenology(self) -> None:
        self.phenology = PhenologyState.initial(self.epc.size, self.epc.evergreen)

    def sync_drainage(self, hydro: HydroState, mark: Optional[np.ndarray] = None) -> None:
        """Set the drainage accumulator value the current day is measured from.

        ``mark`` comes from a restart taken part way through a day; without it
        the current accumulator is used.
        """
        source = hydro.ACC_DRAIN if mark is None else mark
        self.drain_mark = np.asarray(source, dtype=float).copy()

    @property
    def lai(self) -> np.ndarray:
        return np.maximum(self.carbon.leafc, 0.0) * self.epc.sla

    def publish_canopy(self, tsoil: Optional[np.ndarray] = None) -> None:
        if self.assembly is not None:
            self.assembly.set_canopy_state(self.lai, tsoil)

    # ------------------------------------------------------------------
    # Soil conditions
    # ------------------------------------------------------------------

    def soil_conditions(self, hydro: HydroState):
        """Root-zone water potential (MPa), soil water (m) and the day's drainage (m)."""
        p = self.params
        satn = soil.unsat_saturation(hydro.UNSAT, hydro.GW, p.soil_depth)
        psi = soil.pressure_head(satn, p.alpha, p.beta) * M_TO_MPA
        wet_roots = hydro.GW >= p.soil_depth - p.rzd
        psi = np.where(wet_roots, 0.0, psi)
        soil_water, _ = soil.soil_water_content(hydro.UNSAT, hydro.GW, p.porosity, p.soil_depth)
        drainage = np.maximum(hydro.ACC_DRAIN - self.drain_mark, 0.0) / self.area
        return psi, soil_water, drainage

    # ------------------------------------------------------------------
    # Daily update
    # ------------------------------------------------------------------

    def __call__(self, day_start: float, hydro: HydroState) -> DailySummary:
        return self.update(day_start, hydro)

    def update(self, day_start: float, hydro: HydroState) -> DailySummary:
        """Run one daily step for the day starting at ``day_start``."""
        if self.carbon is None:
            raise RuntimeError("DailyBGCUpdater.update called before cold_start or restore")
        cs, ns, epc = self.carbon, self.nitrogen, self.epc
        met = self.forcing.daily(day_start)

        if met.year != int(self.annual.year[0]):
            self.close_year(met.year)

        psi, soil_water, drainage = self.soil_conditions(hydro)
        self.drain_mark = np.asarray(hydro.ACC_DRAIN, dtype=float).copy()

        before = {
            'gpp': cs.gpp_src.copy(), 'mr': cs.mr_snk.copy(), 'gr': cs.gr_snk.copy(),
            'hr': cs.hr_snk.copy(), 'fire': cs.fire_snk.copy(),
        }

        # 1. respiration and potential photosynthesis
        mr = maintenance_respiration(ns, met)
        pres = self.forcing.at(day_start + 0.5 * UnitConversion.SECONDS_PER_DAY).pres
        photo = canopy_photosynthesis(cs.leafc, epc, met, psi, self.config.co2_for_year(met.year),
                                      pres, mr.leaf_day)

        # 2. phenology
        phen = self.phenology_model.step(self.phenology, cs, ns, met, psi)

        # 3-4. potentials
        demand = allocation_demand(epc, photo.gpp, mr.total, ns.retransn)
        decomp = potential_decomposition(cs, ns, met.tsoil, psi)

        # 5. nitrogen reconciliation
        days = float(UnitConversion.DAYS_PER_YEAR)
        ndep = np.full(epc.size, self.config.ndep_for_year(met.year) / days)
        nfix = np.full(epc.size, self.config.nfix / days)
        add_inputs(ns, ndep, nfix)
        available = np.maximum(ns.sminn, 0.0) + decomp.gross_nmin
        decision = self.arbiter.reconcile(available, demand.sminn_demand, decomp.potential_immob)

        # 6. apply
        realized = apply_decomposition(cs, ns, epc, decomp, decision.fpi_microbe)
        alloc = allocate(cs, ns, epc, demand, decision.plant, photo.gpp, mr.total)

        # 7. losses and turnover
        mineral_losses(ns, realized['gross_nmin'], decision.surplus, drainage, soil_water)
        livewood_turnover(cs, ns, epc)
        dead = mortality(cs, ns, epc)
        fire(cs, ns, epc)

        # 8. clamping and bookkeeping
        c_clamped = cs.clamp_negative()
        n_clamped = ns.clamp_negative()
        if np.any(c_clamped > 0.0) or np.any(n_clamped > 0.0):
            self.logger.debug(
                f"Clamped negative pools on day {met.yday}/{met.year}: "
                f"C {c_clamped.sum():.3e}, N {n_clamped.sum():.3e} kg/m2"
            )

        summary = summarize(
            cs,
            gpp=cs.gpp_src - before['gpp'],
            mr=cs.mr_snk - before['mr'],
            gr=cs.gr_snk - before['gr'],
            hr=cs.hr_snk - before['hr'],
            fire=cs.fire_snk - before['fire'],
            litfallc=phen['litfallc'] + dead,
            lai=self.lai,
        )
        self._update_annual(summary)
        self.last_summary = summary
        self.days_updated += 1
        self.publish_canopy(met.tsoil)

        if np.any(alloc.downreg > 0.0):
            self.logger.debug(f"GPP downregulated by N limitation in {int((alloc.downreg > 0).sum())} element(s)")

        for observer in self.daily_observers:
            observer(day_start, self)
        return summary

    def _update_annual(self, summary: DailySummary) -> None:
        cs, ann = self.carbon, self.annual
        ann.annmax_leafc = np.maximum(ann.annmax_leafc, cs.leafc)
        ann.annmax_frootc = np.maximum(ann.annmax_frootc, cs.frootc)
        ann.annmax_livestemc = np.maximum(ann.annmax_livestemc, cs.livestemc)
        ann.annmax_livecrootc = np.maximum(ann.annmax_livecrootc, cs.livecrootc)
        ann.annsum_gpp = ann.annsum_gpp + summary.gpp
        ann.annsum_npp = ann.annsum_npp + summary.npp
        ann.annsum_litfallc = ann.annsum_litfallc + summary.litfallc
