# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Phenology state machine.

Deciduous vegetation cycles DORMANT -> ONSET -> ACTIVE -> OFFSET -> DORMANT:

- Degree-day accumulation (soil temperature above 0 °C) starts once day
  length increases after the winter solstice. Onset fires when the sum
  reaches the critical value and the soil is not too dry. A fixed share of
  every storage pool then moves to its transfer pool.
- During ONSET transfer pools grow display pools at a constant daily rate
  for ``transfer_days``.
- Offset fires when day length is decreasing and either below the critical
  day length or after enough freezing degree days. Leaf and fine root
  litterfall then runs at a constant daily rate for ``litfall_days``.

Evergreen vegetation stays ACTIVE with continuous background transfer and
litterfall. User-defined phenology replaces the triggers with fixed onset
and offset days of the year.
"""

import logging
from typing import Dict

import numpy as np

from ..core.constants import CarbonNitrogenConstants
from ..state.pools import TISSUES
from ..state.vegetation import PhenologyPhase
from .flows import move, nitrogen_share, split_to_litter

logger = logging.getLogger(__name__)

SOILPSI_ON = -2.0    # MPa; drier soil delays onset
DAYS_PER_YEAR = 365.0


class PhenologyModel:
    """Daily phenology transitions and the fluxes they drive.

    Args:
        epc: Per-element ecophysiological arrays
    """

    def __init__(self, epc):
        self.epc = epc

    def critical_gdd(self, annavg_t2m: np.ndarray) -> np.ndarray:
        """Onset degree-day threshold; derived from mean temperature where unset."""
        derived = np.exp(4.8 + 0.13 * annavg_t2m)
        return np.where(np.isnan(self.epc.crit_onset_gdd), derived, self.epc.crit_onset_gdd)

    # ------------------------------------------------------------------

    def _transfer_growth(self, cs, ns, rate: np.ndarray, mask: np.ndarray) -> np.ndarray:
        """Move ``rate`` of each transfer pool to display; pay transfer growth respiration."""
        grown = np.zeros_like(rate)
        for tissue in TISSUES:
            c_amt = np.where(mask, getattr(cs, f'{tissue}c_transfer') * rate, 0.0)
            n_amt = np.where(mask, getattr(ns, f'{tissue}n_transfer') * rate, 0.0)
            move(cs, f'{tissue}c_transfer', f'{tissue}c', c_amt)
            move(ns, f'{tissue}n_transfer', f'{tissue}n', n_amt)
            grown = grown + c_amt
        gresp = np.minimum(CarbonNitrogenConstants.GR_FRAC * grown, np.maximum(cs.gresp_transfer, 0.0))
        move(cs, 'gresp_transfer', 'gr_snk', gresp)
        return grown

    def _storage_to_transfer(self, cs, ns, fraction: np.ndarray, mask: np.ndarray) -> None:
        for tissue in TISSUES:
            move(cs, f'{tissue}c_storage', f'{tissue}c_transfer',
                 np.where(mask, getattr(cs, f'{tissue}c_storage') * fraction, 0.0))
            move(ns, f'{tissue}n_storage', f'{tissue}n_transfer',
                 np.where(mask, getattr(ns, f'{tissue}n_storage') * fraction, 0.0))
        move(cs, 'gresp_storage', 'gresp_transfer', np.where(mask, cs.gresp_storage * fraction, 0.0))

    def _litterfall(self, cs, ns, leafc_fall: np.ndarray, frootc_fall: np.ndarray) -> None:
        epc = self.epc
        leafc_fall = np.minimum(leafc_fall, np.maximum(cs.leafc, 0.0))
        frootc_fall = np.minimum(frootc_fall, np.maximum(cs.frootc, 0.0))

        leafn_out = nitrogen_share(ns.leafn, cs.leafc, leafc_fall)
        leafn_litter = np.minimum(leafc_fall / epc.leaflitr_cn, leafn_out)
        frootn_out = nitrogen_share(ns.frootn, cs.frootc, frootc_fall)

        split_to_litter(cs, 'leafc', leafc_fall,
                        (epc.leaflitr_flab, epc.leaflitr_fucel, epc.leaflitr_fscel, epc.leaflitr_flig), 'c')
        move(ns, 'leafn', 'retransn', leafn_out - leafn_litter)
        split_to_litter(ns, 'leafn', leafn_litter,
                        (epc.leaflitr_flab, epc.leaflitr_fucel, epc.leaflitr_fscel, epc.leaflitr_flig), 'n')

        split_to_litter(cs, 'frootc', frootc_fall,
                        (epc.frootlitr_flab, epc.frootlitr_fucel, epc.frootlitr_fscel, epc.frootlitr_flig), 'c')
        split_to_litter(ns, 'frootn', frootn_out,
                        (epc.frootlitr_flab, epc.frootlitr_fucel, epc.frootlitr_fscel, epc.frootlitr_flig), 'n')
        return leafc_fall, frootc_fall

    # ------------------------------------------------------------------

    def step(self, phen, cs, ns, met, soil_psi_mpa: np.ndarray) -> Dict[str, np.ndarray]:
        """Advance phenology by one day and apply its fluxes.

        Returns:
            Daily leaf and fine root litterfall carbon and transfer growth
        """
        epc = self.epc
        evergreen = epc.evergreen
        user = epc.user_phenology & ~evergreen
        model = ~evergreen & ~epc.user_phenology

        phen.annavg_t2m = phen.annavg_t2m + (met.tavg - phen.annavg_t2m) / DAYS_PER_YEAR

        phase = phen.phase.copy()
        dormant = phase == PhenologyPhase.DORMANT
        rising = met.dayl > met.prev_dayl

        # ---- DORMANT: degree-day accumulation and onset trigger ----
        start_gdd = model & dormant & (phen.onset_gddflag == 0) & rising
        phen.onset_gddflag = np.where(start_gdd, 1.0, phen.onset_gddflag)
        phen.onset_gdd = np.where(start_gdd, 0.0, phen.onset_gdd)
        # no onset before the summer solstice: wait for next winter
        expire = model & dormant & (phen.onset_gddflag == 1) & ~rising
        phen.onset_gddflag = np.where(expire, 0.0, phen.onset_gddflag)
        phen.onset_gdd = np.where(expire, 0.0, phen.onset_gdd)

        accumulating = model & dormant & (phen.onset_gddflag == 1)
        phen.onset_gdd = phen.onset_gdd + np.where(accumulating, np.maximum(met.tsoil, 0.0), 0.0)
        phen.onset_fdd = phen.onset_fdd + np.where(accumulating & (met.tsoil < 0.0), -met.tsoil, 0.0)

        go_onset = (accumulating & (phen.onset_gdd >= self.critical_gdd(phen.annavg_t2m))
                    & (soil_psi_mpa >= SOILPSI_ON))
        go_onset |= user & dormant & (met.yday == epc.onday)

        # ---- ACTIVE: offset trigger ----
        active = phase == PhenologyPhase.ACTIVE
        phen.days_active = phen.days_active + np.where(active & ~evergreen, 1.0, 0.0)
        phen.offset_fdd = phen.offset_fdd + np.where(
            model & active & ~rising & (met.tsoil < 0.0), -met.tsoil, 0.0)
        go_offset = model & active & ~rising & (
            (met.dayl < epc.crit_dayl) | (phen.offset_fdd > epc.crit_offset_fdd))
        go_offset |= user & (active | (phase == PhenologyPhase.ONSET)) & (met.yday == epc.offday)

        # ---- apply onset ----
        if np.any(go_onset):
            self._storage_to_transfer(cs, ns, epc.storage_to_transfer, go_onset)
            phase = np.where(go_onset, PhenologyPhase.ONSET, phase)
            phen.onset_counter = np.where(go_onset, epc.transfer_days, phen.onset_counter)
            phen.onset_gddflag = np.where(go_onset, 0.0, phen.onset_gddflag)
            phen.onset_gdd = np.where(go_onset, 0.0, phen.onset_gdd)
            phen.onset_fdd = np.where(go_onset, 0.0, phen.onset_fdd)
            logger.debug(f"Phenology onset in {int(go_onset.sum())} element(s) on day {met.yday}")

        # ---- apply offset (fixes constant daily litterfall) ----
        if np.any(go_offset):
            days = np.maximum(epc.litfall_days, 1.0)
            phen.day_leafc_litfall_increment = np.where(
                go_offset, np.maximum(cs.leafc, 0.0) / days, phen.day_leafc_litfall_increment)
            phen.day_frootc_litfall_increment = np.where(
                go_offset, np.maximum(cs.frootc, 0.0) / days, phen.day_frootc_litfall_increment)
            phen.offset_counter = np.where(go_offset, days, phen.offset_counter)
            phase = np.where(go_offset, PhenologyPhase.OFFSET, phase)
            logger.debug(f"Phenology offset in {int(go_offset.sum())} element(s) on day {met.yday}")

        # ---- ONSET: constant-rate transfer growth ----
        in_onset = phase == PhenologyPhase.ONSET
        rate = np.where(in_onset, 1.0 / np.maximum(phen.onset_counter, 1.0), 0.0)
        grown = self._transfer_growth(cs, ns, rate, in_onset)
        phen.onset_counter = np.where(in_onset, phen.onset_counter - 1.0, phen.onset_counter)
        finished = in_onset & (phen.onset_counter <= 0.0)
        phase = np.where(finished, PhenologyPhase.ACTIVE, phase)
        phen.days_active = np.where(finished, 0.0, phen.days_active)
        phen.onset_counter = np.where(finished, 0.0, phen.onset_counter)

        # ---- EVERGREEN: background transfer ----
        if np.any(evergreen):
            self._storage_to_transfer(cs, ns, np.full_like(rate, 1.0 / DAYS_PER_YEAR), evergreen)
            grown = grown + self._transfer_growth(
                cs, ns, 1.0 / np.maximum(epc.transfer_days, 1.0), evergreen)
            phase = np.where(evergreen, PhenologyPhase.ACTIVE, phase)

        # ---- litterfall ----
        in_offset = phase == PhenologyPhase.OFFSET
        leaf_fall = np.where(in_offset, phen.day_leafc_litfall_increment, 0.0)
        froot_fall = np.where(in_offset, phen.day_frootc_litfall_increment, 0.0)
        phen.offset_counter = np.where(in_offset, phen.offset_counter - 1.0, phen.offset_counter)
        ended = in_offset & (phen.offset_counter <= 0.0)
        # last litterfall day drops whatever is left
        leaf_fall = np.where(ended, np.maximum(cs.leafc, 0.0), leaf_fall)
        froot_fall = np.where(ended, np.maximum(cs.frootc, 0.0), froot_fall)

        leaf_fall = leaf_fall + np.where(evergreen, epc.leaf_turnover / DAYS_PER_YEAR * cs.leafc, 0.0)
        froot_fall = froot_fall + np.where(evergreen, epc.froot_turnover / DAYS_PER_YEAR * cs.frootc, 0.0)
        leaf_fall, froot_fall = self._litterfall(cs, ns, leaf_fall, froot_fall)

        phase = np.where(ended, PhenologyPhase.DORMANT, phase)
        phen.offset_counter = np.where(ended, 0.0, phen.offset_counter)
        phen.offset_fdd = np.where(ended, 0.0, phen.offset_fdd)
        phen.days_active = np.where(ended, 0.0, phen.days_active)
        phen.day_leafc_litfall_increment = np.where(ended, 0.0, phen.day_leafc_litfall_increment)
        phen.day_frootc_litfall_increment = np.where(ended, 0.0, phen.day_frootc_litfall_increment)

        phen.phase = phase.astype(int)
        return {
            'leafc_litfall': leaf_fall,
            'frootc_litfall': froot_fall,
            'litfallc': leaf_fall + froot_fall,
            'transfer_growth': grown,
        }
