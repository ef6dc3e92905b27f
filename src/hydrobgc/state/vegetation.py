# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Phenology and annual running state of the vegetation.
"""

from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Dict

import numpy as np


class PhenologyPhase(IntEnum):
    """Growth phase of the phenology state machine."""
    DORMANT = 0
    ONSET = 1
    ACTIVE = 2
    OFFSET = 3


class _ArrayRecord:

    def copy(self):
        return type(self)(**{f.name: getattr(self, f.name).copy() for f in fields(self)})

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, np.ndarray]):
        out = {}
        for f in fields(cls):
            dtype = int if f.name == 'phase' else float
            out[f.name] = np.asarray(data[f.name], dtype=dtype).copy()
        return cls(**out)


@dataclass
class PhenologyState(_ArrayRecord):
    """Per-element phenology counters.

    Counters are in days. ``onset_gddflag`` is 1 once degree-day
    accumulation has started for the current year.
    """
    phase: np.ndarray
    onset_counter: np.ndarray
    offset_counter: np.ndarray
    onset_gddflag: np.ndarray
    onset_gdd: np.ndarray
    onset_fdd: np.ndarray
    offset_fdd: np.ndarray
    days_active: np.ndarray
    day_leafc_litfall_increment: np.ndarray
    day_frootc_litfall_increment: np.ndarray
    annavg_t2m: np.ndarray

    @classmethod
    def initial(cls, n: int, evergreen: np.ndarray, annavg_t2m: float = 10.0) -> 'PhenologyState':
        phase = np.where(evergreen, PhenologyPhase.ACTIVE, PhenologyPhase.DORMANT).astype(int)
        z = np.zeros(n)
        return cls(
            phase=phase,
            onset_counter=z.copy(),
            offset_counter=z.copy(),
            onset_gddflag=z.copy(),
            onset_gdd=z.copy(),
            onset_fdd=z.copy(),
            offset_fdd=z.copy(),
            days_active=z.copy(),
            day_leafc_litfall_increment=z.copy(),
            day_frootc_litfall_increment=z.copy(),
            annavg_t2m=np.full(n, annavg_t2m),
        )


@dataclass
class AnnualState(_ArrayRecord):
    """Running annual maxima and sums, rolled over at the start of each year."""
    year: np.ndarray
    annmax_leafc: np.ndarray
    annmax_frootc: np.ndarray
    annmax_livestemc: np.ndarray
    annmax_livecrootc: np.ndarray
    annsum_gpp: np.ndarray
    annsum_npp: np.ndarray
    annsum_litfallc: np.ndarray
    last_annmax_leafc: np.ndarray
    last_annsum_npp: np.ndarray

    @classmethod
    def initial(cls, n: int, year: int) -> 'AnnualState':
        z = np.zeros(n)
        return cls(
            year=np.full(n, float(year)),
            annmax_leafc=z.copy(),
            annmax_frootc=z.copy(),
            annmax_livestemc=z.copy(),
            annmax_livecrootc=z.copy(),
            annsum_gpp=z.copy(),
            annsum_npp=z.copy(),
            annsum_litfallc=z.copy(),
            last_annmax_leafc=z.copy(),
            last_annsum_npp=z.copy(),
        )

    def rollover(self, year: int) -> None:
        """Start a new year: keep last year's leaf maximum and NPP, reset running values."""
        self.last_annmax_leafc = self.annmax_leafc.copy()
        self.last_annsum_npp = self.annsum_npp.copy()
        for name in ('annmax_leafc', 'annmax_frootc', 'annmax_livestemc', 'annmax_livecrootc',
                     'annsum_gpp', 'annsum_npp', 'annsum_litfallc'):
            getattr(self, name)[:] = 0.0
        self.year[:] = year
