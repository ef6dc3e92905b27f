# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Daily carbon summary.

Sign convention: NEE is the net carbon gain of the ecosystem
(``NEP - fire``), positive when the land takes up carbon.
"""

from typing import Dict, NamedTuple

import numpy as np


class DailySummary(NamedTuple):
    """Per-element daily carbon fluxes (kgC/m2/day) and pool totals (kgC/m2)."""
    gpp: np.ndarray
    mr: np.ndarray
    gr: np.ndarray
    hr: np.ndarray
    fire: np.ndarray
    npp: np.ndarray
    nep: np.ndarray
    nee: np.ndarray
    litfallc: np.ndarray
    vegc: np.ndarray
    litrc: np.ndarray
    soilc: np.ndarray
    totalc: np.ndarray
    lai: np.ndarray

    def to_dict(self) -> Dict[str, np.ndarray]:
        return dict(self._asdict())


def summarize(cs, gpp, mr, gr, hr, fire, litfallc, lai) -> DailySummary:
    npp = gpp - mr - gr
    nep = npp - hr
    vegc = cs.vegetation()
    litrc = cs.litter()
    soilc = cs.soil()
    return DailySummary(
        gpp=gpp,
        mr=mr,
        gr=gr,
        hr=hr,
        fire=fire,
        npp=npp,
        nep=nep,
        nee=nep - fire,
        litfallc=litfallc,
        vegc=vegc,
        litrc=litrc,
        soilc=soilc,
        totalc=vegc + litrc + soilc,
        lai=lai,
    )
