# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Whole-plant mortality, fire and live wood turnover.

Annual rates are applied as 1/365 per day. Mortality of display leaves and
fine roots feeds the litter pools by their litter fractions, storage and
transfer pools go to the labile litter pool and wood goes to coarse woody
debris. Fire removes the same share of every plant, litter and debris
pool to the fire sink.
"""

from typing import Dict

import numpy as np

from ..state.pools import TISSUES
from .flows import move, nitrogen_share, split_to_litter

DAYS_PER_YEAR = 365.0
WOOD = ('livestem', 'deadstem', 'livecroot', 'deadcroot')
FIRE_POOLS_C = ('cwdc', 'litr1c', 'litr2c', 'litr3c', 'litr4c')
FIRE_POOLS_N = ('cwdn', 'litr1n', 'litr2n', 'litr3n', 'litr4n')


def livewood_turnover(cs, ns, epc) -> np.ndarray:
    """Live stem and coarse root to dead wood, surplus N to retranslocation."""
    rate = np.where(epc.woody, epc.livewood_turnover / DAYS_PER_YEAR, 0.0)
    moved = np.zeros_like(rate)
    for live, dead in (('livestem', 'deadstem'), ('livecroot', 'deadcroot')):
        c_amt = np.maximum(getattr(cs, f'{live}c'), 0.0) * rate
        n_out = nitrogen_share(getattr(ns, f'{live}n'), getattr(cs, f'{live}c'), c_amt)
        n_dead = np.minimum(c_amt / epc.deadwood_cn, n_out)
        move(cs, f'{live}c', f'{dead}c', c_amt)
        move(ns, f'{live}n', f'{dead}n', n_dead)
        move(ns, f'{live}n', 'retransn', n_out - n_dead)
        moved = moved + c_amt
    return moved


def _litter_fractions(epc, tissue):
    if tissue == 'leaf':
        return (epc.leaflitr_flab, epc.leaflitr_fucel, epc.leaflitr_fscel, epc.leaflitr_flig)
    return (epc.frootlitr_flab, epc.frootlitr_fucel, epc.frootlitr_fscel, epc.frootlitr_flig)


def mortality(cs, ns, epc) -> np.ndarray:
    """Daily whole-plant mortality; returns the carbon moved to litter and debris."""
    rate = epc.daily_mortality_turnover / DAYS_PER_YEAR
    total = np.zeros_like(rate)

    for tissue in ('leaf', 'froot'):
        c_amt = np.maximum(getattr(cs, f'{tissue}c'), 0.0) * rate
        n_amt = np.maximum(getattr(ns, f'{tissue}n'), 0.0) * rate
        fractions = _litter_fractions(epc, tissue)
        split_to_litter(cs, f'{tissue}c', c_amt, fractions, 'c')
        split_to_litter(ns, f'{tissue}n', n_amt, fractions, 'n')
        total = total + c_amt

    for tissue in WOOD:
        c_amt = np.maximum(getattr(cs, f'{tissue}c'), 0.0) * rate
        n_amt = np.maximum(getattr(ns, f'{tissue}n'), 0.0) * rate
        move(cs, f'{tissue}c', 'cwdc', c_amt)
        move(ns, f'{tissue}n', 'cwdn', n_amt)
        total = total + c_amt

    for tissue in TISSUES:
        for suffix in ('_storage', '_transfer'):
            c_amt = np.maximum(getattr(cs, f'{tissue}c{suffix}'), 0.0) * rate
            n_amt = np.maximum(getattr(ns, f'{tissue}n{suffix}'), 0.0) * rate
            move(cs, f'{tissue}c{suffix}', 'litr1c', c_amt)
            move(ns, f'{tissue}n{suffix}', 'litr1n', n_amt)
            total = total + c_amt
    for pool in ('gresp_storage', 'gresp_transfer'):
        c_amt = np.maximum(getattr(cs, pool), 0.0) * rate
        move(cs, pool, 'litr1c', c_amt)
        total = total + c_amt
    return total


def fire(cs, ns, epc) -> Dict[str, np.ndarray]:
    """Daily fire losses of plant, litter and debris pools."""
    rate = epc.daily_fire_turnover / DAYS_PER_YEAR
    c_names = [f'{t}c{s}' for t in TISSUES for s in ('', '_storage', '_transfer')]
    c_names += ['gresp_storage', 'gresp_transfer']
    n_names = [f'{t}n{s}' for t in TISSUES for s in ('', '_storage', '_transfer')]

    c_lost = np.zeros_like(rate)
    for name in c_names + list(FIRE_POOLS_C):
        amt = np.maximum(getattr(cs, name), 0.0) * rate
        move(cs, name, 'fire_snk', amt)
        c_lost = c_lost + amt
    n_lost = np.zeros_like(rate)
    for name in n_names + list(FIRE_POOLS_N):
        amt = np.maximum(getattr(ns, name), 0.0) * rate
        move(ns, name, 'fire_snk', amt)
        n_lost = n_lost + amt
    return {'fire_c': c_lost, 'fire_n': n_lost}
