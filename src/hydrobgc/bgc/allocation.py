# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Carbon and nitrogen allocation to new growth.

New growth is partitioned by fixed allometric ratios relative to new leaf
carbon:

    f1  new fine root C : new leaf C
    f2  new coarse root C : new stem C
    f3  new stem C : new leaf C
    f4  new live wood C : new total wood C
    g1  growth respiration per unit new growth C

Plant N demand follows from the available carbon and the tissue C:N ratios.
Retranslocated N is drawn first; the remainder competes for soil mineral N.
When the plant receives less N than it asked for, the carbon that cannot
be used is removed from GPP (downregulation).
"""

from typing import NamedTuple

import numpy as np

from ..core.constants import CarbonNitrogenConstants
from .flows import move


class AllocationDemand(NamedTuple):
    """Potential allocation before nitrogen reconciliation (per m2 ground/day)."""
    availc: np.ndarray
    c_allometry: np.ndarray
    n_allometry: np.ndarray
    plant_ndemand: np.ndarray
    retransn_to_npool: np.ndarray
    sminn_demand: np.ndarray


class AllocationResult(NamedTuple):
    gpp: np.ndarray
    mr: np.ndarray
    plant_calloc: np.ndarray
    plant_nalloc: np.ndarray
    excess_c: np.ndarray
    downreg: np.ndarray
    gr_current: np.ndarray


def _ratios(epc):
    f1 = epc.alloc_frootc_leafc
    f2 = np.where(epc.woody, epc.alloc_crootc_stemc, 0.0)
    f3 = np.where(epc.woody, epc.alloc_newstemc_newleafc, 0.0)
    f4 = np.where(epc.woody, epc.alloc_newlivewoodc_newwoodc, 0.0)
    return f1, f2, f3, f4


def allometry(epc):
    """Carbon and nitrogen required per unit new leaf carbon."""
    g1 = CarbonNitrogenConstants.GR_FRAC
    f1, f2, f3, f4 = _ratios(epc)
    c_allometry = (1.0 + g1) * (1.0 + f1 + f3 * (1.0 + f2))
    n_allometry = (1.0 / epc.leaf_cn + f1 / epc.froot_cn
                   + f3 * f4 * (1.0 + f2) / epc.livewood_cn
                   + f3 * (1.0 - f4) * (1.0 + f2) / epc.deadwood_cn)
    return c_allometry, n_allometry


def allocation_demand(epc, gpp: np.ndarray, mr: np.ndarray, retransn: np.ndarray) -> AllocationDemand:
    """Plant N demand from the carbon left after maintenance respiration."""
    availc = np.maximum(gpp - mr, 0.0)
    c_allom, n_allom = allometry(epc)
    plant_ndemand = availc * n_allom / c_allom
    retrans = np.minimum(plant_ndemand, np.maximum(retransn, 0.0))
    return AllocationDemand(
        availc=availc,
        c_allometry=c_allom,
        n_allometry=n_allom,
        plant_ndemand=plant_ndemand,
        retransn_to_npool=retrans,
        sminn_demand=plant_ndemand - retrans,
    )


def allocate(cs, ns, epc, demand: AllocationDemand, sminn_to_npool: np.ndarray,
             gpp: np.ndarray, mr: np.ndarray) -> AllocationResult:
    """Apply GPP, maintenance respiration and new growth to the pools.

    Args:
        cs: Carbon pools (modified in place)
        ns: Nitrogen pools (modified in place)
        epc: Per-element ecophysiological arrays
        demand: Potential allocation
        sminn_to_npool: Mineral N granted to the plant
        gpp: Potential gross assimilation
        mr: Maintenance respiration demand
    """
    g1 = CarbonNitrogenConstants.GR_FRAC
    f1, f2, f3, f4 = _ratios(epc)

    plant_nalloc = demand.retransn_to_npool + sminn_to_npool
    plant_calloc = np.where(demand.n_allometry > 0.0,
                            plant_nalloc * demand.c_allometry / demand.n_allometry, 0.0)
    plant_calloc = np.minimum(plant_calloc, demand.availc)
    excess_c = np.maximum(demand.availc - plant_calloc, 0.0)
    downreg = np.where(demand.availc > 0.0, excess_c / np.where(demand.availc > 0.0, demand.availc, 1.0), 0.0)
    gpp_actual = gpp - excess_c

    # gpp and respiration through the cpool
    cs.gpp_src = cs.gpp_src + gpp_actual
    cs.cpool = cs.cpool + gpp_actual
    mr_actual = np.minimum(mr, np.maximum(cs.cpool, 0.0))
    move(cs, 'cpool', 'mr_snk', mr_actual)

    move(ns, 'retransn', 'npool', demand.retransn_to_npool)
    move(ns, 'sminn', 'npool', sminn_to_npool)

    # new growth
    nlc = plant_calloc / demand.c_allometry
    fcur = epc.alloc_prop_curgrowth
    new_c = {
        'leaf': nlc,
        'froot': nlc * f1,
        'livestem': nlc * f3 * f4,
        'deadstem': nlc * f3 * (1.0 - f4),
        'livecroot': nlc * f3 * f2 * f4,
        'deadcroot': nlc * f3 * f2 * (1.0 - f4),
    }
    cn = {
        'leaf': epc.leaf_cn,
        'froot': epc.froot_cn,
        'livestem': epc.livewood_cn,
        'deadstem': epc.deadwood_cn,
        'livecroot': epc.livewood_cn,
        'deadcroot': epc.deadwood_cn,
    }
    growth = np.zeros_like(nlc)
    for tissue, c_amt in new_c.items():
        n_amt = c_amt / cn[tissue]
        move(cs, 'cpool', f'{tissue}c', c_amt * fcur)
        move(cs, 'cpool', f'{tissue}c_storage', c_amt * (1.0 - fcur))
        move(ns, 'npool', f'{tissue}n', n_amt * fcur)
        move(ns, 'npool', f'{tissue}n_storage', n_amt * (1.0 - fcur))
        growth = growth + c_amt

    gr_current = g1 * growth * fcur
    move(cs, 'cpool', 'gr_snk', gr_current)
    move(cs, 'cpool', 'gresp_storage', g1 * growth * (1.0 - fcur))

    return AllocationResult(
        gpp=gpp_actual,
        mr=mr_actual,
        plant_calloc=plant_calloc,
        plant_nalloc=plant_nalloc,
        excess_c=excess_c,
        downreg=downreg,
        gr_current=gr_current,
    )
