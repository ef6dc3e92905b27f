# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Ecophysiological constants and decomposition parameters.

Default constant sets follow the Biome-BGC vegetation types. Each element
picks its set through the ``ecophys`` key of its land cover; the sets are
then broadcast to per-element arrays.

References:
    White, M.A. et al. (2000). Parameterization and sensitivity analysis of
    the BIOME-BGC terrestrial ecosystem model. Earth Interactions, 4, 1-85.
"""

from dataclasses import dataclass, fields, replace
from typing import Dict, Optional

import numpy as np

from ..mesh.network import MeshNetwork

# =============================================================================
# ECOPHYSIOLOGICAL CONSTANTS
# =============================================================================


@dataclass(frozen=True)
class EcophysConstants:
    """Ecophysiological constants of one vegetation type.

    Turnover and mortality rates are per year; conductances are m/s; water
    potentials are MPa; VPD limits are Pa; SLA is m2 projected leaf per kgC.
    """
    woody: bool = True
    evergreen: bool = False
    c3_flag: bool = True
    user_phenology: bool = False
    onday: int = -1
    offday: int = -1
    transfer_days: float = 30.0
    litfall_days: float = 30.0
    storage_to_transfer: float = 0.5
    crit_onset_gdd: Optional[float] = None
    crit_offset_fdd: float = 15.0
    crit_dayl: float = 39300.0
    leaf_turnover: float = 1.0
    froot_turnover: float = 1.0
    livewood_turnover: float = 0.7
    daily_mortality_turnover: float = 0.005
    daily_fire_turnover: float = 0.005
    alloc_frootc_leafc: float = 1.0
    alloc_crootc_stemc: float = 0.3
    alloc_newstemc_newleafc: float = 2.2
    alloc_newlivewoodc_newwoodc: float = 0.16
    alloc_prop_curgrowth: float = 0.5
    leaf_cn: float = 24.0
    leaflitr_cn: float = 49.0
    froot_cn: float = 42.0
    livewood_cn: float = 50.0
    deadwood_cn: float = 442.0
    leaflitr_flab: float = 0.38
    leaflitr_fucel: float = 0.44
    leaflitr_fscel: float = 0.0
    leaflitr_flig: float = 0.18
    frootlitr_flab: float = 0.34
    frootlitr_fucel: float = 0.44
    frootlitr_fscel: float = 0.0
    frootlitr_flig: float = 0.22
    deadwood_fucel: float = 0.77
    deadwood_fscel: float = 0.0
    deadwood_flig: float = 0.23
    int_coef: float = 0.045
    ext_coef: float = 0.54
    lai_ratio: float = 2.0
    sla: float = 32.0
    sla_ratio: float = 2.0
    flnr: float = 0.08
    gl_smax: float = 0.006
    gl_c: float = 0.00006
    gl_bl: float = 0.01
    psi_open: float = -0.34
    psi_close: float = -2.2
    vpd_open: float = 1100.0
    vpd_close: float = 3600.0


ECOPHYS_DEFAULTS: Dict[str, EcophysConstants] = {
    'ENF': EcophysConstants(
        evergreen=True, leaf_turnover=0.26, froot_turnover=0.26,
        alloc_newlivewoodc_newwoodc=0.076, alloc_crootc_stemc=0.3,
        leaf_cn=42.0, leaflitr_cn=93.0, froot_cn=42.0, deadwood_cn=729.0,
        leaflitr_flab=0.31, leaflitr_fucel=0.45, leaflitr_flig=0.24,
        frootlitr_flab=0.23, frootlitr_fucel=0.41, frootlitr_flig=0.36,
        deadwood_fucel=0.71, deadwood_flig=0.29,
        int_coef=0.045, ext_coef=0.51, lai_ratio=2.6, sla=8.2, flnr=0.033,
        gl_smax=0.003, psi_open=-0.65, psi_close=-2.5, vpd_open=930.0, vpd_close=4100.0,
    ),
    'EBF': EcophysConstants(
        evergreen=True, leaf_turnover=0.5, froot_turnover=0.5,
        leaf_cn=42.0, leaflitr_cn=49.0, sla=12.0, flnr=0.04, gl_smax=0.005,
    ),
    'DBF': EcophysConstants(),
    'DNF': EcophysConstants(
        alloc_newlivewoodc_newwoodc=0.071, leaf_cn=25.0, leaflitr_cn=55.0,
        sla=22.0, flnr=0.06, gl_smax=0.003, psi_open=-0.63, psi_close=-2.3,
    ),
    'SHRUB': EcophysConstants(
        alloc_newstemc_newleafc=0.2, alloc_newlivewoodc_newwoodc=0.1,
        leaf_cn=42.0, leaflitr_cn=93.0, sla=12.0, flnr=0.06, gl_smax=0.004,
    ),
    'C3GRASS': EcophysConstants(
        woody=False, alloc_frootc_leafc=1.0, alloc_newstemc_newleafc=0.0,
        alloc_newlivewoodc_newwoodc=0.0, alloc_crootc_stemc=0.0,
        leaf_cn=24.0, leaflitr_cn=49.0, froot_cn=42.0,
        leaflitr_flab=0.39, leaflitr_fucel=0.44, leaflitr_flig=0.17,
        frootlitr_flab=0.30, frootlitr_fucel=0.45, frootlitr_flig=0.25,
        daily_fire_turnover=0.1, sla=49.0, flnr=0.1, gl_smax=0.005,
        psi_open=-0.73, psi_close=-2.7, vpd_open=1000.0, vpd_close=5000.0,
    ),
    'C4GRASS': EcophysConstants(
        woody=False, c3_flag=False, alloc_newstemc_newleafc=0.0,
        alloc_newlivewoodc_newwoodc=0.0, alloc_crootc_stemc=0.0,
        leaf_cn=24.0, leaflitr_cn=49.0, daily_fire_turnover=0.1,
        sla=32.0, flnr=0.09, gl_smax=0.005,
        psi_open=-1.0, psi_close=-3.0, vpd_open=1000.0, vpd_close=5000.0,
    ),
}


def ecophys_for(name: str, overrides: Optional[Dict[str, float]] = None) -> EcophysConstants:
    """Constant set for a vegetation key, with optional field overrides."""
    try:
        epc = ECOPHYS_DEFAULTS[name.upper()]
    except KeyError:
        raise KeyError(
            f"Unknown ecophysiology type '{name}'. Known: {sorted(ECOPHYS_DEFAULTS)}"
        ) from None
    return replace(epc, **overrides) if overrides else epc


class EcophysArrays:
    """Per-element broadcast of ecophysiological constants.

    Attribute access returns a float array (boolean flags as bool arrays);
    ``crit_onset_gdd`` is NaN where the set leaves it undefined.
    """

    def __init__(self, constants):
        self.constants = tuple(constants)
        self.size = len(self.constants)
        for f in fields(EcophysConstants):
            values = [getattr(c, f.name) for c in self.constants]
            if f.name == 'crit_onset_gdd':
                arr = np.array([np.nan if v is None else v for v in values], dtype=float)
            elif f.type in (bool, 'bool'):
                arr = np.array(values, dtype=bool)
            else:
                arr = np.array(values, dtype=float)
            setattr(self, f.name, arr)

    @classmethod
    def from_mesh(cls, mesh: MeshNetwork,
                  overrides: Optional[Dict[str, Dict[str, float]]] = None) -> 'EcophysArrays':
        overrides = overrides or {}
        constants = []
        for lc_index in mesh.landcover_index:
            key = mesh.landcovers[lc_index].ecophys
            constants.append(ecophys_for(key, overrides.get(key)))
        return cls(constants)


# =============================================================================
# DECOMPOSITION CASCADE
# =============================================================================

DECOMP_RATES = {
    'kl1': 0.7,      # labile litter (1/day)
    'kl2': 0.07,     # cellulose litter
    'kl4': 0.014,    # lignin litter
    'ks1': 0.07,     # fast microbial SOM
    'ks2': 0.014,    # medium SOM
    'ks3': 0.0014,   # slow SOM
    'ks4': 0.0001,   # recalcitrant SOM
    'kfrag': 0.001,  # coarse woody debris fragmentation
}

RESPIRATION_FRACTIONS = {
    'rfl1s1': 0.39,
    'rfl2s2': 0.55,
    'rfl4s3': 0.29,
    'rfs1s2': 0.28,
    'rfs2s3': 0.46,
    'rfs3s4': 0.55,
}

SOIL_CN = {
    'soil1': 12.0,
    'soil2': 12.0,
    'soil3': 10.0,
    'soil4': 10.0,
}
