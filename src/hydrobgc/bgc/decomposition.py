# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Litter and soil organic matter decomposition cascade.

Potential fluxes are computed from start-of-day pools with a rate scalar
from soil temperature (Lloyd and Taylor, 1994) and soil water potential
(Andren and Paustian, 1987). Each pathway carries a potential mineral N
flux ``pmnf``: positive when the receiving pool needs more N than the donor
releases (immobilization), negative for net mineralization. Immobilizing
pathways are scaled by the microbial fraction of potential immobilization
granted by the nitrogen arbiter.
"""

from typing import Dict, NamedTuple

import numpy as np

from .flows import move, nitrogen_share
from .parameters import DECOMP_RATES, RESPIRATION_FRACTIONS, SOIL_CN

MIN_PSI_MPA = -10.0
MAX_PSI_MPA = -0.004
MIN_DECOMP_TEMP = -10.0


class Pathway(NamedTuple):
    src: str
    dst: str          # '' for full mineralization
    rate: str
    respired: float


PATHWAYS = (
    Pathway('litr1', 'soil1', 'kl1', RESPIRATION_FRACTIONS['rfl1s1']),
    Pathway('litr2', 'soil2', 'kl2', RESPIRATION_FRACTIONS['rfl2s2']),
    Pathway('litr3', 'litr2', 'kl4', 0.0),
    Pathway('litr4', 'soil3', 'kl4', RESPIRATION_FRACTIONS['rfl4s3']),
    Pathway('soil1', 'soil2', 'ks1', RESPIRATION_FRACTIONS['rfs1s2']),
    Pathway('soil2', 'soil3', 'ks2', RESPIRATION_FRACTIONS['rfs2s3']),
    Pathway('soil3', 'soil4', 'ks3', RESPIRATION_FRACTIONS['rfs3s4']),
    Pathway('soil4', '', 'ks4', 1.0),
)


class DecompositionPotential(NamedTuple):
    """Start-of-day potential decomposition (per m2/day)."""
    rate_scalar: np.ndarray
    carbon: Dict[str, np.ndarray]       # pathway key -> C leaving the donor
    nitrogen: Dict[str, np.ndarray]     # pathway key -> N leaving the donor
    pmnf: Dict[str, np.ndarray]         # pathway key -> potential mineral N flux
    cwd_fragmentation: np.ndarray
    gross_nmin: np.ndarray
    potential_immob: np.ndarray


def _key(p: Pathway) -> str:
    return f'{p.src}{p.dst or "min"}'


def temperature_scalar(tsoil: np.ndarray) -> np.ndarray:
    """Lloyd-Taylor response, 1 at 25 °C; zero below -10 °C."""
    tsoil = np.asarray(tsoil, dtype=float)
    t = np.maximum(tsoil, MIN_DECOMP_TEMP)
    scalar = np.exp(308.56 * (1.0 / 71.02 - 1.0 / (t + 46.02)))
    return np.where(tsoil < MIN_DECOMP_TEMP, 0.0, scalar)


def water_scalar(psi_mpa: np.ndarray) -> np.ndarray:
    """Log-linear in water potential: 0 at -10 MPa, 1 at -0.004 MPa and wetter."""
    psi = np.minimum(np.asarray(psi_mpa, dtype=float), MAX_PSI_MPA)
    psi = np.maximum(psi, MIN_PSI_MPA)
    return np.log(MIN_PSI_MPA / psi) / np.log(MIN_PSI_MPA / MAX_PSI_MPA)


def potential_decomposition(cs, ns, tsoil, psi_mpa) -> DecompositionPotential:
    """Potential fluxes of every decomposition pathway."""
    scalar = temperature_scalar(tsoil) * water_scalar(psi_mpa)
    carbon: Dict[str, np.ndarray] = {}
    nitrogen: Dict[str, np.ndarray] = {}
    pmnf: Dict[str, np.ndarray] = {}
    for p in PATHWAYS:
        src_c = np.maximum(getattr(cs, f'{p.src}c'), 0.0)
        c_out = src_c * (1.0 - np.exp(-DECOMP_RATES[p.rate] * scalar))
        n_out = nitrogen_share(getattr(ns, f'{p.src}n'), getattr(cs, f'{p.src}c'), c_out)
        if p.dst.startswith('soil'):
            n_in = c_out * (1.0 - p.respired) / SOIL_CN[p.dst]
        elif p.dst:
            n_in = n_out
        else:
            n_in = np.zeros_like(c_out)
        carbon[_key(p)] = c_out
        nitrogen[_key(p)] = n_out
        pmnf[_key(p)] = n_in - n_out

    cwd_frag = np.maximum(cs.cwdc, 0.0) * (1.0 - np.exp(-DECOMP_RATES['kfrag'] * scalar))
    stacked = np.array(list(pmnf.values()))
    return DecompositionPotential(
        rate_scalar=scalar,
        carbon=carbon,
        nitrogen=nitrogen,
        pmnf=pmnf,
        cwd_fragmentation=cwd_frag,
        gross_nmin=np.sum(np.where(stacked < 0.0, -stacked, 0.0), axis=0),
        potential_immob=np.sum(np.where(stacked > 0.0, stacked, 0.0), axis=0),
    )


def apply_decomposition(cs, ns, epc, potential: DecompositionPotential,
                        fpi: np.ndarray) -> Dict[str, np.ndarray]:
    """Apply the decomposition fluxes, scaling immobilizing pathways by ``fpi``.

    Returns:
        Heterotrophic respiration, actual immobilization and gross mineralization
    """
    hr = np.zeros_like(fpi)
    immob = np.zeros_like(fpi)
    nmin = np.zeros_like(fpi)

    # cwd fragmentation into the litter pools, N at the debris C:N
    frag_c = potential.cwd_fragmentation
    frag_n = nitrogen_share(ns.cwdn, cs.cwdc, frag_c)
    shares = (epc.deadwood_fucel, epc.deadwood_fscel)
    for pool, share in zip(('litr2', 'litr3'), shares):
        move(cs, 'cwdc', f'{pool}c', frag_c * share)
        move(ns, 'cwdn', f'{pool}n', frag_n * share)
    lignin = 1.0 - epc.deadwood_fucel - epc.deadwood_fscel
    move(cs, 'cwdc', 'litr4c', frag_c * lignin)
    move(ns, 'cwdn', 'litr4n', frag_n * lignin)

    for p in PATHWAYS:
        key = _key(p)
        pot = potential.pmnf[key]
        scale = np.where(pot > 0.0, fpi, 1.0)
        c_out = potential.carbon[key] * scale
        n_out = potential.nitrogen[key] * scale
        respired = c_out * p.respired
        move(cs, f'{p.src}c', 'hr_snk', respired)
        hr = hr + respired
        move(ns, f'{p.src}n', 'sminn', n_out)
        if p.dst:
            move(cs, f'{p.src}c', f'{p.dst}c', c_out - respired)
            if p.dst.startswith('soil'):
                n_in = (c_out - respired) / SOIL_CN[p.dst]
            else:
                n_in = n_out
            move(ns, 'sminn', f'{p.dst}n', n_in)
            net = n_in - n_out
        else:
            net = -n_out
        immob = immob + np.maximum(net, 0.0)
        nmin = nmin + np.maximum(-net, 0.0)

    return {'hr': hr, 'immob': immob, 'gross_nmin': nmin}
