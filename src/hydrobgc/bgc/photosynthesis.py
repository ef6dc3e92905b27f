# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Sunlit/shaded canopy photosynthesis.

Farquhar-type biochemistry coupled to a leaf conductance that is limited by
light, soil water potential, vapour pressure deficit and night minimum
temperature. The two quadratic solutions (Rubisco-limited ``Av`` and
electron-transport-limited ``Aj``) include the conductance so that the
internal CO2 concentration is solved implicitly.

References:
    Farquhar, G.D., von Caemmerer, S. and Berry, J.A. (1980). Planta, 149, 78-90.
    de Pury, D.G.G. and Farquhar, G.D. (1997). Plant Cell Environ., 20, 537-557.
"""

from typing import NamedTuple

import numpy as np

from ..core.constants import CarbonNitrogenConstants, PhysicalConstants

KC25 = 40.4          # Michaelis constant for CO2 at 25 °C (Pa)
KC_Q10 = 2.1
KO25 = 24800.0       # Michaelis constant for O2 at 25 °C (Pa)
KO_Q10 = 1.2
ACT25 = 3.6          # Rubisco activity at 25 °C (umol CO2 / mg Rubisco / min)
ACT_Q10 = 2.4
FNR = 7.16           # g Rubisco per g N in Rubisco
JMAX_VMAX = 2.1
THETA = 0.7
PPE = 2.6            # photons per electron
PPFD50 = 75.0        # PPFD at half-maximal stomatal opening (umol/m2/s)
EPAR = 4.55          # umol photons per J of PAR
MW_C = 12.011e-9     # kgC per umol C
R_GAS = 8.3143


class CanopyPhotosynthesis(NamedTuple):
    """Daily canopy photosynthesis results (per m2 ground)."""
    gpp: np.ndarray          # gross assimilation (kgC/m2/day)
    lai_sun: np.ndarray
    lai_shade: np.ndarray
    conductance: np.ndarray  # canopy stomatal conductance to water (m/s)


def _linear_ramp(value, closed, opened):
    """0 at ``closed``, 1 at ``opened``, linear in between."""
    span = opened - closed
    return np.clip((value - closed) / np.where(span == 0, 1.0, span), 0.0, 1.0)


def _quadratic_root(a, b, c):
    disc = np.maximum(b * b - 4.0 * a * c, 0.0)
    return (-b + np.sqrt(disc)) / (2.0 * a)


def leaf_assimilation(ppfd, g_co2, co2_pa, temperature, lnc, flnr, rd, c3=True, stress=1.0):
    """Net leaf assimilation (umol/m2 leaf/s).

    Args:
        ppfd: Absorbed photon flux per leaf area (umol/m2/s)
        g_co2: Leaf conductance to CO2 (umol/m2/s/Pa)
        co2_pa: Ambient CO2 partial pressure (Pa)
        temperature: Leaf temperature (°C)
        lnc: Leaf nitrogen per leaf area (g/m2)
        flnr: Fraction of leaf N in Rubisco
        rd: Day leaf respiration (umol/m2/s)
        c3: C3 pathway; C4 leaves skip the CO2 diffusion limitation
        stress: Conductance stress factor (0-1) applied to C4 leaves
    """
    tdiff = (temperature - 25.0) / 10.0
    kc = KC25 * KC_Q10 ** tdiff
    ko = KO25 * KO_Q10 ** tdiff
    act = ACT25 * ACT_Q10 ** tdiff * 1.0e3 / 60.0   # umol CO2 / g Rubisco / s
    o2 = CarbonNitrogenConstants.O2_PA

    vmax = lnc * flnr * FNR * act
    jmax = JMAX_VMAX * vmax
    absorbed = ppfd / PPE
    j = (absorbed + jmax - np.sqrt(np.maximum((absorbed + jmax) ** 2
                                              - 4.0 * THETA * absorbed * jmax, 0.0))) / (2.0 * THETA)
    gamma = 0.5 * 0.21 * kc * o2 / ko
    kco = kc * (1.0 + o2 / ko)

    if not c3:
        return np.minimum(vmax, 0.25 * j) * stress - rd

    g = np.maximum(g_co2, 1.0e-9)
    a = -1.0 / g
    b = co2_pa + (vmax - rd) / g + kco
    c = vmax * (gamma - co2_pa) + rd * (co2_pa + kco)
    av = _quadratic_root(a, b, c)

    a = -4.0 / g
    b = 4.0 * co2_pa + 8.0 * gamma + j / g - 4.0 * rd / g
    c = j * (gamma - co2_pa) + rd * (4.0 * co2_pa + 8.0 * gamma)
    aj = _quadratic_root(a, b, c)

    return np.minimum(av, aj)


def canopy_photosynthesis(leafc, epc, met, soil_psi_mpa, co2_ppm, pres, leaf_mr_day):
    """Daily sunlit plus shaded GPP.

    Args:
        leafc: Leaf carbon (kgC/m2)
        epc: Per-element ecophysiological arrays
        met: Daily meteorology
        soil_psi_mpa: Soil water potential (MPa)
        co2_ppm: Atmospheric CO2 (ppm)
        pres: Air pressure (Pa)
        leaf_mr_day: Daylight leaf maintenance respiration (kgC/m2/day)
    """
    proj_lai = np.maximum(leafc, 0.0) * epc.sla
    lai_sun = 1.0 - np.exp(-proj_lai)
    lai_shade = np.maximum(proj_lai - lai_sun, 0.0)

    dayl = max(met.dayl, 1.0)
    par_abs = met.par * (1.0 - np.exp(-epc.ext_coef * proj_lai))
    par_sun = epc.ext_coef * met.par * np.ones_like(proj_lai)
    par_shade = np.where(lai_shade > 0.0,
                         np.maximum(par_abs - par_sun * lai_sun, 0.0) / np.maximum(lai_shade, 1.0e-9),
                         0.0)
    ppfd_sun = par_sun * EPAR
    ppfd_shade = par_shade * EPAR

    m_psi = _linear_ramp(soil_psi_mpa, epc.psi_close, epc.psi_open)
    m_vpd = 1.0 - _linear_ramp(met.vpd, epc.vpd_open, epc.vpd_close)
    m_tmin = np.clip(1.0 + 0.125 * met.tmin, 0.0, 1.0)
    m_stress = m_psi * m_vpd * m_tmin

    tk = met.tday + PhysicalConstants.TFREEZE
    co2_pa = co2_ppm * 1.0e-6 * pres

    sla_sun = epc.sla
    sla_shade = epc.sla * epc.sla_ratio
    lnc_sun = 1000.0 / (sla_sun * epc.leaf_cn)
    lnc_shade = 1000.0 / (sla_shade * epc.leaf_cn)

    # day leaf respiration per unit leaf area (umol/m2/s)
    rd_total = leaf_mr_day / MW_C / dayl
    rd_per_lai = np.where(proj_lai > 0.0, rd_total / np.maximum(proj_lai, 1.0e-9), 0.0)

    gpp = np.zeros_like(proj_lai)
    conductance = np.zeros_like(proj_lai)
    for lai_part, ppfd, lnc in ((lai_sun, ppfd_sun, lnc_sun), (lai_shade, ppfd_shade, lnc_shade)):
        m_ppfd = ppfd / (PPFD50 + ppfd)
        gl_s = epc.gl_smax * m_ppfd * m_stress
        gl_leaf = epc.gl_bl * (gl_s + epc.gl_c) / (epc.gl_bl + gl_s + epc.gl_c)
        g_co2 = gl_leaf / 1.6 * 1.0e6 / (R_GAS * tk)
        conductance += gl_s * lai_part

        a_net = np.where(epc.c3_flag,
                         leaf_assimilation(ppfd, g_co2, co2_pa, met.tday, lnc, epc.flnr, rd_per_lai, True),
                         leaf_assimilation(ppfd, g_co2, co2_pa, met.tday, lnc, epc.flnr, rd_per_lai,
                                           False, m_stress))
        gross = np.maximum(a_net + rd_per_lai, 0.0)
        gpp += gross * lai_part * dayl * MW_C

    has_light = met.dayl > 0.0
    gpp = np.where((proj_lai > 0.0) & has_light, gpp, 0.0)
    return CanopyPhotosynthesis(gpp=gpp, lai_sun=lai_sun, lai_shade=lai_shade,
                                conductance=conductance)
