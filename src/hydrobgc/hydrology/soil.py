# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Soil hydraulics.

van Genuchten retention with Mualem relative conductivity, macropore
effective conductivities and the conductivity averaging rule used for
lateral Darcy exchange. All functions are vectorised over elements.
"""

import numpy as np

from ..core.constants import HydrologyConstants

SATN_MIN = 1.0e-4
SATN_MAX = 1.0 - 1.0e-6


def smooth_ramp(storage, eps: float = HydrologyConstants.DEPTH_EPS):
    """Availability factor in [0, 1] rising smoothly from 0 at empty storage.

    Reaches exactly 1 at ``storage >= eps`` and exactly 0 at ``storage <= 0``.
    """
    x = np.clip(np.asarray(storage, dtype=float) / eps, 0.0, 1.0)
    return x * x * (3.0 - 2.0 * x)


def smooth_step(x):
    """Cubic step from 0 at ``x <= 0`` to 1 at ``x >= 1``."""
    x = np.clip(np.asarray(x, dtype=float), 0.0, 1.0)
    return x * x * (3.0 - 2.0 * x)


def unsat_saturation(unsat, gw, soil_depth):
    """Relative saturation of the unsaturated zone.

    ``unsat`` is water-table-equivalent height, so saturation is the ratio of
    that height to the unsaturated column height above the water table.
    """
    deficit = np.maximum(soil_depth - gw, HydrologyConstants.DEPTH_EPS)
    return np.clip(unsat / deficit, SATN_MIN, SATN_MAX)


def pressure_head(satn, alpha, beta):
    """van Genuchten pressure head (m), bounded below by ``MIN_PSI``."""
    satn = np.clip(satn, SATN_MIN, SATN_MAX)
    m = 1.0 - 1.0 / beta
    psi = -((satn ** (-1.0 / m) - 1.0) ** (1.0 / beta)) / alpha
    return np.maximum(psi, HydrologyConstants.MIN_PSI)


def relative_conductivity(satn, beta):
    """Mualem relative hydraulic conductivity."""
    satn = np.clip(satn, SATN_MIN, 1.0)
    m = 1.0 - 1.0 / beta
    return np.sqrt(satn) * (1.0 - (1.0 - satn ** (1.0 / m)) ** m) ** 2


def effective_kv(ksatv, kr, kmacv, areafh, macropore, satn):
    """Vertical conductivity through matrix and (when wet) macropores.

    Macropores conduct only once the matrix is close to saturation; their
    share ramps in over the wettest tenth of the saturation range.
    """
    matrix = ksatv * kr
    mac_active = np.where(macropore, smooth_step((satn - 0.9) / 0.1), 0.0)
    return matrix * (1.0 - areafh * mac_active) + kmacv * areafh * mac_active


def effective_kh(gw, soil_depth, dmac, ksath, kmach, areafv, macropore):
    """Thickness-weighted horizontal conductivity of the saturated zone.

    Where the water table rises into the macropore layer (the top ``dmac``
    of the column) that part of the saturated thickness conducts with the
    macropore-weighted conductivity.
    """
    gw = np.maximum(gw, HydrologyConstants.DEPTH_EPS)
    mac_base = soil_depth - dmac
    mac_thick = np.clip(gw - mac_base, 0.0, dmac)
    mac_k = kmach * areafv + ksath * (1.0 - areafv)
    k_mixed = (mac_thick * mac_k + (gw - mac_thick) * ksath) / gw
    return np.where(macropore, k_mixed, ksath)


def average_conductivity(k_donor, k_receiver):
    """Interface conductivity for flow from ``donor`` to ``receiver``.

    Harmonic mean when the donor is the more conductive side, arithmetic
    mean otherwise.
    """
    arithmetic = 0.5 * (k_donor + k_receiver)
    harmonic = 2.0 * k_donor * k_receiver / np.maximum(k_donor + k_receiver, 1.0e-30)
    return np.where(k_donor > k_receiver, harmonic, arithmetic)


def frozen_soil_factor(tsoil):
    """Infiltration reduction for frozen ground.

    1 above ``FROZEN_TEMP``, falling linearly to 0.05 at 5 degrees below it.
    """
    x = (np.asarray(tsoil, dtype=float) - HydrologyConstants.FROZEN_TEMP + 5.0) / 5.0
    return np.clip(x, 0.05, 1.0)


def soil_water_content(unsat, gw, porosity, soil_depth):
    """Total soil water depth (m) and volumetric water content."""
    water = porosity * (np.maximum(unsat, 0.0) + np.maximum(gw, 0.0))
    return water, water / np.maximum(soil_depth, HydrologyConstants.DEPTH_EPS)
