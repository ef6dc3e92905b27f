# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Canopy interception and evapotranspiration.

Penman-Monteith with a Jarvis-type canopy resistance. Rates are water
depth per unit element area (m/s) and never negative (dew is ignored).
"""

import numpy as np

from ..core.constants import HydrologyConstants, PhysicalConstants
from ..forcing.meteo import saturation_vapor_pressure

DRIP_TIME = 600.0       # relaxation time of canopy storage above capacity (s)
RC_MAX = 5000.0         # maximum canopy resistance (s/m)
Z0_SURFACE = 0.1        # aerodynamic roughness length (m)
SATN_WILT = 0.1         # unsaturated-zone saturation at wilting
SATN_REF = 0.75         # saturation above which soil water does not limit transpiration
MIN_WIND = 0.1


def interception_capacity(lai, vegfrac, factor: float = HydrologyConstants.IS_FACTOR):
    """Maximum canopy storage (m) over the element."""
    return factor * np.maximum(lai, 0.0) * vegfrac


def wet_fraction(storage, capacity):
    """Wetted fraction of the canopy, ``(IS / ISmax) ** (2/3)``."""
    ratio = np.where(capacity > 0.0, np.maximum(storage, 0.0) / np.maximum(capacity, 1.0e-12), 0.0)
    return np.clip(ratio, 0.0, 1.0) ** (2.0 / 3.0)


def interception(rain, storage, capacity, vegfrac):
    """Rain interception and drip rates (m/s).

    Returns:
        (intercepted, drip): interception fills the remaining capacity
        proportionally; storage above capacity drips with time scale
        ``DRIP_TIME``.
    """
    room = np.where(capacity > 0.0,
                    np.clip(1.0 - np.maximum(storage, 0.0) / np.maximum(capacity, 1.0e-12), 0.0, 1.0),
                    0.0)
    intercepted = vegfrac * rain * room
    drip = np.maximum(storage - capacity, 0.0) / DRIP_TIME
    return intercepted, drip


def aerodynamic_resistance(wind, windh):
    """Neutral-stability aerodynamic resistance (s/m)."""
    u = np.maximum(wind, MIN_WIND)
    z = np.maximum(windh, 2.0 * Z0_SURFACE)
    return np.log(z / Z0_SURFACE) ** 2 / (PhysicalConstants.VON_KARMAN ** 2 * u)


def penman_monteith(temperature, rh, pres, net_radiation, ra, rc=0.0):
    """Penman-Monteith evaporation rate (m/s of water)."""
    es = saturation_vapor_pressure(temperature)
    vpd = es * (1.0 - rh)
    delta = 4098.0 * es / (temperature + 237.3) ** 2
    gamma = PhysicalConstants.CP_AIR * pres / (
        PhysicalConstants.PSYCHROMETRIC_RATIO * PhysicalConstants.LATENT_HEAT)
    rho_air = pres / (PhysicalConstants.RD_AIR * (temperature + PhysicalConstants.TFREEZE))
    numerator = delta * net_radiation + rho_air * PhysicalConstants.CP_AIR * vpd / ra
    denominator = PhysicalConstants.LATENT_HEAT * (delta + gamma * (1.0 + rc / ra))
    return np.maximum(numerator / denominator, 0.0) / PhysicalConstants.RHO_WATER


def canopy_resistance(lai, solar, temperature, rh, pres, satn, rsmin, rgl, hs, gw_in_root_zone):
    """Jarvis canopy resistance (s/m).

    Product of radiation, temperature, humidity and soil-water stress
    factors; soil water is unlimited when the water table reaches the
    root zone (``gw_in_root_zone`` is a 0..1 weight).
    """
    lai = np.maximum(lai, 1.0e-3)
    f = 0.55 * 2.0 * np.maximum(solar, 0.0) / (rgl * lai)
    f_rad = (rsmin / RC_MAX + f) / (1.0 + f)
    f_temp = np.clip(1.0 - 0.0016 * (25.0 - temperature) ** 2, 1.0e-4, 1.0)
    es = saturation_vapor_pressure(temperature)
    q_deficit = PhysicalConstants.PSYCHROMETRIC_RATIO * es * (1.0 - rh) / pres
    f_vpd = np.clip(1.0 / (1.0 + hs * q_deficit), 1.0e-2, 1.0)
    f_soil_matrix = np.clip((satn - SATN_WILT) / (SATN_REF - SATN_WILT), 1.0e-4, 1.0)
    f_soil = f_soil_matrix + (1.0 - f_soil_matrix) * gw_in_root_zone
    rc = rsmin / (lai * f_rad * f_temp * f_vpd * f_soil)
    return np.minimum(rc, RC_MAX)
