# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Physical constants and unit conversion factors for HydroBGC.

Centralizes the constants shared by the hydrology and biogeochemistry
layers. Model-specific empirical coefficients live beside the process that
uses them.
"""


class UnitConversion:
    """Time and unit conversion factors."""

    SECONDS_PER_MINUTE = 60
    SECONDS_PER_HOUR = 3600

    SECONDS_PER_DAY = 86400
    """Seconds in one day; day boundaries are multiples of this value."""

    DAYS_PER_YEAR = 365
    """Model calendar length (no leap days)."""

    MM_TO_M = 0.001
    KPA_TO_PA = 1000.0
    MPA_TO_M = 1.0e6 / (1000.0 * 9.80665)
    """Metres of water head per MPa of soil water potential."""


class PhysicalConstants:
    """Physical constants used by the process modules."""

    GRAV = 9.80665
    """Gravitational acceleration (m/s²)."""

    RHO_WATER = 1000.0
    """Density of liquid water (kg/m³)."""

    CP_AIR = 1004.0
    """Specific heat of air at constant pressure (J/kg/K)."""

    LATENT_HEAT = 2.501e6
    """Latent heat of vaporisation at 0 °C (J/kg)."""

    PSYCHROMETRIC_RATIO = 0.622
    """Ratio of molecular weights of water vapour and dry air."""

    VON_KARMAN = 0.4

    STEFAN_BOLTZMANN = 5.67e-8

    TFREEZE = 273.15
    """Freezing point of water (K)."""

    RD_AIR = 287.04
    """Gas constant for dry air (J/kg/K)."""

    SOLAR_CONSTANT = 1367.0
    """Top-of-atmosphere solar irradiance (W/m²)."""


class HydrologyConstants:
    """Numerical floors and thresholds of the hydrologic core."""

    MIN_PSI = -70.0
    """Lower bound of soil pressure head (m)."""

    DEPTH_EPS = 1.0e-6
    """Storage depth (m) below which outgoing fluxes ramp smoothly to zero."""

    MIN_SLOPE = 1.0e-7
    """Minimum absolute water-surface slope used in Manning flux."""

    TSNOW = -3.0
    """All precipitation falls as snow below this temperature (°C)."""

    TRAIN = 1.0
    """All precipitation falls as rain above this temperature (°C)."""

    TMELT = 0.0
    """Base temperature for degree-day melt (°C)."""

    MELT_FACTOR = 2.0e-3 / 86400.0
    """Degree-day melt factor (m/s/°C), equivalent to 2 mm/day/°C."""

    IS_FACTOR = 2.0e-4
    """Interception capacity per unit LAI (m)."""

    FROZEN_TEMP = 0.0
    """Soil temperature (°C) at and below which infiltration is impeded."""


class CarbonNitrogenConstants:
    """Shared biogeochemistry constants."""

    CRIT_DAYL = 39300.0
    """Critical day length for deciduous offset (s)."""

    MR_BASE = 0.218
    """Maintenance respiration per unit tissue N at 20 °C (kgC/kgN/day)."""

    MR_Q10 = 2.0

    GR_FRAC = 0.3
    """Growth respiration as a fraction of new growth carbon."""

    LEACH_MOBILE_FRAC = 0.1
    """Mobile fraction of soil mineral N subject to leaching."""

    MINERAL_VOL_FRAC = 0.01
    """Fraction of gross mineralization lost to volatilization."""

    DENITRIF_PROPORTION = 0.01
    """Daily fraction of surplus mineral N lost to bulk denitrification."""

    CO2_DEFAULT_PPM = 294.842
    """Pre-industrial atmospheric CO2 concentration (ppm)."""

    O2_PA = 20900.0
    """Atmospheric O2 partial pressure (Pa)."""
