# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Static mesh and river network records.

Indices are 0-based and optional references use ``None``. Edge ``j`` of an
element is the edge opposite its node ``j``, so neighbour ``j`` shares
nodes ``(j+1) % 3`` and ``(j+2) % 3``.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Sequence, Tuple

import numpy as np


class BoundaryKind(IntEnum):
    """Boundary condition code of an element edge or river outlet."""
    NO_FLOW = 0
    HEAD = 1
    FLUX = 2


# =============================================================================
# TOPOLOGY RECORDS
# =============================================================================

@dataclass(frozen=True)
class Node:
    """Mesh vertex with bedrock and surface elevation (m)."""
    index: int
    x: float
    y: float
    zmin: float
    zmax: float


@dataclass(frozen=True)
class Element:
    """Triangular land element.

    Attributes:
        index: Element index
        nodes: Three node indices, counter-clockwise
        neighbors: Neighbour element across each edge, ``None`` on the domain boundary
        soil: Soil table index
        geology: Geology table index
        landcover: Land cover table index
        bc: Boundary condition kind per edge (only read where neighbour is ``None``)
        bc_series: Boundary time series index per edge for HEAD/FLUX edges
        macropore: Whether macropore flow is active
        station: Meteorological station index
    """
    index: int
    nodes: Tuple[int, int, int]
    neighbors: Tuple[Optional[int], Optional[int], Optional[int]]
    soil: int = 0
    geology: int = 0
    landcover: int = 0
    bc: Tuple[BoundaryKind, BoundaryKind, BoundaryKind] = (
        BoundaryKind.NO_FLOW, BoundaryKind.NO_FLOW, BoundaryKind.NO_FLOW)
    bc_series: Tuple[Optional[int], Optional[int], Optional[int]] = (None, None, None)
    macropore: bool = False
    station: int = 0


@dataclass(frozen=True)
class RiverSegment:
    """Channel segment running along element edges.

    Attributes:
        index: Segment index
        from_node: Upstream node index
        to_node: Downstream node index
        downstream: Downstream segment, ``None`` at an outlet
        left: Element on the left bank, if any
        right: Element on the right bank, if any
        shape: River shape table index
        material: River material table index
        bc: Outlet boundary kind; NO_FLOW means free outfall along the bed slope
        bc_series: Boundary time series index for HEAD/FLUX outlets
    """
    index: int
    from_node: int
    to_node: int
    downstream: Optional[int]
    left: Optional[int]
    right: Optional[int]
    shape: int = 0
    material: int = 0
    bc: BoundaryKind = BoundaryKind.NO_FLOW
    bc_series: Optional[int] = None


# =============================================================================
# PARAMETER TABLES
# =============================================================================

@dataclass(frozen=True)
class SoilType:
    """Near-surface soil hydraulic properties."""
    ksatv_inf: float        # infiltration saturated conductivity (m/s)
    thetas: float
    thetar: float
    alpha: float            # van Genuchten alpha (1/m)
    beta: float             # van Genuchten n
    infd: float = 0.1       # infiltration layer depth (m)
    areafh: float = 0.01    # macropore areal fraction, horizontal cross-section
    kmacsatv: float = 1.0e-4


@dataclass(frozen=True)
class GeologyType:
    """Deep layer hydraulic properties."""
    ksath: float
    ksatv: float
    thetas: float
    thetar: float
    alpha: float
    beta: float
    areafv: float = 0.01    # macropore areal fraction, vertical cross-section
    kmacsath: float = 1.0e-4
    dmac: float = 0.5       # macropore depth (m)


@dataclass(frozen=True)
class LandCoverType:
    """Vegetation and surface properties.

    ``ecophys`` names the ecophysiological constant set used by the
    biogeochemistry layer (``ENF``, ``EBF``, ``DBF``, ``DNF``, ``SHRUB``,
    ``C3GRASS``, ``C4GRASS``).
    """
    laimax: float
    vegfrac: float
    albedo: float
    rough: float            # Manning roughness (s/m^(1/3))
    rzd: float = 0.5        # root zone depth (m)
    rsmin: float = 100.0    # minimum stomatal resistance (s/m)
    rgl: float = 100.0      # radiation limit of stomatal resistance (W/m2)
    hs: float = 36.35       # VPD parameter of stomatal resistance
    windh: float = 10.0     # wind measurement height (m)
    ecophys: str = 'DBF'


@dataclass(frozen=True)
class RiverShape:
    """Channel cross-section.

    ``interp_order`` 1 is a rectangle, 2 a triangle, 3 and 4 higher-order
    curves with ``depth = coeff * (half_width ** (order - 1))``.
    """
    depth: float
    interp_order: int
    coeff: float


@dataclass(frozen=True)
class RiverMaterial:
    """Channel bed properties."""
    rough: float
    cwr: float              # weir discharge coefficient
    ksath: float
    ksatv: float
    bedthick: float


@dataclass(frozen=True, eq=False)
class BoundarySeries:
    """Piecewise-linear boundary value in time.

    HEAD series are hydraulic heads (m, absolute elevation); FLUX series are
    volumetric fluxes (m3/s, positive into the domain).
    """
    times: np.ndarray = field(repr=False)
    values: np.ndarray = field(repr=False)

    @classmethod
    def constant(cls, value: float) -> 'BoundarySeries':
        return cls(times=np.array([0.0]), values=np.array([float(value)]))

    @classmethod
    def from_points(cls, times: Sequence[float], values: Sequence[float]) -> 'BoundarySeries':
        t = np.asarray(times, dtype=float)
        v = np.asarray(values, dtype=float)
        if t.shape != v.shape or t.ndim != 1 or t.size == 0:
            raise ValueError('boundary series times and values must be equal-length 1-D arrays')
        if np.any(np.diff(t) <= 0):
            raise ValueError('boundary series times must be strictly increasing')
        return cls(times=t, values=v)

    def value(self, t: float) -> float:
        if self.times.size == 1:
            return float(self.values[0])
        return float(np.interp(t, self.times, self.values))
