# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Static mesh, river network and parameter tables."""

from .network import NO_INDEX, MeshNetwork
from .parameters import ElementParameters, RiverParameters
from .types import (
    BoundaryKind,
    BoundarySeries,
    Element,
    GeologyType,
    LandCoverType,
    Node,
    RiverMaterial,
    RiverSegment,
    RiverShape,
    SoilType,
)

__all__ = [
    'MeshNetwork',
    'NO_INDEX',
    'ElementParameters',
    'RiverParameters',
    'BoundaryKind',
    'BoundarySeries',
    'Node',
    'Element',
    'RiverSegment',
    'SoilType',
    'GeologyType',
    'LandCoverType',
    'RiverShape',
    'RiverMaterial',
]
