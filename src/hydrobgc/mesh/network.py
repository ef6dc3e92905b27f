# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Mesh and river network arena.

``MeshNetwork`` holds the immutable element/segment records together with
derived geometry arrays. It is validated once at construction and then
shared read-only by the flux assembly, the biogeochemistry updater and the
balance monitor.
"""

import logging
from collections import deque
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core.exceptions import MeshValidationError
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

logger = logging.getLogger(__name__)

NO_INDEX = -1


def _edge_nodes(element: Element, j: int) -> Tuple[int, int]:
    """Node pair of edge ``j`` (the edge opposite node ``j``)."""
    return element.nodes[(j + 1) % 3], element.nodes[(j + 2) % 3]


class MeshNetwork:
    """Validated, immutable watershed topology.

    Args:
        nodes: Mesh vertices
        elements: Land elements
        rivers: River segments
        soils, geologies, landcovers: Element parameter tables
        shapes, materials: River parameter tables
        boundary_series: Time series referenced by HEAD/FLUX boundaries

    Raises:
        MeshValidationError: If indices, adjacency or river topology are inconsistent
    """

    def __init__(
        self,
        nodes: Sequence[Node],
        elements: Sequence[Element],
        rivers: Sequence[RiverSegment],
        soils: Sequence[SoilType],
        geologies: Sequence[GeologyType],
        landcovers: Sequence[LandCoverType],
        shapes: Sequence[RiverShape] = (),
        materials: Sequence[RiverMaterial] = (),
        boundary_series: Sequence[BoundarySeries] = (),
    ):
        self.nodes = tuple(nodes)
        self.elements = tuple(elements)
        self.rivers = tuple(rivers)
        self.soils = tuple(soils)
        self.geologies = tuple(geologies)
        self.landcovers = tuple(landcovers)
        self.shapes = tuple(shapes)
        self.materials = tuple(materials)
        self.boundary_series = tuple(boundary_series)

        self._validate_records()
        self._build_element_geometry()
        self._mark_river_edges()
        self._validate_adjacency()
        self.river_order = self._topological_order()
        self._build_river_geometry()

        logger.debug(
            f"Mesh built: {self.num_elements} elements, {self.num_rivers} river segments, "
            f"{len(self.outlets)} outlet(s)"
        )

    # ------------------------------------------------------------------
    # Sizes
    # ------------------------------------------------------------------

    @property
    def num_elements(self) -> int:
        return len(self.elements)

    @property
    def num_rivers(self) -> int:
        return len(self.rivers)

    @property
    def total_area(self) -> float:
        return float(self.area.sum())

    # ------------------------------------------------------------------
    # Construction from loader arrays
    # ------------------------------------------------------------------

    @classmethod
    def from_raw(
        cls,
        node_table: np.ndarray,
        element_table: np.ndarray,
        river_table: Optional[np.ndarray],
        soils: Sequence[SoilType],
        geologies: Sequence[GeologyType],
        landcovers: Sequence[LandCoverType],
        shapes: Sequence[RiverShape] = (),
        materials: Sequence[RiverMaterial] = (),
        boundary_series: Sequence[BoundarySeries] = (),
    ) -> 'MeshNetwork':
        """Build a network from 1-based loader tables where 0 means "none".

        Column layouts:
            node_table: x, y, zmin, zmax
            element_table: n1, n2, n3, nabr1, nabr2, nabr3, soil, geol, lc,
                bc1, bc2, bc3, macropore[, station]. A positive bc is a HEAD
                series index and a negative bc a FLUX series index.
            river_table: from, to, down, left, right, shape, material[, bc]
        """
        def opt(value) -> Optional[int]:
            value = int(value)
            return None if value == 0 else value - 1

        nodes = [Node(i, *map(float, row[:4])) for i, row in enumerate(np.asarray(node_table))]

        elements = []
        for i, row in enumerate(np.asarray(element_table)):
            row = [int(v) for v in row]
            kinds = []
            series = []
            for code in row[9:12]:
                if code > 0:
                    kinds.append(BoundaryKind.HEAD)
                    series.append(code - 1)
                elif code < 0:
                    kinds.append(BoundaryKind.FLUX)
                    series.append(-code - 1)
                else:
                    kinds.append(BoundaryKind.NO_FLOW)
                    series.append(None)
            elements.append(Element(
                index=i,
                nodes=(row[0] - 1, row[1] - 1, row[2] - 1),
                neighbors=(opt(row[3]), opt(row[4]), opt(row[5])),
                soil=row[6] - 1,
                geology=row[7] - 1,
                landcover=row[8] - 1,
                bc=tuple(kinds),
                bc_series=tuple(series),
                macropore=bool(row[12]),
                station=row[13] - 1 if len(row) > 13 else 0,
            ))

        rivers = []
        if river_table is not None:
            for i, row in enumerate(np.asarray(river_table)):
                row = [int(v) for v in row]
                bc = BoundaryKind.NO_FLOW
                bc_series = None
                if len(row) > 7 and row[7] != 0:
                    bc = BoundaryKind.HEAD if row[7] > 0 else BoundaryKind.FLUX
                    bc_series = abs(row[7]) - 1
                rivers.append(RiverSegment(
                    index=i,
                    from_node=row[0] - 1,
                    to_node=row[1] - 1,
                    downstream=opt(row[2]),
                    left=opt(row[3]),
                    right=opt(row[4]),
                    shape=row[5] - 1,
                    material=row[6] - 1,
                    bc=bc,
                    bc_series=bc_series,
                ))

        return cls(nodes, elements, rivers, soils, geologies, landcovers,
                   shapes, materials, boundary_series)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_records(self) -> None:
        nn, ne, nr = len(self.nodes), len(self.elements), len(self.rivers)
        if ne == 0:
            raise MeshValidationError("Mesh has no elements")
        errors: List[str] = []

        for k, node in enumerate(self.nodes):
            if node.index != k:
                errors.append(f"node {k} carries index {node.index}")
            if node.zmax < node.zmin:
                errors.append(f"node {k}: surface below bedrock")

        def check(value, limit, what):
            if value is not None and not 0 <= value < limit:
                errors.append(f"{what} = {value} out of range [0, {limit})")

        for k, elem in enumerate(self.elements):
            if elem.index != k:
                errors.append(f"element {k} carries index {elem.index}")
            for n in elem.nodes:
                check(n, nn, f"element {k} node")
            for nb in elem.neighbors:
                check(nb, ne, f"element {k} neighbour")
                if nb == k:
                    errors.append(f"element {k} lists itself as neighbour")
            check(elem.soil, len(self.soils), f"element {k} soil")
            check(elem.geology, len(self.geologies), f"element {k} geology")
            check(elem.landcover, len(self.landcovers), f"element {k} land cover")
            for j in range(3):
                if elem.neighbors[j] is None and elem.bc[j] != BoundaryKind.NO_FLOW:
                    if elem.bc_series[j] is None:
                        errors.append(f"element {k} edge {j}: {elem.bc[j].name} boundary without series")
                    else:
                        check(elem.bc_series[j], len(self.boundary_series),
                              f"element {k} edge {j} boundary series")

        for k, riv in enumerate(self.rivers):
            if riv.index != k:
                errors.append(f"river {k} carries index {riv.index}")
            check(riv.from_node, nn, f"river {k} from node")
            check(riv.to_node, nn, f"river {k} to node")
            check(riv.downstream, nr, f"river {k} downstream")
            if riv.downstream == k:
                errors.append(f"river {k} drains into itself")
            check(riv.left, ne, f"river {k} left element")
            check(riv.right, ne, f"river {k} right element")
            check(riv.shape, len(self.shapes), f"river {k} shape")
            check(riv.material, len(self.materials), f"river {k} material")
            if riv.bc != BoundaryKind.NO_FLOW:
                if riv.downstream is not None:
                    errors.append(f"river {k}: boundary condition on a non-outlet segment")
                check(riv.bc_series, len(self.boundary_series), f"river {k} boundary series")

        if errors:
            raise MeshValidationError("Invalid mesh:\n  " + "\n  ".join(errors))

    def _mark_river_edges(self) -> None:
        """Flag element edges that coincide with a river segment."""
        self.river_edge = np.zeros((self.num_elements, 3), dtype=bool)
        # (element, edge) -> (river, side) ; side 0 left, 1 right
        self.edge_river: Dict[Tuple[int, int], Tuple[int, int]] = {}
        for riv in self.rivers:
            pair = {riv.from_node, riv.to_node}
            for side, e in enumerate((riv.left, riv.right)):
                if e is None:
                    continue
                elem = self.elements[e]
                for j in range(3):
                    if set(_edge_nodes(elem, j)) == pair:
                        self.river_edge[e, j] = True
                        self.edge_river[(e, j)] = (riv.index, side)
                        break

    def _validate_adjacency(self) -> None:
        errors = []
        for elem in self.elements:
            for j, nb in enumerate(elem.neighbors):
                if nb is None:
                    continue
                other = self.elements[nb]
                if elem.index in other.neighbors:
                    jj = other.neighbors.index(elem.index)
                    if set(_edge_nodes(elem, j)) != set(_edge_nodes(other, jj)):
                        errors.append(
                            f"elements {elem.index} and {nb} are neighbours but share no edge"
                        )
                elif not self.river_edge[elem.index, j]:
                    errors.append(
                        f"element {elem.index} lists {nb} as neighbour but not vice versa"
                    )
        if errors:
            raise MeshValidationError("Inconsistent adjacency:\n  " + "\n  ".join(errors))

    def _topological_order(self) -> Tuple[int, ...]:
        """Upstream-to-downstream order of river segments (Kahn's algorithm)."""
        nr = self.num_rivers
        indegree = np.zeros(nr, dtype=int)
        for riv in self.rivers:
            if riv.downstream is not None:
                indegree[riv.downstream] += 1
        queue = deque(i for i in range(nr) if indegree[i] == 0)
        order: List[int] = []
        while queue:
            i = queue.popleft()
            order.append(i)
            down = self.rivers[i].downstream
            if down is not None:
                indegree[down] -= 1
                if indegree[down] == 0:
                    queue.append(down)
        if len(order) != nr:
            cyclic = sorted(set(range(nr)) - set(order))
            raise MeshValidationError(
                f"River network contains a cycle; segments never reaching an outlet: {cyclic}"
            )
        return tuple(order)

    # ------------------------------------------------------------------
    # Derived geometry
    # ------------------------------------------------------------------

    def _build_element_geometry(self) -> None:
        ne = self.num_elements
        nx = np.array([n.x for n in self.nodes])
        ny = np.array([n.y for n in self.nodes])
        nzmin = np.array([n.zmin for n in self.nodes])
        nzmax = np.array([n.zmax for n in self.nodes])

        tri = np.array([e.nodes for e in self.elements], dtype=int)
        xs, ys = nx[tri], ny[tri]
        self.area = 0.5 * np.abs(
            xs[:, 0] * (ys[:, 1] - ys[:, 2])
            + xs[:, 1] * (ys[:, 2] - ys[:, 0])
            + xs[:, 2] * (ys[:, 0] - ys[:, 1])
        )
        if np.any(self.area <= 0):
            bad = np.flatnonzero(self.area <= 0).tolist()
            raise MeshValidationError(f"Degenerate elements with zero area: {bad}")

        self.x = xs.mean(axis=1)
        self.y = ys.mean(axis=1)
        self.zmin = nzmin[tri].mean(axis=1)
        self.zmax = nzmax[tri].mean(axis=1)
        self.soil_depth = self.zmax - self.zmin

        self.neighbors = np.full((ne, 3), NO_INDEX, dtype=int)
        self.edge_length = np.zeros((ne, 3))
        self.neighbor_distance = np.zeros((ne, 3))
        self.bc_kind = np.zeros((ne, 3), dtype=int)
        self.bc_series = np.full((ne, 3), NO_INDEX, dtype=int)
        for elem in self.elements:
            i = elem.index
            for j in range(3):
                a, b = _edge_nodes(elem, j)
                self.edge_length[i, j] = np.hypot(nx[a] - nx[b], ny[a] - ny[b])
                nb = elem.neighbors[j]
                if nb is not None:
                    self.neighbors[i, j] = nb
                    self.neighbor_distance[i, j] = np.hypot(
                        self.x[i] - self.x[nb], self.y[i] - self.y[nb])
                else:
                    mx, my = 0.5 * (nx[a] + nx[b]), 0.5 * (ny[a] + ny[b])
                    self.neighbor_distance[i, j] = np.hypot(self.x[i] - mx, self.y[i] - my)
                    self.bc_kind[i, j] = int(elem.bc[j])
                    if elem.bc_series[j] is not None:
                        self.bc_series[i, j] = elem.bc_series[j]

        self.soil_index = np.array([e.soil for e in self.elements], dtype=int)
        self.geology_index = np.array([e.geology for e in self.elements], dtype=int)
        self.landcover_index = np.array([e.landcover for e in self.elements], dtype=int)
        self.station_index = np.array([e.station for e in self.elements], dtype=int)
        self.macropore = np.array([e.macropore for e in self.elements], dtype=bool)

    def _build_river_geometry(self) -> None:
        nr = self.num_rivers
        nx = np.array([n.x for n in self.nodes])
        ny = np.array([n.y for n in self.nodes])
        nzmax = np.array([n.zmax for n in self.nodes])

        self.river_from = np.array([r.from_node for r in self.rivers], dtype=int)
        self.river_to = np.array([r.to_node for r in self.rivers], dtype=int)
        self.river_down = np.array(
            [NO_INDEX if r.downstream is None else r.downstream for r in self.rivers], dtype=int)
        self.river_left = np.array(
            [NO_INDEX if r.left is None else r.left for r in self.rivers], dtype=int)
        self.river_right = np.array(
            [NO_INDEX if r.right is None else r.right for r in self.rivers], dtype=int)
        self.river_shape_index = np.array([r.shape for r in self.rivers], dtype=int)
        self.river_material_index = np.array([r.material for r in self.rivers], dtype=int)
        self.river_bc_kind = np.array([int(r.bc) for r in self.rivers], dtype=int)
        self.river_bc_series = np.array(
            [NO_INDEX if r.bc_series is None else r.bc_series for r in self.rivers], dtype=int)

        if nr == 0:
            self.river_length = np.zeros(0)
            self.river_x = np.zeros(0)
            self.river_y = np.zeros(0)
            self.river_zbank = np.zeros(0)
            self.river_bed_slope = np.zeros(0)
            self.outlets = ()
            return

        fx, fy = nx[self.river_from], ny[self.river_from]
        tx, ty = nx[self.river_to], ny[self.river_to]
        self.river_length = np.hypot(fx - tx, fy - ty)
        if np.any(self.river_length <= 0):
            bad = np.flatnonzero(self.river_length <= 0).tolist()
            raise MeshValidationError(f"River segments with zero length: {bad}")
        self.river_x = 0.5 * (fx + tx)
        self.river_y = 0.5 * (fy + ty)
        self.river_zbank = 0.5 * (nzmax[self.river_from] + nzmax[self.river_to])
        self.river_bed_slope = np.maximum(
            (nzmax[self.river_from] - nzmax[self.river_to]) / self.river_length, 0.0)
        self.outlets = tuple(int(i) for i in np.flatnonzero(self.river_down == NO_INDEX))

    def river_element_distance(self, river: int, element: int) -> float:
        """Distance (m) between a segment midpoint and an element centroid."""
        return float(np.hypot(self.river_x[river] - self.x[element],
                              self.river_y[river] - self.y[element]))

    def landcover_of(self, element: int) -> LandCoverType:
        return self.landcovers[self.landcover_index[element]]
