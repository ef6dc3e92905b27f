# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Jacobian sparsity pattern of the hydrologic right-hand side.

Each element storage depends on every storage of its own element, on the
surface and groundwater of its neighbours and on the stage of adjacent
river segments. Each stage depends on its upstream and downstream segments
and on its bank elements. Accumulators depend on everything that drives
them but nothing depends on them.
"""

import numpy as np
from scipy.sparse import lil_matrix

from ..mesh.network import NO_INDEX, MeshNetwork
from ..state.layout import ELEMENT_ACCUMULATORS, ELEMENT_STORAGES, RIVER_ACCUMULATORS, StateLayout


def jacobian_sparsity(mesh: MeshNetwork, layout: StateLayout):
    """Boolean sparsity pattern as a ``scipy.sparse.csr_matrix``."""
    n = layout.size
    pattern = lil_matrix((n, n), dtype=bool)

    def elem(name, i):
        return layout[name].start + i

    def riv(name, r):
        return layout[name].start + r

    element_rows = ELEMENT_STORAGES + ELEMENT_ACCUMULATORS
    for i in range(mesh.num_elements):
        cols = [elem(name, i) for name in ELEMENT_STORAGES]
        for k in mesh.neighbors[i]:
            if k != NO_INDEX:
                cols += [elem('SURF', k), elem('GW', k)]
        for row_name in element_rows:
            for c in cols:
                pattern[elem(row_name, i), c] = True

    for r in range(mesh.num_rivers):
        stage_cols = [riv('STAGE', r)]
        down = mesh.river_down[r]
        if down != NO_INDEX:
            stage_cols.append(riv('STAGE', down))
            pattern[riv('STAGE', down), riv('STAGE', r)] = True
        for e in (mesh.river_left[r], mesh.river_right[r]):
            if e == NO_INDEX:
                continue
            stage_cols += [elem('SURF', e), elem('GW', e)]
            for name in ('SURF', 'GW', 'ACC_DRAIN'):
                pattern[elem(name, e), riv('STAGE', r)] = True
        for c in stage_cols:
            pattern[riv('STAGE', r), c] = True
            for name in RIVER_ACCUMULATORS:
                pattern[riv(name, r), c] = True

    return pattern.tocsr()
