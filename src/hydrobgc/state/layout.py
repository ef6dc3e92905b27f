# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Flat state vector layout.

The integrator sees a single float vector. ``StateLayout`` owns the offsets
of every per-element and per-segment block and converts between the flat
vector and the named ``HydroState``.

Storages are depths (m): ``IS``, ``SNOW`` and ``SURF`` are water depths,
``UNSAT`` and ``GW`` are water-table-equivalent heights (water depth divided
by porosity) and ``STAGE`` is the channel water depth. Accumulators are
cumulative volumes (m3) since simulation start.
"""

from dataclasses import dataclass, fields
from typing import Dict, Tuple

import numpy as np

ELEMENT_STORAGES = ('IS', 'SNOW', 'SURF', 'UNSAT', 'GW')
RIVER_STORAGES = ('STAGE',)
ELEMENT_ACCUMULATORS = ('ACC_PRCP', 'ACC_EC', 'ACC_ETT', 'ACC_EDIR', 'ACC_BC', 'ACC_DRAIN')
RIVER_ACCUMULATORS = ('ACC_OUTFLOW', 'ACC_RIVBC')

BLOCK_ORDER = ELEMENT_STORAGES + RIVER_STORAGES + ELEMENT_ACCUMULATORS + RIVER_ACCUMULATORS


@dataclass
class HydroState:
    """Named view of the hydrologic state."""
    IS: np.ndarray
    SNOW: np.ndarray
    SURF: np.ndarray
    UNSAT: np.ndarray
    GW: np.ndarray
    STAGE: np.ndarray
    ACC_PRCP: np.ndarray
    ACC_EC: np.ndarray
    ACC_ETT: np.ndarray
    ACC_EDIR: np.ndarray
    ACC_BC: np.ndarray
    ACC_DRAIN: np.ndarray
    ACC_OUTFLOW: np.ndarray
    ACC_RIVBC: np.ndarray

    def copy(self) -> 'HydroState':
        return HydroState(**{f.name: getattr(self, f.name).copy() for f in fields(self)})

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class StateLayout:
    """Offsets of each named block inside the flat state vector."""

    def __init__(self, num_elements: int, num_rivers: int):
        self.num_elements = num_elements
        self.num_rivers = num_rivers
        self._slices: Dict[str, slice] = {}
        offset = 0
        for name in BLOCK_ORDER:
            n = num_rivers if name in RIVER_STORAGES + RIVER_ACCUMULATORS else num_elements
            self._slices[name] = slice(offset, offset + n)
            offset += n
        self.size = offset
        self.storage_size = self._slices['STAGE'].stop

    def __getitem__(self, name: str) -> slice:
        return self._slices[name]

    @property
    def storage_slice(self) -> slice:
        """Slice of all physical storages (excludes accumulators)."""
        return slice(0, self.storage_size)

    def owner(self, index: int) -> Tuple[str, int]:
        """Block name and local index of a flat vector position."""
        for name, sl in self._slices.items():
            if sl.start <= index < sl.stop:
                return name, index - sl.start
        raise IndexError(f"State index {index} out of range for size {self.size}")

    def zeros(self) -> HydroState:
        return self.unflatten(np.zeros(self.size))

    def flatten(self, state: HydroState) -> np.ndarray:
        y = np.empty(self.size)
        for name, sl in self._slices.items():
            y[sl] = getattr(state, name)
        return y

    def unflatten(self, y: np.ndarray) -> HydroState:
        y = np.asarray(y, dtype=float)
        if y.shape != (self.size,):
            raise ValueError(f"State vector has shape {y.shape}, expected ({self.size},)")
        return HydroState(**{name: y[sl].copy() for name, sl in self._slices.items()})
