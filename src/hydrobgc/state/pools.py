# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Carbon and nitrogen pool sets.

Every pool is a vector over elements (kgC/m2 or kgN/m2). Source and sink
fields accumulate since simulation start so that
``total() + sinks() - sources()`` stays constant per element.
"""

from dataclasses import dataclass, fields
from typing import Dict, Tuple

import numpy as np

TISSUES = ('leaf', 'froot', 'livestem', 'deadstem', 'livecroot', 'deadcroot')


def _carbon_pool_names() -> Tuple[str, ...]:
    names = []
    for tissue in TISSUES:
        names += [f'{tissue}c', f'{tissue}c_storage', f'{tissue}c_transfer']
    names += ['gresp_storage', 'gresp_transfer', 'cwdc',
              'litr1c', 'litr2c', 'litr3c', 'litr4c',
              'soil1c', 'soil2c', 'soil3c', 'soil4c', 'cpool']
    return tuple(names)


def _nitrogen_pool_names() -> Tuple[str, ...]:
    names = []
    for tissue in TISSUES:
        names += [f'{tissue}n', f'{tissue}n_storage', f'{tissue}n_transfer']
    names += ['cwdn', 'litr1n', 'litr2n', 'litr3n', 'litr4n',
              'soil1n', 'soil2n', 'soil3n', 'soil4n', 'sminn', 'retransn', 'npool']
    return tuple(names)


CARBON_POOLS = _carbon_pool_names()
CARBON_SOURCES = ('gpp_src', 'clamp_src')
CARBON_SINKS = ('mr_snk', 'gr_snk', 'hr_snk', 'fire_snk')

NITROGEN_POOLS = _nitrogen_pool_names()
NITROGEN_SOURCES = ('ndep_src', 'nfix_src', 'clamp_src')
NITROGEN_SINKS = ('nleached_snk', 'nvol_snk', 'fire_snk')

LITTER_C = ('cwdc', 'litr1c', 'litr2c', 'litr3c', 'litr4c')
SOIL_C = ('soil1c', 'soil2c', 'soil3c', 'soil4c')


class _PoolSet:
    """Shared behaviour of the carbon and nitrogen pool sets."""

    POOLS: Tuple[str, ...] = ()
    SOURCES: Tuple[str, ...] = ()
    SINKS: Tuple[str, ...] = ()

    @classmethod
    def zeros(cls, n: int):
        return cls(**{name: np.zeros(n) for name in cls.POOLS + cls.SOURCES + cls.SINKS})

    def copy(self):
        return type(self)(**{f.name: getattr(self, f.name).copy() for f in fields(self)})

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, np.ndarray]):
        return cls(**{f.name: np.asarray(data[f.name], dtype=float).copy() for f in fields(cls)})

    def total(self) -> np.ndarray:
        return np.sum([getattr(self, name) for name in self.POOLS], axis=0)

    def sources(self) -> np.ndarray:
        return np.sum([getattr(self, name) for name in self.SOURCES], axis=0)

    def sinks(self) -> np.ndarray:
        return np.sum([getattr(self, name) for name in self.SINKS], axis=0)

    def balance(self) -> np.ndarray:
        """Per-element conserved quantity ``pools + sinks - sources``."""
        return self.total() + self.sinks() - self.sources()

    def clamp_negative(self) -> np.ndarray:
        """Set negative pools to zero and book the added mass as a source.

        Returns:
            Per-element mass added by clamping
        """
        added = np.zeros_like(self.clamp_src)
        for name in self.POOLS:
            values = getattr(self, name)
            negative = values < 0.0
            if np.any(negative):
                added -= np.where(negative, values, 0.0)
                values[negative] = 0.0
        self.clamp_src += added
        return added


@dataclass
class CarbonState(_PoolSet):
    """Carbon pools and cumulative source/sink sums (kgC/m2)."""
    POOLS = CARBON_POOLS
    SOURCES = CARBON_SOURCES
    SINKS = CARBON_SINKS

    leafc: np.ndarray
    leafc_storage: np.ndarray
    leafc_transfer: np.ndarray
    frootc: np.ndarray
    frootc_storage: np.ndarray
    frootc_transfer: np.ndarray
    livestemc: np.ndarray
    livestemc_storage: np.ndarray
    livestemc_transfer: np.ndarray
    deadstemc: np.ndarray
    deadstemc_storage: np.ndarray
    deadstemc_transfer: np.ndarray
    livecrootc: np.ndarray
    livecrootc_storage: np.ndarray
    livecrootc_transfer: np.ndarray
    deadcrootc: np.ndarray
    deadcrootc_storage: np.ndarray
    deadcrootc_transfer: np.ndarray
    gresp_storage: np.ndarray
    gresp_transfer: np.ndarray
    cwdc: np.ndarray
    litr1c: np.ndarray
    litr2c: np.ndarray
    litr3c: np.ndarray
    litr4c: np.ndarray
    soil1c: np.ndarray
    soil2c: np.ndarray
    soil3c: np.ndarray
    soil4c: np.ndarray
    cpool: np.ndarray
    gpp_src: np.ndarray
    clamp_src: np.ndarray
    mr_snk: np.ndarray
    gr_snk: np.ndarray
    hr_snk: np.ndarray
    fire_snk: np.ndarray

    def vegetation(self) -> np.ndarray:
        return np.sum([getattr(self, n) for n in CARBON_POOLS
                       if n not in LITTER_C + SOIL_C], axis=0)

    def litter(self) -> np.ndarray:
        return np.sum([getattr(self, n) for n in LITTER_C], axis=0)

    def soil(self) -> np.ndarray:
        return np.sum([getattr(self, n) for n in SOIL_C], axis=0)


@dataclass
class NitrogenState(_PoolSet):
    """Nitrogen pools and cumulative source/sink sums (kgN/m2)."""
    POOLS = NITROGEN_POOLS
    SOURCES = NITROGEN_SOURCES
    SINKS = NITROGEN_SINKS

    leafn: np.ndarray
    leafn_storage: np.ndarray
    leafn_transfer: np.ndarray
    frootn: np.ndarray
    frootn_storage: np.ndarray
    frootn_transfer: np.ndarray
    livestemn: np.ndarray
    livestemn_storage: np.ndarray
    livestemn_transfer: np.ndarray
    deadstemn: np.ndarray
    deadstemn_storage: np.ndarray
    deadstemn_transfer: np.ndarray
    livecrootn: np.ndarray
    livecrootn_storage: np.ndarray
    livecrootn_transfer: np.ndarray
    deadcrootn: np.ndarray
    deadcrootn_storage: np.ndarray
    deadcrootn_transfer: np.ndarray
    cwdn: np.ndarray
    litr1n: np.ndarray
    litr2n: np.ndarray
    litr3n: np.ndarray
    litr4n: np.ndarray
    soil1n: np.ndarray
    soil2n: np.ndarray
    soil3n: np.ndarray
    soil4n: np.ndarray
    sminn: np.ndarray
    retransn: np.ndarray
    npool: np.ndarray
    ndep_src: np.ndarray
    nfix_src: np.ndarray
    clamp_src: np.ndarray
    nleached_snk: np.ndarray
    nvol_snk: np.ndarray
    fire_snk: np.ndarray
