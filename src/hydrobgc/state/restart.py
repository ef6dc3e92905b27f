# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Restart snapshots.

A snapshot carries everything needed to continue a run bit-for-bit: the
hydrologic state vector, all carbon/nitrogen pools with their source/sink
sums, the phenology counters and the annual running values. It is stored as
an ``xarray.Dataset`` with one variable per field and written to netCDF.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np
import xarray as xr

from ..core.exceptions import RestartError
from .layout import BLOCK_ORDER, ELEMENT_ACCUMULATORS, ELEMENT_STORAGES, HydroState
from .pools import CarbonState, NitrogenState
from .vegetation import AnnualState, PhenologyState

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
DRAIN_MARK = 'bgc_drain_mark'

_PREFIXES = {
    'hydro': 'hydro_',
    'carbon': 'c_',
    'nitrogen': 'n_',
    'phenology': 'phen_',
    'annual': 'ann_',
}


@dataclass
class RestartSnapshot:
    """Complete model state at one instant."""
    time: float
    hydro: HydroState
    carbon: Optional[CarbonState] = None
    nitrogen: Optional[NitrogenState] = None
    phenology: Optional[PhenologyState] = None
    annual: Optional[AnnualState] = None
    drain_mark: Optional[np.ndarray] = None   # drainage accumulator at the start of the current day

    @property
    def has_bgc(self) -> bool:
        return self.carbon is not None

    def copy(self) -> 'RestartSnapshot':
        return RestartSnapshot(
            time=self.time,
            hydro=self.hydro.copy(),
            carbon=None if self.carbon is None else self.carbon.copy(),
            nitrogen=None if self.nitrogen is None else self.nitrogen.copy(),
            phenology=None if self.phenology is None else self.phenology.copy(),
            annual=None if self.annual is None else self.annual.copy(),
            drain_mark=None if self.drain_mark is None else np.array(self.drain_mark, dtype=float),
        )

    # ------------------------------------------------------------------

    def to_dataset(self) -> xr.Dataset:
        data_vars = {}
        for name, values in self.hydro.to_dict().items():
            dim = 'element' if name in ELEMENT_STORAGES + ELEMENT_ACCUMULATORS else 'river'
            data_vars[_PREFIXES['hydro'] + name] = ((dim,), np.asarray(values))
        for group in ('carbon', 'nitrogen', 'phenology', 'annual'):
            record = getattr(self, group)
            if record is None:
                continue
            for name, values in record.to_dict().items():
                data_vars[_PREFIXES[group] + name] = (('element',), np.asarray(values))
        if self.drain_mark is not None:
            data_vars[DRAIN_MARK] = (('element',), np.asarray(self.drain_mark, dtype=float))
        return xr.Dataset(
            data_vars,
            attrs={
                'time': float(self.time),
                'has_bgc': int(self.has_bgc),
                'format_version': FORMAT_VERSION,
            },
        )

    @classmethod
    def from_dataset(cls, ds: xr.Dataset, num_elements: Optional[int] = None,
                     num_rivers: Optional[int] = None) -> 'RestartSnapshot':
        """Rebuild a snapshot, checking dimensions against the mesh when given."""
        if 'time' not in ds.attrs:
            raise RestartError("Restart dataset has no 'time' attribute")
        if num_elements is not None and ds.sizes.get('element', 0) != num_elements:
            raise RestartError(
                f"Restart has {ds.sizes.get('element', 0)} elements, mesh has {num_elements}"
            )
        if num_rivers is not None and ds.sizes.get('river', 0) != num_rivers:
            raise RestartError(
                f"Restart has {ds.sizes.get('river', 0)} river segments, mesh has {num_rivers}"
            )

        def group(prefix):
            return {
                str(k)[len(prefix):]: ds[k].values
                for k in ds.data_vars if str(k).startswith(prefix)
            }

        hydro_values = group(_PREFIXES['hydro'])
        missing = [n for n in BLOCK_ORDER if n not in hydro_values]
        if missing:
            raise RestartError(f"Restart is missing hydrologic fields: {missing}")
        hydro = HydroState(**{n: np.asarray(hydro_values[n], dtype=float).copy()
                              for n in BLOCK_ORDER})

        carbon = nitrogen = phenology = annual = None
        if int(ds.attrs.get('has_bgc', 0)):
            try:
                carbon = CarbonState.from_dict(group(_PREFIXES['carbon']))
                nitrogen = NitrogenState.from_dict(group(_PREFIXES['nitrogen']))
                phenology = PhenologyState.from_dict(group(_PREFIXES['phenology']))
                annual = AnnualState.from_dict(group(_PREFIXES['annual']))
            except KeyError as e:
                raise RestartError(f"Restart is missing biogeochemistry field {e}") from e

        drain_mark = None
        if DRAIN_MARK in ds.data_vars:
            drain_mark = np.asarray(ds[DRAIN_MARK].values, dtype=float).copy()

        return cls(time=float(ds.attrs['time']), hydro=hydro, carbon=carbon,
                   nitrogen=nitrogen, phenology=phenology, annual=annual,
                   drain_mark=drain_mark)

    def to_netcdf(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataset().to_netcdf(path, engine='netcdf4')
        logger.info(f"Restart written to {path} (t = {self.time:.0f} s)")
        return path

    @classmethod
    def from_netcdf(cls, path: Union[str, Path], num_elements: Optional[int] = None,
                    num_rivers: Optional[int] = None) -> 'RestartSnapshot':
        path = Path(path)
        if not path.exists():
            raise RestartError(f"Restart file not found: {path}")
        try:
            with xr.open_dataset(path, engine='netcdf4') as ds:
                ds = ds.load()
        except (OSError, ValueError) as e:
            raise RestartError(f"Cannot read restart file {path}: {e}") from e
        logger.info(f"Restart read from {path}")
        return cls.from_dataset(ds, num_elements, num_rivers)
