# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Meteorological forcing access.

Station time series are held as dense numpy arrays and mapped to elements
through the mesh station index. Sub-daily values are interpolated linearly
in time for the flux assembly; daily aggregates feed the biogeochemistry
updater.

Units:
    prcp: m/s
    sfctmp: °C
    rh: fraction (0-1)
    wind: m/s
    solar: downward shortwave (W/m2)
    pres: Pa
    lai: m2/m2 (optional, used when the biogeochemistry layer is off)
"""

import logging
import math
from typing import Dict, Mapping, NamedTuple, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.config.models.calibration import CalibrationConfig
from ..core.constants import UnitConversion
from ..core.exceptions import ForcingError

logger = logging.getLogger(__name__)

REQUIRED_VARIABLES = ('prcp', 'sfctmp', 'rh', 'wind', 'solar', 'pres')
OPTIONAL_VARIABLES = ('lai',)

SOIL_TEMP_WINDOW_DAYS = 11


class ForcingSnapshot(NamedTuple):
    """Per-element forcing at one instant."""
    prcp: np.ndarray
    sfctmp: np.ndarray
    rh: np.ndarray
    wind: np.ndarray
    solar: np.ndarray
    pres: np.ndarray
    lai: Optional[np.ndarray]


class DailyMeteorology(NamedTuple):
    """Per-element daily aggregates used by the biogeochemistry updater."""
    year: int
    yday: int               # day of year, 1-based
    tmax: np.ndarray        # °C
    tmin: np.ndarray
    tavg: np.ndarray
    tday: np.ndarray        # daylight average temperature
    tnight: np.ndarray
    tsoil: np.ndarray       # 11-day running mean air temperature
    vpd: np.ndarray         # daylight vapour pressure deficit (Pa)
    swavgfd: np.ndarray     # daylight average shortwave (W/m2)
    par: np.ndarray         # daylight average PAR (W/m2)
    prcp: np.ndarray        # m/day
    dayl: float             # day length (s)
    prev_dayl: float


def saturation_vapor_pressure(t_celsius):
    """Saturation vapour pressure (Pa) over water, Tetens formula."""
    return 611.2 * np.exp(17.67 * t_celsius / (t_celsius + 243.5))


def day_length(latitude: float, yday: int) -> float:
    """Astronomical day length (s) from latitude (degrees) and day of year."""
    decl = math.radians(23.45) * math.sin(2.0 * math.pi * (284 + yday) / 365.0)
    lat = math.radians(latitude)
    cos_h = -math.tan(lat) * math.tan(decl)
    cos_h = min(max(cos_h, -1.0), 1.0)
    return UnitConversion.SECONDS_PER_DAY * math.acos(cos_h) / math.pi


class MeteorologicalForcing:
    """Station forcing mapped onto mesh elements.

    Args:
        times: Sample times (seconds since epoch), strictly increasing
        data: Variable name -> array of shape (ntime, nstation)
        station_index: Station of each element
        latitude: Site latitude for day length (degrees)
        calibration: Precipitation multiplier and temperature offset
    """

    def __init__(
        self,
        times: np.ndarray,
        data: Mapping[str, np.ndarray],
        station_index: np.ndarray,
        latitude: float = 40.0,
        calibration: Optional[CalibrationConfig] = None,
    ):
        self.times = np.asarray(times, dtype=float)
        if self.times.ndim != 1 or self.times.size < 2:
            raise ForcingError("Forcing needs at least two time samples")
        if np.any(np.diff(self.times) <= 0):
            raise ForcingError("Forcing times must be strictly increasing")

        missing = [v for v in REQUIRED_VARIABLES if v not in data]
        if missing:
            raise ForcingError(f"Missing forcing variables: {missing}")

        self._data: Dict[str, np.ndarray] = {}
        nstation = None
        for name in REQUIRED_VARIABLES + OPTIONAL_VARIABLES:
            if name not in data:
                continue
            arr = np.asarray(data[name], dtype=float)
            if arr.ndim == 1:
                arr = arr[:, None]
            if arr.shape[0] != self.times.size:
                raise ForcingError(
                    f"Forcing '{name}' has {arr.shape[0]} samples, expected {self.times.size}"
                )
            if nstation is None:
                nstation = arr.shape[1]
            elif arr.shape[1] != nstation:
                raise ForcingError(f"Forcing '{name}' has inconsistent station count")
            if not np.all(np.isfinite(arr)):
                raise ForcingError(f"Forcing '{name}' contains non-finite values")
            self._data[name] = arr

        self.station_index = np.asarray(station_index, dtype=int)
        if self.station_index.size and (
                self.station_index.min() < 0 or self.station_index.max() >= nstation):
            raise ForcingError(
                f"Element station index out of range for {nstation} station(s)"
            )

        calib = calibration or CalibrationConfig()
        self._data['prcp'] = np.maximum(self._data['prcp'], 0.0) * calib.prcp
        self._data['sfctmp'] = self._data['sfctmp'] + calib.sfctmp
        self._data['rh'] = np.clip(self._data['rh'], 0.01, 1.0)
        self.latitude = latitude
        self.num_stations = nstation
        self._tsoil_cache: Dict[int, np.ndarray] = {}

    # ------------------------------------------------------------------

    @classmethod
    def from_dataframes(
        cls,
        stations: Sequence[pd.DataFrame],
        station_index: np.ndarray,
        latitude: float = 40.0,
        calibration: Optional[CalibrationConfig] = None,
    ) -> 'MeteorologicalForcing':
        """Build forcing from one DataFrame per station.

        Each frame has a DatetimeIndex and one column per variable. Frames
        are aligned on the union of their indices with time interpolation.
        """
        if not stations:
            raise ForcingError("No forcing stations supplied")
        frames = []
        for k, frame in enumerate(stations):
            if not isinstance(frame.index, pd.DatetimeIndex):
                raise ForcingError(f"Station {k} forcing must have a DatetimeIndex")
            frames.append(frame.sort_index())

        index = frames[0].index
        for frame in frames[1:]:
            index = index.union(frame.index)

        data = {}
        for name in REQUIRED_VARIABLES + OPTIONAL_VARIABLES:
            present = [name in f.columns for f in frames]
            if not any(present):
                continue
            if not all(present):
                raise ForcingError(f"Variable '{name}' missing for some stations")
            columns = [
                f[name].reindex(index).interpolate(method='time').ffill().bfill().to_numpy()
                for f in frames
            ]
            data[name] = np.column_stack(columns)

        if index.tz is None:
            index = index.tz_localize('UTC')
        times = (index - pd.Timestamp('1970-01-01', tz='UTC')) / pd.Timedelta(seconds=1)
        return cls(np.asarray(times, dtype=float), data, station_index, latitude, calibration)

    # ------------------------------------------------------------------

    @property
    def start(self) -> float:
        return float(self.times[0])

    @property
    def end(self) -> float:
        return float(self.times[-1])

    @property
    def has_lai(self) -> bool:
        return 'lai' in self._data

    def check_coverage(self, start: float, end: float) -> None:
        """Raise ForcingError unless forcing spans ``[start, end]``."""
        if start < self.start or end > self.end:
            raise ForcingError(
                f"Forcing covers [{self.start}, {self.end}] s but the run needs [{start}, {end}] s"
            )

    def _interp(self, name: str, t: float) -> np.ndarray:
        arr = self._data[name]
        k = int(np.searchsorted(self.times, t, side='right')) - 1
        k = min(max(k, 0), self.times.size - 2)
        t0, t1 = self.times[k], self.times[k + 1]
        w = min(max((t - t0) / (t1 - t0), 0.0), 1.0)
        station_values = (1.0 - w) * arr[k] + w * arr[k + 1]
        return station_values[self.station_index]

    def at(self, t: float) -> ForcingSnapshot:
        """Per-element forcing interpolated at time ``t``."""
        return ForcingSnapshot(
            prcp=self._interp('prcp', t),
            sfctmp=self._interp('sfctmp', t),
            rh=self._interp('rh', t),
            wind=self._interp('wind', t),
            solar=self._interp('solar', t),
            pres=self._interp('pres', t),
            lai=self._interp('lai', t) if self.has_lai else None,
        )

    # ------------------------------------------------------------------
    # Daily aggregates
    # ------------------------------------------------------------------

    def _day_samples(self, day_start: float, name: str) -> np.ndarray:
        offsets = np.arange(0.5, 24.0) * UnitConversion.SECONDS_PER_HOUR
        return np.stack([self._interp(name, day_start + dt) for dt in offsets])

    def _daily_tavg(self, day_start: float) -> np.ndarray:
        key = int(day_start // UnitConversion.SECONDS_PER_DAY)
        cached = self._tsoil_cache.get(key)
        if cached is None:
            cached = self._day_samples(day_start, 'sfctmp').mean(axis=0)
            if len(self._tsoil_cache) > 64:
                self._tsoil_cache.clear()
            self._tsoil_cache[key] = cached
        return cached

    def soil_temperature(self, day_start: float) -> np.ndarray:
        """Soil temperature (degC) once the day beginning at ``day_start`` is over.

        Running mean of daily air temperature over the last
        ``SOIL_TEMP_WINDOW_DAYS`` days. Earlier days are dropped once they
        precede the forcing; the day itself always counts.
        """
        window = [self._daily_tavg(day_start)]
        for k in range(1, SOIL_TEMP_WINDOW_DAYS):
            d = day_start - k * UnitConversion.SECONDS_PER_DAY
            if d < self.start:
                break
            window.append(self._daily_tavg(d))
        return np.mean(window, axis=0)

    def daily(self, day_start: float) -> DailyMeteorology:
        """Daily aggregates for the day beginning at ``day_start``."""
        temp = self._day_samples(day_start, 'sfctmp')
        rh = self._day_samples(day_start, 'rh')
        solar = self._day_samples(day_start, 'solar')
        prcp = self._day_samples(day_start, 'prcp')

        tmax = temp.max(axis=0)
        tmin = temp.min(axis=0)
        tavg = temp.mean(axis=0)
        tday = 0.45 * (tmax - tavg) + tavg
        tnight = 0.5 * (tday + tmin)

        tsoil = self.soil_temperature(day_start)

        stamp = pd.Timestamp(day_start, unit='s', tz='UTC')
        yday = int(stamp.dayofyear)
        dayl = day_length(self.latitude, min(yday, 365))
        prev_dayl = day_length(self.latitude, 365 if yday == 1 else min(yday - 1, 365))

        vpd = np.maximum(saturation_vapor_pressure(tday) * (1.0 - rh.mean(axis=0)), 0.0)
        daily_sw = solar.mean(axis=0) * UnitConversion.SECONDS_PER_DAY
        swavgfd = daily_sw / max(dayl, 1.0)

        return DailyMeteorology(
            year=int(stamp.year),
            yday=yday,
            tmax=tmax,
            tmin=tmin,
            tavg=tavg,
            tday=tday,
            tnight=tnight,
            tsoil=tsoil,
            vpd=vpd,
            swavgfd=swavgfd,
            par=0.45 * swavgfd,
            prcp=prcp.mean(axis=0) * UnitConversion.SECONDS_PER_DAY,
            dayl=dayl,
            prev_dayl=prev_dayl,
        )
