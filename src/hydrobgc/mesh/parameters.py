# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Per-element and per-segment parameter arrays.

Table lookups are resolved once and the global calibration multipliers are
applied, so process code works on plain numpy vectors.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.config.models.calibration import CalibrationConfig
from .network import MeshNetwork


@dataclass(frozen=True, eq=False)
class ElementParameters:
    """Hydraulic and vegetation parameters, one entry per element."""
    ksath: np.ndarray
    ksatv: np.ndarray
    kinf: np.ndarray
    kmacv: np.ndarray
    kmach: np.ndarray
    dinf: np.ndarray
    rzd: np.ndarray
    dmac: np.ndarray
    thetas: np.ndarray
    thetar: np.ndarray
    porosity: np.ndarray
    alpha: np.ndarray
    beta: np.ndarray
    areafv: np.ndarray
    areafh: np.ndarray
    vegfrac: np.ndarray
    albedo: np.ndarray
    rough: np.ndarray
    rsmin: np.ndarray
    rgl: np.ndarray
    hs: np.ndarray
    laimax: np.ndarray
    windh: np.ndarray
    soil_depth: np.ndarray
    macropore: np.ndarray

    @classmethod
    def build(cls, mesh: MeshNetwork, calib: Optional[CalibrationConfig] = None) -> 'ElementParameters':
        calib = calib or CalibrationConfig()

        def soil(attr):
            return np.array([getattr(mesh.soils[i], attr) for i in mesh.soil_index], dtype=float)

        def geol(attr):
            return np.array([getattr(mesh.geologies[i], attr) for i in mesh.geology_index], dtype=float)

        def lc(attr):
            return np.array([getattr(mesh.landcovers[i], attr) for i in mesh.landcover_index], dtype=float)

        thetas = geol('thetas')
        thetar = geol('thetar')
        porosity = np.clip((thetas - thetar) * calib.porosity, 1.0e-3, 1.0)
        thetas_cal = thetar + porosity

        soil_depth = mesh.soil_depth
        rzd = np.minimum(lc('rzd') * calib.rzd, soil_depth)
        dinf = np.minimum(soil('infd') * calib.dinf, soil_depth)
        dmac = np.minimum(geol('dmac') * calib.macd, soil_depth)

        return cls(
            ksath=geol('ksath') * calib.ksath,
            ksatv=geol('ksatv') * calib.ksatv,
            kinf=soil('ksatv_inf') * calib.kinf,
            kmacv=soil('kmacsatv') * calib.kmacsatv,
            kmach=geol('kmacsath') * calib.kmacsath,
            dinf=dinf,
            rzd=rzd,
            dmac=dmac,
            thetas=thetas_cal,
            thetar=thetar,
            porosity=porosity,
            alpha=geol('alpha') * calib.alpha,
            beta=geol('beta') * calib.beta,
            areafv=np.clip(geol('areafv') * calib.areafv, 0.0, 1.0),
            areafh=np.clip(soil('areafh') * calib.areafh, 0.0, 1.0),
            vegfrac=np.clip(lc('vegfrac') * calib.vegfrac, 0.0, 1.0),
            albedo=np.clip(lc('albedo') * calib.albedo, 0.0, 1.0),
            rough=lc('rough') * calib.rough,
            rsmin=lc('rsmin') * calib.rsmin,
            rgl=lc('rgl'),
            hs=lc('hs'),
            laimax=lc('laimax'),
            windh=lc('windh'),
            soil_depth=soil_depth.copy(),
            macropore=mesh.macropore.copy(),
        )


@dataclass(frozen=True, eq=False)
class RiverParameters:
    """Channel geometry and bed parameters, one entry per segment."""
    depth: np.ndarray
    interp_order: np.ndarray
    coeff: np.ndarray
    rough: np.ndarray
    cwr: np.ndarray
    ksath: np.ndarray
    ksatv: np.ndarray
    bedthick: np.ndarray
    zbed: np.ndarray

    @classmethod
    def build(cls, mesh: MeshNetwork, calib: Optional[CalibrationConfig] = None) -> 'RiverParameters':
        calib = calib or CalibrationConfig()

        def shape(attr):
            return np.array([getattr(mesh.shapes[i], attr) for i in mesh.river_shape_index], dtype=float)

        def material(attr):
            return np.array([getattr(mesh.materials[i], attr) for i in mesh.river_material_index], dtype=float)

        depth = shape('depth') * calib.riv_depth
        return cls(
            depth=depth,
            interp_order=shape('interp_order').astype(int),
            coeff=shape('coeff') * calib.riv_shpcoeff,
            rough=material('rough') * calib.riv_rough,
            cwr=material('cwr'),
            ksath=material('ksath') * calib.riv_ksath,
            ksatv=material('ksatv') * calib.riv_ksatv,
            bedthick=material('bedthick') * calib.riv_bedthick,
            zbed=mesh.river_zbank - depth,
        )
