# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Right-hand side of the hydrologic ODE system.

``FluxAssembly.evaluate(t, y)`` maps the flat state vector to its time
derivative. It reads forcing at ``t``, the canopy state fixed for the
current day and the static mesh; it writes nothing except the diagnostics
buffer.

Every exchange is computed once per connection and scattered with opposite
signs to its two ends, so the sum of all storage changes equals the sum of
the external fluxes recorded in the accumulators.

Units:
    element storages: m of water (IS, SNOW, SURF) or m of water table (UNSAT, GW)
    river stage: m
    exchanges: m3/s before division by area (and porosity)
"""

import logging
from typing import Optional

import numpy as np

from ..core.config.models.calibration import CalibrationConfig
from ..core.constants import HydrologyConstants
from ..forcing.meteo import MeteorologicalForcing
from ..mesh.network import NO_INDEX, MeshNetwork
from ..mesh.parameters import ElementParameters, RiverParameters
from ..mesh.types import BoundaryKind
from ..state.layout import StateLayout
from . import canopy, river, snow, soil
from .diagnostics import DiagnosticsBuffer

logger = logging.getLogger(__name__)

EPS = HydrologyConstants.DEPTH_EPS


class FluxAssembly:
    """Continuous-time derivative of the hydrologic state.

    Args:
        mesh: Validated mesh and river network
        params: Per-element parameters
        river_params: Per-segment parameters
        forcing: Meteorological forcing
        layout: State vector layout
        calibration: ET component multipliers
        lai_from_forcing: Read LAI from forcing instead of the daily canopy state
    """

    def __init__(
        self,
        mesh: MeshNetwork,
        params: ElementParameters,
        river_params: RiverParameters,
        forcing: MeteorologicalForcing,
        layout: StateLayout,
        calibration: Optional[CalibrationConfig] = None,
        lai_from_forcing: bool = False,
    ):
        self.mesh = mesh
        self.params = params
        self.rparams = river_params
        self.forcing = forcing
        self.layout = layout
        self.calib = calibration or CalibrationConfig()
        self.lai_from_forcing = lai_from_forcing
        self.diagnostics = DiagnosticsBuffer()

        ne = mesh.num_elements
        self.lai = params.laimax.copy()
        self.tsoil = np.full(ne, 10.0)

        self._build_connections()

    # ------------------------------------------------------------------
    # Static connection lists
    # ------------------------------------------------------------------

    def _build_connections(self) -> None:
        mesh = self.mesh
        pairs_i, pairs_k, pairs_len, pairs_dist = [], [], [], []
        bnd_i, bnd_kind, bnd_series, bnd_len, bnd_dist = [], [], [], [], []
        for i in range(mesh.num_elements):
            for j in range(3):
                if mesh.river_edge[i, j]:
                    continue
                k = mesh.neighbors[i, j]
                if k != NO_INDEX:
                    if i < k:
                        pairs_i.append(i)
                        pairs_k.append(k)
                        pairs_len.append(mesh.edge_length[i, j])
                        pairs_dist.append(mesh.neighbor_distance[i, j])
                elif mesh.bc_kind[i, j] != BoundaryKind.NO_FLOW:
                    bnd_i.append(i)
                    bnd_kind.append(mesh.bc_kind[i, j])
                    bnd_series.append(mesh.bc_series[i, j])
                    bnd_len.append(mesh.edge_length[i, j])
                    bnd_dist.append(mesh.neighbor_distance[i, j])

        self.pair_i = np.array(pairs_i, dtype=int)
        self.pair_k = np.array(pairs_k, dtype=int)
        self.pair_length = np.array(pairs_len, dtype=float)
        self.pair_distance = np.maximum(np.array(pairs_dist, dtype=float), 1.0e-3)

        self.bnd_element = np.array(bnd_i, dtype=int)
        self.bnd_kind = np.array(bnd_kind, dtype=int)
        self.bnd_series = np.array(bnd_series, dtype=int)
        self.bnd_length = np.array(bnd_len, dtype=float)
        self.bnd_distance = np.maximum(np.array(bnd_dist, dtype=float), 1.0e-3)

        bank_r, bank_e, bank_dist = [], [], []
        for r in range(mesh.num_rivers):
            for e in (mesh.river_left[r], mesh.river_right[r]):
                if e != NO_INDEX:
                    bank_r.append(r)
                    bank_e.append(e)
                    bank_dist.append(mesh.river_element_distance(r, e))
        self.bank_river = np.array(bank_r, dtype=int)
        self.bank_element = np.array(bank_e, dtype=int)
        self.bank_distance = np.maximum(np.array(bank_dist, dtype=float), 1.0e-3)

        down = mesh.river_down
        self.reach_up = np.flatnonzero(down != NO_INDEX)
        self.reach_down = down[self.reach_up]
        if mesh.num_rivers:
            self.reach_distance = 0.5 * (mesh.river_length[self.reach_up]
                                         + mesh.river_length[self.reach_down])
        else:
            self.reach_distance = np.zeros(0)
        self.outlets = np.array(mesh.outlets, dtype=int)

        logger.debug(
            f"Flux assembly: {self.pair_i.size} element pairs, {self.bnd_element.size} "
            f"active boundary edges, {self.bank_river.size} bank connections"
        )

    # ------------------------------------------------------------------
    # Daily canopy hand-over
    # ------------------------------------------------------------------

    def set_canopy_state(self, lai: np.ndarray, tsoil: Optional[np.ndarray] = None) -> None:
        """Fix leaf area index (and soil temperature) for the coming day."""
        self.lai = np.maximum(np.asarray(lai, dtype=float), 0.0).copy()
        if tsoil is not None:
            self.tsoil = np.asarray(tsoil, dtype=float).copy()

    def update_soil_temperature(self, day_start: float) -> None:
        """Take the soil temperature left by the day beginning at ``day_start``."""
        self.tsoil = np.asarray(self.forcing.soil_temperature(day_start), dtype=float).copy()

    # ------------------------------------------------------------------
    # Right-hand side
    # ------------------------------------------------------------------

    def river_volume(self, stage: np.ndarray) -> np.ndarray:
        rp = self.rparams
        return river.cross_section_area(stage, rp.interp_order, rp.coeff) * self.mesh.river_length

    def element_water_volume(self, state) -> np.ndarray:
        p = self.params
        return self.mesh.area * (
            state.IS + state.SNOW + state.SURF + p.porosity * (state.UNSAT + state.GW)
        )

    def evaluate(self, t: float, y: np.ndarray) -> np.ndarray:
        """Time derivative of the flat state vector at time ``t``."""
        mesh, p, rp, lay = self.mesh, self.params, self.rparams, self.layout
        y = np.asarray(y, dtype=float)
        area = mesh.area

        IS = y[lay['IS']]
        SNOW = y[lay['SNOW']]
        SURF = y[lay['SURF']]
        UNSAT = y[lay['UNSAT']]
        GW = y[lay['GW']]
        STAGE = y[lay['STAGE']]

        met = self.forcing.at(t)
        lai = met.lai if (met.lai is not None and self.lai_from_forcing) else self.lai
        temp = met.sfctmp

        # ---------------- vertical water balance (m/s) ----------------
        fsnow = snow.snow_fraction(temp)
        rain = met.prcp * (1.0 - fsnow)
        snowfall = met.prcp * fsnow

        is_max = canopy.interception_capacity(lai, p.vegfrac)
        intercepted, drip = canopy.interception(rain, IS, is_max, p.vegfrac)
        throughfall = rain - intercepted

        melt = snow.degree_day_melt(temp) * soil.smooth_ramp(SNOW)

        deficit = np.maximum(p.soil_depth - GW, EPS)
        satn = soil.unsat_saturation(UNSAT, GW, p.soil_depth)
        psi = soil.pressure_head(satn, p.alpha, p.beta)
        kr = soil.relative_conductivity(satn, p.beta)

        # evapotranspiration
        net_rad = (1.0 - p.albedo) * met.solar
        ra = canopy.aerodynamic_resistance(met.wind, p.windh)
        pet = canopy.penman_monteith(temp, met.rh, met.pres, net_rad, ra)
        wetf = canopy.wet_fraction(IS, is_max)
        ec = p.vegfrac * wetf * pet * self.calib.ec * soil.smooth_ramp(IS)

        root_base = p.soil_depth - p.rzd
        gw_in_root = soil.smooth_step((GW - root_base) / np.maximum(0.1 * p.rzd, EPS))
        rc = canopy.canopy_resistance(lai, met.solar, temp, met.rh, met.pres, satn,
                                      p.rsmin, p.rgl, p.hs, gw_in_root)
        ett_pot = p.vegfrac * (1.0 - wetf) * canopy.penman_monteith(
            temp, met.rh, met.pres, net_rad, ra, rc) * self.calib.ett
        ett_pot = np.where(lai > 0.0, ett_pot, 0.0)
        ett_gw = ett_pot * gw_in_root * soil.smooth_ramp(GW)
        ett_unsat = ett_pot * (1.0 - gw_in_root) * soil.smooth_ramp(UNSAT)
        ett = ett_gw + ett_unsat

        bare_pet = (1.0 - p.vegfrac * (1.0 - soil.smooth_ramp(SNOW))) * pet * self.calib.edir
        w_snow = soil.smooth_ramp(SNOW)
        w_surf = (1.0 - w_snow) * soil.smooth_ramp(SURF)
        w_soil = (1.0 - w_snow) * (1.0 - soil.smooth_ramp(SURF))
        gw_near_surface = soil.smooth_step((GW - (p.soil_depth - p.dinf)) / np.maximum(p.dinf, EPS))
        edir_snow = bare_pet * w_snow
        edir_surf = bare_pet * w_surf
        soil_evap = bare_pet * w_soil * satn ** 2
        edir_gw = soil_evap * gw_near_surface * soil.smooth_ramp(GW)
        edir_unsat = soil_evap * (1.0 - gw_near_surface) * soil.smooth_ramp(UNSAT)
        edir = edir_snow + edir_surf + edir_unsat + edir_gw

        # infiltration / exfiltration between surface and subsurface
        to_surface = throughfall + drip + melt
        k_inf = soil.effective_kv(p.kinf, kr, p.kmacv, p.areafh, p.macropore, satn)
        k_inf = k_inf * soil.frozen_soil_factor(self.tsoil)
        grad = 1.0 + (SURF - psi) / (0.5 * np.maximum(p.dinf, EPS))
        infil_pot = np.maximum(k_inf * grad, 0.0)
        room = soil.smooth_ramp(deficit - UNSAT)
        ponded = soil.smooth_ramp(SURF)
        infil = (ponded * infil_pot + (1.0 - ponded) * np.minimum(infil_pot, to_surface)) * room
        exfil = p.kinf * np.maximum(GW - p.soil_depth, 0.0) / (0.5 * np.maximum(p.dinf, EPS))

        # recharge between unsaturated zone and water table
        k_rech = soil.effective_kv(p.ksatv, kr, p.kmacv, p.areafh, p.macropore, satn)
        rech_grad = 1.0 + psi / (0.5 * deficit)
        rech = k_rech * rech_grad
        rech = np.where(rech > 0.0, rech * soil.smooth_ramp(UNSAT), rech * soil.smooth_ramp(GW))

        d_is = intercepted - drip - ec
        d_snow = snowfall - melt - edir_snow
        d_surf = to_surface - infil + exfil - edir_surf
        d_unsat = (infil - rech - ett_unsat - edir_unsat) / p.porosity
        d_gw = (rech - exfil - ett_gw - edir_gw) / p.porosity

        # volumetric lateral and river exchanges (m3/s), positive into element
        q_surf = np.zeros(mesh.num_elements)
        q_gw = np.zeros(mesh.num_elements)
        drain = np.zeros(mesh.num_elements)
        bc_in = np.zeros(mesh.num_elements)

        # ---------------- element to element ----------------
        if self.pair_i.size:
            i, k = self.pair_i, self.pair_k
            length, dist = self.pair_length, self.pair_distance

            h_i = mesh.zmax[i] + SURF[i]
            h_k = mesh.zmax[k] + SURF[k]
            from_i = h_i >= h_k
            depth_up = np.maximum(np.where(from_i, SURF[i], SURF[k]), 0.0)
            n_avg = 0.5 * (p.rough[i] + p.rough[k])
            q_ol = river.manning_flux(depth_up * length, length, h_i - h_k, dist, n_avg)
            q_ol *= soil.smooth_ramp(depth_up)

            g_i = mesh.zmin[i] + GW[i]
            g_k = mesh.zmin[k] + GW[k]
            k_i = soil.effective_kh(GW[i], p.soil_depth[i], p.dmac[i], p.ksath[i], p.kmach[i],
                                    p.areafv[i], p.macropore[i])
            k_k = soil.effective_kh(GW[k], p.soil_depth[k], p.dmac[k], p.ksath[k], p.kmach[k],
                                    p.areafv[k], p.macropore[k])
            gw_from_i = g_i >= g_k
            k_avg = np.where(gw_from_i,
                             soil.average_conductivity(k_i, k_k),
                             soil.average_conductivity(k_k, k_i))
            thickness = 0.5 * (np.maximum(GW[i], 0.0) + np.maximum(GW[k], 0.0))
            q_sub = k_avg * length * thickness * (g_i - g_k) / dist
            q_sub *= soil.smooth_ramp(np.where(gw_from_i, GW[i], GW[k]))

            np.add.at(q_surf, i, -q_ol)
            np.add.at(q_surf, k, q_ol)
            np.add.at(q_gw, i, -q_sub)
            np.add.at(q_gw, k, q_sub)
            np.add.at(drain, i, np.maximum(q_sub, 0.0))
            np.add.at(drain, k, np.maximum(-q_sub, 0.0))

        # ---------------- domain boundary edges ----------------
        if self.bnd_element.size:
            e = self.bnd_element
            values = np.array([self.mesh.boundary_series[s].value(t) for s in self.bnd_series])
            head_edges = self.bnd_kind == BoundaryKind.HEAD
            g_e = mesh.zmin[e] + GW[e]
            thickness = 0.5 * (np.maximum(GW[e], 0.0) + np.maximum(values - mesh.zmin[e], 0.0))
            k_e = soil.effective_kh(GW[e], p.soil_depth[e], p.dmac[e], p.ksath[e], p.kmach[e],
                                    p.areafv[e], p.macropore[e])
            q_head = k_e * self.bnd_length * thickness * (values - g_e) / self.bnd_distance
            q_in = np.where(head_edges, q_head, values)
            q_in = np.where(q_in < 0.0, q_in * soil.smooth_ramp(GW[e]), q_in)
            np.add.at(q_gw, e, q_in)
            np.add.at(bc_in, e, q_in)
            np.add.at(drain, e, np.maximum(-q_in, 0.0))

        # ---------------- element to river ----------------
        d_stage_vol = np.zeros(mesh.num_rivers)
        if self.bank_river.size:
            r, e = self.bank_river, self.bank_element
            length = mesh.river_length[r]
            zr = rp.zbed[r] + STAGE[r]
            bank = mesh.river_zbank[r]

            h_e = mesh.zmax[e] + SURF[e]
            q_ol = river.weir_flux(h_e, zr, bank, length, rp.cwr[r])
            q_ol = np.where(q_ol > 0.0, q_ol * soil.smooth_ramp(SURF[e]),
                            q_ol * soil.smooth_ramp(STAGE[r]))

            g_e = mesh.zmin[e] + GW[e]
            sat_thick = 0.5 * (np.maximum(GW[e], 0.0) + np.maximum(zr - mesh.zmin[e], 0.0))
            k_bank = soil.average_conductivity(p.ksath[e], rp.ksath[r])
            half_top = 0.5 * river.top_width(STAGE[r], rp.interp_order[r], rp.coeff[r])
            conductance = (k_bank * length * sat_thick / self.bank_distance
                           + rp.ksatv[r] * length * half_top / np.maximum(rp.bedthick[r], EPS))
            q_sub = conductance * (g_e - zr)
            q_sub = np.where(q_sub > 0.0, q_sub * soil.smooth_ramp(GW[e]),
                             q_sub * soil.smooth_ramp(STAGE[r]))

            np.add.at(q_surf, e, -q_ol)
            np.add.at(q_gw, e, -q_sub)
            np.add.at(d_stage_vol, r, q_ol + q_sub)
            np.add.at(drain, e, np.maximum(q_sub, 0.0))

        # ---------------- river routing ----------------
        outflow = np.zeros(mesh.num_rivers)
        riv_bc_in = np.zeros(mesh.num_rivers)
        if mesh.num_rivers:
            order_, coeff = rp.interp_order, rp.coeff
            head = rp.zbed + STAGE
            reach_q = np.zeros(self.reach_up.size)
            if self.reach_up.size:
                u, d = self.reach_up, self.reach_down
                from_u = head[u] >= head[d]
                stage_up = np.where(from_u, STAGE[u], STAGE[d])
                ord_up = np.where(from_u, order_[u], order_[d])
                coef_up = np.where(from_u, coeff[u], coeff[d])
                area_x = river.cross_section_area(stage_up, ord_up, coef_up)
                perim = river.wetted_perimeter(stage_up, ord_up, coef_up)
                n_avg = 0.5 * (rp.rough[u] + rp.rough[d])
                reach_q = river.manning_flux(area_x, perim, head[u] - head[d],
                                             self.reach_distance, n_avg)
                reach_q *= soil.smooth_ramp(stage_up)

            # accumulate reach exchanges from upstream to downstream
            reach_of = {int(seg): idx for idx, seg in enumerate(self.reach_up)}
            for seg in mesh.river_order:
                idx = reach_of.get(seg)
                if idx is not None:
                    d_stage_vol[seg] -= reach_q[idx]
                    d_stage_vol[self.reach_down[idx]] += reach_q[idx]

            for o in self.outlets:
                q_out = self._outlet_flux(t, int(o), STAGE[o], head[o])
                if mesh.river_bc_kind[o] == BoundaryKind.FLUX:
                    riv_bc_in[o] = -q_out
                else:
                    outflow[o] = q_out
                d_stage_vol[o] -= q_out

        d_surf = d_surf + q_surf / area
        d_gw = d_gw + q_gw / (area * p.porosity)

        if mesh.num_rivers:
            width = river.top_width(STAGE, rp.interp_order, rp.coeff)
            d_stage = d_stage_vol / (width * mesh.river_length)
        else:
            d_stage = np.zeros(0)

        dydt = np.empty(lay.size)
        dydt[lay['IS']] = d_is
        dydt[lay['SNOW']] = d_snow
        dydt[lay['SURF']] = d_surf
        dydt[lay['UNSAT']] = d_unsat
        dydt[lay['GW']] = d_gw
        dydt[lay['STAGE']] = d_stage
        dydt[lay['ACC_PRCP']] = met.prcp * area
        dydt[lay['ACC_EC']] = ec * area
        dydt[lay['ACC_ETT']] = ett * area
        dydt[lay['ACC_EDIR']] = edir * area
        dydt[lay['ACC_BC']] = bc_in
        dydt[lay['ACC_DRAIN']] = drain
        dydt[lay['ACC_OUTFLOW']] = outflow
        dydt[lay['ACC_RIVBC']] = riv_bc_in

        self.diagnostics.record(
            t,
            infiltration=infil - exfil,
            recharge=rech,
            interception=intercepted,
            drip=drip,
            melt=melt,
            pet=pet,
            ec=ec,
            ett=ett,
            edir=edir,
            surface_lateral=q_surf,
            subsurface_lateral=q_gw,
            drainage=drain,
            boundary_inflow=bc_in,
            river_outflow=outflow,
        )
        return dydt

    def _outlet_flux(self, t: float, o: int, stage: float, head: float) -> float:
        """Discharge (m3/s) leaving the network at outlet ``o``."""
        mesh, rp = self.mesh, self.rparams
        kind = mesh.river_bc_kind[o]
        length = mesh.river_length[o]
        if kind == BoundaryKind.FLUX:
            return -self.mesh.boundary_series[mesh.river_bc_series[o]].value(t)
        if kind == BoundaryKind.HEAD:
            target = self.mesh.boundary_series[mesh.river_bc_series[o]].value(t)
            drop = head - target
            upstage = stage if drop >= 0 else max(target - rp.zbed[o], 0.0)
            area_x = river.cross_section_area(upstage, rp.interp_order[o], rp.coeff[o])
            perim = river.wetted_perimeter(upstage, rp.interp_order[o], rp.coeff[o])
            q = river.manning_flux(area_x, perim, drop, 0.5 * length, rp.rough[o])
            return float(q * soil.smooth_ramp(upstage))
        area_x = river.cross_section_area(stage, rp.interp_order[o], rp.coeff[o])
        perim = river.wetted_perimeter(stage, rp.interp_order[o], rp.coeff[o])
        slope_drop = max(mesh.river_bed_slope[o], HydrologyConstants.MIN_SLOPE) * length
        q = river.manning_flux(area_x, perim, slope_drop, length, rp.rough[o])
        return float(q * soil.smooth_ramp(stage))
