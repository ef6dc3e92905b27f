"""
Tests for FluxAssembly.evaluate: shape, conservation, boundaries and sparsity.
"""

import numpy as np
import pandas as pd
import pytest

from hydrobgc.hydrology import FluxAssembly
from hydrobgc.hydrology.river import top_width
from hydrobgc.hydrology.sparsity import jacobian_sparsity
from hydrobgc.mesh import BoundaryKind, BoundarySeries, ElementParameters, RiverParameters
from hydrobgc.state import StateLayout

from fixtures.domain_fixtures import START, build_forcing, build_test_mesh


T_NOON = pd.Timestamp(START, tz='UTC').timestamp() + 12 * 3600.0


def make_assembly(mesh):
    layout = StateLayout(mesh.num_elements, mesh.num_rivers)
    assembly = FluxAssembly(
        mesh,
        ElementParameters.build(mesh),
        RiverParameters.build(mesh),
        build_forcing(mesh),
        layout,
    )
    return assembly, layout


def wet_state(layout):
    state = layout.zeros()
    state.IS[:] = 1.0e-4
    state.SURF[:] = [2.0e-3, 1.0e-3, 5.0e-4, 3.0e-3]
    state.UNSAT[:] = 0.3
    state.GW[:] = [1.2, 1.0, 0.9, 1.1]
    state.STAGE[:] = 0.2
    return state


class TestEvaluate:

    def test_derivative_shape_and_finite(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        dydt = assembly.evaluate(T_NOON, layout.flatten(wet_state(layout)))
        assert dydt.shape == (layout.size,)
        assert np.all(np.isfinite(dydt))

    def test_storage_change_matches_external_fluxes(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        dydt = layout.unflatten(assembly.evaluate(T_NOON, layout.flatten(wet_state(layout))))
        p = assembly.params
        area = test_mesh.area
        element_rate = np.sum(area * (dydt.IS + dydt.SNOW + dydt.SURF
                                      + p.porosity * (dydt.UNSAT + dydt.GW)))
        stage = wet_state(layout).STAGE
        rp = assembly.rparams
        width = top_width(stage, rp.interp_order, rp.coeff)
        river_rate = np.sum(width * test_mesh.river_length * dydt.STAGE)
        external = (dydt.ACC_PRCP.sum() - dydt.ACC_EC.sum() - dydt.ACC_ETT.sum()
                    - dydt.ACC_EDIR.sum() + dydt.ACC_BC.sum()
                    - dydt.ACC_OUTFLOW.sum() + dydt.ACC_RIVBC.sum())
        assert element_rate + river_rate == pytest.approx(external, rel=1.0e-9, abs=1.0e-15)

    def test_repeated_evaluation_is_pure(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        y = layout.flatten(wet_state(layout))
        first = assembly.evaluate(T_NOON, y)
        second = assembly.evaluate(T_NOON, y.copy())
        np.testing.assert_array_equal(first, second)
        np.testing.assert_array_equal(y, layout.flatten(wet_state(layout)))

    def test_diagnostics_recorded(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        assembly.evaluate(T_NOON, layout.flatten(wet_state(layout)))
        assert assembly.diagnostics.time == T_NOON
        assert 'infiltration' in assembly.diagnostics
        assert assembly.diagnostics['river_outflow'].shape == (1,)

    def test_empty_storages_do_not_lose_water(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        dydt = layout.unflatten(assembly.evaluate(T_NOON, np.zeros(layout.size)))
        assert np.all(dydt.IS >= 0.0)
        assert np.all(dydt.SNOW >= 0.0)
        assert np.all(dydt.STAGE >= 0.0)

    def test_slightly_negative_trial_state_stays_finite(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        state = wet_state(layout)
        state.SURF[:] = [-1.0e-6, 2.0e-3, -3.0e-7, 1.0e-3]
        state.STAGE[:] = -1.0e-6
        dydt = assembly.evaluate(T_NOON, layout.flatten(state))
        assert np.all(np.isfinite(dydt))

    def test_soil_temperature_follows_forcing(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        day = pd.Timestamp(START, tz='UTC').timestamp()
        assembly.update_soil_temperature(day)
        np.testing.assert_allclose(assembly.tsoil, assembly.forcing.soil_temperature(day))
        assert np.all(assembly.tsoil != 10.0)

    def test_canopy_state_controls_interception(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        y = layout.flatten(layout.zeros())
        assembly.set_canopy_state(np.zeros(test_mesh.num_elements))
        bare = layout.unflatten(assembly.evaluate(T_NOON, y))
        np.testing.assert_allclose(bare.IS, 0.0)


class TestBoundaries:

    def test_no_flow_edges_are_inactive(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        assert assembly.bnd_element.size == 0
        dydt = layout.unflatten(assembly.evaluate(T_NOON, layout.flatten(wet_state(layout))))
        np.testing.assert_array_equal(dydt.ACC_BC, 0.0)
        np.testing.assert_array_equal(assembly.diagnostics['boundary_inflow'], 0.0)

    def test_head_boundary_feeds_groundwater(self):
        mesh = build_test_mesh(left_bc=BoundaryKind.HEAD,
                               boundary_series=[BoundarySeries.constant(12.0)])
        assembly, layout = make_assembly(mesh)
        assert assembly.bnd_element.tolist() == [1]
        dydt = layout.unflatten(assembly.evaluate(T_NOON, layout.flatten(wet_state(layout))))
        assert dydt.ACC_BC[1] > 0.0
        assert np.count_nonzero(dydt.ACC_BC) == 1

    def test_flux_boundary_uses_series_value(self):
        mesh = build_test_mesh(left_bc=BoundaryKind.FLUX,
                               boundary_series=[BoundarySeries.constant(1.0e-4)])
        assembly, layout = make_assembly(mesh)
        dydt = layout.unflatten(assembly.evaluate(T_NOON, layout.flatten(wet_state(layout))))
        assert dydt.ACC_BC[1] == pytest.approx(1.0e-4)


class TestSparsity:

    def test_pattern_covers_finite_difference_jacobian(self, test_mesh):
        assembly, layout = make_assembly(test_mesh)
        pattern = jacobian_sparsity(test_mesh, layout).toarray()
        y = layout.flatten(wet_state(layout))
        base = assembly.evaluate(T_NOON, y)
        for col in range(layout.size):
            bumped = y.copy()
            bumped[col] += 1.0e-6 * max(abs(y[col]), 1.0)
            changed = assembly.evaluate(T_NOON, bumped) != base
            outside = changed & ~pattern[:, col]
            assert not outside.any(), f"column {layout.owner(col)} touches rows outside pattern"

    def test_accumulators_drive_nothing(self, test_mesh):
        layout = StateLayout(test_mesh.num_elements, test_mesh.num_rivers)
        pattern = jacobian_sparsity(test_mesh, layout).toarray()
        assert not pattern[:, layout.storage_size:].any()
