"""
Tests for decomposition, allocation, mortality and fire.

Each process moves mass between pools, sources and sinks only, so the
per-element balance ``pools + sinks - sources`` must not change.
"""

import numpy as np
import pytest

from hydrobgc.bgc import EcophysArrays, ecophys_for
from hydrobgc.bgc.allocation import allocate, allocation_demand, allometry
from hydrobgc.bgc.decomposition import (
    apply_decomposition,
    potential_decomposition,
    temperature_scalar,
    water_scalar,
)
from hydrobgc.bgc.mortality import fire, livewood_turnover, mortality
from hydrobgc.state import CarbonState, NitrogenState


@pytest.fixture
def epc():
    return EcophysArrays([ecophys_for('DBF'), ecophys_for('C3GRASS')])


@pytest.fixture
def pools():
    cs = CarbonState.zeros(2)
    ns = NitrogenState.zeros(2)
    stocks = {
        'leaf': (0.3, 24.0), 'froot': (0.3, 42.0), 'livestem': (0.5, 50.0),
        'deadstem': (5.0, 442.0), 'livecroot': (0.2, 50.0), 'deadcroot': (2.0, 442.0),
        'cwd': (1.0, 442.0), 'litr1': (0.05, 20.0), 'litr2': (0.1, 60.0),
        'litr3': (0.05, 60.0), 'litr4': (0.1, 200.0), 'soil1': (0.2, 12.0),
        'soil2': (1.0, 12.0), 'soil3': (3.0, 10.0), 'soil4': (8.0, 10.0),
    }
    for name, (carbon, cn) in stocks.items():
        setattr(cs, f'{name}c', np.full(2, carbon))
        setattr(ns, f'{name}n', np.full(2, carbon / cn))
    cs.leafc_storage[:] = 0.05
    ns.leafn_storage[:] = 0.05 / 24.0
    cs.gresp_storage[:] = 0.01
    ns.sminn[:] = 5.0e-3
    return cs, ns


def assert_conserved(cs, ns, c0, n0):
    np.testing.assert_allclose(cs.balance(), c0, rtol=1.0e-12, atol=1.0e-14)
    np.testing.assert_allclose(ns.balance(), n0, rtol=1.0e-12, atol=1.0e-14)


class TestDecompositionScalars:

    def test_temperature_reference(self):
        assert temperature_scalar(25.0) == pytest.approx(1.0)
        assert temperature_scalar(-15.0) == 0.0
        assert temperature_scalar(10.0) < temperature_scalar(20.0)

    def test_water_limits(self):
        np.testing.assert_allclose(water_scalar(np.array([-20.0, -10.0, -0.004, 0.0])),
                                   [0.0, 0.0, 1.0, 1.0])
        assert 0.0 < water_scalar(-1.0) < 1.0


class TestDecomposition:

    def test_conserves_mass(self, epc, pools):
        cs, ns = pools
        c0, n0 = cs.balance().copy(), ns.balance().copy()
        potential = potential_decomposition(cs, ns, np.full(2, 15.0), np.full(2, -0.1))
        result = apply_decomposition(cs, ns, epc, potential, np.ones(2))
        assert np.all(result['hr'] > 0.0)
        np.testing.assert_allclose(cs.hr_snk, result['hr'])
        assert_conserved(cs, ns, c0, n0)

    def test_immobilization_scaled_by_fraction(self, epc, pools):
        cs, ns = pools
        potential = potential_decomposition(cs, ns, np.full(2, 15.0), np.full(2, -0.1))
        assert np.all(potential.potential_immob > 0.0)
        result = apply_decomposition(cs, ns, epc, potential, np.full(2, 0.4))
        np.testing.assert_allclose(result['immob'], 0.4 * potential.potential_immob, rtol=1.0e-10)
        np.testing.assert_allclose(result['gross_nmin'], potential.gross_nmin, rtol=1.0e-10)

    def test_frozen_soil_stops_decomposition(self, epc, pools):
        cs, ns = pools
        potential = potential_decomposition(cs, ns, np.full(2, -20.0), np.full(2, -0.1))
        result = apply_decomposition(cs, ns, epc, potential, np.ones(2))
        np.testing.assert_array_equal(result['hr'], 0.0)

    def test_cwd_fragments_into_litter(self, epc, pools):
        cs, ns = pools
        cwd0 = cs.cwdc.copy()
        potential = potential_decomposition(cs, ns, np.full(2, 25.0), np.full(2, -0.004))
        assert np.all(potential.cwd_fragmentation > 0.0)
        apply_decomposition(cs, ns, epc, potential, np.ones(2))
        np.testing.assert_allclose(cs.cwdc, cwd0 - potential.cwd_fragmentation)


class TestAllocation:

    def test_full_nitrogen_allocates_all_carbon(self, epc, pools):
        cs, ns = pools
        c0, n0 = cs.balance().copy(), ns.balance().copy()
        gpp, mr = np.full(2, 0.01), np.full(2, 0.002)
        demand = allocation_demand(epc, gpp, mr, ns.retransn)
        result = allocate(cs, ns, epc, demand, demand.sminn_demand, gpp, mr)
        np.testing.assert_allclose(result.excess_c, 0.0, atol=1.0e-15)
        np.testing.assert_allclose(result.gpp, gpp)
        np.testing.assert_allclose(cs.gpp_src, gpp)
        np.testing.assert_allclose(cs.cpool, 0.0, atol=1.0e-15)
        np.testing.assert_allclose(ns.npool, 0.0, atol=1.0e-15)
        assert_conserved(cs, ns, c0, n0)

    def test_nitrogen_limitation_downregulates(self, epc, pools):
        cs, ns = pools
        c0, n0 = cs.balance().copy(), ns.balance().copy()
        gpp, mr = np.full(2, 0.01), np.full(2, 0.002)
        demand = allocation_demand(epc, gpp, mr, np.zeros(2))
        result = allocate(cs, ns, epc, demand, 0.5 * demand.sminn_demand, gpp, mr)
        np.testing.assert_allclose(result.downreg, 0.5)
        np.testing.assert_allclose(result.gpp, gpp - 0.5 * demand.availc)
        assert_conserved(cs, ns, c0, n0)

    def test_retranslocation_drawn_first(self, epc, pools):
        cs, ns = pools
        ns.retransn[:] = 1.0
        demand = allocation_demand(epc, np.full(2, 0.01), np.full(2, 0.002), ns.retransn)
        np.testing.assert_allclose(demand.sminn_demand, 0.0)
        np.testing.assert_allclose(demand.retransn_to_npool, demand.plant_ndemand)

    def test_grass_grows_no_wood(self, epc, pools):
        cs, ns = pools
        gpp, mr = np.full(2, 0.01), np.zeros(2)
        demand = allocation_demand(epc, gpp, mr, ns.retransn)
        stem0 = cs.livestemc.copy()
        allocate(cs, ns, epc, demand, demand.sminn_demand, gpp, mr)
        assert cs.livestemc[0] > stem0[0]
        assert cs.livestemc[1] == stem0[1]
        c_allom, _ = allometry(epc)
        assert c_allom[1] == pytest.approx(1.3 * 2.0)

    def test_unpaid_maintenance_respiration(self, epc, pools):
        cs, ns = pools
        gpp, mr = np.zeros(2), np.full(2, 0.002)
        demand = allocation_demand(epc, gpp, mr, ns.retransn)
        result = allocate(cs, ns, epc, demand, demand.sminn_demand, gpp, mr)
        np.testing.assert_allclose(result.mr, 0.0)
        np.testing.assert_allclose(demand.availc, 0.0)


class TestMortalityAndFire:

    def test_livewood_turnover_conserves(self, epc, pools):
        cs, ns = pools
        c0, n0 = cs.balance().copy(), ns.balance().copy()
        moved = livewood_turnover(cs, ns, epc)
        assert moved[0] > 0.0
        assert moved[1] == 0.0
        assert ns.retransn[0] > 0.0
        assert_conserved(cs, ns, c0, n0)

    def test_mortality_feeds_litter_and_debris(self, epc, pools):
        cs, ns = pools
        c0, n0 = cs.balance().copy(), ns.balance().copy()
        litter0, cwd0 = cs.litter().copy(), cs.cwdc.copy()
        moved = mortality(cs, ns, epc)
        assert np.all(moved > 0.0)
        assert np.all(cs.cwdc > cwd0)
        np.testing.assert_allclose(cs.litter() - litter0, moved)
        assert_conserved(cs, ns, c0, n0)

    def test_fire_losses_reach_sink(self, epc, pools):
        cs, ns = pools
        c0, n0 = cs.balance().copy(), ns.balance().copy()
        lost = fire(cs, ns, epc)
        np.testing.assert_allclose(cs.fire_snk, lost['fire_c'])
        np.testing.assert_allclose(ns.fire_snk, lost['fire_n'])
        assert lost['fire_c'][1] > lost['fire_c'][0] * 0.5
        assert_conserved(cs, ns, c0, n0)
