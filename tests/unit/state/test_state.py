"""
Unit tests for the state layout, pool sets and restart snapshots.
"""

import numpy as np
import pytest

from hydrobgc.core.exceptions import RestartError
from hydrobgc.state import (
    BLOCK_ORDER,
    AnnualState,
    CarbonState,
    NitrogenState,
    PhenologyPhase,
    PhenologyState,
    RestartSnapshot,
    StateLayout,
)


class TestStateLayout:

    def test_block_sizes(self):
        layout = StateLayout(num_elements=4, num_rivers=2)
        assert layout.size == 5 * 4 + 2 + 6 * 4 + 2 * 2
        assert layout.storage_size == 5 * 4 + 2
        assert layout['STAGE'] == slice(20, 22)

    def test_flatten_unflatten(self):
        layout = StateLayout(4, 1)
        y = np.arange(layout.size, dtype=float)
        state = layout.unflatten(y)
        np.testing.assert_array_equal(state.GW, y[layout['GW']])
        np.testing.assert_array_equal(layout.flatten(state), y)

    def test_owner(self):
        layout = StateLayout(4, 1)
        assert layout.owner(0) == ('IS', 0)
        assert layout.owner(layout['STAGE'].start) == ('STAGE', 0)
        assert layout.owner(layout.size - 1) == ('ACC_RIVBC', 0)
        with pytest.raises(IndexError):
            layout.owner(layout.size)

    def test_wrong_vector_shape(self):
        with pytest.raises(ValueError):
            StateLayout(4, 1).unflatten(np.zeros(3))


class TestPools:

    def test_balance_counts_sinks_and_sources(self):
        cs = CarbonState.zeros(2)
        cs.leafc[:] = 1.0
        cs.gpp_src[:] = 1.5
        cs.hr_snk[:] = 0.5
        np.testing.assert_allclose(cs.balance(), 0.0)

    def test_clamp_negative_books_source(self):
        ns = NitrogenState.zeros(3)
        ns.sminn[:] = [0.1, -0.02, 0.0]
        before = ns.balance().copy()
        added = ns.clamp_negative()
        np.testing.assert_allclose(added, [0.0, 0.02, 0.0])
        assert ns.sminn.min() == 0.0
        np.testing.assert_allclose(ns.balance(), before)

    def test_carbon_partitions(self):
        cs = CarbonState.zeros(1)
        cs.leafc[:] = 0.2
        cs.litr1c[:] = 0.3
        cs.soil4c[:] = 5.0
        assert cs.vegetation()[0] == pytest.approx(0.2)
        assert cs.litter()[0] == pytest.approx(0.3)
        assert cs.soil()[0] == pytest.approx(5.0)
        assert cs.total()[0] == pytest.approx(5.5)

    def test_copy_is_independent(self):
        cs = CarbonState.zeros(2)
        other = cs.copy()
        other.cpool[:] = 1.0
        assert cs.cpool.sum() == 0.0


class TestVegetationRecords:

    def test_initial_phase_by_habit(self):
        phen = PhenologyState.initial(2, evergreen=np.array([True, False]))
        assert phen.phase.tolist() == [PhenologyPhase.ACTIVE, PhenologyPhase.DORMANT]

    def test_annual_rollover(self):
        annual = AnnualState.initial(2, 2000)
        annual.annmax_leafc[:] = 0.4
        annual.annsum_npp[:] = 0.8
        annual.rollover(2001)
        np.testing.assert_allclose(annual.last_annmax_leafc, 0.4)
        np.testing.assert_allclose(annual.last_annsum_npp, 0.8)
        np.testing.assert_allclose(annual.annmax_leafc, 0.0)
        np.testing.assert_allclose(annual.year, 2001.0)


def _snapshot(layout, with_bgc=True):
    hydro = layout.unflatten(np.linspace(0.0, 1.0, layout.size))
    if not with_bgc:
        return RestartSnapshot(time=3600.0, hydro=hydro)
    cs = CarbonState.zeros(layout.num_elements)
    cs.soil1c[:] = 2.5
    ns = NitrogenState.zeros(layout.num_elements)
    ns.sminn[:] = 0.01
    return RestartSnapshot(
        time=3600.0,
        hydro=hydro,
        carbon=cs,
        nitrogen=ns,
        phenology=PhenologyState.initial(layout.num_elements, np.zeros(layout.num_elements, bool)),
        annual=AnnualState.initial(layout.num_elements, 2000),
    )


class TestRestartSnapshot:

    def test_dataset_round_trip(self):
        layout = StateLayout(4, 1)
        snap = _snapshot(layout)
        restored = RestartSnapshot.from_dataset(snap.to_dataset(), 4, 1)
        assert restored.time == 3600.0
        assert restored.has_bgc
        for name in BLOCK_ORDER:
            np.testing.assert_array_equal(getattr(restored.hydro, name), getattr(snap.hydro, name))
        np.testing.assert_array_equal(restored.carbon.soil1c, snap.carbon.soil1c)
        np.testing.assert_array_equal(restored.phenology.phase, snap.phenology.phase)
        assert restored.phenology.phase.dtype.kind == 'i'

    def test_drain_mark_round_trip(self):
        snap = _snapshot(StateLayout(4, 1))
        snap.drain_mark = np.array([0.1, 0.2, 0.3, 0.4])
        restored = RestartSnapshot.from_dataset(snap.copy().to_dataset(), 4, 1)
        np.testing.assert_array_equal(restored.drain_mark, [0.1, 0.2, 0.3, 0.4])
        assert RestartSnapshot.from_dataset(_snapshot(StateLayout(4, 1)).to_dataset()).drain_mark is None

    def test_hydrology_only(self):
        layout = StateLayout(4, 1)
        restored = RestartSnapshot.from_dataset(_snapshot(layout, with_bgc=False).to_dataset())
        assert not restored.has_bgc
        assert restored.carbon is None

    def test_dimension_mismatch(self):
        ds = _snapshot(StateLayout(4, 1)).to_dataset()
        with pytest.raises(RestartError, match='elements'):
            RestartSnapshot.from_dataset(ds, num_elements=5, num_rivers=1)
        with pytest.raises(RestartError, match='river'):
            RestartSnapshot.from_dataset(ds, num_elements=4, num_rivers=2)

    def test_missing_field(self):
        ds = _snapshot(StateLayout(4, 1)).to_dataset().drop_vars('hydro_GW')
        with pytest.raises(RestartError, match='GW'):
            RestartSnapshot.from_dataset(ds)

    def test_netcdf_file(self, tmp_path):
        snap = _snapshot(StateLayout(4, 1))
        path = snap.to_netcdf(tmp_path / 'restart' / 'state.nc')
        restored = RestartSnapshot.from_netcdf(path, 4, 1)
        np.testing.assert_allclose(restored.nitrogen.sminn, 0.01)

    def test_missing_file(self, tmp_path):
        with pytest.raises(RestartError, match='not found'):
            RestartSnapshot.from_netcdf(tmp_path / 'absent.nc')
