"""End-to-end runs of the test catchment."""

import logging

import numpy as np
import pytest
import xarray as xr
import yaml

from fixtures.domain_fixtures import START, build_forcing, build_test_mesh, config_dict
from hydrobgc.cli import main
from hydrobgc.core.config import HydroBGCConfig
from hydrobgc.core.exceptions import ConfigurationError
from hydrobgc.hydrology import soil
from hydrobgc.simulation import Simulation
from hydrobgc.state import ELEMENT_STORAGES, RestartSnapshot

DAY = 86400.0


def make_simulation(forcing_kwargs=None, **overrides):
    config = HydroBGCConfig.from_dict(config_dict(**overrides))
    mesh = build_test_mesh()
    days = overrides.get('days', 2) + 1
    forcing = build_forcing(mesh, days=days, start=overrides.get('start', START),
                            **(forcing_kwargs or {}))
    return Simulation(config, mesh, forcing)


@pytest.fixture(scope="module")
def finished_run():
    sim = make_simulation(bgc=True)
    sim.initialize()
    output = sim.run()
    return sim, output


@pytest.mark.integration
class TestCoupledRun:

    def test_reaches_end_time(self, finished_run):
        sim, _ = finished_run
        assert sim.t == sim.schedule.end

    def test_storages_non_negative(self, finished_run):
        sim, _ = finished_run
        state = sim.state
        for name in ELEMENT_STORAGES:
            assert np.all(getattr(state, name) >= 0.0), name
        assert np.all(state.STAGE >= 0.0)

    def test_water_balance_closes(self, finished_run):
        sim, _ = finished_run
        assert sim.balance.violations == 0
        assert sim.balance.water_residuals

    def test_carbon_and_nitrogen_conserved(self, finished_run):
        sim, _ = finished_run
        assert sim.balance.max_carbon_error < 1e-6
        assert sim.balance.max_nitrogen_error < 1e-6

    def test_two_daily_updates(self, finished_run):
        sim, output = finished_run
        assert sim.driver.days_completed == 2
        assert output.sizes['day'] == 2
        assert 'bgc_gpp' in output.data_vars

    def test_output_dataset(self, finished_run):
        sim, output = finished_run
        assert set(['SURF', 'UNSAT', 'GW', 'STAGE', 'ACC_OUTFLOW']) <= set(output.data_vars)
        assert output['SURF'].dims == ('time', 'element')
        assert output['STAGE'].dims == ('time', 'river')
        assert output.sizes['element'] == sim.mesh.num_elements
        times = output['time'].values
        assert np.all(np.diff(times) > np.timedelta64(0, 's'))
        # outlet discharge only accumulates
        assert np.all(np.diff(output['ACC_OUTFLOW'].values[:, 0]) >= -1e-9)


@pytest.mark.integration
class TestHydrologyOnly:

    def test_runs_without_bgc(self):
        sim = make_simulation(bgc=False)
        sim.initialize()
        output = sim.run()
        assert sim.updater is None
        assert 'day' not in output.dims
        assert sim.balance.violations == 0
        assert sim.snapshot().has_bgc is False

    def test_frozen_soil_without_bgc(self):
        sim = make_simulation(bgc=False, forcing_kwargs=dict(temp_mean=-20.0, temp_amp=2.0))
        sim.initialize()
        assert np.all(sim.assembly.tsoil < 0.0)
        sim.run()
        assert np.all(sim.assembly.tsoil < -15.0)
        assert np.all(soil.frozen_soil_factor(sim.assembly.tsoil) < 1.0)


@pytest.mark.integration
class TestStartTimes:

    def test_midday_start_updates_whole_days_only(self):
        sim = make_simulation(bgc=True, start='2000-06-01 12:00')
        sim.initialize()
        output = sim.run()
        assert np.all(np.isfinite(sim.assembly.tsoil))
        assert sim.driver.days_completed == 1
        assert output.sizes['day'] == 1
        assert sim.balance.max_carbon_error < 1e-6

    def test_winter_run_crosses_year(self):
        sim = make_simulation(bgc=True, start='1999-12-31 00:00',
                              forcing_kwargs=dict(temp_mean=-8.0))
        sim.initialize()
        sim.run()
        assert sim.t == sim.schedule.end
        assert sim.driver.days_completed == 2
        assert int(sim.updater.annual.year[0]) == 2000
        assert np.all(sim.assembly.tsoil < 0.0)
        assert sim.balance.max_nitrogen_error < 1e-6


@pytest.mark.integration
class TestRestart:

    def test_restart_reproduces_uninterrupted_run(self, finished_run):
        full, _ = finished_run

        first = make_simulation(bgc=True)
        first.initialize()
        first.run(t_end=first.schedule.start + DAY)
        snapshot = first.snapshot()

        second = make_simulation(bgc=True)
        second.initialize(restart=snapshot)
        assert second.t == first.schedule.start + DAY
        second.run()

        np.testing.assert_allclose(second.y, full.y, rtol=1e-9, atol=1e-12)
        np.testing.assert_allclose(second.updater.carbon.total(),
                                   full.updater.carbon.total(), rtol=1e-9)

    def test_restart_within_day_reproduces_uninterrupted_run(self, finished_run):
        full, _ = finished_run

        first = make_simulation(bgc=True)
        first.initialize()
        first.run(t_end=first.schedule.start + 1.5 * DAY)
        snapshot = first.snapshot()
        assert snapshot.drain_mark is not None

        second = make_simulation(bgc=True)
        second.initialize(restart=snapshot)
        np.testing.assert_allclose(second.assembly.tsoil, first.assembly.tsoil)
        second.run()

        assert second.driver.days_completed == 1
        np.testing.assert_allclose(second.y, full.y, rtol=1e-9, atol=1e-12)
        np.testing.assert_allclose(second.updater.carbon.total(),
                                   full.updater.carbon.total(), rtol=1e-9)
        np.testing.assert_allclose(second.updater.nitrogen.total(),
                                   full.updater.nitrogen.total(), rtol=1e-9)

    def test_restart_file_round_trip(self, tmp_path):
        sim = make_simulation(bgc=True, days=1, RESTART_OUTPUT=str(tmp_path / 'restart.nc'),
                              OUTPUT_FILE=str(tmp_path / 'out' / 'run.nc'))
        sim.initialize()
        sim.run()
        path = sim.finalize()
        assert path.exists()
        assert (tmp_path / 'out' / 'run.nc').exists()

        loaded = RestartSnapshot.from_netcdf(path, sim.mesh.num_elements, sim.mesh.num_rivers)
        assert loaded.time == sim.t
        assert loaded.has_bgc
        np.testing.assert_allclose(loaded.carbon.total(), sim.updater.carbon.total())

        with xr.open_dataset(tmp_path / 'out' / 'run.nc') as ds:
            assert 'SURF' in ds

    def test_restart_at_end_rejected(self, finished_run):
        full, _ = finished_run
        sim = make_simulation(bgc=True)
        with pytest.raises(Exception, match="not before the run end"):
            sim.initialize(restart=full.snapshot())


@pytest.mark.integration
class TestSpinup:

    def test_spinup_stops_at_year_limit(self):
        sim = make_simulation(bgc=True, SPINUP_MODE=True, MAX_SPINUP_YEARS=2,
                              SPINUP_TREND_WINDOW=2)
        result = sim.run_spinup()
        assert result.years == 2
        assert result.history.shape == (2, sim.mesh.num_elements)
        assert sim.balance.strict is False
        assert sim.t == sim.schedule.start

    def test_spinup_records_one_sample_per_cycle_across_new_year(self):
        sim = make_simulation(bgc=True, start='1999-12-31 00:00', MAX_SPINUP_YEARS=3,
                              SPINUP_TREND_WINDOW=2, SPINUP_TOLERANCE=1.0e-12)
        result = sim.run_spinup()
        assert result.years == 3
        assert result.history.shape == (3, sim.mesh.num_elements)

    def test_steady_forcing_spinup_converges(self):
        sim = make_simulation(bgc=True, SPINUP_TOLERANCE=1.0, SPINUP_TREND_WINDOW=2,
                              MAX_SPINUP_YEARS=10)
        result = sim.run_spinup()
        assert result.converged
        assert result.years == 2
        assert result.max_trend < 1.0

    def test_clamped_water_carried_into_next_run(self):
        sim = make_simulation(bgc=True, MAX_SPINUP_YEARS=1, SPINUP_TREND_WINDOW=2)
        sim.initialize()
        sim.clamped_water = 0.25
        sim.balance.start_water(sim.state, 0.25)
        sim.run_spinup()
        carried = sim.clamped_water
        assert carried >= 0.25
        sim.run()
        assert sim.driver.clamped_water >= carried
        assert sim.balance.violations == 0

    def test_spinup_requires_bgc(self):
        sim = make_simulation(bgc=False)
        with pytest.raises(ConfigurationError, match="BGC_ENABLED"):
            sim.run_spinup()

    def test_spinup_requires_whole_days(self):
        sim = make_simulation(bgc=True, END='2000-06-02 12:00')
        with pytest.raises(ConfigurationError, match="whole days"):
            sim.run_spinup()


class TestCommandLine:

    @pytest.fixture(autouse=True)
    def restore_package_logger(self):
        logger = logging.getLogger("hydrobgc")
        yield
        for handler in list(logger.handlers):
            if getattr(handler, "_hydrobgc_handler", False):
                logger.removeHandler(handler)
                handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def write_config(self, tmp_path, **overrides):
        path = tmp_path / 'config.yaml'
        path.write_text(yaml.safe_dump(config_dict(**overrides)))
        return path

    def test_check_config_valid(self, tmp_path, capsys):
        assert main(['check-config', str(self.write_config(tmp_path))]) == 0
        out = capsys.readouterr().out
        assert 'Configuration is valid' in out
        assert 'RELTOL' in out

    def test_check_config_invalid(self, tmp_path, capsys):
        path = self.write_config(tmp_path, RELTOL=-1.0)
        assert main(['check-config', str(path)]) == 1
        assert 'RELTOL' in capsys.readouterr().err

    def test_bad_domain_loader(self, tmp_path, capsys):
        path = self.write_config(tmp_path)
        assert main(['run', str(path), '--domain', 'no_colon']) == 1
        assert "module:function" in capsys.readouterr().err

    @pytest.mark.integration
    def test_run_writes_restart(self, tmp_path, capsys):
        restart = tmp_path / 'restart.nc'
        path = self.write_config(tmp_path, days=1, RESTART_OUTPUT=str(restart))
        code = main(['run', str(path), '--domain', 'fixtures.domain_fixtures:load_test_domain',
                     '--log-level', 'WARNING'])
        assert code == 0
        assert restart.exists()
        assert 'Restart written' in capsys.readouterr().out
