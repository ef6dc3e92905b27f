"""
Tests for the stiff integrator wrapper and the stop-to-stop driver.
"""

from types import SimpleNamespace

import numpy as np
import pytest

from hydrobgc.core.config import SolverConfig
from hydrobgc.core.exceptions import SolverConvergenceError
from hydrobgc.solver import IntegrationDriver, OutputSchedule, ScipyStiffIntegrator, StepResult
from hydrobgc.state import StateLayout

DAY = 86400.0


def solver_config(**overrides):
    values = dict(ABSTOL=1.0e-10, RELTOL=1.0e-8, INIT_SOLVER_STEP=1.0, MAX_SOLVER_STEP=50.0,
                  USE_JAC_SPARSITY=False)
    values.update(overrides)
    return SolverConfig(**values)


class TestScipyStiffIntegrator:

    def test_linear_decay(self):
        integrator = ScipyStiffIntegrator(lambda t, y: -y / 100.0, solver_config())
        result = integrator.advance(0.0, np.array([1.0, 2.0]), 100.0)
        assert result.success
        assert result.t == 100.0
        np.testing.assert_allclose(result.y, [np.exp(-1.0), 2.0 * np.exp(-1.0)], rtol=1.0e-5)
        assert integrator.total_nfev > 0

    def test_empty_interval(self):
        integrator = ScipyStiffIntegrator(lambda t, y: -y, solver_config())
        result = integrator.advance(5.0, np.array([1.0]), 5.0)
        assert result.attempts == 0
        np.testing.assert_array_equal(result.y, [1.0])

    def test_restart_at_stop_matches_single_call(self):
        integrator = ScipyStiffIntegrator(lambda t, y: -y / 100.0, solver_config())
        whole = integrator.advance(0.0, np.array([1.0]), 200.0)
        half = integrator.advance(0.0, np.array([1.0]), 100.0)
        split = integrator.advance(100.0, half.y, 200.0)
        np.testing.assert_allclose(split.y, whole.y, rtol=1.0e-6)

    def test_failure_raises_after_retries(self):
        calls = []

        def rhs(t, y):
            calls.append(t)
            if t > 10.0:
                raise FloatingPointError("overflow in flux")
            return -y

        integrator = ScipyStiffIntegrator(rhs, solver_config(MAX_RETRIES=1))
        with pytest.raises(SolverConvergenceError) as excinfo:
            integrator.advance(0.0, np.array([1.0]), 100.0)
        assert excinfo.value.time == 0.0
        assert 'after 2 attempts' in str(excinfo.value)

    def test_non_finite_derivative_is_retried_then_raised(self):
        def rhs(t, y):
            return np.full_like(y, np.nan) if t > 10.0 else -y

        integrator = ScipyStiffIntegrator(rhs, solver_config(MAX_RETRIES=2))
        with pytest.raises(SolverConvergenceError, match="after 3 attempts"):
            integrator.advance(0.0, np.array([1.0]), 100.0)

    def test_runtime_error_is_wrapped(self):
        def rhs(t, y):
            if t > 10.0:
                raise RuntimeError("Factor is exactly singular")
            return -y

        integrator = ScipyStiffIntegrator(rhs, solver_config(MAX_RETRIES=0))
        with pytest.raises(SolverConvergenceError, match="exactly singular"):
            integrator.advance(0.0, np.array([1.0]), 100.0)

    def test_unsupported_order_limit_logged(self, caplog):
        with caplog.at_level("WARNING", logger="hydrobgc"):
            ScipyStiffIntegrator(lambda t, y: -y, solver_config(MAXK=2))
        assert "MAXK=2 is ignored" in caplog.text


class ScriptedIntegrator:
    """Returns the input state, optionally overwriting one entry."""

    def __init__(self, poke=None):
        self.calls = []
        self.poke = poke

    def advance(self, t0, y0, t1):
        self.calls.append((t0, t1))
        y = np.array(y0, dtype=float)
        if self.poke is not None:
            index, value = self.poke
            y[index] = value
        return StepResult(True, t1, y, 'ok', 1, 1)


class RecordingSink:

    def __init__(self):
        self.times = []

    def record(self, t, state):
        self.times.append(t)


def fake_assembly():
    mesh = SimpleNamespace(area=np.array([100.0]), river_length=np.array([10.0]))
    return SimpleNamespace(mesh=mesh, params=SimpleNamespace(porosity=np.array([0.4])))


class TestIntegrationDriver:

    def test_daily_callback_once_per_day(self):
        layout = StateLayout(1, 1)
        schedule = OutputSchedule(0.0, 2 * DAY, 1.0, 6 * 3600.0)
        days = []
        sink = RecordingSink()
        driver = IntegrationDriver(fake_assembly(), ScriptedIntegrator(), layout, schedule,
                                   daily_callback=lambda d, s: days.append(d),
                                   output_sinks=[sink])
        t, _ = driver.run(0.0, np.zeros(layout.size))
        assert t == 2 * DAY
        assert days == [0.0, DAY]
        assert driver.days_completed == 2
        assert sink.times == schedule.times.tolist()

    def test_midnight_stops_added_to_sparse_schedule(self):
        layout = StateLayout(1, 1)
        schedule = OutputSchedule(0.0, 3 * DAY, 1.0, 3 * DAY)
        integrator = ScriptedIntegrator()
        days = []
        driver = IntegrationDriver(fake_assembly(), integrator, layout, schedule,
                                   daily_callback=lambda d, s: days.append(d))
        np.testing.assert_array_equal(driver.stop_times(0.0, 3 * DAY), [DAY, 2 * DAY, 3 * DAY])
        driver.run(0.0, np.zeros(layout.size))
        assert days == [0.0, DAY, 2 * DAY]
        assert len(integrator.calls) == 3

    def test_no_midnight_stops_without_callback(self):
        layout = StateLayout(1, 1)
        schedule = OutputSchedule(0.0, 3 * DAY, 1.0, 3 * DAY)
        driver = IntegrationDriver(fake_assembly(), ScriptedIntegrator(), layout, schedule)
        np.testing.assert_array_equal(driver.stop_times(0.0, 3 * DAY), [3 * DAY])

    def test_negative_storage_clamped_and_counted(self):
        layout = StateLayout(1, 1)
        schedule = OutputSchedule(0.0, 3600.0, 1.0, 3600.0)
        gw_index = layout['GW'].start
        driver = IntegrationDriver(fake_assembly(), ScriptedIntegrator(poke=(gw_index, -0.1)),
                                   layout, schedule)
        _, y = driver.run(0.0, np.zeros(layout.size))
        assert y[gw_index] == 0.0
        assert driver.clamped_water == pytest.approx(0.1 * 0.4 * 100.0)

    def test_negative_stage_clamped(self):
        layout = StateLayout(1, 1)
        driver = IntegrationDriver(fake_assembly(), ScriptedIntegrator(), layout,
                                   OutputSchedule(0.0, 3600.0, 1.0, 3600.0))
        y = np.zeros(layout.size)
        y[layout['STAGE']] = -0.5
        y, added = driver.clamp(y)
        assert y[layout['STAGE']][0] == 0.0
        assert added == pytest.approx(0.5 * 0.01 * 10.0)

    def test_observers_see_every_stop(self):
        layout = StateLayout(1, 1)
        seen = []
        observer = SimpleNamespace(on_stop=lambda t, s, c: seen.append(t))
        driver = IntegrationDriver(fake_assembly(), ScriptedIntegrator(), layout,
                                   OutputSchedule(0.0, DAY, 1.0, 6 * 3600.0),
                                   observers=[observer])
        driver.run(0.0, np.zeros(layout.size))
        assert seen == [21600.0, 43200.0, 64800.0, 86400.0]

    def test_partial_first_day_skipped(self):
        layout = StateLayout(1, 1)
        schedule = OutputSchedule(0.5 * DAY, 3 * DAY, 1.0, 6 * 3600.0)
        days = []
        driver = IntegrationDriver(fake_assembly(), ScriptedIntegrator(), layout, schedule,
                                   daily_callback=lambda d, s: days.append(d),
                                   day_origin=0.5 * DAY)
        driver.run(0.5 * DAY, np.zeros(layout.size))
        assert days == [DAY, 2 * DAY]
        assert driver.days_completed == 2

    def test_continued_run_completes_spanning_day(self):
        layout = StateLayout(1, 1)
        schedule = OutputSchedule(0.0, 2 * DAY, 1.0, 6 * 3600.0)
        days = []
        driver = IntegrationDriver(fake_assembly(), ScriptedIntegrator(), layout, schedule,
                                   daily_callback=lambda d, s: days.append(d))
        t, y = driver.run(0.5 * DAY, np.zeros(layout.size), 1.5 * DAY)
        assert days == [0.0]
        driver.run(t, y)
        assert days == [0.0, DAY]

    def test_clamped_water_accumulates_from_previous_runs(self):
        layout = StateLayout(1, 1)
        gw_index = layout['GW'].start
        driver = IntegrationDriver(fake_assembly(), ScriptedIntegrator(poke=(gw_index, -0.1)),
                                   layout, OutputSchedule(0.0, 3600.0, 1.0, 3600.0),
                                   clamped_water=2.0)
        driver.run(0.0, np.zeros(layout.size))
        assert driver.clamped_water == pytest.approx(2.0 + 0.1 * 0.4 * 100.0)
