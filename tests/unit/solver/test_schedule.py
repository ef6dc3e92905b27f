"""Tests for OutputSchedule."""

import numpy as np
import pytest

from hydrobgc.core.config import HydroBGCConfig
from hydrobgc.core.exceptions import ConfigurationError
from hydrobgc.solver import OutputSchedule

from fixtures.domain_fixtures import config_dict


class TestOutputSchedule:

    def test_constant_step(self):
        schedule = OutputSchedule(0.0, 86400.0, 1.0, 21600.0)
        np.testing.assert_array_equal(schedule.times, [0.0, 21600.0, 43200.0, 64800.0, 86400.0])
        assert len(schedule) == 5

    def test_end_always_included(self):
        schedule = OutputSchedule(0.0, 50000.0, 1.0, 21600.0)
        assert schedule.times[-1] == 50000.0
        assert schedule.times.tolist() == [0.0, 21600.0, 43200.0, 50000.0]

    def test_growing_step(self):
        schedule = OutputSchedule(0.0, 10000.0, 2.0, 100.0)
        intervals = np.diff(schedule.times)
        assert schedule.times[-1] == 10000.0
        np.testing.assert_allclose(intervals[1:-1] / intervals[:-2], 2.0)
        assert np.all(intervals > 0)

    def test_membership(self):
        schedule = OutputSchedule(0.0, 86400.0, 1.0, 21600.0)
        assert 43200.0 in schedule
        assert 43201.0 not in schedule

    @pytest.mark.parametrize("args", [
        (10.0, 10.0, 1.0, 100.0),
        (0.0, 10.0, 1.0, 0.0),
        (0.0, 10.0, 0.9, 1.0),
    ])
    def test_invalid(self, args):
        with pytest.raises(ConfigurationError):
            OutputSchedule(*args)

    def test_from_config(self):
        config = HydroBGCConfig.from_dict(config_dict(days=1))
        schedule = OutputSchedule.from_config(config.time)
        assert len(schedule) == 5
        assert schedule.start == config.time.start_seconds
