"""
Unit tests for the HydroBGC configuration models and factories.
"""

import pytest

from hydrobgc.core.config import HydroBGCConfig, nest_flat_config
from hydrobgc.core.exceptions import ConfigurationError, ConfigValidationError

from fixtures.domain_fixtures import config_dict


class TestFlatConfig:
    """Flat upper-case keys are routed to their sections."""

    def test_flat_keys_build_sections(self):
        config = HydroBGCConfig.from_dict(config_dict())
        assert config.solver.abstol == pytest.approx(1.0e-5)
        assert config.time.model_stepsize == 21600
        assert config.bgc.enabled is True
        assert config.output.print_variables == ['SURF', 'UNSAT', 'GW', 'STAGE', 'ACC_OUTFLOW']

    def test_nest_flat_config_routes_by_alias(self):
        nested = nest_flat_config({'ABSTOL': 1e-4, 'LOG_LEVEL': 'DEBUG', 'KSATH': 2.0})
        assert nested == {
            'solver': {'ABSTOL': 1e-4},
            'system': {'LOG_LEVEL': 'DEBUG'},
            'calibration': {'KSATH': 2.0},
        }

    def test_unknown_key_rejected(self):
        data = config_dict()
        data['NOT_A_SETTING'] = 1
        with pytest.raises(ConfigurationError, match='NOT_A_SETTING'):
            HydroBGCConfig.from_dict(data)

    def test_nested_sections_accepted(self):
        data = config_dict()
        data['bgc'] = {'N_ARBITRATION': 'plant_priority'}
        config = HydroBGCConfig.from_dict(data)
        assert config.bgc.n_arbitration == 'plant_priority'

    def test_print_variables_from_comma_string(self):
        config = HydroBGCConfig.from_dict(config_dict(PRINT_VARIABLES='SURF, GW'))
        assert config.output.print_variables == ['SURF', 'GW']


class TestValidation:
    """Missing and out-of-range values surface as ConfigValidationError."""

    @pytest.mark.parametrize("key", ['ABSTOL', 'RELTOL', 'INIT_SOLVER_STEP', 'MAX_SOLVER_STEP'])
    def test_missing_solver_setting(self, key):
        data = config_dict()
        del data[key]
        with pytest.raises(ConfigValidationError, match='must be defined'):
            HydroBGCConfig.from_dict(data)

    @pytest.mark.parametrize("key,value", [
        ('ABSTOL', 0.0),
        ('RELTOL', -1.0),
        ('MODEL_STEPSIZE', 0),
        ('STEPSIZE_FACTOR', 0.5),
    ])
    def test_out_of_range(self, key, value):
        with pytest.raises(ConfigValidationError):
            HydroBGCConfig.from_dict(config_dict(**{key: value}))

    def test_end_before_start(self):
        with pytest.raises(ConfigValidationError, match='END'):
            HydroBGCConfig.from_dict(config_dict(END='2000-05-01 00:00'))

    def test_init_step_above_max_step(self):
        with pytest.raises(ConfigValidationError):
            HydroBGCConfig.from_dict(config_dict(INIT_SOLVER_STEP=7200.0, MAX_SOLVER_STEP=60.0))

    def test_unknown_print_variable(self):
        with pytest.raises(ConfigValidationError, match='PRINT_VARIABLES'):
            HydroBGCConfig.from_dict(config_dict(PRINT_VARIABLES=['SURF', 'LEAFC']))

    def test_unknown_arbitration_mode(self):
        with pytest.raises(ConfigValidationError):
            HydroBGCConfig.from_dict(config_dict(N_ARBITRATION='first_come'))

    def test_config_is_frozen(self):
        config = HydroBGCConfig.from_dict(config_dict())
        with pytest.raises(Exception):
            config.solver.abstol = 1.0


class TestFromFile:
    """YAML loading."""

    def test_round_trip_through_yaml(self, tmp_path):
        import yaml
        path = tmp_path / 'run.yaml'
        path.write_text(yaml.safe_dump(config_dict()))
        config = HydroBGCConfig.from_file(path)
        assert config.time.start_seconds == pytest.approx(959817600.0)
        assert config.time.end_seconds - config.time.start_seconds == pytest.approx(2 * 86400)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match='not found'):
            HydroBGCConfig.from_file(tmp_path / 'absent.yaml')

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')
        with pytest.raises(ConfigurationError, match='empty'):
            HydroBGCConfig.from_file(path)

    def test_flat_to_dict_uses_aliases(self):
        flat = HydroBGCConfig.from_dict(config_dict()).to_dict(flatten=True)
        assert flat['ABSTOL'] == pytest.approx(1.0e-5)
        assert flat['N_ARBITRATION'] == 'proportional'


class TestAnnualSeries:
    """CO2 and N deposition series lookups."""

    def test_series_holds_end_values(self):
        config = HydroBGCConfig.from_dict(config_dict(CO2_SERIES={1990: 350.0, 2000: 370.0}))
        assert config.bgc.co2_for_year(1980) == 350.0
        assert config.bgc.co2_for_year(2010) == 370.0
        assert config.bgc.co2_for_year(1995) == 350.0
        assert config.bgc.co2_for_year(2000) == 370.0

    def test_constant_without_series(self):
        config = HydroBGCConfig.from_dict(config_dict(NDEP=0.002))
        assert config.bgc.ndep_for_year(1850) == pytest.approx(0.002)
