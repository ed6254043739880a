"""
Unit tests for the coupling and simulation configuration.
"""

import dataclasses

import pytest
import yaml

from fsi_coupling.core.config import (
    CouplingConfig,
    CouplingMethod,
    MeshMotionType,
    SimulationConfig,
)
from fsi_coupling.core.errors import ConfigurationError


@pytest.fixture
def config_dict():
    return {
        "time": {"start_time": 0.0, "end_time": 0.1, "time_step": 0.01},
        "coupling": {
            "method": "IQN-ILS",
            "abs_tol": 1.0e-12,
            "rel_tol": 1.0e-8,
            "reused_time_steps": 2,
            "partitioned_iter_max": 30,
        },
        "model": {"name": "mass_spring", "params": {"frequency": 2.0}},
        "predictor": {"order": 2},
        "mesh_motion": {"type": "elasticity"},
        "output": {"folder": "out", "iteration_log": "iterations.csv"},
    }


class TestCouplingConfig:
    def test_defaults(self):
        config = CouplingConfig()
        assert config.method is CouplingMethod.AITKEN
        assert config.abs_tol == 1e-12
        assert config.rel_tol == 1e-3
        assert config.omega_init == 0.1
        assert config.reused_time_steps == 0
        assert config.partitioned_iter_max == 100
        assert config.geometric_tolerance == 1e-10
        assert config.qr_drop_tolerance == 1e-2

    @pytest.mark.parametrize("name", ["IQN-ILS", "iqn-ils", "Iqn-Ils", " IQN-ILS "])
    def test_method_case_insensitive(self, name):
        assert CouplingConfig(method=name).method is CouplingMethod.IQN_ILS

    def test_unknown_method(self):
        with pytest.raises(ConfigurationError, match="Invalid coupling method"):
            CouplingConfig(method="Newton")

    @pytest.mark.parametrize(
        "field, value",
        [
            ("abs_tol", 0.0),
            ("abs_tol", -1e-6),
            ("rel_tol", 0.0),
            ("geometric_tolerance", 0.0),
            ("omega_init", 0.0),
            ("omega_init", 1.5),
            ("reused_time_steps", -1),
            ("reused_time_steps", 1.5),
            ("partitioned_iter_max", 0),
            ("qr_drop_tolerance", 1.0),
            ("abs_tol", "small"),
        ],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ConfigurationError):
            CouplingConfig(**{field: value})

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            CouplingConfig(rel_tol=-1.0)

    def test_uses_quasi_newton(self):
        assert CouplingConfig(method="IQN-ILS").uses_quasi_newton
        assert not CouplingConfig(method="Aitken").uses_quasi_newton

    def test_omega_init_upper_bound_inclusive(self):
        assert CouplingConfig(omega_init=1.0).omega_init == 1.0

    def test_immutable(self):
        config = CouplingConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.abs_tol = 1.0

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigurationError, match="Unknown coupling parameters"):
            CouplingConfig.from_dict({"method": "Aitken", "tolerance": 1e-3})

    def test_from_dict_reads_exponent_strings(self):
        """PyYAML loads 1e-10 (no dot) as a string."""
        data = yaml.safe_load("abs_tol: 1e-10\nrel_tol: 1e-6\n")
        config = CouplingConfig.from_dict(data)
        assert config.abs_tol == 1e-10
        assert config.rel_tol == 1e-6

    def test_dict_round_trip(self):
        config = CouplingConfig(method="iqn-ils", reused_time_steps=3)
        data = config.to_dict()
        assert data["method"] == "IQN-ILS"
        assert CouplingConfig.from_dict(data) == config


class TestSimulationConfig:
    def test_from_dict(self, config_dict):
        config = SimulationConfig.from_dict(config_dict)
        assert config.time.n_steps == 10
        assert config.coupling.method is CouplingMethod.IQN_ILS
        assert config.model.params == {"frequency": 2.0}
        assert config.predictor.order == 2
        assert config.mesh_motion.type is MeshMotionType.ELASTICITY
        assert config.output.folder == "out"
        assert config.output.separator == ","

    def test_yaml_round_trip(self, config_dict, tmp_path):
        config = SimulationConfig.from_dict(config_dict)
        path = tmp_path / "simulation.yaml"

        config.save_yaml(path)
        loaded = SimulationConfig.from_yaml(path)

        assert loaded.to_dict() == config.to_dict()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SimulationConfig.from_yaml(tmp_path / "missing.yaml")

    def test_missing_time_section(self, config_dict):
        del config_dict["time"]
        with pytest.raises(ConfigurationError, match="time"):
            SimulationConfig.from_dict(config_dict)

    def test_invalid_time_interval(self, config_dict):
        config_dict["time"]["end_time"] = -1.0
        with pytest.raises(ConfigurationError):
            SimulationConfig.from_dict(config_dict)

    def test_unknown_model(self, config_dict):
        config_dict["model"]["name"] = "navier_stokes"
        with pytest.raises(ConfigurationError, match="Invalid model"):
            SimulationConfig.from_dict(config_dict)

    def test_invalid_predictor_order(self, config_dict):
        config_dict["predictor"]["order"] = 3
        with pytest.raises(ConfigurationError):
            SimulationConfig.from_dict(config_dict)

    def test_invalid_mesh_motion(self, config_dict):
        config_dict["mesh_motion"]["type"] = "Laplace"
        with pytest.raises(ConfigurationError, match="mesh motion"):
            SimulationConfig.from_dict(config_dict)

    def test_optional_sections(self, config_dict):
        for section in ("predictor", "mesh_motion", "output"):
            del config_dict[section]
        config = SimulationConfig.from_dict(config_dict)
        assert config.predictor.order == 1
        assert config.mesh_motion is None
        assert config.output is None

    def test_validate_warnings(self, config_dict):
        config_dict["coupling"] = {"method": "Aitken", "reused_time_steps": 2}
        del config_dict["output"]
        warnings = SimulationConfig.from_dict(config_dict).validate()
        assert any("reused_time_steps" in w for w in warnings)
        assert any("output" in w for w in warnings)

    def test_validate_clean(self, config_dict):
        assert SimulationConfig.from_dict(config_dict).validate() == []

    def test_str(self, config_dict):
        text = str(SimulationConfig.from_dict(config_dict))
        assert "IQN-ILS" in text
        assert "mass_spring" in text
