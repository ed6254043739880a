"""
Tests for the coupled time loop, its reporting and the command-line runner.
"""

import numpy as np
import pytest
import yaml

from fsi_coupling.cli.run_coupling import TEMPLATE_CONFIG, main
from fsi_coupling.core.config import CouplingConfig, SimulationConfig
from fsi_coupling.core.errors import ConfigurationError, ConvergenceFailure
from fsi_coupling.coupling.driver import IterationStats, TimeStepResult
from fsi_coupling.coupling.reporting import (
    IterationLogger,
    print_partitioned_iterations,
    print_performance_results,
)
from fsi_coupling.coupling.runner import CouplingRunner
from fsi_coupling.coupling.timings import CouplingTimings


@pytest.fixture
def config_dict():
    return {
        "time": {"start_time": 0.0, "end_time": 0.05, "time_step": 0.01},
        "coupling": {
            "method": "IQN-ILS",
            "abs_tol": 1.0e-12,
            "rel_tol": 1.0e-8,
            "reused_time_steps": 2,
        },
        "model": {"name": "mass_spring", "params": {}},
        "predictor": {"order": 2},
        "output": {"folder": "results", "iteration_log": "iterations.csv"},
    }


def read_rows(path):
    lines = path.read_text().splitlines()
    return [line for line in lines if not line.startswith("#")]


class TestCouplingRunner:
    def test_mass_spring_run(self, config_dict, tmp_path, capsys):
        runner = CouplingRunner(SimulationConfig.from_dict(config_dict), tmp_path)

        results = runner.run()

        assert [r.time_step for r in results] == [1, 2, 3, 4, 5]
        assert [r.time for r in results] == pytest.approx([0.01, 0.02, 0.03, 0.04, 0.05])
        assert runner.driver.stats.time_step_count == 5

        rows = read_rows(tmp_path / "results" / "iterations.csv")
        assert rows[0] == ",".join(IterationLogger.COLUMNS)
        assert len(rows) == 6
        assert rows[1].split(",")[-1] == "IQN-ILS"

        out = capsys.readouterr().out
        assert "PARTITIONED ITERATIONS" in out
        assert "PERFORMANCE RESULTS" in out

    def test_each_step_matches_monolithic_solution(self, config_dict, tmp_path):
        from fsi_coupling.models import MassSpringModel

        results = CouplingRunner(SimulationConfig.from_dict(config_dict), tmp_path).run()

        reference = MassSpringModel(time_step=0.01)
        for result in results:
            expected = reference.analytic_displacement(result.time)
            np.testing.assert_allclose(result.displacement, expected, rtol=1e-6, atol=1e-12)
            reference.structure.advance(result.displacement, result.time)

    def test_with_mesh_motion(self, config_dict, tmp_path):
        config_dict["mesh_motion"] = {"type": "Poisson"}
        runner = CouplingRunner(SimulationConfig.from_dict(config_dict), tmp_path)

        results = runner.run()

        assert len(results) == 5
        assert runner.driver.timings.calls("mesh motion") == runner.driver.stats.iteration_count

    def test_mesh_motion_needs_planar_interface(self, config_dict, tmp_path):
        config_dict["model"] = {"name": "linear_map", "params": {}}
        config_dict["mesh_motion"] = {"type": "Elasticity"}

        with pytest.raises(ConfigurationError, match="two-dimensional"):
            CouplingRunner(SimulationConfig.from_dict(config_dict), tmp_path).run()

    def test_invalid_model_parameters(self, config_dict, tmp_path):
        config_dict["model"]["params"] = {"damping": 0.1}
        with pytest.raises(ConfigurationError, match="Invalid parameters"):
            CouplingRunner(SimulationConfig.from_dict(config_dict), tmp_path).run()

    def test_rejected_model_parameters(self, config_dict, tmp_path):
        config_dict["model"]["params"] = {"load": [1.0, 2.0, 3.0]}
        with pytest.raises(ConfigurationError, match="mass_spring"):
            CouplingRunner(SimulationConfig.from_dict(config_dict), tmp_path).run()

    def test_divergent_model_fails(self, config_dict, tmp_path):
        config_dict["model"] = {"name": "divergent_map", "params": {}}
        config_dict["coupling"]["partitioned_iter_max"] = 5

        with pytest.raises(ConvergenceFailure) as excinfo:
            CouplingRunner(SimulationConfig.from_dict(config_dict), tmp_path).run()

        assert excinfo.value.time_step == 1
        assert excinfo.value.iterations == 6

    def test_without_output(self, config_dict, tmp_path):
        del config_dict["output"]
        results = CouplingRunner(SimulationConfig.from_dict(config_dict), tmp_path).run()
        assert len(results) == 5
        assert not (tmp_path / "results").exists()

    def test_from_yaml(self, config_dict, tmp_path):
        path = tmp_path / "simulation.yaml"
        path.write_text(yaml.safe_dump(config_dict))

        runner = CouplingRunner(path, tmp_path)

        assert runner.config.model.name == "mass_spring"
        assert "mass_spring" in runner.preview_config()


class TestReporting:
    @pytest.fixture
    def result(self):
        return TimeStepResult(time_step=3, time=0.03, displacement=np.zeros(2), iterations=7,
                              absolute_residual=1.5e-13, relative_residual=2.0e-9)

    def test_iteration_log(self, result, tmp_path):
        path = tmp_path / "out" / "log.csv"
        config = CouplingConfig(method="Aitken")

        with IterationLogger(path, config, separator=";") as iteration_log:
            iteration_log.log_time_step(result)

        text = path.read_text()
        assert "# method: Aitken" in text
        rows = read_rows(path)
        assert rows[0].split(";") == list(IterationLogger.COLUMNS)
        values = rows[1].split(";")
        assert values[0] == "3"
        assert values[2] == "7"
        assert float(values[3]) == pytest.approx(1.5e-13)
        assert values[5] == "Aitken"

    def test_disabled_log(self, result):
        iteration_log = IterationLogger(None, CouplingConfig())
        iteration_log.initialize()
        iteration_log.log_time_step(result)
        iteration_log.close()
        assert iteration_log.handle is None

    def test_print_partitioned_iterations(self, capsys):
        print_partitioned_iterations(IterationStats(time_step_count=4, iteration_count=18))
        out = capsys.readouterr().out
        assert "18" in out
        assert "4.50" in out

    def test_print_performance_results(self, capsys):
        timings = CouplingTimings()
        timings.add("fluid", 0.5)
        timings.add("structure", 0.25)

        print_performance_results(timings, 1.0)

        out = capsys.readouterr().out
        assert "fluid" in out
        assert "50.0%" in out
        assert "other" in out


class TestCommandLine:
    def test_template_is_valid_configuration(self):
        config = SimulationConfig.from_dict(yaml.safe_load(TEMPLATE_CONFIG))
        assert config.validate() == []
        assert config.model.name == "mass_spring"

    def test_print_template(self, capsys):
        assert main(["--template", "--model", "linear_map"]) == 0
        out = capsys.readouterr().out
        assert "coupling:" in out
        assert "linear_map" in out

    def test_list_models(self, capsys):
        assert main(["--list-models"]) == 0
        assert "divergent_map" in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path):
        assert main([str(tmp_path / "missing.yaml")]) == 1

    def test_no_arguments(self, capsys):
        assert main([]) == 1

    def test_validate(self, tmp_path, capsys):
        path = tmp_path / "simulation.yaml"
        path.write_text(TEMPLATE_CONFIG)
        assert main([str(path), "--validate"]) == 0
        assert "Configuration is valid" in capsys.readouterr().out

    def test_validate_invalid_file(self, tmp_path):
        path = tmp_path / "simulation.yaml"
        path.write_text(TEMPLATE_CONFIG.replace('"IQN-ILS"', '"Newton"'))
        assert main([str(path), "--validate"]) == 1

    def test_preview(self, tmp_path, capsys):
        path = tmp_path / "simulation.yaml"
        path.write_text(TEMPLATE_CONFIG)
        assert main([str(path), "--preview"]) == 0
        assert "IQN-ILS" in capsys.readouterr().out

    def test_preview_invalid_file(self, tmp_path, capsys):
        path = tmp_path / "simulation.yaml"
        path.write_text(
            TEMPLATE_CONFIG.replace("partitioned_iter_max: 50", "partitioned_iter_max: 0")
        )
        assert main([str(path), "--preview"]) == 1
        assert "Could not load configuration" in capsys.readouterr().out

    def test_run(self, tmp_path):
        data = yaml.safe_load(TEMPLATE_CONFIG)
        data["time"]["end_time"] = 0.03
        path = tmp_path / "simulation.yaml"
        path.write_text(yaml.safe_dump(data))

        assert main([str(path), "--workdir", str(tmp_path)]) == 0

        rows = read_rows(tmp_path / "results" / "coupling_iterations.csv")
        assert len(rows) == 4

    def test_invalid_model_parameters_return_error(self, tmp_path):
        data = yaml.safe_load(TEMPLATE_CONFIG)
        data["model"]["params"]["load"] = [1.0, 2.0, 3.0]
        path = tmp_path / "simulation.yaml"
        path.write_text(yaml.safe_dump(data))

        assert main([str(path), "--workdir", str(tmp_path)]) == 1

    def test_run_failure_returns_error(self, tmp_path):
        data = yaml.safe_load(TEMPLATE_CONFIG)
        data["model"] = {"name": "divergent_map", "params": {}}
        data["coupling"]["partitioned_iter_max"] = 3
        del data["mesh_motion"]
        path = tmp_path / "simulation.yaml"
        path.write_text(yaml.safe_dump(data))

        assert main([str(path), "--workdir", str(tmp_path)]) == 1
