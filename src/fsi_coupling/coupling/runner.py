"""
Time loop of a partitioned FSI simulation.

This module provides a runner that executes coupled simulations of the
synthetic models based on YAML configuration files.

Example usage:
    from fsi_coupling.coupling.runner import CouplingRunner

    runner = CouplingRunner("simulation.yaml")
    results = runner.run()

Or from command line:
    python -m fsi_coupling.cli.run_coupling simulation.yaml
"""

import logging
import time
from pathlib import Path
from typing import List, Optional, Union

from ..ale.mesh_motion import MeshMotion
from ..core.config import SimulationConfig
from ..core.errors import ConfigurationError
from .driver import CouplingDriver, TimeStepResult
from .predictor import DisplacementPredictor
from .reporting import IterationLogger, print_partitioned_iterations, print_performance_results

logger = logging.getLogger(__name__)


class CouplingRunner:
    """
    Runs a coupled simulation from a configuration.

    This class handles:
    - Building the configured coupling model
    - Creating the predictor, the mesh motion and the coupling driver
    - Advancing the time loop
    - Writing the iteration log and printing the summaries

    Parameters
    ----------
    config : SimulationConfig or str or Path
        Configuration object or path to YAML configuration file.
    working_dir : str or Path, optional
        Directory the output folder is relative to. If None, uses the current
        directory.

    Attributes
    ----------
    config : SimulationConfig
        The validated simulation configuration.
    model : object
        The coupling model after setup.
    driver : CouplingDriver
        The coupling driver after setup.

    Examples
    --------
    >>> runner = CouplingRunner("simulation.yaml")
    >>> results = runner.run()
    >>> results[-1].iterations
    5
    """

    def __init__(
        self,
        config: Union[SimulationConfig, str, Path],
        working_dir: Optional[Union[str, Path]] = None,
    ):
        if isinstance(config, (str, Path)):
            self.config_path = Path(config)
            self.config = SimulationConfig.from_yaml(config)
        else:
            self.config_path = None
            self.config = config

        self.working_dir = Path(working_dir) if working_dir else Path.cwd()
        self.model = None
        self.driver: Optional[CouplingDriver] = None
        self.predictor: Optional[DisplacementPredictor] = None
        self.mesh_motion: Optional[MeshMotion] = None

    def run(self) -> List[TimeStepResult]:
        """
        Execute the complete coupled time loop.

        Returns
        -------
        list of TimeStepResult
            One result per converged time step.

        Raises
        ------
        ConvergenceFailure
            If a time step does not converge.
        FatalSolverError
            If a sub-solver produces non-finite values.
        """
        self._print_header()
        self._validate_config()

        self.model = self._create_model()
        self.mesh_motion = self._create_mesh_motion()
        self.predictor = DisplacementPredictor(self.config.predictor.order)
        self.driver = CouplingDriver(
            self.config.coupling,
            self.model.fluid,
            self.model.structure,
            mesh_motion=self.mesh_motion,
        )

        time_config = self.config.time
        results = []
        start = time.perf_counter()
        with self._create_iteration_logger() as iteration_log:
            initial = self.model.initial_displacement()
            self.predictor.push(initial)
            for step in range(1, time_config.n_steps + 1):
                t = time_config.start_time + step * time_config.time_step
                displacement = self.predictor.predict()
                result = self.driver.solve_time_step(displacement, t)
                self.predictor.push(result.displacement)
                iteration_log.log_time_step(result)
                results.append(result)

        total_time = time.perf_counter() - start
        print_partitioned_iterations(self.driver.stats)
        print_performance_results(self.driver.timings, total_time)

        logger.info("Simulation completed successfully!")
        return results

    def _print_header(self) -> None:
        print("\n" + "=" * 70)
        print("  PARTITIONED FSI COUPLING RUNNER")
        print("=" * 70)
        print(f"  Configuration: {self.config_path or 'Provided object'}")
        print(f"  Model: {self.config.model.name}")
        print(f"  Coupling: {self.config.coupling.method.value}")
        print(f"  Time steps: {self.config.time.n_steps}")
        print("=" * 70 + "\n")

    def _validate_config(self) -> None:
        warnings = self.config.validate()
        for warning in warnings:
            logger.warning("Configuration warning: %s", warning)

    def _create_model(self):
        from ..models import create_model

        model_config = self.config.model
        try:
            return create_model(model_config.name, self.config.time.time_step,
                                **model_config.params)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid parameters for model '{model_config.name}': {e}"
            ) from e

    def _create_mesh_motion(self) -> Optional[MeshMotion]:
        if self.config.mesh_motion is None:
            return None
        if self.model.dimension != 2:
            raise ConfigurationError(
                f"Mesh motion requires a two-dimensional interface displacement, "
                f"model '{self.config.model.name}' has {self.model.dimension} components"
            )
        return MeshMotion.rectangle(self.config.mesh_motion.type)

    def _create_iteration_logger(self) -> IterationLogger:
        output = self.config.output
        if output is None or output.iteration_log is None:
            return IterationLogger(None, self.config.coupling)
        log_file = self.working_dir / output.folder / output.iteration_log
        return IterationLogger(log_file, self.config.coupling, output.separator)

    def preview_config(self) -> str:
        """Human-readable configuration summary."""
        return str(self.config)


def run_from_yaml(
    yaml_path: Union[str, Path], working_dir: Optional[str] = None
) -> List[TimeStepResult]:
    """
    Convenience function to run a coupled simulation from a YAML file.

    Examples
    --------
    >>> from fsi_coupling.coupling.runner import run_from_yaml
    >>> results = run_from_yaml("simulation.yaml")
    """
    runner = CouplingRunner(yaml_path, working_dir)
    return runner.run()
