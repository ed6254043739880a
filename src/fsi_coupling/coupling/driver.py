"""
Partitioned fluid-structure coupling driver.

The driver advances one time step with a Dirichlet-Neumann fixed-point
iteration on the interface displacement:

    PREDICT -> SOLVE_FLUID -> SOLVE_STRUCTURE -> EVALUATE_RESIDUAL
            -> ACCELERATE -> SOLVE_FLUID -> ... -> CONVERGED | FAILED

Every iteration moves the fluid mesh, solves the fluid for the current
displacement guess ``d``, solves the structure under the resulting traction and
compares the new structure displacement ``d_tilde`` with ``d``. The update of
``d`` is either Aitken relaxation or the IQN-ILS quasi-Newton step; the latter
falls back to relaxation as long as no secant information is available.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from ..acceleration.aitken import AitkenRelaxation
from ..acceleration.history import HistoryStore
from ..acceleration.iqn import IQNILSAccelerator
from ..core.config import CouplingConfig, CouplingMethod
from ..core.errors import ConvergenceFailure, FatalSolverError
from ..core.vectors import VectorOps, vector_ops_for
from .convergence import ConvergenceMonitor
from .solvers import FluidSolver, StructureSolver
from .timings import CouplingTimings

logger = logging.getLogger(__name__)


class CouplingState(Enum):
    """States of the per-time-step coupling state machine."""

    PREDICT = "predict"
    SOLVE_FLUID = "solve fluid"
    SOLVE_STRUCTURE = "solve structure"
    EVALUATE_RESIDUAL = "evaluate residual"
    ACCELERATE = "accelerate"
    CONVERGED = "converged"
    FAILED = "failed"


@dataclass(frozen=True)
class IterationStats:
    """
    Cumulative partitioned iteration counters of a run.

    Attributes
    ----------
    time_step_count : int
        Number of converged time steps.
    iteration_count : int
        Total number of partitioned iterations over all time steps.
    """

    time_step_count: int = 0
    iteration_count: int = 0

    @property
    def average_iterations(self) -> float:
        if self.time_step_count == 0:
            return 0.0
        return self.iteration_count / self.time_step_count


@dataclass
class TimeStepResult:
    """Outcome of one converged time step."""

    time_step: int
    time: float
    displacement: Any
    iterations: int
    absolute_residual: float
    relative_residual: float


class CouplingDriver:
    """
    Fixed-point driver of the partitioned coupling.

    Parameters
    ----------
    config : CouplingConfig
        Validated coupling parameters.
    fluid : FluidSolver
        Fluid sub-solver, ``solve_fluid(displacement, time) -> traction``.
    structure : StructureSolver
        Structure sub-solver, ``solve_structure(traction, time) -> displacement``.
    mesh_motion : MeshMotion, optional
        Moves the fluid mesh before every fluid solve.
    structure_to_fluid : InterfaceMapping, optional
        Maps the structure displacement onto the fluid interface.
    fluid_to_structure : InterfaceMapping, optional
        Maps the fluid traction onto the structure interface.
    structure_to_ale : InterfaceMapping, optional
        Maps the structure displacement onto the mesh motion interface.
    ops : VectorOps, optional
        Operations on the interface displacement; selected from the vector
        type if omitted.

    Examples
    --------
    >>> driver = CouplingDriver(CouplingConfig(method="IQN-ILS"), fluid, structure)
    >>> result = driver.solve_time_step(d_predicted, time=0.01)
    >>> result.iterations
    4
    """

    def __init__(
        self,
        config: CouplingConfig,
        fluid: FluidSolver,
        structure: StructureSolver,
        mesh_motion=None,
        structure_to_fluid=None,
        fluid_to_structure=None,
        structure_to_ale=None,
        ops: Optional[VectorOps] = None,
    ):
        self.config = config
        self.fluid = fluid
        self.structure = structure
        self.mesh_motion = mesh_motion
        self.structure_to_fluid = structure_to_fluid
        self.fluid_to_structure = fluid_to_structure
        self.structure_to_ale = structure_to_ale
        self._ops = ops

        self.monitor = ConvergenceMonitor.from_config(config, ops)
        self.aitken = AitkenRelaxation(config.omega_init, ops)
        self.accelerator: Optional[IQNILSAccelerator] = None
        if config.uses_quasi_newton:
            self.accelerator = IQNILSAccelerator(
                config.reused_time_steps, config.qr_drop_tolerance, ops
            )

        self.timings = CouplingTimings()
        self._stats = IterationStats()
        self._state = CouplingState.PREDICT

    # =========================================================================
    # Read-only diagnostics
    # =========================================================================

    @property
    def stats(self) -> IterationStats:
        """Cumulative (time_step_count, iteration_count)."""
        return self._stats

    @property
    def state(self) -> CouplingState:
        return self._state

    @property
    def history(self) -> Optional[HistoryStore]:
        """Retained secant history (IQN-ILS only)."""
        return self.accelerator.history if self.accelerator is not None else None

    # =========================================================================
    # Time step
    # =========================================================================

    def solve_time_step(self, displacement, time: float) -> TimeStepResult:
        """
        Iterate one time step to a consistent interface state.

        Parameters
        ----------
        displacement : field vector
            Predicted interface displacement; not modified.
        time : float
            Physical time at the end of the step.

        Returns
        -------
        TimeStepResult
            Converged structure displacement and iteration diagnostics.

        Raises
        ------
        ConvergenceFailure
            If ``partitioned_iter_max`` is reached without convergence.
        FatalSolverError
            If a sub-solver or the residual produces a non-finite value.
        """
        time_step = self._stats.time_step_count + 1
        ops = self._ops or vector_ops_for(displacement)

        self._transition(CouplingState.PREDICT)
        d = ops.copy(displacement)
        self.aitken.reset()
        if self.accelerator is not None:
            self.accelerator.begin_time_step()

        for iteration in range(self.config.partitioned_iter_max + 1):
            self._stats = replace(self._stats, iteration_count=self._stats.iteration_count + 1)

            traction = self._solve_fluid(d, time, iteration)
            d_tilde = self._solve_structure(traction, time, iteration)

            self._transition(CouplingState.EVALUATE_RESIDUAL)
            residual = ops.difference(d_tilde, d)
            if not ops.all_finite(residual):
                self._transition(CouplingState.FAILED)
                raise FatalSolverError("residual", iteration, time)

            status = self.monitor.check(residual, d)
            logger.debug("Time step %d, partitioned iteration %d: %s", time_step, iteration, status)

            if status.converged:
                self._transition(CouplingState.CONVERGED)
                return self._finish_time_step(time_step, time, d_tilde, iteration + 1, status)

            if iteration == self.config.partitioned_iter_max:
                self._transition(CouplingState.FAILED)
                logger.error(
                    "Time step %d (t = %.6e) did not converge after %d partitioned iterations",
                    time_step, time, iteration + 1,
                )
                raise ConvergenceFailure(
                    time_step, time, iteration + 1, status.absolute, status.relative
                )

            self._transition(CouplingState.ACCELERATE)
            with self.timings.measure("acceleration"):
                self._accelerate(d, d_tilde, residual, iteration)

        # partitioned_iter_max >= 1, the loop always returns or raises
        raise AssertionError("unreachable")

    def _solve_fluid(self, d, time: float, iteration: int):
        self._transition(CouplingState.SOLVE_FLUID)

        if self.mesh_motion is not None:
            ale_displacement = d
            if self.structure_to_ale is not None:
                ale_displacement = self.structure_to_ale.transfer(d)
            with self.timings.measure("mesh motion"):
                try:
                    self.mesh_motion.move(ale_displacement)
                except FatalSolverError as e:
                    self._transition(CouplingState.FAILED)
                    raise FatalSolverError("mesh motion", iteration, time) from e

        fluid_displacement = d
        if self.structure_to_fluid is not None:
            fluid_displacement = self.structure_to_fluid.transfer(d)

        with self.timings.measure("fluid"):
            traction = self.fluid.solve_fluid(fluid_displacement, time)
        if not self._ops_for(traction).all_finite(traction):
            self._transition(CouplingState.FAILED)
            raise FatalSolverError("fluid", iteration, time)

        if self.fluid_to_structure is not None:
            traction = self.fluid_to_structure.transfer(traction)
        return traction

    def _solve_structure(self, traction, time: float, iteration: int):
        self._transition(CouplingState.SOLVE_STRUCTURE)
        with self.timings.measure("structure"):
            d_tilde = self.structure.solve_structure(traction, time)
        if not self._ops_for(d_tilde).all_finite(d_tilde):
            self._transition(CouplingState.FAILED)
            raise FatalSolverError("structure", iteration, time)
        return d_tilde

    def _accelerate(self, d, d_tilde, residual, iteration: int) -> None:
        """Update ``d`` in place for the next partitioned iteration."""
        if self.accelerator is not None:
            self.accelerator.record(d_tilde, residual)

        if self.config.method is CouplingMethod.AITKEN or self.accelerator.is_empty():
            self.aitken.relax(d, residual, iteration)
        else:
            self.accelerator.update(d, residual)

    def _finish_time_step(self, time_step, time, d_tilde, iterations, status) -> TimeStepResult:
        if self.accelerator is not None:
            self.accelerator.end_time_step()

        self.fluid.advance(d_tilde, time)
        self.structure.advance(d_tilde, time)

        self._stats = replace(self._stats, time_step_count=self._stats.time_step_count + 1)
        logger.info(
            "Time step %d (t = %.6e) converged in %d partitioned iterations, |r| = %.3e",
            time_step, time, iterations, status.absolute,
        )
        return TimeStepResult(
            time_step=time_step,
            time=time,
            displacement=d_tilde,
            iterations=iterations,
            absolute_residual=status.absolute,
            relative_residual=status.relative,
        )

    def _ops_for(self, vector) -> VectorOps:
        return self._ops or vector_ops_for(vector)

    def _transition(self, state: CouplingState) -> None:
        logger.debug("Coupling state: %s -> %s", self._state.value, state.value)
        self._state = state
