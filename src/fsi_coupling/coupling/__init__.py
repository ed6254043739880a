"""
Partitioned coupling of the fluid and structure sub-solvers.
"""

from .convergence import ConvergenceMonitor, ConvergenceStatus
from .driver import CouplingDriver, CouplingState, IterationStats, TimeStepResult
from .predictor import DisplacementPredictor
from .reporting import IterationLogger, print_partitioned_iterations, print_performance_results
from .runner import CouplingRunner, run_from_yaml
from .solvers import FluidSolver, StructureSolver
from .timings import CouplingTimings

__all__ = [
    "ConvergenceMonitor",
    "ConvergenceStatus",
    "CouplingDriver",
    "CouplingRunner",
    "CouplingState",
    "CouplingTimings",
    "DisplacementPredictor",
    "FluidSolver",
    "IterationLogger",
    "IterationStats",
    "StructureSolver",
    "TimeStepResult",
    "print_partitioned_iterations",
    "print_performance_results",
    "run_from_yaml",
]
