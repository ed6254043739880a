"""
Exception hierarchy for the partitioned coupling engine.

- ConfigurationError: invalid coupling or simulation parameters (raised at startup)
- GeometricMatchError: interface points that cannot be matched within tolerance
- ConvergenceFailure: the partitioned iteration exhausted its iteration budget
- FatalSolverError: a sub-solver or the residual produced non-finite values

Near-linear dependence of quasi-Newton history columns is not an error; it is
handled inside the QR factorization and only logged.
"""

from typing import Optional, Sequence


class CouplingError(Exception):
    """Base class for all errors raised by the coupling engine."""


class ConfigurationError(CouplingError, ValueError):
    """Invalid configuration value detected before time stepping starts."""


class GeometricMatchError(CouplingError):
    """
    An interface point has no counterpart within the geometric tolerance.

    Parameters
    ----------
    point : Sequence[float]
        Coordinates of the unmatched point.
    distance : float
        Distance to the nearest candidate point.
    tolerance : float
        Geometric tolerance that was exceeded.
    """

    def __init__(self, point: Sequence[float], distance: float, tolerance: float):
        self.point = tuple(float(x) for x in point)
        self.distance = float(distance)
        self.tolerance = float(tolerance)
        super().__init__(
            f"Interface point {self.point} could not be matched: nearest point is at "
            f"distance {self.distance:.6e} > geometric tolerance {self.tolerance:.6e}"
        )


class ConvergenceFailure(CouplingError):
    """
    Partitioned iteration did not converge within ``partitioned_iter_max``.

    Parameters
    ----------
    time_step : int
        Index of the failing time step (1-based).
    time : float
        Physical time of the failing step.
    iterations : int
        Number of partitioned iterations performed.
    absolute_residual : float
        Final absolute residual norm.
    relative_residual : float
        Final relative residual norm.
    """

    def __init__(
        self,
        time_step: int,
        time: float,
        iterations: int,
        absolute_residual: float,
        relative_residual: float,
    ):
        self.time_step = time_step
        self.time = time
        self.iterations = iterations
        self.absolute_residual = absolute_residual
        self.relative_residual = relative_residual
        super().__init__(
            f"Partitioned iteration did not converge in time step {time_step} "
            f"(t = {time:.6e}) after {iterations} iterations: "
            f"|r| = {absolute_residual:.6e}, |r|/|d| = {relative_residual:.6e}"
        )


class FatalSolverError(CouplingError):
    """
    A sub-solver (or the interface residual) returned non-finite values.

    Parameters
    ----------
    source : str
        Which stage produced the value, e.g. ``"fluid"`` or ``"structure"``.
    iteration : int, optional
        Partitioned iteration index (0-based) in which the failure occurred.
    time : float, optional
        Physical time of the failing step.
    """

    def __init__(self, source: str, iteration: Optional[int] = None, time: Optional[float] = None):
        self.source = source
        self.iteration = iteration
        self.time = time
        where = []
        if iteration is not None:
            where.append(f"iteration {iteration}")
        if time is not None:
            where.append(f"t = {time:.6e}")
        suffix = f" ({', '.join(where)})" if where else ""
        super().__init__(f"Non-finite value returned by {source}{suffix}")
