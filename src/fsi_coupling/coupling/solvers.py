"""
Contracts of the sub-solvers driven by the partitioned coupling scheme.

The coupling engine only sees the interface: the fluid solver turns an
interface displacement into an interface traction (Dirichlet side), the
structure solver turns a traction into a displacement (Neumann side). How the
sub-problems are discretized, partitioned or solved is hidden behind these
contracts.
"""

from abc import ABC, abstractmethod


class FluidSolver(ABC):
    """
    Fluid sub-problem with a displacement interface condition.

    Subclasses must implement ``solve_fluid``. Implementations may deform their
    own mesh before solving; the coupling driver can also do it through a
    ``MeshMotion`` object.
    """

    @abstractmethod
    def solve_fluid(self, displacement, time: float):
        """
        Solve the fluid sub-problem for the given interface displacement.

        Parameters
        ----------
        displacement : field vector
            Interface displacement of the current partitioned iteration.
        time : float
            Physical time of the time step being solved.

        Returns
        -------
        field vector
            Interface traction.
        """
        pass

    def advance(self, displacement, time: float) -> None:
        """Accept the converged state of a time step (default: nothing to do)."""
        return None


class StructureSolver(ABC):
    """Structure sub-problem with a traction interface condition."""

    @abstractmethod
    def solve_structure(self, traction, time: float):
        """
        Solve the structure sub-problem for the given interface traction.

        Parameters
        ----------
        traction : field vector
            Interface traction computed by the fluid solver.
        time : float
            Physical time of the time step being solved.

        Returns
        -------
        field vector
            New interface displacement ``d_tilde``.
        """
        pass

    def advance(self, displacement, time: float) -> None:
        """Accept the converged state of a time step (default: nothing to do)."""
        return None
