"""
Two-degree-of-freedom mass-spring structure coupled to an added-mass fluid.

The structure is a rigid interface patch with two translational degrees of
freedom,

    M x'' + K x = f,

integrated with the implicit Euler method. The fluid reacts with the
added-mass traction of an incompressible flow plus a prescribed load,

    f = -M_a x'' + p sin(2 pi f_p t).

For ``M_a`` comparable to or larger than ``M`` the plain Dirichlet-Neumann
iteration diverges (added-mass instability), which makes the model a good test
for the acceleration methods. The coupled problem is linear, so the converged
interface displacement of every time step is known in closed form.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..coupling.solvers import FluidSolver, StructureSolver

logger = logging.getLogger(__name__)


class MassSpringState:
    """Converged displacement and velocity of the last time step."""

    def __init__(self, dimension: int, time_step: float):
        self.time_step = time_step
        self.displacement = np.zeros(dimension)
        self.velocity = np.zeros(dimension)

    def inertia_reference(self) -> NDArray:
        """``x^n + dt v^n``, the displacement reached without acceleration."""
        return self.displacement + self.time_step * self.velocity

    def advance(self, displacement: NDArray) -> None:
        displacement = np.asarray(displacement, dtype=float)
        self.velocity = (displacement - self.displacement) / self.time_step
        self.displacement = displacement.copy()


class AddedMassFluid(FluidSolver):
    """Added-mass fluid with a harmonic load."""

    def __init__(self, state: MassSpringState, added_mass: NDArray, load: NDArray,
                 frequency: float):
        self.state = state
        self.added_mass = added_mass
        self.load = load
        self.frequency = frequency

    def external_load(self, time: float) -> NDArray:
        return self.load * np.sin(2.0 * np.pi * self.frequency * time)

    def solve_fluid(self, displacement, time: float) -> NDArray:
        dt = self.state.time_step
        acceleration = (np.asarray(displacement) - self.state.inertia_reference()) / dt**2
        return -self.added_mass @ acceleration + self.external_load(time)


class MassSpringStructure(StructureSolver):
    """Mass-spring structure integrated with implicit Euler."""

    def __init__(self, state: MassSpringState, mass: NDArray, stiffness: NDArray):
        self.state = state
        self.mass = mass
        self.stiffness = stiffness
        dt = state.time_step
        self._lhs = mass / dt**2 + stiffness

    def solve_structure(self, traction, time: float) -> NDArray:
        dt = self.state.time_step
        rhs = np.asarray(traction) + self.mass @ self.state.inertia_reference() / dt**2
        return np.linalg.solve(self._lhs, rhs)

    def advance(self, displacement, time: float) -> None:
        self.state.advance(displacement)


class MassSpringModel:
    """
    Coupled two-DOF mass-spring / added-mass model.

    Parameters
    ----------
    time_step : float
        Time step size of the implicit Euler scheme.
    mass : array_like
        Structure mass matrix (2x2) or its diagonal.
    stiffness : array_like
        Structure stiffness matrix (2x2) or its diagonal.
    added_mass : array_like
        Fluid added-mass matrix (2x2) or its diagonal.
    load : sequence of float
        Amplitude of the harmonic fluid load.
    frequency : float
        Load frequency [Hz].

    Examples
    --------
    >>> model = MassSpringModel(time_step=0.01)
    >>> traction = model.fluid.solve_fluid(model.initial_displacement(), 0.01)
    >>> d_tilde = model.structure.solve_structure(traction, 0.01)
    """

    dimension = 2

    def __init__(
        self,
        time_step: float,
        mass: ArrayLike = (1.0, 1.0),
        stiffness: ArrayLike = ((40.0, -10.0), (-10.0, 25.0)),
        added_mass: ArrayLike = ((1.5, 0.2), (0.2, 1.2)),
        load: Sequence[float] = (1.0, 0.5),
        frequency: float = 1.0,
    ):
        self.mass = _as_matrix(mass, "mass")
        self.stiffness = _as_matrix(stiffness, "stiffness")
        self.added_mass = _as_matrix(added_mass, "added_mass")
        load = np.asarray(load, dtype=float)
        if load.shape != (self.dimension,):
            raise ValueError(f"load must have {self.dimension} components, got {load.shape}")

        self.state = MassSpringState(self.dimension, time_step)
        self.fluid = AddedMassFluid(self.state, self.added_mass, load, frequency)
        self.structure = MassSpringStructure(self.state, self.mass, self.stiffness)

    @property
    def time_step(self) -> float:
        return self.state.time_step

    def initial_displacement(self) -> NDArray:
        return self.state.displacement.copy()

    def analytic_displacement(self, time: float, state: Optional[MassSpringState] = None) -> NDArray:
        """
        Exact interface displacement of the coupled step ending at ``time``.

        Solves ``((M + M_a)/dt^2 + K) x = p(t) + (M + M_a)/dt^2 (x^n + dt v^n)``
        for the current (or the given) converged state.
        """
        state = state or self.state
        dt = state.time_step
        total_mass = self.mass + self.added_mass
        lhs = total_mass / dt**2 + self.stiffness
        rhs = self.fluid.external_load(time) + total_mass @ state.inertia_reference() / dt**2
        return np.linalg.solve(lhs, rhs)

    def fixed_point_jacobian(self) -> NDArray:
        """Jacobian of the unaccelerated map ``d -> d_tilde``."""
        dt = self.state.time_step
        return -np.linalg.solve(self.structure._lhs, self.added_mass / dt**2)


def _as_matrix(value: ArrayLike, name: str, dimension: int = 2) -> NDArray:
    array = np.asarray(value, dtype=float)
    if array.shape == (dimension,):
        array = np.diag(array)
    if array.shape != (dimension, dimension):
        raise ValueError(f"{name} must be a {dimension}x{dimension} matrix or its diagonal, "
                         f"got shape {array.shape}")
    return array
