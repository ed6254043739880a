"""
Synthetic linear coupling maps.

The fluid solver passes the displacement through unchanged and the structure
solver applies an affine map, so one partitioned iteration evaluates

    d_tilde = A d + c.

The fixed point ``(I - A)^{-1} c`` and the Jacobian ``A`` are known exactly.
"""

from typing import Optional

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..coupling.solvers import FluidSolver, StructureSolver


class IdentityFluid(FluidSolver):
    """Returns the interface displacement as traction."""

    def solve_fluid(self, displacement, time: float) -> NDArray:
        return np.array(displacement, dtype=float, copy=True)


class AffineStructure(StructureSolver):
    """Structure response ``A traction + c``."""

    def __init__(self, jacobian: NDArray, offset: NDArray):
        self.jacobian = jacobian
        self.offset = offset

    def solve_structure(self, traction, time: float) -> NDArray:
        return self.jacobian @ np.asarray(traction) + self.offset


class LinearCouplingMap:
    """
    Coupling model with a fixed Jacobian.

    Parameters
    ----------
    jacobian : array_like
        Square matrix ``A``. ``I - A`` must be invertible for a fixed point to
        exist.
    offset : array_like, optional
        Constant ``c``; ones by default.
    time_step : float, optional
        Accepted for interface compatibility with time-dependent models.
    """

    def __init__(self, jacobian: ArrayLike = ((0.6, 0.3, 0.0), (-0.2, -0.5, 0.1),
                                              (0.1, 0.0, 0.3)),
                 offset: Optional[ArrayLike] = None, time_step: Optional[float] = None):
        jacobian = np.asarray(jacobian, dtype=float)
        if jacobian.ndim != 2 or jacobian.shape[0] != jacobian.shape[1]:
            raise ValueError(f"jacobian must be a square matrix, got shape {jacobian.shape}")
        self.dimension = jacobian.shape[0]
        if offset is None:
            offset = np.ones(self.dimension)
        offset = np.asarray(offset, dtype=float)
        if offset.shape != (self.dimension,):
            raise ValueError(f"offset must have {self.dimension} entries, got {offset.shape}")

        self.time_step = time_step
        self.fluid = IdentityFluid()
        self.structure = AffineStructure(jacobian, offset)

    @property
    def jacobian(self) -> NDArray:
        return self.structure.jacobian

    def initial_displacement(self) -> NDArray:
        return np.zeros(self.dimension)

    def analytic_displacement(self, time: Optional[float] = None) -> NDArray:
        """Fixed point ``(I - A)^{-1} c``."""
        return np.linalg.solve(np.eye(self.dimension) - self.jacobian, self.structure.offset)


class DivergentCouplingMap(LinearCouplingMap):
    """
    Map ``d_tilde = d + c`` with ``c != 0``.

    The residual equals ``c`` for every displacement, so no acceleration can
    converge it.
    """

    def __init__(self, dimension: int = 2, offset: Optional[ArrayLike] = None,
                 time_step: Optional[float] = None):
        super().__init__(np.eye(dimension), offset, time_step)
        if not np.any(self.structure.offset):
            raise ValueError("offset of a divergent map must be non-zero")

    def analytic_displacement(self, time: Optional[float] = None) -> NDArray:
        raise ValueError("A divergent coupling map has no fixed point")
