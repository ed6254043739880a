"""
PETSc field vectors.

Interface fields of PETSc-based solvers are ``PETSc.Vec`` objects distributed
over the solver communicator. PETSc reductions (``dot``, ``norm``) are already
collective, so this backend only maps the ``VectorOps`` vocabulary onto the
``Vec`` API.
"""

import math

import numpy as np
from petsc4py import PETSc

from .vectors import VectorOps, register_vector_ops


class PETScVectorOps(VectorOps):
    """Operations on ``PETSc.Vec`` field vectors."""

    def dot(self, x: PETSc.Vec, y: PETSc.Vec) -> float:
        return float(np.real(x.dot(y)))

    def norm(self, x: PETSc.Vec) -> float:
        return float(x.norm(PETSc.NormType.NORM_2))

    def copy(self, x: PETSc.Vec) -> PETSc.Vec:
        return x.copy()

    def zeros_like(self, x: PETSc.Vec) -> PETSc.Vec:
        vec = x.duplicate()
        vec.set(0.0)
        return vec

    def axpy(self, y: PETSc.Vec, alpha: float, x: PETSc.Vec) -> PETSc.Vec:
        y.axpy(alpha, x)
        return y

    def scale(self, x: PETSc.Vec, alpha: float) -> PETSc.Vec:
        x.scale(alpha)
        return x

    def set_zero(self, x: PETSc.Vec) -> PETSc.Vec:
        x.zeroEntries()
        return x

    def size(self, x: PETSc.Vec) -> int:
        return int(x.getSize())

    def all_finite(self, x: PETSc.Vec) -> bool:
        # NaN and Inf both propagate through the collective max-norm
        return math.isfinite(x.norm(PETSc.NormType.NORM_INFINITY))


register_vector_ops(PETSc.Vec, lambda vector: PETScVectorOps())
