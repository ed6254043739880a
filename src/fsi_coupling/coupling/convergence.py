"""
Convergence check of the partitioned iteration.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.vectors import VectorOps, vector_ops_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvergenceStatus:
    """Residual norms of one partitioned iteration."""

    absolute: float
    relative: float
    converged: bool

    def __str__(self) -> str:
        flag = "converged" if self.converged else "not converged"
        return f"|r| = {self.absolute:.6e}, |r|/|d| = {self.relative:.6e} ({flag})"


class ConvergenceMonitor:
    """
    Absolute and relative residual criteria.

    The iteration is converged only if ``||r|| < abs_tol`` and
    ``||r|| / ||d|| < rel_tol`` hold at the same time. Both comparisons are
    strict. For a zero displacement the relative norm is 0 when the residual
    is zero as well and infinite otherwise.

    Parameters
    ----------
    abs_tol : float
        Absolute tolerance.
    rel_tol : float
        Relative tolerance.
    ops : VectorOps, optional
        Vector operations; selected from the residual type if omitted.
    """

    def __init__(self, abs_tol: float, rel_tol: float, ops: Optional[VectorOps] = None):
        self.abs_tol = abs_tol
        self.rel_tol = rel_tol
        self._ops = ops

    @classmethod
    def from_config(cls, config, ops: Optional[VectorOps] = None) -> "ConvergenceMonitor":
        return cls(config.abs_tol, config.rel_tol, ops)

    def check(self, residual, displacement) -> ConvergenceStatus:
        """
        Evaluate the residual of the current iteration.

        Parameters
        ----------
        residual : field vector
            ``d_tilde - d``.
        displacement : field vector
            Interface displacement ``d`` the residual refers to.

        Returns
        -------
        ConvergenceStatus
        """
        ops = self._ops or vector_ops_for(residual)
        residual_norm = ops.norm(residual)
        displacement_norm = ops.norm(displacement)

        if displacement_norm > 0.0:
            relative = residual_norm / displacement_norm
        else:
            relative = float("inf") if residual_norm > 0.0 else 0.0

        converged = residual_norm < self.abs_tol and relative < self.rel_tol
        return ConvergenceStatus(absolute=residual_norm, relative=relative, converged=converged)

    def __repr__(self) -> str:
        return f"ConvergenceMonitor(abs_tol={self.abs_tol}, rel_tol={self.rel_tol})"
