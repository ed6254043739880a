"""
Aitken dynamic relaxation of the interface displacement.
"""

import logging
from typing import Optional

from ..core.vectors import VectorOps, vector_ops_for

logger = logging.getLogger(__name__)

# Residual changes below this fraction of the previous residual are round-off
NEGLIGIBLE_CHANGE = 1.0e-12


class AitkenRelaxation:
    """
    Scalar relaxation factor updated with Aitken's delta-squared recurrence.

    The first iteration of every time step uses ``omega_init``. Afterwards the
    factor is updated from the last two residuals,

        omega_k = -omega_{k-1} * <r_{k-1}, r_k - r_{k-1}> / ||r_k - r_{k-1}||^2

    and the displacement is relaxed as ``d <- d + omega_k * r_k``.
    When the residual change is at round-off level relative to ``r_{k-1}``
    the previous factor is kept.

    Parameters
    ----------
    omega_init : float
        Initial relaxation factor, in (0, 1].
    ops : VectorOps, optional
        Vector operations; selected from the residual type if omitted.
    """

    def __init__(self, omega_init: float, ops: Optional[VectorOps] = None):
        self.omega_init = omega_init
        self.omega = omega_init
        self._ops = ops
        self._residual_old = None

    def reset(self) -> None:
        """Start a new time step."""
        self.omega = self.omega_init
        self._residual_old = None

    def update_factor(self, residual, iteration: int) -> float:
        """
        Compute the relaxation factor of the current iteration.

        Parameters
        ----------
        residual : field vector
            Residual of the current iteration; a copy is kept for the next update.
        iteration : int
            Partitioned iteration index within the time step.

        Returns
        -------
        float
            The relaxation factor ``omega``.
        """
        ops = self._ops or vector_ops_for(residual)

        if iteration == 0 or self._residual_old is None:
            self.omega = self.omega_init
        else:
            delta = ops.difference(residual, self._residual_old)
            if ops.norm(delta) > NEGLIGIBLE_CHANGE * ops.norm(self._residual_old):
                denominator = ops.dot(delta, delta)
                self.omega = -self.omega * ops.dot(self._residual_old, delta) / denominator
            else:
                logger.warning(
                    "Aitken: residual did not change between iterations, keeping omega=%.4e",
                    self.omega,
                )

        self._residual_old = ops.copy(residual)
        return self.omega

    def relax(self, displacement, residual, iteration: int):
        """
        Apply ``displacement += omega * residual`` in place.

        Returns
        -------
        field vector
            The updated ``displacement``.
        """
        ops = self._ops or vector_ops_for(residual)
        omega = self.update_factor(residual, iteration)
        logger.debug("Aitken: iteration %d, omega = %.6e", iteration, omega)
        return ops.axpy(displacement, omega, residual)

    def __repr__(self) -> str:
        return f"AitkenRelaxation(omega_init={self.omega_init}, omega={self.omega})"
