"""
Interface quasi-Newton acceleration with least-squares Jacobian (IQN-ILS).

Within a time step the accelerator collects the increments of the structure
output ``D`` and of the residual ``R`` between consecutive partitioned
iterations. The next displacement is

    d <- d + r + W alpha + H(a),    alpha = argmin ||R alpha + r||,

where ``W alpha`` is built from the current time step (QR of ``R`` followed by
back-substitution) and ``H`` is the multi-secant inverse Jacobian of the
retained past time steps applied to the part ``a`` of the residual that the
current step does not explain. At the end of a time step the increments are
factorized once more and stored as a ``HistoryEntry`` for reuse.
"""

import logging
from typing import List, Optional

from ..core.vectors import VectorOps, vector_ops_for
from .aitken import NEGLIGIBLE_CHANGE
from .history import HistoryEntry, HistoryStore, inv_jacobian_times_residual
from .qr import backward_substitution, backward_substitution_multiple_rhs, compute_qr_decomposition

logger = logging.getLogger(__name__)


class IQNILSAccelerator:
    """
    IQN-ILS accelerator with reuse of past time steps.

    Parameters
    ----------
    reused_time_steps : int
        Number of completed time steps whose secant history is reused.
    qr_drop_tolerance : float
        Relative QR drop threshold for linearly dependent columns.
    ops : VectorOps, optional
        Vector operations; selected from the vector type if omitted.
    """

    def __init__(
        self,
        reused_time_steps: int = 0,
        qr_drop_tolerance: float = 1.0e-2,
        ops: Optional[VectorOps] = None,
    ):
        self.qr_drop_tolerance = qr_drop_tolerance
        self.history = HistoryStore(reused_time_steps)
        self._ops = ops

        # Increments of the current time step
        self.D: List = []
        self.R: List = []
        self._d_tilde_old = None
        self._residual_old = None

    def _get_ops(self, vector) -> VectorOps:
        if self._ops is None:
            self._ops = vector_ops_for(vector)
        return self._ops

    @property
    def column_count(self) -> int:
        """Number of columns of the current step plus all retained steps."""
        return len(self.R) + self.history.column_count

    def is_empty(self) -> bool:
        """True if neither the current step nor the retained history holds a column."""
        return self.column_count == 0

    def begin_time_step(self) -> None:
        """Discard the working increments of the previous time step."""
        self.D = []
        self.R = []
        self._d_tilde_old = None
        self._residual_old = None

    def record(self, d_tilde, residual) -> None:
        """
        Store the structure output and residual of the current iteration.

        From the second call within a time step on, the increments with respect
        to the previous call are appended to ``D`` and ``R``. A residual
        increment at round-off level carries no secant information; it is
        skipped together with its output increment.
        """
        ops = self._get_ops(residual)
        if self._residual_old is not None:
            delta_r = ops.difference(residual, self._residual_old)
            if ops.norm(delta_r) > NEGLIGIBLE_CHANGE * ops.norm(self._residual_old):
                self.D.append(ops.difference(d_tilde, self._d_tilde_old))
                self.R.append(delta_r)
            else:
                logger.debug("IQN-ILS: skipped residual increment at round-off level")
        self._d_tilde_old = ops.copy(d_tilde)
        self._residual_old = ops.copy(residual)

    def update(self, displacement, residual):
        """
        Apply the quasi-Newton update to ``displacement`` in place.

        Parameters
        ----------
        displacement : field vector
            Current interface displacement ``d``; overwritten.
        residual : field vector
            Current residual ``r = d_tilde - d``; not modified.

        Returns
        -------
        field vector
            The updated ``displacement``.
        """
        ops = self._get_ops(residual)

        # The correction is linear in the residual, it is assembled for -r
        a = ops.scale(ops.copy(residual), -1.0)
        b = ops.zeros_like(residual)

        if self.R:
            Q = [ops.copy(column) for column in self.R]
            U, deflated = compute_qr_decomposition(Q, self.qr_drop_tolerance, ops)
            rhs = [ops.dot(column, a) for column in Q]
            alpha = backward_substitution(U, rhs)
            for i, alpha_i in enumerate(alpha):
                ops.axpy(b, alpha_i, self.D[i])
                ops.axpy(a, -alpha_i, self.R[i])
            logger.debug(
                "IQN-ILS: %d current columns (%d dropped), %d retained columns",
                len(self.R), len(deflated), self.history.column_count,
            )

        if len(self.history):
            ops.axpy(b, 1.0, inv_jacobian_times_residual(a, self.history, ops))

        ops.axpy(displacement, 1.0, residual)
        return ops.axpy(displacement, 1.0, b)

    def end_time_step(self) -> HistoryEntry:
        """
        Factorize the increments of the finished time step and retain them.

        Returns
        -------
        HistoryEntry
            The entry pushed to the history store.
        """
        Z = []
        if self.R:
            ops = self._get_ops(self.R[0])
            Q = [ops.copy(column) for column in self.R]
            U, _ = compute_qr_decomposition(Q, self.qr_drop_tolerance, ops)
            Z = backward_substitution_multiple_rhs(U, Q, ops)

        entry = HistoryEntry(D=self.D, R=self.R, Z=Z)
        self.history.push(entry)
        logger.debug("IQN-ILS: stored %d columns, %d time steps retained",
                     len(entry), len(self.history))
        self.begin_time_step()
        return entry

    def __repr__(self) -> str:
        return (
            f"IQNILSAccelerator(current_columns={len(self.R)}, history={self.history!r})"
        )
