"""
Extrapolation of the interface displacement at the start of a time step.
"""

import logging
from collections import deque
from typing import Optional

from ..core.vectors import VectorOps, vector_ops_for

logger = logging.getLogger(__name__)

# Extrapolation weights of the last converged displacements (newest first)
_WEIGHTS = {
    0: (1.0,),
    1: (2.0, -1.0),
    2: (3.0, -3.0, 1.0),
}


class DisplacementPredictor:
    """
    Polynomial extrapolation of converged interface displacements.

    With constant time step size the prediction of order ``p`` is

    - order 0: ``d^n``
    - order 1: ``2 d^n - d^{n-1}``
    - order 2: ``3 d^n - 3 d^{n-1} + d^{n-2}``

    The highest order the stored history supports is used, so the first
    time steps fall back to lower orders.

    Parameters
    ----------
    order : int
        Extrapolation order, 0, 1 or 2.
    ops : VectorOps, optional
        Vector operations; selected from the vector type if omitted.
    """

    def __init__(self, order: int = 1, ops: Optional[VectorOps] = None):
        if order not in _WEIGHTS:
            raise ValueError(f"Predictor order must be 0, 1 or 2, got {order}")
        self.order = order
        self._ops = ops
        self._history = deque(maxlen=order + 1)

    def push(self, displacement) -> None:
        """Store the converged displacement of a finished time step."""
        ops = self._ops or vector_ops_for(displacement)
        self._history.appendleft(ops.copy(displacement))

    def predict(self, initial=None):
        """
        Return a new vector with the predicted displacement.

        Parameters
        ----------
        initial : field vector, optional
            Returned (as a copy) if no displacement has been stored yet.
        """
        if not self._history:
            if initial is None:
                raise RuntimeError("No converged displacement available for the prediction")
            ops = self._ops or vector_ops_for(initial)
            return ops.copy(initial)

        order = min(self.order, len(self._history) - 1)
        ops = self._ops or vector_ops_for(self._history[0])
        prediction = ops.zeros_like(self._history[0])
        for weight, displacement in zip(_WEIGHTS[order], self._history):
            ops.axpy(prediction, weight, displacement)
        logger.debug("Predictor: extrapolation of order %d", order)
        return prediction

    def __len__(self) -> int:
        return len(self._history)
