"""
Secant history of past time steps for the interface quasi-Newton method.

Each retained time step contributes one ``HistoryEntry``: the output increments
``D``, the residual increments ``R`` and the least-squares weights ``Z`` (rows
of the pseudo-inverse of ``R``). Together the entries define an approximate
inverse Jacobian that is applied layer by layer, newest first, without ever
forming a dense matrix.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional

from ..core.vectors import VectorOps, vector_ops_for

logger = logging.getLogger(__name__)


@dataclass
class HistoryEntry:
    """
    Secant information of one time step.

    Parameters
    ----------
    D : list of field vectors
        Increments of the structure output (displacement) between iterations.
    R : list of field vectors
        Matching increments of the interface residual.
    Z : list of field vectors
        Least-squares weights, ``<Z[i], a>`` is the i-th coefficient of the
        least-squares fit of ``a`` by the columns of ``R``.

    Raises
    ------
    ValueError
        If the three sequences differ in length.
    """

    D: List = field(default_factory=list)
    R: List = field(default_factory=list)
    Z: List = field(default_factory=list)

    def __post_init__(self):
        self.D = list(self.D)
        self.R = list(self.R)
        self.Z = list(self.Z)
        if not len(self.D) == len(self.R) == len(self.Z):
            raise ValueError(
                f"History entry sequences must have equal length, "
                f"got D={len(self.D)}, R={len(self.R)}, Z={len(self.Z)}"
            )

    def __len__(self) -> int:
        return len(self.Z)


class HistoryStore:
    """
    Bounded, ordered collection of ``HistoryEntry`` objects (oldest first).

    Parameters
    ----------
    reused_time_steps : int
        Number of completed time steps kept for reuse. After a push the oldest
        entries are evicted until at most ``reused_time_steps`` remain, so the
        store never holds more than ``reused_time_steps + 1`` entries.
    """

    def __init__(self, reused_time_steps: int):
        if reused_time_steps < 0:
            raise ValueError(f"reused_time_steps must be non-negative, got {reused_time_steps}")
        self.reused_time_steps = reused_time_steps
        self._entries: List[HistoryEntry] = []

    @property
    def max_length(self) -> int:
        return self.reused_time_steps + 1

    def push(self, entry: HistoryEntry) -> None:
        """Append the newest entry and evict the oldest ones beyond the bound."""
        self._entries.append(entry)
        while len(self._entries) > self.reused_time_steps:
            evicted = self._entries.pop(0)
            logger.debug("History: evicted entry with %d columns", len(evicted))

    @property
    def column_count(self) -> int:
        """Total number of secant columns over all entries."""
        return sum(len(entry) for entry in self._entries)

    def is_empty(self) -> bool:
        """True if no entry holds a single column."""
        return self.column_count == 0

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> HistoryEntry:
        return self._entries[index]

    def __repr__(self) -> str:
        return (
            f"HistoryStore(entries={len(self._entries)}, columns={self.column_count}, "
            f"reused_time_steps={self.reused_time_steps})"
        )


def inv_jacobian_times_residual(
    residual, history: Iterable[HistoryEntry], ops: Optional[VectorOps] = None
):
    """
    Apply the multi-secant approximate inverse Jacobian to ``residual``.

    Entries are processed newest to oldest. Each entry projects the remaining
    part ``a`` of the residual onto its residual increments, adds the matching
    combination of output increments to the result ``b`` and removes the
    explained part from ``a`` before the next (older) entry is visited.

    Parameters
    ----------
    residual : field vector
        Vector to which the operator is applied; not modified.
    history : iterable of HistoryEntry
        Entries ordered oldest to newest (a ``HistoryStore`` works directly).
    ops : VectorOps, optional
        Vector operations; selected from the residual type if omitted.

    Returns
    -------
    field vector
        Newly allocated vector ``b``.
    """
    ops = ops or vector_ops_for(residual)
    a = ops.copy(residual)
    b = ops.zeros_like(residual)

    for entry in reversed(list(history)):
        k = len(entry)
        Z_times_a = [ops.dot(entry.Z[i], a) for i in range(k)]

        for i in range(k):
            ops.axpy(b, Z_times_a[i], entry.D[i])

        for i in range(k):
            ops.axpy(a, -Z_times_a[i], entry.R[i])

    return b
