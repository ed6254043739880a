"""
Field vector operations.

The coupling engine never owns the interface fields it combines; they belong to
the fluid and structure solvers and may be distributed over many ranks. All
algebra therefore goes through a ``VectorOps`` object, which knows how to
combine vectors of one storage type and how to turn local partial sums into
globally reduced scalars.

Every scalar returned by ``dot``, ``norm``, ``size`` and ``all_finite`` is a
collective value: each rank computes the same number, which keeps the small
dense QR / back-substitution problems identical across ranks.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import numpy as np


class VectorOps(ABC):
    """Abstract set of operations on a field vector type."""

    @abstractmethod
    def dot(self, x, y) -> float:
        """Global inner product <x, y>."""

    def norm(self, x) -> float:
        """Global Euclidean norm."""
        return float(np.sqrt(max(self.dot(x, x), 0.0)))

    @abstractmethod
    def copy(self, x):
        """Return a new vector with the same layout and values as ``x``."""

    @abstractmethod
    def zeros_like(self, x):
        """Return a new zero vector with the layout of ``x``."""

    @abstractmethod
    def axpy(self, y, alpha: float, x):
        """In place ``y += alpha * x``; returns ``y``."""

    @abstractmethod
    def scale(self, x, alpha: float):
        """In place ``x *= alpha``; returns ``x``."""

    @abstractmethod
    def set_zero(self, x):
        """In place ``x = 0``; returns ``x``."""

    @abstractmethod
    def size(self, x) -> int:
        """Global number of entries."""

    @abstractmethod
    def all_finite(self, x) -> bool:
        """True on every rank if no rank holds a NaN or Inf entry."""

    def difference(self, x, y):
        """Return the new vector ``x - y``."""
        result = self.copy(x)
        return self.axpy(result, -1.0, y)


class NumpyVectorOps(VectorOps):
    """
    Operations on numpy arrays.

    Parameters
    ----------
    comm : mpi4py communicator, optional
        When given, each array holds only the locally owned entries of a
        distributed vector and every reduction is completed with a blocking
        ``comm.allreduce`` (sum). When omitted, arrays are complete vectors.
    """

    def __init__(self, comm: Optional[Any] = None):
        self.comm = comm

    @classmethod
    def world(cls) -> "NumpyVectorOps":
        """Distributed operations over ``MPI.COMM_WORLD`` (requires mpi4py)."""
        from mpi4py import MPI

        return cls(MPI.COMM_WORLD)

    def _reduce(self, value):
        if self.comm is None:
            return value
        return self.comm.allreduce(value)

    def dot(self, x, y) -> float:
        local = float(np.vdot(np.ravel(x), np.ravel(y)).real)
        return float(self._reduce(local))

    def copy(self, x):
        return np.array(x, dtype=float, copy=True)

    def zeros_like(self, x):
        return np.zeros_like(x, dtype=float)

    def axpy(self, y, alpha: float, x):
        y += alpha * x
        return y

    def scale(self, x, alpha: float):
        x *= alpha
        return x

    def set_zero(self, x):
        x[...] = 0.0
        return x

    def size(self, x) -> int:
        return int(self._reduce(int(np.size(x))))

    def all_finite(self, x) -> bool:
        local_bad = int(np.count_nonzero(~np.isfinite(x)))
        return self._reduce(local_bad) == 0

    def __repr__(self) -> str:
        return f"NumpyVectorOps(distributed={self.comm is not None})"


# Registry of vector types -> factory of VectorOps, filled by the backends.
_REGISTRY: List[Tuple[Type, Callable[[Any], VectorOps]]] = [
    (np.ndarray, lambda vector: NumpyVectorOps()),
]


def register_vector_ops(vector_type: Type, factory: Callable[[Any], VectorOps]) -> None:
    """
    Register a ``VectorOps`` factory for a vector type.

    Parameters
    ----------
    vector_type : type
        Storage type handled by the factory.
    factory : callable
        Called with a sample vector, returns the ``VectorOps`` instance.
    """
    _REGISTRY.insert(0, (vector_type, factory))


def vector_ops_for(vector) -> VectorOps:
    """
    Select the ``VectorOps`` implementation matching ``vector``.

    Raises
    ------
    TypeError
        If no backend is registered for the vector type.
    """
    for vector_type, factory in _REGISTRY:
        if isinstance(vector, vector_type):
            return factory(vector)
    raise TypeError(f"No vector operations registered for type {type(vector).__name__}")


def registered_vector_types() -> Dict[str, Type]:
    """Return the registered vector types keyed by name (diagnostics)."""
    return {vector_type.__name__: vector_type for vector_type, _ in _REGISTRY}
