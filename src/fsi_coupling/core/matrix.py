"""
Small dense square matrix used as the triangular factor of the QR step.
"""

import numpy as np


class DenseMatrix:
    """
    Zero-initialized, bounds-checked M x M matrix.

    Parameters
    ----------
    size : int
        Number of rows and columns.

    Raises
    ------
    ValueError
        If ``size`` is negative.
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"Matrix size must be non-negative, got {size}")
        self._size = int(size)
        self._data = np.zeros((self._size, self._size))

    @property
    def size(self) -> int:
        """Number of rows (and columns)."""
        return self._size

    @property
    def shape(self):
        return (self._size, self._size)

    def _check(self, i: int, j: int) -> None:
        if not (0 <= i < self._size and 0 <= j < self._size):
            raise IndexError(
                f"Index ({i}, {j}) exceeds matrix dimensions ({self._size}, {self._size})."
            )

    def get(self, i: int, j: int) -> float:
        """Return entry (i, j)."""
        self._check(i, j)
        return float(self._data[i, j])

    def set(self, value: float, i: int, j: int) -> None:
        """Set entry (i, j) to ``value``."""
        self._check(i, j)
        self._data[i, j] = value

    def to_array(self) -> np.ndarray:
        """Return a copy of the entries as a numpy array."""
        return self._data.copy()

    def __repr__(self) -> str:
        return f"DenseMatrix(size={self._size})"
