"""
Transfer of interface fields between non-identical interface discretizations.

Both sides of the interface carry their own point sets. Every point of the
target interface is matched with its nearest source point; the match must lie
within the geometric tolerance, otherwise the interfaces do not describe the
same geometry and the run is aborted.
"""

import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.spatial import cKDTree

from ..core.errors import ConfigurationError, GeometricMatchError

logger = logging.getLogger(__name__)


class InterfaceMapping:
    """
    Nearest-point mapping from a source to a target interface.

    Parameters
    ----------
    source_points : array_like, shape (n_source, dim)
        Coordinates of the interface points the fields are defined on.
    target_points : array_like, shape (n_target, dim)
        Coordinates of the interface points the fields are transferred to.
    geometric_tolerance : float
        Maximum distance between a target point and its source counterpart.

    Raises
    ------
    GeometricMatchError
        If a target point has no source point within ``geometric_tolerance``.
    ConfigurationError
        If ``geometric_tolerance`` is not positive.
    ValueError
        On empty point sets or mismatching spatial dimensions.

    Examples
    --------
    >>> mapping = InterfaceMapping(structure_points, fluid_points, 1e-10)
    >>> fluid_displacement = mapping.transfer(structure_displacement)
    """

    def __init__(self, source_points: ArrayLike, target_points: ArrayLike,
                 geometric_tolerance: float):
        self.source_points = _as_points(source_points, "source_points")
        self.target_points = _as_points(target_points, "target_points")
        if self.source_points.shape[1] != self.target_points.shape[1]:
            raise ValueError(
                f"Interfaces have different dimensions: {self.source_points.shape[1]} "
                f"and {self.target_points.shape[1]}"
            )
        if not geometric_tolerance > 0:
            raise ConfigurationError(
                f"geometric_tolerance must be positive, got {geometric_tolerance}"
            )
        self.geometric_tolerance = geometric_tolerance

        tree = cKDTree(self.source_points)
        distances, indices = tree.query(self.target_points, k=1)

        worst = int(np.argmax(distances))
        if distances[worst] > geometric_tolerance:
            raise GeometricMatchError(self.target_points[worst], distances[worst],
                                      geometric_tolerance)

        self.indices: NDArray = np.asarray(indices, dtype=int)
        self.max_distance = float(distances[worst])
        logger.debug(
            "Interface mapping: %d source -> %d target points, max distance %.3e",
            self.n_source, self.n_target, self.max_distance,
        )

    @classmethod
    def from_config(cls, source_points: ArrayLike, target_points: ArrayLike,
                    config) -> "InterfaceMapping":
        """Mapping with the ``geometric_tolerance`` of a ``CouplingConfig``."""
        return cls(source_points, target_points, config.geometric_tolerance)

    @property
    def n_source(self) -> int:
        return self.source_points.shape[0]

    @property
    def n_target(self) -> int:
        return self.target_points.shape[0]

    def transfer(self, field: ArrayLike) -> NDArray:
        """
        Transfer a point field from the source to the target interface.

        Parameters
        ----------
        field : array_like
            Either one value per source point (``(n_source,)``), one row of
            components per source point (``(n_source, n_comp)``) or the same
            values flattened point-wise (``(n_source * n_comp,)``).

        Returns
        -------
        np.ndarray
            Field on the target points, in the layout of ``field``.
        """
        values = np.asarray(field, dtype=float)

        if values.ndim == 2:
            if values.shape[0] != self.n_source:
                raise ValueError(f"Field has {values.shape[0]} rows, expected {self.n_source}")
            return values[self.indices].copy()

        if values.ndim != 1 or values.size % self.n_source != 0:
            raise ValueError(
                f"Field of shape {values.shape} does not match {self.n_source} source points"
            )
        n_comp = values.size // self.n_source
        mapped = values.reshape(self.n_source, n_comp)[self.indices]
        return mapped.reshape(-1)

    def __repr__(self) -> str:
        return (f"InterfaceMapping(n_source={self.n_source}, n_target={self.n_target}, "
                f"geometric_tolerance={self.geometric_tolerance})")


def transfer(field: ArrayLike, source_points: ArrayLike, target_points: ArrayLike,
             geometric_tolerance: float) -> NDArray:
    """One-off transfer of ``field``; see ``InterfaceMapping``."""
    return InterfaceMapping(source_points, target_points, geometric_tolerance).transfer(field)


def _as_points(points: ArrayLike, name: str) -> NDArray:
    array = np.asarray(points, dtype=float)
    if array.ndim == 1:
        array = array.reshape(-1, 1)
    if array.ndim != 2 or array.shape[0] == 0:
        raise ValueError(f"{name} must be a non-empty (n_points, dim) array, got {array.shape}")
    return array
