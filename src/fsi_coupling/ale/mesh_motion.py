"""
Motion of the fluid (ALE) mesh.

The interface displacement is extended into the fluid mesh by solving a
discrete elliptic problem on the mesh graph, one problem per spatial component:

- ``MeshMotionType.POISSON``: graph Laplacian with unit edge weights
  (harmonic extension);
- ``MeshMotionType.ELASTICITY``: spring analogy, every edge is a spring of
  stiffness ``1 / length``, so small elements near the interface deform less.

Interface nodes follow the prescribed displacement, fixed nodes stay in place.
"""

import logging
from typing import Sequence, Tuple, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.sparse import coo_matrix
from scipy.sparse.linalg import spsolve

from ..core.config import MeshMotionType
from ..core.errors import FatalSolverError

logger = logging.getLogger(__name__)


class MeshMotion:
    """
    Mesh motion operator ``move(displacement) -> coordinates``.

    Parameters
    ----------
    motion_type : MeshMotionType or str
        Extension strategy (``"Poisson"`` or ``"Elasticity"``).
    points : array_like, shape (n_points, dim)
        Reference coordinates of the mesh nodes.
    edges : array_like, shape (n_edges, 2)
        Node pairs connected by a mesh edge.
    interface_nodes : sequence of int
        Nodes on the fluid-structure interface, in the order of the interface
        displacement passed to ``move``.
    fixed_nodes : sequence of int, optional
        Boundary nodes that do not move.

    Examples
    --------
    >>> motion = MeshMotion.rectangle("Elasticity", nx=10, ny=5)
    >>> coordinates = motion.move([0.0, 0.01])
    """

    def __init__(
        self,
        motion_type: Union[MeshMotionType, str],
        points: ArrayLike,
        edges: ArrayLike,
        interface_nodes: Sequence[int],
        fixed_nodes: Sequence[int] = (),
    ):
        self.motion_type = MeshMotionType.parse(motion_type)
        self.points = np.asarray(points, dtype=float)
        if self.points.ndim != 2:
            raise ValueError(f"points must be a (n_points, dim) array, got {self.points.shape}")
        self.edges = np.asarray(edges, dtype=int).reshape(-1, 2)
        self.interface_nodes = np.asarray(interface_nodes, dtype=int)
        self.fixed_nodes = np.setdiff1d(np.asarray(fixed_nodes, dtype=int), self.interface_nodes)
        if self.interface_nodes.size == 0:
            raise ValueError("At least one interface node is required")

        boundary = np.concatenate([self.interface_nodes, self.fixed_nodes])
        self.interior_nodes = np.setdiff1d(np.arange(self.n_points), boundary)

        self._stiffness = self._assemble()
        self.displacement = np.zeros_like(self.points)

    @property
    def n_points(self) -> int:
        return self.points.shape[0]

    @property
    def dim(self) -> int:
        return self.points.shape[1]

    @property
    def coordinates(self) -> NDArray:
        """Current node coordinates."""
        return self.points + self.displacement

    def _edge_weights(self) -> NDArray:
        if self.motion_type is MeshMotionType.POISSON:
            return np.ones(len(self.edges))
        elif self.motion_type is MeshMotionType.ELASTICITY:
            lengths = np.linalg.norm(
                self.points[self.edges[:, 1]] - self.points[self.edges[:, 0]], axis=1
            )
            if np.any(lengths <= 0.0):
                raise ValueError("Mesh contains edges of zero length")
            return 1.0 / lengths
        raise ValueError(f"Unsupported mesh motion type: {self.motion_type}")

    def _assemble(self):
        """Weighted graph Laplacian of the mesh in CSR format."""
        weights = self._edge_weights()
        i, j = self.edges[:, 0], self.edges[:, 1]
        rows = np.concatenate([i, j, i, j])
        cols = np.concatenate([j, i, i, j])
        data = np.concatenate([-weights, -weights, weights, weights])
        return coo_matrix((data, (rows, cols)), shape=(self.n_points, self.n_points)).tocsr()

    def move(self, displacement: ArrayLike) -> NDArray:
        """
        Deform the mesh for a given interface displacement.

        Parameters
        ----------
        displacement : array_like
            Interface displacement, either ``(n_interface, dim)``, flattened
            point-wise, or a single ``(dim,)`` vector applied to every
            interface node (rigid interface).

        Returns
        -------
        np.ndarray
            Updated node coordinates, shape ``(n_points, dim)``.

        Raises
        ------
        FatalSolverError
            If the extension produces non-finite coordinates.
        """
        n_interface = self.interface_nodes.size
        values = np.reshape(np.asarray(displacement, dtype=float), (-1, self.dim))
        interface_displacement = np.broadcast_to(values, (n_interface, self.dim))

        u = np.zeros_like(self.points)
        u[self.interface_nodes] = interface_displacement

        if self.interior_nodes.size:
            K = self._stiffness
            K_ii = K[self.interior_nodes][:, self.interior_nodes].tocsc()
            K_ib = K[self.interior_nodes][:, self.interface_nodes]
            for component in range(self.dim):
                rhs = -K_ib @ u[self.interface_nodes, component]
                u[self.interior_nodes, component] = spsolve(K_ii, rhs)

        if not np.all(np.isfinite(u)):
            raise FatalSolverError("mesh motion")

        self.displacement = u
        logger.debug("%s mesh motion: max node displacement %.3e", self.motion_type.value,
                     float(np.max(np.linalg.norm(u, axis=1))))
        return self.coordinates

    @classmethod
    def rectangle(
        cls,
        motion_type: Union[MeshMotionType, str],
        width: float = 1.0,
        height: float = 1.0,
        nx: int = 8,
        ny: int = 8,
    ) -> "MeshMotion":
        """
        Structured quadrilateral grid with the interface on the bottom edge.

        The remaining three edges are fixed; diagonals are not added, the mesh
        graph consists of the element edges.
        """
        points, edges = _rectangle_grid(width, height, nx, ny)
        interface = [node for node in range(len(points)) if points[node, 1] == 0.0]
        fixed = [
            node for node in range(len(points))
            if points[node, 1] == height or points[node, 0] in (0.0, width)
        ]
        return cls(motion_type, points, edges, interface, fixed)

    def __repr__(self) -> str:
        return (f"MeshMotion(type={self.motion_type.value}, n_points={self.n_points}, "
                f"n_interface={self.interface_nodes.size})")


def _rectangle_grid(width: float, height: float, nx: int,
                    ny: int) -> Tuple[NDArray, NDArray]:
    x = np.linspace(0.0, width, nx + 1)
    y = np.linspace(0.0, height, ny + 1)
    X, Y = np.meshgrid(x, y)
    points = np.column_stack([X.ravel(), Y.ravel()])

    def node(ix, iy):
        return iy * (nx + 1) + ix

    edges = []
    for iy in range(ny + 1):
        for ix in range(nx):
            edges.append((node(ix, iy), node(ix + 1, iy)))
    for iy in range(ny):
        for ix in range(nx + 1):
            edges.append((node(ix, iy), node(ix, iy + 1)))
    return points, np.asarray(edges, dtype=int)
