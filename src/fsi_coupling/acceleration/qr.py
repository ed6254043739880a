"""
QR factorization and back-substitution for quasi-Newton least-squares problems.

The least-squares problems of the interface quasi-Newton method have as many
unknowns as there are history columns (a handful to a few dozen) but each
column is a full interface field. Columns are therefore orthogonalized in place
with modified Gram-Schmidt, using only inner products and vector updates, and
the small triangular factor is kept in a ``DenseMatrix``.
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from ..core.matrix import DenseMatrix
from ..core.vectors import VectorOps, vector_ops_for

logger = logging.getLogger(__name__)


def compute_qr_decomposition(
    Q: List, eps: float = 1.0e-2, ops: Optional[VectorOps] = None
) -> Tuple[DenseMatrix, List[int]]:
    """
    Orthonormalize ``Q`` in place and return the upper triangular factor.

    Columns that are (nearly) linearly dependent on their predecessors are
    dropped: the column is zeroed, its off-diagonal coefficients are zeroed and
    its diagonal is set to 1, so that column indices stay aligned with the
    matching input increments and back-substitution never divides by zero.
    No column reordering takes place.

    Parameters
    ----------
    Q : list of field vectors
        Columns to factorize; overwritten with the orthonormal basis.
    eps : float
        A column is dropped when its norm after orthogonalization falls below
        ``eps`` times its initial norm.
    ops : VectorOps, optional
        Vector operations; selected from the column type if omitted.

    Returns
    -------
    R : DenseMatrix
        Upper triangular factor with ``len(Q)`` rows.
    deflated : list of int
        Indices of dropped columns.
    """
    n = len(Q)
    R = DenseMatrix(n)
    deflated = []
    if n == 0:
        return R, deflated
    ops = ops or vector_ops_for(Q[0])

    for i in range(n):
        norm_initial = ops.norm(Q[i])

        for j in range(i):
            r_ji = ops.dot(Q[j], Q[i])
            R.set(r_ji, j, i)
            ops.axpy(Q[i], -r_ji, Q[j])

        r_ii = ops.norm(Q[i])
        if r_ii < eps * norm_initial or r_ii == 0.0:
            ops.set_zero(Q[i])
            for j in range(i):
                R.set(0.0, j, i)
            R.set(1.0, i, i)
            deflated.append(i)
        else:
            R.set(r_ii, i, i)
            ops.scale(Q[i], 1.0 / r_ii)

    if deflated:
        logger.debug("QR: dropped %d of %d linearly dependent columns %s", len(deflated), n,
                     deflated)
    return R, deflated


def _as_matrix(matrix: Union[DenseMatrix, np.ndarray, Sequence[Sequence[float]]]) -> np.ndarray:
    if isinstance(matrix, DenseMatrix):
        return matrix.to_array()
    array = np.asarray(matrix, dtype=float)
    if array.ndim != 2 or array.shape[0] != array.shape[1]:
        raise ValueError(f"Back-substitution requires a square matrix, got shape {array.shape}")
    return array


def backward_substitution(
    matrix: Union[DenseMatrix, np.ndarray], rhs: Sequence[float]
) -> List[float]:
    """
    Solve the upper triangular system ``matrix @ x = rhs``.

    Parameters
    ----------
    matrix : DenseMatrix or array_like
        Square upper triangular matrix with non-zero diagonal.
    rhs : sequence of float
        Right-hand side of the same length.

    Returns
    -------
    list of float
        The solution ``x``.
    """
    U = _as_matrix(matrix)
    n = len(rhs)
    if U.shape[0] != n:
        raise ValueError(f"Right-hand side has length {n}, matrix has size {U.shape[0]}")

    dst = [0.0] * n
    for i in range(n - 1, -1, -1):
        value = float(rhs[i])
        for j in range(i + 1, n):
            value -= U[i, j] * dst[j]
        dst[i] = value / U[i, i]
    return dst


def backward_substitution_multiple_rhs(
    matrix: Union[DenseMatrix, np.ndarray], rhs: Sequence, ops: Optional[VectorOps] = None
) -> List:
    """
    Solve ``matrix @ X = rhs`` where the unknowns and right-hand sides are field vectors.

    Entry ``i`` of the result satisfies
    ``sum_j matrix[i, j] * X[j] = rhs[i]``. The inputs are not modified.

    Parameters
    ----------
    matrix : DenseMatrix or array_like
        Square upper triangular matrix with non-zero diagonal.
    rhs : sequence of field vectors
        Right-hand sides, one per row.
    ops : VectorOps, optional
        Vector operations; selected from the vector type if omitted.

    Returns
    -------
    list of field vectors
        Newly allocated solution vectors.
    """
    U = _as_matrix(matrix)
    n = len(rhs)
    if U.shape[0] != n:
        raise ValueError(f"Right-hand side has length {n}, matrix has size {U.shape[0]}")
    if n == 0:
        return []
    ops = ops or vector_ops_for(rhs[0])

    dst = [None] * n
    for i in range(n - 1, -1, -1):
        value = ops.copy(rhs[i])
        for j in range(i + 1, n):
            ops.axpy(value, -U[i, j], dst[j])
        dst[i] = ops.scale(value, 1.0 / U[i, i])
    return dst
