"""
Unit tests for the field vector operations.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from fsi_coupling.acceleration.qr import compute_qr_decomposition
from fsi_coupling.core.vectors import (
    NumpyVectorOps,
    register_vector_ops,
    registered_vector_types,
    vector_ops_for,
)


class RecordingComm:
    """
    Stand-in for an mpi4py communicator with ``size`` identical ranks.

    Every rank owns the same local block, so a sum reduction multiplies the
    local value by ``size``.
    """

    def __init__(self, size=2):
        self.size = size
        self.calls = 0

    def allreduce(self, value):
        self.calls += 1
        return value * self.size


class TestNumpyVectorOps:
    @pytest.fixture
    def ops(self):
        return NumpyVectorOps()

    def test_dot_and_norm(self, ops):
        x = np.array([3.0, 4.0])
        assert ops.dot(x, x) == pytest.approx(25.0)
        assert ops.norm(x) == pytest.approx(5.0)

    def test_axpy_in_place(self, ops):
        y = np.array([1.0, 1.0])
        result = ops.axpy(y, 2.0, np.array([1.0, -1.0]))
        assert result is y
        assert_array_equal(y, [3.0, -1.0])

    def test_copy_is_independent(self, ops):
        x = np.array([1.0, 2.0])
        c = ops.copy(x)
        c[0] = 10.0
        assert x[0] == 1.0

    def test_zero_operations(self, ops):
        x = np.array([1.0, 2.0])
        assert_array_equal(ops.zeros_like(x), 0.0)
        ops.set_zero(x)
        assert_array_equal(x, 0.0)

    def test_scale_and_difference(self, ops):
        x = np.array([1.0, 2.0])
        assert_array_equal(ops.difference(x, np.array([0.5, 0.5])), [0.5, 1.5])
        ops.scale(x, -2.0)
        assert_array_equal(x, [-2.0, -4.0])

    def test_all_finite(self, ops):
        assert ops.all_finite(np.ones(3))
        assert not ops.all_finite(np.array([1.0, np.nan]))
        assert not ops.all_finite(np.array([np.inf, 1.0]))

    def test_size(self, ops):
        assert ops.size(np.ones((3, 2))) == 6


class TestDistributedReductions:
    """Every scalar is completed with a collective reduction."""

    def test_dot_is_reduced(self):
        comm = RecordingComm(size=3)
        ops = NumpyVectorOps(comm)
        x = np.array([1.0, 2.0])

        assert ops.dot(x, x) == pytest.approx(15.0)
        assert ops.norm(x) == pytest.approx(np.sqrt(15.0))
        assert ops.size(x) == 6
        assert comm.calls == 3

    def test_non_finite_on_any_rank(self):
        comm = RecordingComm(size=4)
        ops = NumpyVectorOps(comm)
        assert not ops.all_finite(np.array([np.nan, 0.0]))
        assert ops.all_finite(np.zeros(2))
        assert comm.calls == 2

    def test_qr_uses_reduced_inner_products(self):
        """The QR factor is computed from global inner products."""
        comm = RecordingComm(size=4)
        ops = NumpyVectorOps(comm)
        Q = [np.array([1.0, 0.0]), np.array([1.0, 1.0])]

        R, _ = compute_qr_decomposition(Q, ops=ops)

        # global vectors are 4 stacked copies of the local blocks
        assert_allclose(R.get(0, 0), 2.0)
        assert_allclose(R.get(0, 1), 2.0)
        assert_allclose(R.get(1, 1), 2.0)
        assert comm.calls > 0


class TestRegistry:
    def test_numpy_registered(self):
        assert isinstance(vector_ops_for(np.zeros(2)), NumpyVectorOps)
        assert "ndarray" in registered_vector_types()

    def test_unknown_type(self):
        with pytest.raises(TypeError):
            vector_ops_for([1.0, 2.0])

    def test_register_custom_type(self):
        class Field(np.ndarray):
            pass

        comm = RecordingComm()
        register_vector_ops(Field, lambda vector: NumpyVectorOps(comm))

        field = np.zeros(3).view(Field)
        ops = vector_ops_for(field)

        assert ops.comm is comm


class TestCommWorld:
    def test_world_reduces_over_all_ranks(self):
        MPI = pytest.importorskip("mpi4py.MPI")
        ops = NumpyVectorOps.world()

        assert ops.comm is MPI.COMM_WORLD
        assert ops.dot(np.ones(3), np.ones(3)) == pytest.approx(3.0 * MPI.COMM_WORLD.Get_size())
