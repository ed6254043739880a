"""
Core module for fsi-coupling.

Provides errors, configuration, the small dense matrix and field vector operations.
"""

from .config import (
    CouplingConfig,
    CouplingMethod,
    MeshMotionType,
    SimulationConfig,
)
from .errors import (
    ConfigurationError,
    ConvergenceFailure,
    CouplingError,
    FatalSolverError,
    GeometricMatchError,
)
from .matrix import DenseMatrix
from .vectors import NumpyVectorOps, VectorOps, register_vector_ops, vector_ops_for

try:
    from .petsc_vectors import PETScVectorOps
except ImportError:
    # petsc4py not available
    pass

__all__ = [
    "CouplingConfig",
    "CouplingMethod",
    "MeshMotionType",
    "SimulationConfig",
    "ConfigurationError",
    "ConvergenceFailure",
    "CouplingError",
    "FatalSolverError",
    "GeometricMatchError",
    "DenseMatrix",
    "NumpyVectorOps",
    "VectorOps",
    "register_vector_ops",
    "vector_ops_for",
]
