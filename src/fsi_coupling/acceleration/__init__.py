"""
Acceleration of the partitioned fixed-point iteration.

Provides the QR factorization and back-substitution kernels, the secant
history, Aitken relaxation and the IQN-ILS quasi-Newton accelerator.
"""

from .aitken import AitkenRelaxation
from .history import HistoryEntry, HistoryStore, inv_jacobian_times_residual
from .iqn import IQNILSAccelerator
from .qr import backward_substitution, backward_substitution_multiple_rhs, compute_qr_decomposition

__all__ = [
    "AitkenRelaxation",
    "HistoryEntry",
    "HistoryStore",
    "IQNILSAccelerator",
    "backward_substitution",
    "backward_substitution_multiple_rhs",
    "compute_qr_decomposition",
    "inv_jacobian_times_residual",
]
