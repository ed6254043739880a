"""
Arbitrary Lagrangian-Eulerian mesh motion of the fluid domain.
"""

from ..core.config import MeshMotionType
from .mesh_motion import MeshMotion

__all__ = ["MeshMotion", "MeshMotionType"]
