"""
Interface coupling between the fluid, structure and mesh motion interfaces.
"""

from .mapping import InterfaceMapping, transfer

__all__ = ["InterfaceMapping", "transfer"]
