# collocint/utils/__init__.py
"""
Utility functions for collocint.
"""

from .casadi_utils import casadi_to_numpy, transposed_product


__all__ = [
    "casadi_to_numpy",
    "transposed_product",
]
