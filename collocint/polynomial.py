"""
Polynomial algebra over coefficient lists for building collocation bases.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.polynomial import polynomial as npoly

from .ci_types import FloatArray
from .exceptions import DataIntegrityError


class Polynomial:
    """Immutable real polynomial with coefficients ordered from low to high degree.

    ``Polynomial([a0, a1, a2])`` represents ``a0 + a1*x + a2*x**2``.
    """

    __slots__ = ("_coefficients",)

    def __init__(self, coefficients: Sequence[float] | FloatArray) -> None:
        coeffs = np.array(coefficients, dtype=np.float64).flatten()
        if coeffs.size == 0:
            coeffs = np.zeros(1, dtype=np.float64)
        if not np.all(np.isfinite(coeffs)):
            raise DataIntegrityError(
                "Polynomial coefficients contain NaN or Inf values", "polynomial construction"
            )
        coeffs.setflags(write=False)
        self._coefficients = coeffs

    @classmethod
    def constant(cls, value: float) -> Polynomial:
        return cls([value])

    @classmethod
    def linear_factor(cls, root: float, scale: float = 1.0) -> Polynomial:
        """Return ``(x - root) / scale``."""
        return cls([-root / scale, 1.0 / scale])

    @property
    def coefficients(self) -> FloatArray:
        return self._coefficients

    @property
    def degree(self) -> int:
        nonzero = np.nonzero(self._coefficients)[0]
        return int(nonzero[-1]) if nonzero.size else 0

    def __call__(self, x: float) -> float:
        return float(npoly.polyval(x, self._coefficients))

    def __mul__(self, other: Polynomial | float) -> Polynomial:
        if isinstance(other, Polynomial):
            return Polynomial(npoly.polymul(self._coefficients, other._coefficients))
        return Polynomial(self._coefficients * float(other))

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> Polynomial:
        if scalar == 0:
            raise ZeroDivisionError("Polynomial division by zero")
        return Polynomial(self._coefficients / float(scalar))

    def derivative(self) -> Polynomial:
        return Polynomial(npoly.polyder(self._coefficients))

    def anti_derivative(self) -> Polynomial:
        """Antiderivative whose value at 0 is 0."""
        return Polynomial(npoly.polyint(self._coefficients, lbnd=0.0, k=0.0))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Polynomial):
            return NotImplemented
        size = max(self._coefficients.size, other._coefficients.size)
        return bool(
            np.array_equal(
                np.pad(self._coefficients, (0, size - self._coefficients.size)),
                np.pad(other._coefficients, (0, size - other._coefficients.size)),
            )
        )

    def __hash__(self) -> int:
        return hash(tuple(np.trim_zeros(self._coefficients, "b")))

    def __repr__(self) -> str:
        return f"Polynomial({self._coefficients.tolist()})"


def lagrange_basis(nodes: Sequence[float] | FloatArray, j: int) -> Polynomial:
    """Return the Lagrange polynomial that is 1 at ``nodes[j]`` and 0 at the other nodes."""
    nodes_array = np.asarray(nodes, dtype=np.float64)
    basis = Polynomial.constant(1.0)
    for r, node_r in enumerate(nodes_array):
        if r == j:
            continue
        spacing = nodes_array[j] - node_r
        if spacing == 0:
            raise DataIntegrityError(
                f"Nodes {j} and {r} coincide at {node_r}", "Lagrange basis construction"
            )
        basis = basis * Polynomial.linear_factor(float(node_r), float(spacing))
    return basis
