# collocint/step/initial_guess_step.py
"""
Interior-node unknown buffers and their heuristic initial guesses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import casadi as ca
import numpy as np

from ..ci_types import FloatArray, NumericArrayLike
from ..exceptions import DimensionMismatchError
from ..input_validation import as_column_vector


logger = logging.getLogger(__name__)


@dataclass
class StateBuffer:
    """Flat buffer of interior-node unknowns stacked per node as ``(diff_j, alg_j)``.

    A buffer belongs to exactly one integration run. The external root solver
    overwrites ``data`` in place between resets; the buffer never reallocates.
    """

    degree: int
    n_diff: int
    n_alg: int
    data: FloatArray = field(default_factory=lambda: np.zeros(0, dtype=np.float64))

    def __post_init__(self) -> None:
        expected = self.degree * self.block_size
        if self.data.size == 0 and expected > 0:
            self.data = np.zeros(expected, dtype=np.float64)
        if self.data.shape != (expected,):
            raise DimensionMismatchError(
                f"State buffer has shape {self.data.shape}, expected ({expected},)",
                "state buffer allocation",
            )

    @classmethod
    def allocate(cls, degree: int, n_diff: int, n_alg: int) -> StateBuffer:
        return cls(degree=degree, n_diff=n_diff, n_alg=n_alg)

    @property
    def block_size(self) -> int:
        return self.n_diff + self.n_alg

    def reset(self, diff0: NumericArrayLike, alg0: NumericArrayLike | None = None) -> FloatArray:
        """Replicate ``concat(diff0, alg0)`` into every node block, in place."""
        diff_vec = as_column_vector(diff0, self.n_diff, "initial differential state", "reset")
        alg_vec = as_column_vector(
            np.zeros(self.n_alg) if alg0 is None else alg0,
            self.n_alg,
            "initial algebraic state",
            "reset",
        )
        self.data[:] = np.tile(np.concatenate([diff_vec, alg_vec]), self.degree)
        return self.data

    def node(self, j: int) -> FloatArray:
        """Writable view of interior node ``j`` (1-based, as in the node grid)."""
        if not 1 <= j <= self.degree:
            raise IndexError(f"Interior node index {j} outside 1..{self.degree}")
        start = (j - 1) * self.block_size
        return self.data[start : start + self.block_size]

    def differential(self, j: int) -> FloatArray:
        return self.node(j)[: self.n_diff]

    def algebraic(self, j: int) -> FloatArray:
        return self.node(j)[self.n_diff :]

    def algebraic_output(self) -> FloatArray:
        """Algebraic state of the last interior node, the end-of-interval estimate."""
        return self.algebraic(self.degree).copy()


def replicate_initial_guess(diff0: ca.MX, alg0: ca.MX, degree: int) -> ca.MX:
    """Symbolic counterpart of :meth:`StateBuffer.reset`."""
    return ca.repmat(ca.vertcat(diff0, alg0), degree, 1)


def last_algebraic_block(stacked: ca.MX, n_alg: int) -> ca.MX:
    """Symbolic counterpart of :meth:`StateBuffer.algebraic_output`."""
    size = stacked.size1()
    return stacked[size - n_alg : size]
