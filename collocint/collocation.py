import functools
import logging
from dataclasses import dataclass

import numpy as np
from scipy.special import roots_jacobi as _scipy_roots_jacobi
from scipy.special import roots_legendre as _scipy_roots_legendre

from .ci_types import CollocationScheme, FloatArray
from .exceptions import DataIntegrityError
from .input_validation import validate_collocation_scheme, validate_interpolation_order
from .utils.constants import (
    COEFFICIENT_PRECISION,
    DEFAULT_LRU_CACHE_SIZE,
    NODE_COINCIDENCE_TOLERANCE,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollocationCoefficients:
    """Node grid and interpolation coefficients of one collocation scheme.

    Attributes:
        degree: Number of interior collocation nodes ``d``.
        scheme: ``"radau"`` or ``"legendre"``.
        tau_root: Normalized node grid of length ``d + 1``; ``tau_root[0] == 0``.
        C: Differentiation coefficients, ``C[j, r] = L_j'(tau_root[r])``.
        D: Continuity coefficients, the basis evaluated at the interval end.
        B: Quadrature weights, the basis integrated over ``[0, 1]``.
    """

    degree: int
    scheme: CollocationScheme
    tau_root: FloatArray
    C: FloatArray
    D: FloatArray
    B: FloatArray

    @property
    def collocation_nodes(self) -> FloatArray:
        return self.tau_root[1:]


def _roots_jacobi(n: int, alpha: float, beta: float) -> tuple[FloatArray, FloatArray]:
    result = _scipy_roots_jacobi(n, alpha, beta)
    return (
        np.asarray(result[0], dtype=np.float64),
        np.asarray(result[1], dtype=np.float64),
    )


def _radau_points(degree: int) -> FloatArray:
    # Right Radau IIA nodes: roots of P_{d-1}^{(1,0)} on [-1, 1] plus the right endpoint
    if degree == 1:
        interior = np.array([], dtype=np.float64)
    else:
        roots, _ = _roots_jacobi(degree - 1, 1.0, 0.0)
        interior = np.sort((roots + 1.0) / 2.0)
    # Endpoint appended as a literal so tau_root[d] == 1 holds exactly
    return np.concatenate([interior, np.array([1.0], dtype=np.float64)])


def _legendre_points(degree: int) -> FloatArray:
    roots, _ = _scipy_roots_legendre(degree)
    return np.sort((np.asarray(roots, dtype=np.float64) + 1.0) / 2.0)


def collocation_points(degree: int, scheme: str) -> FloatArray:
    """Return the ``degree`` collocation nodes of ``scheme`` on ``(0, 1]`` in ascending order."""
    validate_interpolation_order(degree)
    validate_collocation_scheme(scheme)

    if scheme == "radau":
        return _radau_points(int(degree))
    return _legendre_points(int(degree))


def _freeze(array: FloatArray) -> FloatArray:
    array.setflags(write=False)
    return array


def _compute_barycentric_weights(nodes: FloatArray) -> FloatArray:
    num_nodes = len(nodes)
    if num_nodes == 1:
        return np.array([1.0], dtype=np.float64)

    differences_matrix = nodes[:, np.newaxis] - nodes[np.newaxis, :]
    differences_matrix[np.eye(num_nodes, dtype=bool)] = 1.0
    products = np.prod(differences_matrix, axis=1, dtype=np.float64)

    return (1.0 / products).astype(np.float64)


def _evaluate_lagrange_basis_at_point(
    nodes: FloatArray, barycentric_weights: FloatArray, tau: float
) -> FloatArray:
    """Values of every Lagrange basis polynomial on ``nodes`` at ``tau``."""
    differences = tau - nodes
    coincident_mask = np.abs(differences) <= NODE_COINCIDENCE_TOLERANCE

    if np.any(coincident_mask):
        lagrange_values = np.zeros(len(nodes), dtype=np.float64)
        lagrange_values[np.argmax(coincident_mask)] = 1.0
        return lagrange_values

    terms = barycentric_weights / differences
    return terms / np.sum(terms)


def _compute_differentiation_matrix(
    nodes: FloatArray, barycentric_weights: FloatArray
) -> FloatArray:
    # Row r holds L_j'(nodes[r]) for every j
    num_nodes = len(nodes)
    differences_matrix = nodes[:, np.newaxis] - nodes[np.newaxis, :]
    off_diagonal = ~np.eye(num_nodes, dtype=bool)

    derivatives = np.zeros((num_nodes, num_nodes), dtype=np.float64)
    weight_ratios = barycentric_weights[np.newaxis, :] / barycentric_weights[:, np.newaxis]
    derivatives[off_diagonal] = weight_ratios[off_diagonal] / differences_matrix[off_diagonal]

    # Derivatives of the basis sum to zero at every node
    np.fill_diagonal(derivatives, -np.sum(derivatives, axis=1))
    return derivatives


@functools.lru_cache(maxsize=DEFAULT_LRU_CACHE_SIZE)
def _compute_collocation_coefficients(degree: int, scheme: str) -> CollocationCoefficients:
    tau_root = np.concatenate([np.zeros(1, dtype=np.float64), collocation_points(degree, scheme)])
    bary_weights = _compute_barycentric_weights(tau_root)

    # C[j, r] = L_j'(tau_root[r])
    C = _compute_differentiation_matrix(tau_root, bary_weights).T.copy()

    # Radau nodes contain tau = 1, so the end-of-interval basis values are an indicator
    if scheme == "radau":
        D = np.zeros(degree + 1, dtype=np.float64)
        D[degree] = 1.0
    else:
        D = _evaluate_lagrange_basis_at_point(tau_root, bary_weights, 1.0)

    # Gauss-Legendre with d + 1 points integrates the degree-d basis exactly
    quadrature_roots, quadrature_weights = _scipy_roots_legendre(degree + 1)
    B = np.zeros(degree + 1, dtype=np.float64)
    for root, weight in zip(quadrature_roots, quadrature_weights):
        tau = (float(root) + 1.0) / 2.0
        B += 0.5 * float(weight) * _evaluate_lagrange_basis_at_point(tau_root, bary_weights, tau)

    for label, values in (("D", D), ("B", B)):
        deviation = abs(float(np.sum(values)) - 1.0)
        if deviation > COEFFICIENT_PRECISION:
            raise DataIntegrityError(
                f"sum({label}) deviates from 1 by {deviation:.3e} for {scheme} d={degree}",
                "collocation coefficient computation",
            )

    logger.debug(
        "Collocation coefficients (%s, d=%d): tau_root=%s, sum(D)=%.16g, sum(B)=%.16g",
        scheme,
        degree,
        tau_root.tolist(),
        float(np.sum(D)),
        float(np.sum(B)),
    )

    return CollocationCoefficients(
        degree=degree,
        scheme=scheme,
        tau_root=_freeze(tau_root),
        C=_freeze(C),
        D=_freeze(D),
        B=_freeze(B),
    )


def compute_collocation_coefficients(degree: int, scheme: str) -> CollocationCoefficients:
    """Get memoized collocation coefficients for ``(degree, scheme)``.

    Degree and scheme are validated before any derivation so that
    configuration errors surface eagerly.

    Raises:
        InvalidDegreeError: If ``degree`` is not an integer >= 1.
        InvalidSchemeError: If ``scheme`` is not ``"radau"`` or ``"legendre"``.
    """
    validate_interpolation_order(degree)
    validate_collocation_scheme(scheme)

    return _compute_collocation_coefficients(int(degree), scheme)
