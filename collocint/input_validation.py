import logging
from collections.abc import Iterable
from typing import Any

import casadi as ca
import numpy as np

from .ci_types import FloatArray, NumericArrayLike
from .exceptions import (
    ConfigurationError,
    DataIntegrityError,
    DimensionMismatchError,
    InvalidDegreeError,
    InvalidSchemeError,
)
from .utils.constants import SUPPORTED_COLLOCATION_SCHEMES


logger = logging.getLogger(__name__)


# ============================================================================
# CORE VALIDATION PRIMITIVES
# ============================================================================


def validate_interpolation_order(value: Any) -> None:
    """Single source for polynomial degree validation."""
    # bool is an int subclass but never a meaningful degree
    if isinstance(value, bool) or not isinstance(value, int | np.integer):
        raise InvalidDegreeError(
            f"interpolation_order must be integer, got {type(value).__name__}",
            "collocation configuration",
        )
    if value < 1:
        raise InvalidDegreeError(
            f"interpolation_order must be >= 1, got {value}", "collocation configuration"
        )


def validate_collocation_scheme(value: Any) -> None:
    """Single source for scheme name validation."""
    if not isinstance(value, str):
        raise InvalidSchemeError(
            f"collocation_scheme must be string, got {type(value).__name__}",
            "collocation configuration",
        )
    if value not in SUPPORTED_COLLOCATION_SCHEMES:
        raise InvalidSchemeError(
            f"Unknown collocation_scheme '{value}', expected one of "
            f"{', '.join(SUPPORTED_COLLOCATION_SCHEMES)}",
            "collocation configuration",
        )


def validate_known_keys(keys: Iterable[str], allowed: Iterable[str], context: str) -> None:
    allowed_set = set(allowed)
    unknown = sorted(set(keys) - allowed_set)
    if unknown:
        raise ConfigurationError(
            f"Unrecognized option(s): {', '.join(unknown)}. "
            f"Allowed: {', '.join(sorted(allowed_set))}",
            context,
        )


def validate_array_numerical_integrity(
    array: FloatArray, name: str, context: str = "validation"
) -> None:
    """Single source for NaN/Inf validation."""
    if np.any(np.isnan(array)) or np.any(np.isinf(array)):
        raise DataIntegrityError(
            f"{name} contains NaN or Inf values", f"Numerical corruption in {context}"
        )


def as_column_vector(
    value: NumericArrayLike, expected_size: int, name: str, context: str = "validation"
) -> FloatArray:
    """Flatten a numeric input to a float64 vector of the expected size."""
    array = np.asarray(value, dtype=np.float64).flatten()
    if array.size != expected_size:
        raise DimensionMismatchError(
            f"{name} has {array.size} entries, expected {expected_size}", context
        )
    validate_array_numerical_integrity(array, name, context)
    return array


# ============================================================================
# CASADI SIGNATURE VALIDATION
# ============================================================================


def validate_function_signature(
    function: ca.Function,
    input_names: tuple[str, ...],
    output_names: tuple[str, ...],
    context: str,
) -> None:
    """Check that a CasADi function declares exactly the expected named inputs/outputs."""
    if not isinstance(function, ca.Function):
        raise ConfigurationError(
            f"Expected casadi.Function, got {type(function).__name__}", context
        )

    declared_in = set(function.name_in())
    declared_out = set(function.name_out())

    missing_in = [name for name in input_names if name not in declared_in]
    extra_in = sorted(declared_in - set(input_names))
    if missing_in or extra_in:
        raise DimensionMismatchError(
            f"Function '{function.name()}' inputs {sorted(declared_in)} do not match "
            f"expected {list(input_names)}",
            context,
        )

    missing_out = [name for name in output_names if name not in declared_out]
    extra_out = sorted(declared_out - set(output_names))
    if missing_out or extra_out:
        raise DimensionMismatchError(
            f"Function '{function.name()}' outputs {sorted(declared_out)} do not match "
            f"expected {list(output_names)}",
            context,
        )


def validate_column_shape(function: ca.Function, name: str, is_input: bool, context: str) -> int:
    """Return the entry count of a named function port, requiring a column vector."""
    if is_input:
        rows, cols = function.size1_in(name), function.size2_in(name)
    else:
        rows, cols = function.size1_out(name), function.size2_out(name)

    if cols != 1 and rows * cols > 0:
        raise DimensionMismatchError(
            f"'{name}' of function '{function.name()}' must be a column vector, "
            f"got {rows}x{cols}",
            context,
        )
    return rows * cols


def validate_matching_size(actual: int, expected: int, name: str, context: str) -> None:
    if actual != expected:
        raise DimensionMismatchError(
            f"'{name}' has {actual} entries, expected {expected}", context
        )
