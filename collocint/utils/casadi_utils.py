import logging
from typing import cast

import casadi as ca
import numpy as np

from collocint.ci_types import CasadiSymbolic, FloatArray
from collocint.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def casadi_to_numpy(value: ca.DM | float) -> FloatArray:
    """Convert a numerical CasADi result to a flat float64 NumPy array."""
    if isinstance(value, ca.DM):
        return cast(FloatArray, np.array(value.full(), dtype=np.float64).flatten())
    return cast(FloatArray, np.array(value, dtype=np.float64).flatten())


def symbolic_class(*symbols: CasadiSymbolic | None) -> type[ca.SX] | type[ca.MX]:
    """Return the CasADi symbolic class shared by the given symbols.

    Raises:
        ConfigurationError: If SX and MX symbols are mixed or none are symbolic.
    """
    classes = {type(symbol) for symbol in symbols if symbol is not None}
    if not classes:
        raise ConfigurationError("At least one CasADi symbol is required", "DAE construction")
    if len(classes) > 1:
        raise ConfigurationError(
            f"Cannot mix CasADi symbolic types {sorted(c.__name__ for c in classes)}",
            "DAE construction",
        )
    sym_class = classes.pop()
    if sym_class not in (ca.SX, ca.MX):
        raise ConfigurationError(
            f"Expected casadi.SX or casadi.MX symbols, got {sym_class.__name__}",
            "DAE construction",
        )
    return sym_class


def empty_symbol(sym_class: type[ca.SX] | type[ca.MX], name: str) -> CasadiSymbolic:
    return sym_class.sym(name, 0, 1)


def empty_column(sym_class: type[ca.SX] | type[ca.MX]) -> CasadiSymbolic:
    return sym_class(0, 1)


def transposed_product(
    expression: CasadiSymbolic, argument: CasadiSymbolic, seed: CasadiSymbolic
) -> CasadiSymbolic:
    """Reverse-mode product ``(d expression / d argument)^T seed`` as a column."""
    jacobian = ca.jacobian(ca.vec(expression), argument)
    return ca.mtimes(jacobian.T, ca.vec(seed))
