# collocint/dae.py
"""
DAE and backward DAE callables realized as named CasADi functions.

The collocation assemblers only ever call these models symbolically with
named arguments, so any pure ``casadi.Function`` with the right signature is
accepted, whether it was built from SX, MX or by composing other functions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import casadi as ca

from .ci_types import (
    BACKWARD_DAE_INPUTS,
    BACKWARD_DAE_OUTPUTS,
    DAE_INPUTS,
    DAE_OUTPUTS,
    CasadiSymbolic,
)
from .exceptions import DimensionMismatchError
from .input_validation import (
    validate_column_shape,
    validate_function_signature,
    validate_matching_size,
)
from .utils.casadi_utils import empty_column, empty_symbol, symbolic_class, transposed_product


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DAEDimensions:
    """Sizes of the forward DAE: states, algebraic states, parameters, controls, quadratures."""

    nx: int
    nz: int
    np: int
    nu: int
    nq: int


@dataclass(frozen=True)
class BackwardDAEDimensions:
    """Sizes of the backward DAE unknowns and outputs."""

    nrx: int
    nrz: int
    nrp: int
    nrq: int
    nuq: int


def _as_expression(value: Any, sym_class: type[ca.SX] | type[ca.MX]) -> CasadiSymbolic:
    if value is None:
        return empty_column(sym_class)
    if isinstance(value, list | tuple):
        return ca.vertcat(*value) if value else empty_column(sym_class)
    if isinstance(value, sym_class):
        return value
    return sym_class(value)


class DAEModel:
    """Forward DAE ``(t, x, z, p, u) -> (ode, alg, quad)``.

    Args:
        function: CasADi function with named inputs ``t, x, z, p, u`` and
            named outputs ``ode, alg, quad``.
        dimensions: Optional expected sizes; checked against the function.

    Raises:
        DimensionMismatchError: If names or sizes are inconsistent.
    """

    def __init__(self, function: ca.Function, dimensions: DAEDimensions | None = None) -> None:
        context = "DAE signature"
        validate_function_signature(function, DAE_INPUTS, DAE_OUTPUTS, context)

        validate_matching_size(validate_column_shape(function, "t", True, context), 1, "t", context)

        declared = DAEDimensions(
            nx=validate_column_shape(function, "x", True, context),
            nz=validate_column_shape(function, "z", True, context),
            np=validate_column_shape(function, "p", True, context),
            nu=validate_column_shape(function, "u", True, context),
            nq=validate_column_shape(function, "quad", False, context),
        )
        validate_matching_size(
            validate_column_shape(function, "ode", False, context), declared.nx, "ode", context
        )
        validate_matching_size(
            validate_column_shape(function, "alg", False, context), declared.nz, "alg", context
        )

        if dimensions is not None and dimensions != declared:
            raise DimensionMismatchError(
                f"Configured dimensions {dimensions} disagree with declared {declared}", context
            )

        self._function = function
        self._dimensions = declared
        logger.debug("DAE '%s' accepted with %s", function.name(), declared)

    @classmethod
    def from_expressions(
        cls,
        x: CasadiSymbolic,
        ode: Any,
        z: CasadiSymbolic | None = None,
        alg: Any = None,
        p: CasadiSymbolic | None = None,
        u: CasadiSymbolic | None = None,
        t: CasadiSymbolic | None = None,
        quad: Any = None,
        name: str = "dae",
    ) -> DAEModel:
        """Build a DAE from symbolic expressions; absent inputs become empty symbols."""
        sym_class = symbolic_class(x, z, p, u, t)

        inputs = [
            t if t is not None else sym_class.sym("t"),
            x,
            z if z is not None else empty_symbol(sym_class, "z"),
            p if p is not None else empty_symbol(sym_class, "p"),
            u if u is not None else empty_symbol(sym_class, "u"),
        ]
        outputs = [
            _as_expression(ode, sym_class),
            _as_expression(alg, sym_class),
            _as_expression(quad, sym_class),
        ]
        function = ca.Function(name, inputs, outputs, list(DAE_INPUTS), list(DAE_OUTPUTS))
        return cls(function)

    @property
    def function(self) -> ca.Function:
        return self._function

    @property
    def dimensions(self) -> DAEDimensions:
        return self._dimensions

    def __call__(self, **inputs: Any) -> dict[str, Any]:
        return self._function(**inputs)

    def __repr__(self) -> str:
        return f"DAEModel({self._function.name()!r}, {self._dimensions})"


class BackwardDAEModel:
    """Backward DAE ``(t, x, z, p, u, rx, rz, rp) -> (rode, ralg, rquad, uquad)``.

    Args:
        function: CasADi function with the backward named signature.
        dimensions: Optional expected backward sizes.

    Raises:
        DimensionMismatchError: If names or sizes are inconsistent.
    """

    def __init__(
        self, function: ca.Function, dimensions: BackwardDAEDimensions | None = None
    ) -> None:
        context = "backward DAE signature"
        validate_function_signature(function, BACKWARD_DAE_INPUTS, BACKWARD_DAE_OUTPUTS, context)

        validate_matching_size(validate_column_shape(function, "t", True, context), 1, "t", context)

        declared = BackwardDAEDimensions(
            nrx=validate_column_shape(function, "rx", True, context),
            nrz=validate_column_shape(function, "rz", True, context),
            nrp=validate_column_shape(function, "rp", True, context),
            nrq=validate_column_shape(function, "rquad", False, context),
            nuq=validate_column_shape(function, "uquad", False, context),
        )
        validate_matching_size(
            validate_column_shape(function, "rode", False, context), declared.nrx, "rode", context
        )
        validate_matching_size(
            validate_column_shape(function, "ralg", False, context), declared.nrz, "ralg", context
        )

        if dimensions is not None and dimensions != declared:
            raise DimensionMismatchError(
                f"Configured dimensions {dimensions} disagree with declared {declared}", context
            )

        self._function = function
        self._dimensions = declared
        self._forward_sizes = {
            name: validate_column_shape(function, name, True, context)
            for name in ("x", "z", "p", "u")
        }
        logger.debug("Backward DAE '%s' accepted with %s", function.name(), declared)

    @classmethod
    def from_expressions(
        cls,
        x: CasadiSymbolic,
        rx: CasadiSymbolic,
        rode: Any,
        z: CasadiSymbolic | None = None,
        p: CasadiSymbolic | None = None,
        u: CasadiSymbolic | None = None,
        t: CasadiSymbolic | None = None,
        rz: CasadiSymbolic | None = None,
        rp: CasadiSymbolic | None = None,
        ralg: Any = None,
        rquad: Any = None,
        uquad: Any = None,
        name: str = "backward_dae",
    ) -> BackwardDAEModel:
        """Build a backward DAE from symbolic expressions."""
        sym_class = symbolic_class(x, z, p, u, t, rx, rz, rp)

        inputs = [
            t if t is not None else sym_class.sym("t"),
            x,
            z if z is not None else empty_symbol(sym_class, "z"),
            p if p is not None else empty_symbol(sym_class, "p"),
            u if u is not None else empty_symbol(sym_class, "u"),
            rx,
            rz if rz is not None else empty_symbol(sym_class, "rz"),
            rp if rp is not None else empty_symbol(sym_class, "rp"),
        ]
        outputs = [
            _as_expression(rode, sym_class),
            _as_expression(ralg, sym_class),
            _as_expression(rquad, sym_class),
            _as_expression(uquad, sym_class),
        ]
        function = ca.Function(
            name, inputs, outputs, list(BACKWARD_DAE_INPUTS), list(BACKWARD_DAE_OUTPUTS)
        )
        return cls(function)

    @classmethod
    def from_reverse_mode(cls, dae: DAEModel, name: str = "backward_dae") -> BackwardDAEModel:
        """Derive the backward DAE as the reverse-mode derivative of ``dae``.

        With adjoint seeds ``rx`` for ``ode``, ``rz`` for ``alg`` and ``rp`` for
        ``quad``, every output is the transposed Jacobian product with respect to
        one forward input::

            rode  = ode_x^T rx + alg_x^T rz + quad_x^T rp
            ralg  = ode_z^T rx + alg_z^T rz + quad_z^T rp
            rquad = ode_p^T rx + alg_p^T rz + quad_p^T rp
            uquad = ode_u^T rx + alg_u^T rz + quad_u^T rp

        Combined with the backward collocation step this reproduces the exact
        adjoint of the forward collocation step.
        """
        dims = dae.dimensions

        t = ca.MX.sym("t")
        x = ca.MX.sym("x", dims.nx)
        z = ca.MX.sym("z", dims.nz)
        p = ca.MX.sym("p", dims.np)
        u = ca.MX.sym("u", dims.nu)
        rx = ca.MX.sym("rx", dims.nx)
        rz = ca.MX.sym("rz", dims.nz)
        rp = ca.MX.sym("rp", dims.nq)

        res = dae(t=t, x=x, z=z, p=p, u=u)
        seeded = [(res["ode"], rx), (res["alg"], rz), (res["quad"], rp)]

        def adjoint_wrt(argument: ca.MX) -> ca.MX:
            total = ca.MX.zeros(argument.numel(), 1)
            for expression, seed in seeded:
                total += transposed_product(expression, argument, seed)
            return total

        function = ca.Function(
            name,
            [t, x, z, p, u, rx, rz, rp],
            [adjoint_wrt(x), adjoint_wrt(z), adjoint_wrt(p), adjoint_wrt(u)],
            list(BACKWARD_DAE_INPUTS),
            list(BACKWARD_DAE_OUTPUTS),
        )
        logger.debug("Derived reverse-mode backward DAE '%s' from '%s'", name, dae.function.name())
        return cls(function)

    def check_compatible(self, dae: DAEModel) -> None:
        """Require the backward DAE to share the forward ``x, z, p, u`` sizes.

        Raises:
            DimensionMismatchError: On the first disagreeing input.
        """
        forward = dae.dimensions
        expected = {"x": forward.nx, "z": forward.nz, "p": forward.np, "u": forward.nu}
        for name, size in expected.items():
            validate_matching_size(
                self._forward_sizes[name], size, name, "backward DAE vs forward DAE"
            )

    @property
    def function(self) -> ca.Function:
        return self._function

    @property
    def dimensions(self) -> BackwardDAEDimensions:
        return self._dimensions

    def __call__(self, **inputs: Any) -> dict[str, Any]:
        return self._function(**inputs)

    def __repr__(self) -> str:
        return f"BackwardDAEModel({self._function.name()!r}, {self._dimensions})"
