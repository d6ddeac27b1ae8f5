# collocint/discretization.py
"""
Collocation discretization of a DAE: coefficients, step relations and state buffers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import casadi as ca

from .ci_types import (
    BACKWARD_STEP_INPUTS,
    BACKWARD_STEP_OUTPUTS,
    FORWARD_STEP_INPUTS,
    FORWARD_STEP_OUTPUTS,
    NumericArrayLike,
)
from .collocation import CollocationCoefficients, compute_collocation_coefficients
from .dae import BackwardDAEModel, DAEDimensions, DAEModel
from .exceptions import DataIntegrityError, DimensionMismatchError, MissingBackwardModelError
from .options import CollocationOptions
from .persistence import CollocationRecord
from .step import StateBuffer, StepRelation, build_backward_step, build_forward_step
from .step.initial_guess_step import last_algebraic_block, replicate_initial_guess


logger = logging.getLogger(__name__)


def _resolve_options(
    options: CollocationOptions | Mapping[str, Any] | None,
) -> CollocationOptions:
    if isinstance(options, CollocationOptions):
        return options
    return CollocationOptions.from_dict(options)


def _block_sizes(
    relation: StepRelation, state_input: str, stacked_input: str, degree: int
) -> tuple[int, int]:
    n_diff = relation.input_size(state_input)
    stacked = relation.input_size(stacked_input)
    if stacked % degree != 0 or stacked // degree < n_diff:
        raise DataIntegrityError(
            f"'{stacked_input}' of size {stacked} is not {degree} blocks of at least {n_diff}",
            f"step relation '{relation.name}'",
        )
    return n_diff, stacked // degree - n_diff


def _verify_block_layout(
    relation: StepRelation,
    state_input: str,
    degree: int,
    n_diff: int,
    n_alg: int,
    differential_uses_state: bool,
) -> None:
    """Check that the residual's row blocks match a ``degree``-node layout.

    Algebraic residual rows never reference the interval start state, while
    forward differential rows always do through the interpolant derivative.
    """
    context = f"step relation '{relation.name}'"
    n_residual = relation.function.numel_out("residual")
    if n_residual != degree * (n_diff + n_alg):
        raise DataIntegrityError(
            f"Residual has {n_residual} rows, expected {degree} blocks of {n_diff + n_alg}",
            context,
        )

    dependent_rows = set(relation.function.sparsity_jac(state_input, "residual").row())
    for block in range(degree):
        offset = block * (n_diff + n_alg)
        differential_rows = range(offset, offset + n_diff)
        algebraic_rows = range(offset + n_diff, offset + n_diff + n_alg)

        if any(row in dependent_rows for row in algebraic_rows):
            raise DataIntegrityError(
                f"Residual block {block} does not have the layout of degree {degree} "
                f"with {n_diff} differential and {n_alg} algebraic entries",
                context,
            )
        if differential_uses_state and not all(row in dependent_rows for row in differential_rows):
            raise DataIntegrityError(
                f"Residual block {block} differential rows do not reference '{state_input}'; "
                f"relation was not built for degree {degree}",
                context,
            )


class CollocationDiscretization:
    """Fixed-step collocation discretization of one DAE model.

    Everything is derived eagerly in the constructor: options are validated,
    the coefficients computed, and the forward step (plus the backward step
    when a backward DAE is given) assembled. Invalid configurations raise
    immediately and never at the first step evaluation.

    Args:
        dae: Forward DAE as a :class:`DAEModel` or a named ``casadi.Function``.
        backward_dae: Optional backward DAE. Without it the discretization is
            forward-only and ``has_backward`` is False.
        options: ``CollocationOptions`` or a mapping with ``interpolation_order``
            and ``collocation_scheme``.
        dimensions: Optional expected forward DAE sizes.

    Raises:
        ConfigurationError: On unknown option keys.
        InvalidDegreeError: On an invalid interpolation order.
        InvalidSchemeError: On an unsupported collocation scheme.
        DimensionMismatchError: If a DAE signature disagrees with the expected sizes.

    Examples:
        >>> x = ca.SX.sym("x")
        >>> dae = DAEModel.from_expressions(x=x, ode=-x)
        >>> disc = CollocationDiscretization(dae, options={"interpolation_order": 2})
        >>> buffer = disc.reset([1.0])
        >>> out = disc.forward_step(t0=0.0, h=0.1, x0=[1.0], v=buffer.data)
    """

    def __init__(
        self,
        dae: DAEModel | ca.Function,
        backward_dae: BackwardDAEModel | ca.Function | None = None,
        options: CollocationOptions | Mapping[str, Any] | None = None,
        dimensions: DAEDimensions | None = None,
    ) -> None:
        resolved = _resolve_options(options)
        coefficients = compute_collocation_coefficients(
            resolved.interpolation_order, resolved.collocation_scheme
        )

        dae_model = dae if isinstance(dae, DAEModel) else DAEModel(dae, dimensions)
        if dimensions is not None and dae_model.dimensions != dimensions:
            raise DimensionMismatchError(
                f"Configured dimensions {dimensions} disagree with "
                f"declared {dae_model.dimensions}",
                "DAE signature",
            )

        backward_model: BackwardDAEModel | None = None
        if backward_dae is not None:
            backward_model = (
                backward_dae
                if isinstance(backward_dae, BackwardDAEModel)
                else BackwardDAEModel(backward_dae)
            )

        forward = build_forward_step(dae_model, coefficients)
        backward = (
            build_backward_step(dae_model, backward_model, coefficients)
            if backward_model is not None
            else None
        )

        self._initialize(resolved, forward, backward, coefficients)

        logger.info(
            "Collocation discretization ready: scheme=%s, degree=%d, nx=%d, nz=%d, adjoint=%s",
            self.scheme,
            self.degree,
            self._nx,
            self._nz,
            "available" if self.has_backward else "unavailable",
        )

    def _initialize(
        self,
        options: CollocationOptions,
        forward: StepRelation,
        backward: StepRelation | None,
        coefficients: CollocationCoefficients | None,
    ) -> None:
        self._options = options
        self._forward = forward
        self._backward = backward
        self._coefficients = coefficients

        degree = options.interpolation_order
        self._nx, self._nz = _block_sizes(forward, "x0", "v", degree)
        _verify_block_layout(forward, "x0", degree, self._nx, self._nz, True)
        if backward is not None:
            self._nrx, self._nrz = _block_sizes(backward, "rx0", "rv", degree)
            # Radau continuity weights vanish off the last node, so only algebraic rows are checked
            _verify_block_layout(backward, "rx0", degree, self._nrx, self._nrz, False)
        else:
            self._nrx, self._nrz = 0, 0

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def options(self) -> CollocationOptions:
        return self._options

    @property
    def degree(self) -> int:
        return self._options.interpolation_order

    @property
    def scheme(self) -> str:
        return self._options.collocation_scheme

    @property
    def coefficients(self) -> CollocationCoefficients:
        # Restored discretizations carry the coefficients inside their relations
        if self._coefficients is None:
            self._coefficients = compute_collocation_coefficients(self.degree, self.scheme)
        return self._coefficients

    # ------------------------------------------------------------------
    # Step relations
    # ------------------------------------------------------------------

    @property
    def forward_step(self) -> StepRelation:
        return self._forward

    @property
    def has_backward(self) -> bool:
        return self._backward is not None

    @property
    def backward_step(self) -> StepRelation:
        """The adjoint step relation.

        Raises:
            MissingBackwardModelError: If no backward DAE was supplied.
        """
        if self._backward is None:
            raise MissingBackwardModelError(
                "Backward step requested but no backward DAE was supplied",
                "adjoint capability unavailable",
            )
        return self._backward

    # ------------------------------------------------------------------
    # State initialization
    # ------------------------------------------------------------------

    def reset(
        self,
        x0: NumericArrayLike,
        z0: NumericArrayLike | None = None,
        buffer: StateBuffer | None = None,
    ) -> StateBuffer:
        """Initial guess for ``v``: ``concat(x0, z0)`` in every interior node block.

        Fills ``buffer`` in place when given, otherwise allocates a new one.
        """
        target = (
            buffer if buffer is not None else StateBuffer.allocate(self.degree, self._nx, self._nz)
        )
        self._check_buffer(target, self._nx, self._nz)
        target.reset(x0, z0)
        return target

    def reset_backward(
        self,
        rx0: NumericArrayLike,
        rz0: NumericArrayLike | None = None,
        buffer: StateBuffer | None = None,
    ) -> StateBuffer:
        """Initial guess for ``rv``: ``concat(rx0, rz0)`` in every interior node block.

        Raises:
            MissingBackwardModelError: If no backward DAE was supplied.
        """
        if self._backward is None:
            raise MissingBackwardModelError(
                "Backward reset requested but no backward DAE was supplied",
                "adjoint capability unavailable",
            )
        target = (
            buffer
            if buffer is not None
            else StateBuffer.allocate(self.degree, self._nrx, self._nrz)
        )
        self._check_buffer(target, self._nrx, self._nrz)
        target.reset(rx0, rz0)
        return target

    def _check_buffer(self, buffer: StateBuffer, n_diff: int, n_alg: int) -> None:
        if (buffer.degree, buffer.n_diff, buffer.n_alg) != (self.degree, n_diff, n_alg):
            raise DataIntegrityError(
                f"Buffer layout (d={buffer.degree}, {buffer.n_diff}+{buffer.n_alg}) does not "
                f"match discretization (d={self.degree}, {n_diff}+{n_alg})",
                "state buffer reuse",
            )

    def algebraic_state_init(self, x0: ca.MX, z0: ca.MX) -> ca.MX:
        """Symbolic initial guess for ``v``, matching :meth:`reset`."""
        return replicate_initial_guess(x0, z0, self.degree)

    def algebraic_state_output(self, v: ca.MX) -> ca.MX:
        """Algebraic state of the last interior node of a stacked ``v``."""
        return last_algebraic_block(v, self._nz)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_record(self) -> CollocationRecord:
        return CollocationRecord(
            degree=self.degree,
            scheme=self.scheme,
            forward=self._forward.serialize(),
            backward=self._backward.serialize() if self._backward is not None else None,
        )

    def serialize(self) -> str:
        return self.to_record().to_json()

    def save(self, path: str | Path) -> Path:
        return self.to_record().save(path)

    @classmethod
    def from_record(cls, record: CollocationRecord) -> CollocationDiscretization:
        """Rebuild a discretization from a record without recomputing coefficients.

        Raises:
            DataIntegrityError: If a relation's residual blocks do not match the
                recorded degree.
        """
        forward = StepRelation.deserialize(
            record.forward, FORWARD_STEP_INPUTS, FORWARD_STEP_OUTPUTS, unknown="v"
        )
        backward = (
            StepRelation.deserialize(
                record.backward, BACKWARD_STEP_INPUTS, BACKWARD_STEP_OUTPUTS, unknown="rv"
            )
            if record.backward is not None
            else None
        )

        instance = cls.__new__(cls)
        instance._initialize(
            CollocationOptions(
                interpolation_order=record.degree, collocation_scheme=record.scheme
            ),
            forward,
            backward,
            coefficients=None,
        )
        logger.info(
            "Collocation discretization restored: scheme=%s, degree=%d, adjoint=%s",
            record.scheme,
            record.degree,
            "available" if backward is not None else "unavailable",
        )
        return instance

    @classmethod
    def deserialize(cls, text: str) -> CollocationDiscretization:
        return cls.from_record(CollocationRecord.from_json(text))

    @classmethod
    def load(cls, path: str | Path) -> CollocationDiscretization:
        return cls.from_record(CollocationRecord.load(path))

    def __repr__(self) -> str:
        return (
            f"CollocationDiscretization(scheme={self.scheme!r}, degree={self.degree}, "
            f"nx={self._nx}, nz={self._nz}, has_backward={self.has_backward})"
        )
