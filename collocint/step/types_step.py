# collocint/step/types_step.py
"""
Step relation container shared by the forward and backward assemblers.
"""

from __future__ import annotations

import logging
from typing import Any

import casadi as ca
import numpy as np

from ..ci_types import FloatArray, StepOutputs
from ..exceptions import ConfigurationError, DataIntegrityError
from ..input_validation import as_column_vector, validate_function_signature
from ..utils.casadi_utils import casadi_to_numpy


logger = logging.getLogger(__name__)


class StepRelation:
    """Immutable residual system of one collocation interval.

    Wraps a CasADi function whose named inputs and outputs are fixed by the
    assembler that built it. The relation holds no state, so a single instance
    can be evaluated concurrently by independent solvers that own disjoint
    state buffers.

    Args:
        function: The compiled CasADi function.
        input_names: Ordered input names the function must declare.
        output_names: Ordered output names the function must declare.
        unknown: Name of the input that the external root solver determines.
    """

    __slots__ = (
        "_function",
        "_input_names",
        "_output_names",
        "_unknown",
        "_input_sizes",
        "_jacobian",
    )

    def __init__(
        self,
        function: ca.Function,
        input_names: tuple[str, ...],
        output_names: tuple[str, ...],
        unknown: str,
    ) -> None:
        validate_function_signature(function, input_names, output_names, "step relation")
        if list(function.name_in()) != list(input_names) or list(function.name_out()) != list(
            output_names
        ):
            raise DataIntegrityError(
                f"Step relation '{function.name()}' ports are out of order: "
                f"{function.name_in()} -> {function.name_out()}",
                "step relation",
            )
        if unknown not in input_names:
            raise ConfigurationError(f"Unknown input '{unknown}' is not an input name")

        self._function = function
        self._input_names = tuple(input_names)
        self._output_names = tuple(output_names)
        self._unknown = unknown
        self._input_sizes = {name: function.numel_in(name) for name in input_names}
        self._jacobian: ca.Function | None = None

    @property
    def function(self) -> ca.Function:
        return self._function

    @property
    def name(self) -> str:
        return self._function.name()

    @property
    def input_names(self) -> tuple[str, ...]:
        return self._input_names

    @property
    def output_names(self) -> tuple[str, ...]:
        return self._output_names

    @property
    def unknown(self) -> str:
        return self._unknown

    def input_size(self, name: str) -> int:
        if name not in self._input_sizes:
            raise ConfigurationError(
                f"'{name}' is not an input of step relation '{self.name}'",
                f"inputs: {', '.join(self._input_names)}",
            )
        return self._input_sizes[name]

    def _numeric_arguments(self, inputs: dict[str, Any]) -> dict[str, ca.DM]:
        return {
            name: ca.DM(as_column_vector(value, self.input_size(name), name, self.name))
            for name, value in inputs.items()
        }

    def __call__(self, **inputs: Any) -> StepOutputs:
        """Evaluate numerically; omitted inputs default to zero.

        Raises:
            ConfigurationError: If an input name is not part of the relation.
            DimensionMismatchError: If an input has the wrong number of entries.
            DataIntegrityError: If an input contains NaN or Inf.
        """
        result = self._function(**self._numeric_arguments(inputs))
        return {name: casadi_to_numpy(result[name]) for name in self._output_names}

    def residual_jacobian(self) -> ca.Function:
        """CasADi function giving ``d residual / d unknown`` for an external Newton solver.

        The returned function takes the same named inputs as the relation and
        has a single output named ``jac_residual_<unknown>``.
        """
        if self._jacobian is None:
            self._jacobian = self._function.factory(
                f"{self.name}_jac", list(self._input_names), [f"jac:residual:{self._unknown}"]
            )
        return self._jacobian

    def residual_jacobian_matrix(self, **inputs: Any) -> FloatArray:
        """Dense ``d residual / d unknown`` evaluated at numerical inputs."""
        jacobian = self.residual_jacobian()
        result = jacobian(**self._numeric_arguments(inputs))
        return np.array(result[f"jac_residual_{self._unknown}"].full(), dtype=np.float64)

    def serialize(self) -> str:
        return self._function.serialize()

    @classmethod
    def deserialize(
        cls,
        blob: str,
        input_names: tuple[str, ...],
        output_names: tuple[str, ...],
        unknown: str,
    ) -> StepRelation:
        try:
            function = ca.Function.deserialize(blob)
        except RuntimeError as e:
            raise DataIntegrityError(
                f"Cannot restore step relation: {e}", "step relation deserialization"
            ) from e
        return cls(function, input_names, output_names, unknown)

    def __repr__(self) -> str:
        return (
            f"StepRelation({self.name!r}, inputs={list(self._input_names)}, "
            f"outputs={list(self._output_names)})"
        )
