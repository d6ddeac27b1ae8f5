"""
collocint: collocation step relations for DAE integration

Builds the implicit forward step of a fixed-step collocation integrator for
differential-algebraic equations, together with the exactly transposed
backward (adjoint) step, on top of CasADi.

Quick Start:
    >>> import casadi as ca
    >>> import collocint as ci
    >>> x = ca.SX.sym("x")
    >>> dae = ci.DAEModel.from_expressions(x=x, ode=-x)
    >>> disc = ci.CollocationDiscretization(
    ...     dae,
    ...     backward_dae=ci.BackwardDAEModel.from_reverse_mode(dae),
    ...     options={"interpolation_order": 3, "collocation_scheme": "radau"},
    ... )
    >>> v = disc.reset([1.0])  # initial guess, refined by an external root solver

Logging:
    import logging
    logging.getLogger('collocint').setLevel(logging.INFO)  # Major operations
    logging.getLogger('collocint').setLevel(logging.DEBUG)  # Detailed debugging
"""

from __future__ import annotations

import logging

from collocint.collocation import (
    CollocationCoefficients,
    collocation_points,
    compute_collocation_coefficients,
)
from collocint.dae import BackwardDAEDimensions, BackwardDAEModel, DAEDimensions, DAEModel
from collocint.discretization import CollocationDiscretization
from collocint.exceptions import (
    CollocIntBaseError,
    ConfigurationError,
    DataIntegrityError,
    DimensionMismatchError,
    InvalidDegreeError,
    InvalidSchemeError,
    MissingBackwardModelError,
    SerializationVersionMismatchError,
)
from collocint.options import CollocationOptions
from collocint.persistence import CollocationRecord
from collocint.polynomial import Polynomial, lagrange_basis
from collocint.step import StateBuffer, StepRelation, build_backward_step, build_forward_step


__version__ = "0.1.0"

__all__ = [
    "BackwardDAEDimensions",
    "BackwardDAEModel",
    "CollocIntBaseError",
    "CollocationCoefficients",
    "CollocationDiscretization",
    "CollocationOptions",
    "CollocationRecord",
    "ConfigurationError",
    "DAEDimensions",
    "DAEModel",
    "DataIntegrityError",
    "DimensionMismatchError",
    "InvalidDegreeError",
    "InvalidSchemeError",
    "MissingBackwardModelError",
    "Polynomial",
    "SerializationVersionMismatchError",
    "StateBuffer",
    "StepRelation",
    "build_backward_step",
    "build_forward_step",
    "collocation_points",
    "compute_collocation_coefficients",
    "lagrange_basis",
]

# Configure logging - no handlers, let user control output
logging.getLogger(__name__).addHandler(logging.NullHandler())
