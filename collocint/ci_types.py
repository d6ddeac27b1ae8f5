# collocint/ci_types.py
"""
Core type definitions for the collocint collocation engine.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal, TypeAlias

import casadi as ca
import numpy as np
from numpy.typing import NDArray


# --- NUMERICAL SAFETY TYPES ---
FloatArray: TypeAlias = NDArray[np.float64]
NumericArrayLike: TypeAlias = (
    NDArray[np.floating[Any]]
    | NDArray[np.integer[Any]]
    | Sequence[float]
    | Sequence[int]
    | float
    | int
)

# --- SYMBOLIC TYPES ---
CasadiSymbolic: TypeAlias = ca.SX | ca.MX
"""Either CasADi symbolic class; a single DAE must not mix the two."""

CollocationScheme: TypeAlias = Literal["radau", "legendre"]

StepOutputs: TypeAlias = dict[str, FloatArray]


# --- NAMED SIGNATURES ---
DAE_INPUTS: tuple[str, ...] = ("t", "x", "z", "p", "u")
DAE_OUTPUTS: tuple[str, ...] = ("ode", "alg", "quad")

BACKWARD_DAE_INPUTS: tuple[str, ...] = ("t", "x", "z", "p", "u", "rx", "rz", "rp")
BACKWARD_DAE_OUTPUTS: tuple[str, ...] = ("rode", "ralg", "rquad", "uquad")

FORWARD_STEP_INPUTS: tuple[str, ...] = ("t0", "h", "x0", "p", "u", "v")
FORWARD_STEP_OUTPUTS: tuple[str, ...] = ("xf", "residual", "qf")

BACKWARD_STEP_INPUTS: tuple[str, ...] = ("t0", "h", "x0", "p", "u", "v", "rx0", "rp", "rv")
BACKWARD_STEP_OUTPUTS: tuple[str, ...] = ("rxf", "residual", "rqf", "uqf")
