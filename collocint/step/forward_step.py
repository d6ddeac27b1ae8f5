# collocint/step/forward_step.py
"""
Forward collocation step: the implicit residual of one interval and its explicit outputs.
"""

import logging

import casadi as ca

from ..ci_types import FORWARD_STEP_INPUTS, FORWARD_STEP_OUTPUTS
from ..collocation import CollocationCoefficients
from ..dae import DAEModel
from ..exceptions import DataIntegrityError
from .types_step import StepRelation


logger = logging.getLogger(__name__)


def split_node_unknowns(
    stacked: ca.MX, degree: int, n_diff: int, n_alg: int
) -> tuple[list[ca.MX], list[ca.MX]]:
    """Split stacked interior unknowns into per-node differential and algebraic parts.

    The returned lists have ``degree + 1`` entries so they index like the node
    grid; entry 0 is an empty MX since node 0 carries no unknowns.
    """
    offsets = [0]
    for _ in range(degree):
        offsets.append(offsets[-1] + n_diff)
        offsets.append(offsets[-1] + n_alg)

    pieces = ca.vertsplit(stacked, offsets)
    if len(pieces) != 2 * degree:
        raise DataIntegrityError(
            f"Expected {2 * degree} unknown blocks, got {len(pieces)}", "node unknown split"
        )

    differential: list[ca.MX] = [ca.MX()]
    algebraic: list[ca.MX] = [ca.MX()]
    for d in range(degree):
        differential.append(pieces[2 * d])
        algebraic.append(pieces[2 * d + 1])
    return differential, algebraic


def collocation_times(t0: ca.MX, h: ca.MX, coefficients: CollocationCoefficients) -> list[ca.MX]:
    return [t0 + h * float(tau) for tau in coefficients.tau_root]


def build_forward_step(dae: DAEModel, coefficients: CollocationCoefficients) -> StepRelation:
    """Assemble the forward step relation ``fstep``.

    Inputs ``t0, h, x0, p, u, v`` and outputs ``xf, residual, qf``. For each
    interior node ``j`` the residual block is

        h * ode_j - sum_r C[r, j] * x_r      (x_0 = x0)

    followed by ``alg_j``. The residual is returned, never solved.
    """
    dims = dae.dimensions
    degree = coefficients.degree
    C, D, B = coefficients.C, coefficients.D, coefficients.B

    t0 = ca.MX.sym("t0")
    h = ca.MX.sym("h")
    x0 = ca.MX.sym("x0", dims.nx)
    p = ca.MX.sym("p", dims.np)
    u = ca.MX.sym("u", dims.nu)
    v = ca.MX.sym("v", degree * (dims.nx + dims.nz))

    x, z = split_node_unknowns(v, degree, dims.nx, dims.nz)
    x[0] = x0
    tt = collocation_times(t0, h, coefficients)

    equations: list[ca.MX] = []
    qf = ca.MX.zeros(dims.nq, 1)
    xf = float(D[0]) * x0

    for j in range(1, degree + 1):
        res = dae(t=tt[j], x=x[j], z=z[j], p=p, u=u)

        # State derivative of the interpolating polynomial at node j
        xp_j = float(C[0, j]) * x0
        for r in range(1, degree + 1):
            xp_j += float(C[r, j]) * x[r]

        equations.append(h * ca.vec(res["ode"]) - xp_j)
        equations.append(ca.vec(res["alg"]))

        xf += float(D[j]) * x[j]
        qf += (float(B[j]) * h) * ca.vec(res["quad"])

    function = ca.Function(
        "fstep",
        [t0, h, x0, p, u, v],
        [xf, ca.vertcat(*equations), qf],
        list(FORWARD_STEP_INPUTS),
        list(FORWARD_STEP_OUTPUTS),
    )
    logger.debug(
        "Forward step built: %s d=%d, %d unknowns, %d residuals",
        coefficients.scheme,
        degree,
        function.numel_in("v"),
        function.numel_out("residual"),
    )
    return StepRelation(function, FORWARD_STEP_INPUTS, FORWARD_STEP_OUTPUTS, unknown="v")
