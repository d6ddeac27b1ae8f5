# collocint/step/backward_step.py
"""
Backward (adjoint) collocation step.

The relation is the algebraic transpose of the forward step: when the
backward DAE is the reverse-mode derivative of the forward DAE, solving it
yields the exact adjoint sensitivities of the discretized forward step.
"""

import logging

import casadi as ca

from ..ci_types import BACKWARD_STEP_INPUTS, BACKWARD_STEP_OUTPUTS
from ..collocation import CollocationCoefficients
from ..dae import BackwardDAEModel, DAEModel
from .forward_step import collocation_times, split_node_unknowns
from .types_step import StepRelation


logger = logging.getLogger(__name__)


def build_backward_step(
    dae: DAEModel, backward_dae: BackwardDAEModel, coefficients: CollocationCoefficients
) -> StepRelation:
    """Assemble the backward step relation ``bstep``.

    Inputs ``t0, h, x0, p, u, v, rx0, rp, rv`` and outputs ``rxf, residual,
    rqf, uqf``. The forward unknowns ``v`` enter as fixed data. For each
    interior node ``j`` the residual block is

        h * B[j] * rode_j - (-D[j] * rx0 + sum_r B[r] * C[j, r] * rx_r)

    followed by ``ralg_j``.

    Raises:
        DimensionMismatchError: If the backward DAE does not share the forward sizes.
    """
    backward_dae.check_compatible(dae)

    dims = dae.dimensions
    rdims = backward_dae.dimensions
    degree = coefficients.degree
    C, D, B = coefficients.C, coefficients.D, coefficients.B

    t0 = ca.MX.sym("t0")
    h = ca.MX.sym("h")
    x0 = ca.MX.sym("x0", dims.nx)
    p = ca.MX.sym("p", dims.np)
    u = ca.MX.sym("u", dims.nu)
    v = ca.MX.sym("v", degree * (dims.nx + dims.nz))
    rx0 = ca.MX.sym("rx0", rdims.nrx)
    rp = ca.MX.sym("rp", rdims.nrp)
    rv = ca.MX.sym("rv", degree * (rdims.nrx + rdims.nrz))

    x, z = split_node_unknowns(v, degree, dims.nx, dims.nz)
    rx, rz = split_node_unknowns(rv, degree, rdims.nrx, rdims.nrz)
    tt = collocation_times(t0, h, coefficients)

    equations: list[ca.MX] = []
    rqf = ca.MX.zeros(rdims.nrq, 1)
    uqf = ca.MX.zeros(rdims.nuq, 1)
    rxf = float(D[0]) * rx0

    for j in range(1, degree + 1):
        res = backward_dae(t=tt[j], x=x[j], z=z[j], p=p, u=u, rx=rx[j], rz=rz[j], rp=rp)

        # Transposed differentiation: B-weighted rows of C make this the adjoint of fstep
        rxp_j = -float(D[j]) * rx0
        for r in range(1, degree + 1):
            rxp_j += float(B[r] * C[j, r]) * rx[r]

        equations.append(h * float(B[j]) * ca.vec(res["rode"]) - rxp_j)
        equations.append(ca.vec(res["ralg"]))

        rxf += -float(B[j] * C[0, j]) * rx[j]

        rqf += h * float(B[j]) * ca.vec(res["rquad"])
        uqf += h * float(B[j]) * ca.vec(res["uquad"])

    function = ca.Function(
        "bstep",
        [t0, h, x0, p, u, v, rx0, rp, rv],
        [rxf, ca.vertcat(*equations), rqf, uqf],
        list(BACKWARD_STEP_INPUTS),
        list(BACKWARD_STEP_OUTPUTS),
    )
    logger.debug(
        "Backward step built: %s d=%d, %d unknowns, %d residuals",
        coefficients.scheme,
        degree,
        function.numel_in("rv"),
        function.numel_out("residual"),
    )
    return StepRelation(function, BACKWARD_STEP_INPUTS, BACKWARD_STEP_OUTPUTS, unknown="rv")
