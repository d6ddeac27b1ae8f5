"""
Shared fixtures: sample DAE models and a Newton loop standing in for the
external root solver that drives step residuals to zero.
"""

import casadi as ca
import numpy as np
import pytest

from collocint import DAEModel, StepRelation


def solve_step(
    relation: StepRelation,
    fixed_inputs: dict,
    initial_unknowns: np.ndarray,
    tolerance: float = 1e-13,
    max_iterations: int = 25,
) -> np.ndarray:
    """Newton iteration on ``relation``'s residual, overwriting ``initial_unknowns`` in place."""
    unknowns = initial_unknowns
    for _ in range(max_iterations):
        inputs = {**fixed_inputs, relation.unknown: unknowns}
        residual = relation(**inputs)["residual"]
        if np.max(np.abs(residual)) < tolerance:
            break
        jacobian = relation.residual_jacobian_matrix(**inputs)
        unknowns[:] = unknowns - np.linalg.solve(jacobian, residual)
    return unknowns


def total_derivative(
    relation: StepRelation, inputs: dict, output: str, wrt: str
) -> np.ndarray:
    """Implicit-function-theorem derivative of ``output`` w.r.t. ``wrt`` at a solved point."""
    unknown = relation.unknown
    names = list(relation.input_names)
    sensitivities = relation.function.factory(
        "sensitivities",
        names,
        [
            f"jac:{output}:{wrt}",
            f"jac:{output}:{unknown}",
            f"jac:residual:{wrt}",
            f"jac:residual:{unknown}",
        ],
    )
    arguments = {
        name: ca.DM(np.asarray(value, dtype=np.float64).reshape(-1, 1))
        for name, value in inputs.items()
    }
    res = sensitivities(**arguments)

    d_out_d_wrt = np.array(res[f"jac_{output}_{wrt}"].full())
    d_out_d_unknown = np.array(res[f"jac_{output}_{unknown}"].full())
    d_res_d_wrt = np.array(res[f"jac_residual_{wrt}"].full())
    d_res_d_unknown = np.array(res[f"jac_residual_{unknown}"].full())

    return d_out_d_wrt - d_out_d_unknown @ np.linalg.solve(d_res_d_unknown, d_res_d_wrt)


@pytest.fixture
def exponential_dae():
    """dx/dt = x with quadrature of x."""
    x = ca.SX.sym("x")
    return DAEModel.from_expressions(x=x, ode=x, quad=x)


@pytest.fixture
def pendulum_dae():
    """Nonlinear ODE with parameter, control and two quadratures."""
    x = ca.SX.sym("x", 2)
    p = ca.SX.sym("p")
    u = ca.SX.sym("u")
    t = ca.SX.sym("t")
    ode = ca.vertcat(x[1], -p * ca.sin(x[0]) + u * ca.cos(t))
    quad = ca.vertcat(x[0] ** 2 + u * x[1], p * x[1])
    return DAEModel.from_expressions(x=x, ode=ode, p=p, u=u, t=t, quad=quad)


@pytest.fixture
def semi_explicit_dae():
    """Index-1 DAE: dx0/dt = z, dx1/dt = -p*x0 + u, 0 = z - x1 + 0.1*z**3."""
    x = ca.SX.sym("x", 2)
    z = ca.SX.sym("z")
    p = ca.SX.sym("p")
    u = ca.SX.sym("u")
    ode = ca.vertcat(z, -p * x[0] + u)
    alg = z - x[1] + 0.1 * z**3
    quad = x[0] * z + p
    return DAEModel.from_expressions(x=x, z=z, p=p, u=u, ode=ode, alg=alg, quad=quad)
