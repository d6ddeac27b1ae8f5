import casadi as ca
import numpy as np
import pytest
from numpy.testing import assert_allclose

from collocint import (
    CollocationDiscretization,
    ConfigurationError,
    DAEModel,
    DataIntegrityError,
    DimensionMismatchError,
    build_forward_step,
    compute_collocation_coefficients,
)

from conftest import solve_step


def one_step_error(dae, degree, scheme, h):
    disc = CollocationDiscretization(
        dae, options={"interpolation_order": degree, "collocation_scheme": scheme}
    )
    fixed = {"t0": 0.0, "h": h, "x0": [1.0]}
    v = solve_step(disc.forward_step, fixed, disc.reset([1.0]).data)
    xf = disc.forward_step(**fixed, v=v)["xf"]
    return abs(xf[0] - np.exp(h))


class TestForwardStepStructure:
    def test_port_names_and_sizes(self, semi_explicit_dae):
        coefficients = compute_collocation_coefficients(3, "radau")
        relation = build_forward_step(semi_explicit_dae, coefficients)

        assert relation.name == "fstep"
        assert relation.input_names == ("t0", "h", "x0", "p", "u", "v")
        assert relation.output_names == ("xf", "residual", "qf")
        assert relation.unknown == "v"
        assert relation.input_size("v") == 3 * (2 + 1)
        assert relation.function.numel_out("residual") == 3 * (2 + 1)
        assert relation.function.numel_out("xf") == 2
        assert relation.function.numel_out("qf") == 1

    def test_residual_jacobian_is_square(self, semi_explicit_dae):
        disc = CollocationDiscretization(semi_explicit_dae, options={"interpolation_order": 2})
        v = disc.reset([0.1, 0.2], [0.3]).data
        jacobian = disc.forward_step.residual_jacobian_matrix(
            t0=0.0, h=0.1, x0=[0.1, 0.2], p=1.0, u=0.0, v=v
        )
        assert jacobian.shape == (6, 6)
        assert np.linalg.matrix_rank(jacobian) == 6

    def test_unknown_input_name_rejected(self, exponential_dae):
        disc = CollocationDiscretization(exponential_dae)
        with pytest.raises(ConfigurationError):
            disc.forward_step(t0=0.0, h=0.1, x0=[1.0], w=[0.0])

    def test_wrong_input_size_rejected(self, exponential_dae):
        disc = CollocationDiscretization(exponential_dae)
        with pytest.raises(DimensionMismatchError):
            disc.forward_step(t0=0.0, h=0.1, x0=[1.0, 2.0])

    def test_non_finite_input_rejected(self, exponential_dae):
        disc = CollocationDiscretization(exponential_dae)
        with pytest.raises(DataIntegrityError):
            disc.forward_step(t0=0.0, h=np.nan, x0=[1.0])


class TestForwardStepValues:
    @pytest.mark.parametrize("scheme", ["radau", "legendre"])
    @pytest.mark.parametrize("degree", [1, 2, 4])
    def test_constant_rate_solved_exactly(self, degree, scheme):
        # x' = c is reproduced by a linear interpolant, so x_j = x0 + c*h*tau_j has zero residual
        x = ca.SX.sym("x", 2)
        rate = np.array([0.5, -2.0])
        dae = DAEModel.from_expressions(x=x, ode=ca.DM(rate), quad=ca.DM([1.0]))
        disc = CollocationDiscretization(
            dae, options={"interpolation_order": degree, "collocation_scheme": scheme}
        )
        coefficients = disc.coefficients
        h, x0 = 0.3, np.array([1.0, 4.0])

        buffer = disc.reset(x0)
        for j in range(1, degree + 1):
            buffer.differential(j)[:] = x0 + rate * h * coefficients.tau_root[j]

        out = disc.forward_step(t0=0.0, h=h, x0=x0, v=buffer.data)
        assert_allclose(out["residual"], 0.0, atol=1e-12)
        assert_allclose(out["xf"], x0 + rate * h, atol=1e-13)
        # Quadrature only weights interior nodes; radau d=1 therefore drops B[0] = 0.5
        assert_allclose(out["qf"], [h * coefficients.B[1:].sum()], atol=1e-14)

    def test_residual_is_returned_not_solved(self, exponential_dae):
        disc = CollocationDiscretization(exponential_dae)
        v = disc.reset([1.0]).data
        out = disc.forward_step(t0=0.0, h=0.1, x0=[1.0], v=v)
        assert np.max(np.abs(out["residual"])) > 1e-3

    @pytest.mark.parametrize("degree", [2, 3, 4])
    def test_radau_small_step_accuracy(self, exponential_dae, degree):
        assert one_step_error(exponential_dae, degree, "radau", 0.01) < 1e-9

    @pytest.mark.parametrize(
        "degree, h",
        [(2, 0.1), (3, 0.2), (4, 0.4)],
    )
    def test_radau_local_error_order(self, exponential_dae, degree, h):
        # Radau IIA with d nodes has order 2d - 1, so the one-step error scales as h^(2d)
        coarse = one_step_error(exponential_dae, degree, "radau", h)
        fine = one_step_error(exponential_dae, degree, "radau", h / 2)
        observed = np.log2(coarse / fine)
        assert abs(observed - 2 * degree) < 0.5, f"observed order {observed} for d={degree}"

    @pytest.mark.parametrize(
        "degree, h",
        [(1, 0.1), (2, 0.2), (3, 0.4)],
    )
    def test_legendre_local_error_order(self, exponential_dae, degree, h):
        # Gauss-Legendre with d nodes has order 2d, so the one-step error scales as h^(2d + 1)
        coarse = one_step_error(exponential_dae, degree, "legendre", h)
        fine = one_step_error(exponential_dae, degree, "legendre", h / 2)
        observed = np.log2(coarse / fine)
        assert abs(observed - (2 * degree + 1)) < 0.5, f"observed order {observed} for d={degree}"

    @pytest.mark.parametrize("scheme", ["radau", "legendre"])
    def test_quadrature_of_state(self, exponential_dae, scheme):
        # quad = x integrates exp(t) over the step
        h = 0.05
        disc = CollocationDiscretization(
            exponential_dae, options={"interpolation_order": 3, "collocation_scheme": scheme}
        )
        fixed = {"t0": 0.0, "h": h, "x0": [1.0]}
        v = solve_step(disc.forward_step, fixed, disc.reset([1.0]).data)
        qf = disc.forward_step(**fixed, v=v)["qf"]
        assert qf[0] == pytest.approx(np.exp(h) - 1.0, abs=1e-10)

    def test_algebraic_states_match_reduced_ode(self):
        # x' = z, 0 = z - x is x' = x once the algebraic constraint is eliminated
        x = ca.SX.sym("x")
        z = ca.SX.sym("z")
        dae = DAEModel.from_expressions(x=x, z=z, ode=z, alg=z - x)
        disc = CollocationDiscretization(dae, options={"interpolation_order": 3})

        h = 0.1
        fixed = {"t0": 0.0, "h": h, "x0": [1.0]}
        buffer = disc.reset([1.0], [1.0])
        solve_step(disc.forward_step, fixed, buffer.data)
        out = disc.forward_step(**fixed, v=buffer.data)

        x_ode = ca.SX.sym("x")
        reduced = CollocationDiscretization(
            DAEModel.from_expressions(x=x_ode, ode=x_ode), options={"interpolation_order": 3}
        )
        v_reduced = solve_step(reduced.forward_step, fixed, reduced.reset([1.0]).data)
        reduced_xf = reduced.forward_step(**fixed, v=v_reduced)["xf"]

        assert_allclose(out["xf"], reduced_xf, atol=1e-12)
        assert_allclose(buffer.algebraic_output(), buffer.differential(3), atol=1e-12)

    def test_time_dependent_rhs_uses_collocation_times(self):
        # x' = t over [t0, t0 + h] is exact for any d >= 1
        x = ca.SX.sym("x")
        t = ca.SX.sym("t")
        dae = DAEModel.from_expressions(x=x, t=t, ode=t)
        disc = CollocationDiscretization(dae, options={"interpolation_order": 2})

        t0, h = 1.5, 0.2
        fixed = {"t0": t0, "h": h, "x0": [0.0]}
        v = solve_step(disc.forward_step, fixed, disc.reset([0.0]).data)
        xf = disc.forward_step(**fixed, v=v)["xf"]
        assert xf[0] == pytest.approx(((t0 + h) ** 2 - t0**2) / 2.0, abs=1e-13)
