import casadi as ca
import numpy as np
import pytest
from numpy.testing import assert_allclose

from collocint import (
    BackwardDAEDimensions,
    BackwardDAEModel,
    ConfigurationError,
    DAEDimensions,
    DAEModel,
    DimensionMismatchError,
)


class TestDAEModel:
    def test_dimensions_from_expressions(self, semi_explicit_dae):
        assert semi_explicit_dae.dimensions == DAEDimensions(nx=2, nz=1, np=1, nu=1, nq=1)

    def test_absent_inputs_become_empty(self, exponential_dae):
        assert exponential_dae.dimensions == DAEDimensions(nx=1, nz=0, np=0, nu=0, nq=1)
        assert list(exponential_dae.function.name_in()) == ["t", "x", "z", "p", "u"]
        assert list(exponential_dae.function.name_out()) == ["ode", "alg", "quad"]

    def test_numerical_evaluation(self, semi_explicit_dae):
        res = semi_explicit_dae(t=0.0, x=[1.0, 2.0], z=0.5, p=3.0, u=0.25)
        assert_allclose(res["ode"].full().flatten(), [0.5, -3.0 + 0.25])
        assert float(res["alg"]) == pytest.approx(0.5 - 2.0 + 0.1 * 0.125)
        assert float(res["quad"]) == pytest.approx(1.0 * 0.5 + 3.0)

    def test_accepts_mx_function(self):
        x = ca.MX.sym("x", 3)
        dae = DAEModel.from_expressions(x=x, ode=-x)
        assert dae.dimensions.nx == 3

    def test_accepts_prebuilt_function(self):
        t, x, z = ca.SX.sym("t"), ca.SX.sym("x", 2), ca.SX.sym("z", 0)
        p, u = ca.SX.sym("p", 0), ca.SX.sym("u", 0)
        function = ca.Function(
            "custom",
            [t, x, z, p, u],
            [-x, ca.SX(0, 1), ca.SX(0, 1)],
            ["t", "x", "z", "p", "u"],
            ["ode", "alg", "quad"],
        )
        assert DAEModel(function).dimensions == DAEDimensions(nx=2, nz=0, np=0, nu=0, nq=0)

    def test_ode_size_mismatch(self):
        x = ca.SX.sym("x", 2)
        with pytest.raises(DimensionMismatchError):
            DAEModel.from_expressions(x=x, ode=x[0])

    def test_alg_size_mismatch(self):
        x = ca.SX.sym("x")
        z = ca.SX.sym("z", 2)
        with pytest.raises(DimensionMismatchError):
            DAEModel.from_expressions(x=x, z=z, ode=x, alg=z[0])

    def test_row_vector_ode_rejected(self):
        x = ca.SX.sym("x", 2)
        with pytest.raises(DimensionMismatchError):
            DAEModel.from_expressions(x=x, ode=ca.horzcat(x[1], -x[0]))

    def test_row_vector_input_rejected(self):
        x = ca.SX.sym("x", 1, 2)
        with pytest.raises(DimensionMismatchError):
            DAEModel.from_expressions(x=x, ode=-x.T)

    def test_missing_port_name(self):
        x = ca.SX.sym("x")
        function = ca.Function("bad", [x], [-x], ["x"], ["ode"])
        with pytest.raises(DimensionMismatchError):
            DAEModel(function)

    def test_configured_dimensions_disagree(self, exponential_dae):
        with pytest.raises(DimensionMismatchError):
            DAEModel(exponential_dae.function, DAEDimensions(nx=2, nz=0, np=0, nu=0, nq=1))

    def test_non_function_rejected(self):
        with pytest.raises(ConfigurationError):
            DAEModel("not a function")

    def test_mixed_symbolic_types_rejected(self):
        x = ca.SX.sym("x")
        p = ca.MX.sym("p")
        with pytest.raises(ConfigurationError):
            DAEModel.from_expressions(x=x, ode=x, p=p)


class TestBackwardDAEModel:
    def test_reverse_mode_dimensions(self, semi_explicit_dae):
        backward = BackwardDAEModel.from_reverse_mode(semi_explicit_dae)
        assert backward.dimensions == BackwardDAEDimensions(nrx=2, nrz=1, nrp=1, nrq=1, nuq=1)
        assert list(backward.function.name_in()) == ["t", "x", "z", "p", "u", "rx", "rz", "rp"]
        assert list(backward.function.name_out()) == ["rode", "ralg", "rquad", "uquad"]

    def test_reverse_mode_linear_system(self):
        A = np.array([[0.0, 1.0], [-2.0, -0.5]])
        x = ca.SX.sym("x", 2)
        dae = DAEModel.from_expressions(x=x, ode=ca.mtimes(ca.DM(A), x))
        backward = BackwardDAEModel.from_reverse_mode(dae)

        rx = np.array([0.3, -1.2])
        res = backward(t=0.0, x=[1.0, 1.0], rx=rx)
        assert_allclose(res["rode"].full().flatten(), A.T @ rx, atol=1e-14)

    def test_reverse_mode_matches_jacobian_products(self, semi_explicit_dae):
        backward = BackwardDAEModel.from_reverse_mode(semi_explicit_dae)
        point = {"t": 0.2, "x": [0.4, -0.3], "z": 0.7, "p": 1.5, "u": -0.2}
        seeds = {"rx": [1.1, -0.6], "rz": 0.9, "rp": 0.35}
        res = backward(**point, **seeds)

        jac = semi_explicit_dae.function.factory(
            "dae_jacobians",
            ["t", "x", "z", "p", "u"],
            ["jac:ode:x", "jac:alg:x", "jac:quad:x", "jac:ode:p", "jac:alg:p", "jac:quad:p"],
        )(**point)
        rx, rz, rp = np.array(seeds["rx"]), np.array([seeds["rz"]]), np.array([seeds["rp"]])

        expected_rode = (
            jac["jac_ode_x"].full().T @ rx
            + jac["jac_alg_x"].full().T @ rz
            + jac["jac_quad_x"].full().T @ rp
        )
        expected_rquad = (
            jac["jac_ode_p"].full().T @ rx
            + jac["jac_alg_p"].full().T @ rz
            + jac["jac_quad_p"].full().T @ rp
        )
        assert_allclose(res["rode"].full().flatten(), expected_rode, atol=1e-14)
        assert_allclose(res["rquad"].full().flatten(), expected_rquad, atol=1e-14)

    def test_from_expressions(self):
        x = ca.SX.sym("x")
        rx = ca.SX.sym("rx")
        backward = BackwardDAEModel.from_expressions(x=x, rx=rx, rode=-rx)
        assert backward.dimensions == BackwardDAEDimensions(nrx=1, nrz=0, nrp=0, nrq=0, nuq=0)

    def test_rode_size_mismatch(self):
        x = ca.SX.sym("x")
        rx = ca.SX.sym("rx", 2)
        with pytest.raises(DimensionMismatchError):
            BackwardDAEModel.from_expressions(x=x, rx=rx, rode=rx[0])

    def test_row_vector_rode_rejected(self):
        x = ca.SX.sym("x")
        rx = ca.SX.sym("rx", 2)
        with pytest.raises(DimensionMismatchError):
            BackwardDAEModel.from_expressions(x=x, rx=rx, rode=rx.T)

    def test_incompatible_with_forward(self, exponential_dae):
        x = ca.SX.sym("x", 2)
        rx = ca.SX.sym("rx", 2)
        backward = BackwardDAEModel.from_expressions(x=x, rx=rx, rode=rx)
        with pytest.raises(DimensionMismatchError):
            backward.check_compatible(exponential_dae)

    def test_compatible_with_source(self, pendulum_dae):
        BackwardDAEModel.from_reverse_mode(pendulum_dae).check_compatible(pendulum_dae)
