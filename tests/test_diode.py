"""Shockley diode model and junction-voltage limiting."""

import math

import numpy as np
import pytest

from circuitsim.components import Diode
from circuitsim.errors import PropertyValidationError


@pytest.fixture
def diode():
    return Diode("D1")


class TestDiodeModel:
    """compute_model: current, conductance floor, companion source"""

    def test_zero_bias_has_zero_current(self, diode):
        assert diode.compute_model(0.0).i_d == 0.0

    @pytest.mark.parametrize("vd", np.linspace(-20.0, 5.0, 51))
    def test_conductance_floor(self, diode, vd):
        floor = diode["saturationCurrent"] / diode.n_vt
        assert diode.compute_model(vd).g_d >= floor

    def test_companion_source_consistent(self, diode):
        model = diode.compute_model(0.62)
        assert model.i_eq == pytest.approx(model.i_d - model.g_d * 0.62)

    def test_forward_current(self, diode):
        vd = 0.7
        expected = 1e-14 * (math.exp(vd / 0.02585) - 1.0)
        assert diode.compute_model(vd).i_d == pytest.approx(expected)

    def test_exponent_clamped(self, diode):
        clamp = 40.0 * diode.n_vt
        high = diode.compute_model(100.0)
        at_clamp = diode.compute_model(clamp)
        assert math.isfinite(high.i_d) and math.isfinite(high.g_d)
        assert high.i_d == at_clamp.i_d
        assert high.g_d == at_clamp.g_d
        # The companion source uses the unclamped voltage.
        assert high.i_eq == pytest.approx(high.i_d - high.g_d * 100.0)

    def test_reverse_current_saturates(self, diode):
        assert diode.compute_model(-5.0).i_d == pytest.approx(-1e-14)


class TestLimitVoltage:
    """limit_voltage damping"""

    @pytest.mark.parametrize("v", [-3.0, 0.0, 0.3, 0.8, 2.0])
    def test_repeated_input_is_unchanged(self, diode, v):
        assert diode.limit_voltage(v, v) == v

    @pytest.mark.parametrize("v_new,v_old", [(5.0, 0.6), (5.0, 0.0), (5.0, -1.0), (0.8, 2.0), (1.2, 0.75)])
    def test_damped_step_never_grows(self, diode, v_new, v_old):
        limited = diode.limit_voltage(v_new, v_old)
        assert abs(limited - v_old) <= abs(v_new - v_old)

    def test_forward_step_is_logarithmic(self, diode):
        n_vt = diode.n_vt
        expected = 0.6 + n_vt * (1.0 + math.log((5.0 - 0.6) / n_vt))
        assert diode.limit_voltage(5.0, 0.6) == pytest.approx(expected)

    def test_backward_step_from_positive(self, diode):
        assert diode.limit_voltage(0.8, 2.0) == pytest.approx(2.0 + 2 * diode.n_vt)

    def test_restart_from_non_positive(self, diode):
        n_vt = diode.n_vt
        assert diode.limit_voltage(5.0, 0.0) == pytest.approx(n_vt * math.log(5.0 / n_vt))
        assert diode.limit_voltage(5.0, -2.0) == pytest.approx(n_vt * math.log(5.0 / n_vt))

    def test_reverse_bias_passes_through(self, diode):
        assert diode.limit_voltage(-10.0, 0.7) == -10.0

    def test_small_step_passes_through(self, diode):
        assert diode.limit_voltage(0.76, 0.75) == 0.76

    def test_below_critical_voltage_passes_through(self, diode):
        v = diode.critical_voltage - 0.05
        assert diode.limit_voltage(v, 0.0) == v


class TestDiodeProperties:
    """Property bounds"""

    def test_defaults(self, diode):
        assert diode.properties == {
            "saturationCurrent": 1e-14,
            "emissionCoefficient": 1.0,
            "thermalVoltage": 0.02585,
        }

    @pytest.mark.parametrize("name,value", [
        ("emissionCoefficient", 3.5),
        ("emissionCoefficient", 0.1),
        ("saturationCurrent", 1e-20),
        ("thermalVoltage", 0.001),
        ("saturationCurrent", 1e-2),
        ("saturationCurrent", 1.0),
    ])
    def test_out_of_range(self, name, value):
        with pytest.raises(PropertyValidationError):
            Diode("D1", **{name: value})

    def test_critical_voltage_positive_over_allowed_range(self):
        # Largest Is with the smallest n*Vt the bounds allow.
        diode = Diode("D1", saturationCurrent=1e-3, emissionCoefficient=0.5, thermalVoltage=0.01)
        assert diode.critical_voltage > 0
        assert diode.limit_voltage(-0.06, 0.0) == -0.06
        assert diode.limit_voltage(0.0, -0.5) == 0.0
