"""DC operating point and single-frequency AC analysis."""

import math

import numpy as np
import pytest

from circuitsim import Circuit, solve_ac, solve_dc
from circuitsim.components import (
    Ammeter,
    Capacitor,
    CurrentSource,
    Diode,
    Ground,
    Inductor,
    Load,
    OpAmp,
    Resistor,
    ThreePhaseSource,
    Transformer,
    VoltageSource,
    Voltmeter,
    Wattmeter,
)
from circuitsim.errors import FloatingNodeError, PropertyValidationError, SingularMatrixError, TopologyError

from conftest import series_circuit


class TestVoltageDivider:
    """5 V across 270 Ω + 150 Ω"""

    def test_output_voltage(self, divider):
        solution = solve_dc(divider)
        assert solution.terminal_voltage("R2_left") == pytest.approx(5.0 * 150.0 / 420.0, rel=1e-12)

    def test_single_newton_pass(self, divider):
        assert solve_dc(divider).iterations == 1

    def test_branch_currents(self, divider):
        solution = solve_dc(divider)
        i = 5.0 / 420.0
        assert solution.branch_current("R1") == pytest.approx(i)
        assert solution.branch_current("R2") == pytest.approx(i)
        # The source current is measured into its positive terminal.
        assert solution.branch_current("Vs") == pytest.approx(-i)

    def test_outputs_mapping(self, divider):
        outputs = solve_dc(divider).outputs()
        assert outputs["gnd"] == 0.0
        assert outputs["R1_right"] == pytest.approx(5.0 * 150.0 / 420.0)
        assert outputs["R1_left"] == pytest.approx(5.0)
        assert {"Vs_I", "R1_I", "R2_I"} <= set(outputs)

    def test_power_balance(self, divider):
        solution = solve_dc(divider)
        p_source, _, _ = solution.branch_power("Vs")
        p_r1, _, _ = solution.branch_power("R1")
        p_r2, _, _ = solution.branch_power("R2")
        assert p_source + p_r1 + p_r2 == pytest.approx(0.0, abs=1e-12)


class TestDiodeOperatingPoint:

    def test_kcl_at_junction(self, diode_dc):
        solution = solve_dc(diode_dc)
        vd = solution.branch_voltage("D1")
        i_r = solution.branch_current("R1")
        assert 0.6 < vd < 0.75
        assert solution.branch_current("D1") == pytest.approx(i_r, rel=1e-3)

    def test_junction_voltage_committed(self, diode_dc):
        solution = solve_dc(diode_dc)
        assert diode_dc["D1"].state["vd"] == pytest.approx(solution.branch_voltage("D1"), abs=1e-5)

    def test_reverse_biased_diode_blocks(self):
        circuit = series_circuit(
            VoltageSource("Vs", voltage=-5.0),
            Resistor("R1", resistance=1000.0),
            Diode("D1"),
        )
        solution = solve_dc(circuit)
        assert abs(solution.branch_current("R1")) < 1e-9
        assert solution.branch_voltage("D1") == pytest.approx(-5.0, abs=1e-6)

    def test_two_diodes_in_series(self):
        circuit = series_circuit(
            VoltageSource("Vs", voltage=5.0),
            Resistor("R1", resistance=470.0),
            Diode("D1"),
            Diode("D2"),
        )
        solution = solve_dc(circuit)
        assert solution.branch_voltage("D1") == pytest.approx(solution.branch_voltage("D2"), abs=1e-4)

    def test_low_saturation_current_pair(self):
        # At zero bias the node between the diodes sees only Is/(n*Vt) ~ 4e-15 S plus GMIN.
        circuit = series_circuit(
            VoltageSource("Vs", voltage=5.0),
            Diode("D1", saturationCurrent=1e-16),
            Diode("D2", saturationCurrent=1e-16),
            Resistor("R1", resistance=1000.0),
        )
        solution = solve_dc(circuit)
        vd = solution.branch_voltage("D1")
        assert 0.75 < vd < 0.85
        assert solution.branch_voltage("D2") == pytest.approx(vd, abs=1e-5)
        assert solution.branch_current("D1") == pytest.approx(solution.branch_current("R1"), rel=1e-3)


class TestDevicesAtDC:

    def test_current_source_into_resistor(self):
        circuit = series_circuit(CurrentSource("Is", current=1e-3), Resistor("R1", resistance=1000.0))
        solution = solve_dc(circuit)
        assert solution.terminal_voltage("Is_positive") == pytest.approx(1.0)
        assert solution.branch_current("Is") == pytest.approx(-1e-3)

    def test_inductor_is_short(self):
        circuit = series_circuit(VoltageSource("Vs"), Resistor("R1"), Inductor("L1"))
        solution = solve_dc(circuit)
        assert solution.terminal_voltage("L1_left") == pytest.approx(0.0, abs=1e-7)
        assert solution.branch_current("L1") == pytest.approx(5e-3, rel=1e-6)

    def test_capacitor_blocks(self):
        circuit = series_circuit(VoltageSource("Vs"), Resistor("R1"), Capacitor("C1"), Resistor("R2"))
        solution = solve_dc(circuit)
        assert solution.branch_current("C1") == 0.0
        assert solution.branch_voltage("C1") == pytest.approx(5.0)

    def test_load_draws_rated_current_share(self):
        circuit = series_circuit(VoltageSource("Vs", voltage=120.0), Load("LD1", loadPercent=100.0))
        solution = solve_dc(circuit)
        R, _ = circuit["LD1"].impedance()
        assert solution.branch_current("LD1") == pytest.approx(120.0 / R)

    def test_open_load(self):
        circuit = series_circuit(VoltageSource("Vs", voltage=120.0), Load("LD1", loadPercent=0.0))
        assert solve_dc(circuit).branch_current("LD1") == pytest.approx(120.0 / 1e9)

    def test_meters(self):
        circuit = Circuit()
        gnd = circuit.add(Ground("GND"))
        vs = circuit.add(VoltageSource("Vs", voltage=10.0))
        am = circuit.add(Ammeter("A1"))
        wm = circuit.add(Wattmeter("W1"))
        vm = circuit.add(Voltmeter("V1"))
        rl = circuit.add(Resistor("RL", resistance=10.0))
        circuit.connect((vs, "positive"), (am, "positive"))
        circuit.connect((am, "negative"), (wm, "M"))
        circuit.connect((wm, "L"), (rl, "left"))
        circuit.connect((wm, "V"), (rl, "left"))
        circuit.connect((vm, "positive"), (rl, "left"))
        circuit.chain((rl, "right"), (wm, "C"), (vm, "negative"), (vs, "negative"), (gnd, "ref"))

        outputs = solve_dc(circuit).outputs()
        assert outputs["A1_I"] == pytest.approx(1.0, rel=1e-6)
        assert outputs["V1_V"] == pytest.approx(10.0)
        assert outputs["W1_P"] == pytest.approx(10.0, rel=1e-6)
        assert outputs["W1_I"] == pytest.approx(outputs["A1_I"])

    def test_inverting_amplifier(self):
        circuit = Circuit()
        gnd = circuit.add(Ground("GND"))
        vs = circuit.add(VoltageSource("Vs", voltage=0.5))
        r1 = circuit.add(Resistor("R1", resistance=1e3))
        rf = circuit.add(Resistor("RF", resistance=10e3))
        u1 = circuit.add(OpAmp("U1"))
        circuit.connect((vs, "positive"), (r1, "left"))
        circuit.chain((r1, "right"), (u1, "in_neg"), (rf, "left"))
        circuit.connect((rf, "right"), (u1, "out"))
        circuit.chain((u1, "in_pos"), (vs, "negative"), (gnd, "ref"))

        solution = solve_dc(circuit)
        assert solution.terminal_voltage("U1_out") == pytest.approx(-5.0, rel=1e-3)
        assert solution.terminal_voltage("U1_in_neg") == pytest.approx(0.0, abs=1e-3)

    def test_three_phase_instant_values(self):
        circuit = Circuit()
        gnd = circuit.add(Ground("GND"))
        src = circuit.add(ThreePhaseSource("S1", voltage=415.0))
        for phase in ("R", "Y", "B"):
            r = circuit.add(Resistor(f"R{phase}", resistance=100.0))
            circuit.connect((src, f"phase_{phase}"), (r, "left"))
            circuit.connect((r, "right"), (gnd, "ref"))
        circuit.connect((src, "neutral"), (gnd, "ref"))

        solution = solve_dc(circuit)
        peak = math.sqrt(2) * 415.0 / math.sqrt(3)
        assert solution.terminal_voltage("S1_phase_R") == pytest.approx(0.0, abs=1e-9)
        assert solution.terminal_voltage("S1_phase_Y") == pytest.approx(peak * math.sin(math.radians(-120)))
        assert solution.terminal_voltage("S1_phase_B") == pytest.approx(peak * math.sin(math.radians(-240)))


class TestACAnalysis:

    def test_rc_low_pass(self):
        circuit = series_circuit(
            VoltageSource("Vs", voltage=10.0, type="ac", frequency=50.0),
            Resistor("R1", resistance=1000.0),
            Capacitor("C1", capacitance=1e-6),
        )
        solution = solve_ac(circuit, 50.0)
        expected = 10.0 / (1 + 1j * 2 * np.pi * 50.0 * 1e-3)
        assert abs(solution.terminal_voltage("C1_left") - expected) < 1e-9
        assert solution.branch_current("C1") == pytest.approx(1j * 2 * np.pi * 50.0 * 1e-6 * expected)

    def test_dc_source_is_off(self):
        circuit = series_circuit(VoltageSource("Vs", voltage=10.0), Resistor("R1"))
        assert solve_ac(circuit, 50.0).terminal_voltage("R1_left") == 0j

    def test_load_power_at_rating(self):
        circuit = series_circuit(
            VoltageSource("Vs", voltage=120.0, type="ac", frequency=50.0),
            Load("LD1", loadPercent=100.0),
        )
        P, Q, S = solve_ac(circuit, 50.0).branch_power("LD1")
        assert P == pytest.approx(120.0 * 16.6667 * 0.8, rel=1e-4)
        assert Q == pytest.approx(120.0 * 16.6667 * 0.6, rel=1e-4)
        assert S == pytest.approx(120.0 * 16.6667, rel=1e-4)

    def test_load_current_polar(self):
        circuit = series_circuit(
            VoltageSource("Vs", voltage=120.0, type="ac", frequency=50.0),
            Load("LD1", loadPercent=100.0),
        )
        magnitude, angle = solve_ac(circuit, 50.0).branch_current_polar("LD1")
        assert magnitude == pytest.approx(16.6667, rel=1e-9)
        assert angle == pytest.approx(-math.degrees(math.atan2(0.6, 0.8)))

    def test_transformer_steps_down(self):
        circuit = Circuit()
        gnd = circuit.add(Ground("GND"))
        vs = circuit.add(VoltageSource("Vs", voltage=240.0, type="ac", frequency=50.0))
        t1 = circuit.add(Transformer("T1", turnsRatio=2.0))
        rl = circuit.add(Resistor("RL", resistance=100.0))
        circuit.connect((vs, "positive"), (t1, "primary_pos"))
        circuit.connect((t1, "secondary_pos"), (rl, "left"))
        circuit.chain((vs, "negative"), (t1, "primary_neg"), (gnd, "ref"))
        circuit.chain((rl, "right"), (t1, "secondary_neg"), (gnd, "ref"))

        solution = solve_ac(circuit, 50.0)
        v2 = solution.terminal_voltage("RL_left")
        assert 115.0 < abs(v2) < 120.0
        outputs = solution.outputs()
        assert outputs["T1_I_secondary"] == pytest.approx(v2 / 100.0)

    def test_three_phase_balanced(self):
        circuit = Circuit()
        gnd = circuit.add(Ground("GND"))
        src = circuit.add(ThreePhaseSource("S1", voltage=415.0))
        for phase in ("R", "Y", "B"):
            r = circuit.add(Resistor(f"R{phase}", resistance=100.0))
            circuit.connect((src, f"phase_{phase}"), (r, "left"))
            circuit.connect((r, "right"), (gnd, "ref"))
        circuit.connect((src, "neutral"), (gnd, "ref"))

        solution = solve_ac(circuit, 50.0)
        v_r = solution.terminal_voltage("S1_phase_R")
        v_y = solution.terminal_voltage("S1_phase_Y")
        assert abs(v_r) == pytest.approx(415.0 / math.sqrt(3))
        assert abs(v_r - v_y) == pytest.approx(415.0)
        outputs = solution.outputs()
        total = outputs["S1_I_R"] + outputs["S1_I_Y"] + outputs["S1_I_B"]
        assert abs(total) < 1e-9

    def test_diode_small_signal(self, diode_dc):
        solve_dc(diode_dc)
        diode_dc["Vs"].set_property("type", "ac")
        solution = solve_ac(diode_dc, 50.0)
        g_d = diode_dc["D1"].small_signal_conductance()
        expected = 5.0 * (1.0 / g_d) / (1000.0 + 1.0 / g_d)
        assert abs(solution.branch_voltage("D1") - expected) < 1e-9

    def test_rejects_zero_frequency(self, divider):
        with pytest.raises(ValueError):
            solve_ac(divider, 0.0)


class TestTopologyErrors:

    def test_node_without_stamp(self):
        circuit = Circuit()
        gnd = circuit.add(Ground("GND"))
        vs = circuit.add(VoltageSource("Vs"))
        r1 = circuit.add(Resistor("R1"))
        c1 = circuit.add(Capacitor("C1"))
        circuit.connect((vs, "positive"), (r1, "left"))
        circuit.connect((r1, "right"), (c1, "left"))
        circuit.chain((vs, "negative"), (gnd, "ref"))
        with pytest.raises(FloatingNodeError) as exc_info:
            solve_dc(circuit)
        assert exc_info.value.node == "C1_right"

    def test_isolated_loop_is_singular(self, divider):
        r3 = divider.add(Resistor("R3", resistance=100.0))
        r4 = divider.add(Resistor("R4", resistance=100.0))
        divider.connect((r3, "left"), (r4, "left"))
        divider.connect((r3, "right"), (r4, "right"))
        with pytest.raises(SingularMatrixError):
            solve_dc(divider)

    def test_topology_errors_share_a_base(self, divider):
        divider.add(Ground("G2", reference="other"))
        with pytest.raises(TopologyError):
            solve_dc(divider)

    def test_invalid_property_detected_before_solving(self, divider):
        divider["R1"].properties["resistance"] = -5.0
        with pytest.raises(PropertyValidationError):
            solve_dc(divider)

    def test_empty_circuit(self):
        with pytest.raises(TopologyError):
            solve_dc(Circuit())

    def test_ground_only(self):
        circuit = Circuit()
        circuit.add(Ground("GND"))
        with pytest.raises(TopologyError):
            solve_dc(circuit)
