from __future__ import annotations
import numpy as np

from .base import Component, PropertySpec, Stamp, register_component, stamp_conductance


@register_component
class OpAmp(Component):
    """
    Linear macro-model of a non-ideal operational amplifier.

    Input stage: differential resistance ``rin`` between the inputs and a
    common-mode resistance ``50 * rin`` from each input to ground.
    Gain stage: a VCCS drives a 1 Ω resistor on the hidden ``internal_pole``
    node, giving ``V(pole) = A0 * (V+ - V-) + Ac * (V+ + V-) / 2 + A0 * Vos``
    with ``Ac = A0 / 10**(cmrr/20)``. In AC a capacitor ``1 / (2*pi*gbp/A0)``
    in parallel sets the dominant pole so the gain-bandwidth product is gbp.
    Output stage: a Norton source ``V(pole) / rout`` in parallel with ``rout``.
    All elements are linear, so the model never needs Newton iterations.
    """
    type_name = "opamp"
    terminal_names = ("in_pos", "in_neg", "out")
    internal_terminals = ("internal_pole",)
    property_specs = (
        PropertySpec("openLoopGain", 1e5, unit="V/V", minimum=1.0, label="Open-Loop Gain"),
        PropertySpec("gbp", 1e6, unit="Hz", minimum=1.0, label="Gain-Bandwidth Product"),
        PropertySpec("rin", 2e6, unit="Ω", minimum=1.0, label="Input Resistance"),
        PropertySpec("rout", 75.0, unit="Ω", minimum=0.001, label="Output Resistance"),
        PropertySpec("offsetVoltage", 0.0, unit="V", label="Offset Voltage"),
        PropertySpec("cmrr", 90.0, unit="dB", minimum=1.0, label="CMRR"),
    )
    COMMON_MODE_FACTOR = 50.0
    POLE_CONDUCTANCE = 1.0

    def pole_capacitance(self) -> float:
        return 1.0 / (2 * np.pi * self["gbp"] / self["openLoopGain"])

    def output_conductance(self) -> float:
        return 1.0 / max(self["rout"], 0.001)

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        a0 = self["openLoopGain"]
        a_cm = a0 / 10 ** (self["cmrr"] / 20)
        g_plus = a0 + a_cm / 2
        g_minus = -a0 + a_cm / 2
        g_out = self.output_conductance()

        pos, neg, out, pole = (self.node(node_map, t) for t in self.terminal_names + self.internal_terminals)
        stamp = Stamp()

        stamp_conductance(stamp, pos, neg, 1.0 / self["rin"])
        g_cm = 1.0 / (self["rin"] * self.COMMON_MODE_FACTOR)
        stamp_conductance(stamp, pos, 0, g_cm)
        stamp_conductance(stamp, neg, 0, g_cm)

        y_pole = self.POLE_CONDUCTANCE
        if frequency > 0:
            y_pole = y_pole + 1j * 2 * np.pi * frequency * self.pole_capacitance()
        stamp_conductance(stamp, pole, 0, y_pole)
        stamp.add(pole, pos, -g_plus)
        stamp.add(pole, neg, -g_minus)
        if self["offsetVoltage"] != 0:
            stamp.add_rhs(pole, a0 * self["offsetVoltage"])

        stamp.add(out, out, g_out)
        stamp.add(out, pole, -g_out)
        return stamp

    def branch_voltage(self, solution) -> complex:
        return solution.terminal_voltage(self.terminal("in_pos")) - solution.terminal_voltage(
            self.terminal("in_neg"))

    def branch_current(self, solution) -> complex:
        """Current delivered by the output stage into the ``out`` node."""
        v_out = solution.terminal_voltage(self.terminal("out"))
        v_pole = solution.terminal_voltage(self.terminal("internal_pole"))
        return (v_pole - v_out) * self.output_conductance()
