from __future__ import annotations
import math
from typing import Dict

from .base import (
    Component,
    PropertySpec,
    Stamp,
    TwoTerminal,
    register_component,
    stamp_current_source,
    stamp_voltage_source,
)
from ..utils import phasor, sine

WAVEFORMS = ("dc", "ac")


class _Waveform:
    """
    Shared dc/ac evaluation for independent sources.

    ``amplitude_key`` names the property holding the dc value or ac peak.
    """
    amplitude_key = ""

    def value_at(self, time: float | None) -> float:
        amplitude = self[self.amplitude_key]
        if self["type"] == "dc":
            return amplitude
        # DC analysis of an ac source uses its value at t = 0.
        return sine(amplitude, self["frequency"], self["phase"], time or 0.0)

    def phasor_at(self, frequency: float) -> complex:
        if self["type"] == "dc" or not math.isclose(frequency, self["frequency"]):
            return 0j
        return phasor(self[self.amplitude_key], self["phase"])

    def source_value(self, frequency: float, time: float | None) -> complex:
        if frequency > 0:
            return self.phasor_at(frequency)
        return self.value_at(time)


@register_component
class VoltageSource(_Waveform, TwoTerminal):
    """
    Independent voltage source, constant or sinusoidal.

    The ac waveform is ``voltage * sin(2*pi*frequency*t + phase)``. In an AC
    analysis the source contributes the phasor ``voltage∠phase`` when its
    frequency matches the analysis frequency and is shorted otherwise.
    """
    type_name = "voltage_source"
    terminal_names = ("positive", "negative")
    property_specs = (
        PropertySpec("voltage", 5.0, unit="V", label="Voltage"),
        PropertySpec("type", "dc", choices=WAVEFORMS, kind="string", label="Type"),
        PropertySpec("frequency", 50.0, unit="Hz", minimum=0.0, label="Frequency"),
        PropertySpec("phase", 0.0, unit="°", label="Phase"),
    )
    aux_count = 1
    amplitude_key = "voltage"

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        n1, n2 = self.nodes(node_map)
        stamp = Stamp()
        (k,) = node_map.aux(self.id)
        stamp_voltage_source(stamp, k, n1, n2, self.source_value(frequency, time))
        return stamp

    def branch_current(self, solution) -> complex:
        return solution.aux_scalar(self.id)


@register_component
class CurrentSource(_Waveform, TwoTerminal):
    """
    Independent current source driving ``current`` out of its positive terminal.
    """
    type_name = "current_source"
    terminal_names = ("positive", "negative")
    property_specs = (
        PropertySpec("current", 1e-3, unit="A", label="Current"),
        PropertySpec("type", "dc", choices=WAVEFORMS, kind="string", label="Type"),
        PropertySpec("frequency", 50.0, unit="Hz", minimum=0.0, label="Frequency"),
        PropertySpec("phase", 0.0, unit="°", label="Phase"),
    )
    amplitude_key = "current"

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        n1, n2 = self.nodes(node_map)
        stamp = Stamp()
        # Through the source the current runs from negative to positive.
        stamp_current_source(stamp, n2, n1, self.source_value(frequency, time))
        return stamp

    def branch_current(self, solution) -> complex:
        value = self.source_value(solution.frequency, solution.time)
        return -value


@register_component
class ThreePhaseSource(Component):
    """
    Balanced star-connected three-phase source.

    ``voltage`` is the RMS line-to-line voltage. Each phase is an ideal source
    between its terminal and the neutral with RMS phase voltage
    ``Vp = voltage / sqrt(3)`` and angles 0, -120 and -240 degrees plus
    ``phaseShift``. The instantaneous phase voltage is
    ``sqrt(2) * Vp * sin(2*pi*f*t + angle)``.
    """
    type_name = "three_phase_source"
    terminal_names = ("phase_R", "phase_Y", "phase_B", "neutral")
    property_specs = (
        PropertySpec("voltage", 415.0, unit="V", minimum=0.0, label="Line Voltage (RMS)"),
        PropertySpec("frequency", 50.0, unit="Hz", minimum=0.0, label="Frequency"),
        PropertySpec("phaseShift", 0.0, unit="°", label="Phase Shift"),
    )
    aux_count = 3
    PHASES = (("phase_R", "R", 0.0), ("phase_Y", "Y", -120.0), ("phase_B", "B", -240.0))

    @property
    def phase_voltage(self) -> float:
        return self["voltage"] / math.sqrt(3)

    def phase_value(self, angle: float, frequency: float, time: float | None) -> complex:
        shift = self["phaseShift"] + angle
        if frequency > 0:
            if not math.isclose(frequency, self["frequency"]):
                return 0j
            return phasor(self.phase_voltage, shift)
        return sine(math.sqrt(2) * self.phase_voltage, self["frequency"], shift, time or 0.0)

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        stamp = Stamp()
        neutral = self.node(node_map, "neutral")
        for k, (terminal, _, angle) in zip(node_map.aux(self.id), self.PHASES):
            value = self.phase_value(angle, frequency, time)
            stamp_voltage_source(stamp, k, self.node(node_map, terminal), neutral, value)
        return stamp

    def branch_voltage(self, solution) -> complex:
        return solution.terminal_voltage(self.terminal("phase_R")) - solution.terminal_voltage(
            self.terminal("neutral"))

    def phase_currents(self, solution) -> Dict[str, complex]:
        values = solution.aux_values(self.id)
        return {label: values[i] for i, (_, label, _) in enumerate(self.PHASES)}

    def outputs(self, solution) -> Dict[str, complex]:
        return {f"{self.id}_I_{label}": value for label, value in self.phase_currents(solution).items()}
