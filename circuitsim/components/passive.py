from __future__ import annotations
import math
from typing import Mapping
import numpy as np

from .base import (
    CompanionModel,
    OPEN_CIRCUIT_CONDUCTANCE,
    PropertySpec,
    ReactiveComponent,
    Stamp,
    TwoTerminal,
    register_component,
    stamp_conductance,
)

# A DC inductor is a short; a finite conductance keeps the matrix regular.
INDUCTOR_DC_CONDUCTANCE = 1e6
# Initial-condition model of capacitors: stiff source holding the stored voltage.
CAPACITOR_INIT_CONDUCTANCE = 1e9


@register_component
class Resistor(TwoTerminal):
    type_name = "resistor"
    terminal_names = ("left", "right")
    property_specs = (
        PropertySpec("resistance", 1000.0, unit="Ω", minimum=0.001, label="Resistance"),
    )

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        n1, n2 = self.nodes(node_map)
        stamp = Stamp()
        stamp_conductance(stamp, n1, n2, 1.0 / self["resistance"])
        return stamp

    def branch_current(self, solution) -> complex:
        return self.branch_voltage(solution) / self["resistance"]


@register_component
class Capacitor(ReactiveComponent):
    type_name = "capacitor"
    terminal_names = ("left", "right")
    property_specs = (
        PropertySpec("capacitance", 1e-6, unit="F", minimum=1e-15, label="Capacitance"),
    )
    state_defaults = {"voltage": 0.0, "current": 0.0}

    def admittance(self, frequency: float) -> complex:
        if frequency == 0:
            return 0j
        return 1j * 2 * np.pi * frequency * self["capacitance"]

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        # Open at DC: nothing to stamp.
        stamp = Stamp()
        if frequency > 0:
            n1, n2 = self.nodes(node_map)
            stamp_conductance(stamp, n1, n2, self.admittance(frequency))
        return stamp

    def companion_model(self, dt: float, state: Mapping[str, float] | None = None) -> CompanionModel:
        state = self.state if state is None else state
        g = self["capacitance"] / dt
        return CompanionModel(conductance=g, current_source=-g * state["voltage"],
                              update_state=self._commit)

    def initial_model(self, state: Mapping[str, float] | None = None) -> CompanionModel:
        state = self.state if state is None else state
        g = CAPACITOR_INIT_CONDUCTANCE
        return CompanionModel(conductance=g, current_source=-g * state["voltage"],
                              update_state=self._commit)

    def _commit(self, voltage: float, current: float) -> None:
        self.state["voltage"] = voltage
        self.state["current"] = current


@register_component
class Inductor(ReactiveComponent):
    type_name = "inductor"
    terminal_names = ("left", "right")
    property_specs = (
        PropertySpec("inductance", 1e-3, unit="H", minimum=1e-12, label="Inductance"),
    )
    state_defaults = {"current": 0.0, "voltage": 0.0}

    def admittance(self, frequency: float) -> complex:
        if frequency == 0:
            return INDUCTOR_DC_CONDUCTANCE
        return 1.0 / (1j * 2 * np.pi * frequency * self["inductance"])

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        n1, n2 = self.nodes(node_map)
        stamp = Stamp()
        stamp_conductance(stamp, n1, n2, self.admittance(frequency))
        return stamp

    def companion_model(self, dt: float, state: Mapping[str, float] | None = None) -> CompanionModel:
        state = self.state if state is None else state
        return CompanionModel(conductance=dt / self["inductance"], current_source=state["current"],
                              update_state=self._commit)

    def initial_model(self, state: Mapping[str, float] | None = None) -> CompanionModel:
        state = self.state if state is None else state
        return CompanionModel(conductance=OPEN_CIRCUIT_CONDUCTANCE, current_source=state["current"],
                              update_state=self._commit)

    def _commit(self, voltage: float, current: float) -> None:
        self.state["current"] = current
        self.state["voltage"] = voltage


@register_component
class Load(ReactiveComponent):
    """
    Series R-L load sized from a percentage of its rating.

    The rating is 120 V / 16.6667 A at power factor 0.8 lagging, 50 Hz.
    At ``loadPercent`` k% the load draws k% of rated current at rated voltage:
    ``Z = V / (k * I)``, ``R = Z * pf``, ``X = Z * sin(phi)``. A 0 % load is an
    open circuit, represented by a very small conductance.
    """
    type_name = "load"
    terminal_names = ("left", "right")
    property_specs = (
        PropertySpec("loadPercent", 100.0, unit="%", minimum=0.0, maximum=125.0, label="Load"),
    )
    state_defaults = {"inductor_current": 0.0, "inductor_voltage": 0.0}

    RATED_VOLTAGE = 120.0
    RATED_CURRENT = 16.6667
    POWER_FACTOR = 0.8
    SIN_PHI = 0.6
    RATED_FREQUENCY = 50.0
    # DC resistance used when the load is switched off.
    OPEN_RESISTANCE = 1e9

    @property
    def is_open(self) -> bool:
        return self["loadPercent"] <= 0

    def impedance(self) -> tuple[float, float]:
        """
        Return (R, L) of the equivalent series branch.
        """
        if self.is_open:
            return math.inf, 0.0
        current = self["loadPercent"] / 100.0 * self.RATED_CURRENT
        z = self.RATED_VOLTAGE / current
        r = z * self.POWER_FACTOR
        xl = z * self.SIN_PHI
        return r, xl / (2 * np.pi * self.RATED_FREQUENCY)

    def admittance(self, frequency: float) -> complex:
        if self.is_open:
            return 1.0 / self.OPEN_RESISTANCE
        r, l = self.impedance()
        return 1.0 / (r + 1j * 2 * np.pi * frequency * l)

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        n1, n2 = self.nodes(node_map)
        stamp = Stamp()
        y = self.admittance(frequency)
        stamp_conductance(stamp, n1, n2, y.real if frequency == 0 else y)
        return stamp

    def companion_model(self, dt: float, state: Mapping[str, float] | None = None) -> CompanionModel:
        state = self.state if state is None else state
        if self.is_open:
            return CompanionModel(conductance=OPEN_CIRCUIT_CONDUCTANCE, current_source=0.0,
                                  update_state=self._commit_open)
        r, l = self.impedance()
        g = 1.0 / (r + l / dt)
        return CompanionModel(conductance=g, current_source=state["inductor_current"] * (l / dt) * g,
                              update_state=self._commit)

    def initial_model(self, state: Mapping[str, float] | None = None) -> CompanionModel:
        state = self.state if state is None else state
        if self.is_open:
            return CompanionModel(conductance=OPEN_CIRCUIT_CONDUCTANCE, current_source=0.0,
                                  update_state=self._commit_open)
        return CompanionModel(conductance=OPEN_CIRCUIT_CONDUCTANCE, current_source=state["inductor_current"],
                              update_state=self._commit)

    def _commit(self, voltage: float, current: float) -> None:
        r, _ = self.impedance()
        self.state["inductor_current"] = current
        self.state["inductor_voltage"] = voltage - r * current

    def _commit_open(self, voltage: float, current: float) -> None:
        self.state["inductor_current"] = 0.0
        self.state["inductor_voltage"] = 0.0

