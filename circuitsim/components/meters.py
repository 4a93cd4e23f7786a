from __future__ import annotations
from typing import Dict
import numpy as np

from .base import Component, Stamp, TwoTerminal, register_component, stamp_conductance, stamp_voltage_source

# Internal resistance of voltmeters and of the wattmeter voltage coil.
METER_RESISTANCE = 1e8


@register_component
class Ammeter(TwoTerminal):
    """Ideal ammeter: a 0 V source whose branch current is the reading."""
    type_name = "ammeter"
    terminal_names = ("positive", "negative")
    aux_count = 1

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        n1, n2 = self.nodes(node_map)
        stamp = Stamp()
        (k,) = node_map.aux(self.id)
        stamp_voltage_source(stamp, k, n1, n2, 0.0)
        return stamp

    def branch_current(self, solution) -> complex:
        return solution.aux_scalar(self.id)


@register_component
class Voltmeter(TwoTerminal):
    type_name = "voltmeter"
    terminal_names = ("positive", "negative")

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        n1, n2 = self.nodes(node_map)
        stamp = Stamp()
        stamp_conductance(stamp, n1, n2, 1.0 / METER_RESISTANCE)
        return stamp

    def outputs(self, solution) -> Dict[str, complex]:
        return {f"{self.id}_V": self.branch_voltage(solution)}


@register_component
class Wattmeter(Component):
    """
    Four-terminal wattmeter.

    The current coil runs from M (mains) to L (load) and is an ideal 0 V
    source; the voltage coil between C (common) and V is a high resistance.
    Power is ``Re(V * conj(I))`` in AC and ``V * I`` otherwise.
    """
    type_name = "wattmeter"
    terminal_names = ("M", "L", "C", "V")
    aux_count = 1

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        stamp = Stamp()
        (k,) = node_map.aux(self.id)
        stamp_voltage_source(stamp, k, self.node(node_map, "M"), self.node(node_map, "L"), 0.0)
        stamp_conductance(stamp, self.node(node_map, "C"), self.node(node_map, "V"), 1.0 / METER_RESISTANCE)
        return stamp

    def branch_current(self, solution) -> complex:
        return solution.aux_scalar(self.id)

    def coil_voltage(self, solution) -> complex:
        return solution.terminal_voltage(self.terminal("V")) - solution.terminal_voltage(self.terminal("C"))

    def power(self, solution) -> float:
        return float(np.real(self.coil_voltage(solution) * np.conj(self.branch_current(solution))))

    def outputs(self, solution) -> Dict[str, complex]:
        return {
            f"{self.id}_I": self.branch_current(solution),
            f"{self.id}_V": self.coil_voltage(solution),
            f"{self.id}_P": self.power(solution),
        }
