from __future__ import annotations
from typing import Dict

from .base import (
    Component,
    OPEN_CIRCUIT_CONDUCTANCE,
    PropertySpec,
    Stamp,
    register_component,
    stamp_conductance,
)


@register_component
class Transformer(Component):
    """
    Single-phase transformer, approximate equivalent circuit referred to the primary.

        P+ --[Req + jXeq]-- mid --+
                                  |  ideal a:1  -- S+ / S-
        P- ------[Rc || jXm]------+

    At DC the leakage reactance is a short and the magnetizing branch is
    open, so only Req and Rc remain. The ideal stage enforces
    ``V(mid) - V(P-) = a * (V(S+) - V(S-))`` through one auxiliary current
    and delivers ``a`` times that current out of S+. Every external terminal
    leaks a negligible conductance to ground.
    """
    type_name = "transformer"
    terminal_names = ("primary_pos", "primary_neg", "secondary_pos", "secondary_neg")
    internal_terminals = ("mid",)
    property_specs = (
        PropertySpec("turnsRatio", 2.0, minimum=1e-3, label="Turns Ratio (a)"),
        PropertySpec("Req", 1.15, unit="Ω", minimum=1e-6, label="R_eq"),
        PropertySpec("Xeq", 0.85, unit="Ω", minimum=0.0, label="X_eq"),
        PropertySpec("Rc", 1200.0, unit="Ω", minimum=1e-3, label="R_c"),
        PropertySpec("Xm", 1000.0, unit="Ω", minimum=1e-3, label="X_m"),
        PropertySpec("ratingKVA", 2.0, unit="kVA", minimum=0.0, label="Rating"),
        PropertySpec("primaryVoltage", 240.0, unit="V", minimum=0.0, label="Primary Voltage"),
        PropertySpec("secondaryVoltage", 120.0, unit="V", minimum=0.0, label="Secondary Voltage"),
    )
    aux_count = 1

    def series_admittance(self, frequency: float) -> complex:
        if frequency == 0:
            return 1.0 / self["Req"]
        return 1.0 / complex(self["Req"], self["Xeq"])

    def shunt_admittance(self, frequency: float) -> complex:
        if frequency == 0:
            return 1.0 / self["Rc"]
        return complex(1.0 / self["Rc"], -1.0 / self["Xm"])

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        a = self["turnsRatio"]
        pp, pn, sp, sn = (self.node(node_map, t) for t in self.terminal_names)
        mid = self.node(node_map, "mid")
        (k,) = node_map.aux(self.id)

        stamp = Stamp()
        for n in (pp, pn, sp, sn):
            stamp_conductance(stamp, n, 0, OPEN_CIRCUIT_CONDUCTANCE)
        stamp_conductance(stamp, pp, mid, self.series_admittance(frequency))
        stamp_conductance(stamp, mid, pn, self.shunt_admittance(frequency))

        for node, coeff in ((mid, 1.0), (pn, -1.0), (sp, -a), (sn, a)):
            stamp.add(k, node, coeff)
            stamp.add(node, k, coeff)
        return stamp

    def branch_current(self, solution) -> complex:
        """Primary current entering P+."""
        v = solution.terminal_voltage(self.terminal("primary_pos")) - solution.terminal_voltage(
            self.terminal("mid"))
        return v * self.series_admittance(solution.frequency)

    def secondary_current(self, solution) -> complex:
        """Current delivered out of S+ into the secondary circuit."""
        return self["turnsRatio"] * solution.aux_scalar(self.id)

    def outputs(self, solution) -> Dict[str, complex]:
        return {
            f"{self.id}_I": self.branch_current(solution),
            f"{self.id}_I_secondary": self.secondary_current(solution),
        }
