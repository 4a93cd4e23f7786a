from __future__ import annotations
from dataclasses import dataclass
import math
import numpy as np

from .base import (
    PropertySpec,
    Stamp,
    TwoTerminal,
    register_component,
    stamp_conductance,
    stamp_current_source,
)

# Largest exponent argument, in units of n*Vt, evaluated by the Shockley model.
EXP_CLAMP = 40.0
# Conductance in parallel with the junction so diode-only nodes keep a usable pivot.
GMIN = 1e-12


@dataclass(frozen=True)
class DiodeModel:
    """
    Linearization of the diode at a junction voltage.

    Attributes:
        i_d: Diode current.
        g_d: Differential conductance (floored at Is/(n*Vt)).
        i_eq: Companion current source, ``i_d - g_d * vd``.
    """
    i_d: float
    g_d: float
    i_eq: float


@register_component
class Diode(TwoTerminal):
    """
    Junction diode following the Shockley equation.

    The diode is the only nonlinear element: instead of a fixed stamp it is
    linearized around a junction voltage ``vd`` by the Newton-Raphson engine,
    which uses :meth:`compute_model`, :meth:`limit_voltage` and
    :meth:`linearized_stamp`. The last converged ``vd`` is kept in
    ``state["vd"]`` and seeds the next solve.
    A conductance ``GMIN`` in parallel with the junction is part of every
    stamp and of the reported current.
    """
    type_name = "diode"
    terminal_names = ("anode", "cathode")
    property_specs = (
        PropertySpec("saturationCurrent", 1e-14, unit="A", minimum=1e-18, maximum=1e-3, label="Is (Sat. Current)"),
        PropertySpec("emissionCoefficient", 1.0, minimum=0.5, maximum=3.0, label="n (Emission Coeff)"),
        PropertySpec("thermalVoltage", 0.02585, unit="V", minimum=0.01, label="Vt (Thermal Voltage)"),
    )
    state_defaults = {"vd": 0.0}

    @property
    def n_vt(self) -> float:
        return self["emissionCoefficient"] * self["thermalVoltage"]

    @property
    def critical_voltage(self) -> float:
        n_vt = self.n_vt
        return n_vt * math.log(n_vt / (math.sqrt(2) * self["saturationCurrent"]))

    def compute_model(self, vd: float) -> DiodeModel:
        """
        Evaluate current, conductance and companion source at ``vd``.

        The exponent argument is clamped to ``40 * n * Vt`` to keep the
        arithmetic finite; ``i_eq`` uses the unclamped voltage.
        """
        i_s = self["saturationCurrent"]
        n_vt = self.n_vt
        e = math.exp(min(vd, EXP_CLAMP * n_vt) / n_vt)
        i_d = i_s * (e - 1.0)
        g_d = max(i_s / n_vt * e, i_s / n_vt)
        return DiodeModel(i_d=i_d, g_d=g_d, i_eq=i_d - g_d * vd)

    def limit_voltage(self, v_new: float, v_old: float) -> float:
        """
        Damp the junction-voltage update inside the exponential region.

        Steps larger than ``2 * n * Vt`` above the critical voltage are
        shortened logarithmically; everything else passes through.
        """
        n_vt = self.n_vt
        if v_new > self.critical_voltage and abs(v_new - v_old) > 2 * n_vt:
            if v_old > 0:
                arg = (v_new - v_old) / n_vt
                if arg > 0:
                    return v_old + n_vt * (1.0 + math.log(arg))
                return v_old + 2 * n_vt
            return n_vt * math.log(v_new / n_vt)
        return v_new

    def linearized_stamp(self, node_map, vd: float) -> Stamp:
        model = self.compute_model(vd)
        n1, n2 = self.nodes(node_map)
        stamp = Stamp()
        stamp_conductance(stamp, n1, n2, model.g_d + GMIN)
        stamp_current_source(stamp, n1, n2, model.i_eq)
        return stamp

    def small_signal_conductance(self, vd: float | None = None) -> float:
        return self.compute_model(self.state["vd"] if vd is None else vd).g_d + GMIN

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        if frequency > 0:
            n1, n2 = self.nodes(node_map)
            stamp = Stamp()
            stamp_conductance(stamp, n1, n2, self.small_signal_conductance())
            return stamp
        return self.linearized_stamp(node_map, self.state["vd"])

    def commit(self, vd: float) -> None:
        self.state["vd"] = vd

    def branch_current(self, solution) -> complex:
        v = self.branch_voltage(solution)
        if solution.frequency > 0:
            return self.small_signal_conductance() * v
        v = float(np.real(v))
        return self.compute_model(v).i_d + GMIN * v
