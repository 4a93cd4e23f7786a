from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Mapping
import numpy as np

from ..components.base import CompanionModel, Component
from ..network.node_map import NodeMap
from ..utils import polar

Array = np.ndarray


@dataclass
class Solution:
    """
    Converged solution of one analysis point (DC, AC or one transient step).

    Attributes:
        node_map: Numbering the solution vector refers to.
        x: Full solution vector, ``x[0]`` is ground.
        components: Components of the solved circuit.
        frequency: 0 for DC/transient, the analysis frequency for AC.
        time: Simulation time for transient points, None otherwise.
        iterations: Newton-Raphson iterations spent.
        companions: Companion models used for reactive components (transient only).
    """
    node_map: NodeMap
    x: Array
    components: Mapping[str, Component]
    frequency: float = 0.0
    time: float | None = None
    iterations: int = 1
    companions: Dict[str, CompanionModel] = field(default_factory=dict)

    @property
    def omega(self) -> float:
        return 2 * np.pi * self.frequency

    @property
    def is_complex(self) -> bool:
        return np.iscomplexobj(self.x)

    def _scalar(self, value) -> complex:
        return complex(value) if self.is_complex else float(np.real(value))

    def node_voltage(self, name: str) -> complex:
        return self._scalar(self.x[self.node_map.node_index(name)])

    def terminal_voltage(self, terminal: str) -> complex:
        return self._scalar(self.x[self.node_map.node(terminal)])

    def node_voltages(self) -> Dict[str, complex]:
        return {name: self._scalar(self.x[i]) for i, name in enumerate(self.node_map.node_names)}

    def aux_values(self, component_id: str) -> Array:
        indices = self.node_map.aux(component_id)
        if not indices:
            raise KeyError(f"No auxiliary variable associated with '{component_id}'.")
        return self.x[np.array(indices, dtype=int)]

    def aux_scalar(self, component_id: str) -> complex:
        return self._scalar(self.aux_values(component_id)[0])

    def companion(self, component_id: str) -> CompanionModel | None:
        return self.companions.get(component_id)

    def branch_voltage(self, component_id: str) -> complex:
        return self._element(component_id).branch_voltage(self)

    def branch_current(self, component_id: str) -> complex:
        current = self._element(component_id).branch_current(self)
        if current is None:
            raise KeyError(f"Component '{component_id}' does not define a branch current.")
        return self._scalar(current)

    def branch_current_polar(self, component_id: str) -> tuple[float, float]:
        return polar(self.branch_current(component_id))

    def branch_power(self, component_id: str) -> tuple[float, float, float]:
        """
        Return (P, Q, |S|) absorbed by a component, ``S = V * conj(I)``.
        """
        S = complex(self.branch_voltage(component_id)) * np.conj(complex(self.branch_current(component_id)))
        return float(S.real), float(S.imag), float(abs(S))

    def outputs(self) -> Dict[str, complex]:
        """
        Flat mapping of every reported quantity.

        Keys are node names, ``"<id>_I"`` for branch currents and the extra
        keys components report (meter readings, per-phase currents).
        """
        out: Dict[str, complex] = {}
        for name, value in self.node_voltages().items():
            out[name] = value
        for component in self.components.values():
            for key, value in component.outputs(self).items():
                out[key] = self._scalar(value)
        return out

    def _element(self, component_id: str) -> Component:
        if component_id not in self.components:
            raise KeyError(f"Component '{component_id}' not present in the circuit.")
        return self.components[component_id]
