from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from ..components.base import Component
from ..errors import TopologyError


@dataclass(frozen=True)
class Wire:
    """
    Zero-resistance connection between two terminal keys.

    Attributes:
        start: Terminal key ``"<component id>_<terminal name>"``.
        end: Terminal key at the other end.
        id: Optional identifier kept for round-tripping editor data.
    """
    start: str
    end: str
    id: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "startTerminal": self.start, "endTerminal": self.end}


@dataclass
class Circuit:
    """
    Topology container: owns the components and the wires joining their terminals.

    Components are kept in insertion order, which fixes the order of the
    auxiliary unknowns in the MNA system.

    Attributes:
        components: Mapping component id -> Component.
        wires: List of wires between terminal keys.
    """
    components: Dict[str, Component] = field(default_factory=dict)
    wires: List[Wire] = field(default_factory=list)

    def add(self, component: Component) -> Component:
        """
        Add a component and return it.

        Raises:
            TopologyError: If a component with the same id already exists.
        """
        if component.id in self.components:
            raise TopologyError(f"Component '{component.id}' already exists.")
        self.components[component.id] = component
        return component

    def add_all(self, *components: Component) -> None:
        for component in components:
            self.add(component)

    def remove(self, component_id: str) -> Component:
        """Remove a component together with every wire touching its terminals."""
        component = self.components.pop(component_id)
        keys = set(component.terminals)
        self.wires = [w for w in self.wires if w.start not in keys and w.end not in keys]
        return component

    def connect(self, start: str | Tuple[Component, str], end: str | Tuple[Component, str],
                wire_id: str | None = None) -> Wire:
        """
        Wire two terminals together.

        Each endpoint is either a terminal key or a ``(component, terminal name)`` pair.
        """
        a = self._key(start)
        b = self._key(end)
        terminals = self.terminal_owners()
        for key in (a, b):
            if key not in terminals:
                raise TopologyError(f"Unknown terminal '{key}'.")
            component, name = terminals[key]
            if name in component.internal_terminals:
                raise TopologyError(f"Terminal '{key}' is internal and cannot be wired.")
        wire = Wire(a, b, wire_id or f"wire_{len(self.wires) + 1}")
        self.wires.append(wire)
        return wire

    def chain(self, *endpoints: str | Tuple[Component, str]) -> None:
        """Wire consecutive endpoints: ``chain(a, b, c)`` connects a-b and b-c."""
        for start, end in zip(endpoints, endpoints[1:]):
            self.connect(start, end)

    @staticmethod
    def _key(endpoint: str | Tuple[Component, str]) -> str:
        if isinstance(endpoint, str):
            return endpoint
        component, name = endpoint
        return component.terminal(name)

    def terminal_owners(self) -> Dict[str, Tuple[Component, str]]:
        owners: Dict[str, Tuple[Component, str]] = {}
        for component in self.components.values():
            for name in component.terminal_names + component.internal_terminals:
                owners[component.terminal(name)] = (component, name)
        return owners

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components.values())

    def __len__(self) -> int:
        return len(self.components)

    def __getitem__(self, component_id: str) -> Component:
        return self.components[component_id]

    def validate(self) -> None:
        """Re-validate every component's properties."""
        for component in self.components.values():
            component.validate()

    def reset_state(self) -> None:
        for component in self.components.values():
            component.reset_state()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "components": [c.to_dict() for c in self.components.values()],
            "wires": [w.to_dict() for w in self.wires],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Circuit":
        """
        Build a circuit from ``{"components": [...], "wires": [...]}``.

        Wires use the editor's ``startTerminal`` / ``endTerminal`` keys.
        """
        circuit = cls()
        for item in data.get("components", []):
            circuit.add(Component.from_dict(item))
        for item in data.get("wires", []):
            circuit.connect(item["startTerminal"], item["endTerminal"], wire_id=item.get("id"))
        return circuit
