from __future__ import annotations
from dataclasses import dataclass, field
from abc import ABC, abstractmethod
import math
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Tuple, Type, TYPE_CHECKING
import numpy as np

from ..errors import PropertyValidationError, TopologyError

if TYPE_CHECKING:
    from ..network.node_map import NodeMap
    from ..solver.solution import Solution

Array = np.ndarray

# Conductance used in place of an open circuit so that the matrix stays regular.
OPEN_CIRCUIT_CONDUCTANCE = 1e-12


@dataclass(frozen=True)
class PropertySpec:
    """
    Declared property of a component variant.

    Attributes:
        name: Key inside the component's property mapping.
        default: Value used when the property is not supplied.
        unit: Physical unit, informational only.
        minimum: Inclusive lower bound for numeric properties.
        maximum: Inclusive upper bound for numeric properties.
        choices: Allowed values for string properties. ``None`` means numeric.
        label: Human-readable label shown by property editors.
    """
    name: str
    default: Any
    unit: str = ""
    minimum: float | None = None
    maximum: float | None = None
    choices: Tuple[str, ...] | None = None
    label: str = ""
    kind: str = "number"

    def coerce(self, component_id: str, value: Any) -> Any:
        if self.kind == "string":
            if not isinstance(value, str):
                raise PropertyValidationError(component_id, self.name, f"expected a string, got {value!r}")
            if self.choices is not None and value not in self.choices:
                raise PropertyValidationError(
                    component_id, self.name, f"{value!r} is not one of {list(self.choices)}"
                )
            return value
        if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
            raise PropertyValidationError(component_id, self.name, f"expected a number, got {value!r}")
        value = float(value)
        if not math.isfinite(value):
            raise PropertyValidationError(component_id, self.name, "must be finite")
        if self.minimum is not None and value < self.minimum:
            raise PropertyValidationError(
                component_id, self.name, f"{value:g} is below the minimum {self.minimum:g} {self.unit}".rstrip()
            )
        if self.maximum is not None and value > self.maximum:
            raise PropertyValidationError(
                component_id, self.name, f"{value:g} is above the maximum {self.maximum:g} {self.unit}".rstrip()
            )
        return value


@dataclass
class Stamp:
    """
    Contribution of one component to the MNA system.

    Indices are absolute: row/column 0 is ground and is discarded at assembly,
    so stamping code never needs to special-case grounded terminals.

    Attributes:
        G: Conductance entries as (row, col, value).
        z: Right-hand-side entries as (row, value).
    """
    G: List[Tuple[int, int, complex]] = field(default_factory=list)
    z: List[Tuple[int, complex]] = field(default_factory=list)

    def add(self, row: int, col: int, value: complex) -> None:
        self.G.append((row, col, value))

    def add_rhs(self, row: int, value: complex) -> None:
        self.z.append((row, value))

    def extend(self, other: "Stamp") -> "Stamp":
        self.G.extend(other.G)
        self.z.extend(other.z)
        return self

    def dense(self, size: int, dtype=float) -> Tuple[Array, Array]:
        """Return the full (ground included) matrix and vector for this stamp alone."""
        G = np.zeros((size, size), dtype=dtype)
        z = np.zeros(size, dtype=dtype)
        for r, c, v in self.G:
            G[r, c] += v
        for r, v in self.z:
            z[r] += v
        return G, z


def stamp_conductance(stamp: Stamp, n1: int, n2: int, g: complex) -> None:
    stamp.add(n1, n1, g)
    stamp.add(n2, n2, g)
    stamp.add(n1, n2, -g)
    stamp.add(n2, n1, -g)


def stamp_current_source(stamp: Stamp, n1: int, n2: int, current: complex) -> None:
    """
    Positive current flows from n1 to n2 through the element.
    """
    stamp.add_rhs(n1, -current)
    stamp.add_rhs(n2, current)


def stamp_voltage_source(stamp: Stamp, k: int, n_plus: int, n_minus: int, voltage: complex) -> None:
    """
    Ideal source V(n_plus) - V(n_minus) = voltage with branch current unknown k.

    The unknown x[k] is the current entering n_plus' terminal of the element
    and leaving through n_minus.
    """
    stamp.add(n_plus, k, 1.0)
    stamp.add(k, n_plus, 1.0)
    stamp.add(n_minus, k, -1.0)
    stamp.add(k, n_minus, -1.0)
    stamp.add_rhs(k, voltage)


@dataclass
class CompanionModel:
    """
    Backward-Euler equivalent of a reactive branch for one time step.

    The branch current (first terminal to second) is
    ``i = conductance * v + current_source``.

    Attributes:
        conductance: Equivalent conductance.
        current_source: Equivalent parallel current source.
        update_state: Callback committing ``(voltage, current)`` once the step converged.
    """
    conductance: float
    current_source: float
    update_state: Callable[[float, float], None]

    def current(self, voltage: float) -> float:
        return self.conductance * voltage + self.current_source


COMPONENT_TYPES: Dict[str, Type["Component"]] = {}


def register_component(cls: Type["Component"]) -> Type["Component"]:
    """Class decorator adding a variant to the type registry used by ``from_dict``."""
    if cls.type_name in COMPONENT_TYPES:
        raise ValueError(f"Component type '{cls.type_name}' registered twice")
    COMPONENT_TYPES[cls.type_name] = cls
    return cls


class Component(ABC):
    """
    Base class for every circuit element.

    A component owns its terminals (named connection points), a validated
    property mapping and, for stateful variants, a persistent state mapping.
    It contributes to the MNA system through :meth:`get_stamp`.

    Terminal keys are ``"<component id>_<terminal name>"``. Internal terminals
    are never wired; each becomes a node of its own.
    """
    type_name: ClassVar[str] = ""
    terminal_names: ClassVar[Tuple[str, ...]] = ()
    internal_terminals: ClassVar[Tuple[str, ...]] = ()
    property_specs: ClassVar[Tuple[PropertySpec, ...]] = ()
    state_defaults: ClassVar[Dict[str, float]] = {}
    aux_count: ClassVar[int] = 0

    def __init__(self, id: str, properties: Mapping[str, Any] | None = None,
                 state: Mapping[str, float] | None = None, **kwargs: Any) -> None:
        if not id:
            raise ValueError("Component id must be a non-empty string.")
        self.id = id
        given = dict(properties or {})
        given.update(kwargs)
        self.properties: Dict[str, Any] = self._validate(given)
        self.state: Dict[str, float] = dict(self.state_defaults)
        if state:
            self.state.update({k: float(v) for k, v in state.items()})

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r}, {self.properties!r})"

    # ---- properties ----
    @classmethod
    def default_properties(cls) -> Dict[str, Any]:
        return {spec.name: spec.default for spec in cls.property_specs}

    def _validate(self, given: Mapping[str, Any]) -> Dict[str, Any]:
        specs = {spec.name: spec for spec in self.property_specs}
        unknown = set(given) - set(specs)
        if unknown:
            name = sorted(unknown)[0]
            raise PropertyValidationError(self.id, name, f"unknown property for '{self.type_name}'")
        out: Dict[str, Any] = {}
        for name, spec in specs.items():
            out[name] = spec.coerce(self.id, given.get(name, spec.default))
        return out

    def validate(self) -> None:
        """Re-check the property mapping, e.g. after it was edited in place."""
        self.properties = self._validate(self.properties)

    def set_property(self, name: str, value: Any) -> None:
        updated = dict(self.properties)
        updated[name] = value
        self.properties = self._validate(updated)

    def __getitem__(self, name: str) -> Any:
        return self.properties[name]

    # ---- terminals ----
    def terminal(self, name: str) -> str:
        if name not in self.terminal_names and name not in self.internal_terminals:
            raise TopologyError(f"Component '{self.id}' has no terminal '{name}'.")
        return f"{self.id}_{name}"

    @property
    def terminals(self) -> List[str]:
        return [self.terminal(n) for n in self.terminal_names + self.internal_terminals]

    def node(self, node_map: NodeMap, name: str) -> int:
        return node_map.node(self.terminal(name))

    def num_aux_vars(self) -> int:
        return self.aux_count

    # ---- state ----
    def reset_state(self) -> None:
        self.state = dict(self.state_defaults)

    # ---- MNA ----
    @abstractmethod
    def get_stamp(self, node_map: NodeMap, frequency: float = 0.0, time: float | None = None) -> Stamp:
        """
        Contribution at a fixed operating point.

        Args:
            node_map: Terminal/auxiliary index mapping.
            frequency: 0 for DC and transient, otherwise the AC frequency in Hz.
            time: Simulation time for time-dependent sources, None for DC/AC.
        """

    def branch_voltage(self, solution: Solution) -> complex:
        a, b = self.terminal_names[:2]
        return solution.terminal_voltage(self.terminal(a)) - solution.terminal_voltage(self.terminal(b))

    def branch_current(self, solution: Solution) -> complex | None:
        """Current from the first to the second terminal, None when not defined."""
        return None

    def outputs(self, solution: Solution) -> Dict[str, complex]:
        current = self.branch_current(solution)
        if current is None:
            return {}
        return {f"{self.id}_I": current}

    # ---- serialization ----
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type_name,
            "properties": dict(self.properties),
            "state": dict(self.state),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Component":
        """
        Rebuild a component from its serialized form.

        Extra keys written by the editor (position, rotation) are ignored.
        Properties missing from ``data`` take their defaults.
        """
        type_name = data.get("type")
        cls = COMPONENT_TYPES.get(type_name)
        if cls is None:
            raise TopologyError(f"Unknown component type '{type_name}'.")
        return cls(data["id"], properties=data.get("properties"), state=data.get("state"))


class TwoTerminal(Component):
    """Component with exactly two wired terminals."""

    def nodes(self, node_map: NodeMap) -> Tuple[int, int]:
        a, b = self.terminal_names
        return self.node(node_map, a), self.node(node_map, b)


class ReactiveComponent(TwoTerminal):
    """
    Two-terminal element with energy storage.

    Subclasses provide the DC/AC stamp through :meth:`get_stamp` and the
    transient behaviour through :meth:`companion_model`. The branch current
    of a transient step is read back from the companion model recorded in the
    solution.
    """

    @abstractmethod
    def companion_model(self, dt: float, state: Mapping[str, float] | None = None) -> CompanionModel:
        """Backward-Euler model for a step of length dt from ``state`` (default: committed state)."""

    @abstractmethod
    def initial_model(self, state: Mapping[str, float] | None = None) -> CompanionModel:
        """Model enforcing the stored initial condition at t=0."""

    def companion_stamp(self, node_map: NodeMap, model: CompanionModel) -> Stamp:
        n1, n2 = self.nodes(node_map)
        stamp = Stamp()
        stamp_conductance(stamp, n1, n2, model.conductance)
        stamp_current_source(stamp, n1, n2, model.current_source)
        return stamp

    @abstractmethod
    def admittance(self, frequency: float) -> complex:
        """Small-signal admittance at ``frequency`` (0 for DC)."""

    def branch_current(self, solution: Solution) -> complex:
        v = self.branch_voltage(solution)
        model = solution.companion(self.id)
        if model is not None:
            return model.current(v.real)
        return self.admittance(solution.frequency) * v
