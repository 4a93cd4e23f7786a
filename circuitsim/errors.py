from __future__ import annotations


class CircuitError(Exception):
    """Base class for every error raised by the simulation core."""


class TopologyError(CircuitError, ValueError):
    """
    The circuit cannot be turned into a solvable MNA system.

    Raised before (or instead of) iterating: missing ground, wires that
    reference unknown terminals, floating nodes, singular matrices.
    """


class FloatingNodeError(TopologyError):
    """A non-ground node has no conductance stamp touching it."""

    def __init__(self, node: str) -> None:
        super().__init__(f"Node '{node}' is not connected to any conducting element.")
        self.node = node


class AmbiguousGroundError(TopologyError):
    """Two ground components assert incompatible reference labels."""


class DanglingTerminalError(TopologyError):
    """A terminal has no wire attached (strict mapping only)."""

    def __init__(self, terminal: str) -> None:
        super().__init__(f"Terminal '{terminal}' is not connected.")
        self.terminal = terminal


class SingularMatrixError(TopologyError):
    """No usable pivot was found while factorizing the MNA matrix."""

    def __init__(self, row: int, message: str | None = None) -> None:
        super().__init__(message or f"Singular MNA matrix (no pivot above threshold at row {row}).")
        self.row = row


class ConvergenceError(CircuitError, RuntimeError):
    """
    Newton-Raphson did not converge.

    Attributes:
        iterations: Number of iterations performed before giving up.
        time_index: Transient step index, or None for a DC operating point.
        time: Simulation time of the failing step, when known.
    """

    def __init__(self, message: str, iterations: int = 0,
                 time_index: int | None = None, time: float | None = None) -> None:
        super().__init__(message)
        self.iterations = iterations
        self.time_index = time_index
        self.time = time


class PropertyValidationError(CircuitError, ValueError):
    """A component property is missing, of the wrong kind or out of range."""

    def __init__(self, component_id: str, name: str, message: str) -> None:
        super().__init__(f"{component_id}.{name}: {message}")
        self.component_id = component_id
        self.name = name


class SimulationCancelled(CircuitError):
    """The run was cancelled between steps or iterations."""
