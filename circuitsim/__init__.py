"""
Circuit simulation core based on Modified Nodal Analysis.

- circuitsim.components: component variants and their MNA stamps.
- circuitsim.network: topology container and node numbering.
- circuitsim.solver: DC operating point, single-frequency AC and
  Backward-Euler transient analysis.
"""

from . import components  # noqa: F401
from . import network  # noqa: F401
from . import solver  # noqa: F401
from .errors import (  # noqa: F401
    AmbiguousGroundError,
    CircuitError,
    ConvergenceError,
    DanglingTerminalError,
    FloatingNodeError,
    PropertyValidationError,
    SimulationCancelled,
    SingularMatrixError,
    TopologyError,
)
from .network import Circuit  # noqa: F401
from .solver import NewtonConfig, TransientConfig, TransientStepper, run_transient, solve_ac, solve_dc  # noqa: F401

__all__ = [
    "components",
    "network",
    "solver",
    "Circuit",
    "NewtonConfig",
    "TransientConfig",
    "TransientStepper",
    "run_transient",
    "solve_ac",
    "solve_dc",
    "CircuitError",
    "TopologyError",
    "FloatingNodeError",
    "AmbiguousGroundError",
    "DanglingTerminalError",
    "SingularMatrixError",
    "ConvergenceError",
    "PropertyValidationError",
    "SimulationCancelled",
]
