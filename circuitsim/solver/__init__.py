"""
MNA assembly, Newton-Raphson iteration and the DC, AC and transient analyses.
"""

from .linear import solve_linear_system  # noqa: F401
from .mna import MNASystem  # noqa: F401
from .newton import NewtonConfig, NewtonRaphson, NewtonState, OperatingPoint  # noqa: F401
from .solution import Solution  # noqa: F401
from .analysis import solve_ac, solve_dc  # noqa: F401
from .transient import (  # noqa: F401
    TransientConfig,
    TransientProgress,
    TransientResult,
    TransientStepper,
    run_transient,
)

__all__ = [
    "solve_linear_system",
    "MNASystem",
    "NewtonConfig",
    "NewtonRaphson",
    "NewtonState",
    "OperatingPoint",
    "Solution",
    "solve_ac",
    "solve_dc",
    "TransientConfig",
    "TransientProgress",
    "TransientResult",
    "TransientStepper",
    "run_transient",
]
