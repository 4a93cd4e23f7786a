from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import logging
import threading
from typing import Dict, List, Mapping, Sequence
import numpy as np

from ..components.base import Stamp
from ..components.diode import Diode
from ..errors import ConvergenceError, SimulationCancelled
from .linear import DEFAULT_PIVOT_TOL
from .mna import MNASystem

logger = logging.getLogger(__name__)

Array = np.ndarray

# Any unknown beyond this magnitude is treated as divergence.
DIVERGENCE_LIMIT = 1e15


@dataclass
class NewtonConfig:
    """
    Configuration parameters for the Newton-Raphson engine.

    Attributes:
        abs_tol: Absolute tolerance on the junction-voltage update in volts (default: 1e-6).
        rel_tol: Relative tolerance on the junction-voltage update (default: 1e-3).
        max_iter: Maximum number of iterations per solve (default: 50).
        pivot_tol: Pivot magnitude below which the matrix is singular (default: 1e-13).
    """
    abs_tol: float = 1e-6
    rel_tol: float = 1e-3
    max_iter: int = 50
    pivot_tol: float = DEFAULT_PIVOT_TOL

    def __post_init__(self) -> None:
        if self.abs_tol <= 0 or self.rel_tol <= 0:
            raise ValueError("Newton tolerances must be positive.")
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1.")


class NewtonState(Enum):
    INIT = "init"
    ASSEMBLE = "assemble"
    SOLVE = "solve"
    UPDATE = "update"
    CHECK_CONVERGED = "check_converged"
    DONE = "done"


@dataclass
class OperatingPoint:
    """
    Result of a converged Newton-Raphson solve.

    Attributes:
        x: Full solution vector (ground included).
        vd: Final (limited) junction voltage per diode id.
        iterations: Number of linear solves performed.
    """
    x: Array
    vd: Dict[str, float] = field(default_factory=dict)
    iterations: int = 0


class NewtonRaphson:
    """
    Newton-Raphson iteration written as an explicit state machine.

        INIT -> ASSEMBLE -> SOLVE -> UPDATE -> CHECK_CONVERGED -> ASSEMBLE | DONE

    Linear stamps are fixed for the whole solve; diodes are re-linearized at
    every ASSEMBLE around their current junction voltage. A circuit without
    diodes goes INIT -> ASSEMBLE -> SOLVE -> DONE.

    Nothing is written back to the components: the caller commits the
    returned operating point.

    Args:
        system: MNA system of the circuit.
        linear_stamps: Stamps of every linear component (sources at the solve time,
            companion models for reactive components).
        diodes: Nonlinear components to linearize.
        config: Tolerances and iteration cap.
        seed: Initial junction voltages; missing diodes use their committed ``vd``.
        cancel: Event checked once per iteration.
        time_index: Transient step index reported in errors.
        time: Transient time reported in errors.
    """

    def __init__(self, system: MNASystem, linear_stamps: Sequence[Stamp], diodes: Sequence[Diode],
                 config: NewtonConfig | None = None, seed: Mapping[str, float] | None = None,
                 cancel: threading.Event | None = None, time_index: int | None = None,
                 time: float | None = None) -> None:
        self.system = system
        self.linear_stamps = list(linear_stamps)
        self.diodes = list(diodes)
        self.config = config or NewtonConfig()
        self.seed = dict(seed or {})
        self.cancel = cancel
        self.time_index = time_index
        self.time = time

        self.state = NewtonState.INIT
        self.iterations = 0
        self.x: Array | None = None
        self.vd: Dict[str, float] = {}
        self.deltas: Dict[str, float] = {}
        self._G: Array | None = None
        self._z: Array | None = None
        self._previous: Dict[str, float] = {}

    @property
    def done(self) -> bool:
        return self.state is NewtonState.DONE

    def step(self) -> NewtonState:
        """Perform one transition and return the new state."""
        handler = {
            NewtonState.INIT: self._init,
            NewtonState.ASSEMBLE: self._assemble,
            NewtonState.SOLVE: self._solve,
            NewtonState.UPDATE: self._update,
            NewtonState.CHECK_CONVERGED: self._check_converged,
        }.get(self.state)
        if handler is None:
            return self.state
        self.state = handler()
        return self.state

    def run(self) -> OperatingPoint:
        while not self.done:
            self.step()
        return OperatingPoint(x=self.x, vd=dict(self.vd), iterations=self.iterations)

    # ---- states ----
    def _init(self) -> NewtonState:
        self.vd = {d.id: float(self.seed.get(d.id, d.state["vd"])) for d in self.diodes}
        return NewtonState.ASSEMBLE

    def _assemble(self) -> NewtonState:
        if self.cancel is not None and self.cancel.is_set():
            raise SimulationCancelled("Simulation cancelled during Newton-Raphson iteration.")
        stamps: List[Stamp] = list(self.linear_stamps)
        stamps.extend(d.linearized_stamp(self.system.node_map, self.vd[d.id]) for d in self.diodes)
        self._G, self._z = self.system.assemble(stamps)
        return NewtonState.SOLVE

    def _solve(self) -> NewtonState:
        self.iterations += 1
        x = self.system.solve(self._G, self._z)
        if not np.all(np.isfinite(x)) or np.max(np.abs(x)) > DIVERGENCE_LIMIT:
            raise ConvergenceError(
                self._describe("Solution diverged"),
                iterations=self.iterations, time_index=self.time_index, time=self.time,
            )
        self.x = x
        if not self.diodes:
            return NewtonState.DONE
        return NewtonState.UPDATE

    def _update(self) -> NewtonState:
        node_map = self.system.node_map
        self._previous = dict(self.vd)
        for d in self.diodes:
            n1, n2 = d.nodes(node_map)
            v_raw = float(np.real(self.x[n1] - self.x[n2]))
            v_old = self._previous[d.id]
            v_new = d.limit_voltage(v_raw, v_old)
            self.vd[d.id] = v_new
            self.deltas[d.id] = abs(v_new - v_old)
        return NewtonState.CHECK_CONVERGED

    def _check_converged(self) -> NewtonState:
        cfg = self.config
        converged = True
        for d_id, delta in self.deltas.items():
            scale = max(abs(self.vd[d_id]), abs(self._previous[d_id]))
            if not (delta < cfg.abs_tol and delta <= cfg.rel_tol * scale):
                converged = False
                break
        logger.debug("Newton iteration %d: max |dV| = %.3e", self.iterations, max(self.deltas.values()))
        if converged:
            return NewtonState.DONE
        if self.iterations >= cfg.max_iter:
            raise ConvergenceError(
                self._describe(f"Newton-Raphson did not converge in {self.iterations} iterations"),
                iterations=self.iterations, time_index=self.time_index, time=self.time,
            )
        return NewtonState.ASSEMBLE

    def _describe(self, message: str) -> str:
        if self.time_index is None:
            return f"{message} (DC operating point)."
        return f"{message} at step {self.time_index} (t={self.time:.6g} s)."
