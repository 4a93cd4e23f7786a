from __future__ import annotations
from dataclasses import dataclass, field
import asyncio
import logging
import threading
from typing import Callable, Dict, Iterator, List, Tuple
import numpy as np

from ..components.base import CompanionModel, ReactiveComponent, Stamp
from ..errors import ConvergenceError, SimulationCancelled
from ..network.circuit import Circuit
from .analysis import prepare, split_nonlinear
from .mna import MNASystem
from .newton import NewtonConfig, NewtonRaphson, OperatingPoint
from .solution import Solution

logger = logging.getLogger(__name__)

Array = np.ndarray


@dataclass
class TransientConfig:
    """
    Settings of a fixed-step transient run.

    Attributes:
        t_stop: Final time in seconds.
        dt: Time step in seconds.
        batch_size: Steps computed between two suspension points (default: 100).
        newton: Newton-Raphson settings used at every step.
        strict: Reject dangling terminals when mapping nodes.
    """
    t_stop: float
    dt: float
    batch_size: int = 100
    newton: NewtonConfig = field(default_factory=NewtonConfig)
    strict: bool = False

    def __post_init__(self) -> None:
        if self.dt <= 0:
            raise ValueError("Time step dt must be positive.")
        if self.t_stop < 0:
            raise ValueError("t_stop must not be negative.")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1.")

    @property
    def num_steps(self) -> int:
        """Number of steps after t = 0; the grid has ``num_steps + 1`` points."""
        return int(round(self.t_stop / self.dt))

    def time_at(self, index: int) -> float:
        return index * self.dt


@dataclass(frozen=True)
class TransientProgress:
    """
    Progress report yielded after each batch.

    Attributes:
        index: Number of time points computed so far.
        total: Number of time points of the full run.
        time: Time of the last computed point.
    """
    index: int
    total: int
    time: float

    @property
    def fraction(self) -> float:
        return self.index / self.total if self.total else 1.0


@dataclass
class TransientResult:
    """
    Time series produced by a transient run.

    Attributes:
        t: Time points (one per computed sample).
        values: Mapping output key -> samples, aligned with ``t``. Keys are node
            names, ``"<id>_I"`` branch currents and meter readings.
        completed: True when every time point was computed.
        cancelled: True when the run was stopped by :meth:`TransientStepper.cancel`.
        failed_index: Time index whose step did not converge, if any.
        terminals: Terminal key -> node name, so a node can be looked up by any
            terminal on it.
    """
    t: Array
    values: Dict[str, Array]
    completed: bool = True
    cancelled: bool = False
    failed_index: int | None = None
    terminals: Dict[str, str] = field(default_factory=dict)

    @property
    def keys(self) -> List[str]:
        return list(self.values)

    def __len__(self) -> int:
        return len(self.t)

    def series(self, key: str) -> tuple[Array, Array]:
        """
        Return ``(t, samples)`` for an output key or a terminal key.
        """
        key = key if key in self.values else self.terminals.get(key, key)
        if key not in self.values:
            raise KeyError(f"Output '{key}' not present in this simulation.")
        return self.t, self.values[key]

    def samples(self) -> Iterator[Tuple[float, Dict[str, float]]]:
        """Yield ``(time, {key: value})`` for every time point."""
        for i, t in enumerate(self.t):
            yield float(t), {k: float(v[i]) for k, v in self.values.items()}

    @property
    def x_range(self) -> tuple[float, float]:
        """First and last time point, the x-axis bounds of a plot."""
        if not len(self.t):
            raise ValueError("Empty result has no time range.")
        return float(self.t[0]), float(self.t[-1])


class TransientStepper:
    """
    Fixed-step Backward-Euler transient analysis.

    Time points are ``t_k = k * dt`` for ``k = 0..N``. Point 0 enforces the
    stored initial conditions (capacitor voltages, inductor currents) and
    commits nothing but the diode junction voltages. Each later step builds
    companion models from the state committed at ``t_{k-1}``, solves with
    the sources evaluated at ``t_k`` and, once Newton-Raphson converged,
    commits the new state of every reactive component and diode. A step is
    all or nothing: cancellation or failure leaves the committed state of the
    last good step untouched.

    The computation is a generator (:meth:`iter_batches`) that suspends after
    every ``batch_size`` steps so a host loop can stay responsive;
    :meth:`run_async` wraps it for asyncio.
    """

    def __init__(self, circuit: Circuit, config: TransientConfig) -> None:
        self.circuit = circuit
        self.config = config
        self.node_map = prepare(circuit, config.strict)
        self.system = MNASystem(self.node_map, dtype=float, pivot_tol=config.newton.pivot_tol)
        linear, self.diodes = split_nonlinear(circuit)
        self.reactive = [c for c in linear if isinstance(c, ReactiveComponent)]
        self.static = [c for c in linear if not isinstance(c, ReactiveComponent)]

        self.index = 0
        self.total = config.num_steps + 1
        self.completed = False
        self.cancelled = False
        self.failed_index: int | None = None
        self._cancel = threading.Event()
        self._times: List[float] = []
        self._values: Dict[str, List[float]] = {}

    def cancel(self) -> None:
        """Request cancellation; observed between steps and Newton iterations."""
        self._cancel.set()

    # ---- single step ----
    def solve_point(self, index: int) -> Tuple[Solution, OperatingPoint]:
        """
        Solve time point ``index`` from the committed state without committing.
        """
        t = self.config.time_at(index)
        if index == 0:
            models: Dict[str, CompanionModel] = {c.id: c.initial_model() for c in self.reactive}
        else:
            models = {c.id: c.companion_model(self.config.dt) for c in self.reactive}

        stamps: List[Stamp] = [c.get_stamp(self.node_map, 0.0, t) for c in self.static]
        stamps.extend(c.companion_stamp(self.node_map, models[c.id]) for c in self.reactive)

        newton = NewtonRaphson(self.system, stamps, self.diodes, self.config.newton,
                               cancel=self._cancel, time_index=index, time=t)
        op = newton.run()
        solution = Solution(node_map=self.node_map, x=op.x, components=self.circuit.components,
                            frequency=0.0, time=t, iterations=op.iterations, companions=models)
        return solution, op

    def _commit(self, index: int, solution: Solution, op: OperatingPoint) -> None:
        outputs = solution.outputs()
        if index > 0:
            for c in self.reactive:
                model = solution.companion(c.id)
                v = float(np.real(c.branch_voltage(solution)))
                model.update_state(v, model.current(v))
        for d in self.diodes:
            d.commit(op.vd[d.id])

        self._times.append(solution.time)
        for key, value in outputs.items():
            self._values.setdefault(key, []).append(float(np.real(value)))

    def _advance(self) -> None:
        index = self.index
        solution, op = self.solve_point(index)
        self._commit(index, solution, op)
        self.index += 1

    # ---- driving loops ----
    def iter_batches(self) -> Iterator[TransientProgress]:
        """
        Compute the run, yielding a progress report after each batch of steps.

        Returns early (without raising) when cancelled.

        Raises:
            ConvergenceError: A step did not converge or diverged; the points
                computed so far remain available through :meth:`result`.
        """
        if self.index == 0:
            logger.info("Transient analysis: 0 to %g s, dt=%g s, %d points",
                        self.config.t_stop, self.config.dt, self.total)
        while self.index < self.total:
            end = min(self.index + self.config.batch_size, self.total)
            while self.index < end:
                if self._cancel.is_set():
                    self._mark_cancelled()
                    return
                try:
                    self._advance()
                except SimulationCancelled:
                    self._mark_cancelled()
                    return
                except ConvergenceError as exc:
                    self.failed_index = self.index
                    logger.error("Transient step %d failed: %s", self.index, exc)
                    raise
            if self.index >= self.total:
                self.completed = True
                logger.info("Transient analysis completed: %d points", len(self._times))
            yield TransientProgress(index=self.index, total=self.total,
                                    time=self.config.time_at(self.index - 1))

    def run(self, progress: Callable[[TransientProgress], None] | None = None) -> TransientResult:
        """Run to completion (or cancellation) and return the result."""
        for report in self.iter_batches():
            if progress is not None:
                progress(report)
        return self.result()

    async def run_async(self, progress: Callable[[TransientProgress], None] | None = None
                        ) -> TransientResult:
        """Like :meth:`run`, giving control back to the event loop between batches."""
        for report in self.iter_batches():
            if progress is not None:
                progress(report)
            await asyncio.sleep(0)
        return self.result()

    def result(self) -> TransientResult:
        """Snapshot of the samples computed so far."""
        return TransientResult(
            t=np.asarray(self._times, dtype=float),
            values={k: np.asarray(v, dtype=float) for k, v in self._values.items()},
            completed=self.completed,
            cancelled=self.cancelled,
            failed_index=self.failed_index,
            terminals={k: self.node_map.node_names[i] for k, i in self.node_map.terminal_index.items()},
        )

    def _mark_cancelled(self) -> None:
        self.cancelled = True
        logger.warning("Transient analysis cancelled after %d of %d points", self.index, self.total)


def run_transient(circuit: Circuit, t_stop: float, dt: float, batch_size: int = 100,
                  newton: NewtonConfig | None = None, strict: bool = False,
                  reset_state: bool = False) -> TransientResult:
    """
    Run a transient analysis in one call.

    Args:
        circuit: Circuit to simulate. Component state is used as the initial condition.
        t_stop: Final time in seconds.
        dt: Fixed time step in seconds.
        batch_size: Steps per batch (only relevant for progress granularity here).
        newton: Newton-Raphson settings.
        strict: Reject dangling terminals.
        reset_state: Clear all component state before starting.

    Returns:
        TransientResult with one sample per time point.
    """
    if reset_state:
        circuit.reset_state()
    config = TransientConfig(t_stop=t_stop, dt=dt, batch_size=batch_size,
                             newton=newton or NewtonConfig(), strict=strict)
    return TransientStepper(circuit, config).run()
