from __future__ import annotations
import logging
import threading
from typing import List, Tuple

from ..components.base import Component, Stamp
from ..components.diode import Diode
from ..errors import TopologyError
from ..network.circuit import Circuit
from ..network.node_map import NodeMap, NodeMapper
from .mna import MNASystem
from .newton import NewtonConfig, NewtonRaphson
from .solution import Solution

logger = logging.getLogger(__name__)


def prepare(circuit: Circuit, strict: bool = False) -> NodeMap:
    """
    Validate properties and number the nodes of ``circuit``.

    Property errors are fatal before any solve starts.
    """
    if not len(circuit):
        raise TopologyError("Circuit is empty.")
    circuit.validate()
    return NodeMapper(strict=strict).map(circuit)


def split_nonlinear(circuit: Circuit) -> Tuple[List[Component], List[Diode]]:
    linear: List[Component] = []
    diodes: List[Diode] = []
    for component in circuit:
        (diodes if isinstance(component, Diode) else linear).append(component)
    return linear, diodes


def solve_dc(circuit: Circuit, config: NewtonConfig | None = None, strict: bool = False,
             cancel: threading.Event | None = None) -> Solution:
    """
    Compute the DC operating point.

    Capacitors are open, inductors are near-shorts and ac sources take their
    value at t = 0. The converged diode voltages are committed to the diodes'
    state so that a following AC analysis linearizes around them.

    Args:
        circuit: Circuit to solve.
        config: Newton-Raphson settings.
        strict: Reject dangling terminals.
        cancel: Optional cancellation event.

    Returns:
        Solution with real node voltages and branch currents.

    Raises:
        TopologyError: Missing ground, floating node or singular matrix.
        ConvergenceError: Newton-Raphson exceeded its iteration budget.
    """
    config = config or NewtonConfig()
    node_map = prepare(circuit, strict)
    system = MNASystem(node_map, dtype=float, pivot_tol=config.pivot_tol)
    linear, diodes = split_nonlinear(circuit)
    stamps: List[Stamp] = [c.get_stamp(node_map, 0.0, None) for c in linear]

    logger.info("DC operating point: %d nodes, %d auxiliary unknowns, %d diodes",
                node_map.num_nodes, node_map.num_aux, len(diodes))
    op = NewtonRaphson(system, stamps, diodes, config, cancel=cancel).run()
    for d in diodes:
        d.commit(op.vd[d.id])
    logger.info("DC operating point converged in %d iteration(s)", op.iterations)
    return Solution(node_map=node_map, x=op.x, components=circuit.components,
                    frequency=0.0, iterations=op.iterations)


def solve_ac(circuit: Circuit, frequency: float, strict: bool = False,
             pivot_tol: float | None = None) -> Solution:
    """
    Single-frequency phasor analysis.

    Every component contributes its complex admittance at ``frequency``;
    diodes are replaced by their small-signal conductance at the committed
    junction voltage (run :func:`solve_dc` first to set it). Only ac sources
    at ``frequency`` are active.
    """
    if frequency <= 0:
        raise ValueError("AC analysis requires a positive frequency.")
    node_map = prepare(circuit, strict)
    kwargs = {} if pivot_tol is None else {"pivot_tol": pivot_tol}
    system = MNASystem(node_map, dtype=complex, **kwargs)
    logger.info("AC analysis at %g Hz: %d nodes", frequency, node_map.num_nodes)
    x = system.solve_stamps(c.get_stamp(node_map, frequency, None) for c in circuit)
    return Solution(node_map=node_map, x=x, components=circuit.components, frequency=frequency)
