from __future__ import annotations
import logging
from typing import Iterable, Tuple
import numpy as np

from ..components.base import Stamp
from ..errors import FloatingNodeError, TopologyError
from ..network.node_map import NodeMap
from .linear import DEFAULT_PIVOT_TOL, solve_linear_system

logger = logging.getLogger(__name__)

Array = np.ndarray


class MNASystem:
    """
    Assembles component stamps into ``G x = z`` for one node numbering.

    Stamps address the full system (ground at index 0); assembly sums
    repeated ``(row, col)`` contributions and drops the ground row and column.
    Solutions are returned in the same full indexing with ``x[0] = 0``.

    Args:
        node_map: Numbering of nodes and auxiliary unknowns.
        dtype: ``float`` for DC/transient, ``complex`` for AC.
        pivot_tol: Forwarded to the linear solver.
    """

    def __init__(self, node_map: NodeMap, dtype=float, pivot_tol: float = DEFAULT_PIVOT_TOL) -> None:
        self.node_map = node_map
        self.dtype = dtype
        self.pivot_tol = pivot_tol
        if node_map.size <= 1:
            raise TopologyError("Circuit has no unknowns to solve.")

    @property
    def size(self) -> int:
        return self.node_map.size

    def assemble(self, stamps: Iterable[Stamp]) -> Tuple[Array, Array]:
        """
        Sum stamps into the reduced matrix and right-hand side.

        Raises:
            FloatingNodeError: If a non-ground node has no conductance entry.
        """
        rows, cols, vals = [], [], []
        z_rows, z_vals = [], []
        for stamp in stamps:
            for r, c, v in stamp.G:
                rows.append(r)
                cols.append(c)
                vals.append(v)
            for r, v in stamp.z:
                z_rows.append(r)
                z_vals.append(v)

        size = self.size
        G = np.zeros((size, size), dtype=self.dtype)
        z = np.zeros(size, dtype=self.dtype)
        if rows:
            np.add.at(G, (np.asarray(rows), np.asarray(cols)), np.asarray(vals, dtype=self.dtype))
        if z_rows:
            np.add.at(z, np.asarray(z_rows), np.asarray(z_vals, dtype=self.dtype))

        touched = np.zeros(size, dtype=bool)
        touched[rows] = True
        touched[cols] = True
        n_nodes = self.node_map.num_nodes
        for i in range(1, n_nodes + 1):
            if not touched[i]:
                raise FloatingNodeError(self.node_map.node_names[i])

        return G[1:, 1:], z[1:]

    def solve(self, G: Array, z: Array) -> Array:
        """Solve an assembled system and return the full solution (ground included)."""
        x = solve_linear_system(G, z, self.pivot_tol)
        return np.concatenate((np.zeros(1, dtype=x.dtype), x))

    def solve_stamps(self, stamps: Iterable[Stamp]) -> Array:
        G, z = self.assemble(stamps)
        return self.solve(G, z)
