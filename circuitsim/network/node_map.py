from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Dict, List, Tuple

from ..components.connectors import Ground
from ..errors import AmbiguousGroundError, DanglingTerminalError, TopologyError
from .circuit import Circuit

logger = logging.getLogger(__name__)

GROUND_NAME = "gnd"


@dataclass
class NodeMap:
    """
    Resolved numbering of one circuit.

    Index 0 is ground; nodes use 1..N and auxiliary branch-current unknowns
    follow as N+1..N+M. Stamps use these absolute indices and the ground
    row/column is dropped at assembly.

    Attributes:
        terminal_index: Terminal key -> node index.
        node_names: Node index -> node name (``node_names[0]`` is ground).
        aux_index: Component id -> tuple of auxiliary indices.
    """
    terminal_index: Dict[str, int]
    node_names: List[str]
    aux_index: Dict[str, Tuple[int, ...]] = field(default_factory=dict)

    @property
    def num_nodes(self) -> int:
        """Number of non-ground nodes."""
        return len(self.node_names) - 1

    @property
    def num_aux(self) -> int:
        return sum(len(v) for v in self.aux_index.values())

    @property
    def size(self) -> int:
        """Size of the full system including the ground row."""
        return len(self.node_names) + self.num_aux

    def node(self, terminal: str) -> int:
        try:
            return self.terminal_index[terminal]
        except KeyError as exc:
            raise TopologyError(f"Terminal '{terminal}' is not part of the mapped circuit.") from exc

    def aux(self, component_id: str) -> Tuple[int, ...]:
        return self.aux_index.get(component_id, tuple())

    def node_index(self, name: str) -> int:
        try:
            return self.node_names.index(name)
        except ValueError as exc:
            raise KeyError(f"Unknown node '{name}'.") from exc


class _UnionFind:
    def __init__(self) -> None:
        self.parent: Dict[str, str] = {}

    def add(self, key: str) -> None:
        self.parent.setdefault(key, key)

    def find(self, key: str) -> str:
        root = key
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[key] != root:
            self.parent[key], key = root, self.parent[key]
        return root

    def union(self, a: str, b: str) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra != rb:
            # Keep the smallest key as root so class names are deterministic.
            if rb < ra:
                ra, rb = rb, ra
            self.parent[rb] = ra


class NodeMapper:
    """
    Partition terminals into nodes.

    Terminals joined by wires (directly or through junctions) form one node.
    The node holding any ground terminal is index 0 and all grounds are merged
    into it; every other node is named after its smallest terminal key and
    numbered 1..N in name order.

    Args:
        strict: Also reject terminals without any wire attached.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def map(self, circuit: Circuit) -> NodeMap:
        owners = circuit.terminal_owners()
        uf = _UnionFind()
        for key in owners:
            uf.add(key)

        wired = set()
        for wire in circuit.wires:
            for key in (wire.start, wire.end):
                if key not in owners:
                    raise TopologyError(f"Wire '{wire.id}' references unknown terminal '{key}'.")
                wired.add(key)
            uf.union(wire.start, wire.end)

        grounds = [c for c in circuit if isinstance(c, Ground)]
        if not grounds:
            raise TopologyError("Circuit must have a ground reference.")
        references = {g["reference"] for g in grounds}
        if len(references) > 1:
            raise AmbiguousGroundError(
                f"Ground components assert different references: {sorted(references)}."
            )
        ground_keys = [g.terminal("ref") for g in grounds]
        for key in ground_keys[1:]:
            uf.union(ground_keys[0], key)
        ground_root = uf.find(ground_keys[0])

        if self.strict:
            for key in sorted(owners):
                component, name = owners[key]
                if isinstance(component, Ground) or name in component.internal_terminals:
                    continue
                if key not in wired:
                    raise DanglingTerminalError(key)

        roots = sorted({uf.find(k) for k in owners} - {ground_root})
        node_names = [GROUND_NAME] + roots
        index = {root: i for i, root in enumerate(node_names)}
        index[ground_root] = 0
        terminal_index = {key: index[uf.find(key)] for key in owners}

        aux_index: Dict[str, Tuple[int, ...]] = {}
        cursor = len(node_names)
        for component in circuit:
            n_aux = component.num_aux_vars()
            if n_aux:
                aux_index[component.id] = tuple(range(cursor, cursor + n_aux))
                cursor += n_aux

        logger.debug("Mapped %d terminals to %d nodes and %d auxiliary unknowns",
                     len(terminal_index), len(node_names) - 1, cursor - len(node_names))
        return NodeMap(terminal_index=terminal_index, node_names=node_names, aux_index=aux_index)
