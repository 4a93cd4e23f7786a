"""
Circuit topology and node numbering.
"""

from .circuit import Circuit, Wire  # noqa: F401
from .node_map import GROUND_NAME, NodeMap, NodeMapper  # noqa: F401

__all__ = ["Circuit", "Wire", "NodeMap", "NodeMapper", "GROUND_NAME"]
