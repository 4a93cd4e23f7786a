from __future__ import annotations

from .base import Component, PropertySpec, Stamp, register_component


@register_component
class Ground(Component):
    """
    Reference node. Every terminal wired to a ground belongs to node 0.

    Grounds sharing a ``reference`` label are the same node even when no wire
    joins them; two different labels in one circuit are rejected.
    """
    type_name = "ground"
    terminal_names = ("ref",)
    property_specs = (
        PropertySpec("reference", "gnd", kind="string", label="Reference"),
    )

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        return Stamp()


@register_component
class Junction(Component):
    """Single-terminal wiring point; wires meeting here share one node."""
    type_name = "junction"
    terminal_names = ("node",)

    def get_stamp(self, node_map, frequency=0.0, time=None) -> Stamp:
        return Stamp()
