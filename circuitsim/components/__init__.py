from .base import (
    COMPONENT_TYPES,
    CompanionModel,
    Component,
    PropertySpec,
    ReactiveComponent,
    Stamp,
    TwoTerminal,
    register_component,
    stamp_conductance,
    stamp_current_source,
    stamp_voltage_source,
)
from .passive import Resistor, Capacitor, Inductor, Load
from .sources import VoltageSource, CurrentSource, ThreePhaseSource
from .diode import Diode, DiodeModel
from .meters import Ammeter, Voltmeter, Wattmeter
from .transformer import Transformer
from .opamp import OpAmp
from .connectors import Ground, Junction

__all__ = [
    "COMPONENT_TYPES",
    "CompanionModel",
    "Component",
    "PropertySpec",
    "ReactiveComponent",
    "Stamp",
    "TwoTerminal",
    "register_component",
    "stamp_conductance",
    "stamp_current_source",
    "stamp_voltage_source",
    "Resistor",
    "Capacitor",
    "Inductor",
    "Load",
    "VoltageSource",
    "CurrentSource",
    "ThreePhaseSource",
    "Diode",
    "DiodeModel",
    "Ammeter",
    "Voltmeter",
    "Wattmeter",
    "Transformer",
    "OpAmp",
    "Ground",
    "Junction",
]
