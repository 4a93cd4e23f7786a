"""Shared circuit builders for the test suite."""

import pytest

from circuitsim import Circuit
from circuitsim.components import (
    Capacitor,
    Diode,
    Ground,
    Inductor,
    Load,
    Resistor,
    VoltageSource,
)


def series_circuit(source, *elements):
    """Source, elements in series, back to the source's negative terminal and ground.

    Each element is a two-terminal component wired first terminal to the
    previous node and second terminal to the next one.
    """
    circuit = Circuit()
    circuit.add(source)
    gnd = circuit.add(Ground("GND"))
    previous = (source, "positive")
    for element in elements:
        circuit.add(element)
        first, second = element.terminal_names
        circuit.connect(previous, (element, first))
        previous = (element, second)
    circuit.chain(previous, (source, "negative"), (gnd, "ref"))
    return circuit


@pytest.fixture
def divider():
    """5 V source across 270 Ω + 150 Ω."""
    return series_circuit(
        VoltageSource("Vs", voltage=5.0),
        Resistor("R1", resistance=270.0),
        Resistor("R2", resistance=150.0),
    )


@pytest.fixture
def rectifier():
    """10 V peak, 50 Hz source feeding a 1 kΩ load through a diode."""
    return series_circuit(
        VoltageSource("Vs", voltage=10.0, type="ac", frequency=50.0),
        Diode("D1"),
        Resistor("RL", resistance=1000.0),
    )


@pytest.fixture
def diode_dc():
    """5 V dc source, 1 kΩ and a forward-biased diode."""
    return series_circuit(
        VoltageSource("Vs", voltage=5.0),
        Resistor("R1", resistance=1000.0),
        Diode("D1"),
    )


@pytest.fixture
def rl_load():
    """120 V step onto a 100 % series R-L load."""
    return series_circuit(VoltageSource("Vs", voltage=120.0), Load("LD1", loadPercent=100.0))


@pytest.fixture
def rc_circuit():
    """5 V step into 1 kΩ + 1 µF (tau = 1 ms)."""
    return series_circuit(
        VoltageSource("Vs", voltage=5.0),
        Resistor("R1", resistance=1000.0),
        Capacitor("C1", capacitance=1e-6),
    )


@pytest.fixture
def rl_inductor():
    """10 V step into 10 Ω + 10 mH (tau = 1 ms)."""
    return series_circuit(
        VoltageSource("Vs", voltage=10.0),
        Resistor("R1", resistance=10.0),
        Inductor("L1", inductance=10e-3),
    )
