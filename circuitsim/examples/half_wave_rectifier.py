"""
Half-wave rectifier transient.

Circuit:
    Vs (10 V peak, 50 Hz) -> D1 -> node out -> Rload (1 kΩ) -> ground.

Two periods are simulated with dt = 10 µs. The load only conducts during the
positive half-cycles and its peak stays one diode drop below the source peak.
"""

import numpy as np

from circuitsim import Circuit, run_transient
from circuitsim.components import Diode, Ground, Resistor, VoltageSource


def build() -> Circuit:
    circuit = Circuit()
    vs = circuit.add(VoltageSource("Vs", voltage=10.0, type="ac", frequency=50.0))
    d1 = circuit.add(Diode("D1"))
    rl = circuit.add(Resistor("Rload", resistance=1000.0))
    gnd = circuit.add(Ground("GND"))
    circuit.connect((vs, "positive"), (d1, "anode"))
    circuit.connect((d1, "cathode"), (rl, "left"))
    circuit.chain((rl, "right"), (vs, "negative"), (gnd, "ref"))
    return circuit


def main() -> None:
    circuit = build()
    result = run_transient(circuit, t_stop=0.04, dt=1e-5)

    t, v_in = result.series("Vs_positive")
    _, v_out = result.series("D1_cathode")
    _, i_load = result.series("Rload_I")
    print(f"Simulated {len(result)} points over {result.x_range[1] * 1e3:.1f} ms")
    print(f"Peak load voltage: {np.max(v_out):.3f} V (source peak 10 V)")
    print(f"Largest reverse load current: {np.min(i_load):.3e} A")

    try:
        import matplotlib.pyplot as plt

        plt.figure(figsize=(7, 4))
        plt.plot(t * 1e3, v_in, label="v_in")
        plt.plot(t * 1e3, v_out, label="v_load")
        plt.xlabel("Time [ms]")
        plt.ylabel("Voltage [V]")
        plt.title("Half-Wave Rectifier")
        plt.grid(True)
        plt.legend()
        plt.tight_layout()
        plt.show()
    except ImportError:
        pass


if __name__ == "__main__":
    main()
