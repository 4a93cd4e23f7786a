"""
DC and phasor analysis of a voltage divider.

Circuit:
    Vs (5 V dc) -> R1 (270 Ω) -> node vout -> R2 (150 Ω) -> ground.

The DC operating point is checked against 5 * 150 / 420. The same divider
is then driven by a 10 V / 50 Hz ac source with a capacitor across R2 and
solved as a phasor circuit.
"""

from circuitsim import Circuit, solve_ac, solve_dc
from circuitsim.components import Capacitor, Ground, Resistor, VoltageSource
from circuitsim.utils import polar


def build(ac: bool = False) -> Circuit:
    circuit = Circuit()
    if ac:
        vs = circuit.add(VoltageSource("Vs", voltage=10.0, type="ac", frequency=50.0))
    else:
        vs = circuit.add(VoltageSource("Vs", voltage=5.0))
    r1 = circuit.add(Resistor("R1", resistance=270.0))
    r2 = circuit.add(Resistor("R2", resistance=150.0))
    gnd = circuit.add(Ground("GND"))

    circuit.connect((vs, "positive"), (r1, "left"))
    circuit.connect((r1, "right"), (r2, "left"))
    circuit.chain((r2, "right"), (vs, "negative"), (gnd, "ref"))
    if ac:
        c1 = circuit.add(Capacitor("C1", capacitance=10e-6))
        circuit.connect((c1, "left"), (r2, "left"))
        circuit.connect((c1, "right"), (gnd, "ref"))
    return circuit


def main() -> None:
    circuit = build()
    dc = solve_dc(circuit)
    v_out = dc.terminal_voltage("R2_left")
    print(f"DC: Vout = {v_out:.4f} V (expected {5 * 150 / 420:.4f} V), "
          f"{dc.iterations} Newton pass(es)")
    print(f"DC: I(Vs) = {dc.branch_current('Vs') * 1e3:.3f} mA")

    ac_circuit = build(ac=True)
    ac = solve_ac(ac_circuit, frequency=50.0)
    mag, phase = polar(ac.terminal_voltage("R2_left"))
    print(f"AC: Vout = {mag:.3f} V ∠ {phase:.2f}°")
    for name in ("R1", "R2", "C1"):
        P, Q, S = ac.branch_power(name)
        print(f"AC: {name} P={P:.4f} W, Q={Q:.4f} var, |S|={S:.4f} VA")


if __name__ == "__main__":
    main()
