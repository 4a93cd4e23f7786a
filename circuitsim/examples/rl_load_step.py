"""
Step response of a series R-L load.

A 120 V dc source is switched onto a 100 % load (R = 5.76 Ω, L ≈ 13.75 mH)
at t = 0. The simulated current is compared with the analytic curve
i(t) = V/R * (1 - exp(-t R / L)).
"""

import numpy as np

from circuitsim import Circuit, TransientConfig, TransientStepper
from circuitsim.components import Ground, Load, VoltageSource


def build(load_percent: float = 100.0) -> Circuit:
    circuit = Circuit()
    vs = circuit.add(VoltageSource("Vs", voltage=120.0))
    load = circuit.add(Load("LD1", loadPercent=load_percent))
    gnd = circuit.add(Ground("GND"))
    circuit.connect((vs, "positive"), (load, "left"))
    circuit.chain((load, "right"), (vs, "negative"), (gnd, "ref"))
    return circuit


def main() -> None:
    circuit = build()
    R, L = circuit["LD1"].impedance()
    tau = L / R

    stepper = TransientStepper(circuit, TransientConfig(t_stop=5 * tau, dt=tau / 200, batch_size=250))
    result = stepper.run(progress=lambda p: print(f"  {p.fraction:6.1%} t={p.time * 1e3:.2f} ms"))

    t, i_sim = result.series("LD1_I")
    i_exact = 120.0 / R * (1 - np.exp(-t / tau))
    print(f"R = {R:.3f} Ω, L = {L * 1e3:.3f} mH, tau = {tau * 1e3:.3f} ms")
    print(f"Final current {i_sim[-1]:.3f} A (steady state {120.0 / R:.3f} A)")
    print(f"Max deviation from the analytic curve: {np.max(np.abs(i_sim - i_exact)):.4f} A")

    try:
        import matplotlib.pyplot as plt

        plt.figure(figsize=(7, 4))
        plt.plot(t * 1e3, i_sim, label="Backward Euler")
        plt.plot(t * 1e3, i_exact, "--", label="analytic")
        plt.xlabel("Time [ms]")
        plt.ylabel("Current [A]")
        plt.title("Series R-L Load Step Response")
        plt.grid(True)
        plt.legend()
        plt.tight_layout()
        plt.show()
    except ImportError:
        pass


if __name__ == "__main__":
    main()
