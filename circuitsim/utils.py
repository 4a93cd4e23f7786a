from __future__ import annotations
import numpy as np
from typing import Tuple


def phasor(magnitude: float, phase_deg: float = 0.0) -> complex:
    """
    Create a complex phasor.

    Args:
        magnitude: Amplitude of the sinusoid.
        phase_deg: Phase in degrees (default: 0).

    Returns:
        Complex number representing the phasor.
    """
    return complex(magnitude * np.exp(1j * np.deg2rad(phase_deg)))


def polar(value: complex) -> Tuple[float, float]:
    """
    Convert a complex number into magnitude/phase (degrees).
    """
    return float(np.abs(value)), float(np.rad2deg(np.angle(value)))


def sine(amplitude: float, frequency: float, phase_deg: float, t: float) -> float:
    """Instantaneous value of ``amplitude * sin(2*pi*f*t + phase)``."""
    return float(amplitude * np.sin(2 * np.pi * frequency * t + np.deg2rad(phase_deg)))
