# nr_bler/channel.py
import numpy as np
from typing import Optional

from .utils import db2lin


def awgn(signal: np.ndarray, snr_db: float, rng: np.random.Generator,
         signal_power: Optional[float] = 1.0, dtype=np.complex128) -> np.ndarray:
    """
    Add complex AWGN for a given Es/N0 in dB (per complex symbol).
    signal_power=None measures the power from the signal instead of assuming it.
    """
    x = np.asarray(signal)
    power = float(np.mean(np.abs(x) ** 2)) if signal_power is None else float(signal_power)
    noise_power = power / max(db2lin(snr_db), 1e-12)
    noise = (rng.normal(0.0, np.sqrt(noise_power/2.0), size=x.shape)
             + 1j * rng.normal(0.0, np.sqrt(noise_power/2.0), size=x.shape))
    return (x + noise).astype(dtype, copy=False)


class AWGNChannel:
    """Memoryless AWGN; the noise generator is passed per call so the sweep owns all randomness."""

    def __init__(self, signal_power: Optional[float] = 1.0):
        self.signal_power = signal_power

    def noise_variance(self, snr_db: float) -> float:
        p = 1.0 if self.signal_power is None else float(self.signal_power)
        return p / max(db2lin(snr_db), 1e-12)

    def transmit(self, symbols: np.ndarray, snr_db: float, rng: np.random.Generator) -> np.ndarray:
        return awgn(symbols, snr_db, rng, signal_power=self.signal_power)
