# nr_bler/trial.py
from __future__ import annotations
from typing import Optional
import numpy as np

from .channel import AWGNChannel
from .modem import Modulator, Demodulator
from .utils import esn0_db_to_noise_var

__all__ = ["TrialRunner"]


class TrialRunner:
    """
    One end-to-end block trial:
      message -> pad with fillers -> encode -> drop fillers -> modulate -> channel
      -> soft demodulate -> restore layout -> decode -> drop fillers -> compare.

    The encoder/decoder mark filler positions with NaN; this class only relies
    on that marker through np.isnan and never interprets it otherwise.
    All randomness (message and noise) is drawn from `rng`, in a fixed order.
    """

    def __init__(self, encoder, decoder, rng: np.random.Generator,
                 modulator: Optional[Modulator] = None,
                 demodulator: Optional[Demodulator] = None,
                 channel: Optional[AWGNChannel] = None):
        self.encoder = encoder
        self.decoder = decoder
        self.rng = rng
        self.modulator = modulator if modulator is not None else Modulator(4)
        self.demodulator = demodulator if demodulator is not None else Demodulator(self.modulator.M)
        self.channel = channel if channel is not None else AWGNChannel()
        self.snr_db: Optional[float] = None
        self.noise_var: Optional[float] = None

    def set_snr(self, snr_db: float) -> None:
        self.snr_db = float(snr_db)
        self.noise_var = esn0_db_to_noise_var(self.snr_db)

    def run_trial(self, info_bit_count: Optional[int] = None) -> bool:
        if self.snr_db is None:
            raise RuntimeError("TrialRunner.run_trial: set_snr() must be called first")
        K = int(self.encoder.K)
        K_prime = int(self.encoder.K_prime if info_bit_count is None else info_bit_count)
        if not 0 < K_prime <= K:
            raise ValueError(f"info_bit_count={K_prime} must be in [1, {K}]")

        b = self.rng.integers(0, 2, size=K_prime).astype(float)
        c = np.concatenate([b, np.full(K - K_prime, np.nan)])
        d = self.encoder.encode(c)
        used = ~np.isnan(d)
        e = d[used].astype(np.uint8)

        tx = self.modulator.modulate(e)
        rx = self.channel.transmit(tx, self.snr_db, self.rng)
        e_tilde = self.demodulator.demodulate(rx, self.noise_var, n_bits=e.size)

        d_tilde = d.copy()
        d_tilde[used] = e_tilde
        c_hat = self.decoder.decode(d_tilde)
        b_hat = c_hat[~np.isnan(c_hat)]
        return bool(b_hat.size == b.size and np.array_equal(b, b_hat))
