# nr_bler/utils.py
import numpy as np
from typing import Union, Sequence


def get_rng(seed: int | None):
    """Return a reproducible Generator with a seed safely coerced to uint32.
    Accepts arbitrary inputs (None, int, float, str); clamps to [0, 2**32-1].
    """
    if seed is None:
        return np.random.default_rng()
    try:
        s = int(seed)
    except (TypeError, ValueError):
        # Hash arbitrary inputs deterministically (str hashing is salted, so use the bytes)
        s = int.from_bytes(str(seed).encode("utf-8")[:8].ljust(8, b"\0"), "big")
    s = int(s) % (2**32 - 1)
    return np.random.default_rng(np.uint32(s))


def db2lin(x_db: Union[float, np.ndarray, Sequence]) -> Union[float, np.ndarray]:
    x = np.asarray(x_db, dtype=float)
    out = 10.0 ** (x / 10.0)
    return float(out) if out.ndim == 0 else out


def lin2db(x_lin: Union[float, np.ndarray, Sequence]) -> Union[float, np.ndarray]:
    x = np.maximum(np.asarray(x_lin, dtype=float), 1e-300)
    out = 10.0 * np.log10(x)
    return float(out) if out.ndim == 0 else out


def esn0_db_to_noise_var(esn0_db: float, Es: float = 1.0) -> float:
    """
    Complex noise variance per symbol for a given Es/N0 [dB].
      sigma_c^2 = Es / (Es/N0)_lin
    With unit-energy constellations this is 1/10^(EsN0/10).
    """
    return float(Es / max(db2lin(esn0_db), 1e-300))


def snr_grid_value(start_db: float, delta_db: float, index: int) -> float:
    """i-th point of an open-ended SNR ladder (computed, not accumulated)."""
    return float(start_db) + int(index) * float(delta_db)
