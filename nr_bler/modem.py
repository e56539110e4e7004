# nr_bler/modem.py
from functools import lru_cache
from typing import Tuple
import numpy as np

__all__ = ["constellation", "mod", "demod", "qam_llr_maxlog", "Modulator", "Demodulator"]


def _bits_per_symbol(M: int) -> int:
    if M not in (4, 16):
        raise ValueError(f"Unsupported M={M}; supported: 4 (QPSK), 16 (16QAM).")
    return 2 if M == 4 else 4


def _gray_pam(bits: np.ndarray) -> np.ndarray:
    """Gray-labelled PAM level per row of bits, MSB first: 0..0 -> outermost positive level."""
    k = bits.shape[1]
    idx = np.zeros(bits.shape[0], dtype=int)
    acc = np.zeros(bits.shape[0], dtype=int)
    for j in range(k):
        acc ^= bits[:, j]
        idx = (idx << 1) | acc
    n = 1 << k
    return (n - 1) - 2 * idx


@lru_cache(maxsize=None)
def constellation(M: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    (points, labels) with unit average energy; labels[m] holds the bits of points[m]
    in transmission order.
      QPSK:  bits [Q, I]                      00→+1+1j, 01→-1+1j, 11→-1-1j, 10→+1-1j  (/√2)
      16QAM: bits [I_MSB, I_LSB, Q_MSB, Q_LSB], levels {+3,+1,-1,-3} per axis        (/√10)
    """
    k = _bits_per_symbol(M)
    labels = ((np.arange(M)[:, None] >> np.arange(k)[::-1]) & 1).astype(np.int8)
    if M == 4:
        pts = (_gray_pam(labels[:, 1:]) + 1j * _gray_pam(labels[:, :1])) / np.sqrt(2.0)
    else:
        pts = (_gray_pam(labels[:, :2]) + 1j * _gray_pam(labels[:, 2:])) / np.sqrt(10.0)
    pts.setflags(write=False)
    labels.setflags(write=False)
    return pts, labels


def mod(bits: np.ndarray, M: int) -> np.ndarray:
    """
    Map bits to complex64 symbols. If the bit count is not a multiple of
    log2(M), the last symbol is zero-padded.
    """
    k = _bits_per_symbol(M)
    b = np.asarray(bits).astype(np.int64, copy=False).reshape(-1)
    b = np.pad(b, (0, (-b.size) % k))
    idx = b.reshape(-1, k) @ (1 << np.arange(k)[::-1])
    pts, _ = constellation(M)
    return pts[idx].astype(np.complex64)


def demod(symbols: np.ndarray, M: int) -> np.ndarray:
    """Hard decisions (sign of the LLRs)."""
    return (qam_llr_maxlog(symbols, M, sigma2=1.0) < 0).astype(np.uint8)


def qam_llr_maxlog(sym: np.ndarray, M: int, sigma2: float) -> np.ndarray:
    """
    Max-log LLR = log P(b=0)/P(b=1) per coded bit, in mod() bit order.
    sigma2 is the complex noise variance per symbol. For QPSK the max-log
    value equals the exact LLR 2*sqrt(2)*y/sigma2 per axis.
    """
    pts, labels = constellation(M)
    y = np.asarray(sym, dtype=np.complex128).reshape(-1)
    s2 = float(max(sigma2, 1e-15))
    d = np.abs(y[:, None] - pts[None, :]) ** 2          # [n_sym, M]
    llr = np.empty((y.size, labels.shape[1]))
    for j in range(labels.shape[1]):
        zero = labels[:, j] == 0
        llr[:, j] = (d[:, ~zero].min(axis=1) - d[:, zero].min(axis=1)) / s2
    return llr.reshape(-1)


class Modulator:
    def __init__(self, M: int = 4):
        self.M = int(M)
        self.bits_per_symbol = _bits_per_symbol(self.M)

    def modulate(self, bits: np.ndarray) -> np.ndarray:
        return mod(bits, self.M)


class Demodulator:
    """Soft demodulator; output is trimmed to n_bits when the modulator padded."""

    def __init__(self, M: int = 4):
        self.M = int(M)
        self.bits_per_symbol = _bits_per_symbol(self.M)

    def demodulate(self, symbols: np.ndarray, noise_var: float, n_bits: int | None = None) -> np.ndarray:
        llr = qam_llr_maxlog(symbols, self.M, sigma2=noise_var)
        return llr if n_bits is None else llr[:int(n_bits)]
