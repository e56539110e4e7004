# nr_bler/fec.py
"""
Quasi-cyclic LDPC code family in the style of 3GPP NR (TS 38.212 §5.3.2).

A code is selected by a base graph BG and a lifting size Z_c. Each base-graph
entry V >= 0 expands into a Z_c x Z_c identity cyclically shifted by
V mod Z_c; -1 is an all-zero block. The parity part has the NR structure:
a 4-column dual-diagonal core followed by single-diagonal extension columns,
so encoding is back-substitution rather than a dense matrix inverse.

Filler bits use the NaN marker (FILLER). They occupy the tail of the
systematic part (positions K'..K-1), are encoded as zero, and come back out
of both encode() and decode() as FILLER again.
"""
from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, NamedTuple, Optional, Tuple
import numpy as np

__all__ = [
    "FILLER",
    "UnsupportedBlockLength",
    "lifting_sizes",
    "BASE_GRAPHS",
    "NRLDPCEncoder",
    "NRLDPCDecoder",
    "CodecBuild",
    "try_build_codec",
]

FILLER = np.nan
FILLER_LLR = 1.0e4   # filler bits are known zeros at the receiver


class UnsupportedBlockLength(ValueError):
    """No code exists for the requested (BG, Z_c, K') combination."""


# ---------- lifting sizes (TS 38.212 Table 5.3.2-1) ----------
_LS_BASES = (2, 3, 5, 7, 9, 11, 13, 15)
Z_MAX = 384


@lru_cache(maxsize=1)
def lifting_sizes() -> Tuple[int, ...]:
    """All Z = a * 2^j <= 384 with a in {2, 3, 5, 7, 9, 11, 13, 15}."""
    zs = set()
    for a in _LS_BASES:
        z = a
        while z <= Z_MAX:
            zs.add(z)
            z *= 2
    return tuple(sorted(zs))


# ---------- base graphs ----------
class BaseGraph(NamedTuple):
    bg: int
    V: np.ndarray   # shift coefficients, -1 = zero block
    kb: int         # systematic columns
    core: int       # dual-diagonal core (rows == parity columns)


# Compact prototypes with the NR parity layout:
#   columns [0, kb)            systematic
#   columns [kb, kb+core)      dual-diagonal core parity
#   columns [kb+core, nb)      extension parity, identity on the diagonal
_BG1 = np.array([
    [250,  69, 226, 159,  -1, 100,  10,  -1,    1,   0,  -1,  -1,   -1, -1, -1, -1],
    [  2,  -1, 239, 117, 124,  71,  -1, 222,    0,   0,   0,  -1,   -1, -1, -1, -1],
    [106, 111, 185,  -1,  63, 117,  93, 229,   -1,  -1,   0,   0,   -1, -1, -1, -1],
    [121,  89,  -1,  84,  20,  -1, 150, 131,    1,  -1,  -1,   0,   -1, -1, -1, -1],
    [205,  -1, 236,  -1, 194,  -1,  -1,  -1,   -1, 231,  -1,  -1,    0, -1, -1, -1],
    [ -1, 183,  -1,  22,  -1,  -1,  28,  -1,   67,  -1,  -1, 244,   -1,  0, -1, -1],
    [220,  -1,  -1,  44,  -1, 159,  -1,  31,   -1,  -1, 167,  -1,   -1, -1,  0, -1],
    [ -1, 112,   4,  -1,   7,  -1,  -1, 211,   -1,  -1,  -1, 102,   -1, -1, -1,  0],
], dtype=int)

_BG2 = np.array([
    [  9, 117, 204,  26,    1,   0,  -1,  -1,   -1, -1, -1, -1],
    [167,  -1, 166, 253,   -1,   0,   0,  -1,   -1, -1, -1, -1],
    [ 81, 114,  -1,  44,    0,  -1,   0,   0,   -1, -1, -1, -1],
    [ -1,   8,  58, 158,    1,  -1,  -1,   0,   -1, -1, -1, -1],
    [174, 121,  -1,  -1,   55,  -1,  -1,  -1,    0, -1, -1, -1],
    [ -1, 160,  72,  -1,   -1,  81,  -1,  -1,   -1,  0, -1, -1],
    [ 68,  -1,  -1, 150,   -1,  -1, 138,  -1,   -1, -1,  0, -1],
    [ -1,  79, 239,  -1,   -1,  -1,  -1,  62,   -1, -1, -1,  0],
], dtype=int)

BASE_GRAPHS: Dict[int, BaseGraph] = {
    1: BaseGraph(1, _BG1, kb=8, core=4),
    2: BaseGraph(2, _BG2, kb=4, core=4),
}


# ---------- lifted structure ----------
def _shift(x: np.ndarray, s: int) -> np.ndarray:
    """P^s x, where row i of P^s has its one at column (i + s) mod Z."""
    return np.roll(x, -s)


def _unshift(x: np.ndarray, s: int) -> np.ndarray:
    return np.roll(x, s)


class _QCStruct(NamedTuple):
    bg: int
    Z: int
    kb: int
    mb: int
    nb: int
    S: np.ndarray                       # V mod Z, -1 kept
    p0_shift: int
    schedule: List[Tuple[int, int]]     # (row, parity column) solve order after p0
    chk: np.ndarray                     # edge -> check index, sorted
    var: np.ndarray                     # edge -> variable index
    starts: np.ndarray                  # first edge of each check


def _core_first_shift(S: np.ndarray, kb: int, core: int, Z: int) -> int:
    """
    Summing the core rows must leave P^s on the first core column and cancel
    every other core column; then p0 = P^-s * sum(lambda_core).
    """
    surviving = []
    for j in range(core):
        col = S[:core, kb + j]
        vals, counts = np.unique(col[col >= 0], return_counts=True)
        surviving.append([int(v) for v, c in zip(vals, counts) if c % 2 == 1])
    if len(surviving[0]) != 1 or any(surviving[1:]):
        raise UnsupportedBlockLength(
            f"parity core of base graph is not encodable for Z_c={Z}"
        )
    return surviving[0][0]


def _solve_schedule(S: np.ndarray, kb: int, core: int) -> List[Tuple[int, int]]:
    mb, nb = S.shape
    known = {kb}
    pending = list(range(mb))
    order: List[Tuple[int, int]] = []
    while pending:
        progressed = False
        for r in list(pending):
            cols = [c for c in range(kb, nb) if S[r, c] >= 0]
            unknown = [c for c in cols if c not in known]
            if len(unknown) > 1:
                continue
            if unknown:
                order.append((r, unknown[0]))
                known.add(unknown[0])
            pending.remove(r)
            progressed = True
        if not progressed:
            raise UnsupportedBlockLength("parity part cannot be solved by back-substitution")
    if len(known) != nb - kb:
        raise UnsupportedBlockLength("some parity columns are never determined")
    return order


@lru_cache(maxsize=64)
def _get_struct(bg: int, Z: int) -> _QCStruct:
    if bg not in BASE_GRAPHS:
        raise UnsupportedBlockLength(
            f"base graph BG={bg} is not supported; available: {sorted(BASE_GRAPHS)}"
        )
    if Z not in lifting_sizes():
        raise UnsupportedBlockLength(f"lifting size Z_c={Z} is not in the NR lifting-size table")
    g = BASE_GRAPHS[bg]
    V = g.V
    mb, nb = V.shape
    S = np.where(V >= 0, V % Z, -1)
    p0_shift = _core_first_shift(S, g.kb, g.core, Z)
    schedule = _solve_schedule(S, g.kb, g.core)

    chk_parts, var_parts = [], []
    i = np.arange(Z)
    for r, c in zip(*np.nonzero(S >= 0)):
        chk_parts.append(r * Z + i)
        var_parts.append(c * Z + (i + S[r, c]) % Z)
    chk = np.concatenate(chk_parts)
    var = np.concatenate(var_parts)
    order = np.argsort(chk, kind="stable")
    chk, var = chk[order], var[order]
    starts = np.flatnonzero(np.r_[True, chk[1:] != chk[:-1]])
    return _QCStruct(bg, Z, g.kb, mb, nb, S, p0_shift, schedule, chk, var, starts)


def _resolve(BG: int, Z_c: int, K_prime: Optional[int]) -> Tuple[_QCStruct, int]:
    st = _get_struct(int(BG), int(Z_c))
    K = st.kb * st.Z
    Kp = K if K_prime is None else int(K_prime)
    if not 1 <= Kp <= K:
        raise UnsupportedBlockLength(f"K'={Kp} does not fit K={K} for BG={BG}, Z_c={Z_c}")
    return st, Kp


# ---------- encoder ----------
class NRLDPCEncoder:
    """Systematic QC-LDPC encoder; fails at construction for unsupported (BG, Z_c, K')."""

    def __init__(self, BG: int, Z_c: int, K_prime: Optional[int] = None):
        self._st, self.K_prime = _resolve(BG, Z_c, K_prime)
        self.BG = int(BG)
        self.Z_c = int(Z_c)
        self.K = self._st.kb * self._st.Z
        self.N = self._st.nb * self._st.Z

    @property
    def rate(self) -> float:
        return self.K_prime / float(self.N - (self.K - self.K_prime))

    def encode(self, c: np.ndarray) -> np.ndarray:
        c = np.asarray(c, dtype=float).reshape(-1)
        if c.size != self.K:
            raise ValueError(f"encoder expects {self.K} values (bits + fillers), got {c.size}")
        filler = np.isnan(c)
        bits = np.where(filler, 0.0, c).astype(np.uint8)

        st, Z = self._st, self._st.Z
        u = bits.reshape(st.kb, Z)
        lam = np.zeros((st.mb, Z), dtype=np.uint8)
        for r in range(st.mb):
            for col in np.flatnonzero(st.S[r, :st.kb] >= 0):
                lam[r] ^= _shift(u[col], st.S[r, col])

        core = BASE_GRAPHS[st.bg].core
        p: Dict[int, np.ndarray] = {}
        p[st.kb] = _unshift(np.bitwise_xor.reduce(lam[:core], axis=0), st.p0_shift)
        for r, col in st.schedule:
            acc = lam[r].copy()
            for k in np.flatnonzero(st.S[r, st.kb:] >= 0) + st.kb:
                if k != col:
                    acc ^= _shift(p[k], st.S[r, k])
            p[col] = _unshift(acc, st.S[r, col])

        parity = np.concatenate([p[k] for k in range(st.kb, st.nb)])
        d = np.concatenate([bits, parity]).astype(float)
        d[:self.K][filler] = FILLER
        return d

    def __call__(self, c: np.ndarray) -> np.ndarray:
        return self.encode(c)


# ---------- decoder ----------
def _min_sum_decode(Lch: np.ndarray, chk: np.ndarray, var: np.ndarray, starts: np.ndarray,
                    max_iters: int, scale: float = 0.75) -> Tuple[np.ndarray, int]:
    """Flooding normalized min-sum over an edge list. Returns (hard bits, iterations used)."""
    n = Lch.size
    v2c = Lch[var].astype(float)
    hard = (Lch < 0).astype(np.uint8)
    it = 0
    for it in range(1, max_iters + 1):
        # check node
        mag = np.abs(v2c)
        neg = (v2c < 0).astype(np.int32)
        min1 = np.minimum.reduceat(mag, starts)
        min1_e = min1[chk]
        is_min = mag == min1_e
        n_min = np.add.reduceat(is_min.astype(np.int32), starts)
        min2 = np.minimum.reduceat(np.where(is_min, np.inf, mag), starts)
        min2 = np.where((n_min > 1) | np.isinf(min2), min1, min2)
        excl = np.where(is_min, min2[chk], min1_e)
        parity = np.add.reduceat(neg, starts) & 1
        sign = 1.0 - 2.0 * (parity[chk] ^ neg)
        c2v = scale * sign * excl
        # variable node
        total = Lch + np.bincount(var, weights=c2v, minlength=n)
        hard = (total < 0).astype(np.uint8)
        if not (np.add.reduceat(hard[var].astype(np.int32), starts) & 1).any():
            break
        v2c = total[var] - c2v
    return hard, it


class NRLDPCDecoder:
    """Soft-input min-sum decoder with a fixed iteration budget (early exit on zero syndrome)."""

    def __init__(self, BG: int, Z_c: int, iterations: int = 50, K_prime: Optional[int] = None,
                 scale: float = 0.75):
        self._st, self.K_prime = _resolve(BG, Z_c, K_prime)
        if int(iterations) < 1:
            raise ValueError("iterations must be >= 1")
        self.BG = int(BG)
        self.Z_c = int(Z_c)
        self.iterations = int(iterations)
        self.scale = float(scale)
        self.K = self._st.kb * self._st.Z
        self.N = self._st.nb * self._st.Z
        self.last_iterations = 0

    def decode(self, d_tilde: np.ndarray) -> np.ndarray:
        """LLRs (log P0/P1) with FILLER at filler positions -> K decoded values, FILLER kept."""
        L = np.asarray(d_tilde, dtype=float).reshape(-1)
        if L.size != self.N:
            raise ValueError(f"decoder expects {self.N} values, got {L.size}")
        filler = np.isnan(L)
        Lch = np.where(filler, FILLER_LLR, L)
        st = self._st
        hard, self.last_iterations = _min_sum_decode(
            Lch, st.chk, st.var, st.starts, self.iterations, self.scale
        )
        c_hat = hard[:self.K].astype(float)
        c_hat[filler[:self.K]] = FILLER
        return c_hat

    def syndrome(self, codeword_bits: np.ndarray) -> np.ndarray:
        """Per-check parity of a hard codeword (all zero for a valid codeword)."""
        x = np.asarray(codeword_bits).reshape(-1)
        x = np.where(np.isnan(x.astype(float)), 0, x).astype(np.int32)
        st = self._st
        return (np.add.reduceat(x[st.var], st.starts) & 1).astype(np.uint8)

    def __call__(self, d_tilde: np.ndarray) -> np.ndarray:
        return self.decode(d_tilde)


# ---------- construction with failure classification ----------
@dataclass(frozen=True)
class CodecBuild:
    """Either a usable encoder/decoder pair or the reason the combination is unsupported."""
    encoder: Optional[NRLDPCEncoder] = None
    decoder: Optional[NRLDPCDecoder] = None
    unsupported: Optional[str] = None

    @property
    def supported(self) -> bool:
        return self.unsupported is None


def try_build_codec(BG: int, Z_c: int, iterations: int, K_prime: Optional[int] = None) -> CodecBuild:
    """Only UnsupportedBlockLength is folded into the result; anything else propagates."""
    try:
        enc = NRLDPCEncoder(BG, Z_c, K_prime=K_prime)
        dec = NRLDPCDecoder(BG, Z_c, iterations=iterations, K_prime=K_prime)
    except UnsupportedBlockLength as e:
        return CodecBuild(unsupported=str(e))
    return CodecBuild(encoder=enc, decoder=dec)
