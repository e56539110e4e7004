# nr_bler/autoramp.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple

from .metrics import bler as _bler, clopper_pearson

__all__ = ["OperatingPoint", "ConvergenceTracker", "EarlyAbortPolicy"]


@dataclass(frozen=True)
class OperatingPoint:
    snr_db: float
    trial_count: int = 0
    error_count: int = 0
    degenerate: bool = False

    def __post_init__(self):
        if self.trial_count < 0 or not 0 <= self.error_count <= self.trial_count:
            raise ValueError(
                f"invalid counts at {self.snr_db} dB: errors={self.error_count}, trials={self.trial_count}"
            )

    @property
    def bler(self) -> Optional[float]:
        if self.degenerate:
            return 1.0
        return _bler(self.error_count, self.trial_count)

    @property
    def recordable(self) -> bool:
        """Only informative points (BLER < 1) go to the result sink."""
        b = self.bler
        return b is not None and b < 1.0

    def confidence_interval(self, alpha: float = 0.05) -> Tuple[float, float]:
        return clopper_pearson(self.error_count, self.trial_count, alpha)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["bler"] = self.bler
        lo, hi = self.confidence_interval()
        d["bler_ci95"] = [lo, hi]
        return d


class EarlyAbortPolicy:
    """
    Degenerate-point shortcut for the low-SNR end of a sweep.

    While no trial in the sweep has succeeded, a point whose first trial fails
    is abandoned with BLER = 1. The first success ("found start") disables the
    shortcut for the rest of the sweep.
    """

    def __init__(self):
        self.active = True

    def should_abort_point(self, first_trial_outcome: bool) -> bool:
        if not self.active:
            return False
        if first_trial_outcome:
            self.active = False
            return False
        return True


class ConvergenceTracker:
    """
    Error-count stopping rule for one operating point: keep drawing trials until
    exactly target_block_errors block errors have been counted. Lower-BLER points
    therefore run more trials, and the relative precision stays ~1/sqrt(target).
    """

    def __init__(self, snr_db: float, target_block_errors: int):
        if int(target_block_errors) < 1:
            raise ValueError("target_block_errors must be >= 1")
        self.snr_db = float(snr_db)
        self.target_block_errors = int(target_block_errors)
        self.reset_counters()

    # ---------------- counters ----------------
    def reset_counters(self):
        self.trial_count = 0
        self.error_count = 0
        self.degenerate = False
        self.finalized = False

    def record(self, outcome: bool) -> None:
        if self.finalized:
            raise RuntimeError(f"operating point {self.snr_db} dB is already finalized")
        if not outcome:
            self.error_count += 1
        self.trial_count += 1

    def abort_degenerate(self) -> OperatingPoint:
        """Close the point after a single failed trial; BLER is pinned to 1."""
        if self.finalized or self.trial_count:
            raise RuntimeError("only an untouched operating point can be aborted as degenerate")
        self.trial_count = 1
        self.error_count = 1
        self.degenerate = True
        self.finalized = True
        return self.point

    # ---------------- decisions ----------------
    def is_point_converged(self) -> bool:
        return self.degenerate or self.error_count >= self.target_block_errors

    def current_bler(self) -> Optional[float]:
        if self.degenerate:
            return 1.0
        return _bler(self.error_count, self.trial_count)

    def confidence_interval(self, alpha: float = 0.05) -> Tuple[float, float]:
        return clopper_pearson(self.error_count, self.trial_count, alpha)

    @property
    def point(self) -> OperatingPoint:
        """Immutable snapshot of the current counts."""
        return OperatingPoint(self.snr_db, self.trial_count, self.error_count, self.degenerate)

    def finalize(self) -> OperatingPoint:
        if not self.is_point_converged():
            raise RuntimeError(
                f"operating point {self.snr_db} dB has {self.error_count}/{self.target_block_errors} errors"
            )
        self.finalized = True
        return self.point
