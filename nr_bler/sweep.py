# nr_bler/sweep.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import json

from .autoramp import OperatingPoint, ConvergenceTracker, EarlyAbortPolicy
from .utils import snr_grid_value

__all__ = ["OperatingPoint", "SweepResult", "SweepController", "SweepLimitExceeded"]

PointObserver = Callable[[OperatingPoint], None]


class SweepLimitExceeded(RuntimeError):
    """An externally imposed point/trial ceiling was hit before the sweep terminated."""


# ---------- results ----------

@dataclass
class SweepResult:
    meta: Dict[str, Any] = field(default_factory=dict)
    points: List[OperatingPoint] = field(default_factory=list)
    supported: bool = True

    def append(self, pt: OperatingPoint) -> None:
        if self.points and not pt.snr_db > self.points[-1].snr_db:
            raise ValueError(
                f"operating points must be strictly increasing in SNR: {pt.snr_db} after {self.points[-1].snr_db}"
            )
        self.points.append(pt)

    @property
    def snr_db(self) -> List[float]:
        return [p.snr_db for p in self.points]

    @property
    def bler_curve(self) -> List[Optional[float]]:
        return [p.bler for p in self.points]

    @property
    def recorded_points(self) -> List[OperatingPoint]:
        return [p for p in self.points if p.recordable]

    @property
    def trial_count(self) -> int:
        return sum(p.trial_count for p in self.points)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "supported": self.supported,
            "meta": dict(self.meta),
            "points": [p.to_dict() for p in self.points],
        }

    def to_json_file(self, path: str | Path):
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SweepResult":
        pts = [
            OperatingPoint(
                snr_db=float(p["snr_db"]),
                trial_count=int(p["trial_count"]),
                error_count=int(p["error_count"]),
                degenerate=bool(p.get("degenerate", False)),
            )
            for p in d.get("points", [])
        ]
        return cls(meta=dict(d.get("meta", {})), points=pts, supported=bool(d.get("supported", True)))

    @classmethod
    def from_json_file(cls, path: str | Path) -> "SweepResult":
        return cls.from_dict(json.loads(Path(path).read_text()))


# ---------- controller ----------

class SweepController:
    """
    Es/N0 ladder for one code configuration.

    Each operating point is accumulated to completion (degenerate abort or
    target_block_errors reached), written to the sink if BLER < 1, and the
    ladder advances by esn0_delta. The sweep ends at the first point whose
    BLER is strictly below target_bler, so it can never end on a degenerate
    point. There is no upper SNR bound unless max_points is given.

    trial_runner: object with set_snr(snr_db) and run_trial() -> bool
    sink:         object with write(point), or None
    observer:     callable(point) after every counted trial, or None
    """

    def __init__(self, cfg, trial_runner, sink=None, observer: Optional[PointObserver] = None,
                 max_points: Optional[int] = None, max_trials_per_point: Optional[int] = None):
        self.cfg = cfg
        self.trials = trial_runner
        self.sink = sink
        self.observer = observer
        self.max_points = max_points
        self.max_trials_per_point = max_trials_per_point
        self.policy = EarlyAbortPolicy()

    def _notify(self, pt: OperatingPoint) -> None:
        if self.observer is not None:
            self.observer(pt)

    def run_point(self, snr_db: float) -> OperatingPoint:
        tracker = ConvergenceTracker(snr_db, self.cfg.target_block_errors)
        self.trials.set_snr(snr_db)
        first = True
        while not tracker.is_point_converged():
            ok = self.trials.run_trial()
            if first and self.policy.should_abort_point(ok):
                pt = tracker.abort_degenerate()
                self._notify(pt)
                return pt
            first = False
            tracker.record(ok)
            self._notify(tracker.point)
            if self.max_trials_per_point is not None and tracker.trial_count >= self.max_trials_per_point \
                    and not tracker.is_point_converged():
                raise SweepLimitExceeded(
                    f"{snr_db} dB: {tracker.error_count}/{self.cfg.target_block_errors} errors "
                    f"after {tracker.trial_count} trials"
                )
        return tracker.finalize()

    def run(self) -> SweepResult:
        cfg = self.cfg
        result = SweepResult(meta=cfg.meta())
        idx = 0
        while True:
            snr = snr_grid_value(cfg.esn0_start, cfg.esn0_delta, idx)
            pt = self.run_point(snr)
            result.append(pt)
            if pt.recordable and self.sink is not None:
                self.sink.write(pt)
            if pt.bler < cfg.target_bler:
                break
            idx += 1
            if self.max_points is not None and idx >= self.max_points:
                raise SweepLimitExceeded(
                    f"BLER still {pt.bler:.3e} >= {cfg.target_bler:g} after {idx} operating points"
                )
        return result
