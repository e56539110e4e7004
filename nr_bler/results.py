# nr_bler/results.py
from __future__ import annotations
from collections import OrderedDict
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from .autoramp import OperatingPoint
from .sweep import SweepResult

__all__ = ["format_record", "BLERFileSink", "MemorySink", "read_bler_file", "aggregate_runs",
           "group_by_configuration"]


def format_record(snr_db: float, bler: float) -> str:
    """One line of the BLER text format: fixed-point SNR, tab, scientific BLER."""
    return f"{snr_db:f}\t{bler:e}\n"


class BLERFileSink:
    """
    Text result file, one line per recorded operating point.
    The file is opened on construction; failing to open it raises OSError.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._f = open(self.path, "w")
        self.n_written = 0

    def write(self, pt: OperatingPoint) -> None:
        if not pt.recordable:
            return
        self._f.write(format_record(pt.snr_db, pt.bler))
        self._f.flush()
        self.n_written += 1

    def close(self) -> None:
        if not self._f.closed:
            self._f.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class MemorySink:
    """Collects (snr_db, bler) records in memory."""

    def __init__(self):
        self.records: List[Tuple[float, float]] = []

    def write(self, pt: OperatingPoint) -> None:
        if pt.recordable:
            self.records.append((pt.snr_db, float(pt.bler)))


def read_bler_file(path: str | Path) -> List[Tuple[float, float]]:
    out: List[Tuple[float, float]] = []
    with open(path, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            snr, bler = line.split("\t")
            out.append((float(snr), float(bler)))
    return out


def aggregate_runs(results: Iterable[SweepResult], ndigits: int = 9) -> SweepResult:
    """
    Merge independent seeded sweeps of the same configuration: trial and error
    counts are summed per SNR before the BLER is formed. Degenerate points carry
    no counted trials and are skipped; SNRs are matched after rounding.
    """
    results = [r for r in results if r.supported]
    acc: Dict[float, List[int]] = {}
    for r in results:
        for p in r.points:
            if p.degenerate:
                continue
            key = round(p.snr_db, ndigits)
            t, e = acc.get(key, [0, 0])
            acc[key] = [t + p.trial_count, e + p.error_count]

    meta: Dict = {}
    if results:
        meta = {k: v for k, v in results[0].meta.items() if k != "seed"}
        meta["seeds"] = [r.meta.get("seed") for r in results]
    merged = SweepResult(meta=meta, supported=bool(results))
    for snr in sorted(acc):
        t, e = acc[snr]
        merged.append(OperatingPoint(snr_db=snr, trial_count=t, error_count=e))
    return merged


def group_by_configuration(results: Iterable[SweepResult]) -> "OrderedDict[Tuple, List[SweepResult]]":
    """(BG, Z_c, iterations, target_block_errors) -> sweeps, in first-seen order."""
    groups: "OrderedDict[Tuple, List[SweepResult]]" = OrderedDict()
    for r in results:
        m = r.meta
        key = (m.get("BG"), m.get("Z_c"), m.get("iterations"), m.get("target_block_errors"))
        groups.setdefault(key, []).append(r)
    return groups
