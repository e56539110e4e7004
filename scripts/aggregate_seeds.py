#!/usr/bin/env python3
"""
Merge seeded sweep results (JSON) of the same configuration.

Trial and error counts are summed per Es/N0 before the BLER is formed, which
is the correct way to combine independent runs. One merged JSON + text file
is written per (BG, Z_c, iterations, target_block_errors).
"""
from __future__ import annotations
import argparse
from pathlib import Path

from nr_bler.results import aggregate_runs, format_record, group_by_configuration
from nr_bler.sweep import SweepResult


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--json", nargs="+", required=True, help="Sweep result JSON files")
    ap.add_argument("--out-dir", default="results/aggregated")
    args = ap.parse_args()

    results = [SweepResult.from_json_file(p) for p in args.json]
    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    for (bg, z, iters, errs), group in group_by_configuration(results).items():
        merged = aggregate_runs(group)
        stem = f"BLER_vs_SNR_{bg}_{z}_{iters}_{errs}_merged"
        merged.to_json_file(out_dir / f"{stem}.json")
        with open(out_dir / f"{stem}.txt", "w") as f:
            for pt in merged.recorded_points:
                f.write(format_record(pt.snr_db, pt.bler))
        print(f"[info] BG={bg} Z_c={z}: merged {len(group)} runs -> {len(merged.points)} points ({stem})")


if __name__ == "__main__":
    main()
