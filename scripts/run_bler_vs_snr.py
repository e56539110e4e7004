#!/usr/bin/env python3
"""
BLER vs Es/N0 for NR-style LDPC codes over QPSK/AWGN.

Every (BG, Z_c, seed) combination is swept upward from its starting Es/N0 in
steps of EsN0_delta until the BLER drops below target_BLER. Each Es/N0 point
runs until target_block_errors block errors have been seen. Use different
seeds for parallel instances and merge them with scripts/aggregate_seeds.py.

    python scripts/run_bler_vs_snr.py --cfg configs/bler_vs_snr.yaml
"""
from __future__ import annotations
import argparse
from pathlib import Path

from nr_bler.config import load_run_config
from nr_bler.runner import run_configurations


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--cfg", required=True, help="YAML run configuration")
    p.add_argument("--out-dir", default=None, help="Override io.results_dir")
    p.add_argument("--seed", type=int, nargs="+", default=None, help="Override sim.seed / sim.seeds")
    p.add_argument("--workers", type=int, default=None, help="Process-pool size (1 = sequential)")
    p.add_argument("--plot", action="store_true", help="Save a BLER plot when the run finishes")
    p.add_argument("--live", action="store_true", help="Redraw the BLER curve while simulating (workers=1)")
    args = p.parse_args()

    overrides = {"sim": {}, "io": {}}
    if args.out_dir is not None:
        overrides["io"]["results_dir"] = args.out_dir
    if args.seed is not None:
        overrides["sim"]["seeds"] = list(args.seed)
    if args.workers is not None:
        overrides["sim"]["workers"] = int(args.workers)
    if args.plot:
        overrides["io"]["plot"] = True

    cfg = load_run_config(args.cfg, overrides=overrides)
    print(f"[info] BG={cfg.BG} Z_c={cfg.Z_c} seeds={cfg.seeds} iterations={cfg.iterations} "
          f"errors={cfg.target_block_errors} target_BLER={cfg.target_bler:g}")

    live = None
    observer_factory = None
    if args.live:
        from nr_bler.plots import LiveBLERPlot
        live = LiveBLERPlot(cfg.target_bler)
        observer_factory = live.start

    results = run_configurations(cfg, observer_factory=observer_factory)

    out_png = cfg.out_plot or str(Path(cfg.results_dir or ".") / "BLER_vs_SNR.png")
    if live is not None:
        for path in live.save(out_png):
            print("[info] live plot saved to", path)
    elif cfg.plot:
        from nr_bler.plots import plot_bler_results
        if any(r.recorded_points for r in results):
            plot_bler_results(results, save_path=out_png)
            print("[info] BLER plot saved to", out_png)

    n_skipped = sum(1 for r in results if not r.supported)
    print(f"[info] {len(results) - n_skipped} sweeps done, {n_skipped} unsupported combinations skipped")
    if cfg.results_dir:
        print("[info] results saved to", cfg.results_dir)


if __name__ == "__main__":
    main()
