# nr_bler/runner.py
"""
Run a BLER-vs-SNR sweep for every (BG, Z_c, seed) combination of a RunConfig.

Combinations whose code cannot be built (UnsupportedBlockLength) are skipped
with an UnsupportedConfigurationWarning; every other failure aborts the run.
"""
from __future__ import annotations
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional
import warnings

from tqdm import tqdm

from .config import RunConfig, SweepConfig
from .fec import CodecBuild, try_build_codec
from .metrics import relative_precision
from .modem import Modulator, Demodulator
from .results import BLERFileSink
from .sweep import SweepController, SweepResult, PointObserver
from .trial import TrialRunner
from .utils import get_rng

__all__ = ["UnsupportedConfigurationWarning", "run_unit", "run_configurations"]

CodecFactory = Callable[..., CodecBuild]


class UnsupportedConfigurationWarning(UserWarning):
    pass


def run_unit(cfg: SweepConfig,
             results_dir: Optional[str | Path] = None,
             write_json: bool = True,
             codec_factory: CodecFactory = try_build_codec,
             observer: Optional[PointObserver] = None,
             max_points: Optional[int] = None,
             max_trials_per_point: Optional[int] = None) -> SweepResult:
    """
    One independent unit of work: build the codec, open the result file,
    sweep to termination. An unsupported combination returns an empty
    SweepResult with supported=False and writes nothing.
    """
    build = codec_factory(cfg.BG, cfg.Z_c, cfg.iterations, cfg.K_prime)
    if not build.supported:
        meta = cfg.meta()
        meta["unsupported"] = build.unsupported
        return SweepResult(meta=meta, supported=False)

    rng = get_rng(cfg.seed)
    trials = TrialRunner(build.encoder, build.decoder, rng,
                         modulator=Modulator(cfg.M), demodulator=Demodulator(cfg.M))

    sink = None
    if results_dir is not None:
        out_dir = Path(results_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        sink = BLERFileSink(out_dir / f"{cfg.result_stem()}.txt")
    try:
        ctrl = SweepController(cfg, trials, sink=sink, observer=observer,
                               max_points=max_points, max_trials_per_point=max_trials_per_point)
        res = ctrl.run()
    finally:
        if sink is not None:
            sink.close()

    res.meta["K"] = int(build.encoder.K)
    res.meta["N"] = int(build.encoder.N)
    if results_dir is not None and write_json:
        res.to_json_file(Path(results_dir) / f"{cfg.result_stem()}.json")
    return res


def _report(res: SweepResult) -> None:
    m = res.meta
    if not res.supported:
        warnings.warn(
            f"The combination of base graph BG={m.get('BG')} and lifting size Z_c={m.get('Z_c')} "
            f"is not supported. {m.get('unsupported', '')}",
            UnsupportedConfigurationWarning,
            stacklevel=3,
        )
        return
    last = res.points[-1]
    tqdm.write(
        f"[INFO] BG={m['BG']} Z_c={m['Z_c']} seed={m['seed']}: {len(res.recorded_points)} recorded points, "
        f"{res.trial_count} trials, BLER={last.bler:.3e} at {last.snr_db:.2f} dB "
        f"(~{100 * relative_precision(last.error_count):.0f}% rel. error)"
    )


def run_configurations(run_cfg: RunConfig,
                       codec_factory: CodecFactory = try_build_codec,
                       observer_factory: Optional[Callable[[SweepConfig], PointObserver]] = None
                       ) -> List[SweepResult]:
    """
    Sweep every combination in the fixed nested order (BG outer, Z_c, seed inner)
    and return the results in that order, whether run sequentially or in a
    process pool (workers > 1).
    """
    units = list(run_cfg.iter_sweep_configs())
    kwargs = dict(
        results_dir=run_cfg.results_dir,
        write_json=run_cfg.write_json,
        codec_factory=codec_factory,
        max_points=run_cfg.max_points,
        max_trials_per_point=run_cfg.max_trials_per_point,
    )
    results: List[SweepResult] = []

    if run_cfg.workers > 1:
        if observer_factory is not None:
            raise ValueError("live observers are only available with workers=1")
        with ProcessPoolExecutor(max_workers=run_cfg.workers) as ex:
            futures = [ex.submit(run_unit, u, **kwargs) for u in units]
            it = tqdm(futures, desc="configurations", disable=not run_cfg.progress)
            try:
                for fut in it:
                    res = fut.result()
                    _report(res)
                    results.append(res)
            except BaseException:
                # units not yet started are dropped; only in-flight ones finish
                ex.shutdown(wait=False, cancel_futures=True)
                raise
        return results

    for u in tqdm(units, desc="configurations", disable=not run_cfg.progress):
        observer = observer_factory(u) if observer_factory is not None else None
        res = run_unit(u, observer=observer, **kwargs)
        _report(res)
        results.append(res)
    return results
