# nr_bler/config.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import copy
import yaml

__all__ = ["DEFAULTS", "SweepConfig", "RunConfig", "run_config_from_dict", "load_run_config"]

# Defaults of the reference BLER-vs-SNR experiment
DEFAULTS: Dict[str, Any] = {
    "code": {"BG": [1], "Z_c": [2], "iterations": 50, "K_prime": None},
    "sim": {"seed": 0, "seeds": None, "M": 4, "workers": 1},
    "sweep": {
        "target_block_errors": 10,
        "target_BLER": 1e-3,
        "EsN0_start": [-10.0],
        "EsN0_delta": 0.5,
        "max_points": None,
        "max_trials_per_point": None,
    },
    "io": {
        "results_dir": "results",
        "write_json": True,
        "plot": False,
        "out_plot": None,
        "progress": True,
    },
}


def _as_list(v) -> list:
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return list(v)
    return [v]


def _deep_merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (over or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


@dataclass(frozen=True)
class SweepConfig:
    """Immutable parameters of one (BG, Z_c, seed) sweep."""
    BG: int
    Z_c: int
    iterations: int
    target_block_errors: int
    target_bler: float
    esn0_start: float
    esn0_delta: float
    seed: int
    M: int = 4
    K_prime: Optional[int] = None

    def __post_init__(self):
        if not self.esn0_delta > 0:
            raise ValueError(f"EsN0_delta must be > 0, got {self.esn0_delta}")
        if not 0.0 < self.target_bler < 1.0:
            raise ValueError(f"target_BLER must be in (0, 1), got {self.target_bler}")
        if int(self.target_block_errors) < 1:
            raise ValueError(f"target_block_errors must be >= 1, got {self.target_block_errors}")
        if int(self.iterations) < 1:
            raise ValueError(f"iterations must be >= 1, got {self.iterations}")

    def result_stem(self) -> str:
        """BLER_vs_SNR_<BG>_<Z_c>_<iterations>_<target_block_errors>_<seed>"""
        return f"BLER_vs_SNR_{self.BG}_{self.Z_c}_{self.iterations}_{self.target_block_errors}_{self.seed}"

    def meta(self) -> Dict[str, Any]:
        return {
            "BG": self.BG, "Z_c": self.Z_c, "iterations": self.iterations,
            "target_block_errors": self.target_block_errors, "target_BLER": self.target_bler,
            "EsN0_start": self.esn0_start, "EsN0_delta": self.esn0_delta, "seed": self.seed,
            "M": self.M, "K_prime": self.K_prime,
        }


@dataclass
class RunConfig:
    """A whole experiment: every BG x Z_c combination, for every seed."""
    BG: List[int]
    Z_c: List[int]
    iterations: int = 50
    target_block_errors: int = 10
    target_bler: float = 1e-3
    esn0_start: List[float] = field(default_factory=lambda: [-10.0])
    esn0_delta: float = 0.5
    seeds: List[int] = field(default_factory=lambda: [0])
    M: int = 4
    K_prime: Optional[int] = None
    workers: int = 1
    max_points: Optional[int] = None
    max_trials_per_point: Optional[int] = None
    results_dir: Optional[str] = "results"
    write_json: bool = True
    plot: bool = False
    out_plot: Optional[str] = None
    progress: bool = True

    def __post_init__(self):
        self.BG = [int(b) for b in _as_list(self.BG)]
        self.Z_c = [int(z) for z in _as_list(self.Z_c)]
        self.seeds = [int(s) for s in _as_list(self.seeds)]
        starts = [float(s) for s in _as_list(self.esn0_start)]
        if not self.BG or not self.Z_c:
            raise ValueError("at least one BG and one Z_c are required")
        if not self.seeds:
            raise ValueError("at least one seed is required")
        # one start per base graph, matched by position; a single value is broadcast
        if len(starts) == 1:
            starts = starts * len(self.BG)
        if len(starts) != len(self.BG):
            raise ValueError(
                f"EsN0_start needs one value per BG ({len(self.BG)}), got {len(starts)}"
            )
        self.esn0_start = starts
        if int(self.workers) < 1:
            raise ValueError("workers must be >= 1")
        # validate the shared scalars once, with the first combination
        self.sweep_config(0, self.Z_c[0], self.seeds[0])

    def sweep_config(self, bg_index: int, Z_c: int, seed: int) -> SweepConfig:
        return SweepConfig(
            BG=self.BG[bg_index], Z_c=int(Z_c), iterations=int(self.iterations),
            target_block_errors=int(self.target_block_errors), target_bler=float(self.target_bler),
            esn0_start=float(self.esn0_start[bg_index]), esn0_delta=float(self.esn0_delta),
            seed=int(seed), M=int(self.M), K_prime=self.K_prime,
        )

    def iter_sweep_configs(self):
        """Fixed nested order: base graph (outer), lifting size, then seed (inner)."""
        for bi in range(len(self.BG)):
            for z in self.Z_c:
                for s in self.seeds:
                    yield self.sweep_config(bi, z, s)


def run_config_from_dict(d: Dict[str, Any]) -> RunConfig:
    cfg = _deep_merge(DEFAULTS, d or {})
    code, sim, sw, io = cfg["code"], cfg["sim"], cfg["sweep"], cfg["io"]
    seeds = sim.get("seeds")
    if seeds is None:
        seeds = [sim.get("seed", 0)]
    K_prime = code.get("K_prime")
    return RunConfig(
        BG=code["BG"], Z_c=code["Z_c"], iterations=int(code["iterations"]),
        K_prime=None if K_prime is None else int(K_prime),
        target_block_errors=int(sw["target_block_errors"]), target_bler=float(sw["target_BLER"]),
        esn0_start=sw["EsN0_start"], esn0_delta=float(sw["EsN0_delta"]),
        max_points=sw.get("max_points"), max_trials_per_point=sw.get("max_trials_per_point"),
        seeds=seeds, M=int(sim.get("M", 4)), workers=int(sim.get("workers", 1)),
        results_dir=io.get("results_dir"), write_json=bool(io.get("write_json", True)),
        plot=bool(io.get("plot", False)), out_plot=io.get("out_plot"),
        progress=bool(io.get("progress", True)),
    )


def load_run_config(path: str | Path, overrides: Optional[Dict[str, Any]] = None) -> RunConfig:
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    if overrides:
        raw = _deep_merge(raw, overrides)
    return run_config_from_dict(raw)
