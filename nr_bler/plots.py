# nr_bler/plots.py
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

import os, matplotlib
# Prevent GUI popups (which block your sweep) unless explicitly allowed
if not os.environ.get("ALLOW_GUI_PLOTS", ""):
    matplotlib.use("Agg")  # non-interactive backend (PNG only)

import matplotlib.pyplot as plt

from .autoramp import OperatingPoint
from .results import read_bler_file
from .sweep import SweepResult


def _title(meta: Dict) -> str:
    modulation = "QPSK" if meta.get("M", 4) == 4 else "16QAM"
    return (f"NR LDPC code, BG = {meta.get('BG')}, iterations = {meta.get('iterations')}, "
            f"errors = {meta.get('target_block_errors')}, {modulation}, AWGN")


# ----------------- Live observer ----------------- #

class LiveBLERPlot:
    """
    Observer for SweepController: redraws the BLER curve of the running sweep
    after every counted trial. One figure per base graph, one line per unit;
    labels name Z_c, plus the seed once more than one seed has been started.
    Purely a side channel; nothing in the sweep depends on it.
    """

    def __init__(self, target_bler: float, redraw_every: int = 1, pause: float = 0.001):
        self.target_bler = float(target_bler)
        self.redraw_every = max(1, int(redraw_every))
        self.pause = float(pause)
        self._axes: Dict[int, "plt.Axes"] = {}
        self._line = None
        self._lines: List[Tuple["plt.Line2D", int, int]] = []   # (line, Z_c, seed)
        self._seeds: set = set()
        self._points: "OrderedDict[float, OperatingPoint]" = OrderedDict()
        self._calls = 0

    def start(self, cfg) -> "LiveBLERPlot":
        """Begin a new curve for the given SweepConfig."""
        ax = self._axes.get(cfg.BG)
        if ax is None:
            fig, ax = plt.subplots(figsize=(8, 5), dpi=110)
            ax.set_yscale("log")
            ax.set_title(_title(cfg.meta()))
            ax.set_xlabel("$E_s/N_0$ [dB]")
            ax.set_ylabel("BLER")
            ax.set_ylim(self.target_bler, 1.0)
            ax.grid(True, which="both", alpha=0.3)
            self._axes[cfg.BG] = ax
        (self._line,) = ax.plot([], [], marker="o")
        self._lines.append((self._line, cfg.Z_c, cfg.seed))
        self._seeds.add(cfg.seed)
        self._relabel()
        self._points = OrderedDict()
        self._calls = 0
        return self

    def _relabel(self) -> None:
        multi_seed = len(self._seeds) > 1
        for line, z, seed in self._lines:
            line.set_label(f"Z_c={z}, seed={seed}" if multi_seed else f"Z_c={z}")
        for ax in self._axes.values():
            ax.legend(loc="lower left")

    def __call__(self, pt: OperatingPoint) -> None:
        if self._line is None:
            raise RuntimeError("LiveBLERPlot.start() must be called before the sweep")
        if pt.trial_count == 0 or pt.degenerate:
            return
        self._points[pt.snr_db] = pt
        self._calls += 1
        if self._calls % self.redraw_every:
            return
        xs = list(self._points.keys())
        ys = [p.error_count / p.trial_count for p in self._points.values()]
        self._line.set_data(xs, ys)
        ax = self._line.axes
        ax.relim()
        ax.autoscale_view(scalex=True, scaley=False)
        if matplotlib.get_backend().lower() != "agg":
            plt.pause(self.pause)

    def save(self, save_path: str | Path) -> List[Path]:
        saved = []
        p = Path(save_path)
        for bg, ax in self._axes.items():
            out = p if len(self._axes) == 1 else p.with_name(f"{p.stem}_BG{bg}{p.suffix}")
            out.parent.mkdir(parents=True, exist_ok=True)
            ax.figure.savefig(out, bbox_inches="tight")
            saved.append(out)
        return saved


# ----------------- Core semilog plotting ----------------- #

def plot_bler_curves(curves: List[Dict],
                     title: str = "BLER vs Es/N0",
                     save_path: Optional[str | Path] = None,
                     show: bool = False):
    """
    curves: list of dicts with keys:
      - 'label' (str)
      - 'snr_db' (array-like)
      - 'bler' (array-like)
      - optional 'ci' (array-like [n, 2], lower/upper bounds)
    """
    if len(curves) == 0:
        raise ValueError("No curves provided to plot.")

    fig, ax = plt.subplots(figsize=(8, 5), dpi=130)
    ax.set_yscale("log")
    mark = ["o", "s", "^", "D", "v", "P", "X"]

    for idx, c in enumerate(curves):
        snr = np.asarray(c["snr_db"], dtype=float)
        bl = np.asarray(c["bler"], dtype=float)
        order = np.argsort(snr)
        ax.plot(snr[order], bl[order], marker=mark[idx % len(mark)], label=str(c.get("label", f"cfg{idx+1}")))
        ci = c.get("ci")
        if ci is not None and len(ci):
            ci = np.asarray(ci, dtype=float)[order]
            ax.fill_between(snr[order], np.maximum(ci[:, 0], 1e-12), ci[:, 1], alpha=0.15)

    ax.set_xlabel("$E_s/N_0$ [dB]")
    ax.set_ylabel("BLER")
    ax.set_title(title)
    ax.grid(True, which="both", alpha=0.3)
    ax.legend(loc="lower left", fontsize=8)
    fig.tight_layout()

    if save_path:
        Path(save_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, bbox_inches="tight")
    if show:
        plt.show()
    return fig, ax


def _curve_from_result(r: SweepResult) -> Dict:
    pts = r.recorded_points
    m = r.meta
    label = f"BG={m.get('BG')}, Z_c={m.get('Z_c')}"
    if "seed" in m:
        label += f", seed={m['seed']}"
    return {
        "label": label,
        "snr_db": [p.snr_db for p in pts],
        "bler": [p.bler for p in pts],
        "ci": [p.confidence_interval() for p in pts],
    }


def plot_bler_results(results: Sequence[SweepResult], title: Optional[str] = None,
                      save_path: Optional[str | Path] = None, show: bool = False):
    """Only recorded points (BLER < 1) are drawn; unsupported/empty results are skipped."""
    results = [r for r in results if r.supported and r.recorded_points]
    if len(results) == 0:
        raise ValueError("No results with recorded points to plot.")
    curves = [_curve_from_result(r) for r in results]
    return plot_bler_curves(curves, title=title or _title(results[0].meta), save_path=save_path, show=show)


def plot_multi_from_files(paths: List[str | Path], labels: Optional[List[str]] = None,
                          title: str = "BLER vs Es/N0", save_path: Optional[str | Path] = None,
                          show: bool = False):
    """Overlay curves from JSON sweep results and/or two-column BLER text files."""
    curves = []
    for i, p in enumerate(paths):
        p = Path(p)
        if p.suffix == ".json":
            c = _curve_from_result(SweepResult.from_json_file(p))
        else:
            rows = read_bler_file(p)
            c = {"label": p.stem, "snr_db": [s for s, _ in rows], "bler": [b for _, b in rows]}
        if labels and i < len(labels):
            c["label"] = labels[i]
        curves.append(c)
    return plot_bler_curves(curves, title=title, save_path=save_path, show=show)
