"""
Block-error statistics for Monte Carlo operating points.
"""
from __future__ import annotations
from typing import Optional, Tuple
from scipy import stats


def bler(errors: int, trials: int) -> Optional[float]:
    """errors / trials, or None when nothing was counted."""
    if trials <= 0:
        return None
    return errors / float(trials)


def clopper_pearson(errors: int, trials: int, alpha: float = 0.05) -> Tuple[float, float]:
    """
    Exact (Clopper-Pearson) two-sided confidence interval for a binomial rate.

    Args:
        errors: number of block errors observed
        trials: number of blocks simulated
        alpha: 1 - confidence level

    Returns:
        (lower, upper); (0.0, 1.0) when trials == 0
    """
    if trials <= 0:
        return 0.0, 1.0
    if not 0 <= errors <= trials:
        raise ValueError(f"errors={errors} must lie in [0, trials={trials}]")
    lo = 0.0 if errors == 0 else float(stats.beta.ppf(alpha / 2, errors, trials - errors + 1))
    hi = 1.0 if errors == trials else float(stats.beta.ppf(1 - alpha / 2, errors + 1, trials - errors))
    return lo, hi


def relative_precision(errors: int) -> float:
    """
    Approximate relative standard error of a BLER estimate stopped at `errors` block errors
    (inverse-binomial sampling): 1/sqrt(errors).
    """
    if errors <= 0:
        return float("inf")
    return errors ** -0.5
