"""
Bootstrap confidence intervals.

Percentile and bias-corrected and accelerated (BCa) intervals computed
from a column of bootstrap replicates. Replicates marked invalid (NaN)
are dropped before any quantile is taken; a column without valid
replicates yields ``(nan, nan)``.
"""

from typing import Optional, Tuple

import numpy as np

from .distributions import norm_cdf, norm_ppf


def _valid(values) -> np.ndarray:
    values = np.asarray(values, dtype=np.float64).ravel()
    return values[~np.isnan(values)]


def percentile_interval(values, level: float) -> Tuple[float, float]:
    """Two-sided percentile interval at confidence *level*."""
    values = _valid(values)
    if values.size == 0:
        return np.nan, np.nan
    alpha = 1.0 - level
    lower, upper = np.quantile(values, [alpha / 2.0, 1.0 - alpha / 2.0])
    return float(lower), float(upper)


def acceleration(jackknife_values) -> float:
    """Acceleration constant of the BCa interval from jackknife values.

    Uses ``sum(d**3) / (6 * sum(d**2)**1.5)`` with ``d = mean - theta_i``.
    Returns 0 when the jackknife values carry no spread.
    """
    jack = _valid(jackknife_values)
    if jack.size < 2:
        return 0.0
    d = jack.mean() - jack
    den = 6.0 * np.sum(d**2) ** 1.5
    if den <= 0:
        return 0.0
    return float(np.sum(d**3) / den)


def bias_correction(values, t0: float) -> float:
    """Bias-correction constant ``z0`` of the BCa interval.

    The proportion of replicates below the full-sample estimate is
    clipped to ``[1/(R+1), R/(R+1)]`` so that ``z0`` stays finite.
    """
    values = _valid(values)
    R = values.size
    prop = np.mean(values < t0)
    prop = min(max(prop, 1.0 / (R + 1)), R / (R + 1.0))
    return float(norm_ppf(prop))


def bca_interval(values, t0: float, jackknife_values, level: float) -> Tuple[float, float]:
    """Two-sided BCa interval at confidence *level*.

    Args:
        values: Bootstrap replicates of the statistic.
        t0: Statistic evaluated on the full sample.
        jackknife_values: Leave-one-out evaluations of the statistic.
        level: Confidence level in (0, 1).
    """
    values = _valid(values)
    if values.size == 0 or np.isnan(t0):
        return np.nan, np.nan

    z0 = bias_correction(values, t0)
    a = acceleration(jackknife_values)
    alpha = 1.0 - level
    z = norm_ppf(np.array([alpha / 2.0, 1.0 - alpha / 2.0]))
    adjusted = norm_cdf(z0 + (z0 + z) / (1.0 - a * (z0 + z)))
    adjusted = np.clip(adjusted, 0.0, 1.0)
    lower, upper = np.quantile(values, adjusted)
    return float(lower), float(upper)


def one_sided(interval: Tuple[float, float], alternative: str) -> Tuple[float, float]:
    """Open the interval on the side opposite to the alternative."""
    lower, upper = interval
    if alternative == "less":
        return -np.inf, upper
    if alternative == "greater":
        return lower, np.inf
    return lower, upper


def confidence_interval(
    replicates,
    column: int,
    level: float = 0.95,
    alternative: str = "twosided",
    type: str = "bca",
    jackknife: Optional[np.ndarray] = None,
) -> Tuple[float, float]:
    """Confidence interval for one column of a replicate matrix.

    One-sided intervals are the two-sided interval at level
    ``1 - 2 * (1 - level)`` with one end replaced by an infinite bound.

    Args:
        replicates: ``BootstrapReplicates`` holding the ``R x k`` matrix
            ``t``, the full-sample estimates ``t0`` and (for BCa) a way to
            obtain jackknife values.
        column: Column index into the replicate matrix.
        level: Confidence level.
        alternative: ``"twosided"``, ``"less"`` or ``"greater"``.
        type: ``"bca"`` or ``"perc"``.
        jackknife: Optional precomputed ``n x k`` jackknife matrix.

    Returns:
        Tuple ``(lower, upper)``; ``(nan, nan)`` if the column has no
        valid replicates.
    """
    if alternative not in ("twosided", "less", "greater"):
        raise ValueError(f"Unknown alternative {alternative!r}")
    if type not in ("bca", "perc"):
        raise ValueError(f"Unknown interval type {type!r}")

    two_sided_level = level if alternative == "twosided" else max(1.0 - 2.0 * (1.0 - level), 0.0)
    values = replicates.t[:, column]
    if np.all(np.isnan(values)):
        return np.nan, np.nan

    if type == "perc":
        interval = percentile_interval(values, two_sided_level)
    else:
        if jackknife is None:
            jackknife = replicates.jackknife()
        interval = bca_interval(values, replicates.t0[column], jackknife[:, column], two_sided_level)

    if np.isnan(interval[0]) and np.isnan(interval[1]):
        return interval
    return one_sided(interval, alternative)
