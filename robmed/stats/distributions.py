"""Statistical distribution functions for robmed.

Thin wrappers around scipy's normal and chi-squared distributions plus
the normal-reference p-value used by Sobel's test.

Usage:
    from robmed.stats.distributions import norm_cdf, p_value_z
"""

import numpy as np
from scipy.stats import chi2 as _chi2_dist
from scipy.stats import norm as _norm_dist


def norm_ppf(p):
    """Standard normal quantile function (inverse CDF)."""
    if np.ndim(p) > 0:
        return _norm_dist.ppf(np.asarray(p, dtype=np.float64))
    return float(_norm_dist.ppf(p))


def norm_cdf(x):
    """Standard normal CDF."""
    if np.ndim(x) > 0:
        return _norm_dist.cdf(np.asarray(x, dtype=np.float64))
    return float(_norm_dist.cdf(x))


def norm_sf(x):
    """Standard normal survival function ``1 - Phi(x)``, accurate in the tail."""
    if np.ndim(x) > 0:
        return _norm_dist.sf(np.asarray(x, dtype=np.float64))
    return float(_norm_dist.sf(x))


def chi2_ppf(p, df):
    """Chi-squared quantile function."""
    return float(_chi2_dist.ppf(p, df))


def chi2_cdf(x, df):
    """Chi-squared CDF."""
    return float(_chi2_dist.cdf(x, df))


def p_value_z(z, alternative="twosided"):
    """p-value of a standard normal test statistic.

    Args:
        z: Test statistic.
        alternative: ``"twosided"`` gives ``2 * (1 - Phi(|z|))``,
            ``"less"`` gives ``Phi(z)`` and ``"greater"`` gives
            ``1 - Phi(z)``.

    Returns:
        The p-value as a float.
    """
    if alternative in ("twosided", "two-sided"):
        return 2.0 * norm_sf(abs(z))
    if alternative == "less":
        return norm_cdf(z)
    if alternative == "greater":
        return norm_sf(z)
    raise ValueError(f"Unknown alternative {alternative!r}")
