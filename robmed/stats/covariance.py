"""
Location and scatter estimation for covariance-based mediation models.

``cov_ML`` is the maximum likelihood estimate under normality (mean and
covariance with divisor ``n``). ``cov_Huber`` is a Huber M-estimator of
location and scatter computed by iterative reweighting, following
Zu & Yuan (2010).
"""

import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .distributions import chi2_cdf, chi2_ppf


@dataclass(frozen=True)
class CovarianceControl:
    """Tuning parameters for the Huber M-estimator.

    Attributes:
        prob: Quantile of the chi-squared distribution defining the
            Mahalanobis distance beyond which observations are
            downweighted.
        max_iter: Maximum number of reweighting iterations.
        tol: Relative convergence tolerance.
    """

    prob: float = 0.95
    max_iter: int = 200
    tol: float = 1e-7

    def __post_init__(self):
        if not 0 < self.prob < 1:
            raise ValueError(f"prob must be in (0, 1), got {self.prob}")


@dataclass
class CovarianceEstimate:
    """Estimated location and scatter.

    Attributes:
        center: Location vector.
        cov: Scatter matrix.
        robust: Whether the estimate is the Huber M-estimator.
        weights: Per-observation fit weights (all 1 for ``cov_ML``).
        tau: Consistency factor of the scatter matrix.
        n_iterations: Number of reweighting iterations used.
        converged: Whether the iterations converged.
    """

    center: np.ndarray
    cov: np.ndarray
    robust: bool = False
    weights: Optional[np.ndarray] = None
    tau: float = 1.0
    n_iterations: int = 0
    converged: bool = True

    def consistent_weights(self) -> np.ndarray:
        """Weights that make the reweighted data consistent for the scatter.

        ``w / sqrt(tau)``; scaling the centered data by these weights and
        taking the ML covariance reproduces the Huber scatter.
        """
        if self.weights is None:
            raise ValueError("estimate has no observation weights")
        return self.weights / np.sqrt(self.tau)


def cov_ML(x) -> CovarianceEstimate:
    """Maximum likelihood estimate of the mean vector and covariance matrix."""
    x = np.asarray(x, dtype=np.float64)
    n = x.shape[0]
    center = x.mean(axis=0)
    centered = x - center
    cov = centered.T @ centered / n
    return CovarianceEstimate(center=center, cov=cov, weights=np.ones(n))


def _mahalanobis(centered: np.ndarray, cov: np.ndarray) -> np.ndarray:
    solved = np.linalg.solve(cov, centered.T)
    return np.sqrt(np.sum(centered.T * solved, axis=0))


def cov_Huber(x, control: Optional[CovarianceControl] = None) -> CovarianceEstimate:
    """
    Huber M-estimator of location and scatter.

    Observations whose Mahalanobis distance exceeds
    ``r = sqrt(qchisq(prob, p))`` receive weight ``r / d``; all others
    weight 1. The scatter uses squared weights and the consistency
    factor ``tau = (p * pchisq(r^2, p + 2) + r^2 * (1 - prob)) / p``.

    Args:
        x: ``(n, p)`` data matrix.
        control: Tuning parameters.

    Returns:
        ``CovarianceEstimate`` with ``robust=True``.

    Raises:
        numpy.linalg.LinAlgError: If the scatter becomes singular.
    """
    if control is None:
        control = CovarianceControl()
    x = np.asarray(x, dtype=np.float64)
    n, p = x.shape

    r2 = chi2_ppf(control.prob, p)
    r = np.sqrt(r2)
    tau = (p * chi2_cdf(r2, p + 2) + r2 * (1.0 - control.prob)) / p

    center = x.mean(axis=0)
    centered = x - center
    cov = centered.T @ centered / n
    weights = np.ones(n)
    converged = False
    iteration = 0

    for iteration in range(1, control.max_iter + 1):
        d = _mahalanobis(x - center, cov)
        weights = np.where(d <= r, 1.0, r / np.maximum(d, np.finfo(float).tiny))
        new_center = weights @ x / weights.sum()
        centered = x - new_center
        weighted = weights[:, None] * centered
        new_cov = weighted.T @ weighted / (n * tau)

        center_change = np.max(np.abs(new_center - center))
        cov_change = np.max(np.abs(new_cov - cov)) / max(np.max(np.abs(cov)), 1.0)
        center, cov = new_center, new_cov
        if center_change < control.tol and cov_change < control.tol:
            converged = True
            break

    if not converged:
        warnings.warn(f"Huber M-estimator did not converge in {control.max_iter} iterations")

    d = _mahalanobis(x - center, cov)
    weights = np.where(d <= r, 1.0, r / np.maximum(d, np.finfo(float).tiny))

    return CovarianceEstimate(
        center=center,
        cov=cov,
        robust=True,
        weights=weights,
        tau=tau,
        n_iterations=iteration,
        converged=converged,
    )
