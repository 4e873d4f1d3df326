"""
Bootstrap tests for the indirect effect.

The fitted model decides once, before resampling, which replicate
statistic is used:

- ``STANDARD``: least squares refits on every bootstrap sample.
- ``FAST_ROBUST``: fast and robust bootstrap. Each bootstrap sample gets
  a weighted least squares fit with the robustness weights of the
  original sample, followed by a linear correction with matrices
  computed once from the original fit.
- ``MEDIAN``: median regression refits on every bootstrap sample.
- ``COVARIANCE``: ML covariance matrix of every bootstrap sample, after
  the data were cleaned with the Huber M-estimate if the fit is robust.

Every statistic is an immutable object holding the fit-derived
constants it needs, so replicates can be evaluated concurrently.
"""

import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..progress import ProgressReporter
from ..stats.correction import apply_correction, correction_matrix
from ..stats.covariance import cov_ML
from ..stats.intervals import confidence_interval
from ..stats.regression import median_coefficients, ols_coefficients, wls_coefficients
from ..utils.validators import (
    _validate_alternative,
    _validate_interval_type,
    _validate_level,
    _validate_parallel_settings,
    _validate_replicates,
)
from .effects import covariance_effects, indirect_columns, regression_effects, replicate_columns
from .fit import CovarianceMediationFit, MediationFit, RegressionMediationFit
from .resampling import BootstrapRunner
from .results import BootstrapTestResult

DEFAULT_R = 5000


class BootstrapKind(Enum):
    """Replicate statistic used by the bootstrap test."""

    STANDARD = "standard"
    FAST_ROBUST = "fast_robust"
    MEDIAN = "median"
    COVARIANCE = "covariance"


def select_bootstrap(fit: MediationFit) -> BootstrapKind:
    """Choose the replicate statistic for a fitted mediation model.

    Raises:
        ValueError: If the fit's method is not supported.
    """
    if fit.method == "regression":
        if not fit.robust:
            return BootstrapKind.STANDARD
        return BootstrapKind.MEDIAN if fit.median else BootstrapKind.FAST_ROBUST
    if fit.method == "covariance":
        return BootstrapKind.COVARIANCE
    raise ValueError(f"Bootstrap test not implemented for method {fit.method!r}")


@dataclass(frozen=True, eq=False)
class _RegressionLayout:
    """Column positions in the data matrix ``[1, x, y, m..., covariates...]``."""

    cols_mx: np.ndarray
    cols_ymx: np.ndarray
    j_m: np.ndarray
    j_y: int
    n_effects: int

    @classmethod
    def from_fit(cls, fit: RegressionMediationFit) -> "_RegressionLayout":
        p_m = len(fit.m)
        j_m = 3 + np.arange(p_m)
        j_covariates = 3 + p_m + np.arange(len(fit.covariates))
        return cls(
            cols_mx=np.concatenate(([0, 1], j_covariates)).astype(np.int64),
            cols_ymx=np.concatenate(([0], j_m, [1], j_covariates)).astype(np.int64),
            j_m=j_m,
            j_y=2,
            n_effects=len(replicate_columns(fit.m, fit.covariates)),
        )


@dataclass(frozen=True, eq=False)
class StandardBootstrap:
    """Least squares refit of all regressions on each bootstrap sample."""

    layout: _RegressionLayout

    @property
    def n_effects(self) -> int:
        return self.layout.n_effects

    def __call__(self, z: np.ndarray, i: np.ndarray) -> Optional[np.ndarray]:
        z_i = z[i]
        try:
            # all mediator regressions share the design
            coef_m = ols_coefficients(z_i[:, self.layout.cols_mx], z_i[:, self.layout.j_m])
            coef_y = ols_coefficients(z_i[:, self.layout.cols_ymx], z_i[:, self.layout.j_y])
        except np.linalg.LinAlgError:
            return None
        return regression_effects(list(coef_m.T), coef_y)


@dataclass(frozen=True, eq=False)
class MedianBootstrap:
    """Median regression refit of all regressions on each bootstrap sample."""

    layout: _RegressionLayout

    @property
    def n_effects(self) -> int:
        return self.layout.n_effects

    def __call__(self, z: np.ndarray, i: np.ndarray) -> Optional[np.ndarray]:
        z_i = z[i]
        x_i = z_i[:, self.layout.cols_mx]
        try:
            coef_m = [median_coefficients(x_i, z_i[:, j]) for j in self.layout.j_m]
            coef_y = median_coefficients(z_i[:, self.layout.cols_ymx], z_i[:, self.layout.j_y])
        except np.linalg.LinAlgError:
            return None
        return regression_effects(coef_m, coef_y)


@dataclass(frozen=True, eq=False)
class FastRobustBootstrap:
    """Fast and robust bootstrap of the robust regressions.

    Attributes:
        layout: Column positions in the data matrix.
        w_m: ``(n, p_m)`` square roots of the mediator fits' robustness weights.
        corr_m: Correction matrix of each mediator regression.
        coef_m: Original coefficients of each mediator regression.
        w_y: ``(n,)`` square roots of the outcome fit's robustness weights.
        corr_y: Correction matrix of the outcome regression.
        coef_y: Original coefficients of the outcome regression.
    """

    layout: _RegressionLayout
    w_m: np.ndarray
    corr_m: Tuple[np.ndarray, ...]
    coef_m: Tuple[np.ndarray, ...]
    w_y: np.ndarray
    corr_y: np.ndarray
    coef_y: np.ndarray

    @property
    def n_effects(self) -> int:
        return self.layout.n_effects

    def __call__(self, z: np.ndarray, i: np.ndarray) -> Optional[np.ndarray]:
        w_m_i = self.w_m[i]
        w_y_i = self.w_y[i]
        # more positively weighted observations than coefficients needed
        if np.any(np.sum(w_m_i > 0, axis=0) <= len(self.layout.cols_mx)):
            return None
        if np.sum(w_y_i > 0) <= len(self.layout.cols_ymx):
            return None

        z_i = z[i]
        x_i = z_i[:, self.layout.cols_mx]
        try:
            coef_m_i = [wls_coefficients(x_i, z_i[:, j], w_m_i[:, k]) for k, j in enumerate(self.layout.j_m)]
            coef_y_i = wls_coefficients(z_i[:, self.layout.cols_ymx], z_i[:, self.layout.j_y], w_y_i)
        except np.linalg.LinAlgError:
            return None

        coef_m_i = [apply_correction(coef, boot, corr) for coef, boot, corr in zip(self.coef_m, coef_m_i, self.corr_m)]
        coef_y_i = apply_correction(self.coef_y, coef_y_i, self.corr_y)
        return regression_effects(coef_m_i, coef_y_i)

    @classmethod
    def from_fit(cls, fit: RegressionMediationFit, z: np.ndarray) -> "FastRobustBootstrap":
        """Derive weights and correction matrices from the original fit.

        Raises:
            ValueError: If a correction matrix cannot be computed because
                the derivative-weighted design is singular.
        """
        layout = _RegressionLayout.from_fit(fit)
        X_m = z[:, layout.cols_mx]
        X_y = z[:, layout.cols_ymx]

        w_m = np.column_stack([np.sqrt(f.weights) for f in fit.fit_mx])
        corr_m = tuple(
            correction_matrix(X_m, w_m[:, k], f.residuals, f.scale, f.psi, f.tuning_psi) for k, f in enumerate(fit.fit_mx)
        )
        coef_m = tuple(np.asarray(f.coefficients, dtype=np.float64) for f in fit.fit_mx)

        fit_y = fit.fit_ymx
        w_y = np.sqrt(fit_y.weights)
        corr_y = correction_matrix(X_y, w_y, fit_y.residuals, fit_y.scale, fit_y.psi, fit_y.tuning_psi)

        return cls(
            layout=layout,
            w_m=w_m,
            corr_m=corr_m,
            coef_m=coef_m,
            w_y=w_y,
            corr_y=corr_y,
            coef_y=np.asarray(fit_y.coefficients, dtype=np.float64),
        )


@dataclass(frozen=True, eq=False)
class CovarianceBootstrap:
    """ML covariance matrix of each bootstrap sample of ``(x, y, m)``."""

    n_effects: int = 5

    def __call__(self, z: np.ndarray, i: np.ndarray) -> Optional[np.ndarray]:
        S = cov_ML(z[i]).cov
        with np.errstate(divide="ignore", invalid="ignore"):
            effects = covariance_effects(S, x=0, y=1, m=2)
        if not np.all(np.isfinite(effects)):
            return None
        return effects


def build_statistic(fit: MediationFit, kind: BootstrapKind) -> Tuple[np.ndarray, Callable, List[str]]:
    """Prepare the data matrix, replicate statistic and column labels.

    Returns:
        Tuple ``(data, statistic, columns)``.
    """
    if kind is BootstrapKind.COVARIANCE:
        if not isinstance(fit, CovarianceMediationFit):
            raise ValueError("covariance bootstrap requires a covariance-based fit")
        data = fit.data.to_numpy(dtype=np.float64)
        if fit.robust:
            # clean the data with the original Huber M-estimate (Zu & Yuan, 2010)
            data = (data - fit.cov.center) * fit.cov.consistent_weights()[:, None]
        return data, CovarianceBootstrap(), replicate_columns(fit.m)

    if not isinstance(fit, RegressionMediationFit):
        raise ValueError("regression bootstrap requires a regression-based fit")
    z = fit.matrix()
    columns = replicate_columns(fit.m, fit.covariates)
    if kind is BootstrapKind.STANDARD:
        return z, StandardBootstrap(_RegressionLayout.from_fit(fit)), columns
    if kind is BootstrapKind.MEDIAN:
        return z, MedianBootstrap(_RegressionLayout.from_fit(fit)), columns
    return z, FastRobustBootstrap.from_fit(fit, z), columns


def _warn(result):
    for message in result.warnings:
        warnings.warn(message, UserWarning, stacklevel=4)


def run_bootstrap_test(
    fit: MediationFit,
    alternative: str = "twosided",
    R: int = DEFAULT_R,
    level: float = 0.95,
    type: str = "bca",
    seed: Optional[int] = None,
    parallel: bool = False,
    n_cores: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> BootstrapTestResult:
    """
    Bootstrap test for the indirect effect(s) of a fitted mediation model.

    Args:
        fit: Fitted mediation model.
        alternative: ``"twosided"``, ``"less"`` or ``"greater"``.
        R: Number of bootstrap replicates.
        level: Confidence level; values outside (0, 1) are replaced by
            0.95 with a ``UserWarning``.
        type: ``"bca"`` or ``"perc"`` confidence intervals.
        seed: Seed for drawing the bootstrap samples.
        parallel: Evaluate replicates on a joblib worker pool.
        n_cores: Number of workers (defaults to half the CPUs).
        progress_callback: Optional ``callback(current, total)``.
        cancel_check: Optional callable returning ``True`` to abort.

    Returns:
        ``BootstrapTestResult``. With one mediator ``ab`` is a float and
        ``ci`` a length-2 array; with several, ``ab`` is a Series and
        ``ci`` a DataFrame indexed by ``Total`` and the mediator names.
        Effects without valid replicates are reported as NaN.

    Raises:
        ValueError: On invalid settings or an unsupported fit.
    """
    alternative, result = _validate_alternative(alternative)
    result.raise_if_invalid()
    type, result = _validate_interval_type(type)
    result.raise_if_invalid()
    R, result = _validate_replicates(R)
    result.raise_if_invalid()
    _warn(result)
    level, result = _validate_level(level)
    _warn(result)
    (parallel, n_cores), result = _validate_parallel_settings(bool(parallel), n_cores if parallel else 1)
    result.raise_if_invalid()
    _warn(result)

    kind = select_bootstrap(fit)
    data, statistic, columns = build_statistic(fit, kind)

    progress = ProgressReporter(R, progress_callback) if progress_callback is not None else None
    runner = BootstrapRunner(R, seed=seed, parallel=parallel, n_cores=n_cores)
    reps = runner.run(data, statistic, columns=columns, progress=progress, cancel_check=cancel_check)

    # effective number of replicates per column
    n_valid = reps.n_valid()
    means = reps.mean()
    p_m = len(fit.m)
    jackknife = reps.jackknife() if type == "bca" else None

    if p_m == 1:
        ab = float(means[0])
        ci = np.array(confidence_interval(reps, 0, level=level, alternative=alternative, type=type, jackknife=jackknife))
    else:
        labels = ["Total", *fit.m]
        columns_ab = indirect_columns(p_m)
        ab = pd.Series(means[columns_ab], index=labels, dtype=np.float64)
        bounds = [confidence_interval(reps, j, level=level, alternative=alternative, type=type, jackknife=jackknife) for j in columns_ab]
        ci = pd.DataFrame(bounds, index=labels, columns=["lower", "upper"], dtype=np.float64)

    return BootstrapTestResult(
        ab=ab,
        ci=ci,
        reps=reps,
        alternative=alternative,
        R=int(n_valid[0]),
        level=level,
        type=type,
        fit=fit,
        kind=kind.value,
    )
