"""
Regression fits used in mediation models.

Provides ordinary least squares, weighted least squares, robust
(MM-type) and median regression. The least squares solvers are plain
numpy so they can run inside the bootstrap loop; the robust and median
fits of the original sample are delegated to statsmodels.
"""

import warnings
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from statsmodels.regression.quantile_regression import QuantReg
from statsmodels.robust.resistant_linear_model import RLMDetSMM
from statsmodels.robust.robust_linear_model import RLM
from statsmodels.tools.sm_exceptions import ConvergenceWarning, IterationLimitWarning

from .correction import DEFAULT_TUNING, _well_conditioned, get_norm, robustness_weights

FLOAT_NEAR_ZERO = 1e-15


@dataclass(frozen=True)
class RegressionControl:
    """Tuning parameters for robust regression.

    Attributes:
        psi: Psi function of the final M-step (``"bisquare"`` or ``"huber"``).
        tuning_psi: Tuning constant; defaults to the 95%-efficiency value
            of the chosen psi function.
        max_iter: Maximum number of IRLS iterations per step.
        tol: Convergence tolerance of the IRLS iterations.
    """

    psi: str = "bisquare"
    tuning_psi: Optional[float] = None
    max_iter: int = 50
    tol: float = 1e-8

    def __post_init__(self):
        if self.psi not in DEFAULT_TUNING:
            raise ValueError(f"Unsupported psi function {self.psi!r}; choose one of {sorted(DEFAULT_TUNING)}")
        if self.tuning_psi is None:
            object.__setattr__(self, "tuning_psi", DEFAULT_TUNING[self.psi])
        elif self.tuning_psi <= 0:
            raise ValueError(f"tuning_psi must be positive, got {self.tuning_psi}")


@dataclass
class RegressionFit:
    """Result of one regression in a mediation model.

    Attributes:
        coefficients: Estimated coefficients, intercept first.
        residuals: Residuals on the fitted sample.
        scale: Residual scale.
        std_errors: Standard errors of the coefficients.
        names: Coefficient names (``"(Intercept)"`` first).
        kind: ``"ols"``, ``"robust"`` or ``"median"``.
        weights: Robustness weights (all 1 for non-robust fits).
        psi: Psi function of a robust fit.
        tuning_psi: Tuning constant of a robust fit.
    """

    coefficients: np.ndarray
    residuals: np.ndarray
    scale: float
    std_errors: np.ndarray
    names: List[str]
    kind: str = "ols"
    weights: np.ndarray = field(default=None)  # type: ignore[assignment]
    psi: Optional[str] = None
    tuning_psi: Optional[float] = None

    def __post_init__(self):
        if self.weights is None:
            self.weights = np.ones_like(self.residuals)

    def coef(self, name: str) -> float:
        """Coefficient of the named predictor."""
        return float(self.coefficients[self.names.index(name)])

    def std_error(self, name: str) -> float:
        """Standard error of the named predictor's coefficient."""
        return float(self.std_errors[self.names.index(name)])


def design_matrix(data: np.ndarray) -> np.ndarray:
    """Prepend an intercept column to a predictor matrix."""
    data = np.asarray(data, dtype=np.float64)
    if data.ndim == 1:
        data = data.reshape(-1, 1)
    return np.column_stack((np.ones(data.shape[0]), data))


def check_full_rank(X: np.ndarray, what: str = "Design matrix"):
    """Raise ``ValueError`` if *X* does not have full column rank."""
    if np.linalg.matrix_rank(X) < X.shape[1]:
        raise ValueError(f"{what} is rank deficient; remove collinear predictors")


def _solve_gram(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve the normal equations ``A'A beta = A'b``.

    Raises:
        numpy.linalg.LinAlgError: If ``A'A`` is (numerically) singular.
    """
    gram = A.T @ A
    if not np.all(np.isfinite(gram)) or not _well_conditioned(gram):
        raise np.linalg.LinAlgError("Singular cross-product matrix")
    return np.linalg.solve(gram, A.T @ b)


def ols_coefficients(X: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Least squares coefficients; ``y`` may hold several response columns."""
    return _solve_gram(X, y)


def wls_coefficients(X: np.ndarray, y: np.ndarray, sqrt_weights: np.ndarray) -> np.ndarray:
    """Weighted least squares coefficients.

    Args:
        X: ``(n, p)`` design matrix.
        y: ``(n,)`` response.
        sqrt_weights: ``(n,)`` square roots of the observation weights,
            used to row-scale *X* and *y*.
    """
    return _solve_gram(sqrt_weights[:, None] * X, sqrt_weights * y)


def median_coefficients(X: np.ndarray, y: np.ndarray, max_iter: int = 1000) -> np.ndarray:
    """Median (least absolute deviation) regression coefficients."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", IterationLimitWarning)
        warnings.simplefilter("ignore", ConvergenceWarning)
        return np.asarray(QuantReg(y, X).fit(q=0.5, max_iter=max_iter).params, dtype=np.float64)


def fit_ols(X: np.ndarray, y: np.ndarray, names: List[str]) -> RegressionFit:
    """Ordinary least squares fit with classical standard errors."""
    n, p = X.shape
    check_full_rank(X)

    Q, R = np.linalg.qr(X)
    beta = np.linalg.solve(R, Q.T @ y)
    residuals = y - X @ beta
    dof = n - p
    mse = np.sum(residuals**2) / dof if dof > 0 else np.nan

    R_inv = np.linalg.solve(R, np.eye(p))
    cov_unscaled = R_inv @ R_inv.T
    std_errors = np.sqrt(mse * np.diag(cov_unscaled))

    return RegressionFit(
        coefficients=beta,
        residuals=residuals,
        scale=float(np.sqrt(mse)),
        std_errors=std_errors,
        names=list(names),
        kind="ols",
    )


def fit_robust(X: np.ndarray, y: np.ndarray, names: List[str], control: Optional[RegressionControl] = None) -> RegressionFit:
    """
    Robust MM-type regression.

    An S-estimate with deterministic starts provides high-breakdown
    starting coefficients and the residual scale, so that outliers in
    the predictors (bad leverage points) cannot pull the start. The
    scale is then held fixed while the psi function of *control* is
    iterated to convergence. Robustness weights are ``psi(u)/u`` at the
    final standardized residuals.

    Args:
        X: ``(n, p)`` design matrix including the intercept.
        y: ``(n,)`` response.
        names: Coefficient names.
        control: Tuning parameters; defaults to bisquare with c = 4.685.
    """
    if control is None:
        control = RegressionControl()
    check_full_rank(X)

    initial = RLMDetSMM(y, X).fit()
    scale = float(initial.scale)
    if not np.isfinite(scale) or scale <= FLOAT_NEAR_ZERO:
        raise ValueError("Robust residual scale is zero; more than half of the observations are fitted exactly")

    # S-scale frozen for the final M-step
    norm = get_norm(control.psi, control.tuning_psi)
    final = RLM(y, X, M=norm).fit(
        maxiter=control.max_iter,
        tol=control.tol,
        update_scale=False,
        start_params=np.asarray(initial.params),
        start_scale=scale,
    )
    beta = np.asarray(final.params, dtype=np.float64)
    residuals = y - X @ beta
    weights = robustness_weights(residuals / scale, control.psi, control.tuning_psi)

    return RegressionFit(
        coefficients=beta,
        residuals=residuals,
        scale=scale,
        std_errors=np.asarray(final.bse, dtype=np.float64),
        names=list(names),
        kind="robust",
        weights=weights,
        psi=control.psi,
        tuning_psi=control.tuning_psi,
    )


def fit_median(X: np.ndarray, y: np.ndarray, names: List[str]) -> RegressionFit:
    """Median regression (quantile regression at q = 0.5)."""
    check_full_rank(X)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", IterationLimitWarning)
        result = QuantReg(y, X).fit(q=0.5, max_iter=5000)
    beta = np.asarray(result.params, dtype=np.float64)
    residuals = y - X @ beta
    # MAD scale, only for reporting
    scale = float(np.median(np.abs(residuals)) / 0.6744897501960817)

    return RegressionFit(
        coefficients=beta,
        residuals=residuals,
        scale=scale,
        std_errors=np.asarray(result.bse, dtype=np.float64),
        names=list(names),
        kind="median",
    )
