"""
Mediation model fits.

``fit_mediation`` estimates the mediation model either with regressions
(``m ~ x + covariates`` for every mediator and ``y ~ m + x + covariates``)
or, for a single mediator without covariates, from the scatter matrix of
``(x, y, m)``. Fits are plain containers: the bootstrap and Sobel tests
only read from them.
"""

import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..stats.covariance import CovarianceControl, CovarianceEstimate, cov_Huber, cov_ML
from ..stats.regression import RegressionControl, RegressionFit, design_matrix, fit_median, fit_ols, fit_robust
from ..utils.data import normalize_data_input, resolve_column, resolve_columns
from ..utils.validators import _validate_method, _validate_sample_size_for_model, _validate_variables
from .effects import covariance_effects, effect_names

INTERCEPT = "(Intercept)"


@dataclass
class MediationFit(ABC):
    """Common part of a fitted mediation model.

    Attributes:
        x: Name of the independent variable.
        y: Name of the dependent variable.
        m: Names of the mediators (at least one).
        covariates: Names of the control variables.
        data: Data used for fitting, columns ordered ``x, y, m..., covariates...``.
        robust: Whether robust estimators were used.
        median: Whether median regression was used.
    """

    x: str
    y: str
    m: List[str]
    covariates: List[str]
    data: pd.DataFrame
    robust: bool
    median: bool = False

    method = ""

    @property
    def n_obs(self) -> int:
        return len(self.data)

    @property
    def n_mediators(self) -> int:
        return len(self.m)

    def matrix(self) -> np.ndarray:
        """Data as a float matrix with a leading intercept column.

        Column layout: ``0`` intercept, ``1`` x, ``2`` y, ``3..3+p-1``
        mediators, then covariates.
        """
        return design_matrix(self.data.to_numpy(dtype=np.float64))

    @property
    @abstractmethod
    def a(self):
        """Effect(s) of x on the mediator(s)."""

    @property
    @abstractmethod
    def b(self):
        """Effect(s) of the mediator(s) on y."""

    @property
    @abstractmethod
    def c(self) -> float:
        """Direct effect of x on y."""

    @property
    def c_prime(self) -> float:
        """Total effect ``sum(a * b) + c``."""
        return float(np.sum(np.atleast_1d(self.a) * np.atleast_1d(self.b)) + self.c)

    @property
    def ab(self):
        """Indirect effect(s) ``a * b`` (an array for several mediators)."""
        ab = np.atleast_1d(self.a) * np.atleast_1d(self.b)
        return float(ab[0]) if len(ab) == 1 else ab

    def coef(self, parm: Optional[Union[str, Sequence[str]]] = None) -> pd.Series:
        """Path coefficients labelled ``a, b, c, c'`` (``a_<m>, b_<m>`` for several mediators)."""
        values = np.concatenate((np.atleast_1d(self.a), np.atleast_1d(self.b), [self.c, self.c_prime]))
        coef = pd.Series(values, index=effect_names(self.m), dtype=np.float64)
        return coef if parm is None else coef[parm]

    @abstractmethod
    def sobel_std_errors(self):
        """Standard errors of ``a`` and ``b`` (single mediator only)."""


@dataclass
class RegressionMediationFit(MediationFit):
    """Mediation model estimated via regressions.

    Attributes:
        fit_mx: One regression ``m ~ x + covariates`` per mediator.
        fit_ymx: Regression ``y ~ m + x + covariates``.
        control: Robust regression tuning (robust, non-median fits only).
    """

    fit_mx: List[RegressionFit] = field(default_factory=list)
    fit_ymx: Optional[RegressionFit] = None
    control: Optional[RegressionControl] = None

    method = "regression"

    @property
    def a(self):
        a = np.array([fit.coef(self.x) for fit in self.fit_mx])
        return float(a[0]) if len(a) == 1 else a

    @property
    def b(self):
        b = np.array([self.fit_ymx.coef(name) for name in self.m])
        return float(b[0]) if len(b) == 1 else b

    @property
    def c(self) -> float:
        return self.fit_ymx.coef(self.x)

    def sobel_std_errors(self):
        return self.fit_mx[0].std_error(self.x), self.fit_ymx.std_error(self.m[0])


@dataclass
class CovarianceMediationFit(MediationFit):
    """Mediation model estimated from the scatter matrix of ``(x, y, m)``.

    Attributes:
        cov: Location/scatter estimate (ML or Huber M-estimate).
        control: Huber estimator tuning (robust fits only).
    """

    cov: Optional[CovarianceEstimate] = None
    control: Optional[CovarianceControl] = None

    method = "covariance"

    def _effects(self) -> np.ndarray:
        return covariance_effects(self.cov.cov, x=0, y=1, m=2)

    @property
    def a(self) -> float:
        return float(self._effects()[1])

    @property
    def b(self) -> float:
        return float(self._effects()[2])

    @property
    def c(self) -> float:
        return float(self._effects()[3])

    @property
    def c_prime(self) -> float:
        return float(self._effects()[4])

    def sobel_std_errors(self):
        # normal-theory standard errors of the regression slopes implied by S
        S = self.cov.cov
        n = self.n_obs
        s_xx, s_mm, s_mx = S[0, 0], S[2, 2], S[2, 0]
        var_m_given_x = s_mm - s_mx**2 / s_xx
        se_a = np.sqrt(var_m_given_x / (n * s_xx))

        S_mx = S[np.ix_([2, 0], [2, 0])]
        s_y = S[1, [2, 0]]
        var_y_given_mx = S[1, 1] - s_y @ np.linalg.solve(S_mx, s_y)
        det = s_xx * s_mm - s_mx**2
        se_b = np.sqrt(var_y_given_mx * s_xx / (n * det))
        return float(se_a), float(se_b)


def fit_mediation(
    data,
    x: Any,
    y: Any,
    m: Any,
    covariates: Any = None,
    method: str = "regression",
    robust: bool = True,
    median: bool = False,
    control: Optional[Union[RegressionControl, CovarianceControl]] = None,
) -> MediationFit:
    """
    Fit a (robust) mediation model.

    Args:
        data: DataFrame, dict of columns or 2-D array.
        x: Independent variable (name or 0-based column position).
        y: Dependent variable.
        m: One or more mediators.
        covariates: Optional control variables.
        method: ``"regression"`` or ``"covariance"``. The covariance
            method is only available for one mediator without covariates;
            otherwise regressions are used.
        robust: Use robust estimators (MM-type regression, or the Huber
            M-estimator of location and scatter).
        median: Use median regression instead of MM-type regression
            (only with ``method="regression"`` and ``robust=True``).
        control: ``RegressionControl`` or ``CovarianceControl`` matching
            the chosen robust method.

    Returns:
        ``RegressionMediationFit`` or ``CovarianceMediationFit``.

    Raises:
        ValueError: On invalid variable selections, too few observations
            or rank-deficient designs.
    """
    _validate_method(method).raise_if_invalid()
    method = method.lower()
    robust = bool(robust)

    df = normalize_data_input(data)
    columns = list(df.columns)
    x = resolve_column(x, columns, "x")
    y = resolve_column(y, columns, "y")
    m = resolve_columns(m, columns)
    covariates = resolve_columns(covariates, columns)
    _validate_variables(x, y, m, covariates, columns).raise_if_invalid()

    df = df[[x, y, *m, *covariates]].dropna().astype(np.float64).reset_index(drop=True)

    if method == "covariance" and (len(m) > 1 or len(covariates) > 0):
        method = "regression"
    median = bool(median) and robust and method == "regression"

    n_coefficients = 2 + len(m) + len(covariates)
    result = _validate_sample_size_for_model(len(df), n_coefficients)
    result.raise_if_invalid()
    for message in result.warnings:
        warnings.warn(message, UserWarning, stacklevel=2)

    if method == "covariance":
        return _fit_covariance(df, x, y, m, robust, control)
    return _fit_regression(df, x, y, m, covariates, robust, median, control)


def _fit_regression(df, x, y, m, covariates, robust, median, control) -> RegressionMediationFit:
    if robust and not median:
        if control is None:
            control = RegressionControl()
        elif not isinstance(control, RegressionControl):
            raise ValueError("control must be a RegressionControl for robust regression")
    else:
        control = None

    X_m = design_matrix(df[[x, *covariates]].to_numpy())
    names_m = [INTERCEPT, x, *covariates]
    X_y = design_matrix(df[[*m, x, *covariates]].to_numpy())
    names_y = [INTERCEPT, *m, x, *covariates]
    response_y = df[y].to_numpy()

    if not robust:
        fit_mx = [fit_ols(X_m, df[name].to_numpy(), names_m) for name in m]
        fit_ymx = fit_ols(X_y, response_y, names_y)
    elif median:
        fit_mx = [fit_median(X_m, df[name].to_numpy(), names_m) for name in m]
        fit_ymx = fit_median(X_y, response_y, names_y)
    else:
        fit_mx = [fit_robust(X_m, df[name].to_numpy(), names_m, control) for name in m]
        fit_ymx = fit_robust(X_y, response_y, names_y, control)

    return RegressionMediationFit(
        x=x,
        y=y,
        m=list(m),
        covariates=list(covariates),
        data=df,
        robust=robust,
        median=median,
        fit_mx=fit_mx,
        fit_ymx=fit_ymx,
        control=control,
    )


def _fit_covariance(df, x, y, m, robust, control) -> CovarianceMediationFit:
    values = df.to_numpy()
    if robust:
        if control is None:
            control = CovarianceControl()
        elif not isinstance(control, CovarianceControl):
            raise ValueError("control must be a CovarianceControl for the Huber M-estimator")
        cov = cov_Huber(values, control)
    else:
        control = None
        cov = cov_ML(values)

    return CovarianceMediationFit(
        x=x,
        y=y,
        m=list(m),
        covariates=[],
        data=df,
        robust=robust,
        median=False,
        cov=cov,
        control=control,
    )
