"""
Entry points for (robust) mediation analysis.

``test_mediation`` fits the mediation model (unless a fit is passed)
and tests the indirect effect with a bootstrap test or Sobel's test.
``robmed`` and ``indirect`` are shortcuts for the robust bootstrap test
and the classical bootstrap test.
"""

import warnings
from typing import Any, Callable, Optional, Union

from .core.bootstrap import DEFAULT_R, run_bootstrap_test
from .core.fit import MediationFit, fit_mediation
from .core.results import BootstrapTestResult, SobelTestResult
from .core.sobel import sobel_test
from .progress import PrintReporter
from .stats.covariance import CovarianceControl
from .stats.regression import RegressionControl
from .utils.validators import DEFAULT_LEVEL, _validate_sobel_mediators, _validate_test

__all__ = ["test_mediation", "robmed", "indirect"]


def _resolve_progress(progress_callback):
    """``True`` selects the console reporter; ``None``/``False`` disable progress."""
    if progress_callback is True:
        return PrintReporter()
    if progress_callback is None or progress_callback is False:
        return None
    if not callable(progress_callback):
        raise ValueError("progress_callback must be None, True, False or a callable (current, total)")
    return progress_callback


def test_mediation(
    data_or_fit: Any,
    x: Any = None,
    y: Any = None,
    m: Any = None,
    covariates: Any = None,
    test: str = "boot",
    alternative: str = "twosided",
    R: int = DEFAULT_R,
    level: float = DEFAULT_LEVEL,
    type: str = "bca",
    method: str = "regression",
    robust: bool = True,
    median: bool = False,
    control: Optional[Union[RegressionControl, CovarianceControl]] = None,
    seed: Optional[int] = None,
    parallel: bool = False,
    n_cores: Optional[int] = None,
    progress_callback: Union[None, bool, Callable[[int, int], None]] = None,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> Union[BootstrapTestResult, SobelTestResult]:
    """
    (Robust) mediation analysis.

    Performs a bootstrap test or Sobel's test for the indirect effect(s)
    of ``x`` on ``y`` through the mediator(s) ``m``. With ``robust=True``
    (the default) the model is estimated with MM-type regressions and the
    bootstrap uses the fast and robust bootstrap, so that outliers neither
    drive the estimate nor the confidence interval.

    Args:
        data_or_fit: DataFrame, dict of columns or 2-D array, or an
            already fitted ``MediationFit`` (then the variable and
            estimation arguments are ignored).
        x: Independent variable (name or 0-based column position).
        y: Dependent variable.
        m: Mediator(s).
        covariates: Optional control variables.
        test: ``"boot"`` or ``"sobel"``. Sobel's test is only available
            for one mediator; otherwise the bootstrap test is used with a
            warning.
        alternative: ``"twosided"``, ``"less"`` or ``"greater"``.
        R: Number of bootstrap replicates.
        level: Confidence level of the bootstrap interval. Values outside
            (0, 1) fall back to 0.95 with a warning.
        type: ``"bca"`` or ``"perc"`` bootstrap interval.
        method: ``"regression"`` or ``"covariance"``.
        robust: Use robust estimators.
        median: Use median regression (robust regression method only).
        control: ``RegressionControl`` or ``CovarianceControl``.
        seed: Seed for the bootstrap samples.
        parallel: Evaluate bootstrap replicates on a worker pool.
        n_cores: Number of workers (defaults to half the CPUs).
        progress_callback: ``None``/``False`` (no progress), ``True``
            (``PrintReporter``), a ``ReplicateReporter`` (also shown the
            number of invalid replicates) or a callable ``(current, total)``.
        cancel_check: Optional callable returning ``True`` to abort.

    Returns:
        ``BootstrapTestResult`` or ``SobelTestResult``.

    Raises:
        ValueError: On invalid settings or variable selections.
        BootstrapCancelled: If *cancel_check* requests cancellation.

    Example:
        >>> result = test_mediation(df, x="X", y="Y", m="M", seed=42)
        >>> result.ab, result.ci
    """
    _validate_test(test).raise_if_invalid()
    test = test.lower()

    if isinstance(data_or_fit, MediationFit):
        fit = data_or_fit
    else:
        if x is None or y is None or m is None:
            raise ValueError("x, y and m must be given when fitting a mediation model from data")
        fit = fit_mediation(
            data_or_fit,
            x=x,
            y=y,
            m=m,
            covariates=covariates,
            method=method,
            robust=robust,
            median=median,
            control=control,
        )

    if test == "sobel":
        test, result = _validate_sobel_mediators(fit.n_mediators)
        for message in result.warnings:
            warnings.warn(message, UserWarning, stacklevel=2)

    if test == "sobel":
        return sobel_test(fit, alternative=alternative)

    return run_bootstrap_test(
        fit,
        alternative=alternative,
        R=R,
        level=level,
        type=type,
        seed=seed,
        parallel=parallel,
        n_cores=n_cores,
        progress_callback=_resolve_progress(progress_callback),
        cancel_check=cancel_check,
    )


def robmed(data: Any, x: Any, y: Any, m: Any, covariates: Any = None, R: int = DEFAULT_R, level: float = DEFAULT_LEVEL, **kwargs):
    """Robust mediation analysis: MM-type regressions with the fast and robust bootstrap."""
    return test_mediation(data, x=x, y=y, m=m, covariates=covariates, test="boot", R=R, level=level, method="regression", robust=True, median=False, **kwargs)


def indirect(data: Any, x: Any, y: Any, m: Any, covariates: Any = None, R: int = DEFAULT_R, level: float = DEFAULT_LEVEL, **kwargs):
    """Classical mediation analysis: least squares regressions with the standard bootstrap."""
    return test_mediation(data, x=x, y=y, m=m, covariates=covariates, test="boot", R=R, level=level, method="regression", robust=False, **kwargs)


# not a pytest test function
test_mediation.__test__ = False  # type: ignore[attr-defined]
