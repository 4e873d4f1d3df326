"""robmed - Robust Mediation Analysis.

Tests for indirect effects in mediation models with one or more
mediators. The robust bootstrap test combines MM-type regressions with
the fast and robust bootstrap, so that outliers affect neither the
estimate nor the confidence interval of the indirect effect.

Example:
    >>> import robmed
    >>>
    >>> result = robmed.test_mediation(df, x="X", y="Y", m="M", seed=42)
    >>> result.ab, result.ci
    >>>
    >>> result.coef(type="data")
    >>> result.confint()
"""

from importlib.metadata import version as _get_version

from .core.fit import CovarianceMediationFit, MediationFit, RegressionMediationFit, fit_mediation
from .core.results import BootstrapTestResult, SobelTestResult
from .model import indirect, robmed, test_mediation
from .progress import BootstrapCancelled, PrintReporter, ProgressReporter, ReplicateReporter, TqdmReporter
from .stats.covariance import CovarianceControl
from .stats.regression import RegressionControl

__version__ = _get_version("robmed")

__all__ = [
    "test_mediation",
    "robmed",
    "indirect",
    "fit_mediation",
    "MediationFit",
    "RegressionMediationFit",
    "CovarianceMediationFit",
    "BootstrapTestResult",
    "SobelTestResult",
    "RegressionControl",
    "CovarianceControl",
    "BootstrapCancelled",
    "ProgressReporter",
    "ReplicateReporter",
    "PrintReporter",
    "TqdmReporter",
]
