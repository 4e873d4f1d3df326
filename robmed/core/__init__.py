"""Core components for robust mediation analysis.

Re-exports the building blocks:

- ``fit_mediation``, ``RegressionMediationFit``, ``CovarianceMediationFit``
  for fitting the mediation model.
- ``BootstrapRunner``, ``BootstrapReplicates``, ``resample`` for the
  resampling engine.
- ``run_bootstrap_test``, ``BootstrapKind``, ``select_bootstrap`` and
  ``sobel_test`` for testing the indirect effect.
- ``BootstrapTestResult``, ``SobelTestResult`` for the results.
"""

from .bootstrap import DEFAULT_R, BootstrapKind, build_statistic, run_bootstrap_test, select_bootstrap
from .fit import CovarianceMediationFit, MediationFit, RegressionMediationFit, fit_mediation
from .resampling import BootstrapReplicates, BootstrapRunner, resample
from .results import BootstrapTestResult, SobelTestResult
from .sobel import sobel_test

__all__ = [
    # Fitting
    "fit_mediation",
    "MediationFit",
    "RegressionMediationFit",
    "CovarianceMediationFit",
    # Resampling
    "BootstrapRunner",
    "BootstrapReplicates",
    "resample",
    # Tests
    "DEFAULT_R",
    "BootstrapKind",
    "build_statistic",
    "run_bootstrap_test",
    "select_bootstrap",
    "sobel_test",
    # Results
    "BootstrapTestResult",
    "SobelTestResult",
]
