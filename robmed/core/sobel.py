"""
Sobel's normal-theory test for the indirect effect.
"""

import numpy as np

from ..stats.distributions import p_value_z
from ..utils.validators import _validate_alternative
from .fit import MediationFit
from .results import SobelTestResult


def sobel_test(fit: MediationFit, alternative: str = "twosided") -> SobelTestResult:
    """
    Sobel test for the indirect effect of a single-mediator model.

    The standard error of ``ab`` follows from the delta method,
    ``se = sqrt(b**2 * se_a**2 + a**2 * se_b**2)``.

    Raises:
        ValueError: If the model has more than one mediator or the
            alternative is unknown.
    """
    alternative, result = _validate_alternative(alternative)
    result.raise_if_invalid()
    if fit.n_mediators != 1:
        raise ValueError("Sobel test is only available for a single mediator")

    a, b = fit.a, fit.b
    se_a, se_b = fit.sobel_std_errors()
    ab = a * b
    se = float(np.sqrt(b**2 * se_a**2 + a**2 * se_b**2))
    with np.errstate(divide="ignore", invalid="ignore"):
        z = np.float64(ab) / se
    p_value = np.nan if np.isnan(z) else float(p_value_z(z, alternative))

    return SobelTestResult(
        ab=float(ab),
        se=se,
        statistic=float(z),
        p_value=p_value,
        alternative=alternative,
        fit=fit,
    )
