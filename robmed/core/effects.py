"""
Effect extraction for mediation models.

Turns regression coefficients (raw or bootstrap-corrected) or a scatter
matrix into the effects of the mediation model and fixes the layout of
the replicate matrix:

- one mediator: ``[ab, a, b, c, c', covariates...]``
- ``p`` mediators: ``[sum_ab, ab_1..ab_p, a_1..a_p, b_1..b_p, c, c',
  covariates...]``

Here ``c`` is the direct effect and ``c'`` the total effect
``sum(ab) + c``. The mediator regressions have design
``[1, x, covariates]``; the outcome regression has design
``[1, m_1..m_p, x, covariates]``.
"""

from typing import List, Sequence

import numpy as np


def regression_effects(coef_m: Sequence[np.ndarray], coef_y: np.ndarray) -> np.ndarray:
    """Effect vector from mediator and outcome regression coefficients.

    Args:
        coef_m: One coefficient vector per mediator regression
            (intercept first, slope on x second).
        coef_y: Coefficients of the outcome regression.

    Returns:
        1-D effect vector in replicate-matrix column order.
    """
    p_m = len(coef_m)
    a = np.array([coef[1] for coef in coef_m], dtype=np.float64)
    b = np.asarray(coef_y[1 : 1 + p_m], dtype=np.float64)
    c = coef_y[1 + p_m]
    ab = a * b
    covariates = np.asarray(coef_y[2 + p_m :], dtype=np.float64)

    if p_m == 1:
        c_prime = ab[0] + c
        return np.concatenate(([ab[0], a[0], b[0], c, c_prime], covariates))

    sum_ab = ab.sum()
    c_prime = sum_ab + c
    return np.concatenate(([sum_ab], ab, a, b, [c, c_prime], covariates))


def covariance_effects(S: np.ndarray, x: int = 0, y: int = 1, m: int = 2) -> np.ndarray:
    """Effect vector ``[ab, a, b, c, c']`` from a scatter matrix.

    Args:
        S: Scatter matrix of the variables.
        x, y, m: Row/column positions of the independent variable, the
            dependent variable and the mediator in *S*.
    """
    a = S[m, x] / S[x, x]
    det = S[x, x] * S[m, m] - S[m, x] ** 2
    b = (-S[m, x] * S[y, x] + S[x, x] * S[y, m]) / det
    c = (S[m, m] * S[y, x] - S[m, x] * S[y, m]) / det
    c_prime = S[y, x] / S[x, x]
    return np.array([a * b, a, b, c, c_prime])


def effect_names(m: Sequence[str], sep: str = "_") -> List[str]:
    """Names of the path coefficients ``a, b, c, c'``."""
    if len(m) == 1:
        return ["a", "b", "c", "c'"]
    return [f"a{sep}{name}" for name in m] + [f"b{sep}{name}" for name in m] + ["c", "c'"]


def indirect_names(m: Sequence[str], sep: str = "_") -> List[str]:
    """Names of the indirect effects (``Total`` first for several mediators)."""
    if len(m) == 1:
        return ["ab"]
    return [f"ab{sep}{name}" for name in ["Total", *m]]


def replicate_columns(m: Sequence[str], covariates: Sequence[str] = ()) -> List[str]:
    """Column labels of the replicate matrix, in column order."""
    return indirect_names(m) + effect_names(m) + list(covariates)


def indirect_columns(p_m: int) -> np.ndarray:
    """Column indices of the indirect effect(s)."""
    return np.arange(1 if p_m == 1 else 1 + p_m)


def path_columns(p_m: int) -> np.ndarray:
    """Column indices of ``a, b, c, c'``."""
    if p_m == 1:
        return np.arange(1, 5)
    return 1 + p_m + np.arange(2 * p_m + 2)

