"""
Result containers for mediation tests.

Both results keep the fitted model so that effects other than the
indirect effect can be extracted with ``coef`` and ``confint``.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..stats.distributions import norm_ppf
from ..stats.intervals import confidence_interval
from .effects import indirect_columns, indirect_names, path_columns, replicate_columns
from .fit import MediationFit
from .resampling import BootstrapReplicates

Parm = Optional[Union[str, Sequence[str]]]


def _select(values: Union[pd.Series, pd.DataFrame], parm: Parm):
    if parm is None:
        return values
    if isinstance(parm, str):
        parm = [parm]
    unknown = [name for name in parm if name not in values.index]
    if unknown:
        raise KeyError(f"Unknown effect(s) {unknown}; available: {list(values.index)}")
    return values.loc[list(parm)]


@dataclass
class BootstrapTestResult:
    """Result of a bootstrap test for the indirect effect(s).

    Attributes:
        ab: Bootstrap estimate of the indirect effect (a float for one
            mediator, a Series indexed ``Total, m...`` for several).
        ci: Confidence interval (length-2 array, or a DataFrame with
            columns ``lower, upper`` for several mediators).
        reps: Bootstrap replicates of all effects.
        alternative: ``"twosided"``, ``"less"`` or ``"greater"``.
        R: Number of valid bootstrap replicates of the indirect effect.
        level: Confidence level.
        type: ``"bca"`` or ``"perc"``.
        fit: The fitted mediation model.
        kind: Replicate statistic used (``"standard"``, ``"fast_robust"``,
            ``"median"`` or ``"covariance"``).
    """

    ab: Union[float, pd.Series]
    ci: Union[np.ndarray, pd.DataFrame]
    reps: BootstrapReplicates
    alternative: str
    R: int
    level: float
    type: str
    fit: MediationFit
    kind: str = ""

    def _labels(self):
        return replicate_columns(self.fit.m, self.fit.covariates)

    def _effect_columns(self) -> np.ndarray:
        p_m = len(self.fit.m)
        return np.concatenate((indirect_columns(p_m), path_columns(p_m)))

    def coef(self, type: str = "boot", parm: Parm = None) -> pd.Series:
        """Effects of the mediation model.

        Args:
            type: ``"boot"`` for the bootstrap means, ``"data"`` for the
                estimates on the original sample.
            parm: Optional effect name(s) to select.
        """
        labels = self._labels()
        columns = self._effect_columns()
        if type == "boot":
            values = self.reps.mean()[columns]
        elif type == "data":
            values = np.concatenate((np.atleast_1d(self.fit.ab), self.fit.coef().to_numpy()))
            if len(self.fit.m) > 1:
                values = np.concatenate(([np.sum(self.fit.ab)], values))
        else:
            raise ValueError(f"type must be 'boot' or 'data', got {type!r}")
        names = [labels[j] for j in columns]
        return _select(pd.Series(values, index=names, dtype=np.float64), parm)

    def confint(self, parm: Parm = None) -> pd.DataFrame:
        """Bootstrap confidence intervals of the effects.

        The indirect effect(s) get the test's interval; the other effects
        get intervals of the same type from the same replicates.
        """
        labels = self._labels()
        columns = self._effect_columns()
        n_indirect = len(indirect_columns(len(self.fit.m)))
        ci = np.atleast_2d(np.asarray(self.ci, dtype=np.float64))

        rows = []
        for k, j in enumerate(columns):
            if k < n_indirect:
                rows.append(ci[k])
            else:
                rows.append(confidence_interval(self.reps, j, level=self.level, alternative=self.alternative, type=self.type))
        frame = pd.DataFrame(rows, index=[labels[j] for j in columns], columns=["lower", "upper"], dtype=np.float64)
        return _select(frame, parm)

    def summary(self) -> str:
        """Short text summary of the test."""
        p_m = len(self.fit.m)
        kind = {"bca": "BCa", "perc": "percentile"}[self.type]
        lines = [
            f"Bootstrap test for indirect effect ({self.R} replicates, {kind} interval)",
            f"x = {self.fit.x}, y = {self.fit.y}, m = {', '.join(self.fit.m)}",
            f"Alternative: {self.alternative}, level: {self.level:.3g}",
        ]
        if p_m == 1:
            lines.append(f"ab = {self.ab:.6g}  CI: [{self.ci[0]:.6g}, {self.ci[1]:.6g}]")
        else:
            for name, ab, lower, upper in zip(indirect_names(self.fit.m), self.ab, self.ci["lower"], self.ci["upper"]):
                lines.append(f"{name} = {ab:.6g}  CI: [{lower:.6g}, {upper:.6g}]")
        return "\n".join(lines)


@dataclass
class SobelTestResult:
    """Result of Sobel's normal-theory test for the indirect effect.

    Attributes:
        ab: Indirect effect estimate ``a * b``.
        se: Standard error of ``ab`` from the delta method.
        statistic: Test statistic ``ab / se``.
        p_value: P-value for the chosen alternative.
        alternative: ``"twosided"``, ``"less"`` or ``"greater"``.
        fit: The fitted mediation model.
    """

    ab: float
    se: float
    statistic: float
    p_value: float
    alternative: str
    fit: MediationFit

    def coef(self, parm: Parm = None) -> pd.Series:
        """Effects ``ab, a, b, c, c'`` estimated on the original sample."""
        values = np.concatenate(([self.ab], self.fit.coef().to_numpy()))
        names = ["ab", *self.fit.coef().index]
        return _select(pd.Series(values, index=names, dtype=np.float64), parm)

    def confint(self, parm: Parm = None, level: float = 0.95) -> pd.DataFrame:
        """Normal-theory confidence interval of the indirect effect.

        Only the indirect effect has a standard error here; other effects
        are reported with NaN bounds.
        """
        if self.alternative == "twosided":
            q = norm_ppf(1.0 - (1.0 - level) / 2.0)
            bounds = (self.ab - q * self.se, self.ab + q * self.se)
        elif self.alternative == "less":
            bounds = (-np.inf, self.ab + norm_ppf(level) * self.se)
        else:
            bounds = (self.ab - norm_ppf(level) * self.se, np.inf)

        coef = self.coef()
        frame = pd.DataFrame(np.nan, index=coef.index, columns=["lower", "upper"], dtype=np.float64)
        frame.loc["ab"] = bounds
        return _select(frame, parm)

    def summary(self) -> str:
        """Short text summary of the test."""
        return "\n".join(
            [
                "Normal theory test for indirect effect",
                f"x = {self.fit.x}, y = {self.fit.y}, m = {self.fit.m[0]}",
                f"ab = {self.ab:.6g}, se = {self.se:.6g}, z = {self.statistic:.4f}, p = {self.p_value:.4g} ({self.alternative})",
            ]
        )
