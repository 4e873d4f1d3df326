"""
Tests for fitting mediation models.
"""

import numpy as np
import pandas as pd
import pytest

from robmed.core.fit import CovarianceMediationFit, MediationFit, RegressionMediationFit, fit_mediation
from robmed.stats.covariance import CovarianceControl
from robmed.stats.regression import RegressionControl
from tests.config import TRUE_A, TRUE_B, TRUE_C


class TestRegressionFit:
    """Test regression-based mediation fits."""

    def test_ols_paths(self, mediation_data):
        fit = fit_mediation(mediation_data, "x", "y", "m", robust=False)
        assert isinstance(fit, RegressionMediationFit)
        assert fit.method == "regression"
        assert not fit.robust

        x, y, m = (mediation_data[v].to_numpy() for v in ("x", "y", "m"))
        a = np.polyfit(x, m, 1)[0]
        X = np.column_stack((np.ones_like(x), m, x))
        coef_y = np.linalg.lstsq(X, y, rcond=None)[0]
        assert fit.a == pytest.approx(a)
        assert fit.b == pytest.approx(coef_y[1])
        assert fit.c == pytest.approx(coef_y[2])

    def test_total_effect_identity(self, mediation_data):
        fit = fit_mediation(mediation_data, "x", "y", "m")
        assert fit.c_prime == pytest.approx(fit.a * fit.b + fit.c)
        assert fit.ab == pytest.approx(fit.a * fit.b)

    def test_robust_paths_near_truth(self, mediation_data):
        fit = fit_mediation(mediation_data, "x", "y", "m")
        assert fit.robust and not fit.median
        assert isinstance(fit.control, RegressionControl)
        assert fit.a == pytest.approx(TRUE_A, abs=0.3)
        assert fit.b == pytest.approx(TRUE_B, abs=0.3)
        assert fit.c == pytest.approx(TRUE_C, abs=0.3)
        assert fit.fit_mx[0].kind == "robust"

    def test_median(self, mediation_data):
        fit = fit_mediation(mediation_data, "x", "y", "m", median=True)
        assert fit.median
        assert fit.control is None
        assert fit.fit_ymx.kind == "median"

    def test_median_ignored_without_robust(self, mediation_data):
        fit = fit_mediation(mediation_data, "x", "y", "m", robust=False, median=True)
        assert not fit.median
        assert fit.fit_ymx.kind == "ols"

    def test_coef_labels(self, mediation_data):
        coef = fit_mediation(mediation_data, "x", "y", "m", robust=False).coef()
        assert list(coef.index) == ["a", "b", "c", "c'"]
        assert coef["c'"] == pytest.approx(coef["a"] * coef["b"] + coef["c"])

    def test_coef_subset(self, mediation_data):
        fit = fit_mediation(mediation_data, "x", "y", "m", robust=False)
        assert fit.coef("a") == pytest.approx(fit.a)

    def test_multiple_mediators(self, two_mediator_data):
        fit = fit_mediation(two_mediator_data, "x", "y", ["m1", "m2"], covariates="w", robust=False)
        assert fit.n_mediators == 2
        assert len(fit.a) == 2 and len(fit.b) == 2
        assert list(fit.coef().index) == ["a_m1", "a_m2", "b_m1", "b_m2", "c", "c'"]
        assert fit.c_prime == pytest.approx(np.sum(fit.a * fit.b) + fit.c)
        assert list(fit.data.columns) == ["x", "y", "m1", "m2", "w"]

    def test_matrix_layout(self, two_mediator_data):
        fit = fit_mediation(two_mediator_data, "x", "y", ["m1", "m2"], covariates="w", robust=False)
        z = fit.matrix()
        np.testing.assert_array_equal(z[:, 0], 1.0)
        np.testing.assert_array_equal(z[:, 1], two_mediator_data["x"])
        np.testing.assert_array_equal(z[:, 2], two_mediator_data["y"])
        np.testing.assert_array_equal(z[:, 4], two_mediator_data["m2"])
        np.testing.assert_array_equal(z[:, 5], two_mediator_data["w"])

    def test_control_type_mismatch(self, mediation_data):
        with pytest.raises(ValueError, match="RegressionControl"):
            fit_mediation(mediation_data, "x", "y", "m", control=CovarianceControl())


class TestCovarianceFit:
    """Test covariance-based mediation fits."""

    def test_ml_equals_least_squares(self, mediation_data):
        cov_fit = fit_mediation(mediation_data, "x", "y", "m", method="covariance", robust=False)
        reg_fit = fit_mediation(mediation_data, "x", "y", "m", method="regression", robust=False)
        assert isinstance(cov_fit, CovarianceMediationFit)
        np.testing.assert_allclose(cov_fit.coef(), reg_fit.coef(), rtol=1e-8)

    def test_sobel_standard_errors_match_least_squares(self, mediation_data):
        cov_fit = fit_mediation(mediation_data, "x", "y", "m", method="covariance", robust=False)
        reg_fit = fit_mediation(mediation_data, "x", "y", "m", robust=False)
        np.testing.assert_allclose(cov_fit.sobel_std_errors(), reg_fit.sobel_std_errors(), rtol=0.03)

    def test_huber(self, mediation_data):
        fit = fit_mediation(mediation_data, "x", "y", "m", method="covariance")
        assert fit.robust
        assert fit.cov.robust
        assert isinstance(fit.control, CovarianceControl)
        assert fit.c_prime == pytest.approx(fit.a * fit.b + fit.c)

    def test_switches_to_regression_with_covariates(self, two_mediator_data):
        fit = fit_mediation(two_mediator_data, "x", "y", "m1", covariates="w", method="covariance")
        assert fit.method == "regression"

    def test_switches_to_regression_with_mediators(self, two_mediator_data):
        fit = fit_mediation(two_mediator_data, "x", "y", ["m1", "m2"], method="covariance")
        assert isinstance(fit, RegressionMediationFit)

    def test_control_type_mismatch(self, mediation_data):
        with pytest.raises(ValueError, match="CovarianceControl"):
            fit_mediation(mediation_data, "x", "y", "m", method="covariance", control=RegressionControl())


class TestFitInput:
    """Test data handling of fit_mediation."""

    def test_missing_rows_dropped(self, mediation_data):
        data = mediation_data.copy()
        data.loc[[0, 5], "m"] = np.nan
        data["unused"] = np.nan
        fit = fit_mediation(data, "x", "y", "m", robust=False)
        assert fit.n_obs == len(mediation_data) - 2

    def test_array_input_by_position(self, mediation_data):
        arr = mediation_data[["x", "y", "m"]].to_numpy()
        fit = fit_mediation(arr, 0, 1, 2, robust=False)
        assert fit.x == "column_1"
        named = fit_mediation(mediation_data, "x", "y", "m", robust=False)
        assert fit.ab == pytest.approx(named.ab)

    def test_dict_input(self, mediation_data):
        fit = fit_mediation(mediation_data.to_dict(orient="list"), "x", "y", "m", robust=False)
        assert fit.n_obs == len(mediation_data)

    def test_unknown_variable(self, mediation_data):
        with pytest.raises(ValueError, match="not found"):
            fit_mediation(mediation_data, "x", "y", "z")

    def test_unknown_method(self, mediation_data):
        with pytest.raises(ValueError, match="method"):
            fit_mediation(mediation_data, "x", "y", "m", method="bayes")

    def test_too_few_observations(self):
        data = pd.DataFrame({"x": [1.0, 2.0, 3.0], "y": [1.0, 0.0, 2.0], "m": [0.0, 1.0, 1.0]})
        with pytest.raises(ValueError, match="Too few observations"):
            fit_mediation(data, "x", "y", "m", robust=False)

    def test_small_sample_warns(self, mediation_data):
        with pytest.warns(UserWarning, match="Small sample"):
            fit = fit_mediation(mediation_data.iloc[:10], "x", "y", "m", robust=False)
        assert fit.n_obs == 10

    def test_base_fit_is_abstract(self, mediation_data):
        with pytest.raises(TypeError):
            MediationFit(x="x", y="y", m=["m"], covariates=[], data=mediation_data, robust=False)

    def test_collinear_predictors(self, mediation_data):
        data = mediation_data.copy()
        data["x2"] = 2 * data["x"]
        with pytest.raises(ValueError, match="rank deficient"):
            fit_mediation(data, "x", "y", "m", covariates="x2", robust=False)
