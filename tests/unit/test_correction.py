"""
Tests for the fast and robust bootstrap correction.
"""

import numpy as np
import pytest

from robmed.stats.correction import (
    DEFAULT_TUNING,
    apply_correction,
    correction_matrix,
    get_norm,
    psi_derivative,
    robustness_weights,
)
from robmed.stats.regression import design_matrix
from tests.config import SEED, TOL_EXACT


@pytest.fixture
def design():
    rng = np.random.default_rng(SEED)
    return design_matrix(rng.normal(size=(80, 2)))


class TestPsiFunctions:
    """Test psi derivatives and robustness weights."""

    def test_unknown_psi(self):
        with pytest.raises(ValueError, match="Unsupported psi"):
            get_norm("hampel", 1.0)

    def test_bisquare_weights(self):
        c = DEFAULT_TUNING["bisquare"]
        u = np.array([0.0, 1.0, c / 2, c, 2 * c])
        expected = np.where(np.abs(u) < c, (1 - (u / c) ** 2) ** 2, 0.0)
        np.testing.assert_allclose(robustness_weights(u, "bisquare", c), expected, atol=1e-12)

    def test_bisquare_derivative(self):
        c = DEFAULT_TUNING["bisquare"]
        d = psi_derivative(np.array([0.0, 2 * c]), "bisquare", c)
        assert d[0] == pytest.approx(1.0)
        assert d[1] == pytest.approx(0.0)

    def test_huber_weights_and_derivative(self):
        k = DEFAULT_TUNING["huber"]
        u = np.array([0.5, 2 * k])
        np.testing.assert_allclose(robustness_weights(u, "huber", k), [1.0, 0.5])
        np.testing.assert_allclose(psi_derivative(u, "huber", k), [1.0, 0.0])

    def test_weights_in_unit_interval(self):
        u = np.linspace(-10, 10, 101)
        for psi, tuning in DEFAULT_TUNING.items():
            w = robustness_weights(u, psi, tuning)
            assert np.all((w >= 0) & (w <= 1))


class TestCorrectionMatrix:
    """Test correction_matrix and apply_correction."""

    def test_identity_for_least_squares_limit(self, design):
        # unit weights and psi' = 1 everywhere: WLS already is the estimator
        n, p = design.shape
        residuals = np.random.default_rng(1).normal(size=n)
        corr = correction_matrix(design, np.ones(n), residuals, 1.0, psi="huber", tuning_psi=1e10)
        np.testing.assert_allclose(corr, np.eye(p), atol=TOL_EXACT)

    def test_shape_and_finite(self, design):
        n, p = design.shape
        residuals = np.random.default_rng(2).normal(size=n)
        scale = 1.0
        w = np.sqrt(robustness_weights(residuals / scale, "bisquare", 4.685))
        corr = correction_matrix(design, w, residuals, scale)
        assert corr.shape == (p, p)
        assert np.all(np.isfinite(corr))

    def test_zero_weights_give_zero_matrix(self, design):
        n, p = design.shape
        corr = correction_matrix(design, np.zeros(n), np.zeros(n), 1.0, psi="huber", tuning_psi=1e10)
        np.testing.assert_allclose(corr, np.zeros((p, p)))

    def test_singular_design_raises(self):
        x = np.random.default_rng(3).normal(size=30)
        X = np.column_stack((np.ones(30), x, 2 * x))
        with pytest.raises(ValueError, match="singular"):
            correction_matrix(X, np.ones(30), np.zeros(30), 1.0)

    def test_all_residuals_rejected_raises(self, design):
        n = design.shape[0]
        # every residual beyond the bisquare rejection point: psi' = 0
        residuals = np.full(n, 100.0)
        with pytest.raises(ValueError):
            correction_matrix(design, np.zeros(n), residuals, 1.0)

    def test_apply_identity_correction(self):
        coef = np.array([1.0, 2.0, 3.0])
        boot = np.array([1.5, 1.0, 3.2])
        np.testing.assert_allclose(apply_correction(coef, boot, np.eye(3)), boot)

    def test_apply_correction_linear(self):
        coef = np.array([1.0, 2.0])
        boot = np.array([2.0, 4.0])
        corr = np.array([[0.5, 0.0], [0.0, 2.0]])
        np.testing.assert_allclose(apply_correction(coef, boot, corr), [1.5, 6.0])
