"""
Shared pytest fixtures for robmed tests.
"""

import numpy as np
import pandas as pd
import pytest

from tests.config import SEED
from tests.helpers.data import make_mediation_data


@pytest.fixture
def mediation_data():
    """Single-mediator data with unit noise."""
    return make_mediation_data()


@pytest.fixture
def exact_outcome_data():
    """Single-mediator data whose outcome equation holds without error.

    The mediator carries a small independent component so that the
    outcome regression is not collinear; ``b`` and ``c`` are then
    recovered exactly by least squares on every resample.
    """
    return make_mediation_data(noise_m=0.1, noise_y=0.0)


@pytest.fixture
def outlier_data():
    """Single-mediator data with a cluster of gross outliers in y."""
    df = make_mediation_data(n=200, noise_m=0.5, noise_y=0.5)
    df.loc[:9, "y"] = df.loc[:9, "y"] - 25.0
    df.loc[:9, "m"] = df.loc[:9, "m"] + 8.0
    return df


@pytest.fixture
def two_mediator_data():
    """Data with two parallel mediators and one covariate."""
    rng = np.random.default_rng(SEED)
    n = 150
    x = rng.normal(size=n)
    w = rng.normal(size=n)
    m1 = 0.5 * x + 0.2 * w + rng.normal(size=n)
    m2 = 0.3 * x + rng.normal(size=n)
    y = 0.4 * m1 + 0.6 * m2 + 0.1 * x + 0.2 * w + rng.normal(size=n)
    return pd.DataFrame({"x": x, "m1": m1, "m2": m2, "w": w, "y": y})
