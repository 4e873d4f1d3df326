"""
Shared test configuration constants.

All test files should import from this module to ensure consistency
across the test suite.
"""

# Bootstrap replicate counts - 3-tier ladder
R_CHECK = 200
"""Smoke tests - just verify no crash, structure, API contract."""

R_STANDARD = 1000
"""Standard tests - interval ordering, agreement between branches."""

R_ACCURACY = 2000
"""Accuracy tests - estimates compared against known population effects."""

SEED = 2137
"""Default random seed for reproducibility."""

N_OBS = 100
"""Default number of observations in synthetic mediation data."""

# Population effects of the synthetic single-mediator model
TRUE_A = 0.5
TRUE_B = 0.4
TRUE_C = 0.1
TRUE_AB = TRUE_A * TRUE_B

TOL_EXACT = 1e-8
"""Tolerance for quantities that are exact up to floating point error."""
