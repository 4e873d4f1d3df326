"""
Robust Mediation Analysis Example
=================================

This example compares the classical bootstrap test with the robust
bootstrap test on data containing a few gross outliers. The robust test
downweights the outliers and keeps the indirect effect close to the
effect in the bulk of the data.
"""

import numpy as np
import pandas as pd

import robmed

# Example: training programme (x) improves motivation (m), which improves performance (y)
rng = np.random.default_rng(2137)
n = 150
training = rng.normal(size=n)
motivation = 0.5 * training + rng.normal(scale=0.7, size=n)
performance = 0.4 * motivation + 0.1 * training + rng.normal(scale=0.7, size=n)

# A handful of respondents misread the performance scale
performance[:6] -= 12

data = pd.DataFrame({"training": training, "motivation": motivation, "performance": performance})

print("=" * 60)
print("CLASSICAL BOOTSTRAP TEST")
print("=" * 60)
classical = robmed.indirect(data, "training", "performance", "motivation", R=5000, seed=42)
print(classical.summary())

print("\n" + "=" * 60)
print("ROBUST BOOTSTRAP TEST (fast and robust bootstrap)")
print("=" * 60)
robust = robmed.robmed(data, "training", "performance", "motivation", R=5000, seed=42, progress_callback=True)
print(robust.summary())

# Observations the robust regressions effectively ignored
weights = robust.fit.fit_ymx.weights
print(f"\nObservations with weight < 0.1: {np.flatnonzero(weights < 0.1).tolist()}")

print("\nAll effects (bootstrap estimates):")
print(robust.coef())
print("\nConfidence intervals:")
print(robust.confint())

print("\n" + "=" * 60)
print("SOBEL TEST ON THE ROBUST FIT")
print("=" * 60)
sobel = robmed.test_mediation(robust.fit, test="sobel")
print(sobel.summary())
