"""
Multiple Mediators Example
==========================

This example tests the indirect effects through two parallel mediators
with a control variable, using a one-sided alternative and percentile
intervals evaluated on a worker pool.
"""

import numpy as np
import pandas as pd

import robmed

rng = np.random.default_rng(7)
n = 250
age = rng.normal(size=n)
exercise = rng.normal(size=n)
fitness = 0.6 * exercise + 0.2 * age + rng.normal(size=n)
sleep = 0.3 * exercise + rng.normal(size=n)
wellbeing = 0.4 * fitness + 0.5 * sleep + 0.1 * exercise - 0.2 * age + rng.normal(size=n)

data = pd.DataFrame(
    {"exercise": exercise, "fitness": fitness, "sleep": sleep, "age": age, "wellbeing": wellbeing}
)

print("=" * 60)
print("TWO PARALLEL MEDIATORS")
print("=" * 60)
result = robmed.test_mediation(
    data,
    x="exercise",
    y="wellbeing",
    m=["fitness", "sleep"],
    covariates="age",
    alternative="greater",  # H1: positive indirect effects
    type="perc",
    R=5000,
    seed=42,
    parallel=True,
    n_cores=2,
)
print(result.summary())

print("\nIndirect effects:")
print(result.ab)
print("\nOne-sided confidence intervals:")
print(result.ci)

# Sobel's test needs a single mediator; the bootstrap test is used instead
print("\nRequesting Sobel's test with two mediators:")
fallback = robmed.test_mediation(data, x="exercise", y="wellbeing", m=["fitness", "sleep"], test="sobel", R=1000, seed=1)
print(type(fallback).__name__)
