"""
Validation utilities for robust mediation analysis.

This module provides validation functions for test settings and
variable selections.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

__all__ = []

DEFAULT_LEVEL = 0.95

_ALTERNATIVES = {"twosided": "twosided", "two-sided": "twosided", "less": "less", "greater": "greater"}
_INTERVAL_TYPES = {"bca": "bca", "perc": "perc", "percentile": "perc"}
_TESTS = ("boot", "sobel")
_METHODS = ("regression", "covariance")


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self):
        """Raise ``ValueError`` if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise ValueError(error_msg)


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type."""
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_choice(value: Any, choices, name: str) -> Optional[str]:
        """Check that value is one of the allowed strings."""
        if not isinstance(value, str) or value.lower() not in choices:
            return f"{name} must be one of {sorted(set(choices))}, got {value!r}"
        return None


_validator = _Validator()


def _validate_level(level: Any) -> Tuple[float, _ValidationResult]:
    """Validate the confidence level, falling back to the default.

    A level that is not numeric, not finite, or outside ``(0, 1)`` is not
    an error: it is replaced by ``DEFAULT_LEVEL`` and a warning is
    recorded so callers can surface the substitution.
    """
    warnings: List[str] = []
    value: Optional[float]
    if isinstance(level, (list, tuple, np.ndarray)):
        flat = np.ravel(level)
        level = flat[0] if flat.size > 0 else None
    try:
        value = float(level)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        value = None

    if value is None or not np.isfinite(value) or value <= 0 or value >= 1:
        warnings.append(f"Confidence level {level!r} is not in (0, 1); using default of {DEFAULT_LEVEL}")
        value = DEFAULT_LEVEL

    return value, _ValidationResult(True, [], warnings)


def _validate_replicates(R: Any) -> Tuple[int, _ValidationResult]:
    """Validate and process the number of bootstrap replicates."""
    errors: List[str] = []
    warnings: List[str] = []

    type_error = _validator._check_type(R, (int, float, np.integer), "Number of bootstrap replicates")
    if type_error:
        return 0, _ValidationResult(False, [type_error], warnings)

    rounded = int(round(R))
    if rounded < 1:
        errors.append(f"Number of bootstrap replicates must be >= 1, got {R}")
        return 0, _ValidationResult(False, errors, warnings)
    if rounded != R:
        warnings.append(f"Number of bootstrap replicates rounded from {R} to {rounded}")
    if rounded < 1000:
        warnings.append(f"Low replicate count ({rounded}). Consider using at least 1000 for stable intervals.")

    return rounded, _ValidationResult(True, errors, warnings)


def _validate_alternative(alternative: Any) -> Tuple[str, _ValidationResult]:
    """Validate the alternative hypothesis and normalise its spelling."""
    error = _validator._check_choice(alternative, _ALTERNATIVES, "alternative")
    if error:
        return "", _ValidationResult(False, [error], [])
    return _ALTERNATIVES[alternative.lower()], _ValidationResult(True, [], [])


def _validate_interval_type(interval_type: Any) -> Tuple[str, _ValidationResult]:
    """Validate the bootstrap confidence interval type."""
    error = _validator._check_choice(interval_type, _INTERVAL_TYPES, "type")
    if error:
        return "", _ValidationResult(False, [error], [])
    return _INTERVAL_TYPES[interval_type.lower()], _ValidationResult(True, [], [])


def _validate_test(test: Any) -> _ValidationResult:
    """Validate the requested test ('boot' or 'sobel')."""
    error = _validator._check_choice(test, _TESTS, "test")
    return _ValidationResult(error is None, [error] if error else [], [])


def _validate_method(method: Any) -> _ValidationResult:
    """Validate the estimation method ('regression' or 'covariance')."""
    error = _validator._check_choice(method, _METHODS, "method")
    return _ValidationResult(error is None, [error] if error else [], [])


def _validate_sobel_mediators(n_mediators: int) -> Tuple[str, _ValidationResult]:
    """Check whether Sobel's test can be used for the given model.

    Returns the test that will actually be run. With more than one
    mediator the bootstrap test is substituted and a warning recorded.
    """
    if n_mediators > 1:
        return "boot", _ValidationResult(
            True,
            [],
            ["Sobel test not available with multiple mediators; using bootstrap test"],
        )
    return "sobel", _ValidationResult(True, [], [])


def _validate_variables(
    x: Any,
    y: Any,
    m: Sequence[Any],
    covariates: Sequence[Any],
    columns: Sequence[str],
) -> _ValidationResult:
    """Check that the selected variables exist and do not overlap."""
    errors: List[str] = []

    if len(m) == 0:
        errors.append("At least one mediator must be specified")

    named = [("x", x), ("y", y)] + [("m", v) for v in m] + [("covariates", v) for v in covariates]
    for role, name in named:
        if name not in columns:
            errors.append(f"Variable {name!r} given as {role} not found in data")

    selected = [name for _, name in named]
    duplicates = sorted({name for name in selected if selected.count(name) > 1})
    if duplicates:
        errors.append(f"Variables used in more than one role: {', '.join(map(str, duplicates))}")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_sample_size_for_model(n_obs: int, n_coefficients: int) -> _ValidationResult:
    """Require more observations than coefficients in the largest regression."""
    errors = []
    warnings = []
    if n_obs <= n_coefficients:
        errors.append(f"Too few observations ({n_obs}) for a regression with {n_coefficients} coefficients")
    elif n_obs < 5 * n_coefficients:
        warnings.append(f"Small sample ({n_obs} observations for {n_coefficients} coefficients); bootstrap intervals may be unstable")
    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_parallel_settings(enable: Union[bool, str], n_cores: Optional[int]) -> Tuple[Tuple[bool, int], _ValidationResult]:
    """Validate parallel processing settings.

    Returns:
        ``((parallel, n_cores), result)``; ``n_cores`` defaults to half the
        available CPUs when not given.
    """
    import multiprocessing as mp

    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(enable, bool):
        errors.append(f"parallel must be True or False, got {enable!r}")
        return (False, 1), _ValidationResult(False, errors, warnings)

    max_cores = mp.cpu_count() or 1
    if n_cores is None:
        n_cores = max(1, max_cores // 2)
    elif not isinstance(n_cores, int) or isinstance(n_cores, bool) or n_cores < 1:
        errors.append(f"n_cores must be a positive integer, got {n_cores!r}")
        return (False, 1), _ValidationResult(False, errors, warnings)
    elif n_cores > max_cores:
        warnings.append(f"n_cores ({n_cores}) exceeds available CPUs ({max_cores}); using {max_cores}")
        n_cores = max_cores

    return (enable, n_cores), _ValidationResult(True, errors, warnings)
