"""
Resampling engine for the bootstrap.

Draws ``R`` index vectors uniformly with replacement and evaluates a
replicate statistic on each. A statistic is any callable
``statistic(data, indices)`` returning a 1-D effect vector, or ``None``
to mark the replicate invalid. Invalid replicates keep their row in the
replicate matrix, filled with NaN.

All index vectors are drawn up front from a single generator, so a
given seed produces the same replicates whether they are evaluated
sequentially or on a worker pool.
"""

import warnings
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from ..progress import BootstrapCancelled, ProgressReporter

# Share of invalid replicates above which a warning is issued
MAX_INVALID_SHARE = 0.1


@dataclass
class BootstrapReplicates:
    """Bootstrap replicates of an effect vector.

    Attributes:
        t0: Statistic evaluated on the full sample.
        t: ``R x k`` replicate matrix; invalid replicates are NaN rows.
        data: Data matrix the statistic was evaluated on.
        statistic: The replicate statistic.
        seed: Seed used to draw the index vectors.
        columns: Optional column labels.
    """

    t0: np.ndarray
    t: np.ndarray
    data: np.ndarray
    statistic: Callable
    seed: Optional[int] = None
    columns: Optional[List[str]] = None
    _jackknife: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def R(self) -> int:
        """Number of replicates drawn (valid or not)."""
        return self.t.shape[0]

    def n_valid(self) -> np.ndarray:
        """Number of valid replicates per column."""
        return np.sum(~np.isnan(self.t), axis=0)

    def invalid_rows(self) -> np.ndarray:
        """Boolean mask of replicates that were marked invalid."""
        return np.all(np.isnan(self.t), axis=1)

    def mean(self) -> np.ndarray:
        """Column means over valid replicates (NaN for columns without any)."""
        valid = self.n_valid()
        sums = np.nansum(self.t, axis=0)
        with np.errstate(invalid="ignore", divide="ignore"):
            return np.where(valid > 0, sums / np.maximum(valid, 1), np.nan)

    def jackknife(self) -> np.ndarray:
        """Leave-one-out evaluations of the statistic (``n x k``, cached).

        Invalid leave-one-out evaluations are NaN rows.
        """
        if self._jackknife is None:
            n = self.data.shape[0]
            k = self.t.shape[1]
            jack = np.full((n, k), np.nan)
            all_indices = np.arange(n)
            for i in range(n):
                value = _evaluate(self.statistic, self.data, np.delete(all_indices, i))
                if value is not None:
                    jack[i] = value
            self._jackknife = jack
        return self._jackknife


def _evaluate(statistic: Callable, data: np.ndarray, indices: np.ndarray) -> Optional[np.ndarray]:
    """Evaluate the statistic on one resample; ``None`` marks it invalid."""
    value = statistic(data, indices)
    if value is None:
        return None
    value = np.asarray(value, dtype=np.float64).ravel()
    if np.all(np.isnan(value)):
        return None
    return value


def _evaluate_chunk(statistic: Callable, data: np.ndarray, index_chunk: np.ndarray) -> List[Optional[np.ndarray]]:
    """Evaluate the statistic on a block of index vectors (worker entry point)."""
    return [_evaluate(statistic, data, indices) for indices in index_chunk]


class BootstrapRunner:
    """Executes bootstrap replicates of a statistic.

    Replicates are independent: each is a pure function of the shared,
    read-only data and statistic and one index vector, so they can be
    evaluated in any order or on a joblib worker pool.
    """

    def __init__(
        self,
        R: int,
        seed: Optional[int] = None,
        parallel: bool = False,
        n_cores: int = 1,
    ):
        """Initialise the bootstrap runner.

        Args:
            R: Number of bootstrap replicates.
            seed: Seed of the generator drawing the index vectors
                (``None`` for fresh entropy).
            parallel: Evaluate replicates on a joblib ``loky`` pool.
            n_cores: Number of worker processes.
        """
        self.R = R
        self.seed = seed
        self.parallel = parallel
        self.n_cores = n_cores

    def draw_indices(self, n: int) -> np.ndarray:
        """Draw ``R`` index vectors of length *n* uniformly with replacement."""
        rng = np.random.default_rng(self.seed)
        return rng.integers(0, n, size=(self.R, n))

    def run(
        self,
        data: np.ndarray,
        statistic: Callable,
        columns: Optional[List[str]] = None,
        progress: Optional[ProgressReporter] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> BootstrapReplicates:
        """Run the bootstrap loop.

        Args:
            data: ``(n, q)`` data matrix; rows are resampled.
            statistic: Replicate statistic ``statistic(data, indices)``.
            columns: Optional labels of the statistic's components.
            progress: Optional ``ProgressReporter``; it also counts the invalid
                replicates behind the invalid-share warning.
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            ``BootstrapReplicates`` with an ``R x k`` replicate matrix.

        Raises:
            RuntimeError: If the statistic is invalid on the full sample
                and does not declare its length via ``n_effects``.
            ValueError: If replicates differ in length.
            BootstrapCancelled: If *cancel_check* requests cancellation.
        """
        n = data.shape[0]
        t0 = _evaluate(statistic, data, np.arange(n))
        if t0 is None:
            n_effects = getattr(statistic, "n_effects", None)
            if n_effects is None:
                raise RuntimeError("Statistic could not be evaluated on the original sample")
            t0 = np.full(n_effects, np.nan)
        k = t0.shape[0]

        indices = self.draw_indices(n)
        if progress is None:
            progress = ProgressReporter(self.R)
        progress.start()

        if self.parallel and self.n_cores > 1 and self.R > 1:
            values = self._run_parallel(data, statistic, indices, progress, cancel_check)
        else:
            values = self._run_sequential(data, statistic, indices, progress, cancel_check)

        t = np.full((self.R, k), np.nan)
        for row, value in enumerate(values):
            if value is None:
                continue
            if value.shape[0] != k:
                raise ValueError(f"Replicate {row} returned {value.shape[0]} values, expected {k}")
            t[row] = value

        progress.finish()

        if progress.invalid_share > MAX_INVALID_SHARE:
            warnings.warn(
                f"{progress.n_invalid} of {self.R} bootstrap replicates were invalid "
                f"({progress.invalid_share:.1%}) and are excluded from the results",
                stacklevel=3,
            )

        return BootstrapReplicates(t0=t0, t=t, data=data, statistic=statistic, seed=self.seed, columns=columns)

    def _run_sequential(self, data, statistic, indices, progress, cancel_check) -> List[Optional[np.ndarray]]:
        values = []
        for row in indices:
            if cancel_check is not None and cancel_check():
                raise BootstrapCancelled("Bootstrap cancelled by user")
            value = _evaluate(statistic, data, row)
            values.append(value)
            progress.record([value])
        return values

    def _run_parallel(self, data, statistic, indices, progress, cancel_check) -> List[Optional[np.ndarray]]:
        from joblib import Parallel, delayed

        n_chunks = min(self.R, 4 * self.n_cores)
        chunks = np.array_split(indices, n_chunks)

        try:
            chunk_results = Parallel(
                n_jobs=self.n_cores,
                backend="loky",
                verbose=0,
                return_as="generator",
            )(delayed(_evaluate_chunk)(statistic, data, chunk) for chunk in chunks)
            values: List[Optional[np.ndarray]] = []
            for chunk_values in chunk_results:
                if cancel_check is not None and cancel_check():
                    raise BootstrapCancelled("Bootstrap cancelled by user")
                values.extend(chunk_values)
                progress.record(chunk_values)
        except Exception as e:
            if isinstance(e, BootstrapCancelled):
                raise
            print(f"Warning: Parallel execution failed ({e}). Falling back to sequential.")
            progress.start()
            values = self._run_sequential(data, statistic, indices, progress, cancel_check)
        return values


def resample(
    data: np.ndarray,
    statistic: Callable,
    R: int,
    seed: Optional[int] = None,
    parallel: bool = False,
    n_cores: int = 1,
    **kwargs,
) -> BootstrapReplicates:
    """Bootstrap *statistic* over the rows of *data*.

    Convenience wrapper around ``BootstrapRunner``; remaining keyword
    arguments are passed to ``BootstrapRunner.run``.
    """
    runner = BootstrapRunner(R, seed=seed, parallel=parallel, n_cores=n_cores)
    return runner.run(np.asarray(data, dtype=np.float64), statistic, **kwargs)
