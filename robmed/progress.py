"""
Progress reporting for bootstrap runs.

``ProgressReporter`` counts evaluated bootstrap replicates together with
the ones marked invalid and forwards throttled updates to a callback.
Plain callables receive ``(current, total)``; subclasses of
``ReplicateReporter`` also receive the running number of invalid
replicates.
"""

import sys
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence


class BootstrapCancelled(Exception):
    """Raised when ``cancel_check`` requests to stop a bootstrap run."""


class ReplicateReporter(ABC):
    """Display target for bootstrap progress that shows invalid replicates."""

    @abstractmethod
    def __call__(self, current: int, total: int, n_invalid: int = 0):
        """Show that *current* of *total* replicates are done."""


class ProgressReporter:
    """Counts bootstrap replicates and reports them through a callback.

    Args:
        total: Number of replicates of the run.
        callback: Optional ``callback(current, total)``, or a
            ``ReplicateReporter`` that is also passed the invalid count.
            Without a callback the reporter only counts.
        update_every: Report at most once per this many replicates.
            Defaults to ``max(1, total // 200)``.
    """

    def __init__(
        self,
        total: int,
        callback: Optional[Callable[..., None]] = None,
        update_every: Optional[int] = None,
    ):
        self.total = total
        self._callback = callback
        self.update_every = update_every if update_every is not None else max(1, total // 200)
        self.current = 0
        self.n_invalid = 0

    @property
    def invalid_share(self) -> float:
        """Share of the replicates recorded so far that were invalid."""
        return self.n_invalid / self.current if self.current > 0 else 0.0

    def _report(self):
        if self._callback is None:
            return
        current = min(self.current, self.total)
        if isinstance(self._callback, ReplicateReporter):
            self._callback(current, self.total, self.n_invalid)
        else:
            self._callback(current, self.total)

    def start(self):
        """Reset the counts and report ``0/total``."""
        self.current = 0
        self.n_invalid = 0
        self._report()

    def record(self, values: Sequence[Optional[object]]):
        """Record a block of evaluated replicates; ``None`` marks an invalid one."""
        previous = self.current
        self.current += len(values)
        self.n_invalid += sum(value is None for value in values)
        if self.current >= self.total or self.current // self.update_every > previous // self.update_every:
            self._report()

    def finish(self):
        """Report ``total/total`` unless the last update already did."""
        if self.current < self.total:
            self.current = self.total
            self._report()


class PrintReporter(ReplicateReporter):
    """Console reporter, writes ``\\rBootstrap:  45.2% (2260/5000 replicates, 3 invalid)``."""

    def __call__(self, current: int, total: int, n_invalid: int = 0):
        if total <= 0:
            return
        pct = 100.0 * current / total
        invalid = f", {n_invalid} invalid" if n_invalid > 0 else ""
        sys.stderr.write(f"\rBootstrap: {pct:5.1f}% ({current}/{total} replicates{invalid})")
        if current >= total:
            sys.stderr.write("\n")
        sys.stderr.flush()


class TqdmReporter(ReplicateReporter):
    """tqdm progress bar with the invalid count as postfix (tqdm imported lazily).

    Usage::

        from robmed.progress import TqdmReporter
        test_mediation(data, x="x", y="y", m="m", progress_callback=TqdmReporter())
    """

    def __init__(self, **tqdm_kwargs):
        self._tqdm_kwargs = tqdm_kwargs
        self._bar = None

    def __call__(self, current: int, total: int, n_invalid: int = 0):
        from tqdm import tqdm

        if self._bar is None:
            self._bar = tqdm(total=total, unit="rep", **self._tqdm_kwargs)
        if n_invalid > 0:
            self._bar.set_postfix(invalid=n_invalid, refresh=False)
        if current > self._bar.n:
            self._bar.update(current - self._bar.n)

        if current >= total:
            self._bar.close()
            self._bar = None
