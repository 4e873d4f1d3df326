"""
Tests for replicate counting and progress display.
"""

import io
import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from robmed.progress import PrintReporter, ProgressReporter, ReplicateReporter, TqdmReporter

VALID = np.zeros(3)


class RecordingReporter(ReplicateReporter):
    def __init__(self):
        self.calls = []

    def __call__(self, current, total, n_invalid=0):
        self.calls.append((current, total, n_invalid))


class TestReplicateCounting:
    """ProgressReporter keeps track of evaluated and invalid replicates."""

    def test_counts_invalid_replicates(self):
        tracker = ProgressReporter(6)
        tracker.start()
        tracker.record([VALID, None, VALID])
        tracker.record([None, None, VALID])
        assert tracker.current == 6
        assert tracker.n_invalid == 3
        assert tracker.invalid_share == pytest.approx(0.5)

    def test_share_zero_before_any_replicate(self):
        tracker = ProgressReporter(10)
        tracker.start()
        assert tracker.invalid_share == 0.0

    def test_start_resets_counts(self):
        tracker = ProgressReporter(4)
        tracker.start()
        tracker.record([None, None])
        tracker.start()
        assert tracker.current == 0
        assert tracker.n_invalid == 0

    def test_counts_without_callback(self):
        tracker = ProgressReporter(3)
        tracker.start()
        tracker.record([None, VALID, VALID])
        tracker.finish()
        assert tracker.n_invalid == 1


class TestReporting:
    """Throttled updates reach the callback."""

    def test_plain_callable_gets_current_and_total(self):
        cb = MagicMock()
        tracker = ProgressReporter(4, cb, update_every=1)
        tracker.start()
        tracker.record([None])
        cb.assert_called_with(1, 4)

    def test_replicate_reporter_gets_invalid_count(self):
        reporter = RecordingReporter()
        tracker = ProgressReporter(4, reporter, update_every=2)
        tracker.start()
        tracker.record([None])
        tracker.record([VALID])
        tracker.record([None, None])
        assert reporter.calls == [(0, 4, 0), (2, 4, 1), (4, 4, 3)]

    def test_chunks_crossing_update_boundary(self):
        cb = MagicMock()
        tracker = ProgressReporter(100, cb, update_every=10)
        tracker.start()
        cb.reset_mock()

        tracker.record([VALID] * 7)
        tracker.record([VALID] * 7)
        cb.assert_called_once_with(14, 100)

    def test_finish_reports_total_once(self):
        reporter = RecordingReporter()
        tracker = ProgressReporter(5, reporter, update_every=100)
        tracker.start()
        tracker.record([None] * 5)
        tracker.finish()
        assert reporter.calls[-1] == (5, 5, 5)
        assert sum(call[0] == 5 for call in reporter.calls) == 1

    def test_finish_fills_up_short_run(self):
        cb = MagicMock()
        tracker = ProgressReporter(100, cb)
        tracker.start()
        tracker.record([VALID] * 30)
        tracker.finish()
        cb.assert_called_with(100, 100)

    def test_default_update_every(self):
        assert ProgressReporter(5000).update_every == 25
        assert ProgressReporter(50).update_every == 1

    def test_replicate_reporter_is_abstract(self):
        with pytest.raises(TypeError):
            ReplicateReporter()


class TestPrintReporter:
    """PrintReporter writes to stderr."""

    def _output(self, *args):
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            PrintReporter()(*args)
        return buf.getvalue()

    def test_shows_invalid_replicates(self):
        output = self._output(250, 1000, 12)
        assert "25.0%" in output
        assert "250/1000 replicates, 12 invalid" in output

    def test_no_invalid_note_when_all_valid(self):
        assert "invalid" not in self._output(250, 1000, 0)

    def test_newline_at_completion(self):
        assert self._output(1000, 1000).endswith("\n")

    def test_zero_total_prints_nothing(self):
        assert self._output(0, 0) == ""


class TestTqdmReporter:
    """TqdmReporter drives a (mocked) tqdm bar."""

    def test_tqdm_missing_raises(self):
        with patch.dict("sys.modules", {"tqdm": None}):
            with pytest.raises(ImportError, match="tqdm"):
                TqdmReporter()(0, 100)

    def test_bar_shows_invalid_postfix(self):
        bar = MagicMock()
        bar.n = 0
        tqdm_module = MagicMock()
        tqdm_module.tqdm = MagicMock(return_value=bar)
        reporter = TqdmReporter(desc="boot")

        with patch.dict("sys.modules", {"tqdm": tqdm_module}):
            reporter(0, 100)
            assert tqdm_module.tqdm.call_args.kwargs == {"total": 100, "unit": "rep", "desc": "boot"}

            reporter(40, 100, 3)
            bar.update.assert_called_with(40)
            bar.set_postfix.assert_called_with(invalid=3, refresh=False)

            bar.n = 40
            reporter(100, 100, 3)
            bar.update.assert_called_with(60)
            bar.close.assert_called_once()
