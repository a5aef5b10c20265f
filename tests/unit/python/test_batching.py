"""Unit tests for bounded-window batch execution."""

import threading
from unittest.mock import patch

from coursestack_common.batching import run_in_batches


class TestRunInBatches:
    """Tests for run_in_batches function."""

    @patch("coursestack_common.batching.time.sleep")
    def test_results_keep_input_order(self, mock_sleep):
        outcomes = run_in_batches(list(range(7)), lambda n: n * n, batch_size=3, delay_ms=10)

        assert [o.item for o in outcomes] == list(range(7))
        assert [o.result for o in outcomes] == [n * n for n in range(7)]
        assert all(o.ok for o in outcomes)

    @patch("coursestack_common.batching.time.sleep")
    def test_sleeps_between_windows_only(self, mock_sleep):
        run_in_batches(list(range(7)), lambda n: n, batch_size=3, delay_ms=500)

        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(0.5)

    @patch("coursestack_common.batching.time.sleep")
    def test_no_delay_configured(self, mock_sleep):
        run_in_batches(list(range(4)), lambda n: n, batch_size=2, delay_ms=0)
        mock_sleep.assert_not_called()

    @patch("coursestack_common.batching.time.sleep")
    def test_failures_captured_per_item(self, mock_sleep):
        def worker(n):
            if n == 2:
                raise ValueError("bad item")
            return n

        outcomes = run_in_batches([1, 2, 3], worker, batch_size=2, delay_ms=0)

        assert [o.ok for o in outcomes] == [True, False, True]
        assert outcomes[1].error == "bad item"
        assert outcomes[1].result is None

    def test_abort_skips_remaining_windows(self):
        abort = threading.Event()
        seen = []

        def worker(n):
            seen.append(n)
            abort.set()
            return n

        outcomes = run_in_batches([1, 2, 3, 4], worker, batch_size=2, delay_ms=0, abort=abort)

        assert len(outcomes) == 2
        assert sorted(seen) == [1, 2]

    @patch("coursestack_common.batching.time.sleep")
    def test_progress_after_each_window(self, mock_sleep):
        progress = []
        run_in_batches(list(range(5)), lambda n: n, batch_size=2, delay_ms=0, progress=lambda *a: progress.append(a))

        assert progress == [(2, 5), (4, 5), (5, 5)]

    def test_empty_input(self):
        assert run_in_batches([], lambda n: n) == []

    @patch("coursestack_common.batching.time.sleep")
    def test_zero_batch_size_treated_as_one(self, mock_sleep):
        outcomes = run_in_batches([1, 2], lambda n: n, batch_size=0, delay_ms=0)
        assert [o.result for o in outcomes] == [1, 2]
