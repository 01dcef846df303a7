from __future__ import annotations

from unittest.mock import Mock, patch

import pytest

from lead_import.services.progress import ProgressTracker, ThrottledProgress, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True
    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestThrottledProgress:
    def test_fires_on_interval_boundaries(self):
        calls = []
        progress = ThrottledProgress(lambda c, t: calls.append((c, t)), total=120, interval=50)
        for i in range(1, 121):
            progress.advance(i)
        progress.complete()
        assert calls == [(50, 120), (100, 120), (120, 120)]

    def test_complete_always_reports_total(self):
        calls = []
        progress = ThrottledProgress(lambda c, t: calls.append((c, t)), total=3, interval=50)
        for i in range(1, 4):
            progress.advance(i)
        progress.complete()
        assert calls == [(3, 3)]

    def test_complete_does_not_repeat_final_boundary(self):
        calls = []
        progress = ThrottledProgress(lambda c, t: calls.append((c, t)), total=100, interval=50)
        for i in range(1, 101):
            progress.advance(i)
        progress.complete()
        assert calls == [(50, 100), (100, 100)]

    def test_callback_errors_are_swallowed(self, caplog):
        def boom(current, total):
            raise RuntimeError("listener gone")

        progress = ThrottledProgress(boom, total=2, interval=1)
        progress.advance(1)
        progress.complete()
        assert progress.last_reported == 2
        assert "listener gone" in caplog.text

    def test_no_callback(self):
        progress = ThrottledProgress(None, total=10, interval=1)
        progress.advance(1)
        progress.complete()
        assert progress.last_reported is None

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            ThrottledProgress(None, total=1, interval=0)


class TestProgressTracker:
    def test_init_with_tty_enabled(self):
        with patch('lead_import.services.progress.is_tty_enabled', return_value=True), \
             patch('lead_import.services.progress.tqdm') as mock_tqdm:
            tracker = ProgressTracker(5, description="Importing leads.csv")
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=5,
                desc="Importing leads.csv",
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch('lead_import.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(5)
            assert tracker.enabled is False
            assert tracker.pbar is None
            tracker(3, 5)  # no-op without a bar
            assert tracker.current_row == 3

    def test_call_updates_by_delta(self):
        mock_pbar = Mock()
        mock_pbar.total = 100
        with patch('lead_import.services.progress.is_tty_enabled', return_value=True), \
             patch('lead_import.services.progress.tqdm', return_value=mock_pbar):
            tracker = ProgressTracker(100)
            tracker(50, 100)
            tracker(100, 100)
            assert [c.args[0] for c in mock_pbar.update.call_args_list] == [50, 50]

    def test_context_manager_closes(self):
        mock_pbar = Mock()
        with patch('lead_import.services.progress.is_tty_enabled', return_value=True), \
             patch('lead_import.services.progress.tqdm', return_value=mock_pbar):
            with ProgressTracker(1) as tracker:
                assert tracker.pbar is mock_pbar
            mock_pbar.close.assert_called_once()
            assert tracker.pbar is None
