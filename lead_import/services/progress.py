from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress reporting.

ThrottledProgress wraps the caller's (current, total) callback so it fires
every `interval` rows instead of every row, plus once at completion.
ProgressTracker is the CLI's listener: a single tqdm bar on a TTY, nothing
otherwise (no ANSI noise in CI logs).
"""

__all__ = [
    "ProgressCallback",
    "ThrottledProgress",
    "ProgressTracker",
    "is_tty_enabled",
]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ThrottledProgress:
    """Forwards progress to a callback at a fixed row cadence.

    Callback errors are logged and otherwise ignored; progress display must
    never break an import.
    """

    def __init__(self, callback: ProgressCallback | None, total: int, interval: int = 50) -> None:
        if interval < 1:
            raise ValueError(f"progress interval must be positive, got {interval}")
        self.callback = callback
        self.total = total
        self.interval = interval
        self.last_reported: int | None = None

    def _emit(self, current: int) -> None:
        if self.callback is None:
            return
        self.last_reported = current
        try:
            self.callback(current, self.total)
        except Exception as e:
            logger.warning(f"progress callback raised {type(e).__name__}: {e}")

    def advance(self, current: int) -> None:
        """Report that `current` rows are done; emits only on interval boundaries."""
        if current % self.interval == 0 and current != self.last_reported:
            self._emit(current)

    def complete(self) -> None:
        if self.last_reported != self.total:
            self._emit(self.total)


class ProgressTracker:
    """tqdm progress bar over imported rows (TTY only)."""

    def __init__(self, total_rows: int = 0, *, description: str = "Importing rows") -> None:
        self.total_rows = total_rows
        self.description = description
        self.current_row = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def __call__(self, current: int, total: int) -> None:
        """Progress callback signature used by the import pipeline."""
        if self.pbar is not None:
            if total != self.pbar.total:
                self.pbar.total = total
            self.pbar.update(max(current - self.current_row, 0))
        self.current_row = current

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
