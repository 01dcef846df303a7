from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Import result models.

ImportTally is the mutable accumulator used while a run is in flight;
ImportResult is the frozen summary handed back to the caller.
"""

__all__ = [
    "ImportPhase",
    "ImportResult",
    "ImportTally",
    "BatchStatsAccumulator",
]


class ImportPhase(Enum):
    """Lifecycle of one import run.

    preparing → transforming → resolving_secondary → persisting_primary → (done | failed)

    FAILED is only reached when preparation itself raises (file parse or the
    existing-lead snapshot read).
    """
    PREPARING = "preparing"
    TRANSFORMING = "transforming"
    RESOLVING_SECONDARY = "resolving_secondary"
    PERSISTING_PRIMARY = "persisting_primary"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportResult:
    """Counts and messages for a finished import."""
    successful: int
    failed: int
    duplicates: int
    total_processed: int
    errors: tuple[str, ...]
    custom_fields_created: int = 0
    warnings: tuple[str, ...] = ()
    start_time: datetime | None = None
    end_time: datetime | None = None
    elapsed_seconds: float = 0.0

    @property
    def has_failures(self) -> bool:
        return self.failed > 0


@dataclass
class ImportTally:
    """Counters accumulated monotonically during a run."""
    successful: int = 0
    failed: int = 0
    duplicates: int = 0
    total_processed: int = 0
    custom_fields_created: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def freeze(self, start_time: datetime, end_time: datetime) -> ImportResult:
        return ImportResult(
            successful=self.successful,
            failed=self.failed,
            duplicates=self.duplicates,
            total_processed=self.total_processed,
            errors=tuple(self.errors),
            custom_fields_created=self.custom_fields_created,
            warnings=tuple(self.warnings),
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
        )


class BatchStatsAccumulator:
    """Collects per-batch write timings and summarizes them."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_batches, avg_batch_seconds, p95_batch_seconds)."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]  # 19th of 20 cut points

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
