from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .store import BATCH_CEILING, DocumentStore, WriteOp

"""Chunked batch writes.

The store refuses batches larger than its ceiling, so documents are split
into chunks of at most `ceiling` create operations and committed one chunk at
a time, in order. Chunks committed before a failure stay committed; the
error reports how many documents that was.
"""

__all__ = [
    "BatchPersistenceError",
    "BatchMetrics",
    "WriteResult",
    "chunked",
    "write_in_batches",
]


class BatchPersistenceError(Exception):
    def __init__(self, message: str, committed: int = 0) -> None:
        super().__init__(message)
        self.committed = committed


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of a single batch commit."""
    batch_size: int
    elapsed_seconds: float
    start_time: float
    end_time: float


@dataclass(frozen=True)
class WriteResult:
    written: int
    batches: int
    ids: tuple[str, ...] = ()


def chunked(items: Sequence[Any], size: int) -> Iterable[Sequence[Any]]:
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def write_in_batches(
    store: DocumentStore,
    kind: str,
    documents: Sequence[dict[str, Any]],
    *,
    ceiling: int = BATCH_CEILING,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> WriteResult:
    """Create documents through store.batch_write in ceil(N / ceiling) calls.

    Parameters
    ----------
    store: target document store
    kind: collection to write into
    documents: document bodies; ids are generated here
    ceiling: max operations per batch (capped at the store's own ceiling)
    metrics_callback: receives BatchMetrics after every attempted batch,
        including the one that failed. Not called when documents is empty.
    """
    ceiling = min(ceiling, getattr(store, "batch_ceiling", ceiling))
    if not documents:
        return WriteResult(written=0, batches=0)

    written = 0
    batches = 0
    ids: list[str] = []
    for chunk in chunked(documents, ceiling):
        ops = [WriteOp(doc_id=uuid.uuid4().hex, data=doc) for doc in chunk]
        start_time = time.time()
        try:
            await store.batch_write(kind, ops)
        except Exception as e:
            raise BatchPersistenceError(
                f"batch {batches + 1} of {kind} failed after {written} committed: {e}",
                committed=written,
            ) from e
        finally:
            end_time = time.time()
            if metrics_callback is not None:
                metrics_callback(BatchMetrics(
                    batch_size=len(ops),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                ))
        written += len(ops)
        batches += 1
        ids.extend(op.doc_id for op in ops)

    return WriteResult(written=written, batches=batches, ids=tuple(ids))
