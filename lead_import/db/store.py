from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

"""Document store contract consumed by the import pipeline.

Collections are addressed by kind ("leads", "companies", ...). A batch
write is atomic and limited to BATCH_CEILING operations; callers chunk.
"""

__all__ = [
    "BATCH_CEILING",
    "LEADS",
    "COMPANIES",
    "FIELD_DEFINITIONS",
    "StoreError",
    "BatchLimitExceededError",
    "WriteOp",
    "DocumentStore",
    "deep_merge",
]

BATCH_CEILING = 500

LEADS = "leads"
COMPANIES = "companies"
FIELD_DEFINITIONS = "field_definitions"


class StoreError(Exception):
    pass


class BatchLimitExceededError(StoreError):
    pass


@dataclass(frozen=True)
class WriteOp:
    """One write inside a batch. action is "create" (fails if doc_id exists) or "set"."""
    doc_id: str
    data: dict[str, Any] = field(default_factory=dict)
    action: str = "create"


def deep_merge(current: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Apply an update patch: nested dicts merge recursively, anything else replaces."""
    merged = dict(current)
    for key, value in patch.items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


class DocumentStore(Protocol):
    batch_ceiling: int

    async def get_all(self, kind: str) -> list[dict[str, Any]]:
        """All documents of a kind, each including its "id"."""
        ...

    async def batch_write(self, kind: str, ops: Sequence[WriteOp]) -> None:
        ...

    async def get_or_create_many(self, kind: str, names: Sequence[str]) -> dict[str, str]:
        """Resolve names to ids case-insensitively, creating missing documents.

        Names differing only by case or surrounding whitespace resolve to the
        same id, also within one call.
        """
        ...

    async def update_one(self, kind: str, doc_id: str, patch: Mapping[str, Any]) -> None:
        ...
