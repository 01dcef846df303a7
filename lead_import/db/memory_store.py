from __future__ import annotations

import asyncio
import copy
import uuid
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from .store import BATCH_CEILING, BatchLimitExceededError, StoreError, WriteOp, deep_merge

"""In-process document store.

Backs --dry-run and the test-suite. Honors the same contract as the
PostgreSQL store: batches are validated up front and applied all at once.
"""

__all__ = [
    "InMemoryDocumentStore",
]


class InMemoryDocumentStore:
    def __init__(self, batch_ceiling: int = BATCH_CEILING) -> None:
        self.batch_ceiling = batch_ceiling
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self.batch_calls: list[int] = []  # op count per committed batch

    def _collection(self, kind: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(kind, {})

    def seed(self, kind: str, documents: Sequence[Mapping[str, Any]]) -> list[str]:
        """Insert documents directly (test setup); returns their ids."""
        ids = []
        coll = self._collection(kind)
        for doc in documents:
            doc_id = str(doc.get("id") or uuid.uuid4().hex)
            coll[doc_id] = {k: v for k, v in doc.items() if k != "id"}
            ids.append(doc_id)
        return ids

    def documents(self, kind: str) -> list[dict[str, Any]]:
        return [{"id": doc_id, **copy.deepcopy(doc)} for doc_id, doc in self._collection(kind).items()]

    async def get_all(self, kind: str) -> list[dict[str, Any]]:
        return self.documents(kind)

    async def batch_write(self, kind: str, ops: Sequence[WriteOp]) -> None:
        if len(ops) > self.batch_ceiling:
            raise BatchLimitExceededError(
                f"batch of {len(ops)} operations exceeds ceiling {self.batch_ceiling}"
            )
        async with self._lock:
            coll = self._collection(kind)
            seen: set[str] = set()
            for op in ops:
                if op.action not in ("create", "set"):
                    raise StoreError(f"unsupported write action: {op.action}")
                if op.action == "create" and (op.doc_id in coll or op.doc_id in seen):
                    raise StoreError(f"{kind}/{op.doc_id} already exists")
                seen.add(op.doc_id)
            for op in ops:
                coll[op.doc_id] = copy.deepcopy(op.data)
            self.batch_calls.append(len(ops))

    async def get_or_create_many(self, kind: str, names: Sequence[str]) -> dict[str, str]:
        async with self._lock:
            coll = self._collection(kind)
            by_name = {
                str(doc.get("name", "")).strip().lower(): doc_id for doc_id, doc in coll.items()
            }
            resolved: dict[str, str] = {}
            for name in names:
                display = name.strip()
                key = display.lower()
                if key not in by_name:
                    doc_id = uuid.uuid4().hex
                    now = datetime.now(UTC).isoformat()
                    coll[doc_id] = {"name": display, "custom_fields": {}, "created_at": now, "updated_at": now}
                    by_name[key] = doc_id
                resolved[name] = by_name[key]
            return resolved

    async def update_one(self, kind: str, doc_id: str, patch: Mapping[str, Any]) -> None:
        async with self._lock:
            coll = self._collection(kind)
            if doc_id not in coll:
                raise StoreError(f"{kind}/{doc_id} not found")
            coll[doc_id] = deep_merge(coll[doc_id], patch)
