from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from ..models.field_definition import FieldDefinition
from .batch_writer import chunked
from .store import BATCH_CEILING, FIELD_DEFINITIONS, DocumentStore, WriteOp

"""Custom field definitions known to the CRM.

Definitions live as documents of kind "field_definitions" with id
"<record kind>:<field name>", so registering the same field twice is a
no-op.
"""

__all__ = [
    "FieldCatalog",
    "StoreFieldCatalog",
]


class FieldCatalog(Protocol):
    async def known_fields(self, kind: str) -> list[FieldDefinition]:
        ...

    async def register_fields(self, kind: str, definitions: Sequence[FieldDefinition]) -> list[FieldDefinition]:
        """Register definitions; returns only the ones that were new."""
        ...


class StoreFieldCatalog:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    @staticmethod
    def _doc_id(kind: str, name: str) -> str:
        return f"{kind}:{name}"

    async def _documents(self) -> dict[str, dict]:
        return {doc["id"]: doc for doc in await self._store.get_all(FIELD_DEFINITIONS)}

    async def known_fields(self, kind: str) -> list[FieldDefinition]:
        prefix = f"{kind}:"
        docs = await self._documents()
        return [
            FieldDefinition.from_document(doc)
            for doc_id, doc in sorted(docs.items())
            if doc_id.startswith(prefix)
        ]

    async def register_fields(self, kind: str, definitions: Sequence[FieldDefinition]) -> list[FieldDefinition]:
        existing = await self._documents()
        new: dict[str, FieldDefinition] = {}
        for definition in definitions:
            doc_id = self._doc_id(kind, definition.name)
            if doc_id not in existing and doc_id not in new:
                new[doc_id] = definition
        if new:
            ops = [WriteOp(doc_id=doc_id, data=d.to_document(), action="set") for doc_id, d in new.items()]
            for chunk in chunked(ops, getattr(self._store, "batch_ceiling", BATCH_CEILING)):
                await self._store.batch_write(FIELD_DEFINITIONS, list(chunk))
        return list(new.values())
