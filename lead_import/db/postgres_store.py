from __future__ import annotations

import asyncio
import threading
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

import psycopg2
from psycopg2.extras import Json, execute_values

from .store import BATCH_CEILING, BatchLimitExceededError, StoreError, WriteOp, deep_merge

"""PostgreSQL-backed document store.

All kinds share one table:

    CREATE TABLE documents (
        kind text NOT NULL,
        id   text NOT NULL,
        body jsonb NOT NULL,
        PRIMARY KEY (kind, id)
    );

psycopg2 is blocking, so every call runs in a worker thread via
asyncio.to_thread. A lock serializes access to the single connection; each
public method is its own transaction.
"""

__all__ = [
    "PostgresDocumentStore",
    "SCHEMA_SQL",
]

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    kind text NOT NULL,
    id text NOT NULL,
    body jsonb NOT NULL,
    PRIMARY KEY (kind, id)
);
CREATE INDEX IF NOT EXISTS documents_kind_name_idx
    ON documents (kind, lower(body->>'name'));
"""


class PostgresDocumentStore:
    def __init__(self, connection: Any, batch_ceiling: int = BATCH_CEILING) -> None:
        self._conn = connection
        self._lock = threading.Lock()
        self.batch_ceiling = batch_ceiling

    @classmethod
    def connect(cls, dsn: str, batch_ceiling: int = BATCH_CEILING) -> PostgresDocumentStore:
        try:
            conn = psycopg2.connect(dsn)
        except psycopg2.Error as e:
            raise StoreError(f"could not connect: {e}") from e
        conn.autocommit = False
        return cls(conn, batch_ceiling=batch_ceiling)

    def close(self) -> None:
        if not self._conn.closed:
            self._conn.close()

    def _transaction(self, work: Any) -> Any:
        with self._lock:
            try:
                with self._conn.cursor() as cur:
                    result = work(cur)
                self._conn.commit()
                return result
            except psycopg2.Error as e:
                self._conn.rollback()
                raise StoreError(str(e)) from e
            except Exception:
                self._conn.rollback()
                raise

    def ensure_schema(self) -> None:
        self._transaction(lambda cur: cur.execute(SCHEMA_SQL))

    # --- sync implementations -------------------------------------------------

    def _get_all(self, kind: str) -> list[dict[str, Any]]:
        def work(cur: Any) -> list[dict[str, Any]]:
            cur.execute("SELECT id, body FROM documents WHERE kind = %s", (kind,))
            return [{"id": doc_id, **body} for doc_id, body in cur.fetchall()]

        return self._transaction(work)

    def _batch_write(self, kind: str, ops: Sequence[WriteOp]) -> None:
        creates = [(kind, op.doc_id, Json(op.data)) for op in ops if op.action == "create"]
        sets = [(kind, op.doc_id, Json(op.data)) for op in ops if op.action == "set"]

        def work(cur: Any) -> None:
            if creates:
                execute_values(cur, "INSERT INTO documents (kind, id, body) VALUES %s", creates)
            if sets:
                execute_values(
                    cur,
                    "INSERT INTO documents (kind, id, body) VALUES %s "
                    "ON CONFLICT (kind, id) DO UPDATE SET body = EXCLUDED.body",
                    sets,
                )

        self._transaction(work)

    def _get_or_create_many(self, kind: str, names: Sequence[str]) -> dict[str, str]:
        wanted: dict[str, str] = {}
        for name in names:
            wanted.setdefault(name.strip().lower(), name.strip())

        def work(cur: Any) -> dict[str, str]:
            # serializes concurrent get-or-create callers on this kind
            cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (kind,))
            cur.execute(
                "SELECT lower(body->>'name'), id FROM documents "
                "WHERE kind = %s AND lower(body->>'name') = ANY(%s)",
                (kind, list(wanted)),
            )
            found = {key: doc_id for key, doc_id in cur.fetchall()}
            missing = [(key, display) for key, display in wanted.items() if key not in found]
            if missing:
                rows = []
                for key, display in missing:
                    doc_id = uuid.uuid4().hex
                    found[key] = doc_id
                    rows.append((kind, doc_id, Json({"name": display, "custom_fields": {}})))
                execute_values(cur, "INSERT INTO documents (kind, id, body) VALUES %s", rows)
            return found

        found = self._transaction(work)
        return {name: found[name.strip().lower()] for name in names}

    def _update_one(self, kind: str, doc_id: str, patch: Mapping[str, Any]) -> None:
        def work(cur: Any) -> None:
            cur.execute(
                "SELECT body FROM documents WHERE kind = %s AND id = %s FOR UPDATE",
                (kind, doc_id),
            )
            row = cur.fetchone()
            if row is None:
                raise StoreError(f"{kind}/{doc_id} not found")
            cur.execute(
                "UPDATE documents SET body = %s WHERE kind = %s AND id = %s",
                (Json(deep_merge(row[0], patch)), kind, doc_id),
            )

        self._transaction(work)

    # --- DocumentStore --------------------------------------------------------

    async def get_all(self, kind: str) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._get_all, kind)

    async def batch_write(self, kind: str, ops: Sequence[WriteOp]) -> None:
        if len(ops) > self.batch_ceiling:
            raise BatchLimitExceededError(
                f"batch of {len(ops)} operations exceeds ceiling {self.batch_ceiling}"
            )
        await asyncio.to_thread(self._batch_write, kind, list(ops))

    async def get_or_create_many(self, kind: str, names: Sequence[str]) -> dict[str, str]:
        if not names:
            return {}
        return await asyncio.to_thread(self._get_or_create_many, kind, list(names))

    async def update_one(self, kind: str, doc_id: str, patch: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._update_one, kind, doc_id, dict(patch))
