from __future__ import annotations

import psycopg2
import pytest

import lead_import.db.postgres_store as pg
from lead_import.db.postgres_store import PostgresDocumentStore
from lead_import.db.store import COMPANIES, LEADS, BatchLimitExceededError, StoreError, WriteOp


class DummyCursor:
    def __init__(self, conn: "DummyConnection") -> None:
        self.conn = conn

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.conn.executed.append((sql, params))
        if self.conn.fail_with is not None:
            raise self.conn.fail_with

    def fetchall(self):
        return self.conn.rows

    def fetchone(self):
        return self.conn.rows[0] if self.conn.rows else None


class DummyConnection:
    def __init__(self) -> None:
        self.executed: list[tuple] = []
        self.rows: list[tuple] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.fail_with: Exception | None = None

    def cursor(self):
        return DummyCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


@pytest.fixture()
def inserted(monkeypatch):
    calls: list[tuple[str, list]] = []

    def fake_execute_values(cursor, sql, rows, page_size=100, template=None):
        calls.append((sql, list(rows)))

    monkeypatch.setattr(pg, "execute_values", fake_execute_values)
    return calls


@pytest.mark.asyncio
async def test_batch_over_ceiling_never_reaches_database(inserted):
    conn = DummyConnection()
    store = PostgresDocumentStore(conn, batch_ceiling=2)
    with pytest.raises(BatchLimitExceededError):
        await store.batch_write(LEADS, [WriteOp(str(i)) for i in range(3)])
    assert inserted == []
    assert conn.commits == 0


@pytest.mark.asyncio
async def test_batch_write_single_transaction(inserted):
    conn = DummyConnection()
    store = PostgresDocumentStore(conn)
    await store.batch_write(LEADS, [WriteOp("a", {"name": "A"}), WriteOp("b", {"name": "B"}, action="set")])
    assert len(inserted) == 2
    assert "ON CONFLICT" not in inserted[0][0]
    assert "ON CONFLICT" in inserted[1][0]
    assert conn.commits == 1


@pytest.mark.asyncio
async def test_driver_errors_become_store_errors(inserted):
    conn = DummyConnection()
    conn.fail_with = psycopg2.OperationalError("server closed the connection")
    store = PostgresDocumentStore(conn)
    with pytest.raises(StoreError, match="server closed"):
        await store.get_all(LEADS)
    assert conn.rollbacks == 1


@pytest.mark.asyncio
async def test_get_all_merges_id(inserted):
    conn = DummyConnection()
    conn.rows = [("l1", {"name": "Alice", "company": "Acme"})]
    store = PostgresDocumentStore(conn)
    assert await store.get_all(LEADS) == [{"id": "l1", "name": "Alice", "company": "Acme"}]


@pytest.mark.asyncio
async def test_get_or_create_inserts_only_missing(inserted):
    conn = DummyConnection()
    conn.rows = [("acme", "c1")]
    store = PostgresDocumentStore(conn)
    ids = await store.get_or_create_many(COMPANIES, ["Acme", "ACME", "Globex"])
    assert ids["Acme"] == ids["ACME"] == "c1"
    assert ids["Globex"] != "c1"
    (sql, rows) = inserted[0]
    assert len(rows) == 1
    assert "pg_advisory_xact_lock" in conn.executed[0][0]


@pytest.mark.asyncio
async def test_update_missing_document_rolls_back(inserted):
    conn = DummyConnection()
    store = PostgresDocumentStore(conn)
    with pytest.raises(StoreError, match="not found"):
        await store.update_one(COMPANIES, "nope", {"custom_fields": {"a": 1}})
    assert conn.rollbacks == 1


def test_connect_failure_is_store_error(monkeypatch):
    def refuse(dsn):
        raise psycopg2.OperationalError("connection refused")

    monkeypatch.setattr(pg.psycopg2, "connect", refuse)
    with pytest.raises(StoreError, match="could not connect"):
        PostgresDocumentStore.connect("host=nowhere")


def test_close():
    conn = DummyConnection()
    PostgresDocumentStore(conn).close()
    assert conn.closed
