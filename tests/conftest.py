# Shared pytest fixtures
from __future__ import annotations
import csv
import os
import tempfile
from pathlib import Path
from typing import Callable

import pytest

from lead_import.db.memory_store import InMemoryDocumentStore
from lead_import.logging.init import reset_logging

DB_ENV_VARS = ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE")


@pytest.fixture(autouse=True)
def _reset_logging():
    # the CLI configures a non-propagating logger; give every test a clean one
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        # keep the developer's connection settings out of CLI tests
        absent = [var for var in DB_ENV_VARS if var not in os.environ]
        for var in DB_ENV_VARS:
            monkeypatch.delenv(var, raising=False)
        yield p
        # .env loading writes os.environ directly; monkeypatch only restores what it changed
        for var in absent:
            os.environ.pop(var, None)


@pytest.fixture()
def sample_config_yaml() -> str:
    return """import:
  default_stage: new_lead
  auto_create_fields: true
  batch_ceiling: 500
  progress_interval: 50
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: crm
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def write_csv(temp_workdir: Path) -> Callable[..., Path]:
    """Write rows (first row = headers) to data/<name> and return the path."""
    def _write(rows: list[list[str]], name: str = "leads.csv", delimiter: str = ",") -> Path:
        path = temp_workdir / "data" / name
        with path.open("w", encoding="utf-8", newline="") as f:
            csv.writer(f, delimiter=delimiter).writerows(rows)
        return path
    return _write


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def lead_rows() -> list[dict[str, str]]:
    return [
        {"Name": "Alice", "Company": "Acme", "Email": "alice@acme.io"},
        {"Name": "Alice", "Company": "Acme", "Email": "alice@acme.io"},
        {"Name": "Bob", "Company": "", "Email": "bob@example.com"},
    ]
