from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from lead_import.config.loader import ConfigError, dump_mappings, load_config, load_mappings
from lead_import.db.field_catalog import StoreFieldCatalog
from lead_import.db.memory_store import InMemoryDocumentStore
from lead_import.db.postgres_store import PostgresDocumentStore
from lead_import.db.store import DocumentStore, StoreError
from lead_import.logging.error_log import ErrorLogBuffer
from lead_import.logging.init import log_summary, setup_logging
from lead_import.models.config_models import DatabaseConfig, ImportConfig
from lead_import.models.field_mapping import FieldMapping
from lead_import.services.orchestrator import ImportPipeline, ImportPreparationError
from lead_import.services.progress import ProgressTracker
from lead_import.services.summary import render_error_lines, render_summary_line

"""CLI entrypoint.

    lead-import leads.csv                       # infer mapping, import into PostgreSQL
    lead-import leads.csv --inspect-mapping     # print the inferred mapping as YAML
    lead-import leads.csv --mapping map.yml     # import with an edited mapping
    lead-import leads.csv --dry-run             # run against an in-memory store

Exit codes: 0 no failed rows, 2 some rows failed, 1 fatal (config, parse,
connection).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/import.yml")


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Connection string from the environment, falling back to the config file.

    Resolution order:
        1. DATABASE_URL / PGDSN (whole DSN)
        2. database.dsn in config
        3. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each falling
           back to the matching database.* key, then to libpq defaults
    .env is loaded with override=True before this runs, so its values win
    over variables already present in the process.
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _load_env_file(path: Path, override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="lead-import", description="Bulk lead import from CSV / Excel")
    p.add_argument("file", type=Path, help="CSV, TSV or .xlsx file to import")
    p.add_argument("--config", type=Path, default=None, help=f"Config file (default: {DEFAULT_CONFIG_PATH})")
    p.add_argument("--mapping", type=Path, default=None, help="Mapping YAML to use instead of the inferred one")
    p.add_argument("--inspect-mapping", action="store_true", help="Print the inferred mapping as YAML and exit")
    p.add_argument("--dry-run", action="store_true", help="Import into an in-memory store; nothing is persisted")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _load_config(path: Path | None) -> ImportConfig:
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return ImportConfig()
        path = DEFAULT_CONFIG_PATH
    return load_config(path)


def _open_store(cfg: ImportConfig, dry_run: bool) -> DocumentStore:
    if dry_run:
        return InMemoryDocumentStore(batch_ceiling=cfg.options.batch_ceiling)
    store = PostgresDocumentStore.connect(resolve_dsn(cfg.database), batch_ceiling=cfg.options.batch_ceiling)
    store.ensure_schema()
    return store


async def _import(
    args: argparse.Namespace,
    cfg: ImportConfig,
    store: DocumentStore,
    mappings: list[FieldMapping] | None,
    error_log: ErrorLogBuffer,
) -> int:
    logger = logging.getLogger("lead_import")
    pipeline = ImportPipeline(
        store,
        field_catalog=StoreFieldCatalog(store),
        options=cfg.options,
        error_log=error_log,
    )
    try:
        prepared = await pipeline.prepare(args.file)
    except ImportPreparationError as e:
        logger.error(f"parse: {e}")
        return EXIT_FATAL

    if args.inspect_mapping:
        print(dump_mappings(prepared.suggested_mappings), end="")
        return EXIT_SUCCESS_ALL

    with ProgressTracker(len(prepared.rows)) as tracker:
        result = await pipeline.run(
            prepared.rows,
            prepared.suggested_mappings if mappings is None else mappings,
            on_progress=tracker,
            source_name=args.file.name,
        )

    for line in render_error_lines(result.errors, cfg.options.max_displayed_errors):
        logger.warning(line)
    for warning in result.warnings:
        logger.warning(warning)

    summary_line = render_summary_line(result)
    log_summary(summary_line[len("SUMMARY "):])

    if result.has_failures:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read sys.argv when argv is None; tests call main([...]) directly
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        for h in logger.handlers:
            h.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.debug("debug mode enabled")

    try:
        cfg = _load_config(args.config)
        mappings = load_mappings(args.mapping) if args.mapping is not None else None
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        store = _open_store(cfg, args.dry_run)
    except StoreError as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    logger.info(f"mode={'dry-run' if args.dry_run else 'live'} file={args.file}")

    error_log = ErrorLogBuffer()
    try:
        return asyncio.run(_import(args, cfg, store, mappings, error_log))
    except StoreError as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    finally:
        if isinstance(store, PostgresDocumentStore):
            store.close()
        written = error_log.flush()
        if written is not None:
            logger.info(f"error log: {written}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
