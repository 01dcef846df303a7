from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.batch_writer import BatchMetrics, BatchPersistenceError, write_in_batches
from ..db.field_catalog import FieldCatalog
from ..db.store import COMPANIES, LEADS, DocumentStore, StoreError
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportOptions
from ..models.error_record import (
    BATCH_PERSISTENCE_FAILED,
    COMPANY_UPDATE_FAILED,
    CUSTOM_FIELD_FAILED,
    DUPLICATE_SKIP,
    ROW_VALIDATION,
    ErrorRecord,
)
from ..models.field_definition import FieldDefinition, format_field_label
from ..models.field_mapping import FieldMapping, ResolvedMapping, TargetEntity
from ..models.import_result import BatchStatsAccumulator, ImportPhase, ImportResult, ImportTally
from ..models.lead_draft import CompanyUpdate, LeadDraft
from ..tabular.reader import TableParseError, read_table
from .companies import CompanyResolution, accumulate_update, resolve_and_merge
from .dedup import DuplicateSource, ExistingRecordIndex, classify_duplicate, dedup_key
from .field_types import MAX_SAMPLES, detect_field_type
from .forward_fill import repair
from .mapping import infer_mappings, resolve_mappings
from .progress import ProgressCallback, ThrottledProgress
from .transform import missing_required_fields, transform_row

"""Import orchestration.

ImportPipeline sequences one import:

    preparing -> transforming -> resolving_secondary -> persisting_primary -> done

Rows are classified strictly in input order (accepted / duplicate / failed).
Nothing is written until every row has been classified. Once the
persistence phase starts the outcome is all or nothing from the caller's
point of view: any exception there marks every accepted row as failed.
"""

__all__ = [
    "ImportPreparationError",
    "PreparedImport",
    "ImportPipeline",
]

logger = logging.getLogger(__name__)

HEADER_ROWS = 1


class ImportPreparationError(Exception):
    """The source file could not be turned into rows."""


@dataclass
class PreparedImport:
    headers: list[str]
    rows: list[dict[str, str]]
    warnings: list[str] = field(default_factory=list)
    suggested_mappings: list[FieldMapping] = field(default_factory=list)


@dataclass
class _Accepted:
    row_number: int
    draft: LeadDraft


def _row_number(index: int) -> int:
    """0-based data row index -> line number in the file (header is line 1)."""
    return index + HEADER_ROWS + 1


def _now() -> datetime:
    return datetime.now(UTC)


class ImportPipeline:
    """Bulk lead import against a document store.

    Args:
        store: document store receiving leads and companies
        field_catalog: custom field definitions; when None, inference only
            knows the standard fields and synthesized fields are not registered
        options: run tunables
        error_log: optional buffer receiving structured per-row records
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        field_catalog: FieldCatalog | None = None,
        options: ImportOptions | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.store = store
        self.field_catalog = field_catalog
        self.options = options or ImportOptions()
        self.error_log = error_log
        self.phase = ImportPhase.PREPARING
        self.batch_stats = BatchStatsAccumulator()

    # ------------------------------------------------------------------
    # preparation
    # ------------------------------------------------------------------
    async def known_fields(self) -> list[FieldDefinition]:
        if self.field_catalog is None:
            return []
        return [
            *await self.field_catalog.known_fields(LEADS),
            *await self.field_catalog.known_fields(COMPANIES),
        ]

    async def prepare(self, path: Path) -> PreparedImport:
        """Parse, repair and propose a mapping for a file.

        Raises:
            ImportPreparationError: file missing, empty or unreadable
        """
        self.phase = ImportPhase.PREPARING
        try:
            table = read_table(path, self.options.delimiter)
        except TableParseError as e:
            self.phase = ImportPhase.FAILED
            raise ImportPreparationError(str(e)) from e

        rows = repair(table.rows, self.options.fill_threshold, self.options.fill_sample_size)
        suggested = infer_mappings(
            table.headers,
            self.options.auto_create_fields,
            await self.known_fields(),
        )
        for warning in table.warnings:
            logger.warning(f"{path.name}: {warning}")
        logger.info(f"prepared {path.name}: columns={len(table.headers)} rows={len(rows)}")
        return PreparedImport(
            headers=table.headers,
            rows=rows,
            warnings=list(table.warnings),
            suggested_mappings=suggested,
        )

    # ------------------------------------------------------------------
    # run
    # ------------------------------------------------------------------
    def _record(self, source_name: str, row: int, error_type: str, message: str) -> None:
        if self.error_log is not None:
            self.error_log.append(ErrorRecord.create(source_name, row, error_type, message))

    async def run(
        self,
        rows: Sequence[dict[str, str]],
        mappings: Sequence[FieldMapping],
        *,
        existing_index: ExistingRecordIndex | None = None,
        on_progress: ProgressCallback | None = None,
        source_name: str = "",
    ) -> ImportResult:
        """Import already-parsed rows using the given mappings.

        Args:
            rows: data rows (header -> cell), typically PreparedImport.rows
            mappings: one FieldMapping per source column
            existing_index: dedup snapshot; loaded from the store when None
            on_progress: (current, total) listener, throttled
            source_name: file name used in error log records

        Returns:
            ImportResult with successful + failed + duplicates == len(rows)
        """
        start_time = _now()
        self.phase = ImportPhase.PREPARING
        tally = ImportTally(total_processed=len(rows))
        self.batch_stats = BatchStatsAccumulator()
        progress = ThrottledProgress(on_progress, len(rows), self.options.progress_interval)

        resolved = resolve_mappings(mappings)
        if existing_index is None:
            try:
                existing = await self.store.get_all(LEADS)
            except Exception:
                self.phase = ImportPhase.FAILED
                raise
            existing_index = ExistingRecordIndex.from_records(existing)
        logger.debug(f"existing lead snapshot: {len(existing_index)} keys")

        self.phase = ImportPhase.TRANSFORMING
        accepted, updates = self._classify(rows, resolved, existing_index, tally, progress, source_name)

        if accepted:
            await self._register_custom_fields(rows, resolved, tally, source_name)
            await self._persist(accepted, updates, tally, source_name)

        progress.complete()
        self.phase = ImportPhase.DONE
        result = tally.freeze(start_time, _now())
        logger.info(
            f"import finished: success={result.successful} duplicates={result.duplicates} "
            f"failed={result.failed}"
        )
        return result

    def _classify(
        self,
        rows: Sequence[dict[str, str]],
        resolved: Sequence[ResolvedMapping],
        existing_index: ExistingRecordIndex,
        tally: ImportTally,
        progress: ThrottledProgress,
        source_name: str,
    ) -> tuple[list[_Accepted], dict[str, CompanyUpdate]]:
        accepted: list[_Accepted] = []
        accepted_keys: set[str] = set()
        updates: dict[str, CompanyUpdate] = {}

        for index, row in enumerate(rows):
            row_number = _row_number(index)
            transformed = transform_row(row, resolved, self.options.default_stage)

            if transformed is None:
                missing = missing_required_fields(row, resolved) or ["name", "company"]
                message = f"Row {row_number}: Missing required fields: {', '.join(missing)}"
                tally.failed += 1
                tally.errors.append(message)
                self._record(source_name, row_number, ROW_VALIDATION, message)
            else:
                draft, update = transformed
                source = classify_duplicate(draft, existing_index, accepted_keys)
                if source is not None:
                    if source is DuplicateSource.EXISTING:
                        message = f'Row {row_number}: Skipped - duplicate of existing lead "{draft.name} at {draft.company}"'
                    else:
                        message = f'Row {row_number}: Skipped - duplicate of lead "{draft.name} at {draft.company}" earlier in this file'
                    tally.duplicates += 1
                    tally.errors.append(message)
                    self._record(source_name, row_number, DUPLICATE_SKIP, message)
                else:
                    accepted_keys.add(dedup_key(draft.name, draft.company))
                    accepted.append(_Accepted(row_number, draft))
                    if update is not None:
                        accumulate_update(updates, update)

            progress.advance(index + 1)

        return accepted, updates

    async def _register_custom_fields(
        self,
        rows: Sequence[dict[str, str]],
        resolved: Sequence[ResolvedMapping],
        tally: ImportTally,
        source_name: str,
    ) -> None:
        """Create definitions for synthesized fields; failures never stop the import."""
        if self.field_catalog is None:
            return
        by_kind: dict[str, list[FieldDefinition]] = {}
        for mapping in resolved:
            if not mapping.synthesized:
                continue
            samples = [row.get(mapping.source_column, "") for row in rows[:MAX_SAMPLES]]
            kind = COMPANIES if mapping.target_entity is TargetEntity.COMPANY else LEADS
            by_kind.setdefault(kind, []).append(FieldDefinition(
                name=mapping.field_name,
                label=format_field_label(mapping.field_name),
                field_type=detect_field_type(samples),
                entity_type=mapping.target_entity,
            ))

        for kind, definitions in by_kind.items():
            try:
                created = await self.field_catalog.register_fields(kind, definitions)
            except Exception as e:
                names = ", ".join(d.name for d in definitions)
                message = f"Could not create custom fields for {kind} ({names}): {e}"
                logger.warning(message)
                tally.warnings.append(message)
                self._record(source_name, -1, CUSTOM_FIELD_FAILED, message)
                continue
            tally.custom_fields_created += len(created)
            for definition in created:
                logger.info(f"created custom field {kind}.{definition.name} ({definition.field_type})")

    def _lead_documents(self, accepted: Sequence[_Accepted], resolution: CompanyResolution) -> list[dict[str, Any]]:
        now = _now().isoformat().replace("+00:00", "Z")
        documents: list[dict[str, Any]] = []
        for item in accepted:
            company_id = resolution.id_for(item.draft.company)
            if company_id is None:
                raise StoreError(f"no company id resolved for '{item.draft.company}'")
            doc = item.draft.to_document(company_id)
            doc["stage_history"] = [{"stage": item.draft.stage, "timestamp": now}]
            doc["created_at"] = now
            doc["updated_at"] = now
            if self.options.imported_by:
                doc["imported_by"] = self.options.imported_by
            documents.append(doc)
        return documents

    def _on_batch(self, metrics: BatchMetrics) -> None:
        self.batch_stats.add_batch_time(metrics.elapsed_seconds)
        logger.debug(f"batch committed: size={metrics.batch_size} elapsed={metrics.elapsed_seconds:.3f}s")

    async def _persist(
        self,
        accepted: Sequence[_Accepted],
        updates: dict[str, CompanyUpdate],
        tally: ImportTally,
        source_name: str,
    ) -> None:
        try:
            self.phase = ImportPhase.RESOLVING_SECONDARY
            resolution = await resolve_and_merge(self.store, [a.draft for a in accepted], updates)
            for company_name, error in resolution.failed_updates.items():
                message = f"Company update failed for '{company_name}': {error}"
                tally.warnings.append(message)
                self._record(source_name, -1, COMPANY_UPDATE_FAILED, message)

            self.phase = ImportPhase.PERSISTING_PRIMARY
            written = await write_in_batches(
                self.store,
                LEADS,
                self._lead_documents(accepted, resolution),
                ceiling=self.options.batch_ceiling,
                metrics_callback=self._on_batch,
            )
        except Exception as e:
            committed = e.committed if isinstance(e, BatchPersistenceError) else 0
            message = f"Import failed during {self.phase.value}: {e}"
            logger.error(f"{message} (rows={len(accepted)} committed_before_failure={committed})")
            tally.failed += len(accepted)
            tally.successful = 0
            tally.errors.append(message)
            self._record(source_name, -1, BATCH_PERSISTENCE_FAILED, message)
            return

        tally.successful = written.written
        batches, avg, p95 = self.batch_stats.get_stats()
        logger.info(f"wrote {written.written} leads in {batches} batches (avg={avg:.3f}s p95={p95:.3f}s)")

    async def run_file(
        self,
        path: Path,
        mappings: Sequence[FieldMapping] | None = None,
        *,
        existing_index: ExistingRecordIndex | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ImportResult:
        """prepare() + run(); the inferred mapping is used when none is given."""
        prepared = await self.prepare(path)
        result = await self.run(
            prepared.rows,
            prepared.suggested_mappings if mappings is None else mappings,
            existing_index=existing_index,
            on_progress=on_progress,
            source_name=path.name,
        )
        if prepared.warnings:
            result = dataclasses.replace(result, warnings=(*prepared.warnings, *result.warnings))
        return result
