from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

row uses the 1-based file line number (header = line 1); -1 marks run-level
records that are not tied to a single row.
"""

__all__ = [
    "ErrorRecord",
    "ROW_VALIDATION",
    "DUPLICATE_SKIP",
    "COMPANY_UPDATE_FAILED",
    "CUSTOM_FIELD_FAILED",
    "BATCH_PERSISTENCE_FAILED",
]

ROW_VALIDATION = "ROW_VALIDATION"
DUPLICATE_SKIP = "DUPLICATE_SKIP"
COMPANY_UPDATE_FAILED = "COMPANY_UPDATE_FAILED"
CUSTOM_FIELD_FAILED = "CUSTOM_FIELD_FAILED"
BATCH_PERSISTENCE_FAILED = "BATCH_PERSISTENCE_FAILED"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source file name being imported
        row: File line number, or -1 when the record is run-level
        error_type: Classification in UPPER_SNAKE_CASE
        message: Human-readable description
    """
    timestamp: str
    file: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
