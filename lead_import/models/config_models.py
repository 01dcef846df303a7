from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the lead import tool.

These are the typed view of config/import.yml; loading and schema validation
live in lead_import.config.loader.
"""

DEFAULT_BATCH_CEILING = 500
DEFAULT_PROGRESS_INTERVAL = 50


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportOptions:
    """Tunables for one import run."""
    default_stage: str = "new_lead"
    auto_create_fields: bool = True
    batch_ceiling: int = DEFAULT_BATCH_CEILING  # max operations per store batch
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL  # rows between progress callbacks
    fill_threshold: float = 0.2  # empty fraction above which a column is forward-filled
    fill_sample_size: int = 20
    max_displayed_errors: int = 10
    delimiter: str | None = None  # None = sniff
    imported_by: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object."""
    options: ImportOptions = field(default_factory=ImportOptions)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
