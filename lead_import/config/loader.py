from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DatabaseConfig, ImportConfig, ImportOptions
from ..models.field_mapping import FieldMapping

"""Config loader.

Responsibilities:
- Load YAML config (config/import.yml) and operator mapping files
- Validate both against the JSON schemas bundled next to this module
- Apply defaults for every key that is not present
"""

_SCHEMA_DIR = Path(__file__).parent
CONFIG_SCHEMA_PATH = _SCHEMA_DIR / "import_config.schema.json"
MAPPING_SCHEMA_PATH = _SCHEMA_DIR / "mapping.schema.json"


class ConfigError(Exception):
    pass


def _read_yaml(path: Path, what: str) -> Any:
    if not path.exists():
        raise ConfigError(f"{what} file not found: {path}")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml in {path}: {e}") from e


def _validate(data: Any, schema_path: Path) -> None:
    """Validate data against a bundled JSON schema.

    Raises:
        ConfigError: if the schema file is missing or unreadable, or the data
            does not satisfy it.
    """
    if not schema_path.exists():
        raise ConfigError(f"schema not found: {schema_path}")
    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ImportConfig:
    data = _read_yaml(path, "config") or {}
    _validate(data, CONFIG_SCHEMA_PATH)

    defaults = ImportOptions()
    opts_raw = data.get("import") or {}
    options = ImportOptions(
        default_stage=opts_raw.get("default_stage", defaults.default_stage),
        auto_create_fields=opts_raw.get("auto_create_fields", defaults.auto_create_fields),
        batch_ceiling=opts_raw.get("batch_ceiling", defaults.batch_ceiling),
        progress_interval=opts_raw.get("progress_interval", defaults.progress_interval),
        fill_threshold=float(opts_raw.get("fill_threshold", defaults.fill_threshold)),
        fill_sample_size=opts_raw.get("fill_sample_size", defaults.fill_sample_size),
        max_displayed_errors=opts_raw.get("max_displayed_errors", defaults.max_displayed_errors),
        delimiter=opts_raw.get("delimiter", defaults.delimiter),
        imported_by=opts_raw.get("imported_by", defaults.imported_by),
    )

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(options=options, database=db)


def load_mappings(path: Path) -> list[FieldMapping]:
    """Load an operator-edited mapping file (the format --inspect-mapping prints)."""
    data = _read_yaml(path, "mapping")
    _validate(data, MAPPING_SCHEMA_PATH)
    return [FieldMapping.from_dict(entry) for entry in data["mappings"]]


def dump_mappings(mappings: list[FieldMapping]) -> str:
    return yaml.safe_dump(
        {"mappings": [m.to_dict() for m in mappings]},
        sort_keys=False,
        allow_unicode=True,
    )
