from __future__ import annotations

from pathlib import Path

import pytest

from lead_import.config.loader import ConfigError, dump_mappings, load_config, load_mappings
from lead_import.models.field_mapping import SKIP, FieldMapping, Section, TargetEntity


def test_load_config_values(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.options.default_stage == "new_lead"
    assert cfg.options.batch_ceiling == 500
    assert cfg.database.user == "appuser"
    assert cfg.database.port == 5432


def test_defaults_for_empty_file(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text("", encoding="utf-8")
    cfg = load_config(p)
    assert cfg.options.auto_create_fields is True
    assert cfg.options.progress_interval == 50
    assert cfg.options.fill_threshold == 0.2
    assert cfg.options.fill_sample_size == 20
    assert cfg.options.max_displayed_errors == 10
    assert cfg.options.delimiter is None
    assert cfg.database.dsn is None


def test_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "nope.yml")


def test_invalid_yaml(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text("import: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(p)


@pytest.mark.parametrize(
    "body",
    [
        "import:\n  batch_ceiling: 501\n",
        "import:\n  batch_ceiling: 0\n",
        "import:\n  fill_threshold: 1.5\n",
        "import:\n  delimiter: ';;'\n",
        "import:\n  unknown_key: 1\n",
        "source_directory: ./data\n",
        "database:\n  port: 'abc'\n",
    ],
)
def test_schema_rejects_bad_values(temp_workdir: Path, body: str):
    p = temp_workdir / "config" / "import.yml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError, match="validation failed"):
        load_config(p)


def test_mapping_file_round_trip(temp_workdir: Path):
    mappings = [
        FieldMapping("Name", "name"),
        FieldMapping("LinkedIn Status", "outreach.linkedin.status", Section.LINKEDIN),
        FieldMapping("Website", SKIP, Section.GENERAL, TargetEntity.COMPANY, True),
    ]
    p = temp_workdir / "mapping.yml"
    p.write_text(dump_mappings(mappings), encoding="utf-8")
    assert load_mappings(p) == mappings


def test_mapping_file_minimal_entries(temp_workdir: Path):
    p = temp_workdir / "mapping.yml"
    p.write_text("mappings:\n  - source_column: Name\n    target_field: name\n", encoding="utf-8")
    (m,) = load_mappings(p)
    assert m == FieldMapping("Name", "name")


def test_mapping_file_rejects_unknown_section(temp_workdir: Path):
    p = temp_workdir / "mapping.yml"
    p.write_text(
        "mappings:\n  - source_column: Name\n    target_field: name\n    section: twitter\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError):
        load_mappings(p)
