from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Column mapping models for the lead import pipeline.

A FieldMapping is what the operator sees and edits: one entry per source
column. Before rows are transformed each mapping is resolved exactly once into
a ResolvedMapping whose target is a tagged variant (MappedField or
SynthesizedField), so the transformer never re-derives field names.
"""

__all__ = [
    "SKIP",
    "Section",
    "TargetEntity",
    "FieldMapping",
    "MappedField",
    "SynthesizedField",
    "ResolvedMapping",
]

SKIP = "skip"


class Section(Enum):
    """Functional section a column belongs to."""
    GENERAL = "general"
    LINKEDIN = "linkedin"
    EMAIL = "email"


class TargetEntity(Enum):
    """Entity that receives a mapped value."""
    LEAD = "lead"
    COMPANY = "company"


@dataclass(frozen=True)
class FieldMapping:
    """Mapping of one source column onto the lead schema.

    target_field is either a field name or SKIP. SKIP together with
    auto_create=True means "create a custom field named after the header".
    """
    source_column: str
    target_field: str
    section: Section = Section.GENERAL
    target_entity: TargetEntity = TargetEntity.LEAD
    auto_create: bool = False

    @property
    def is_skip(self) -> bool:
        return self.target_field == SKIP

    def to_dict(self) -> dict[str, object]:
        return {
            "source_column": self.source_column,
            "target_field": self.target_field,
            "section": self.section.value,
            "target_entity": self.target_entity.value,
            "auto_create": self.auto_create,
        }

    @staticmethod
    def from_dict(data: dict[str, object]) -> FieldMapping:
        return FieldMapping(
            source_column=str(data["source_column"]),
            target_field=str(data.get("target_field") or SKIP),
            section=Section(data.get("section", Section.GENERAL.value)),
            target_entity=TargetEntity(data.get("target_entity", TargetEntity.LEAD.value)),
            auto_create=bool(data.get("auto_create", False)),
        )


@dataclass(frozen=True)
class MappedField:
    """Target is an existing standard or custom field."""
    name: str

    @property
    def field_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class SynthesizedField:
    """Target is a custom field generated from the column header."""
    slug: str
    section: Section

    @property
    def field_name(self) -> str:
        # channel prefixes keep generated fields groupable by section
        if self.section is Section.GENERAL:
            return self.slug
        return f"{self.section.value}_{self.slug}"


@dataclass(frozen=True)
class ResolvedMapping:
    source_column: str
    target: MappedField | SynthesizedField
    target_entity: TargetEntity = TargetEntity.LEAD

    @property
    def field_name(self) -> str:
        return self.target.field_name

    @property
    def synthesized(self) -> bool:
        return isinstance(self.target, SynthesizedField)
