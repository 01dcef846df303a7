from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .field_mapping import TargetEntity

__all__ = [
    "FieldDefinition",
    "format_field_label",
]


def format_field_label(field_name: str) -> str:
    """'lead_owner' -> 'Lead Owner'."""
    return " ".join(word[:1].upper() + word[1:] for word in field_name.split("_") if word)


@dataclass(frozen=True)
class FieldDefinition:
    """A custom field known to the CRM for one record kind."""
    name: str
    label: str
    field_type: str = "text"
    entity_type: TargetEntity = TargetEntity.LEAD

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "field_type": self.field_type,
            "entity_type": self.entity_type.value,
        }

    @staticmethod
    def from_document(doc: dict[str, Any]) -> FieldDefinition:
        name = str(doc["name"])
        return FieldDefinition(
            name=name,
            label=str(doc.get("label") or format_field_label(name)),
            field_type=str(doc.get("field_type", "text")),
            entity_type=TargetEntity(doc.get("entity_type", TargetEntity.LEAD.value)),
        )
