"""Domain models for the lead import pipeline."""

from .config_models import DatabaseConfig, ImportConfig, ImportOptions
from .error_record import ErrorRecord
from .field_definition import FieldDefinition
from .field_mapping import (
    SKIP,
    FieldMapping,
    MappedField,
    ResolvedMapping,
    Section,
    SynthesizedField,
    TargetEntity,
)
from .import_result import ImportPhase, ImportResult, ImportTally
from .lead_draft import ChannelOutreach, ChannelStatus, CompanyUpdate, LeadDraft

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    "ImportOptions",
    # Mapping models
    "SKIP",
    "FieldDefinition",
    "FieldMapping",
    "MappedField",
    "ResolvedMapping",
    "Section",
    "SynthesizedField",
    "TargetEntity",
    # Processing models
    "ChannelOutreach",
    "ChannelStatus",
    "CompanyUpdate",
    "ErrorRecord",
    "ImportPhase",
    "ImportResult",
    "ImportTally",
    "LeadDraft",
]
