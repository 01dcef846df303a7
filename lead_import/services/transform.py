from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ..models.field_mapping import ResolvedMapping, TargetEntity
from ..models.lead_draft import ChannelOutreach, ChannelStatus, CompanyUpdate, LeadDraft
from .mapping import (
    COMPANY,
    EMAIL,
    EMAIL_STATUS,
    LINKEDIN_PROFILE_URL,
    LINKEDIN_STATUS,
    NAME,
    PHONE,
    REQUIRED_FIELDS,
    STAGE,
)

"""Row → lead draft transformation.

Blank cells never write anything, so missing data cannot overwrite a default
or fabricate a value. Status-like cells go through keyword tables and fall
back to the current value when nothing matches.
"""

__all__ = [
    "STAGE_KEYWORDS",
    "LINKEDIN_STATUS_KEYWORDS",
    "EMAIL_STATUS_KEYWORDS",
    "match_stage",
    "match_channel_status",
    "transform_row",
    "missing_required_fields",
]

LINKEDIN = "linkedin"
EMAIL_CHANNEL = "email"

# (substring, value); first hit wins
STAGE_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("new", "new_lead"),
    ("qualif", "qualified"),
    ("contact", "contacted"),
    ("follow", "follow_up"),
    ("won", "won"),
    ("lost", "lost"),
)

# (must contain, must not contain, status)
LINKEDIN_STATUS_KEYWORDS: tuple[tuple[str, str | None, ChannelStatus], ...] = (
    ("repl", None, ChannelStatus.REPLIED),
    ("open", None, ChannelStatus.OPENED),
    ("sent", "not", ChannelStatus.SENT),
    ("refus", None, ChannelStatus.REFUSED),
    ("no response", None, ChannelStatus.NO_RESPONSE),
)
EMAIL_STATUS_KEYWORDS: tuple[tuple[str, str | None, ChannelStatus], ...] = (
    ("repl", None, ChannelStatus.REPLIED),
    ("open", None, ChannelStatus.OPENED),
    ("sent", "not", ChannelStatus.SENT),
    ("bounc", None, ChannelStatus.BOUNCED),
    ("refus", None, ChannelStatus.REFUSED),
    ("no response", None, ChannelStatus.NO_RESPONSE),
)


def match_stage(value: str) -> str | None:
    lowered = value.strip().lower()
    for keyword, stage in STAGE_KEYWORDS:
        if keyword in lowered:
            return stage
    return None


def match_channel_status(
    value: str,
    table: Sequence[tuple[str, str | None, ChannelStatus]],
) -> ChannelStatus | None:
    lowered = value.strip().lower()
    for keyword, forbidden, status in table:
        if keyword in lowered and (forbidden is None or forbidden not in lowered):
            return status
    return None


def _cell(row: Mapping[str, Any], column: str) -> str:
    value = row.get(column)
    if value is None:
        return ""
    return str(value).strip()


def _channel(fields: dict[str, Any], name: str) -> ChannelOutreach:
    outreach: dict[str, ChannelOutreach] = fields.setdefault("outreach", {})
    if name not in outreach:
        outreach[name] = ChannelOutreach()
    return outreach[name]


def _apply_standard(fields: dict[str, Any], target: str, value: str) -> bool:
    """Write a standard field; False when target is not a standard field."""
    if target in (NAME, EMAIL, PHONE, COMPANY):
        fields[target] = value
    elif target == STAGE:
        stage = match_stage(value)
        if stage is not None:
            fields[STAGE] = stage
    elif target == LINKEDIN_PROFILE_URL:
        _channel(fields, LINKEDIN).profile_url = value
    elif target == LINKEDIN_STATUS:
        channel = _channel(fields, LINKEDIN)
        status = match_channel_status(value, LINKEDIN_STATUS_KEYWORDS)
        if status is not None:
            channel.status = status
    elif target == EMAIL_STATUS:
        channel = _channel(fields, EMAIL_CHANNEL)
        status = match_channel_status(value, EMAIL_STATUS_KEYWORDS)
        if status is not None:
            channel.status = status
    else:
        return False
    return True


def transform_row(
    row: Mapping[str, Any],
    mappings: Sequence[ResolvedMapping],
    default_stage: str,
) -> tuple[LeadDraft, CompanyUpdate | None] | None:
    """Apply resolved mappings to one row.

    Returns the lead draft and the company field update contributed by the
    row (None when the row carries no company fields), or None when name or
    company is missing after all mappings are applied.
    """
    fields: dict[str, Any] = {STAGE: default_stage}
    lead_custom: dict[str, Any] = {}
    company_custom: dict[str, Any] = {}

    for mapping in mappings:
        value = _cell(row, mapping.source_column)
        if not value:
            continue
        if not mapping.synthesized and _apply_standard(fields, mapping.field_name, value):
            continue
        if mapping.target_entity is TargetEntity.COMPANY:
            company_custom[mapping.field_name] = value
        else:
            lead_custom[mapping.field_name] = value

    name = fields.get(NAME)
    company = fields.get(COMPANY)
    if not name or not company:
        return None

    draft = LeadDraft(
        name=name,
        company=company,
        stage=fields[STAGE],
        email=fields.get(EMAIL, ""),
        phone=fields.get(PHONE, ""),
        custom_fields=lead_custom,
        outreach=fields.get("outreach", {}),
    )
    update = CompanyUpdate(company, company_custom) if company_custom else None
    return draft, update


def missing_required_fields(row: Mapping[str, Any], mappings: Sequence[ResolvedMapping]) -> list[str]:
    """Names of required fields that have no non-blank mapped cell in row."""
    present = {
        m.field_name
        for m in mappings
        if not m.synthesized and m.field_name in REQUIRED_FIELDS and _cell(row, m.source_column)
    }
    return [f for f in REQUIRED_FIELDS if f not in present]
