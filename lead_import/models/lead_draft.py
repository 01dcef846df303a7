from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Lead draft and company update models produced by the row transformer."""

__all__ = [
    "ChannelStatus",
    "ChannelOutreach",
    "LeadDraft",
    "CompanyUpdate",
    "normalize_name",
    "merge_fields",
]


class ChannelStatus(Enum):
    NOT_SENT = "not_sent"
    SENT = "sent"
    OPENED = "opened"
    REPLIED = "replied"
    BOUNCED = "bounced"
    REFUSED = "refused"
    NO_RESPONSE = "no_response"


def normalize_name(value: str) -> str:
    return value.strip().lower()


def merge_fields(current: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """Merge incoming over current: later value wins per key, dicts merged one level deep."""
    merged = dict(current)
    for key, value in incoming.items():
        existing = merged.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            merged[key] = {**existing, **value}
        else:
            merged[key] = value
    return merged


@dataclass
class ChannelOutreach:
    """Outreach state of one channel (LinkedIn or Email)."""
    status: ChannelStatus = ChannelStatus.NOT_SENT
    profile_url: str | None = None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"status": self.status.value}
        if self.profile_url:
            doc["profile_url"] = self.profile_url
        return doc


@dataclass
class LeadDraft:
    """Structured output of transforming a single row.

    name and company are required; a draft lacking either never leaves the
    transformer (transform_row returns None instead).
    """
    name: str
    company: str
    stage: str
    email: str = ""
    phone: str = ""
    custom_fields: dict[str, Any] = field(default_factory=dict)
    outreach: dict[str, ChannelOutreach] = field(default_factory=dict)

    def to_document(self, company_id: str) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "company_id": company_id,
            "stage": self.stage,
            "custom_fields": dict(self.custom_fields),
        }
        # empty outreach is omitted rather than stored as {}
        if self.outreach:
            doc["outreach"] = {ch: o.to_document() for ch, o in self.outreach.items()}
        return doc


@dataclass
class CompanyUpdate:
    """Custom field values collected for one company during a run."""
    company_name: str
    custom_fields: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return normalize_name(self.company_name)

    def merge(self, other: CompanyUpdate) -> None:
        """Fold a later row's update into this one (later row wins per field)."""
        self.custom_fields = merge_fields(self.custom_fields, other.custom_fields)

    def to_patch(self) -> dict[str, Any]:
        return {"custom_fields": dict(self.custom_fields)}
