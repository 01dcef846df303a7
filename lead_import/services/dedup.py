from __future__ import annotations

from collections.abc import Iterable, Mapping, Set
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..models.lead_draft import LeadDraft, normalize_name

"""Duplicate detection for imported leads.

A lead is identified by its name and company, compared case-insensitively
after trimming. Each draft is checked against a snapshot of the leads that
already exist (taken once before the run) and against the keys accepted
earlier in the same run. Both checks are set lookups.
"""

__all__ = [
    "DuplicateSource",
    "ExistingRecordIndex",
    "dedup_key",
    "classify_duplicate",
    "is_duplicate",
]


class DuplicateSource(Enum):
    EXISTING = "existing"
    THIS_IMPORT = "this_import"


def dedup_key(name: str, company: str) -> str:
    return f"{normalize_name(name)}|{normalize_name(company)}"


@dataclass(frozen=True)
class ExistingRecordIndex:
    """Read-only snapshot of dedup keys of leads already in the store.

    Leads written by someone else after the snapshot is taken are not seen
    by the run that took it.
    """
    keys: frozenset[str] = frozenset()

    @staticmethod
    def from_records(records: Iterable[Mapping[str, Any]]) -> ExistingRecordIndex:
        keys = set()
        for record in records:
            name = record.get("name") or ""
            company = record.get("company") or record.get("company_name") or ""
            if name and company:
                keys.add(dedup_key(str(name), str(company)))
        return ExistingRecordIndex(frozenset(keys))

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def __len__(self) -> int:
        return len(self.keys)


def classify_duplicate(
    draft: LeadDraft,
    existing_index: ExistingRecordIndex,
    accepted_this_run: Set[str],
) -> DuplicateSource | None:
    key = dedup_key(draft.name, draft.company)
    if key in existing_index:
        return DuplicateSource.EXISTING
    if key in accepted_this_run:
        return DuplicateSource.THIS_IMPORT
    return None


def is_duplicate(
    draft: LeadDraft,
    existing_index: ExistingRecordIndex,
    accepted_this_run: Set[str],
) -> bool:
    return classify_duplicate(draft, existing_index, accepted_this_run) is not None
