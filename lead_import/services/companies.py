from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, MutableMapping
from dataclasses import dataclass, field

from ..db.store import COMPANIES, DocumentStore
from ..models.lead_draft import CompanyUpdate, LeadDraft, normalize_name

"""Company resolution for accepted leads.

1. collect the distinct company names referenced by accepted drafts
2. resolve-or-create all of them in one get_or_create_many call
3. push merged custom-field updates, one concurrent update_one per company

Step 3 is enrichment only: a failed update is logged and reported back, it
never touches lead counts and never stops the other updates.
"""

__all__ = [
    "CompanyResolution",
    "accumulate_update",
    "distinct_company_names",
    "resolve_and_merge",
]

logger = logging.getLogger(__name__)


@dataclass
class CompanyResolution:
    ids: dict[str, str] = field(default_factory=dict)  # normalized name -> id
    updated: int = 0
    failed_updates: dict[str, str] = field(default_factory=dict)  # company name -> error

    def id_for(self, company_name: str) -> str | None:
        return self.ids.get(normalize_name(company_name))


def accumulate_update(updates: MutableMapping[str, CompanyUpdate], update: CompanyUpdate) -> None:
    """Fold update into updates keyed by normalized company name."""
    current = updates.get(update.key)
    if current is None:
        updates[update.key] = CompanyUpdate(update.company_name, dict(update.custom_fields))
    else:
        current.merge(update)


def distinct_company_names(drafts: Iterable[LeadDraft]) -> list[str]:
    """Distinct company names, first-seen spelling kept, in input order."""
    seen: dict[str, str] = {}
    for draft in drafts:
        seen.setdefault(normalize_name(draft.company), draft.company.strip())
    return list(seen.values())


async def _apply_update(store: DocumentStore, company_id: str, update: CompanyUpdate) -> None:
    await store.update_one(COMPANIES, company_id, update.to_patch())


async def resolve_and_merge(
    store: DocumentStore,
    drafts: Iterable[LeadDraft],
    updates: Mapping[str, CompanyUpdate],
) -> CompanyResolution:
    """Resolve company ids for drafts and apply accumulated company updates.

    Errors from get_or_create_many propagate; update failures do not.
    """
    names = distinct_company_names(drafts)
    resolution = CompanyResolution()
    if not names:
        return resolution

    by_name = await store.get_or_create_many(COMPANIES, names)
    for name, company_id in by_name.items():
        resolution.ids[normalize_name(name)] = company_id
    logger.debug(f"resolved {len(resolution.ids)} companies")

    pending = [
        (update, resolution.ids[key])
        for key, update in updates.items()
        if key in resolution.ids and update.custom_fields
    ]
    if not pending:
        return resolution

    outcomes = await asyncio.gather(
        *(_apply_update(store, company_id, update) for update, company_id in pending),
        return_exceptions=True,
    )
    for (update, company_id), outcome in zip(pending, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            logger.warning(f"company update failed for '{update.company_name}' ({company_id}): {outcome}")
            resolution.failed_updates[update.company_name] = str(outcome)
        else:
            resolution.updated += 1
    return resolution
