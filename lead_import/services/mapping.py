from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ..models.field_definition import FieldDefinition
from ..models.field_mapping import (
    SKIP,
    FieldMapping,
    MappedField,
    ResolvedMapping,
    Section,
    SynthesizedField,
    TargetEntity,
)

"""Column mapping inference.

Header classification is driven by ordered rule tables. Each table is
scanned top to bottom and the first matching rule wins, so a header that
would satisfy two rules always lands on the earlier one. Inference is pure:
the same headers always produce the same mappings.
"""

__all__ = [
    "KeywordRule",
    "FieldRule",
    "SECTION_RULES",
    "STANDARD_FIELD_RULES",
    "COMPANY_FIELD_RULES",
    "NAME",
    "EMAIL",
    "PHONE",
    "COMPANY",
    "STAGE",
    "LINKEDIN_PROFILE_URL",
    "LINKEDIN_STATUS",
    "EMAIL_STATUS",
    "STANDARD_FIELDS",
    "REQUIRED_FIELDS",
    "normalize_header",
    "slugify",
    "detect_section",
    "detect_entity",
    "match_standard_field",
    "infer_mapping",
    "infer_mappings",
    "resolve_mapping",
    "resolve_mappings",
]

NAME = "name"
EMAIL = "email"
PHONE = "phone"
COMPANY = "company"
STAGE = "stage"
LINKEDIN_PROFILE_URL = "outreach.linkedin.profile_url"
LINKEDIN_STATUS = "outreach.linkedin.status"
EMAIL_STATUS = "outreach.email.status"

STANDARD_FIELDS = (
    NAME,
    EMAIL,
    PHONE,
    COMPANY,
    STAGE,
    LINKEDIN_PROFILE_URL,
    LINKEDIN_STATUS,
    EMAIL_STATUS,
)
REQUIRED_FIELDS = (NAME, COMPANY)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def normalize_header(header: str) -> str:
    return header.strip().lower()


def slugify(header: str) -> str:
    """'Lead Owner (EU)' -> 'lead_owner_eu'."""
    return _SLUG_RE.sub("_", normalize_header(header)).strip("_")


@dataclass(frozen=True)
class KeywordRule:
    """Match a normalized header.

    A header matches when it equals one of `exact`, or when it contains every
    term of `all_of`, at least one term of `any_of` (if given) and none of
    `excludes`. A rule with only `exact` never substring-matches.
    """
    exact: frozenset[str] = frozenset()
    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()

    def matches(self, header: str) -> bool:
        if header in self.exact:
            return True
        if not self.any_of and not self.all_of:
            return False
        if any(term in header for term in self.excludes):
            return False
        if not all(term in header for term in self.all_of):
            return False
        return not self.any_of or any(term in header for term in self.any_of)


def _exact(*terms: str) -> KeywordRule:
    return KeywordRule(exact=frozenset(terms))


@dataclass(frozen=True)
class FieldRule:
    """Standard field rule, optionally gated on the header's section."""
    target: str
    rule: KeywordRule
    sections: frozenset[Section] | None = None

    def matches(self, header: str, section: Section) -> bool:
        if self.sections is not None and section not in self.sections:
            return False
        return self.rule.matches(header)


SECTION_RULES: tuple[tuple[KeywordRule, Section], ...] = (
    (KeywordRule(any_of=(
        "linkedin", "linked in", "linked-in", "li profile", "name of person", "job",
        "type of message", "date of contact", "date of followup", "follow up", "followup",
    )), Section.LINKEDIN),
    (KeywordRule(all_of=("profile",), any_of=("url", "link")), Section.LINKEDIN),
    (_exact("link"), Section.LINKEDIN),
    (KeywordRule(any_of=(
        "email", "e-mail", "e'mail", "mail", "date sent", "sent date", "who applied", "applied",
    )), Section.EMAIL),
)

_LINKEDIN = frozenset({Section.LINKEDIN})
_EMAIL = frozenset({Section.EMAIL})

# Priority: name → contact → company → stage → channel fields.
STANDARD_FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule(NAME, _exact("name", "lead name", "full name", "name of person", "contact name", "contact")),
    FieldRule(EMAIL, KeywordRule(
        exact=frozenset({"email", "email address", "e-mail", "work email"}),
        any_of=("e'mail",),
    )),
    FieldRule(PHONE, _exact("phone", "phone number", "telephone", "mobile", "mobile phone")),
    FieldRule(COMPANY, _exact("company", "company name", "organization", "organisation", "account", "employer")),
    FieldRule(STAGE, _exact("status", "stage", "pipeline stage", "lead status")),
    # "linkedin" itself contains "link", hence " link" and the status excludes
    FieldRule(LINKEDIN_PROFILE_URL, KeywordRule(
        exact=frozenset({"linkedin"}),
        all_of=("linkedin",),
        any_of=("url", "profile", " link"),
        excludes=("status", "response"),
    )),
    FieldRule(LINKEDIN_STATUS, KeywordRule(any_of=("status", "response")), sections=_LINKEDIN),
    FieldRule(EMAIL_STATUS, KeywordRule(any_of=("status", "response")), sections=_EMAIL),
    FieldRule(EMAIL_STATUS, _exact("response")),
)

# Vocabulary that describes the organization rather than the person.
COMPANY_FIELD_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(any_of=("website", "blog link", "domain")),
    KeywordRule(any_of=("url",), excludes=("linkedin", "profile")),
    KeywordRule(
        exact=frozenset({"description", "overview"}),
        any_of=("company description", "what they do", "company details", "about"),
    ),
    KeywordRule(
        exact=frozenset({"country", "location", "region", "city", "state", "address"}),
        any_of=("headquarters", "hq"),
    ),
    _exact("rating", "score", "tier"),
    KeywordRule(any_of=("quality",)),
    KeywordRule(
        exact=frozenset({"program"}),
        any_of=("writing program", "ideas generated", "chosen idea", "article name", "blog post", "selected idea"),
    ),
    _exact("industry", "sector", "vertical", "niche", "category"),
    KeywordRule(any_of=(
        "revenue", "funding", "valuation", "employees", "headcount", "company size", "founded",
    )),
)


def detect_section(header: str) -> Section:
    normalized = normalize_header(header)
    for rule, section in SECTION_RULES:
        if rule.matches(normalized):
            return section
    return Section.GENERAL


def detect_entity(header: str) -> TargetEntity:
    normalized = normalize_header(header)
    for rule in COMPANY_FIELD_RULES:
        if rule.matches(normalized):
            return TargetEntity.COMPANY
    return TargetEntity.LEAD


def match_standard_field(header: str, section: Section | None = None) -> str | None:
    normalized = normalize_header(header)
    if section is None:
        section = detect_section(header)
    for field_rule in STANDARD_FIELD_RULES:
        if field_rule.matches(normalized, section):
            return field_rule.target
    return None


def _match_known_field(header: str, known_fields: Sequence[FieldDefinition]) -> FieldDefinition | None:
    normalized = normalize_header(header)
    slug = slugify(header)
    for definition in known_fields:
        if normalized in (definition.name.lower(), definition.label.strip().lower()) or slug == definition.name:
            return definition
    return None


def infer_mapping(
    header: str,
    auto_create_default: bool,
    known_fields: Sequence[FieldDefinition] = (),
) -> FieldMapping:
    section = detect_section(header)

    standard = match_standard_field(header, section)
    if standard is not None:
        return FieldMapping(header, standard, section, TargetEntity.LEAD, False)

    known = _match_known_field(header, known_fields)
    if known is not None:
        return FieldMapping(header, known.name, section, known.entity_type, False)

    return FieldMapping(header, SKIP, section, detect_entity(header), auto_create_default)


def infer_mappings(
    headers: Iterable[str],
    auto_create_default: bool,
    known_fields: Sequence[FieldDefinition] = (),
) -> list[FieldMapping]:
    """Propose one FieldMapping per header, in header order."""
    return [infer_mapping(h, auto_create_default, known_fields) for h in headers]


def resolve_mapping(mapping: FieldMapping) -> ResolvedMapping | None:
    """Turn an operator-facing mapping into a transform target; None means ignore the column."""
    if not mapping.is_skip:
        return ResolvedMapping(mapping.source_column, MappedField(mapping.target_field), mapping.target_entity)
    if not mapping.auto_create:
        return None
    slug = slugify(mapping.source_column) or "field"
    return ResolvedMapping(
        mapping.source_column,
        SynthesizedField(slug, mapping.section),
        mapping.target_entity,
    )


def resolve_mappings(mappings: Iterable[FieldMapping]) -> list[ResolvedMapping]:
    resolved: list[ResolvedMapping] = []
    for mapping in mappings:
        r = resolve_mapping(mapping)
        if r is not None:
            resolved.append(r)
    return resolved
