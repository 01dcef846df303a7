from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import date

"""Field type detection for custom fields created during import.

Looks at a handful of sample cells and picks the narrowest type that 80% of
them satisfy: number, date, url. Any long value makes it a textarea;
anything else is text.
"""

TEXT = "text"
TEXTAREA = "textarea"
NUMBER = "number"
DATE = "date"
URL = "url"

MAJORITY = 0.8
LONG_TEXT_CHARS = 100
MAX_SAMPLES = 10

_DATE_PATTERNS = (
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),  # YYYY-MM-DD
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"),  # MM/DD/YYYY
    re.compile(r"^\d{2}-\d{2}-\d{4}$"),  # DD-MM-YYYY
    re.compile(r"^\d{4}/\d{2}/\d{2}$"),  # YYYY/MM/DD
)


def _is_number(value: str) -> bool:
    try:
        return math.isfinite(float(value))
    except ValueError:
        return False


def _is_date(value: str) -> bool:
    if any(p.match(value) for p in _DATE_PATTERNS):
        return True
    try:
        date.fromisoformat(value[:10])
    except ValueError:
        return False
    return True


def _is_url(value: str) -> bool:
    return value.lower().startswith(("http://", "https://"))


def detect_field_type(samples: Sequence[str], min_samples: int = 3) -> str:
    values = [s.strip() for s in samples if s and s.strip()]
    if len(values) < min_samples:
        return TEXT
    values = values[:MAX_SAMPLES]
    total = len(values)

    if sum(_is_number(v) for v in values) / total >= MAJORITY:
        return NUMBER
    if sum(_is_date(v) for v in values) / total >= MAJORITY:
        return DATE
    if sum(_is_url(v) for v in values) / total >= MAJORITY:
        return URL
    if any(len(v) > LONG_TEXT_CHARS for v in values):
        return TEXTAREA
    return TEXT
