from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

"""Forward-fill repair for spreadsheet merge artifacts.

Exports of sheets with merged cells carry a value only on the first row of
each group. Columns that look like that (too many blanks in the leading
sample) get their blanks filled from the nearest preceding value.
"""

__all__ = [
    "fill_eligible_columns",
    "repair",
]

DEFAULT_THRESHOLD = 0.2
DEFAULT_SAMPLE_SIZE = 20


def _blank_mask(col: pd.Series) -> pd.Series:
    return col.str.strip() == ""


def fill_eligible_columns(
    frame: pd.DataFrame,
    threshold: float = DEFAULT_THRESHOLD,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> list[str]:
    """Columns whose empty fraction in the first `sample_size` rows exceeds `threshold`."""
    if frame.empty:
        return []
    sample = frame.head(min(len(frame), sample_size))
    eligible: list[str] = []
    for column in frame.columns:
        empty_fraction = _blank_mask(sample[column]).sum() / len(sample)
        if empty_fraction > threshold:
            eligible.append(column)
    return eligible


def repair(
    rows: Sequence[dict[str, str]],
    threshold: float = DEFAULT_THRESHOLD,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> list[dict[str, str]]:
    """Return a repaired copy of rows; the input is not modified.

    Blank cells in fill-eligible columns take the nearest strictly preceding
    non-blank value of the same column. Blanks with no predecessor stay as
    they are, and columns under the threshold are returned unchanged.
    """
    if not rows:
        return []
    frame = pd.DataFrame(list(rows), dtype=object).fillna("").astype(str)
    for column in fill_eligible_columns(frame, threshold, sample_size):
        original = frame[column]
        filled = original.mask(_blank_mask(original)).ffill()
        frame[column] = filled.where(filled.notna(), original)
    return frame.to_dict(orient="records")
