from __future__ import annotations

from collections.abc import Sequence

from ..models.import_result import ImportResult

"""Summary rendering for import results.

SUMMARY rows={total} success={n} duplicates={n} failed={n} custom_fields={n} elapsed_sec={s}
"""

__all__ = [
    "render_summary_line",
    "render_error_lines",
]


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for tiny values
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return f"{value:.2f}"


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line for a finished import.

    Examples:
        >>> result = ImportResult(successful=1, failed=1, duplicates=1,
        ...     total_processed=3, errors=("a", "b"), elapsed_seconds=2.0)
        >>> render_summary_line(result)
        'SUMMARY rows=3 success=1 duplicates=1 failed=1 custom_fields=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY rows={result.total_processed} "
        f"success={result.successful} "
        f"duplicates={result.duplicates} "
        f"failed={result.failed} "
        f"custom_fields={result.custom_fields_created} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_error_lines(errors: Sequence[str], limit: int = 10) -> list[str]:
    """Cap an error list for display; the result object keeps the full list."""
    if limit < 0:
        raise ValueError("limit must be >= 0")
    shown = list(errors[:limit])
    remaining = len(errors) - len(shown)
    if remaining > 0:
        shown.append(f"... and {remaining} more error{'s' if remaining != 1 else ''}")
    return shown
