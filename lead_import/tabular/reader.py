from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

"""Tabular file reader.

Turns a delimited text file (or an .xlsx workbook's first sheet) into header
names plus rows of string cells. Every cell comes back as a str; missing
cells are "" rather than NaN so downstream code only ever sees text.
Fully blank lines are dropped. Malformed lines are skipped and reported as
warnings instead of failing the whole file.
"""

__all__ = [
    "ParsedTable",
    "TableParseError",
    "read_table",
    "frame_to_table",
    "sniff_delimiter",
]

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
SNIFF_DELIMITERS = ",;\t|"
SNIFF_SAMPLE_CHARS = 8192


class TableParseError(Exception):
    """Raised when a file cannot be read as a table at all."""


@dataclass
class ParsedTable:
    headers: list[str]
    rows: list[dict[str, str]]
    warnings: list[str] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)


def frame_to_table(df: pd.DataFrame, warnings: list[str] | None = None) -> ParsedTable:
    """Normalize a raw DataFrame into a ParsedTable of string cells."""
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]
    df = df.fillna("").astype(str)
    if len(df):
        blank = (df.apply(lambda col: col.str.strip()) == "").all(axis=1)
        df = df.loc[~blank]
    headers = list(df.columns)
    rows = [dict(zip(headers, values, strict=True)) for values in df.itertuples(index=False, name=None)]
    return ParsedTable(headers=headers, rows=rows, warnings=list(warnings or []))


def read_table(path: Path, delimiter: str | None = None) -> ParsedTable:
    """Read a CSV/TSV or Excel file.

    Parameters
    ----------
    path: file to read
    delimiter: column separator; None sniffs it from the file (text files only)
    """
    if not path.exists():
        raise TableParseError(f"file not found: {path}")

    warnings: list[str] = []

    try:
        if path.suffix.lower() in EXCEL_SUFFIXES:
            df = pd.read_excel(path, dtype=str, keep_default_na=False)
        else:
            text = path.read_text(encoding="utf-8-sig")
            sep = delimiter or sniff_delimiter(text)
            cleaned = _drop_overlong_records(text, sep, warnings)
            df = pd.read_csv(
                io.StringIO(cleaned),
                sep=sep,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
                index_col=False,
            )
    except pd.errors.EmptyDataError as e:
        raise TableParseError(f"{path.name}: file is empty") from e
    except (pd.errors.ParserError, csv.Error, UnicodeDecodeError, ValueError) as e:
        raise TableParseError(f"{path.name}: {e}") from e

    return frame_to_table(df, warnings)


def sniff_delimiter(text: str) -> str:
    """Pick the column separator from the start of a text file.

    Only , ; tab and | are candidates. A single-column file has none of
    them, so it falls back to ",".
    """
    sample = text[:SNIFF_SAMPLE_CHARS]
    if len(text) > SNIFF_SAMPLE_CHARS and "\n" in sample:
        sample = sample[: sample.rindex("\n")]
    try:
        return csv.Sniffer().sniff(sample, delimiters=SNIFF_DELIMITERS).delimiter
    except csv.Error:
        return ","


def _drop_overlong_records(text: str, sep: str, warnings: list[str]) -> str:
    """Re-emit the file without records that have more cells than the header.

    Short records are kept; pandas pads them with empty cells.
    """
    out = io.StringIO()
    writer = csv.writer(out, delimiter=sep, lineterminator="\n")
    width: int | None = None
    for record in csv.reader(io.StringIO(text), delimiter=sep):
        if not record:
            continue
        if width is None:
            width = len(record)
        elif len(record) > width:
            # trailing empty cells do not count against the header width
            while len(record) > width and record[-1].strip() == "":
                record.pop()
            if len(record) > width:
                preview = sep.join(record)[:80]
                warnings.append(
                    f"Skipped malformed line ({len(record)} fields, expected {width}): {preview}"
                )
                continue
        writer.writerow(record)
    if width is None:
        raise pd.errors.EmptyDataError("No columns to parse from file")
    return out.getvalue()
