from __future__ import annotations

import csv
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.record import RECORD_COLUMNS, Record

"""CSV reader.

- First non-blank line is the header; every following line is one record.
  Only lines with no characters at all are skipped: a row of bare
  delimiters (``,,,,``) or a quoted empty cell is a record of empty values.
- Header names pick the field order (case-insensitive, trimmed). Columns the
  record does not know are ignored, record columns missing from the header stay
  None. A header that matches none of the record columns is read positionally.
- Cells are trimmed; empty or missing cells become None. Rows with surplus
  cells are truncated to the header width, short rows are padded.
- Only a missing file (FileNotFoundError) or an OS level read failure is
  fatal. A zero byte or header-only file yields no records.
- Bytes that are not valid UTF-8 are replaced with U+FFFD.

The file is read without a header (header=None) and the first row is applied
as header here, so pandas never guesses an index column from ragged rows.
"""

__all__ = [
    "CsvPreview",
    "inspect_csv_file",
    "read_csv_file",
]

ENCODING = "utf-8"


@dataclass
class CsvPreview:
    path: Path
    header: list[str]
    rows: list[list[str | None]]


def _cell(value: Any) -> str | None:
    if not isinstance(value, str):
        # NaN / None for cells pandas had to pad
        return None
    stripped = value.strip()
    return stripped or None


def _is_blank_line(row: Sequence[Any]) -> bool:
    # an empty source line has no parsed cells at all, only padding
    return not any(isinstance(v, str) for v in row)


def _read_options(skip_blank_lines: bool = False) -> dict[str, Any]:
    return {
        "header": None,
        "dtype": str,
        "encoding": ENCODING,
        "encoding_errors": "replace",
        "keep_default_na": False,
        "skip_blank_lines": skip_blank_lines,
        "engine": "python",
    }


@contextmanager
def _unbounded_field_size() -> Iterator[None]:
    """Lift the csv module's per-field limit for the duration of a read.

    The python engine silently skips lines the csv module rejects whenever
    on_bad_lines is a callable, so an oversized field would drop its record.
    """
    previous = csv.field_size_limit()
    limit = sys.maxsize
    while True:
        try:
            csv.field_size_limit(limit)
            break
        except OverflowError:
            # C long is 32 bit on some platforms
            limit //= 2
    try:
        yield
    finally:
        csv.field_size_limit(previous)


def read_raw_csv(path: Path, nrows: int | None = None) -> pd.DataFrame | None:
    """Raw string frame including the header row, or None for an empty file.

    Blank source lines are kept as all-NA rows; see _is_blank_line().
    """
    with _unbounded_field_size():
        try:
            first = pd.read_csv(path, nrows=1, **_read_options(skip_blank_lines=True))
        except pd.errors.EmptyDataError:
            return None
        width = first.shape[1]

        return pd.read_csv(
            path,
            nrows=nrows,
            names=list(range(width)),
            # 余分なセルはヘッダ幅で切り捨て (行は捨てない)
            on_bad_lines=lambda bad: bad[:width],
            **_read_options(),
        )


def _column_positions(header: Sequence[str], columns: Sequence[str]) -> list[int | None]:
    normalized = [h.lower() for h in header]
    positions: list[int | None] = []
    for col in columns:
        key = col.strip().lower()
        positions.append(normalized.index(key) if key in normalized else None)
    if all(p is None for p in positions):
        # ヘッダ名が一致しない場合は列順で対応付け
        positions = [i if i < len(header) else None for i in range(len(columns))]
    return positions


def _split_header(raw: pd.DataFrame) -> tuple[list[str], list[tuple[Any, ...]]]:
    """Header cells and the non-blank data rows after it."""
    rows = [row for row in raw.itertuples(index=False, name=None) if not _is_blank_line(row)]
    if not rows:
        return [], []
    header = [_cell(v) or "" for v in rows[0]]
    return header, rows[1:]


def read_csv_file(path: Path, columns: Sequence[str] = RECORD_COLUMNS) -> list[Record]:
    """Parse ``path`` into records in file order.

    Raises:
        FileNotFoundError: the file does not exist.
        OSError: the file exists but cannot be read.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    raw = read_raw_csv(path)
    if raw is None or raw.empty:
        return []

    header, data_rows = _split_header(raw)
    positions = _column_positions(header, columns)
    return [
        Record(
            row_number=row_number,
            values=tuple(_cell(row[p]) if p is not None else None for p in positions),
        )
        for row_number, row in enumerate(data_rows, start=1)
    ]


def inspect_csv_file(path: Path, limit: int = 3) -> CsvPreview:
    """Header and first ``limit`` data rows, trimmed but otherwise as in the file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    raw = read_raw_csv(path, nrows=limit + 1)
    if raw is None or raw.empty:
        return CsvPreview(path=path, header=[], rows=[])
    header, data_rows = _split_header(raw)
    return CsvPreview(
        path=path, header=header, rows=[[_cell(v) for v in row] for row in data_rows[:limit]]
    )
