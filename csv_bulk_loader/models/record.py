from __future__ import annotations

from dataclasses import dataclass

"""Record model: one parsed CSV data row.

A record is an ordered tuple of nullable strings whose positions line up 1:1
with RECORD_COLUMNS, the insertable columns of the target table. Changing the
arity only means changing RECORD_COLUMNS.
"""

__all__ = [
    "RECORD_COLUMNS",
    "Record",
]

RECORD_COLUMNS: tuple[str, ...] = ("COLUMN1", "COLUMN2", "COLUMN3", "COLUMN4", "COLUMN5")


@dataclass(frozen=True)
class Record:
    """A single data row after CSV normalization.

    row_number is the 1-based data row in the source file, header and blank
    lines excluded.
    """
    row_number: int
    values: tuple[str | None, ...]

    def __len__(self) -> int:
        return len(self.values)

    def as_params(self) -> tuple[str | None, ...]:
        """Positional insert parameters; None binds as SQL NULL."""
        return self.values
