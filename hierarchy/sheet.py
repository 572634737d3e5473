"""Raw sheet store holding trimmed cell strings for one worksheet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

import pandas as pd
from openpyxl.utils import get_column_letter


def normalise_cell(value: Any) -> str:
    """Return ``value`` as a trimmed string; ``None`` becomes ``""``."""

    if value is None:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if hasattr(value, "isoformat") and not isinstance(value, str):
        text = value.isoformat()
        # midnight datetimes are plain dates in the sheets we deal with
        if text.endswith("T00:00:00"):
            text = text[: -len("T00:00:00")]
        return text
    return str(value).strip()


@dataclass
class RawSheet:
    """Rectangular grid of data rows plus the header row.

    ``rows`` never contains the header; every row has exactly
    :attr:`column_count` cells and blank cells are empty strings.
    """

    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)
    name: str = ""
    sheet_id: int = 0

    def __post_init__(self) -> None:
        headers = [normalise_cell(value) for value in self.headers]
        rows = [[normalise_cell(value) for value in row] for row in self.rows]
        width = max([len(headers), *(len(row) for row in rows)] or [0])
        self.headers = _pad(headers, width)
        self.rows = [_pad(row, width) for row in rows]

    @classmethod
    def from_values(
        cls,
        values: Iterable[Sequence[Any]],
        name: str = "",
        sheet_id: int = 0,
    ) -> "RawSheet":
        """Build a sheet from a grid whose first row holds the headers."""

        grid = [list(row) for row in values]
        if not grid:
            return cls(headers=[], rows=[], name=name, sheet_id=sheet_id)
        return cls(headers=grid[0], rows=grid[1:], name=name, sheet_id=sheet_id)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def header(self, column_index: Optional[int]) -> str:
        if column_index is None or not 0 <= column_index < self.column_count:
            return ""
        return self.headers[column_index]

    def column_label(self, column_index: int) -> str:
        """Header text, or ``Column N`` for unnamed columns."""

        return self.header(column_index) or f"Column {column_index + 1}"

    def cell(self, row_index: int, column_index: int) -> str:
        if not 0 <= row_index < len(self.rows):
            return ""
        if not 0 <= column_index < self.column_count:
            return ""
        return self.rows[row_index][column_index]


def excel_cell(column_index: int, row_index: int) -> str:
    """Excel coordinate for a data row; data row 0 lives on sheet row 2."""

    return f"{get_column_letter(column_index + 1)}{row_index + 2}"


def _pad(row: List[str], width: int) -> List[str]:
    if len(row) >= width:
        return row[:width]
    return row + [""] * (width - len(row))


__all__ = ["RawSheet", "excel_cell", "normalise_cell"]
