"""Row lookup for a chain of ancestor column/value constraints.

Excel sheets describe nesting with merged cells: a ``Blok`` or ``Week`` value
is written once and the rows below leave the cell blank until the next value
starts.  The helpers in this module model that convention with a *running
value* per column which is only overwritten by non-blank cells.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterator, List, Mapping, NamedTuple, Optional, Pattern, Sequence, Tuple

from .sheet import RawSheet

logger = logging.getLogger(__name__)

DEFAULT_STRICT_LABELS: Dict[str, str] = {
    "Blok": r"^Blok\s+\d+$",
    "Week": r"^week\s+\d+$",
}


class ContextEntry(NamedTuple):
    column_index: int
    value: str


RowContext = List[ContextEntry]


def _scan(sheet: RawSheet, context: Sequence[ContextEntry]) -> Iterator[Tuple[int, bool, Dict[int, str]]]:
    """Yield ``(row_index, matches, running)`` for every data row."""

    tracked = sorted({entry.column_index for entry in context})
    running: Dict[int, str] = {column: "" for column in tracked}
    for row_index, row in enumerate(sheet.rows):
        for column in tracked:
            if 0 <= column < len(row) and row[column]:
                running[column] = row[column]
        matches = all(running.get(entry.column_index) == entry.value for entry in context)
        yield row_index, matches, running


def resolve_row_indices(sheet: RawSheet, context: Sequence[ContextEntry]) -> List[int]:
    """Indices of the data rows that satisfy every entry of ``context``."""

    if sheet is None or sheet.is_empty:
        return []
    if not context:
        return list(range(len(sheet.rows)))
    return [row_index for row_index, matches, _ in _scan(sheet, context) if matches]


def resolve_rows(sheet: RawSheet, context: Sequence[ContextEntry]) -> List[List[str]]:
    """Return the data rows belonging to ``context``.

    A row belongs to the context when, at that row, the running value of each
    referenced column equals the required value.  The scan is strictly
    sequential, so interleaved ranges are resolved in sheet order.
    """

    return [sheet.rows[index] for index in resolve_row_indices(sheet, context)]


def resolve_block_indices(sheet: RawSheet, context: Sequence[ContextEntry]) -> List[int]:
    """Indices of the first contiguous block matching ``context``.

    The block starts at the first matching row and ends before the first row
    that writes a *different* non-blank value into any tracked column.
    """

    if sheet is None or sheet.is_empty:
        return []
    if not context:
        return list(range(len(sheet.rows)))

    required = {entry.column_index: entry.value for entry in context}
    block: List[int] = []
    for row_index, matches, _ in _scan(sheet, context):
        if not block:
            if matches:
                block.append(row_index)
            continue
        row = sheet.rows[row_index]
        boundary = any(
            0 <= column < len(row) and row[column] and row[column] != value
            for column, value in required.items()
        )
        if boundary:
            break
        block.append(row_index)
    return block


def compile_strict_labels(labels: Optional[Mapping[str, str]] = None) -> Dict[str, Pattern[str]]:
    source = DEFAULT_STRICT_LABELS if labels is None else labels
    return {
        header.strip().lower(): re.compile(pattern, re.IGNORECASE)
        for header, pattern in source.items()
    }


_DEFAULT_PATTERNS = compile_strict_labels()


def unique_column_values(
    sheet: RawSheet,
    context: Sequence[ContextEntry],
    column_index: Optional[int],
    *,
    strict: bool = False,
    strict_labels: Optional[Mapping[str, Pattern[str]]] = None,
) -> List[str]:
    """Sorted distinct non-blank values of ``column_index`` within ``context``.

    With ``strict`` the lookup is limited to the first contiguous block, which
    is how a duplicate node finds its own slice of the sheet.  Columns headed
    by one of the strict labels keep only label-shaped values (``Blok 3``,
    ``Week 12``) whenever the column holds any.
    """

    if sheet is None or sheet.is_empty:
        return []
    if column_index is None or not 0 <= column_index < sheet.column_count:
        return []

    indices = resolve_block_indices(sheet, context) if strict else resolve_row_indices(sheet, context)
    values = sorted({sheet.rows[index][column_index] for index in indices} - {""})

    patterns = _DEFAULT_PATTERNS if strict_labels is None else strict_labels
    pattern = patterns.get(sheet.header(column_index).strip().lower())
    if pattern is not None:
        narrowed = [value for value in values if pattern.match(value)]
        if narrowed:
            values = narrowed
    logger.debug(
        "Resolved %d value(s) for column %s with context %s",
        len(values),
        column_index,
        list(context),
    )
    return values


def first_row_value(sheet: RawSheet, context: Sequence[ContextEntry], column_index: int) -> Tuple[str, Optional[int]]:
    """Value of ``column_index`` on the first row of ``context`` and its row index."""

    if column_index is None or not 0 <= column_index < sheet.column_count:
        return "", None
    for row_index in resolve_row_indices(sheet, context):
        return sheet.rows[row_index][column_index], row_index
    return "", None


__all__ = [
    "ContextEntry",
    "DEFAULT_STRICT_LABELS",
    "RowContext",
    "compile_strict_labels",
    "first_row_value",
    "resolve_block_indices",
    "resolve_row_indices",
    "resolve_rows",
    "unique_column_values",
]
