"""Workbook ingestion and the per-process workbook cache."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Union

from openpyxl import load_workbook

from hierarchy.sheet import RawSheet, normalise_cell
from workbook import WorkbookData

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".xlsx", ".xlsm"}

WorkbookSource = Union[str, Path, BinaryIO]


def make_file_id(name: str, timestamp: Optional[float] = None) -> str:
    stamp = int((timestamp if timestamp is not None else time.time()) * 1000)
    return f"{stamp}-{Path(name).name}"


def _source_name(source: WorkbookSource) -> str:
    if isinstance(source, (str, Path)):
        return Path(source).name
    return Path(getattr(source, "name", "workbook.xlsx")).name


def _trim_trailing_blank(rows: List[List[str]]) -> List[List[str]]:
    end = len(rows)
    while end and not any(rows[end - 1]):
        end -= 1
    return rows[:end]


def read_workbook(
    source: WorkbookSource,
    name: Optional[str] = None,
    file_id: Optional[str] = None,
) -> WorkbookData:
    """Read every visible, non-empty sheet of an Excel workbook.

    Cells hold cached formula results as trimmed strings; merged ranges keep
    their value in the top-left cell only and read as blanks elsewhere.
    Sheets are numbered from 1 in workbook order.
    """

    display_name = name or _source_name(source)
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Workbook '{path}' does not exist")
        if path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported file extension '{path.suffix}' for workbook '{path}'")
    elif hasattr(source, "seek"):
        source.seek(0)

    logger.info("Loading workbook %s", display_name)
    target = str(source) if isinstance(source, (str, Path)) else source
    book = load_workbook(target, data_only=True)
    workbook = WorkbookData(name=display_name, file_id=file_id or make_file_id(display_name))
    sheet_id = 0
    try:
        for worksheet in book.worksheets:
            if worksheet.sheet_state != "visible":
                logger.debug("Skipping hidden sheet '%s'", worksheet.title)
                continue
            grid = _trim_trailing_blank(
                [[normalise_cell(value) for value in row] for row in worksheet.iter_rows(values_only=True)]
            )
            if not grid or not any(any(row) for row in grid):
                logger.debug("Skipping empty sheet '%s'", worksheet.title)
                continue
            sheet_id += 1
            sheet = RawSheet.from_values(grid, name=worksheet.title, sheet_id=sheet_id)
            workbook.sheets[sheet_id] = sheet
            logger.info(
                "Sheet %d '%s': %d column(s), %d data row(s)",
                sheet_id,
                sheet.name,
                sheet.column_count,
                len(sheet.rows),
            )
    finally:
        book.close()
    return workbook


def sheet_summaries(workbook: WorkbookData) -> List[Dict[str, Any]]:
    return [
        {
            "id": sheet_id,
            "name": sheet.name,
            "columns": sheet.column_count,
            "rows": len(sheet.rows),
        }
        for sheet_id, sheet in workbook.sheets.items()
    ]


class WorkbookCache:
    """In-memory store of uploaded workbooks keyed by file id."""

    def __init__(self) -> None:
        self._entries: Dict[str, WorkbookData] = {}

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, workbook: WorkbookData) -> str:
        self._entries[workbook.file_id] = workbook
        return workbook.file_id

    def load(self, source: WorkbookSource, name: Optional[str] = None) -> WorkbookData:
        workbook = read_workbook(source, name=name)
        self.add(workbook)
        return workbook

    def get(self, file_id: str) -> WorkbookData:
        try:
            return self._entries[file_id]
        except KeyError:
            raise KeyError(f"Workbook '{file_id}' is not loaded") from None

    def sheet(self, file_id: str, sheet_id: int) -> RawSheet:
        return self.get(file_id).sheet(sheet_id)

    def remove(self, file_id: str) -> bool:
        return self._entries.pop(file_id, None) is not None

    def file_ids(self) -> Iterable[str]:
        return list(self._entries)


__all__ = [
    "WorkbookCache",
    "make_file_id",
    "read_workbook",
    "sheet_summaries",
]
