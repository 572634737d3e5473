from datetime import datetime
from io import BytesIO

import pytest
from openpyxl import Workbook

from hierarchy.errors import SheetNotFoundError
from materialstudio.io import WorkbookCache, make_file_id, read_workbook, sheet_summaries


def _workbook(path=None):
    book = Workbook()
    planning = book.active
    planning.title = "Planning"
    planning.append(["Blok", "Week", "Les", "Datum", "Aantal"])
    planning.append(["  Blok 1 ", "Week 1", "Les 1", datetime(2024, 9, 2), 3])
    planning.append([None, None, "Les 2", None, 2.0])
    planning.append([None, None, None, None, None])

    hidden = book.create_sheet("Verborgen")
    hidden.append(["Blok"])
    hidden.append(["Blok 9"])
    hidden.sheet_state = "hidden"

    book.create_sheet("Leeg")

    notes = book.create_sheet("Notities")
    notes.append(["Opmerking"])
    notes.append(["Let op"])

    if path is None:
        buffer = BytesIO()
        book.save(buffer)
        buffer.seek(0)
        return buffer
    book.save(path)
    return path


def test_visible_non_empty_sheets_are_numbered_in_order(tmp_path):
    workbook = read_workbook(_workbook(tmp_path / "planning.xlsx"))

    assert workbook.name == "planning.xlsx"
    assert workbook.file_id.endswith("-planning.xlsx")
    assert workbook.sheet_names == ["Planning", "Notities"]
    assert [summary["id"] for summary in sheet_summaries(workbook)] == [1, 2]


def test_cells_are_normalised_to_trimmed_strings(tmp_path):
    sheet = read_workbook(_workbook(tmp_path / "planning.xlsx")).sheet(1)

    assert sheet.headers == ["Blok", "Week", "Les", "Datum", "Aantal"]
    assert sheet.rows[0] == ["Blok 1", "Week 1", "Les 1", "2024-09-02", "3"]
    assert sheet.rows[1] == ["", "", "Les 2", "", "2"]
    assert len(sheet.rows) == 2


def test_unknown_sheet_raises(tmp_path):
    workbook = read_workbook(_workbook(tmp_path / "planning.xlsx"))

    with pytest.raises(SheetNotFoundError):
        workbook.sheet(5)
    with pytest.raises(KeyError):
        workbook.sheet_by_name("Verborgen")


def test_missing_or_unsupported_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_workbook(tmp_path / "missing.xlsx")

    other = tmp_path / "planning.csv"
    other.write_text("Blok\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_workbook(other)


def test_cache_keeps_uploads_by_file_id():
    cache = WorkbookCache()

    workbook = cache.load(_workbook(), name="upload.xlsx")

    assert workbook.file_id in cache
    assert cache.sheet(workbook.file_id, 2).name == "Notities"
    assert cache.remove(workbook.file_id)
    with pytest.raises(KeyError):
        cache.get(workbook.file_id)


def test_file_id_uses_millisecond_timestamp():
    assert make_file_id("/tmp/plan.xlsx", timestamp=1700000000.5) == "1700000000500-plan.xlsx"
