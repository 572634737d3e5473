import json

from openpyxl import Workbook

from materialstudio.cli import main
from materialstudio.storage import MappingStore


def _write_workbook(path):
    book = Workbook()
    sheet = book.active
    sheet.title = "Planning"
    sheet.append(["Blok", "Week", "Les", "Instructie klas", "Instructie leerlingen"])
    sheet.append(["Blok 1", "Week 1", "Les 1", "schaar, lijm", "Leerlingen: potlood"])
    sheet.append([None, None, "Les 2", "papier", None])
    sheet.append([None, "Week 2", "Les 1", "2 fiches", None])
    sheet.append(["Blok 2", "Week 1", "Les 1", "krijt", None])
    book.save(path)
    return path


def _write_config(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "storage:\n  directory: state\noutput:\n  directory: out\n",
        encoding="utf-8",
    )
    return config_path


def test_list_export_writes_pdf_and_html(tmp_path):
    workbook = _write_workbook(tmp_path / "planning.xlsx")
    output_dir = tmp_path / "exports"

    exit_code = main([str(workbook), "--output-dir", str(output_dir), "--quiet"])

    assert exit_code == 0
    assert (output_dir / "planning_Planning.pdf").read_bytes().startswith(b"%PDF")
    html = (output_dir / "planning_Planning.html").read_text(encoding="utf-8")
    assert "fiches" in html


def test_list_export_prints_json_summary(tmp_path, capsys):
    workbook = _write_workbook(tmp_path / "planning.xlsx")
    config_path = _write_config(tmp_path)

    exit_code = main([str(workbook), "--config", str(config_path), "--json"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert sum(page["rows"] for page in payload["summary"]) == 3
    assert payload["totals"]["rows_per_page"] >= 1
    assert payload["files"]["pdf"].endswith("planning_Planning.pdf")


def test_hierarchy_export_uses_stored_mapping(tmp_path, capsys):
    workbook = _write_workbook(tmp_path / "planning.xlsx")
    config_path = _write_config(tmp_path)
    store = MappingStore(tmp_path / "state" / "hierarchy_configurations.json")
    store.save("planning.xlsx", 1, {0: None, 1: 0, 2: "ignore", 3: "ignore", 4: "ignore"})

    exit_code = main(
        [str(workbook), "--config", str(config_path), "--mode", "hierarchy", "--mapping", "stored", "--json"]
    )

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert [row["node"] for row in payload["summary"]] == ["Blok 1", "Blok 2"]
    assert [row["children"] for row in payload["summary"]] == [2, 1]
    assert (tmp_path / "out" / "planning_Planning.pdf").exists()


def test_hierarchy_export_with_default_mapping(tmp_path):
    workbook = _write_workbook(tmp_path / "planning.xlsx")
    config_path = _write_config(tmp_path)

    exit_code = main([str(workbook), "--config", str(config_path), "--mode", "hierarchy", "--quiet"])

    assert exit_code == 0
    assert "Les 2" in (tmp_path / "out" / "planning_Planning.html").read_text(encoding="utf-8")


def test_missing_workbook_or_sheet_fails(tmp_path):
    workbook = _write_workbook(tmp_path / "planning.xlsx")

    assert main([str(tmp_path / "missing.xlsx"), "--quiet"]) == 1
    assert main([str(workbook), "--sheet", "4", "--output-dir", str(tmp_path), "--quiet"]) == 1
