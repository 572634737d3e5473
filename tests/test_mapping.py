import pytest

from hierarchy.mapping import (
    IGNORE,
    build_tree_from_mapping,
    default_mapping,
    parse_mapping,
    serialise_mapping,
)
from hierarchy.sheet import RawSheet


def test_default_mapping_chains_named_columns():
    assert default_mapping(["Blok", "", "Week", "Les"]) == {0: None, 2: 0, 3: 2}


def test_parse_mapping_accepts_stored_json_shape():
    mapping = parse_mapping({"0": None, "1": "0", "2": "Ignore", "3": ""})

    assert mapping == {0: None, 1: 0, 2: IGNORE, 3: None}
    assert serialise_mapping(mapping) == {"0": None, "1": 0, "2": IGNORE, "3": None}


@pytest.mark.parametrize(
    "raw",
    [
        {"0": 1, "1": 0},
        {"0": 0},
        {"x": None},
        {"0": "parent"},
    ],
)
def test_parse_mapping_rejects_invalid_entries(raw):
    with pytest.raises(ValueError):
        parse_mapping(raw)


def test_default_mapping_builds_nested_tree(lesson_sheet):
    tree = build_tree_from_mapping(lesson_sheet, default_mapping(lesson_sheet.headers))

    blok = tree.root.children[0]
    assert [node.value for node in tree.root.children] == ["Blok 1"]
    assert [week.value for week in blok.children] == ["Week 1", "Week 2"]
    week_two = blok.children[1]
    assert [les.value for les in week_two.children] == ["Les 1", "Les 2"]
    assert [node.value for node in week_two.children[1].children] == ["Werkblad 2b", "Werkblad 2c"]
    assert tree.check_levels() == []
    assert blok.children[0].is_template and week_two.is_duplicate


def test_unmapped_columns_become_leaf_properties(lesson_sheet):
    tree = build_tree_from_mapping(lesson_sheet, {0: None, 1: 0, 2: IGNORE})

    week_one = tree.root.children[0].children[0]
    assert week_one.children == []
    assert week_one.excel_cell == "B2"
    assert [(prop.column_name, prop.value, prop.excel_cell) for prop in week_one.properties] == [
        ("Werkblad", "Werkblad 1a", "D2")
    ]


def test_empty_sheet_gives_empty_tree():
    tree = build_tree_from_mapping(RawSheet(headers=["Blok"]), {0: None})

    assert len(tree) == 0
