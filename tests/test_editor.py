import pytest

from hierarchy.editor import (
    HierarchySession,
    add_child,
    add_column_children,
    add_sibling,
    assign_column,
    assign_specific_value,
    delete_node,
    toggle_layout,
)
from hierarchy.errors import ConfirmationRequired, DuplicateNodeError
from hierarchy.tree import HierarchyTree, LayoutMode, NodeKind


def _blok_with_child(session: HierarchySession):
    placeholder = session.tree.root.children[0]
    session.assign_column(placeholder.id, 0)
    blok = session.tree.root.children[0]
    child = session.add_child(blok.id)
    return blok, child


def _assert_levels(tree: HierarchyTree) -> None:
    for node in tree.walk():
        assert node.level == tree.parent_of(node).level + 1


def test_assigning_week_column_creates_template_and_duplicate_sibling(session):
    blok, child = _blok_with_child(session)
    assert blok.value == "Blok 1"
    assert child.level == 1

    nodes = session.assign_column(child.id, 1)

    assert [node.value for node in blok.children] == ["Week 1", "Week 2"]
    assert nodes[0] is child
    assert child.is_template
    assert blok.children[1].is_duplicate
    assert blok.children[1].template_id == child.id
    assert child.excel_cell == "B2"
    assert blok.children[1].excel_cell == "B5"


def test_first_edit_clears_placeholder(session):
    placeholder = session.tree.root.children[0]
    assert placeholder.kind is NodeKind.PLACEHOLDER

    session.assign_column(placeholder.id, 0)

    assert not placeholder.is_placeholder
    assert placeholder.value == "Blok 1"


def test_single_value_assignment_clears_children(session):
    blok, child = _blok_with_child(session)
    session.add_child(child.id)

    session.assign_column(blok.id, 0)

    assert blok.value == "Blok 1"
    assert blok.children == []


def test_no_values_leaves_node_blank(lesson_sheet):
    session = HierarchySession(lesson_sheet)
    blok, child = _blok_with_child(session)
    session.assign_column(child.id, 1)
    week = blok.children[0]
    les = session.add_child(week.id)
    session.assign_column(les.id, 2)
    werkblad = session.add_child(les.id)

    session.assign_column(werkblad.id, 3)
    empty_column = session.add_sibling(werkblad.id)
    lesson_sheet.headers.append("Leeg")
    for row in lesson_sheet.rows:
        row.append("")
    session.assign_column(empty_column.id, 4)

    assert empty_column.column_name == "Leeg"
    assert empty_column.value == ""


def test_duplicates_refuse_edits(session):
    blok, child = _blok_with_child(session)
    session.assign_column(child.id, 1)
    duplicate = blok.children[1]
    before = session.tree.as_dict()

    for action in (
        lambda: session.add_child(duplicate.id),
        lambda: session.add_sibling(duplicate.id),
        lambda: session.assign_column(duplicate.id, 2),
        lambda: session.toggle_layout(duplicate.id),
        lambda: session.delete_node(duplicate.id, confirmed=True),
    ):
        with pytest.raises(DuplicateNodeError):
            action()

    assert session.tree.as_dict() == before


def test_template_child_is_replicated_to_duplicate(session):
    blok, child = _blok_with_child(session)
    session.assign_column(child.id, 1)
    week_one, week_two = blok.children

    les = session.add_child(week_one.id)
    session.assign_column(les.id, 2)

    assert [node.value for node in week_one.children] == ["Les 1", "Les 2", "Les 3"]
    assert [node.value for node in week_two.children] == ["Les 1", "Les 2"]
    assert all(node.column_index == 2 for node in week_two.children)


def test_delete_requires_confirmation_and_keeps_tree(session):
    blok, child = _blok_with_child(session)
    session.assign_column(child.id, 1)
    before = session.tree.as_dict()

    with pytest.raises(ConfirmationRequired) as excinfo:
        session.delete_node(child.id)
    assert excinfo.value.affected == 1
    assert session.tree.as_dict() == before

    with pytest.raises(ConfirmationRequired):
        session.delete_node(blok.id)

    session.delete_node(child.id, confirmed=True)
    remaining = session.tree.get(blok.id).children
    assert len(remaining) == 1
    assert remaining[0].kind is NodeKind.BOUND


def test_deleting_last_node_restores_placeholder(session):
    placeholder = session.tree.root.children[0]

    session.delete_node(placeholder.id)

    assert len(session.tree) == 1
    assert session.tree.root.children[0].kind is NodeKind.PLACEHOLDER


def test_levels_hold_after_mixed_edits(session):
    blok, child = _blok_with_child(session)
    session.assign_column(child.id, 1)
    sibling = session.add_sibling(blok.id)
    nested = session.add_child(sibling.id)
    session.add_child(nested.id)
    les = session.add_child(child.id)
    session.assign_column(les.id, 2)
    session.delete_node(nested.id, confirmed=True)

    _assert_levels(session.tree)
    assert session.tree.check_levels() == []


def test_failed_action_rolls_back(session, monkeypatch):
    blok, child = _blok_with_child(session)
    before = session.tree.as_dict()

    def explode(*args, **kwargs):
        raise RuntimeError("measurement surface unavailable")

    monkeypatch.setattr("hierarchy.editor.propagate", explode)
    with pytest.raises(RuntimeError):
        session.assign_column(child.id, 1)

    assert session.tree.as_dict() == before


def test_on_change_runs_once_per_action(lesson_sheet):
    changes = []
    session = HierarchySession(lesson_sheet, on_change=changes.append)
    placeholder = session.tree.root.children[0]

    session.assign_column(placeholder.id, 0)
    session.add_child(placeholder.id)

    assert len(changes) == 2
    assert changes[-1] is session.tree


def test_transaction_refuses_reentry(session):
    with session.transaction():
        with pytest.raises(Exception) as excinfo:
            with session.transaction():
                pass
    assert "still running" in str(excinfo.value)


def test_assign_specific_value_uses_first_row_of_context(lesson_sheet):
    tree = HierarchyTree.with_placeholder()
    blok = tree.root.children[0]
    assign_column(tree, lesson_sheet, blok, 0)
    week = add_child(tree, blok)
    assign_column(tree, lesson_sheet, week, 1)
    week_two = blok.children[1]
    assert week_two.value == "Week 2"

    werkblad = add_child(tree, week)
    assign_specific_value(tree, lesson_sheet, werkblad, 3)

    assert werkblad.value == "Werkblad 1a"
    assert werkblad.excel_cell == "D2"
    assert week_two.children[0].column_index == 3


def test_add_column_children_replaces_empty_container(lesson_sheet):
    tree = HierarchyTree.with_placeholder()
    blok = tree.root.children[0]
    assign_column(tree, lesson_sheet, blok, 0)
    container = add_child(tree, blok)

    created = add_column_children(tree, lesson_sheet, container, [2, 3])

    assert tree.find(container.id) is None
    assert [node.value for node in blok.children] == ["Les 1", "Werkblad 1a"]
    assert [node.level for node in created] == [1, 1]


def test_add_column_children_under_bound_parent(lesson_sheet):
    tree = HierarchyTree.with_placeholder()
    blok = tree.root.children[0]
    assign_column(tree, lesson_sheet, blok, 0)

    created = add_column_children(tree, lesson_sheet, blok, [1])

    assert created[0] in blok.children
    assert created[0].value == "Week 1"


def test_toggle_layout_applies_to_nodes_of_same_type(lesson_sheet):
    tree = HierarchyTree.with_placeholder()
    blok = tree.root.children[0]
    assign_column(tree, lesson_sheet, blok, 0)
    week = add_child(tree, blok)
    assign_column(tree, lesson_sheet, week, 1)

    assert toggle_layout(tree, week) is LayoutMode.VERTICAL
    assert all(node.layout_mode is LayoutMode.VERTICAL for node in blok.children)
    assert blok.layout_mode is LayoutMode.HORIZONTAL


def test_module_delete_checks_parent(lesson_sheet):
    tree = HierarchyTree.with_placeholder()
    blok = tree.root.children[0]
    child = add_child(tree, blok)
    sibling = add_sibling(tree, blok)

    with pytest.raises(Exception):
        delete_node(tree, sibling, child)
    assert delete_node(tree, blok, child) is child
