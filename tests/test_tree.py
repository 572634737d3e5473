from hierarchy.resolver import ContextEntry
from hierarchy.tree import (
    PLACEHOLDER_LABEL,
    HierarchyNode,
    HierarchyTree,
    LayoutMode,
    NodeKind,
    make_root,
)


def _sample_tree() -> HierarchyTree:
    root = make_root()
    blok = HierarchyNode(value="Blok 1", column_name="Blok", column_index=0)
    week = HierarchyNode(value="Week 1", column_name="Week", column_index=1)
    les = HierarchyNode(value="Les 1", column_name="Les", column_index=2)
    empty = HierarchyNode()
    week.children.extend([les, empty])
    blok.children.append(week)
    root.children.append(blok)
    return HierarchyTree(root)


def test_placeholder_tree_starts_with_one_node():
    tree = HierarchyTree.with_placeholder()

    nodes = list(tree)
    assert len(nodes) == 1
    assert nodes[0].value == PLACEHOLDER_LABEL
    assert nodes[0].kind is NodeKind.PLACEHOLDER
    assert nodes[0].level == 0
    assert tree.root.level == -1


def test_reindex_restores_levels_and_parents():
    tree = _sample_tree()
    blok = tree.root.children[0]
    week = blok.children[0]
    week.level = 7

    tree.reindex()

    assert week.level == 1
    assert tree.parent_of(week) is blok
    assert tree.check_levels() == []
    assert [node.value for node in tree.ancestors(week.children[0])] == ["Week 1", "Blok 1"]


def test_walk_is_pre_order():
    tree = _sample_tree()

    assert [node.value for node in tree.walk()] == ["Blok 1", "Week 1", "Les 1", ""]
    assert len(tree) == 4


def test_row_context_skips_unbound_or_blank_ancestors():
    tree = _sample_tree()
    week = tree.root.children[0].children[0]
    les, empty = week.children
    blank = HierarchyNode(column_name="Les", column_index=2)
    tree.append_child(empty, blank)

    assert tree.row_context(les) == [ContextEntry(0, "Blok 1"), ContextEntry(1, "Week 1")]
    assert tree.row_context(blank) == [ContextEntry(0, "Blok 1"), ContextEntry(1, "Week 1")]
    assert tree.context_below(les) == [
        ContextEntry(0, "Blok 1"),
        ContextEntry(1, "Week 1"),
        ContextEntry(2, "Les 1"),
    ]


def test_used_columns_cover_ancestors_siblings_and_descendants():
    tree = _sample_tree()
    week = tree.root.children[0].children[0]
    empty = week.children[1]

    assert tree.used_columns(empty) == [0, 1, 2]
    assert tree.used_columns(tree.root.children[0]) == [1, 2]


def test_insert_after_and_remove_keep_order():
    tree = _sample_tree()
    week = tree.root.children[0].children[0]
    les = week.children[0]
    extra = HierarchyNode(value="Les 2", column_name="Les", column_index=2)

    tree.insert_after(les, [extra])
    assert [child.value for child in week.children] == ["Les 1", "Les 2", ""]
    assert extra.level == 2

    assert tree.remove(extra) is week
    assert tree.find(extra.id) is None


def test_dict_round_trip_keeps_structure_without_parents():
    tree = _sample_tree()
    week = tree.root.children[0].children[0]
    week.layout_mode = LayoutMode.VERTICAL
    week.mark_template()

    data = tree.as_dict()
    assert "parent" not in data["children"][0]
    restored = HierarchyTree.from_dict(data)

    assert restored.root.is_root
    assert [node.id for node in restored.walk()] == [node.id for node in tree.walk()]
    restored_week = restored.get(week.id)
    assert restored_week.layout_mode is LayoutMode.VERTICAL
    assert restored_week.kind is NodeKind.TEMPLATE
    assert restored.parent_of(restored_week).value == "Blok 1"


def test_snapshot_restore_discards_later_changes():
    tree = _sample_tree()
    snapshot = tree.snapshot()
    tree.root.children[0].children.clear()
    tree.reindex()

    tree.restore(snapshot)

    assert [node.value for node in tree.walk()] == ["Blok 1", "Week 1", "Les 1", ""]
