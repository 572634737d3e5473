from hierarchy.classify import classify
from hierarchy.editor import HierarchySession
from hierarchy.replicate import replicate
from hierarchy.sheet import RawSheet
from hierarchy.tree import HierarchyNode, HierarchyTree, make_root


def _bound(value: str, column: int, name: str) -> HierarchyNode:
    return HierarchyNode(value=value, column_name=name, column_index=column)


def _chain_sheet() -> RawSheet:
    return RawSheet.from_values(
        [
            ["Blok", "Week", "Les", "Werkblad"],
            ["Blok 1", "Week 1", "Les 1", "w1"],
            ["Blok 2", "Week 2", "Les 2", "w2"],
        ]
    )


def _two_bloks_with_chain() -> HierarchyTree:
    root = make_root()
    template = _bound("Blok 1", 0, "Blok")
    week = _bound("Week 1", 1, "Week")
    les = _bound("Les 1", 2, "Les")
    les.children.append(_bound("w1", 3, "Werkblad"))
    week.children.append(les)
    template.children.append(week)
    root.children.extend([template, _bound("Blok 2", 0, "Blok")])
    tree = HierarchyTree(root)
    classify(tree)
    return tree


def test_duplicates_get_values_from_their_own_context(two_blok_sheet):
    session = HierarchySession(two_blok_sheet)
    placeholder = session.tree.root.children[0]
    session.assign_column(placeholder.id, 0)
    blok_one, blok_two = session.tree.root.children
    assert blok_one.is_template and blok_two.is_duplicate

    week = session.add_child(blok_one.id)
    session.assign_column(week.id, 1)
    assert [child.value for child in blok_two.children] == ["Week 1"]

    les = session.add_child(week.id)
    session.assign_column(les.id, 2)

    week_one = session.tree.get(week.id)
    week_two = session.tree.get(blok_two.id).children[0]
    assert [child.value for child in week_one.children] == ["Les A1", "Les A2"]
    assert [child.value for child in week_two.children] == ["Les B1"]
    assert week_two.is_duplicate and week_two.template_id == week_one.id


def test_replicate_on_non_template_is_a_no_op():
    tree = _two_bloks_with_chain()
    week = tree.root.children[0].children[0]
    before = tree.as_dict()

    report = replicate(tree, week, _chain_sheet())

    assert report.created == 0
    assert not report.changed
    assert tree.as_dict() == before


def test_unbound_children_are_not_propagated():
    tree = _two_bloks_with_chain()
    template, duplicate = tree.root.children
    template.children.append(HierarchyNode(value="vrije tekst"))
    tree.reindex()

    replicate(tree, template, _chain_sheet())

    assert all(child.column_index is not None for child in duplicate.children)
    assert "vrije tekst" not in [node.value for node in tree.walk() if node is not template.children[-1]]


def test_grandchild_shape_is_cloned_with_local_values():
    tree = _two_bloks_with_chain()
    template, duplicate = tree.root.children
    calls = []

    report = replicate(tree, template, _chain_sheet(), on_complete=calls.append)

    week = duplicate.children[0]
    les = week.children[0]
    assert (week.value, les.value, les.children[0].value) == ("Week 2", "Les 2", "w2")
    assert report.created == 3
    assert report.truncated == 0
    assert calls == [report]
    assert tree.check_levels() == []


def test_existing_columns_are_skipped():
    tree = _two_bloks_with_chain()
    template, duplicate = tree.root.children
    replicate(tree, template, _chain_sheet())
    count = len(tree)

    report = replicate(tree, template, _chain_sheet())

    assert report.created == 0
    assert len(tree) == count


def test_clone_depth_is_bounded_and_reported():
    tree = _two_bloks_with_chain()
    template, duplicate = tree.root.children

    report = replicate(tree, template, _chain_sheet(), max_depth=1)

    les = duplicate.children[0].children[0]
    assert les.value == "Les 2"
    assert les.children == []
    assert report.truncated == 1
    assert report.created == 2


def test_dangling_template_reference_is_skipped():
    root = make_root()
    template = _bound("Blok 1", 0, "Blok")
    template.children.append(_bound("Week 1", 1, "Week"))
    duplicate = _bound("Blok 2", 0, "Blok")
    root.children.extend([template, duplicate])
    tree = HierarchyTree(root)
    template.mark_template()
    duplicate.mark_duplicate("node-deleted")

    report = replicate(tree, template, _chain_sheet())

    assert report.skipped_dangling == [duplicate.id]
    assert duplicate.children == []
    assert duplicate.template_id == template.id
