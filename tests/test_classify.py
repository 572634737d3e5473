import pytest

from hierarchy.classify import classify, dangling_duplicates, group_by_type, template_for
from hierarchy.editor import delete_node
from hierarchy.errors import ConfirmationRequired
from hierarchy.tree import HierarchyNode, HierarchyTree, NodeKind, make_root


def _week(value: str) -> HierarchyNode:
    return HierarchyNode(value=value, column_name="Week", column_index=1)


def _flags(tree: HierarchyTree):
    return [(node.id, node.is_template, node.is_duplicate, node.template_id) for node in tree.walk()]


def _tree_with_weeks(count: int) -> HierarchyTree:
    root = make_root()
    for index in range(count):
        blok = HierarchyNode(value=f"Blok {index + 1}", column_name="Blok", column_index=0)
        blok.children.append(_week("Week 1"))
        root.children.append(blok)
    return HierarchyTree(root)


def test_first_node_in_pre_order_becomes_template():
    tree = _tree_with_weeks(3)
    classify(tree)

    weeks = [blok.children[0] for blok in tree.root.children]
    bloks = tree.root.children
    assert weeks[0].is_template and not weeks[0].is_duplicate
    assert all(week.is_duplicate and week.template_id == weeks[0].id for week in weeks[1:])
    assert bloks[0].kind is NodeKind.TEMPLATE
    assert bloks[1].kind is NodeKind.DUPLICATE
    assert template_for(tree, weeks[2]) is weeks[0]


def test_classify_twice_equals_classify_once():
    tree = _tree_with_weeks(3)
    classify(tree)
    once = _flags(tree)
    classify(tree)

    assert _flags(tree) == once


def test_single_members_and_unbound_nodes_get_no_role():
    root = make_root()
    lone = _week("Week 1")
    lone.mark_template()
    container = HierarchyNode()
    container.mark_duplicate("node-elsewhere")
    root.children.extend([lone, container])
    tree = HierarchyTree(root)

    groups = classify(tree)

    assert list(groups) == [("Week", 1)]
    assert lone.kind is NodeKind.BOUND
    assert container.kind is NodeKind.CONTAINER
    assert container.template_id is None


def test_group_key_uses_name_and_index():
    root = make_root()
    root.children.extend(
        [
            HierarchyNode(value="a", column_name="Les", column_index=2),
            HierarchyNode(value="b", column_name="Les", column_index=3),
        ]
    )
    tree = HierarchyTree(root)

    assert len(group_by_type(tree)) == 2
    classify(tree)
    assert not any(node.is_template or node.is_duplicate for node in tree.walk())


def test_deleting_template_with_three_duplicates_promotes_a_survivor():
    root = make_root()
    nodes = [_week(f"Week {index}") for index in range(1, 5)]
    root.children.extend(nodes)
    tree = HierarchyTree(root)
    classify(tree)
    template, survivors = nodes[0], nodes[1:]

    with pytest.raises(ConfirmationRequired) as excinfo:
        delete_node(tree, tree.root, template)
    assert excinfo.value.affected == 3
    assert tree.find(template.id) is template

    delete_node(tree, tree.root, template, confirmed=True)

    assert tree.find(template.id) is None
    assert {node.id for node in dangling_duplicates(tree)} == {node.id for node in survivors}

    classify(tree)
    assert survivors[0].is_template
    assert all(node.template_id == survivors[0].id for node in survivors[1:])
    assert dangling_duplicates(tree) == []


def test_deleting_template_with_one_duplicate_clears_both_flags():
    root = make_root()
    template, duplicate = _week("Week 1"), _week("Week 2")
    root.children.extend([template, duplicate])
    tree = HierarchyTree(root)
    classify(tree)

    delete_node(tree, tree.root, template, confirmed=True)
    classify(tree)

    assert not duplicate.is_template
    assert not duplicate.is_duplicate
    assert duplicate.template_id is None
