"""Template/duplicate classification of nodes sharing a column type."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .tree import HierarchyNode, HierarchyTree, TypeKey

logger = logging.getLogger(__name__)


def group_by_type(tree: HierarchyTree) -> Dict[TypeKey, List[HierarchyNode]]:
    """Bound nodes grouped by ``(column_name, column_index)`` in pre-order."""

    groups: Dict[TypeKey, List[HierarchyNode]] = {}
    for node in tree.walk():
        key = node.type_key
        if key is None:
            continue
        groups.setdefault(key, []).append(node)
    return groups


def nodes_of_type(
    tree: HierarchyTree,
    key: Optional[TypeKey],
    exclude: Optional[HierarchyNode] = None,
) -> List[HierarchyNode]:
    if key is None:
        return []
    return [
        node
        for node in tree.walk()
        if node.type_key == key and node is not exclude
    ]


def classify(tree: HierarchyTree) -> Dict[TypeKey, List[HierarchyNode]]:
    """Mark the first node of every multi-member type as template.

    Other members become duplicates pointing at it; single members and
    unbound nodes lose both flags.  Running it again gives the same result.
    """

    groups = group_by_type(tree)
    for node in tree.walk():
        if node.type_key is None and (node.is_template or node.is_duplicate):
            node.clear_role()

    templates = 0
    for members in groups.values():
        if len(members) < 2:
            members[0].clear_role()
            continue
        template = members[0]
        template.mark_template()
        for member in members[1:]:
            member.mark_duplicate(template.id)
        templates += 1

    logger.debug("Classified %d type group(s), %d with a template", len(groups), templates)
    return groups


def template_for(tree: HierarchyTree, node: HierarchyNode) -> Optional[HierarchyNode]:
    """Template of a duplicate, or ``None`` when the reference dangles."""

    if not node.is_duplicate:
        return None
    template = tree.find(node.template_id)
    if template is None or not template.is_template:
        return None
    return template


def dangling_duplicates(tree: HierarchyTree) -> List[HierarchyNode]:
    return [
        node
        for node in tree.walk()
        if node.is_duplicate and template_for(tree, node) is None
    ]


__all__ = [
    "classify",
    "dangling_duplicates",
    "group_by_type",
    "nodes_of_type",
    "template_for",
]
