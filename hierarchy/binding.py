"""Binding a node to a sheet column and materialising the resolved values."""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Pattern

from .resolver import ContextEntry, first_row_value, resolve_row_indices, unique_column_values
from .sheet import RawSheet, excel_cell
from .tree import HierarchyNode, HierarchyTree

logger = logging.getLogger(__name__)


def parent_context(tree: HierarchyTree, node: HierarchyNode):
    parent = tree.parent_of(node)
    if parent is None:
        return []
    return tree.context_below(parent)


def locate_cell(sheet: RawSheet, context, column_index: int, value: str) -> Optional[str]:
    """Excel coordinate of the first row where ``value`` applies."""

    if not value:
        return None
    indices = resolve_row_indices(sheet, [*context, ContextEntry(column_index, value)])
    if not indices:
        return None
    return excel_cell(column_index, indices[0])


def bind_values(
    tree: HierarchyTree,
    sheet: RawSheet,
    node: HierarchyNode,
    column_index: int,
    *,
    strict: bool = False,
    strict_labels: Optional[Mapping[str, Pattern[str]]] = None,
    clear_children: bool = True,
) -> List[HierarchyNode]:
    """Bind ``node`` to ``column_index`` and fan multiple values out as siblings.

    Returns the nodes carrying the resolved values, ``node`` first.  Without
    any value the node stays blank instead of showing the column name.
    """

    context = parent_context(tree, node)
    node.bind(column_index, sheet.column_label(column_index))
    values = unique_column_values(
        sheet, context, column_index, strict=strict, strict_labels=strict_labels
    )

    if not values:
        node.value = ""
        node.excel_cell = None
        logger.info("No values for column %s under %s; leaving node blank", column_index, node.id)
        return [node]

    node.value = values[0]
    node.excel_cell = locate_cell(sheet, context, column_index, node.value)
    if len(values) == 1:
        if clear_children and node.children:
            node.children = []
            tree.reindex()
        return [node]

    node.mark_template()
    taken = {
        sibling.value
        for sibling in tree.siblings(node)
        if sibling.column_index == column_index
    }
    siblings: List[HierarchyNode] = []
    for value in values[1:]:
        if value in taken:
            continue
        sibling = HierarchyNode(
            value=value,
            column_name=node.column_name,
            column_index=column_index,
            level=node.level,
            layout_mode=node.layout_mode,
            excel_cell=locate_cell(sheet, context, column_index, value),
        )
        sibling.mark_duplicate(node.id)
        siblings.append(sibling)
    if siblings:
        tree.insert_after(node, siblings)
    logger.info(
        "Column '%s' resolved to %d value(s); created %d sibling(s)",
        node.column_name,
        len(values),
        len(siblings),
    )
    return [node, *siblings]


def bind_first_value(
    tree: HierarchyTree,
    sheet: RawSheet,
    node: HierarchyNode,
    column_index: int,
    *,
    label_columns: Optional[List[str]] = None,
) -> HierarchyNode:
    """Bind ``node`` and take the value from the first row of its context.

    When the node is itself a label column (``Blok``, ``Week``, ``Les``) its
    own current value narrows the context before the lookup.
    """

    context = parent_context(tree, node)
    labels = {label.lower() for label in (label_columns or [])}
    if (
        node.column_index is not None
        and node.value
        and sheet.header(node.column_index).lower() in labels
    ):
        context = [*context, ContextEntry(node.column_index, node.value)]
    node.bind(column_index, sheet.column_label(column_index))
    node.value, row_index = first_row_value(sheet, context, column_index)
    node.excel_cell = excel_cell(column_index, row_index) if row_index is not None else None
    return node


__all__ = ["bind_first_value", "bind_values", "locate_cell", "parent_context"]
