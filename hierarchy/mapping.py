"""Column-to-parent mappings and the tree they describe."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .classify import classify
from .sheet import RawSheet, excel_cell
from .tree import HierarchyNode, HierarchyTree, NodeProperty, make_root

logger = logging.getLogger(__name__)

IGNORE = "ignore"

ParentRef = Union[int, None, str]
HierarchyMapping = Dict[int, ParentRef]


def default_mapping(headers: Sequence[str]) -> HierarchyMapping:
    """First named column on top, every later one under its predecessor."""

    mapping: HierarchyMapping = {}
    previous: Optional[int] = None
    for index, header in enumerate(headers):
        if not str(header or "").strip():
            continue
        mapping[index] = previous
        previous = index
    return mapping


def parse_mapping(raw: Mapping[Any, Any]) -> HierarchyMapping:
    """Normalise a stored mapping (string keys, ``null``/``"ignore"`` values)."""

    mapping: HierarchyMapping = {}
    for key, value in raw.items():
        try:
            column = int(key)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid column index '{key}' in hierarchy mapping") from exc
        if value is None or value == "":
            mapping[column] = None
        elif isinstance(value, str) and value.strip().lower() == IGNORE:
            mapping[column] = IGNORE
        else:
            try:
                mapping[column] = int(value)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Invalid parent '{value}' for column {column}") from exc
    validate_mapping(mapping)
    return mapping


def serialise_mapping(mapping: Mapping[int, ParentRef]) -> Dict[str, ParentRef]:
    return {str(column): parent for column, parent in sorted(mapping.items())}


def validate_mapping(mapping: Mapping[int, ParentRef]) -> None:
    """Reject self references and parent cycles."""

    for column in mapping:
        seen = {column}
        parent = mapping.get(column)
        while isinstance(parent, int):
            if parent in seen:
                raise ValueError(f"Column {column} is part of a parent cycle")
            seen.add(parent)
            parent = mapping.get(parent)


def _children_map(mapping: Mapping[int, ParentRef]) -> Dict[int, List[int]]:
    children: Dict[int, List[int]] = {}
    for column in sorted(mapping):
        parent = mapping[column]
        if isinstance(parent, int):
            children.setdefault(parent, []).append(column)
    return children


def build_tree_from_mapping(
    sheet: RawSheet,
    mapping: Mapping[int, ParentRef],
    label_columns: Sequence[str] = ("Blok", "Week", "Les"),
) -> HierarchyTree:
    """Build the hierarchy described by ``mapping`` from the sheet rows.

    Values are forward filled down the sheet.  Label columns produce one node
    per distinct value below a parent; any other column produces one node per
    row, blank cells included.  Columns absent from the mapping become node
    properties of the leaves.
    """

    validate_mapping(mapping)
    root = make_root()
    if sheet.is_empty:
        return HierarchyTree(root)

    labels = {label.lower() for label in label_columns}
    top_columns = sorted(column for column, parent in mapping.items() if parent is None)
    children_map = _children_map(mapping)
    index: Dict[Tuple[Any, ...], HierarchyNode] = {}
    running: Dict[int, str] = {}

    def node_for(parent: HierarchyNode, column: int, value: str, row_index: int) -> HierarchyNode:
        if sheet.header(column).lower() in labels or parent is root:
            key: Tuple[Any, ...] = (parent.id, column, value)
        else:
            key = (parent.id, column, row_index, value)
        node = index.get(key)
        if node is None:
            node = HierarchyNode(
                value=value,
                column_name=sheet.column_label(column),
                column_index=column,
                level=parent.level + 1,
                excel_cell=excel_cell(column, row_index),
            )
            parent.children.append(node)
            index[key] = node
        return node

    def add_properties(node: HierarchyNode, row: List[str], row_index: int) -> None:
        present = {prop.column_index for prop in node.properties}
        for column in range(sheet.column_count):
            if column in mapping or column in present:
                continue
            node.properties.append(
                NodeProperty(
                    column_index=column,
                    column_name=sheet.column_label(column),
                    value=row[column],
                    excel_cell=excel_cell(column, row_index),
                )
            )

    def process(parent: HierarchyNode, parent_column: int, row: List[str], row_index: int) -> None:
        for column in children_map.get(parent_column, []):
            child = node_for(parent, column, running.get(column, ""), row_index)
            process(child, column, row, row_index)
            if not children_map.get(column) or not child.children:
                add_properties(child, row, row_index)

    for row_index, row in enumerate(sheet.rows):
        for column in mapping:
            if 0 <= column < len(row) and row[column]:
                running[column] = row[column]
        for column in top_columns:
            value = running.get(column, "")
            if not value:
                continue
            top = node_for(root, column, value, row_index)
            process(top, column, row, row_index)

    tree = HierarchyTree(root)
    classify(tree)
    logger.info(
        "Built hierarchy for sheet '%s' with %d node(s) from %d mapped column(s)",
        sheet.name,
        len(tree),
        len(mapping),
    )
    return tree


__all__ = [
    "HierarchyMapping",
    "IGNORE",
    "build_tree_from_mapping",
    "default_mapping",
    "parse_mapping",
    "serialise_mapping",
    "validate_mapping",
]
