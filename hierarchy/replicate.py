"""Propagation of a template's structure to every duplicate of its type."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Mapping, Optional, Pattern, Tuple

from .binding import bind_values
from .classify import classify, nodes_of_type
from .sheet import RawSheet
from .tree import HierarchyNode, HierarchyTree

logger = logging.getLogger(__name__)

DEFAULT_MAX_CLONE_DEPTH = 5


@dataclass
class ReplicationReport:
    template_id: Optional[str] = None
    duplicates: int = 0
    created: int = 0
    skipped_dangling: List[str] = field(default_factory=list)
    truncated: int = 0

    @property
    def changed(self) -> bool:
        return self.created > 0


def replicate(
    tree: HierarchyTree,
    template: HierarchyNode,
    sheet: RawSheet,
    *,
    max_depth: int = DEFAULT_MAX_CLONE_DEPTH,
    strict_labels: Optional[Mapping[str, Pattern[str]]] = None,
    on_complete: Optional[Callable[[ReplicationReport], None]] = None,
) -> ReplicationReport:
    """Copy the column assignments below ``template`` onto its duplicates.

    Only children bound to a column are carried over, and each duplicate
    resolves their values from its own ancestor context.  ``on_complete`` is
    called once after every duplicate has been processed.
    """

    report = ReplicationReport(template_id=template.id)
    if not template.is_template:
        logger.debug("Node %s is not a template; nothing to replicate", template.id)
        return report

    shape = [child for child in template.children if child.column_index is not None]
    duplicates = nodes_of_type(tree, template.type_key, exclude=template)
    report.duplicates = len(duplicates)

    for duplicate in duplicates:
        if duplicate.template_id != template.id or tree.find(duplicate.template_id) is None:
            logger.warning(
                "Skipping duplicate %s: template reference %s does not resolve",
                duplicate.id,
                duplicate.template_id,
            )
            report.skipped_dangling.append(duplicate.id)
            continue
        for source in shape:
            if duplicate.child_for_column(source.column_index) is not None:
                continue
            created = _populate(
                tree,
                sheet,
                duplicate,
                source,
                strict_labels=strict_labels,
            )
            report.created += len(created)
            if source.children:
                for target in created:
                    if target.children:
                        continue
                    made, truncated = _clone_shape(
                        tree,
                        sheet,
                        source,
                        target,
                        max_depth=max_depth,
                        strict_labels=strict_labels,
                    )
                    report.created += made
                    report.truncated += truncated

    tree.reindex()
    classify(tree)
    logger.info(
        "Replicated template %s onto %d duplicate(s); %d node(s) created",
        template.id,
        report.duplicates,
        report.created,
    )
    if on_complete is not None:
        on_complete(report)
    return report


def _populate(
    tree: HierarchyTree,
    sheet: RawSheet,
    parent: HierarchyNode,
    source: HierarchyNode,
    *,
    strict_labels: Optional[Mapping[str, Pattern[str]]],
) -> List[HierarchyNode]:
    """Create a child of ``parent`` shaped like ``source`` with its own values."""

    child = HierarchyNode(
        column_name=source.column_name,
        column_index=source.column_index,
        layout_mode=source.layout_mode,
        level=parent.level + 1,
    )
    tree.append_child(parent, child)
    return bind_values(
        tree,
        sheet,
        child,
        source.column_index,
        strict=True,
        strict_labels=strict_labels,
        clear_children=False,
    )


def _clone_shape(
    tree: HierarchyTree,
    sheet: RawSheet,
    source: HierarchyNode,
    target: HierarchyNode,
    *,
    max_depth: int,
    strict_labels: Optional[Mapping[str, Pattern[str]]],
) -> Tuple[int, int]:
    """Rebuild the subtree shape of ``source`` under ``target``.

    Works breadth first with an explicit queue; levels deeper than
    ``max_depth`` are dropped and counted as truncated.
    """

    created = 0
    truncated = 0
    queue: Deque[Tuple[HierarchyNode, HierarchyNode, int]] = deque([(source, target, 1)])
    while queue:
        shape_parent, new_parent, depth = queue.popleft()
        if depth > max_depth:
            truncated += 1
            logger.warning(
                "Clone depth %d reached below %s; deeper levels are not copied",
                max_depth,
                new_parent.id,
            )
            continue
        seen_columns = set()
        for shape_child in shape_parent.children:
            column = shape_child.column_index
            if column is None or column in seen_columns:
                continue
            if new_parent.child_for_column(column) is not None:
                continue
            seen_columns.add(column)
            made = _populate(tree, sheet, new_parent, shape_child, strict_labels=strict_labels)
            created += len(made)
            if shape_child.children:
                for node in made:
                    queue.append((shape_child, node, depth + 1))
    tree.reindex()
    return created, truncated


__all__ = ["DEFAULT_MAX_CLONE_DEPTH", "ReplicationReport", "replicate"]
