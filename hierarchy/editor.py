"""User edit operations on the hierarchy tree.

The module level functions operate on an explicit tree and sheet.
:class:`HierarchySession` bundles both with the active file/sheet ids and
runs every edit as one all-or-nothing action.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Mapping, Optional, Pattern, Sequence

from .binding import bind_first_value, bind_values
from .classify import classify, nodes_of_type
from .errors import ConfirmationRequired, DuplicateNodeError, HierarchyError
from .replicate import DEFAULT_MAX_CLONE_DEPTH, ReplicationReport, replicate
from .resolver import compile_strict_labels
from .sheet import RawSheet
from .tree import HierarchyNode, HierarchyTree, LayoutMode

logger = logging.getLogger(__name__)

DEFAULT_LABEL_COLUMNS = ["Blok", "Week", "Les"]


@dataclass
class EditOptions:
    strict_labels: Optional[Mapping[str, Pattern[str]]] = None
    label_columns: List[str] = field(default_factory=lambda: list(DEFAULT_LABEL_COLUMNS))
    max_clone_depth: int = DEFAULT_MAX_CLONE_DEPTH


def _ensure_editable(node: HierarchyNode) -> None:
    if node.is_duplicate:
        logger.warning("Refusing to edit duplicate node %s", node.id)
        raise DuplicateNodeError(node.id, node.template_id)


def _ensure_not_root(tree: HierarchyTree, node: HierarchyNode) -> None:
    if node is tree.root:
        raise HierarchyError("The root node cannot be edited")


def propagate(
    tree: HierarchyTree,
    sheet: RawSheet,
    node: HierarchyNode,
    options: Optional[EditOptions] = None,
) -> List[ReplicationReport]:
    """Classify, then replicate every template from ``node`` upwards."""

    options = options or EditOptions()
    classify(tree)
    reports: List[ReplicationReport] = []
    chain = [node, *tree.ancestors(node)] if node is not tree.root else []
    for candidate in chain:
        if tree.find(candidate.id) is None or not candidate.is_template:
            continue
        reports.append(
            replicate(
                tree,
                candidate,
                sheet,
                max_depth=options.max_clone_depth,
                strict_labels=options.strict_labels,
            )
        )
    return reports


def assign_column(
    tree: HierarchyTree,
    sheet: RawSheet,
    node: HierarchyNode,
    column_index: int,
    options: Optional[EditOptions] = None,
) -> List[HierarchyNode]:
    """Bind ``node`` to a column and resolve its value(s) from its context.

    No value leaves the node blank, one value is assigned directly and clears
    the children, several values turn the node into a template followed by
    duplicate siblings for the remaining values.
    """

    options = options or EditOptions()
    _ensure_not_root(tree, node)
    _ensure_editable(node)
    nodes = bind_values(
        tree, sheet, node, column_index, strict_labels=options.strict_labels
    )
    propagate(tree, sheet, node, options)
    return nodes


def assign_specific_value(
    tree: HierarchyTree,
    sheet: RawSheet,
    node: HierarchyNode,
    column_index: int,
    options: Optional[EditOptions] = None,
) -> HierarchyNode:
    options = options or EditOptions()
    _ensure_not_root(tree, node)
    _ensure_editable(node)
    bind_first_value(tree, sheet, node, column_index, label_columns=options.label_columns)
    propagate(tree, sheet, node, options)
    return node


def add_child(tree: HierarchyTree, parent: HierarchyNode) -> HierarchyNode:
    """Append an empty, unbound child to ``parent``."""

    _ensure_editable(parent)
    parent.is_placeholder = False
    child = HierarchyNode(level=parent.level + 1)
    tree.append_child(parent, child)
    logger.info("Added child %s under %s", child.id, parent.id)
    return child


def add_sibling(tree: HierarchyTree, node: HierarchyNode) -> HierarchyNode:
    """Insert an empty, unbound node directly after ``node``."""

    _ensure_not_root(tree, node)
    _ensure_editable(node)
    node.is_placeholder = False
    sibling = HierarchyNode(level=node.level, layout_mode=node.layout_mode)
    tree.insert_after(node, [sibling])
    logger.info("Added sibling %s after %s", sibling.id, node.id)
    return sibling


def add_column_children(
    tree: HierarchyTree,
    sheet: RawSheet,
    parent: HierarchyNode,
    columns: Sequence[int],
    options: Optional[EditOptions] = None,
) -> List[HierarchyNode]:
    """Create one child per selected column, each taking its first value.

    An empty unbound container is replaced by the new nodes instead of
    receiving them as children.
    """

    options = options or EditOptions()
    _ensure_editable(parent)
    target = parent
    position: Optional[int] = None
    if (
        parent is not tree.root
        and parent.column_index is None
        and not parent.children
    ):
        target = tree.parent_of(parent) or tree.root
        position = target.children.index(parent)
        tree.remove(parent)

    created: List[HierarchyNode] = []
    for column_index in columns:
        child = HierarchyNode(level=target.level + 1)
        if position is None:
            target.children.append(child)
        else:
            target.children.insert(position + len(created), child)
        tree.reindex()
        bind_first_value(tree, sheet, child, column_index, label_columns=options.label_columns)
        created.append(child)

    if created:
        propagate(tree, sheet, created[0], options)
    return created


def add_sibling_with_column(
    tree: HierarchyTree,
    sheet: RawSheet,
    node: HierarchyNode,
    column_index: int,
    options: Optional[EditOptions] = None,
) -> HierarchyNode:
    sibling = add_sibling(tree, node)
    bind_first_value(
        tree,
        sheet,
        sibling,
        column_index,
        label_columns=(options or EditOptions()).label_columns,
    )
    propagate(tree, sheet, sibling, options)
    return sibling


def delete_node(
    tree: HierarchyTree,
    parent: HierarchyNode,
    node: HierarchyNode,
    *,
    confirmed: bool = False,
) -> HierarchyNode:
    """Remove ``node`` and its subtree from ``parent``.

    Templates and nodes with children need ``confirmed=True``.  Duplicates of
    a deleted template keep their now dangling ``template_id`` until the tree
    is classified again.
    """

    _ensure_not_root(tree, node)
    _ensure_editable(node)
    if tree.parent_of(node) is not parent:
        raise HierarchyError(f"Node '{node.id}' is not a child of '{parent.id}'")

    if not confirmed:
        if node.is_template:
            affected = len(nodes_of_type(tree, node.type_key, exclude=node))
            raise ConfirmationRequired(
                node.id,
                f"'{node.value or node.column_name}' is a template for {affected} "
                "duplicate(s). Deleting it affects all of them. Continue?",
                affected=affected,
            )
        if node.children:
            raise ConfirmationRequired(
                node.id,
                f"'{node.value or 'container'}' has {len(node.children)} child node(s) "
                "that will be deleted as well. Continue?",
                affected=len(node.children),
            )

    tree.remove(node)
    logger.info("Deleted node %s from %s", node.id, parent.id)
    return node


def toggle_layout(tree: HierarchyTree, node: HierarchyNode) -> LayoutMode:
    """Flip the layout of ``node`` and of every node sharing its type."""

    _ensure_not_root(tree, node)
    _ensure_editable(node)
    layout = node.layout_mode.toggled()
    node.layout_mode = layout
    for peer in nodes_of_type(tree, node.type_key, exclude=node):
        peer.layout_mode = layout
    return layout


class HierarchySession:
    """Explicit editing context: sheet, tree and change notification."""

    def __init__(
        self,
        sheet: RawSheet,
        tree: Optional[HierarchyTree] = None,
        *,
        file_id: str = "",
        options: Optional[EditOptions] = None,
        on_change: Optional[Callable[[HierarchyTree], None]] = None,
    ) -> None:
        self.sheet = sheet
        self.tree = tree if tree is not None else HierarchyTree.with_placeholder()
        self.file_id = file_id
        self.options = options or EditOptions()
        self.on_change = on_change
        self._in_action = False

    @classmethod
    def from_settings(
        cls,
        sheet: RawSheet,
        *,
        strict_labels: Mapping[str, str],
        label_columns: Sequence[str],
        max_clone_depth: int,
        **kwargs,
    ) -> "HierarchySession":
        options = EditOptions(
            strict_labels=compile_strict_labels(strict_labels),
            label_columns=list(label_columns),
            max_clone_depth=max_clone_depth,
        )
        return cls(sheet, options=options, **kwargs)

    @contextmanager
    def transaction(self) -> Iterator[HierarchyTree]:
        """Restore the tree when the wrapped action raises."""

        if self._in_action:
            raise HierarchyError("Another edit is still running on this tree")
        snapshot = self.tree.snapshot()
        self._in_action = True
        try:
            yield self.tree
        except Exception:
            self.tree.restore(snapshot)
            raise
        finally:
            self._in_action = False
        if self.on_change is not None:
            self.on_change(self.tree)

    def node(self, node_id: str) -> HierarchyNode:
        return self.tree.get(node_id)

    def assign_column(self, node_id: str, column_index: int) -> List[HierarchyNode]:
        with self.transaction() as tree:
            return assign_column(tree, self.sheet, tree.get(node_id), column_index, self.options)

    def assign_specific_value(self, node_id: str, column_index: int) -> HierarchyNode:
        with self.transaction() as tree:
            return assign_specific_value(
                tree, self.sheet, tree.get(node_id), column_index, self.options
            )

    def add_child(self, parent_id: str) -> HierarchyNode:
        with self.transaction() as tree:
            return add_child(tree, tree.get(parent_id))

    def add_sibling(self, node_id: str) -> HierarchyNode:
        with self.transaction() as tree:
            return add_sibling(tree, tree.get(node_id))

    def add_column_children(self, parent_id: str, columns: Sequence[int]) -> List[HierarchyNode]:
        with self.transaction() as tree:
            return add_column_children(tree, self.sheet, tree.get(parent_id), columns, self.options)

    def add_sibling_with_column(self, node_id: str, column_index: int) -> HierarchyNode:
        with self.transaction() as tree:
            return add_sibling_with_column(
                tree, self.sheet, tree.get(node_id), column_index, self.options
            )

    def delete_node(self, node_id: str, *, confirmed: bool = False) -> HierarchyNode:
        with self.transaction() as tree:
            node = tree.get(node_id)
            parent = tree.parent_of(node) or tree.root
            removed = delete_node(tree, parent, node, confirmed=confirmed)
            classify(tree)
            if not tree.root.children:
                tree.root.children.append(HierarchyTree.with_placeholder().root.children[0])
                tree.reindex()
            return removed

    def toggle_layout(self, node_id: str) -> LayoutMode:
        with self.transaction() as tree:
            return toggle_layout(tree, tree.get(node_id))

    def replace_tree(self, tree: HierarchyTree) -> None:
        classify(tree)
        self.tree = tree
        if self.on_change is not None:
            self.on_change(self.tree)

    def reset(self) -> None:
        self.replace_tree(HierarchyTree.with_placeholder())


__all__ = [
    "DEFAULT_LABEL_COLUMNS",
    "EditOptions",
    "HierarchySession",
    "add_child",
    "add_column_children",
    "add_sibling",
    "add_sibling_with_column",
    "assign_column",
    "assign_specific_value",
    "delete_node",
    "propagate",
    "toggle_layout",
]
