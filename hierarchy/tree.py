"""In-memory hierarchy tree built over the columns of a raw sheet."""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .resolver import ContextEntry, RowContext

logger = logging.getLogger(__name__)

PLACEHOLDER_LABEL = "Start Building"
ROOT_LEVEL = -1
COURSE_ROOT_LEVEL = -2

TypeKey = Tuple[str, int]


class LayoutMode(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    def toggled(self) -> "LayoutMode":
        if self is LayoutMode.HORIZONTAL:
            return LayoutMode.VERTICAL
        return LayoutMode.HORIZONTAL


class NodeKind(str, Enum):
    """Variant of a node, derived from its binding and template role."""

    ROOT = "root"
    PLACEHOLDER = "placeholder"
    CONTAINER = "container"
    BOUND = "bound"
    TEMPLATE = "template"
    DUPLICATE = "duplicate"


def new_node_id() -> str:
    return f"node-{uuid.uuid4().hex[:12]}"


@dataclass
class NodeProperty:
    """Non-hierarchy column carried along with a node."""

    column_index: int
    column_name: str
    value: str = ""
    excel_cell: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "columnIndex": self.column_index,
            "columnName": self.column_name,
            "value": self.value,
            "excelCell": self.excel_cell,
        }


@dataclass
class HierarchyNode:
    """A node of the hierarchy tree.

    The parent is not stored on the node; :class:`HierarchyTree` keeps a
    child-to-parent index instead so the node graph stays acyclic.
    """

    id: str = field(default_factory=new_node_id)
    value: str = ""
    column_name: Optional[str] = None
    column_index: Optional[int] = None
    level: int = 0
    children: List["HierarchyNode"] = field(default_factory=list)
    layout_mode: LayoutMode = LayoutMode.HORIZONTAL
    is_placeholder: bool = False
    is_template: bool = False
    is_duplicate: bool = False
    template_id: Optional[str] = None
    is_root: bool = False
    is_course: bool = False
    excel_cell: Optional[str] = None
    properties: List[NodeProperty] = field(default_factory=list)

    @property
    def kind(self) -> NodeKind:
        if self.is_root:
            return NodeKind.ROOT
        if self.is_placeholder:
            return NodeKind.PLACEHOLDER
        if self.is_template:
            return NodeKind.TEMPLATE
        if self.is_duplicate:
            return NodeKind.DUPLICATE
        if self.column_index is None:
            return NodeKind.CONTAINER
        return NodeKind.BOUND

    @property
    def type_key(self) -> Optional[TypeKey]:
        if self.column_index is None:
            return None
        return (self.column_name or "", self.column_index)

    @property
    def is_bound(self) -> bool:
        return self.column_index is not None

    def mark_template(self) -> None:
        self.is_template = True
        self.is_duplicate = False
        self.template_id = None

    def mark_duplicate(self, template_id: str) -> None:
        self.is_template = False
        self.is_duplicate = True
        self.template_id = template_id

    def clear_role(self) -> None:
        self.is_template = False
        self.is_duplicate = False
        self.template_id = None

    def bind(self, column_index: int, column_name: str) -> None:
        self.column_index = column_index
        self.column_name = column_name
        self.is_placeholder = False

    def child_for_column(self, column_index: int) -> Optional["HierarchyNode"]:
        for child in self.children:
            if child.column_index == column_index:
                return child
        return None

    def as_dict(self) -> Dict[str, Any]:
        """Return a serialisable representation of the node."""

        return {
            "id": self.id,
            "value": self.value,
            "columnName": self.column_name,
            "columnIndex": self.column_index,
            "level": self.level,
            "layoutMode": self.layout_mode.value,
            "kind": self.kind.value,
            "isPlaceholder": self.is_placeholder,
            "isTemplate": self.is_template,
            "isDuplicate": self.is_duplicate,
            "templateId": self.template_id,
            "isCourse": self.is_course,
            "excelCell": self.excel_cell,
            "properties": [prop.as_dict() for prop in self.properties],
            "children": [child.as_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HierarchyNode":
        column_index = data.get("columnIndex")
        return cls(
            id=str(data.get("id") or new_node_id()),
            value=str(data.get("value") or ""),
            column_name=data.get("columnName"),
            column_index=int(column_index) if column_index is not None else None,
            level=int(data.get("level", 0)),
            layout_mode=LayoutMode(data.get("layoutMode", LayoutMode.HORIZONTAL.value)),
            is_placeholder=bool(data.get("isPlaceholder", False)),
            is_template=bool(data.get("isTemplate", False)),
            is_duplicate=bool(data.get("isDuplicate", False)),
            template_id=data.get("templateId"),
            is_root=data.get("kind") == NodeKind.ROOT.value,
            is_course=bool(data.get("isCourse", False)),
            excel_cell=data.get("excelCell"),
            properties=[
                NodeProperty(
                    column_index=int(prop["columnIndex"]),
                    column_name=str(prop.get("columnName") or ""),
                    value=str(prop.get("value") or ""),
                    excel_cell=prop.get("excelCell"),
                )
                for prop in data.get("properties", [])
            ],
            children=[cls.from_dict(child) for child in data.get("children", [])],
        )


def make_root(level: int = ROOT_LEVEL) -> HierarchyNode:
    return HierarchyNode(id=new_node_id(), value="", level=level, is_root=True)


class HierarchyTree:
    """Owner of the root sentinel plus the child-to-parent index."""

    def __init__(self, root: Optional[HierarchyNode] = None) -> None:
        self.root = root if root is not None else make_root()
        self.root.is_root = True
        self._parents: Dict[str, HierarchyNode] = {}
        self._nodes: Dict[str, HierarchyNode] = {}
        self.reindex()

    @classmethod
    def with_placeholder(cls) -> "HierarchyTree":
        root = make_root()
        root.children.append(
            HierarchyNode(value=PLACEHOLDER_LABEL, level=0, is_placeholder=True)
        )
        return cls(root)

    def reindex(self) -> None:
        """Rebuild the parent index and restore ``level = parent.level + 1``."""

        self._parents = {}
        self._nodes = {self.root.id: self.root}
        stack: List[HierarchyNode] = [self.root]
        while stack:
            node = stack.pop()
            for child in node.children:
                child.level = node.level + 1
                self._parents[child.id] = node
                self._nodes[child.id] = child
                stack.append(child)

    def walk(self, include_root: bool = False) -> Iterator[HierarchyNode]:
        """Pre-order traversal in display order."""

        stack: List[HierarchyNode] = [self.root]
        while stack:
            node = stack.pop()
            if include_root or node is not self.root:
                yield node
            stack.extend(reversed(node.children))

    def __iter__(self) -> Iterator[HierarchyNode]:
        return self.walk()

    def __len__(self) -> int:
        return len(self._nodes) - 1

    def find(self, node_id: Optional[str]) -> Optional[HierarchyNode]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def get(self, node_id: str) -> HierarchyNode:
        node = self.find(node_id)
        if node is None:
            raise KeyError(f"Node '{node_id}' does not exist")
        return node

    def parent_of(self, node: HierarchyNode) -> Optional[HierarchyNode]:
        return self._parents.get(node.id)

    def ancestors(self, node: HierarchyNode) -> List[HierarchyNode]:
        """Ancestors from the nearest parent up to, but excluding, the root."""

        chain: List[HierarchyNode] = []
        parent = self.parent_of(node)
        while parent is not None and parent is not self.root:
            chain.append(parent)
            parent = self.parent_of(parent)
        return chain

    def siblings(self, node: HierarchyNode) -> List[HierarchyNode]:
        parent = self.parent_of(node)
        if parent is None:
            return []
        return [child for child in parent.children if child is not node]

    def row_context(self, node: HierarchyNode) -> RowContext:
        """Column/value constraints of the ancestors of ``node``, root first."""

        context: RowContext = []
        for ancestor in reversed(self.ancestors(node)):
            if ancestor.column_index is not None and ancestor.value:
                context.append(ContextEntry(ancestor.column_index, ancestor.value))
        return context

    def context_below(self, node: HierarchyNode) -> RowContext:
        """Context seen by children of ``node``."""

        context = self.row_context(node)
        if node is not self.root and node.column_index is not None and node.value:
            context.append(ContextEntry(node.column_index, node.value))
        return context

    def used_columns(self, node: HierarchyNode) -> List[int]:
        """Columns already used around ``node`` that a new binding should avoid."""

        used = set()
        for ancestor in self.ancestors(node):
            if ancestor.column_index is not None:
                used.add(ancestor.column_index)
        for sibling in self.siblings(node):
            if sibling.column_index is not None:
                used.add(sibling.column_index)
        stack = list(node.children)
        while stack:
            current = stack.pop()
            if current.column_index is not None:
                used.add(current.column_index)
            stack.extend(current.children)
        if node.is_duplicate:
            template = self.find(node.template_id)
            if template is not None:
                for child in template.children:
                    if child.column_index is not None:
                        used.add(child.column_index)
        return sorted(used)

    def append_child(self, parent: HierarchyNode, child: HierarchyNode) -> HierarchyNode:
        parent.children.append(child)
        self.reindex()
        return child

    def insert_after(self, node: HierarchyNode, new_nodes: List[HierarchyNode]) -> None:
        parent = self.parent_of(node)
        if parent is None:
            raise ValueError("The root node has no siblings")
        position = parent.children.index(node) + 1
        parent.children[position:position] = new_nodes
        self.reindex()

    def remove(self, node: HierarchyNode) -> HierarchyNode:
        """Detach ``node`` and its subtree; returns the former parent."""

        parent = self.parent_of(node)
        if parent is None:
            raise ValueError("The root node cannot be removed")
        parent.children.remove(node)
        self.reindex()
        return parent

    def snapshot(self) -> HierarchyNode:
        return copy.deepcopy(self.root)

    def restore(self, snapshot: HierarchyNode) -> None:
        self.root = snapshot
        self.reindex()

    def check_levels(self) -> List[str]:
        """Ids of nodes whose level does not follow their parent."""

        return [
            node.id
            for node in self.walk()
            if node.level != self._parents[node.id].level + 1
        ]

    def as_dict(self) -> Dict[str, Any]:
        return self.root.as_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HierarchyTree":
        root = HierarchyNode.from_dict(data)
        return cls(root)


__all__ = [
    "COURSE_ROOT_LEVEL",
    "HierarchyNode",
    "HierarchyTree",
    "LayoutMode",
    "NodeKind",
    "NodeProperty",
    "PLACEHOLDER_LABEL",
    "ROOT_LEVEL",
    "make_root",
    "new_node_id",
]
