"""Hierarchy building blocks for Material Studio.

Sheet rows are resolved into a tree of column bound nodes; nodes sharing a
column type are kept in sync through templates and duplicates, and the
automatic material list is split into A4 pages from measured row heights.
"""

from .classify import classify, group_by_type, nodes_of_type
from .editor import (
    EditOptions,
    HierarchySession,
    add_child,
    add_sibling,
    assign_column,
    delete_node,
    toggle_layout,
)
from .errors import (
    ConfirmationRequired,
    DuplicateNodeError,
    HierarchyError,
    MeasurementError,
    SheetNotFoundError,
)
from .list_template import CourseSection, build_list_template, list_template_tree
from .mapping import build_tree_from_mapping, default_mapping, parse_mapping
from .measure import ReportLabMeasurer, StyleProfile
from .pagination import PageLayout, compute_real_page_breaks, compute_rows_per_page
from .replicate import ReplicationReport, replicate
from .resolver import ContextEntry, resolve_rows, unique_column_values
from .sheet import RawSheet
from .tree import HierarchyNode, HierarchyTree, LayoutMode, NodeKind

__all__ = [
    "ConfirmationRequired",
    "ContextEntry",
    "CourseSection",
    "DuplicateNodeError",
    "EditOptions",
    "HierarchyError",
    "HierarchyNode",
    "HierarchySession",
    "HierarchyTree",
    "LayoutMode",
    "MeasurementError",
    "NodeKind",
    "PageLayout",
    "RawSheet",
    "ReplicationReport",
    "ReportLabMeasurer",
    "SheetNotFoundError",
    "StyleProfile",
    "add_child",
    "add_sibling",
    "assign_column",
    "build_list_template",
    "build_tree_from_mapping",
    "classify",
    "compute_real_page_breaks",
    "compute_rows_per_page",
    "default_mapping",
    "delete_node",
    "group_by_type",
    "list_template_tree",
    "nodes_of_type",
    "parse_mapping",
    "replicate",
    "resolve_rows",
    "toggle_layout",
    "unique_column_values",
]
