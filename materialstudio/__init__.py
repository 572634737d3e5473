"""Material Studio application package.

This package wires the :mod:`hierarchy` building blocks to the outside world:
YAML configuration, workbook ingestion, the persisted hierarchy mappings and
the PDF/HTML exports used by both the command line interface and the
Streamlit editor.
"""

from .config import (
    AppConfig,
    HierarchyConfig,
    OutputConfig,
    PageConfig,
    StorageConfig,
    StyleConfig,
    load_config,
)
from .io import WorkbookCache, read_workbook, sheet_summaries
from .pdf import build_hierarchy_pdf, build_list_pdf
from .reporting import export_document, paginate_list
from .storage import MappingStore

__all__ = [
    "AppConfig",
    "HierarchyConfig",
    "MappingStore",
    "OutputConfig",
    "PageConfig",
    "StorageConfig",
    "StyleConfig",
    "WorkbookCache",
    "build_hierarchy_pdf",
    "build_list_pdf",
    "export_document",
    "load_config",
    "paginate_list",
    "read_workbook",
    "sheet_summaries",
]
