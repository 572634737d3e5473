"""Utilities for exporting rendered material lists and hierarchies to disk."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from hierarchy.list_template import CourseSection, sections_from_tree
from hierarchy.pagination import compute_rows_per_page
from hierarchy.render import A4Page, paginate_sections, render_hierarchy_html, render_list_html
from hierarchy.tree import HierarchyNode, HierarchyTree

from .config import AppConfig
from .pdf import build_hierarchy_pdf, build_list_pdf

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^\w.-]+", re.UNICODE)


def safe_stem(name: str, fallback: str = "materialenlijst") -> str:
    stem = _UNSAFE.sub("_", Path(name).stem).strip("._")
    return stem or fallback


def paginate_list(tree: HierarchyTree, sheet_name: str, config: AppConfig) -> List[A4Page]:
    """Paginate a list-template tree with the configured budgets."""

    return paginate_sections(
        sections_from_tree(tree),
        sheet_name,
        layout=config.page_layout(),
        single_course_budget=config.page.single_course_budget_px,
        multi_course_budget=config.page.multi_course_budget_px,
        title_height=config.page.title_height_px,
        title=config.output.title,
    )


def estimate_rows_per_page(sections: Sequence[CourseSection], config: AppConfig) -> int:
    """Rows that fit on any page when every row is as heavy as the heaviest one."""

    for section in sections:
        if section.rows:
            return compute_rows_per_page(
                section.columns,
                config.page.rows_budget_px,
                not section.name,
                layout=config.page_layout(),
                course_header=section.header_label,
            )
    return 1


def export_document(
    config: AppConfig,
    stem: str,
    *,
    pages: Optional[Sequence[A4Page]] = None,
    nodes: Optional[Sequence[HierarchyNode]] = None,
    subtitle: str = "",
    show_empty_cells: bool = False,
) -> Dict[str, Path]:
    """Write the PDF (and optionally the HTML preview) for pages or nodes.

    Exactly one of ``pages`` (list template) or ``nodes`` (hierarchy subtree)
    must be given.
    """

    if (pages is None) == (nodes is None):
        raise ValueError("Provide either list pages or hierarchy nodes to export")

    output = config.output
    output_dir = Path(output.directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Writing exports to %s", output_dir)

    layout = config.page_layout()
    name = safe_stem(stem)
    if pages is not None:
        pdf_bytes = build_list_pdf(pages, config.style, layout, title=output.title)
        html_text = render_list_html(
            pages,
            layout=layout,
            accent=config.style.accent_color,
            zebra=config.style.zebra_color,
            title=output.title,
        )
    else:
        pdf_bytes = build_hierarchy_pdf(
            nodes,
            config.style,
            layout,
            title=output.title,
            subtitle=subtitle,
            show_empty_cells=show_empty_cells,
        )
        html_text = render_hierarchy_html(
            nodes,
            show_empty_cells=show_empty_cells,
            title=output.title,
            subtitle=subtitle,
            layout=layout,
            accent=config.style.accent_color,
            zebra=config.style.zebra_color,
        )

    paths: Dict[str, Path] = {}
    pdf_path = output_dir / f"{name}.pdf"
    pdf_path.write_bytes(pdf_bytes)
    paths["pdf"] = pdf_path

    if output.write_html:
        html_path = output_dir / f"{name}.html"
        html_path.write_text(html_text, encoding="utf-8")
        paths["html"] = html_path

    return paths


__all__ = ["estimate_rows_per_page", "export_document", "paginate_list", "safe_stem"]
