"""HTML rendering of hierarchy subtrees and paginated material lists."""

from __future__ import annotations

import html
import logging
import math
from dataclasses import dataclass, field
from string import Template
from typing import List, Optional, Sequence

from .list_template import COLUMN_TITLES, CourseSection, ListRow
from .measure import mm_to_px
from .pagination import PageLayout, compute_real_page_breaks, measure_row_heights, page_ranges
from .tree import HierarchyNode, LayoutMode

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Materialenlijst"
TITLE_MAX_LENGTH = 35

_DOCUMENT = Template(
    """<!DOCTYPE html>
<html lang="nl">
<head>
<meta charset="utf-8">
<title>$title</title>
<style>
@page { size: A4; margin: 0; }
body { margin: 0; font-family: Helvetica, Arial, sans-serif; font-size: ${font_size}px; color: #333; }
.a4-page { width: 210mm; height: 297mm; box-sizing: border-box; padding: ${padding}mm;
  display: flex; flex-direction: column; overflow: hidden; page-break-after: always; background: white; }
.a4-page:last-child { page-break-after: auto; }
.report-title { color: $accent; font-size: 2rem; font-weight: bold; line-height: 1.2; }
.report-subtitle { color: $accent; font-size: 1.5rem; font-weight: bold; line-height: 1.2; margin-bottom: 1rem; }
.course-page-header { background: $accent; color: white; padding: 8px 16px; border-radius: 50px;
  font-weight: bold; width: fit-content; margin-bottom: 0.5rem; }
.list-columns { display: flex; flex-direction: row; }
.list-column { display: flex; flex-direction: column; }
.list-cell { box-sizing: border-box; padding: ${padding_y}px ${padding_x}px; overflow-wrap: break-word; }
.list-cell.odd { background: $zebra; }
.hierarchy-node { margin: 4px 0 4px 12px; }
.hierarchy-node.horizontal > .node-children { display: flex; flex-wrap: wrap; gap: 8px; }
.node-header { font-weight: bold; color: $accent; }
.node-content { padding: 4px 8px; background: $zebra; border-radius: 4px; }
.node-content.empty { min-height: 1em; }
.node-property { font-size: 0.9em; color: #555; }
</style>
</head>
<body>
$body
</body>
</html>
"""
)


@dataclass
class A4Page:
    """Rows placed on one printed page of the material list."""

    number: int
    rows: List[ListRow]
    heights: List[int]
    course: str = ""
    course_label: str = ""
    title: Optional[str] = None
    subtitle: Optional[str] = None
    show_blok: List[bool] = field(default_factory=list)

    @property
    def columns(self) -> List[List[str]]:
        blok = [row.blok if shown else "" for row, shown in zip(self.rows, self.show_blok)]
        return [blok, [row.week for row in self.rows], [row.materials for row in self.rows]]


def middle_ellipsis(text: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    keep = max_length - 1
    head = int(math.ceil(keep / 2))
    tail = keep - head
    return f"{text[:head]}…{text[-tail:] if tail else ''}"


def repeated_blok_mask(rows: Sequence[ListRow]) -> List[bool]:
    """Show a blok name only where it differs from the row above on the page."""

    shown: List[bool] = []
    previous: Optional[str] = None
    for row in rows:
        shown.append(row.blok != previous)
        previous = row.blok
    return shown


def paginate_sections(
    sections: Sequence[CourseSection],
    sheet_name: str,
    *,
    layout: Optional[PageLayout] = None,
    single_course_budget: float = 750.0,
    multi_course_budget: float = 900.0,
    title_height: float = 80.0,
    title: str = DEFAULT_TITLE,
) -> List[A4Page]:
    """Split each section into A4 pages using measured, synchronised rows.

    The row heights measured here are stored on the pages and reused as the
    explicit row heights of the final render.
    """

    layout = layout or PageLayout()
    has_courses = any(section.name for section in sections)
    pages: List[A4Page] = []
    for section in sections:
        if not section.rows:
            logger.info("Course '%s' has no rows; skipping", section.name)
            continue
        single_course = not has_courses
        columns = section.columns
        heights = measure_row_heights(columns, single_course, layout=layout)
        if single_course:
            breaks = compute_real_page_breaks(
                columns, single_course_budget, True, layout=layout, row_heights=heights
            )
        else:
            breaks = compute_real_page_breaks(
                columns,
                multi_course_budget,
                False,
                title_height=title_height,
                layout=layout,
                course_header=section.header_label,
                row_heights=heights,
            )
        for page_index, (start, end) in enumerate(page_ranges(breaks)):
            rows = section.rows[start:end]
            pages.append(
                A4Page(
                    number=len(pages) + 1,
                    rows=rows,
                    heights=heights[start:end],
                    course=section.name,
                    course_label=section.header_label,
                    title=title if page_index == 0 else None,
                    subtitle=sheet_name if page_index == 0 else None,
                    show_blok=repeated_blok_mask(rows),
                )
            )
    logger.info("Material list for '%s' spans %d page(s)", sheet_name, len(pages))
    return pages


def _document(title: str, body: str, layout: PageLayout, accent: str, zebra: str) -> str:
    return _DOCUMENT.substitute(
        title=html.escape(title),
        body=body,
        font_size=f"{layout.style.font_size:g}",
        padding=f"{layout.padding_mm:g}",
        padding_x=f"{layout.style.padding_x:g}",
        padding_y=f"{layout.style.padding_y:g}",
        accent=accent,
        zebra=zebra,
    )


def render_list_html(
    pages: Sequence[A4Page],
    *,
    layout: Optional[PageLayout] = None,
    accent: str = "#34a3d7",
    zebra: str = "#f8f9fa",
    title: str = DEFAULT_TITLE,
) -> str:
    layout = layout or PageLayout()
    parts: List[str] = []
    for page in pages:
        single_course = not page.course
        widths = layout.column_widths(len(COLUMN_TITLES), single_course)
        chunks = [f'<div class="a4-page" data-page="{page.number}">']
        if page.title:
            chunks.append(f'<div class="report-title">{html.escape(page.title)}</div>')
            chunks.append(f'<div class="report-subtitle">{html.escape(page.subtitle or "")}</div>')
        if page.course:
            chunks.append(
                f'<div class="course-page-header" data-course="{html.escape(page.course, quote=True)}">'
                f"{html.escape(page.course_label)}</div>"
            )
        chunks.append('<div class="list-columns">')
        for column_title, width, values in zip(COLUMN_TITLES, widths, page.columns):
            chunks.append(f'<div class="list-column" data-column="{column_title}" style="width:{width:.1f}px">')
            for index, (value, height) in enumerate(zip(values, page.heights)):
                parity = "odd" if index % 2 else "even"
                chunks.append(
                    f'<div class="list-cell {parity}" style="height:{height}px">{html.escape(value)}</div>'
                )
            chunks.append("</div>")
        chunks.append("</div></div>")
        parts.append("".join(chunks))
    return _document(title, "\n".join(parts), layout, accent, zebra)


def _render_node(node: HierarchyNode, show_empty_cells: bool) -> str:
    if node.children or node.properties:
        header = html.escape(middle_ellipsis(node.value or node.column_name or ""))
        children = [_render_node(child, show_empty_cells) for child in node.children]
        for prop in node.properties:
            if not prop.value and not show_empty_cells:
                continue
            children.append(
                f'<div class="node-property" data-column="{html.escape(prop.column_name, quote=True)}">'
                f"{html.escape(prop.value)}</div>"
            )
        layout = node.layout_mode.value if isinstance(node.layout_mode, LayoutMode) else str(node.layout_mode)
        return (
            f'<div class="hierarchy-node level-{node.level}-node {layout}" data-node-id="{node.id}">'
            f'<div class="node-header level-{node.level}-header">{header}</div>'
            f'<div class="node-children level-{node.level}-children">{"".join(children)}</div>'
            "</div>"
        )
    if not node.value and not show_empty_cells:
        return ""
    classes = "node-content" if node.value else "node-content empty"
    return (
        f'<div class="hierarchy-node level-{node.level}-node" data-node-id="{node.id}">'
        f'<div class="{classes} level-{node.level}-content">{html.escape(node.value)}</div>'
        "</div>"
    )


def render_hierarchy_html(
    nodes: Sequence[HierarchyNode],
    *,
    show_empty_cells: bool = False,
    title: str = DEFAULT_TITLE,
    subtitle: str = "",
    layout: Optional[PageLayout] = None,
    accent: str = "#34a3d7",
    zebra: str = "#f8f9fa",
) -> str:
    """Standalone HTML document for a hierarchy subtree."""

    layout = layout or PageLayout()
    body = [
        f'<div class="a4-page" style="height:auto;min-height:{mm_to_px(layout.page_height_mm):.0f}px">',
        f'<div class="report-title">{html.escape(title)}</div>',
    ]
    if subtitle:
        body.append(f'<div class="report-subtitle">{html.escape(subtitle)}</div>')
    body.extend(_render_node(node, show_empty_cells) for node in nodes)
    body.append("</div>")
    return _document(title, "".join(body), layout, accent, zebra)


__all__ = [
    "A4Page",
    "DEFAULT_TITLE",
    "middle_ellipsis",
    "paginate_sections",
    "render_hierarchy_html",
    "render_list_html",
    "repeated_blok_mask",
]
