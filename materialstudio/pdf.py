"""PDF generation for material lists and hierarchy subtrees."""

from __future__ import annotations

import io
import logging
from typing import Any, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from hierarchy.list_template import COLUMN_TITLES
from hierarchy.measure import px_to_pt
from hierarchy.pagination import PageLayout
from hierarchy.render import A4Page, DEFAULT_TITLE
from hierarchy.tree import HierarchyNode

from .config import StyleConfig
from .fonts import ensure_pdf_fonts_registered

logger = logging.getLogger(__name__)


def _document(buffer: io.BytesIO, layout: PageLayout, title: str) -> SimpleDocTemplate:
    margin = layout.padding_mm * mm
    return SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=margin,
        rightMargin=margin,
        topMargin=margin,
        bottomMargin=margin,
        title=title,
    )


def _title_styles(base_font: str, bold_font: str, accent: str):
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ListTitle",
        parent=styles["Title"],
        fontName=bold_font,
        fontSize=24,
        leading=28.8,
        alignment=0,
        textColor=colors.HexColor(accent),
        spaceAfter=0,
    )
    subtitle_style = ParagraphStyle(
        "ListSubtitle",
        parent=styles["Heading2"],
        fontName=bold_font,
        fontSize=18,
        leading=21.6,
        textColor=colors.HexColor(accent),
        spaceBefore=0,
        spaceAfter=12,
    )
    return title_style, subtitle_style


def build_list_pdf(
    pages: Sequence[A4Page],
    style: StyleConfig,
    layout: Optional[PageLayout] = None,
    title: str = DEFAULT_TITLE,
) -> bytes:
    """Render paginated material list pages to PDF bytes.

    Row heights come from the pages, so the printed rows line up exactly with
    the page breaks computed while measuring.
    """

    layout = layout or PageLayout()
    buffer = io.BytesIO()
    base_font, bold_font = ensure_pdf_fonts_registered(style)
    doc = _document(buffer, layout, title)
    title_style, subtitle_style = _title_styles(base_font, bold_font, style.accent_color)
    cell_style = ParagraphStyle(
        "ListCell",
        fontName=base_font,
        fontSize=px_to_pt(layout.style.font_size),
        leading=px_to_pt(layout.style.leading),
    )
    pill_style = ParagraphStyle(
        "CoursePill",
        fontName=bold_font,
        fontSize=px_to_pt(layout.header_style.font_size),
        leading=px_to_pt(layout.header_style.leading),
        textColor=colors.white,
    )
    padding_x = px_to_pt(layout.style.padding_x)
    padding_y = px_to_pt(layout.style.padding_y)

    story: List[Any] = []
    for index, page in enumerate(pages):
        if index:
            story.append(PageBreak())
        if page.title:
            story.append(Paragraph(escape(page.title), title_style))
            story.append(Paragraph(escape(page.subtitle or ""), subtitle_style))
        if page.course:
            pill = Table([[Paragraph(escape(page.course_label), pill_style)]], hAlign="LEFT")
            pill.setStyle(
                TableStyle(
                    [
                        ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor(style.accent_color)),
                        ("LEFTPADDING", (0, 0), (-1, -1), px_to_pt(layout.header_style.padding_x)),
                        ("RIGHTPADDING", (0, 0), (-1, -1), px_to_pt(layout.header_style.padding_x)),
                        ("TOPPADDING", (0, 0), (-1, -1), px_to_pt(layout.header_style.padding_y)),
                        ("BOTTOMPADDING", (0, 0), (-1, -1), px_to_pt(layout.header_style.padding_y)),
                    ]
                )
            )
            story.append(pill)
            story.append(Spacer(1, px_to_pt(layout.header_gap_px)))
        if not page.rows:
            continue

        widths = [px_to_pt(width) for width in layout.column_widths(len(COLUMN_TITLES), not page.course)]
        data = [
            [Paragraph(escape(value), cell_style) for value in row]
            for row in zip(*page.columns)
        ]
        table = Table(
            data,
            colWidths=widths,
            rowHeights=[px_to_pt(height) for height in page.heights],
            hAlign="LEFT",
        )
        table.setStyle(
            TableStyle(
                [
                    ("ROWBACKGROUNDS", (0, 0), (-1, -1), [colors.white, colors.HexColor(style.zebra_color)]),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("LEFTPADDING", (0, 0), (-1, -1), padding_x),
                    ("RIGHTPADDING", (0, 0), (-1, -1), padding_x),
                    ("TOPPADDING", (0, 0), (-1, -1), padding_y),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), padding_y),
                ]
            )
        )
        story.append(table)

    if not story:
        story.append(Paragraph("Geen materialen gevonden.", cell_style))

    doc.build(story)
    buffer.seek(0)
    return buffer.getvalue()


def build_hierarchy_pdf(
    nodes: Sequence[HierarchyNode],
    style: StyleConfig,
    layout: Optional[PageLayout] = None,
    title: str = DEFAULT_TITLE,
    subtitle: str = "",
    show_empty_cells: bool = False,
) -> bytes:
    """Render a hierarchy subtree as an indented outline."""

    layout = layout or PageLayout()
    buffer = io.BytesIO()
    base_font, bold_font = ensure_pdf_fonts_registered(style)
    doc = _document(buffer, layout, title)
    title_style, subtitle_style = _title_styles(base_font, bold_font, style.accent_color)
    header_style = ParagraphStyle(
        "NodeHeader",
        fontName=bold_font,
        fontSize=px_to_pt(layout.style.font_size),
        leading=px_to_pt(layout.style.leading),
        textColor=colors.HexColor(style.accent_color),
        spaceBefore=4,
    )
    leaf_style = ParagraphStyle(
        "NodeLeaf",
        fontName=base_font,
        fontSize=px_to_pt(layout.style.font_size),
        leading=px_to_pt(layout.style.leading),
    )
    property_style = ParagraphStyle(
        "NodeProperty",
        parent=leaf_style,
        fontSize=px_to_pt(layout.style.font_size) * 0.9,
        textColor=colors.HexColor("#555555"),
    )

    story: List[Any] = [Paragraph(escape(title), title_style)]
    if subtitle:
        story.append(Paragraph(escape(subtitle), subtitle_style))

    stack: List[Tuple[HierarchyNode, int]] = [(node, 0) for node in reversed(list(nodes))]
    while stack:
        node, depth = stack.pop()
        indent = depth * 12
        if node.children or node.properties:
            text = node.value or node.column_name or ""
            story.append(Paragraph(escape(text), ParagraphStyle(f"h{depth}", parent=header_style, leftIndent=indent)))
            for prop in node.properties:
                if not prop.value and not show_empty_cells:
                    continue
                story.append(
                    Paragraph(
                        f"{escape(prop.column_name)}: {escape(prop.value)}",
                        ParagraphStyle(f"p{depth}", parent=property_style, leftIndent=indent + 12),
                    )
                )
            stack.extend((child, depth + 1) for child in reversed(node.children))
        elif node.value or show_empty_cells:
            story.append(
                Paragraph(escape(node.value) or "&nbsp;", ParagraphStyle(f"l{depth}", parent=leaf_style, leftIndent=indent))
            )

    doc.build(story)
    buffer.seek(0)
    return buffer.getvalue()


__all__ = ["build_hierarchy_pdf", "build_list_pdf", "ensure_pdf_fonts_registered"]
