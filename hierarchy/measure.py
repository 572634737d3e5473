"""Text measurement used by the pagination engine.

Heights are expressed in CSS pixels (96 per inch) so that budgets match the
values used by the HTML preview.  :class:`ReportLabMeasurer` lays the text
out with the same paragraph engine that renders the PDF.
"""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph

from .errors import MeasurementError

logger = logging.getLogger(__name__)

PX_PER_PT = 96.0 / 72.0


def px_to_pt(value: float) -> float:
    return value / PX_PER_PT


def pt_to_px(value: float) -> float:
    return value * PX_PER_PT


def mm_to_px(value: float) -> float:
    return pt_to_px(value * mm)


@dataclass(frozen=True)
class StyleProfile:
    """Font and padding of one cell, in CSS pixels."""

    font_name: str = "Helvetica"
    font_size: float = 14.0
    leading: float = 19.6
    padding_x: float = 15.0
    padding_y: float = 10.0

    def paragraph_style(self, name: str = "cell") -> ParagraphStyle:
        return ParagraphStyle(
            name,
            fontName=self.font_name,
            fontSize=px_to_pt(self.font_size),
            leading=px_to_pt(self.leading),
        )


class MeasureRow(Protocol):
    def __call__(self, content: str, column_width: float, style: StyleProfile) -> float:
        """Rendered height in pixels of ``content`` in a column of ``column_width`` pixels."""


class ReportLabMeasurer:
    """Measure cells by wrapping them as reportlab paragraphs."""

    def __init__(self) -> None:
        self._cache: Dict[Tuple[str, float, StyleProfile], float] = {}

    def __call__(self, content: str, column_width: float, style: StyleProfile) -> float:
        key = (content, round(column_width, 2), style)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        paragraph_style = style.paragraph_style()
        available = max(px_to_pt(column_width - 2 * style.padding_x), 1.0)
        paragraph = Paragraph(escape(content) if content else "&nbsp;", paragraph_style)
        _, height = paragraph.wrap(available, 1_000_000)
        height = max(height, paragraph_style.leading)
        result = pt_to_px(height) + 2 * style.padding_y
        self._cache[key] = result
        return result


class MeasurementSurface:
    """Off-page grid of columns whose cells can be measured.

    Columns are laid side by side with the given pixel widths; every column
    must hold the same number of rows.
    """

    def __init__(self, measure: MeasureRow, widths: Sequence[float], style: StyleProfile) -> None:
        self.measure = measure
        self.widths = list(widths)
        self.style = style
        self._columns: Optional[List[List[str]]] = None

    @property
    def attached(self) -> bool:
        return self._columns is not None

    @property
    def row_count(self) -> int:
        if not self._columns:
            return 0
        return len(self._columns[0])

    def attach(self, columns: Sequence[Sequence[str]]) -> None:
        if self.attached:
            raise MeasurementError("Measurement surface is already attached")
        if len(columns) != len(self.widths):
            raise MeasurementError(
                f"Got {len(columns)} column(s) for {len(self.widths)} column width(s)"
            )
        lengths = {len(column) for column in columns}
        if len(lengths) > 1:
            raise MeasurementError("All columns must have the same number of rows")
        self._columns = [[str(cell or "") for cell in column] for column in columns]

    def fill(self, row_index: int) -> None:
        """Overwrite every row with the content of ``row_index``."""

        if not self._columns:
            return
        self._columns = [[column[row_index]] * len(column) for column in self._columns]

    def natural_heights(self, limit: Optional[int] = None) -> List[List[float]]:
        """Unsynchronised heights of the first ``limit`` rows, per row and column."""

        if self._columns is None:
            raise MeasurementError("Measurement surface is not attached")
        count = self.row_count if limit is None else min(limit, self.row_count)
        heights: List[List[float]] = []
        for row_index in range(count):
            heights.append(
                [
                    float(self.measure(column[row_index], width, self.style))
                    for column, width in zip(self._columns, self.widths)
                ]
            )
        return heights

    def detach(self) -> None:
        self._columns = None


@contextmanager
def measurement_surface(
    measure: MeasureRow,
    widths: Sequence[float],
    style: StyleProfile,
    columns: Sequence[Sequence[str]],
) -> Iterator[MeasurementSurface]:
    surface = MeasurementSurface(measure, widths, style)
    try:
        surface.attach(columns)
        yield surface
    finally:
        surface.detach()


def sync_row_heights(natural: Sequence[Sequence[float]]) -> List[int]:
    """Height of every row: the tallest cell across the columns, rounded up."""

    return [int(math.ceil(max(row))) if row else 0 for row in natural]


__all__ = [
    "MeasureRow",
    "MeasurementSurface",
    "PX_PER_PT",
    "ReportLabMeasurer",
    "StyleProfile",
    "measurement_surface",
    "mm_to_px",
    "pt_to_px",
    "px_to_pt",
    "sync_row_heights",
]
