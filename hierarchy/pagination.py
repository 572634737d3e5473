"""Page splitting for the list template based on measured row heights."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .measure import (
    MeasureRow,
    ReportLabMeasurer,
    StyleProfile,
    measurement_surface,
    mm_to_px,
    sync_row_heights,
)

logger = logging.getLogger(__name__)

DEFAULT_ROWS_PER_PAGE_BUDGET = 900.0
DEFAULT_SAFETY_RATIO = 0.95
SINGLE_COURSE_FLEX = (1, 1, 3)


@dataclass
class PageLayout:
    """Physical page geometry and cell styles used while measuring."""

    measure: MeasureRow = field(default_factory=ReportLabMeasurer)
    style: StyleProfile = field(default_factory=StyleProfile)
    header_style: StyleProfile = field(
        default_factory=lambda: StyleProfile(
            font_name="Helvetica-Bold",
            font_size=16.0,
            leading=19.2,
            padding_x=16.0,
            padding_y=8.0,
        )
    )
    page_width_mm: float = 210.0
    page_height_mm: float = 297.0
    padding_mm: float = 15.0
    header_gap_px: float = 8.0
    safety_ratio: float = DEFAULT_SAFETY_RATIO

    @property
    def content_width(self) -> float:
        return mm_to_px(self.page_width_mm - 2 * self.padding_mm)

    @property
    def content_height(self) -> float:
        return mm_to_px(self.page_height_mm - 2 * self.padding_mm)

    def column_widths(self, count: int, single_course: bool) -> List[float]:
        if count <= 0:
            return []
        if single_course and count == len(SINGLE_COURSE_FLEX):
            weights: Sequence[int] = SINGLE_COURSE_FLEX
        else:
            weights = [1] * count
        total = float(sum(weights))
        return [self.content_width * weight / total for weight in weights]

    def course_header_height(self, text: str) -> float:
        """Height taken by the course pill plus the gap below it."""

        return self.measure(text or " ", self.content_width, self.header_style) + self.header_gap_px


def heaviest_row_index(columns: Sequence[Sequence[str]]) -> int:
    """Index of the row whose longest cell is the longest of all rows."""

    best_index = 0
    best_length = -1
    row_count = len(columns[0]) if columns else 0
    for row_index in range(row_count):
        length = max(len(str(column[row_index] or "")) for column in columns)
        if length > best_length:
            best_index = row_index
            best_length = length
    return best_index


def _row_count(columns: Sequence[Sequence[str]]) -> int:
    if not columns:
        return 0
    return len(columns[0])


def _header_height(layout: PageLayout, single_course: bool, course_header: str) -> float:
    if single_course:
        return 0.0
    return layout.course_header_height(course_header)


def compute_rows_per_page(
    columns: Sequence[Sequence[str]],
    page_height_budget: float = DEFAULT_ROWS_PER_PAGE_BUDGET,
    single_course: bool = True,
    *,
    layout: Optional[PageLayout] = None,
    course_header: str = "",
) -> int:
    """Largest row count whose synchronised height fits the page budget.

    Every row is measured with the content of the heaviest row, so the count
    holds for any page.  A candidate fits when its rows (plus the course
    header for multi-course layouts) stay within ``safety_ratio`` of the
    budget.  Returns at least 1.
    """

    layout = layout or PageLayout()
    total_rows = _row_count(columns)
    if total_rows == 0:
        return 1

    limit = page_height_budget * layout.safety_ratio
    header = _header_height(layout, single_course, course_header)
    widths = layout.column_widths(len(columns), single_course)

    best = 1
    with measurement_surface(layout.measure, widths, layout.style, columns) as surface:
        surface.fill(heaviest_row_index(columns))
        low, high = 1, total_rows
        while low <= high:
            mid = (low + high) // 2
            used = header + sum(sync_row_heights(surface.natural_heights(mid)))
            logger.debug("Probe %d row(s): %.1fpx of %.1fpx", mid, used, limit)
            if used <= limit:
                best = mid
                low = mid + 1
            else:
                high = mid - 1

    logger.info("%d of %d row(s) fit on a page of %.0fpx", best, total_rows, page_height_budget)
    return best


def measure_row_heights(
    columns: Sequence[Sequence[str]],
    single_course: bool = True,
    *,
    layout: Optional[PageLayout] = None,
) -> List[int]:
    """Synchronised height of every row, as used by the final render."""

    layout = layout or PageLayout()
    if _row_count(columns) == 0:
        return []
    widths = layout.column_widths(len(columns), single_course)
    with measurement_surface(layout.measure, widths, layout.style, columns) as surface:
        return sync_row_heights(surface.natural_heights())


def page_breaks_from_heights(
    heights: Sequence[float],
    max_page_height: float,
    *,
    title_height: float = 0.0,
    header_height: float = 0.0,
) -> List[int]:
    """Greedy page breaks as exclusive row bounds; last entry is ``len(heights)``.

    A row that does not fit on a page holding at least one row starts the
    next page; rows are never split.  ``title_height`` only reduces the first
    page and ``header_height`` every page.
    """

    if not heights:
        return []
    breaks: List[int] = []
    available = max_page_height - title_height - header_height
    current = 0.0
    rows_on_page = 0
    for row_index, height in enumerate(heights):
        if rows_on_page and current + height > available:
            breaks.append(row_index)
            current = 0.0
            rows_on_page = 0
            available = max_page_height - header_height
        current += height
        rows_on_page += 1
    breaks.append(len(heights))
    return breaks


def compute_real_page_breaks(
    columns: Sequence[Sequence[str]],
    max_page_height: float,
    single_course: bool = True,
    *,
    title_height: float = 0.0,
    layout: Optional[PageLayout] = None,
    course_header: str = "",
    row_heights: Optional[Sequence[float]] = None,
) -> List[int]:
    """Measure every row once and accumulate them greedily into pages."""

    layout = layout or PageLayout()
    if _row_count(columns) == 0:
        return []
    heights = (
        list(row_heights)
        if row_heights is not None
        else measure_row_heights(columns, single_course, layout=layout)
    )
    breaks = page_breaks_from_heights(
        heights,
        max_page_height,
        title_height=title_height,
        header_height=_header_height(layout, single_course, course_header),
    )
    logger.info("Split %d row(s) into %d page(s)", len(heights), len(breaks))
    return breaks


def page_ranges(breaks: Sequence[int]) -> List[Tuple[int, int]]:
    ranges: List[Tuple[int, int]] = []
    start = 0
    for end in breaks:
        ranges.append((start, end))
        start = end
    return ranges


__all__ = [
    "DEFAULT_ROWS_PER_PAGE_BUDGET",
    "PageLayout",
    "compute_real_page_breaks",
    "compute_rows_per_page",
    "heaviest_row_index",
    "measure_row_heights",
    "page_breaks_from_heights",
    "page_ranges",
]
