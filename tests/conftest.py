from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional
import sys

import pytest

# Ensure project root is on sys.path for absolute imports
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from hierarchy import HierarchySession, PageLayout, RawSheet
from hierarchy.measure import StyleProfile


class StubMeasurer:
    """Fixed row heights keyed by cell content."""

    def __init__(self, default: float = 30.0, heights: Optional[Dict[str, float]] = None) -> None:
        self.default = default
        self.heights = heights or {}
        self.calls = 0

    def __call__(self, content: str, column_width: float, style: StyleProfile) -> float:
        self.calls += 1
        return self.heights.get(content, self.default)


@pytest.fixture
def lesson_sheet() -> RawSheet:
    """Blok 1 with two weeks; repeated labels left blank like merged cells."""

    return RawSheet.from_values(
        [
            ["Blok", "Week", "Les", "Werkblad"],
            ["Blok 1", "Week 1", "Les 1", "Werkblad 1a"],
            ["", "", "Les 2", "Werkblad 1b"],
            ["", "", "Les 3", "Werkblad 1c"],
            ["", "Week 2", "Les 1", "Werkblad 2a"],
            ["", "", "Les 2", "Werkblad 2b"],
            ["", "", "", "Werkblad 2c"],
        ],
        name="Planning",
        sheet_id=1,
    )


@pytest.fixture
def two_blok_sheet() -> RawSheet:
    """Same week label under two bloks, each with its own lessons."""

    return RawSheet.from_values(
        [
            ["Blok", "Week", "Les", "Werkblad"],
            ["Blok 1", "Week 1", "Les A1", "w1"],
            ["", "", "Les A2", "w2"],
            ["Blok 2", "Week 1", "Les B1", "w3"],
        ],
        name="Twee blokken",
        sheet_id=2,
    )


@pytest.fixture
def session(lesson_sheet: RawSheet) -> HierarchySession:
    return HierarchySession(lesson_sheet, file_id="1700000000000-planning.xlsx")


@pytest.fixture
def stub_layout() -> PageLayout:
    return PageLayout(measure=StubMeasurer())
