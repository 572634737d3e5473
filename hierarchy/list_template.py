"""Automatic three column material list (Blok / Weken / Materialen).

Rows of a lesson planning sheet are reduced to one line per blok and week
listing the materials mentioned in the two instruction columns.  Sheets
with a ``Course`` column get one section per course.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .sheet import RawSheet
from .tree import COURSE_ROOT_LEVEL, ROOT_LEVEL, HierarchyNode, HierarchyTree, make_root

logger = logging.getLogger(__name__)

COLUMN_TITLES: Tuple[str, str, str] = ("Blok", "Weken", "Materialen")
UNKNOWN_LABEL = "Onbekend"
UNKNOWN_COURSE = "Onbekende Course"
UNKNOWN_MATERIAL = "materiaal onbekend"
EMPTY_MATERIAL = "•"

_QUANTITY_RE = re.compile(r"^(\d+)\s+(.+)$")
_LEADING_NUMBER_RE = re.compile(r"^\d+\s*")
_NUMBER_RE = re.compile(r"\d+")


@dataclass
class Material:
    name: str
    quantity: str = ""
    text: str = ""


@dataclass
class ListRow:
    blok: str
    week: str
    materials: str


@dataclass
class CourseSection:
    """Rows of one course; ``name`` is empty for single course sheets."""

    name: str = ""
    rows: List[ListRow] = field(default_factory=list)

    @property
    def columns(self) -> List[List[str]]:
        return [
            [row.blok for row in self.rows],
            [row.week for row in self.rows],
            [row.materials or EMPTY_MATERIAL for row in self.rows],
        ]

    @property
    def header_label(self) -> str:
        return course_group_label(self.name)


def course_group_label(name: str) -> str:
    """Short group label shown in the course pill (``Groep 4``)."""

    if not name:
        return ""
    in_parentheses = re.search(r"\(([^)]+)\)", name)
    if in_parentheses:
        return in_parentheses.group(1)
    group = re.search(r"groep\s+\d+", name, re.IGNORECASE)
    if group:
        return group.group(0)
    return name


def smart_split(text: str, separators: str = ",;") -> List[str]:
    """Split on ``separators`` except inside parentheses."""

    parts: List[str] = []
    current = ""
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char in separators and depth == 0:
            parts.append(current)
            current = ""
            continue
        current += char
    if current:
        parts.append(current)
    return parts


def _parse_material(part: str) -> Material:
    match = _QUANTITY_RE.match(part)
    if match:
        name = re.sub(r"\s+", " ", match.group(2).strip())
        return Material(name=name, quantity=match.group(1), text=part)
    name = re.sub(r"\s+", " ", _LEADING_NUMBER_RE.sub("", part.strip()))
    return Material(name=name, text=part)


def extract_class_materials(text: str) -> List[Material]:
    """Materials from the whole-class instruction column."""

    materials: List[Material] = []
    for part in smart_split(text):
        part = part.strip()
        if not part:
            continue
        material = _parse_material(part)
        if len(material.name) > 1:
            materials.append(material)
    return materials


def extract_pupil_materials(text: str) -> List[Material]:
    """Materials from the pupil instruction column.

    Only the text after the first colon lists materials.  Without any usable
    name the row still counts, as ``materiaal onbekend``.
    """

    if ":" in text:
        text = text.split(":", 1)[1].strip()
    materials: List[Material] = []
    for part in smart_split(text):
        part = part.strip()
        if not part:
            continue
        material = _parse_material(part)
        if len(material.name) > 2 and not material.name.isdigit():
            materials.append(material)
    if not materials:
        return [Material(name=UNKNOWN_MATERIAL, text=UNKNOWN_MATERIAL)]
    return materials


def find_course_column(headers: Sequence[str]) -> int:
    for index, header in enumerate(headers):
        if header and "course" in header.lower():
            return index
    return -1


def find_instruction_columns(headers: Sequence[str]) -> Tuple[int, int]:
    """Indices of the class and pupil instruction columns (``-1`` if absent)."""

    class_column = pupil_column = -1
    for index, header in enumerate(headers):
        lowered = (header or "").lower()
        if "instructie" not in lowered:
            continue
        if class_column < 0 and "klas" in lowered:
            class_column = index
        if pupil_column < 0 and "leerlingen" in lowered:
            pupil_column = index
    return class_column, pupil_column


def _label_number(label: str) -> int:
    match = _NUMBER_RE.search(label)
    return int(match.group(0)) if match else 0


def build_list_rows(
    frame: pd.DataFrame,
    headers: Sequence[str],
    blok_column: int,
    week_column: int,
) -> List[ListRow]:
    """Group materials per blok and week, sorted by blok then week number."""

    class_column, pupil_column = find_instruction_columns(headers)
    labels = frame.reindex(columns=[blok_column, week_column])
    labels = labels.where(labels != "").ffill().fillna(UNKNOWN_LABEL)

    weeks_per_material: Dict[Tuple[str, str], List[str]] = {}
    for position, (_, row) in enumerate(frame.iterrows()):
        blok = labels.iat[position, 0]
        week = labels.iat[position, 1]
        class_text = str(row.get(class_column, "") or "").strip() if class_column >= 0 else ""
        pupil_text = str(row.get(pupil_column, "") or "").strip() if pupil_column >= 0 else ""
        if not class_text and not pupil_text:
            continue
        materials: List[Material] = []
        if class_text:
            materials.extend(extract_class_materials(class_text))
        if pupil_text:
            materials.extend(extract_pupil_materials(pupil_text))
        for material in materials:
            weeks = weeks_per_material.setdefault((material.name, blok), [])
            if week not in weeks:
                weeks.append(week)

    per_week: Dict[Tuple[str, str], List[str]] = {}
    for (name, blok), weeks in weeks_per_material.items():
        for week in weeks:
            per_week.setdefault((blok, week), []).append(name)

    ordered = sorted(
        per_week.items(),
        key=lambda item: (_label_number(item[0][0]), _label_number(item[0][1])),
    )
    rows = [
        ListRow(blok=blok, week=week, materials=", ".join(dict.fromkeys(names)))
        for (blok, week), names in ordered
    ]
    logger.debug("Built %d list row(s)", len(rows))
    return rows


def build_list_template(sheet: RawSheet) -> List[CourseSection]:
    """One section per course, or a single unnamed section."""

    if sheet.is_empty:
        return []
    frame = pd.DataFrame(sheet.rows, dtype=str)
    course_column = find_course_column(sheet.headers)
    if course_column < 0:
        return [CourseSection(rows=build_list_rows(frame, sheet.headers, 0, 1))]

    courses = frame[course_column].where(frame[course_column] != "", np.nan)
    courses = courses.ffill().fillna(UNKNOWN_COURSE)
    sections: List[CourseSection] = []
    for name, group in frame.groupby(courses, sort=False):
        rows = build_list_rows(group.reset_index(drop=True), sheet.headers, 1, 2)
        if rows:
            sections.append(CourseSection(name=str(name), rows=rows))
    logger.info("List template for '%s' has %d course(s)", sheet.name, len(sections))
    return sections


def _column_nodes(section: CourseSection) -> List[HierarchyNode]:
    nodes: List[HierarchyNode] = []
    for title, values in zip(COLUMN_TITLES, section.columns):
        column = HierarchyNode(value=title)
        column.children = [HierarchyNode(value=value) for value in values]
        nodes.append(column)
    return nodes


def list_template_tree(sections: Sequence[CourseSection]) -> HierarchyTree:
    """Tree form of the list: course containers at level -1 when named."""

    has_courses = any(section.name for section in sections)
    root = make_root(COURSE_ROOT_LEVEL if has_courses else ROOT_LEVEL)
    for section in sections:
        if has_courses:
            course = HierarchyNode(value=section.name, is_course=True)
            course.children = _column_nodes(section)
            root.children.append(course)
        else:
            root.children.extend(_column_nodes(section))
    return HierarchyTree(root)


def sections_from_tree(tree: HierarchyTree, course: Optional[str] = None) -> List[CourseSection]:
    """Read the list back from its tree, optionally limited to one course."""

    def section_for(name: str, columns: List[HierarchyNode]) -> CourseSection:
        values = [[child.value for child in column.children] for column in columns[:3]]
        while len(values) < 3:
            values.append([])
        count = max((len(column) for column in values), default=0)
        padded = [column + [""] * (count - len(column)) for column in values]
        rows = [
            ListRow(blok=padded[0][index], week=padded[1][index], materials=padded[2][index])
            for index in range(count)
        ]
        return CourseSection(name=name, rows=rows)

    top = tree.root.children
    if any(node.is_course for node in top):
        return [
            section_for(node.value, node.children)
            for node in top
            if node.is_course and (course is None or node.value == course)
        ]
    return [section_for("", list(top))] if top else []


__all__ = [
    "COLUMN_TITLES",
    "CourseSection",
    "EMPTY_MATERIAL",
    "ListRow",
    "Material",
    "UNKNOWN_MATERIAL",
    "build_list_rows",
    "build_list_template",
    "course_group_label",
    "extract_class_materials",
    "extract_pupil_materials",
    "find_course_column",
    "find_instruction_columns",
    "list_template_tree",
    "sections_from_tree",
    "smart_split",
]
