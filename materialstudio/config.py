"""Configuration loading utilities for Material Studio."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from hierarchy.measure import StyleProfile
from hierarchy.pagination import PageLayout
from hierarchy.resolver import DEFAULT_STRICT_LABELS

from .fonts import ensure_pdf_fonts_registered

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


@dataclass
class PageConfig:
    """Physical page and pagination budgets (pixels at 96 dpi)."""

    width_mm: float = 210.0
    height_mm: float = 297.0
    padding_mm: float = 15.0
    rows_budget_px: float = 900.0
    single_course_budget_px: float = 750.0
    multi_course_budget_px: float = 900.0
    title_height_px: float = 80.0
    safety_ratio: float = 0.95


@dataclass
class StyleConfig:
    """Fonts and colours shared by the HTML preview and the PDF."""

    font_name: str = "Helvetica"
    bold_font_name: str = "Helvetica-Bold"
    font_path: Optional[Path] = None
    bold_font_path: Optional[Path] = None
    font_size: float = 14.0
    leading: float = 19.6
    cell_padding_x: float = 15.0
    cell_padding_y: float = 10.0
    header_font_size: float = 16.0
    header_padding_x: float = 16.0
    header_padding_y: float = 8.0
    accent_color: str = "#34a3d7"
    zebra_color: str = "#f8f9fa"

    def resolved(self, base_path: Path) -> "StyleConfig":
        values = {item.name: getattr(self, item.name) for item in fields(self)}
        for key in ("font_path", "bold_font_path"):
            if values[key] is not None:
                values[key] = _resolve_path(values[key], base_path)
        return StyleConfig(**values)


@dataclass
class HierarchyConfig:
    """Settings for value resolution and template replication."""

    strict_labels: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_STRICT_LABELS))
    label_columns: List[str] = field(default_factory=lambda: ["Blok", "Week", "Les"])
    max_clone_depth: int = 5


@dataclass
class StorageConfig:
    """Location of the persisted hierarchy mappings."""

    directory: Path = Path("~/.materialstudio")
    mapping_file: str = "hierarchy_configurations.json"

    def resolved(self, base_path: Path) -> "StorageConfig":
        return StorageConfig(
            directory=_resolve_path(self.directory, base_path),
            mapping_file=self.mapping_file,
        )

    @property
    def mapping_path(self) -> Path:
        return Path(self.directory).expanduser() / self.mapping_file


@dataclass
class OutputConfig:
    """Paths describing where exports should be written."""

    directory: Path = Path("output")
    title: str = "Materialenlijst"
    write_html: bool = True

    def resolved(self, base_path: Path) -> "OutputConfig":
        return OutputConfig(
            directory=_resolve_path(self.directory, base_path),
            title=self.title,
            write_html=self.write_html,
        )


@dataclass
class AppConfig:
    """Container for all configuration used by the CLI and the UI."""

    page: PageConfig = field(default_factory=PageConfig)
    style: StyleConfig = field(default_factory=StyleConfig)
    hierarchy: HierarchyConfig = field(default_factory=HierarchyConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def resolved(self, base_path: Path) -> "AppConfig":
        return AppConfig(
            page=self.page,
            style=self.style.resolved(base_path),
            hierarchy=self.hierarchy,
            storage=self.storage.resolved(base_path),
            output=self.output.resolved(base_path),
        )

    def fonts(self) -> Tuple[str, str]:
        """Registered (base, bold) font names; measurement and PDF both use these."""

        return ensure_pdf_fonts_registered(self.style)

    def cell_style(self) -> StyleProfile:
        return StyleProfile(
            font_name=self.fonts()[0],
            font_size=self.style.font_size,
            leading=self.style.leading,
            padding_x=self.style.cell_padding_x,
            padding_y=self.style.cell_padding_y,
        )

    def header_style(self) -> StyleProfile:
        return StyleProfile(
            font_name=self.fonts()[1],
            font_size=self.style.header_font_size,
            leading=self.style.header_font_size * 1.2,
            padding_x=self.style.header_padding_x,
            padding_y=self.style.header_padding_y,
        )

    def page_layout(self, **kwargs: Any) -> PageLayout:
        return PageLayout(
            style=self.cell_style(),
            header_style=self.header_style(),
            page_width_mm=self.page.width_mm,
            page_height_mm=self.page.height_mm,
            padding_mm=self.page.padding_mm,
            safety_ratio=self.page.safety_ratio,
            **kwargs,
        )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load :class:`AppConfig` from a YAML file."""

    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file '{config_path}' does not exist")

    with config_path.open("r", encoding="utf-8") as stream:
        raw_config: Mapping[str, Any] = yaml.safe_load(stream) or {}

    if not isinstance(raw_config, Mapping):
        raise ValueError("Configuration must be a mapping of sections")

    config = AppConfig(
        page=_parse_section(PageConfig, raw_config, "page"),
        style=_parse_section(StyleConfig, raw_config, "style", paths=("font_path", "bold_font_path")),
        hierarchy=_parse_hierarchy(raw_config.get("hierarchy") or {}),
        storage=_parse_section(StorageConfig, raw_config, "storage", paths=("directory",)),
        output=_parse_section(OutputConfig, raw_config, "output", paths=("directory",)),
    )
    return config.resolved(config_path.parent)


def _parse_section(cls, raw_config: Mapping[str, Any], name: str, paths=()):
    section = raw_config.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    known = {item.name for item in fields(cls)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown keys in '{name}': {', '.join(unknown)}")
    values: Dict[str, Any] = dict(section)
    for key in paths:
        if values.get(key) is not None:
            values[key] = Path(values[key])
    return cls(**values)


def _parse_hierarchy(section: Mapping[str, Any]) -> HierarchyConfig:
    if not isinstance(section, Mapping):
        raise ValueError("Configuration section 'hierarchy' must be a mapping")
    config = HierarchyConfig()
    labels = section.get("strict_labels")
    if labels is not None:
        if not isinstance(labels, Mapping):
            raise ValueError("hierarchy.strict_labels must map headers to patterns")
        config.strict_labels = {str(key): str(value) for key, value in labels.items()}
    columns = section.get("label_columns")
    if columns is not None:
        config.label_columns = [str(column) for column in columns]
    if "max_clone_depth" in section:
        depth = int(section["max_clone_depth"])
        if depth < 1:
            raise ValueError("hierarchy.max_clone_depth must be at least 1")
        config.max_clone_depth = depth
    return config


def _resolve_path(path: Path, base_path: Path) -> Path:
    expanded = Path(path).expanduser()
    if expanded.is_absolute():
        return expanded
    return (base_path / expanded).resolve()


__all__ = [
    "AppConfig",
    "DEFAULT_CONFIG_PATH",
    "HierarchyConfig",
    "OutputConfig",
    "PageConfig",
    "StorageConfig",
    "StyleConfig",
    "load_config",
]
