"""Command line interface for exporting material lists from a workbook."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from tabulate import tabulate

from hierarchy.errors import HierarchyError
from hierarchy.list_template import build_list_template, list_template_tree, sections_from_tree
from hierarchy.mapping import build_tree_from_mapping, default_mapping
from hierarchy.render import A4Page
from hierarchy.tree import HierarchyTree

from .config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from .io import read_workbook
from .reporting import estimate_rows_per_page, export_document, paginate_list, safe_stem
from .storage import MappingStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build a material list PDF from an Excel workbook")
    parser.add_argument("workbook", type=Path, help="Path to the .xlsx workbook")
    parser.add_argument("--sheet", type=int, help="Sheet id (1-based, visible sheets only)")
    parser.add_argument(
        "--mode",
        choices=("hierarchy", "list"),
        default="list",
        help="Export the mapped hierarchy or the automatic three column list",
    )
    parser.add_argument(
        "--mapping",
        choices=("default", "stored"),
        default="default",
        help="Use the default column chain or the mapping stored for this workbook",
    )
    parser.add_argument("--config", type=Path, help="Path to YAML configuration")
    parser.add_argument("--output-dir", type=Path, help="Directory for generated files")
    parser.add_argument("--show-empty", action="store_true", help="Render empty cells in hierarchy mode")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING)")
    parser.add_argument("--quiet", action="store_true", help="Suppress console summary output")
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    try:
        config = _load_config(args.config)
        if args.output_dir:
            config.output.directory = _resolve_override_path(args.output_dir)
    except (OSError, ValueError) as exc:
        logger.error("Failed to load configuration: %s", exc)
        return 1

    try:
        workbook = read_workbook(args.workbook)
        if not workbook.sheets:
            logger.error("Workbook '%s' has no visible sheets with data", workbook.name)
            return 1
        sheet = workbook.sheet(args.sheet if args.sheet is not None else min(workbook.sheets))
    except (OSError, ValueError, KeyError) as exc:
        logger.error("Failed to read workbook: %s", exc)
        return 1

    stem = f"{safe_stem(workbook.name)}_{safe_stem(sheet.name, 'sheet')}"
    totals: Dict[str, Any] = {}
    try:
        if args.mode == "list":
            tree = list_template_tree(build_list_template(sheet))
            pages = paginate_list(tree, sheet.name, config)
            paths = export_document(config, stem, pages=pages)
            summary = _list_summary(pages)
            totals["rows_per_page"] = estimate_rows_per_page(sections_from_tree(tree), config)
        else:
            mapping = None
            if args.mapping == "stored":
                store = MappingStore(config.storage.mapping_path)
                mapping = store.get(workbook.name, sheet.sheet_id)
                if mapping is None:
                    logger.warning("No stored mapping for sheet %d; using the default", sheet.sheet_id)
            tree = build_tree_from_mapping(
                sheet,
                mapping if mapping is not None else default_mapping(sheet.headers),
                config.hierarchy.label_columns,
            )
            paths = export_document(
                config,
                stem,
                nodes=tree.root.children,
                subtitle=sheet.name,
                show_empty_cells=args.show_empty,
            )
            summary = _hierarchy_summary(tree)
    except (HierarchyError, OSError, ValueError) as exc:
        logger.exception("Export failed: %s", exc)
        return 1

    if not args.quiet:
        _print_summary(summary, paths, totals, as_json=args.json)
    return 0


def _load_config(path: Optional[Path]) -> AppConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    logger.info("No configuration file found; using defaults")
    return AppConfig()


def _resolve_override_path(path: Path) -> Path:
    path = Path(path).expanduser()
    if path.is_absolute():
        return path
    return (Path.cwd() / path).resolve()


def _list_summary(pages: List[A4Page]) -> List[Dict[str, Any]]:
    return [
        {"page": page.number, "course": page.course or "-", "rows": len(page.rows)}
        for page in pages
    ]


def _hierarchy_summary(tree: HierarchyTree) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for node in tree.root.children:
        descendants = 0
        stack = list(node.children)
        while stack:
            current = stack.pop()
            descendants += 1
            stack.extend(current.children)
        rows.append(
            {
                "node": node.value or node.column_name or "-",
                "column": node.column_name or "-",
                "children": len(node.children),
                "descendants": descendants,
            }
        )
    return rows


def _print_summary(
    summary: List[Dict[str, Any]],
    paths: Dict[str, Path],
    totals: Dict[str, Any],
    as_json: bool = False,
) -> None:
    if as_json:
        payload = {
            "summary": summary,
            "totals": totals,
            "files": {key: str(path) for key, path in paths.items()},
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    if not summary:
        print("Nothing to export.")
    else:
        print(tabulate(summary, headers="keys", tablefmt="github"))
    if "rows_per_page" in totals:
        print(f"Rows per page (heaviest row): {totals['rows_per_page']}")
    for key, path in paths.items():
        print(f"{key.upper()}: {path}")


if __name__ == "__main__":  # pragma: no cover - manual execution entry point
    raise SystemExit(main())
