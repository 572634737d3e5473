"""Persistence of hierarchy column mappings per file and sheet."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from hierarchy.mapping import HierarchyMapping, parse_mapping, serialise_mapping

logger = logging.getLogger(__name__)


def mapping_key(file_id: str, sheet_id: int) -> str:
    return f"{file_id}-{sheet_id}"


class MappingStore:
    """Flat JSON file of ``"<fileId>-<sheetId>" -> mapping`` entries."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._entries = self._load()
        self.last_error: Optional[str] = None

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable mapping store %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring mapping store %s: expected an object", self.path)
            return {}
        return data

    def _write(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as handle:
                json.dump(self._entries, handle, ensure_ascii=False, indent=2)
        except OSError as exc:
            self.last_error = str(exc)
            logger.error("Failed to write hierarchy mappings to %s: %s", self.path, exc)
            return False
        self.last_error = None
        return True

    def get(self, file_id: str, sheet_id: int) -> Optional[HierarchyMapping]:
        raw = self._entries.get(mapping_key(file_id, sheet_id))
        if raw is None:
            return None
        try:
            return parse_mapping(raw)
        except ValueError as exc:
            logger.warning("Stored mapping for %s is invalid: %s", mapping_key(file_id, sheet_id), exc)
            return None

    def save(self, file_id: str, sheet_id: int, mapping: Mapping[int, Any]) -> bool:
        """Store ``mapping``; returns ``False`` when the file could not be written."""

        self._entries[mapping_key(file_id, sheet_id)] = serialise_mapping(mapping)
        return self._write()

    def clear(self, file_id: str, sheet_id: int) -> bool:
        if self._entries.pop(mapping_key(file_id, sheet_id), None) is None:
            return True
        return self._write()

    def keys(self) -> List[str]:
        return sorted(self._entries)


__all__ = ["MappingStore", "mapping_key"]
