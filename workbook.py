from dataclasses import dataclass, field
from typing import Dict, List

from hierarchy.errors import SheetNotFoundError
from hierarchy.sheet import RawSheet


@dataclass
class WorkbookData:
    """Container for parsed workbook data."""
    name: str
    file_id: str = ""
    sheets: Dict[int, RawSheet] = field(default_factory=dict)

    @property
    def sheet_names(self) -> List[str]:
        return [sheet.name for sheet in self.sheets.values()]

    def sheet(self, sheet_id: int) -> RawSheet:
        try:
            return self.sheets[int(sheet_id)]
        except (KeyError, ValueError):
            raise SheetNotFoundError(f"Sheet '{sheet_id}' not found in '{self.name}'") from None

    def sheet_by_name(self, name: str) -> RawSheet:
        for sheet in self.sheets.values():
            if sheet.name == name:
                return sheet
        raise SheetNotFoundError(f"Sheet '{name}' not found in '{self.name}'")
