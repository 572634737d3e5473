"""Exceptions raised by hierarchy edit and measurement operations."""

from __future__ import annotations


class HierarchyError(Exception):
    """Base class for hierarchy failures surfaced to the user."""


class DuplicateNodeError(HierarchyError):
    """Raised when a structural edit targets a read-only duplicate node."""

    def __init__(self, node_id: str, template_id: str | None = None) -> None:
        self.node_id = node_id
        self.template_id = template_id
        message = f"Node '{node_id}' is a duplicate; edit its template instead"
        if template_id:
            message += f" ('{template_id}')"
        super().__init__(message)


class ConfirmationRequired(HierarchyError):
    """Raised when a destructive edit has not been acknowledged yet."""

    def __init__(self, node_id: str, message: str, affected: int = 0) -> None:
        self.node_id = node_id
        self.affected = affected
        super().__init__(message)


class MeasurementError(HierarchyError):
    """Raised when the measurement surface cannot be attached or read."""


class SheetNotFoundError(HierarchyError, KeyError):
    """Raised when a sheet id is not present in a workbook."""

    def __str__(self) -> str:  # KeyError quotes its argument otherwise
        return str(self.args[0]) if self.args else ""


__all__ = [
    "ConfirmationRequired",
    "DuplicateNodeError",
    "HierarchyError",
    "MeasurementError",
    "SheetNotFoundError",
]
