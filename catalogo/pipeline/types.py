"""Type definitions for bulk import operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ImportStatus(str, Enum):
    """Overall outcome of an import operation."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    SKIPPED = "SKIPPED"


@dataclass
class RowError:
    """Failure scoped to one CSV row (1-based line number, header included)."""

    row: int
    error: str


@dataclass
class ImportResult:
    """Itemized receipt of a bulk import.

    Imports are not transactional: rows before a failure stay applied and
    rows after it are still processed.
    """

    success_count: int = 0
    errors: list[RowError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def add_error(self, row: int, error: str) -> None:
        self.errors.append(RowError(row=row, error=error))

    def add_warning(self, row: int | None, warning: str) -> None:
        self.warnings.append(f"Row {row}: {warning}" if row is not None else warning)

    @property
    def total_rows(self) -> int:
        """Rows that reached the store or failed validation."""
        return self.success_count + len(self.errors)

    @property
    def status(self) -> ImportStatus:
        if self.total_rows == 0:
            return ImportStatus.SKIPPED
        if not self.errors:
            return ImportStatus.SUCCESS
        if self.success_count:
            return ImportStatus.PARTIAL_SUCCESS
        return ImportStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success_count,
            "errors": [{"row": e.row, "error": e.error} for e in self.errors],
            "warnings": list(self.warnings),
        }


@dataclass
class CsvValidation:
    """Dry-run report for a CSV payload; no store calls are made."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    preview: list[dict[str, str]] = field(default_factory=list)
