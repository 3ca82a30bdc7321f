"""Bulk CSV import and dry-run validation for catalog items.

Accepted columns (any order): code, name, level, tags, parent_code, is_kit,
context, attributes. `tags` is ';'-separated, `context` and `attributes`
are JSON objects. Rows are processed strictly one after another; each
row's failure is recorded and the batch continues.

Row numbers are physical line numbers of the file, header included, so a
record that follows blank lines or a multi-line quoted cell is reported
where an editor shows it.
"""

from __future__ import annotations

import csv
import json
import time
from dataclasses import dataclass, field
from io import StringIO
from typing import TYPE_CHECKING, Any, Union

import pandas as pd
import structlog
from pydantic import ValidationError

from catalogo.canonical.normalize import split_tags
from catalogo.classification.level_inference import LevelInferenceEngine
from catalogo.config import ImportConfig
from catalogo.exceptions import CsvFormatError
from catalogo.models import CatalogLevel, ItemPayload
from catalogo.pipeline.types import CsvValidation, ImportResult, RowError

if TYPE_CHECKING:
    from catalogo.service import CatalogService

logger = structlog.get_logger(__name__)

RECOGNIZED_COLUMNS = (
    "code",
    "name",
    "level",
    "tags",
    "parent_code",
    "is_kit",
    "context",
    "attributes",
)

# Written by export, skipped silently on import
EXPORT_ONLY_COLUMNS = ("created_at", "updated_at")

TRUTHY_VALUES = {"true", "1", "yes", "y", "sim", "s", "x"}

CsvRow = Union[dict[str, str], RowError]


@dataclass
class CsvTable:
    """Well-formed records indexed by line number, plus rejected lines."""

    frame: pd.DataFrame
    malformed: list[RowError] = field(default_factory=list)

    @property
    def columns(self) -> list[str]:
        return list(self.frame.columns)

    def __len__(self) -> int:
        return len(self.frame) + len(self.malformed)

    def records(self) -> list[tuple[int, dict[str, str]]]:
        """(line, record) pairs with every cell as a trimmed string."""
        return [
            (int(line), {column: str(value).strip() for column, value in record.items()})
            for line, record in zip(self.frame.index, self.frame.to_dict(orient="records"))
        ]

    def rows(self) -> list[tuple[int, CsvRow]]:
        """Records and rejected lines together, in file order."""
        rows: list[tuple[int, CsvRow]] = list(self.records())
        rows.extend((error.row, error) for error in self.malformed)
        return sorted(rows, key=lambda row: row[0])


def _is_blank(fields: list[str]) -> bool:
    return not any(cell.strip() for cell in fields)


def read_table(text: str, max_rows: int | None = None) -> CsvTable:
    """Parse CSV text into a CsvTable.

    The first non-blank record is the header. Blank records are skipped but
    still count toward line numbers. A record with non-empty cells beyond
    the header becomes a RowError for its line; short records are padded
    with empty cells.

    Raises:
        CsvFormatError: If the text is empty, unreadable or too large
    """
    if not text or not text.strip():
        raise CsvFormatError("empty input")

    reader = csv.reader(StringIO(text))
    header: list[str] = []
    lines: list[int] = []
    values: list[list[str]] = []
    malformed: list[RowError] = []

    next_line = 1
    try:
        for fields in reader:
            # line_num counts physical lines consumed, including quoted newlines
            line, next_line = next_line, reader.line_num + 1
            if _is_blank(fields):
                continue
            if not header:
                header = [cell.strip() for cell in fields]
                continue

            width = len(header)
            if len(fields) > width and not _is_blank(fields[width:]):
                malformed.append(
                    RowError(
                        row=line,
                        error=f"Row {line}: expected {width} fields, found {len(fields)}",
                    )
                )
                continue
            lines.append(line)
            values.append((fields + [""] * width)[:width])
    except csv.Error as e:
        raise CsvFormatError(f"Malformed CSV: {e}")

    if not header:
        raise CsvFormatError("empty input")

    table = CsvTable(
        frame=pd.DataFrame(
            values, columns=header, index=pd.Index(lines, name="line"), dtype=str
        ),
        malformed=malformed,
    )
    if max_rows is not None and len(table) > max_rows:
        raise CsvFormatError(f"Too many rows ({len(table):,}). Maximum allowed: {max_rows:,}")
    return table


def unknown_columns(columns: list[str]) -> list[str]:
    known = set(RECOGNIZED_COLUMNS) | set(EXPORT_ONLY_COLUMNS)
    return [column for column in columns if column not in known]


def _parse_json_object(row: int, column: str, raw: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Row {row}: invalid JSON in '{column}': {e}")
    if not isinstance(value, dict):
        raise ValueError(
            f"Row {row}: '{column}' must be a JSON object, got {type(value).__name__}"
        )
    return value


def build_payload(row: int, record: dict[str, str]) -> tuple[ItemPayload, str | None]:
    """Map one CSV record to an item payload and its optional parent code.

    Raises:
        ValueError: With a row-prefixed message on any validation failure
    """
    name = record.get("name", "")
    if not name:
        raise ValueError(f"Row {row}: 'name' is required")

    raw_level = record.get("level", "")
    level = CatalogLevel.parse(raw_level) if raw_level else None
    if raw_level and level is None:
        allowed = ", ".join(member.value for member in CatalogLevel)
        raise ValueError(f"Row {row}: invalid level '{raw_level}' (expected one of {allowed})")

    context = _parse_json_object(row, "context", record.get("context", ""))
    attributes = _parse_json_object(row, "attributes", record.get("attributes", ""))

    try:
        payload = ItemPayload(
            code=record.get("code") or None,
            name=name,
            level=level,
            is_kit=record.get("is_kit", "").lower() in TRUTHY_VALUES,
            context=context,
            attributes=attributes,
            tags=split_tags(record.get("tags")),
        )
    except ValidationError as e:
        raise ValueError(f"Row {row}: {e.errors()[0]['msg']}")

    return payload, record.get("parent_code") or None


def validate_csv(
    text: str,
    engine: LevelInferenceEngine | None = None,
    config: ImportConfig | None = None,
) -> CsvValidation:
    """Dry-run checks on CSV text. Never touches the store."""
    engine = engine or LevelInferenceEngine()
    config = config or ImportConfig()
    validation = CsvValidation(valid=False)

    try:
        table = read_table(text, config.max_rows)
    except CsvFormatError as e:
        validation.errors.append(str(e))
        return validation

    columns = table.columns
    if "name" not in columns:
        validation.errors.append("header must contain a 'name' column")
    for column in unknown_columns(columns):
        validation.warnings.append(f"Ignoring unrecognized column '{column}'")

    validation.preview = [record for _, record in table.records()[: config.preview_rows]]

    if not len(table):
        validation.warnings.append("header only, no data rows")

    for row, record in table.rows():
        if isinstance(record, RowError):
            validation.errors.append(record.error)
            continue
        if "name" not in columns:
            continue
        try:
            payload, _ = build_payload(row, record)
        except ValueError as e:
            validation.errors.append(str(e))
            continue
        if payload.level is None:
            classification = engine.classify(payload.name, payload.tags, is_kit=payload.is_kit)
            validation.warnings.extend(f"Row {row}: {w}" for w in classification.warnings)

    validation.valid = not validation.errors
    return validation


class CatalogCsvImporter:
    """Import catalog items from CSV text through a CatalogService."""

    def __init__(self, service: CatalogService, config: ImportConfig | None = None):
        self.service = service
        self.config = config or ImportConfig()

    def validate_csv(self, text: str) -> CsvValidation:
        return validate_csv(text, self.service.engine, self.config)

    async def import_csv(self, text: str) -> ImportResult:
        """Import CSV rows into the catalog store, one row at a time.

        Returns:
            ImportResult with success count, per-row errors and warnings

        Raises:
            CsvFormatError: If the text cannot be read as CSV at all
        """
        start_time = time.time()
        result = ImportResult()

        table = read_table(text, self.config.max_rows)
        for column in unknown_columns(table.columns):
            result.add_warning(None, f"Ignoring unrecognized column '{column}'")

        for row, record in table.rows():
            if isinstance(record, RowError):
                result.errors.append(record)
                continue
            await self._import_row(row, record, result)

        result.duration_seconds = time.time() - start_time
        logger.info(
            "csv_import_finished",
            status=result.status.value,
            success=result.success_count,
            errors=len(result.errors),
            warnings=len(result.warnings),
            duration_seconds=round(result.duration_seconds, 3),
        )
        return result

    async def _import_row(self, row: int, record: dict[str, str], result: ImportResult) -> None:
        try:
            payload, parent_code = build_payload(row, record)
        except ValueError as e:
            result.add_error(row, str(e))
            return

        try:
            saved = await self.service.save_item(payload)
        except Exception as e:
            logger.warning("csv_row_failed", row=row, error=str(e), exc_info=True)
            result.add_error(row, f"Row {row}: {e}")
            return

        if not saved.ok:
            result.add_error(row, f"Row {row}: {saved.message}")
            return

        result.success_count += 1
        for warning in saved.warnings:
            result.add_warning(row, warning)

        if not parent_code:
            return
        if not payload.code:
            result.add_warning(
                row, f"parent_code '{parent_code}' ignored because the row has no code"
            )
            return

        # The item itself already exists, so relation problems are warnings
        try:
            attached = await self.service.attach_child(parent_code, payload.code)
        except Exception as e:
            logger.warning("csv_relation_failed", row=row, error=str(e), exc_info=True)
            result.add_warning(row, f"failed to attach to parent '{parent_code}': {e}")
            return

        if not attached.ok:
            result.add_warning(
                row, f"failed to attach to parent '{parent_code}': {attached.message}"
            )
