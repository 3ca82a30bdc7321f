"""CSV export of the full catalog.

Output re-imports cleanly: every field is double-quoted with embedded quotes
doubled, so JSON `context`/`attributes` cells survive the round trip.
"""

from __future__ import annotations

import csv
import json
from collections.abc import AsyncGenerator
from datetime import datetime
from io import StringIO
from typing import Any

from catalogo.exceptions import CatalogStoreError
from catalogo.models import CatalogItem
from catalogo.search import CatalogSearch
from catalogo.store.base import CatalogStore

EXPORT_COLUMNS = [
    "code",
    "name",
    "level",
    "tags",
    "context",
    "attributes",
    "created_at",
    "updated_at",
]


def _json_cell(value: dict[str, Any]) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _timestamp_cell(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def item_to_row(item: CatalogItem) -> list[str]:
    """Serialize one item in EXPORT_COLUMNS order."""
    return [
        item.code or "",
        item.name,
        item.level.value,
        ";".join(item.tags),
        _json_cell(item.context),
        _json_cell(item.attributes),
        _timestamp_cell(item.created_at),
        _timestamp_cell(item.updated_at),
    ]


async def export_items_csv(store: CatalogStore) -> AsyncGenerator[str, None]:
    """Generate CSV lines for every item in the catalog.

    Yields:
        CSV rows as strings, header first

    Raises:
        CatalogStoreError: If the store cannot list the catalog
    """
    try:
        items = await CatalogSearch(store).search()
    except CatalogStoreError as e:
        raise CatalogStoreError(f"Could not fetch items for export: {e}")

    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")

    writer.writerow(EXPORT_COLUMNS)
    yield output.getvalue()
    output.seek(0)
    output.truncate(0)

    for item in items:
        writer.writerow(item_to_row(item))
        yield output.getvalue()
        output.seek(0)
        output.truncate(0)


async def export_csv(store: CatalogStore) -> str:
    """Export the whole catalog as one CSV document."""
    chunks = [chunk async for chunk in export_items_csv(store)]
    return "".join(chunks).rstrip("\n")
