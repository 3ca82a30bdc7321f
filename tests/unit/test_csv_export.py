"""Unit tests for catalog CSV export."""

from __future__ import annotations

import csv
import json
from datetime import datetime
from io import StringIO

import pytest

from catalogo.exceptions import CatalogStoreError
from catalogo.models import CatalogItem, StoreResult
from catalogo.reporting.csv_export import (
    EXPORT_COLUMNS,
    export_csv,
    export_items_csv,
    item_to_row,
)
from catalogo.store import InMemoryCatalogStore


class OfflineStore(InMemoryCatalogStore):
    async def search_items(self, query=None, tag=None, level=None):
        return StoreResult.error("network unreachable")


class TestItemToRow:
    """Test single-item serialization."""

    def test_fields_in_declared_order(self):
        item = CatalogItem(
            code="PST-1",
            name='Pistão 4" STD',
            level="Peça",
            tags=["motor", "naval"],
            context={"naval": True},
            attributes={"diametro_mm": 102, "ligas": ["Al", "Si"]},
            created_at=datetime(2024, 5, 1, 10, 30),
        )

        row = item_to_row(item)

        assert row == [
            "PST-1",
            'Pistão 4" STD',
            "Peça",
            "motor;naval",
            '{"naval":true}',
            '{"diametro_mm":102,"ligas":["Al","Si"]}',
            "2024-05-01T10:30:00",
            "",
        ]

    def test_missing_code_is_blank(self):
        assert item_to_row(CatalogItem(name="Anel", level="Peça"))[0] == ""


class TestExportCsv:
    """Test whole-catalog export."""

    @pytest.mark.asyncio
    async def test_header_and_rows(self, populated_service):
        text = await populated_service.export_csv()

        lines = text.split("\n")
        assert lines[0] == ",".join(f'"{column}"' for column in EXPORT_COLUMNS)
        assert len(lines) == 4
        assert all(line.startswith('"') and line.endswith('"') for line in lines)

    @pytest.mark.asyncio
    async def test_cells_parse_back(self, populated_service):
        text = await populated_service.export_csv()

        rows = list(csv.DictReader(StringIO(text)))
        by_code = {row["code"]: row for row in rows}

        assert by_code["MT-C6"]["level"] == "Conjunto"
        assert by_code["MT-C6"]["tags"] == "motor;naval"
        assert json.loads(by_code["MT-C6"]["context"]) == {"naval": True}
        assert json.loads(by_code["EQ-320"]["attributes"]) == {"peso_t": 21.5}
        assert by_code["PST-4D80"]["created_at"]

    @pytest.mark.asyncio
    async def test_empty_catalog(self, store):
        assert await export_csv(store) == ",".join(f'"{c}"' for c in EXPORT_COLUMNS)

    @pytest.mark.asyncio
    async def test_streams_one_chunk_per_row(self, populated_service):
        chunks = [chunk async for chunk in export_items_csv(populated_service.store)]

        assert len(chunks) == 4
        assert all(chunk.endswith("\n") for chunk in chunks)

    @pytest.mark.asyncio
    async def test_store_failure(self):
        with pytest.raises(CatalogStoreError) as exc_info:
            await export_csv(OfflineStore())

        assert "Could not fetch items for export" in str(exc_info.value)
