"""Search/filter facade over the catalog store.

Filters are optional and combined with AND. Free-text matching is delegated
to the store; relation facets (has_parent / has_children) are applied here.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from pydantic import ValidationError

from catalogo.exceptions import CatalogStoreError
from catalogo.models import CatalogFilters, CatalogItem, CatalogLevel
from catalogo.store.base import CatalogStore

logger = structlog.get_logger(__name__)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CatalogSearch:
    """Compose store queries from free text, tag and level facets."""

    def __init__(self, store: CatalogStore):
        self.store = store

    async def search(
        self,
        query: str | None = None,
        tag: str | None = None,
        level: CatalogLevel | str | None = None,
        *,
        has_parent: bool | None = None,
        has_children: bool | None = None,
    ) -> list[CatalogItem]:
        """Search the catalog.

        Raises:
            ValueError: If `level` is not a valid level token
            CatalogStoreError: If the store cannot answer the search
        """
        query = _blank_to_none(query)
        tag = _blank_to_none(tag)

        wanted_level: CatalogLevel | None = None
        if isinstance(level, str) and not level.strip():
            level = None
        if level is not None:
            wanted_level = CatalogLevel.parse(level)
            if wanted_level is None:
                raise ValueError(f"invalid level {level!r}")

        result = await self.store.search_items(
            query=query,
            tag=tag,
            level=wanted_level.value if wanted_level else None,
        )
        if not result.ok:
            raise CatalogStoreError(f"Search failed: {result.message}")

        items = self._parse_items(result.data)

        # Re-apply exact facets in case the store matched loosely
        if tag:
            items = [item for item in items if tag in item.tag_set]
        if wanted_level:
            items = [item for item in items if item.level == wanted_level]

        if has_parent is not None or has_children is not None:
            items = await self._filter_by_relations(items, has_parent, has_children)

        logger.debug(
            "catalog_search",
            query=query,
            tag=tag,
            level=wanted_level.value if wanted_level else None,
            results=len(items),
        )
        return items

    async def search_filters(self, filters: CatalogFilters) -> list[CatalogItem]:
        return await self.search(
            filters.query,
            filters.tag,
            filters.level,
            has_parent=filters.has_parent,
            has_children=filters.has_children,
        )

    async def _filter_by_relations(
        self,
        items: list[CatalogItem],
        has_parent: bool | None,
        has_children: bool | None,
    ) -> list[CatalogItem]:
        relations = await asyncio.gather(
            *(self.store.get_item_relations(item.id) for item in items)
        )
        kept = []
        for item, rel in zip(items, relations):
            if has_parent is not None and bool(rel.parents) != has_parent:
                continue
            if has_children is not None and bool(rel.children) != has_children:
                continue
            kept.append(item)
        return kept

    @staticmethod
    def _parse_items(data: Any) -> list[CatalogItem]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise CatalogStoreError("Search returned an unexpected payload")

        items = []
        for row in data:
            try:
                items.append(CatalogItem.model_validate(row))
            except ValidationError as e:
                logger.warning("search_row_skipped", error=str(e))
        return items
