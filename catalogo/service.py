"""Catalog service: the composition point between UI-facing callers and the store.

Fills in missing classification with the level inference engine, checks
parent/child placement against the containment matrix before issuing a
write, and exposes search, audit and CSV operations over one injected store.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog

from catalogo.canonical.normalize import normalize_tags
from catalogo.classification.containment import check_attachment
from catalogo.classification.level_inference import LevelInferenceEngine
from catalogo.config import AppConfig, ImportConfig, get_config
from catalogo.core.audit_trail import AuditTrail
from catalogo.models import CatalogItem, ItemPayload, StoreResult
from catalogo.pipeline.csv_importer import CatalogCsvImporter
from catalogo.pipeline.types import CsvValidation, ImportResult
from catalogo.reporting.csv_export import export_csv
from catalogo.search import CatalogSearch
from catalogo.store import create_store
from catalogo.store.base import DEFAULT_RELATION, CatalogStore

logger = structlog.get_logger(__name__)


class CatalogService:
    """Catalog operations over an explicitly injected store."""

    def __init__(
        self,
        store: CatalogStore,
        engine: LevelInferenceEngine | None = None,
        import_config: ImportConfig | None = None,
    ):
        self.store = store
        self.engine = engine or LevelInferenceEngine()
        self.search = CatalogSearch(store)
        self.audit = AuditTrail(store)
        self.importer = CatalogCsvImporter(self, import_config or ImportConfig())

    async def save_item(self, payload: ItemPayload) -> StoreResult:
        """Create or update an item, inferring its level when absent."""
        classification = self.engine.classify(
            payload.name,
            payload.tags,
            payload.level,
            is_kit=payload.is_kit,
            context=payload.context,
        )
        payload = payload.model_copy(
            update={"level": classification.level, "context": classification.context}
        )

        result = await self.store.create_or_update_item(payload)
        if classification.warnings:
            result = result.model_copy(
                update={"warnings": [*result.warnings, *classification.warnings]}
            )

        logger.info(
            "item_saved" if result.ok else "item_save_failed",
            code=payload.code,
            level=classification.level.value,
            rule=classification.rule,
            message=result.message,
        )
        return result

    async def attach_child(
        self, parent_code: str, child_code: str, relation: str = DEFAULT_RELATION
    ) -> StoreResult:
        """Attach child to parent after checking the containment matrix."""
        reason = await self._placement_error(parent_code, child_code)
        if reason:
            logger.info("attach_rejected", parent=parent_code, child=child_code, reason=reason)
            return StoreResult.error(reason)
        return await self.store.attach_child(parent_code, child_code, relation)

    async def move_item(
        self, child_code: str, from_parent_code: str, to_parent_code: str
    ) -> StoreResult:
        """Move child under a new parent after checking the containment matrix."""
        reason = await self._placement_error(to_parent_code, child_code)
        if reason:
            logger.info("move_rejected", parent=to_parent_code, child=child_code, reason=reason)
            return StoreResult.error(reason)
        return await self.store.move_item(child_code, from_parent_code, to_parent_code)

    async def retag_item(self, code: str, tags: list[str]) -> StoreResult:
        return await self.store.retag_item(code, normalize_tags(tags))

    async def delete_item(self, code: str, cascade: bool = False) -> StoreResult:
        return await self.store.delete_item(code, cascade=cascade)

    async def get_item(self, code: str) -> CatalogItem | None:
        return await self.store.get_item(code)

    async def import_csv(self, text: str) -> ImportResult:
        return await self.importer.import_csv(text)

    def validate_csv(self, text: str) -> CsvValidation:
        return self.importer.validate_csv(text)

    async def export_csv(self) -> str:
        return await export_csv(self.store)

    async def _placement_error(self, parent_code: str, child_code: str) -> str | None:
        """Return why parent may not contain child, when it can be known client-side.

        Unknown items are left for the store to report.
        """
        if parent_code == child_code:
            return f"item '{child_code}' cannot contain itself"

        parent, child = await asyncio.gather(
            self.store.get_item(parent_code), self.store.get_item(child_code)
        )
        if parent is None or child is None:
            return None
        return check_attachment(parent.level, child.level, parent_code, child_code)


@asynccontextmanager
async def open_catalog(config: AppConfig | None = None) -> AsyncGenerator[CatalogService, None]:
    """Create the store and service on entry, dispose of the store on exit.

    Raises:
        StoreConfigurationError: If store credentials are missing
        ConfigurationError: If the level rules file is invalid
    """
    config = config or get_config()
    engine = LevelInferenceEngine(config.level_rules_path)
    store = create_store(config.store)
    try:
        yield CatalogService(store, engine, config.csv_import)
    finally:
        await store.aclose()
