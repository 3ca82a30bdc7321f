"""Pytest configuration and fixtures for Catalogo tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

import pytest
import pytest_asyncio

from catalogo.classification.level_inference import LevelInferenceEngine
from catalogo.config import reset_config
from catalogo.models import ItemPayload
from catalogo.service import CatalogService
from catalogo.store.memory_store import InMemoryCatalogStore


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Isolate tests from the cached config and local store credentials."""
    for var in (
        "CATALOG_STORE_BACKEND",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "CATALOG_LEVEL_RULES_PATH",
        "CATALOG_IMPORT_MAX_ROWS",
        "CATALOG_IMPORT_PREVIEW_ROWS",
        "CATALOG_STORE_TIMEOUT",
        "LOG_LEVEL",
        "JSON_LOGS",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def engine() -> LevelInferenceEngine:
    """Inference engine with built-in rules."""
    return LevelInferenceEngine()


@pytest.fixture
def store() -> InMemoryCatalogStore:
    """Empty in-memory catalog store."""
    return InMemoryCatalogStore()


@pytest.fixture
def service(store: InMemoryCatalogStore, engine: LevelInferenceEngine) -> CatalogService:
    """Catalog service over the in-memory store."""
    return CatalogService(store, engine)


@pytest.fixture
def excavator_payload() -> ItemPayload:
    """Top-level equipment item."""
    return ItemPayload(
        code="EQ-320",
        name="Escavadeira 320D",
        tags=["cat"],
        attributes={"peso_t": 21.5},
    )


@pytest.fixture
def engine_assembly_payload() -> ItemPayload:
    """Engine assembly (classified through the motor tag)."""
    return ItemPayload(code="MT-C6", name="Motor C6.4", tags=["motor", "naval"])


@pytest.fixture
def piston_payload() -> ItemPayload:
    """Leaf part."""
    return ItemPayload(code="PST-4D80", name="Pistão 4D80", attributes={"diametro_mm": 102})


@pytest_asyncio.fixture()
async def populated_service(
    service: CatalogService,
    excavator_payload: ItemPayload,
    engine_assembly_payload: ItemPayload,
    piston_payload: ItemPayload,
) -> CatalogService:
    """Service with an equipment > engine > piston chain."""
    for payload in (excavator_payload, engine_assembly_payload, piston_payload):
        result = await service.save_item(payload)
        assert result.ok, result.message
    assert (await service.attach_child("EQ-320", "MT-C6")).ok
    assert (await service.attach_child("MT-C6", "PST-4D80")).ok
    return service
