"""Catalog store backends and the factory that selects one from config."""

from __future__ import annotations

from catalogo.config import StoreConfig
from catalogo.exceptions import StoreConfigurationError
from catalogo.store.base import DEFAULT_RELATION, CatalogStore
from catalogo.store.memory_store import InMemoryCatalogStore
from catalogo.store.rpc_store import RpcCatalogStore


def create_store(config: StoreConfig) -> CatalogStore:
    """Build the configured store backend.

    Raises:
        StoreConfigurationError: If credentials are missing or placeholders,
            or the backend name is unknown
    """
    if config.backend == "memory":
        return InMemoryCatalogStore()

    if config.backend != "rpc":
        raise StoreConfigurationError(f"Unknown store backend: {config.backend!r}")

    if not config.is_configured:
        raise StoreConfigurationError(config.status_message)

    return RpcCatalogStore(
        url=config.url, api_key=config.api_key, timeout=config.timeout_seconds
    )


__all__ = [
    "DEFAULT_RELATION",
    "CatalogStore",
    "InMemoryCatalogStore",
    "RpcCatalogStore",
    "create_store",
]
