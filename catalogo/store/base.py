"""Abstract contract for the catalog item store.

The store owns all persisted items, tags, relations and audit logs. Every
mutating call is recorded in the store's own append-only audit log; this
client only constructs requests and interprets responses.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from catalogo.models import (
    AuditLog,
    CatalogItem,
    CatalogTag,
    ItemPayload,
    ItemRelations,
    StoreResult,
)

DEFAULT_RELATION = "contains"


class CatalogStore(ABC):
    """Async interface every store backend implements.

    Procedures return a StoreResult envelope and report failures through it
    instead of raising. Table reads return plain lists and degrade to empty
    results when the backend fails.
    """

    @abstractmethod
    async def create_or_update_item(self, payload: ItemPayload) -> StoreResult:
        """Upsert an item by code (always creates when code is absent)."""

    @abstractmethod
    async def delete_item(self, code: str, cascade: bool = False) -> StoreResult:
        """Delete an item, optionally with its exclusively owned descendants."""

    @abstractmethod
    async def search_items(
        self,
        query: str | None = None,
        tag: str | None = None,
        level: str | None = None,
    ) -> StoreResult:
        """Search items; `data` holds a list of item mappings."""

    @abstractmethod
    async def attach_child(
        self, parent_code: str, child_code: str, relation: str = DEFAULT_RELATION
    ) -> StoreResult:
        """Create a parent -> child relation."""

    @abstractmethod
    async def move_item(
        self, child_code: str, from_parent_code: str, to_parent_code: str
    ) -> StoreResult:
        """Move a child from one parent to another."""

    @abstractmethod
    async def retag_item(self, code: str, tags: list[str]) -> StoreResult:
        """Replace an item's tag set."""

    @abstractmethod
    async def get_all_tags(self) -> list[CatalogTag]:
        """Return the shared tag vocabulary ordered by name."""

    @abstractmethod
    async def get_audit_logs(
        self, item_code: str | None = None, limit: int = 100
    ) -> list[AuditLog]:
        """Return audit entries, newest first."""

    @abstractmethod
    async def get_item(self, code: str) -> CatalogItem | None:
        """Look up a single item by code."""

    @abstractmethod
    async def get_item_relations(self, item_id: str) -> ItemRelations:
        """Return direct parents and children of an item."""

    async def aclose(self) -> None:
        """Release backend resources (no-op by default)."""
