"""Read-only view over the store's append-only audit log.

Entries are produced by the store as a side effect of every mutating call.
Nothing here writes or alters them.
"""

from __future__ import annotations

from enum import Enum

from catalogo.models import AuditLog
from catalogo.store.base import CatalogStore


class AuditAction(str, Enum):
    """Actions the store records."""

    CREATE_OR_UPDATE_ITEM = "create_or_update_item"
    ATTACH_CHILD = "attach_child"
    MOVE_ITEM = "move_item"
    RETAG_ITEM = "retag_item"
    DELETE_ITEM = "delete_item"


class AuditTrail:
    """Query helper for audit log entries."""

    def __init__(self, store: CatalogStore):
        self.store = store

    async def recent(self, item_code: str | None = None, limit: int = 100) -> list[AuditLog]:
        """Return the newest entries, optionally for one item."""
        if limit <= 0:
            return []
        return await self.store.get_audit_logs(item_code=item_code, limit=limit)

    async def for_item(self, code: str, limit: int = 100) -> list[AuditLog]:
        return await self.recent(item_code=code, limit=limit)

    async def failures(
        self, item_code: str | None = None, limit: int = 100
    ) -> list[AuditLog]:
        """Return entries whose operation failed, newest first."""
        entries = await self.recent(item_code=item_code, limit=limit)
        return [entry for entry in entries if entry.status == "error"]

    async def by_action(
        self, action: AuditAction | str, limit: int = 100
    ) -> list[AuditLog]:
        name = action.value if isinstance(action, AuditAction) else action
        entries = await self.recent(limit=limit)
        return [entry for entry in entries if entry.action == name]
