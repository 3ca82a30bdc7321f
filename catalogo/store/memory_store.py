"""In-process catalog store.

Reference implementation of the server-side procedures: upsert by code,
shared tag vocabulary, containment and cycle checks on relations, cascade
delete and an append-only audit log written for every mutating call.
Used by the test suite and by the CLI when CATALOG_STORE_BACKEND=memory.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog

from catalogo.canonical.normalize import normalize_tags
from catalogo.classification.containment import check_attachment
from catalogo.classification.level_inference import LevelInferenceEngine
from catalogo.models import (
    AuditLog,
    CatalogItem,
    CatalogLevel,
    CatalogRelation,
    CatalogTag,
    ItemPayload,
    ItemRelations,
    StoreResult,
)
from catalogo.store.base import DEFAULT_RELATION, CatalogStore

logger = structlog.get_logger(__name__)


class InMemoryCatalogStore(CatalogStore):
    """Catalog store kept in memory; state lives as long as the instance."""

    def __init__(self, engine: LevelInferenceEngine | None = None):
        self._engine = engine or LevelInferenceEngine()
        self._items: dict[str, CatalogItem] = {}
        self._codes: dict[str, str] = {}  # code -> item id
        self._relations: list[CatalogRelation] = []
        self._tags: dict[str, CatalogTag] = {}
        self._audit: list[AuditLog] = []

    # ------------------------------------------------------------------ helpers

    def _record(
        self,
        action: str,
        payload: dict[str, Any],
        result: StoreResult,
        item_code: str | None = None,
    ) -> StoreResult:
        self._audit.append(
            AuditLog(
                item_code=item_code,
                action=action,
                payload=payload,
                status=result.status,
                message=result.message,
            )
        )
        return result

    def _by_code(self, code: str | None) -> CatalogItem | None:
        if not code:
            return None
        item_id = self._codes.get(code)
        return self._items.get(item_id) if item_id else None

    def _register_tags(self, tags: list[str]) -> None:
        for name in tags:
            if name not in self._tags:
                self._tags[name] = CatalogTag(name=name)

    def _parents_of(self, item_id: str) -> set[str]:
        return {r.parent_id for r in self._relations if r.child_id == item_id}

    def _children_of(self, item_id: str) -> set[str]:
        return {r.child_id for r in self._relations if r.parent_id == item_id}

    def _is_ancestor(self, candidate_id: str, item_id: str) -> bool:
        """Check whether candidate_id is item_id or one of its ancestors."""
        pending = [item_id]
        seen: set[str] = set()
        while pending:
            current = pending.pop()
            if current == candidate_id:
                return True
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self._parents_of(current))
        return False

    def _validate_edge(self, parent: CatalogItem, child: CatalogItem) -> str | None:
        reason = check_attachment(parent.level, child.level, parent.code, child.code)
        if reason:
            return reason
        if self._is_ancestor(child.id, parent.id):
            return f"attaching '{child.code}' under '{parent.code}' would create a cycle"
        return None

    # --------------------------------------------------------------- procedures

    async def create_or_update_item(self, payload: ItemPayload) -> StoreResult:
        request = payload.to_rpc()
        classification = self._engine.classify(
            payload.name,
            payload.tags,
            payload.level,
            is_kit=payload.is_kit,
            context=payload.context,
        )
        now = datetime.now(timezone.utc)

        existing = self._by_code(payload.code)
        if existing is not None:
            item = existing.model_copy(
                update={
                    "name": payload.name,
                    "level": classification.level,
                    "context": classification.context,
                    "attributes": dict(payload.attributes),
                    "tags": list(payload.tags),
                    "updated_at": now,
                }
            )
            message = f"item '{payload.code}' updated"
        else:
            item = CatalogItem(
                code=payload.code,
                name=payload.name,
                level=classification.level,
                context=classification.context,
                attributes=dict(payload.attributes),
                tags=list(payload.tags),
                created_at=now,
                updated_at=now,
            )
            if item.code:
                self._codes[item.code] = item.id
            message = f"item '{item.code or item.name}' created"

        self._items[item.id] = item
        self._register_tags(item.tags)
        logger.debug("item_saved", code=item.code, level=item.level.value)

        result = StoreResult.success(
            message, data=item.model_dump(mode="json"), warnings=classification.warnings
        )
        return self._record("create_or_update_item", request, result, item.code)

    async def delete_item(self, code: str, cascade: bool = False) -> StoreResult:
        request = {"item_code": code, "cascade_delete": cascade}
        item = self._by_code(code)
        if item is None:
            result = StoreResult.error(f"item '{code}' not found")
            return self._record("delete_item", request, result, code)

        children = self._children_of(item.id)
        if children and not cascade:
            result = StoreResult.error(
                f"item '{code}' has {len(children)} child item(s); use cascade to delete them"
            )
            return self._record("delete_item", request, result, code)

        # Descendants shared with a surviving parent are kept
        doomed = {item.id}
        changed = True
        while changed:
            changed = False
            for candidate in list(self._items):
                if candidate in doomed:
                    continue
                parents = self._parents_of(candidate)
                if parents and parents <= doomed:
                    doomed.add(candidate)
                    changed = True

        for item_id in doomed:
            removed = self._items.pop(item_id)
            if removed.code:
                self._codes.pop(removed.code, None)
        self._relations = [
            r for r in self._relations if r.parent_id not in doomed and r.child_id not in doomed
        ]

        result = StoreResult.success(
            f"deleted {len(doomed)} item(s)", data={"deleted": len(doomed)}
        )
        return self._record("delete_item", request, result, code)

    async def search_items(
        self,
        query: str | None = None,
        tag: str | None = None,
        level: str | None = None,
    ) -> StoreResult:
        needle = query.strip().lower() if query else ""
        wanted_level = CatalogLevel.parse(level) if level else None
        if level and wanted_level is None:
            return StoreResult.error(f"invalid level {level!r}")

        matches = []
        for item in self._items.values():
            if needle and needle not in item.name.lower() and needle not in (item.code or "").lower():
                continue
            if tag and tag not in item.tag_set:
                continue
            if wanted_level and item.level != wanted_level:
                continue
            matches.append(item)

        matches.sort(key=lambda i: (i.name.lower(), i.code or ""))
        return StoreResult.success(
            f"{len(matches)} item(s) found",
            data=[item.model_dump(mode="json") for item in matches],
        )

    async def attach_child(
        self, parent_code: str, child_code: str, relation: str = DEFAULT_RELATION
    ) -> StoreResult:
        request = {"parent_code": parent_code, "child_code": child_code, "relation": relation}
        parent = self._by_code(parent_code)
        child = self._by_code(child_code)

        if parent is None:
            result = StoreResult.error(f"parent item '{parent_code}' not found")
        elif child is None:
            result = StoreResult.error(f"child item '{child_code}' not found")
        elif any(
            r.parent_id == parent.id and r.child_id == child.id for r in self._relations
        ):
            result = StoreResult.success(
                f"'{child_code}' is already attached to '{parent_code}'"
            )
        else:
            reason = self._validate_edge(parent, child)
            if reason:
                result = StoreResult.error(reason)
            else:
                self._relations.append(
                    CatalogRelation(parent_id=parent.id, child_id=child.id, relation=relation)
                )
                result = StoreResult.success(f"'{child_code}' attached to '{parent_code}'")

        return self._record("attach_child", request, result, child_code)

    async def move_item(
        self, child_code: str, from_parent_code: str, to_parent_code: str
    ) -> StoreResult:
        request = {
            "child_code": child_code,
            "from_parent_code": from_parent_code,
            "to_parent_code": to_parent_code,
        }
        child = self._by_code(child_code)
        source = self._by_code(from_parent_code)
        target = self._by_code(to_parent_code)

        if child is None or source is None or target is None:
            missing = [
                code
                for code, found in (
                    (child_code, child),
                    (from_parent_code, source),
                    (to_parent_code, target),
                )
                if found is None
            ]
            result = StoreResult.error(f"item(s) not found: {', '.join(missing)}")
            return self._record("move_item", request, result, child_code)

        edge = next(
            (r for r in self._relations if r.parent_id == source.id and r.child_id == child.id),
            None,
        )
        if edge is None:
            result = StoreResult.error(
                f"'{child_code}' is not attached to '{from_parent_code}'"
            )
            return self._record("move_item", request, result, child_code)

        # Validate against the graph without the edge being moved
        self._relations.remove(edge)
        reason = self._validate_edge(target, child)
        if reason:
            self._relations.append(edge)
            result = StoreResult.error(reason)
        else:
            self._relations.append(
                CatalogRelation(parent_id=target.id, child_id=child.id, relation=edge.relation)
            )
            result = StoreResult.success(
                f"'{child_code}' moved from '{from_parent_code}' to '{to_parent_code}'"
            )
        return self._record("move_item", request, result, child_code)

    async def retag_item(self, code: str, tags: list[str]) -> StoreResult:
        cleaned = normalize_tags(tags)
        request = {"item_code": code, "new_tags": cleaned}
        item = self._by_code(code)
        if item is None:
            result = StoreResult.error(f"item '{code}' not found")
            return self._record("retag_item", request, result, code)

        updated = item.model_copy(
            update={"tags": cleaned, "updated_at": datetime.now(timezone.utc)}
        )
        self._items[item.id] = updated
        self._register_tags(cleaned)
        result = StoreResult.success(
            f"item '{code}' retagged", data=updated.model_dump(mode="json")
        )
        return self._record("retag_item", request, result, code)

    # ------------------------------------------------------------------- tables

    async def get_all_tags(self) -> list[CatalogTag]:
        return sorted(self._tags.values(), key=lambda t: t.name)

    async def get_audit_logs(
        self, item_code: str | None = None, limit: int = 100
    ) -> list[AuditLog]:
        entries = [
            entry
            for entry in reversed(self._audit)
            if item_code is None or entry.item_code == item_code
        ]
        return entries[:limit]

    async def get_item(self, code: str) -> CatalogItem | None:
        return self._by_code(code)

    async def get_item_relations(self, item_id: str) -> ItemRelations:
        return ItemRelations(
            parents=[self._items[i] for i in self._parents_of(item_id) if i in self._items],
            children=[self._items[i] for i in self._children_of(item_id) if i in self._items],
        )
