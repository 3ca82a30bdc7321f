"""Hosted catalog store accessed through PostgREST-style RPC and table reads.

Procedures live server-side (create_or_update_item, attach_child, ...) and
answer with the {status, message, data, warnings} envelope. Every request
carries its own timeout; a timeout becomes an error result for that call
only. No retries are attempted here.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from catalogo.models import (
    AuditLog,
    CatalogItem,
    CatalogTag,
    ItemPayload,
    ItemRelations,
    StoreResult,
)
from catalogo.store.base import DEFAULT_RELATION, CatalogStore

logger = structlog.get_logger(__name__)


class RpcCatalogStore(CatalogStore):
    """Client for a hosted database exposing catalog procedures over HTTP."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1",
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _rpc(self, name: str, params: dict[str, Any]) -> StoreResult:
        """Call a remote procedure and normalize its answer to a StoreResult."""
        try:
            response = await self.client.post(f"/rpc/{name}", json=params)
            response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("rpc_timeout", procedure=name, timeout=self.timeout)
            return StoreResult.error(f"{name} timed out after {self.timeout:g}s")
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.warning(
                "rpc_http_error",
                procedure=name,
                status_code=e.response.status_code,
                message=message,
            )
            return StoreResult.error(message)
        except httpx.HTTPError as e:
            logger.error("rpc_transport_error", procedure=name, error=str(e))
            return StoreResult.error(f"{name} failed: {e}")

        try:
            body = response.json()
        except ValueError:
            return StoreResult.error(f"{name} returned a non-JSON response")

        if isinstance(body, dict) and "status" in body:
            try:
                return StoreResult.model_validate(body)
            except ValidationError as e:
                return StoreResult.error(f"{name} returned an invalid envelope: {e}")

        return StoreResult.success(data=body)

    async def _select(self, table: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Read rows from a table; failures are logged and yield no rows."""
        try:
            response = await self.client.get(f"/{table}", params=params)
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("table_read_failed", table=table, error=str(e))
            return []

        return rows if isinstance(rows, list) else []

    async def create_or_update_item(self, payload: ItemPayload) -> StoreResult:
        return await self._rpc("create_or_update_item", {"payload": payload.to_rpc()})

    async def delete_item(self, code: str, cascade: bool = False) -> StoreResult:
        return await self._rpc(
            "delete_item", {"item_code": code, "cascade_delete": cascade}
        )

    async def search_items(
        self,
        query: str | None = None,
        tag: str | None = None,
        level: str | None = None,
    ) -> StoreResult:
        return await self._rpc("search_items", {"q": query, "tag": tag, "level": level})

    async def attach_child(
        self, parent_code: str, child_code: str, relation: str = DEFAULT_RELATION
    ) -> StoreResult:
        return await self._rpc(
            "attach_child",
            {"parent_code": parent_code, "child_code": child_code, "relation": relation},
        )

    async def move_item(
        self, child_code: str, from_parent_code: str, to_parent_code: str
    ) -> StoreResult:
        return await self._rpc(
            "move_item",
            {
                "child_code": child_code,
                "from_parent_code": from_parent_code,
                "to_parent_code": to_parent_code,
            },
        )

    async def retag_item(self, code: str, tags: list[str]) -> StoreResult:
        return await self._rpc("retag_item", {"item_code": code, "new_tags": tags})

    async def get_all_tags(self) -> list[CatalogTag]:
        rows = await self._select("tags", {"select": "*", "order": "name"})
        return _parse_rows(CatalogTag, rows)

    async def get_audit_logs(
        self, item_code: str | None = None, limit: int = 100
    ) -> list[AuditLog]:
        params: dict[str, Any] = {
            "select": "*",
            "order": "created_at.desc",
            "limit": limit,
        }
        if item_code:
            params["item_code"] = f"eq.{item_code}"
        rows = await self._select("audit_logs", params)
        return _parse_rows(AuditLog, rows)

    async def get_item(self, code: str) -> CatalogItem | None:
        rows = await self._select(
            "items", {"select": "*", "code": f"eq.{code}", "limit": 1}
        )
        items = _parse_rows(CatalogItem, rows)
        return items[0] if items else None

    async def get_item_relations(self, item_id: str) -> ItemRelations:
        parent_rows, child_rows = await asyncio.gather(
            self._select(
                "item_relations",
                {"select": "parent:parent_id(*)", "child_id": f"eq.{item_id}"},
            ),
            self._select(
                "item_relations",
                {"select": "child:child_id(*)", "parent_id": f"eq.{item_id}"},
            ),
        )
        parents = [row["parent"] for row in parent_rows if row.get("parent")]
        children = [row["child"] for row in child_rows if row.get("child")]
        return ItemRelations(
            parents=_parse_rows(CatalogItem, parents),
            children=_parse_rows(CatalogItem, children),
        )


def _error_message(response: httpx.Response) -> str:
    """Extract the database error message from an HTTP error response."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or body.get("hint")
        if message:
            return str(message)
    return f"HTTP {response.status_code}"


def _parse_rows(model, rows: list[dict[str, Any]]) -> list:
    parsed = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning("row_skipped", model=model.__name__, error=str(e))
    return parsed
