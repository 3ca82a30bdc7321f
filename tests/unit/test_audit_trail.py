"""Unit tests for the audit trail view."""

from __future__ import annotations

import pytest

from catalogo.core.audit_trail import AuditAction


class TestAuditTrail:
    """Test queries over store audit entries."""

    @pytest.mark.asyncio
    async def test_every_mutation_recorded(self, populated_service):
        entries = await populated_service.audit.recent()

        assert [entry.action for entry in entries] == [
            "attach_child",
            "attach_child",
            "create_or_update_item",
            "create_or_update_item",
            "create_or_update_item",
        ]
        assert all(entry.status == "success" for entry in entries)

    @pytest.mark.asyncio
    async def test_for_item(self, populated_service):
        await populated_service.retag_item("MT-C6", ["motor"])

        entries = await populated_service.audit.for_item("MT-C6")

        assert entries[0].action == "retag_item"
        assert entries[0].payload == {"item_code": "MT-C6", "new_tags": ["motor"]}
        assert all(entry.item_code == "MT-C6" for entry in entries)

    @pytest.mark.asyncio
    async def test_failures(self, populated_service):
        await populated_service.delete_item("EQ-320")

        failures = await populated_service.audit.failures()

        assert len(failures) == 1
        assert failures[0].action == AuditAction.DELETE_ITEM.value
        assert "cascade" in failures[0].message

    @pytest.mark.asyncio
    async def test_by_action(self, populated_service):
        entries = await populated_service.audit.by_action(AuditAction.ATTACH_CHILD)

        assert {entry.item_code for entry in entries} == {"MT-C6", "PST-4D80"}
        assert await populated_service.audit.by_action("move_item") == []

    @pytest.mark.asyncio
    async def test_limit(self, populated_service):
        assert len(await populated_service.audit.recent(limit=2)) == 2
        assert await populated_service.audit.recent(limit=0) == []
