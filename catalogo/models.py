"""Catalogo Pydantic models for type-safe data validation.

The catalog is a hierarchy of items, each occupying one of five levels.
Open-ended `context` and `attributes` maps hold JSON-compatible values so
they survive export/import round trips unchanged.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

from catalogo.canonical.normalize import normalize_tags, normalize_text

JsonObject = dict[str, JsonValue]


class CatalogLevel(str, Enum):
    """Taxonomy rank an item occupies."""

    EQUIPAMENTO = "Equipamento"
    CONJUNTO = "Conjunto"
    PARTE = "Parte"
    PECA = "Peça"
    KIT = "Kit"

    @classmethod
    def parse(cls, value: Any) -> CatalogLevel | None:
        """Resolve a level from an enum member or a loosely written token.

        Matching is case- and accent-insensitive ("peca", "PEÇA" -> Peça).
        Returns None for blank or unknown values.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None

        token = normalize_text(value)
        if not token:
            return None
        for member in cls:
            if normalize_text(member.value) == token:
                return member
        return None


CATALOG_LEVELS: tuple[CatalogLevel, ...] = tuple(CatalogLevel)


def _coerce_level(value: Any) -> CatalogLevel:
    level = CatalogLevel.parse(value)
    if level is None:
        raise ValueError(
            f"invalid level {value!r}; expected one of "
            + ", ".join(member.value for member in CatalogLevel)
        )
    return level


class CatalogItem(BaseModel):
    """Item persisted in the catalog store."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    code: str | None = None
    name: str
    level: CatalogLevel
    context: JsonObject = Field(default_factory=dict)
    attributes: JsonObject = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: Any) -> CatalogLevel:
        return _coerce_level(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> list[str]:
        return normalize_tags(v)

    @field_validator("context", "attributes", mode="before")
    @classmethod
    def default_empty_map(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def tag_set(self) -> frozenset[str]:
        """Tags as an order-independent set."""
        return frozenset(self.tags)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "2f1c7a2e-5d4b-4b8e-9a51-0f6c1b7d9e10",
                "code": "PST-4D80",
                "name": "Pistão 4D80",
                "level": "Peça",
                "context": {"setor": "construcao", "naval": True},
                "attributes": {"diametro_mm": 102},
                "tags": ["motor", "yuchai"],
            }
        }
    )


class ItemPayload(BaseModel):
    """Create-or-update request for a catalog item."""

    code: str | None = None
    name: str
    level: CatalogLevel | None = None
    is_kit: bool = False
    context: JsonObject = Field(default_factory=dict)
    attributes: JsonObject = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    @field_validator("code", mode="before")
    @classmethod
    def blank_code_is_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: Any) -> CatalogLevel | None:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return _coerce_level(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> list[str]:
        return normalize_tags(v)

    def to_rpc(self) -> dict[str, Any]:
        """Serialize for the store's create_or_update_item procedure."""
        return self.model_dump(mode="json", exclude_none=True)


class CatalogTag(BaseModel):
    """Shared tag vocabulary entry."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    kind: str = "free"


class CatalogRelation(BaseModel):
    """Parent/child edge between two catalog items."""

    parent_id: str
    child_id: str
    relation: str = "contains"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuditLog(BaseModel):
    """Append-only record of a mutating store operation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    item_code: str | None = None
    action: str
    payload: dict[str, Any] = Field(default_factory=dict)
    status: Literal["success", "error"]
    message: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StoreResult(BaseModel):
    """Envelope returned by every store procedure."""

    status: Literal["success", "error"]
    message: str = ""
    data: Any = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def success(
        cls, message: str = "", data: Any = None, warnings: list[str] | None = None
    ) -> StoreResult:
        return cls(status="success", message=message, data=data, warnings=warnings or [])

    @classmethod
    def error(cls, message: str, data: Any = None) -> StoreResult:
        return cls(status="error", message=message, data=data)


class CatalogFilters(BaseModel):
    """Search facets; all present filters are combined with AND."""

    query: str | None = None
    tag: str | None = None
    level: CatalogLevel | None = None
    has_parent: bool | None = None
    has_children: bool | None = None

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: Any) -> CatalogLevel | None:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return _coerce_level(v)


class ItemRelations(BaseModel):
    """Direct parents and children of one item."""

    parents: list[CatalogItem] = Field(default_factory=list)
    children: list[CatalogItem] = Field(default_factory=list)
