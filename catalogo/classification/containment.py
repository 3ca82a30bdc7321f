"""Containment matrix between catalog levels.

A parent of level L may only contain children whose level is in
CONTAINMENT_MATRIX[L]. Peça is always a leaf.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from catalogo.models import CatalogLevel

CONTAINMENT_MATRIX: Mapping[CatalogLevel, frozenset[CatalogLevel]] = MappingProxyType(
    {
        CatalogLevel.EQUIPAMENTO: frozenset(
            {CatalogLevel.CONJUNTO, CatalogLevel.PARTE, CatalogLevel.KIT}
        ),
        CatalogLevel.CONJUNTO: frozenset(
            {CatalogLevel.PARTE, CatalogLevel.PECA, CatalogLevel.KIT}
        ),
        CatalogLevel.PARTE: frozenset({CatalogLevel.PECA, CatalogLevel.KIT}),
        CatalogLevel.KIT: frozenset({CatalogLevel.PECA, CatalogLevel.PARTE}),
        CatalogLevel.PECA: frozenset(),
    }
)


def allowed_children(level: Any) -> frozenset[CatalogLevel]:
    """Return the levels a parent of `level` may contain.

    Accepts a CatalogLevel or a level token; unknown levels yield an empty set.
    """
    parsed = CatalogLevel.parse(level)
    if parsed is None:
        return frozenset()
    return CONTAINMENT_MATRIX[parsed]


def can_contain(parent_level: Any, child_level: Any) -> bool:
    """Check whether a parent level may directly contain a child level."""
    child = CatalogLevel.parse(child_level)
    if child is None:
        return False
    return child in allowed_children(parent_level)


def is_leaf(level: Any) -> bool:
    """Check whether a level can never be a parent."""
    return not allowed_children(level)


def check_attachment(
    parent_level: Any,
    child_level: Any,
    parent_code: str | None = None,
    child_code: str | None = None,
) -> str | None:
    """Validate a proposed parent/child attachment.

    Returns:
        None when the attachment is legal, otherwise the reason it is not
    """
    if parent_code and child_code and parent_code == child_code:
        return f"item '{child_code}' cannot contain itself"

    parent = CatalogLevel.parse(parent_level)
    child = CatalogLevel.parse(child_level)
    if parent is None:
        return f"unknown parent level {parent_level!r}"
    if child is None:
        return f"unknown child level {child_level!r}"

    if is_leaf(parent):
        return f"{parent.value} is a leaf level and cannot contain other items"

    if not can_contain(parent, child):
        allowed = ", ".join(sorted(level.value for level in allowed_children(parent)))
        return f"{parent.value} cannot contain {child.value} (allowed: {allowed})"

    return None
