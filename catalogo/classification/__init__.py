"""Catalog taxonomy: containment matrix and level inference."""

from catalogo.classification.containment import (
    CONTAINMENT_MATRIX,
    allowed_children,
    can_contain,
    check_attachment,
)
from catalogo.classification.level_inference import (
    Classification,
    LevelInferenceEngine,
    LevelRule,
    infer_level,
)

__all__ = [
    "CONTAINMENT_MATRIX",
    "allowed_children",
    "can_contain",
    "check_attachment",
    "Classification",
    "LevelInferenceEngine",
    "LevelRule",
    "infer_level",
]
