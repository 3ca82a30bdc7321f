"""Heuristic level inference for catalog items.

Decides an item's level from its name, tags and explicit hints using an
ordered rule list (first match wins):
1. Explicit level (always wins when valid)
2. Kit flag or "kit" in name -> Kit
3. Part keywords -> Peça
4. Sub-assembly keywords -> Parte
5. Equipment keywords -> Equipamento
6. Assembly keywords in name/tags, or tag "motor" -> Conjunto
7. Fallback -> Peça, flagged as uncertain

Keyword lists can be overridden from YAML (see config/level_rules.yaml).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from catalogo.canonical.normalize import contains_any, normalize_tags, normalize_text
from catalogo.exceptions import ConfigurationError
from catalogo.models import CatalogLevel

logger = logging.getLogger(__name__)

DEFAULT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "kit": ("kit",),
    "part": (
        "pistão",
        "cabeçote",
        "virabrequim",
        "bomba",
        "bico",
        "anel",
        "junta",
        "parafuso",
        "porca",
        "arruela",
    ),
    "subassembly": ("trem de força", "chassis", "transmissão", "diferencial", "eixo"),
    "equipment": (
        "máquina",
        "empilhadeira",
        "escavadeira",
        "pá-carregadeira",
        "trator",
        "rolo",
        "guindaste",
        "retroescavadeira",
    ),
    "assembly": ("conjunto", "sistema", "módulo"),
}

# Tags that classify an item as Conjunto on their own
DEFAULT_ASSEMBLY_TAGS: tuple[str, ...] = ("motor",)

# Cross-cutting facets copied into context; they never change the level
DEFAULT_CONTEXT_TAGS: tuple[str, ...] = ("naval",)

FALLBACK_LEVEL = CatalogLevel.PECA


@dataclass(frozen=True)
class InferenceInput:
    """Normalized view of the values the rules look at."""

    name: str
    tags: frozenset[str]
    is_kit: bool = False


@dataclass(frozen=True)
class LevelRule:
    """One (predicate, outcome) pair of the ordered rule list."""

    name: str
    level: CatalogLevel
    predicate: Callable[[InferenceInput], bool]

    def matches(self, data: InferenceInput) -> bool:
        return self.predicate(data)


@dataclass
class Classification:
    """Outcome of classifying one item."""

    level: CatalogLevel
    rule: str
    uncertain: bool = False
    warnings: list[str] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)


def build_rules(
    keywords: Mapping[str, Iterable[str]],
    assembly_tags: Iterable[str] = DEFAULT_ASSEMBLY_TAGS,
) -> list[LevelRule]:
    """Build the ordered heuristic rule list from keyword tables."""
    kit_words = tuple(keywords["kit"])
    part_words = tuple(keywords["part"])
    subassembly_words = tuple(keywords["subassembly"])
    equipment_words = tuple(keywords["equipment"])
    assembly_words = tuple(keywords["assembly"])
    special_tags = frozenset(normalize_text(tag) for tag in assembly_tags)

    def is_assembly(data: InferenceInput) -> bool:
        if contains_any(data.name, assembly_words):
            return True
        if any(contains_any(tag, assembly_words) for tag in data.tags):
            return True
        return bool(special_tags & data.tags)

    return [
        LevelRule(
            "kit",
            CatalogLevel.KIT,
            lambda data: data.is_kit or contains_any(data.name, kit_words),
        ),
        LevelRule(
            "part_keywords",
            CatalogLevel.PECA,
            lambda data: contains_any(data.name, part_words),
        ),
        LevelRule(
            "subassembly_keywords",
            CatalogLevel.PARTE,
            lambda data: contains_any(data.name, subassembly_words),
        ),
        LevelRule(
            "equipment_keywords",
            CatalogLevel.EQUIPAMENTO,
            lambda data: contains_any(data.name, equipment_words),
        ),
        LevelRule("assembly_keywords", CatalogLevel.CONJUNTO, is_assembly),
    ]


class LevelInferenceEngine:
    """Ordered-rule classifier for catalog levels."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize engine, optionally overriding keywords from YAML.

        Args:
            config_path: Path to a level rules YAML file

        Raises:
            ConfigurationError: If the YAML file is missing or invalid
        """
        keywords: dict[str, tuple[str, ...]] = dict(DEFAULT_KEYWORDS)
        assembly_tags = DEFAULT_ASSEMBLY_TAGS
        context_tags = DEFAULT_CONTEXT_TAGS

        if config_path is not None:
            config = self._load_config(config_path)
            for key, words in (config.get("keywords") or {}).items():
                if key not in DEFAULT_KEYWORDS:
                    raise ConfigurationError(
                        f"Unknown keyword group '{key}' in {config_path}"
                    )
                keywords[key] = self._as_word_list(words, f"keywords.{key}", config_path)
            if "assembly_tags" in config:
                assembly_tags = self._as_word_list(
                    config["assembly_tags"], "assembly_tags", config_path
                )
            if "context_tags" in config:
                context_tags = self._as_word_list(
                    config["context_tags"], "context_tags", config_path
                )

        self.rules = build_rules(keywords, assembly_tags)
        self.context_tags = context_tags

    @staticmethod
    def _load_config(config_path: Path) -> dict[str, Any]:
        if not config_path.exists():
            raise ConfigurationError(f"Level rules config not found: {config_path}")

        try:
            with config_path.open(encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

        if not isinstance(config, dict):
            raise ConfigurationError(f"Level rules in {config_path} must be a mapping")
        return config

    @staticmethod
    def _as_word_list(value: Any, key: str, config_path: Path) -> tuple[str, ...]:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(f"'{key}' in {config_path} must be a list of strings")
        return tuple(value)

    def classify(
        self,
        name: str,
        tags: Iterable[str] = (),
        explicit_level: Any = None,
        *,
        is_kit: bool = False,
        context: Mapping[str, Any] | None = None,
    ) -> Classification:
        """Classify an item. Never raises; always returns a level."""
        tag_list = normalize_tags(tags)
        normalized_tags = frozenset(normalize_text(tag) for tag in tag_list)
        merged_context = self._merge_context_tags(tag_list, context)
        warnings: list[str] = []

        if explicit_level is not None and explicit_level != "":
            level = CatalogLevel.parse(explicit_level)
            if level is not None:
                return Classification(level=level, rule="explicit", context=merged_context)
            warnings.append(f"ignored invalid level {explicit_level!r} for '{name}'")

        data = InferenceInput(
            name=normalize_text(name), tags=normalized_tags, is_kit=bool(is_kit)
        )
        for rule in self.rules:
            if rule.matches(data):
                logger.debug("Rule %s classified %r as %s", rule.name, name, rule.level.value)
                return Classification(
                    level=rule.level,
                    rule=rule.name,
                    warnings=warnings,
                    context=merged_context,
                )

        warnings.append(
            f"level could not be inferred for '{name}'; defaulted to {FALLBACK_LEVEL.value}"
        )
        return Classification(
            level=FALLBACK_LEVEL,
            rule="fallback",
            uncertain=True,
            warnings=warnings,
            context=merged_context,
        )

    def infer_level(
        self,
        name: str,
        tags: Iterable[str] = (),
        explicit_level: Any = None,
        *,
        is_kit: bool = False,
    ) -> CatalogLevel:
        """Return only the level of classify()."""
        return self.classify(name, tags, explicit_level, is_kit=is_kit).level

    def _merge_context_tags(
        self, tags: list[str], context: Mapping[str, Any] | None
    ) -> dict[str, Any]:
        merged = dict(context or {})
        normalized = {normalize_text(tag) for tag in tags}
        for facet in self.context_tags:
            if normalize_text(facet) in normalized and facet not in merged:
                merged[facet] = True
        return merged


# Singleton instance
_engine: Optional[LevelInferenceEngine] = None


def get_engine() -> LevelInferenceEngine:
    """Get or create the singleton engine, honouring CATALOG_LEVEL_RULES_PATH."""
    global _engine
    if _engine is None:
        from catalogo.config import get_config

        _engine = LevelInferenceEngine(get_config().level_rules_path)
    return _engine


def infer_level(
    name: str,
    tags: Iterable[str] = (),
    explicit_level: Any = None,
    *,
    is_kit: bool = False,
) -> CatalogLevel:
    """Infer an item's level using the default rule set (convenience function)."""
    return get_engine().infer_level(name, tags, explicit_level, is_kit=is_kit)
