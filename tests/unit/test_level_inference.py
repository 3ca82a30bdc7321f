"""Unit tests for heuristic level inference.

Tests the ordered rule list, explicit overrides, the fallback warning and
YAML keyword overrides.
"""

from __future__ import annotations

import pytest

from catalogo.classification.level_inference import (
    LevelInferenceEngine,
    build_rules,
    DEFAULT_KEYWORDS,
    infer_level,
)
from catalogo.exceptions import ConfigurationError
from catalogo.models import CatalogLevel


class TestDocumentedExamples:
    """Reference classifications."""

    def test_kit(self):
        assert infer_level("Kit motor completo", [], None) == CatalogLevel.KIT

    def test_part(self):
        assert infer_level("Pistão 4D80", [], None) == CatalogLevel.PECA

    def test_assembly(self):
        assert infer_level("Conjunto hidráulico", [], None) == CatalogLevel.CONJUNTO

    def test_explicit_overrides_heuristics(self):
        assert infer_level("Pistão X", [], "Equipamento") == CatalogLevel.EQUIPAMENTO


class TestRuleOrder:
    """Test first-match-wins evaluation."""

    def test_rule_names_in_order(self):
        names = [rule.name for rule in build_rules(DEFAULT_KEYWORDS)]
        assert names == [
            "kit",
            "part_keywords",
            "subassembly_keywords",
            "equipment_keywords",
            "assembly_keywords",
        ]

    def test_kit_flag_beats_part_keywords(self, engine):
        result = engine.classify("Jogo de juntas", is_kit=True)

        assert result.level == CatalogLevel.KIT
        assert result.rule == "kit"

    def test_part_beats_assembly(self, engine):
        assert engine.infer_level("Conjunto bomba injetora") == CatalogLevel.PECA

    def test_subassembly(self, engine):
        assert engine.infer_level("Trem de força 6x4") == CatalogLevel.PARTE
        assert engine.infer_level("Eixo dianteiro") == CatalogLevel.PARTE

    def test_equipment(self, engine):
        assert engine.infer_level("Escavadeira 320D") == CatalogLevel.EQUIPAMENTO
        assert engine.infer_level("Pá-carregadeira 950H") == CatalogLevel.EQUIPAMENTO
        assert engine.infer_level("Empilhadeira elétrica") == CatalogLevel.EQUIPAMENTO

    def test_accent_insensitive_matching(self, engine):
        assert engine.infer_level("PISTAO STD") == CatalogLevel.PECA
        assert engine.infer_level("Modulo eletronico") == CatalogLevel.CONJUNTO


class TestTagRules:
    """Test tag-driven classification."""

    def test_motor_tag_makes_assembly(self, engine):
        result = engine.classify("Motor C6.4", ["motor"])

        assert result.level == CatalogLevel.CONJUNTO
        assert result.rule == "assembly_keywords"

    def test_motor_name_without_tag_falls_back(self, engine):
        result = engine.classify("Motor C6.4")

        assert result.level == CatalogLevel.PECA
        assert result.uncertain

    def test_assembly_keyword_in_tag(self, engine):
        assert engine.infer_level("Radiador 3 fileiras", ["sistema de arrefecimento"]) == (
            CatalogLevel.CONJUNTO
        )

    def test_tags_do_not_trigger_part_keywords(self, engine):
        # Only the name is checked for part keywords
        assert engine.classify("Radiador", ["bomba"]).rule == "fallback"


class TestFallback:
    """Test default classification when no rule matches."""

    def test_defaults_to_peca_with_warning(self, engine):
        result = engine.classify("Adesivo industrial")

        assert result.level == CatalogLevel.PECA
        assert result.rule == "fallback"
        assert result.uncertain
        assert len(result.warnings) == 1
        assert "Adesivo industrial" in result.warnings[0]

    def test_matched_rule_is_not_uncertain(self, engine):
        result = engine.classify("Parafuso M8")

        assert not result.uncertain
        assert result.warnings == []


class TestExplicitLevel:
    """Test explicit level handling."""

    @pytest.mark.parametrize("level", list(CatalogLevel))
    def test_every_valid_level_wins(self, engine, level):
        result = engine.classify("Pistão X", explicit_level=level)

        assert result.level == level
        assert result.rule == "explicit"

    def test_string_level_accepted(self, engine):
        assert engine.infer_level("Kit juntas", explicit_level="parte") == CatalogLevel.PARTE

    def test_invalid_level_falls_through_with_warning(self, engine):
        result = engine.classify("Pistão X", explicit_level="Componente")

        assert result.level == CatalogLevel.PECA
        assert result.rule == "part_keywords"
        assert "Componente" in result.warnings[0]


class TestContextFacets:
    """Test cross-cutting tags copied into context."""

    def test_naval_copied_into_context(self, engine):
        result = engine.classify("Bomba d'água", ["naval"], context={"setor": "marinha"})

        assert result.context == {"setor": "marinha", "naval": True}
        assert result.level == CatalogLevel.PECA

    def test_naval_does_not_change_level(self, engine):
        plain = engine.classify("Adesivo")
        naval = engine.classify("Adesivo", ["naval"])

        assert plain.level == naval.level

    def test_existing_context_value_kept(self, engine):
        result = engine.classify("Bomba", ["naval"], context={"naval": False})

        assert result.context == {"naval": False}

    def test_input_context_not_mutated(self, engine):
        context = {"setor": "construcao"}
        engine.classify("Bomba", ["naval"], context=context)

        assert context == {"setor": "construcao"}


class TestDeterminism:
    def test_same_inputs_same_level(self, engine):
        first = engine.classify("Cabeçote 6D102", ["motor"], None)
        second = engine.classify("Cabeçote 6D102", ["motor"], None)

        assert first == second


class TestYamlOverrides:
    """Test keyword overrides loaded from YAML."""

    def test_override_part_keywords(self, tmp_path):
        config = tmp_path / "rules.yaml"
        config.write_text("keywords:\n  part: [filtro]\n", encoding="utf-8")
        engine = LevelInferenceEngine(config_path=config)

        assert engine.classify("Filtro de óleo").rule == "part_keywords"
        # Overridden group no longer knows the defaults
        assert engine.classify("Pistão 4D80").rule == "fallback"

    def test_override_context_tags(self, tmp_path):
        config = tmp_path / "rules.yaml"
        config.write_text("context_tags: [mineracao]\n", encoding="utf-8")
        engine = LevelInferenceEngine(config_path=config)

        result = engine.classify("Bomba", ["mineracao", "naval"])
        assert result.context == {"mineracao": True}

    def test_missing_config_raises_error(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            LevelInferenceEngine(config_path=tmp_path / "missing.yaml")

        assert "not found" in str(exc_info.value)

    def test_invalid_yaml_raises_error(self, tmp_path):
        config = tmp_path / "invalid.yaml"
        config.write_text("keywords: [", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            LevelInferenceEngine(config_path=config)

        assert "Invalid YAML" in str(exc_info.value)

    def test_unknown_group_raises_error(self, tmp_path):
        config = tmp_path / "rules.yaml"
        config.write_text("keywords:\n  acessorio: [cinta]\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            LevelInferenceEngine(config_path=config)

    def test_non_list_group_raises_error(self, tmp_path):
        config = tmp_path / "rules.yaml"
        config.write_text("keywords:\n  kit: kit\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            LevelInferenceEngine(config_path=config)

    def test_shipped_rules_file_matches_defaults(self):
        from pathlib import Path

        shipped = Path(__file__).resolve().parents[2] / "config" / "level_rules.yaml"
        engine = LevelInferenceEngine(config_path=shipped)

        assert engine.infer_level("Kit motor completo") == CatalogLevel.KIT
        assert engine.infer_level("Retroescavadeira 416") == CatalogLevel.EQUIPAMENTO
        assert engine.context_tags == ("naval",)
