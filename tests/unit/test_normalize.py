"""Unit tests for text and tag normalization."""

from __future__ import annotations

from catalogo.canonical.normalize import (
    contains_any,
    normalize_tags,
    normalize_text,
    split_tags,
)


class TestNormalizeText:
    """Test text normalization function."""

    def test_lowercase_conversion(self):
        assert normalize_text("PISTÃO 4D80") == "pistao 4d80"

    def test_accents_removed(self):
        assert normalize_text("Cabeçote") == "cabecote"
        assert normalize_text("Transmissão") == "transmissao"
        assert normalize_text("Pá-carregadeira") == "pa-carregadeira"

    def test_whitespace_collapsing(self):
        assert normalize_text("  trem   de\tforça ") == "trem de forca"

    def test_none_input(self):
        assert normalize_text(None) == ""

    def test_empty_string(self):
        assert normalize_text("") == ""


class TestTags:
    """Test tag splitting and cleanup."""

    def test_split_trims_and_drops_empties(self):
        assert split_tags("motor; naval;;  yuchai ;") == ["motor", "naval", "yuchai"]

    def test_split_empty(self):
        assert split_tags("") == []
        assert split_tags(None) == []

    def test_duplicates_removed_keeping_first(self):
        assert normalize_tags(["b", "a", "b"]) == ["b", "a"]


class TestContainsAny:
    def test_accent_insensitive_needles(self):
        assert contains_any("pistao 4d80", ["pistão"])
        assert not contains_any("filtro de oleo", ["pistão", "bomba"])

    def test_empty_needles_ignored(self):
        assert not contains_any("qualquer", ["", "  "])
