"""Tests for learning/extraction.py - signatures, categories and output cleanup."""

from __future__ import annotations

import pytest

from patterncache.core.result import Err, ExtractionSkipped, Ok
from patterncache.learning.extraction import (
    DEFAULT_CATEGORY,
    adapt_output,
    category_from_input,
    classify,
    clean_oracle_output,
    derive_signature,
    extract_signature,
    input_keywords,
    text_from_input,
)


class TestExtractSignature:
    def test_drops_short_tokens_and_lowercases(self) -> None:
        text = "Créer un site web professionnel pour restaurant"
        assert extract_signature(text) == "créer site professionnel pour restaurant"

    def test_keeps_at_most_five_tokens(self) -> None:
        text = "alpha bravo charlie delta echoes foxtrot"
        assert extract_signature(text) == "alpha bravo charlie delta echoes"

    def test_preserves_order(self) -> None:
        assert extract_signature("zulu alpha") == "zulu alpha"

    def test_empty_when_no_long_tokens(self) -> None:
        assert extract_signature("un le la de") == ""
        assert extract_signature("") == ""

    def test_deterministic(self) -> None:
        text = "Refaire la peinture du salon"
        assert extract_signature(text) == extract_signature(text)


class TestDeriveSignature:
    def test_ok_for_usable_text(self) -> None:
        match derive_signature("Nouveau logo moderne"):
            case Ok(signature):
                assert signature == "nouveau logo moderne"
            case Err(err):
                pytest.fail(f"unexpected skip: {err}")

    def test_err_for_short_words(self) -> None:
        result = derive_signature("a b c")
        assert result.is_err()
        assert isinstance(result.error, ExtractionSkipped)


class TestClassify:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Créer un site vitrine", "développement"),
            ("Un nouveau logo", "design"),
            ("Peinture du salon", "travaux"),
            ("Campagne SEO locale", "marketing"),
            ("Rédiger un article", "rédaction"),
            ("Garder mon chat", DEFAULT_CATEGORY),
        ],
    )
    def test_categories(self, text: str, expected: str) -> None:
        assert classify(text) == expected

    def test_first_matching_category_wins(self) -> None:
        # "site" (développement) is checked before "logo" (design)
        assert classify("logo pour mon site") == "développement"

    def test_substring_match(self) -> None:
        # "ui" is a substring of "cuisine"
        assert classify("cuisine") == "design"


class TestStructuredInput:
    def test_text_prefers_description(self) -> None:
        payload = {"title": "Titre", "description": "Description longue"}
        assert text_from_input(payload) == "Description longue"

    def test_text_falls_back_to_mission_then_title(self) -> None:
        assert text_from_input({"mission": {"description": "Mission"}}) == "Mission"
        assert text_from_input({"title": "Titre"}) == "Titre"

    def test_text_serializes_other_payloads(self) -> None:
        assert text_from_input({"budget": 500}) == '{"budget": 500}'

    def test_category_explicit_field(self) -> None:
        assert category_from_input({"category": "jardinage"}) == "jardinage"
        assert category_from_input({"mission": {"category": "plomberie"}}) == "plomberie"

    def test_category_classifies_description(self) -> None:
        assert category_from_input({"description": "refonte du site"}) == "développement"

    def test_input_keywords_filters_stopwords_and_duplicates(self) -> None:
        keywords = input_keywords("Site vitrine pour restaurant avec site mobile")
        assert keywords == ("site", "vitrine", "restaurant", "mobile")


class TestOutputHelpers:
    def test_clean_strips_enhanced_text_wrapper(self) -> None:
        raw = '```json\n{"enhancedText": "Site moderne\\nresponsive"}\n```'
        assert clean_oracle_output(raw) == "Site moderne\nresponsive"

    def test_clean_leaves_plain_text(self) -> None:
        assert clean_oracle_output("  Texte simple  ") == "Texte simple"

    def test_adapt_fills_placeholder_with_truncated_input(self) -> None:
        new_input = "x" * 80
        assert adapt_output("Pour [CONTEXTE].", new_input) == f"Pour {'x' * 50}."

    def test_adapt_without_placeholder_is_identity(self) -> None:
        assert adapt_output("Sortie", "entrée") == "Sortie"
