"""Tests for learning/engine.py - the LearningEngine facade."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from patterncache.core.config import AppConfig, EventLogConfig, LearningConfig
from patterncache.learning.consultant import (
    LEARNING_ANALYSIS_TASK,
    META_LEARNING_TASK,
    MetaLearningConsultant,
)
from patterncache.learning.engine import PROCESSED_PLACEHOLDER, LearningEngine
from patterncache.learning.ingestion import JsonlEventLog
from patterncache.learning.models import Feedback
from patterncache.oracle import FreeText, Structured
from tests.mocks.mock_oracle import MockOracle

WriteEvents = Callable[[list[dict[str, Any]]], Path]

RESTAURANT_PROMPT = "Créer un site web professionnel pour restaurant"
RESTAURANT_OUTPUT = "Site vitrine pour [CONTEXTE] avec réservation en ligne"


def _engine_with_oracle(oracle: MockOracle, **kwargs: Any) -> LearningEngine:
    return LearningEngine(consultant=MetaLearningConsultant(oracle, timeout=1.0), **kwargs)


class TestSuggest:
    @pytest.mark.asyncio
    async def test_similar_pattern_after_ingestion(
        self, write_events: WriteEvents, event_log_path: Path
    ) -> None:
        write_events([{"input_redacted": {"prompt": RESTAURANT_PROMPT}, "output": RESTAURANT_OUTPUT}])
        engine = LearningEngine(event_log=JsonlEventLog(event_log_path))

        report = await engine.ingest_history()
        suggestion = engine.suggest("Créer un site web pro pour restaurant", "enhancement")

        assert report.learned == 1
        assert suggestion == (
            "Site vitrine pour Créer un site web pro pour restaurant avec réservation en ligne"
        )

    @pytest.mark.asyncio
    async def test_exact_hit_requires_confidence(self) -> None:
        engine = LearningEngine()
        await engine.record_success("Nouveau logo boulangerie", "Logo doré", "title", feedback="neutral")

        # 0.6 is below the exact-match threshold but the pattern still matches by similarity
        assert engine.suggest("Nouveau logo boulangerie", "title") == "Logo doré"

        strict = LearningEngine(
            engine.store, settings=LearningConfig(exact_match_threshold=0.7, similarity_threshold=1.0)
        )
        assert strict.suggest("Nouveau logo boulangerie", "title") is None

    @pytest.mark.asyncio
    async def test_other_field_type_does_not_match(self) -> None:
        engine = LearningEngine()
        await engine.record_success("Nouveau logo boulangerie", "Logo doré", "title")
        assert engine.suggest("Nouveau logo boulangerie", "description") is None

    def test_empty_store_and_short_input(self) -> None:
        engine = LearningEngine()
        assert engine.suggest("Créer un site", "enhancement") is None
        assert engine.suggest("un le", "enhancement") is None


class TestRecordSuccess:
    @pytest.mark.asyncio
    async def test_heuristic_learning_without_oracle(self) -> None:
        engine = LearningEngine()
        pattern = await engine.record_success(RESTAURANT_PROMPT, "Site vitrine", "description")

        assert pattern is not None
        assert pattern.key == "description:créer site professionnel pour restaurant"
        assert pattern.category == "développement"
        assert pattern.confidence == pytest.approx(0.8)
        assert not pattern.oracle_enriched

    @pytest.mark.asyncio
    async def test_explicit_category_wins(self) -> None:
        pattern = await LearningEngine().record_success(
            RESTAURANT_PROMPT, "Site", "description", category="restauration"
        )
        assert pattern is not None
        assert pattern.category == "restauration"

    @pytest.mark.asyncio
    async def test_no_signature_stores_nothing(self) -> None:
        engine = LearningEngine()
        assert await engine.record_success("un le la", "Texte", "title") is None
        assert len(engine.store) == 0

    @pytest.mark.asyncio
    async def test_oracle_analysis_enriches_pattern(self) -> None:
        oracle = MockOracle(
            {
                LEARNING_ANALYSIS_TASK: Structured(
                    {
                        "quality_score": 90,
                        "reusability_score": 80,
                        "improvement_factors": ["contexte métier"],
                        "semantic_keywords": ["restaurant"],
                        "pattern_type": "enrichissement",
                    }
                )
            }
        )
        engine = _engine_with_oracle(oracle)

        pattern = await engine.record_success(
            RESTAURANT_PROMPT, "Site vitrine", "description", feedback=Feedback.NEUTRAL
        )

        assert pattern is not None
        assert pattern.oracle_enriched
        # 0.6 + 0.09 + 0.08
        assert pattern.confidence == pytest.approx(0.77)
        assert pattern.improvement_factors == ("contexte métier",)
        assert pattern.semantic_keywords == ("restaurant",)
        assert pattern.pattern_type == "enrichissement"
        [(tag, prompt)] = oracle.call_log
        assert tag == LEARNING_ANALYSIS_TASK
        assert prompt["category"] == "développement"

    @pytest.mark.asyncio
    async def test_oracle_failure_falls_back_to_heuristics(self) -> None:
        oracle = MockOracle().simulate_error(RuntimeError("503"))
        engine = _engine_with_oracle(oracle)

        pattern = await engine.record_success(RESTAURANT_PROMPT, "Site vitrine", "description")

        assert pattern is not None
        assert pattern.confidence == pytest.approx(0.8)
        assert not pattern.oracle_enriched

    @pytest.mark.asyncio
    async def test_concurrent_record_success_same_key(self) -> None:
        oracle = MockOracle(default=FreeText("Qualité: 80"), delay=0.01)
        engine = _engine_with_oracle(oracle)

        await asyncio.gather(
            engine.record_success(RESTAURANT_PROMPT, "Site A", "description"),
            engine.record_success(RESTAURANT_PROMPT, "Site BB", "description"),
        )

        pattern = engine.store.lookup("description:créer site professionnel pour restaurant")
        assert pattern is not None
        assert pattern.usage_count == 2
        assert pattern.successful_output == "Site BB"

    @pytest.mark.asyncio
    async def test_cancellation_discards_oracle_result(self) -> None:
        oracle = MockOracle(default=FreeText("Qualité: 80"), delay=0.5)
        engine = _engine_with_oracle(oracle)

        task = asyncio.create_task(
            engine.record_success(RESTAURANT_PROMPT, "Site vitrine", "description")
        )
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(engine.store) == 0

    @pytest.mark.asyncio
    async def test_high_confidence_emits_instant_insight(self) -> None:
        oracle = MockOracle(
            {LEARNING_ANALYSIS_TASK: Structured({"quality_score": 90, "reusability_score": 90})}
        )
        engine = _engine_with_oracle(oracle)

        await engine.record_success(RESTAURANT_PROMPT, "Site vitrine", "description")

        [insight] = engine.insights
        assert insight.pattern_type == "description"
        assert insight.sample_count == 1
        assert insight.confidence == pytest.approx(0.95)

    @pytest.mark.asyncio
    async def test_reinforcement_does_not_repeat_instant_insight(self) -> None:
        oracle = MockOracle(
            {LEARNING_ANALYSIS_TASK: Structured({"quality_score": 90, "reusability_score": 90})}
        )
        engine = _engine_with_oracle(oracle)

        for _ in range(4):
            await engine.record_success(RESTAURANT_PROMPT, "Site vitrine", "description")

        assert len(engine.insights) == 1
        assert engine.stats().insights_generated == 1

    @pytest.mark.asyncio
    async def test_merged_confidence_never_emits_instant_insight(self) -> None:
        engine = LearningEngine()

        for _ in range(6):
            await engine.record_success(RESTAURANT_PROMPT, "Site vitrine", "description")

        pattern = engine.store.lookup("description:créer site professionnel pour restaurant")
        assert pattern is not None
        assert pattern.usage_count == 6
        assert pattern.confidence > 0.85
        assert engine.insights == ()


class TestRecordInteraction:
    @pytest.mark.asyncio
    async def test_structured_response_with_meta_analysis(self) -> None:
        oracle = MockOracle({META_LEARNING_TASK: FreeText("Relevance: 90\nInnovation: 60")})
        engine = _engine_with_oracle(oracle)
        input_data = {"description": "Refonte du site web de la boulangerie", "category": "web"}

        pattern = await engine.record_interaction(
            "matching",
            input_data,
            {"recommendations": ["Ajouter un menu"], "score": 8},
            {"accepted_provider": 42},
        )

        assert pattern is not None
        assert pattern.key == "matching:refonte site boulangerie"
        assert pattern.category == "web"
        assert pattern.quality_metrics is not None
        # 0.7 + 2 fields * 0.05 + 0.1
        assert pattern.quality_metrics.response_quality == pytest.approx(0.9)
        assert pattern.quality_metrics.relevance_score == pytest.approx(0.9)
        assert pattern.quality_metrics.innovation_factor == pytest.approx(0.6)
        assert pattern.improvement_factors == ("Ajouter un menu",)
        assert pattern.semantic_keywords == ("refonte", "site", "boulangerie")
        assert pattern.successful_output.startswith('{"recommendations"')
        assert pattern.oracle_enriched
        # 0.8 + 0.1 + 0.1 + 0.09 + 0.03 capped
        assert pattern.confidence == pytest.approx(0.98)

    @pytest.mark.asyncio
    async def test_defaults_without_oracle(self) -> None:
        engine = LearningEngine()

        pattern = await engine.record_interaction(
            "pricing", "Estimation peinture salon", None, None, feedback="negative"
        )

        assert pattern is not None
        assert pattern.successful_output == PROCESSED_PLACEHOLDER
        assert pattern.quality_metrics is not None
        assert pattern.quality_metrics.relevance_score == pytest.approx(0.8)
        assert pattern.quality_metrics.innovation_factor == pytest.approx(0.7)
        assert pattern.quality_metrics.reusability_potential == pytest.approx(0.8)
        # 0.8 - 0.2 + (0.7 - 0.7) * 0.5
        assert pattern.confidence == pytest.approx(0.6)
        assert pattern.oracle_analysis is None
        assert not pattern.oracle_enriched
        assert engine.stats().oracle_enriched_count == 0

    @pytest.mark.asyncio
    async def test_free_text_output_truncated(self) -> None:
        pattern = await LearningEngine().record_interaction(
            "enhancement", "Texte descriptif assez long", "x" * 800, "ok"
        )
        assert pattern is not None
        assert pattern.successful_output == "x" * 500

    @pytest.mark.asyncio
    async def test_final_result_used_when_response_empty(self) -> None:
        pattern = await LearningEngine().record_interaction(
            "enhancement", "Texte descriptif assez long", "", {"titre": "Final"}
        )
        assert pattern is not None
        assert pattern.successful_output == '{"titre": "Final"}'
        assert pattern.oracle_analysis is None


class TestStatsAndInsights:
    @pytest.mark.asyncio
    async def test_stats(self) -> None:
        engine = LearningEngine()
        await engine.record_success(RESTAURANT_PROMPT, "Site", "description")
        await engine.record_success("Nouveau logo boulangerie", "Logo", "title", feedback="neutral")

        stats = engine.stats()

        assert stats.total_patterns == 2
        assert stats.categories_learned == 2
        assert stats.interaction_types == ("description", "title")
        assert stats.high_confidence_count == 0
        assert stats.oracle_enriched_count == 0
        assert stats.avg_confidence == pytest.approx(0.7)

    def test_empty_stats(self) -> None:
        stats = LearningEngine().stats()
        assert stats.total_patterns == 0
        assert stats.avg_confidence == 0.0

    @pytest.mark.asyncio
    async def test_ingest_history_regenerates_insights(
        self, write_events: WriteEvents, event_log_path: Path
    ) -> None:
        prompts = [
            "Créer site restaurant italien",
            "Créer site boulangerie artisanale",
            "Refonte application mobile",
            "Développer code javascript",
            "Maintenance site vitrine",
            "Migration site ecommerce",
        ]
        write_events([{"input_redacted": {"prompt": p}, "output": f"Sortie {p}"} for p in prompts])
        engine = LearningEngine(event_log=JsonlEventLog(event_log_path))

        await engine.ingest_history()

        [insight] = engine.insights
        assert insight.suggestion == "Category développement: 6 reliable patterns identified"
        assert engine.regenerate_insights() == list(engine.insights)

    @pytest.mark.asyncio
    async def test_ingest_without_event_log(self) -> None:
        report = await LearningEngine().ingest_history()
        assert report.fetched == 0


class TestFromConfig:
    def test_oracle_disabled(self, event_log_path: Path) -> None:
        config = AppConfig(event_log=EventLogConfig(path=event_log_path))
        config.oracle.enabled = False

        engine = LearningEngine.from_config(config)

        assert not engine.oracle_enabled

    def test_unknown_model_disables_oracle(self, event_log_path: Path) -> None:
        config = AppConfig(event_log=EventLogConfig(path=event_log_path))
        config.oracle.model = "mystery-model"

        engine = LearningEngine.from_config(config, use_oracle=True)

        assert not engine.oracle_enabled

    def test_known_model_builds_consultant(self, event_log_path: Path) -> None:
        config = AppConfig(event_log=EventLogConfig(path=event_log_path))
        engine = LearningEngine.from_config(config, use_oracle=True)
        assert engine.oracle_enabled
