"""Tests for learning/consultant.py - oracle critiques and failure handling."""

from __future__ import annotations

import pytest

from patterncache.core.result import Err, Ok, OracleUnavailable
from patterncache.learning.consultant import (
    LEARNING_ANALYSIS_TASK,
    META_LEARNING_TASK,
    MetaLearningConsultant,
)
from patterncache.oracle import FreeText, Structured
from tests.mocks.mock_oracle import MockOracle


class TestAssessQuality:
    @pytest.mark.asyncio
    async def test_structured_reply_parsed(self) -> None:
        oracle = MockOracle(
            {LEARNING_ANALYSIS_TASK: Structured({"quality_score": 90, "pattern_type": "enrichissement"})}
        )
        consultant = MetaLearningConsultant(oracle)

        result = await consultant.assess_quality("site resto", "Site vitrine", "description", "développement")

        match result:
            case Ok(analysis):
                assert analysis.quality_score == pytest.approx(0.9)
                assert analysis.pattern_type == "enrichissement"
            case Err(err):
                pytest.fail(f"unexpected error: {err}")

    @pytest.mark.asyncio
    async def test_prompt_carries_pair_and_tag(self) -> None:
        oracle = MockOracle(default=FreeText("Qualité: 70"))
        consultant = MetaLearningConsultant(oracle)

        await consultant.assess_quality("avant", "après", "title", "design")

        [(tag, prompt)] = oracle.call_log
        assert tag == LEARNING_ANALYSIS_TASK
        assert prompt["original"] == "avant"
        assert prompt["improved"] == "après"
        assert prompt["category"] == "design"

    @pytest.mark.asyncio
    async def test_oracle_error_is_unavailable(self) -> None:
        oracle = MockOracle().simulate_error(RuntimeError("connection reset"))
        result = await MetaLearningConsultant(oracle).assess_quality("a", "b", "c", "d")

        assert result.is_err()
        assert isinstance(result.error, OracleUnavailable)
        assert "RuntimeError" in result.error.context["error"]

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self) -> None:
        oracle = MockOracle(default=FreeText("trop tard"), delay=1.0)
        result = await MetaLearningConsultant(oracle, timeout=0.01).assess_quality(
            "a", "b", "c", "d"
        )

        assert result.is_err()
        assert "timed out" in str(result.error)

    @pytest.mark.asyncio
    async def test_empty_reply_is_unavailable(self) -> None:
        oracle = MockOracle(default=FreeText("   "))
        result = await MetaLearningConsultant(oracle).assess_quality("a", "b", "c", "d")
        assert result.is_err()


class TestAssessContribution:
    @pytest.mark.asyncio
    async def test_free_text_reply_parsed(self) -> None:
        oracle = MockOracle({META_LEARNING_TASK: FreeText("Relevance: 95\nInnovation: 50")})
        consultant = MetaLearningConsultant(oracle)

        result = await consultant.assess_contribution(
            "matching", {"description": "site"}, Structured({"score": 1}), {"ok": True}
        )

        meta = result.unwrap()
        assert meta.relevance_score == pytest.approx(0.95)
        assert meta.innovation_factor == pytest.approx(0.5)
        assert meta.reusability_potential == pytest.approx(0.8)

        [(tag, prompt)] = oracle.call_log
        assert tag == META_LEARNING_TASK
        assert prompt["my_response"] == {"score": 1}
        assert prompt["interaction_type"] == "matching"
