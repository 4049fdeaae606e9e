"""Meta-learning consultations.

Before a pattern is stored, the oracle can be asked to critique the output
it is about to become: an improvement pair (``assess_quality``) or a whole
interaction it took part in (``assess_contribution``). Its answer enriches
the pattern and feeds its confidence. An unavailable oracle is never fatal:
both methods return ``Err(OracleUnavailable)`` and the caller learns with
heuristic confidence only.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

from patterncache.core.console import get_logger
from patterncache.core.result import Err, Ok, OracleUnavailable, Result
from patterncache.oracle import FreeText, Oracle, OracleReply, OracleResponse
from patterncache.oracle.decoding import to_payload

from .models import LearningAnalysis, MetaAnalysis
from .parsing import parse_learning_analysis, parse_meta_analysis

logger = get_logger(__name__)

LEARNING_ANALYSIS_TASK = "learning_analysis"
META_LEARNING_TASK = "meta_learning_analysis"


class MetaLearningConsultant:
    """Asks the oracle to grade outputs it produced.

    Args:
        oracle: The oracle to consult
        timeout: Seconds before a consultation counts as unavailable;
            None waits indefinitely
    """

    def __init__(self, oracle: Oracle, *, timeout: float | None = 30.0) -> None:
        self._oracle = oracle
        self._timeout = timeout

    async def assess_quality(
        self,
        original: str,
        improved: str,
        field_type: str,
        category: str,
    ) -> Result[LearningAnalysis, OracleUnavailable]:
        prompt = {
            "role": "expert_learning_analyst",
            "task": "improvement_pattern_analysis",
            "original": original,
            "improved": improved,
            "field_type": field_type,
            "category": category,
            "request": (
                "Analyse this improvement and identify its key success factors. "
                "Rate quality_score and reusability_score out of 100 and give "
                "improvement_factors, semantic_keywords and pattern_type."
            ),
        }
        match await self._consult(LEARNING_ANALYSIS_TASK, prompt):
            case Err(err):
                return Err(err)
            case Ok(reply):
                return Ok(parse_learning_analysis(reply.output))

    async def assess_contribution(
        self,
        interaction_type: str,
        input_data: object,
        oracle_response: OracleResponse,
        final_result: object,
    ) -> Result[MetaAnalysis, OracleUnavailable]:
        prompt = {
            "role": "expert_meta_learning_analyst",
            "task": "self_analysis_and_improvement",
            "interaction_type": interaction_type,
            "original_input": input_data,
            "my_response": to_payload(oracle_response),
            "final_outcome": final_result,
            "request": (
                "Analyse your own contribution to this interaction. Rate "
                "relevance_score, innovation_score and reusability_score out of 100 "
                "and list improvement_areas and pattern_insights."
            ),
        }
        match await self._consult(META_LEARNING_TASK, prompt):
            case Err(err):
                return Err(err)
            case Ok(reply):
                return Ok(parse_meta_analysis(reply.output))

    async def _consult(
        self, task_tag: str, prompt: Mapping[str, object]
    ) -> Result[OracleReply, OracleUnavailable]:
        try:
            reply = await asyncio.wait_for(self._oracle.call(task_tag, prompt), self._timeout)
        except TimeoutError:
            return Err(
                OracleUnavailable(
                    "Oracle consultation timed out",
                    context={"task": task_tag, "timeout": self._timeout},
                )
            )
        except Exception as exc:
            return Err(
                OracleUnavailable(
                    "Oracle consultation failed",
                    context={"task": task_tag, "error": f"{type(exc).__name__}: {exc}"},
                )
            )

        if isinstance(reply.output, FreeText) and not reply.output.text.strip():
            return Err(OracleUnavailable("Oracle returned no output", context={"task": task_tag}))

        logger.debug("Oracle %s consultation took %.0f ms", task_tag, reply.latency_ms)
        return Ok(reply)


__all__ = ["LEARNING_ANALYSIS_TASK", "META_LEARNING_TASK", "MetaLearningConsultant"]
