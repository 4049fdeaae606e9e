"""Learning engine facade.

Ties the store, the meta-learning consultant, the event log and the insight
generator together behind the operations callers use:

    engine = LearningEngine.from_config(config)
    await engine.ingest_history()
    suggestion = engine.suggest("Créer un site web pro pour restaurant", "enhancement")
    await engine.record_success(original, improved, "description")

Oracle consultations run outside the store lock. A caller that cancels a
learning call mid-consultation gets ``CancelledError`` before anything is
written, so the orphaned oracle result never reaches the store.
"""

from __future__ import annotations

import json

from patterncache.core.config import AppConfig, EventLogConfig, LearningConfig
from patterncache.core.console import get_logger
from patterncache.core.result import Err, Ok
from patterncache.oracle import FreeText, OracleResponse, Structured
from patterncache.oracle.decoding import render, to_oracle_response
from patterncache.providers import ProviderError

from . import insights as insight_generator
from .confidence import initial_confidence, interaction_confidence, response_quality
from .consultant import MetaLearningConsultant
from .extraction import (
    adapt_output,
    category_from_input,
    classify,
    clean_oracle_output,
    derive_signature,
    input_keywords,
    text_from_input,
)
from .ingestion import EventLog, IngestionReport, JsonlEventLog, ingest
from .models import (
    Feedback,
    Insight,
    LearningAnalysis,
    LearningStats,
    MetaAnalysis,
    Observation,
    Pattern,
    QualityMetrics,
    pattern_key,
)
from .parsing import DEFAULT_META_SCORE, improvement_factors_from_response
from .similarity import find_similar
from .store import PatternStore

logger = get_logger(__name__)

HIGH_CONFIDENCE = 0.8
DEFAULT_INNOVATION = 0.7
OUTPUT_PREVIEW_CHARS = 500
PROCESSED_PLACEHOLDER = "Oracle result processed"


def _as_feedback(value: Feedback | str) -> Feedback:
    return value if isinstance(value, Feedback) else Feedback(value)


def _interaction_output(response: OracleResponse | None, final_result: object) -> str:
    """Text to replay for an interaction: the oracle answer, else the outcome."""
    match response:
        case FreeText(text) if text:
            return text[:OUTPUT_PREVIEW_CHARS]
        case Structured(fields) if fields:
            return render(response)[:OUTPUT_PREVIEW_CHARS]
    if final_result:
        return json.dumps(final_result, ensure_ascii=False, default=str)[:OUTPUT_PREVIEW_CHARS]
    return PROCESSED_PLACEHOLDER


def _has_content(response: OracleResponse) -> bool:
    match response:
        case Structured(fields):
            return bool(fields)
        case FreeText(text):
            return bool(text.strip())
    return False


class LearningEngine:
    """Learns reusable patterns from oracle interactions and replays them.

    Args:
        store: Pattern store to learn into
        consultant: Oracle consultant; None learns with heuristics only
        event_log: Source of historical interactions for ``ingest_history``
        settings: Retrieval and insight thresholds
        event_log_settings: Provider filter and window for ``ingest_history``
    """

    def __init__(
        self,
        store: PatternStore | None = None,
        *,
        consultant: MetaLearningConsultant | None = None,
        event_log: EventLog | None = None,
        settings: LearningConfig | None = None,
        event_log_settings: EventLogConfig | None = None,
    ) -> None:
        self.store = store if store is not None else PatternStore()
        self._consultant = consultant
        self._event_log = event_log
        self._settings = settings or LearningConfig()
        self._event_log_settings = event_log_settings or EventLogConfig()
        self._insights: list[Insight] = []

    @classmethod
    def from_config(cls, config: AppConfig, *, use_oracle: bool | None = None) -> LearningEngine:
        """Build an engine from configuration.

        ``use_oracle`` overrides ``config.oracle.enabled``. A provider that
        cannot be built (missing API key, unknown model) disables the oracle
        with a warning instead of failing.
        """
        enabled = config.oracle.enabled if use_oracle is None else use_oracle
        consultant: MetaLearningConsultant | None = None
        if enabled:
            # Deferred: pulls in the provider SDKs.
            from patterncache.oracle.client import ProviderOracle

            try:
                oracle = ProviderOracle.from_config(config)
            except ProviderError as exc:
                logger.warning("Oracle disabled: %s", exc)
            else:
                consultant = MetaLearningConsultant(
                    oracle, timeout=config.oracle.timeout_seconds
                )

        return cls(
            PatternStore(),
            consultant=consultant,
            event_log=JsonlEventLog(config.event_log.path),
            settings=config.learning,
            event_log_settings=config.event_log,
        )

    @property
    def oracle_enabled(self) -> bool:
        return self._consultant is not None

    @property
    def insights(self) -> tuple[Insight, ...]:
        return tuple(self._insights)

    # ------------------------------------------------------------------
    # Batch learning
    # ------------------------------------------------------------------

    async def ingest_history(
        self, limit: int | None = None, window_days: int | None = None
    ) -> IngestionReport:
        """Learn from the event log, then regenerate insights.

        Without an event log this is a no-op that reports nothing fetched.
        """
        if self._event_log is None:
            logger.debug("No event log configured; nothing to ingest")
            return IngestionReport()

        log_settings = self._event_log_settings
        report = await ingest(
            self.store,
            self._event_log,
            log_settings.provider,
            window_days=window_days if window_days is not None else log_settings.window_days,
            limit=limit if limit is not None else log_settings.limit,
            default_interaction_type=self._settings.default_interaction_type,
        )
        self.regenerate_insights()
        return report

    def regenerate_insights(self) -> list[Insight]:
        self._insights = insight_generator.regenerate(
            self.store.iterate(),
            min_samples=self._settings.insight_min_samples,
            min_confidence=self._settings.insight_min_confidence,
        )
        return list(self._insights)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def suggest(self, input_text: str, field_type: str, category: str | None = None) -> str | None:
        """Replay a learned output for ``input_text``, or None without a match.

        ``category`` is accepted for API compatibility; retrieval does not
        filter on it.
        """
        match derive_signature(input_text):
            case Err(_):
                return None
            case Ok(signature):
                pass

        exact = self.store.lookup(pattern_key(signature, field_type))
        if exact is not None and exact.confidence > self._settings.exact_match_threshold:
            logger.debug("Exact pattern hit for %s", exact.key)
            return adapt_output(exact.successful_output, input_text)

        similar = find_similar(
            signature,
            field_type,
            self.store.iterate(),
            limit=self._settings.similarity_limit,
            threshold=self._settings.similarity_threshold,
        )
        if similar:
            logger.debug("Similar pattern hit for %s: %s", signature, similar[0].key)
            return adapt_output(similar[0].successful_output, input_text)
        return None

    # ------------------------------------------------------------------
    # Online learning
    # ------------------------------------------------------------------

    async def record_success(
        self,
        original: str,
        improved: str,
        field_type: str,
        category: str | None = None,
        feedback: Feedback | str = Feedback.POSITIVE,
    ) -> Pattern | None:
        """Learn from an improvement the user accepted.

        Returns the stored pattern, or None when ``original`` has no usable
        signature.
        """
        verdict = _as_feedback(feedback)
        match derive_signature(original):
            case Err(skip):
                logger.debug("Not learning from input: %s", skip)
                return None
            case Ok(signature):
                pass

        resolved_category = category or classify(original)
        analysis: LearningAnalysis | None = None
        if self._consultant is not None:
            match await self._consultant.assess_quality(
                original, improved, field_type, resolved_category
            ):
                case Ok(result):
                    analysis = result
                case Err(err):
                    logger.warning("Learning without oracle analysis: %s", err)

        observation = Observation(
            interaction_type=field_type,
            input_signature=signature,
            output=clean_oracle_output(improved),
            category=resolved_category,
            feedback=verdict,
            confidence=initial_confidence(verdict, analysis),
            oracle_analysis=analysis.raw if analysis else None,
            improvement_factors=analysis.improvement_factors if analysis else (),
            semantic_keywords=analysis.semantic_keywords if analysis else (),
            pattern_type=analysis.pattern_type if analysis else None,
        )
        pattern = await self.store.upsert(observation)
        self._note_high_confidence(pattern)
        return pattern

    async def record_interaction(
        self,
        interaction_type: str,
        input_data: object,
        oracle_response: object,
        final_result: object,
        feedback: Feedback | str = Feedback.POSITIVE,
    ) -> Pattern | None:
        """Learn from a full oracle interaction and its final outcome."""
        verdict = _as_feedback(feedback)
        match derive_signature(text_from_input(input_data)):
            case Err(skip):
                logger.debug("Not learning from interaction: %s", skip)
                return None
            case Ok(signature):
                pass

        response = to_oracle_response(oracle_response)
        meta: MetaAnalysis | None = None
        if self._consultant is not None:
            match await self._consultant.assess_contribution(
                interaction_type, input_data, response, final_result
            ):
                case Ok(result):
                    meta = result
                case Err(err):
                    logger.warning("Learning without meta-analysis: %s", err)

        quality = response_quality(response, final_result)
        metrics = QualityMetrics(
            response_quality=quality,
            relevance_score=meta.relevance_score if meta else DEFAULT_META_SCORE,
            innovation_factor=meta.innovation_factor if meta else DEFAULT_INNOVATION,
            reusability_potential=meta.reusability_potential if meta else DEFAULT_META_SCORE,
        )
        observation = Observation(
            interaction_type=interaction_type,
            input_signature=signature,
            output=_interaction_output(response, final_result),
            category=category_from_input(input_data),
            feedback=verdict,
            confidence=interaction_confidence(verdict, quality, meta),
            oracle_analysis=response if _has_content(response) else None,
            quality_metrics=metrics,
            improvement_factors=improvement_factors_from_response(response),
            semantic_keywords=input_keywords(input_data),
        )
        pattern = await self.store.upsert(observation)
        self._note_high_confidence(pattern)
        return pattern

    def _note_high_confidence(self, pattern: Pattern) -> None:
        # Merges recompute confidence; only a fresh pattern counts.
        if pattern.usage_count != 1:
            return
        insight = insight_generator.insight_for_pattern(
            pattern, threshold=self._settings.instant_insight_threshold
        )
        if insight is not None:
            self._insights.append(insight)
            logger.info(
                "High-confidence %s pattern learned (%.2f)",
                pattern.interaction_type,
                pattern.confidence,
            )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def stats(self) -> LearningStats:
        patterns = list(self.store.iterate())
        total = len(patterns)
        avg = sum(p.confidence for p in patterns) / total if total else 0.0
        return LearningStats(
            total_patterns=total,
            insights_generated=len(self._insights),
            high_confidence_count=sum(1 for p in patterns if p.confidence > HIGH_CONFIDENCE),
            categories_learned=len({p.category for p in patterns}),
            interaction_types=tuple(sorted({p.interaction_type for p in patterns})),
            oracle_enriched_count=sum(1 for p in patterns if p.oracle_enriched),
            avg_confidence=avg,
        )


__all__ = ["HIGH_CONFIDENCE", "LearningEngine"]
