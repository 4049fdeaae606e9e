"""Pattern learning subsystem.

Public API:
- LearningEngine: Facade for ingestion, suggestion and online learning
- PatternStore: Concurrency-safe in-memory pattern store
- MetaLearningConsultant: Oracle critiques of learned outputs
- JsonlEventLog / ingest: Batch learning from interaction history
- extract_signature / classify: Input normalization
"""

from __future__ import annotations

from .consultant import MetaLearningConsultant
from .engine import LearningEngine
from .extraction import classify, extract_signature
from .ingestion import EventLog, IngestionReport, JsonlEventLog, ingest
from .models import (
    Feedback,
    Insight,
    InteractionRecord,
    LearningAnalysis,
    LearningStats,
    MetaAnalysis,
    Observation,
    Pattern,
    QualityMetrics,
)
from .store import PatternStore

__all__ = [
    "EventLog",
    "Feedback",
    "IngestionReport",
    "Insight",
    "InteractionRecord",
    "JsonlEventLog",
    "LearningAnalysis",
    "LearningEngine",
    "LearningStats",
    "MetaAnalysis",
    "MetaLearningConsultant",
    "Observation",
    "Pattern",
    "PatternStore",
    "QualityMetrics",
    "classify",
    "extract_signature",
    "ingest",
]
