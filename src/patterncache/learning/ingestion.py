"""Batch learning from historical oracle interactions.

The event log is an external collaborator reached through the ``EventLog``
protocol. ``JsonlEventLog`` reads the JSON-lines export of the AI events
table, one event per line:

    {"phase": "enhancement", "provider": "gemini-api",
     "input_redacted": {"prompt": "..."}, "output": "...",
     "accepted": true, "created_at": "2025-01-31T10:00:00Z"}
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field, ValidationError

from patterncache.core.console import get_logger
from patterncache.core.result import ConfigurationError, Err, IngestionRecordError, Ok

from .confidence import initial_confidence
from .extraction import classify, clean_oracle_output, derive_signature
from .models import Feedback, InteractionRecord, Observation, utcnow
from .store import PatternStore

logger = get_logger(__name__)


@runtime_checkable
class EventLog(Protocol):
    """Query interface over stored oracle interactions."""

    async def fetch_interactions(
        self, provider: str, since: datetime, limit: int
    ) -> list[InteractionRecord]:
        """Records from ``provider`` created at or after ``since``, newest first."""
        ...


class _EventLine(BaseModel):
    phase: str | None = None
    provider: str
    input_redacted: dict[str, Any] = Field(default_factory=dict)
    output: str | dict[str, Any] | None = None
    accepted: bool = False
    created_at: datetime

    def to_record(self) -> InteractionRecord:
        created_at = self.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        prompt = self.input_redacted.get("prompt")
        return InteractionRecord(
            phase=self.phase,
            provider=self.provider,
            prompt=str(prompt) if prompt is not None else None,
            output=self.output,
            accepted=self.accepted,
            created_at=created_at,
        )


class JsonlEventLog:
    """Event log backed by a JSON-lines file. A missing file is an empty log."""

    def __init__(self, path: Path) -> None:
        self._path = path.expanduser()

    @property
    def path(self) -> Path:
        return self._path

    async def fetch_interactions(
        self, provider: str, since: datetime, limit: int
    ) -> list[InteractionRecord]:
        records = await asyncio.to_thread(self._read_records)
        matching = [r for r in records if r.provider == provider and r.created_at >= since]
        matching.sort(key=lambda r: r.created_at, reverse=True)
        return matching[:limit]

    def _read_records(self) -> list[InteractionRecord]:
        if not self._path.exists():
            logger.debug("Event log %s does not exist", self._path)
            return []

        try:
            raw_lines = self._path.read_bytes().splitlines()
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot read event log: {exc}", context={"path": str(self._path)}
            ) from exc

        records: list[InteractionRecord] = []
        for lineno, raw in enumerate(raw_lines, 1):
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                logger.debug(
                    "Skipping non UTF-8 event at %s:%d (%s)", self._path, lineno, exc.reason
                )
                continue
            if not line.strip():
                continue
            try:
                event = _EventLine.model_validate_json(line)
            except ValidationError as exc:
                logger.debug(
                    "Skipping undecodable event at %s:%d (%d errors)",
                    self._path,
                    lineno,
                    exc.error_count(),
                )
                continue
            records.append(event.to_record())
        return records


@dataclass
class IngestionReport:
    fetched: int = 0
    learned: int = 0
    skipped: int = 0
    failed: int = 0


def _output_text(output: str | Mapping[str, Any]) -> str:
    if isinstance(output, str):
        return output
    return json.dumps(output, ensure_ascii=False, default=str)


def _observation_from_record(
    record: InteractionRecord, default_interaction_type: str
) -> Observation | None:
    """Observation for one record, or None when it carries nothing to learn."""
    if not record.output or not record.prompt:
        return None

    match derive_signature(record.prompt):
        case Err(_):
            return None
        case Ok(signature):
            feedback = Feedback.POSITIVE if record.accepted else Feedback.NEUTRAL
            return Observation(
                interaction_type=record.phase or default_interaction_type,
                input_signature=signature,
                output=clean_oracle_output(_output_text(record.output)),
                category=classify(record.prompt),
                feedback=feedback,
                confidence=initial_confidence(feedback),
            )
    return None


async def ingest(
    store: PatternStore,
    event_log: EventLog,
    provider: str,
    *,
    window_days: int = 30,
    limit: int = 1000,
    default_interaction_type: str = "enhancement",
) -> IngestionReport:
    """Fold the trailing window of ``provider`` interactions into ``store``.

    A record that fails is logged and counted; it never aborts the batch.
    """
    since = utcnow() - timedelta(days=window_days)
    records = await event_log.fetch_interactions(provider, since, limit)
    report = IngestionReport(fetched=len(records))
    logger.info("Analysing %d %s interactions", len(records), provider)

    for record in records:
        try:
            observation = _observation_from_record(record, default_interaction_type)
            if observation is None:
                report.skipped += 1
                continue
            await store.upsert(observation)
        except Exception as exc:
            error = IngestionRecordError(
                "Failed to learn from interaction",
                context={"created_at": record.created_at.isoformat(), "error": str(exc)},
            )
            logger.warning("%s", error)
            report.failed += 1
            continue
        report.learned += 1

    logger.info(
        "Ingestion finished: %d learned, %d skipped, %d failed (%d patterns in store)",
        report.learned,
        report.skipped,
        report.failed,
        len(store),
    )
    return report


__all__ = ["EventLog", "IngestionReport", "JsonlEventLog", "ingest"]
