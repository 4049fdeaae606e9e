from __future__ import annotations

import json
import sys
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point config and the event log to temp paths so tests don't touch user state."""
    cfg_path = tmp_path / "config.toml"
    monkeypatch.setenv("PCACHE_CONFIG", str(cfg_path))
    monkeypatch.setenv("PCACHE_EVENT_LOG__PATH", str(tmp_path / "ai_events.jsonl"))
    monkeypatch.setenv("PCACHE_ORACLE__ENABLED", "false")
    return cfg_path


@pytest.fixture(autouse=True)
def capture_console(monkeypatch: Any) -> Console:
    """Use an in-memory Rich console during tests."""
    test_console = Console(record=True, width=200)
    import patterncache.commands.patterns as patterns_cmd
    import patterncache.core.console as core_console
    import patterncache.main as pc_main

    monkeypatch.setattr(core_console, "console", test_console)
    monkeypatch.setattr(pc_main, "console", test_console)
    monkeypatch.setattr(patterns_cmd, "console", test_console)
    return test_console


@pytest.fixture
def event_log_path(tmp_path: Path) -> Path:
    return tmp_path / "ai_events.jsonl"


@pytest.fixture
def write_events(event_log_path: Path) -> Callable[[list[dict[str, Any]]], Path]:
    """Write events as JSON lines; ``age_days`` is turned into ``created_at``."""

    def _write(events: list[dict[str, Any]]) -> Path:
        now = datetime.now(UTC)
        lines = []
        for event in events:
            row = {"provider": "gemini-api", "phase": "enhancement", "accepted": True, **event}
            age = row.pop("age_days", 1)
            row.setdefault("created_at", (now - timedelta(days=age)).isoformat())
            lines.append(json.dumps(row, ensure_ascii=False))
        event_log_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return event_log_path

    return _write
