"""Application configuration management.

Handles loading and validating configuration from multiple sources:
    - TOML/JSON config files
    - Environment variables (PCACHE_* prefix)
    - Default values

Key components:
    - AppConfig: Main configuration model
    - load_config(): Safe config loading with fallback
    - ConfigLoadResult: Metadata about config source
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from unittest.mock import patch

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from patterncache.core.result import ConfigurationError

CONFIG_ENV_VAR = "PCACHE_CONFIG"


# -----------------------------------------------------------------------------
# Sub-configuration Models
# -----------------------------------------------------------------------------


class LearningConfig(BaseModel):
    """Thresholds governing pattern retrieval and insight emission."""

    exact_match_threshold: float = Field(
        default=0.7, description="Minimum confidence for an exact-key hit to be served."
    )
    similarity_threshold: float = Field(
        default=0.3, description="Token-overlap ratio a candidate must exceed to count as similar."
    )
    similarity_limit: int = Field(default=3, description="Maximum similar patterns returned.")
    insight_min_samples: int = Field(
        default=5, description="A category needs more than this many patterns to yield an insight."
    )
    insight_min_confidence: float = Field(
        default=0.7, description="Category average confidence must exceed this for an insight."
    )
    instant_insight_threshold: float = Field(
        default=0.85, description="A single learned pattern above this emits an insight at once."
    )
    default_interaction_type: str = Field(
        default="enhancement", description="Interaction type for log records without a phase."
    )

    @field_validator("exact_match_threshold", "similarity_threshold", "insight_min_confidence")
    @classmethod
    def ensure_ratio(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        return v


class OracleConfig(BaseModel):
    """Oracle (generative AI) consultation settings."""

    enabled: bool = Field(
        default=True, description="Consult the oracle for meta-analysis when learning."
    )
    model: str = Field(
        default="claude-sonnet-4-5", description="Model used for meta-learning consultations."
    )
    timeout_seconds: float = Field(
        default=30.0, description="Upper bound for a single oracle consultation."
    )
    temperature: float = Field(default=0.1, description="Sampling temperature for consultations.")
    max_tokens: int = Field(default=2048, description="Maximum tokens in an oracle reply.")

    @field_validator("timeout_seconds")
    @classmethod
    def ensure_positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v


class EventLogConfig(BaseModel):
    """Where historical oracle interactions are read from."""

    path: Path = Field(
        default_factory=lambda: Path.home() / ".pcache" / "ai_events.jsonl",
        description="JSONL file holding one AI interaction event per line.",
    )
    provider: str = Field(
        default="gemini-api", description="Only events from this oracle provider are ingested."
    )
    window_days: int = Field(default=30, description="Trailing window of history to ingest.")
    limit: int = Field(default=1000, description="Maximum number of events per ingestion.")


@dataclass
class ConfigLoadResult:
    path: Path
    file_loaded: bool
    env_overrides: set[str]
    error: str | None = None


class AppConfig(BaseSettings):
    """Application-wide configuration with nested sub-configs."""

    model_config = SettingsConfigDict(
        env_prefix="PCACHE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    learning: LearningConfig = Field(default_factory=LearningConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    event_log: EventLogConfig = Field(default_factory=EventLogConfig)
    log_level: str = Field(default="INFO", description="Log level for pcache output.")

    @field_validator("event_log", mode="after")
    @classmethod
    def expand_event_log_path(cls, v: EventLogConfig) -> EventLogConfig:
        v.path = v.path.expanduser()
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        # Ensure environment variables override config file entries.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


def _resolve_config_path(config_path: Path | None, env_vars: Mapping[str, str]) -> Path:
    candidate = config_path or env_vars.get(CONFIG_ENV_VAR) or (Path.home() / ".pcache.toml")
    return Path(candidate).expanduser()


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    raw = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    parser = json.loads if suffix == ".json" else tomllib.loads

    try:
        data = parser(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(
            f"Syntax error in {path}: {exc}", context={"path": str(path)}
        ) from exc

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config root in {path} must be a mapping.", context={"path": str(path)}
        )

    return data


def _detect_env_overrides(env_vars: Mapping[str, str]) -> set[str]:
    """Detect which fields are overridden by environment variables.

    For nested models, detects vars like PCACHE_ORACLE__MODEL, PCACHE_EVENT_LOG__PATH.
    """
    prefix = AppConfig.model_config.get("env_prefix", "")
    delimiter = AppConfig.model_config.get("env_nested_delimiter", "__")
    overrides: set[str] = set()

    nested_models: dict[str, type[BaseModel]] = {
        "learning": LearningConfig,
        "oracle": OracleConfig,
        "event_log": EventLogConfig,
    }

    for group_name, model_cls in nested_models.items():
        for field in model_cls.model_fields:
            env_key = f"{prefix}{group_name}{delimiter}{field}".upper()
            if env_key in env_vars:
                overrides.add(f"{group_name}.{field}")

    if f"{prefix}LOG_LEVEL".upper() in env_vars:
        overrides.add("log_level")

    return overrides


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """
    Load configuration with Safe Mode fallback.
    If the file is invalid, returns default config + error message.
    """
    env_vars: Mapping[str, str] = os.environ if env is None else {**os.environ, **env}
    resolved_path = _resolve_config_path(config_path, env_vars)
    env_overrides = _detect_env_overrides(env_vars)

    error: str | None = None
    file_loaded = False
    file_data: dict[str, Any] = {}

    try:
        file_data = _read_config_file(resolved_path)
        file_loaded = resolved_path.exists()
    except ConfigurationError as exc:
        error = str(exc)

    context_manager = (
        patch.dict(os.environ, env_vars, clear=False) if env is not None else nullcontext()
    )

    try:
        with context_manager:
            config = AppConfig(**file_data)
    except ValidationError as exc:
        error = str(exc)
        config = AppConfig()

    load_result = ConfigLoadResult(
        path=resolved_path,
        file_loaded=file_loaded,
        env_overrides=env_overrides,
        error=error,
    )

    return config, load_result
