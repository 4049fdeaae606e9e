"""
Provider factory for the oracle's LLM backend.

Usage:
    from patterncache.providers.factory import get_provider

    # Backend inferred from config.oracle.model
    provider = get_provider(config)

    # Explicit backend
    provider = get_provider(config, provider_type=ProviderType.OPENAI)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from patterncache.providers import (
    PROVIDER_REGISTRY,
    BaseLLMProvider,
    ProviderError,
    ProviderType,
    infer_provider_type,
)

if TYPE_CHECKING:
    from patterncache.core.config import AppConfig


def _ensure_providers_registered() -> None:
    """Import provider modules so their @register_provider decorators run."""
    from patterncache.providers import anthropic, openai  # noqa: F401


def get_provider(
    config: AppConfig,
    *,
    model_id: str | None = None,
    provider_type: ProviderType | None = None,
) -> BaseLLMProvider:
    """Build the provider that serves ``model_id`` (default: the oracle model).

    Raises:
        ModelNotFoundError: If the backend cannot be inferred from the model
        ProviderError: If no implementation is registered for the backend
    """
    ptype = provider_type or infer_provider_type(model_id or config.oracle.model)

    _ensure_providers_registered()
    factory = PROVIDER_REGISTRY.get(ptype)
    if factory is None:
        raise ProviderError(f"Unknown provider type: {ptype}")
    return factory(config)


__all__ = ["get_provider"]
