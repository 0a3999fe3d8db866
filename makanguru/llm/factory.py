from __future__ import annotations

import logging

from .base import ProviderClient
from .config import DEFAULT_LLM_CONFIG, LLMConfig
from .gemini_client import GeminiClient
from .groq_client import GroqClient
from .orchestrator import RecommendationOrchestrator

logger = logging.getLogger(__name__)

_CLIENTS: dict[str, type[ProviderClient]] = {
    "gemini": GeminiClient,
    "groq": GroqClient,
}


def get_client(provider: str | None = None, config: LLMConfig = DEFAULT_LLM_CONFIG) -> ProviderClient:
    name = provider or config.provider
    if name not in _CLIENTS:
        raise ValueError(f"Unknown AI provider '{name}'. Must be one of: {', '.join(_CLIENTS)}")
    return _CLIENTS[name](config.provider_config(name))


def get_orchestrator(
    provider: str | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> RecommendationOrchestrator:
    return RecommendationOrchestrator(client=get_client(provider, config))


def resolve_preset(
    preset: str,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> tuple[RecommendationOrchestrator, str | None]:
    """Map a user-facing model preset (``gemini``, ``groq-openai``, ``groq-meta``)."""
    if preset not in config.presets:
        raise ValueError(
            f"Invalid model '{preset}'. Must be one of: {', '.join(config.presets)}"
        )
    choice = config.presets[preset]
    logger.debug("Resolved model preset %s to %s/%s", preset, choice.provider, choice.model)
    return get_orchestrator(choice.provider, config), choice.model
