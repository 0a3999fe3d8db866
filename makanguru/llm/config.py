from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class ProviderConfig:
    """
    Settings for one LLM provider family.

    ``default_model`` is tried first, then ``fallback_models`` in order.
    Backoff after failed attempt ``n`` is ``backoff_base ** n * backoff_unit``
    seconds.
    """

    name: str
    api_key: str = ""
    default_model: str = ""
    fallback_models: tuple[str, ...] = ()
    timeout: float = 30.0
    max_attempts: int = 2
    backoff_base: float = 2.0
    backoff_unit: float = 1.0
    temperature: float = 0.7
    max_tokens: int = 2048
    top_p: float = 1.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


GEMINI_FALLBACK_MODELS = (
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.0-flash-lite",
)

GROQ_FALLBACK_MODELS = (
    "llama-3.3-70b-versatile",
    "llama-3.1-8b-instant",
    "openai/gpt-oss-120b",
    "openai/gpt-oss-20b",
)


def gemini_config() -> ProviderConfig:
    return ProviderConfig(
        name="gemini",
        api_key=os.getenv("GEMINI_API_KEY", ""),
        default_model=os.getenv("GEMINI_MODEL", GEMINI_FALLBACK_MODELS[0]),
        fallback_models=GEMINI_FALLBACK_MODELS,
        timeout=_env_float("LLM_TIMEOUT", 30.0),
        max_attempts=_env_int("LLM_MAX_ATTEMPTS", 2),
        temperature=0.9,
        max_tokens=10000,
        top_p=0.95,
    )


def groq_config() -> ProviderConfig:
    return ProviderConfig(
        name="groq",
        api_key=os.getenv("GROQ_API_KEY", ""),
        default_model=os.getenv("GROQ_MODEL", GROQ_FALLBACK_MODELS[0]),
        fallback_models=GROQ_FALLBACK_MODELS,
        timeout=_env_float("LLM_TIMEOUT", 30.0),
        max_attempts=_env_int("LLM_MAX_ATTEMPTS", 2),
        temperature=0.7,
        max_tokens=2048,
        top_p=1.0,
    )


@dataclass(frozen=True)
class ModelPreset:
    """A user-facing model choice mapped onto a provider and a model id."""

    provider: str
    model: str | None = None


@dataclass(frozen=True)
class LLMConfig:
    provider: str = os.getenv("AI_PROVIDER", "groq")
    gemini: ProviderConfig = field(default_factory=gemini_config)
    groq: ProviderConfig = field(default_factory=groq_config)
    presets: dict[str, ModelPreset] = field(
        default_factory=lambda: {
            "gemini": ModelPreset("gemini"),
            "groq-openai": ModelPreset(
                "groq", os.getenv("GROQ_MODEL_OPENAI", "openai/gpt-oss-120b")
            ),
            "groq-meta": ModelPreset(
                "groq", os.getenv("GROQ_MODEL_META", "llama-3.3-70b-versatile")
            ),
        }
    )

    def provider_config(self, name: str) -> ProviderConfig:
        if name == "gemini":
            return self.gemini
        if name == "groq":
            return self.groq
        raise ValueError(f"Unknown AI provider '{name}'. Must be one of: gemini, groq")


DEFAULT_LLM_CONFIG = LLMConfig()
