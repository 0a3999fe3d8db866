from __future__ import annotations

import logging
from typing import Any

import groq
from groq import Groq

from .base import ProviderClient
from .config import ProviderConfig, groq_config
from .normalizer import extract_completion_text
from .results import (
    TIMEOUT_CAUSE,
    CancellationToken,
    Fatal,
    MalformedResponse,
    ProviderResult,
    RateLimited,
    ServerError,
    Success,
    Transient,
)

logger = logging.getLogger(__name__)

# USD per 1M tokens
_PRICING: dict[str, dict[str, float]] = {
    "llama-3.3-70b-versatile": {"input": 0.59, "output": 0.79},
    "llama-3.1-8b-instant": {"input": 0.05, "output": 0.08},
    "llama-3.1-70b-versatile": {"input": 0.59, "output": 0.79},
    "openai/gpt-oss-120b": {"input": 0.80, "output": 1.20},
    "openai/gpt-oss-20b": {"input": 0.20, "output": 0.30},
}
_DEFAULT_PRICING = {"input": 0.10, "output": 0.15}


class GroqClient(ProviderClient):
    """OpenAI-compatible chat completions through the Groq SDK."""

    name = "groq"

    def __init__(self, config: ProviderConfig | None = None) -> None:
        super().__init__(config or groq_config())

    def _client(self, timeout: float) -> Groq:
        # Retries are owned by the orchestrator, not the SDK.
        return Groq(api_key=self.config.api_key, timeout=timeout, max_retries=0)

    def call(
        self,
        prompt: str,
        model: str,
        timeout: float,
        persona: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> ProviderResult:
        if not self.config.api_key:
            return Fatal(None, "Groq API key not configured. Set GROQ_API_KEY in .env")
        if cancel is not None and cancel.cancelled:
            return Transient("cancelled")

        system = "You are a helpful assistant providing restaurant recommendations"
        if persona:
            system += f" in the persona of {persona}"

        client = self._client(timeout)
        try:
            with client:
                response = client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": system + "."},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens,
                    top_p=self.config.top_p,
                )
        except groq.APITimeoutError:
            return Transient(TIMEOUT_CAUSE)
        except groq.APIConnectionError as exc:
            return Transient(f"{type(exc).__name__}: {exc}")
        except groq.RateLimitError as exc:
            return RateLimited(str(exc))
        except groq.APIStatusError as exc:
            if exc.status_code >= 500:
                return ServerError(exc.status_code, str(exc))
            return Fatal(exc.status_code, str(exc))
        except groq.APIResponseValidationError as exc:
            return MalformedResponse(str(exc))

        data = response.model_dump()
        text = extract_completion_text(data)
        if text is None or not text.strip():
            return MalformedResponse("missing choices[0].message.content")

        data.setdefault("model", model)
        return Success(data)

    def list_models(self) -> list[dict[str, Any]]:
        if not self.config.api_key:
            raise RuntimeError("Groq API key not configured")
        try:
            client = self._client(10.0)
            with client:
                page = client.models.list()
        except groq.APIError as exc:
            raise RuntimeError(f"Failed to list Groq models: {exc}") from exc
        return [model.model_dump() for model in page.data]

    def health_check(self) -> bool:
        if not self.config.api_key:
            logger.warning("Groq API key not configured")
            return False
        try:
            client = self._client(10.0)
            with client:
                client.models.list()
        except groq.APIError:
            logger.error("Groq health check failed", exc_info=True)
            return False
        logger.info("Groq health check", extra={"healthy": True})
        return True

    @staticmethod
    def estimate_cost(input_tokens: int, output_tokens: int, model: str = "") -> float:
        rate = _PRICING.get(model, _DEFAULT_PRICING)
        return (input_tokens * rate["input"] + output_tokens * rate["output"]) / 1_000_000
