from __future__ import annotations

import logging
from typing import Any

import httpx

from .base import ProviderClient
from .config import ProviderConfig, gemini_config
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

API_BASE = "https://generativelanguage.googleapis.com/v1/models"

_RATE_LIMIT_MARKERS = ("quota", "rate limit", "too many requests", "resource_exhausted")

_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_HARASSMENT",
)

# USD per 1M tokens
_PRICING = {"input": 0.075, "output": 0.30}


def _looks_rate_limited(body: str) -> bool:
    lower = body.lower()
    return any(marker in lower for marker in _RATE_LIMIT_MARKERS)


class GeminiClient(ProviderClient):
    """Gemini ``generateContent`` over plain REST."""

    name = "gemini"

    def __init__(
        self,
        config: ProviderConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(config or gemini_config())
        self._transport = transport

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(timeout=timeout, transport=self._transport)

    def _body(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
                "topP": self.config.top_p,
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_NONE"}
                for category in _SAFETY_CATEGORIES
            ],
        }

    def call(
        self,
        prompt: str,
        model: str,
        timeout: float,
        persona: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> ProviderResult:
        if not self.config.api_key:
            return Fatal(None, "Gemini API key not configured. Set GEMINI_API_KEY in .env")
        if cancel is not None and cancel.cancelled:
            return Transient("cancelled")

        try:
            with self._client(timeout) as client:
                response = client.post(
                    f"{API_BASE}/{model}:generateContent",
                    params={"key": self.config.api_key},
                    json=self._body(prompt),
                )
        except httpx.TimeoutException:
            return Transient(TIMEOUT_CAUSE)
        except httpx.TransportError as exc:
            return Transient(f"{type(exc).__name__}: {exc}")

        status = response.status_code
        if status == 429 or (response.is_error and _looks_rate_limited(response.text)):
            return RateLimited(response.text[:500])
        if status >= 500:
            return ServerError(status, response.text[:500])
        if response.is_error:
            return Fatal(status, response.text[:500])

        try:
            data = response.json()
        except ValueError:
            return MalformedResponse("response body is not JSON")

        text = extract_completion_text(data)
        if text is None or not text.strip():
            return MalformedResponse("missing candidates[0].content.parts[0].text")

        finish_reason = data["candidates"][0].get("finishReason")
        if finish_reason and finish_reason != "STOP":
            logger.warning(
                "Gemini unusual finish reason",
                extra={
                    "model": model,
                    "finish_reason": finish_reason,
                    "safety_ratings": data["candidates"][0].get("safetyRatings", []),
                },
            )

        data.setdefault("model", model)
        return Success(data)

    def list_models(self) -> list[dict[str, Any]]:
        if not self.config.api_key:
            raise RuntimeError("Gemini API key not configured")
        with self._client(10.0) as client:
            response = client.get(API_BASE, params={"key": self.config.api_key})
        if response.is_error:
            raise RuntimeError(
                f"Failed to list Gemini models: {response.status_code} - {response.text}"
            )
        return response.json().get("models", [])

    def health_check(self) -> bool:
        if not self.config.api_key:
            logger.warning("Gemini API key not configured")
            return False
        try:
            with self._client(10.0) as client:
                response = client.get(API_BASE, params={"key": self.config.api_key})
        except httpx.HTTPError:
            logger.error("Gemini health check failed", exc_info=True)
            return False
        # Any answer other than an outage means the API is reachable.
        return response.status_code not in (500, 503)

    @staticmethod
    def estimate_cost(input_tokens: int, output_tokens: int, model: str = "") -> float:
        cost = (input_tokens * _PRICING["input"] + output_tokens * _PRICING["output"]) / 1_000_000
        return round(cost, 6)
