"""
Recommendation orchestration.

``RecommendationOrchestrator.recommend`` builds the prompt once, then walks an
``AttemptPlan`` of candidate models for one provider:

- ``Success`` returns a normalised ``Recommendation`` immediately.
- ``Transient`` / ``ServerError`` retry the same model with exponential
  backoff until ``max_attempts`` is reached, then escalate.
- ``RateLimited`` / ``MalformedResponse`` escalate to the next model at once.
- ``Fatal`` (missing key, non-retryable 4xx) aborts the whole plan.

Anything short of success ends in the persona's fallback recommendation;
only ``InvalidPersona`` reaches the caller.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..analytics.store import record_event
from ..recommendations.models import PlaceContext, Recommendation
from .base import ProviderClient
from .normalizer import extract_tokens_used, fallback, normalize
from .personas import Persona, resolve_persona
from .prompts import PromptBuilder
from .results import (
    CancellationToken,
    Fatal,
    MalformedResponse,
    ProviderAttempt,
    ProviderResult,
    RateLimited,
    Success,
    is_retryable,
    outcome_of,
)

logger = logging.getLogger(__name__)

EventSink = Callable[[str, dict[str, Any]], None]


def candidate_models(default_model: str, fallback_models: Iterable[str]) -> list[str]:
    """Default model first, then fallbacks, without duplicates."""
    models = [m for m in (default_model, *fallback_models) if m]
    return list(dict.fromkeys(models))


@dataclass
class AttemptPlan:
    """Position in the (model, attempt) sequence of one request."""

    models: Sequence[str]
    max_attempts: int = 2
    model_index: int = 0
    attempt: int = 1

    @property
    def exhausted(self) -> bool:
        return self.model_index >= len(self.models)

    @property
    def current_model(self) -> str:
        return self.models[self.model_index]

    @property
    def can_retry(self) -> bool:
        return not self.exhausted and self.attempt < self.max_attempts

    def retry(self) -> None:
        """Next attempt on the same model, or escalate when attempts run out."""
        if self.can_retry:
            self.attempt += 1
        else:
            self.escalate()

    def escalate(self) -> None:
        self.model_index += 1
        self.attempt = 1

    def abort(self) -> None:
        self.model_index = len(self.models)


@dataclass
class RecommendationOrchestrator:
    client: ProviderClient
    prompt_builder: PromptBuilder = field(default_factory=PromptBuilder)
    sleep: Callable[[float], None] = time.sleep
    on_event: EventSink = record_event

    def _backoff(self, attempt: int) -> float:
        config = self.client.config
        return (config.backoff_base ** attempt) * config.backoff_unit

    def _emit(self, event_type: str, data: dict[str, Any]) -> None:
        try:
            self.on_event(event_type, data)
        except Exception:
            logger.warning("Failed to record %s event", event_type, exc_info=True)

    def _report(self, attempt: ProviderAttempt) -> None:
        level = logging.INFO if attempt.outcome.value == "success" else logging.WARNING
        logger.log(
            level,
            "LLM attempt %s for %s/%s: %s",
            attempt.attempt,
            attempt.provider,
            attempt.model,
            attempt.outcome.value,
            extra=attempt.to_event(),
        )
        self._emit("provider_attempt", attempt.to_event())

    def _finish(
        self,
        result: Recommendation,
        history: list[ProviderAttempt],
        started: float,
    ) -> Recommendation:
        self._emit("recommendation", {
            "provider": self.client.name,
            "model": result.metadata.get("model"),
            "persona": result.persona.value,
            "is_fallback": result.is_fallback,
            "reason": result.metadata.get("reason"),
            "tokens_used": result.tokens_used,
            "input_tokens": result.metadata.get("input_tokens", 0),
            "output_tokens": result.metadata.get("output_tokens", 0),
            "attempts": len(history),
            "response_time_ms": round((time.monotonic() - started) * 1000, 1),
        })
        return result

    def recommend(
        self,
        user_query: str,
        persona: Persona | str,
        places: Iterable[PlaceContext | Mapping[str, Any]],
        model: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> Recommendation:
        persona = resolve_persona(persona)
        prompt = self.prompt_builder.build(user_query, persona, places)

        started = time.monotonic()
        history: list[ProviderAttempt] = []
        try:
            result = self._run(prompt, user_query, persona, model, cancel, history)
        except Exception:
            logger.warning(
                "%s recommendation failed unexpectedly, returning fallback", self.client.name,
                exc_info=True,
                extra={"provider": self.client.name, "persona": persona.value},
            )
            result = fallback(persona, "error", len(history))
        return self._finish(result, history, started)

    def _run(
        self,
        prompt: str,
        user_query: str,
        persona: Persona,
        model: str | None,
        cancel: CancellationToken | None,
        history: list[ProviderAttempt],
    ) -> Recommendation:
        config = self.client.config
        if not config.configured:
            logger.error(
                "%s API key not configured, returning fallback", self.client.name,
                extra={"provider": self.client.name, "persona": persona.value},
            )
            return fallback(persona, "not_configured", 0)

        plan = AttemptPlan(
            models=candidate_models(model or config.default_model, config.fallback_models),
            max_attempts=max(1, config.max_attempts),
        )
        reason = "exhausted"

        while not plan.exhausted:
            if cancel is not None and cancel.cancelled:
                reason = "cancelled"
                break

            current_model = plan.current_model
            call_started = time.monotonic()
            result = self.client.call(
                prompt, current_model, config.timeout, persona=persona.value, cancel=cancel,
            )
            attempt = self._record(plan, current_model, result, call_started)
            history.append(attempt)
            self._report(attempt)

            if isinstance(result, Success):
                return normalize(
                    result.payload,
                    persona,
                    provider=self.client.name,
                    model=current_model,
                    attempts=len(history),
                )

            if isinstance(result, Fatal):
                logger.error(
                    "%s returned a fatal error, aborting: %s", self.client.name, result.detail,
                    extra={"provider": self.client.name, "model": current_model, "status": result.status},
                )
                reason = "fatal"
                plan.abort()
            elif isinstance(result, MalformedResponse):
                logger.warning(
                    "Malformed response from %s/%s: %s", self.client.name, current_model, result.reason,
                )
                plan.escalate()
            elif isinstance(result, RateLimited):
                plan.escalate()
            elif is_retryable(result):
                if plan.can_retry:
                    delay = self._backoff(plan.attempt)
                    logger.warning(
                        "Retrying %s/%s after %ss", self.client.name, current_model, delay,
                        extra={"provider": self.client.name, "model": current_model, "attempt": plan.attempt},
                    )
                    if self._wait(delay, cancel):
                        reason = "cancelled"
                        break
                else:
                    logger.warning(
                        "All retries exhausted for %s/%s, trying next model", self.client.name, current_model,
                    )
                plan.retry()

        logger.error(
            "%s recommendation failed after %s attempts (%s)", self.client.name, len(history), reason,
            extra={"provider": self.client.name, "persona": persona.value, "query": user_query},
        )
        return fallback(persona, reason, len(history))

    def _wait(self, delay: float, cancel: CancellationToken | None) -> bool:
        if cancel is not None:
            return cancel.wait(delay)
        self.sleep(delay)
        return False

    def _record(
        self,
        plan: AttemptPlan,
        model: str,
        result: ProviderResult,
        call_started: float,
    ) -> ProviderAttempt:
        status = getattr(result, "status", None)
        if isinstance(result, Success):
            status = 200
        detail = ""
        for attr in ("detail", "cause", "reason"):
            detail = getattr(result, attr, "") or detail
        return ProviderAttempt(
            provider=self.client.name,
            model=model,
            attempt=plan.attempt,
            outcome=outcome_of(result),
            status=status,
            detail=detail[:200],
            elapsed_ms=round((time.monotonic() - call_started) * 1000, 1),
            tokens=extract_tokens_used(result.payload) if isinstance(result, Success) else 0,
        )
