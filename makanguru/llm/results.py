from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


@dataclass(frozen=True)
class Success:
    payload: dict[str, Any]


@dataclass(frozen=True)
class RateLimited:
    detail: str = ""


@dataclass(frozen=True)
class ServerError:
    status: int
    detail: str = ""


@dataclass(frozen=True)
class Transient:
    cause: str


@dataclass(frozen=True)
class MalformedResponse:
    reason: str


@dataclass(frozen=True)
class Fatal:
    status: int | None
    detail: str = ""


ProviderResult = Union[Success, RateLimited, ServerError, Transient, MalformedResponse, Fatal]

TIMEOUT_CAUSE = "timeout"


class AttemptOutcome(str, Enum):
    success = "success"
    timeout = "timeout"
    rate_limited = "rate_limited"
    server_error = "server_error"
    transient = "transient"
    malformed = "malformed"
    fatal = "fatal"


def outcome_of(result: ProviderResult) -> AttemptOutcome:
    if isinstance(result, Success):
        return AttemptOutcome.success
    if isinstance(result, RateLimited):
        return AttemptOutcome.rate_limited
    if isinstance(result, ServerError):
        return AttemptOutcome.server_error
    if isinstance(result, Transient):
        if result.cause == TIMEOUT_CAUSE:
            return AttemptOutcome.timeout
        return AttemptOutcome.transient
    if isinstance(result, MalformedResponse):
        return AttemptOutcome.malformed
    return AttemptOutcome.fatal


def is_retryable(result: ProviderResult) -> bool:
    """Same-model retry applies to connection failures, timeouts and 5xx only."""
    return isinstance(result, (Transient, ServerError))


@dataclass(frozen=True)
class ProviderAttempt:
    provider: str
    model: str
    attempt: int
    outcome: AttemptOutcome
    status: int | None = None
    detail: str = ""
    elapsed_ms: float = 0.0
    tokens: int = 0

    def to_event(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "attempt": self.attempt,
            "outcome": self.outcome.value,
            "status": self.status,
            "detail": self.detail,
            "elapsed_ms": self.elapsed_ms,
            "tokens": self.tokens,
        }


@dataclass
class CancellationToken:
    """Caller-side handle to abandon an in-flight recommendation."""

    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        return self._event.wait(seconds)
