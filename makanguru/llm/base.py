from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .config import ProviderConfig
from .results import CancellationToken, ProviderResult


class ProviderClient(ABC):
    """
    One LLM backend.

    ``call`` performs exactly one HTTP request and never raises for provider
    failures: every outcome is classified into a ``ProviderResult``. Retry and
    model fallback belong to the orchestrator.
    """

    name: str = ""

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config

    @abstractmethod
    def call(
        self,
        prompt: str,
        model: str,
        timeout: float,
        persona: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> ProviderResult:
        ...

    @abstractmethod
    def list_models(self) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def health_check(self) -> bool:
        ...

    @staticmethod
    @abstractmethod
    def estimate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
        ...
