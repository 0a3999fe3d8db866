from __future__ import annotations

import logging
import math
import time
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.factory import resolve_preset
from ..llm.orchestrator import RecommendationOrchestrator
from ..llm.personas import Persona, get_template, resolve_persona
from ..recommendations.places import get_places
from .config import DEFAULT_CHAT_CONFIG, ChatConfig
from .models import (
    ChatMessage,
    ChatReply,
    ChatReplyType,
    ChatRequest,
    ChatRole,
    PersonaUsage,
    PlaceFilters,
)

logger = logging.getLogger(__name__)

PresetResolver = Callable[[str], tuple[RecommendationOrchestrator, "str | None"]]
PlacesProvider = Callable[..., list[dict[str, Any]]]


# ---------------------------------------------------------------------------
# Time-of-day helpers
# ---------------------------------------------------------------------------


def suggested_persona(now: datetime) -> Persona:
    hour = now.hour
    if hour >= 22 or hour < 4:
        return Persona.matmotor
    if hour < 9:
        return Persona.makcik
    if hour < 18:
        return Persona.corporate
    if hour < 20:
        return Persona.gymbro
    # 20:00-22:00: date night on weekends, business dinner otherwise
    return Persona.atas if now.weekday() >= 5 else Persona.tauke


_SUGGESTION_MESSAGES = {
    Persona.matmotor: "Late night vibes! Mat Motor knows the best supper spots.",
    Persona.makcik: "Good morning! Mak Cik has breakfast recommendations.",
    Persona.corporate: "Lunch break! Corporate Slave finds quick office-friendly spots.",
    Persona.gymbro: "Post-gym time! Gym Bro has high-protein options.",
    Persona.atas: "Weekend dinner! Atas Friend knows the aesthetic spots.",
    Persona.tauke: "Dinner time! Tauke recommends efficient business-friendly places.",
}


def suggestion_message(now: datetime) -> str:
    return _SUGGESTION_MESSAGES[suggested_persona(now)]


def time_slot(now: datetime) -> str:
    hour = now.hour
    if 4 <= hour < 9:
        return "morning"
    if 9 <= hour < 12:
        return "late_morning"
    if 12 <= hour < 14:
        return "lunch"
    if 14 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 21:
        return "evening"
    return "night"


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class RateLimiter:
    """Sliding-window message limit for one chat session."""

    def __init__(
        self,
        max_messages: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self._clock = clock
        self._sent: deque[float] = deque()

    def _prune(self, now: float) -> None:
        while self._sent and now - self._sent[0] >= self.window_seconds:
            self._sent.popleft()

    def hit(self) -> int | None:
        """Record a message; returns seconds until reset when the limit is hit."""
        now = self._clock()
        self._prune(now)
        if len(self._sent) >= self.max_messages:
            reset_in = self.window_seconds - (now - self._sent[0])
            return max(1, math.ceil(reset_in))
        self._sent.append(now)
        return None

    def reset(self) -> None:
        self._sent.clear()


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class ChatSession:
    """
    One user's chat with MakanGuru.

    Holds the selected persona and model preset, the place filters the persona
    implies, the rate limiter and the message history. ``send`` never calls a
    provider while rate-limited.
    """

    def __init__(
        self,
        persona: Persona | str | None = None,
        model: str | None = None,
        config: ChatConfig = DEFAULT_CHAT_CONFIG,
        llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
        resolver: PresetResolver | None = None,
        places_provider: PlacesProvider = get_places,
        clock: Callable[[], datetime] = datetime.now,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.config = config
        self.llm_config = llm_config
        self._resolver = resolver or (lambda preset: resolve_preset(preset, llm_config))
        self._places_provider = places_provider
        self._clock = clock
        self.rate_limiter = rate_limiter or RateLimiter(config.max_messages, config.window_seconds)

        self.history: list[ChatMessage] = []
        self.usage: dict[str, PersonaUsage] = {}
        self.filters = PlaceFilters()
        self.model = model or config.default_model
        if self.model not in llm_config.presets:
            raise ValueError(
                f"Invalid model '{self.model}'. Must be one of: {', '.join(llm_config.presets)}"
            )
        self.persona = resolve_persona(persona or config.default_persona)
        self._activate(self.persona)

    # -- persona / model ------------------------------------------------------

    def _activate(self, persona: Persona) -> None:
        template = get_template(persona)
        self.filters = PlaceFilters(halal_only=template.halal_only, price=template.price)
        self._track_usage(persona)

    def _track_usage(self, persona: Persona) -> None:
        now = self._clock()
        stamp = now.isoformat()
        usage = self.usage.setdefault(persona.value, PersonaUsage(first_used=stamp))
        usage.count += 1
        usage.last_used = stamp
        slot = time_slot(now)
        usage.time_slots[slot] = usage.time_slots.get(slot, 0) + 1

    def switch_persona(self, persona: Persona | str) -> bool:
        """Switch persona and apply its filters; unknown personas are ignored."""
        try:
            resolved = resolve_persona(persona)
        except ValueError:
            logger.info("Ignoring unknown persona", extra={"persona": str(persona)})
            return False
        self.persona = resolved
        self._activate(resolved)
        return True

    def switch_model(self, preset: str) -> None:
        if preset not in self.llm_config.presets:
            raise ValueError(
                f"Invalid model '{preset}'. Must be one of: {', '.join(self.llm_config.presets)}"
            )
        self.model = preset

    def most_popular_persona(self) -> str | None:
        if not self.usage:
            return None
        return max(self.usage.items(), key=lambda item: item[1].count)[0]

    # -- messaging ------------------------------------------------------------

    def send(self, message: str) -> ChatReply:
        request = ChatRequest(message=message)

        retry_after = self.rate_limiter.hit()
        if retry_after is not None:
            logger.info(
                "Chat rate limit exceeded",
                extra={"persona": self.persona.value, "reset_in": retry_after},
            )
            return ChatReply(
                type=ChatReplyType.rate_limited,
                message=get_template(self.persona).rate_limit_message.format(seconds=retry_after),
                persona=self.persona,
                model=self.model,
                retry_after=retry_after,
            )

        self.history.append(ChatMessage(
            role=ChatRole.user,
            content=request.message,
            persona=self.persona,
            model=self.model,
        ))

        places = self._places_provider(
            halal_only=self.filters.halal_only,
            price=self.filters.price,
            area=self.filters.area,
        )
        orchestrator, model_id = self._resolver(self.model)
        logger.info(
            "Chat using %s (%s)", self.model, orchestrator.client.name,
            extra={"model": model_id, "places": len(places)},
        )
        recommendation = orchestrator.recommend(
            request.message, self.persona, places, model=model_id,
        )

        self.history.append(ChatMessage(
            role=ChatRole.assistant,
            content=recommendation.recommendation,
            persona=self.persona,
            model=self.model,
            is_fallback=recommendation.is_fallback,
        ))
        return ChatReply(
            type=ChatReplyType.reply,
            message=recommendation.recommendation,
            persona=self.persona,
            model=self.model,
            is_fallback=recommendation.is_fallback,
            suggested_places=list(recommendation.suggested_places),
        )

    def clear(self) -> None:
        self.history.clear()
