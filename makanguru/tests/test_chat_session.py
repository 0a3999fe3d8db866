from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from makanguru.chat.config import ChatConfig
from makanguru.chat.models import ChatReplyType, ChatRole
from makanguru.chat.session import (
    ChatSession,
    RateLimiter,
    suggested_persona,
    suggestion_message,
    time_slot,
)
from makanguru.llm.config import LLMConfig
from makanguru.llm.normalizer import fallback, normalize
from makanguru.llm.personas import PERSONAS, Persona

CONFIG = ChatConfig(max_messages=2, window_seconds=60, default_persona="makcik", default_model="groq-openai")
LLM_CONFIG = LLMConfig()
LUNCH = datetime(2026, 3, 4, 12, 30)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def _orchestrator(text: str = "Go to Village Park!") -> MagicMock:
    orchestrator = MagicMock()
    orchestrator.client.name = "groq"
    orchestrator.recommend.side_effect = lambda query, persona, places, model=None: normalize(
        {"choices": [{"message": {"content": text}}]}, persona
    )
    return orchestrator


def _session(orchestrator=None, places=None, limiter=None, **kwargs):
    orchestrator = orchestrator or _orchestrator()
    places_provider = MagicMock(return_value=places or [])
    resolver = MagicMock(return_value=(orchestrator, "openai/gpt-oss-120b"))
    session = ChatSession(
        config=CONFIG,
        llm_config=LLM_CONFIG,
        resolver=resolver,
        places_provider=places_provider,
        clock=lambda: LUNCH,
        rate_limiter=limiter,
        **kwargs,
    )
    return session, orchestrator, places_provider, resolver


def test_send_returns_reply_and_records_history():
    session, orchestrator, places_provider, resolver = _session()

    reply = session.send("  I want nasi lemak  ")

    assert reply.type == ChatReplyType.reply
    assert reply.message == "Go to Village Park!"
    assert reply.persona == Persona.makcik
    assert reply.model == "groq-openai"
    assert reply.suggested_places == ["Village Park"]
    assert [m.role for m in session.history] == [ChatRole.user, ChatRole.assistant]
    assert session.history[0].content == "I want nasi lemak"
    resolver.assert_called_once_with("groq-openai")
    orchestrator.recommend.assert_called_once()
    assert orchestrator.recommend.call_args.kwargs["model"] == "openai/gpt-oss-120b"


def test_makcik_filters_halal_places():
    session, _, places_provider, _ = _session()

    session.send("breakfast please")

    places_provider.assert_called_once_with(halal_only=True, price=None, area=None)


def test_switch_persona_applies_filters():
    session, _, places_provider, _ = _session()

    assert session.switch_persona("atas") is True
    session.send("date night spot")

    assert session.persona == Persona.atas
    places_provider.assert_called_once_with(halal_only=False, price="expensive", area=None)


def test_switch_to_unknown_persona_is_ignored():
    session, _, _, _ = _session()

    assert session.switch_persona("pirate") is False
    assert session.persona == Persona.makcik


def test_switch_model_validates_preset():
    session, _, _, _ = _session()

    session.switch_model("groq-meta")
    assert session.model == "groq-meta"
    with pytest.raises(ValueError, match="Invalid model"):
        session.switch_model("gpt-5")


def test_unknown_default_model_rejected():
    with pytest.raises(ValueError):
        _session(model="claude")


@pytest.mark.parametrize("message", ["", "  ", "hi", "x" * 501])
def test_send_validates_message_length(message):
    session, orchestrator, _, _ = _session()

    with pytest.raises(ValidationError):
        session.send(message)
    orchestrator.recommend.assert_not_called()


def test_rate_limited_reply_skips_provider():
    clock = FakeClock()
    limiter = RateLimiter(2, 60, clock=clock)
    session, orchestrator, _, _ = _session(limiter=limiter)

    session.send("first message")
    clock.now += 10
    session.send("second message")
    clock.now += 5
    reply = session.send("third message")

    assert reply.type == ChatReplyType.rate_limited
    assert reply.retry_after == 45
    assert reply.message == PERSONAS[Persona.makcik].rate_limit_message.format(seconds=45)
    assert orchestrator.recommend.call_count == 2
    assert len(session.history) == 4


def test_fallback_reply_is_flagged():
    orchestrator = MagicMock()
    orchestrator.client.name = "groq"
    orchestrator.recommend.return_value = fallback(Persona.gymbro, "exhausted")
    session, _, _, _ = _session(orchestrator=orchestrator, persona="gymbro")

    reply = session.send("protein please")

    assert reply.is_fallback is True
    assert reply.suggested_places == []
    assert session.history[-1].is_fallback is True


def test_usage_tracking():
    session, _, _, _ = _session()

    session.switch_persona("gymbro")
    session.switch_persona("gymbro")

    assert session.usage["makcik"].count == 1
    assert session.usage["gymbro"].count == 2
    assert session.usage["gymbro"].time_slots == {"lunch": 2}
    assert session.most_popular_persona() == "gymbro"


def test_clear_history():
    session, _, _, _ = _session()
    session.send("nasi lemak")

    session.clear()

    assert session.history == []


class TestRateLimiter:
    def test_allows_up_to_max(self):
        limiter = RateLimiter(3, 60, clock=FakeClock())

        assert [limiter.hit() for _ in range(3)] == [None, None, None]
        assert limiter.hit() == 60

    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 60, clock=clock)

        assert limiter.hit() is None
        clock.now += 59.5
        assert limiter.hit() == 1
        clock.now += 0.5
        assert limiter.hit() is None

    def test_reset(self):
        limiter = RateLimiter(1, 60, clock=FakeClock())
        limiter.hit()

        limiter.reset()

        assert limiter.hit() is None


@pytest.mark.parametrize("when,persona", [
    (datetime(2026, 3, 4, 23, 0), Persona.matmotor),
    (datetime(2026, 3, 4, 2, 0), Persona.matmotor),
    (datetime(2026, 3, 4, 7, 0), Persona.makcik),
    (datetime(2026, 3, 4, 13, 0), Persona.corporate),
    (datetime(2026, 3, 4, 19, 0), Persona.gymbro),
    (datetime(2026, 3, 4, 21, 0), Persona.tauke),
    (datetime(2026, 3, 7, 21, 0), Persona.atas),
])
def test_suggested_persona(when, persona):
    assert suggested_persona(when) == persona


def test_suggestion_message_mentions_persona():
    assert "Mak Cik" in suggestion_message(datetime(2026, 3, 4, 7, 0))


@pytest.mark.parametrize("hour,slot", [
    (5, "morning"), (10, "late_morning"), (12, "lunch"), (15, "afternoon"), (20, "evening"), (23, "night"), (3, "night"),
])
def test_time_slot(hour, slot):
    assert time_slot(datetime(2026, 3, 4, hour, 0)) == slot
