from datetime import datetime

import pytest

from makanguru.llm.normalizer import (
    detect_provider,
    extract_completion_text,
    extract_place_names,
    extract_token_split,
    extract_tokens_used,
    fallback,
    normalize,
)
from makanguru.llm.personas import PERSONAS, Persona


def _gemini_payload(text: str) -> dict:
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}], "role": "model"}, "finishReason": "STOP"},
            {"content": {"parts": [{"text": "second candidate"}]}},
        ],
        "usageMetadata": {"promptTokenCount": 120, "candidatesTokenCount": 30, "totalTokenCount": 150},
        "modelVersion": "gemini-2.5-flash",
    }


def _groq_payload(text: str) -> dict:
    return {
        "id": "chatcmpl-1",
        "model": "llama-3.3-70b-versatile",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}}],
        "usage": {"prompt_tokens": 80, "completion_tokens": 20, "total_tokens": 100},
    }


@pytest.mark.parametrize("persona", list(Persona))
def test_normalize_keeps_persona(persona):
    result = normalize(_groq_payload("Try Kim Lian Kee."), persona)

    assert result.persona == persona


def test_normalize_gemini_payload():
    result = normalize(_gemini_payload("  Go to Village Park!\n"), "makcik")

    assert result.recommendation == "Go to Village Park!"
    assert result.suggested_places == ("Village Park",)
    assert result.is_fallback is False
    assert result.tokens_used == 150
    assert result.metadata["model"] == "gemini-2.5-flash"
    assert result.metadata["provider"] == "gemini"
    assert result.metadata["input_tokens"] == 120
    assert result.metadata["output_tokens"] == 30
    datetime.fromisoformat(result.metadata["timestamp"])


def test_normalize_groq_payload():
    result = normalize(_groq_payload("Bro, Grill Republic padu."), Persona.gymbro, provider="groq")

    assert result.recommendation == "Bro, Grill Republic padu."
    assert result.tokens_used == 100
    assert result.metadata["model"] == "llama-3.3-70b-versatile"
    assert result.metadata["provider"] == "groq"
    assert "Grill Republic" in result.suggested_places


def test_normalize_without_usage_defaults_to_zero():
    payload = {"choices": [{"message": {"content": "Makan at Restoran Oversea"}}]}

    result = normalize(payload, "tauke", provider="groq", model="openai/gpt-oss-120b")

    assert result.tokens_used == 0
    assert result.metadata["model"] == "openai/gpt-oss-120b"


def test_normalize_records_attempts():
    result = normalize(_groq_payload("ok"), "atas", attempts=3)

    assert result.metadata["attempts"] == 3


def test_extract_place_names_capitalised_run():
    names = extract_place_names("Visit Village Park Restaurant today")

    assert any(name.startswith("Village Park") for name in names)


def test_extract_place_names_dedupes_in_order():
    text = "Nasi Kandar Pelita first, then Dewakan. Nasi Kandar Pelita again!"

    assert extract_place_names(text) == ["Nasi Kandar Pelita", "Dewakan"]


def test_extract_place_names_empty_text():
    assert extract_place_names("") == []
    assert extract_place_names("all lowercase here lah") == []


def test_extract_completion_text_missing_path():
    assert extract_completion_text({"candidates": []}) is None
    assert extract_completion_text({"choices": [{"message": {}}]}) is None
    assert extract_completion_text({"candidates": [{"content": {"parts": [{"text": 42}]}}]}) is None
    assert extract_completion_text("not a dict") is None


def test_detect_provider():
    assert detect_provider(_gemini_payload("x")) == "gemini"
    assert detect_provider(_groq_payload("x")) == "groq"
    assert detect_provider({}) is None


def test_token_helpers_tolerate_bad_values():
    assert extract_tokens_used({"usage": {"total_tokens": "n/a"}}) == 0
    assert extract_token_split({}) == (0, 0)
    assert extract_token_split(_gemini_payload("x")) == (120, 30)


@pytest.mark.parametrize("usage", [
    {"totalTokenCount": 15, "promptTokenCount": "n/a", "candidatesTokenCount": [5]},
    "unavailable",
    ["15"],
    None,
])
def test_token_helpers_tolerate_odd_usage_block(usage):
    payload = {**_gemini_payload("Go Village Park"), "usageMetadata": usage}

    assert extract_token_split(payload) == (0, 0)
    assert extract_tokens_used(payload) == (15 if isinstance(usage, dict) else 0)

    result = normalize(payload, "makcik")
    assert result.recommendation == "Go Village Park"
    assert result.metadata["input_tokens"] == 0


def test_token_split_tolerates_odd_openai_usage():
    assert extract_token_split({"usage": "n/a"}) == (0, 0)
    assert extract_token_split({"usage": {"prompt_tokens": "many", "completion_tokens": 7}}) == (0, 7)
    assert extract_tokens_used({"usage": 42}) == 0


@pytest.mark.parametrize("persona", list(Persona))
def test_fallback_uses_persona_message(persona):
    result = fallback(persona, reason="exhausted", attempts=8)

    assert result.is_fallback is True
    assert result.suggested_places == ()
    assert result.recommendation == PERSONAS[persona].fallback_message
    assert result.tokens_used == 0
    assert result.metadata["reason"] == "exhausted"
    assert result.metadata["attempts"] == 8


def test_makcik_fallback_message():
    result = fallback("makcik")

    assert "Mak Cik's brain got too tired" in result.recommendation
    assert "reason" not in result.metadata


def test_recommendation_to_dict():
    data = normalize(_groq_payload("Go to Village Park!"), "makcik").to_dict()

    assert data["persona"] == "makcik"
    assert data["suggested_places"] == ["Village Park"]
    assert data["metadata"]["is_fallback"] is False
