from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from ..recommendations.models import Recommendation
from .personas import Persona, get_template, resolve_persona

# Runs of capitalised words, e.g. "Village Park Restaurant".
_PLACE_NAME_RE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


# Sentence-initial words stripped from the front of a run.
_LEADING_WORDS = frozenset({
    "A", "An", "And", "At", "But", "Check", "Darling", "Go", "Head", "I",
    "If", "Just", "My", "Or", "So", "The", "This", "Try", "Visit", "You",
})


def extract_place_names(text: str) -> list[str]:
    names = []
    for run in _PLACE_NAME_RE.findall(text):
        words = run.split()
        while words and words[0] in _LEADING_WORDS:
            words.pop(0)
        if words:
            names.append(" ".join(words))
    return list(dict.fromkeys(names))


def detect_provider(payload: dict[str, Any]) -> str | None:
    if "candidates" in payload:
        return "gemini"
    if "choices" in payload:
        return "groq"
    return None


def extract_completion_text(payload: Any) -> str | None:
    """
    Return the first candidate's text, or None when the payload lacks it.

    Understands both the Gemini ``candidates[0].content.parts[0].text`` path
    and the OpenAI-compatible ``choices[0].message.content`` path.
    """
    if not isinstance(payload, dict):
        return None
    try:
        if "candidates" in payload:
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        else:
            text = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def _usage(payload: dict[str, Any], key: str) -> dict[str, Any]:
    usage = payload.get(key)
    return usage if isinstance(usage, dict) else {}


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def extract_tokens_used(payload: dict[str, Any]) -> int:
    usage = _usage(payload, "usageMetadata") or _usage(payload, "usage")
    return _count(usage.get("totalTokenCount", usage.get("total_tokens", 0)))


def extract_token_split(payload: dict[str, Any]) -> tuple[int, int]:
    """(input, output) token counts, for cost estimates."""
    if "usageMetadata" in payload:
        usage = _usage(payload, "usageMetadata")
        return _count(usage.get("promptTokenCount")), _count(usage.get("candidatesTokenCount"))
    usage = _usage(payload, "usage")
    return _count(usage.get("prompt_tokens")), _count(usage.get("completion_tokens"))


def normalize(
    raw_payload: dict[str, Any],
    persona: Persona | str,
    provider: str | None = None,
    model: str | None = None,
    attempts: int | None = None,
) -> Recommendation:
    persona = resolve_persona(persona)
    text = (extract_completion_text(raw_payload) or "").strip()

    input_tokens, output_tokens = extract_token_split(raw_payload)
    metadata: dict[str, Any] = {
        "tokens_used": extract_tokens_used(raw_payload),
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "model": raw_payload.get("modelVersion") or raw_payload.get("model") or model,
        "provider": provider or detect_provider(raw_payload),
        "timestamp": _utcnow(),
        "is_fallback": False,
    }
    if attempts is not None:
        metadata["attempts"] = attempts

    return Recommendation(
        recommendation=text,
        persona=persona,
        suggested_places=tuple(extract_place_names(text)),
        metadata=metadata,
    )


def fallback(
    persona: Persona | str,
    reason: str | None = None,
    attempts: int | None = None,
) -> Recommendation:
    persona = resolve_persona(persona)
    metadata: dict[str, Any] = {
        "tokens_used": 0,
        "timestamp": _utcnow(),
        "is_fallback": True,
    }
    if reason:
        metadata["reason"] = reason
    if attempts is not None:
        metadata["attempts"] = attempts

    return Recommendation(
        recommendation=get_template(persona).fallback_message,
        persona=persona,
        suggested_places=(),
        metadata=metadata,
    )
