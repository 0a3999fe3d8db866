from __future__ import annotations

from collections import Counter, defaultdict
from typing import Any

from ..llm.gemini_client import GeminiClient
from ..llm.groq_client import GroqClient

_COST_ESTIMATORS = {
    "gemini": GeminiClient.estimate_cost,
    "groq": GroqClient.estimate_cost,
}


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    results = [e for e in events if e["type"] == "recommendation"]
    attempts = [e for e in events if e["type"] == "provider_attempt"]
    total = len(results)

    # Average response time
    times = [r["response_time_ms"] for r in results if "response_time_ms" in r]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Fallbacks by reason
    fallbacks = [r for r in results if r.get("is_fallback")]
    reasons: Counter[str] = Counter(r.get("reason") or "unknown" for r in fallbacks)

    # Persona usage
    persona_counter: Counter[str] = Counter(r.get("persona", "unknown") for r in results)

    # Attempt outcomes per provider/model
    outcomes: dict[str, Counter[str]] = defaultdict(Counter)
    for a in attempts:
        outcomes[f"{a.get('provider')}/{a.get('model')}"][a.get("outcome", "unknown")] += 1

    # Tokens and cost
    tokens_used = sum(r.get("tokens_used", 0) or 0 for r in results)
    estimated_cost = 0.0
    for r in results:
        estimator = _COST_ESTIMATORS.get(r.get("provider") or "")
        if estimator and not r.get("is_fallback"):
            estimated_cost += estimator(
                r.get("input_tokens", 0) or 0,
                r.get("output_tokens", 0) or 0,
                r.get("model") or "",
            )

    return {
        "total_requests": total,
        "avg_response_time_ms": avg_time,
        "fallback_stats": {
            "count": len(fallbacks),
            "rate": round(len(fallbacks) / total * 100, 1) if total else 0.0,
            "reasons": dict(reasons),
        },
        "persona_usage": dict(persona_counter.most_common()),
        "attempt_outcomes": {key: dict(counter) for key, counter in outcomes.items()},
        "total_attempts": len(attempts),
        "tokens_used": tokens_used,
        "estimated_cost_usd": round(estimated_cost, 6),
    }
