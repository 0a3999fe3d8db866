"""
MakanGuru command line.

Examples:
    makanguru ask "Where to get nasi lemak?" --persona makcik
    makanguru ask "Supper spot after midnight" --persona matmotor --model groq-meta --json
    makanguru list-models --provider gemini --filter flash
    makanguru health
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence

from pydantic import ValidationError

from .chat.config import DEFAULT_CHAT_CONFIG
from .chat.models import ChatRequest
from .llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from .llm.factory import get_client, resolve_preset
from .llm.personas import InvalidPersona, available_personas, get_template
from .recommendations.places import get_places

logger = logging.getLogger(__name__)


def _ask(args: argparse.Namespace, config: LLMConfig) -> int:
    try:
        request = ChatRequest(message=args.query)
        template = get_template(args.persona)
    except ValidationError as exc:
        print(f"Invalid query: {exc.errors()[0]['msg']}", file=sys.stderr)
        return 2
    except InvalidPersona as exc:
        print(str(exc), file=sys.stderr)
        return 2

    places = get_places(
        halal_only=args.halal or template.halal_only,
        price=args.price or template.price,
        area=args.area,
    )
    orchestrator, model = resolve_preset(args.model, config)
    result = orchestrator.recommend(request.message, args.persona, places, model=model)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print(f"[{template.label}] {result.recommendation}")
    if result.suggested_places:
        print()
        print("Mentioned: " + ", ".join(result.suggested_places))
    if result.is_fallback:
        logger.warning("Returned fallback recommendation (%s)", result.metadata.get("reason"))
    return 0


def _list_models(args: argparse.Namespace, config: LLMConfig) -> int:
    client = get_client(args.provider, config)
    try:
        models = client.list_models()
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    if args.filter:
        needle = args.filter.lower()
        models = [
            m for m in models
            if needle in str(m.get("name") or m.get("id") or "").lower()
        ]

    if args.json:
        print(json.dumps(models, indent=2, default=str))
        return 0

    if not models:
        print("No models found.")
        return 0
    print(f"Available {client.name} models ({len(models)}):")
    for m in models:
        name = m.get("name") or m.get("id")
        display = m.get("displayName") or m.get("owned_by") or ""
        print(f"  {name}  {display}".rstrip())
    return 0


def _health(args: argparse.Namespace, config: LLMConfig) -> int:
    providers = [args.provider] if args.provider else ["gemini", "groq"]
    healthy = True
    for name in providers:
        ok = get_client(name, config).health_check()
        healthy = healthy and ok
        print(f"{name}: {'ok' if ok else 'unavailable'}")
    return 0 if healthy else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="makanguru",
        description="Persona-driven Malaysian restaurant recommendations.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="Ask a persona for a recommendation")
    ask.add_argument("query", help="What you feel like eating")
    ask.add_argument(
        "--persona", "-p",
        default=DEFAULT_CHAT_CONFIG.default_persona,
        help=f"One of: {', '.join(available_personas())}",
    )
    ask.add_argument(
        "--model", "-m",
        default=DEFAULT_CHAT_CONFIG.default_model,
        choices=sorted(DEFAULT_LLM_CONFIG.presets),
        help="Model preset",
    )
    ask.add_argument("--area", "-a", help="Only places in this area")
    ask.add_argument("--halal", action="store_true", help="Only halal places")
    ask.add_argument("--price", choices=["budget", "moderate", "expensive"], help="Price tier")
    ask.add_argument("--json", action="store_true", help="Print the raw recommendation as JSON")
    ask.set_defaults(handler=_ask)

    models = sub.add_parser("list-models", help="List models available to a provider")
    models.add_argument("--provider", choices=["gemini", "groq"], help="Defaults to AI_PROVIDER")
    models.add_argument("--filter", "-f", help="Only models whose name contains this text")
    models.add_argument("--json", action="store_true", help="Print as JSON")
    models.set_defaults(handler=_list_models)

    health = sub.add_parser("health", help="Check provider reachability")
    health.add_argument("--provider", choices=["gemini", "groq"])
    health.set_defaults(handler=_health)

    return parser


def main(argv: Sequence[str] | None = None, config: LLMConfig = DEFAULT_LLM_CONFIG) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return args.handler(args, config)


if __name__ == "__main__":
    sys.exit(main())
