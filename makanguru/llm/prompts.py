from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from ..recommendations.models import PlaceContext
from .personas import Persona, get_template

INSTRUCTIONS_FOOTER = """\
## INSTRUCTIONS
- Analyze the user's query and the restaurant data
- Recommend 1-3 places that best match their needs
- Stay in character as {persona}
- Be specific about WHY you're recommending each place
- Keep response under 200 words
- Use Malaysian slang and cultural references naturally"""


def serialize_places(places: Iterable[PlaceContext | Mapping[str, Any]]) -> str:
    """
    Render places as the JSON context block.

    Only the fields the model needs are kept, in input order. An empty
    sequence renders as ``[]``.
    """
    context = [_as_place(p).to_context() for p in places]
    if not context:
        return "[]"
    return json.dumps(context, indent=4, ensure_ascii=False)


def _as_place(place: PlaceContext | Mapping[str, Any]) -> PlaceContext:
    if isinstance(place, PlaceContext):
        return place
    return PlaceContext.from_record(dict(place))


class PromptBuilder:
    """Assembles persona instruction, place context and user query into one prompt."""

    def build(
        self,
        user_query: str,
        persona: Persona | str,
        places: Iterable[PlaceContext | Mapping[str, Any]],
    ) -> str:
        template = get_template(persona)
        persona_id = Persona(persona).value
        sections = [
            template.instruction,
            "## AVAILABLE RESTAURANTS (JSON Context)\n" + serialize_places(places),
            "## USER QUERY\n" + user_query,
            INSTRUCTIONS_FOOTER.format(persona=persona_id),
        ]
        return "\n\n".join(sections)
