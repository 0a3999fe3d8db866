from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..llm.personas import Persona


class PriceTier(str, Enum):
    budget = "budget"
    moderate = "moderate"
    expensive = "expensive"


class PlaceContext(BaseModel):
    """Read-only view of a restaurant, as serialised into the prompt."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str | None = None
    area: str | None = None
    price: PriceTier | None = None
    halal: bool = False
    cuisine: str | None = None
    tags: tuple[str, ...] = ()
    hours: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(t.strip() for t in value.split(",") if t.strip())
        return value

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> PlaceContext:
        """Build from a catalog row (``is_halal``, ``cuisine_type``, ``opening_hours`` columns)."""
        return cls(
            name=record["name"],
            description=record.get("description"),
            area=record.get("area"),
            price=record.get("price"),
            halal=bool(record.get("is_halal", False)),
            cuisine=record.get("cuisine_type"),
            tags=record.get("tags") or (),
            hours=record.get("opening_hours"),
        )

    def to_context(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "area": self.area,
            "price": self.price.value if self.price else None,
            "halal": self.halal,
            "cuisine": self.cuisine,
            "tags": list(self.tags),
            "hours": self.hours,
        }


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    recommendation: str
    persona: Persona
    suggested_places: tuple[str, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_fallback(self) -> bool:
        return bool(self.metadata.get("is_fallback", False))

    @property
    def tokens_used(self) -> int:
        return int(self.metadata.get("tokens_used", 0) or 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "recommendation": self.recommendation,
            "persona": self.persona.value,
            "suggested_places": list(self.suggested_places),
            "metadata": dict(self.metadata),
        }
