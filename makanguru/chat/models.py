from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..llm.personas import Persona


class ChatRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(..., min_length=3, max_length=500)


class ChatRole(str, Enum):
    user = "user"
    assistant = "assistant"


class ChatMessage(BaseModel):
    role: ChatRole
    content: str
    persona: Persona
    model: str
    is_fallback: bool = False


class ChatReplyType(str, Enum):
    reply = "reply"
    rate_limited = "rate_limited"


class ChatReply(BaseModel):
    type: ChatReplyType
    message: str
    persona: Persona
    model: str
    is_fallback: bool = False
    suggested_places: list[str] = Field(default_factory=list)
    retry_after: int | None = None


class PlaceFilters(BaseModel):
    halal_only: bool = False
    price: str | None = None
    area: str | None = None


class PersonaUsage(BaseModel):
    count: int = 0
    first_used: str | None = None
    last_used: str | None = None
    time_slots: dict[str, int] = Field(default_factory=dict)
