from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class ChatConfig:
    max_messages: int = int(os.getenv("CHAT_RATE_LIMIT_MAX", "5"))
    window_seconds: int = int(os.getenv("CHAT_RATE_LIMIT_WINDOW", "60"))
    default_persona: str = os.getenv("CHAT_DEFAULT_PERSONA", "makcik")
    default_model: str = os.getenv("CHAT_DEFAULT_MODEL", "groq-openai")
    min_query_length: int = 3
    max_query_length: int = 500


DEFAULT_CHAT_CONFIG = ChatConfig()
