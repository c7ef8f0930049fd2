"""Known (provider, api) pairs as a single enum."""

from __future__ import annotations

import enum
from typing import Any, Optional


class ApiType(str, enum.Enum):
    OPENAI_CHAT_COMPLETIONS = "openai_chat_completions"
    OPENAI_RESPONSES = "openai_responses"
    OPENAI_ASSISTANTS = "openai_assistants"
    ANTHROPIC_MESSAGES = "anthropic_messages"
    GOOGLE_GEMINI = "google_gemini"

    @property
    def provider(self) -> str:
        return _API_TYPE_TO_CONFIG[self][0]

    @property
    def api(self) -> str:
        return _API_TYPE_TO_CONFIG[self][1]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_CONFIG_TO_API_TYPE: dict[tuple[str, str], ApiType] = {
    ("openai", "chat_completions"): ApiType.OPENAI_CHAT_COMPLETIONS,
    ("openai", "responses"): ApiType.OPENAI_RESPONSES,
    ("openai", "assistants"): ApiType.OPENAI_ASSISTANTS,
    ("anthropic", "messages"): ApiType.ANTHROPIC_MESSAGES,
    ("google", "gemini"): ApiType.GOOGLE_GEMINI,
}

_API_TYPE_TO_CONFIG = {v: k for k, v in _CONFIG_TO_API_TYPE.items()}

_DISPLAY_NAMES = {
    ApiType.OPENAI_CHAT_COMPLETIONS: "OpenAI Chat Completions",
    ApiType.OPENAI_RESPONSES: "OpenAI Responses",
    ApiType.OPENAI_ASSISTANTS: "OpenAI Assistants",
    ApiType.ANTHROPIC_MESSAGES: "Anthropic Messages",
    ApiType.GOOGLE_GEMINI: "Google Gemini",
}


def _ident(value: Any) -> str:
    # Accept enum members and plain strings alike
    if isinstance(value, enum.Enum):
        value = value.value
    return str(value).strip().lower()


def from_config(provider: Any, api: Any) -> Optional[ApiType]:
    """Map a (provider, api) pair to its ApiType, or None when unknown."""
    if provider is None or api is None:
        return None
    return _CONFIG_TO_API_TYPE.get((_ident(provider), _ident(api)))


def to_config(api_type: Any) -> Optional[dict[str, str]]:
    parsed = parse(api_type)
    if parsed is None:
        return None
    return {"provider": parsed.provider, "api": parsed.api}


def parse(value: Any) -> Optional[ApiType]:
    """Coerce an ApiType, its string value, or a (provider, api) tuple."""
    if value is None:
        return None
    if isinstance(value, ApiType):
        return value
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return from_config(*value)
    ident = _ident(value)
    if ":" in ident:
        return from_config(*ident.split(":", 1))
    try:
        return ApiType(ident)
    except ValueError:
        return None


def all_types() -> list[ApiType]:
    return list(ApiType)


def valid(value: Any) -> bool:
    return parse(value) is not None


def display_name(value: Any) -> str:
    parsed = parse(value)
    if parsed is not None:
        return parsed.display_name
    return _ident(value).replace("_", " ").title()
