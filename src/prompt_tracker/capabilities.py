"""Static capability matrix for each (provider, api) pair.

Lookups accept strings or enum members for provider/api and never raise
for unknown pairs: tools and features come back empty, playground panels
fall back to DEFAULT_PLAYGROUND_UI.
"""

from __future__ import annotations

import enum
from typing import Any

DEFAULT_PLAYGROUND_UI: tuple[str, ...] = (
    "system_prompt",
    "user_prompt_template",
    "variables",
    "preview",
    "conversation",
    "tools",
    "model_config",
)

# APIs whose testable is synced from a remote entity (no local template)
REMOTE_ENTITY_LINKED = "remote_entity_linked"

CAPABILITIES: dict[str, dict[str, dict[str, tuple[str, ...]]]] = {
    "openai": {
        "chat_completions": {
            "builtin_tools": (),
            "features": (),
            "playground_ui": DEFAULT_PLAYGROUND_UI,
        },
        "responses": {
            "builtin_tools": ("web_search", "file_search", "code_interpreter"),
            "features": (),
            "playground_ui": DEFAULT_PLAYGROUND_UI,
        },
        "assistants": {
            "builtin_tools": ("code_interpreter", "file_search"),
            "features": (REMOTE_ENTITY_LINKED,),
            "playground_ui": ("system_prompt", "conversation", "tools", "model_config"),
        },
    },
    "anthropic": {
        "messages": {
            "builtin_tools": (),
            "features": (),
            "playground_ui": DEFAULT_PLAYGROUND_UI,
        },
    },
}

PROVIDER_DEFAULTS: dict[str, dict[str, Any]] = {
    "openai": {
        "name": "OpenAI",
        "apis": {
            "chat_completions": {"name": "Chat Completions", "description": "Standard chat API with messages", "default": True},
            "responses": {"name": "Responses", "description": "Stateful conversations with built-in tools"},
            "assistants": {"name": "Assistants", "description": "Full assistant features with threads and runs"},
        },
    },
    "anthropic": {
        "name": "Anthropic",
        "apis": {
            "messages": {"name": "Messages", "description": "Claude chat API", "default": True},
        },
    },
    "google": {
        "name": "Google Gemini",
        "apis": {
            "gemini": {"name": "Generate Content", "description": "Gemini chat API", "default": True},
        },
    },
}


def _key(value: Any) -> str:
    if isinstance(value, enum.Enum):
        value = value.value
    return "" if value is None else str(value).strip().lower()


def _entry(provider: Any, api: Any) -> dict[str, tuple[str, ...]] | None:
    p, a = _key(provider), _key(api)
    if not p or not a:
        return None
    return CAPABILITIES.get(p, {}).get(a)


def builtin_tools_for(provider: Any, api: Any) -> list[str]:
    entry = _entry(provider, api)
    return list(entry["builtin_tools"]) if entry else []


def features_for(provider: Any, api: Any) -> list[str]:
    entry = _entry(provider, api)
    return list(entry["features"]) if entry else []


def supports_feature(provider: Any, api: Any, feature: Any) -> bool:
    if feature is None:
        return False
    return _key(feature) in features_for(provider, api)


def supports_tool(provider: Any, api: Any, tool: Any) -> bool:
    return _key(tool) in builtin_tools_for(provider, api)


def playground_ui_for(provider: Any, api: Any) -> list[str]:
    entry = _entry(provider, api)
    return list(entry["playground_ui"] if entry else DEFAULT_PLAYGROUND_UI)


def show_ui_panel(provider: Any, api: Any, panel: Any) -> bool:
    if panel is None:
        return False
    return _key(panel) in playground_ui_for(provider, api)


def is_remote_entity_linked(provider: Any, api: Any) -> bool:
    return supports_feature(provider, api, REMOTE_ENTITY_LINKED)


def provider_name(provider: Any) -> str:
    p = _key(provider)
    defaults = PROVIDER_DEFAULTS.get(p)
    if defaults:
        return defaults["name"]
    return p.replace("_", " ").title()


def apis_for(provider: Any) -> list[dict[str, Any]]:
    """Known APIs for a provider with their features, default API first."""
    p = _key(provider)
    apis = PROVIDER_DEFAULTS.get(p, {}).get("apis", {})
    result = [
        {
            "key": api_key,
            "name": info.get("name") or api_key.replace("_", " ").title(),
            "default": bool(info.get("default")),
            "description": info.get("description"),
            "features": features_for(p, api_key),
        }
        for api_key, info in apis.items()
    ]
    result.sort(key=lambda a: not a["default"])
    return result


def to_dict() -> dict[str, dict[str, dict[str, list[str]]]]:
    return {
        provider: {
            api: {name: list(values) for name, values in entry.items()}
            for api, entry in apis.items()
        }
        for provider, apis in CAPABILITIES.items()
    }
