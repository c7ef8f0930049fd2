"""Shared helpers for turning provider payloads into the normalized shape.

Normalizers read plain dicts/lists (decoded JSON).  They never raise on
partial or unexpected payloads: missing pieces come back as empty text,
empty tuples or ``None``.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from prompt_tracker.api_types import ApiType
from prompt_tracker.models import (
    ConversationMessage,
    NormalizedConversation,
    NormalizedResponse,
    ToolCall,
)

logger = logging.getLogger(__name__)

TEXT_PART_TYPES = ("text", "output_text", "input_text")


def as_list(value: Any) -> list:
    return value if isinstance(value, list) else (list(value) if isinstance(value, tuple) else [])


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def dicts(value: Any) -> list[dict]:
    """Only the dict entries of a list-like value."""
    return [item for item in as_list(value) if isinstance(item, dict)]


def compact(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def parse_arguments(args: Any) -> Any:
    """Decode JSON-encoded tool arguments.

    Dicts pass through, ``None``/empty becomes ``{}``.  Strings that do not
    decode are returned unchanged.
    """
    if args is None:
        return {}
    if isinstance(args, dict):
        return args
    if not isinstance(args, str):
        return args
    if not args.strip():
        return {}
    try:
        return json.loads(args)
    except json.JSONDecodeError:
        logger.warning("Could not parse tool arguments as JSON: %.80s", args)
        return args


def text_content(content: Any) -> str:
    """Flatten string or content-part-list message content to plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict) and item.get("type") in TEXT_PART_TYPES:
                text = item.get("text")
                if isinstance(text, dict):
                    text = text.get("value")
                if text:
                    parts.append(str(text))
        return "\n".join(parts)
    return str(content)


def assign_turns(raw_messages: Iterable[Any]) -> list[int]:
    """Turn number for each message: user messages seen so far, at least 1.

    An explicit positive integer ``turn`` on a message wins.  Computed turns
    never drop below the previous message's turn.
    """
    turns = []
    users = 0
    last_turn = 1
    for msg in raw_messages:
        msg = as_dict(msg)
        if msg.get("role") == "user":
            users += 1
        explicit = msg.get("turn")
        if isinstance(explicit, int) and not isinstance(explicit, bool) and explicit >= 1:
            turn = explicit
        else:
            turn = max(users, last_turn)
        turns.append(turn)
        last_turn = turn
    return turns


def detect_language(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    if "import " in code or "def " in code or "print(" in code:
        return "python"
    if "const " in code or "let " in code or "function " in code:
        return "javascript"
    if "require " in code:
        return "ruby"
    return None


def run_step_tool_calls(run_steps: Any) -> list[dict]:
    """All tool calls nested in Assistants run steps, in step order."""
    calls = []
    for step in dicts(run_steps):
        details = as_dict(step.get("step_details"))
        calls.extend(dicts(details.get("tool_calls")))
    return calls


def flatten_run_step_file_search(run_steps: Any) -> list[dict[str, Any]]:
    """File search hits nested inside run steps.

    Handles raw run steps (``step_details.tool_calls[].file_search``) and
    steps that already carry a ``file_search_results`` list.
    """
    results: list[dict[str, Any]] = []
    for step in dicts(run_steps):
        results.extend(dicts(step.get("file_search_results")))
    for tc in run_step_tool_calls(run_steps):
        if tc.get("type") != "file_search":
            continue
        hits = dicts(as_dict(tc.get("file_search")).get("results"))
        results.append({
            "query": None,
            "files": [h.get("file_name") or h.get("filename") for h in hits],
            "scores": [h.get("score") for h in hits],
        })
    return results


def resolve_file_search_results(raw: dict[str, Any]) -> list[dict[str, Any]]:
    """Top-level ``file_search_results`` if present, else flattened from run steps."""
    top_level = dicts(raw.get("file_search_results"))
    if top_level:
        return top_level
    return flatten_run_step_file_search(raw.get("run_steps"))


def tool_call_from_function(raw: dict[str, Any]) -> ToolCall:
    """ToolCall from the nested ``{id, type, function: {name, arguments}}`` form."""
    function = as_dict(raw.get("function"))
    return ToolCall(
        id=raw.get("id"),
        type=raw.get("type") or "function",
        function_name=function.get("name") or raw.get("function_name") or raw.get("name"),
        arguments=parse_arguments(
            function["arguments"] if "arguments" in function else raw.get("arguments")
        ),
    )


def usage_from_tool_calls(
    tool_calls: Iterable[ToolCall], results: Optional[dict[str, Any]] = None
) -> list[dict[str, Any]]:
    results = results or {}
    return [
        {
            "function_name": tc.function_name,
            "call_id": tc.id,
            "arguments": tc.arguments,
            "result": results.get(tc.id) if tc.id else None,
        }
        for tc in tool_calls
    ]


def text_conversation(text: str) -> NormalizedConversation:
    """A conversation holding one assistant message at turn 1."""
    return NormalizedConversation(
        messages=(ConversationMessage(role="assistant", content=text, turn=1),),
    )


class Normalizer(ABC):
    """One provider API's payloads to ``NormalizedResponse``/``NormalizedConversation``."""

    api_type: ApiType

    def normalize_single_response(self, raw: Any) -> NormalizedResponse:
        if isinstance(raw, str):
            return NormalizedResponse(text=raw)
        if not isinstance(raw, dict):
            return NormalizedResponse(text="" if raw is None else str(raw))
        return self._single_response(raw)

    def normalize_conversation(self, raw: Any) -> NormalizedConversation:
        if isinstance(raw, str):
            return text_conversation(raw)
        if not isinstance(raw, dict):
            logger.warning("%s got %s instead of a dict; returning an empty conversation",
                           type(self).__name__, type(raw).__name__)
            return NormalizedConversation()
        return self._conversation(raw)

    @abstractmethod
    def _single_response(self, raw: dict[str, Any]) -> NormalizedResponse:
        ...

    @abstractmethod
    def _conversation(self, raw: dict[str, Any]) -> NormalizedConversation:
        ...

    def _messages(self, raw_messages: list[dict], **kwargs: Any) -> list[ConversationMessage]:
        """Build messages with computed turns; ``_message`` converts each entry."""
        turns = assign_turns(raw_messages)
        return [self._message(msg, turn, **kwargs) for msg, turn in zip(raw_messages, turns)]

    def _message(self, msg: dict[str, Any], turn: int, **kwargs: Any) -> ConversationMessage:
        return ConversationMessage(
            role=msg.get("role") or "unknown",
            content=text_content(msg.get("content")),
            turn=turn,
            usage=msg.get("usage"),
            tool_calls=tuple(tool_call_from_function(tc) for tc in dicts(msg.get("tool_calls"))),
        )
