"""Anthropic Messages API payloads."""

from __future__ import annotations

from typing import Any

from prompt_tracker.api_types import ApiType
from prompt_tracker.models import ConversationMessage, NormalizedConversation, NormalizedResponse, ToolCall
from prompt_tracker.normalizers.base import (
    Normalizer,
    as_dict,
    compact,
    dicts,
    text_content,
    usage_from_tool_calls,
)


def tool_uses(content: Any) -> list[ToolCall]:
    return [
        ToolCall(
            id=block.get("id"),
            type="function",
            function_name=block.get("name"),
            arguments=block.get("input") or {},
        )
        for block in dicts(content)
        if block.get("type") == "tool_use"
    ]


def _tool_result_text(block: dict[str, Any]) -> Any:
    content = block.get("content")
    return text_content(content) if isinstance(content, list) else content


def _is_tool_result_only(msg: dict[str, Any]) -> bool:
    blocks = dicts(msg.get("content"))
    return bool(blocks) and all(b.get("type") == "tool_result" for b in blocks)


class AnthropicNormalizer(Normalizer):
    api_type = ApiType.ANTHROPIC_MESSAGES

    def _single_response(self, raw: dict[str, Any]) -> NormalizedResponse:
        content = raw.get("content")
        text = text_content(content) if content is not None else text_content(raw.get("text"))
        return NormalizedResponse(
            text=text,
            tool_calls=tuple(tool_uses(content)),
            metadata=compact({
                "id": raw.get("id"),
                "model": raw.get("model"),
                "stop_reason": raw.get("stop_reason"),
                "usage": raw.get("usage"),
            }),
        )

    def _message(self, msg: dict[str, Any], turn: int, **kwargs: Any) -> ConversationMessage:
        return ConversationMessage(
            role=msg.get("role") or "unknown",
            content=text_content(msg.get("content")),
            turn=turn,
            usage=msg.get("usage"),
            tool_calls=tuple(tool_uses(msg.get("content"))),
        )

    def _conversation(self, raw: dict[str, Any]) -> NormalizedConversation:
        raw_messages = []
        results: dict[str, Any] = {}
        for msg in dicts(raw.get("messages")):
            for block in dicts(msg.get("content")):
                if block.get("type") == "tool_result" and block.get("tool_use_id"):
                    results[block["tool_use_id"]] = _tool_result_text(block)
            # tool results travel as user messages but do not start a new turn
            if msg.get("role") == "user" and _is_tool_result_only(msg):
                msg = dict(msg, role="tool")
            raw_messages.append(msg)

        messages = self._messages(raw_messages)
        calls = [tc for m in messages if m.is_assistant for tc in m.tool_calls]

        return NormalizedConversation(
            messages=tuple(messages),
            tool_usage=tuple(usage_from_tool_calls(calls, results)),
            metadata=as_dict(raw.get("metadata")),
        )
