"""OpenAI Chat Completions payloads."""

from __future__ import annotations

from typing import Any

from prompt_tracker.api_types import ApiType
from prompt_tracker.models import NormalizedConversation, NormalizedResponse
from prompt_tracker.normalizers.base import (
    Normalizer,
    as_dict,
    compact,
    dicts,
    text_content,
    tool_call_from_function,
    usage_from_tool_calls,
)


class ChatCompletionNormalizer(Normalizer):
    api_type = ApiType.OPENAI_CHAT_COMPLETIONS

    def _single_response(self, raw: dict[str, Any]) -> NormalizedResponse:
        choices = dicts(raw.get("choices"))
        first = choices[0] if choices else {}
        message = as_dict(first.get("message"))

        text = raw.get("text")
        if text is None:
            text = message.get("content")
        if text is None:
            text = raw.get("content")

        raw_calls = dicts(message.get("tool_calls")) or dicts(raw.get("tool_calls"))

        return NormalizedResponse(
            text=text_content(text),
            tool_calls=tuple(tool_call_from_function(tc) for tc in raw_calls),
            metadata=compact({
                "model": raw.get("model"),
                "finish_reason": first.get("finish_reason"),
                "usage": raw.get("usage"),
            }),
        )

    def _conversation(self, raw: dict[str, Any]) -> NormalizedConversation:
        raw_messages = dicts(raw.get("messages"))
        messages = self._messages(raw_messages)

        # role=tool messages answer an earlier call by tool_call_id
        results = {
            m.get("tool_call_id"): m.get("content")
            for m in raw_messages
            if m.get("role") == "tool" and m.get("tool_call_id")
        }
        calls = [tc for m in messages if m.is_assistant for tc in m.tool_calls]

        return NormalizedConversation(
            messages=tuple(messages),
            tool_usage=tuple(usage_from_tool_calls(calls, results)),
            metadata=as_dict(raw.get("metadata")),
        )
