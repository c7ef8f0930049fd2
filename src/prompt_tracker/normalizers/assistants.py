"""OpenAI Assistants API threads and run steps."""

from __future__ import annotations

from typing import Any

from prompt_tracker.api_types import ApiType
from prompt_tracker.models import NormalizedConversation, NormalizedResponse
from prompt_tracker.normalizers.base import (
    Normalizer,
    as_dict,
    compact,
    detect_language,
    dicts,
    resolve_file_search_results,
    run_step_tool_calls,
    text_content,
    tool_call_from_function,
    usage_from_tool_calls,
)


def _code_outputs(outputs: list[dict]) -> str:
    parts = []
    for o in outputs:
        kind = o.get("type")
        if kind == "logs":
            parts.append(o.get("logs") or "")
        elif kind == "image":
            parts.append("[Image output]")
        elif o.get("text"):
            parts.append(o["text"])
    return "\n".join(parts)


def code_interpreter_steps(run_steps: Any) -> list[dict[str, Any]]:
    results = []
    for tc in run_step_tool_calls(run_steps):
        if tc.get("type") != "code_interpreter":
            continue
        ci = as_dict(tc.get("code_interpreter"))
        code = ci.get("input") or ""
        outputs = dicts(ci.get("outputs"))
        results.append({
            "id": tc.get("id"),
            # the API reports no per-call status
            "status": "completed",
            "code": code,
            "language": detect_language(code),
            "output": _code_outputs(outputs),
            "files_created": [
                {"file_id": as_dict(o.get("image")).get("file_id")}
                for o in outputs
                if o.get("type") == "image" and as_dict(o.get("image")).get("file_id")
            ],
            "error": None,
        })
    return results


class AssistantsNormalizer(Normalizer):
    api_type = ApiType.OPENAI_ASSISTANTS

    def _single_response(self, raw: dict[str, Any]) -> NormalizedResponse:
        content = raw.get("content")
        text = text_content(content) if content is not None else text_content(raw.get("text"))
        return NormalizedResponse(
            text=text,
            tool_calls=tuple(tool_call_from_function(tc) for tc in dicts(raw.get("tool_calls"))),
            metadata=compact({
                "id": raw.get("id"),
                "role": raw.get("role"),
                "assistant_id": raw.get("assistant_id"),
                "thread_id": raw.get("thread_id"),
                "run_id": raw.get("run_id"),
            }),
        )

    def _conversation(self, raw: dict[str, Any]) -> NormalizedConversation:
        raw_messages = dicts(raw.get("messages"))
        run_steps = dicts(raw.get("run_steps"))
        messages = self._messages(raw_messages)

        step_calls = run_step_tool_calls(run_steps)
        results = {
            tc.get("id"): tc.get("output", as_dict(tc.get("function")).get("output"))
            for tc in step_calls
            if tc.get("id")
        }
        calls = [tc for m in messages for tc in m.tool_calls]
        known = {tc.id for tc in calls}
        # function calls that only appear in run steps
        calls += [
            tool_call_from_function(tc)
            for tc in step_calls
            if tc.get("type") == "function" and tc.get("id") not in known
        ]

        code = dicts(raw.get("code_interpreter_results")) or code_interpreter_steps(run_steps)

        return NormalizedConversation(
            messages=tuple(messages),
            tool_usage=tuple(usage_from_tool_calls(calls, results)),
            web_search_results=(),
            code_interpreter_results=tuple(code),
            file_search_results=tuple(resolve_file_search_results(raw)),
            run_steps=tuple(run_steps),
            metadata=compact({
                "assistant_id": raw.get("assistant_id"),
                "thread_id": raw.get("thread_id"),
                "run_id": raw.get("run_id"),
            }),
        )
