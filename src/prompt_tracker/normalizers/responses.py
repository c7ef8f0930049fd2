"""OpenAI Responses API payloads, including built-in tool output items."""

from __future__ import annotations

from typing import Any, Optional

from prompt_tracker.api_types import ApiType
from prompt_tracker.models import ConversationMessage, NormalizedConversation, NormalizedResponse, ToolCall
from prompt_tracker.normalizers.base import (
    Normalizer,
    as_dict,
    as_list,
    compact,
    detect_language,
    dicts,
    parse_arguments,
    usage_from_tool_calls,
)


def _items(output: Any, item_type: str) -> list[dict]:
    return [item for item in dicts(output) if item.get("type") == item_type]


def output_text(output: Any) -> str:
    parts = [
        c.get("text") or ""
        for item in _items(output, "message")
        for c in dicts(item.get("content"))
        if c.get("type") == "output_text"
    ]
    return "\n".join(parts)


def function_calls(output: Any) -> list[ToolCall]:
    return [
        ToolCall(
            id=item.get("call_id") or item.get("id"),
            type="function",
            function_name=item.get("name"),
            arguments=parse_arguments(item.get("arguments")),
        )
        for item in _items(output, "function_call")
    ]


def url_citations(output: Any) -> list[dict[str, Any]]:
    citations = []
    for item in _items(output, "message"):
        for c in dicts(item.get("content")):
            for ann in dicts(c.get("annotations")):
                if ann.get("type") != "url_citation":
                    continue
                citations.append({
                    "title": ann.get("title"),
                    "url": ann.get("url"),
                    "start_index": ann.get("start_index"),
                    "end_index": ann.get("end_index"),
                })
    return citations


def _web_search_query(item: dict[str, Any]) -> Optional[str]:
    action = as_dict(item.get("action"))
    queries = as_list(action.get("queries"))
    return action.get("query") or (queries[0] if queries else None) or item.get("query")


def web_search_calls(output: Any) -> list[dict[str, Any]]:
    citations = url_citations(output)
    results = []
    for item in _items(output, "web_search_call"):
        action = as_dict(item.get("action"))
        sources = dicts(action.get("sources")) or dicts(item.get("sources"))
        results.append({
            "id": item.get("id"),
            "status": item.get("status"),
            "query": _web_search_query(item),
            "sources": [
                {"title": s.get("title"), "url": s.get("url"), "snippet": s.get("snippet")}
                for s in sources
            ],
            "citations": citations,
        })
    return results


def file_search_calls(output: Any) -> list[dict[str, Any]]:
    results = []
    for item in _items(output, "file_search_call"):
        hits = dicts(item.get("results"))
        queries = as_list(item.get("queries"))
        results.append({
            "id": item.get("id"),
            "status": item.get("status"),
            "query": item.get("query") or (queries[0] if queries else None),
            "files": [h.get("filename") or h.get("file_name") for h in hits],
            "scores": [h.get("score") for h in hits],
        })
    return results


def _code_output(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts = []
        for o in value:
            if isinstance(o, str):
                parts.append(o)
            elif isinstance(o, dict):
                if o.get("type") == "image":
                    parts.append("[Image output]")
                elif o.get("text") or o.get("logs"):
                    parts.append(o.get("text") or o.get("logs"))
        return "\n".join(parts)
    return str(value)


def code_interpreter_calls(output: Any) -> list[dict[str, Any]]:
    results = []
    for item in _items(output, "code_interpreter_call"):
        ci = as_dict(item.get("code_interpreter"))
        code = ci.get("code") or item.get("code")
        outputs = ci.get("output", ci.get("outputs", item.get("outputs", item.get("output"))))
        results.append({
            "id": item.get("id"),
            "status": item.get("status"),
            "code": code,
            "language": ci.get("language") or item.get("language") or detect_language(code),
            "output": _code_output(outputs),
            "files_created": as_list(ci.get("files_created") or item.get("files_created")),
            "error": ci.get("error") or item.get("error"),
        })
    return results


def _unique_by_id(results: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop repeats of a tool call already seen under the same item id."""
    seen = set()
    unique = []
    for r in results:
        item_id = r.get("id")
        if item_id:
            if item_id in seen:
                continue
            seen.add(item_id)
        unique.append(r)
    return unique


class ResponsesNormalizer(Normalizer):
    api_type = ApiType.OPENAI_RESPONSES

    def _single_response(self, raw: dict[str, Any]) -> NormalizedResponse:
        output = raw.get("output")
        text = output_text(output) or raw.get("text") or ""
        return NormalizedResponse(
            text=text if isinstance(text, str) else str(text),
            tool_calls=tuple(function_calls(output)),
            metadata=compact({
                "id": raw.get("id"),
                "model": raw.get("model"),
                "status": raw.get("status"),
                "usage": raw.get("usage"),
            }),
        )

    def _message(self, msg: dict[str, Any], turn: int, **kwargs: Any) -> ConversationMessage:
        base = super()._message(msg, turn)
        output = msg.get("output")
        if not output:
            return base
        return ConversationMessage(
            role=base.role,
            content=base.content or output_text(output),
            turn=turn,
            usage=base.usage,
            tool_calls=base.tool_calls or tuple(function_calls(output)),
            web_search_results=tuple(web_search_calls(output)),
            file_search_results=tuple(file_search_calls(output)),
            code_interpreter_results=tuple(code_interpreter_calls(output)),
            api_metadata=compact({"response_id": msg.get("response_id") or msg.get("id")}),
        )

    def _conversation(self, raw: dict[str, Any]) -> NormalizedConversation:
        output = raw.get("output")
        raw_messages = dicts(raw.get("messages"))
        if not raw_messages:
            raw_messages = [
                {"role": item.get("role") or "assistant", "content": output_text([item])}
                for item in _items(output, "message")
            ]
        messages = self._messages(raw_messages)

        web = [r for m in messages for r in m.web_search_results] + web_search_calls(output)
        files = [r for m in messages for r in m.file_search_results] + file_search_calls(output)
        code = [r for m in messages for r in m.code_interpreter_results] + code_interpreter_calls(output)
        # the same response can appear per message and at the top level
        web = _unique_by_id(web + dicts(raw.get("web_search_results")))
        files = _unique_by_id(files + dicts(raw.get("file_search_results")))
        code = _unique_by_id(code + dicts(raw.get("code_interpreter_results")))

        calls = [tc for m in messages if m.is_assistant for tc in m.tool_calls]
        known = {tc.id for tc in calls}
        calls += [tc for tc in function_calls(output) if tc.id not in known]
        results = {
            item.get("call_id"): item.get("output")
            for item in _items(output, "function_call_output")
            if item.get("call_id")
        }

        return NormalizedConversation(
            messages=tuple(messages),
            tool_usage=tuple(usage_from_tool_calls(calls, results)),
            web_search_results=tuple(web),
            code_interpreter_results=tuple(code),
            file_search_results=tuple(files),
            run_steps=None,
            metadata=as_dict(raw.get("metadata")),
        )
