"""Response format checks: JSON with required keys, markdown, or plain text."""

from __future__ import annotations

import json
import re
from functools import cached_property
from typing import Any, Optional

from prompt_tracker.evaluators.base import BaseEvaluator, SINGLE_RESPONSE
from prompt_tracker.evaluators.matching import ratio_score

FORMATS = ("json", "markdown", "plain")

_FENCED_JSON = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_MARKDOWN_MARKERS = (
    re.compile(r"^#{1,6}\s+\S", re.MULTILINE),
    re.compile(r"^\s*(?:[-*+]|\d+\.)\s+\S", re.MULTILINE),
    re.compile(r"\*\*[^*]+\*\*|__[^_]+__"),
    re.compile(r"```"),
    re.compile(r"\[[^\]]+\]\([^)]+\)"),
)

_MISSING = object()


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return _MISSING


def extract_json(text: str, strict: bool = False) -> Any:
    """Parse *text* as JSON; unless strict, also try a fenced or embedded object."""
    parsed = _loads(text.strip())
    if parsed is not _MISSING or strict:
        return parsed
    fenced = _FENCED_JSON.search(text)
    if fenced:
        parsed = _loads(fenced.group(1).strip())
        if parsed is not _MISSING:
            return parsed
    for open_char, close_char in (("{", "}"), ("[", "]")):
        start, end = text.find(open_char), text.rfind(close_char)
        if 0 <= start < end:
            parsed = _loads(text[start : end + 1])
            if parsed is not _MISSING:
                return parsed
    return _MISSING


def markdown_markers(text: str) -> int:
    return sum(1 for marker in _MARKDOWN_MARKERS if marker.search(text))


class FormatEvaluator(BaseEvaluator):
    key = "format"
    name = "Format"
    description = "Validates the response format (JSON, markdown or plain text)"
    icon = "code-square"
    category = SINGLE_RESPONSE

    DEFAULT_CONFIG = {"expected_format": "json", "required_keys": [], "strict": False}
    PARAM_SCHEMA = {"expected_format": "string", "required_keys": "array", "strict": "boolean"}

    @property
    def expected_format(self) -> str:
        return (self.config.get("expected_format") or "json").lower()

    @property
    def required_keys(self) -> list[str]:
        return list(self.config.get("required_keys") or [])

    @cached_property
    def parsed(self) -> Any:
        return extract_json(self.response_text, strict=bool(self.config.get("strict")))

    @property
    def valid_json(self) -> bool:
        return self.parsed is not _MISSING

    @cached_property
    def missing_keys(self) -> list[str]:
        if not self.valid_json:
            return list(self.required_keys)
        if not isinstance(self.parsed, dict):
            return list(self.required_keys)
        return [k for k in self.required_keys if k not in self.parsed]

    def evaluate_score(self) -> float:
        fmt = self.expected_format
        if fmt == "json":
            if not self.valid_json:
                return 0.0
            found = len(self.required_keys) - len(self.missing_keys)
            return round(ratio_score(found, len(self.required_keys)), 2)
        if fmt == "markdown":
            return 100.0 if markdown_markers(self.response_text) else 0.0
        if fmt == "plain":
            return 0.0 if markdown_markers(self.response_text) else 100.0
        return 0.0

    def _problem(self) -> Optional[str]:
        fmt = self.expected_format
        if fmt not in FORMATS:
            return f"Unknown expected format: {fmt}"
        if fmt == "json" and not self.valid_json:
            return "Response is not valid JSON."
        if fmt == "json" and self.missing_keys:
            return f"Missing required keys: {', '.join(self.missing_keys)}"
        if fmt == "markdown" and not markdown_markers(self.response_text):
            return "Response contains no markdown formatting."
        if fmt == "plain" and markdown_markers(self.response_text):
            return "Response contains markdown formatting."
        return None

    def generate_feedback(self) -> str:
        problem = self._problem()
        if problem:
            return f"✗ {problem}"
        return f"✓ Response is valid {self.expected_format}."

    def metadata(self) -> dict[str, Any]:
        meta: dict[str, Any] = {
            "expected_format": self.expected_format,
            "strict": bool(self.config.get("strict")),
        }
        if self.expected_format == "json":
            meta["valid_json"] = self.valid_json
            meta["required_keys"] = self.required_keys
            meta["missing_keys"] = self.missing_keys
        else:
            meta["markdown_markers"] = markdown_markers(self.response_text)
        return meta
