"""Required and forbidden keywords in the response text."""

from __future__ import annotations

from functools import cached_property
from typing import Any

from prompt_tracker.evaluators.base import BaseEvaluator, SINGLE_RESPONSE
from prompt_tracker.evaluators.matching import contains, ratio_score


class KeywordEvaluator(BaseEvaluator):
    key = "keyword"
    name = "Keyword"
    description = "Checks for required keywords and the absence of forbidden ones"
    icon = "key"
    category = SINGLE_RESPONSE

    DEFAULT_CONFIG = {"required_keywords": [], "forbidden_keywords": [], "case_sensitive": False}
    PARAM_SCHEMA = {
        "required_keywords": "array",
        "forbidden_keywords": "array",
        "case_sensitive": "boolean",
    }

    def _present(self, keywords: list[str]) -> list[str]:
        case_sensitive = bool(self.config.get("case_sensitive"))
        return [k for k in keywords if contains(k, self.response_text, case_sensitive)]

    @cached_property
    def found_required(self) -> list[str]:
        return self._present(self.config.get("required_keywords") or [])

    @cached_property
    def missing_required(self) -> list[str]:
        found = set(self.found_required)
        return [k for k in self.config.get("required_keywords") or [] if k not in found]

    @cached_property
    def found_forbidden(self) -> list[str]:
        return self._present(self.config.get("forbidden_keywords") or [])

    def evaluate_score(self) -> float:
        if self.found_forbidden:
            return 0.0
        required = self.config.get("required_keywords") or []
        return round(ratio_score(len(self.found_required), len(required)), 2)

    def generate_feedback(self) -> str:
        lines = ["Keyword Evaluation Results:"]
        if self.found_required:
            lines.append(f"✓ Found: {', '.join(self.found_required)}")
        if self.missing_required:
            lines.append(f"✗ Missing: {', '.join(self.missing_required)}")
        if self.found_forbidden:
            lines.append(f"✗ Forbidden keywords present: {', '.join(self.found_forbidden)}")
        if len(lines) == 1:
            lines.append("No keyword requirements configured.")
        return "\n".join(lines)

    def metadata(self) -> dict[str, Any]:
        return {
            "found_keywords": self.found_required,
            "missing_keywords": self.missing_required,
            "forbidden_found": self.found_forbidden,
            "case_sensitive": bool(self.config.get("case_sensitive")),
        }
