"""Binary comparison of the response against an expected text."""

from __future__ import annotations

from typing import Any

from prompt_tracker.evaluators.base import BaseEvaluator, SINGLE_RESPONSE


class ExactMatchEvaluator(BaseEvaluator):
    key = "exact_match"
    name = "Exact Match"
    description = "Checks that the response equals an expected text"
    icon = "check2-square"
    category = SINGLE_RESPONSE

    DEFAULT_CONFIG = {"expected_text": "", "case_sensitive": True, "trim_whitespace": True}
    PARAM_SCHEMA = {
        "expected_text": "string",
        "expected_output": "string",
        "case_sensitive": "boolean",
        "trim_whitespace": "boolean",
    }

    @property
    def expected_text(self) -> str:
        # expected_output is the older name for the same setting
        return self.config.get("expected_output") or self.config.get("expected_text") or ""

    def _normalize(self, text: str) -> str:
        if self.config.get("trim_whitespace"):
            text = text.strip()
        if not self.config.get("case_sensitive"):
            text = text.lower()
        return text

    def matches(self) -> bool:
        return self._normalize(self.response_text) == self._normalize(self.expected_text)

    def evaluate_score(self) -> float:
        return 100.0 if self.matches() else 0.0

    def passed(self) -> bool:
        return self.matches()

    def generate_feedback(self) -> str:
        if self.matches():
            return "✓ Response matches the expected text."
        return "✗ Response does not match the expected text."

    def metadata(self) -> dict[str, Any]:
        return {
            "expected_text": self.expected_text,
            "actual_text": self.response_text,
            "case_sensitive": bool(self.config.get("case_sensitive")),
            "trim_whitespace": bool(self.config.get("trim_whitespace")),
        }
