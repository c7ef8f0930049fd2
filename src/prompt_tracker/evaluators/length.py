"""Response length against configured character bounds."""

from __future__ import annotations

from typing import Any, Optional

from prompt_tracker.evaluators.base import BaseEvaluator, SINGLE_RESPONSE


class LengthEvaluator(BaseEvaluator):
    key = "length"
    name = "Length"
    description = "Checks that the response length falls within a character range"
    icon = "rulers"
    category = SINGLE_RESPONSE

    DEFAULT_CONFIG = {"min_length": 0, "max_length": None}
    PARAM_SCHEMA = {"min_length": "integer", "max_length": "integer"}

    @property
    def length(self) -> int:
        return len(self.response_text)

    @property
    def min_length(self) -> int:
        return self.config.get("min_length") or 0

    @property
    def max_length(self) -> Optional[int]:
        return self.config.get("max_length")

    def within_bounds(self) -> bool:
        if self.length < self.min_length:
            return False
        return self.max_length is None or self.length <= self.max_length

    def evaluate_score(self) -> float:
        if self.within_bounds():
            return 100.0
        if self.length < self.min_length:
            return round(100.0 * self.length / self.min_length, 2)
        return round(100.0 * self.max_length / self.length, 2)

    def passed(self) -> bool:
        if self.threshold_score is not None:
            return super().passed()
        return self.within_bounds()

    def generate_feedback(self) -> str:
        if self.length < self.min_length:
            return f"Response is too short: {self.length} characters (minimum {self.min_length})."
        if self.max_length is not None and self.length > self.max_length:
            return f"Response is too long: {self.length} characters (maximum {self.max_length})."
        upper = self.max_length if self.max_length is not None else "no limit"
        return f"Response length {self.length} is within bounds ({self.min_length}-{upper})."

    def metadata(self) -> dict[str, Any]:
        return {
            "length": self.length,
            "min_length": self.min_length,
            "max_length": self.max_length,
            "within_bounds": self.within_bounds(),
        }
