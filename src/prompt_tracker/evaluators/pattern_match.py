"""Regex patterns over the response text."""

from __future__ import annotations

from functools import cached_property
from typing import Any

from prompt_tracker.evaluators.base import BaseEvaluator, SINGLE_RESPONSE
from prompt_tracker.evaluators.matching import pattern_matches, ratio_score


class PatternMatchEvaluator(BaseEvaluator):
    key = "pattern_match"
    name = "Pattern Match"
    description = "Checks the response against one or more regular expressions"
    icon = "regex"
    category = SINGLE_RESPONSE

    DEFAULT_CONFIG = {"patterns": [], "match_all": True, "case_sensitive": True}
    PARAM_SCHEMA = {
        "patterns": "array",
        "match_all": "boolean",
        "require_all": "boolean",
        "case_sensitive": "boolean",
    }

    @property
    def patterns(self) -> list[str]:
        return list(self.config.get("patterns") or [])

    @property
    def match_all(self) -> bool:
        if "require_all" in self.config:
            return bool(self.config["require_all"])
        return bool(self.config.get("match_all"))

    @cached_property
    def matched(self) -> list[str]:
        ignore_case = not self.config.get("case_sensitive", True)
        return [p for p in self.patterns if pattern_matches(p, self.response_text, ignore_case)]

    @property
    def unmatched(self) -> list[str]:
        return [p for p in self.patterns if p not in self.matched]

    def evaluate_score(self) -> float:
        if not self.patterns:
            return 100.0
        if self.match_all:
            return round(ratio_score(len(self.matched), len(self.patterns)), 2)
        return 100.0 if self.matched else 0.0

    def passed(self) -> bool:
        if self.threshold_score is not None:
            return super().passed()
        return self.evaluate_score() >= 100.0

    def generate_feedback(self) -> str:
        if not self.patterns:
            return "No patterns configured."
        mode = "all" if self.match_all else "any"
        lines = [f"Matched {len(self.matched)}/{len(self.patterns)} patterns (require {mode})."]
        if self.unmatched:
            lines.append(f"✗ Unmatched: {', '.join(self.unmatched)}")
        return "\n".join(lines)

    def metadata(self) -> dict[str, Any]:
        return {
            "patterns": self.patterns,
            "matched_patterns": self.matched,
            "unmatched_patterns": self.unmatched,
            "match_all": self.match_all,
        }
