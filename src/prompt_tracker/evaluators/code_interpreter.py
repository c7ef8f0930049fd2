"""Checks code interpreter usage: execution, success, language, output, files."""

from __future__ import annotations

from functools import cached_property
from typing import Any

from prompt_tracker.api_types import ApiType
from prompt_tracker.evaluators.base import BaseEvaluator, CONVERSATIONAL
from prompt_tracker.evaluators.matching import pattern_matches, ratio_score

EXECUTION_WEIGHT = 30
SUCCESS_WEIGHT = 20
LANGUAGE_WEIGHT = 15
PATTERN_WEIGHT = 20
FILES_WEIGHT = 10
LINES_WEIGHT = 5


class CodeInterpreterEvaluator(BaseEvaluator):
    key = "code_interpreter"
    name = "Code Interpreter"
    description = "Verifies that the model executed code and optionally checks output/files"
    icon = "code"
    category = CONVERSATIONAL

    DEFAULT_CONFIG = {
        "require_code_execution": True,
        "expected_language": None,
        "require_successful_execution": True,
        "output_patterns": [],
        "require_all_patterns": False,
        "expect_files_created": False,
        "min_code_lines": 0,
        "threshold_score": 80,
    }
    PARAM_SCHEMA = {
        "require_code_execution": "boolean",
        "expected_language": "string",
        "require_successful_execution": "boolean",
        "output_patterns": "array",
        "require_all_patterns": "boolean",
        "expect_files_created": "boolean",
        "min_code_lines": "integer",
    }
    COMPATIBLE_APIS = frozenset({ApiType.OPENAI_RESPONSES, ApiType.OPENAI_ASSISTANTS})

    @property
    def output_patterns(self) -> list[str]:
        return [str(p).strip() for p in self.config.get("output_patterns") or [] if str(p).strip()]

    @property
    def expected_language(self) -> str:
        return (self.config.get("expected_language") or "").strip().lower()

    @cached_property
    def languages(self) -> list[str]:
        found: list[str] = []
        for ci in self.code_interpreter_results:
            lang = ci.get("language")
            if lang and lang not in found:
                found.append(lang)
        return found

    @cached_property
    def all_output(self) -> str:
        return "\n".join(str(ci["output"]) for ci in self.code_interpreter_results if ci.get("output"))

    @cached_property
    def files_created(self) -> list[Any]:
        return [f for ci in self.code_interpreter_results for f in ci.get("files_created") or []]

    @cached_property
    def successful_executions(self) -> list[dict[str, Any]]:
        return [
            ci for ci in self.code_interpreter_results
            if ci.get("status") in (None, "completed") and ci.get("error") is None
        ]

    @cached_property
    def total_code_lines(self) -> int:
        return sum(
            len([line for line in str(ci["code"]).splitlines() if line.strip()])
            for ci in self.code_interpreter_results
            if ci.get("code")
        )

    @cached_property
    def matched_patterns(self) -> list[str]:
        return [p for p in self.output_patterns if pattern_matches(p, self.all_output, ignore_case=True)]

    def all_successful(self) -> bool:
        return len(self.successful_executions) == len(self.code_interpreter_results)

    def language_matches(self) -> bool:
        if not self.expected_language:
            return True
        return any(lang.lower() == self.expected_language for lang in self.languages)

    def pattern_score(self) -> float:
        if not self.output_patterns:
            return 100.0
        matched, total = len(self.matched_patterns), len(self.output_patterns)
        if self.config.get("require_all_patterns"):
            return ratio_score(matched, total)
        return 100.0 if matched else 0.0

    def meets_min_code_lines(self) -> bool:
        return self.total_code_lines >= int(self.config.get("min_code_lines") or 0)

    def evaluate_score(self) -> float:
        if not self.config.get("require_code_execution"):
            return 100.0
        if not self.code_interpreter_results:
            return 0.0

        score = float(EXECUTION_WEIGHT)
        if not self.config.get("require_successful_execution") or self.all_successful():
            score += SUCCESS_WEIGHT
        if self.language_matches():
            score += LANGUAGE_WEIGHT
        score += self.pattern_score() * PATTERN_WEIGHT / 100
        if not self.config.get("expect_files_created") or self.files_created:
            score += FILES_WEIGHT
        if self.meets_min_code_lines():
            score += LINES_WEIGHT
        return round(score, 2)

    def generate_feedback(self) -> str:
        if not self.code_interpreter_results:
            if self.config.get("require_code_execution"):
                return "✗ Code interpreter was not used."
            return "Code interpreter was not used (not required)."

        total = len(self.code_interpreter_results)
        lines = [
            "Code Interpreter Evaluation Results:",
            f"Executions: {total}",
            f"Languages: {', '.join(self.languages) or 'Unknown'}",
            f"Total code lines: {self.total_code_lines}",
            f"Successful: {len(self.successful_executions)}/{total}",
        ]
        if self.expected_language:
            status = "matched" if self.language_matches() else "not matched"
            lines.append(f"Expected language: {self.expected_language} ({status})")
        if self.output_patterns:
            lines.append(f"Output patterns matched: {len(self.matched_patterns)}/{len(self.output_patterns)}")
        if self.config.get("expect_files_created"):
            lines.append(f"Files created: {len(self.files_created)}")
        lines.append("✓ Code interpreter requirements met." if self.passed() else "✗ Some requirements not met.")
        return "\n".join(lines)

    def metadata(self) -> dict[str, Any]:
        return {
            "config": self.config,
            "execution_count": len(self.code_interpreter_results),
            "successful_count": len(self.successful_executions),
            "languages": self.languages,
            "total_code_lines": self.total_code_lines,
            "files_created": self.files_created,
            "matched_patterns": self.matched_patterns,
            "expected_language": self.config.get("expected_language"),
            "output_patterns": self.output_patterns,
        }
