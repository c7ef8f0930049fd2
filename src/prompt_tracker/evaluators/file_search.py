"""Checks that an assistant searched the expected files."""

from __future__ import annotations

from functools import cached_property
from typing import Any

from prompt_tracker.api_types import ApiType
from prompt_tracker.evaluators.base import ASSISTANT, BaseEvaluator, CONVERSATIONAL
from prompt_tracker.evaluators.matching import glob_matches


def file_matches(searched: str, expected: str) -> bool:
    """Exact, case-insensitive, substring, then ``*`` glob."""
    if searched == expected:
        return True
    if searched.lower() == expected.lower():
        return True
    if expected.lower() in searched.lower():
        return True
    return glob_matches(expected, searched)


class FileSearchEvaluator(BaseEvaluator):
    key = "file_search"
    name = "File Search"
    description = "Verifies that the assistant searched within expected files"
    icon = "file-search"
    category = CONVERSATIONAL

    DEFAULT_CONFIG = {"expected_files": [], "require_all": True, "threshold_score": 100}
    PARAM_SCHEMA = {"expected_files": "array", "require_all": "boolean"}
    COMPATIBLE_APIS = frozenset({ApiType.OPENAI_ASSISTANTS})
    COMPATIBLE_TESTABLES = (ASSISTANT,)

    @property
    def expected_files(self) -> list[str]:
        return [str(f).strip() for f in self.config.get("expected_files") or [] if str(f).strip()]

    @cached_property
    def searched_files(self) -> list[str]:
        names: list[str] = []
        for call in self.file_search_results:
            candidates = list(call.get("files") or [])
            candidates += [
                r.get("file_name") or r.get("filename")
                for r in call.get("results") or []
                if isinstance(r, dict)
            ]
            for name in candidates:
                if name and name not in names:
                    names.append(name)
        return names

    @cached_property
    def matched_files(self) -> list[str]:
        return [
            expected
            for expected in self.expected_files
            if any(file_matches(searched, expected) for searched in self.searched_files)
        ]

    @property
    def missing_files(self) -> list[str]:
        return [f for f in self.expected_files if f not in self.matched_files]

    def evaluate_score(self) -> float:
        if not self.expected_files or not self.file_search_results:
            return 0.0
        return round(100.0 * len(self.matched_files) / len(self.expected_files), 2)

    def passed(self) -> bool:
        if not self.expected_files:
            return True
        if self.config.get("require_all"):
            return len(self.matched_files) == len(self.expected_files)
        return bool(self.matched_files)

    def generate_feedback(self) -> str:
        if not self.expected_files:
            return "No expected files configured for evaluation."
        lines = [
            "File Search Evaluation Results:",
            f"Expected files: {', '.join(self.expected_files)}",
            f"Files searched: {', '.join(self.searched_files) or 'None'}",
            f"Matched files: {', '.join(self.matched_files) or 'None'}",
        ]
        if self.missing_files:
            lines.append(f"Missing files: {', '.join(self.missing_files)}")
        if self.passed():
            lines.append("✓ All required files were searched.")
        else:
            lines.append("✗ Some expected files were not searched.")
        return "\n".join(lines)

    def metadata(self) -> dict[str, Any]:
        return {
            "config": self.config,
            "expected_files": self.expected_files,
            "matched_files": self.matched_files,
            "searched_files": self.searched_files,
            "file_search_calls": len(self.file_search_results),
            "require_all": bool(self.config.get("require_all")),
        }
