"""Checks that expected functions were called, optionally with expected arguments."""

from __future__ import annotations

from functools import cached_property
from typing import Any

from prompt_tracker.evaluators.base import BaseEvaluator, CONVERSATIONAL
from prompt_tracker.normalizers.base import parse_arguments


def arguments_match(expected: Any, actual: Any) -> bool:
    """Every expected key is present in *actual* with an equal string value.

    Nested dicts are compared recursively.
    """
    if not expected:
        return True
    if not isinstance(actual, dict) or not isinstance(expected, dict):
        return False
    for key, expected_value in expected.items():
        actual_value = actual.get(str(key))
        if isinstance(expected_value, dict) and isinstance(actual_value, dict):
            if not arguments_match(expected_value, actual_value):
                return False
        elif str(actual_value) != str(expected_value):
            return False
    return True


class FunctionCallEvaluator(BaseEvaluator):
    key = "function_call"
    name = "Function Call"
    description = "Checks if the assistant called expected functions during the conversation"
    icon = "gear"
    category = CONVERSATIONAL

    DEFAULT_CONFIG = {
        "expected_functions": [],
        "require_all": True,
        "check_arguments": False,
        "expected_arguments": {},
        "threshold_score": 80,
    }
    PARAM_SCHEMA = {
        "expected_functions": "array",
        "require_all": "boolean",
        "check_arguments": "boolean",
        "expected_arguments": "json",
    }

    @property
    def expected_functions(self) -> list[str]:
        return [str(f) for f in self.config.get("expected_functions") or []]

    @property
    def expected_arguments(self) -> dict[str, Any]:
        args = self.config.get("expected_arguments")
        return {str(k): v for k, v in args.items()} if isinstance(args, dict) else {}

    @cached_property
    def tool_calls(self) -> list[dict[str, Any]]:
        """Every call made by an assistant, falling back to tool usage."""
        calls = [
            {"id": tc.id, "function_name": tc.function_name, "arguments": parse_arguments(tc.arguments)}
            for m in self.messages
            for tc in m.tool_calls
        ]
        if calls:
            return calls
        return [
            {
                "id": u.get("call_id"),
                "function_name": u.get("function_name"),
                "arguments": parse_arguments(u.get("arguments")),
            }
            for u in self.tool_usage
        ]

    @cached_property
    def called_functions(self) -> list[str]:
        names: list[str] = []
        for tc in self.tool_calls:
            name = tc["function_name"]
            if name and name not in names:
                names.append(name)
        return names

    def _calls_to(self, function_name: str) -> list[Any]:
        return [tc["arguments"] or {} for tc in self.tool_calls if tc["function_name"] == function_name]

    def _arguments_ok(self, function_name: str) -> bool:
        expected = self.expected_arguments.get(function_name)
        if not expected:
            return True
        return any(arguments_match(expected, actual) for actual in self._calls_to(function_name))

    @cached_property
    def matched_functions(self) -> list[str]:
        matched = [f for f in self.expected_functions if f in self.called_functions]
        if self.config.get("check_arguments"):
            matched = [f for f in matched if self._arguments_ok(f)]
        return matched

    @cached_property
    def argument_failures(self) -> list[str]:
        if not self.config.get("check_arguments"):
            return []
        failures = []
        for name in self.expected_functions:
            if name not in self.called_functions or self._arguments_ok(name):
                continue
            calls = self._calls_to(name)
            got = calls[0] if calls else "no args"
            failures.append(f"{name}: expected {self.expected_arguments[name]!r}, got {got!r}")
        return failures

    def evaluate_score(self) -> float:
        if not self.expected_functions:
            return 100.0
        if self.config.get("require_all"):
            return float(round(100.0 * len(self.matched_functions) / len(self.expected_functions)))
        return 100.0 if self.matched_functions else 0.0

    def generate_feedback(self) -> str:
        expected = self.expected_functions
        called = ", ".join(self.called_functions) or "none"
        if not expected:
            return "No expected functions specified - evaluation passed by default."

        if self.config.get("require_all"):
            missing = [f for f in expected if f not in self.matched_functions]
            if not missing:
                return f"✓ All expected functions were called: {', '.join(expected)}"
            feedback = f"✗ Missing function calls: {', '.join(missing)}. Called: {called}"
        else:
            if self.matched_functions:
                return f"✓ Expected function(s) called: {', '.join(self.matched_functions)}"
            feedback = (
                "✗ None of the expected functions were called. "
                f"Expected one of: {', '.join(expected)}. Called: {called}"
            )
        if self.argument_failures:
            feedback += f". Argument mismatches: {'; '.join(self.argument_failures)}"
        return feedback

    def metadata(self) -> dict[str, Any]:
        return {
            "config": self.config,
            "expected_functions": self.expected_functions,
            "called_functions": self.called_functions,
            "matched_functions": self.matched_functions,
            "require_all": bool(self.config.get("require_all")),
            "check_arguments": bool(self.config.get("check_arguments")),
            "argument_failures": self.argument_failures,
            "threshold": self.threshold_score,
            "all_tool_calls": self.tool_calls,
        }
