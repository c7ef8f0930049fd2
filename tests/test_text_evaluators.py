"""Tests for the text-only evaluators."""

import pytest

from prompt_tracker.config import Settings
from prompt_tracker.evaluators.exact_match import ExactMatchEvaluator
from prompt_tracker.evaluators.format import FormatEvaluator, extract_json
from prompt_tracker.evaluators.keyword import KeywordEvaluator
from prompt_tracker.evaluators.length import LengthEvaluator
from prompt_tracker.evaluators.matching import glob_matches, pattern_matches, url_host
from prompt_tracker.evaluators.pattern_match import PatternMatchEvaluator


@pytest.fixture
def settings():
    return Settings()


class TestMatching:
    def test_pattern_invalid_regex_falls_back(self):
        assert pattern_matches("price (usd", "The price (usd) is 5")
        assert not pattern_matches("price (eur", "The price (usd) is 5")

    def test_pattern_ignore_case(self):
        assert pattern_matches("hello", "HELLO there", ignore_case=True)

    def test_url_host(self):
        assert url_host("https://Docs.Python.org/3/") == "docs.python.org"
        assert url_host(None) == ""

    def test_glob(self):
        assert glob_matches("*.PDF", "report.pdf")
        assert not glob_matches("report.pdf", "report.pdf")
        assert not glob_matches("*.md", "notes.txt")
        assert glob_matches("policy*", "company_policy_2024.pdf")


class TestLengthEvaluator:
    def test_within_bounds(self, settings):
        ev = LengthEvaluator("a" * 50, {"min_length": 10, "max_length": 100}, settings=settings)
        assert ev.evaluate_score() == 100.0
        assert ev.passed()

    def test_too_short(self, settings):
        ev = LengthEvaluator("a" * 5, {"min_length": 10}, settings=settings)
        assert ev.evaluate_score() == 50.0
        assert not ev.passed()
        assert "too short" in ev.generate_feedback()

    def test_too_long(self, settings):
        ev = LengthEvaluator("a" * 200, {"max_length": "100"}, settings=settings)
        assert ev.evaluate_score() == 50.0
        assert "too long" in ev.generate_feedback()

    def test_threshold_overrides_bounds(self, settings):
        ev = LengthEvaluator("a" * 9, {"min_length": 10, "threshold_score": 80}, settings=settings)
        assert ev.passed()


class TestKeywordEvaluator:
    def test_all_required_found(self, settings):
        ev = KeywordEvaluator("Python and Ruby", {"required_keywords": ["python", "ruby"]}, settings=settings)
        assert ev.evaluate_score() == 100.0
        assert ev.passed()

    def test_partial(self, settings):
        ev = KeywordEvaluator("Python only", {"required_keywords": "python\nruby"}, settings=settings)
        assert ev.evaluate_score() == 50.0
        assert ev.missing_required == ["ruby"]
        assert "✗ Missing: ruby" in ev.generate_feedback()

    def test_forbidden_zeroes(self, settings):
        ev = KeywordEvaluator(
            "Python is terrible",
            {"required_keywords": ["python"], "forbidden_keywords": ["terrible"]},
            settings=settings,
        )
        assert ev.evaluate_score() == 0.0
        assert ev.metadata()["forbidden_found"] == ["terrible"]

    def test_case_sensitive(self, settings):
        ev = KeywordEvaluator("python", {"required_keywords": ["Python"], "case_sensitive": "true"}, settings=settings)
        assert ev.evaluate_score() == 0.0


class TestFormatEvaluator:
    def test_extract_json_fenced(self):
        assert extract_json('Here:\n```json\n{"a": 1}\n```') == {"a": 1}

    def test_valid_json_with_keys(self, settings):
        ev = FormatEvaluator('{"name": "x", "age": 3}', {"required_keys": ["name", "age"]}, settings=settings)
        assert ev.evaluate_score() == 100.0
        assert ev.generate_feedback().startswith("✓")

    def test_missing_key(self, settings):
        ev = FormatEvaluator('{"name": "x"}', {"required_keys": ["name", "age"]}, settings=settings)
        assert ev.evaluate_score() == 50.0
        assert ev.missing_keys == ["age"]

    def test_invalid_json(self, settings):
        ev = FormatEvaluator("not json at all", {}, settings=settings)
        assert ev.evaluate_score() == 0.0
        assert ev.generate_feedback() == "✗ Response is not valid JSON."

    def test_strict_rejects_embedded(self, settings):
        ev = FormatEvaluator('Result: {"a": 1}', {"strict": True}, settings=settings)
        assert ev.evaluate_score() == 0.0

    def test_markdown(self, settings):
        ev = FormatEvaluator("# Title\n\n- item", {"expected_format": "markdown"}, settings=settings)
        assert ev.evaluate_score() == 100.0

    def test_plain(self, settings):
        assert FormatEvaluator("Just words.", {"expected_format": "plain"}, settings=settings).evaluate_score() == 100.0
        assert FormatEvaluator("**bold**", {"expected_format": "plain"}, settings=settings).evaluate_score() == 0.0


class TestExactMatchEvaluator:
    def test_match_with_trim(self, settings):
        ev = ExactMatchEvaluator("  Paris \n", {"expected_text": "Paris"}, settings=settings)
        assert ev.evaluate_score() == 100.0
        assert ev.passed()

    def test_case_sensitive_default(self, settings):
        ev = ExactMatchEvaluator("paris", {"expected_text": "Paris"}, settings=settings)
        assert ev.evaluate_score() == 0.0

    def test_case_insensitive(self, settings):
        ev = ExactMatchEvaluator("paris", {"expected_output": "Paris", "case_sensitive": "false"}, settings=settings)
        assert ev.passed()


class TestPatternMatchEvaluator:
    def test_match_all(self, settings):
        ev = PatternMatchEvaluator(
            "Order #123 shipped", {"patterns": [r"#\d+", "shipped", "delivered"]}, settings=settings
        )
        assert ev.evaluate_score() == pytest.approx(66.67)
        assert not ev.passed()
        assert ev.unmatched == ["delivered"]

    def test_match_any(self, settings):
        ev = PatternMatchEvaluator(
            "Order shipped", {"patterns": ["delivered", "shipped"], "require_all": False}, settings=settings
        )
        assert ev.evaluate_score() == 100.0
        assert ev.passed()

    def test_invalid_regex_substring(self, settings):
        ev = PatternMatchEvaluator("cost (usd) 5", {"patterns": ["(usd"]}, settings=settings)
        assert ev.evaluate_score() == 100.0

    def test_no_patterns(self, settings):
        assert PatternMatchEvaluator("x", {}, settings=settings).evaluate_score() == 100.0
