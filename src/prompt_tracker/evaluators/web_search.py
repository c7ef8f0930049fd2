"""Checks that web search was used, and optionally which queries and sources."""

from __future__ import annotations

from functools import cached_property
from typing import Any

from prompt_tracker.api_types import ApiType
from prompt_tracker.evaluators.base import BaseEvaluator, CONVERSATIONAL
from prompt_tracker.evaluators.matching import ratio_score, url_host

USAGE_WEIGHT = 40
QUERY_WEIGHT = 30
DOMAIN_WEIGHT = 20
CONSULTED_WEIGHT = 5
CITED_WEIGHT = 5


def _dedupe_by_url(sources: list[dict[str, Any]]) -> list[dict[str, Any]]:
    seen = set()
    unique = []
    for source in sources:
        url = source.get("url")
        if url in seen:
            continue
        seen.add(url)
        unique.append(source)
    return unique


def _clean(values: Any) -> list[str]:
    return [str(v).strip() for v in (values or []) if str(v).strip()]


class WebSearchEvaluator(BaseEvaluator):
    key = "web_search"
    name = "Web Search"
    description = "Verifies that the model used web search and optionally checks queries/sources"
    icon = "globe"
    category = CONVERSATIONAL

    DEFAULT_CONFIG = {
        "require_web_search": True,
        "expected_queries": [],
        "require_all_queries": False,
        "expected_domains": [],
        "require_all_domains": False,
        "min_sources_consulted": 0,
        "min_sources_cited": 0,
        "threshold_score": 80,
    }
    PARAM_SCHEMA = {
        "require_web_search": "boolean",
        "expected_queries": "array",
        "require_all_queries": "boolean",
        "expected_domains": "array",
        "require_all_domains": "boolean",
        "min_sources_consulted": "integer",
        "min_sources_cited": "integer",
    }
    COMPATIBLE_APIS = frozenset({ApiType.OPENAI_RESPONSES})

    # --- gathered data ---

    @property
    def expected_queries(self) -> list[str]:
        return _clean(self.config.get("expected_queries"))

    @property
    def expected_domains(self) -> list[str]:
        return _clean(self.config.get("expected_domains"))

    @cached_property
    def all_queries(self) -> list[str]:
        queries: list[str] = []
        for ws in self.web_search_results:
            query = ws.get("query")
            if query and query not in queries:
                queries.append(query)
        return queries

    @cached_property
    def sources_consulted(self) -> list[dict[str, Any]]:
        return _dedupe_by_url([s for ws in self.web_search_results for s in ws.get("sources") or []])

    @cached_property
    def sources_cited(self) -> list[dict[str, Any]]:
        return _dedupe_by_url([c for ws in self.web_search_results for c in ws.get("citations") or []])

    @cached_property
    def matched_queries(self) -> list[str]:
        return [
            expected
            for expected in self.expected_queries
            if any(expected.lower() in q.lower() for q in self.all_queries)
        ]

    @cached_property
    def matched_domains(self) -> list[str]:
        hosts = {url_host(s.get("url")) for s in self.sources_consulted + self.sources_cited}
        hosts.discard("")
        return [
            expected
            for expected in self.expected_domains
            if any(expected.lower() in host for host in hosts)
        ]

    # --- sub-scores, each 0-100 ---

    def _match_score(self, matched: int, expected: int, require_all: bool) -> float:
        if expected == 0:
            return 100.0
        if require_all:
            return ratio_score(matched, expected)
        return 100.0 if matched > 0 else 0.0

    def query_score(self) -> float:
        return self._match_score(
            len(self.matched_queries), len(self.expected_queries), bool(self.config.get("require_all_queries"))
        )

    def domain_score(self) -> float:
        return self._match_score(
            len(self.matched_domains), len(self.expected_domains), bool(self.config.get("require_all_domains"))
        )

    def _minimum(self, name: str) -> int:
        return int(self.config.get(name) or 0)

    def consulted_score(self) -> float:
        return ratio_score(len(self.sources_consulted), self._minimum("min_sources_consulted"))

    def cited_score(self) -> float:
        return ratio_score(len(self.sources_cited), self._minimum("min_sources_cited"))

    def evaluate_score(self) -> float:
        if not self.config.get("require_web_search"):
            return 100.0
        if not self.web_search_results:
            return 0.0
        score = (
            USAGE_WEIGHT
            + self.query_score() * QUERY_WEIGHT / 100
            + self.domain_score() * DOMAIN_WEIGHT / 100
            + self.consulted_score() * CONSULTED_WEIGHT / 100
            + self.cited_score() * CITED_WEIGHT / 100
        )
        return round(score, 2)

    def generate_feedback(self) -> str:
        if not self.web_search_results:
            if self.config.get("require_web_search"):
                return "✗ Web search was not used."
            return "Web search was not used (not required)."

        lines = [
            "Web Search Evaluation Results:",
            f"Searches performed: {len(self.web_search_results)}",
            f"Queries: {', '.join(self.all_queries) if self.all_queries else 'None detected'}",
            f"Sources consulted: {len(self.sources_consulted)} (URLs researched)",
            f"Sources cited: {len(self.sources_cited)} (URLs referenced in response)",
        ]
        if self.expected_queries:
            lines.append(f"Expected queries: {', '.join(self.expected_queries)}")
            lines.append(f"Matched queries: {', '.join(self.matched_queries) or 'None'}")
        if self.expected_domains:
            lines.append(f"Expected domains: {', '.join(self.expected_domains)}")
            lines.append(f"Matched domains: {', '.join(self.matched_domains) or 'None'}")
        if self._minimum("min_sources_consulted") > 0:
            lines.append(f"Min sources consulted required: {self._minimum('min_sources_consulted')}")
        if self._minimum("min_sources_cited") > 0:
            lines.append(f"Min sources cited required: {self._minimum('min_sources_cited')}")
        lines.append("✓ Web search requirements met." if self.passed() else "✗ Some requirements not met.")
        return "\n".join(lines)

    def metadata(self) -> dict[str, Any]:
        return {
            "config": self.config,
            "web_search_count": len(self.web_search_results),
            "queries": self.all_queries,
            "sources_consulted": len(self.sources_consulted),
            "sources_consulted_list": self.sources_consulted,
            "sources_cited": len(self.sources_cited),
            "sources_cited_list": self.sources_cited,
            "matched_queries": self.matched_queries,
            "matched_domains": self.matched_domains,
            "expected_queries": self.expected_queries,
            "expected_domains": self.expected_domains,
        }
