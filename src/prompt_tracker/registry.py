"""Evaluator registry and dispatch.

The registry maps evaluator keys to classes and filters them by testable
type, API and category so callers only ever see evaluators that can run
against a given test.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from prompt_tracker import api_types
from prompt_tracker.api_types import ApiType
from prompt_tracker.evaluators.base import CATEGORIES, CONVERSATIONAL, SINGLE_RESPONSE, BaseEvaluator
from prompt_tracker.evaluators.code_interpreter import CodeInterpreterEvaluator
from prompt_tracker.evaluators.conversation_judge import ConversationJudgeEvaluator
from prompt_tracker.evaluators.exact_match import ExactMatchEvaluator
from prompt_tracker.evaluators.file_search import FileSearchEvaluator
from prompt_tracker.evaluators.format import FormatEvaluator
from prompt_tracker.evaluators.function_call import FunctionCallEvaluator
from prompt_tracker.evaluators.keyword import KeywordEvaluator
from prompt_tracker.evaluators.length import LengthEvaluator
from prompt_tracker.evaluators.llm_judge import LlmJudgeEvaluator
from prompt_tracker.evaluators.pattern_match import PatternMatchEvaluator
from prompt_tracker.evaluators.web_search import WebSearchEvaluator
from prompt_tracker.normalizers.anthropic import AnthropicNormalizer
from prompt_tracker.normalizers.assistants import AssistantsNormalizer
from prompt_tracker.normalizers.base import Normalizer
from prompt_tracker.normalizers.chat_completions import ChatCompletionNormalizer
from prompt_tracker.normalizers.responses import ResponsesNormalizer

logger = logging.getLogger(__name__)

BUILTIN_EVALUATORS: tuple[type[BaseEvaluator], ...] = (
    LengthEvaluator,
    KeywordEvaluator,
    FormatEvaluator,
    ExactMatchEvaluator,
    PatternMatchEvaluator,
    LlmJudgeEvaluator,
    ConversationJudgeEvaluator,
    WebSearchEvaluator,
    CodeInterpreterEvaluator,
    FileSearchEvaluator,
    FunctionCallEvaluator,
)

NORMALIZERS: dict[ApiType, type[Normalizer]] = {
    ApiType.OPENAI_CHAT_COMPLETIONS: ChatCompletionNormalizer,
    ApiType.OPENAI_RESPONSES: ResponsesNormalizer,
    ApiType.OPENAI_ASSISTANTS: AssistantsNormalizer,
    ApiType.ANTHROPIC_MESSAGES: AnthropicNormalizer,
}


def normalizer_for(api: Any) -> Normalizer:
    """Normalizer for an API given as ApiType, string or (provider, api) pair."""
    parsed = api_types.parse(api)
    if parsed is None or parsed not in NORMALIZERS:
        raise ValueError(f"Unknown API type: {api}")
    return NORMALIZERS[parsed]()


class EvaluatorRegistry:
    """Keyed collection of evaluator classes with their display metadata."""

    def __init__(self, evaluators: tuple[type[BaseEvaluator], ...] = BUILTIN_EVALUATORS):
        self._builtins = evaluators
        self._entries: dict[str, dict[str, Any]] = {}
        self.reset()

    def reset(self) -> None:
        """Drop custom registrations and restore the initial evaluators."""
        self._entries = {}
        for cls in self._builtins:
            self.register(cls)

    def register(self, evaluator_class: type[BaseEvaluator], **overrides: Any) -> dict[str, Any]:
        entry = evaluator_class.info()
        entry.update(overrides)
        key = entry.get("key")
        if not key:
            raise ValueError(f"{evaluator_class.__name__} has no registry key")
        if not entry.get("icon"):
            raise ValueError(f"{evaluator_class.__name__} metadata missing required icon")
        if key in self._entries:
            logger.debug("Replacing registered evaluator %s", key)
        self._entries[key] = entry
        return entry

    def unregister(self, key: str) -> Optional[dict[str, Any]]:
        return self._entries.pop(str(key), None)

    # --- lookups ---

    def all(self) -> dict[str, dict[str, Any]]:
        return dict(self._entries)

    def get(self, key: str) -> Optional[dict[str, Any]]:
        return self._entries.get(str(key))

    def exists(self, key: str) -> bool:
        return str(key) in self._entries

    def keys(self) -> list[str]:
        return list(self._entries)

    def _select(self, predicate) -> dict[str, dict[str, Any]]:
        return {k: e for k, e in self._entries.items() if predicate(e["evaluator_class"])}

    def for_testable(self, testable_type: str) -> dict[str, dict[str, Any]]:
        return self._select(lambda cls: cls.compatible_with(testable_type))

    def for_api(self, api: Any) -> dict[str, dict[str, Any]]:
        return self._select(lambda cls: cls.compatible_with_api(api))

    def by_category(self, category: str) -> dict[str, dict[str, Any]]:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown evaluator category: {category}")
        return self._select(lambda cls: cls.category == category)

    def for_test(self, api: Any, single_turn: bool = True) -> dict[str, dict[str, Any]]:
        """Evaluators that fit a test's mode and its testable's API."""
        category = SINGLE_RESPONSE if single_turn else CONVERSATIONAL
        return self._select(lambda cls: cls.category == category and cls.compatible_with_api(api))

    # --- construction ---

    def build(self, key: str, data: Any, config: Optional[dict[str, Any]] = None, **kwargs: Any) -> BaseEvaluator:
        entry = self.get(key)
        if entry is None:
            raise ValueError(f"Evaluator '{key}' not found in registry")
        return entry["evaluator_class"](data, config or {}, **kwargs)

    def normalizer_for(self, api: Any) -> Normalizer:
        return normalizer_for(api)
