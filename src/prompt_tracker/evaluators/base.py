"""Base evaluator.

Every evaluator is constructed as ``Evaluator(data, config)`` where *data*
is plain text, a single-response dict/``NormalizedResponse``, or a
conversation dict/``NormalizedConversation``.  The base class coerces all
of these into a ``NormalizedConversation`` so subclasses only ever read
``self.messages``, ``self.response_text`` and the tool result accessors.

Subclasses implement ``evaluate_score`` and usually ``generate_feedback``
and ``metadata``; ``evaluate`` assembles the ``EvaluationResult``.
"""

from __future__ import annotations

import json
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol

from prompt_tracker import api_types
from prompt_tracker.config import Settings
from prompt_tracker.judge import Judge, build_judge
from prompt_tracker.models import (
    ConversationMessage,
    EvaluationResult,
    NormalizedConversation,
    NormalizedResponse,
    ToolCall,
)
from prompt_tracker.normalizers.base import (
    as_dict,
    assign_turns,
    dicts,
    resolve_file_search_results,
    text_conversation,
    usage_from_tool_calls,
)

logger = logging.getLogger(__name__)

SINGLE_RESPONSE = "single_response"
CONVERSATIONAL = "conversational"
CATEGORIES = (SINGLE_RESPONSE, CONVERSATIONAL)

PROMPT_VERSION = "prompt_version"
ASSISTANT = "assistant"
TESTABLE_TYPES = (PROMPT_VERSION, ASSISTANT)

ALL_APIS = "all"

PARAM_TYPES = ("integer", "number", "boolean", "array", "json", "string", "symbol")

# accepted by every evaluator on top of its own PARAM_SCHEMA
COMMON_PARAM_SCHEMA = {"threshold_score": "number"}

DEFAULT_PASS_RATIO = 0.8


class EvaluationStore(Protocol):
    def save(self, result: EvaluationResult) -> None: ...


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------


def _message_from(raw: Any, turn: int) -> ConversationMessage:
    if isinstance(raw, ConversationMessage):
        return raw
    return ConversationMessage.from_dict(as_dict(raw), turn=turn)


def _from_single_response(text: str, tool_calls: list[ToolCall], metadata: dict) -> NormalizedConversation:
    message = ConversationMessage(role="assistant", content=text, turn=1, tool_calls=tuple(tool_calls))
    return NormalizedConversation(
        messages=(message,),
        tool_usage=tuple(usage_from_tool_calls(tool_calls)),
        metadata=dict(metadata),
    )


def coerce_conversation(data: Any) -> NormalizedConversation:
    """Bring any accepted evaluator input into the conversation shape.

    - ``NormalizedConversation``: used as is
    - ``NormalizedResponse`` or a dict with ``text`` and no ``messages``:
      one assistant message at turn 1, its tool calls become tool usage
    - any other dict: read as the unified conversation format
    - anything else: its string form as one assistant message at turn 1
    """
    if isinstance(data, NormalizedConversation):
        return data
    if isinstance(data, NormalizedResponse):
        return _from_single_response(data.text, list(data.tool_calls), data.metadata)
    if isinstance(data, dict):
        if "text" in data and "messages" not in data:
            text = data.get("text")
            calls = [
                tc if isinstance(tc, ToolCall) else ToolCall.from_dict(tc)
                for tc in (data.get("tool_calls") or [])
                if isinstance(tc, (ToolCall, dict))
            ]
            return _from_single_response(
                "" if text is None else str(text), calls, as_dict(data.get("metadata"))
            )
        raw_messages = [m for m in (data.get("messages") or []) if isinstance(m, (dict, ConversationMessage))]
        turns = assign_turns(m.to_dict() if isinstance(m, ConversationMessage) else m for m in raw_messages)
        run_steps = data.get("run_steps")
        return NormalizedConversation(
            messages=tuple(_message_from(m, t) for m, t in zip(raw_messages, turns)),
            tool_usage=tuple(dicts(data.get("tool_usage"))),
            web_search_results=tuple(dicts(data.get("web_search_results"))),
            code_interpreter_results=tuple(dicts(data.get("code_interpreter_results"))),
            file_search_results=tuple(resolve_file_search_results(data)),
            run_steps=tuple(dicts(run_steps)) if run_steps is not None else None,
            metadata=as_dict(data.get("metadata")),
        )
    return text_conversation("" if data is None else str(data))


# ---------------------------------------------------------------------------
# Config coercion
# ---------------------------------------------------------------------------


def convert_param(value: Any, param_type: str) -> Any:
    """Coerce a form/JSON config value to its declared type."""
    if param_type == "integer":
        if value is None or value == "":
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            logger.warning("Ignoring non-integer config value %r", value)
            return None
    if param_type == "number":
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric config value %r", value)
            return None
        if not math.isfinite(number):
            logger.warning("Ignoring non-finite config value %r", value)
            return None
        return number
    if param_type == "boolean":
        return value in ("true", True, "1", 1)
    if param_type == "array":
        if isinstance(value, str):
            return [line.strip() for line in value.split("\n") if line.strip()]
        if isinstance(value, (list, tuple)):
            return [v for v in value if v is not None and str(v).strip()]
        return []
    if param_type == "json":
        if isinstance(value, str):
            if not value.strip():
                return None
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                logger.warning("Failed to parse JSON config value: %s", e)
                return None
        return value
    if param_type in ("string", "symbol"):
        return None if value is None else str(value)
    return value


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


class BaseEvaluator(ABC):
    """Abstract evaluator over normalized conversation data."""

    key: str = ""
    name: str = ""
    description: str = ""
    icon: str = ""
    category: str = SINGLE_RESPONSE

    DEFAULT_CONFIG: dict[str, Any] = {}
    PARAM_SCHEMA: dict[str, str] = {}
    COMPATIBLE_APIS: frozenset = frozenset({ALL_APIS})
    COMPATIBLE_TESTABLES: tuple[str, ...] = (PROMPT_VERSION, ASSISTANT)

    def __init__(
        self,
        data: Any,
        config: Optional[dict[str, Any]] = None,
        *,
        settings: Optional[Settings] = None,
        judge: Optional[Judge] = None,
    ):
        self.raw_data = data
        self.data = coerce_conversation(data)
        self.config: dict[str, Any] = {**self.DEFAULT_CONFIG, **self.process_params(config or {})}
        self.settings = settings if settings is not None else Settings.from_env()
        self._judge = judge

    # --- params ---

    @classmethod
    def process_params(cls, params: dict[str, Any]) -> dict[str, Any]:
        """Coerce known keys per PARAM_SCHEMA; unknown keys pass through."""
        schema = {**COMMON_PARAM_SCHEMA, **cls.PARAM_SCHEMA}
        processed = {}
        for key, value in params.items():
            param_type = schema.get(key)
            processed[key] = convert_param(value, param_type) if param_type else value
        # an unusable threshold falls back to the evaluator default
        if processed.get("threshold_score", 0) is None:
            del processed["threshold_score"]
        return processed

    # --- registry metadata ---

    @classmethod
    def info(cls) -> dict[str, Any]:
        return {
            "key": cls.key,
            "name": cls.name,
            "description": cls.description,
            "icon": cls.icon,
            "category": cls.category,
            "default_config": dict(cls.DEFAULT_CONFIG),
            "evaluator_class": cls,
        }

    @classmethod
    def compatible_with_api(cls, api: Any) -> bool:
        if ALL_APIS in cls.COMPATIBLE_APIS:
            return True
        parsed = api_types.parse(api)
        return parsed is not None and parsed in cls.COMPATIBLE_APIS

    @classmethod
    def compatible_with(cls, testable_type: Any) -> bool:
        if not cls.COMPATIBLE_TESTABLES:
            raise NotImplementedError(f"{cls.__name__} must declare COMPATIBLE_TESTABLES")
        return str(testable_type).strip().lower() in cls.COMPATIBLE_TESTABLES

    # --- judge ---

    @property
    def judge(self) -> Judge:
        if self._judge is None:
            self._judge = build_judge(self.settings)
        return self._judge

    @property
    def judge_model(self) -> str:
        return self.config.get("judge_model") or self.settings.judge_model

    @property
    def mock_mode(self) -> bool:
        return bool(getattr(self.judge, "mock", False))

    # --- conversation accessors ---

    @property
    def messages(self) -> tuple[ConversationMessage, ...]:
        return self.data.messages

    @property
    def last_message(self) -> Optional[ConversationMessage]:
        return self.messages[-1] if self.messages else None

    @property
    def response_text(self) -> str:
        for message in reversed(self.messages):
            if message.is_assistant:
                return message.content or ""
        return ""

    @property
    def assistant_messages(self) -> list[ConversationMessage]:
        return [m for m in self.messages if m.is_assistant]

    @property
    def user_messages(self) -> list[ConversationMessage]:
        return [m for m in self.messages if m.is_user]

    @property
    def tool_usage(self) -> tuple[dict[str, Any], ...]:
        return self.data.tool_usage

    @property
    def web_search_results(self) -> tuple[dict[str, Any], ...]:
        return self.data.web_search_results

    @property
    def code_interpreter_results(self) -> tuple[dict[str, Any], ...]:
        return self.data.code_interpreter_results

    @property
    def file_search_results(self) -> tuple[dict[str, Any], ...]:
        return self.data.file_search_results

    @property
    def run_steps(self) -> Optional[tuple[dict[str, Any], ...]]:
        return self.data.run_steps

    @property
    def run_steps_available(self) -> bool:
        return bool(self.run_steps)

    @property
    def response_metadata(self) -> dict[str, Any]:
        return self.data.metadata

    # --- scoring contract ---

    @abstractmethod
    def evaluate_score(self) -> float:
        """Score in [0, 100]."""
        ...

    def generate_feedback(self) -> Optional[str]:
        return None

    @property
    def threshold_score(self) -> Optional[float]:
        value = self.config.get("threshold_score")
        if value is None or value == "":
            return None
        return float(value)

    def passed(self) -> bool:
        threshold = self.threshold_score
        if threshold is not None:
            return self.evaluate_score() >= threshold
        return self.evaluate_score() / 100.0 >= DEFAULT_PASS_RATIO

    def metadata(self) -> dict[str, Any]:
        return {"config": self.config}

    def evaluate(self, store: Optional[EvaluationStore] = None) -> EvaluationResult:
        result = EvaluationResult(
            score=self.evaluate_score(),
            passed=self.passed(),
            feedback=self.generate_feedback(),
            metadata=self.metadata(),
            evaluator_type=type(self).__name__,
        )
        logger.debug("%s scored %s (passed=%s)", result.evaluator_type, result.score, result.passed)
        if store is not None:
            store.save(result)
        return result
