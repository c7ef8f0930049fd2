"""Data models for normalized LLM output and evaluation results."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

ROLES = ("user", "assistant", "system", "tool")
UNKNOWN_ROLE = "unknown"


@dataclass(frozen=True)
class ToolCall:
    """A function/tool call requested by the model."""

    id: Optional[str] = None
    type: str = "function"
    function_name: Optional[str] = None
    arguments: Any = field(default_factory=dict)  # dict, or raw string if unparseable

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ToolCall:
        function = raw.get("function") or {}
        return cls(
            id=raw.get("id"),
            type=raw.get("type") or "function",
            function_name=raw.get("function_name") or raw.get("name") or function.get("name"),
            arguments=raw.get("arguments", function.get("arguments", {})),
        )


@dataclass(frozen=True)
class ConversationMessage:
    """One message in a conversation."""

    role: str
    content: str = ""
    turn: int = 1
    usage: Optional[dict[str, Any]] = None
    tool_calls: tuple[ToolCall, ...] = ()
    file_search_results: tuple[dict[str, Any], ...] = ()
    web_search_results: tuple[dict[str, Any], ...] = ()
    code_interpreter_results: tuple[dict[str, Any], ...] = ()
    api_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_user(self) -> bool:
        return self.role == "user"

    @property
    def is_assistant(self) -> bool:
        return self.role == "assistant"

    @property
    def is_system(self) -> bool:
        return self.role == "system"

    @property
    def is_tool(self) -> bool:
        return self.role == "tool"

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "turn": self.turn,
            "usage": self.usage,
            "tool_calls": [tc.to_dict() for tc in self.tool_calls],
            "file_search_results": list(self.file_search_results),
            "web_search_results": list(self.web_search_results),
            "code_interpreter_results": list(self.code_interpreter_results),
            "api_metadata": dict(self.api_metadata),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any], turn: int = 1) -> ConversationMessage:
        """Build a message from a plain dict, keeping an explicit positive turn."""
        explicit_turn = raw.get("turn")
        if not isinstance(explicit_turn, int) or isinstance(explicit_turn, bool) or explicit_turn < 1:
            explicit_turn = turn
        content = raw.get("content")
        return cls(
            role=raw.get("role") or UNKNOWN_ROLE,
            content=content if isinstance(content, str) else ("" if content is None else str(content)),
            turn=explicit_turn,
            usage=raw.get("usage"),
            tool_calls=tuple(
                tc if isinstance(tc, ToolCall) else ToolCall.from_dict(tc)
                for tc in (raw.get("tool_calls") or [])
                if isinstance(tc, (ToolCall, dict))
            ),
            file_search_results=tuple(raw.get("file_search_results") or ()),
            web_search_results=tuple(raw.get("web_search_results") or ()),
            code_interpreter_results=tuple(raw.get("code_interpreter_results") or ()),
            api_metadata=dict(raw.get("api_metadata") or {}),
        )


@dataclass(frozen=True)
class NormalizedResponse:
    """A single LLM turn with no conversation context."""

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "tool_calls": [tc.to_dict() for tc in self.tool_calls],
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class NormalizedConversation:
    """The unified shape every evaluator reads from."""

    messages: tuple[ConversationMessage, ...] = ()
    tool_usage: tuple[dict[str, Any], ...] = ()
    web_search_results: tuple[dict[str, Any], ...] = ()
    code_interpreter_results: tuple[dict[str, Any], ...] = ()
    file_search_results: tuple[dict[str, Any], ...] = ()
    run_steps: Optional[tuple[dict[str, Any], ...]] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "tool_usage": list(self.tool_usage),
            "web_search_results": list(self.web_search_results),
            "code_interpreter_results": list(self.code_interpreter_results),
            "file_search_results": list(self.file_search_results),
            "run_steps": None if self.run_steps is None else list(self.run_steps),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class EvaluationResult:
    """Output of one evaluator invocation."""

    score: float
    passed: bool
    feedback: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    evaluator_type: str = ""
    score_min: int = 0
    score_max: int = 100

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class EvaluationMode(str, enum.Enum):
    SCORED = "scored"
    BINARY = "binary"


@dataclass
class EvaluatorConfig:
    """Which evaluator runs for a prompt version or test, and with what parameters."""

    evaluator_key: str
    config: dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    evaluation_mode: EvaluationMode = EvaluationMode.SCORED
    threshold: Optional[float] = None

    def __post_init__(self):
        self.evaluation_mode = EvaluationMode(self.evaluation_mode)
        if self.threshold is not None and not 0 <= self.threshold <= 100:
            raise ValueError(f"threshold must be between 0 and 100, got {self.threshold}")

    def merged_config(self, defaults: dict[str, Any] | None = None) -> dict[str, Any]:
        """Class defaults overlaid with the explicit config."""
        merged = dict(defaults or {})
        merged.update(self.config)
        if self.threshold is not None:
            merged["threshold_score"] = self.threshold
        return merged

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> EvaluatorConfig:
        key = raw.get("evaluator_key") or raw.get("key")
        if not key:
            raise ValueError(f"evaluator config is missing 'evaluator_key': {raw!r}")
        return cls(
            evaluator_key=key,
            config=dict(raw.get("config") or {}),
            enabled=raw.get("enabled", True),
            evaluation_mode=raw.get("evaluation_mode", EvaluationMode.SCORED),
            threshold=raw.get("threshold"),
        )
