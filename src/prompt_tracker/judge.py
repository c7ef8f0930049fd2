"""Judge-model clients used by the LLM-based evaluators.

A judge exposes two calls:

- ``call(model, prompt) -> str`` for free-text judgments
- ``call_with_schema(model, prompt, schema) -> dict`` for structured output

``OpenAIJudge`` goes through the openai client, ``AnthropicJudge`` posts to
the Messages API with httpx.  ``MockJudge`` never leaves the process and is
what ``build_judge`` returns unless real calls are enabled in ``Settings``.

Only the HTTP transport retries (rate limits); errors after that propagate
to the evaluator and from there to the caller.
"""

from __future__ import annotations

import json
import logging
import random
import re
from typing import Any, Optional, Protocol

import httpx
import openai
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from prompt_tracker.config import Settings

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MAX_TOKENS = 1024

DEFAULT_SCORE = 50.0

_SCORE_TOKEN = re.compile(r"Score:\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_ANY_NUMBER = re.compile(r"\b(\d+(?:\.\d+)?)\b")


class Judge(Protocol):
    mock: bool

    def call(self, model: str, prompt: str) -> str: ...

    def call_with_schema(self, model: str, prompt: str, schema: dict[str, Any]) -> dict[str, Any]: ...


# ---------------------------------------------------------------------------
# Schemas and parsing
# ---------------------------------------------------------------------------


def evaluation_schema(criteria: Optional[list[str]] = None) -> dict[str, Any]:
    """JSON schema for ``{overall_score, feedback}`` plus optional per-criterion scores."""
    properties: dict[str, Any] = {
        "overall_score": {"type": "number", "description": "Overall score from 0 to 100"},
        "feedback": {"type": "string", "description": "Detailed explanation of the score"},
    }
    required = ["overall_score", "feedback"]
    if criteria:
        properties["criteria_scores"] = {
            "type": "object",
            "properties": {
                c: {"type": "number", "description": f"Score for {c} (0-100)"} for c in criteria
            },
            "required": list(criteria),
            "additionalProperties": False,
        }
        required.append("criteria_scores")
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def parse_score(text: Optional[str]) -> float:
    """Extract a 0-100 score from free-text judge output.

    Tries an explicit ``Score: N`` token (clamped to [0, 100]), then the
    first bare number already in range, then falls back to 50.0.
    """
    if not text:
        return DEFAULT_SCORE
    m = _SCORE_TOKEN.search(text)
    if m:
        return min(max(float(m.group(1)), 0.0), 100.0)
    for raw in _ANY_NUMBER.findall(text):
        value = float(raw)
        if 0 <= value <= 100:
            return value
    return DEFAULT_SCORE


def _schema_criteria(schema: dict[str, Any]) -> list[str]:
    props = schema.get("properties", {}).get("criteria_scores", {}).get("properties", {})
    return list(props)


# ---------------------------------------------------------------------------
# Mock judge
# ---------------------------------------------------------------------------


class MockJudge:
    """Pseudo-random judge for tests and offline runs."""

    mock = True

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def call(self, model: str, prompt: str) -> str:
        score = self._rng.randint(75, 95)
        return (
            f"Score: {score}\n"
            "Feedback: This is a mock evaluation. The assistant message demonstrates "
            "good quality and appropriateness.\n"
        )

    def call_with_schema(self, model: str, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {
            "overall_score": self._rng.randint(0, 100),
            "feedback": (
                "MOCK EVALUATION: This is a simulated evaluation. "
                f"In production, this would be generated by {model}."
            ),
        }
        criteria = _schema_criteria(schema)
        if criteria:
            result["criteria_scores"] = {c: self._rng.randint(0, 100) for c in criteria}
        return result


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


class OpenAIJudge:
    mock = False

    def __init__(self, api_key: str, timeout: int = 60):
        self._client = openai.OpenAI(api_key=api_key, timeout=timeout)

    @retry(
        retry=retry_if_exception_type(openai.RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, max=8),
        reraise=True,
    )
    def _create(self, **kwargs: Any) -> Any:
        return self._client.chat.completions.create(**kwargs)

    def call(self, model: str, prompt: str) -> str:
        response = self._create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
        )
        return (response.choices[0].message.content or "").strip()

    def call_with_schema(self, model: str, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
        response = self._create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "judge_evaluation", "schema": schema, "strict": True},
            },
        )
        content = response.choices[0].message.content or "{}"
        return json.loads(content)


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------


@retry(
    retry=retry_if_result(lambda r: r.status_code == 429),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry_error_callback=lambda state: state.outcome.result(),
)
def _post(url: str, **kwargs: Any) -> httpx.Response:
    return httpx.post(url, **kwargs)


class AnthropicJudge:
    mock = False

    def __init__(self, api_key: str, timeout: int = 60):
        self._api_key = api_key
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def _send(self, body: dict[str, Any]) -> dict[str, Any]:
        resp = _post(ANTHROPIC_URL, headers=self._headers(), json=body, timeout=self._timeout)
        resp.raise_for_status()
        return resp.json()

    def call(self, model: str, prompt: str) -> str:
        data = self._send({
            "model": model,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        })
        parts = [b.get("text", "") for b in data.get("content", []) if b.get("type") == "text"]
        return "\n".join(parts).strip()

    def call_with_schema(self, model: str, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
        # Forced tool use is how the Messages API returns schema-shaped output
        data = self._send({
            "model": model,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
            "tools": [{
                "name": "record_evaluation",
                "description": "Record the evaluation result",
                "input_schema": schema,
            }],
            "tool_choice": {"type": "tool", "name": "record_evaluation"},
        })
        for block in data.get("content", []):
            if block.get("type") == "tool_use":
                return dict(block.get("input") or {})
        raise ValueError(f"Anthropic judge returned no structured output for model {model}")


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


class ProviderJudge:
    """Sends each call to the provider that serves the requested model."""

    mock = False

    def __init__(self, settings: Settings):
        self._settings = settings
        self._openai: Optional[OpenAIJudge] = None
        self._anthropic: Optional[AnthropicJudge] = None

    def _for_model(self, model: str) -> OpenAIJudge | AnthropicJudge:
        if model.startswith("claude"):
            if self._anthropic is None:
                self._anthropic = AnthropicJudge(
                    self._settings.get_anthropic_key(), timeout=self._settings.api_timeout
                )
            return self._anthropic
        if self._openai is None:
            self._openai = OpenAIJudge(
                self._settings.get_openai_key(), timeout=self._settings.api_timeout
            )
        return self._openai

    def call(self, model: str, prompt: str) -> str:
        logger.debug("Judge call model=%s prompt_chars=%d", model, len(prompt))
        return self._for_model(model).call(model, prompt)

    def call_with_schema(self, model: str, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
        logger.debug("Structured judge call model=%s prompt_chars=%d", model, len(prompt))
        return self._for_model(model).call_with_schema(model, prompt, schema)


def build_judge(settings: Settings) -> Judge:
    """Mock judge unless ``settings.use_real_llm`` is set."""
    if not settings.use_real_llm:
        return MockJudge(seed=settings.mock_seed)
    return ProviderJudge(settings)
