"""Judge-model scoring of a single response against free-text instructions."""

from __future__ import annotations

import logging
from functools import cached_property
from typing import Any, Optional

from prompt_tracker.api_types import ApiType
from prompt_tracker.evaluators.base import BaseEvaluator, SINGLE_RESPONSE
from prompt_tracker.judge import DEFAULT_SCORE, evaluation_schema

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTIONS = "Evaluate the quality and appropriateness of the response"

JUDGE_PROMPT_TEMPLATE = """\
You are an expert evaluator of AI-generated responses. Please evaluate the following LLM response.

LLM RESPONSE TO EVALUATE:
{response}

EVALUATION INSTRUCTIONS:
{instructions}
{criteria}
Please provide your evaluation with:
- overall_score: A number from 0 to 100
- feedback: Detailed explanation of your score
{criteria_request}
Your response will be automatically structured as JSON.
"""


def _clamp_score(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        logger.warning("Judge returned a non-numeric overall_score %r", value)
        return DEFAULT_SCORE
    return min(max(score, 0.0), 100.0)


class LlmJudgeEvaluator(BaseEvaluator):
    key = "llm_judge"
    name = "LLM Judge"
    description = "Uses an LLM to evaluate response quality based on custom instructions"
    icon = "robot"
    category = SINGLE_RESPONSE

    DEFAULT_CONFIG = {"custom_instructions": DEFAULT_INSTRUCTIONS, "threshold_score": 70}
    PARAM_SCHEMA = {
        "judge_model": "string",
        "custom_instructions": "string",
        "criteria": "array",
    }
    COMPATIBLE_APIS = frozenset({ApiType.OPENAI_CHAT_COMPLETIONS, ApiType.ANTHROPIC_MESSAGES})

    @property
    def criteria(self) -> list[str]:
        return list(self.config.get("criteria") or [])

    @cached_property
    def judge_prompt(self) -> str:
        criteria = ""
        criteria_request = ""
        if self.criteria:
            criteria = "\nCRITERIA:\n" + "\n".join(f"- {c}" for c in self.criteria) + "\n"
            criteria_request = "- criteria_scores: A score from 0 to 100 for each criterion\n"
        return JUDGE_PROMPT_TEMPLATE.format(
            response=self.response_text,
            instructions=self.config.get("custom_instructions") or DEFAULT_INSTRUCTIONS,
            criteria=criteria,
            criteria_request=criteria_request,
        )

    @cached_property
    def judge_result(self) -> dict[str, Any]:
        """The single judge call for this evaluation."""
        schema = evaluation_schema(self.criteria or None)
        return self.judge.call_with_schema(self.judge_model, self.judge_prompt, schema)

    def evaluate_score(self) -> float:
        return _clamp_score(self.judge_result.get("overall_score"))

    def generate_feedback(self) -> Optional[str]:
        return self.judge_result.get("feedback")

    def metadata(self) -> dict[str, Any]:
        meta = {
            "config": self.config,
            "judge_model": self.judge_model,
            "custom_instructions": self.config.get("custom_instructions"),
            "judge_prompt": self.judge_prompt,
            "raw_judge_response": "MOCK_RESPONSE" if self.mock_mode else self.judge_result,
            "used_structured_output": True,
            "mock_mode": self.mock_mode,
            "threshold_score": self.threshold_score,
        }
        if self.criteria:
            meta["criteria_scores"] = self.judge_result.get("criteria_scores") or {}
        return meta
