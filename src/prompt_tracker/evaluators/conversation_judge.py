"""Per-message judge scoring across a whole conversation."""

from __future__ import annotations

from functools import cached_property
from typing import Any

from prompt_tracker.evaluators.base import BaseEvaluator, CONVERSATIONAL
from prompt_tracker.judge import parse_score
from prompt_tracker.models import ConversationMessage

DEFAULT_EVALUATION_PROMPT = (
    "Evaluate this assistant message for quality and appropriateness. Score 0-100."
)

JUDGE_PROMPT_TEMPLATE = """\
{evaluation_prompt}

CONVERSATION CONTEXT:
{context}

Please provide:
1. A score from 0-100
2. Brief feedback explaining the score

Format your response as:
Score: [number]
Feedback: [your feedback]
"""


class ConversationJudgeEvaluator(BaseEvaluator):
    key = "conversation_judge"
    name = "Conversation Judge"
    description = "Uses an LLM to evaluate each assistant message in a conversation"
    icon = "comments"
    category = CONVERSATIONAL

    DEFAULT_CONFIG = {"evaluation_prompt": DEFAULT_EVALUATION_PROMPT, "threshold_score": 70}
    PARAM_SCHEMA = {"judge_model": "string", "evaluation_prompt": "string"}

    def _check_conversation(self) -> None:
        if not self.messages:
            raise ValueError("ConversationJudgeEvaluator requires at least one message")
        if not self.assistant_messages:
            raise ValueError("ConversationJudgeEvaluator requires at least one assistant message")

    def build_judge_prompt(self, context: list[ConversationMessage]) -> str:
        rendered = "\n\n".join(f"{m.role.upper()}: {m.content}" for m in context)
        return JUDGE_PROMPT_TEMPLATE.format(
            evaluation_prompt=self.config.get("evaluation_prompt") or DEFAULT_EVALUATION_PROMPT,
            context=rendered,
        )

    @cached_property
    def message_scores(self) -> list[dict[str, Any]]:
        """One judge call per assistant message, context up to and including it."""
        self._check_conversation()
        scores = []
        for position, message in enumerate(self.messages):
            if not message.is_assistant:
                continue
            response = self.judge.call(self.judge_model, self.build_judge_prompt(list(self.messages[: position + 1])))
            scores.append({
                "message_index": position,
                "turn": message.turn,
                "score": parse_score(response),
                "feedback": response,
                "content_preview": message.content[:100],
            })
        return scores

    def evaluate_score(self) -> float:
        scores = [s["score"] for s in self.message_scores]
        return round(sum(scores) / len(scores), 2)

    def generate_feedback(self) -> str:
        listing = ", ".join(f"Turn {s['turn']}: {s['score']}" for s in self.message_scores)
        return f"Average conversation score: {self.evaluate_score()}/100. Message scores: {listing}"

    def metadata(self) -> dict[str, Any]:
        return {
            "message_scores": self.message_scores,
            "total_messages": len(self.assistant_messages),
            "threshold": self.threshold_score,
            "judge_model": self.judge_model,
            "mock_mode": self.mock_mode,
        }
