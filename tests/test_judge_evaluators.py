"""Tests for the judge-backed evaluators."""

import pytest

from prompt_tracker.config import Settings
from prompt_tracker.evaluators.conversation_judge import ConversationJudgeEvaluator
from prompt_tracker.evaluators.llm_judge import LlmJudgeEvaluator
from prompt_tracker.judge import MockJudge


class FakeJudge:
    """Records calls and replays canned answers."""

    mock = False

    def __init__(self, replies=(), structured=None):
        self.replies = list(replies)
        self.structured = structured or {"overall_score": 85, "feedback": "Clear and accurate."}
        self.calls = []
        self.schema_calls = []

    def call(self, model, prompt):
        self.calls.append((model, prompt))
        return self.replies.pop(0)

    def call_with_schema(self, model, prompt, schema):
        self.schema_calls.append((model, prompt, schema))
        return dict(self.structured)


class FailingJudge:
    mock = False

    def call(self, model, prompt):
        raise RuntimeError("judge unreachable")

    def call_with_schema(self, model, prompt, schema):
        raise RuntimeError("judge unreachable")


@pytest.fixture
def settings():
    return Settings()


def _three_turns():
    return {"messages": [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello! How can I help?"},
        {"role": "user", "content": "Recommend a book"},
        {"role": "assistant", "content": "Try Dune."},
        {"role": "user", "content": "Why?"},
        {"role": "assistant", "content": "It is a classic."},
    ]}


class TestLlmJudgeEvaluator:
    def test_single_judge_call(self, settings):
        judge = FakeJudge()
        ev = LlmJudgeEvaluator("The capital of France is Paris.", {}, settings=settings, judge=judge)
        result = ev.evaluate()
        assert result.score == 85.0
        assert result.feedback == "Clear and accurate."
        assert result.passed is True
        assert len(judge.schema_calls) == 1

    def test_prompt_contents(self, settings):
        judge = FakeJudge()
        ev = LlmJudgeEvaluator(
            "Paris.",
            {"custom_instructions": "Check geography", "criteria": "accuracy\nbrevity", "judge_model": "gpt-4o-mini"},
            settings=settings,
            judge=judge,
        )
        ev.evaluate()
        model, prompt, schema = judge.schema_calls[0]
        assert model == "gpt-4o-mini"
        assert "Paris." in prompt
        assert "Check geography" in prompt
        assert "- accuracy" in prompt
        assert set(schema["properties"]["criteria_scores"]["properties"]) == {"accuracy", "brevity"}

    def test_default_threshold_is_70(self, settings):
        judge = FakeJudge(structured={"overall_score": 72, "feedback": "ok"})
        assert LlmJudgeEvaluator("x", {}, settings=settings, judge=judge).passed()
        judge = FakeJudge(structured={"overall_score": 69, "feedback": "meh"})
        assert not LlmJudgeEvaluator("x", {}, settings=settings, judge=judge).passed()

    def test_score_clamped(self, settings):
        judge = FakeJudge(structured={"overall_score": 140, "feedback": "wow"})
        assert LlmJudgeEvaluator("x", {}, settings=settings, judge=judge).evaluate_score() == 100.0

    def test_metadata_real_judge(self, settings):
        judge = FakeJudge()
        meta = LlmJudgeEvaluator("x", {}, settings=settings, judge=judge).metadata()
        assert meta["raw_judge_response"] == {"overall_score": 85, "feedback": "Clear and accurate."}
        assert meta["mock_mode"] is False
        assert meta["used_structured_output"] is True

    def test_mock_mode(self, settings):
        ev = LlmJudgeEvaluator("x", {}, settings=settings, judge=MockJudge(seed=3))
        result = ev.evaluate()
        assert 0 <= result.score <= 100
        assert result.feedback.startswith("MOCK EVALUATION")
        assert result.metadata["raw_judge_response"] == "MOCK_RESPONSE"
        assert result.metadata["mock_mode"] is True

    def test_judge_errors_propagate(self, settings):
        ev = LlmJudgeEvaluator("x", {}, settings=settings, judge=FailingJudge())
        with pytest.raises(RuntimeError, match="unreachable"):
            ev.evaluate()

    def test_compatible_apis(self):
        assert LlmJudgeEvaluator.compatible_with_api("openai_chat_completions")
        assert LlmJudgeEvaluator.compatible_with_api("anthropic_messages")
        assert not LlmJudgeEvaluator.compatible_with_api("openai_responses")


class TestConversationJudgeEvaluator:
    def test_average(self, settings):
        judge = FakeJudge(replies=["Score: 90\nFeedback: a", "Score: 80\nFeedback: b", "Score: 70\nFeedback: c"])
        ev = ConversationJudgeEvaluator(_three_turns(), {}, settings=settings, judge=judge)
        assert ev.evaluate_score() == 80.0
        assert len(judge.calls) == 3
        assert ev.passed()

    def test_feedback_lists_turns(self, settings):
        judge = FakeJudge(replies=["Score: 90", "Score: 80", "Score: 70"])
        ev = ConversationJudgeEvaluator(_three_turns(), {}, settings=settings, judge=judge)
        assert ev.generate_feedback() == (
            "Average conversation score: 80.0/100. Message scores: Turn 1: 90.0, Turn 2: 80.0, Turn 3: 70.0"
        )

    def test_context_includes_message(self, settings):
        judge = FakeJudge(replies=["Score: 90", "Score: 80", "Score: 70"])
        ev = ConversationJudgeEvaluator(_three_turns(), {}, settings=settings, judge=judge)
        ev.evaluate_score()
        first_prompt = judge.calls[0][1]
        assert "ASSISTANT: Hello! How can I help?" in first_prompt
        assert "Try Dune." not in first_prompt
        last_prompt = judge.calls[2][1]
        assert "USER: Hi" in last_prompt
        assert "ASSISTANT: It is a classic." in last_prompt

    def test_fallback_parsing(self, settings):
        judge = FakeJudge(replies=["I'd give it 87 out of 100", "Score: 150", "no idea"])
        ev = ConversationJudgeEvaluator(_three_turns(), {}, settings=settings, judge=judge)
        assert [s["score"] for s in ev.message_scores] == [87.0, 100.0, 50.0]

    def test_threshold(self, settings):
        judge = FakeJudge(replies=["Score: 60", "Score: 60", "Score: 60"])
        ev = ConversationJudgeEvaluator(_three_turns(), {}, settings=settings, judge=judge)
        assert not ev.passed()

    def test_metadata(self, settings):
        judge = FakeJudge(replies=["Score: 90", "Score: 80", "Score: 70"])
        meta = ConversationJudgeEvaluator(_three_turns(), {}, settings=settings, judge=judge).metadata()
        assert meta["total_messages"] == 3
        assert meta["message_scores"][1]["turn"] == 2
        assert meta["message_scores"][1]["message_index"] == 3
        assert meta["threshold"] == 70.0

    def test_requires_assistant_message(self, settings):
        data = {"messages": [{"role": "user", "content": "hello?"}]}
        ev = ConversationJudgeEvaluator(data, {}, settings=settings, judge=FakeJudge())
        with pytest.raises(ValueError, match="assistant message"):
            ev.evaluate()

    def test_requires_messages(self, settings):
        ev = ConversationJudgeEvaluator({"messages": []}, {}, settings=settings, judge=FakeJudge())
        with pytest.raises(ValueError, match="at least one message"):
            ev.evaluate_score()

    def test_mock_judge(self, settings):
        ev = ConversationJudgeEvaluator(_three_turns(), {}, settings=settings, judge=MockJudge(seed=1))
        score = ev.evaluate_score()
        assert 75 <= score <= 95
        assert ev.metadata()["mock_mode"] is True
