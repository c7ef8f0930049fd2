"""Tests for judge clients and score parsing."""

import json
from unittest.mock import MagicMock, patch

import pytest

from prompt_tracker import judge as judge_module
from prompt_tracker.config import Settings
from prompt_tracker.judge import (
    AnthropicJudge,
    MockJudge,
    OpenAIJudge,
    ProviderJudge,
    build_judge,
    evaluation_schema,
    parse_score,
)


def _mock_response(json_data, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.raise_for_status = MagicMock()
    if status_code >= 400 and status_code != 429:
        resp.raise_for_status.side_effect = Exception(f"HTTP {status_code}")
    return resp


class TestParseScore:
    def test_score_token(self):
        assert parse_score("Score: 87\nFeedback: Good") == 87.0

    def test_score_token_clamped(self):
        assert parse_score("Score: 150") == 100.0

    def test_score_token_case_insensitive(self):
        assert parse_score("score: 42.5") == 42.5

    def test_first_number_in_range(self):
        assert parse_score("I would rate this 250 words response a 72 overall") == 72.0

    def test_no_number(self):
        assert parse_score("Looks fine to me.") == 50.0

    def test_empty(self):
        assert parse_score("") == 50.0
        assert parse_score(None) == 50.0


class TestEvaluationSchema:
    def test_base_schema(self):
        schema = evaluation_schema()
        assert schema["required"] == ["overall_score", "feedback"]
        assert schema["additionalProperties"] is False
        assert "criteria_scores" not in schema["properties"]

    def test_with_criteria(self):
        schema = evaluation_schema(["accuracy", "tone"])
        criteria = schema["properties"]["criteria_scores"]
        assert set(criteria["properties"]) == {"accuracy", "tone"}
        assert "criteria_scores" in schema["required"]


class TestMockJudge:
    def test_call_format(self):
        text = MockJudge(seed=1).call("gpt-4o", "prompt")
        assert text.startswith("Score: ")
        assert "mock evaluation" in text
        assert 75 <= parse_score(text) <= 95

    def test_structured(self):
        result = MockJudge(seed=1).call_with_schema("gpt-4o", "prompt", evaluation_schema())
        assert 0 <= result["overall_score"] <= 100
        assert result["feedback"].startswith("MOCK EVALUATION")
        assert "gpt-4o" in result["feedback"]
        assert "criteria_scores" not in result

    def test_structured_with_criteria(self):
        result = MockJudge(seed=1).call_with_schema("gpt-4o", "p", evaluation_schema(["clarity"]))
        assert set(result["criteria_scores"]) == {"clarity"}

    def test_seed_reproducible(self):
        assert MockJudge(seed=5).call("m", "p") == MockJudge(seed=5).call("m", "p")


class TestBuildJudge:
    def test_mock_by_default(self):
        judge = build_judge(Settings())
        assert isinstance(judge, MockJudge)
        assert judge.mock is True

    def test_real_when_enabled(self):
        judge = build_judge(Settings(use_real_llm=True))
        assert isinstance(judge, ProviderJudge)
        assert judge.mock is False


class TestOpenAIJudge:
    @patch("prompt_tracker.judge.openai.OpenAI")
    def test_call(self, mock_client_cls):
        client = mock_client_cls.return_value
        message = MagicMock()
        message.content = "  Score: 80\nFeedback: ok  "
        client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=message)])

        text = OpenAIJudge("sk-test").call("gpt-4o", "rate this")
        assert text == "Score: 80\nFeedback: ok"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"] == [{"role": "user", "content": "rate this"}]

    @patch("prompt_tracker.judge.openai.OpenAI")
    def test_call_with_schema(self, mock_client_cls):
        client = mock_client_cls.return_value
        message = MagicMock()
        message.content = json.dumps({"overall_score": 91, "feedback": "Great"})
        client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=message)])

        result = OpenAIJudge("sk-test").call_with_schema("gpt-4o", "p", evaluation_schema())
        assert result == {"overall_score": 91, "feedback": "Great"}
        fmt = client.chat.completions.create.call_args.kwargs["response_format"]
        assert fmt["type"] == "json_schema"
        assert fmt["json_schema"]["strict"] is True


class TestAnthropicJudge:
    @patch("prompt_tracker.judge.httpx.post")
    def test_call(self, mock_post):
        mock_post.return_value = _mock_response({
            "content": [{"type": "text", "text": "Score: 66"}],
        })
        text = AnthropicJudge("ak-test").call("claude-3-5-haiku-latest", "rate")
        assert text == "Score: 66"
        headers = mock_post.call_args.kwargs["headers"]
        assert headers["x-api-key"] == "ak-test"
        assert headers["anthropic-version"] == "2023-06-01"

    @patch("prompt_tracker.judge.httpx.post")
    def test_call_with_schema_uses_tool(self, mock_post):
        mock_post.return_value = _mock_response({
            "content": [{
                "type": "tool_use",
                "name": "record_evaluation",
                "input": {"overall_score": 77, "feedback": "Fine"},
            }],
        })
        result = AnthropicJudge("ak-test").call_with_schema("claude-x", "p", evaluation_schema())
        assert result == {"overall_score": 77, "feedback": "Fine"}
        body = mock_post.call_args.kwargs["json"]
        assert body["tool_choice"] == {"type": "tool", "name": "record_evaluation"}

    @patch("prompt_tracker.judge.httpx.post")
    def test_call_with_schema_without_tool_use(self, mock_post):
        mock_post.return_value = _mock_response({"content": [{"type": "text", "text": "no"}]})
        with pytest.raises(ValueError, match="no structured output"):
            AnthropicJudge("ak-test").call_with_schema("claude-x", "p", evaluation_schema())

    @patch("prompt_tracker.judge.httpx.post")
    def test_retries_rate_limit(self, mock_post, monkeypatch):
        monkeypatch.setattr(judge_module._post.retry, "sleep", lambda seconds: None)
        mock_post.side_effect = [
            _mock_response({}, status_code=429),
            _mock_response({"content": [{"type": "text", "text": "Score: 90"}]}),
        ]
        assert AnthropicJudge("ak-test").call("claude-x", "p") == "Score: 90"
        assert mock_post.call_count == 2

    @patch("prompt_tracker.judge.httpx.post")
    def test_http_error_propagates(self, mock_post):
        mock_post.return_value = _mock_response({}, status_code=500)
        with pytest.raises(Exception, match="HTTP 500"):
            AnthropicJudge("ak-test").call("claude-x", "p")


class TestProviderJudge:
    def test_missing_key_raises(self):
        judge = ProviderJudge(Settings(use_real_llm=True))
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            judge.call("gpt-4o", "p")
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            judge.call("claude-3-opus", "p")

    @patch("prompt_tracker.judge.httpx.post")
    def test_routes_claude_to_anthropic(self, mock_post):
        mock_post.return_value = _mock_response({"content": [{"type": "text", "text": "Score: 55"}]})
        judge = ProviderJudge(Settings(use_real_llm=True, anthropic_api_key="ak"))
        assert judge.call("claude-3-opus", "p") == "Score: 55"
        assert mock_post.call_args.args[0] == judge_module.ANTHROPIC_URL
