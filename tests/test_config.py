"""Tests for environment configuration."""

import os

import pytest

from prompt_tracker import config
from prompt_tracker.config import DEFAULT_JUDGE_MODEL, Settings, check_env, save_key


class TestSettingsFromEnv:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.use_real_llm is False
        assert settings.judge_model == DEFAULT_JUDGE_MODEL
        assert settings.openai_api_key is None
        assert settings.api_timeout == 60
        assert settings.max_workers == 10
        assert settings.mock_seed is None

    def test_real_llm_only_on_true(self):
        assert Settings.from_env({"PROMPT_TRACKER_USE_REAL_LLM": "true"}).use_real_llm
        assert Settings.from_env({"PROMPT_TRACKER_USE_REAL_LLM": "TRUE"}).use_real_llm
        assert not Settings.from_env({"PROMPT_TRACKER_USE_REAL_LLM": "1"}).use_real_llm
        assert not Settings.from_env({"PROMPT_TRACKER_USE_REAL_LLM": "yes"}).use_real_llm

    def test_reads_values(self):
        settings = Settings.from_env({
            "PROMPT_TRACKER_JUDGE_MODEL": "claude-3-5-sonnet-latest",
            "OPENAI_API_KEY": "sk-test",
            "API_TIMEOUT": "15",
            "PROMPT_TRACKER_MAX_WORKERS": "2",
            "PROMPT_TRACKER_MOCK_SEED": "7",
        })
        assert settings.judge_model == "claude-3-5-sonnet-latest"
        assert settings.openai_api_key == "sk-test"
        assert settings.api_timeout == 15
        assert settings.max_workers == 2
        assert settings.mock_seed == 7

    def test_bad_integer(self):
        with pytest.raises(ValueError, match="API_TIMEOUT"):
            Settings.from_env({"API_TIMEOUT": "soon"})

    def test_reads_process_env(self, monkeypatch):
        monkeypatch.setenv("PROMPT_TRACKER_USE_REAL_LLM", "true")
        assert Settings.from_env().use_real_llm


class TestKeyAccessors:
    def test_openai_key_missing(self):
        with pytest.raises(ValueError, match="prompt-tracker env set OPENAI_API_KEY"):
            Settings().get_openai_key()

    def test_anthropic_key_missing(self):
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            Settings().get_anthropic_key()

    def test_keys_present(self):
        settings = Settings(openai_api_key="sk-1", anthropic_api_key="ak-1")
        assert settings.get_openai_key() == "sk-1"
        assert settings.get_anthropic_key() == "ak-1"


class TestSaveKey:
    @pytest.fixture(autouse=True)
    def _config_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "CONFIG_DIR", tmp_path)
        monkeypatch.setattr(config, "PERSISTENT_ENV", tmp_path / ".env")

    def test_writes_new_key(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PROMPT_TRACKER_JUDGE_MODEL", "")
        path = save_key("PROMPT_TRACKER_JUDGE_MODEL", "gpt-4o-mini")
        assert path == tmp_path / ".env"
        assert "PROMPT_TRACKER_JUDGE_MODEL=gpt-4o-mini" in path.read_text()

    def test_replaces_existing(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "")
        (tmp_path / ".env").write_text("OPENAI_API_KEY=old\nOTHER=1\n")
        save_key("OPENAI_API_KEY", "new")
        lines = (tmp_path / ".env").read_text().splitlines()
        assert lines == ["OPENAI_API_KEY=new", "OTHER=1"]

    def test_sets_process_env(self, monkeypatch):
        monkeypatch.setenv("PROMPT_TRACKER_MOCK_SEED", "0")
        save_key("PROMPT_TRACKER_MOCK_SEED", "3")
        assert os.environ["PROMPT_TRACKER_MOCK_SEED"] == "3"

    def test_rejects_non_integer_setting(self, tmp_path):
        with pytest.raises(ValueError, match="must be an integer"):
            save_key("PROMPT_TRACKER_MAX_WORKERS", "lots")
        assert not (tmp_path / ".env").exists()


class TestCheckEnv:
    def test_all_unset(self, monkeypatch):
        for var in config.ENV_VARS:
            monkeypatch.delenv(var, raising=False)
        result = check_env()
        assert len(result) == len(config.ENV_VARS)
        assert all(not is_set for _, is_set, _ in result)

    def test_one_set(self, monkeypatch):
        for var in config.ENV_VARS:
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        status = {var: is_set for var, is_set, _ in check_env()}
        assert status["OPENAI_API_KEY"] is True
        assert status["ANTHROPIC_API_KEY"] is False

    def test_explicit_mapping(self):
        status = {var: is_set for var, is_set, _ in check_env({"ANTHROPIC_API_KEY": "ak", "OPENAI_API_KEY": "  "})}
        assert status["ANTHROPIC_API_KEY"] is True
        assert status["OPENAI_API_KEY"] is False
