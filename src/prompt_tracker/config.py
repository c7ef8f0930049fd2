"""Environment configuration for judge models and evaluation runs.

Values are loaded in priority order:
  1. Shell environment variables (highest priority)
  2. .env file in current directory
  3. ~/.prompt_tracker/.env (persistent config, set via `prompt-tracker env set`)

Call ``load_env()`` once at process start, then build a ``Settings`` with
``Settings.from_env()`` and pass it to whatever needs it.

Run `prompt-tracker env` to see which keys are configured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv, set_key

CONFIG_DIR = Path.home() / ".prompt_tracker"
PERSISTENT_ENV = CONFIG_DIR / ".env"

DEFAULT_JUDGE_MODEL = "gpt-4o"


def load_env() -> None:
    """Load .env files without overriding variables already set in the shell."""
    # ~/.prompt_tracker/.env first, lowest priority
    if PERSISTENT_ENV.exists():
        load_dotenv(PERSISTENT_ENV)
    load_dotenv()


# --- Settings ---


def _int_env(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Read-only runtime configuration.

    ``use_real_llm`` gates every judge call: when false, evaluators score
    with the mock judge and never touch the network.
    """

    use_real_llm: bool = False
    judge_model: str = DEFAULT_JUDGE_MODEL
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    api_timeout: int = 60
    max_workers: int = 10
    mock_seed: Optional[int] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if env is None else env
        return cls(
            use_real_llm=env.get("PROMPT_TRACKER_USE_REAL_LLM", "").strip().lower() == "true",
            judge_model=env.get("PROMPT_TRACKER_JUDGE_MODEL") or DEFAULT_JUDGE_MODEL,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
            api_timeout=_int_env(env, "API_TIMEOUT", 60),
            max_workers=_int_env(env, "PROMPT_TRACKER_MAX_WORKERS", 10),
            mock_seed=_int_env(env, "PROMPT_TRACKER_MOCK_SEED", None),
        )

    def get_openai_key(self) -> str:
        if not self.openai_api_key:
            raise ValueError(
                "OPENAI_API_KEY is not set. "
                "Run `prompt-tracker env set OPENAI_API_KEY <your-key>` to configure it."
            )
        return self.openai_api_key

    def get_anthropic_key(self) -> str:
        if not self.anthropic_api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY is not set. "
                "Run `prompt-tracker env set ANTHROPIC_API_KEY <your-key>` to configure it."
            )
        return self.anthropic_api_key


# --- Persistent config ---


INTEGER_KEYS = {"PROMPT_TRACKER_MAX_WORKERS", "PROMPT_TRACKER_MOCK_SEED", "API_TIMEOUT"}


def save_key(name: str, value: str) -> Path:
    """Persist *name* in ~/.prompt_tracker/.env and apply it to this process.

    Integer settings are checked up front so a bad value never reaches
    ``Settings.from_env``.
    """
    if name in INTEGER_KEYS:
        _int_env({name: value}, name, None)
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    PERSISTENT_ENV.touch()
    set_key(PERSISTENT_ENV, name, value, quote_mode="never")
    os.environ[name] = value
    return PERSISTENT_ENV


# --- Status check ---

ENV_VARS = {
    "PROMPT_TRACKER_USE_REAL_LLM": {
        "required_by": ["llm_judge", "conversation_judge"],
        "description": "Set to 'true' to call real judge models (mock scoring otherwise)",
    },
    "PROMPT_TRACKER_JUDGE_MODEL": {
        "required_by": ["llm_judge (optional)", "conversation_judge (optional)"],
        "description": f"Default judge model (default: {DEFAULT_JUDGE_MODEL})",
    },
    "OPENAI_API_KEY": {
        "required_by": ["judges using gpt-* / o* models"],
        "description": "OpenAI API key for judge calls",
    },
    "ANTHROPIC_API_KEY": {
        "required_by": ["judges using claude-* models"],
        "description": "Anthropic API key for judge calls",
    },
    "PROMPT_TRACKER_MAX_WORKERS": {
        "required_by": ["prompt-tracker evaluate (optional)"],
        "description": "Concurrent evaluators per run (default: 10)",
    },
    "PROMPT_TRACKER_MOCK_SEED": {
        "required_by": ["mock judge (optional)"],
        "description": "Seed for reproducible mock judge scores",
    },
}

VALID_KEYS = set(ENV_VARS) | {"API_TIMEOUT"}


def check_env(env: Optional[Mapping[str, str]] = None) -> list[tuple[str, bool, dict]]:
    """(name, is_set, info) for each documented variable, in display order."""
    env = os.environ if env is None else env
    return [(var, bool(env.get(var, "").strip()), info) for var, info in ENV_VARS.items()]
