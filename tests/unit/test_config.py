"""
tests/unit/test_config.py — Config Loading & Validation Tests

Covers:
  - Defaults load cleanly without a config file
  - Field validators reject impossible values at parse time
  - validate_all() raises ConfigError with a numbered list
  - OPENROUTER_MODEL overrides llm.model
  - NETDEN_CONFIG env var is respected by load_settings()
  - Explicit config_path argument takes priority over the env var
  - The shipped config/config.yaml is valid
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from netden.config.settings import (
    AgentConfig,
    ConfigError,
    LLMConfig,
    LoggingConfig,
    ServerConfig,
    Settings,
    get_settings,
    load_settings,
)

_REPO_CONFIG = Path(__file__).parent.parent.parent / "config" / "config.yaml"


def _write_yaml(tmp_path: Path, name: str, body: str) -> Path:
    path = tmp_path / name
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


# ── Field validators ─────────────────────────────────────────────────────────

class TestFieldValidators:
    def test_defaults(self):
        s = Settings()
        assert s.agent.max_steps == 4
        assert s.agent.pending_action_ttl_seconds == 900
        assert s.agent.context_max_chars == 2400
        assert s.tools.timeout_seconds == 15.0
        assert s.openrouter_api_key is None
        assert s.effective_model == "openai/gpt-4o-mini"

    @pytest.mark.parametrize("field", ["max_steps", "history_window", "stream_chunk_size"])
    def test_agent_counts_must_be_positive(self, field):
        with pytest.raises(ValidationError, match=f"agent.{field} must be >= 1"):
            AgentConfig(**{field: 0})

    def test_unknown_pending_store(self):
        with pytest.raises(ValidationError, match="agent.pending_store"):
            AgentConfig(pending_store="redis")

    def test_temperature_range(self):
        with pytest.raises(ValidationError):
            LLMConfig(temperature=3.0)

    def test_port_range(self):
        with pytest.raises(ValidationError):
            ServerConfig(port=70000)

    def test_log_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")


# ── Environment ──────────────────────────────────────────────────────────────

class TestEnvironment:
    def test_model_override(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_MODEL", "anthropic/claude-3.5-haiku")
        assert Settings().effective_model == "anthropic/claude-3.5-haiku"

    def test_blank_key_is_none(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "   ")
        assert Settings().openrouter_api_key is None

    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-test")
        assert Settings().openrouter_api_key == "sk-or-test"


# ── validate_all ─────────────────────────────────────────────────────────────

class TestValidateAll:
    def test_defaults_pass(self):
        Settings().validate_all()

    def test_lists_every_problem(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_BASE_URL", "ftp://nope")
        s = Settings(
            agent={"default_user_id": "  ", "max_steps": 1},
            llm={"timeout_seconds": 5},
            tools={"timeout_seconds": 10},
        )
        with pytest.raises(ConfigError) as exc_info:
            s.validate_all()
        text = str(exc_info.value)
        assert "3 configuration problem(s)" in text
        assert "1. OPENROUTER_BASE_URL" in text
        assert "tools.timeout_seconds" in text
        assert "agent.default_user_id" in text


# ── load_settings ────────────────────────────────────────────────────────────

class TestLoadSettings:
    def test_env_var_path(self, tmp_path, monkeypatch):
        path = _write_yaml(tmp_path, "env.yaml", """
            agent:
              max_steps: 6
        """)
        monkeypatch.setenv("NETDEN_CONFIG", str(path))
        assert load_settings().agent.max_steps == 6

    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        env_path = _write_yaml(tmp_path, "env.yaml", "agent:\n  max_steps: 6\n")
        explicit = _write_yaml(tmp_path, "explicit.yaml", "agent:\n  max_steps: 2\n")
        monkeypatch.setenv("NETDEN_CONFIG", str(env_path))
        assert load_settings(explicit).agent.max_steps == 2

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_settings(tmp_path / "absent.yaml").agent.max_steps == 4

    def test_unknown_sections_ignored(self, tmp_path):
        path = _write_yaml(tmp_path, "c.yaml", "telemetry:\n  enabled: true\n")
        assert load_settings(path).server.port == 8787

    def test_load_sets_singleton(self, tmp_path):
        path = _write_yaml(tmp_path, "c.yaml", "server:\n  port: 9001\n")
        loaded = load_settings(path)
        assert get_settings() is loaded

    def test_shipped_config_is_valid(self):
        settings = load_settings(_REPO_CONFIG)
        settings.validate_all()
        assert settings.agent.pending_store == "memory"
