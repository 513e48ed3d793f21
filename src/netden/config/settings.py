"""
config/settings.py — NetDen Runtime Settings

Merges config.yaml (defaults/structure) with environment variables and .env
(secrets). Pydantic-powered; all fields are validated and typed.

  - Field validators reject impossible values at parse time
  - validate_all() performs cross-field startup validation and raises
    ConfigError listing every problem found
  - load_settings() respects NETDEN_CONFIG as a fallback when no explicit
    config_path argument is given
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(Exception):
    """Raised by validate_all() when one or more config problems are found."""


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_PENDING_STORES = {"memory", "sqlite"}


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class AgentConfig(BaseModel):
    assistant_name: str = "Nova"
    max_steps: int = 4
    history_window: int = 8
    context_max_chars: int = 2400
    context_lookahead_days: int = 14
    pending_action_ttl_seconds: int = 15 * 60
    pending_store: str = "memory"
    sqlite_path: str = "./data/sqlite/pending_actions.db"
    stream_chunk_size: int = 36
    default_user_id: str = "local"
    default_user_name: str = "User"

    @field_validator("max_steps", "history_window", "stream_chunk_size",
                     "context_lookahead_days")
    @classmethod
    def _positive(cls, v: int, info) -> int:
        if v < 1:
            raise ValueError(f"agent.{info.field_name} must be >= 1")
        return v

    @field_validator("context_max_chars")
    @classmethod
    def _sane_budget(cls, v: int) -> int:
        if v < 16:
            raise ValueError("agent.context_max_chars must be >= 16")
        return v

    @field_validator("pending_action_ttl_seconds")
    @classmethod
    def _positive_ttl(cls, v: int) -> int:
        if v < 1:
            raise ValueError("agent.pending_action_ttl_seconds must be >= 1")
        return v

    @field_validator("pending_store")
    @classmethod
    def _known_store(cls, v: str) -> str:
        if v not in _VALID_PENDING_STORES:
            raise ValueError(
                f"agent.pending_store must be one of "
                f"{sorted(_VALID_PENDING_STORES)}, got '{v}'"
            )
        return v


class LLMConfig(BaseModel):
    model: str = "openai/gpt-4o-mini"
    temperature: float = 0.2
    timeout_seconds: float = 30.0

    @field_validator("temperature")
    @classmethod
    def _valid_temperature(cls, v: float) -> float:
        if not (0.0 <= v <= 2.0):
            raise ValueError("llm.temperature must be between 0.0 and 2.0")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("llm.timeout_seconds must be > 0")
        return v


class ToolsConfig(BaseModel):
    timeout_seconds: float = 15.0

    @field_validator("timeout_seconds")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("tools.timeout_seconds must be > 0")
        return v


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8787
    max_body_kb: int = 128

    @field_validator("port")
    @classmethod
    def _valid_port(cls, v: int) -> int:
        if not (0 < v < 65536):
            raise ValueError("server.port must be between 1 and 65535")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = 50
    backup_count: int = 5
    console_output: bool = True
    json_format: Optional[bool] = None

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    NetDen runtime settings.

    Priority (highest to lowest):
      1. Environment variables
      2. .env file
      3. config.yaml
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    # -- Secrets / provider endpoint from env ----------------------------------
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1", alias="OPENROUTER_BASE_URL"
    )
    openrouter_model: Optional[str] = Field(default=None, alias="OPENROUTER_MODEL")
    openrouter_http_referer: Optional[str] = Field(default=None, alias="OPENROUTER_HTTP_REFERER")
    openrouter_app_title: Optional[str] = Field(default=None, alias="OPENROUTER_APP_TITLE")

    # -- Structured config (from config.yaml) ----------------------------------
    agent: AgentConfig = Field(default_factory=AgentConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("openrouter_api_key", "openrouter_model", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    # -- Convenience properties ------------------------------------------------

    @property
    def effective_model(self) -> str:
        """OPENROUTER_MODEL wins over llm.model from config.yaml."""
        return self.openrouter_model or self.llm.model

    @property
    def log_level(self) -> str:
        return self.logging.level

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Field validators catch type/value errors at parse time; this catches
        cross-field problems Pydantic can't see.
        """
        errors: list[str] = []

        if not self.openrouter_base_url.startswith(("http://", "https://")):
            errors.append(
                f"OPENROUTER_BASE_URL '{self.openrouter_base_url}' must be an "
                f"http(s) URL."
            )

        if self.agent.pending_store == "sqlite" and not self.agent.sqlite_path.strip():
            errors.append(
                "agent.pending_store is 'sqlite' but agent.sqlite_path is empty."
            )

        if self.tools.timeout_seconds >= self.llm.timeout_seconds * self.agent.max_steps:
            errors.append(
                "tools.timeout_seconds is longer than the whole completion "
                "budget (llm.timeout_seconds × agent.max_steps). Lower it."
            )

        if not self.agent.default_user_id.strip():
            errors.append("agent.default_user_id must not be empty.")

        if errors:
            numbered = "\n".join(f"  {i + 1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\nNetDen startup failed: {len(errors)} configuration "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your .env file "
                f"and restart.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Loader + singleton
# ─────────────────────────────────────────────────────────────────────────────

_singleton: Optional[Settings] = None
_singleton_lock = threading.Lock()

_KNOWN_SECTIONS = {"agent", "llm", "tools", "server", "logging"}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path with this priority:
      1. Explicit config_path argument (from --config CLI flag)
      2. NETDEN_CONFIG environment variable
      3. Default: config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("NETDEN_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings by merging config.yaml with environment variables."""
    global _singleton
    yaml_data = _load_yaml(_resolve_config_path(config_path))
    init_kwargs = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}

    instance = Settings(**init_kwargs)
    with _singleton_lock:
        _singleton = instance
    return instance


def get_settings() -> Settings:
    """Return the global Settings singleton, loading defaults on first use."""
    global _singleton
    if _singleton is not None:
        return _singleton
    with _singleton_lock:
        if _singleton is None:
            _singleton = Settings(
                **{k: v for k, v in _load_yaml(_resolve_config_path(None)).items()
                   if k in _KNOWN_SECTIONS}
            )
    return _singleton
