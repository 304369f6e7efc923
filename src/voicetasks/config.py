"""
voicetasks Configuration System

Loads configuration from:
1. User config (~/.voicetasks/config/voicetasks.yaml)
2. Development default (./config/default.yaml)
3. Environment variables (VOICETASKS_ prefix)

Uses Pydantic for validation and type coercion.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def expand_path(path: str | Path | None) -> Path | None:
    """Expand ~ and environment variables in paths."""
    if path is None:
        return None
    expanded = os.path.expandvars(os.path.expanduser(str(path)))
    return Path(expanded)


class AppMeta(BaseModel):
    """Core application metadata."""

    name: str = "voicetasks"
    version: str = "0.1.0"


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: Path | None = None

    @field_validator("file", mode="before")
    @classmethod
    def expand_file_path(cls, v: Any) -> Path | None:
        return expand_path(v)


class StorageConfig(BaseModel):
    """Persistence configuration."""

    driver: Literal["sqlite", "memory"] = "sqlite"
    path: Path = Path("~/.voicetasks/data/voicetasks.db")
    echo: bool = False

    @field_validator("path", mode="before")
    @classmethod
    def expand_db_path(cls, v: Any) -> Path:
        expanded = expand_path(v)
        return expanded if expanded else Path("~/.voicetasks/data/voicetasks.db")

    @property
    def url(self) -> str:
        """Generate SQLAlchemy connection URL."""
        if self.driver == "sqlite":
            self.path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{self.path}"
        elif self.driver == "memory":
            return "sqlite:///:memory:"
        else:
            raise ValueError(f"Unsupported storage driver: {self.driver}")


class LLMConfig(BaseModel):
    """Remote chat-completion configuration."""

    enabled: bool = False
    provider: str = "openai"  # openai, openrouter or claude
    fallback_provider: str | None = None
    model: str = "gpt-4o-mini"
    claude_model: str = "claude-sonnet-4-20250514"
    base_url: str | None = None  # e.g. https://openrouter.ai/api/v1
    api_key_env: str = "OPENAI_API_KEY"
    fallback_api_key_env: str = "ANTHROPIC_API_KEY"
    max_tokens: int = 1000
    temperature: float = 0.7
    timeout: float = 30.0
    max_retries: int = 1
    history_window: int = 10
    system_prompt: str | None = None

    @property
    def api_key(self) -> str | None:
        return os.environ.get(self.api_key_env)

    @property
    def fallback_api_key(self) -> str | None:
        return os.environ.get(self.fallback_api_key_env)


class ExtractionConfig(BaseModel):
    """Local extraction and response generation."""

    theme_window: int = 6
    seed: int | None = None  # fixed seed makes response wording reproducible


class NotificationConfig(BaseModel):
    """Reminders and celebrations."""

    enabled: bool = True
    check_interval: float = 60.0
    speak: bool = False


class VoiceTasksConfig(BaseSettings):
    """
    Main configuration.

    Loads from YAML files and environment variables.
    Environment variables use VOICETASKS_ prefix and __ for nesting.
    Example: VOICETASKS_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="VOICETASKS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppMeta = Field(default_factory=AppMeta)
    log: LogConfig = Field(default_factory=LogConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)


def find_config_file() -> Path | None:
    """
    Find the configuration file.

    Search order:
    1. ~/.voicetasks/config/voicetasks.yaml (user config)
    2. ./config/default.yaml (development default)
    3. Package default (source checkout)
    """
    user_config = Path.home() / ".voicetasks" / "config" / "voicetasks.yaml"
    if user_config.exists():
        return user_config

    dev_config = Path.cwd() / "config" / "default.yaml"
    if dev_config.exists():
        return dev_config

    package_config = Path(__file__).parent.parent.parent / "config" / "default.yaml"
    if package_config.exists():
        return package_config

    return None


def load_yaml_config(path: Path | None) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if path is None or not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f)

    return data if data else {}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_config(path: Path | None = None) -> VoiceTasksConfig:
    """
    Load complete configuration.

    Merges:
    1. Pydantic defaults
    2. YAML file configuration
    3. Environment variables (highest priority)
    """
    yaml_config = load_yaml_config(path or find_config_file())

    # pydantic-settings gives init kwargs priority over env vars, so drop the
    # YAML values for any section the environment overrides.
    config = VoiceTasksConfig()
    env_overrides = config.model_dump(exclude_defaults=True)
    merged = deep_merge(yaml_config, env_overrides)
    return VoiceTasksConfig(**merged)


_config: VoiceTasksConfig | None = None


def get_config() -> VoiceTasksConfig:
    """Get the cached configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the cached configuration (useful for testing)."""
    global _config
    _config = None
