"""
Tests for the voicetasks configuration system.
"""

import os
from pathlib import Path

import pytest
import yaml

from voicetasks.config import (
    VoiceTasksConfig,
    deep_merge,
    expand_path,
    load_config,
    load_yaml_config,
    reset_config,
)


class TestExpandPath:
    """Tests for path expansion."""

    def test_expand_home(self):
        result = expand_path("~/test")
        assert result is not None
        assert str(result).startswith(str(Path.home()))
        assert str(result).endswith("test")

    def test_expand_env_var(self):
        os.environ["TEST_VOICETASKS_PATH"] = "/custom/path"
        result = expand_path("$TEST_VOICETASKS_PATH/subdir")
        assert result is not None
        assert str(result) == "/custom/path/subdir"
        del os.environ["TEST_VOICETASKS_PATH"]

    def test_expand_none(self):
        assert expand_path(None) is None


class TestLoadYamlConfig:
    """Tests for YAML loading."""

    def test_load_valid_yaml(self, tmp_path: Path):
        config_file = tmp_path / "test.yaml"
        config_file.write_text(
            """
            log:
              level: DEBUG
            storage:
              echo: true
            """
        )
        result = load_yaml_config(config_file)
        assert result["log"]["level"] == "DEBUG"
        assert result["storage"]["echo"] is True

    def test_load_missing_file(self):
        result = load_yaml_config(Path("/nonexistent/config.yaml"))
        assert result == {}

    def test_load_empty_file(self, tmp_path: Path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        result = load_yaml_config(config_file)
        assert result == {}


class TestDeepMerge:
    """Tests for deep dictionary merging."""

    def test_simple_merge(self):
        base = {"a": 1, "b": 2}
        override = {"b": 3, "c": 4}
        result = deep_merge(base, override)
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        base = {"outer": {"a": 1, "b": 2}}
        override = {"outer": {"b": 3, "c": 4}}
        result = deep_merge(base, override)
        assert result == {"outer": {"a": 1, "b": 3, "c": 4}}

    def test_override_dict_with_value(self):
        base = {"a": {"nested": True}}
        override = {"a": "simple"}
        result = deep_merge(base, override)
        assert result == {"a": "simple"}


class TestVoiceTasksConfig:
    """Tests for main configuration class."""

    def setup_method(self):
        reset_config()

    def test_defaults(self):
        config = VoiceTasksConfig()
        assert config.app.name == "voicetasks"
        assert config.log.level == "INFO"
        assert config.storage.driver == "sqlite"
        assert config.llm.enabled is False
        assert config.extraction.theme_window == 6
        assert config.notifications.check_interval == 60

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("VOICETASKS_LOG__LEVEL", "DEBUG")
        config = VoiceTasksConfig()
        assert config.log.level == "DEBUG"

    def test_storage_url_sqlite(self, tmp_path: Path):
        config = VoiceTasksConfig(
            storage={"driver": "sqlite", "path": str(tmp_path / "data" / "test.db")}
        )
        url = config.storage.url
        assert url.startswith("sqlite:///")
        assert "test.db" in url
        assert (tmp_path / "data").is_dir()

    def test_storage_url_memory(self):
        config = VoiceTasksConfig(storage={"driver": "memory"})
        assert config.storage.url == "sqlite:///:memory:"

    def test_invalid_driver(self):
        with pytest.raises(ValueError):
            VoiceTasksConfig(storage={"driver": "postgresql"})

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("MY_LLM_KEY", "secret")
        config = VoiceTasksConfig(llm={"api_key_env": "MY_LLM_KEY"})
        assert config.llm.api_key == "secret"


class TestLoadConfig:
    """Tests for layered loading."""

    def test_yaml_then_env(self, tmp_path: Path, monkeypatch):
        config_file = tmp_path / "voicetasks.yaml"
        config_file.write_text(
            yaml.safe_dump(
                {
                    "log": {"level": "WARNING", "format": "console"},
                    "notifications": {"check_interval": 5},
                }
            )
        )
        monkeypatch.setenv("VOICETASKS_LOG__LEVEL", "ERROR")

        config = load_config(config_file)

        assert config.log.level == "ERROR"
        assert config.log.format == "console"
        assert config.notifications.check_interval == 5
