"""Tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from c3p1.core.config import (
    Config,
    MemoryConfig,
    PromptTaskDefinition,
    check_unexpanded_vars,
    expand_env_vars,
    load_config,
    load_config_or_default,
)


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestExpandEnvVars:
    """Test ${VAR} expansion."""

    def test_expands_set_variable(self, monkeypatch):
        monkeypatch.setenv("C3P1_TEST_KEY", "sk-test")

        assert expand_env_vars("key=${C3P1_TEST_KEY}") == "key=sk-test"

    def test_leaves_unset_variable(self, monkeypatch):
        monkeypatch.delenv("C3P1_UNSET", raising=False)

        assert expand_env_vars("${C3P1_UNSET}") == "${C3P1_UNSET}"

    def test_unresolved_var_raises(self):
        with pytest.raises(ValueError, match="MISSING_KEY") as exc_info:
            check_unexpanded_vars({"anthropic": {"api_key": "${MISSING_KEY}"}}, source="config.yaml")

        assert "config.yaml" in str(exc_info.value)


class TestLoadConfig:
    """Test YAML loading."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        config = load_config(write(tmp_path, ""))

        assert config.database.path == "c3p1.db"
        assert config.agent.max_history == 20
        assert config.agent.max_rounds == 10
        assert config.memory.root == "/memories"
        assert config.scheduler.timezone == "UTC"
        assert config.scheduler.tasks == []

    def test_full_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("C3P1_TEST_KEY", "sk-live")
        path = write(
            tmp_path,
            """
anthropic:
  api_key: ${C3P1_TEST_KEY}
  max_retries: 5
agent:
  max_history: 8
scheduler:
  timezone: America/Denver
  tasks:
    - name: briefing
      schedule: "0 9 * * 1-5"
      prompt: Brief me
""",
        )

        config = load_config(path)

        assert config.anthropic.api_key == "sk-live"
        assert config.anthropic.max_retries == 5
        assert config.agent.max_history == 8
        assert config.scheduler.tasks[0].name == "briefing"
        assert config.scheduler.tasks[0].enabled is True

    def test_unset_variable_in_file_raises(self, tmp_path, monkeypatch):
        monkeypatch.delenv("C3P1_NOT_SET", raising=False)
        path = write(tmp_path, "anthropic:\n  api_key: ${C3P1_NOT_SET}\n")

        with pytest.raises(ValueError, match="C3P1_NOT_SET"):
            load_config(path)

    def test_invalid_cron_rejected_at_load(self, tmp_path):
        path = write(
            tmp_path,
            "scheduler:\n  tasks:\n    - name: bad\n      schedule: every tuesday\n      prompt: x\n",
        )

        with pytest.raises(ValidationError, match="Invalid cron expression"):
            load_config(path)

    def test_default_when_missing_uses_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")
        monkeypatch.setenv("ANTHROPIC_MODEL", "claude-test")

        config = load_config_or_default(tmp_path / "absent.yaml")

        assert config.anthropic.api_key == "sk-env"
        assert config.anthropic.model == "claude-test"


class TestModels:
    """Test model-level validation."""

    def test_memory_root_trailing_slash_stripped(self):
        assert MemoryConfig(root="/notes/").root == "/notes"

    @pytest.mark.parametrize("root", ["memories", "/"])
    def test_memory_root_must_be_absolute(self, root):
        with pytest.raises(ValidationError):
            MemoryConfig(root=root)

    def test_prompt_task_requires_prompt(self):
        with pytest.raises(ValidationError):
            PromptTaskDefinition(name="x", schedule="0 9 * * *")

    def test_extra_keys_allowed(self):
        config = Config(custom_section={"a": 1})

        assert config.model_extra == {"custom_section": {"a": 1}}
