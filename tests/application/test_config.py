from pathlib import Path

import pytest
from pydantic import ValidationError

from wordwise.application.config import AppConfig, resolve_config


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("WORDWISE_BACKEND", "memory")
    monkeypatch.setenv("WORDWISE_RETRY_ATTEMPTS", "5")

    config = resolve_config()

    assert config.backend == "memory"
    assert config.retry_attempts == 5


def test_cli_overrides_win_and_none_is_ignored(monkeypatch):
    monkeypatch.setenv("WORDWISE_BACKEND", "sql")

    config = resolve_config({"backend": "memory", "database_url": None})

    assert config.backend == "memory"
    assert config.database_url.startswith("sqlite:///")


def test_thresholds_file_is_resolved(tmp_path):
    config = AppConfig(thresholds_file=str(tmp_path / "t.yaml"))

    assert config.thresholds_file == (tmp_path / "t.yaml").resolve()
    assert isinstance(config.thresholds_file, Path)


def test_invalid_retry_settings():
    with pytest.raises(ValidationError):
        AppConfig(retry_attempts=0)
    with pytest.raises(ValidationError):
        AppConfig(retry_base_delay=5.0, retry_max_delay=1.0)
