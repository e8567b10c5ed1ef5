"""Tests for configuration loading."""

from pathlib import Path

import pytest

from secrecy.config import AppConfig, config_from_env

ENV_VARS = (
    "SECRECY_DATA_DIR",
    "SECRECY_PROVIDER",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GROQ_API_KEY",
    "GROQ_MODEL",
    "SECRECY_INITIAL_TOKENS",
    "SECRECY_POLL_INTERVAL",
    "SECRECY_USER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = config_from_env()

    assert config.data_dir == Path.home() / ".secrecy"
    assert config.provider == "gemini"
    assert config.initial_tokens == 2000
    assert config.poll_interval == 5.0
    assert config.user_id is None
    assert config.api_key is None


def test_from_env(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("SECRECY_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SECRECY_PROVIDER", "Groq")
    monkeypatch.setenv("GROQ_API_KEY", "q-key")
    monkeypatch.setenv("SECRECY_INITIAL_TOKENS", "500")
    monkeypatch.setenv("SECRECY_POLL_INTERVAL", "2.5")
    monkeypatch.setenv("SECRECY_USER", "alice")

    config = config_from_env()

    assert config.provider == "groq"
    assert config.api_key == "q-key"
    assert config.api_key_env_var == "GROQ_API_KEY"
    assert config.storage_path == tmp_path / "storage.json"
    assert config.log_dir == tmp_path / "logs"
    assert config.initial_tokens == 500
    assert config.poll_interval == 2.5
    assert config.user_id == "alice"


def test_invalid_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("SECRECY_INITIAL_TOKENS", "lots")
    monkeypatch.setenv("SECRECY_POLL_INTERVAL", "-1")

    config = config_from_env()

    assert config.initial_tokens == 2000
    assert config.poll_interval == 5.0


def test_unknown_provider():
    with pytest.raises(ValueError, match="provider"):
        AppConfig(provider="openai")


def test_negative_allowance():
    with pytest.raises(ValueError):
        AppConfig(initial_tokens=-1)
