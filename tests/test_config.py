"""Tests for settings loading and LLM selection."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from character_chat.config import Settings, build_llm, load_settings
from character_chat.errors import ConfigError
from character_chat.llm import EchoLLM, HttpLLM

BASE_ENV = {"JWT_SECRET": "s3cret", "LLM_BASE_URL": "http://llm.local/v1"}


def test_missing_secret_is_fatal():
    with pytest.raises(ConfigError, match="JWT_SECRET"):
        load_settings({"LLM_BASE_URL": "http://llm.local/v1"})


def test_blank_secret_is_fatal():
    with pytest.raises(ConfigError):
        load_settings({**BASE_ENV, "JWT_SECRET": "   "})


def test_defaults():
    settings = load_settings(BASE_ENV)
    assert settings.jwt_secret == "s3cret"
    assert settings.llm_provider == "http"
    assert settings.llm_context_messages == 10
    assert settings.bcrypt_rounds == 12
    assert settings.cookie_secure is False


def test_values_are_parsed():
    settings = load_settings({
        **BASE_ENV,
        "DATA_DIR": "/tmp/chat-data",
        "LLM_TIMEOUT": "30",
        "LLM_TEMPERATURE": "0.2",
        "LLM_CONTEXT_MESSAGES": "4",
        "COOKIE_SECURE": "true",
    })
    assert settings.data_dir == Path("/tmp/chat-data")
    assert settings.llm_timeout == 30.0
    assert settings.llm_temperature == 0.2
    assert settings.llm_context_messages == 4
    assert settings.cookie_secure is True


def test_invalid_value_is_config_error():
    with pytest.raises(ConfigError):
        load_settings({**BASE_ENV, "LLM_TIMEOUT": "soon"})


def test_http_provider_needs_base_url():
    with pytest.raises(ConfigError, match="LLM_BASE_URL"):
        load_settings({"JWT_SECRET": "s3cret"})


def test_echo_provider_needs_no_url():
    settings = load_settings({"JWT_SECRET": "s3cret", "LLM_PROVIDER": "echo"})
    assert isinstance(build_llm(settings), EchoLLM)


def test_build_http_llm():
    settings = load_settings(BASE_ENV)
    assert isinstance(build_llm(settings), HttpLLM)


def test_settings_model_requires_secret():
    with pytest.raises(PydanticValidationError):
        Settings.model_validate({})


def test_log_level_is_case_insensitive():
    assert load_settings({**BASE_ENV, "LOG_LEVEL": "debug"}).log_level == "DEBUG"


def test_unknown_log_level_is_config_error():
    with pytest.raises(ConfigError):
        load_settings({**BASE_ENV, "LOG_LEVEL": "verbose"})


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "from-env")
    monkeypatch.setenv("LLM_PROVIDER", "echo")
    monkeypatch.setenv("LLM_TIMEOUT", "5")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    settings = load_settings()
    assert settings.jwt_secret == "from-env"
    assert settings.llm_timeout == 5.0
    assert settings.log_level == "WARNING"


def test_blank_process_secret_is_fatal(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "")
    monkeypatch.setenv("LLM_PROVIDER", "echo")
    with pytest.raises(ConfigError, match="JWT_SECRET"):
        load_settings()
