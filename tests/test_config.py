"""Tests for the Config class."""

import logging
import os
from importlib import reload
from pathlib import Path
from unittest.mock import call, patch

import pytest

from faqbot import config as config_module
from faqbot.config import Config
from faqbot.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _reload_config_after_test():
    yield
    reload(config_module)


def test_get_openai_api_key_from_env():
    """Test OpenAI API key retrieval from environment."""
    with patch.dict(os.environ, {"OPENAI_API_KEY": "test-api-key"}):
        assert Config.get_openai_api_key() == "test-api-key"


def test_get_openai_api_key_empty_when_not_set():
    """Test OpenAI API key returns empty string when not set."""
    with patch.dict(os.environ, {}, clear=True):
        assert not Config.get_openai_api_key()


def test_validate_success_with_api_key():
    """Test validation passes when API key is set."""
    with patch.object(Config, "get_openai_api_key", return_value="test-key"):
        Config.validate()


def test_validate_fails_without_api_key():
    """Test validation fails when API key is not set."""
    with (
        patch.object(Config, "get_openai_api_key", return_value=""),
        pytest.raises(ConfigurationError, match="OPENAI_API_KEY is required"),
    ):
        Config.validate()


def test_configuration_error_is_value_error():
    with (
        patch.object(Config, "get_openai_api_key", return_value=""),
        pytest.raises(ValueError),  # noqa: PT011
    ):
        Config.validate()


@pytest.mark.parametrize(
    ("attr", "value", "error_match"),
    [
        ("INDEX_NAME", "  ", "INDEX_NAME must not be empty"),
        ("VECTOR_BACKEND", "pinecone", "Unsupported VECTOR_BACKEND"),
        ("VECTOR_DIMENSION", 0, "VECTOR_DIMENSION must be a positive integer"),
        ("RETRIEVAL_TOP_K", 0, "RETRIEVAL_TOP_K must be a positive integer"),
        ("INGEST_BATCH_SIZE", -1, "INGEST_BATCH_SIZE must be a positive integer"),
        ("HISTORY_MAX_TURNS", -2, "HISTORY_MAX_TURNS must not be negative"),
    ],
)
def test_validate_rejects_invalid_settings(attr, value, error_match):
    with (
        patch.object(Config, "get_openai_api_key", return_value="test-key"),
        patch.object(Config, attr, value),
        pytest.raises(ConfigurationError, match=error_match),
    ):
        Config.validate()


def test_validate_reports_every_problem():
    with (
        patch.object(Config, "get_openai_api_key", return_value=""),
        patch.object(Config, "INDEX_NAME", ""),
        pytest.raises(ConfigurationError) as exc_info,
    ):
        Config.validate()

    assert "OPENAI_API_KEY" in exc_info.value.message
    assert "INDEX_NAME" in exc_info.value.message
    assert exc_info.value.kind == "configuration"


@pytest.mark.parametrize(
    ("env_var", "config_attr", "default_value", "test_value", "expected_type"),
    [
        ("LOG_LEVEL", "LOG_LEVEL", "INFO", "debug", str),
        ("OPENAI_LOG_LEVEL", "OPENAI_LOG_LEVEL", "WARNING", "error", str),
        (
            "EMBEDDING_MODEL",
            "EMBEDDING_MODEL",
            "text-embedding-3-small",
            "text-embedding-ada-002",
            str,
        ),
        ("CHAT_MODEL", "CHAT_MODEL", "gpt-3.5-turbo", "gpt-4o-mini", str),
        ("CHAT_MAX_TOKENS", "CHAT_MAX_TOKENS", 500, "1000", int),
        ("RETRIEVAL_TOP_K", "RETRIEVAL_TOP_K", 5, "8", int),
        ("INGEST_BATCH_SIZE", "INGEST_BATCH_SIZE", 10, "25", int),
        ("VECTOR_DIMENSION", "VECTOR_DIMENSION", 1536, "384", int),
        ("HISTORY_MAX_TURNS", "HISTORY_MAX_TURNS", 0, "6", int),
        ("INDEX_NAME", "INDEX_NAME", "faq", "support-faq", str),
        ("VECTOR_BACKEND", "VECTOR_BACKEND", "faiss", "sqlite", str),
    ],
)
def test_config_loading_from_env(
    env_var, config_attr, default_value, test_value, expected_type
):
    with patch.dict(os.environ, {}, clear=True):
        reload(config_module)
        actual_default = getattr(config_module.Config, config_attr)
        assert actual_default == default_value

    with patch.dict(os.environ, {env_var: test_value}):
        reload(config_module)
        actual_value = getattr(config_module.Config, config_attr)
        if expected_type is int:
            expected = int(test_value)
        elif config_attr in {"LOG_LEVEL", "OPENAI_LOG_LEVEL"}:
            expected = test_value.upper()
        else:
            expected = test_value
        assert actual_value == expected


@pytest.mark.parametrize(
    ("env_var", "config_attr", "test_path"),
    [
        ("VECTOR_STORE_DB_PATH", "VECTOR_STORE_DB_PATH", "/custom/path/store.db"),
        ("FAISS_INDEX_PATH", "FAISS_INDEX_PATH", "/custom/faiss/index.faiss"),
        ("FAQ_CORPUS_PATH", "FAQ_CORPUS_PATH", "/custom/faq.json"),
    ],
)
def test_path_config_loading(env_var, config_attr, test_path):
    """Test Path configuration loading from environment variables."""
    with patch.dict(os.environ, {}, clear=True):
        reload(config_module)
        default_path = getattr(config_module.Config, config_attr)
        assert isinstance(default_path, Path)

    with patch.dict(os.environ, {env_var: test_path}):
        reload(config_module)
        actual_path = getattr(config_module.Config, config_attr)
        assert actual_path == Path(test_path)


def test_environment_variable_is_ignored():
    """ENVIRONMENT does not change any setting."""
    with patch.dict(os.environ, {"ENVIRONMENT": "production"}):
        reload(config_module)
        assert not hasattr(config_module.Config, "ENVIRONMENT")
        assert not hasattr(config_module.Config, "is_production")


@pytest.mark.parametrize(
    ("log_level", "openai_level", "expected_level", "expected_openai_level"),
    [
        ("INFO", "WARNING", logging.INFO, logging.WARNING),
        ("DEBUG", "ERROR", logging.DEBUG, logging.ERROR),
        ("INVALID", "INVALID", logging.INFO, logging.WARNING),
    ],
)
def test_setup_logging_levels(
    log_level, openai_level, expected_level, expected_openai_level
):
    """Verify logging setup respects overrides and falls back on invalid values."""
    with (
        patch.object(Config, "LOG_LEVEL", log_level),
        patch.object(Config, "OPENAI_LOG_LEVEL", openai_level),
        patch("faqbot.config.logging.basicConfig") as mock_basic,
        patch("faqbot.config.logging.getLogger") as mock_get_logger,
    ):
        mock_logger = mock_get_logger.return_value

        Config.setup_logging()

        mock_basic.assert_called_once_with(
            level=expected_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        assert mock_get_logger.call_args_list == [call("openai"), call("httpx")]
        mock_logger.setLevel.assert_called_with(expected_openai_level)


def test_get_api_headers_includes_user_agent():
    with patch.object(Config, "API_USER_AGENT", "faqbot-test/1.0"):
        assert Config.get_api_headers() == {"User-Agent": "faqbot-test/1.0"}


def test_get_api_headers_empty_without_user_agent():
    with patch.object(Config, "API_USER_AGENT", ""):
        assert Config.get_api_headers() == {}


@pytest.mark.parametrize(
    ("env_var", "invalid_value", "error_match"),
    [
        ("RETRIEVAL_TOP_K", "not_a_number", "invalid literal for int"),
        ("VECTOR_DIMENSION", "1536.5", "invalid literal for int"),
    ],
)
def test_type_conversion_errors(env_var, invalid_value, error_match):
    """Test handling of invalid type conversions."""
    with (
        patch.dict(os.environ, {env_var: invalid_value}),
        pytest.raises(ValueError, match=error_match),
    ):
        reload(config_module)


def test_no_dotenv_loading_when_missing():
    """Test that .env file loading is skipped when file doesn't exist."""
    with (
        patch.object(Path, "exists", return_value=False),
        patch("faqbot.config.load_dotenv") as mock_load,
    ):
        reload(config_module)

        mock_load.assert_not_called()
