"""
Unit tests for config.py - Environment loading and validation.
"""

import pytest
from unittest.mock import patch

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    AppConfig, ConfigValidator, DEFAULT_SESSION_TTL_SECONDS, DEFAULT_SYSTEM_PROMPT,
    load_config, validate_config_on_startup
)
from tests.test_logger import test_logger


VALID_ENV = {
    "COHERE_API_KEY": "cohere-key",
    "QDRANT_URL": "https://cluster.qdrant.example:6333",
    "GEMINI_API_KEY": "gemini-key",
}


class TestLoadConfig:
    """Test suite for configuration loading."""

    def setup_method(self):
        """Setup test environment."""
        test_logger.log_section("TESTING: config.py - load_config")

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        """Unset variables fall back to the documented defaults."""
        test_logger.log_test_start("config.py", "load_config", "defaults")

        try:
            config = load_config()

            assert config.qdrant_collection_name == "faq_entries"
            assert config.embedding_model == "embed-english-v3.0"
            assert config.generation_provider == "gemini"
            assert config.session_cookie_name == "chatbot_session"
            assert config.session_ttl_seconds == DEFAULT_SESSION_TTL_SECONDS == 2592000
            assert config.history_window == 10
            assert config.retrieval_top_k == 3
            assert config.system_prompt == DEFAULT_SYSTEM_PROMPT
            assert config.cors_origins == ["*"]
            assert config.redis_url == ""

            test_logger.log_test_pass("config.py", "load_config", "defaults")
        except Exception as e:
            test_logger.log_test_fail("config.py", "load_config", "defaults", str(e))
            raise

    @patch.dict(os.environ, {
        "GENERATION_PROVIDER": " Workers_AI ",
        "SESSION_TTL_SECONDS": "3600",
        "HISTORY_WINDOW": "not-a-number",
        "CORS_ORIGINS": "https://a.example, https://b.example,",
        "DEBUG": "yes",
    }, clear=True)
    def test_environment_overrides(self):
        config = load_config()

        assert config.generation_provider == "workers_ai"
        assert config.session_ttl_seconds == 3600
        assert config.history_window == 10
        assert config.cors_origins == ["https://a.example", "https://b.example"]
        assert config.debug is True


class TestConfigValidator:
    """Test suite for ConfigValidator."""

    def setup_method(self):
        """Setup test environment."""
        test_logger.log_section("TESTING: config.py - ConfigValidator")

    @patch.dict(os.environ, VALID_ENV, clear=True)
    def test_valid_environment(self):
        validator = ConfigValidator()

        assert validator.validate() is True
        assert any("REDIS_URL" in w for w in validator.warnings)

    @patch.dict(os.environ, {}, clear=True)
    def test_missing_required_variables(self):
        validator = ConfigValidator()

        assert validator.validate() is False
        keys = {e.key for e in validator.errors if e.is_critical}
        assert {"COHERE_API_KEY", "QDRANT_URL", "GEMINI_API_KEY"} <= keys

    @patch.dict(os.environ, {
        "COHERE_API_KEY": "cohere-key",
        "QDRANT_URL": ":memory:",
        "GENERATION_PROVIDER": "workers_ai",
    }, clear=True)
    def test_provider_specific_requirements(self):
        """Workers AI needs its own credentials instead of a Gemini key."""
        validator = ConfigValidator()

        assert validator.validate() is False
        keys = {e.key for e in validator.errors}
        assert keys == {"WORKERS_AI_ACCOUNT_ID", "WORKERS_AI_API_TOKEN"}

    @patch.dict(os.environ, {**VALID_ENV, "GENERATION_PROVIDER": "openai"}, clear=True)
    def test_unknown_provider(self):
        validator = ConfigValidator()

        assert validator.validate() is False
        assert any(e.key == "GENERATION_PROVIDER" for e in validator.errors)

    @pytest.mark.parametrize("var,value", [
        ("QDRANT_URL", "cluster.qdrant.example"),
        ("REDIS_URL", "localhost:6379"),
    ])
    def test_invalid_urls(self, var, value):
        with patch.dict(os.environ, {**VALID_ENV, var: value}, clear=True):
            validator = ConfigValidator()
            assert validator.validate() is False
            assert any(e.key == var for e in validator.errors)

    @patch.dict(os.environ, {**VALID_ENV, "PORT": "99999", "RETRIEVAL_TOP_K": "abc"}, clear=True)
    def test_non_critical_errors_do_not_fail_validation(self):
        validator = ConfigValidator()

        assert validator.validate() is True
        assert {e.key for e in validator.errors} == {"PORT", "RETRIEVAL_TOP_K"}


class TestValidateOnStartup:
    """Test suite for validate_config_on_startup."""

    @patch.dict(os.environ, {}, clear=True)
    def test_raises_value_error(self):
        with pytest.raises(ValueError) as exc_info:
            validate_config_on_startup()
        assert "COHERE_API_KEY" in str(exc_info.value)

    @patch.dict(os.environ, VALID_ENV, clear=True)
    def test_returns_config(self):
        config = validate_config_on_startup()

        assert isinstance(config, AppConfig)
        assert config.cohere_api_key == "cohere-key"
