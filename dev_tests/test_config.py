"""
Tests for config.py - environment loading and defaults.
"""

import os
import sys
from unittest.mock import patch

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config, DEFAULT_CONTINUATION_PROMPT  # noqa: E402


# ============================================================================
# Environment Loading
# ============================================================================

class TestEnvironmentLoading:
    """Tests for Config.load_from_environment()."""

    def test_defaults(self, clean_env):
        cfg = Config()

        assert cfg.OPENAI_API_KEY == ""
        assert cfg.OPENROUTER_BASE_URL == "https://openrouter.ai/api/v1"
        assert cfg.REQUEST_TIMEOUT == 180.0
        assert cfg.MAX_CONTINUATION_ROUNDS == 5
        assert cfg.CONTINUATION_PROMPT == DEFAULT_CONTINUATION_PROMPT
        assert cfg.SELECTION_HEURISTIC == "deep_reasoning"
        assert cfg.MAX_CONTEXT_DOCUMENTS == 20
        assert cfg.MAX_CHARACTERS_PER_DOCUMENT == 50000
        assert cfg.EXTRA_VERBOSE is False
        assert cfg.openrouter_enabled is False

    def test_reads_environment(self, mock_env_vars):
        cfg = Config()

        assert cfg.OPENAI_API_KEY == "sk-test-openai-key-12345"
        assert cfg.REQUEST_TIMEOUT == 30.0
        assert cfg.MAX_CONTINUATION_ROUNDS == 3
        assert cfg.openrouter_enabled is True
        assert cfg.validate_api_keys() == {"openai": True, "openrouter": True}

    def test_openai_key_alias(self, clean_env):
        with patch.dict(os.environ, {"OPENAI_KEY": "sk-legacy"}):
            assert Config().OPENAI_API_KEY == "sk-legacy"

    def test_invalid_numbers_keep_defaults(self, clean_env):
        """
        Given: non-numeric and non-positive overrides
        When: loading
        Then: defaults are kept
        """
        env = {"REQUEST_TIMEOUT": "soon", "MAX_CONTINUATION_ROUNDS": "0", "MAX_CONTEXT_DOCUMENTS": "-4"}
        with patch.dict(os.environ, env):
            cfg = Config()

        assert cfg.REQUEST_TIMEOUT == 180.0
        assert cfg.MAX_CONTINUATION_ROUNDS == 5
        assert cfg.MAX_CONTEXT_DOCUMENTS == 20

    def test_flags_and_normalization(self, clean_env):
        env = {"EXTRA_VERBOSE": "Yes", "SELECTION_HEURISTIC": " Keywords ", "LOG_LEVEL": "debug"}
        with patch.dict(os.environ, env):
            cfg = Config()

        assert cfg.EXTRA_VERBOSE is True
        assert cfg.SELECTION_HEURISTIC == "keywords"
        assert cfg.LOG_LEVEL == "DEBUG"

    def test_explicit_values_skip_environment(self, mock_env_vars):
        cfg = Config(MAX_CONTINUATION_ROUNDS=2)

        assert cfg.MAX_CONTINUATION_ROUNDS == 2
        assert cfg.OPENAI_API_KEY == ""

    def test_openai_base_url(self, clean_env):
        assert Config().openai_base_url() is None
        assert Config(OPENAI_BASE_URL="http://localhost:8080/v1").openai_base_url() == "http://localhost:8080/v1"
