"""
Configuration for the Completion Orchestration Core
===================================================

Central configuration for provider credentials, continuation limits and
document context limits. Values are read from environment variables (a .env
file is loaded first). Invalid numeric overrides keep their defaults.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


DEFAULT_CONTINUATION_PROMPT = (
    "Continue the document from where you stopped. "
    "Do not repeat what you have already written, only the continuation."
)

TRUTHY_ENV_VALUES = {"1", "true", "yes", "on"}


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        parsed = float(raw)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


class Config(BaseModel):
    """Configuration settings for the orchestration core."""

    # Provider credentials
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key (primary provider)")
    OPENAI_BASE_URL: str = Field(default="", description="Optional OpenAI-compatible base URL override")
    OPENROUTER_API_KEY: str = Field(default="", description="OpenRouter API key (aggregator provider)")
    OPENROUTER_BASE_URL: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenRouter API base URL",
    )
    OPENROUTER_SITE_URL: str = Field(
        default="https://localhost:3000",
        description="Value sent as HTTP-Referer to OpenRouter",
    )
    OPENROUTER_APP_TITLE: str = Field(
        default="Lawyer Chat Bot",
        description="Value sent as X-Title to OpenRouter",
    )

    # Generation limits
    REQUEST_TIMEOUT: float = Field(default=180.0, gt=0, description="Per provider call timeout in seconds")
    MAX_CONTINUATION_ROUNDS: int = Field(
        default=5,
        ge=1,
        description="Maximum generation rounds per candidate (initial round included)",
    )
    CONTINUATION_PROMPT: str = Field(
        default=DEFAULT_CONTINUATION_PROMPT,
        description="User turn appended when a round is truncated by the token limit",
    )
    SELECTION_HEURISTIC: str = Field(
        default="deep_reasoning",
        description="Primary model selection heuristic: deep_reasoning or keywords",
    )

    # Supplementary document context
    MAX_CONTEXT_DOCUMENTS: int = Field(default=20, ge=1, description="Documents included in the context")
    MAX_CHARACTERS_PER_DOCUMENT: int = Field(
        default=50000,
        ge=1,
        description="Characters kept per document before truncation",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Root logging level")
    EXTRA_VERBOSE: bool = Field(default=False, description="Log full prompts and responses")

    def __init__(self, **data):
        super().__init__(**data)
        if not data:
            self.load_from_environment()

    def load_from_environment(self):
        """Load configuration from environment variables."""
        # Keep OPENAI_KEY as an accepted alias for the primary key
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "") or os.getenv("OPENAI_KEY", "")
        self.OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", self.OPENAI_BASE_URL)
        self.OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
        self.OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", self.OPENROUTER_BASE_URL)
        self.OPENROUTER_SITE_URL = (
            os.getenv("OPENROUTER_SITE_URL")
            or os.getenv("NEXT_PUBLIC_SITE_URL")
            or self.OPENROUTER_SITE_URL
        )
        self.OPENROUTER_APP_TITLE = os.getenv("OPENROUTER_APP_TITLE", self.OPENROUTER_APP_TITLE)

        self.REQUEST_TIMEOUT = _float_from_env("REQUEST_TIMEOUT", self.REQUEST_TIMEOUT)
        self.MAX_CONTINUATION_ROUNDS = _int_from_env("MAX_CONTINUATION_ROUNDS", self.MAX_CONTINUATION_ROUNDS)
        self.CONTINUATION_PROMPT = os.getenv("CONTINUATION_PROMPT") or self.CONTINUATION_PROMPT
        self.SELECTION_HEURISTIC = os.getenv("SELECTION_HEURISTIC", self.SELECTION_HEURISTIC).strip().lower()

        self.MAX_CONTEXT_DOCUMENTS = _int_from_env("MAX_CONTEXT_DOCUMENTS", self.MAX_CONTEXT_DOCUMENTS)
        self.MAX_CHARACTERS_PER_DOCUMENT = _int_from_env(
            "MAX_CHARACTERS_PER_DOCUMENT", self.MAX_CHARACTERS_PER_DOCUMENT
        )

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", self.LOG_LEVEL).upper()
        self.EXTRA_VERBOSE = os.getenv("EXTRA_VERBOSE", "false").lower() in TRUTHY_ENV_VALUES

    @property
    def openrouter_enabled(self) -> bool:
        return bool(self.OPENROUTER_API_KEY)

    def validate_api_keys(self) -> dict:
        """Report which provider keys are configured."""
        return {
            "openai": bool(self.OPENAI_API_KEY),
            "openrouter": bool(self.OPENROUTER_API_KEY),
        }

    def openai_base_url(self) -> Optional[str]:
        return self.OPENAI_BASE_URL or None


# Global configuration instance
config = Config()
