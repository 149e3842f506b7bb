"""Shared pytest fixtures for the completion orchestration core tests."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
import os
import sys
from typing import Dict, List, Union

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import ChatMessage, CompletionResult, FinishReason, ModelProfile, ProviderId, Role, TokenParam  # noqa: E402
from provider_gateway import ProviderGateway  # noqa: E402


# ============================================================================
# Fake Gateway
# ============================================================================

ScriptItem = Union[CompletionResult, BaseException]


def stop(text: str, tokens: int = 10) -> CompletionResult:
    return CompletionResult(text=text, finish_reason=FinishReason.STOP, total_tokens=tokens)


def truncated(text: str, tokens: int = 10) -> CompletionResult:
    return CompletionResult(text=text, finish_reason=FinishReason.LENGTH, total_tokens=tokens)


class FakeGateway(ProviderGateway):
    """
    Scripted gateway: every model id has a queue of results or exceptions,
    consumed one per complete() call. All calls are recorded.
    """

    def __init__(self, provider: ProviderId = ProviderId.OPENAI, scripts: Dict[str, List[ScriptItem]] = None):
        self.provider = provider
        self.scripts = {model_id: list(items) for model_id, items in (scripts or {}).items()}
        self.calls: List[dict] = []

    async def complete(self, model_id, messages, params, *, timeout=None, cancel_event=None):
        self.calls.append({
            "model_id": model_id,
            "messages": [dict(message) for message in messages],
            "params": dict(params),
            "timeout": timeout,
            "cancel_event": cancel_event,
        })
        queue = self.scripts.get(model_id)
        if not queue:
            raise AssertionError(f"Unexpected call for model {model_id}")
        item = queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def models_called(self) -> List[str]:
        return [call["model_id"] for call in self.calls]


@pytest.fixture
def fake_gateway_factory():
    """Build FakeGateway instances from scripts."""
    def _factory(provider: ProviderId = ProviderId.OPENAI, **scripts):
        return FakeGateway(provider, scripts)
    return _factory


# ============================================================================
# Environment Fixtures
# ============================================================================

CONFIG_ENV_KEYS = [
    "OPENAI_API_KEY", "OPENAI_KEY", "OPENAI_BASE_URL", "OPENROUTER_API_KEY",
    "OPENROUTER_BASE_URL", "OPENROUTER_SITE_URL", "NEXT_PUBLIC_SITE_URL",
    "OPENROUTER_APP_TITLE", "REQUEST_TIMEOUT", "MAX_CONTINUATION_ROUNDS",
    "CONTINUATION_PROMPT", "SELECTION_HEURISTIC", "MAX_CONTEXT_DOCUMENTS",
    "MAX_CHARACTERS_PER_DOCUMENT", "LOG_LEVEL", "EXTRA_VERBOSE",
]


@pytest.fixture
def clean_env():
    """Provide an environment without any configuration variables."""
    with patch.dict(os.environ, {}, clear=False):
        for key in CONFIG_ENV_KEYS:
            os.environ.pop(key, None)
        yield


@pytest.fixture
def mock_env_vars(clean_env):
    """Provide test environment variables."""
    env = {
        "OPENAI_API_KEY": "sk-test-openai-key-12345",
        "OPENROUTER_API_KEY": "sk-or-test-key-12345",
        "REQUEST_TIMEOUT": "30",
        "MAX_CONTINUATION_ROUNDS": "3",
    }
    with patch.dict(os.environ, env, clear=False):
        yield env


# ============================================================================
# Model Fixtures
# ============================================================================

@pytest.fixture
def model_a():
    return ModelProfile(name="ModelA", model_id="model-a", max_tokens=1000, context_window=8000, priority=0)


@pytest.fixture
def model_b():
    return ModelProfile(name="ModelB", model_id="model-b", max_tokens=1000, context_window=8000, priority=1)


@pytest.fixture
def model_c():
    return ModelProfile(name="ModelC", model_id="model-c", max_tokens=1000, context_window=8000, priority=2)


@pytest.fixture
def reasoning_style_profile():
    """Profile using max_completion_tokens and no system role."""
    return ModelProfile(
        name="thinker",
        model_id="thinker-1",
        max_tokens=32000,
        context_window=400000,
        token_param=TokenParam.MAX_COMPLETION_TOKENS,
        reasoning_effort="high",
        verbosity="high",
        supports_system_role=False,
        priority=0,
    )


@pytest.fixture
def history():
    """Short conversation ending with a user question."""
    return [
        ChatMessage(role=Role.SYSTEM, content="You are a careful legal assistant."),
        ChatMessage(role=Role.USER, content="Draft a lease termination notice."),
    ]


# ============================================================================
# OpenAI SDK Mocks
# ============================================================================

@pytest.fixture
def mock_openai_response():
    """Standard OpenAI completion response."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = "Generated text from OpenAI"
    response.choices[0].finish_reason = "stop"
    response.usage = MagicMock()
    response.usage.prompt_tokens = 100
    response.usage.completion_tokens = 50
    response.usage.total_tokens = 150
    return response


@pytest.fixture
def mock_openai_client(mock_openai_response):
    """AsyncOpenAI stand-in whose chat.completions.create returns the standard response."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=mock_openai_response)
    return client
