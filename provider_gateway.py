"""
Provider gateways
=================

A ProviderGateway performs exactly one chat completion call and either
returns a CompletionResult or raises a tagged ProviderError. Both supported
providers speak the OpenAI chat completions API, so a single adapter over
openai.AsyncOpenAI serves them; only the client construction differs.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import openai

from config import Config
from error_classifier import FailureKind, ProviderError
from models import CompletionResult, FinishReason, ProviderId

logger = logging.getLogger(__name__)


class ProviderGateway(ABC):
    """One provider, one network call per complete()."""

    provider: ProviderId

    @abstractmethod
    async def complete(
        self,
        model_id: str,
        messages: List[Dict[str, str]],
        params: Dict[str, Any],
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CompletionResult:
        """Create one chat completion."""


def _normalize_total_tokens(usage_obj: Any) -> int:
    """Extract the total token count from a provider usage object."""
    if usage_obj is None:
        return 0

    def _pluck(*names: str) -> Optional[int]:
        for name in names:
            if isinstance(usage_obj, dict) and usage_obj.get(name) is not None:
                return usage_obj[name]
            value = getattr(usage_obj, name, None)
            if value is not None:
                return value
        return None

    total = _pluck("total_tokens")
    if total is None:
        total = (_pluck("prompt_tokens", "input_tokens") or 0) + (
            _pluck("completion_tokens", "output_tokens") or 0
        )
    try:
        return int(total)
    except (TypeError, ValueError):
        return 0


class OpenAICompatibleGateway(ProviderGateway):
    """Gateway over an injected openai.AsyncOpenAI client."""

    def __init__(self, provider: ProviderId, client: Any, default_timeout: Optional[float] = None):
        self.provider = provider
        self.client = client
        self.default_timeout = default_timeout

    async def complete(
        self,
        model_id: str,
        messages: List[Dict[str, str]],
        params: Dict[str, Any],
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CompletionResult:
        effective_timeout = timeout if timeout and timeout > 0 else self.default_timeout
        request_params: Dict[str, Any] = {"model": model_id, "messages": messages, **params}
        if effective_timeout:
            request_params["timeout"] = effective_timeout

        try:
            response = await self._call(request_params, effective_timeout, cancel_event)
        except ProviderError:
            raise
        except openai.APITimeoutError as exc:
            raise ProviderError(
                f"Request timeout: {exc}",
                kind=FailureKind.TIMEOUT,
                code="timeout",
                provider=self.provider.value,
                model=model_id,
            ) from exc
        except openai.APIStatusError as exc:
            raise ProviderError.from_fields(
                exc.message,
                status=exc.status_code,
                code=exc.code,
                error_type=exc.type,
                provider=self.provider.value,
                model=model_id,
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderError(
                f"Provider unavailable: {exc}",
                kind=FailureKind.SERVER_ERROR,
                provider=self.provider.value,
                model=model_id,
            ) from exc
        except openai.APIError as exc:
            raise ProviderError.from_fields(
                exc.message,
                code=exc.code,
                error_type=exc.type,
                provider=self.provider.value,
                model=model_id,
            ) from exc
        except asyncio.TimeoutError as exc:
            raise ProviderError(
                f"Request timeout after {effective_timeout}s",
                kind=FailureKind.TIMEOUT,
                code="timeout",
                provider=self.provider.value,
                model=model_id,
            ) from exc

        return self._parse_response(response, model_id)

    async def _call(
        self,
        request_params: Dict[str, Any],
        timeout: Optional[float],
        cancel_event: Optional[asyncio.Event],
    ) -> Any:
        if cancel_event is None:
            return await asyncio.wait_for(self.client.chat.completions.create(**request_params), timeout)
        if cancel_event.is_set():
            raise self._cancelled_error(request_params.get("model"))

        call = asyncio.ensure_future(self.client.chat.completions.create(**request_params))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {call, waiter},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            call.cancel()
            raise
        finally:
            waiter.cancel()

        if call in done:
            return call.result()

        call.cancel()
        if waiter in done:
            raise self._cancelled_error(request_params.get("model"))
        raise asyncio.TimeoutError()

    def _cancelled_error(self, model_id: Optional[str]) -> ProviderError:
        return ProviderError(
            "Request cancelled (treated as timeout)",
            kind=FailureKind.TIMEOUT,
            code="timeout",
            provider=self.provider.value,
            model=model_id,
        )

    def _parse_response(self, response: Any, model_id: str) -> CompletionResult:
        choices = getattr(response, "choices", None)
        if not choices:
            # OpenRouter reports upstream failures inside a 200 body
            error = getattr(response, "error", None)
            if isinstance(error, dict):
                raise ProviderError.from_fields(
                    error.get("message"),
                    status=error.get("code") if isinstance(error.get("code"), int) else None,
                    code=error.get("code") if isinstance(error.get("code"), str) else None,
                    provider=self.provider.value,
                    model=model_id,
                )
            raise ProviderError(
                "Provider returned no choices (server error)",
                kind=FailureKind.SERVER_ERROR,
                provider=self.provider.value,
                model=model_id,
            )

        choice = choices[0]
        message = getattr(choice, "message", None)
        text = (getattr(message, "content", None) if message is not None else None) or ""
        finish_reason = FinishReason.from_provider(getattr(choice, "finish_reason", None))
        total_tokens = _normalize_total_tokens(getattr(response, "usage", None))

        logger.debug(
            "[%s] %s returned %d chars, finish_reason=%s, tokens=%d",
            self.provider.value,
            model_id,
            len(text),
            finish_reason.value,
            total_tokens,
        )
        return CompletionResult(text=text, finish_reason=finish_reason, total_tokens=total_tokens)


def create_openai_gateway(cfg: Config) -> Optional[OpenAICompatibleGateway]:
    """Primary provider gateway, or None when no key is configured."""
    if not cfg.OPENAI_API_KEY:
        logger.warning("OpenAI API key not found")
        return None

    client = openai.AsyncOpenAI(
        api_key=cfg.OPENAI_API_KEY,
        base_url=cfg.openai_base_url(),
        timeout=cfg.REQUEST_TIMEOUT,
        max_retries=0,  # each candidate is attempted exactly once
    )
    return OpenAICompatibleGateway(ProviderId.OPENAI, client, default_timeout=cfg.REQUEST_TIMEOUT)


def create_openrouter_gateway(cfg: Config) -> Optional[OpenAICompatibleGateway]:
    """Aggregator gateway, or None when OpenRouter is not configured."""
    if not cfg.openrouter_enabled:
        logger.warning("OpenRouter API key not found, personas will use the primary provider")
        return None

    client = openai.AsyncOpenAI(
        api_key=cfg.OPENROUTER_API_KEY,
        base_url=cfg.OPENROUTER_BASE_URL,
        timeout=cfg.REQUEST_TIMEOUT,
        max_retries=0,
        default_headers={
            "HTTP-Referer": cfg.OPENROUTER_SITE_URL,
            "X-Title": cfg.OPENROUTER_APP_TITLE,
        },
    )
    logger.info("OpenRouter client initialized for persona models")
    return OpenAICompatibleGateway(ProviderId.OPENROUTER, client, default_timeout=cfg.REQUEST_TIMEOUT)


def build_gateways(cfg: Config) -> Dict[ProviderId, ProviderGateway]:
    """Construct every configured gateway, keyed by provider."""
    gateways: Dict[ProviderId, ProviderGateway] = {}
    for factory in (create_openai_gateway, create_openrouter_gateway):
        gateway = factory(cfg)
        if gateway is not None:
            gateways[gateway.provider] = gateway
    return gateways
