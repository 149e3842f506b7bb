"""
Continuation engine
===================

Obtains one complete answer from a single (gateway, profile) candidate. When a
round is cut off by the output token limit the engine asks the same model to
continue and stitches the segments together, up to a fixed round budget.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from config import Config, DEFAULT_CONTINUATION_PROMPT
from models import AttemptOutcome, ChatMessage, FinishReason, ModelProfile, Role
from provider_gateway import ProviderGateway

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 5


def build_completion_params(profile: ModelProfile) -> Dict[str, Any]:
    """Generation parameters for a profile, omitting anything it does not define."""
    params: Dict[str, Any] = {}

    if profile.temperature is not None:
        params["temperature"] = profile.temperature

    params[profile.token_param.value] = profile.max_tokens

    if profile.reasoning_effort:
        params["reasoning_effort"] = profile.reasoning_effort
    if profile.verbosity:
        params["verbosity"] = profile.verbosity

    return params


def adapt_messages(profile: ModelProfile, messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    """Copy the outgoing messages, remapping system turns when the profile needs it."""
    if profile.supports_system_role:
        return [dict(message) for message in messages]

    alias = profile.system_role_alias.value
    adapted = []
    for message in messages:
        if message.get("role") == Role.SYSTEM.value:
            adapted.append({**message, "role": alias})
        else:
            adapted.append(dict(message))
    return adapted


class ContinuationEngine:
    """Drives generation rounds against one candidate."""

    def __init__(
        self,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        continuation_prompt: str = DEFAULT_CONTINUATION_PROMPT,
        request_timeout: Optional[float] = None,
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.max_rounds = max_rounds
        self.continuation_prompt = continuation_prompt
        self.request_timeout = request_timeout

    @classmethod
    def from_config(cls, cfg: Config) -> "ContinuationEngine":
        return cls(
            max_rounds=cfg.MAX_CONTINUATION_ROUNDS,
            continuation_prompt=cfg.CONTINUATION_PROMPT,
            request_timeout=cfg.REQUEST_TIMEOUT,
        )

    async def run(
        self,
        gateway: ProviderGateway,
        profile: ModelProfile,
        messages: Sequence[ChatMessage],
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AttemptOutcome:
        """
        Generate a complete answer, continuing truncated rounds.

        A failure in the first round propagates. A failure in any later round
        ends the loop and the text gathered so far is returned.
        """
        started = time.monotonic()
        params = build_completion_params(profile)
        current_messages: List[Dict[str, str]] = [message.as_provider_dict() for message in messages]
        segments: List[str] = []
        total_tokens = 0
        rounds = 0
        finish_reason = FinishReason.STOP

        logger.info(
            "Starting generation with %s (%s), %s=%d",
            profile.name,
            profile.model_id,
            profile.token_param.value,
            profile.max_tokens,
        )

        while rounds < self.max_rounds:
            round_number = rounds + 1
            try:
                result = await gateway.complete(
                    profile.model_id,
                    adapt_messages(profile, current_messages),
                    params,
                    timeout=self.request_timeout,
                    cancel_event=cancel_event,
                )
            except Exception as exc:
                if round_number == 1:
                    raise
                logger.warning(
                    "Continuation round %d/%d failed for %s, returning partial answer: %s",
                    round_number,
                    self.max_rounds,
                    profile.name,
                    exc,
                )
                break

            rounds = round_number
            finish_reason = result.finish_reason
            total_tokens += result.total_tokens
            if result.text:
                segments.append(result.text)

            logger.info(
                "Round %d/%d: %d chars, finish_reason=%s",
                round_number,
                self.max_rounds,
                len(result.text),
                finish_reason.value,
            )

            if finish_reason is not FinishReason.LENGTH:
                break
            if rounds >= self.max_rounds:
                logger.warning(
                    "Reached max continuation rounds (%d) for %s; answer may be incomplete",
                    self.max_rounds,
                    profile.name,
                )
                break

            if result.text:
                current_messages.append({"role": Role.ASSISTANT.value, "content": result.text})
            current_messages.append({"role": Role.USER.value, "content": self.continuation_prompt})

        content = "".join(segments)
        elapsed = time.monotonic() - started
        logger.info(
            "Assembled %d chars from %d round(s), %d tokens in %.2fs",
            len(content),
            rounds,
            total_tokens,
            elapsed,
        )
        return AttemptOutcome(
            content=content,
            rounds=rounds,
            total_tokens=total_tokens,
            finish_reason=finish_reason,
            elapsed_seconds=elapsed,
        )
