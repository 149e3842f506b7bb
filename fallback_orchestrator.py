"""
Fallback Orchestrator
=====================

Entry point of the completion core. For each chat request it builds a
two-stage CandidateChain (an optional single persona candidate served by the
aggregator, then the full primary-provider chain) and walks it strictly in
order until one candidate produces an answer.

A candidate failure is classified: retryable failures advance to the next
candidate, anything else ends the request. A persona failure of any kind
falls through to the primary stage.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from config import Config
from continuation_engine import ContinuationEngine, adapt_messages, build_completion_params
from conversation import latest_user_message
from error_classifier import ClassifiedFailure, FailureKind, classify
from logging_utils import Phase, PhaseLogger, create_phase_logger
from model_catalog import (
    SelectionHeuristic,
    full_chain,
    get_heuristic,
    get_persona_profile,
    get_primary_profile,
)
from models import (
    AIResponse,
    ChatMessage,
    GenerateOptions,
    ModelProfile,
    PrimaryModel,
    ProviderId,
    SelectionRequest,
)
from provider_gateway import ProviderGateway, build_gateways

logger = logging.getLogger(__name__)


class ChainStage(str, Enum):
    PERSONA = "persona"
    PRIMARY = "primary"


class OrchestratorState(str, Enum):
    """Lifecycle of one generate() call"""
    NOT_STARTED = "not_started"
    TRYING_CANDIDATE = "trying_candidate"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Candidate:
    """One (provider, profile) pair eligible to answer a request"""
    provider: ProviderId
    profile: ModelProfile
    stage: ChainStage = ChainStage.PRIMARY

    @property
    def key(self) -> Tuple[ProviderId, str]:
        return self.provider, self.profile.name

    def describe(self) -> str:
        return f"{self.profile.name} ({self.profile.model_id}) via {self.provider.value}"


class CandidateChain(Sequence):
    """Ordered, de-duplicated, never empty sequence of candidates."""

    def __init__(self, candidates: Iterable[Candidate]):
        unique = []
        seen = set()
        for candidate in candidates:
            if candidate.key in seen:
                continue
            seen.add(candidate.key)
            unique.append(candidate)
        if not unique:
            raise ValueError("A candidate chain needs at least one candidate")
        self._candidates: Tuple[Candidate, ...] = tuple(unique)

    def __getitem__(self, index):
        return self._candidates[index]

    def __len__(self) -> int:
        return len(self._candidates)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._candidates)

    def __repr__(self) -> str:
        return f"CandidateChain({[candidate.describe() for candidate in self._candidates]})"

    @property
    def has_persona_stage(self) -> bool:
        return self._candidates[0].stage is ChainStage.PERSONA


class GenerationFailedError(RuntimeError):
    """Raised when no candidate of the chain produced an answer."""

    def __init__(
        self,
        reason: str,
        *,
        kind: FailureKind = FailureKind.UNKNOWN,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        attempts: int = 0,
        cause: Optional[BaseException] = None,
    ):
        message = f"Generation failed after {attempts} candidate(s)"
        if provider or model:
            message += f" (last: {model or 'unknown model'} via {provider or 'unknown provider'})"
        message += f": {reason}"
        super().__init__(message)
        self.reason = reason
        self.kind = kind
        self.provider = provider
        self.model = model
        self.attempts = attempts
        self.cause = cause


class FallbackOrchestrator:
    """Drives the ContinuationEngine across a CandidateChain."""

    def __init__(
        self,
        gateways: Mapping[ProviderId, ProviderGateway],
        engine: Optional[ContinuationEngine] = None,
        heuristic: Optional[SelectionHeuristic] = None,
        extra_verbose: bool = False,
    ):
        if ProviderId.OPENAI not in gateways:
            raise ValueError("A primary provider gateway is required")
        self.gateways = dict(gateways)
        self.engine = engine or ContinuationEngine()
        self.heuristic = heuristic
        self.extra_verbose = extra_verbose

    @classmethod
    def from_config(cls, cfg: Config) -> "FallbackOrchestrator":
        return cls(
            build_gateways(cfg),
            engine=ContinuationEngine.from_config(cfg),
            heuristic=get_heuristic(cfg.SELECTION_HEURISTIC),
            extra_verbose=cfg.EXTRA_VERBOSE,
        )

    @property
    def personas_enabled(self) -> bool:
        return ProviderId.OPENROUTER in self.gateways

    def build_chain(self, request: SelectionRequest) -> CandidateChain:
        candidates = []

        if self.personas_enabled:
            persona_profile = get_persona_profile(request.persona)
            if persona_profile is not None:
                candidates.append(Candidate(ProviderId.OPENROUTER, persona_profile, ChainStage.PERSONA))
        elif request.persona:
            logger.info("Persona '%s' requested but no aggregator is configured", request.persona.value)

        for profile in full_chain(request, self.heuristic):
            candidates.append(Candidate(ProviderId.OPENAI, profile, ChainStage.PRIMARY))

        return CandidateChain(candidates)

    @staticmethod
    def _transition(
        phase_logger: PhaseLogger,
        state: OrchestratorState,
        detail: str = "",
    ) -> None:
        suffix = f" ({detail})" if detail else ""
        phase_logger.debug(f"[{phase_logger.request_id}] state -> {state.value}{suffix}")

    async def generate(
        self,
        history: Sequence[ChatMessage],
        options: Optional[GenerateOptions] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
        request_id: Optional[str] = None,
    ) -> AIResponse:
        """
        Produce one complete answer for the conversation.

        Raises:
            ValueError: the history is empty
            GenerationFailedError: the chain was exhausted, or a candidate
                failed in a way that would fail identically everywhere
        """
        if not history:
            raise ValueError("Conversation history is empty")

        options = options or GenerateOptions()
        request = SelectionRequest(
            messages=list(history),
            latest_user_message=(
                options.latest_user_message
                if options.latest_user_message is not None
                else latest_user_message(history)
            ),
            force_model=options.force_model,
            persona=options.persona,
        )

        phase_logger = create_phase_logger(
            request_id or uuid.uuid4().hex[:8],
            verbose=self.extra_verbose,
            extra_verbose=self.extra_verbose,
        )
        started = time.monotonic()

        with phase_logger.phase(Phase.SELECTION):
            chain = self.build_chain(request)
            phase_logger.info(
                f"{len(chain)} candidate(s): " + ", ".join(candidate.describe() for candidate in chain)
            )
            if chain.has_persona_stage:
                phase_logger.info(f"Persona {chain[0].profile.name} is tried once before the primary chain")

        self._transition(phase_logger, OrchestratorState.NOT_STARTED)
        last_failure: Optional[ClassifiedFailure] = None

        for index, candidate in enumerate(chain):
            self._transition(phase_logger, OrchestratorState.TRYING_CANDIDATE, f"candidate {index + 1}")
            is_last = index == len(chain) - 1
            gateway = self.gateways[candidate.provider]

            with phase_logger.phase(Phase.GENERATION, sub_label=f"{index + 1}/{len(chain)} {candidate.describe()}"):
                phase_logger.log_prompt(
                    candidate.profile.model_id,
                    adapt_messages(candidate.profile, [m.as_provider_dict() for m in history]),
                    **build_completion_params(candidate.profile),
                )
                try:
                    outcome = await self.engine.run(
                        gateway,
                        candidate.profile,
                        history,
                        cancel_event=cancel_event,
                    )
                except Exception as exc:
                    failure = classify(exc)
                    last_failure = failure
                    phase_logger.warning(
                        f"{candidate.describe()} failed ({failure.kind.value}, "
                        f"retryable={failure.retryable}): {failure.reason}"
                    )

                    falls_through = candidate.stage is ChainStage.PERSONA
                    if is_last or not (failure.retryable or falls_through):
                        self._transition(phase_logger, OrchestratorState.FAILED)
                        phase_logger.log_decision("FAILED", failure.reason)
                        phase_logger.error(f"No candidate answered request {phase_logger.request_id}")
                        raise GenerationFailedError(
                            failure.reason,
                            kind=failure.kind,
                            provider=candidate.provider.value,
                            model=candidate.profile.name,
                            attempts=index + 1,
                            cause=exc,
                        ) from exc

                    with phase_logger.phase(Phase.FALLBACK, sub_label=chain[index + 1].describe()):
                        phase_logger.log_decision("ADVANCE", failure.reason)
                    continue

            self._transition(phase_logger, OrchestratorState.SUCCEEDED)
            response_time_ms = int((time.monotonic() - started) * 1000)

            with phase_logger.phase(Phase.COMPLETION):
                response = AIResponse(
                    content=outcome.content,
                    model_used=candidate.profile.name,
                    fallback_occurred=index > 0,
                    fallback_reason=last_failure.reason if index > 0 and last_failure else None,
                    chunks_count=outcome.rounds,
                    total_tokens=outcome.total_tokens,
                    finish_reason=outcome.finish_reason,
                    response_time_ms=response_time_ms,
                    provider=candidate.provider,
                )
                if response.fallback_occurred:
                    phase_logger.info(f"Answered by fallback candidate after: {response.fallback_reason}")
                phase_logger.log_decision("SUCCEEDED")
                phase_logger.log_response(
                    candidate.profile.model_id,
                    response.content,
                    metadata={
                        "rounds": response.chunks_count,
                        "tokens": response.total_tokens,
                        "finish_reason": response.finish_reason.value,
                        "response_time_ms": response_time_ms,
                    },
                )
            phase_logger.log_timing_summary()
            return response

        # CandidateChain is never empty and the last candidate always returns or raises
        raise AssertionError("unreachable")

    async def generate_simple(
        self,
        history: Sequence[ChatMessage],
        model: str = PrimaryModel.PRIMARY,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """Single round on one primary model: no continuation, no fallback."""
        if not history:
            raise ValueError("Conversation history is empty")

        profile = get_primary_profile(model)
        gateway = self.gateways[ProviderId.OPENAI]
        result = await gateway.complete(
            profile.model_id,
            adapt_messages(profile, [message.as_provider_dict() for message in history]),
            build_completion_params(profile),
            timeout=self.engine.request_timeout,
            cancel_event=cancel_event,
        )
        return result.text
