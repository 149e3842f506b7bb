"""
Model catalogs and selection policy
===================================

Two immutable catalogs share the ModelProfile shape: the primary-provider
catalog keyed by PrimaryModel and the aggregator catalog keyed by Persona.
The selection policy turns a SelectionRequest into the ordered list of
primary-provider profiles to attempt.
"""

import logging
import re
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Protocol

from models import ModelProfile, Persona, PrimaryModel, SelectionRequest, TokenParam

logger = logging.getLogger(__name__)


DEEP_REASONING_MODEL = PrimaryModel.REASONING
DEEP_REASONING_PERSONA = Persona.THINKING


# Declaration order breaks priority ties
PRIMARY_CATALOG: Mapping[PrimaryModel, ModelProfile] = MappingProxyType({
    PrimaryModel.PRIMARY: ModelProfile(
        name=PrimaryModel.PRIMARY.value,
        model_id="gpt-5",
        max_tokens=32000,
        context_window=400000,
        token_param=TokenParam.MAX_COMPLETION_TOKENS,
        reasoning_effort="medium",
        verbosity="medium",
        priority=1,
        description="GPT-5 balanced between speed and quality",
    ),
    PrimaryModel.REASONING: ModelProfile(
        name=PrimaryModel.REASONING.value,
        model_id="gpt-5",
        max_tokens=32000,
        context_window=400000,
        token_param=TokenParam.MAX_COMPLETION_TOKENS,
        reasoning_effort="high",
        verbosity="high",
        priority=0,
        description="GPT-5 deep analysis mode for complex legal work",
    ),
    PrimaryModel.FALLBACK: ModelProfile(
        name=PrimaryModel.FALLBACK.value,
        model_id="gpt-4.1",
        max_tokens=32000,
        context_window=128000,
        temperature=0.7,
        priority=2,
        description="GPT-4.1 fast and reliable fallback",
    ),
})

AGGREGATOR_CATALOG: Mapping[Persona, ModelProfile] = MappingProxyType({
    Persona.OPENAI: ModelProfile(
        name=Persona.OPENAI.value,
        model_id="openai/gpt-4o",
        max_tokens=16000,
        context_window=128000,
        temperature=0.7,
        priority=0,
        description="GPT-4o through OpenRouter",
    ),
    Persona.ANTHROPIC: ModelProfile(
        name=Persona.ANTHROPIC.value,
        model_id="anthropic/claude-sonnet-4",
        max_tokens=16000,
        context_window=200000,
        temperature=0.7,
        priority=1,
        description="Claude Sonnet 4 through OpenRouter",
    ),
    Persona.GEMINI: ModelProfile(
        name=Persona.GEMINI.value,
        model_id="google/gemini-2.5-pro",
        max_tokens=32000,
        context_window=1000000,
        temperature=0.7,
        priority=2,
        description="Gemini 2.5 Pro through OpenRouter",
    ),
})


class SelectionHeuristic(Protocol):
    """Chooses the primary model from the latest user utterance."""

    def choose(self, latest_user_message: str) -> PrimaryModel:
        ...


class DeepReasoningHeuristic:
    """Current policy: every request goes to the deep reasoning model."""

    def choose(self, latest_user_message: str) -> PrimaryModel:
        return DEEP_REASONING_MODEL


class KeywordHeuristic:
    """
    Content-based selection.

    Long questions, analysis or drafting vocabulary, and explicit requests for
    very long answers go to the deep reasoning model; everything else goes to
    the primary model.
    """

    KEYWORDS = (
        "analyse",
        "analyze",
        "analysis",
        "strategy",
        "risk",
        "prepare",
        "draft",
        "complaint",
        "appeal",
        "claim",
        "motion",
        "petition",
        "justif",
        "argument",
        "evidence",
        "statut",
        "legislat",
        "regulation",
        "judicial",
        "procedur",
        "in detail",
        "detailed",
        "thorough",
        "in depth",
        "at least",
    )
    MIN_QUERY_LENGTH = 200
    MIN_REQUESTED_WORDS = 5000
    _AMOUNT_PATTERN = re.compile(r"(\d+)\s*(words?|tokens?|characters?)")

    def choose(self, latest_user_message: str) -> PrimaryModel:
        text = latest_user_message or ""
        if len(text) > self.MIN_QUERY_LENGTH:
            return DEEP_REASONING_MODEL

        lowered = text.lower()
        if any(keyword in lowered for keyword in self.KEYWORDS):
            return DEEP_REASONING_MODEL

        match = self._AMOUNT_PATTERN.search(lowered)
        if match and int(match.group(1)) >= self.MIN_REQUESTED_WORDS:
            return DEEP_REASONING_MODEL

        return PrimaryModel.PRIMARY


HEURISTICS = {
    "deep_reasoning": DeepReasoningHeuristic,
    "keywords": KeywordHeuristic,
}


def get_heuristic(name: str) -> SelectionHeuristic:
    """Instantiate a selection heuristic by its configuration name."""
    try:
        return HEURISTICS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown selection heuristic '{name}'. Expected one of: {', '.join(sorted(HEURISTICS))}"
        ) from None


def get_primary_profile(model: str) -> ModelProfile:
    """Look up a primary-provider profile by PrimaryModel or its value."""
    return PRIMARY_CATALOG[PrimaryModel(model)]


def get_persona_profile(persona: Optional[str]) -> Optional[ModelProfile]:
    """Aggregator profile for a persona, or None when the persona has none."""
    if not persona:
        return None
    try:
        return AGGREGATOR_CATALOG.get(Persona(persona))
    except ValueError:
        logger.warning("Unknown persona '%s'; ignoring it", persona)
        return None


def resolve_primary(
    request: SelectionRequest,
    heuristic: Optional[SelectionHeuristic] = None,
) -> ModelProfile:
    """Forced model wins, the thinking persona comes next, then the heuristic."""
    if request.force_model:
        return get_primary_profile(request.force_model)
    if request.persona == DEEP_REASONING_PERSONA:
        return PRIMARY_CATALOG[DEEP_REASONING_MODEL]
    chosen = (heuristic or DeepReasoningHeuristic()).choose(request.latest_user_message)
    return PRIMARY_CATALOG[chosen]


def build_fallback_chain(
    primary: ModelProfile,
    catalog: Mapping[Enum, ModelProfile] = PRIMARY_CATALOG,
) -> List[ModelProfile]:
    """All other profiles of the catalog, by ascending priority."""
    remaining = [profile for profile in catalog.values() if profile.name != primary.name]
    return sorted(remaining, key=lambda profile: profile.priority)


def full_chain(
    request: SelectionRequest,
    heuristic: Optional[SelectionHeuristic] = None,
) -> List[ModelProfile]:
    primary = resolve_primary(request, heuristic)
    return [primary, *build_fallback_chain(primary)]
