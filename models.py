"""
Data Models for the Completion Orchestration Core
=================================================

Pydantic models for chat messages, model profiles, selection requests and the
final AI response, plus the plain dataclasses exchanged between the engine
layers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

import json_utils as json


class Role(str, Enum):
    """Chat roles understood by OpenAI-compatible providers"""
    SYSTEM = "system"
    DEVELOPER = "developer"
    USER = "user"
    ASSISTANT = "assistant"


class FinishReason(str, Enum):
    """Why a generation round ended"""
    STOP = "stop"
    LENGTH = "length"
    OTHER = "other"

    @classmethod
    def from_provider(cls, value: Optional[str]) -> "FinishReason":
        # Providers omitting finish_reason are treated as a natural stop
        if value is None or value == "stop":
            return cls.STOP
        if value == "length":
            return cls.LENGTH
        return cls.OTHER


class ProviderId(str, Enum):
    """Providers the orchestrator can route to"""
    OPENAI = "openai"
    OPENROUTER = "openrouter"


class TokenParam(str, Enum):
    """Name of the output token limit parameter expected by a model"""
    MAX_TOKENS = "max_tokens"
    MAX_COMPLETION_TOKENS = "max_completion_tokens"


class PrimaryModel(str, Enum):
    """Logical models served by the primary provider"""
    PRIMARY = "primary"
    REASONING = "reasoning"
    FALLBACK = "fallback"


class Persona(str, Enum):
    """User-selectable personas; all but THINKING are served by the aggregator"""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    THINKING = "thinking"


EffortLevel = Literal["low", "medium", "high"]


class ChatMessage(BaseModel):
    """A single role/content pair of the conversation"""
    role: Role
    content: str

    def as_provider_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class ContextDocument(BaseModel):
    """Supplementary document text supplied alongside a chat turn"""
    id: str
    name: Optional[str] = None
    text: str = ""


class ModelProfile(BaseModel):
    """Immutable configuration of one logical model"""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    name: str = Field(..., description="Logical name used in responses and logs")
    model_id: str = Field(..., description="Concrete model identifier sent to the provider")
    max_tokens: int = Field(..., gt=0, description="Maximum output tokens per round")
    context_window: int = Field(..., gt=0, description="Context window size in tokens")
    temperature: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Sampling temperature; None means the provider default",
    )
    token_param: TokenParam = Field(default=TokenParam.MAX_TOKENS)
    reasoning_effort: Optional[EffortLevel] = None
    verbosity: Optional[EffortLevel] = None
    supports_system_role: bool = Field(default=True)
    system_role_alias: Role = Field(
        default=Role.DEVELOPER,
        description="Role used for system messages when the system role is unsupported",
    )
    priority: int = Field(..., description="Lower values are preferred")
    description: str = ""


class GenerateOptions(BaseModel):
    """Per-call options for FallbackOrchestrator.generate"""
    latest_user_message: Optional[str] = Field(
        default=None,
        description="Utterance used for heuristic selection; defaults to the last history message",
    )
    force_model: Optional[PrimaryModel] = Field(default=None, description="Primary model forced by the caller")
    persona: Optional[Persona] = Field(default=None, description="Persona chosen by the user")


class SelectionRequest(BaseModel):
    """Everything the selection policy needs for one chat turn"""
    messages: List[ChatMessage] = Field(default_factory=list)
    latest_user_message: str = ""
    force_model: Optional[PrimaryModel] = None
    persona: Optional[Persona] = None


@dataclass(frozen=True)
class CompletionResult:
    """Result of a single provider call"""
    text: str
    finish_reason: FinishReason
    total_tokens: int = 0


@dataclass(frozen=True)
class AttemptOutcome:
    """Assembled answer produced by one candidate"""
    content: str
    rounds: int
    total_tokens: int
    finish_reason: FinishReason
    elapsed_seconds: float


class AIResponse(BaseModel):
    """Final answer returned to the caller, with provenance metadata"""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        protected_namespaces=(),
    )

    content: str
    model_used: str
    fallback_occurred: bool = False
    fallback_reason: Optional[str] = None
    chunks_count: int = Field(..., ge=0, description="Generation rounds used by the answering candidate")
    total_tokens: int = Field(default=0, ge=0)
    finish_reason: FinishReason
    response_time_ms: int = Field(..., ge=0)
    provider: ProviderId

    def as_dict(self) -> Dict[str, Any]:
        """camelCase, JSON-ready representation"""
        return self.model_dump(by_alias=True, mode="json")

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.as_dict(), indent=indent)
