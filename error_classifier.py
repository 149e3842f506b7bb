"""
Error classification for provider failures
==========================================

Provider failures are tagged once, at the gateway boundary, with a
FailureKind. The classifier is a total mapping from kind to a fallback
verdict: retryable kinds move the orchestrator to the next candidate, the
rest propagate to the caller.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional


FALLBACK_ERROR_CODES = frozenset({
    "rate_limit_exceeded",
    "insufficient_quota",
    "server_error",
    "timeout",
    "model_not_found",
    "invalid_request_error",
})

UNKNOWN_ERROR_REASON = "Unknown error"


class FailureKind(str, Enum):
    """Closed set of provider failure tags"""
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    MODEL_NOT_FOUND = "model_not_found"
    INVALID_REQUEST = "invalid_request"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({
    FailureKind.RATE_LIMITED,
    FailureKind.QUOTA_EXCEEDED,
    FailureKind.SERVER_ERROR,
    FailureKind.TIMEOUT,
    FailureKind.MODEL_NOT_FOUND,
    FailureKind.INVALID_REQUEST,
})

_CODE_KINDS = {
    "rate_limit_exceeded": FailureKind.RATE_LIMITED,
    "insufficient_quota": FailureKind.QUOTA_EXCEEDED,
    "server_error": FailureKind.SERVER_ERROR,
    "timeout": FailureKind.TIMEOUT,
    "model_not_found": FailureKind.MODEL_NOT_FOUND,
    "invalid_request_error": FailureKind.INVALID_REQUEST,
}

# Checked in order; first match wins
_MESSAGE_MARKERS = (
    ("rate limit", FailureKind.RATE_LIMITED),
    ("quota", FailureKind.QUOTA_EXCEEDED),
    ("timeout", FailureKind.TIMEOUT),
    ("server error", FailureKind.SERVER_ERROR),
    ("unavailable", FailureKind.SERVER_ERROR),
)


def infer_failure_kind(status: Optional[int], message: Optional[str], *codes: Optional[str]) -> FailureKind:
    """
    Tag a raw provider failure.

    Rules in priority order: a known provider error code, then HTTP status
    (429 or >= 500), then transient markers in the message. Anything else is
    REJECTED when the provider answered with a status, UNKNOWN otherwise.
    """
    for code in codes:
        if code and code in _CODE_KINDS:
            return _CODE_KINDS[code]

    if status is not None:
        if status == 429:
            return FailureKind.RATE_LIMITED
        if status >= 500:
            return FailureKind.SERVER_ERROR

    lowered = (message or "").lower()
    for marker, kind in _MESSAGE_MARKERS:
        if marker in lowered:
            return kind

    if status is not None:
        return FailureKind.REJECTED
    return FailureKind.UNKNOWN


def _coerce_status(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ProviderError(RuntimeError):
    """Raised by a ProviderGateway when a provider call fails."""

    def __init__(
        self,
        message: str,
        *,
        kind: FailureKind,
        code: Optional[str] = None,
        status: Optional[int] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.code = code
        self.status = status
        self.provider = provider
        self.model = model

    @classmethod
    def from_fields(
        cls,
        message: Optional[str],
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        error_type: Optional[str] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ) -> "ProviderError":
        kind = infer_failure_kind(status, message, code, error_type)
        return cls(
            message or "",
            kind=kind,
            code=code or error_type,
            status=status,
            provider=provider,
            model=model,
        )

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ProviderError":
        """Tag a failure that did not come through a gateway."""
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            return cls(str(exc) or "Request timeout", kind=FailureKind.TIMEOUT, code="timeout")

        status = _coerce_status(getattr(exc, "status", None) or getattr(exc, "status_code", None))
        code = getattr(exc, "code", None)
        error_type = getattr(exc, "type", None)
        message = getattr(exc, "message", None) or str(exc)
        return cls.from_fields(
            message,
            status=status,
            code=code if isinstance(code, str) else None,
            error_type=error_type if isinstance(error_type, str) else None,
        )

    def __repr__(self) -> str:
        return (
            f"ProviderError(kind={self.kind.value!r}, status={self.status!r}, "
            f"code={self.code!r}, message={self.message!r})"
        )


@dataclass(frozen=True)
class ClassifiedFailure:
    """Verdict on one failure, consumed within a single orchestrator step"""
    error: BaseException
    kind: FailureKind
    retryable: bool
    reason: str


def describe_failure(error: BaseException) -> str:
    """Human readable reason: message, else code, else a generic string."""
    message = getattr(error, "message", None) or str(error)
    if message:
        return message
    code = getattr(error, "code", None)
    if code:
        return str(code)
    return UNKNOWN_ERROR_REASON


def classify(error: BaseException) -> ClassifiedFailure:
    """Decide whether a failure justifies trying the next candidate."""
    tagged = error if isinstance(error, ProviderError) else ProviderError.from_exception(error)
    return ClassifiedFailure(
        error=error,
        kind=tagged.kind,
        retryable=tagged.kind in RETRYABLE_KINDS,
        reason=describe_failure(tagged),
    )
