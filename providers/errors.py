"""
Error taxonomy for the analysis pipeline.

  ConfigurationError — fatal; required credentials are missing
  ProviderError      — one provider attempt failed; always advances the cascade
  ParseError         — reply was not schema JSON; handled inside the interpreter
  ExhaustionError    — every provider failed; handled by offline synthesis

Provider failures are classified from typed transport information (HTTP status
or SDK exception class), never from the wording of provider error messages.
"""
from __future__ import annotations

import enum
from typing import Optional

import openai


class AnalysisError(Exception):
    """Base class for every error raised by the analysis pipeline."""


class ConfigurationError(AnalysisError):
    """Required configuration (e.g. the API key) is absent."""


class FailureKind(str, enum.Enum):
    RATE_LIMITED    = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    UNAVAILABLE     = "unavailable"
    INVALID_MODEL   = "invalid_model"
    TRANSIENT       = "transient"


class ProviderError(AnalysisError):
    """A single provider attempt failed."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        status: Optional[int] = None,
        model: Optional[str] = None,
    ):
        self.kind = kind
        self.status = status
        self.model = model
        prefix = f"[{model}] " if model else ""
        super().__init__(f"{prefix}{message}")


class ParseError(AnalysisError):
    """Provider content could not be read as schema JSON."""


class ExhaustionError(AnalysisError):
    """Every provider in the cascade failed."""

    def __init__(self, last_error: Optional[BaseException] = None):
        self.last_error = last_error
        detail = str(last_error) if last_error else "no providers were tried"
        super().__init__(f"All vision providers failed: {detail}")


_STATUS_KINDS: dict[int, FailureKind] = {
    400: FailureKind.INVALID_MODEL,
    402: FailureKind.QUOTA_EXHAUSTED,
    404: FailureKind.INVALID_MODEL,
    429: FailureKind.RATE_LIMITED,
    500: FailureKind.UNAVAILABLE,
    502: FailureKind.UNAVAILABLE,
    503: FailureKind.UNAVAILABLE,
    504: FailureKind.UNAVAILABLE,
}


def classify_status(status: Optional[int]) -> FailureKind:
    """Map an HTTP status (or an envelope error code) onto a FailureKind."""
    if status is None:
        return FailureKind.TRANSIENT
    return _STATUS_KINDS.get(status, FailureKind.TRANSIENT)


def from_openai_error(exc: openai.OpenAIError, model: Optional[str] = None) -> ProviderError:
    """Convert an exception raised by the openai SDK into a ProviderError."""
    if isinstance(exc, openai.APIStatusError):
        return ProviderError(
            classify_status(exc.status_code),
            f"API request failed: {exc.status_code} - {exc.message}",
            status=exc.status_code,
            model=model,
        )
    if isinstance(exc, openai.APITimeoutError):
        return ProviderError(FailureKind.UNAVAILABLE, "Request timed out", model=model)
    if isinstance(exc, openai.APIConnectionError):
        return ProviderError(FailureKind.UNAVAILABLE, f"Connection error: {exc}", model=model)
    return ProviderError(FailureKind.TRANSIENT, str(exc), model=model)
