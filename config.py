"""
Central configuration — reads from the environment / .env file.

Nothing in the pipeline reads the environment directly: AnalyzerConfig is
built once (usually via AnalyzerConfig.from_env()) and passed to HairAnalyzer,
so tests can construct it explicitly without touching os.environ.

Environment variables:
  OPENROUTER_API_KEY     required — key for https://openrouter.ai
  HAIR_MODELS            optional — comma-separated vision cascade, in priority order
  HAIR_TEXT_MODELS       optional — comma-separated text cascade for progress comparison
  CONSISTENCY_ATTEMPTS   optional — repeat attempts per provider (default 2)
  VARIANCE_THRESHOLD     optional — max score gap before averaging is abandoned (default 10)

Per-model enable/disable (all default to true), e.g.:
  ENABLE_OPENAI_GPT_4O_MINI=false
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from providers.base import ProviderDescriptor

load_dotenv()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

# Vision cascade, in order of preference (free tiers first)
DEFAULT_MODELS: tuple[str, ...] = (
    "qwen/qwen2.5-vl-3b-instruct:free",
    "qwen/qwen2.5-vl-32b-instruct:free",
    "openai/gpt-4o-mini",
    "anthropic/claude-3-haiku",
    "google/gemini-pro-1.5",
    "google/gemini-flash-1.5",
    "meta-llama/llama-3.1-8b-instruct:free",   # text-only, last resort
)

DEFAULT_TEXT_MODELS: tuple[str, ...] = (
    "meta-llama/llama-3.1-8b-instruct:free",
    "microsoft/phi-3.5-128k-instruct:free",
    "qwen/qwen2.5-7b-instruct:free",
    "google/gemini-flash-1.5:free",
    "anthropic/claude-3-haiku:free",
)

CONNECTION_TEST_MODELS: tuple[str, ...] = (
    "qwen/qwen2.5-vl-32b-instruct:free",
    "openai/gpt-4o-mini",
    "anthropic/claude-3-haiku",
)

# Substrings that mark a model as text-only; used only to order descriptors
_TEXT_ONLY_HINTS = ("llama-3.1", "phi-3", "qwen2.5-7b")


@dataclass(frozen=True)
class CascadeSettings:
    consistency_attempts: int = 2
    variance_threshold: int = 10
    max_tokens: int = 1500
    temperature: float = 0.1


@dataclass(frozen=True)
class AnalyzerConfig:
    api_key: Optional[str]
    models: tuple[str, ...] = DEFAULT_MODELS
    text_models: tuple[str, ...] = DEFAULT_TEXT_MODELS
    connection_test_models: tuple[str, ...] = CONNECTION_TEST_MODELS
    base_url: str = OPENROUTER_BASE_URL
    app_title: str = "Hairmama"
    referer: str = "https://hairmama.app"
    settings: CascadeSettings = field(default_factory=CascadeSettings)

    @classmethod
    def from_env(cls) -> "AnalyzerConfig":
        settings = CascadeSettings(
            consistency_attempts=int(os.getenv("CONSISTENCY_ATTEMPTS", "2")),
            variance_threshold=int(os.getenv("VARIANCE_THRESHOLD", "10")),
        )
        return cls(
            api_key=os.getenv("OPENROUTER_API_KEY") or None,
            models=_split_env("HAIR_MODELS") or DEFAULT_MODELS,
            text_models=_split_env("HAIR_TEXT_MODELS") or DEFAULT_TEXT_MODELS,
            app_title=os.getenv("APP_TITLE", "Hairmama"),
            referer=os.getenv("APP_REFERER", "https://hairmama.app"),
            settings=settings,
        )

    def model_descriptors(self) -> list[ProviderDescriptor]:
        """Descriptors for every enabled vision model, in cascade order."""
        enabled = [m for m in self.models if _model_enabled(model_env_flag(m))]
        return [
            ProviderDescriptor(
                model_id=model,
                priority=i,
                vision=not any(hint in model for hint in _TEXT_ONLY_HINTS),
            )
            for i, model in enumerate(enabled)
        ]


def _split_env(env_key: str) -> tuple[str, ...]:
    raw = os.getenv(env_key, "")
    return tuple(x.strip() for x in raw.split(",") if x.strip())


def model_env_flag(model_id: str) -> str:
    """'openai/gpt-4o-mini' → 'ENABLE_OPENAI_GPT_4O_MINI'"""
    return "ENABLE_" + re.sub(r"[^A-Z0-9]+", "_", model_id.upper()).strip("_")


def _model_enabled(env_key: str, default: bool = True) -> bool:
    """
    Check whether a specific model is enabled via an environment variable.
    Default is True for most models; pass default=False to require explicit opt-in.
    """
    raw = os.getenv(env_key, "true" if default else "false")
    return raw.strip().lower() not in ("false", "0", "no")
