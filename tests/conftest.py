"""
Shared pytest fixtures.

Providers are MagicMock(spec=VisionProvider) objects whose complete()/chat()
are AsyncMocks driven by a list of replies: a str is returned as the raw
model reply, an exception instance is raised.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# ── Make the project root importable without installing the package ────────────
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import AnalyzerConfig, CascadeSettings  # noqa: E402
from providers.base import ImageUpload, VisionProvider  # noqa: E402
from providers.errors import FailureKind, ProviderError  # noqa: E402


def _scripted(replies: list):
    """Replay replies in order; once used up, fail like an unavailable provider."""
    queue = list(replies)

    async def _next(*_args, **_kwargs):
        if not queue:
            raise ProviderError(FailureKind.UNAVAILABLE, "no scripted reply left")
        reply = queue.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    return _next


def make_provider(model: str, replies: list | None = None) -> VisionProvider:
    p = MagicMock(spec=VisionProvider)
    p.name = "openrouter"
    p.model_id = model
    p.full_name = model
    p.complete = AsyncMock(side_effect=_scripted(replies or []))
    p.chat = AsyncMock(side_effect=_scripted(replies or []))
    return p


def success_json(score: int, **overrides) -> str:
    payload = {
        "isHairImage": True,
        "healthScore": score,
        "condition": "Good",
        "details": {
            "texture": "Medium",
            "thickness": "Normal",
            "curlPattern": "Wavy",
            "moisture": "Balanced",
            "shine": "Moderate",
            "color": "Natural",
            "colorCondition": "Vibrant",
            "length": "Long",
            "growthStage": "Healthy",
            "damage": "Low",
            "damageTypes": ["Frizz"],
            "scalpHealth": "Good",
            "scalpIssues": [],
            "density": "Normal",
            "volume": "High",
        },
        "insights": {"textureInsights": "Soft medium strands."},
        "recommendations": {"immediate": ["Deep condition weekly"]},
        "analysis": "Healthy wavy hair.",
    }
    payload.update(overrides)
    return json.dumps(payload)


REJECTION_JSON = json.dumps({
    "isHairImage": False,
    "detectedContent": "Blurry image",
    "message": "This image is too blurry or unclear for accurate analysis.",
})


def unavailable(model: str = "m") -> ProviderError:
    return ProviderError(FailureKind.UNAVAILABLE, "API request failed: 503", status=503, model=model)


@pytest.fixture
def image() -> ImageUpload:
    return ImageUpload(data=b"\xff\xd8\xff" + b"\x00" * 600_000, filename="my_hair.jpg")


@pytest.fixture
def config() -> AnalyzerConfig:
    return AnalyzerConfig(
        api_key="sk-or-test",
        models=("vision/a", "vision/b"),
        text_models=("text/a", "text/b"),
        settings=CascadeSettings(),
    )
