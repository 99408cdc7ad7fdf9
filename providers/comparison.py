"""
Helpers for the progress-comparison feature: a text-only request comparing two
earlier analyses, the insight extractor for its reply, and the offline
comparison used when no text model answers.
"""
from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from providers.base import COMPARISON_SYSTEM_PROMPT

OFFLINE_COMPARISON_MODEL = "offline-fallback"

_BULLET_RE = re.compile(r"^[•\-\*]\s")
_NUMBERED_RE = re.compile(r"^\d+\.\s")
_SENTENCE_RE = re.compile(r"^[A-Z][^.!?]*[.!?]$")


@dataclass
class ComparisonContext:
    photo1_url: Optional[str] = None
    photo2_url: Optional[str] = None
    photo1_analysis: Optional[dict[str, Any]] = None
    photo2_analysis: Optional[dict[str, Any]] = None


@dataclass
class ComparisonResult:
    insights: list[str]
    raw_response: str
    model_name: str
    is_offline: bool = False
    message: Optional[str] = field(default=None)


def build_comparison_messages(
    prompt: str,
    context: Optional[ComparisonContext] = None,
) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = [
        {"role": "system", "content": COMPARISON_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
    if context and (context.photo1_analysis or context.photo2_analysis):
        messages.append({
            "role": "user",
            "content": (
                "Additional context:\n"
                f"Photo 1 Analysis: {json.dumps(context.photo1_analysis, indent=2)}\n"
                f"Photo 2 Analysis: {json.dumps(context.photo2_analysis, indent=2)}\n\n"
                "Please incorporate this analysis data into your comparison insights."
            ),
        })
    return messages


def extract_insights_from_text(text: str) -> list[str]:
    """Bullet points, numbered items or whole-sentence lines; else the first sentences."""
    insights: list[str] = []
    for line in text.split("\n"):
        trimmed = line.strip()
        if _BULLET_RE.match(trimmed) or _NUMBERED_RE.match(trimmed) or _SENTENCE_RE.match(trimmed):
            insights.append(_NUMBERED_RE.sub("", _BULLET_RE.sub("", trimmed)))

    if not insights:
        sentences = [s.strip() for s in re.split(r"[.!?]+", text) if len(s.strip()) > 10]
        insights.extend(sentences[:5])

    return [i for i in insights if i.strip()]


def _delta_insight(label: str, diff: float, improve_when_positive: bool) -> str:
    magnitude = round(abs(diff))
    if diff == 0:
        return f"{label.capitalize()} levels remained stable"
    improving = (diff > 0) == improve_when_positive
    big = abs(diff) > 10
    if label == "moisture":
        if improving:
            kind = "Significant" if big else "Slight"
            return f"{kind} moisture improvement: +{magnitude}%"
        if big:
            return f"Moisture decreased: -{magnitude}% - consider hydration"
        return f"Slight moisture decrease: -{magnitude}%"
    if improving:
        kind = "significantly" if big else "slightly"
        return f"Damage {kind} reduced: -{magnitude}%"
    if big:
        return f"Damage increased: +{magnitude}% - consider protective measures"
    return f"Slight damage increase: +{magnitude}%"


def _level(value: Any) -> Optional[float]:
    """Numeric level, or None for categorical values like "Dry"."""
    if isinstance(value, bool):
        return None
    try:
        level = float(value)
    except (TypeError, ValueError):
        return None
    return level if math.isfinite(level) else None


def generate_offline_comparison(context: Optional[ComparisonContext] = None) -> list[str]:
    if not context or not context.photo1_analysis or not context.photo2_analysis:
        return [
            "Offline analysis: Basic comparison available",
            "Upload photos with AI analysis for detailed insights",
        ]

    before, after = context.photo1_analysis, context.photo2_analysis
    insights: list[str] = []

    if before.get("hairType") and after.get("hairType") and before["hairType"] != after["hairType"]:
        insights.append(f"Hair type changed from {before['hairType']} to {after['hairType']}")

    moisture = _level(before.get("moistureLevel")), _level(after.get("moistureLevel"))
    if None not in moisture:
        diff = moisture[1] - moisture[0]
        insights.append(_delta_insight("moisture", diff, improve_when_positive=True))

    damage = _level(before.get("damageLevel")), _level(after.get("damageLevel"))
    if None not in damage:
        diff = damage[1] - damage[0]
        insights.append(_delta_insight("damage", diff, improve_when_positive=False))

    if (
        before.get("scalpHealth") and after.get("scalpHealth")
        and before["scalpHealth"] != after["scalpHealth"]
    ):
        insights.append(f"Scalp health changed from {before['scalpHealth']} to {after['scalpHealth']}")

    if insights:
        insights.append("Offline analysis complete - consider AI analysis for detailed insights")
    else:
        insights.append("No significant changes detected in offline analysis")
        insights.append("Continue monitoring your hair care routine")
    return insights
