"""
Structured hair analysis result shared by every stage of the pipeline.

The JSON shape providers are asked to return (and that downstream consumers
read) uses camelCase keys; the dataclasses below use snake_case and convert
with to_dict() / from_dict().

A result is one of two variants, tagged by is_hair_image:
  rejected   — is_hair_image=False, detected_content + message, no score/details
  succeeded  — is_hair_image=True, health_score 1-100, condition, details,
               insights, recommendations, analysis
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Optional

# ── Enumerations ──────────────────────────────────────────────────────────────

CONDITIONS = ("Excellent", "Good", "Fair", "Poor")

DETAIL_CHOICES: dict[str, tuple[str, ...]] = {
    "texture":         ("Fine", "Medium", "Coarse"),
    "thickness":       ("Thin", "Normal", "Thick"),
    "curl_pattern":    ("Straight", "Wavy", "Curly", "Kinky"),
    "moisture":        ("Dry", "Balanced", "Oily"),
    "shine":           ("Dull", "Moderate", "High"),
    "color":           ("Natural", "Dyed", "Highlights"),
    "color_condition": ("Vibrant", "Faded", "Uneven"),
    "length":          ("Short", "Medium", "Long"),
    "growth_stage":    ("Healthy", "Stunted", "Transitioning"),
    "damage":          ("Low", "Moderate", "High"),
    "scalp_health":    ("Good", "Fair", "Poor"),
    "density":         ("Low", "Normal", "High"),
    "volume":          ("Low", "Normal", "High"),
}

NONE_DETECTED = "None Detected"

MIN_SCORE = 1
MAX_SCORE = 100

# snake_case attribute → camelCase JSON key, for the fields that differ
_DETAIL_KEYS = {
    "curl_pattern":    "curlPattern",
    "color_condition": "colorCondition",
    "growth_stage":    "growthStage",
    "damage_types":    "damageTypes",
    "scalp_health":    "scalpHealth",
    "scalp_issues":    "scalpIssues",
}
_INSIGHT_KEYS = {
    "texture":  "textureInsights",
    "moisture": "moistureInsights",
    "color":    "colorInsights",
    "length":   "lengthInsights",
    "damage":   "damageInsights",
    "scalp":    "scalpInsights",
    "density":  "densityInsights",
}
_RECOMMENDATION_KEYS = {
    "immediate":         "immediate",
    "long_term":         "longTerm",
    "preventive":        "preventive",
    "products":          "products",
    "natural_remedies":  "naturalRemedies",
    "protective_styles": "protectiveStyles",
}


def clamp_score(score: float) -> int:
    """Round and clamp a raw score into [MIN_SCORE, MAX_SCORE]."""
    return max(MIN_SCORE, min(MAX_SCORE, int(round(score))))


def condition_for_score(score: int) -> str:
    """Map a health score onto its condition band."""
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Poor"


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _str_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value if v is not None]
    if isinstance(value, str) and value:
        return [value]
    return []


# ── Records ───────────────────────────────────────────────────────────────────

@dataclass
class HairDetails:
    texture: str = "Medium"
    thickness: str = "Normal"
    curl_pattern: str = "Straight"
    moisture: str = "Balanced"
    shine: str = "Moderate"
    color: str = "Natural"
    color_condition: str = "Vibrant"
    length: str = "Medium"
    growth_stage: str = "Healthy"
    damage: str = "Low"
    damage_types: list[str] = field(default_factory=lambda: [NONE_DETECTED])
    scalp_health: str = "Good"
    scalp_issues: list[str] = field(default_factory=lambda: [NONE_DETECTED])
    density: str = "Normal"
    volume: str = "Normal"

    def to_dict(self) -> dict:
        return {_DETAIL_KEYS.get(k, k): v for k, v in self.__dict__.items()}

    @classmethod
    def from_dict(cls, data: dict) -> "HairDetails":
        defaults = cls()
        kwargs: dict[str, Any] = {}
        for attr in defaults.__dict__:
            raw = data.get(_DETAIL_KEYS.get(attr, attr))
            if attr in ("damage_types", "scalp_issues"):
                kwargs[attr] = _str_list(raw) or [NONE_DETECTED]
            else:
                kwargs[attr] = str(raw) if raw else getattr(defaults, attr)
        return cls(**kwargs)


@dataclass
class HairInsights:
    texture: str = ""
    moisture: str = ""
    color: str = ""
    length: str = ""
    damage: str = ""
    scalp: str = ""
    density: str = ""

    def to_dict(self) -> dict:
        return {_INSIGHT_KEYS[k]: v for k, v in self.__dict__.items()}

    @classmethod
    def from_dict(cls, data: dict) -> "HairInsights":
        return cls(**{k: str(data.get(key) or "") for k, key in _INSIGHT_KEYS.items()})


@dataclass
class Recommendations:
    immediate: list[str] = field(default_factory=list)
    long_term: list[str] = field(default_factory=list)
    preventive: list[str] = field(default_factory=list)
    products: list[str] = field(default_factory=list)
    natural_remedies: list[str] = field(default_factory=list)
    protective_styles: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {_RECOMMENDATION_KEYS[k]: list(v) for k, v in self.__dict__.items()}

    @classmethod
    def from_dict(cls, data: dict) -> "Recommendations":
        return cls(**{k: _str_list(data.get(key)) for k, key in _RECOMMENDATION_KEYS.items()})


@dataclass
class AnalysisResult:
    """One complete hair analysis, either rejected or succeeded."""
    is_hair_image: bool
    model_name: str                          # provider model id, or the offline sentinel
    health_score: Optional[int] = None       # succeeded only
    condition: Optional[str] = None          # succeeded only
    details: Optional[HairDetails] = None    # succeeded only
    insights: Optional[HairInsights] = None
    recommendations: Optional[Recommendations] = None
    analysis: str = ""
    detected_content: Optional[str] = None
    message: Optional[str] = None
    is_offline: bool = False

    @classmethod
    def rejected(
        cls,
        model_name: str,
        detected_content: str,
        message: Optional[str] = None,
    ) -> "AnalysisResult":
        return cls(
            is_hair_image=False,
            model_name=model_name,
            detected_content=detected_content,
            message=_optional_str(message),
        )

    @property
    def is_rejected(self) -> bool:
        return not self.is_hair_image and self.health_score is None

    def with_score(self, score: int) -> "AnalysisResult":
        """Copy of this result with a different health score (clamped)."""
        return replace(self, health_score=clamp_score(score))

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "isHairImage": self.is_hair_image,
            "modelName":   self.model_name,
            "isOffline":   self.is_offline,
        }
        if self.detected_content is not None:
            out["detectedContent"] = self.detected_content
        if self.message is not None:
            out["message"] = self.message
        if self.health_score is not None:
            out.update({
                "healthScore":     self.health_score,
                "condition":       self.condition,
                "details":         self.details.to_dict() if self.details else {},
                "insights":        self.insights.to_dict() if self.insights else {},
                "recommendations": self.recommendations.to_dict() if self.recommendations else {},
                "analysis":        self.analysis,
            })
        return out

    @classmethod
    def from_dict(cls, data: dict, model_name: str) -> "AnalysisResult":
        """
        Build a result from provider JSON.
        Raises ValueError / TypeError when a succeeded payload has a
        non-numeric or non-finite healthScore.
        """
        if data.get("isHairImage") is False:
            return cls.rejected(
                model_name=model_name,
                detected_content=str(data.get("detectedContent") or "Unknown"),
                message=data.get("message"),
            )

        raw_score = float(data["healthScore"])
        if not math.isfinite(raw_score):
            raise ValueError(f"healthScore is not a finite number: {raw_score!r}")
        score = clamp_score(raw_score)
        condition = str(data.get("condition") or "").strip().capitalize()
        if condition not in CONDITIONS:
            condition = condition_for_score(score)

        return cls(
            is_hair_image=True,
            model_name=model_name,
            health_score=score,
            condition=condition,
            details=HairDetails.from_dict(_as_dict(data.get("details"))),
            insights=HairInsights.from_dict(_as_dict(data.get("insights"))),
            recommendations=Recommendations.from_dict(_as_dict(data.get("recommendations"))),
            analysis=str(data.get("analysis") or ""),
            detected_content=_optional_str(data.get("detectedContent")),
            message=_optional_str(data.get("message")),
        )
