"""
Offline synthesizer — a clearly flagged stand-in result for when every
provider has failed. No network access.

Output is deterministic: the random source is seeded from a hash of the
image's filename, size and bytes, so the same upload always synthesizes the
same result.
"""
from __future__ import annotations

import hashlib
import random
from typing import Optional

from providers.base import ImageUpload
from providers.schema import (
    DETAIL_CHOICES,
    AnalysisResult,
    HairDetails,
    HairInsights,
    Recommendations,
    condition_for_score,
)

OFFLINE_MODEL_NAME = "fallback-analysis"

OFFLINE_MIN_SCORE = 40
OFFLINE_MAX_SCORE = 85

_HAIR_FILENAME_HINTS = ("hair", "head", "selfie", "photo", "img", "image")

_OFFLINE_DAMAGE_TYPES = ("Split Ends", "Heat Damage", "Chemical Damage", "Environmental Damage")
_OFFLINE_SCALP_ISSUES = ("Dryness", "Dandruff", "Itchiness", "Oiliness")

_UNAVAILABLE = "AI analysis temporarily unavailable. Showing basic analysis."

_OFFLINE_INSIGHTS = HairInsights(
    texture="Basic texture analysis available. For detailed insights, try AI analysis.",
    moisture="Moisture assessment based on general hair characteristics.",
    color="Color analysis requires AI processing for accuracy.",
    length="Length assessment from basic image analysis.",
    damage="Damage evaluation based on common hair patterns.",
    scalp="Scalp health requires detailed AI analysis.",
    density="Density assessment from basic image properties.",
)


def _offline_recommendations() -> Recommendations:
    return Recommendations(
        immediate=[
            "Use a gentle, sulfate-free shampoo",
            "Apply a moisturizing conditioner",
            "Avoid excessive heat styling",
            "Use a wide-tooth comb when wet",
        ],
        long_term=[
            "Schedule regular trims every 6-8 weeks",
            "Consider deep conditioning treatments",
            "Protect hair from sun damage",
            "Use silk pillowcases to reduce friction",
        ],
        preventive=[
            "Use heat protectant before styling",
            "Limit chemical treatments",
            "Protect hair from environmental damage",
        ],
        products=[
            "Gentle shampoo and conditioner",
            "Deep conditioning mask",
            "Heat protectant spray",
            "Wide-tooth comb",
        ],
        natural_remedies=[
            "Coconut oil treatments",
            "Apple cider vinegar rinse",
            "Aloe vera for scalp health",
        ],
        protective_styles=[
            "Braids and twists",
            "Buns and updos",
            "Satin bonnet at night",
        ],
    )


def seed_for(image: ImageUpload) -> int:
    digest = hashlib.sha256()
    digest.update(image.filename.encode("utf-8"))
    digest.update(str(image.size).encode())
    digest.update(image.data)
    return int.from_bytes(digest.digest()[:8], "big")


def offline_score(size: int) -> int:
    """Larger files tend to be better-quality photos: ~1 point per 10 KB."""
    return min(OFFLINE_MAX_SCORE, max(OFFLINE_MIN_SCORE, size // 1024 // 10))


def looks_like_hair_photo(filename: str) -> bool:
    name = filename.lower()
    return any(hint in name for hint in _HAIR_FILENAME_HINTS)


def synthesize_offline(image: ImageUpload, reason: Optional[str] = None) -> AnalysisResult:
    rng = random.Random(seed_for(image))
    score = offline_score(image.size)
    is_hair = looks_like_hair_photo(image.filename)

    details = HairDetails(
        damage_types=list(_OFFLINE_DAMAGE_TYPES[: rng.randint(1, 3)]),
        scalp_issues=list(_OFFLINE_SCALP_ISSUES[: rng.randint(1, 2)]),
        **{attr: rng.choice(choices) for attr, choices in DETAIL_CHOICES.items()},
    )

    hint = (
        "For detailed AI insights, please try again later."
        if is_hair
        else "For best results, upload a clear photo of your hair."
    )
    message = f"{_UNAVAILABLE} {reason}" if reason else f"{_UNAVAILABLE} {hint}"

    return AnalysisResult(
        is_hair_image=is_hair,
        model_name=OFFLINE_MODEL_NAME,
        health_score=score,
        condition=condition_for_score(score),
        details=details,
        insights=HairInsights(**_OFFLINE_INSIGHTS.__dict__),
        recommendations=_offline_recommendations(),
        analysis=f"Basic analysis completed. {hint}",
        detected_content="Hair" if is_hair else "Image",
        message=message,
        is_offline=True,
    )
