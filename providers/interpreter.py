"""
Response interpreter — turns a provider's free-form reply into an AnalysisResult.

Strategy:
  1. JSON first: strip code fences, parse the first {...} span.
       isHairImage=false                    → rejected result
       healthScore + condition + details    → succeeded result
  2. Otherwise heuristic extraction over the lower-cased text, driven by the
     rule tables below.

interpret_response() never raises.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from providers.base import parse_json_response
from providers.errors import ParseError
from providers.schema import (
    NONE_DETECTED,
    AnalysisResult,
    HairDetails,
    HairInsights,
    Recommendations,
    clamp_score,
    condition_for_score,
)

logger = logging.getLogger(__name__)


# ── Rule tables ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DetailRule:
    """First matching (keywords → value) pair wins; default when none match."""
    field: str
    matches: tuple[tuple[tuple[str, ...], str], ...]
    default: str

    def evaluate(self, text: str) -> str:
        for keywords, value in self.matches:
            if any(k in text for k in keywords):
                return value
        return self.default


DETAIL_RULES: tuple[DetailRule, ...] = (
    DetailRule("texture",         ((("fine",), "Fine"), (("coarse",), "Coarse")), "Medium"),
    DetailRule("thickness",       ((("thin",), "Thin"), (("thick",), "Thick")), "Normal"),
    DetailRule("curl_pattern",    ((("straight",), "Straight"), (("wavy",), "Wavy"),
                                   (("curly",), "Curly"), (("kinky",), "Kinky")), "Straight"),
    DetailRule("moisture",        ((("dry",), "Dry"), (("oily",), "Oily")), "Balanced"),
    DetailRule("shine",           ((("dull",), "Dull"), (("high shine",), "High")), "Moderate"),
    DetailRule("color",           ((("dyed", "colored"), "Dyed"), (("highlights",), "Highlights")), "Natural"),
    DetailRule("color_condition", ((("faded",), "Faded"), (("uneven",), "Uneven")), "Vibrant"),
    DetailRule("length",          ((("short",), "Short"), (("long",), "Long")), "Medium"),
    DetailRule("growth_stage",    ((("stunted",), "Stunted"), (("transitioning",), "Transitioning")), "Healthy"),
    DetailRule("damage",          ((("high damage", "severe damage"), "High"),
                                   (("moderate damage",), "Moderate")), "Low"),
    DetailRule("scalp_health",    ((("poor scalp",), "Poor"), (("fair scalp",), "Fair")), "Good"),
    DetailRule("density",         ((("low density", "thin"), "Low"), (("high density", "thick"), "High")), "Normal"),
    DetailRule("volume",          ((("low volume", "flat"), "Low"), (("high volume", "full"), "High")), "Normal"),
)

DAMAGE_VOCABULARY: tuple[tuple[str, str], ...] = (
    ("split ends",      "Split Ends"),
    ("breakage",        "Breakage"),
    ("frizz",           "Frizz"),
    ("heat damage",     "Heat Damage"),
    ("chemical damage", "Chemical Damage"),
    ("thinning",        "Thinning"),
)

SCALP_VOCABULARY: tuple[tuple[str, str], ...] = (
    ("dandruff",   "Dandruff"),
    ("flakiness",  "Flakiness"),
    ("oil buildup", "Oil Buildup"),
    ("redness",    "Redness"),
    ("irritation", "Irritation"),
)

BASELINE_SCORE = 75

# Each group contributes at most one delta: the first phrase set that matches
SCORE_RULES: tuple[tuple[tuple[tuple[str, ...], int], ...], ...] = (
    # damage
    ((("no damage", "minimal damage", "excellent condition"), 15),
     (("minor damage", "slight damage"), 5),
     (("moderate damage", "visible damage"), -10),
     (("significant damage", "severe damage", "high damage"), -25)),
    # shine
    ((("high shine", "excellent shine", "lustrous"), 10),
     (("moderate shine", "good shine"), 5),
     (("low shine", "dull", "lack of shine"), -10)),
    # moisture
    ((("well moisturized", "balanced moisture", "good hydration"), 8),
     (("dry", "dehydrated", "moisture loss"), -12)),
    # color uniformity
    ((("even color", "uniform color", "consistent color"), 7),
     (("uneven color", "color fading", "color variation"), -8)),
    # scalp
    ((("healthy scalp", "good scalp condition"), 5),
     (("scalp issues", "dandruff", "scalp irritation"), -10)),
    # density
    ((("good density", "thick hair", "full hair"), 5),
     (("low density", "thin hair", "sparse hair"), -8)),
)

CONDITION_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("excellent", "Excellent"),
    ("good",      "Good"),
    ("fair",      "Fair"),
    ("poor",      "Poor"),
)

HAIR_KEYWORDS = ("texture", "moisture", "color", "length", "damage", "scalp", "density")

GENERAL_RECOMMENDATIONS = (
    "Use a moisturizing conditioner",
    "Avoid excessive heat styling",
    "Trim split ends regularly",
    "Use a gentle shampoo",
)

_SCORE_RE = re.compile(r"(\d+)\s*/\s*100|score[:\s]*(\d+)", re.IGNORECASE)
_MARKDOWN_RE = re.compile(r"```(?:json)?\s*|\*\*|#{1,6}\s*")


# ── Heuristic extraction ──────────────────────────────────────────────────────

def clean_text(text: str) -> str:
    return _MARKDOWN_RE.sub("", text)


def extract_health_score(text: str) -> int:
    """Explicit 'NN/100' / 'score: NN' first, then the weighted phrase rules."""
    match = _SCORE_RE.search(text)
    if match:
        score = int(match.group(1) or match.group(2))
        if 1 <= score <= 100:
            return score
    return score_from_characteristics(text)


def score_from_characteristics(text: str) -> int:
    lower = text.lower()
    score = BASELINE_SCORE
    for group in SCORE_RULES:
        for phrases, delta in group:
            if any(p in lower for p in phrases):
                score += delta
                break
    return clamp_score(score)


def extract_condition(text: str) -> str:
    lower = text.lower()
    for keyword, condition in CONDITION_KEYWORDS:
        if keyword in lower:
            return condition
    return "Good"


def _vocabulary_hits(text: str, vocabulary: tuple[tuple[str, str], ...]) -> list[str]:
    hits = [label for term, label in vocabulary if term in text]
    return hits or [NONE_DETECTED]


def extract_details(text: str) -> HairDetails:
    lower = text.lower()
    values = {rule.field: rule.evaluate(lower) for rule in DETAIL_RULES}
    return HairDetails(
        damage_types=_vocabulary_hits(lower, DAMAGE_VOCABULARY),
        scalp_issues=_vocabulary_hits(lower, SCALP_VOCABULARY),
        **values,
    )


def extract_insight(text: str, category: str) -> str:
    """First two sentences that mention the category or any hair keyword."""
    relevant = []
    for sentence in text.split("."):
        lower = sentence.lower()
        if category in lower or any(k in lower for k in HAIR_KEYWORDS):
            relevant.append(sentence.strip())
            if len(relevant) == 2:
                break
    return ". ".join(relevant) + "." if relevant else ""


def extract_insights(text: str) -> HairInsights:
    return HairInsights(**{cat: extract_insight(text, cat) for cat in HAIR_KEYWORDS})


def parse_text_response(text: str, model_name: str) -> AnalysisResult:
    """Reconstruct a succeeded result from prose."""
    cleaned = clean_text(text)
    score = extract_health_score(cleaned)

    # The score band is authoritative; a contradicting keyword is only logged
    condition = condition_for_score(score)
    stated = extract_condition(cleaned)
    if stated != condition:
        logger.debug("[%s] Text says %s but score %d is %s", model_name, stated, score, condition)

    general = list(GENERAL_RECOMMENDATIONS)
    return AnalysisResult(
        is_hair_image=True,
        model_name=model_name,
        health_score=score,
        condition=condition,
        details=extract_details(cleaned),
        insights=extract_insights(cleaned),
        recommendations=Recommendations(
            immediate=list(general),
            long_term=list(general),
            preventive=list(general),
            products=list(general),
            natural_remedies=list(general),
            protective_styles=list(general),
        ),
        analysis=cleaned.strip(),
    )


# ── Entry point ───────────────────────────────────────────────────────────────

def interpret_response(raw: str, model_name: str) -> AnalysisResult:
    try:
        data = parse_json_response(raw, model_name)
    except ParseError as exc:
        logger.debug("%s — falling back to text extraction", exc)
        return parse_text_response(raw, model_name)

    if data.get("isHairImage") is False:
        return AnalysisResult.from_dict(data, model_name)

    if data.get("healthScore") and data.get("condition") and data.get("details"):
        try:
            return AnalysisResult.from_dict(data, model_name)
        except (TypeError, ValueError) as exc:
            logger.warning("[%s] Invalid result JSON (%s) — falling back to text extraction", model_name, exc)
    else:
        logger.info("[%s] JSON missing required fields — falling back to text extraction", model_name)

    return parse_text_response(raw, model_name)
