"""
Shared types, prompt and request builder for all vision providers.
"""
from __future__ import annotations

import base64
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from providers.errors import ParseError

logger = logging.getLogger(__name__)

# ── Prompt (shared across all providers) ──────────────────────────────────────

ANALYSIS_PROMPT = """IMPORTANT: First, analyze the image quality and content.

1. If the image is BLURRY, UNCLEAR, or has POOR QUALITY that makes hair analysis impossible, respond with ONLY this JSON:
{
  "isHairImage": false,
  "detectedContent": "Blurry or unclear image",
  "message": "This image is too blurry or unclear for accurate analysis. Please upload a clearer, well-lit photo of your hair."
}

2. If the image does NOT contain human hair (e.g., animal fur, objects, landscapes, food, etc.), respond with ONLY this JSON:
{
  "isHairImage": false,
  "detectedContent": "Description of what was detected instead of hair",
  "message": "This image does not appear to contain human hair. Please upload a clear photo of human hair for analysis."
}

3. If the image DOES contain human hair AND is clear enough for analysis, assess:
   - texture & thickness (fine/medium/coarse, strand thickness, curl pattern)
   - moisture & shine (dryness, oiliness, shine level)
   - color & uniformity (natural or dyed, fading, uneven tones)
   - length & growth stage
   - signs of damage (split ends, breakage, frizz, heat/chemical damage, thinning)
   - scalp health (dandruff, flakiness, oil buildup, redness, irritation)
   - density & volume

Score overall health from 1 to 100 using these bands:
  * Excellent (80-100): No visible damage, high shine, even color, good density
  * Good (60-79): Minor damage, moderate shine, slight color variation, normal density
  * Fair (40-59): Visible damage, low shine, color fading, reduced density
  * Poor (20-39): Significant damage, no shine, severe color issues, low density
Be consistent and objective in scoring.

Return ONLY this JSON:
{
  "isHairImage": true,
  "healthScore": number (1-100),
  "condition": "Excellent | Good | Fair | Poor",
  "details": {
    "texture": "Fine | Medium | Coarse",
    "thickness": "Thin | Normal | Thick",
    "curlPattern": "Straight | Wavy | Curly | Kinky",
    "moisture": "Dry | Balanced | Oily",
    "shine": "Dull | Moderate | High",
    "color": "Natural | Dyed | Highlights",
    "colorCondition": "Vibrant | Faded | Uneven",
    "length": "Short | Medium | Long",
    "growthStage": "Healthy | Stunted | Transitioning",
    "damage": "Low | Moderate | High",
    "damageTypes": ["specific damage types found"],
    "scalpHealth": "Good | Fair | Poor",
    "scalpIssues": ["specific scalp issues found"],
    "density": "Low | Normal | High",
    "volume": "Low | Normal | High"
  },
  "insights": {
    "textureInsights": "texture and thickness",
    "moistureInsights": "moisture and shine",
    "colorInsights": "color and uniformity",
    "lengthInsights": "length and growth stage",
    "damageInsights": "damage and integrity",
    "scalpInsights": "scalp health",
    "densityInsights": "density and volume"
  },
  "recommendations": {
    "immediate": ["3-4 immediate actions"],
    "longTerm": ["3-4 long-term care strategies"],
    "preventive": ["3-4 preventive measures"],
    "products": ["3-4 specific products"],
    "naturalRemedies": ["3-4 natural remedies"],
    "protectiveStyles": ["3-4 protective hairstyles"]
  },
  "analysis": "Comprehensive summary of all findings"
}

Be specific and give actionable, personalized recommendations based on the visual analysis."""

COMPARISON_SYSTEM_PROMPT = (
    "You are a hair care expert specializing in analyzing hair progress through "
    "photo comparisons. Provide detailed, actionable insights based on visual "
    "changes and analysis data."
)


# ── Request types ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ImageUpload:
    """A user-submitted photo."""
    data: bytes
    filename: str = "upload.jpg"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ProviderDescriptor:
    model_id: str          # e.g. "qwen/qwen2.5-vl-32b-instruct:free"
    priority: int          # position in the cascade, 0 = tried first
    vision: bool = True    # ordering hint only


@dataclass(frozen=True)
class AnalysisRequest:
    """Provider-agnostic multimodal request for one analysis attempt."""
    model_id: str
    prompt: str
    image_url: str         # data: URL
    max_tokens: int = 1500
    temperature: float = 0.1

    def messages(self) -> list[dict[str, Any]]:
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": self.prompt},
                    {"type": "image_url", "image_url": {"url": self.image_url}},
                ],
            }
        ]

    def to_payload(self) -> dict[str, Any]:
        return {
            "model":       self.model_id,
            "messages":    self.messages(),
            "max_tokens":  self.max_tokens,
            "temperature": self.temperature,
        }


def detect_media_type(data: bytes) -> str:
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:4] == b"GIF8":
        return "image/gif"
    if data[:4] == b"RIFF":
        return "image/webp"
    return "image/jpeg"


def encode_image(data: bytes) -> str:
    """Encode raw image bytes as a self-contained data URL."""
    b64 = base64.b64encode(data).decode()
    return f"data:{detect_media_type(data)};base64,{b64}"


def build_request(
    model_id: str,
    image: ImageUpload,
    max_tokens: int = 1500,
    temperature: float = 0.1,
) -> AnalysisRequest:
    return AnalysisRequest(
        model_id=model_id,
        prompt=ANALYSIS_PROMPT,
        image_url=encode_image(image.data),
        max_tokens=max_tokens,
        temperature=temperature,
    )


# ── Reply parsing ─────────────────────────────────────────────────────────────

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def strip_code_fences(raw: str) -> str:
    return _FENCE_RE.sub("", raw).strip()


def parse_json_response(raw: str, provider_name: str) -> dict:
    """
    Locate the outermost {...} span in a model reply and parse it.
    Raises ParseError when there is no object or it is not valid JSON.
    """
    text = strip_code_fences(raw)
    match = _OBJECT_RE.search(text)
    if not match:
        raise ParseError(f"[{provider_name}] No JSON object in response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.debug("[%s] Non-JSON response: %s", provider_name, raw[:300])
        raise ParseError(f"[{provider_name}] JSON parse error: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"[{provider_name}] JSON is not an object")
    return data


# ── Abstract base ──────────────────────────────────────────────────────────────

class VisionProvider(ABC):
    """Base class all providers must implement."""

    name: str              # e.g. "openrouter"
    model_id: str          # e.g. "openai/gpt-4o-mini"

    @abstractmethod
    async def complete(self, request: AnalysisRequest) -> str:
        """
        Send one analysis request and return the raw reply text.
        Must raise ProviderError for any transport or service failure.
        """
        ...

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> str:
        """Text-only completion; same error contract as complete()."""
        ...

    @property
    def full_name(self) -> str:
        return self.model_id

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.full_name}>"
