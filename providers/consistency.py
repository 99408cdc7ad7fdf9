"""
Consistency validator — repeated attempts against one provider.

Each provider gets its own window of results. Decision once two succeeded
results exist:
  |score₀ - score₁| > variance_threshold  → keep the first result unchanged
  otherwise                               → first result, score = rounded mean

A rejected result (blurry / not hair) ends the run immediately.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from config import CascadeSettings
from providers.base import ImageUpload, VisionProvider, build_request
from providers.errors import FailureKind, ProviderError
from providers.interpreter import interpret_response
from providers.schema import AnalysisResult

logger = logging.getLogger(__name__)


def mean_score(scores: list[int]) -> int:
    """Arithmetic mean rounded half-up (72.5 → 73)."""
    mean = Decimal(sum(scores)) / Decimal(len(scores))
    return int(mean.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def reconcile(window: list[AnalysisResult], variance_threshold: int) -> AnalysisResult:
    """Pick the accepted result from a window of succeeded results."""
    first = window[0]
    if len(window) < 2:
        return first

    scores = [r.health_score for r in window]
    variance = abs(scores[0] - scores[1])
    average = mean_score(scores)
    logger.info(
        "[%s] Consistency check: scores=%s average=%d variance=%d",
        first.model_name, scores, average, variance,
    )
    if variance > variance_threshold:
        logger.warning(
            "[%s] High variance (%d points) — using first result",
            first.model_name, variance,
        )
        return first
    return first.with_score(average)


class ConsistencyValidator:

    def __init__(self, settings: Optional[CascadeSettings] = None):
        self.settings = settings or CascadeSettings()

    async def run(self, provider: VisionProvider, image: ImageUpload) -> AnalysisResult:
        """
        Run up to `consistency_attempts` attempts against a single provider.
        Raises the last ProviderError when no attempt produced a result; any
        other exception from an attempt counts as a TRANSIENT failure.
        """
        request = build_request(
            provider.model_id,
            image,
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
        )
        window: list[AnalysisResult] = []
        last_error: Optional[ProviderError] = None

        for attempt in range(1, max(1, self.settings.consistency_attempts) + 1):
            try:
                raw = await provider.complete(request)
            except ProviderError as exc:
                logger.warning(
                    "[%s] Attempt %d failed (%s): %s",
                    provider.full_name, attempt, exc.kind.value, exc,
                )
                last_error = exc
                continue
            except Exception as exc:
                logger.error("[%s] Attempt %d failed: %s", provider.full_name, attempt, exc)
                last_error = ProviderError(FailureKind.TRANSIENT, str(exc), model=provider.model_id)
                continue

            result = interpret_response(raw, provider.model_id)
            if result.is_rejected:
                logger.info(
                    "[%s] Image rejected: %s", provider.full_name, result.detected_content,
                )
                return result

            window.append(result)
            if len(window) >= 2:
                break

        if window:
            return reconcile(window, self.settings.variance_threshold)

        if last_error is None:
            raise ProviderError(FailureKind.TRANSIENT, "no attempt was made", model=provider.model_id)
        raise last_error
