"""
Provider cascade — tries providers strictly one after another, in priority
order, until one yields an accepted result.

  * each provider runs through the ConsistencyValidator with a fresh window
  * every ProviderError kind (rate limit, quota, unavailable, invalid model,
    transient) advances to the next provider; none aborts the cascade
  * the first accepted result (rejected or succeeded) is returned at once
  * when every provider failed, the outcome carries an ExhaustionError
    wrapping the last error seen

Providers are awaited sequentially rather than raced: most are rate-limited
or metered, so abandoned parallel calls would burn quota.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from config import AnalyzerConfig
from providers.base import ImageUpload, VisionProvider
from providers.consistency import ConsistencyValidator
from providers.errors import ConfigurationError, ExhaustionError, ProviderError
from providers.schema import AnalysisResult

logger = logging.getLogger(__name__)


@dataclass
class CascadeOutcome:
    result: Optional[AnalysisResult] = None
    error: Optional[ExhaustionError] = None
    attempts: int = 0      # providers consulted

    @property
    def exhausted(self) -> bool:
        return self.result is None


def build_providers(config: AnalyzerConfig) -> list[VisionProvider]:
    """
    Instantiate one OpenRouter provider per enabled model, in cascade order.
    Raises ConfigurationError when the API key is missing or no model is enabled.
    """
    if not config.api_key:
        raise ConfigurationError(
            "OPENROUTER_API_KEY environment variable is required. "
            "Get a key from https://openrouter.ai/keys and add it to your .env file."
        )

    from providers.openrouter_provider import OpenRouterProvider

    providers: list[VisionProvider] = []
    for descriptor in sorted(config.model_descriptors(), key=lambda d: d.priority):
        p = OpenRouterProvider(
            config.api_key,
            descriptor.model_id,
            base_url=config.base_url,
            app_title=config.app_title,
            referer=config.referer,
        )
        providers.append(p)
        logger.info("Loaded provider: %s (priority %d)", p.full_name, descriptor.priority)

    if not providers:
        raise ConfigurationError("No vision models enabled. Check HAIR_MODELS / ENABLE_* settings.")
    return providers


class ProviderCascade:

    def __init__(self, providers: Sequence[VisionProvider], validator: ConsistencyValidator):
        self.providers = tuple(providers)
        self.validator = validator

    async def run(self, image: ImageUpload) -> CascadeOutcome:
        last_error: Optional[ProviderError] = None

        for attempts, provider in enumerate(self.providers, start=1):
            try:
                result = await self.validator.run(provider, image)
            except ProviderError as exc:
                logger.warning(
                    "[%s] Provider failed (%s), trying next: %s",
                    provider.full_name, exc.kind.value, exc,
                )
                last_error = exc
                continue

            logger.info(
                "[%s] OK — %s",
                provider.full_name,
                f"score={result.health_score}" if not result.is_rejected else "rejected",
            )
            return CascadeOutcome(result=result, attempts=attempts)

        logger.error("All %d vision providers failed", len(self.providers))
        return CascadeOutcome(error=ExhaustionError(last_error), attempts=len(self.providers))
