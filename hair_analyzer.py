"""
hair_analyzer.py — single entry point for hair photo analysis.

    analyzer = HairAnalyzer(AnalyzerConfig.from_env())
    result = await analyzer.analyze(ImageUpload(data, "selfie.jpg"))

States per call:
    CASCADING ──► ACCEPTED      provider returned a result (succeeded or rejected)
        │
        └──────► EXHAUSTED ──► SYNTHESIZED   offline stand-in, is_offline=True

analyze() never raises for provider failures. The only error it lets out is
ConfigurationError, raised by the constructor before any network attempt.
"""
from __future__ import annotations

import enum
import logging
from typing import Optional, Sequence

from config import AnalyzerConfig
from providers.base import ImageUpload, VisionProvider
from providers.comparison import (
    OFFLINE_COMPARISON_MODEL,
    ComparisonContext,
    ComparisonResult,
    build_comparison_messages,
    extract_insights_from_text,
    generate_offline_comparison,
)
from providers.consistency import ConsistencyValidator
from providers.errors import ConfigurationError, FailureKind, ProviderError
from providers.manager import ProviderCascade, build_providers
from providers.offline import synthesize_offline
from providers.schema import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisState(str, enum.Enum):
    CASCADING   = "cascading"
    ACCEPTED    = "accepted"
    EXHAUSTED   = "exhausted"
    SYNTHESIZED = "synthesized"


class HairAnalyzer:

    def __init__(
        self,
        config: AnalyzerConfig,
        providers: Optional[Sequence[VisionProvider]] = None,
        text_providers: Optional[Sequence[VisionProvider]] = None,
    ):
        if not config.api_key:
            raise ConfigurationError(
                "OPENROUTER_API_KEY environment variable is required. "
                "Get a key from https://openrouter.ai/keys and add it to your .env file."
            )
        self.config = config
        self.providers = list(providers) if providers is not None else build_providers(config)
        self._text_providers = list(text_providers) if text_providers is not None else None
        self.cascade = ProviderCascade(self.providers, ConsistencyValidator(config.settings))
        self.last_state: Optional[AnalysisState] = None

    # ── Photo analysis ────────────────────────────────────────────────────────

    async def analyze(self, image: ImageUpload) -> AnalysisResult:
        self.last_state = AnalysisState.CASCADING
        outcome = await self.cascade.run(image)

        if outcome.result is not None:
            self.last_state = AnalysisState.ACCEPTED
            return outcome.result

        self.last_state = AnalysisState.EXHAUSTED
        reason = str(outcome.error.last_error) if outcome.error and outcome.error.last_error else None
        logger.warning("All AI models failed, providing fallback analysis (%s)", reason)

        result = synthesize_offline(image, reason=reason)
        self.last_state = AnalysisState.SYNTHESIZED
        return result

    # ── Connection check ──────────────────────────────────────────────────────

    async def test_connection(self) -> bool:
        """True as soon as any connection-test model answers a short prompt."""
        for provider in self._providers_for(self.config.connection_test_models):
            try:
                await provider.chat(
                    [{"role": "user", "content": "Hello, this is a test message."}],
                    max_tokens=10,
                )
            except ProviderError as exc:
                logger.warning("[%s] Connection test failed (%s)", provider.full_name, exc.kind.value)
                continue
            except Exception as exc:
                logger.error("[%s] Connection test failed: %s", provider.full_name, exc)
                continue
            logger.info("API connection test successful with model: %s", provider.full_name)
            return True

        logger.error("All API connection tests failed")
        return False

    # ── Progress comparison ───────────────────────────────────────────────────

    async def compare_progress(
        self,
        prompt: str,
        context: Optional[ComparisonContext] = None,
    ) -> ComparisonResult:
        """Text-only comparison of two photos' analyses; offline insights on total failure."""
        messages = build_comparison_messages(prompt, context)
        last_error: Optional[ProviderError] = None

        for provider in self._comparison_providers():
            try:
                content = await provider.chat(messages, max_tokens=1000, temperature=0.3)
            except ProviderError as exc:
                logger.warning(
                    "[%s] Comparison failed (%s), trying next", provider.full_name, exc.kind.value,
                )
                last_error = exc
                continue
            except Exception as exc:
                logger.error("[%s] Comparison failed: %s", provider.full_name, exc)
                last_error = ProviderError(FailureKind.TRANSIENT, str(exc), model=provider.model_id)
                continue

            logger.info("Successfully analyzed comparison with model: %s", provider.full_name)
            return ComparisonResult(
                insights=extract_insights_from_text(content),
                raw_response=content,
                model_name=provider.model_id,
            )

        logger.warning("All AI models failed, providing offline comparison")
        return ComparisonResult(
            insights=generate_offline_comparison(context),
            raw_response="Offline analysis generated",
            model_name=OFFLINE_COMPARISON_MODEL,
            is_offline=True,
            message=str(last_error) if last_error else None,
        )

    def _comparison_providers(self) -> list[VisionProvider]:
        if self._text_providers is None:
            self._text_providers = self._providers_for(self.config.text_models)
        return self._text_providers

    def _providers_for(self, models: Sequence[str]) -> list[VisionProvider]:
        from providers.openrouter_provider import OpenRouterProvider
        return [
            OpenRouterProvider(
                self.config.api_key,
                model,
                base_url=self.config.base_url,
                app_title=self.config.app_title,
                referer=self.config.referer,
            )
            for model in models
        ]
