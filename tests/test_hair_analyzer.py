"""
Tests for hair_analyzer.py — the end-to-end entry point.

Covers:
  - missing API key raises ConfigurationError before any provider is called
  - accepted result returned as-is (ACCEPTED state)
  - rejection short-circuit: no second attempt, no further providers
  - all providers returning 503 → offline result (SYNTHESIZED state)
  - analyze() never raises for any mix of provider failures
  - test_connection() and compare_progress()
"""
from __future__ import annotations

from unittest.mock import patch

import pytest

from config import AnalyzerConfig
from conftest import REJECTION_JSON, make_provider, success_json, unavailable
from hair_analyzer import AnalysisState, HairAnalyzer
from providers.comparison import OFFLINE_COMPARISON_MODEL, ComparisonContext
from providers.errors import ConfigurationError, FailureKind, ProviderError
from providers.offline import OFFLINE_MODEL_NAME


class TestConstruction:
    def test_missing_key_is_fatal(self):
        provider = make_provider("vision/a", [success_json(70)])
        with pytest.raises(ConfigurationError):
            HairAnalyzer(AnalyzerConfig(api_key=None), providers=[provider])
        provider.complete.assert_not_called()

    def test_builds_providers_from_config(self, config):
        analyzer = HairAnalyzer(config)
        assert [p.model_id for p in analyzer.providers] == ["vision/a", "vision/b"]


@pytest.mark.asyncio
class TestAnalyze:
    async def test_accepted_result(self, config, image):
        a = make_provider("vision/a", [success_json(70), success_json(74)])
        analyzer = HairAnalyzer(config, providers=[a])
        result = await analyzer.analyze(image)
        assert result.health_score == 72
        assert result.is_offline is False
        assert analyzer.last_state is AnalysisState.ACCEPTED

    async def test_rejection_short_circuit(self, config, image):
        a = make_provider("vision/a", [REJECTION_JSON, success_json(80)])
        b = make_provider("vision/b", [success_json(80)])
        analyzer = HairAnalyzer(config, providers=[a, b])
        result = await analyzer.analyze(image)
        assert result.is_hair_image is False
        assert result.detected_content == "Blurry image"
        assert a.complete.await_count == 1
        b.complete.assert_not_awaited()
        assert analyzer.last_state is AnalysisState.ACCEPTED

    async def test_total_exhaustion_synthesizes(self, config, image):
        providers = [
            make_provider(m, [unavailable(m), unavailable(m)])
            for m in ("vision/a", "vision/b", "vision/c")
        ]
        analyzer = HairAnalyzer(config, providers=providers)
        result = await analyzer.analyze(image)
        assert result.is_hair_image is True
        assert result.model_name == OFFLINE_MODEL_NAME
        assert result.is_offline is True
        assert "unavailable" in result.message
        assert "503" in result.message
        assert 1 <= result.health_score <= 100
        assert analyzer.last_state is AnalysisState.SYNTHESIZED
        for p in providers:
            assert p.complete.await_count == 2

    @pytest.mark.parametrize("errors", [
        [FailureKind.RATE_LIMITED, FailureKind.QUOTA_EXHAUSTED],
        [FailureKind.INVALID_MODEL, FailureKind.TRANSIENT],
        [FailureKind.UNAVAILABLE, FailureKind.RATE_LIMITED],
    ])
    async def test_never_raises_on_provider_failures(self, config, image, errors):
        providers = [
            make_provider(f"vision/{kind.value}", [
                ProviderError(kind, "boom"), ProviderError(kind, "boom"),
            ])
            for kind in errors
        ]
        result = await HairAnalyzer(config, providers=providers).analyze(image)
        assert result.is_offline is True
        assert result.details is not None

    async def test_falls_through_to_second_provider(self, config, image):
        a = make_provider("vision/a", [unavailable(), unavailable()])
        b = make_provider("vision/b", ["Health score: 64/100. Some dryness and split ends."])
        result = await HairAnalyzer(config, providers=[a, b]).analyze(image)
        assert result.model_name == "vision/b"
        assert result.health_score == 64
        assert result.details.moisture == "Dry"
        assert "Split Ends" in result.details.damage_types

    async def test_unexpected_provider_exception_advances(self, config, image):
        a = make_provider("vision/a", [RuntimeError("socket reset"), RuntimeError("socket reset")])
        b = make_provider("vision/b", ["score: 70"])
        analyzer = HairAnalyzer(config, providers=[a, b])
        result = await analyzer.analyze(image)
        assert result.model_name == "vision/b"
        assert result.health_score == 70
        assert analyzer.last_state is AnalysisState.ACCEPTED
        b.complete.assert_awaited()

    async def test_infinite_score_does_not_escape(self, config, image):
        raw = success_json(50).replace('"healthScore": 50', '"healthScore": 1e999')
        a = make_provider("vision/a", [raw, raw])
        result = await HairAnalyzer(config, providers=[a]).analyze(image)
        assert result.model_name == "vision/a"
        assert result.is_offline is False
        assert 1 <= result.health_score <= 100

    async def test_state_starts_empty(self, config):
        analyzer = HairAnalyzer(config, providers=[])
        assert analyzer.last_state is None


@pytest.mark.asyncio
class TestConnection:
    async def test_true_when_any_model_answers(self, config):
        candidates = [
            make_provider("check/a", [unavailable()]),
            make_provider("check/b", ["hi"]),
        ]
        analyzer = HairAnalyzer(config, providers=[])
        with patch.object(HairAnalyzer, "_providers_for", return_value=candidates):
            assert await analyzer.test_connection() is True
        candidates[1].chat.assert_awaited_once()

    async def test_false_when_all_fail(self, config):
        candidates = [make_provider("check/a", [unavailable()])]
        analyzer = HairAnalyzer(config, providers=[])
        with patch.object(HairAnalyzer, "_providers_for", return_value=candidates):
            assert await analyzer.test_connection() is False


@pytest.mark.asyncio
class TestCompareProgress:
    async def test_first_text_model_answers(self, config):
        text = make_provider("text/a", ["- Moisture improved\n- Less frizz"])
        analyzer = HairAnalyzer(config, providers=[], text_providers=[text])
        result = await analyzer.compare_progress("Compare my photos")
        assert result.insights == ["Moisture improved", "Less frizz"]
        assert result.model_name == "text/a"
        assert result.is_offline is False

    async def test_context_is_sent(self, config):
        text = make_provider("text/a", ["- ok"])
        analyzer = HairAnalyzer(config, providers=[], text_providers=[text])
        ctx = ComparisonContext(photo1_analysis={"moistureLevel": 40}, photo2_analysis={"moistureLevel": 60})
        await analyzer.compare_progress("Compare", ctx)
        messages = text.chat.await_args.args[0]
        assert len(messages) == 3
        assert "Photo 1 Analysis" in messages[2]["content"]

    async def test_offline_when_all_fail(self, config):
        texts = [
            make_provider("text/a", [ProviderError(FailureKind.QUOTA_EXHAUSTED, "402")]),
            make_provider("text/b", [ProviderError(FailureKind.RATE_LIMITED, "429")]),
        ]
        analyzer = HairAnalyzer(config, providers=[], text_providers=texts)
        ctx = ComparisonContext(photo1_analysis={"moistureLevel": 40}, photo2_analysis={"moistureLevel": 60})
        result = await analyzer.compare_progress("Compare", ctx)
        assert result.is_offline is True
        assert result.model_name == OFFLINE_COMPARISON_MODEL
        assert result.insights[0] == "Significant moisture improvement: +20%"
        assert "429" in result.message

    async def test_unexpected_exception_moves_to_next_text_model(self, config):
        texts = [
            make_provider("text/a", [AttributeError("'NoneType' object has no attribute 'content'")]),
            make_provider("text/b", ["- Shinier ends"]),
        ]
        analyzer = HairAnalyzer(config, providers=[], text_providers=texts)
        result = await analyzer.compare_progress("Compare")
        assert result.model_name == "text/b"
        assert result.insights == ["Shinier ends"]

    async def test_offline_with_categorical_levels(self, config):
        texts = [make_provider("text/a", [unavailable("text/a")])]
        analyzer = HairAnalyzer(config, providers=[], text_providers=texts)
        ctx = ComparisonContext(
            photo1_analysis={"moistureLevel": "Dry", "scalpHealth": "Fair"},
            photo2_analysis={"moistureLevel": "Balanced", "scalpHealth": "Good"},
        )
        result = await analyzer.compare_progress("Compare", ctx)
        assert result.is_offline is True
        assert result.insights[0] == "Scalp health changed from Fair to Good"
