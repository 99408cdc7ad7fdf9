"""
Tests for config.py.

Covers:
  - _model_enabled(): reads env var, defaults to True
  - model_env_flag(): model id → ENABLE_* variable name
  - AnalyzerConfig.from_env(): key, model lists, cascade settings
  - model_descriptors(): order, priority, vision hint, toggles
"""
from __future__ import annotations

from config import (
    DEFAULT_MODELS,
    AnalyzerConfig,
    CascadeSettings,
    _model_enabled,
    model_env_flag,
)


class TestModelEnabled:
    def test_default_true_when_not_set(self, monkeypatch):
        monkeypatch.delenv("ENABLE_OPENAI_GPT_4O_MINI", raising=False)
        assert _model_enabled("ENABLE_OPENAI_GPT_4O_MINI") is True

    def test_explicit_false(self, monkeypatch):
        monkeypatch.setenv("ENABLE_OPENAI_GPT_4O_MINI", "false")
        assert _model_enabled("ENABLE_OPENAI_GPT_4O_MINI") is False

    def test_zero_disables(self, monkeypatch):
        monkeypatch.setenv("ENABLE_OPENAI_GPT_4O_MINI", "0")
        assert _model_enabled("ENABLE_OPENAI_GPT_4O_MINI") is False

    def test_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("ENABLE_OPENAI_GPT_4O_MINI", "FALSE")
        assert _model_enabled("ENABLE_OPENAI_GPT_4O_MINI") is False

    def test_opt_in_default(self, monkeypatch):
        monkeypatch.delenv("ENABLE_SOMETHING", raising=False)
        assert _model_enabled("ENABLE_SOMETHING", default=False) is False


class TestModelEnvFlag:
    def test_slashes_and_dashes(self):
        assert model_env_flag("openai/gpt-4o-mini") == "ENABLE_OPENAI_GPT_4O_MINI"

    def test_free_suffix(self):
        assert model_env_flag("qwen/qwen2.5-vl-3b-instruct:free") == "ENABLE_QWEN_QWEN2_5_VL_3B_INSTRUCT_FREE"


class TestFromEnv:
    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-env")
        for var in ("HAIR_MODELS", "HAIR_TEXT_MODELS", "CONSISTENCY_ATTEMPTS", "VARIANCE_THRESHOLD"):
            monkeypatch.delenv(var, raising=False)
        cfg = AnalyzerConfig.from_env()
        assert cfg.api_key == "sk-or-env"
        assert cfg.models == DEFAULT_MODELS
        assert cfg.settings == CascadeSettings()

    def test_missing_key_is_none(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "")
        assert AnalyzerConfig.from_env().api_key is None

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("HAIR_MODELS", "a/one, b/two ,")
        monkeypatch.setenv("CONSISTENCY_ATTEMPTS", "3")
        monkeypatch.setenv("VARIANCE_THRESHOLD", "5")
        cfg = AnalyzerConfig.from_env()
        assert cfg.models == ("a/one", "b/two")
        assert cfg.settings.consistency_attempts == 3
        assert cfg.settings.variance_threshold == 5


class TestModelDescriptors:
    def test_priority_follows_list_order(self):
        cfg = AnalyzerConfig(api_key="k", models=("qwen/qwen2.5-vl-3b-instruct:free", "meta-llama/llama-3.1-8b-instruct:free"))
        descriptors = cfg.model_descriptors()
        assert [d.priority for d in descriptors] == [0, 1]
        assert descriptors[0].vision is True
        assert descriptors[1].vision is False

    def test_disabled_model_dropped(self, monkeypatch):
        monkeypatch.setenv("ENABLE_A_ONE", "no")
        cfg = AnalyzerConfig(api_key="k", models=("a/one", "b/two"))
        assert [d.model_id for d in cfg.model_descriptors()] == ["b/two"]
