"""
Tests for configuration tables.
"""

import dataclasses

import pytest

from osint_enrich.core.config import (
    CorrelationConfig,
    EnrichmentConfig,
    MagnitudeConfig,
    ScoringConfig,
)


class TestScoringConfig:

    def test_weights_sum_to_one(self):
        cfg = ScoringConfig()
        total = (
            cfg.credibility_weight
            + cfg.source_type_weight
            + cfg.entity_weight
            + cfg.content_quality_weight
            + cfg.recency_weight
        )
        assert total == pytest.approx(1.0)

    def test_source_type_prior_default(self):
        cfg = ScoringConfig()
        assert cfg.source_type_prior("government") == 0.95
        assert cfg.source_type_prior("carrier-pigeon") == 0.40

    def test_tables_are_immutable(self):
        cfg = ScoringConfig()
        with pytest.raises(TypeError):
            cfg.source_type_priors["government"] = 0.1
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.recency_floor = 0.0


class TestMagnitudeConfig:

    def test_category_bases(self):
        cfg = MagnitudeConfig()
        assert cfg.category_bases["terrorism"] == 9.0
        assert cfg.category_bases["other"] == 3.0


class TestEnrichmentConfig:

    def test_defaults(self):
        cfg = EnrichmentConfig()
        assert cfg.min_content_length == 50
        assert cfg.retry_max_jitter == 0.5

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_MODEL", "llama3:8b")
        monkeypatch.setenv("ENRICHMENT_MAX_RETRIES", "5")
        monkeypatch.setenv("OSINT_LLM_TIMEOUT", "30")

        cfg = EnrichmentConfig.from_env()

        assert cfg.model == "llama3:8b"
        assert cfg.max_attempts == 5
        assert cfg.timeout == 30.0


class TestCorrelationConfig:

    def test_thresholds(self):
        cfg = CorrelationConfig()
        assert cfg.recent_window_hours == 168
        assert cfg.early_exit_similarity == 0.8
        assert cfg.match_threshold == 0.6
