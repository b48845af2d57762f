"""
Central configuration for the OSINT enrichment pipeline.

Supports environment variables for configuration:
- OLLAMA_API_KEY: API key for the Ollama host (optional for local hosts)
- OLLAMA_HOST: Ollama API host (default: https://ollama.com)
- OLLAMA_MODEL: Model used for analysis, entity extraction and correlation
- OSINT_LLM_TIMEOUT: Per-call timeout in seconds (default: 180)
- OSINT_LLM_TEMPERATURE: Sampling temperature (default: 0.3)
- OSINT_LLM_MAX_TOKENS: Completion token cap (default: 2000)
- ENRICHMENT_MAX_WORKERS: Batch worker pool size (default: 10)
- ENRICHMENT_MAX_RETRIES: Attempts per primary analysis call (default: 3)
- ENRICHMENT_RETRY_BASE_DELAY: Backoff base in seconds (default: 1.0)
- OSINT_LOG_LEVEL: Logging level (default: INFO)
- OSINT_LOG_FILE: Log file path (default: logs/enrichment.log)

Tunable scoring tables are immutable dataclasses that get passed into the
scorer, estimator, enricher and correlator constructors.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Tuple


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


# ---- LLM provider ----

OLLAMA_API_KEY = os.getenv("OLLAMA_API_KEY")
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "https://ollama.com")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "gpt-oss:120b-cloud")

LLM_TIMEOUT_SECONDS = int(os.getenv("OSINT_LLM_TIMEOUT", "180"))  # reasoning models can take 60-180s
LLM_TEMPERATURE = float(os.getenv("OSINT_LLM_TEMPERATURE", "0.3"))
LLM_MAX_TOKENS = int(os.getenv("OSINT_LLM_MAX_TOKENS", "2000"))

# ---- Enrichment processing ----

ENRICHMENT_MAX_WORKERS = int(os.getenv("ENRICHMENT_MAX_WORKERS", "10"))
ENRICHMENT_MAX_RETRIES = int(os.getenv("ENRICHMENT_MAX_RETRIES", "3"))
ENRICHMENT_RETRY_BASE_DELAY = float(os.getenv("ENRICHMENT_RETRY_BASE_DELAY", "1.0"))

# ---- Logging ----

LOG_LEVEL = os.getenv("OSINT_LOG_LEVEL", "INFO")
LOG_FILE = Path(os.getenv("OSINT_LOG_FILE", "logs/enrichment.log"))


# Substrings (lowercase) identifying reasoning-class models: no system role,
# no JSON response format.
REASONING_MODEL_MARKERS: Tuple[str, ...] = (
    "o1",
    "o3",
    "o4",
    "gpt-5",
    "deepseek-r1",
    "qwq",
)

RATE_LIMIT_MARKERS: Tuple[str, ...] = (
    "429",
    "Too Many Requests",
    "Rate limit",
)


@dataclass(frozen=True)
class ScoringConfig:
    """Weights, priors and lexicons for the confidence scorer."""

    credibility_weight: float = 0.35
    source_type_weight: float = 0.25
    entity_weight: float = 0.15
    content_quality_weight: float = 0.15
    recency_weight: float = 0.10

    source_type_priors: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "government": 0.95,
        "news_media": 0.85,
        "twitter": 0.60,
        "telegram": 0.55,
        "blog": 0.45,
        "glp": 0.25,
        "other": 0.40,
    }))
    default_source_type_prior: float = 0.40
    neutral_entity_confidence: float = 0.5

    sensational_terms: Tuple[str, ...] = (
        "breaking:",
        "urgent:",
        "must see",
        "you won't believe",
        "shocking",
        "unbelievable",
        "exposed",
        "destroyed",
    )
    insufficient_data_phrases: Tuple[str, ...] = (
        "insufficient data",
        "lacks sufficient detail",
        "not enough information",
        "missing critical details",
        "unable to provide",
        "cannot be determined",
        "information is too limited",
        "provided information lacks",
    )
    insufficient_data_cap: float = 0.05

    # (max age in hours, score); ages past the last step get recency_floor
    recency_steps: Tuple[Tuple[float, float], ...] = (
        (1, 1.0),
        (6, 0.9),
        (24, 0.75),
        (72, 0.6),
        (168, 0.45),
    )
    recency_floor: float = 0.3

    # ordinal thresholds: (minimum score, level)
    level_thresholds: Tuple[Tuple[float, str], ...] = (
        (0.85, "verified"),
        (0.6, "high"),
        (0.3, "medium"),
    )

    def source_type_prior(self, source_type: str) -> float:
        return self.source_type_priors.get(source_type, self.default_source_type_prior)


@dataclass(frozen=True)
class MagnitudeConfig:
    """Category bases and modifier lexicons for the magnitude estimator."""

    category_bases: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "terrorism": 9.0,
        "military": 8.0,
        "disaster": 7.5,
        "geopolitics": 7.0,
        "intelligence": 6.5,
        "cyber": 6.0,
        "diplomacy": 5.5,
        "humanitarian": 5.0,
        "economic": 4.5,
        "other": 3.0,
    }))
    urgency_terms: Tuple[str, ...] = (
        "breaking",
        "urgent",
        "emergency",
        "crisis",
        "attack",
        "killed",
        "war",
        "invasion",
        "strike",
        "deployed",
    )
    urgency_step: float = 0.3
    urgency_cap: float = 1.0
    engagement_cap: float = 1.5
    scope_cap: float = 1.5

    retweet_threshold: int = 1000
    like_threshold: int = 5000
    view_threshold: int = 10000


@dataclass(frozen=True)
class EnrichmentConfig:
    """Provider and retry settings for the enrichment orchestrator."""

    model: str = OLLAMA_MODEL
    timeout: float = LLM_TIMEOUT_SECONDS
    temperature: float = LLM_TEMPERATURE
    max_tokens: int = LLM_MAX_TOKENS
    max_attempts: int = ENRICHMENT_MAX_RETRIES
    retry_base_delay: float = ENRICHMENT_RETRY_BASE_DELAY
    retry_max_jitter: float = 0.5
    min_content_length: int = 50
    entity_max_tokens: int = 2000
    article_html_limit: int = 15000
    article_min_length: int = 100
    rate_limit_markers: Tuple[str, ...] = RATE_LIMIT_MARKERS

    @classmethod
    def from_env(cls) -> "EnrichmentConfig":
        """Build a config from the current environment (re-read at call time)."""
        return cls(
            model=os.getenv("OLLAMA_MODEL", OLLAMA_MODEL),
            timeout=float(os.getenv("OSINT_LLM_TIMEOUT", str(LLM_TIMEOUT_SECONDS))),
            temperature=float(os.getenv("OSINT_LLM_TEMPERATURE", str(LLM_TEMPERATURE))),
            max_tokens=int(os.getenv("OSINT_LLM_MAX_TOKENS", str(LLM_MAX_TOKENS))),
            max_attempts=int(os.getenv("ENRICHMENT_MAX_RETRIES", str(ENRICHMENT_MAX_RETRIES))),
            retry_base_delay=float(
                os.getenv("ENRICHMENT_RETRY_BASE_DELAY", str(ENRICHMENT_RETRY_BASE_DELAY))
            ),
        )


@dataclass(frozen=True)
class CorrelationConfig:
    """Thresholds for matching a new source against recent events."""

    recent_window_hours: float = 7 * 24
    early_exit_similarity: float = 0.8
    match_threshold: float = 0.6
    max_tokens: int = 1000
    preview_chars: int = 2000


@dataclass(frozen=True)
class CredibilityConfig:
    """Settings for LLM-backed source credibility assessment."""

    cache_ttl_seconds: float = 24 * 3600
    max_tokens: int = 50
    timeout: float = 30
