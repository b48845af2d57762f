"""
Confidence scoring and magnitude estimation for enriched events.

Both components are pure: every weight, table and lexicon comes from the
immutable config they are constructed with, and the only clock input is the
optional ``now`` argument.
"""

import logging
from datetime import datetime
from typing import List, NamedTuple, Optional, Sequence

from osint_enrich.core.config import MagnitudeConfig, ScoringConfig
from osint_enrich.core.models import (
    Confidence,
    ConfidenceLevel,
    Entity,
    EntityType,
    Event,
    Source,
    SourceMetadata,
    clamp,
    utcnow,
)

logger = logging.getLogger(__name__)


class ScoreFactor(NamedTuple):
    name: str
    weight: float
    score: float


def is_all_caps(text: str) -> bool:
    """Uppercase letters exceed 70% of cased letters (strings of 10+ chars)."""
    if len(text) < 10:
        return False

    upper = sum(1 for ch in text if ch.isupper())
    lower = sum(1 for ch in text if ch.islower())
    if upper + lower == 0:
        return False
    return upper / (upper + lower) > 0.7


def contains_any(text: str, terms: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(term in lowered for term in terms)


class ConfidenceScorer:
    """
    Weighted five-factor reliability score for a source + event + entities.

    Factors: source credibility prior, source-type prior, mean entity
    confidence, content-quality heuristic and recency decay.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def score(
        self,
        source: Source,
        event: Event,
        entities: Sequence[Entity],
        now: Optional[datetime] = None,
    ) -> Confidence:
        """
        Compute the confidence of an event.

        Args:
            source: Source the event was derived from
            event: Event carrying the model's narrative text
            entities: Extracted entities (may be empty)
            now: Reference time for recency (defaults to current UTC time)

        Returns:
            Confidence with score in [0, 1] and its derived level
        """
        factors = self.factors(source, entities, now)

        total_weight = sum(f.weight for f in factors)
        final_score = sum(f.score * f.weight for f in factors) / total_weight if total_weight else 0.0

        if self.has_insufficient_data(event):
            logger.debug(f"Event {event.id} reports insufficient data; capping confidence")
            final_score = min(final_score, self.config.insufficient_data_cap)

        final_score = clamp(final_score, 0.0, 1.0)

        return Confidence(
            score=final_score,
            level=self.level_for(final_score),
            reasoning=self.build_reasoning(factors, final_score),
            source_count=max(1, len(event.sources)),
        )

    def factors(
        self,
        source: Source,
        entities: Sequence[Entity],
        now: Optional[datetime] = None,
    ) -> List[ScoreFactor]:
        cfg = self.config
        return [
            ScoreFactor("source_credibility", cfg.credibility_weight, source.credibility),
            ScoreFactor("source_type", cfg.source_type_weight, cfg.source_type_prior(source.type.value)),
            ScoreFactor("entity_confidence", cfg.entity_weight, self.average_entity_confidence(entities)),
            ScoreFactor("content_quality", cfg.content_quality_weight, self.content_quality(source.raw_content)),
            ScoreFactor("recency", cfg.recency_weight, self.recency(source.published_at, now)),
        ]

    def level_for(self, score: float) -> ConfidenceLevel:
        for threshold, level in self.config.level_thresholds:
            if score >= threshold:
                return ConfidenceLevel(level)
        return ConfidenceLevel.LOW

    def has_insufficient_data(self, event: Event) -> bool:
        return contains_any(event.narrative_text(), self.config.insufficient_data_phrases)

    def average_entity_confidence(self, entities: Sequence[Entity]) -> float:
        if not entities:
            return self.config.neutral_entity_confidence
        return sum(e.confidence for e in entities) / len(entities)

    def content_quality(self, content: str) -> float:
        score = 0.5
        length = len(content)

        if length < 50:
            score -= 0.2
        elif 200 < length < 2000:
            score += 0.2
        elif length > 5000:
            score -= 0.1

        # links can be verified
        if "http" in content:
            score += 0.05

        if content.count("!") > 5:
            score -= 0.1

        if is_all_caps(content):
            score -= 0.15

        if not contains_any(content, self.config.sensational_terms):
            score += 0.1

        return clamp(score, 0.0, 1.0)

    def recency(self, published_at: datetime, now: Optional[datetime] = None) -> float:
        now = now or utcnow()
        hours = (now - published_at).total_seconds() / 3600.0

        for max_hours, value in self.config.recency_steps:
            if hours < max_hours:
                return value
        return self.config.recency_floor

    @staticmethod
    def build_reasoning(factors: Sequence[ScoreFactor], final_score: float) -> str:
        parts = []
        for factor in factors:
            if factor.score > 0.7:
                parts.append(f"High {factor.name} ({factor.score:.2f})")
            elif factor.score < 0.4:
                parts.append(f"Low {factor.name} ({factor.score:.2f})")

        if not parts:
            return f"Final score: {final_score:.2f}. Moderate confidence across all factors"
        return f"Final score: {final_score:.2f}. {'; '.join(parts)}"


class MagnitudeEstimator:
    """
    Heuristic 0-10 severity estimate.

    The model's own magnitude is the primary value; this estimator backs the
    rule-based enricher and serves as a cross-check.
    """

    def __init__(self, config: Optional[MagnitudeConfig] = None):
        self.config = config or MagnitudeConfig()

    def estimate(self, event: Event, source: Source) -> float:
        base = self.config.category_bases.get(event.category.value, self.config.category_bases["other"])

        modifiers = (
            self.entity_count_modifier(event.entities),
            self.engagement_modifier(source.metadata),
            self.urgency_modifier(event.title, event.summary),
            self.scope_modifier(event.entities),
        )
        return clamp(base + sum(modifiers), 0.0, 10.0)

    @staticmethod
    def entity_count_modifier(entities: Sequence[Entity]) -> float:
        count = len(entities)
        if count < 2:
            return -0.5
        if count >= 5:
            return 1.0
        return 0.0

    def engagement_modifier(self, metadata: SourceMetadata) -> float:
        cfg = self.config
        modifier = 0.0
        if metadata.retweet_count > cfg.retweet_threshold or metadata.like_count > cfg.like_threshold:
            modifier += 0.5
        if metadata.view_count > cfg.view_threshold:
            modifier += 0.5
        return min(cfg.engagement_cap, modifier)

    def urgency_modifier(self, title: str, summary: str) -> float:
        text = f"{title} {summary}".lower()
        matches = sum(1 for term in self.config.urgency_terms if term in text)
        return min(self.config.urgency_cap, matches * self.config.urgency_step)

    def scope_modifier(self, entities: Sequence[Entity]) -> float:
        countries = len({e.display_name().lower() for e in entities if e.type == EntityType.COUNTRY})
        military_units = sum(1 for e in entities if e.type == EntityType.MILITARY_UNIT)
        organizations = sum(1 for e in entities if e.type == EntityType.ORGANIZATION)

        modifier = 0.0
        if countries >= 2:
            modifier += 0.8
        elif countries == 1:
            modifier += 0.2
        if military_units > 0:
            modifier += 0.5
        if organizations >= 2:
            modifier += 0.3
        return min(self.config.scope_cap, modifier)
