"""
Tests for confidence scoring and magnitude estimation.
"""

from datetime import timedelta

import pytest

from osint_enrich.core.config import ScoringConfig
from osint_enrich.core.models import (
    Category,
    ConfidenceLevel,
    Entity,
    EntityType,
    Event,
    SourceMetadata,
    SourceType,
)
from osint_enrich.pipeline.enrichment.scoring import (
    ConfidenceScorer,
    MagnitudeEstimator,
    is_all_caps,
)


def event_for(source, **fields):
    return Event(id="evt-test", timestamp=source.published_at, sources=[source], **fields)


class TestConfidenceScorer:
    """Tests for ConfidenceScorer."""

    def test_government_source_without_entities(self, source_factory, now):
        source = source_factory(source_type=SourceType.GOVERNMENT, credibility=0.9)
        scorer = ConfidenceScorer()

        factors = {f.name: f for f in scorer.factors(source, [], now)}

        assert factors["entity_confidence"].score == 0.5
        assert factors["source_type"].score == 0.95
        assert factors["source_credibility"].score == 0.9

    def test_score_in_range_and_level_matches(self, source, now):
        scorer = ConfidenceScorer()
        confidence = scorer.score(source, event_for(source), [], now)

        assert 0.0 <= confidence.score <= 1.0
        assert confidence.level == ConfidenceLevel.from_score(confidence.score)
        assert confidence.source_count == 1
        assert confidence.reasoning.startswith("Final score:")

    def test_weighted_average(self, source_factory, now):
        source = source_factory(
            source_type=SourceType.GOVERNMENT,
            credibility=1.0,
            published_at=now - timedelta(minutes=10),
        )
        scorer = ConfidenceScorer()
        entities = [Entity(name="Ukraine", type=EntityType.COUNTRY, confidence=1.0)]
        quality = scorer.content_quality(source.raw_content)

        expected = 0.35 * 1.0 + 0.25 * 0.95 + 0.15 * 1.0 + 0.15 * quality + 0.10 * 1.0
        confidence = scorer.score(source, event_for(source), entities, now)

        assert confidence.score == pytest.approx(expected)

    @pytest.mark.parametrize("field", ["summary", "implications", "confidence_notes"])
    def test_insufficient_data_caps_score(self, source_factory, now, field):
        source = source_factory(source_type=SourceType.GOVERNMENT, credibility=1.0)
        event = event_for(source, **{field: "The provided information lacks sufficient detail."})

        confidence = ConfidenceScorer().score(source, event, [], now)

        assert confidence.score <= 0.05
        assert confidence.level == ConfidenceLevel.LOW

    def test_source_count_follows_event(self, source_factory, now):
        a, b = source_factory("a"), source_factory("b")
        event = Event(id="e", timestamp=a.published_at, sources=[a, b])
        assert ConfidenceScorer().score(a, event, [], now).source_count == 2

    @pytest.mark.parametrize("hours, expected", [
        (0.5, 1.0),
        (3, 0.9),
        (12, 0.75),
        (48, 0.6),
        (100, 0.45),
        (500, 0.3),
    ])
    def test_recency_steps(self, now, hours, expected):
        assert ConfidenceScorer().recency(now - timedelta(hours=hours), now) == expected

    def test_content_quality_penalties(self):
        scorer = ConfidenceScorer()
        calm = "Officials said the talks would resume next week after a short pause in negotiations. " * 3
        loud = "BREAKING: SHOCKING ATTACK!!!!!! EVERYONE MUST SEE THIS NOW!!!"

        assert scorer.content_quality(calm) > scorer.content_quality(loud)

    def test_content_quality_bounds(self):
        scorer = ConfidenceScorer()
        assert 0.0 <= scorer.content_quality("") <= 1.0
        assert scorer.content_quality("x" * 6000 + " http") == pytest.approx(0.55)

    def test_custom_priors(self, source_factory, now):
        config = ScoringConfig(source_type_priors={"blog": 1.0})
        source = source_factory(source_type=SourceType.BLOG)
        factors = {f.name: f for f in ConfidenceScorer(config).factors(source, [], now)}
        assert factors["source_type"].score == 1.0


class TestIsAllCaps:

    def test_short_strings_ignored(self):
        assert not is_all_caps("NATO")

    def test_mostly_upper(self):
        assert is_all_caps("TROOPS ARE MOVING north")

    def test_mixed(self):
        assert not is_all_caps("Troops are moving north")


class TestMagnitudeEstimator:
    """Tests for MagnitudeEstimator."""

    def test_category_base_with_few_entities(self, source):
        event = event_for(source, category=Category.TERRORISM, title="Statement released")
        # base 9.0, fewer than two entities -0.5
        assert MagnitudeEstimator().estimate(event, source) == pytest.approx(8.5)

    def test_clamped_to_ten(self, source_factory):
        source = source_factory(metadata=SourceMetadata(tweet_id="1", retweet_count=5000, view_count=50000))
        entities = [
            Entity(name="Ukraine", type=EntityType.COUNTRY),
            Entity(name="Russia", type=EntityType.COUNTRY),
            Entity(name="3rd Brigade", type=EntityType.MILITARY_UNIT),
            Entity(name="NATO", type=EntityType.ORGANIZATION),
            Entity(name="UN", type=EntityType.ORGANIZATION),
        ]
        event = event_for(
            source,
            category=Category.TERRORISM,
            title="BREAKING: urgent attack, war crisis",
            entities=entities,
        )
        assert MagnitudeEstimator().estimate(event, source) == 10.0

    def test_engagement_modifier(self):
        estimator = MagnitudeEstimator()
        assert estimator.engagement_modifier(SourceMetadata()) == 0.0
        assert estimator.engagement_modifier(SourceMetadata(like_count=6000)) == 0.5
        assert estimator.engagement_modifier(SourceMetadata(retweet_count=2000, view_count=20000)) == 1.0

    def test_urgency_capped(self):
        estimator = MagnitudeEstimator()
        assert estimator.urgency_modifier("breaking urgent emergency crisis attack", "") == 1.0
        assert estimator.urgency_modifier("strike reported", "") == pytest.approx(0.3)

    def test_scope_counts_distinct_countries(self):
        estimator = MagnitudeEstimator()
        same = [
            Entity(name="USA", normalized_name="United States", type=EntityType.COUNTRY),
            Entity(name="U.S.", normalized_name="United States", type=EntityType.COUNTRY),
        ]
        assert estimator.scope_modifier(same) == pytest.approx(0.2)

        two = same + [Entity(name="China", type=EntityType.COUNTRY)]
        assert estimator.scope_modifier(two) == pytest.approx(0.8)

    def test_entity_count_modifier(self):
        few = [Entity(name="a")]
        many = [Entity(name=str(i)) for i in range(5)]
        assert MagnitudeEstimator.entity_count_modifier(few) == -0.5
        assert MagnitudeEstimator.entity_count_modifier(many[:3]) == 0.0
        assert MagnitudeEstimator.entity_count_modifier(many) == 1.0
