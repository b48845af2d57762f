"""
Tests for the offline rule-based enricher.
"""

import pytest

from osint_enrich.core.errors import InsufficientContent
from osint_enrich.core.models import Category, EntityType, EventStatus
from osint_enrich.pipeline.enrichment.rule_based import (
    RuleBasedEnricher,
    extract_entities,
    extract_tags,
    infer_category,
    shorten,
)


class TestInferCategory:

    @pytest.mark.parametrize("text, category", [
        ("Hackers deployed ransomware against the army logistics network", Category.CYBER),
        ("A car bombing killed several people near the embassy", Category.TERRORISM),
        ("The foreign minister arrived for the summit", Category.DIPLOMACY),
        ("Troops crossed the river at dawn", Category.MILITARY),
        ("A magnitude 6 earthquake struck the coast", Category.DISASTER),
        ("New sanctions announced on Tuesday", Category.GEOPOLITICS),
        ("Refugee numbers rose sharply", Category.HUMANITARIAN),
        ("Local football team wins cup", Category.OTHER),
    ])
    def test_keyword_order(self, text, category):
        assert infer_category(text) == category

    def test_only_scans_prefix(self):
        assert infer_category("x" * 600 + " malware") == Category.OTHER


class TestHelpers:

    def test_shorten(self):
        assert shorten("abc", 5) == "abc"
        assert shorten("abcdef", 3) == "abc..."

    def test_extract_tags(self):
        assert extract_tags("Update #Kharkiv #drones2025 now", Category.MILITARY) == ["Kharkiv", "drones2025", "military"]

    def test_extract_entities(self):
        entities = extract_entities("The President of Ukraine met officials from China and the Minister of Trade")
        countries = [e.name for e in entities if e.type == EntityType.COUNTRY]
        persons = [e for e in entities if e.type == EntityType.PERSON]

        assert countries == ["China", "Ukraine"]
        assert len(persons) == 1
        assert persons[0].name == "President (unnamed)"
        assert persons[0].confidence == 0.6


class TestRuleBasedEnricher:
    """Tests for RuleBasedEnricher.enrich."""

    def test_enrich(self, source_factory):
        content = (
            "Troops from Ukraine repelled an assault near the border overnight, according to the "
            "General Staff. Officials reported heavy shelling in several villages. #frontline"
        )
        source = source_factory(raw_content=content, content_hash="abc")
        event = RuleBasedEnricher().enrich(source)

        assert event.id == "evt-abc"
        assert event.status == EventStatus.ENRICHED
        assert event.sources == [source]
        assert event.title == source.raw_content[:100] + "..."
        assert event.location.country == "Ukraine"
        assert event.category == Category.MILITARY
        assert "frontline" in event.tags
        assert 0.0 <= event.confidence.score <= 1.0
        assert 0.0 <= event.magnitude <= 10.0

    def test_deterministic_id(self, source):
        enricher = RuleBasedEnricher()
        assert enricher.enrich(source).id == enricher.enrich(source).id

    def test_short_content(self, source_factory):
        with pytest.raises(InsufficientContent):
            RuleBasedEnricher().enrich(source_factory(raw_content="0123456789"))
