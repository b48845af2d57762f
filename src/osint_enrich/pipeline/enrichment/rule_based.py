"""
Offline rule-based enricher.

Same contract as SourceEnricher.enrich but uses keyword rules instead of the
LLM. Used for dry runs and as a stand-in enricher behind BatchEnricher.
"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from osint_enrich.core.errors import InsufficientContent
from osint_enrich.core.models import (
    Category,
    Entity,
    EntityType,
    Event,
    EventStatus,
    Source,
    make_event_id,
    utcnow,
)
from osint_enrich.pipeline.enrichment.enricher import location_from_entities
from osint_enrich.pipeline.enrichment.scoring import ConfidenceScorer, MagnitudeEstimator

logger = logging.getLogger(__name__)

# checked in order, most specific first
CATEGORY_KEYWORDS: Tuple[Tuple[Category, Tuple[str, ...]], ...] = (
    (Category.CYBER, ("cyber", "hack", "breach", "malware", "ransomware")),
    (Category.TERRORISM, ("terror", "bombing", "hostage")),
    (Category.DIPLOMACY, ("diplomatic", "ambassador", "embassy", "foreign minister", "summit", "treaty")),
    (Category.MILITARY, ("military", "army", "navy", "troops", "soldiers", "war", "combat")),
    (Category.DISASTER, ("earthquake", "flood", "hurricane", "disaster")),
    (Category.GEOPOLITICS, ("sanctions", "alliance", "geopolitical")),
    (Category.ECONOMIC, ("economic", "trade", "market", "financial", "economy")),
    (Category.INTELLIGENCE, ("intelligence", "spy", "surveillance", "classified")),
    (Category.HUMANITARIAN, ("refugee", "humanitarian", "aid", "relief")),
)

KNOWN_COUNTRIES: Tuple[str, ...] = ("United States", "Russia", "China", "Ukraine", "Israel", "Iran")
PERSON_TITLES: Tuple[str, ...] = ("President", "Minister", "General", "Ambassador")

CATEGORY_SCAN_CHARS = 500
TITLE_CHARS = 100
SUMMARY_CHARS = 250

HASHTAG_RE = re.compile(r"#([A-Za-z0-9]+)")


def infer_category(content: str) -> Category:
    text = content[:CATEGORY_SCAN_CHARS].lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return Category.OTHER


def shorten(content: str, limit: int) -> str:
    if len(content) > limit:
        return content[:limit] + "..."
    return content


def extract_tags(content: str, category: Category) -> List[str]:
    tags = HASHTAG_RE.findall(content)
    tags.append(category.value)
    return tags


def extract_entities(content: str, countries: Sequence[str] = KNOWN_COUNTRIES) -> List[Entity]:
    lowered = content.lower()
    entities = [
        Entity(
            type=EntityType.COUNTRY,
            name=country,
            normalized_name=country,
            confidence=0.85,
            context="mentioned in content",
        )
        for country in countries
        if country.lower() in lowered
    ]

    # at most one title-only person
    for title in PERSON_TITLES:
        if title.lower() in lowered:
            entities.append(Entity(
                type=EntityType.PERSON,
                name=f"{title} (unnamed)",
                normalized_name=title,
                confidence=0.6,
                context="title mentioned",
            ))
            break
    return entities


class RuleBasedEnricher:
    """Keyword-driven enricher that never calls the LLM."""

    def __init__(
        self,
        scorer: Optional[ConfidenceScorer] = None,
        estimator: Optional[MagnitudeEstimator] = None,
        min_content_length: int = 50,
    ):
        self.scorer = scorer or ConfidenceScorer()
        self.estimator = estimator or MagnitudeEstimator()
        self.min_content_length = min_content_length

    def enrich(self, source: Source) -> Event:
        content = source.raw_content
        if len(content) < self.min_content_length:
            raise InsufficientContent(len(content), self.min_content_length)

        category = infer_category(content)
        entities = extract_entities(content)
        now = utcnow()

        event = Event(
            id=make_event_id(source),
            timestamp=source.published_at,
            title=shorten(content, TITLE_CHARS),
            summary=shorten(content, SUMMARY_CHARS),
            raw_content=content,
            category=category,
            tags=extract_tags(content, category),
            entities=entities,
            location=location_from_entities(entities),
            sources=[source],
            created_at=now,
            updated_at=now,
            status=EventStatus.ENRICHED,
        )
        event.confidence = self.scorer.score(source, event, entities)
        event.magnitude = self.estimator.estimate(event, source)

        logger.debug(
            f"rule-based enrichment: source_id={source.id} category={category.value} "
            f"entities={len(entities)} magnitude={event.magnitude:.1f}"
        )
        return event
