"""
Named-entity extraction backed by the LLM, plus alias-based normalization.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from osint_enrich.core.config import EnrichmentConfig
from osint_enrich.core.errors import EnrichmentError, EntityExtractionFailed, MalformedResponse
from osint_enrich.core.models import Entity, EntityType, clamp
from osint_enrich.pipeline.enrichment.llm_client import LLMClient
from osint_enrich.pipeline.enrichment.parser import parse_json_payload

logger = logging.getLogger(__name__)

ENTITY_SYSTEM_PROMPT = (
    "You are a precise entity extraction system. You must respond with ONLY valid JSON. "
    "Wrap all entities in an object with an 'entities' key. Structure: "
    '{"entities": [{"type": "...", "name": "...", "normalized_name": "...", '
    '"confidence": 0.0, "context": "..."}]}'
)

COUNTRY_ALIASES: Mapping[str, str] = {
    "USA": "United States",
    "U.S.": "United States",
    "U.S.A.": "United States",
    "US": "United States",
    "America": "United States",
    "UK": "United Kingdom",
    "U.K.": "United Kingdom",
    "Britain": "United Kingdom",
    "Great Britain": "United Kingdom",
    "Russia": "Russian Federation",
    "USSR": "Soviet Union",
    "PRC": "China",
    "P.R.C.": "China",
    "ROK": "South Korea",
    "DPRK": "North Korea",
    "UAE": "United Arab Emirates",
    "U.A.E.": "United Arab Emirates",
    "KSA": "Saudi Arabia",
    "Deutschland": "Germany",
}

CITY_ALIASES: Mapping[str, str] = {
    "NYC": "New York City",
    "New York": "New York City",
    "LA": "Los Angeles",
    "SF": "San Francisco",
    "DC": "Washington",
    "Kiev": "Kyiv",
    "Peking": "Beijing",
    "Bombay": "Mumbai",
    "Leningrad": "Saint Petersburg",
    "Constantinople": "Istanbul",
}

COUNTRY_CODES: Mapping[str, str] = {
    "United States": "US",
    "United Kingdom": "GB",
    "Russian Federation": "RU",
    "China": "CN",
    "Germany": "DE",
    "France": "FR",
    "Japan": "JP",
    "South Korea": "KR",
    "North Korea": "KP",
    "Ukraine": "UA",
    "Israel": "IL",
    "Iran": "IR",
    "Saudi Arabia": "SA",
    "United Arab Emirates": "AE",
    "Turkey": "TR",
    "India": "IN",
    "Pakistan": "PK",
    "Australia": "AU",
    "Canada": "CA",
    "Mexico": "MX",
    "Brazil": "BR",
}


def parse_entity_type(value: Any) -> EntityType:
    try:
        return EntityType(str(value or "").strip().lower())
    except ValueError:
        return EntityType.OTHER


class EntityNormalizer:
    """Standardizes country and city names and attaches ISO-2 codes."""

    def __init__(
        self,
        country_aliases: Mapping[str, str] = COUNTRY_ALIASES,
        city_aliases: Mapping[str, str] = CITY_ALIASES,
        country_codes: Mapping[str, str] = COUNTRY_CODES,
    ):
        self.country_aliases = dict(country_aliases)
        self.city_aliases = dict(city_aliases)
        self.country_codes = dict(country_codes)

    def normalize(self, entity: Entity) -> Entity:
        updates: Dict[str, Any] = {}

        if entity.type == EntityType.COUNTRY:
            canonical = self.country_aliases.get(entity.name)
            if canonical:
                updates["normalized_name"] = canonical
            code = self.country_codes.get(canonical or entity.normalized_name or entity.name)
            if code:
                updates["country_code"] = code
        elif entity.type == EntityType.CITY:
            canonical = self.city_aliases.get(entity.name)
            if canonical:
                updates["normalized_name"] = canonical

        if not updates.get("normalized_name") and not entity.normalized_name:
            updates["normalized_name"] = entity.name

        return entity.model_copy(update=updates) if updates else entity


class EntityExtractor:
    """Extracts named entities from raw content with one JSON-mode LLM call."""

    def __init__(
        self,
        llm_client: LLMClient,
        config: Optional[EnrichmentConfig] = None,
        normalizer: Optional[EntityNormalizer] = None,
    ):
        self.llm_client = llm_client
        self.config = config or EnrichmentConfig()
        self.normalizer = normalizer or EntityNormalizer()

    def extract(self, content: str, extraction_prompt: str) -> List[Entity]:
        """
        Extract entities from ``content``.

        Args:
            content: Raw source text (used for logging context only)
            extraction_prompt: Fully rendered entity extraction prompt

        Raises:
            EntityExtractionFailed: Empty prompt, provider failure or unparseable output
        """
        if not extraction_prompt:
            raise EntityExtractionFailed("entity extraction prompt is empty")

        try:
            completion = self.llm_client.complete(
                extraction_prompt,
                ENTITY_SYSTEM_PROMPT,
                json_mode=True,
                timeout=self.config.timeout,
                max_tokens=self.config.entity_max_tokens,
                operation="entity_extraction",
            )
        except EnrichmentError as e:
            raise EntityExtractionFailed(f"entity extraction failed: {e}") from e

        if not completion.text.strip():
            return []

        try:
            entities = self.parse_response(completion.text)
        except EnrichmentError as e:
            raise EntityExtractionFailed(f"failed to parse entities: {e}") from e

        logger.debug(f"Extracted {len(entities)} entities from {len(content)} chars")
        return [self.normalizer.normalize(entity) for entity in entities]

    @staticmethod
    def parse_response(text: str) -> List[Entity]:
        """
        Accepts ``{"entities": [...]}`` or a bare ``[...]`` array.

        Raises:
            MalformedResponse: ``entities`` holds something other than a list
        """
        payload = parse_json_payload(text, allow_array=True)
        if isinstance(payload, dict):
            raw_entities = payload.get("entities")
            if raw_entities is None:
                raw_entities = []
        else:
            raw_entities = payload
        if not isinstance(raw_entities, list):
            raise MalformedResponse(
                f"entities must be a JSON array, got {type(raw_entities).__name__}"
            )

        entities = []
        for raw in raw_entities:
            if not isinstance(raw, dict) or not raw.get("name"):
                continue
            try:
                confidence = float(raw.get("confidence") or 0.0)
            except (TypeError, ValueError):
                confidence = 0.0
            if not math.isfinite(confidence):
                confidence = 0.0
            entities.append(Entity(
                type=parse_entity_type(raw.get("type")),
                name=str(raw["name"]).strip(),
                normalized_name=str(raw.get("normalized_name") or "").strip(),
                confidence=clamp(confidence, 0.0, 1.0),
                context=str(raw.get("context") or ""),
            ))
        return entities
