"""
Enrichment orchestrator.

Drives one source end-to-end: analysis prompt -> LLM call with rate-limit
retry -> structured parse -> entity extraction (non-fatal) -> location
fallback -> confidence scoring -> event assembly.
"""

import logging
import random
import time
from typing import Callable, List, Optional

from osint_enrich.core.config import EnrichmentConfig
from osint_enrich.core.errors import (
    EntityExtractionFailed,
    EnrichmentError,
    InsufficientContent,
    MalformedResponse,
    ProviderCallFailed,
)
from osint_enrich.core.metrics import MetricsCollector, get_metrics
from osint_enrich.core.models import (
    Entity,
    EntityType,
    Event,
    EventStatus,
    Location,
    Source,
    make_event_id,
    utcnow,
)
from osint_enrich.pipeline.enrichment.entities import EntityExtractor
from osint_enrich.pipeline.enrichment.llm_client import Completion, LLMClient, is_rate_limit_error
from osint_enrich.pipeline.enrichment.parser import parse_structured_analysis
from osint_enrich.pipeline.enrichment.prompts import PromptTemplates
from osint_enrich.pipeline.enrichment.scoring import ConfidenceScorer

logger = logging.getLogger(__name__)

ARTICLE_SYSTEM_PROMPT = (
    "You are an expert at extracting article content from HTML. Return only the clean "
    "article text without any formatting or explanations."
)

ARTICLE_PROMPT = """Extract the main article content from this HTML page. Return only the clean article text without any HTML tags, navigation menus, advertisements, or other non-article content.

URL: {url}

Return the extracted article text in plain text format. If the page is blocked, paywalled, or contains no article content, return "ERROR: No article content found".

HTML:
{html}"""


def location_from_entities(entities: List[Entity]) -> Optional[Location]:
    """Location from the first country and city entities; None without a country."""
    country = ""
    city = ""
    for entity in entities:
        if entity.type == EntityType.COUNTRY and not country:
            country = entity.display_name()
        elif entity.type == EntityType.CITY and not city:
            city = entity.display_name()
        if country and city:
            break

    if not country:
        return None
    return Location(country=country, city=city)


class SourceEnricher:
    """
    Main orchestrator for enriching OSINT sources with the LLM.

    Handles:
    - Content-length gate before any network call
    - Primary analysis call with exponential backoff on rate limits
    - Structured response parsing into an Event skeleton
    - Non-fatal entity extraction and location fallback
    - Confidence scoring and deterministic event identity
    """

    def __init__(
        self,
        llm_client: LLMClient,
        prompts: Optional[PromptTemplates] = None,
        extractor: Optional[EntityExtractor] = None,
        scorer: Optional[ConfidenceScorer] = None,
        config: Optional[EnrichmentConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ):
        """
        Initialize the enricher.

        Args:
            llm_client: Completion provider (required)
            prompts: Prompt templates (defaults to the built-in templates)
            extractor: Entity extractor (defaults to one over ``llm_client``)
            scorer: Confidence scorer
            config: Retry, timeout and threshold settings
            metrics: Metrics collector (defaults to the process-wide one)
            sleep: Backoff sleep function
            jitter: Random jitter source, called as ``jitter(0, max_jitter)``
        """
        if not llm_client:
            raise ValueError("llm_client is required")
        self.llm_client = llm_client
        self.config = config or EnrichmentConfig()
        self.prompts = prompts or PromptTemplates.default()
        self.extractor = extractor or EntityExtractor(llm_client, self.config)
        self.scorer = scorer or ConfidenceScorer()
        self.metrics = metrics or get_metrics()
        self._sleep = sleep
        self._jitter = jitter

    def enrich(self, source: Source) -> Event:
        """
        Process a single source into an enriched event.

        Raises:
            InsufficientContent: raw content shorter than the minimum
            ProviderCallFailed: primary analysis call failed (after retries for rate limits)
            MalformedResponse: empty or unparseable analysis response
        """
        started = time.monotonic()
        logger.info(f"[ENRICH START] source_id={source.id} url={source.url}")

        try:
            event = self._enrich(source)
        except EnrichmentError as e:
            self.metrics.increment("enrichment_total", labels={"status": type(e).__name__})
            raise

        self.metrics.increment("enrichment_total", labels={"status": "success"})
        duration = time.monotonic() - started
        self.metrics.observe("enrichment_duration_seconds", duration)
        logger.info(
            f"[ENRICH COMPLETE] source_id={source.id} event_id={event.id} "
            f"entities={len(event.entities)} confidence={event.confidence.score:.2f} "
            f"magnitude={event.magnitude:.1f} duration_ms={duration * 1000:.0f}"
        )
        return event

    def _enrich(self, source: Source) -> Event:
        content_length = len(source.raw_content)
        if content_length < self.config.min_content_length:
            raise InsufficientContent(content_length, self.config.min_content_length)

        prompt = self.prompts.build_analysis_prompt(source)
        completion = self.call_with_retry(source, prompt)

        if not completion.text.strip():
            logger.error(
                f"[EMPTY RESPONSE] source_id={source.id} model={completion.model} "
                f"finish_reason={completion.finish_reason}"
            )
            raise MalformedResponse(
                f"empty response from model {completion.model} (finish_reason: {completion.finish_reason})"
            )

        event = self.build_event(source, completion.text)

        entities = self.extract_entities(source)
        event.entities = entities

        if event.location is None:
            event.location = location_from_entities(entities)

        event.confidence = self.scorer.score(source, event, entities)
        event.status = EventStatus.ENRICHED
        return event

    def call_with_retry(self, source: Source, prompt: str) -> Completion:
        """
        Primary analysis call. Only rate-limit failures are retried.

        Raises:
            ProviderCallFailed: non-rate-limit failure, or rate limit on the final attempt
        """
        max_attempts = max(1, self.config.max_attempts)

        for attempt in range(max_attempts):
            logger.info(
                f"[LLM CALL START] source_id={source.id} attempt={attempt + 1}/{max_attempts} "
                f"timeout_sec={self.config.timeout}"
            )
            try:
                return self.llm_client.complete(
                    prompt,
                    self.prompts.system_prompt,
                    json_mode=True,
                    timeout=self.config.timeout,
                    max_tokens=self.config.max_tokens,
                    operation="event_creation",
                    metadata={"source_id": source.id, "attempt": attempt + 1},
                )
            except ProviderCallFailed as e:
                if not is_rate_limit_error(e, self.config.rate_limit_markers):
                    raise

                self.metrics.increment("llm_rate_limited_total")
                if attempt >= max_attempts - 1:
                    logger.error(
                        f"rate limit exceeded, max retries reached: source_id={source.id} "
                        f"attempts={max_attempts} error={e}"
                    )
                    raise ProviderCallFailed(
                        f"rate limited after {max_attempts} attempts for source {source.id}: {e}",
                        status_code=e.status_code,
                        rate_limited=True,
                    ) from e

                delay = self.retry_delay(attempt)
                logger.warning(
                    f"rate limited, retrying with backoff: source_id={source.id} "
                    f"attempt={attempt + 1} delay_ms={delay * 1000:.0f}"
                )
                self._sleep(delay)

        # unreachable: the loop either returns or raises
        raise ProviderCallFailed(f"no attempts made for source {source.id}")

    def retry_delay(self, attempt: int) -> float:
        """``base * 2**attempt`` plus up to ``retry_max_jitter`` seconds of jitter."""
        base = self.config.retry_base_delay * (2 ** attempt)
        return base + self._jitter(0, self.config.retry_max_jitter)

    def build_event(self, source: Source, analysis: str) -> Event:
        """Parse the analysis response into an event skeleton for ``source``."""
        parsed = parse_structured_analysis(analysis)
        now = utcnow()
        return Event(
            id=make_event_id(source),
            timestamp=source.published_at,
            title=parsed.title,
            raw_content=source.raw_content,
            category=parsed.category,
            magnitude=parsed.magnitude,
            tags=parsed.tags,
            location=parsed.location,
            key_facts=parsed.key_facts,
            implications=parsed.implications,
            confidence_notes=parsed.confidence_notes,
            sources=[source],
            created_at=now,
            updated_at=now,
            status=EventStatus.PENDING,
        )

    def extract_entities(self, source: Source) -> List[Entity]:
        """Secondary entity call; any failure degrades to an empty list."""
        started = time.monotonic()
        prompt = self.prompts.build_entity_extraction_prompt(source.raw_content)
        try:
            entities = self.extractor.extract(source.raw_content, prompt)
        except EntityExtractionFailed as e:
            self.metrics.increment("entity_extraction_failed_total")
            logger.warning(f"entity extraction failed, continuing without entities: source_id={source.id} error={e}")
            return []

        logger.info(
            f"[ENTITY EXTRACTION COMPLETE] source_id={source.id} entity_count={len(entities)} "
            f"duration_ms={(time.monotonic() - started) * 1000:.0f}"
        )
        return entities

    def extract_article_text(self, html: str, url: str) -> str:
        """
        Extract clean article text from raw HTML using the LLM.

        Raises:
            ProviderCallFailed: provider failure
            MalformedResponse: page blocked/empty or extraction too short
        """
        limit = self.config.article_html_limit
        if len(html) > limit:
            logger.warning(f"truncating HTML for extraction: url={url} original_length={len(html)} truncated_length={limit}")
            html = html[:limit]

        completion = self.llm_client.complete(
            ARTICLE_PROMPT.format(url=url, html=html),
            ARTICLE_SYSTEM_PROMPT,
            json_mode=False,
            timeout=30,
            max_tokens=4000,
            operation="article_extraction",
            metadata={"url": url},
        )

        text = completion.text.strip()
        if text.startswith("ERROR:") or len(text) < self.config.article_min_length:
            raise MalformedResponse(f"failed to extract article content: {text[:200]}")

        logger.info(f"extracted article text: url={url} length={len(text)}")
        return text
