"""
Event correlation: decide whether a new source belongs to an existing event.

Candidates are supplied by the caller. Only events from the recent window are
checked, one LLM call per candidate, in the order given. The loop stops at the
first candidate with similarity above the early-exit threshold, so when
several candidates would qualify, the earliest one in iteration order wins.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from osint_enrich.core.config import CorrelationConfig, EnrichmentConfig
from osint_enrich.core.errors import CorrelationCallFailed, EnrichmentError
from osint_enrich.core.models import CorrelationResult, Event, Source, utcnow
from osint_enrich.pipeline.enrichment.llm_client import LLMClient
from osint_enrich.pipeline.enrichment.parser import parse_json_payload
from osint_enrich.pipeline.enrichment.prompts import PromptTemplates

logger = logging.getLogger(__name__)


def filter_recent_events(
    events: Sequence[Event],
    window: timedelta,
    now: Optional[datetime] = None,
) -> List[Event]:
    cutoff = (now or utcnow()) - window
    return [event for event in events if event.timestamp > cutoff]


class EventCorrelator:
    """Analyzes relationships between new sources and existing events."""

    def __init__(
        self,
        llm_client: LLMClient,
        prompts: Optional[PromptTemplates] = None,
        config: Optional[CorrelationConfig] = None,
        enrichment_config: Optional[EnrichmentConfig] = None,
    ):
        self.llm_client = llm_client
        self.prompts = prompts or PromptTemplates.default()
        self.config = config or CorrelationConfig()
        self.timeout = (enrichment_config or EnrichmentConfig()).timeout

    def analyze_correlation(self, source: Source, event: Event) -> CorrelationResult:
        """
        One correlation check of ``source`` against ``event``.

        Raises:
            CorrelationCallFailed: provider failure or unparseable response
        """
        prompt = self.prompts.build_correlation_prompt(source, event, self.config.preview_chars)
        try:
            completion = self.llm_client.complete(
                prompt,
                self.prompts.correlation_system_prompt,
                json_mode=True,
                timeout=self.timeout,
                max_tokens=self.config.max_tokens,
                operation="correlation",
                metadata={"source_id": source.id, "event_id": event.id},
            )
            payload = parse_json_payload(completion.text)
        except EnrichmentError as e:
            raise CorrelationCallFailed(f"correlation analysis failed for event {event.id}: {e}") from e

        if not isinstance(payload, dict):
            raise CorrelationCallFailed(f"correlation response for event {event.id} is not a JSON object")

        # models sometimes send null for empty lists
        payload["novel_facts"] = payload.get("novel_facts") or []
        try:
            result = CorrelationResult.model_validate(payload)
        except ValidationError as e:
            raise CorrelationCallFailed(f"failed to parse correlation result for event {event.id}: {e}") from e

        logger.debug(
            f"analyzed source correlation: source_id={source.id} event_id={event.id} "
            f"similarity={result.similarity:.2f} should_merge={result.should_merge} "
            f"novel_facts={len(result.novel_facts)}"
        )
        return result

    def find_best_match(
        self,
        source: Source,
        candidates: Sequence[Event],
        now: Optional[datetime] = None,
    ) -> Tuple[Optional[Event], Optional[CorrelationResult]]:
        """
        Find the existing event ``source`` should merge into.

        Returns:
            (event, result) when the best similarity reaches the match threshold
            and the model says to merge; (None, None) otherwise
        """
        if not candidates:
            return None, None

        window = timedelta(hours=self.config.recent_window_hours)
        recent = filter_recent_events(candidates, window, now)

        best_event: Optional[Event] = None
        best_result: Optional[CorrelationResult] = None
        best_similarity = 0.0

        for event in recent:
            try:
                result = self.analyze_correlation(source, event)
            except CorrelationCallFailed as e:
                logger.warning(f"failed to analyze correlation: event_id={event.id} error={e}")
                continue

            if result.similarity > best_similarity:
                best_similarity = result.similarity
                best_event = event
                best_result = result

            if result.similarity > self.config.early_exit_similarity:
                logger.debug(f"found high-confidence match early: event_id={event.id} similarity={result.similarity:.2f}")
                break

        if best_result is not None and best_similarity >= self.config.match_threshold and best_result.should_merge:
            return best_event, best_result
        return None, None
