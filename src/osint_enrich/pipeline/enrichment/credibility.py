"""
Source credibility assessment.

The model rates a source URL with a single decimal in [0, 1]. Any failure
falls back to the prior for the source type, so callers always get a score.
Scores are cached per domain.
"""

import logging
import math
import threading
import time
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import urlsplit

from osint_enrich.core.config import CredibilityConfig, ScoringConfig
from osint_enrich.core.errors import EnrichmentError
from osint_enrich.core.models import SourceType, clamp
from osint_enrich.pipeline.enrichment.llm_client import LLMClient

logger = logging.getLogger(__name__)

CREDIBILITY_SYSTEM_PROMPT = (
    "You are an OSINT analyst expert at assessing source credibility. "
    "Respond only with a decimal number."
)

CREDIBILITY_PROMPT = """Assess the credibility of this source for OSINT analysis.

URL: {url}
Source Type: {source_type}

Consider:
- Domain reputation and authority
- Known track record for accuracy
- Editorial standards
- Bias/reliability ratings
- Historical trustworthiness

Respond with ONLY a decimal number between 0.0 (not credible) and 1.0 (highly credible).
Examples:
- Reuters, AP News: 0.95
- CNN, BBC: 0.85
- Local news sites: 0.70
- Personal blogs: 0.40
- Twitter/social media: 0.60
- Unknown/suspicious sites: 0.20

Score:"""


def extract_domain(url: str) -> str:
    """Host part of ``url`` without the port; empty string if unparseable."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


class CredibilityAssessor:
    """Rates source URLs with the LLM."""

    def __init__(
        self,
        llm_client: LLMClient,
        config: Optional[CredibilityConfig] = None,
        scoring: Optional[ScoringConfig] = None,
    ):
        self.llm_client = llm_client
        self.config = config or CredibilityConfig()
        self.scoring = scoring or ScoringConfig()

    def default_for(self, source_type: SourceType) -> float:
        return self.scoring.source_type_prior(SourceType(source_type).value)

    def assess(self, url: str, source_type: SourceType) -> float:
        source_type = SourceType(source_type)
        try:
            completion = self.llm_client.complete(
                CREDIBILITY_PROMPT.format(url=url, source_type=source_type.value),
                CREDIBILITY_SYSTEM_PROMPT,
                json_mode=False,
                timeout=self.config.timeout,
                max_tokens=self.config.max_tokens,
                operation="source_credibility",
                metadata={"url": url, "source_type": source_type.value},
            )
        except EnrichmentError as e:
            logger.error(f"failed to assess source credibility: url={url} error={e}")
            return self.default_for(source_type)

        text = completion.text.strip()
        if not text:
            logger.debug(f"empty credibility response, using default: url={url}")
            return self.default_for(source_type)

        try:
            score = float(text)
            if not math.isfinite(score):
                raise ValueError(text)
        except ValueError:
            logger.debug(f"failed to parse credibility score, using default: url={url} response={text[:50]!r}")
            return self.default_for(source_type)

        score = clamp(score, 0.0, 1.0)
        logger.debug(f"assessed source credibility: url={url} score={score:.2f}")
        return score


class CredibilityCache:
    """Thread-safe per-domain cache in front of a CredibilityAssessor."""

    def __init__(
        self,
        assessor: CredibilityAssessor,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.assessor = assessor
        self.ttl = ttl if ttl is not None else assessor.config.cache_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, float]] = {}
        self._lock = threading.Lock()

    def get_credibility(self, url: str, source_type: SourceType) -> float:
        domain = extract_domain(url)
        if not domain:
            return self.assessor.default_for(source_type)

        with self._lock:
            entry = self._entries.get(domain)
        if entry is not None:
            score, stored_at = entry
            if self._clock() - stored_at < self.ttl:
                return score

        score = self.assessor.assess(url, source_type)
        with self._lock:
            self._entries[domain] = (score, self._clock())
        return score

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
