"""
Error taxonomy for the enrichment pipeline.

Fatal per-source errors (InsufficientContent, ProviderCallFailed,
MalformedResponse) propagate out of SourceEnricher.enrich. Non-fatal ones
(EntityExtractionFailed, CorrelationCallFailed) are raised by their
components and absorbed by the orchestrator or correlator loop.
"""

from typing import List, Optional


class EnrichmentError(Exception):
    """Base class for every error raised by the pipeline."""


class InsufficientContent(EnrichmentError):
    """Source content is too short to analyze."""

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"insufficient content for enrichment: only {length} chars "
            f"(minimum {minimum} required)"
        )


class ProviderCallFailed(EnrichmentError):
    """The LLM provider call failed (network, API or timeout)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        rate_limited: bool = False,
    ):
        self.status_code = status_code
        self.rate_limited = rate_limited
        super().__init__(message)


class MalformedResponse(EnrichmentError):
    """Model output could not be parsed into the expected structure."""


class EntityExtractionFailed(EnrichmentError):
    """Secondary entity extraction failed; callers degrade to no entities."""


class CorrelationCallFailed(EnrichmentError):
    """Correlation check against one candidate event failed."""


class BatchEnrichmentError(EnrichmentError):
    """Summary of per-source failures within one batch run."""

    def __init__(self, failures: List[EnrichmentError], total: int):
        self.failures = list(failures)
        self.total = total
        self.first = self.failures[0] if self.failures else None
        super().__init__(
            f"batch enrichment had {len(self.failures)} errors out of {total} sources "
            f"(first: {self.first})"
        )

    @property
    def count(self) -> int:
        return len(self.failures)


class SourceFailure(EnrichmentError):
    """Wraps a per-source failure with the source it belongs to."""

    def __init__(self, source_id: str, index: int, cause: BaseException):
        self.source_id = source_id
        self.index = index
        self.cause = cause
        super().__init__(f"source {source_id}: {cause}")
