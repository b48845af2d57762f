"""
Batch coordinator: enrich many sources over a fixed pool of worker threads.

Workers pull ``(index, source)`` jobs from a shared queue and write one
JobOutcome per job into its index slot. A failing job never cancels its
siblings; results come back in input order.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Tuple

from osint_enrich.core.config import ENRICHMENT_MAX_WORKERS
from osint_enrich.core.errors import BatchEnrichmentError, EnrichmentError, SourceFailure
from osint_enrich.core.metrics import MetricsCollector, get_metrics
from osint_enrich.core.models import Event, Source

logger = logging.getLogger(__name__)


class Enricher(Protocol):
    def enrich(self, source: Source) -> Event:
        ...


@dataclass
class JobOutcome:
    """Result slot for one source: exactly one of event / error is set."""

    index: int
    source_id: str
    event: Optional[Event] = None
    error: Optional[SourceFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    events: List[Event] = field(default_factory=list)
    errors: List[SourceFailure] = field(default_factory=list)
    total: int = 0

    @property
    def error(self) -> Optional[BatchEnrichmentError]:
        if not self.errors:
            return None
        return BatchEnrichmentError(self.errors, self.total)

    def raise_for_errors(self):
        error = self.error
        if error is not None:
            raise error


class BatchEnricher:
    """Runs an enricher over a list of sources with bounded parallelism."""

    def __init__(
        self,
        enricher: Enricher,
        max_workers: int = ENRICHMENT_MAX_WORKERS,
        metrics: Optional[MetricsCollector] = None,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.enricher = enricher
        self.max_workers = max_workers
        self.metrics = metrics or get_metrics()

    def enrich_batch(self, sources: Sequence[Source]) -> BatchResult:
        """
        Enrich every source; per-source failures are collected, not raised.

        Returns:
            BatchResult with successful events in input order and one
            SourceFailure per failed source (also in input order)
        """
        if not sources:
            return BatchResult()

        total = len(sources)
        worker_count = min(self.max_workers, total)
        started = time.monotonic()
        logger.info(f"[BATCH ENRICH START] source_count={total} workers={worker_count}")

        jobs: "queue.Queue[Tuple[int, Source]]" = queue.Queue()
        for index, source in enumerate(sources):
            jobs.put((index, source))

        outcomes: List[Optional[JobOutcome]] = [None] * total

        workers = [
            threading.Thread(
                target=self._worker,
                args=(jobs, outcomes),
                name=f"enrich-worker-{n}",
                daemon=True,
            )
            for n in range(worker_count)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        result = BatchResult(total=total)
        for outcome in outcomes:
            if outcome is None:
                continue
            if outcome.ok:
                result.events.append(outcome.event)
            else:
                result.errors.append(outcome.error)

        duration = time.monotonic() - started
        self.metrics.observe("batch_duration_seconds", duration)
        self.metrics.increment("batch_sources_total", total)
        self.metrics.increment("batch_failures_total", len(result.errors))

        logger.info(
            f"[BATCH ENRICH COMPLETE] total={total} success={len(result.events)} "
            f"failed={len(result.errors)} duration_ms={duration * 1000:.0f}"
        )
        if result.errors:
            logger.warning(f"batch enrichment had failures: {result.error}")
        return result

    def _worker(self, jobs: "queue.Queue[Tuple[int, Source]]", outcomes: List[Optional[JobOutcome]]):
        while True:
            try:
                index, source = jobs.get_nowait()
            except queue.Empty:
                return
            outcomes[index] = self._run_job(index, source)
            jobs.task_done()

    def _run_job(self, index: int, source: Source) -> JobOutcome:
        try:
            event = self.enricher.enrich(source)
        except EnrichmentError as e:
            logger.error(f"enrichment failed: source_id={source.id} error={e}")
            return JobOutcome(index, source.id, error=SourceFailure(source.id, index, e))
        except Exception as e:
            # non-pipeline exceptions are captured per job too
            logger.exception(f"unexpected enrichment failure: source_id={source.id}")
            return JobOutcome(index, source.id, error=SourceFailure(source.id, index, e))
        return JobOutcome(index, source.id, event=event)
