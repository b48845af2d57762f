"""
Shared fixtures for the enrichment test suite.

No test touches the network: LLM calls go through FakeLLMClient or a
patched ollama ``Client``.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from osint_enrich.core.metrics import MetricsCollector
from osint_enrich.core.models import Event, Source, SourceMetadata, SourceType
from osint_enrich.pipeline.enrichment.inference import UsageStats
from osint_enrich.pipeline.enrichment.llm_client import Completion

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

ARTICLE_TEXT = (
    "Ukrainian officials confirmed that a drone strike hit an energy facility near Kharkiv "
    "overnight. Regional authorities reported power outages across three districts, and "
    "repair crews were deployed at dawn. Details at https://example.org/report"
)

ANALYSIS_PAYLOAD: Dict[str, Any] = {
    "title": "Drone strike damages energy facility near Kharkiv, Ukraine",
    "category": "military",
    "magnitude": 6.5,
    "tags": ["ukraine", "drone", "energy"],
    "location": {"country": "Ukraine", "city": "Kharkiv", "region": "Kharkiv Oblast"},
    "key_facts": ["Drone strike hit an energy facility", "Power outages in three districts"],
    "implications": "Continued pressure on Ukrainian energy infrastructure.",
    "confidence_notes": "Single official source; consistent with prior reporting.",
}

Response = Union[str, BaseException]


class FakeLLMClient:
    """
    Scripted LLMClient.

    Responses are consumed per operation, in order; an exception in the
    script is raised instead of returned. A callable handler, when given,
    decides the response for every call.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, List[Response]]] = None,
        handler: Optional[Callable[..., Response]] = None,
        model: str = "test-model",
    ):
        self.model = model
        self.responses = {op: list(items) for op, items in (responses or {}).items()}
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []

    def complete(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        *,
        json_mode: bool = True,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        operation: str = "completion",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Completion:
        call = {
            "user_prompt": user_prompt,
            "system_prompt": system_prompt,
            "json_mode": json_mode,
            "timeout": timeout,
            "max_tokens": max_tokens,
            "operation": operation,
            "metadata": metadata,
        }
        self.calls.append(call)

        if self.handler is not None:
            result = self.handler(**call)
        else:
            queue = self.responses.get(operation)
            if not queue:
                raise AssertionError(f"unexpected {operation} call")
            result = queue.pop(0)

        if isinstance(result, BaseException):
            raise result
        return Completion(text=result, usage=UsageStats(10, 20, 30), model=self.model, finish_reason="stop")

    def calls_for(self, operation: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["operation"] == operation]


def make_source(
    source_id: str = "src-1",
    raw_content: str = ARTICLE_TEXT,
    source_type: SourceType = SourceType.NEWS_MEDIA,
    credibility: float = 0.8,
    published_at: Optional[datetime] = None,
    content_hash: str = "",
    metadata: Optional[SourceMetadata] = None,
    url: str = "https://news.example.com/kharkiv-strike",
) -> Source:
    return Source(
        id=source_id,
        type=source_type,
        url=url,
        title="Strike near Kharkiv",
        author="Desk",
        published_at=published_at or NOW - timedelta(hours=2),
        retrieved_at=NOW,
        raw_content=raw_content,
        content_hash=content_hash,
        metadata=metadata or SourceMetadata(),
        credibility=credibility,
    )


def make_event(
    event_id: str = "evt-existing",
    timestamp: Optional[datetime] = None,
    title: str = "Energy facility attacked in Kharkiv",
    source: Optional[Source] = None,
) -> Event:
    return Event(
        id=event_id,
        timestamp=timestamp or NOW - timedelta(hours=5),
        title=title,
        summary="An energy facility in Kharkiv was struck overnight.",
        key_facts=["Facility struck overnight"],
        sources=[source or make_source("src-existing")],
    )


@pytest.fixture
def source() -> Source:
    return make_source()


@pytest.fixture
def analysis_json() -> str:
    return json.dumps(ANALYSIS_PAYLOAD)


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def entities_json() -> str:
    return json.dumps({
        "entities": [
            {"type": "country", "name": "Ukraine", "normalized_name": "Ukraine", "confidence": 0.95, "context": "location"},
            {"type": "city", "name": "Kharkiv", "normalized_name": "Kharkiv", "confidence": 0.9, "context": "strike site"},
        ]
    })


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def source_factory() -> Callable[..., Source]:
    return make_source


@pytest.fixture
def event_factory() -> Callable[..., Event]:
    return make_event


@pytest.fixture
def fake_llm() -> Callable[..., FakeLLMClient]:
    return FakeLLMClient
