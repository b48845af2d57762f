"""
Pydantic data model for OSINT sources, events and entities.

Sources are immutable inputs produced by ingestion collaborators. Events are
the enrichment output; their magnitude and confidence score are clamped to
range on construction and on assignment.
"""

import hashlib
import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp(value: float, low: float, high: float) -> float:
    """Bound ``value`` to [low, high]; NaN and infinities are rejected."""
    if not math.isfinite(value):
        raise ValueError(f"expected a finite number, got {value!r}")
    return max(low, min(high, value))


class SourceType(str, Enum):
    """Origin platform of a raw source."""

    TWITTER = "twitter"
    TELEGRAM = "telegram"
    GLP = "glp"  # Godlike Productions forum
    GOVERNMENT = "government"
    NEWS_MEDIA = "news_media"
    BLOG = "blog"
    OTHER = "other"


class Category(str, Enum):
    GEOPOLITICS = "geopolitics"
    MILITARY = "military"
    ECONOMIC = "economic"
    CYBER = "cyber"
    DISASTER = "disaster"
    TERRORISM = "terrorism"
    DIPLOMACY = "diplomacy"
    INTELLIGENCE = "intelligence"
    HUMANITARIAN = "humanitarian"
    OTHER = "other"


class EntityType(str, Enum):
    COUNTRY = "country"
    CITY = "city"
    REGION = "region"
    PERSON = "person"
    ORGANIZATION = "organization"
    MILITARY_UNIT = "military_unit"
    VESSEL = "vessel"
    WEAPON_SYSTEM = "weapon_system"
    EVENT = "event"
    FACILITY = "facility"
    OTHER = "other"


PRIMARY_ENTITY_TYPES = frozenset({
    EntityType.COUNTRY,
    EntityType.CITY,
    EntityType.PERSON,
    EntityType.ORGANIZATION,
    EntityType.MILITARY_UNIT,
})


class EventStatus(str, Enum):
    PENDING = "pending"        # ingested, not yet processed
    ENRICHED = "enriched"      # LLM processing completed
    PUBLISHED = "published"
    ARCHIVED = "archived"
    REJECTED = "rejected"


class ConfidenceLevel(str, Enum):
    LOW = "low"            # 0.0-0.3
    MEDIUM = "medium"      # 0.3-0.6
    HIGH = "high"          # 0.6-0.85
    VERIFIED = "verified"  # 0.85-1.0

    @classmethod
    def from_score(cls, score: float) -> "ConfidenceLevel":
        if score >= 0.85:
            return cls.VERIFIED
        if score >= 0.6:
            return cls.HIGH
        if score >= 0.3:
            return cls.MEDIUM
        return cls.LOW


class SourceMetadata(BaseModel):
    """Per-platform metadata attached to a source."""

    model_config = ConfigDict(frozen=True)

    # Twitter
    tweet_id: Optional[str] = None
    retweet_count: int = 0
    like_count: int = 0

    # Telegram
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None
    message_id: Optional[str] = None
    view_count: int = 0

    # RSS
    feed_url: Optional[str] = None

    hashtags: List[str] = Field(default_factory=list)
    mentions: List[str] = Field(default_factory=list)
    language: Optional[str] = None


class Source(BaseModel):
    """Immutable raw intelligence unit."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: SourceType = SourceType.OTHER
    url: str = ""
    title: str = ""
    author: str = ""
    published_at: datetime = Field(default_factory=utcnow)
    retrieved_at: datetime = Field(default_factory=utcnow)
    raw_content: str = ""
    content_hash: str = Field(default="", description="SHA-256 of the content, used for dedup upstream")
    metadata: SourceMetadata = Field(default_factory=SourceMetadata)
    credibility: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("published_at", "retrieved_at")
    @classmethod
    def _ensure_tz(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @staticmethod
    def compute_content_hash(content: str) -> str:
        return hashlib.sha256(content.encode("utf-8")).hexdigest()


class Entity(BaseModel):
    """Named entity extracted from source content."""

    id: str = Field(default_factory=lambda: f"ent-{uuid.uuid4().hex[:16]}")
    type: EntityType = EntityType.OTHER
    name: str
    normalized_name: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    context: str = ""
    country_code: Optional[str] = None

    def is_primary(self) -> bool:
        """High-confidence entity of a core type."""
        return self.type in PRIMARY_ENTITY_TYPES and self.confidence >= 0.7

    def display_name(self) -> str:
        return self.normalized_name or self.name


class Location(BaseModel):
    country: str = ""
    city: str = ""
    region: str = ""
    latitude: float = 0.0
    longitude: float = 0.0


class Confidence(BaseModel):
    """Reliability assessment of an event."""

    model_config = ConfigDict(validate_assignment=True)

    score: float = 0.0
    level: ConfidenceLevel = ConfidenceLevel.LOW
    reasoning: str = ""
    source_count: int = Field(default=1, ge=1)

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        return clamp(float(value), 0.0, 1.0)


class Event(BaseModel):
    """Structured, scored intelligence event derived from one or more sources."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    timestamp: datetime
    title: str = ""
    summary: str = ""
    raw_content: str = ""
    magnitude: float = 0.0
    confidence: Confidence = Field(default_factory=Confidence)
    category: Category = Category.OTHER
    entities: List[Entity] = Field(default_factory=list)
    sources: List[Source] = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)
    location: Optional[Location] = None
    key_facts: List[str] = Field(default_factory=list)
    implications: str = ""
    confidence_notes: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    status: EventStatus = EventStatus.PENDING

    @field_validator("magnitude")
    @classmethod
    def _clamp_magnitude(cls, value: float) -> float:
        return clamp(float(value), 0.0, 10.0)

    @field_validator("timestamp")
    @classmethod
    def _ensure_tz(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def narrative_text(self) -> str:
        """Free-text fields the model wrote about this event."""
        return " ".join(
            part for part in (self.summary, self.implications, self.confidence_notes) if part
        )

    def is_publishable(self) -> bool:
        return self.confidence.score >= 0.3 and self.magnitude >= 1.0 and len(self.sources) > 0


class CorrelationResult(BaseModel):
    """How a new source relates to an existing event. Not persisted."""

    similarity: float = 0.0
    should_merge: bool = False
    has_novel_facts: bool = False
    novel_facts: List[str] = Field(default_factory=list)
    reasoning: str = ""

    @field_validator("similarity")
    @classmethod
    def _clamp_similarity(cls, value: float) -> float:
        return clamp(float(value), 0.0, 1.0)


def make_event_id(source: Source) -> str:
    """
    Deterministic event identifier for a source.

    Re-enriching the same source always yields the same id, so concurrent or
    repeated processing cannot create duplicate events.
    """
    if source.content_hash:
        return f"evt-{source.content_hash}"
    return f"evt-{source.id}"
