"""
Prompt templates for OSINT analysis, entity extraction and correlation.

Templates are opaque strings owned by configuration. Placeholders use the
``{{name}}`` form so that literal JSON braces inside a template never collide
with substitution. Unknown placeholders are left in the output untouched.

Version: 1.2.0
"""

import re
from dataclasses import dataclass
from typing import Mapping

from osint_enrich.core.models import Event, Source, SourceMetadata

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %Z"
PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")
NO_METADATA = "No additional metadata"


SYSTEM_PROMPT = """CRITICAL: You MUST output ONLY valid JSON. Do not include any text before or after the JSON object. Do not wrap it in markdown code blocks.

You are an expert OSINT (Open Source Intelligence) analyst covering geopolitical events, military operations, cybersecurity incidents and international relations.

Analyze raw intelligence from social media, news sources and public reports and extract:
1. Key facts and developments
2. Event categorization and severity
3. Location of the event
4. Geopolitical implications

Guidelines:
- Be factual; distinguish verified facts from speculation
- Flag potential disinformation or propaganda
- Trust the source content over your training data: use names, titles and roles exactly as written

Output format (and nothing else):
{
  "title": "Specific headline naming who/what/where (150-200 chars)",
  "category": "geopolitics|military|economic|cyber|disaster|terrorism|diplomacy|intelligence|humanitarian|other",
  "magnitude": 7.5,
  "tags": ["tag1", "tag2"],
  "location": {"country": "Full country name", "city": "City if mentioned", "latitude": 0.0, "longitude": 0.0},
  "key_facts": ["fact1", "fact2"],
  "implications": "What this means for stakeholders",
  "confidence_notes": "Factors affecting confidence in this report"
}

MAGNITUDE (0.0-10.0, REQUIRED):
9-10 critical (mass-casualty attacks, declarations of war, nuclear incidents, coups)
8-8.9 severe (coordinated strikes, breaches affecting millions, assassinations)
7-7.9 high (troop deployments, diplomatic crises, sanctions packages)
6-6.9 moderate-high (espionage revelations, skirmishes, infrastructure attacks)
5-5.9 moderate (diplomatic meetings, exercises, minor breaches)
4-4.9 moderate-low (economic data, regulatory changes)
3-3.9 low (statements, routine operations)
1-2.9 minimal (routine announcements, entertainment, historical events)

LOCATION: always populate "country" when any geographic context exists, using full official names ("United States", not "USA")."""


ANALYSIS_TEMPLATE = """Analyze the following OSINT source and provide a structured intelligence assessment:

SOURCE TYPE: {{source_type}}
AUTHOR: {{author}}
PUBLISHED: {{published_at}}
URL: {{url}}
CREDIBILITY: {{credibility}}

CONTENT:
{{raw_content}}

PLATFORM METADATA:
{{metadata}}

Follow the structured format. Note red flags, potential disinformation or credibility concerns.
TITLE: informative and specific (150-200 chars), naming key actors, actions and locations."""


ENTITY_EXTRACTION_TEMPLATE = """Extract named entities relevant to understanding this intelligence content.

ENTITY TYPES:
- country: nations and sovereign states
- city: cities and municipalities
- region: regions, provinces, states
- person: named individuals, especially officials
- organization: agencies, corporations, NGOs, armed groups, parties
- military_unit: specific units and formations
- vessel: named ships, aircraft, vehicles
- weapon_system: specific weapons or military systems
- facility: named buildings, bases, installations

Extract entities EXACTLY as they appear. Use confidence 0.8-1.0 for clear entities, 0.7 for ambiguous ones.

For each entity provide type, name, normalized_name, confidence and a short context quote.

Text to analyze:
{{content}}

Required JSON format:
{
  "entities": [
    {"type": "country", "name": "Entity name", "normalized_name": "Standardized name", "confidence": 0.9, "context": "Brief context"}
  ]
}"""


CORRELATION_SYSTEM_PROMPT = """You are an expert OSINT analyst specializing in event correlation and deduplication.

Decide whether a new intelligence source describes the same real-world event as an existing event.

SIMILARITY (0.0-1.0):
1.0 exact duplicate; 0.9 same event with minor updates; 0.8 same core event with significant new information;
0.7 same event, different angle; 0.6 same broader situation; 0.5 tangentially related; 0.3 related topic, different events; 0.0 unrelated.

MERGE only when both discuss the SAME specific event. Reactions, consequences, follow-on events and commentary are NOT merged.

NOVEL FACTS: substantive information in the new source that the existing event lacks.

Respond with ONLY valid JSON:
{"similarity": 0.85, "should_merge": true, "has_novel_facts": true, "novel_facts": ["fact"], "reasoning": "Brief explanation"}"""


CORRELATION_TEMPLATE = """=== CORRELATION ANALYSIS REQUEST ===

EXISTING EVENT:
Title: {{event_title}}
Summary: {{event_summary}}
Category: {{event_category}}
Key Facts:
{{event_facts}}

NEW SOURCE:
Title: {{source_title}}
URL: {{source_url}}
Published: {{source_published_at}}
Content Preview:
{{source_content}}

Compare the new source against the existing event and output the similarity, should_merge, has_novel_facts, novel_facts and reasoning fields as JSON."""


def render(template: str, values: Mapping[str, str]) -> str:
    """
    Substitute ``{{key}}`` placeholders in one pass; anything else is left literal.

    Substituted values are never rescanned, so placeholder text inside
    source content comes through verbatim.
    """
    return PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def format_timestamp(value) -> str:
    return value.strftime(TIMESTAMP_FORMAT).strip()


def format_metadata(metadata: SourceMetadata) -> str:
    """Human-readable summary of platform metadata."""
    parts = []

    if metadata.tweet_id:
        parts.append(f"Tweet ID: {metadata.tweet_id}")
        parts.append(f"Retweets: {metadata.retweet_count}, Likes: {metadata.like_count}")

    if metadata.channel_id:
        parts.append(f"Telegram Channel: {metadata.channel_name or metadata.channel_id}")
        parts.append(f"Views: {metadata.view_count}")

    if metadata.feed_url:
        parts.append(f"Feed: {metadata.feed_url}")

    if metadata.hashtags:
        parts.append(f"Hashtags: {', '.join(metadata.hashtags)}")

    if metadata.mentions:
        parts.append(f"Mentions: {', '.join(metadata.mentions)}")

    if metadata.language:
        parts.append(f"Language: {metadata.language}")

    if not parts:
        return NO_METADATA
    return "\n".join(parts)


def truncate_text(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[:max_len] + "... [truncated]"


@dataclass(frozen=True)
class PromptTemplates:
    """System and user prompt templates for one enrichment configuration."""

    system_prompt: str = SYSTEM_PROMPT
    analysis_template: str = ANALYSIS_TEMPLATE
    entity_extraction_template: str = ENTITY_EXTRACTION_TEMPLATE
    correlation_system_prompt: str = CORRELATION_SYSTEM_PROMPT
    correlation_template: str = CORRELATION_TEMPLATE

    @classmethod
    def default(cls) -> "PromptTemplates":
        return cls()

    def build_analysis_prompt(self, source: Source) -> str:
        """Render the analysis template for one source."""
        return render(self.analysis_template, {
            "source_type": source.type.value,
            "author": source.author,
            "published_at": format_timestamp(source.published_at),
            "url": source.url,
            "credibility": f"{source.credibility:.2f}",
            "raw_content": source.raw_content,
            "metadata": format_metadata(source.metadata),
        })

    def build_entity_extraction_prompt(self, content: str) -> str:
        return render(self.entity_extraction_template, {"content": content})

    def build_correlation_prompt(self, source: Source, event: Event, preview_chars: int = 2000) -> str:
        """Render the correlation request comparing ``source`` against ``event``."""
        if event.key_facts:
            facts = "\n".join(f"- {fact}" for fact in event.key_facts)
        elif event.summary:
            facts = f"- {event.summary}"
        else:
            facts = "- (No detailed information available)"

        return render(self.correlation_template, {
            "event_title": event.title,
            "event_summary": event.summary,
            "event_category": event.category.value,
            "event_facts": facts,
            "source_title": source.title,
            "source_url": source.url,
            "source_published_at": source.published_at.isoformat(),
            "source_content": truncate_text(source.raw_content, preview_chars),
        })
