"""
LLM Enrichment Pipeline

Turns raw OSINT sources into structured, scored events and correlates new
sources against recent events.
"""

from .enricher import SourceEnricher
from .llm_client import Completion, LLMClient, OllamaLLMClient
from .batch import BatchEnricher, BatchResult, JobOutcome
from .correlator import EventCorrelator

# Re-export from submodules for convenience
from .prompts import PromptTemplates
from .parser import ParsedAnalysis, parse_structured_analysis
from .scoring import ConfidenceScorer, MagnitudeEstimator
from .entities import EntityExtractor, EntityNormalizer
from .credibility import CredibilityAssessor, CredibilityCache
from .inference import InferenceRecorder, UsageStats
from .rule_based import RuleBasedEnricher

__all__ = [
    # Core classes
    'SourceEnricher',
    'OllamaLLMClient',
    'LLMClient',
    'Completion',
    'BatchEnricher',
    'BatchResult',
    'JobOutcome',
    'EventCorrelator',

    # Prompts and parsing
    'PromptTemplates',
    'ParsedAnalysis',
    'parse_structured_analysis',

    # Scoring
    'ConfidenceScorer',
    'MagnitudeEstimator',

    # Entities and credibility
    'EntityExtractor',
    'EntityNormalizer',
    'CredibilityAssessor',
    'CredibilityCache',

    # Usage
    'InferenceRecorder',
    'UsageStats',

    # Offline
    'RuleBasedEnricher',
]
