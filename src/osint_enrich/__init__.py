"""OSINT source enrichment and event correlation pipeline."""

__version__ = "1.0.0"
