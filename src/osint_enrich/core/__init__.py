"""Shared data model, configuration, errors, logging and metrics."""
