"""Ingestion sources and registry."""

from .base import Source
from .registry import SourceRegistrationError, create_source, register_source, registered_source_types
from .rss_source import RssSource

__all__ = [
    "Source",
    "RssSource",
    "SourceRegistrationError",
    "create_source",
    "register_source",
    "registered_source_types",
]
