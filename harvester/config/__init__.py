"""Configuration module — settings and scraping sources."""

from harvester.config.settings import HarvesterSettings
from harvester.config.sources import (
    DEFAULT_SOURCES,
    ContactSelectors,
    ScrapingSource,
    SourceSelectors,
    load_sources,
)

__all__ = [
    "DEFAULT_SOURCES",
    "ContactSelectors",
    "HarvesterSettings",
    "ScrapingSource",
    "SourceSelectors",
    "load_sources",
]
