"""Scraping source models and YAML loader.

Each directory site is described by one declarative record: its URL and the
CSS selectors that locate a listing block and the fields inside it. The
generic listing extractor interprets these records, so adding a site means
adding a YAML entry rather than code.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ContactSelectors(BaseModel):
    """Selectors for the contact fields inside a listing block."""

    model_config = ConfigDict(frozen=True)

    phone: str | None = None
    email: str | None = None
    website: str | None = None


class SourceSelectors(BaseModel):
    """CSS selectors for one source. ``company`` locates listing blocks,
    the rest are evaluated relative to each block."""

    model_config = ConfigDict(frozen=True)

    company: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    address: str | None = None
    services: str | None = None
    prices: str | None = None
    contact: ContactSelectors | None = None


class ScrapingSource(BaseModel):
    """A directory site to harvest."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    selectors: SourceSelectors


DEFAULT_SOURCES: list[ScrapingSource] = [
    ScrapingSource(
        name="panoramafirm",
        url="https://panoramafirm.pl/sprzątanie/kraków",
        selectors=SourceSelectors(
            company=".company-item",
            name=".company-name",
            address=".address",
            contact=ContactSelectors(phone=".phone", website=".website"),
        ),
    ),
    ScrapingSource(
        name="oferteo",
        url="https://oferteo.pl/sprzatanie/krakow",
        selectors=SourceSelectors(
            company=".company-box",
            name=".company-name h2",
            address=".company-address",
            services=".services-list",
            prices=".price-info",
            contact=ContactSelectors(
                phone=".company-phone",
                email=".company-email",
                website=".company-website",
            ),
        ),
    ),
]


def load_sources(yaml_path: str) -> list[ScrapingSource]:
    """Parse a sources YAML file into ``ScrapingSource`` records.

    Args:
        yaml_path: Path to the YAML configuration file. The document must
            hold a top-level ``sources`` list.

    Returns:
        The configured sources in file order. If the file is missing or
        unreadable, returns the built-in default sources. Individually
        invalid entries are logged and skipped.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Sources file not found at %s — using built-in defaults", yaml_path)
        return list(DEFAULT_SOURCES)

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse sources YAML at %s: %s", yaml_path, exc)
        return list(DEFAULT_SOURCES)

    if not isinstance(raw, dict) or not isinstance(raw.get("sources"), list):
        logger.warning("Sources YAML missing 'sources' list — using built-in defaults")
        return list(DEFAULT_SOURCES)

    sources: list[ScrapingSource] = []
    for index, entry in enumerate(raw["sources"]):
        try:
            sources.append(ScrapingSource.model_validate(entry))
        except Exception as exc:
            logger.error("Invalid source entry #%d: %s — skipping", index, exc)

    logger.info("Loaded %d scraping sources from %s", len(sources), yaml_path)
    return sources
