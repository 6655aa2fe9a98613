"""Listing extraction — selector-driven parsing and service/price classification."""

from harvester.extractors.listing import ListingExtractor
from harvester.extractors.taxonomy import SERVICE_KEYWORDS, classify_services, parse_prices

__all__ = [
    "SERVICE_KEYWORDS",
    "ListingExtractor",
    "classify_services",
    "parse_prices",
]
