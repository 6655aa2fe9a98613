"""Resilient business-directory harvester: proxy pool, retrying client, geocoding and scheduled pipeline."""
