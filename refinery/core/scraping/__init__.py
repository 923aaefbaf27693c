"""Scrapers for the source blog and for reference articles.

This module provides:
- Last-page discovery and oldest-article selection on the source listing
- Article extraction with per-item failure isolation
- Best-effort reference scraping with body truncation
"""

from refinery.core.scraping.reference_scraper import ReferenceScraper
from refinery.core.scraping.source_scraper import ScrapeStage, SourceScraper

__all__ = ["SourceScraper", "ScrapeStage", "ReferenceScraper"]
