"""
Course content scraping.

This module discovers, classifies, fetches and deduplicates course material
from the platform's REST API and page HTML, then exports it as a text report
and relay-ready text records.

Architecture:
- Classifier: URL/filename classification and sanitization
- Miner: file references and PDF URLs mined out of rich-text HTML
- Adapters: one per content source, each isolated from the others' failures
- Aggregator: first-wins deduplication keyed by (url, name)
- Exporter: sectioned text report and upload records
"""

from coursestack_common.scraper.aggregator import Aggregator, aggregate
from coursestack_common.scraper.models import (
    ContentItem,
    ContentType,
    ExtractedContent,
    ScrapeConfig,
    ScrapeResult,
    Source,
    TextRecord,
)
from coursestack_common.scraper.pipeline import scrape_course

__all__ = [
    "Aggregator",
    "ContentItem",
    "ContentType",
    "ExtractedContent",
    "ScrapeConfig",
    "ScrapeResult",
    "Source",
    "TextRecord",
    "aggregate",
    "scrape_course",
]
