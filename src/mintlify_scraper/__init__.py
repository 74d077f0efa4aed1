"""Mintlify Documentation Scraper

A tool to crawl Mintlify documentation sites into Markdown files, a combined
reference and JSON metadata for AI agents.
"""

from mintlify_scraper.config import ScraperConfig
from mintlify_scraper.models import ApiEndpoint, ApiParameter, CodeExample, CrawlTarget, Document
from mintlify_scraper.parser import parse_page
from mintlify_scraper.scraper import MintlifyScraper, ScraperStats

__all__ = [
    "ApiEndpoint",
    "ApiParameter",
    "CodeExample",
    "CrawlTarget",
    "Document",
    "MintlifyScraper",
    "ScraperConfig",
    "ScraperStats",
    "parse_page",
]
__version__ = "0.1.0"
