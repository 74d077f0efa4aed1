"""Scraper configuration and JSON config-file loading."""

import json
import os
from dataclasses import dataclass, field
from typing import Any

from mintlify_scraper.models import CrawlTarget

DEFAULT_USER_AGENT = "MintlifyDocsScraper/1.0 (AI Agent Documentation Tool)"

# Path fragments that never hold documentation
DEFAULT_EXCLUDE_PATTERNS = (
    "/changelog",
    "/blog",
    "/search",
    "/404",
    "/legal",
    "/privacy",
    "/terms",
)

PROGRESS_FILENAME = ".scraper-progress.json"


class ConfigError(Exception):
    """Raised when a configuration file or option cannot be used."""


@dataclass
class ScraperConfig:
    """Configuration for the Mintlify scraper."""

    base_url: str
    output_dir: str = "./scraped-docs"
    max_concurrent: int = 3
    delay_ms: int = 1000
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 1.0
    backoff_cap: float = 10.0
    follow_links: bool = True
    crawl_depth: int = 5
    create_zip: bool = False
    skip_empty: bool = True
    use_manifest: bool = True
    interactive: bool = True
    verbose: bool = False
    checkpoint_every: int = 10
    max_failed_attempts: int = 3
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    start_targets: list[CrawlTarget] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        if self.max_concurrent < 1:
            raise ConfigError("max_concurrent must be at least 1")
        if self.delay_ms < 0:
            raise ConfigError("delay_ms cannot be negative")
        if self.max_retries < 0:
            raise ConfigError("max_retries cannot be negative")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        if self.crawl_depth < 0:
            raise ConfigError("crawl_depth cannot be negative")
        if self.checkpoint_every < 1:
            raise ConfigError("checkpoint_every must be at least 1")
        if self.max_failed_attempts < 1:
            raise ConfigError("max_failed_attempts must be at least 1")

    @property
    def progress_file(self) -> str:
        return os.path.join(self.output_dir, PROGRESS_FILENAME)


def _parse_start_url(entry: Any) -> CrawlTarget:
    if isinstance(entry, str):
        return CrawlTarget(url=entry)
    if isinstance(entry, dict) and "url" in entry:
        return CrawlTarget(
            url=entry["url"],
            priority=int(entry.get("page_rank", 0)),
            selectors_key=entry.get("selectors_key"),
            tags=tuple(entry.get("tags", [])),
        )
    raise ConfigError(f"Invalid start_urls entry: {entry!r}")


def load_config_file(path: str) -> dict[str, Any]:
    """Read a docs-scraper style JSON file into ``ScraperConfig`` keyword arguments.

    Only keys present in the file are returned, so command-line values can be
    layered on top.
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {os.path.abspath(path)}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Configuration file is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must contain a JSON object")

    options: dict[str, Any] = {}

    start_urls = raw.get("start_urls", [])
    if start_urls:
        targets = [_parse_start_url(entry) for entry in start_urls]
        options["base_url"] = targets[0].url
        # Higher page_rank first
        options["start_targets"] = sorted(targets, key=lambda target: -target.priority)

    if raw.get("stop_urls"):
        options["exclude_patterns"] = DEFAULT_EXCLUDE_PATTERNS + tuple(raw["stop_urls"])

    crawling = raw.get("crawling") or {}
    if "max_concurrent" in crawling:
        options["max_concurrent"] = int(crawling["max_concurrent"])
    if "delay_ms" in crawling:
        options["delay_ms"] = int(crawling["delay_ms"])
    if "max_retries" in crawling:
        options["max_retries"] = int(crawling["max_retries"])
    if "timeout_ms" in crawling:
        options["timeout"] = int(crawling["timeout_ms"]) / 1000
    if "skip_empty" in crawling:
        options["skip_empty"] = bool(crawling["skip_empty"])

    return options
