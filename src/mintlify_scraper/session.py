"""Crawl-run state and its on-disk checkpoint."""

import json
import os
from collections import Counter, deque
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from mintlify_scraper.models import CrawlTarget, Document, normalize_url


class CheckpointError(Exception):
    """Raised when a checkpoint file is missing or unreadable."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class FailedUrl:
    """Bookkeeping for a URL that could not be scraped."""

    url: str
    error: str
    attempts: int = 1
    last_attempt: str = field(default_factory=_now)


@dataclass
class CrawlProgress:
    """Visited set, failures and the remaining queue of one crawl run."""

    visited_urls: set[str] = field(default_factory=set)
    failed_urls: dict[str, FailedUrl] = field(default_factory=dict)
    queue: deque[CrawlTarget] = field(default_factory=deque)
    _queued: Counter[str] = field(default_factory=Counter, init=False, repr=False)

    def __post_init__(self) -> None:
        self._queued = Counter(target.url for target in self.queue)

    def is_visited(self, url: str) -> bool:
        return url in self.visited_urls

    def is_queued(self, url: str) -> bool:
        return url in self._queued

    def mark_visited(self, url: str) -> None:
        self.visited_urls.add(url)

    def mark_failed(self, url: str, error: str, attempts: int = 1) -> FailedUrl:
        """Record a failure, accumulating attempts across runs."""
        existing = self.failed_urls.get(url)
        if existing is None:
            entry = FailedUrl(url=url, error=error, attempts=attempts)
            self.failed_urls[url] = entry
            return entry
        existing.attempts += attempts
        existing.error = error
        existing.last_attempt = _now()
        return existing

    def enqueue(self, targets: Iterable[CrawlTarget], *, dedupe: bool = True) -> int:
        """Append targets; with ``dedupe`` skip anything visited or already queued."""
        added = 0
        for target in targets:
            url = normalize_url(target.url)
            if url != target.url:
                target = replace(target, url=url)
            if dedupe and (target.url in self.visited_urls or target.url in self._queued):
                continue
            self.queue.append(target)
            self._queued[target.url] += 1
            added += 1
        return added

    def next_batch(self, size: int) -> list[CrawlTarget]:
        """Pop up to ``size`` targets from the front of the queue."""
        batch = []
        while self.queue and len(batch) < size:
            target = self.queue.popleft()
            batch.append(target)
            self._queued[target.url] -= 1
            if self._queued[target.url] <= 0:
                del self._queued[target.url]
        return batch

    def requeue_failed(self, max_attempts: int) -> list[str]:
        """Put failed URLs that still have attempts left back on the queue."""
        retry = [entry.url for entry in self.failed_urls.values() if entry.attempts < max_attempts]
        for url in retry:
            self.visited_urls.discard(url)
        self.enqueue(CrawlTarget(url=url) for url in retry)
        return retry


@dataclass
class CrawlSession:
    """Everything one crawl run owns; passed explicitly to each stage."""

    base_url: str
    progress: CrawlProgress = field(default_factory=CrawlProgress)
    documents: list[Document] = field(default_factory=list)
    pages_since_checkpoint: int = 0

    def add_document(self, document: Document) -> None:
        self.documents.append(document)
        self.pages_since_checkpoint += 1

    def restore(self, other: "CrawlSession") -> None:
        """Replace this session's progress and documents with a loaded one."""
        self.progress = other.progress
        self.documents = other.documents
        self.pages_since_checkpoint = 0

    @property
    def code_example_count(self) -> int:
        return sum(len(document.code_examples) for document in self.documents)

    @property
    def api_endpoint_count(self) -> int:
        return sum(1 for document in self.documents if document.api_endpoint is not None)

    def to_checkpoint(self) -> dict[str, Any]:
        progress = self.progress
        return {
            "baseUrl": self.base_url,
            "visitedUrls": sorted(progress.visited_urls),
            "scrapedPages": [document.to_dict() for document in self.documents],
            "remainingQueue": [target.url for target in progress.queue],
            "queueDepths": {target.url: target.depth for target in progress.queue},
            "failedUrls": [
                {
                    "url": entry.url,
                    "error": entry.error,
                    "attempts": entry.attempts,
                    "lastAttempt": entry.last_attempt,
                }
                for entry in progress.failed_urls.values()
            ],
            "timestamp": _now(),
        }

    @classmethod
    def from_checkpoint(cls, data: dict[str, Any], base_url: str | None = None) -> "CrawlSession":
        documents = [Document.from_dict(page) for page in data.get("scrapedPages", [])]
        depths = data.get("queueDepths", {})
        progress = CrawlProgress(
            visited_urls=set(data.get("visitedUrls", [])),
            failed_urls={
                entry["url"]: FailedUrl(
                    url=entry["url"],
                    error=entry.get("error", ""),
                    attempts=int(entry.get("attempts", 1)),
                    last_attempt=entry.get("lastAttempt", _now()),
                )
                for entry in data.get("failedUrls", [])
            },
            queue=deque(
                CrawlTarget(url=url, depth=int(depths.get(url, 0)))
                for url in data.get("remainingQueue", [])
            ),
        )
        resolved_base = base_url or data.get("baseUrl") or checkpoint_base_url(data) or ""
        return cls(base_url=resolved_base, progress=progress, documents=documents)


def checkpoint_base_url(data: dict[str, Any]) -> str | None:
    """Base URL recorded in a checkpoint, else the origin of its first scraped page."""
    if data.get("baseUrl"):
        return data["baseUrl"]
    pages = data.get("scrapedPages") or []
    if pages and pages[0].get("url"):
        parsed = urlparse(pages[0]["url"])
        return f"{parsed.scheme}://{parsed.netloc}"
    return None


def read_checkpoint(path: str) -> dict[str, Any]:
    """Load the raw checkpoint JSON."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise CheckpointError(f"No saved progress at {path}") from e
    except json.JSONDecodeError as e:
        raise CheckpointError(f"Saved progress at {path} is corrupt: {e}") from e
    if not isinstance(data, dict):
        raise CheckpointError(f"Saved progress at {path} is not a JSON object")
    return data


def save_checkpoint(session: CrawlSession, path: str) -> None:
    """Write the checkpoint wholesale, replacing any previous one."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(session.to_checkpoint(), f, indent=2)
    os.replace(tmp_path, path)
    session.pages_since_checkpoint = 0


def load_checkpoint(path: str, base_url: str | None = None) -> CrawlSession:
    return CrawlSession.from_checkpoint(read_checkpoint(path), base_url)


def delete_checkpoint(path: str) -> bool:
    """Remove the checkpoint; returns whether one existed."""
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True
