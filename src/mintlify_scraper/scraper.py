"""Core scraper module for Mintlify documentation sites."""

import asyncio
import os
import shutil
import time
from dataclasses import dataclass, field

import httpx
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.prompt import Confirm

from mintlify_scraper.config import ScraperConfig
from mintlify_scraper.controls import CrawlControls, CrawlState, KeyboardListener
from mintlify_scraper.discovery import PageDiscovery, extract_navigation_links
from mintlify_scraper.fetcher import FetchError, Sleep, fetch_with_retry
from mintlify_scraper.models import CrawlTarget, Document
from mintlify_scraper.output import create_zip_archive, write_outputs
from mintlify_scraper.parser import parse_page
from mintlify_scraper.session import (
    CrawlSession,
    delete_checkpoint,
    load_checkpoint,
    save_checkpoint,
)

console = Console()


class ScrapeError(Exception):
    """Raised when a crawl cannot produce any output at all."""


@dataclass
class ScraperStats:
    """Statistics for the scraping process."""

    discovered: int = 0
    scraped: int = 0
    skipped: int = 0
    failed: int = 0
    code_examples: int = 0
    api_endpoints: int = 0
    sections: int = 0
    elapsed: float = 0.0
    outcome: str = "completed"
    output_files: list[str] = field(default_factory=list)
    zip_path: str | None = None


@dataclass
class PageResult:
    """Outcome of fetching and parsing one target; merged by the crawl loop."""

    target: CrawlTarget
    document: Document | None = None
    error: str | None = None
    attempts: int = 1
    links: list[str] = field(default_factory=list)
    parse_failed: bool = False


class MintlifyScraper:
    """Scraper for Mintlify documentation sites."""

    def __init__(
        self,
        config: ScraperConfig,
        *,
        resume: bool | None = None,
        controls: CrawlControls | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.resume = resume
        self.controls = controls or CrawlControls()
        self.transport = transport
        self.sleep = sleep
        self.stats = ScraperStats()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": self.config.user_agent},
            timeout=self.config.timeout,
            transport=self.transport,
        )

    def _interactive(self) -> bool:
        return self.config.interactive and KeyboardListener.available()

    def prepare_session(self) -> CrawlSession:
        """Start fresh, or pick up the checkpoint in the output directory."""
        path = self.config.progress_file

        should_resume = self.resume
        if should_resume is None:
            should_resume = (
                os.path.exists(path)
                and self._interactive()
                and Confirm.ask("Found saved progress. Resume?", console=console)
            )

        if not should_resume:
            return CrawlSession(base_url=self.config.base_url)

        session = load_checkpoint(path, base_url=self.config.base_url or None)
        retried = session.progress.requeue_failed(self.config.max_failed_attempts)
        console.print(
            f"[green]Loaded progress:[/green] {len(session.documents)} pages scraped, "
            f"{len(session.progress.queue)} remaining"
        )
        if retried and self.config.verbose:
            console.print(f"[dim]Retrying {len(retried)} previously failed pages[/dim]")
        return session

    async def discover(self, client: httpx.AsyncClient, session: CrawlSession) -> None:
        """Seed the queue with configured start URLs and discovered pages."""
        console.print("[cyan]Discovering pages...[/cyan]")
        session.progress.enqueue(self.config.start_targets)

        discovery = PageDiscovery(
            client,
            self.config.base_url,
            exclude_patterns=self.config.exclude_patterns,
            timeout=self.config.timeout,
            use_manifest=self.config.use_manifest,
            verbose=self.config.verbose,
        )
        urls = await discovery.discover()
        session.progress.enqueue((CrawlTarget(url=url) for url in urls), dedupe=False)

        if not session.progress.queue:
            raise ScrapeError(f"No pages found at {self.config.base_url}")

    async def scrape_page(self, client: httpx.AsyncClient, target: CrawlTarget) -> PageResult:
        """Fetch and parse one page without touching shared crawl state."""
        config = self.config
        try:
            response, attempts = await fetch_with_retry(
                client,
                target.url,
                retries=config.max_retries,
                timeout=config.timeout,
                backoff_base=config.backoff_base,
                backoff_cap=config.backoff_cap,
                verbose=config.verbose,
                sleep=self.sleep,
            )
        except FetchError as e:
            return PageResult(target=target, error=str(e.cause) or type(e.cause).__name__, attempts=e.attempts)

        if not response.is_success:
            return PageResult(target=target, error=f"HTTP {response.status_code}", attempts=attempts)

        html = response.text
        try:
            document = parse_page(target.url, html)
        except Exception as e:
            return PageResult(target=target, error=f"Parse error: {e}", parse_failed=True)

        links: list[str] = []
        if config.follow_links and target.depth < config.crawl_depth:
            links = extract_navigation_links(
                html, target.url, config.base_url, config.exclude_patterns, selectors="a[href]"
            )

        return PageResult(target=target, document=document, attempts=attempts, links=links)

    def merge_result(self, session: CrawlSession, result: PageResult) -> None:
        """Fold one page result into the session."""
        url = result.target.url
        progress = session.progress

        if result.error is not None:
            self.stats.failed += 1
            if result.parse_failed:
                console.print(f"[red]Error parsing {url}: {result.error}[/red]")
            else:
                progress.mark_failed(url, result.error, result.attempts)
                console.print(f"[yellow]Failed to fetch {url}: {result.error}[/yellow]")
            return

        document = result.document
        if document is None:
            return

        if self.config.skip_empty and not document.content.strip() and not document.code_examples:
            self.stats.skipped += 1
            if self.config.verbose:
                console.print(f"[dim]Skipped (no content): {url}[/dim]")
        else:
            session.add_document(document)
            progress.failed_urls.pop(url, None)
            console.print(f"[green]✓[/green] {document.title}")

        if result.links:
            depth = result.target.depth + 1
            added = progress.enqueue(CrawlTarget(url=link, depth=depth) for link in result.links)
            if added and self.config.verbose:
                console.print(f"[dim]Queued {added} linked pages from {url}[/dim]")

    async def _handle_control_state(self, session: CrawlSession) -> CrawlState:
        state = await self.controls.wait_while_paused()
        path = self.config.progress_file

        if state is CrawlState.SAVING_AND_EXITING:
            save_checkpoint(session, path)
            console.print(
                f"[green]Progress saved:[/green] {len(session.documents)} pages scraped, "
                f"{len(session.progress.queue)} remaining. Run again with --resume to continue."
            )
        elif state is CrawlState.DELETING_AND_EXITING:
            shutil.rmtree(self.config.output_dir, ignore_errors=True)
            console.print(f"[yellow]Deleted all data from {self.config.output_dir}[/yellow]")
        elif state is CrawlState.RESUMING:
            if os.path.exists(path):
                session.restore(load_checkpoint(path, base_url=session.base_url))
                session.progress.requeue_failed(self.config.max_failed_attempts)
                console.print(
                    f"[green]Progress loaded![/green] {len(session.documents)} pages scraped, "
                    f"{len(session.progress.queue)} remaining"
                )
            else:
                console.print("[yellow]No saved progress found, continuing[/yellow]")
            self.controls.resumed()
            state = self.controls.state

        return state

    async def crawl(self, client: httpx.AsyncClient, session: CrawlSession) -> CrawlState:
        """Fetch the queue in fixed-size batches, sleeping between batches."""
        config = self.config

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            transient=True,
        ) as bar:
            task_id = bar.add_task("[cyan]Scraping pages...", total=len(session.progress.queue))
            done = 0

            while True:
                state = await self._handle_control_state(session)
                progress = session.progress
                if state is not CrawlState.RUNNING or not progress.queue:
                    return state

                batch = []
                for target in progress.next_batch(config.max_concurrent):
                    if progress.is_visited(target.url):
                        continue
                    progress.mark_visited(target.url)
                    batch.append(target)

                results = await asyncio.gather(*(self.scrape_page(client, t) for t in batch))
                for result in results:
                    self.merge_result(session, result)

                if session.pages_since_checkpoint >= config.checkpoint_every:
                    save_checkpoint(session, config.progress_file)
                    if config.verbose:
                        console.print("[dim]Checkpoint saved[/dim]")

                done += len(batch)
                bar.update(task_id, completed=done, total=done + len(progress.queue))

                if progress.queue and batch:
                    await self.sleep(config.delay_ms / 1000)

    def _finish(self, session: CrawlSession) -> None:
        config = self.config
        console.print("[cyan]Generating documentation files...[/cyan]")
        self.stats.output_files = write_outputs(session.documents, config.base_url, config.output_dir)

        if config.create_zip:
            self.stats.zip_path = create_zip_archive(config.output_dir)
            size_mb = os.path.getsize(self.stats.zip_path) / (1024 * 1024)
            console.print(f"[green]Zip archive created:[/green] {self.stats.zip_path} ({size_mb:.2f} MB)")

        delete_checkpoint(config.progress_file)

    async def run(self) -> ScraperStats:
        """Run the scraper."""
        started = time.monotonic()
        console.print("[bold blue]Mintlify Scraper[/bold blue]")
        console.print(f"  Base URL: {self.config.base_url}")
        console.print(f"  Output: {self.config.output_dir}")
        console.print(f"  Concurrency: {self.config.max_concurrent}")
        console.print()

        session = self.prepare_session()

        listener = KeyboardListener(self.controls)
        if self._interactive():
            listener.start()

        try:
            async with self._client() as client:
                if not session.progress.queue and not session.documents:
                    await self.discover(client, session)
                self.stats.discovered = len(session.progress.queue) + len(session.documents)
                state = await self.crawl(client, session)
        finally:
            listener.stop()

        self.stats.outcome = {
            CrawlState.RUNNING: "completed",
            CrawlState.SAVING_AND_EXITING: "saved",
            CrawlState.DELETING_AND_EXITING: "deleted",
            CrawlState.EXITING: "stopped",
        }.get(state, "stopped")

        if self.stats.outcome == "completed":
            self._finish(session)

        self.stats.scraped = len(session.documents)
        self.stats.code_examples = session.code_example_count
        self.stats.api_endpoints = session.api_endpoint_count
        self.stats.sections = len({document.section for document in session.documents})
        self.stats.elapsed = time.monotonic() - started

        if self.stats.outcome == "completed":
            self._print_summary()
        return self.stats

    def _print_summary(self) -> None:
        console.print()
        console.print("[bold green]✓ Scraping complete![/bold green]")
        console.print(f"  Pages scraped: {self.stats.scraped}")
        console.print(f"  Pages failed: {self.stats.failed}")
        console.print(f"  Pages skipped: {self.stats.skipped}")
        console.print(f"  Sections: {self.stats.sections}")
        console.print(f"  Code examples: {self.stats.code_examples}")
        console.print(f"  API endpoints: {self.stats.api_endpoints}")
        console.print(f"  Elapsed: {self.stats.elapsed:.1f}s")
        console.print(f"  Output: {self.config.output_dir}")
