"""Command-line interface for Mintlify scraper."""

import asyncio
import os
from typing import Any

import click
from rich.console import Console

from mintlify_scraper.config import PROGRESS_FILENAME, ConfigError, ScraperConfig, load_config_file
from mintlify_scraper.scraper import MintlifyScraper
from mintlify_scraper.session import CheckpointError, checkpoint_base_url, read_checkpoint

console = Console()


def build_config(
    url: str | None,
    *,
    output: str | None,
    concurrent: int | None,
    delay: int | None,
    crawl_depth: int | None,
    create_zip: bool,
    no_follow_links: bool,
    resume_dir: str | None,
    config_file: str | None,
    no_manifest: bool,
    no_interactive: bool,
    verbose: bool,
) -> ScraperConfig:
    """Layer command-line values over the optional config file."""
    options: dict[str, Any] = load_config_file(config_file) if config_file else {}

    if resume_dir:
        options["output_dir"] = resume_dir
        if not url:
            url = checkpoint_base_url(read_checkpoint(os.path.join(resume_dir, PROGRESS_FILENAME)))

    if url:
        options["base_url"] = url
    if "base_url" not in options:
        raise ConfigError("A documentation URL is required (or --resume DIR / --config FILE)")

    if output is not None and not resume_dir:
        options["output_dir"] = output
    if concurrent is not None:
        options["max_concurrent"] = concurrent
    if delay is not None:
        options["delay_ms"] = delay
    if crawl_depth is not None:
        options["crawl_depth"] = crawl_depth
    if create_zip:
        options["create_zip"] = True
    if no_follow_links:
        options["follow_links"] = False
    if no_manifest:
        options["use_manifest"] = False
    if no_interactive:
        options["interactive"] = False
    options["verbose"] = verbose

    return ScraperConfig(**options)


@click.command()
@click.argument("url", required=False)
@click.option(
    "--output",
    "-o",
    default=None,
    help="Output directory for scraped files [default: ./scraped-docs]",
)
@click.option(
    "--concurrent",
    "-c",
    type=int,
    default=None,
    help="Pages fetched per batch [default: 3]",
)
@click.option(
    "--delay",
    "-d",
    type=int,
    default=None,
    help="Delay between batches in milliseconds [default: 1000]",
)
@click.option(
    "--crawl-depth",
    type=int,
    default=None,
    help="How many links deep to follow from discovered pages [default: 5]",
)
@click.option("--zip", "create_zip", is_flag=True, help="Also write a zip archive of the output")
@click.option("--no-follow-links", is_flag=True, help="Only scrape pages found by discovery")
@click.option(
    "--resume",
    "resume_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Resume the crawl saved in this output directory",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON configuration file (start_urls, stop_urls, crawling)",
)
@click.option("--no-manifest", is_flag=True, help="Skip the mint.json/docs.json navigation lookup")
@click.option("--no-interactive", is_flag=True, help="Disable keyboard pause controls and prompts")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
def main(
    url: str | None,
    output: str | None,
    concurrent: int | None,
    delay: int | None,
    crawl_depth: int | None,
    create_zip: bool,
    no_follow_links: bool,
    resume_dir: str | None,
    config_file: str | None,
    no_manifest: bool,
    no_interactive: bool,
    verbose: bool,
) -> None:
    """Scrape a Mintlify documentation site into Markdown and JSON.

    URL: The base URL of the Mintlify documentation site to scrape.

    Examples:

        mintlify-scrape https://docs.example.com

        mintlify-scrape https://docs.example.com -o ./docs --zip

        mintlify-scrape --resume ./docs
    """
    try:
        config = build_config(
            url,
            output=output,
            concurrent=concurrent,
            delay=delay,
            crawl_depth=crawl_depth,
            create_zip=create_zip,
            no_follow_links=no_follow_links,
            resume_dir=resume_dir,
            config_file=config_file,
            no_manifest=no_manifest,
            no_interactive=no_interactive,
            verbose=verbose,
        )
    except (ConfigError, CheckpointError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e

    scraper = MintlifyScraper(config, resume=True if resume_dir else None)

    try:
        asyncio.run(scraper.run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e


if __name__ == "__main__":
    main()
