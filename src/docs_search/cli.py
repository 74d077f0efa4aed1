"""Command-line interface for searching scraped documentation."""

import os

import click
from rich.console import Console
from rich.text import Text

from docs_search.engine import IndexVersionError, SearchEngine, load_documents, load_index, save_index

console = Console()

DEFAULT_INDEX_NAME = "search-index.json"


def _open_index(index: str) -> SearchEngine:
    try:
        return load_index(index)
    except FileNotFoundError as e:
        console.print(f"[red]No search index found at {index}[/red]")
        console.print("  Run [bold]docs-search build DOCS_DIR[/bold] first to create one.")
        raise click.Abort() from e
    except IndexVersionError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e


@click.group()
def main() -> None:
    """Search documentation scraped by mintlify-scrape."""


@main.command()
@click.argument("docs_dir", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--index",
    "-i",
    default=None,
    help=f"Where to write the index [default: DOCS_DIR/{DEFAULT_INDEX_NAME}]",
)
def build(docs_dir: str, index: str | None) -> None:
    """Build a search index from a scraped output directory."""
    index = index or os.path.join(docs_dir, DEFAULT_INDEX_NAME)

    try:
        documents = load_documents(docs_dir)
    except FileNotFoundError as e:
        console.print(f"[red]No documents.json in {docs_dir}[/red]")
        raise click.Abort() from e

    engine = SearchEngine(verbose=True)
    count = engine.build(documents)
    save_index(engine, index)

    console.print(f"[green]✓[/green] Indexed {count} pages into {index}")
    console.print(f"  Sections: {', '.join(engine.sections()) or '-'}")


@main.command()
@click.argument("index", type=click.Path(dir_okay=False))
@click.argument("query")
@click.option("--limit", "-n", default=10, type=int, help="Maximum number of results")
@click.option("--section", "-s", default=None, help="Only search this section")
@click.option("--no-code", is_flag=True, help="Ignore matches inside code examples")
@click.option("--min-score", default=0.1, type=float, help="Drop results scoring below this")
def query(index: str, query: str, limit: int, section: str | None, no_code: bool, min_score: float) -> None:
    """Search INDEX for QUERY."""
    engine = _open_index(index)
    results = engine.search(
        query,
        limit=limit,
        include_code=not no_code,
        section=section,
        min_score=min_score,
    )

    if not results:
        console.print(f"[yellow]No results for \"{query}\"[/yellow]")
        return

    console.print(f"\n[bold]Search results for \"{query}\":[/bold]\n")
    for result in results:
        doc = result.document
        console.print(
            f"  [bold cyan]{doc.title}[/bold cyan] [dim]({doc.section}, {result.match_type}, "
            f"score {result.score:.1f})[/dim]"
        )
        console.print(f"     {doc.url}")
        preview = Text(result.preview)
        preview.highlight_words(query.split(), style="bold yellow", case_sensitive=False)
        console.print(Text("     ") + preview)
        console.print()


@main.command()
@click.argument("index", type=click.Path(dir_okay=False))
@click.argument("partial")
@click.option("--limit", "-n", default=5, type=int, help="Maximum number of suggestions")
def suggest(index: str, partial: str, limit: int) -> None:
    """Suggest words that complete PARTIAL."""
    engine = _open_index(index)
    for word in engine.suggestions(partial, limit=limit):
        console.print(f"  - {word}")


@main.command()
@click.argument("index", type=click.Path(dir_okay=False))
def sections(index: str) -> None:
    """List the sections in INDEX."""
    engine = _open_index(index)
    for name in engine.sections():
        console.print(name)


if __name__ == "__main__":
    main()
