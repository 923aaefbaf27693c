"""Refinery CLI application using Typer."""

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from refinery import __version__
from refinery.config import settings
from refinery.core.browser.page_session import BrowserManager, PageSession
from refinery.core.pipeline import RunSummary, execute
from refinery.core.search.discovery import SearchDiscovery
from refinery.storage.api_client import StorageClient
from refinery.utils.exceptions import StorageError
from refinery.utils.logging import configure_logging

app = typer.Typer(
    name="refinery",
    help="Refinery - scrape blog articles and enhance them with referenced sources",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        console.print(f"[bold cyan]Refinery[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Refinery - scrape blog articles and enhance them with referenced sources."""
    configure_logging(settings.log_level, settings.environment)


def validate_environment(needs_llm: bool) -> None:
    """
    Validate required environment configuration.

    Args:
        needs_llm: Whether the command will call the generative-text API

    Raises:
        typer.Exit: If validation fails
    """
    errors = []

    if needs_llm and not (settings.llm_api_key and settings.llm_api_key.get_secret_value()):
        errors.append("LLM_API_KEY not set")

    if not settings.api_base_url.startswith(("http://", "https://")):
        errors.append(f"API_BASE_URL is not an http(s) URL: {settings.api_base_url}")

    if not settings.source_listing_url.startswith(("http://", "https://")):
        errors.append(
            f"SOURCE_LISTING_URL is not an http(s) URL: {settings.source_listing_url}"
        )

    if errors:
        console.print("\n[bold red]❌ Configuration Errors:[/bold red]")
        for error in errors:
            console.print(f"  • {error}")
        console.print(
            "\n[yellow]💡 Hint:[/yellow] Check your .env file or environment variables"
        )
        raise typer.Exit(code=1)


def render_summary(summary: RunSummary, title: str) -> None:
    """Print run counts and every failure reason."""
    table = Table(title=title, show_header=False)
    table.add_column("Stage", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Scraped", str(summary.scraped))
    table.add_row("Stored", str(summary.stored))
    table.add_row("Enhanced", str(summary.enhanced))
    table.add_row("Skipped (already enhanced)", str(summary.skipped))
    table.add_row("Failed", str(summary.failed))
    console.print(table)

    if summary.failures:
        failures = Table(title="Failures", show_header=True, header_style="bold red")
        failures.add_column("Stage", style="yellow")
        failures.add_column("Item")
        failures.add_column("Reason", overflow="fold")
        for failure in summary.failures:
            failures.add_row(failure.stage, failure.identifier, failure.error)
        console.print(failures)


def _run_mode(mode: str, count: int | None, max_articles: int | None, headless: bool | None) -> None:
    console.print(
        Panel.fit(
            f"[bold cyan]Refinery[/bold cyan] - {mode} pipeline\nVersion {__version__}",
            border_style="cyan",
        )
    )
    console.print("\n[bold]Configuration:[/bold]")
    console.print(f"  Listing: {settings.source_listing_url}")
    console.print(f"  Storage API: {settings.api_base_url}")
    if mode != "scrape":
        console.print(f"  Model: {settings.llm_model} ({settings.llm_provider})")
    console.print()

    try:
        summary = asyncio.run(
            execute(
                mode=mode,
                count=count,
                max_articles=max_articles,
                browser_manager=BrowserManager(headless=headless),
            )
        )
    except KeyboardInterrupt:
        console.print("\n\n[yellow]⚠️  Run cancelled by user (Ctrl+C)[/yellow]")
        raise typer.Exit(code=130) from None
    except Exception as e:
        console.print("\n[bold red]❌ Run Failed:[/bold red]")
        console.print(f"  {type(e).__name__}: {e}")
        raise typer.Exit(code=1) from None

    render_summary(summary, title=f"Run Summary ({mode})")
    if summary.failed:
        raise typer.Exit(code=2)


@app.command()
def scrape(
    count: Annotated[
        int | None,
        typer.Option("--count", "-n", help="Number of oldest articles to scrape (default: settings)"),
    ] = None,
    headless: Annotated[
        bool | None,
        typer.Option("--headless/--headed", help="Run the browser headless or with a window"),
    ] = None,
) -> None:
    """
    Scrape the oldest articles of the source blog and store them.

    Examples:
        refinery scrape
        refinery scrape --count 3 --headed
    """
    validate_environment(needs_llm=False)
    _run_mode("scrape", count, None, headless)


@app.command()
def enhance(
    max_articles: Annotated[
        int | None,
        typer.Option("--max-articles", "-m", help="Enhance at most this many stored articles"),
    ] = None,
    headless: Annotated[
        bool | None,
        typer.Option("--headless/--headed", help="Run the browser headless or with a window"),
    ] = None,
) -> None:
    """
    Enhance stored articles with search-discovered references.

    Articles that already have an enhanced version are skipped.
    """
    validate_environment(needs_llm=True)
    _run_mode("enhance", None, max_articles, headless)


@app.command()
def run(
    count: Annotated[
        int | None,
        typer.Option("--count", "-n", help="Number of oldest articles to scrape (default: settings)"),
    ] = None,
    max_articles: Annotated[
        int | None,
        typer.Option("--max-articles", "-m", help="Enhance at most this many stored articles"),
    ] = None,
    headless: Annotated[
        bool | None,
        typer.Option("--headless/--headed", help="Run the browser headless or with a window"),
    ] = None,
) -> None:
    """Scrape, store and enhance in one run."""
    validate_environment(needs_llm=True)
    _run_mode("run", count, max_articles, headless)


@app.command()
def search(
    title: Annotated[str, typer.Argument(help="Article title to search for")],
    show_all: Annotated[
        bool, typer.Option("--all", help="Show unfiltered hits as well")
    ] = False,
) -> None:
    """Show which reference candidates would be used for a title."""

    async def run_search() -> tuple[list, list]:
        browser_manager = BrowserManager()
        try:
            discovery = SearchDiscovery(PageSession(browser_manager))
            hits = await discovery.search(title)
            return hits, discovery.filter(hits)
        finally:
            await browser_manager.close()

    hits, selected = asyncio.run(run_search())

    table = Table(title=f"Search: {title}", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("URL", overflow="fold")
    table.add_column("Used", justify="center")

    selected_urls = {hit.url for hit in selected}
    shown = hits if show_all else selected
    for index, hit in enumerate(shown, start=1):
        table.add_row(str(index), hit.title, hit.url, "✓" if hit.url in selected_urls else "")

    console.print(table)
    if not selected:
        console.print("[yellow]No suitable reference candidates found[/yellow]")


@app.command()
def show(
    article_id: Annotated[int, typer.Argument(help="Stored article id")],
) -> None:
    """Print a stored article and its enhanced version, if any."""

    async def fetch() -> tuple:
        async with StorageClient() as storage:
            record = await storage.get_article(article_id)
            if record is None:
                return None, None
            return record, await storage.get_enhanced(article_id)

    try:
        record, enhanced = asyncio.run(fetch())
    except StorageError as e:
        console.print(f"[bold red]❌ Storage API error:[/bold red] {e}")
        raise typer.Exit(code=1) from None

    if record is None:
        console.print(f"[yellow]No article with id {article_id}[/yellow]")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            Text(record.body),
            title=Text(record.title, style="bold cyan"),
            subtitle=Text(record.source_url),
            border_style="cyan",
        )
    )
    if enhanced is None:
        console.print("[dim]Not enhanced yet[/dim]")
        return

    console.print(Panel(Text(enhanced.enhanced_body), title="Enhanced", border_style="green"))


if __name__ == "__main__":
    app()
