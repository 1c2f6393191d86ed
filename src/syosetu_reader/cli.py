"""Main CLI entry point for syosetu-reader."""

import asyncio
import csv
from collections import deque
from pathlib import Path
from typing import Optional

import click
import structlog
from rich.console import Console
from rich.live import Live
from rich.rule import Rule
from rich.table import Table

from syosetu_reader import __version__
from syosetu_reader.config import AppConfig, LLMConfig, get_config, set_config
from syosetu_reader.crawler import Chapter, collection_id_from_url, get_source
from syosetu_reader.errors import FetchError, ReaderError, StorageWriteError
from syosetu_reader.pipeline import CachedResult, PipelineCoordinator, PipelineEvent
from syosetu_reader.store import GlossaryStore, TranslationCache
from syosetu_reader.translator import LLMClient, LLMTranslator
from syosetu_reader.utils.chapters import filter_chapters, parse_chapter_range

logger = structlog.get_logger()
console = Console()

STATUS_STYLES = {
    "queued": "dim",
    "cached": "green",
    "fetching": "cyan",
    "translating": "yellow",
    "extracting": "yellow",
    "merging": "magenta",
    "persisting": "magenta",
    "done": "bold green",
    "failed": "bold red",
}


def setup_config(env_file: Optional[Path] = None) -> None:
    """Load configuration from environment."""
    set_config(AppConfig.load(env_file))


def open_stores() -> tuple[GlossaryStore, TranslationCache]:
    """Open both stores, exiting if the data directory is not writable."""
    storage = get_config().storage
    glossary_store = GlossaryStore(storage.glossary_path, strict_reads=storage.strict_reads)
    cache = TranslationCache(storage.cache_path, strict_reads=storage.strict_reads)
    try:
        glossary_store.ensure_writable()
        cache.ensure_writable()
    except StorageWriteError as e:
        logger.error("storage_unavailable", error=str(e))
        raise SystemExit(1)
    return glossary_store, cache


def effective_llm_config(api_key: Optional[str], model: Optional[str]) -> LLMConfig:
    """Apply command-line overrides to the configured LLM settings."""
    overrides = {}
    if api_key:
        overrides["api_key"] = api_key
    if model:
        overrides["model"] = model
    config = get_config().llm.model_copy(update=overrides)
    if not config.api_key:
        logger.error("missing_api_key", detail="Pass --api-key or set OPENAI_API_KEY")
        raise SystemExit(1)
    return config


def make_source(url: str):
    """Content source for the URL, exiting on unsupported sites."""
    try:
        return get_source(url, get_config().crawler)
    except ValueError as e:
        logger.error("unsupported_site", url=url, detail=str(e))
        raise SystemExit(1)


async def fetch_directory(source, url: str) -> list[Chapter]:
    try:
        chapters = await source.fetch_directory(url)
    except FetchError as e:
        logger.error("directory_fetch_failed", url=url, error=str(e))
        raise SystemExit(1)
    if not chapters:
        logger.error("no_chapters_found", url=url)
        raise SystemExit(1)
    return chapters


def status_table(chapters: list[Chapter], statuses: dict[str, str], errors: dict[str, str]) -> Table:
    table = Table(show_header=True, header_style="bold blue")
    table.add_column("#", justify="right", style="cyan", width=5)
    table.add_column("Title")
    table.add_column("Status", width=12)
    table.add_column("Detail", style="dim")
    for chapter in chapters:
        status = statuses.get(chapter.id, "queued")
        table.add_row(
            str(chapter.index),
            chapter.title,
            f"[{STATUS_STYLES.get(status, '')}]{status}[/]",
            errors.get(chapter.id, ""),
        )
    return table


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output")
@click.option("--log-file", type=click.Path(), help="Write JSON logs to file")
@click.option("--env-file", type=click.Path(exists=True), help="Path to .env file")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, verbose: bool, quiet: bool, log_file: Optional[str], env_file: Optional[str]) -> None:
    """Japanese web novel reader with glossary-aware Chinese translation.

    Supports ncode.syosetu.com, novel18.syosetu.com and syosetu.org.
    """
    from syosetu_reader.log import configure_logging

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    setup_config(Path(env_file) if env_file else None)

    verbosity = 1 if verbose else (-1 if quiet else 0)
    try:
        configure_logging(
            verbosity=verbosity,
            log_file=Path(log_file) if log_file else None,
            default_level=get_config().log_level,
        )
    except OSError as e:
        click.echo(f"Cannot open log file {log_file}: {e}", err=True)
        raise SystemExit(1)


# =============================================================================
# Chapter listing
# =============================================================================


@cli.command()
@click.option("--url", required=True, help="Novel index page URL")
@click.option("--search", default="", help="Filter by title text or chapter number")
def chapters(url: str, search: str) -> None:
    """List chapters, marking those already translated."""
    _, cache = open_stores()
    collection_id = collection_id_from_url(url)

    async def run() -> list[Chapter]:
        async with make_source(url) as source:
            return await fetch_directory(source, url)

    listing = filter_chapters(asyncio.run(run()), search)
    try:
        cached = cache.list_cached(collection_id)
    except ReaderError as e:
        logger.error("cache_unreadable", error=str(e))
        raise SystemExit(1)

    table = Table(show_header=True, header_style="bold blue", title=collection_id)
    table.add_column("#", justify="right", style="cyan", width=5)
    table.add_column("Title")
    table.add_column("Cached", justify="center", width=6)
    for chapter in listing:
        table.add_row(str(chapter.index), chapter.title, "[green]✓[/green]" if chapter.id in cached else "")
    console.print(table)
    console.print(f"{len(listing)} chapters, {len(cached)} cached")


# =============================================================================
# Translation
# =============================================================================


@cli.command()
@click.option("--url", required=True, help="Novel index page URL")
@click.option("--chapters", "chapters_spec", help="Chapter range (e.g., 1-10,15)")
@click.option("--workers", default=3, type=click.IntRange(min=1), help="Chapters translated at once")
@click.option("--api-key", help="API key (overrides OPENAI_API_KEY)")
@click.option("--model", help="Model name (overrides OPENAI_MODEL)")
def translate(
    url: str,
    chapters_spec: Optional[str],
    workers: int,
    api_key: Optional[str],
    model: Optional[str],
) -> None:
    """Translate chapters concurrently and cache the results.

    Examples:

        syosetu-reader translate --url https://ncode.syosetu.com/n1234ab/ --chapters 1-5
    """
    glossary_store, cache = open_stores()
    llm_config = effective_llm_config(api_key, model)
    collection_id = collection_id_from_url(url)
    interval = get_config().pipeline.poll_interval_ms / 1000

    async def run() -> dict[str, str]:
        async with make_source(url) as source:
            listing = await fetch_directory(source, url)
            try:
                indices = set(parse_chapter_range(chapters_spec or "", len(listing)))
            except ValueError as e:
                logger.error("invalid_chapter_range", spec=chapters_spec, detail=str(e))
                raise SystemExit(1)
            selected = [c for c in listing if c.index in indices]

            coordinator = PipelineCoordinator(
                source, LLMTranslator(LLMClient(llm_config)), glossary_store, cache
            )
            statuses: dict[str, str] = {}
            errors: dict[str, str] = {}

            def on_event(event: PipelineEvent) -> None:
                statuses[event.data["document_id"]] = event.data["status"]

            coordinator.event_bus.subscribe(on_event, event_type="task_status")
            pending = deque(selected)

            with Live(status_table(selected, statuses, errors), console=console) as live:
                while pending or coordinator.in_flight:
                    while pending and len(coordinator.in_flight) < workers:
                        chapter = pending.popleft()
                        if isinstance(coordinator.request(collection_id, chapter), CachedResult):
                            statuses[chapter.id] = "cached"

                    for outcome in coordinator.poll():
                        if not outcome.ok:
                            errors[outcome.document_id] = outcome.reason or ""

                    live.update(status_table(selected, statuses, errors))
                    if pending or coordinator.in_flight:
                        await asyncio.sleep(interval)

            return errors

    errors = asyncio.run(run())
    try:
        total_terms = len(glossary_store.load(collection_id))
    except ReaderError as e:
        logger.error("glossary_unreadable", error=str(e))
        raise SystemExit(1)
    if errors:
        logger.warning("translate_finished_with_errors", failed=len(errors), glossary_terms=total_terms)
        raise SystemExit(1)
    logger.info("translate_finished", glossary_terms=total_terms)


@cli.command()
@click.option("--url", required=True, help="Novel index page URL")
@click.option("--chapter", "chapter_index", required=True, type=int, help="Chapter number")
@click.option("--api-key", help="API key (overrides OPENAI_API_KEY)")
@click.option("--model", help="Model name (overrides OPENAI_MODEL)")
def read(url: str, chapter_index: int, api_key: Optional[str], model: Optional[str]) -> None:
    """Show one chapter in Chinese, translating it first if needed."""
    glossary_store, cache = open_stores()
    collection_id = collection_id_from_url(url)
    interval = get_config().pipeline.poll_interval_ms / 1000

    async def run() -> tuple[Chapter, str]:
        async with make_source(url) as source:
            listing = await fetch_directory(source, url)
            chapter = next((c for c in listing if c.index == chapter_index), None)
            if chapter is None:
                logger.error("chapter_not_found", chapter=chapter_index, total=len(listing))
                raise SystemExit(1)

            try:
                text = cache.get(collection_id, chapter.id)
            except ReaderError as e:
                logger.error("cache_unreadable", error=str(e))
                raise SystemExit(1)
            if text is not None:
                return chapter, text

            coordinator = PipelineCoordinator(
                source,
                LLMTranslator(LLMClient(effective_llm_config(api_key, model))),
                glossary_store,
                cache,
            )
            result = coordinator.request(collection_id, chapter)
            if isinstance(result, CachedResult):
                return chapter, result.text

            with console.status(f"Loading chapter {chapter.index}...") as spinner:
                while True:
                    for outcome in coordinator.poll():
                        if outcome.document_id != chapter.id:
                            continue
                        if not outcome.ok:
                            logger.error("chapter_failed", chapter=chapter.index, reason=outcome.reason)
                            raise SystemExit(1)
                        return chapter, outcome.text or ""
                    status = coordinator.status(chapter.id)
                    if status is not None:
                        spinner.update(f"Chapter {chapter.index}: {status.value}...")
                    await asyncio.sleep(interval)

    chapter, text = asyncio.run(run())
    console.print(Rule(f"{chapter.index}. {chapter.title}"))
    console.print(text)


# =============================================================================
# Glossary Commands
# =============================================================================


@cli.group()
def glossary():
    """Inspect the proper-noun glossary."""
    pass


@glossary.command("show")
@click.option("--url", required=True, help="Novel index page URL")
@click.option("--limit", default=50, help="Maximum entries to show")
def glossary_show(url: str, limit: int) -> None:
    """Display glossary contents."""
    glossary_store, _ = open_stores()
    collection_id = collection_id_from_url(url)
    try:
        terms = glossary_store.load(collection_id)
    except ReaderError as e:
        logger.error("glossary_unreadable", error=str(e))
        raise SystemExit(1)

    if not terms:
        click.echo(f"No glossary found for {collection_id}")
        return

    click.echo(f"Glossary ({len(terms)} entries):")
    for japanese, chinese in list(terms.items())[:limit]:
        click.echo(f"  {japanese} → {chinese}")

    if len(terms) > limit:
        click.echo(f"  ... and {len(terms) - limit} more")


@glossary.command("export")
@click.option("--url", required=True, help="Novel index page URL")
@click.option("--output", "-o", required=True, type=click.Path(), help="Output CSV path")
def glossary_export(url: str, output: str) -> None:
    """Export glossary to CSV file."""
    glossary_store, _ = open_stores()
    collection_id = collection_id_from_url(url)
    try:
        terms = glossary_store.load(collection_id)
    except ReaderError as e:
        logger.error("glossary_unreadable", error=str(e))
        raise SystemExit(1)
    if not terms:
        click.echo(f"No glossary found for {collection_id}")
        return

    with open(output, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["japanese", "chinese"])
        writer.writeheader()
        for japanese, chinese in terms.items():
            writer.writerow({"japanese": japanese, "chinese": chinese})
    click.echo(f"Exported {len(terms)} entries to {output}")


if __name__ == "__main__":
    cli()
