"""
Command-line interface for crypto-ingest.

Provides commands to initialize the database, manage sources, run crawl
cycles once or as a service, and run maintenance jobs.

Usage:
    crypto-ingest init-db            # Create tables and seed sources
    crypto-ingest crawl              # Run one crawl cycle
    crypto-ingest run                # Crawl on a loop until stopped
    crypto-ingest health             # Check store and source health
    crypto-ingest sources list       # List sources and when they crawl next
"""

import asyncio
import json
import signal
import sys
from pathlib import Path

import click

from crypto_ingest.config.settings import get_settings
from crypto_ingest.observability.logging import get_logger, setup_logging
from crypto_ingest.observability.metrics import get_metrics

SOURCE_TYPES = ("reddit", "wordpress", "feed")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Crypto Ingest - Multi-source crypto news and discussion ingestion."""
    setup_logging("DEBUG" if debug else None)


@main.command("init-db")
@click.option("--seed/--no-seed", default=True, help="Seed sources if the table is empty")
def init_db(seed: bool) -> None:
    """Initialize the database schema."""
    from crypto_ingest.content.repository import ContentRepository
    from crypto_ingest.keywords.repository import KeywordRepository
    from crypto_ingest.sources.service import SourcesService
    from crypto_ingest.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            sources = SourcesService(db)
            # content_items references sources
            await sources.repository.create_table()
            await ContentRepository(db).create_table()
            await KeywordRepository(db).create_tables()
            if seed:
                await sources.ensure_seeded()
            click.echo("Database initialized successfully")
        finally:
            await db.close()

    asyncio.run(run())


@main.command("seed-sources")
@click.option(
    "--file",
    "path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON seed file (default: bundled sources)",
)
def seed_sources(path: Path | None) -> None:
    """Upsert sources from a JSON seed file."""
    from crypto_ingest.sources.service import SourcesService
    from crypto_ingest.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            count = await SourcesService(db).seed_from_json(path)
            click.echo(f"Seeded {count} sources")
        finally:
            await db.close()

    asyncio.run(run())


@main.group()
def sources() -> None:
    """Source registry commands."""


@sources.command("list")
@click.option("--type", "source_type", type=click.Choice(SOURCE_TYPES), default=None)
@click.option("--active-only", is_flag=True, help="Hide deactivated sources")
@click.option("--limit", default=100, type=int)
@click.option("--json", "as_json", is_flag=True, help="Print sources as JSON")
def sources_list(
    source_type: str | None, active_only: bool, limit: int, as_json: bool
) -> None:
    """List registered sources with their health and next crawl time.

    Example:
        crypto-ingest sources list --type feed
    """
    from crypto_ingest.sources.repository import SourcesRepository
    from crypto_ingest.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            found = await SourcesRepository(db).list_sources(
                source_type=source_type, active_only=active_only, limit=limit
            )
        finally:
            await db.close()

        if as_json:
            click.echo(json.dumps([s.to_dict() for s in found], indent=2, default=str))
            return
        if not found:
            click.echo("No sources found")
            return

        for source in found:
            next_crawl = source.next_crawl_at
            when = next_crawl.strftime("%Y-%m-%d %H:%M UTC") if next_crawl else "now"
            state = "active" if source.is_active else "inactive"
            line = (
                f"  {source.source_type:<10} {source.label:<40} {state:<9} "
                f"failures={source.consecutive_failures:<3} next={when}"
            )
            click.echo(click.style(line, fg=None if source.is_healthy() else "yellow"))

    asyncio.run(run())


def _set_active(source_type: str, identifier: str, active: bool) -> None:
    from crypto_ingest.sources.service import SourcesService
    from crypto_ingest.storage.database import Database

    async def run() -> bool:
        db = Database()
        await db.connect()
        try:
            service = SourcesService(db)
            if active:
                return await service.activate(source_type, identifier)
            return await service.deactivate(source_type, identifier)
        finally:
            await db.close()

    changed = asyncio.run(run())
    verb = "Activated" if active else "Deactivated"
    if changed:
        click.echo(f"{verb} {source_type} source {identifier}")
    else:
        click.echo(f"No change for {source_type} source {identifier!r}")
        sys.exit(1)


@sources.command("activate")
@click.argument("source_type", type=click.Choice(SOURCE_TYPES))
@click.argument("identifier")
def sources_activate(source_type: str, identifier: str) -> None:
    """Put a deactivated source back on the schedule."""
    _set_active(source_type, identifier, True)


@sources.command("deactivate")
@click.argument("source_type", type=click.Choice(SOURCE_TYPES))
@click.argument("identifier")
def sources_deactivate(source_type: str, identifier: str) -> None:
    """Stop crawling a source; its stored content is kept."""
    _set_active(source_type, identifier, False)


@sources.command("reset-failures")
@click.option("--type", "source_type", type=click.Choice(SOURCE_TYPES), default=None)
def sources_reset_failures(source_type: str | None) -> None:
    """Clear failure streaks so disabled sources are scheduled again."""
    from crypto_ingest.sources.service import SourcesService
    from crypto_ingest.storage.database import Database

    async def run() -> int:
        db = Database()
        await db.connect()
        try:
            return await SourcesService(db).reset_failures(source_type)
        finally:
            await db.close()

    click.echo(f"Reset failure streaks on {asyncio.run(run())} sources")


def _echo_report(report) -> None:
    click.echo(f"\nCrawl cycle finished in {report.duration_seconds:.1f}s")
    click.echo("-" * 60)
    for source_type, type_report in report.by_type.items():
        click.echo(
            f"  {source_type:<10} due={type_report.sources_due:<3} "
            f"crawled={type_report.sources_crawled:<3} "
            f"not_modified={type_report.sources_not_modified:<3} "
            f"failed={type_report.sources_failed:<3} "
            f"created={type_report.items_created:<4} "
            f"skipped={type_report.items_skipped}"
        )
        if type_report.sources_skipped_deadline:
            click.echo(f"    {type_report.sources_skipped_deadline} skipped at deadline")
        for error in type_report.errors:
            click.echo(click.style(f"    ✗ {error}", fg="red"))
    click.echo("-" * 60)
    color = "green" if report.is_successful else "yellow"
    click.echo(
        click.style(
            f"Created {report.total_created}, skipped {report.total_skipped}, "
            f"errors {report.total_errors}",
            fg=color,
        )
    )


@main.command()
@click.option(
    "--type",
    "source_types",
    multiple=True,
    type=click.Choice(SOURCE_TYPES),
    help="Only crawl these source types (repeatable)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the run report as JSON")
def crawl(source_types: tuple[str, ...], as_json: bool) -> None:
    """Run one crawl cycle over all due sources."""
    from crypto_ingest.crawl.orchestrator import build_orchestrator
    from crypto_ingest.ingestion.errors import PersistenceError
    from crypto_ingest.ingestion.fetcher import ConditionalFetcher
    from crypto_ingest.storage.database import Database

    async def run() -> int:
        db = Database()
        try:
            await db.connect()
            async with ConditionalFetcher() as fetcher:
                orchestrator = build_orchestrator(db, fetcher)
                report = await orchestrator.run_cycle(list(source_types) or None)
        except PersistenceError as e:
            click.echo(click.style(f"Crawl aborted: {e}", fg="red"), err=True)
            return 2
        finally:
            await db.close()

        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2, default=str))
        else:
            _echo_report(report)
        return 0 if report.is_successful else 1

    result = asyncio.run(run())
    if result != 0:
        sys.exit(result)


@main.command()
@click.option("--poll-interval", default=None, type=float, help="Seconds between cycles")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def run(poll_interval: float | None, metrics: bool, metrics_port: int | None) -> None:
    """Run crawl cycles continuously until interrupted."""
    from crypto_ingest.crawl.orchestrator import build_orchestrator
    from crypto_ingest.ingestion.fetcher import ConditionalFetcher
    from crypto_ingest.sources.service import SourcesService
    from crypto_ingest.storage.database import Database

    if metrics:
        get_metrics().start_server(metrics_port)

    async def serve():
        db = Database()
        await db.connect()
        try:
            await SourcesService(db).ensure_seeded()
            async with ConditionalFetcher() as fetcher:
                orchestrator = build_orchestrator(db, fetcher)

                # Handle shutdown signals
                loop = asyncio.get_running_loop()
                for sig in (signal.SIGTERM, signal.SIGINT):
                    loop.add_signal_handler(
                        sig, lambda: asyncio.create_task(orchestrator.stop())
                    )

                await orchestrator.run_forever(poll_interval)
        finally:
            await db.close()

    asyncio.run(serve())


@main.command("crawl-source")
@click.argument("source_type", type=click.Choice(SOURCE_TYPES))
@click.argument("identifier")
def crawl_source(source_type: str, identifier: str) -> None:
    """Crawl a single source now, ignoring its schedule.

    Example:
        crypto-ingest crawl-source reddit CryptoCurrency
    """
    from crypto_ingest.crawl.orchestrator import build_orchestrator
    from crypto_ingest.ingestion.fetcher import ConditionalFetcher
    from crypto_ingest.storage.database import Database

    async def run() -> int:
        db = Database()
        await db.connect()
        try:
            async with ConditionalFetcher() as fetcher:
                result = await build_orchestrator(db, fetcher).crawl_source(
                    source_type, identifier
                )
        finally:
            await db.close()

        if result is None:
            click.echo(click.style(f"No {source_type} source {identifier!r}", fg="red"))
            return 1

        color = "red" if result.failed else "green"
        click.echo(click.style(f"{source_type}/{identifier}: {result.status}", fg=color))
        click.echo(
            f"  created={result.created} skipped={result.skipped} "
            f"invalid={result.invalid} keyword_links={result.keyword_links}"
        )
        if result.error:
            click.echo(f"  error: {result.error}")
        return 1 if result.failed else 0

    result = asyncio.run(run())
    if result != 0:
        sys.exit(result)


@main.command()
@click.option("--type", "source_type", type=click.Choice(SOURCE_TYPES), default=None)
def due(source_type: str | None) -> None:
    """List sources due for crawling, in crawl order."""
    from crypto_ingest.crawl.scheduler import SourceScheduler
    from crypto_ingest.sources.repository import SourcesRepository
    from crypto_ingest.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            sources = await SourceScheduler(SourcesRepository(db)).due_sources(
                source_type=source_type
            )
        finally:
            await db.close()

        if not sources:
            click.echo("No sources due")
            return

        click.echo(f"\n{len(sources)} source(s) due:")
        for source in sources:
            last = source.last_crawled_at.isoformat() if source.last_crawled_at else "never"
            click.echo(
                f"  {source.source_type:<10} {source.label:<40} "
                f"last={last} failures={source.consecutive_failures}"
            )

    asyncio.run(run())


@main.command()
@click.argument("website_url")
@click.option("--name", default=None, help="Display name for the discovered feeds")
def discover(website_url: str, name: str | None) -> None:
    """Discover RSS/Atom feeds on a website and register them."""
    from crypto_ingest.ingestion.fetcher import ConditionalFetcher
    from crypto_ingest.sources.service import SourcesService
    from crypto_ingest.storage.database import Database

    async def run() -> int:
        db = Database()
        await db.connect()
        try:
            async with ConditionalFetcher() as fetcher:
                result = await SourcesService(db).discover_and_add_feed(
                    website_url, fetcher, get_settings().http_user_agent, name=name
                )
        finally:
            await db.close()

        click.echo(f"\nFeeds found: {result.feeds_found}")
        for source in result.added:
            click.echo(click.style(f"  + {source.identifier}", fg="green"))
        for error in result.errors:
            click.echo(click.style(f"  ✗ {error}", fg="red"))
        return 0 if result.success else 1

    result = asyncio.run(run())
    if result != 0:
        sys.exit(result)


@main.command()
def health() -> None:
    """Check store availability and source health."""
    from crypto_ingest.crawl.orchestrator import build_orchestrator
    from crypto_ingest.ingestion.errors import PersistenceError
    from crypto_ingest.ingestion.fetcher import ConditionalFetcher
    from crypto_ingest.storage.database import Database

    logger = get_logger(__name__)

    async def check() -> int:
        db = Database()
        try:
            await db.connect()
            healthy = await db.health_check()
        except PersistenceError as e:
            logger.error("Postgres health check failed", error=str(e))
            healthy = False

        if not healthy:
            click.echo(click.style("✗ postgres: unavailable", fg="red"))
            await db.close()
            return 1

        try:
            async with ConditionalFetcher() as fetcher:
                status = await build_orchestrator(db, fetcher).health_status()
        finally:
            await db.close()

        click.echo(click.style("✓ postgres: available", fg="green"))
        settings = get_settings()
        icon = "✓" if settings.reddit_configured else "-"
        click.echo(f"{icon} reddit_oauth_configured: {settings.reddit_configured}")

        click.echo("\nSource Health:")
        click.echo("-" * 60)
        for key in (*SOURCE_TYPES, "all"):
            counts = status.get(key, {})
            line = (
                f"  {key:<10} total={counts.get('total', 0):<4} "
                f"active={counts.get('active', 0):<4} due={counts.get('due', 0):<4} "
                f"healthy={counts.get('healthy', 0):<4} "
                f"unhealthy={counts.get('unhealthy', 0):<4} "
                f"recent={counts.get('recently_active', 0)}"
            )
            color = "yellow" if counts.get("unhealthy") else None
            click.echo(click.style(line, fg=color))
        click.echo("-" * 60)
        return 0

    sys.exit(asyncio.run(check()))


@main.command("cleanup-keywords")
def cleanup_keywords() -> None:
    """Deactivate rare keywords and delete expired keyword links."""
    from crypto_ingest.keywords.repository import KeywordRepository
    from crypto_ingest.keywords.service import KeywordService
    from crypto_ingest.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            result = await KeywordService(KeywordRepository(db)).cleanup()
        finally:
            await db.close()

        click.echo(f"Deactivated {result['deactivated_keywords']} keywords")
        click.echo(f"Deleted {result['deleted_links']} expired links")

    asyncio.run(run())


@main.command()
@click.option("--limit", default=20, help="Number of keywords to show")
def trending(limit: int) -> None:
    """Show trending keywords."""
    from crypto_ingest.keywords.repository import KeywordRepository
    from crypto_ingest.keywords.service import KeywordService
    from crypto_ingest.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            keywords = await KeywordService(KeywordRepository(db)).trending(limit)
        finally:
            await db.close()

        if not keywords:
            click.echo("No trending keywords")
            return

        for kw in keywords:
            click.echo(
                f"  {kw.normalized:<25} {kw.category:<12} freq={kw.frequency:<6} "
                f"sentiment={kw.average_sentiment:+.2f}"
            )

    asyncio.run(run())


@main.command()
@click.option("--hours", default=24, type=int, help="Look back this many hours")
@click.option("--type", "content_type", type=click.Choice(SOURCE_TYPES), default=None)
@click.option("--limit", default=20, type=int, help="Number of items to show")
def recent(hours: int, content_type: str | None, limit: int) -> None:
    """Show recently published content."""
    from datetime import datetime, timedelta, timezone

    from crypto_ingest.content.repository import ContentRepository
    from crypto_ingest.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            since = datetime.now(timezone.utc) - timedelta(hours=hours)
            items = await ContentRepository(db).list_recent(since, content_type, limit)
        finally:
            await db.close()

        if not items:
            click.echo(f"No content in the last {hours}h")
            return

        for item in items:
            published = item.published_at.strftime("%Y-%m-%d %H:%M") if item.published_at else "?"
            sentiment = item.sentiment_label or "-"
            click.echo(
                f"  {published}  {item.content_type:<10} {sentiment:<9} {item.title[:70]}"
            )

    asyncio.run(run())


@main.command()
@click.option("--limit", default=None, type=int, help="Items to analyze")
def enrich(limit: int | None) -> None:
    """Analyze sentiment of content that has not been analyzed yet."""
    from crypto_ingest.content.repository import ContentRepository
    from crypto_ingest.keywords.repository import KeywordRepository
    from crypto_ingest.sentiment.analyzer import LexiconSentimentAnalyzer
    from crypto_ingest.sentiment.enricher import SentimentEnricher
    from crypto_ingest.sources.repository import SourcesRepository
    from crypto_ingest.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            enricher = SentimentEnricher(
                ContentRepository(db),
                KeywordRepository(db),
                SourcesRepository(db),
                LexiconSentimentAnalyzer(),
            )
            stats = await enricher.run_once(limit)
        finally:
            await db.close()

        click.echo(
            f"Analyzed {stats['processed']}/{stats['total']} items "
            f"({stats['errors']} errors), updated {stats['keywords_updated']} "
            f"keyword averages"
        )

    asyncio.run(run())


if __name__ == "__main__":
    main()
