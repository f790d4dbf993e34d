"""
Command-line interface for the VoteWatch pipeline.

Usage:
    python -m votewatch.cli.pipeline_cli init-db
    python -m votewatch.cli.pipeline_cli votes --start 80100 --end 80120
    python -m votewatch.cli.pipeline_cli tweets --max 20
    python -m votewatch.cli.pipeline_cli fix-handles
    python -m votewatch.cli.pipeline_cli set-handle --id 42 --handle @JohnDoe
    python -m votewatch.cli.pipeline_cli stats
    python -m votewatch.cli.pipeline_cli cache-stats
"""

import asyncio
import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from ..context import AppContext
from ..exceptions import ConfigurationError, PoliticianNotFoundError

logger = logging.getLogger(__name__)
console = Console()


def _print_errors(errors) -> None:
    if not errors:
        return
    console.print(f"\n[yellow]⚠️  {len(errors)} errors:[/yellow]")
    for i, error in enumerate(errors[:10], 1):
        where = f"{error.unit} {error.record_id}" if error.record_id else error.unit
        console.print(f"  {i}. [{error.error_type}] {where}: {error.message}")
    if len(errors) > 10:
        console.print(f"  ... and {len(errors) - 10} more errors")


async def run_init_db(ctx: AppContext, args: argparse.Namespace) -> int:
    await ctx.database.create_tables()
    console.print("[green]✅ Database tables created[/green]")
    return 0


async def run_votes(ctx: AppContext, args: argparse.Namespace) -> int:
    console.print(f"\n[bold cyan]Scraping roll-call sessions {args.start}-{args.end}[/bold cyan]")
    report = await ctx.ingestion.ingest_votes(args.start, args.end)
    
    console.print(f"\n[green]✅ Votes ingested:[/green]")
    console.print(f"   • Sessions upserted: {report.sessions_upserted} ({report.sessions_created} new)")
    console.print(f"   • Sessions missing: {report.sessions_missing}")
    console.print(f"   • Votes upserted: {report.votes_upserted} ({report.votes_created} new)")
    console.print(f"   • Politicians created: {report.politicians_created}")
    _print_errors(report.errors)
    return 0 if report.sessions_upserted or not report.errors else 1


async def run_tweets(ctx: AppContext, args: argparse.Namespace) -> int:
    report = await ctx.ingestion.ingest_posts_for_all_politicians(args.max)
    
    table = Table(title="Post ingestion")
    table.add_column("Politician")
    table.add_column("Handle")
    table.add_column("New", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Error", style="red")
    for detail in report.details:
        table.add_row(
            detail.name,
            f"@{detail.handle}",
            str(detail.new_posts),
            str(detail.skipped_posts),
            detail.error or "",
        )
    console.print(table)
    console.print(
        f"Processed {report.processed}/{report.total_politicians} politicians, "
        f"{report.new_posts} new posts, {report.skipped_posts} skipped"
    )
    if report.rate_limited:
        console.print("[yellow]⚠️  Rate limit exceeded, run again after the window resets[/yellow]")
    return 0


async def run_fix_handles(ctx: AppContext, args: argparse.Namespace) -> int:
    report = await ctx.ingestion.fix_handles()
    
    table = Table(title=f"Fixed {report.fixed} of {report.total} handles")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Original")
    table.add_column("Fixed", style="green")
    for detail in report.details:
        table.add_row(str(detail.id), detail.name, detail.original, detail.fixed)
    console.print(table)
    _print_errors(report.errors)
    return 0


async def run_set_handle(ctx: AppContext, args: argparse.Namespace) -> int:
    try:
        politician = await ctx.ingestion.set_handle(args.id, args.handle)
    except PoliticianNotFoundError as e:
        console.print(f"[red]❌ {e}[/red]")
        return 1
    
    if politician.twitter_handle:
        console.print(f"[green]✅ {politician.name}: @{politician.twitter_handle}[/green]")
    else:
        console.print(f"[green]✅ {politician.name}: handle cleared[/green]")
    return 0


async def run_stats(ctx: AppContext, args: argparse.Namespace) -> int:
    stats = await ctx.stats.get_stats()
    
    table = Table(title="Database statistics")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for name, value in stats.model_dump().items():
        table.add_row(name, "" if value is None else str(value))
    console.print(table)
    return 0


async def run_cache_stats(ctx: AppContext, args: argparse.Namespace) -> int:
    stats = ctx.stats.get_cache_stats()
    console.print(
        f"Cache: {stats.size}/{stats.max_size} entries, "
        f"hits={stats.hits} misses={stats.misses} stale={stats.stale_hits}"
    )
    for key in stats.keys:
        console.print(f"  • {key}")
    return 0


COMMANDS = {
    "init-db": run_init_db,
    "votes": run_votes,
    "tweets": run_tweets,
    "fix-handles": run_fix_handles,
    "set-handle": run_set_handle,
    "stats": run_stats,
    "cache-stats": run_cache_stats,
}


async def run_command(args: argparse.Namespace) -> int:
    try:
        async with AppContext() as ctx:
            return await COMMANDS[args.command](ctx, args)
    except ConfigurationError as e:
        console.print(f"\n[bold red]❌ Configuration error: {e}[/bold red]")
        return 2
    except Exception as e:
        console.print(f"\n[bold red]❌ Error: {e}[/bold red]")
        logger.error("Command failed", exc_info=True)
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="VoteWatch data pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    
    subparsers.add_parser("init-db", help="Create database tables")
    
    votes = subparsers.add_parser("votes", help="Scrape and ingest roll-call votes")
    votes.add_argument("--start", type=int, required=True, help="First roll-call id (g)")
    votes.add_argument("--end", type=int, required=True, help="Last roll-call id (g)")
    
    tweets = subparsers.add_parser("tweets", help="Fetch posts for all politicians")
    tweets.add_argument("--max", type=int, default=None, help="Posts per politician (5-100)")
    
    subparsers.add_parser("fix-handles", help="Normalize stored handles")
    
    set_handle = subparsers.add_parser("set-handle", help="Set or clear one politician's handle")
    set_handle.add_argument("--id", type=int, required=True, help="Politician id")
    set_handle.add_argument("--handle", default="", help="Username, @username or profile URL (omit to clear)")
    
    subparsers.add_parser("stats", help="Show database statistics")
    subparsers.add_parser("cache-stats", help="Show cache statistics")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point"""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    
    sys.exit(asyncio.run(run_command(args)))


if __name__ == "__main__":
    main()
