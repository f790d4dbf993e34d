"""
Prefect flows for vote scraping, post fetching and handle fix-up.

A flow run opens one AppContext and closes it when the run ends. Every
task of that run works through the same services, so the response cache
and the social-media quota are shared between tasks.
"""
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from prefect import flow, task, get_run_logger

from votewatch.context import AppContext
from votewatch.exceptions import ConfigurationError
from votewatch.services import IngestionService

_context: Optional[AppContext] = None


@asynccontextmanager
async def flow_context() -> AsyncIterator[AppContext]:
    """
    Open the AppContext used by every task of the current flow run.

    A flow called from inside another flow reuses the outer context.
    """
    global _context
    if _context is not None:
        yield _context
        return

    ctx = AppContext()
    await ctx.start()
    _context = ctx
    try:
        yield ctx
    finally:
        _context = None
        await ctx.close()


def _ingestion() -> IngestionService:
    if _context is None:
        raise ConfigurationError("Ingestion tasks must run inside a VoteWatch flow")
    return _context.ingestion


@task(name="ingest_votes", retries=1, retry_delay_seconds=60)
async def ingest_votes_task(start: int, end: int) -> dict:
    """
    Scrape and ingest an inclusive range of roll-call sessions.

    Returns:
        VoteIngestionReport as a dict
    """
    logger = get_run_logger()
    logger.info(f"Ingesting roll-call sessions {start}-{end}")

    report = await _ingestion().ingest_votes(start, end)

    for error in report.errors:
        logger.warning(f"Session {error.record_id}: {error.error_type}: {error.message}")
    return report.model_dump(mode="json")


@task(name="ingest_posts", retries=1, retry_delay_seconds=300)
async def ingest_posts_task(max_per_politician: Optional[int] = None) -> dict:
    logger = get_run_logger()

    report = await _ingestion().ingest_posts_for_all_politicians(max_per_politician)

    if report.rate_limited:
        logger.warning("Rate limit exceeded; some politicians were skipped")
    return report.model_dump(mode="json")


@task(name="fix_handles")
async def fix_handles_task() -> dict:
    report = await _ingestion().fix_handles()
    return report.model_dump(mode="json")


@flow(
    name="fetch_votes",
    description="Scrape and store roll-call votes",
    log_prints=True
)
async def fetch_votes_flow(start: int, end: int) -> dict:
    """
    Main flow to scrape and store roll-call votes.

    Args:
        start: First roll-call identifier
        end: Last roll-call identifier

    Returns:
        Dictionary with flow results
    """
    logger = get_run_logger()
    start_time = datetime.utcnow()

    async with flow_context():
        report = await ingest_votes_task(start, end)

    result = {
        "status": "success" if not report["errors"] else "partial",
        "start": start,
        "end": end,
        "sessions_upserted": report["sessions_upserted"],
        "votes_upserted": report["votes_upserted"],
        "error_count": len(report["errors"]),
        "duration_seconds": (datetime.utcnow() - start_time).total_seconds(),
    }
    logger.info(f"Vote fetch flow completed: {result}")
    return result


@flow(
    name="fetch_tweets",
    description="Fetch and store recent posts for every politician with a handle",
    log_prints=True
)
async def fetch_tweets_flow(max_per_politician: Optional[int] = None) -> dict:
    logger = get_run_logger()

    async with flow_context():
        # Lookups expect bare usernames
        await fix_handles_task()
        report = await ingest_posts_task(max_per_politician)

    logger.info(
        f"Tweet fetch flow completed: {report['new_posts']} new posts, "
        f"{report['processed']}/{report['total_politicians']} politicians"
    )
    return report


@flow(
    name="fix_handles",
    description="Normalize stored social-media handles",
    log_prints=True
)
async def fix_handles_flow() -> dict:
    logger = get_run_logger()
    async with flow_context():
        report = await fix_handles_task()
    logger.info(f"Handle fix flow completed: fixed {report['fixed']} of {report['total']}")
    return report


if __name__ == "__main__":
    asyncio.run(fix_handles_flow())
