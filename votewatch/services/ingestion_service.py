"""
Ingestion reconciler.

Reconciles scraped roll-calls and fetched posts against the store with
idempotent upserts:
- one transaction per roll-call session (session, parties, politicians,
  votes and the session's vote counter commit or roll back together)
- one transaction per politician's post batch
- one transaction for the handle fix-up

Per-record problems are recorded in the returned report; only missing
configuration aborts a batch.

Responsibility: Idempotent persistence of scraped and fetched records
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters.psp_votes import PspVotesAdapter
from ..adapters.twitter_client import TwitterClient
from ..config import IngestionConfig, settings
from ..db.repositories import (
    PartyRepository,
    PoliticianRepository,
    SystemLogRepository,
    TweetRepository,
    VoteRepository,
    VotingSessionRepository,
)
from ..db.session import Database
from ..exceptions import (
    ConfigurationError,
    PoliticianNotFoundError,
    RateLimitExceededError,
    RecordValidationError,
    ScraperError,
    VoteWatchError,
)
from ..models.adapter_models import FetchedTweet, ScrapedSession
from ..models.reports import (
    HandleFixDetail,
    HandleFixReport,
    IngestionError,
    PoliticianFetchDetail,
    PoliticianSummary,
    SaveTweetsResult,
    TweetFetchReport,
    VoteIngestionReport,
)
from ..utils.cache import TTLCache
from ..utils.dedupe import dedupe_by_key
from ..utils.handles import normalize_handle

logger = logging.getLogger(__name__)

# Cache keys fed by each table
VOTE_CACHE_KEYS = ["db_stats"]
VOTE_CACHE_PREFIXES = ["recent_sessions:", "politician:"]
TWEET_CACHE_KEYS = ["db_stats", "tweet_stats"]
TWEET_CACHE_PREFIXES = ["recent_tweets:", "politician:"]
HANDLE_CACHE_KEYS = ["politicians_with_twitter", "db_stats"]
HANDLE_CACHE_PREFIXES = ["politician:"]


@dataclass
class _SessionOutcome:
    created: bool = False
    votes_created: int = 0
    votes_updated: int = 0
    votes_skipped: int = 0
    politicians_created: int = 0


def _tally(session: ScrapedSession) -> Dict[str, int]:
    counts = Counter(vote.vote.value for vote in session.votes)
    summary = dict(counts)
    summary["total"] = len(session.votes)
    return summary


class IngestionService:
    """
    Writes scraped roll-calls and fetched posts into the store.
    
    Example:
        service = IngestionService(db, cache, scraper=PspVotesAdapter())
        report = await service.ingest_votes(80100, 80120)
    """
    
    def __init__(
        self,
        database: Database,
        cache: TTLCache,
        config: Optional[IngestionConfig] = None,
        scraper: Optional[PspVotesAdapter] = None,
        twitter: Optional[TwitterClient] = None,
    ):
        """
        Initialize ingestion service.
        
        Args:
            database: Initialized Database
            cache: Shared cache whose read keys are invalidated after writes
            config: Concurrency and batch settings
            scraper: Roll-call page source (required for ingest_votes)
            twitter: Social-media client (required for post ingestion)
        """
        self.database = database
        self.cache = cache
        self.config = config or settings.ingestion
        self.scraper = scraper
        self.twitter = twitter
        self.system_logs = SystemLogRepository(database)
    
    # MARK: Votes ---
    
    async def ingest_votes(self, start: int, end: int) -> VoteIngestionReport:
        """
        Scrape and ingest the inclusive range of roll-call pages.
        
        Args:
            start: First roll-call identifier
            end: Last roll-call identifier
        
        Returns:
            VoteIngestionReport
        
        Raises:
            ConfigurationError: If no roll-call page source is configured
            ValueError: If the range is empty
        """
        if self.scraper is None:
            raise ConfigurationError("No roll-call page source configured")
        if end < start:
            raise ValueError(f"Invalid session range {start}-{end}")
        
        report = VoteIngestionReport()
        logger.info(f"Ingesting roll-call sessions {start}-{end}")
        
        for g in range(start, end + 1):
            external_id = str(g)
            try:
                scraped = await self.scraper.fetch_session(external_id)
            except ScraperError as exc:
                logger.error(f"Failed to scrape session {external_id}: {exc}")
                report.errors.append(
                    IngestionError(
                        unit="session",
                        record_id=external_id,
                        error_type=type(exc).__name__,
                        message=str(exc),
                    )
                )
                continue
            
            if scraped is None:
                report.sessions_missing += 1
                continue
            
            await self._ingest_one_session(scraped, report)
        
        await self._finish_vote_run(report, {"start": start, "end": end})
        return report
    
    async def ingest_sessions(self, sessions: Iterable[ScrapedSession]) -> VoteIngestionReport:
        """
        Ingest already-scraped roll-call sessions.
        
        Re-ingesting the same sessions leaves the store unchanged.
        """
        report = VoteIngestionReport()
        for scraped in sessions:
            await self._ingest_one_session(scraped, report)
        await self._finish_vote_run(report, {})
        return report
    
    def _validate_session(self, scraped: ScrapedSession) -> None:
        if scraped.date is None:
            raise RecordValidationError(
                f"Session {scraped.external_id} has no parseable date",
                record_id=scraped.external_id,
                field="date",
            )
        if not scraped.title or not scraped.title.strip():
            raise RecordValidationError(
                f"Session {scraped.external_id} has no title",
                record_id=scraped.external_id,
                field="title",
            )
    
    async def _ingest_one_session(self, scraped: ScrapedSession, report: VoteIngestionReport) -> None:
        try:
            self._validate_session(scraped)
        except RecordValidationError as exc:
            logger.warning(str(exc))
            report.errors.append(
                IngestionError(
                    unit="session",
                    record_id=exc.record_id,
                    field=exc.field,
                    error_type=type(exc).__name__,
                    message=str(exc),
                )
            )
            return
        
        try:
            async with self.database.session() as session:
                outcome = await self._write_session(session, scraped)
        except Exception as exc:
            logger.error(
                f"Rolled back session {scraped.external_id}: {type(exc).__name__}: {exc}"
            )
            report.errors.append(
                IngestionError(
                    unit="session",
                    record_id=scraped.external_id,
                    error_type=type(exc).__name__,
                    message=str(exc),
                )
            )
            return
        
        report.sessions_upserted += 1
        report.sessions_created += int(outcome.created)
        report.votes_created += outcome.votes_created
        report.votes_updated += outcome.votes_updated
        report.votes_upserted += outcome.votes_created + outcome.votes_updated
        report.votes_skipped += outcome.votes_skipped
        report.politicians_created += outcome.politicians_created
    
    async def _write_session(self, session: AsyncSession, scraped: ScrapedSession) -> _SessionOutcome:
        """Persist one roll-call inside the caller's transaction."""
        sessions = VotingSessionRepository(session)
        parties = PartyRepository(session)
        politicians = PoliticianRepository(session)
        votes = VoteRepository(session)
        outcome = _SessionOutcome()
        
        voting_session, outcome.created = await sessions.get_or_create({
            "external_id": scraped.external_id,
            "title": scraped.title.strip(),
            "description": scraped.description,
            "date": scraped.date,
            "category": scraped.category,
            "source_url": scraped.source_url,
            "result_summary": _tally(scraped),
        })
        
        # Resolve every politician before touching votes
        party_ids: Dict[str, int] = {}
        politician_ids: Dict[str, int] = {}
        for vote in scraped.votes:
            name = (vote.politician_name or "").strip()
            if not name or name.lower() in politician_ids:
                continue
            
            party_id = None
            if vote.party_name:
                if vote.party_name not in party_ids:
                    party, _ = await parties.get_or_create(vote.party_name)
                    party_ids[vote.party_name] = party.id
                party_id = party_ids[vote.party_name]
            
            politician, created = await politicians.upsert_by_name(name, party_id=party_id)
            politician_ids[name.lower()] = politician.id
            outcome.politicians_created += int(created)
        
        for vote in scraped.votes:
            name = (vote.politician_name or "").strip()
            politician_id = politician_ids.get(name.lower()) if name else None
            if politician_id is None:
                logger.warning(
                    f"Skipping vote without resolvable politician in session {scraped.external_id}: {vote.politician_name!r}"
                )
                outcome.votes_skipped += 1
                continue
            
            _, created = await votes.upsert_one(
                politician_id=politician_id,
                session_id=voting_session.id,
                vote=vote.vote.value,
                vote_metadata={"symbol": vote.vote_symbol, "party": vote.party_name},
            )
            if created:
                await sessions.increment_vote_count(voting_session.id)
                outcome.votes_created += 1
            else:
                outcome.votes_updated += 1
        
        return outcome
    
    async def _finish_vote_run(self, report: VoteIngestionReport, params: Dict[str, int]) -> None:
        if report.sessions_upserted:
            self._invalidate(VOTE_CACHE_KEYS, VOTE_CACHE_PREFIXES)
        
        if report.errors and not report.sessions_upserted:
            status = "error"
        elif report.errors:
            status = "partial"
        else:
            status = "success"
        
        await self._record_run(
            "vote_scrape",
            status,
            f"Upserted {report.sessions_upserted} sessions and {report.votes_upserted} votes",
            {**params, **report.model_dump(mode="json", exclude={"errors"}), "error_count": len(report.errors)},
        )
        logger.info(
            f"Vote ingestion finished: sessions={report.sessions_upserted} "
            f"votes={report.votes_upserted} errors={len(report.errors)}"
        )
    
    # MARK: Posts ---
    
    async def save_tweets(self, politician_id: int, tweets: Sequence[FetchedTweet]) -> SaveTweetsResult:
        """
        Store a politician's posts, skipping any already stored.
        
        Args:
            politician_id: Author's politician id
            tweets: Posts in source order
        
        Returns:
            SaveTweetsResult with inserted and skipped counts
        """
        async with self.database.session() as session:
            result = await self._write_tweets(session, politician_id, tweets)
        
        if result.inserted:
            self._invalidate(TWEET_CACHE_KEYS, TWEET_CACHE_PREFIXES)
        return result
    
    async def _write_tweets(
        self,
        session: AsyncSession,
        politician_id: int,
        tweets: Sequence[FetchedTweet],
    ) -> SaveTweetsResult:
        repo = TweetRepository(session)
        existing = await repo.get_existing_external_ids(t.external_id for t in tweets)
        fresh, _ = dedupe_by_key(tweets, lambda t: t.external_id, existing)
        
        rows = [
            {
                "external_id": tweet.external_id,
                "politician_id": politician_id,
                "content": tweet.text,
                "url": tweet.url,
                "posted_at": tweet.created_at or datetime.utcnow(),
                "metrics": tweet.metrics,
            }
            for tweet in fresh
        ]
        inserted = await repo.insert_many(rows)
        return SaveTweetsResult(inserted=inserted, skipped=len(tweets) - inserted)
    
    def _require_twitter(self) -> TwitterClient:
        if self.twitter is None:
            raise ConfigurationError("TWITTER_API_KEY is not configured")
        return self.twitter
    
    async def ingest_posts_for_all_politicians(
        self,
        max_per_politician: Optional[int] = None,
    ) -> TweetFetchReport:
        """
        Fetch and store recent posts for every politician with a handle.
        
        Politicians are processed concurrently up to the configured limit.
        One politician's failure is recorded in its detail entry and does
        not affect the others. After the API reports the rate limit as
        exhausted, politicians not yet started are skipped.
        
        Args:
            max_per_politician: Posts to request per politician
        
        Returns:
            TweetFetchReport
        
        Raises:
            ConfigurationError: If no social-media client is configured
        """
        twitter = self._require_twitter()
        max_results = max_per_politician or self.config.max_tweets_per_politician
        
        async with self.database.session() as session:
            politicians = await PoliticianRepository(session).list_with_handles()
            targets = [(p.id, p.name, p.twitter_handle) for p in politicians]
        
        report = TweetFetchReport(total_politicians=len(targets))
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        rate_limited = asyncio.Event()
        
        async def process(politician_id: int, name: str, handle: str) -> PoliticianFetchDetail:
            detail = PoliticianFetchDetail(politician_id=politician_id, name=name, handle=handle)
            async with semaphore:
                if rate_limited.is_set():
                    detail.error = "Skipped: rate limit exceeded"
                    return detail
                try:
                    tweets = await twitter.fetch_user_tweets(handle, max_results)
                    async with self.database.session() as session:
                        result = await self._write_tweets(session, politician_id, tweets)
                        await PoliticianRepository(session).mark_twitter_synced(politician_id)
                except RateLimitExceededError as exc:
                    rate_limited.set()
                    logger.warning(f"Rate limit exceeded while fetching @{handle}")
                    detail.error = str(exc)
                    return detail
                except VoteWatchError as exc:
                    logger.warning(f"Failed to fetch posts for @{handle}: {exc}")
                    detail.error = str(exc)
                    return detail
                except Exception as exc:
                    logger.error(f"Failed to store posts for @{handle}: {type(exc).__name__}: {exc}")
                    detail.error = f"{type(exc).__name__}: {exc}"
                    return detail
            
            detail.new_posts = result.inserted
            detail.skipped_posts = result.skipped
            return detail
        
        report.details = list(
            await asyncio.gather(*(process(pid, name, handle) for pid, name, handle in targets))
        )
        report.rate_limited = rate_limited.is_set()
        for detail in report.details:
            if detail.error is None:
                report.processed += 1
            report.new_posts += detail.new_posts
            report.skipped_posts += detail.skipped_posts
        
        if report.new_posts:
            self._invalidate(TWEET_CACHE_KEYS, TWEET_CACHE_PREFIXES)
        
        failed = report.total_politicians - report.processed
        if failed and not report.processed:
            status = "error"
        elif failed:
            status = "partial"
        else:
            status = "success"
        await self._record_run(
            "twitter_scrape",
            status,
            f"Fetched {report.new_posts} new posts for {report.processed}/{report.total_politicians} politicians",
            report.model_dump(mode="json", exclude={"details"}),
        )
        logger.info(
            f"Post ingestion finished: new={report.new_posts} skipped={report.skipped_posts} "
            f"rate_limited={report.rate_limited}"
        )
        return report
    
    # MARK: Handles ---
    
    async def fix_handles(self) -> HandleFixReport:
        """
        Normalize every stored handle to a bare username.
        
        All changed rows are written by a single UPDATE in one transaction.
        Handles with no username left after normalization are reported as
        errors and left untouched.
        """
        report = HandleFixReport()
        
        try:
            async with self.database.session() as session:
                repo = PoliticianRepository(session)
                politicians = await repo.list_with_handles()
                report.total = len(politicians)
                
                updates: Dict[int, str] = {}
                for politician in politicians:
                    original = politician.twitter_handle or ""
                    fixed = normalize_handle(original)
                    if not fixed:
                        report.errors.append(
                            IngestionError(
                                unit="handle",
                                record_id=str(politician.id),
                                field="twitter_handle",
                                error_type=RecordValidationError.__name__,
                                message=f"Handle {original!r} of {politician.name} has no username",
                            )
                        )
                    elif fixed != original:
                        updates[politician.id] = fixed
                        report.details.append(
                            HandleFixDetail(
                                id=politician.id,
                                name=politician.name,
                                original=original,
                                fixed=fixed,
                            )
                        )
                    else:
                        report.unchanged += 1
                
                await repo.update_handles(updates)
                report.fixed = len(updates)
        except Exception as exc:
            logger.error(f"Handle fix-up rolled back: {type(exc).__name__}: {exc}")
            report.fixed = 0
            report.details = []
            report.errors.append(
                IngestionError(
                    unit="handle",
                    error_type=type(exc).__name__,
                    message=str(exc),
                )
            )
        
        if report.fixed:
            self._invalidate(HANDLE_CACHE_KEYS, HANDLE_CACHE_PREFIXES)
        
        await self._record_run(
            "handle_fix",
            "partial" if report.errors else "success",
            f"Fixed {report.fixed} of {report.total} handles",
            report.model_dump(mode="json", exclude={"errors"}),
        )
        logger.info(f"Handle fix-up finished: fixed={report.fixed} unchanged={report.unchanged}")
        return report
    
    async def set_handle(self, politician_id: int, twitter_handle: Optional[str]) -> PoliticianSummary:
        """
        Assign (or clear) one politician's handle.
        
        The value is normalized to a bare username first; a blank value
        clears the handle.
        
        Raises:
            PoliticianNotFoundError: If no politician has this id
            ValueError: If a non-blank value holds no username
        """
        handle: Optional[str] = None
        if twitter_handle and twitter_handle.strip():
            handle = normalize_handle(twitter_handle)
            if not handle:
                raise ValueError(f"Handle {twitter_handle!r} has no username")
        
        async with self.database.session() as session:
            politician = await PoliticianRepository(session).update_handle(politician_id, handle)
            if politician is None:
                raise PoliticianNotFoundError(politician_id)
            summary = PoliticianSummary(
                id=politician.id,
                name=politician.name,
                twitter_handle=politician.twitter_handle,
                party_name=politician.party.name if politician.party else None,
                last_twitter_sync=politician.last_twitter_sync,
            )
        
        self._invalidate(HANDLE_CACHE_KEYS, HANDLE_CACHE_PREFIXES)
        logger.info(f"Set handle of politician {politician_id} to {handle!r}")
        return summary
    
    # MARK: Helpers ---
    
    def _invalidate(self, keys: List[str], prefixes: List[str]) -> None:
        self.cache.invalidate(keys)
        for prefix in prefixes:
            self.cache.invalidate_prefix(prefix)
    
    async def _record_run(self, log_type: str, status: str, message: str, details: Dict) -> None:
        try:
            await self.system_logs.create_log(log_type, status, message, details)
        except Exception as exc:
            logger.error(f"Failed to write {log_type} system log: {exc}")
