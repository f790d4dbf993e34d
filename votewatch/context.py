"""
Application context.

Owns the process-wide shared state: database engine, response cache,
social-media quota tracker and the outbound clients. Entry points (API,
CLI, flows) create one context at start-up and close it on shutdown.

Responsibility: Build and tear down shared pipeline resources
"""

import logging
from typing import Optional

from .adapters.psp_votes import PspVotesAdapter
from .adapters.twitter_client import TwitterClient
from .config import Settings, settings as default_settings
from .db.session import Database
from .services.admin_service import AdminService
from .services.ingestion_service import IngestionService
from .services.stats_service import StatisticsService
from .utils.cache import TTLCache
from .utils.rate_limiter import QuotaTracker

logger = logging.getLogger(__name__)


class AppContext:
    """
    Container for shared resources.
    
    Example:
        async with AppContext() as ctx:
            report = await ctx.ingestion.ingest_votes(80100, 80110)
    """
    
    def __init__(
        self,
        settings: Optional[Settings] = None,
        database: Optional[Database] = None,
        cache: Optional[TTLCache] = None,
        quota: Optional[QuotaTracker] = None,
        scraper: Optional[PspVotesAdapter] = None,
        twitter: Optional[TwitterClient] = None,
    ):
        self.settings = settings or default_settings
        self.database = database or Database(self.settings.db)
        self.cache = cache or TTLCache(
            max_size=self.settings.cache.max_size,
            ttl_seconds=self.settings.cache.ttl_seconds,
        )
        self.quota = quota or QuotaTracker(
            default_quota=self.settings.twitter.default_quota,
            window_seconds=self.settings.twitter.default_window_seconds,
            safety_margin=self.settings.twitter.reset_safety_margin,
        )
        self._scraper = scraper
        self._twitter = twitter
        self._ingestion: Optional[IngestionService] = None
        self._stats: Optional[StatisticsService] = None
        self._admin: Optional[AdminService] = None
    
    async def __aenter__(self) -> "AppContext":
        await self.start()
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
    
    async def start(self, create_tables: bool = False) -> None:
        if not self.database.is_initialized:
            await self.database.initialize()
        if create_tables:
            await self.database.create_tables()
    
    @property
    def scraper(self) -> PspVotesAdapter:
        if self._scraper is None:
            self._scraper = PspVotesAdapter(self.settings.scraper)
        return self._scraper
    
    @property
    def twitter(self) -> Optional[TwitterClient]:
        """Social-media client, or None when no API key is configured."""
        if self._twitter is None and self.settings.twitter.api_key:
            self._twitter = TwitterClient(self.settings.twitter, self.cache, self.quota)
        return self._twitter
    
    @property
    def ingestion(self) -> IngestionService:
        if self._ingestion is None:
            self._ingestion = IngestionService(
                self.database,
                self.cache,
                config=self.settings.ingestion,
                scraper=self.scraper,
                twitter=self.twitter,
            )
        return self._ingestion
    
    @property
    def stats(self) -> StatisticsService:
        if self._stats is None:
            self._stats = StatisticsService(self.database, self.cache)
        return self._stats
    
    @property
    def admin(self) -> AdminService:
        if self._admin is None:
            self._admin = AdminService(self.database, self.cache)
        return self._admin
    
    async def close(self) -> None:
        if self._scraper is not None:
            await self._scraper.close()
            self._scraper = None
        if self._twitter is not None:
            await self._twitter.close()
            self._twitter = None
        self._ingestion = None
        await self.database.close()
        logger.info("Application context closed")
