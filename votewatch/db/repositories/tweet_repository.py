"""
Repository for social-media post database operations.

Posts are insert-only: an incoming post whose external id is already
stored is skipped, never updated.

Responsibility: Data access layer for the ``tweets`` table.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import desc, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from votewatch.db.models import PartyModel, PoliticianModel, TweetModel

logger = logging.getLogger(__name__)


class TweetRepository:
    """Repository encapsulating persistence for ``TweetModel`` records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_existing_external_ids(self, external_ids: Iterable[str]) -> Set[str]:
        """
        Return which of ``external_ids`` are already stored.

        External ids are unique across all politicians, so the lookup is
        not restricted to one politician.
        """
        ids = list(external_ids)
        if not ids:
            return set()
        result = await self.session.execute(
            select(TweetModel.external_id).where(TweetModel.external_id.in_(ids))
        )
        return set(result.scalars().all())

    async def insert_many(self, rows: List[Dict[str, Any]]) -> int:
        """
        Insert all rows in one multi-row INSERT, preserving their order.

        Args:
            rows: Column dictionaries for ``TweetModel``

        Returns:
            Number of rows inserted
        """
        if not rows:
            return 0

        now = datetime.utcnow()
        values = []
        for row in rows:
            data = dict(row)
            data.setdefault("created_at", now)
            data.setdefault("updated_at", now)
            values.append(data)

        await self.session.execute(insert(TweetModel).values(values))
        logger.debug("Inserted %s tweets", len(values))
        return len(values)

    async def list_recent(
        self, limit: int = 10
    ) -> List[Tuple[TweetModel, PoliticianModel, Optional[PartyModel]]]:
        """Newest posts first, joined with author and author's party."""
        result = await self.session.execute(
            select(TweetModel, PoliticianModel, PartyModel)
            .join(PoliticianModel, TweetModel.politician_id == PoliticianModel.id)
            .outerjoin(PartyModel, PoliticianModel.party_id == PartyModel.id)
            .order_by(desc(TweetModel.posted_at), desc(TweetModel.id))
            .limit(limit)
        )
        return [(tweet, politician, party) for tweet, politician, party in result.all()]

    async def list_recent_for_politician(
        self, politician_id: int, limit: int = 5
    ) -> List[TweetModel]:
        result = await self.session.execute(
            select(TweetModel)
            .where(TweetModel.politician_id == politician_id)
            .order_by(desc(TweetModel.posted_at), desc(TweetModel.id))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(TweetModel.id)))
        return result.scalar_one()

    async def count_for_politician(self, politician_id: int) -> int:
        result = await self.session.execute(
            select(func.count(TweetModel.id)).where(TweetModel.politician_id == politician_id)
        )
        return result.scalar_one()

    async def count_politicians_with_tweets(self) -> int:
        result = await self.session.execute(
            select(func.count(func.distinct(TweetModel.politician_id)))
        )
        return result.scalar_one()

    async def latest_posted_at(self) -> Optional[datetime]:
        result = await self.session.execute(select(func.max(TweetModel.posted_at)))
        return result.scalar_one_or_none()
