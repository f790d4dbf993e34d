"""
Repository for politician database operations.

Politicians are matched case-insensitively by name, created on first
encounter and updated in place when their party or handle changes.

Responsibility: Data access layer for the ``politicians`` table.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select
from sqlalchemy.ext.asyncio import AsyncSession

from votewatch.db.models import PoliticianModel, VoteModel

logger = logging.getLogger(__name__)


class PoliticianRepository:
    """Repository encapsulating persistence for ``PoliticianModel`` records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, politician_id: int) -> Optional[PoliticianModel]:
        """Fetch a single politician (with party) by primary key."""
        stmt: Select[PoliticianModel] = (
            select(PoliticianModel)
            .options(selectinload(PoliticianModel.party))
            .where(PoliticianModel.id == politician_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Optional[PoliticianModel]:
        """Case-insensitive lookup by full name; the oldest row wins."""
        stmt: Select[PoliticianModel] = (
            select(PoliticianModel)
            .where(func.lower(PoliticianModel.name) == name.strip().lower())
            .order_by(PoliticianModel.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def upsert_by_name(
        self,
        name: str,
        party_id: Optional[int] = None,
        twitter_handle: Optional[str] = None,
    ) -> Tuple[PoliticianModel, bool]:
        """
        Insert or update a politician keyed on case-insensitive name.

        An existing row only has ``party_id``/``twitter_handle`` rewritten
        when a new value is supplied and differs from the stored one.

        Returns:
            Tuple of (PoliticianModel, created)
        """
        existing = await self.get_by_name(name)

        if existing is None:
            politician = PoliticianModel(
                name=name.strip(),
                party_id=party_id,
                twitter_handle=twitter_handle,
            )
            self.session.add(politician)
            await self.session.flush()
            logger.debug("Created politician: %s", name)
            return politician, True

        changed = False
        if party_id is not None and existing.party_id != party_id:
            existing.party_id = party_id
            changed = True
        if twitter_handle and existing.twitter_handle != twitter_handle:
            existing.twitter_handle = twitter_handle
            changed = True
        if changed:
            existing.updated_at = datetime.utcnow()
            await self.session.flush()
            logger.debug("Updated politician: %s", name)
        return existing, False

    async def list_all(self) -> List[PoliticianModel]:
        result = await self.session.execute(
            select(PoliticianModel).order_by(PoliticianModel.id)
        )
        return list(result.scalars().all())

    async def list_with_handles(self) -> List[PoliticianModel]:
        """Politicians whose handle is set and non-empty, with party loaded."""
        stmt: Select[PoliticianModel] = (
            select(PoliticianModel)
            .options(selectinload(PoliticianModel.party))
            .where(PoliticianModel.twitter_handle.is_not(None))
            .where(PoliticianModel.twitter_handle != "")
            .order_by(PoliticianModel.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_handle(
        self, politician_id: int, twitter_handle: Optional[str]
    ) -> Optional[PoliticianModel]:
        """Set one politician's handle; returns None if the id is unknown."""
        politician = await self.get_by_id(politician_id)
        if politician is None:
            return None

        politician.twitter_handle = twitter_handle
        politician.updated_at = datetime.utcnow()
        await self.session.flush()
        return politician

    async def update_handles(self, handles: Dict[int, str]) -> int:
        """
        Rewrite many handles in a single UPDATE statement.

        Args:
            handles: Mapping of politician id to its new handle

        Returns:
            Number of rows updated
        """
        if not handles:
            return 0

        stmt = (
            update(PoliticianModel)
            .where(PoliticianModel.id.in_(list(handles)))
            .values(
                twitter_handle=case(handles, value=PoliticianModel.id),
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        logger.info("Updated %s politician handles", result.rowcount)
        return result.rowcount

    async def mark_twitter_synced(
        self, politician_id: int, synced_at: Optional[datetime] = None
    ) -> None:
        await self.session.execute(
            update(PoliticianModel)
            .where(PoliticianModel.id == politician_id)
            .values(last_twitter_sync=synced_at or datetime.utcnow())
        )

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(PoliticianModel.id)))
        return result.scalar_one()

    async def count_with_votes(self) -> int:
        result = await self.session.execute(
            select(func.count(func.distinct(VoteModel.politician_id)))
        )
        return result.scalar_one()
