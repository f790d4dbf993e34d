"""
Repository for voting session database operations.

Responsibility: Data access layer for the ``voting_sessions`` table,
including the incrementally maintained ``vote_count`` column.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, update, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from votewatch.db.models import VotingSessionModel

logger = logging.getLogger(__name__)


class VotingSessionRepository:
    """Repository for voting session database operations."""
    
    def __init__(self, session: AsyncSession):
        """
        Initialize repository.
        
        Args:
            session: Async database session
        """
        self.session = session
    
    async def get_by_id(self, session_id: int) -> Optional[VotingSessionModel]:
        result = await self.session.execute(
            select(VotingSessionModel).where(VotingSessionModel.id == session_id)
        )
        return result.scalar_one_or_none()
    
    async def get_by_external_id(self, external_id: str) -> Optional[VotingSessionModel]:
        """
        Get a voting session by its source identifier.
        
        Args:
            external_id: Identifier of the roll-call page (``g`` parameter)
            
        Returns:
            VotingSessionModel or None if not found
        """
        result = await self.session.execute(
            select(VotingSessionModel).where(VotingSessionModel.external_id == external_id)
        )
        return result.scalar_one_or_none()
    
    async def get_or_create(self, session_data: Dict[str, Any]) -> Tuple[VotingSessionModel, bool]:
        """
        Insert a voting session unless one with the same external id exists.
        
        Existing rows are returned untouched. New rows always start with
        ``vote_count = 0``.
        
        Args:
            session_data: Session attributes (``external_id`` required)
            
        Returns:
            Tuple of (VotingSessionModel, created)
        """
        external_id = session_data["external_id"]
        existing = await self.get_by_external_id(external_id)
        if existing:
            logger.debug(f"Voting session already stored: {external_id}")
            return existing, False
        
        data = dict(session_data)
        data["vote_count"] = 0
        voting_session = VotingSessionModel(**data)
        self.session.add(voting_session)
        await self.session.flush()
        logger.debug(f"Created voting session: {external_id}")
        return voting_session, True
    
    async def increment_vote_count(self, session_id: int, amount: int = 1) -> None:
        """
        Add ``amount`` to a session's vote counter.
        
        Issued as ``vote_count = vote_count + :amount`` so concurrent writers
        never lose an increment.
        """
        await self.session.execute(
            update(VotingSessionModel)
            .where(VotingSessionModel.id == session_id)
            .values(
                vote_count=VotingSessionModel.vote_count + amount,
                updated_at=datetime.utcnow(),
            )
        )
    
    async def list_recent(self, limit: int = 10) -> List[VotingSessionModel]:
        result = await self.session.execute(
            select(VotingSessionModel)
            .order_by(desc(VotingSessionModel.date), desc(VotingSessionModel.id))
            .limit(limit)
        )
        return list(result.scalars().all())
    
    async def count(self) -> int:
        result = await self.session.execute(select(func.count(VotingSessionModel.id)))
        return result.scalar_one()
    
    async def latest_date(self) -> Optional[datetime]:
        result = await self.session.execute(select(func.max(VotingSessionModel.date)))
        return result.scalar_one_or_none()
