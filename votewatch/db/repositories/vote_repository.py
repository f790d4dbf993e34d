"""
Repository for individual vote database operations.

Votes are unique on (politician, session). Re-ingesting a vote overwrites
its value in place.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
from sqlalchemy import select, and_, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from votewatch.db.models import VoteModel, VotingSessionModel

logger = logging.getLogger(__name__)


class VoteRepository:
    """Repository for vote database operations."""
    
    def __init__(self, session: AsyncSession):
        """
        Initialize repository.
        
        Args:
            session: Async database session
        """
        self.session = session
    
    async def get_by_natural_key(
        self,
        politician_id: int,
        session_id: int
    ) -> Optional[VoteModel]:
        """
        Get a vote by natural key (politician + voting session).
        
        Args:
            politician_id: Politician database ID
            session_id: Voting session database ID
            
        Returns:
            VoteModel or None if not found
        """
        result = await self.session.execute(
            select(VoteModel).where(
                and_(
                    VoteModel.politician_id == politician_id,
                    VoteModel.session_id == session_id
                )
            )
        )
        return result.scalar_one_or_none()
    
    async def upsert_one(
        self,
        politician_id: int,
        session_id: int,
        vote: str,
        vote_metadata: Optional[Dict[str, Any]] = None
    ) -> Tuple[VoteModel, bool]:
        """
        Insert or update a single vote.
        
        Args:
            politician_id: Politician database ID
            session_id: Voting session database ID
            vote: Normalized vote value
            vote_metadata: Optional free-form payload (raw symbol etc.)
            
        Returns:
            Tuple of (VoteModel, created)
        """
        existing = await self.get_by_natural_key(politician_id, session_id)
        
        if existing:
            existing.vote = vote
            if vote_metadata is not None:
                existing.vote_metadata = vote_metadata
            existing.updated_at = datetime.utcnow()
            await self.session.flush()
            logger.debug(f"Updated vote: politician={politician_id} session={session_id}")
            return existing, False
        
        record = VoteModel(
            politician_id=politician_id,
            session_id=session_id,
            vote=vote,
            vote_metadata=vote_metadata,
        )
        self.session.add(record)
        await self.session.flush()
        logger.debug(f"Created vote: politician={politician_id} session={session_id}")
        return record, True
    
    async def count(self) -> int:
        result = await self.session.execute(select(func.count(VoteModel.id)))
        return result.scalar_one()
    
    async def count_by_politician(self, politician_id: int) -> int:
        result = await self.session.execute(
            select(func.count(VoteModel.id)).where(VoteModel.politician_id == politician_id)
        )
        return result.scalar_one()
    
    async def tally_by_politician(self, politician_id: int) -> Dict[str, int]:
        """
        Count a politician's votes per vote value.
        
        Returns:
            Mapping like ``{"yes": 12, "no": 3}``
        """
        result = await self.session.execute(
            select(VoteModel.vote, func.count(VoteModel.id))
            .where(VoteModel.politician_id == politician_id)
            .group_by(VoteModel.vote)
        )
        return {vote: count for vote, count in result.all()}
    
    async def list_recent_for_politician(
        self,
        politician_id: int,
        limit: int = 10
    ) -> List[Tuple[VoteModel, VotingSessionModel]]:
        """
        Get a politician's most recent votes with their sessions.
        
        Returns:
            List of (VoteModel, VotingSessionModel) newest session first
        """
        result = await self.session.execute(
            select(VoteModel, VotingSessionModel)
            .join(VotingSessionModel, VoteModel.session_id == VotingSessionModel.id)
            .where(VoteModel.politician_id == politician_id)
            .order_by(desc(VotingSessionModel.date), desc(VoteModel.id))
            .limit(limit)
        )
        return [(vote, voting_session) for vote, voting_session in result.all()]
