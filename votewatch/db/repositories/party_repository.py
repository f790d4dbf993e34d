"""
Repository for party database operations.

Responsibility: Data access layer for the ``parties`` table.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from votewatch.db.models import PartyModel

logger = logging.getLogger(__name__)


class PartyRepository:
    """Repository for party database operations."""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def get_by_name(self, name: str) -> Optional[PartyModel]:
        """Get a party by its exact name."""
        result = await self.session.execute(
            select(PartyModel).where(PartyModel.name == name)
        )
        return result.scalar_one_or_none()
    
    async def get_or_create(self, name: str) -> Tuple[PartyModel, bool]:
        """
        Resolve a party by name, creating it on first sight.
        
        Args:
            name: Party name as printed on the roll-call page
            
        Returns:
            Tuple of (PartyModel, created)
        """
        existing = await self.get_by_name(name)
        if existing:
            return existing, False
        
        party = PartyModel(
            name=name,
            short_name=name if len(name) <= 20 else None,
        )
        self.session.add(party)
        await self.session.flush()
        logger.debug(f"Created party: {name}")
        return party, True
    
    async def list_all(self) -> List[PartyModel]:
        result = await self.session.execute(
            select(PartyModel).order_by(PartyModel.name)
        )
        return list(result.scalars().all())
    
    async def count(self) -> int:
        result = await self.session.execute(select(func.count(PartyModel.id)))
        return result.scalar_one()
