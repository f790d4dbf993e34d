"""
Administrative operations on the store.
"""

import logging
from typing import Dict

from sqlalchemy import delete

from ..db.models import (
    PartyModel,
    PoliticianModel,
    SystemLogModel,
    TweetModel,
    TweetVoteAssociationModel,
    VoteModel,
    VotingSessionModel,
)
from ..db.session import Database
from ..utils.cache import TTLCache

logger = logging.getLogger(__name__)

# Children before parents
_ERASE_ORDER = [
    TweetVoteAssociationModel,
    TweetModel,
    VoteModel,
    VotingSessionModel,
    SystemLogModel,
    PoliticianModel,
    PartyModel,
]


class AdminService:
    def __init__(self, database: Database, cache: TTLCache):
        self.database = database
        self.cache = cache
    
    async def erase_database(self) -> Dict[str, int]:
        """
        Delete every row from every table in a single transaction.
        
        Returns:
            Rows deleted per table
        """
        deleted: Dict[str, int] = {}
        async with self.database.session() as session:
            for model in _ERASE_ORDER:
                result = await session.execute(delete(model))
                deleted[model.__tablename__] = result.rowcount
        
        self.cache.clear_all()
        logger.warning(f"Erased database contents: {deleted}")
        return deleted
