"""
Repository for system log operations.

System logs are an append-only audit trail of batch operations (vote
scrapes, post fetches, handle fixes). Each call runs in its own session.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, func

from votewatch.db.models import SystemLogModel
from votewatch.db.session import Database


class SystemLogRepository:
    """Repository for system log operations."""
    
    def __init__(self, db: Database):
        """
        Initialize repository with database instance.
        
        Args:
            db: Database instance
        """
        self.db = db
    
    async def create_log(
        self,
        log_type: str,
        status: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> SystemLogModel:
        """
        Append a new log entry.
        
        Args:
            log_type: Operation type ("vote_scrape", "twitter_scrape", "handle_fix")
            status: Outcome ("success", "partial", "error")
            message: Human-readable summary
            details: Structured summary of the run
            
        Returns:
            Created SystemLogModel instance
        """
        async with self.db.session() as session:
            log = SystemLogModel(
                type=log_type,
                status=status,
                message=message,
                details=details,
            )
            session.add(log)
            await session.flush()
            return log
    
    async def get_recent_logs(
        self,
        limit: int = 100,
        log_type: Optional[str] = None,
    ) -> List[SystemLogModel]:
        """
        Get most recent log entries.
        
        Args:
            limit: Maximum number of logs to return
            log_type: Optional type filter
            
        Returns:
            List of SystemLogModel instances, newest first
        """
        async with self.db.session() as session:
            query = select(SystemLogModel)
            
            if log_type:
                query = query.where(SystemLogModel.type == log_type)
            
            query = query.order_by(SystemLogModel.created_at.desc(), SystemLogModel.id.desc()).limit(limit)
            
            result = await session.execute(query)
            return list(result.scalars().all())
    
    async def count(self) -> int:
        async with self.db.session() as session:
            result = await session.execute(select(func.count(SystemLogModel.id)))
            return result.scalar_one()
