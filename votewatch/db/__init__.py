"""
Database package for VoteWatch.

Provides ORM models, session management, and repository pattern
for data persistence.
"""

from .models import (
    Base,
    PartyModel,
    PoliticianModel,
    VotingSessionModel,
    VoteModel,
    TweetModel,
    SystemLogModel,
    TweetVoteAssociationModel,
)
from .session import Database

__all__ = [
    "Base",
    "PartyModel",
    "PoliticianModel",
    "VotingSessionModel",
    "VoteModel",
    "TweetModel",
    "SystemLogModel",
    "TweetVoteAssociationModel",
    "Database",
]
