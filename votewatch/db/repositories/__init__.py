"""Repository layer for VoteWatch persistence."""

from .party_repository import PartyRepository
from .politician_repository import PoliticianRepository
from .voting_session_repository import VotingSessionRepository
from .vote_repository import VoteRepository
from .tweet_repository import TweetRepository
from .system_log_repository import SystemLogRepository

__all__ = [
    "PartyRepository",
    "PoliticianRepository",
    "VotingSessionRepository",
    "VoteRepository",
    "TweetRepository",
    "SystemLogRepository",
]
