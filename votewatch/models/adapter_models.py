"""
Adapter data transfer objects.

Plain data transfer objects handed from adapters to the reconciler.

Responsibility: Data transfer objects for adapter operations
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Union


# Open JSON payload stored in JSON columns (result summaries, metrics, ...)
JSONPrimitive = Union[str, int, float, bool, None]
JSONValue = Union[JSONPrimitive, Dict[str, Any], List[Any]]


class VoteValue(str, Enum):
    """Normalized vote value stored in ``votes.vote``"""
    YES = "yes"
    NO = "no"
    ABSTAIN = "abstain"
    ABSENT = "absent"
    NOT_VOTING = "not_voting"
    UNKNOWN = "unknown"


# Data transfer objects for specific entity types


@dataclass
class ScrapedVote:
    """One politician's vote as printed on a roll-call page."""
    politician_name: str
    party_name: Optional[str]
    vote_symbol: str
    vote: VoteValue


@dataclass
class ScrapedSession:
    """One roll-call page: session header plus all individual votes."""
    external_id: str
    title: str
    date: Optional[datetime]
    source_url: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    votes: List[ScrapedVote] = field(default_factory=list)


@dataclass
class FetchedTweet:
    """A post returned by the social-media API."""
    external_id: str
    text: str
    created_at: Optional[datetime]
    url: str
    metrics: Optional[Dict[str, Any]] = None
