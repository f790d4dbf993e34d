"""
Adapters package for VoteWatch.

Data source clients: the roll-call page scraper and the social-media API
client.
"""

from .base_adapter import BaseAdapter
from .psp_votes import PspVotesAdapter, parse_czech_date, map_vote_symbol
from .twitter_client import TwitterClient

__all__ = [
    "BaseAdapter",
    "PspVotesAdapter",
    "parse_czech_date",
    "map_vote_symbol",
    "TwitterClient",
]
