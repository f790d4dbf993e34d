"""
VoteWatch data pipeline.

Collects roll-call votes from the Chamber of Deputies website and posts
from politicians' social-media accounts, reconciles them into a relational
store and serves aggregate statistics from a cache-backed facade.
"""

__version__ = "1.0.0"
