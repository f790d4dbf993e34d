"""
SQLAlchemy database models for VoteWatch.

ORM models for parties, politicians, roll-call voting sessions, individual
votes, social-media posts and the append-only system log.

Responsibility: Define database schema and ORM mappings
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
import sqlalchemy as sa
from sqlalchemy import (
    String, Integer, DateTime, Boolean, Text, JSON, Float,
    ForeignKey, Index, UniqueConstraint, PrimaryKeyConstraint
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


class PartyModel(Base):
    """Database model for political parties"""
    
    __tablename__ = "parties"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    short_name: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    politicians: Mapped[List["PoliticianModel"]] = relationship(back_populates="party")
    
    __table_args__ = (
        UniqueConstraint('name', name='uq_party_name'),
    )
    
    def __repr__(self) -> str:
        return f"<PartyModel(id={self.id}, name={self.name})>"


class PoliticianModel(Base):
    """
    Database model for politicians.
    
    A politician is created the first time their name appears in a
    roll-call and is matched case-insensitively on later encounters.
    ``twitter_handle`` holds a bare username (no ``@``, no URL).
    """
    
    __tablename__ = "politicians"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    party_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("parties.id"),
        nullable=True,
        index=True
    )
    twitter_handle: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    official_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    biography: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_twitter_sync: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    party: Mapped[Optional[PartyModel]] = relationship(back_populates="politicians")
    
    __table_args__ = (
        Index('idx_politician_name_lower', sa.text('lower(name)')),
        Index('idx_politician_twitter_handle', 'twitter_handle'),
    )
    
    def __repr__(self) -> str:
        return f"<PoliticianModel(id={self.id}, name={self.name})>"


class VotingSessionModel(Base):
    """
    Database model for a single roll-call (one ``hlasy.sqw?g=`` page).
    
    ``vote_count`` mirrors the number of vote rows referencing the session
    and is only ever incremented, in the same transaction as the insert.
    """
    
    __tablename__ = "voting_sessions"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    result_summary: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    source_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    __table_args__ = (
        UniqueConstraint('external_id', name='uq_voting_session_external_id'),
    )
    
    def __repr__(self) -> str:
        return (
            f"<VotingSessionModel(id={self.id}, "
            f"external_id={self.external_id}, "
            f"vote_count={self.vote_count})>"
        )


class VoteModel(Base):
    """Database model for one politician's vote in one voting session"""
    
    __tablename__ = "votes"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("voting_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    politician_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("politicians.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    vote: Mapped[str] = mapped_column(String(20), nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    vote_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    __table_args__ = (
        UniqueConstraint('politician_id', 'session_id', name='uq_vote_politician_session'),
    )
    
    def __repr__(self) -> str:
        return (
            f"<VoteModel(id={self.id}, "
            f"session_id={self.session_id}, "
            f"politician_id={self.politician_id}, "
            f"vote={self.vote})>"
        )


class TweetModel(Base):
    """
    Database model for social-media posts.
    
    Posts are unique on their external id; re-fetching never updates an
    existing row.
    """
    
    __tablename__ = "tweets"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)
    politician_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("politicians.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    posted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    media_urls: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    metrics: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    related_session_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("voting_sessions.id", ondelete="SET NULL"),
        nullable=True
    )
    sentiment_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    __table_args__ = (
        UniqueConstraint('external_id', name='uq_tweet_external_id'),
    )
    
    def __repr__(self) -> str:
        return f"<TweetModel(id={self.id}, external_id={self.external_id})>"


class SystemLogModel(Base):
    """
    Append-only audit log of batch operations (scrapes, handle fixes).
    """
    
    __tablename__ = "system_logs"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        index=True
    )
    
    __table_args__ = (
        Index('idx_system_log_type_created', 'type', 'created_at'),
    )
    
    def __repr__(self) -> str:
        return (
            f"<SystemLogModel(id={self.id}, "
            f"type={self.type}, "
            f"status={self.status})>"
        )


class TweetVoteAssociationModel(Base):
    """Link between a post and a vote it comments on"""
    
    __tablename__ = "tweet_vote_associations"
    
    tweet_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tweets.id", ondelete="CASCADE"),
        nullable=False
    )
    vote_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("votes.id", ondelete="CASCADE"),
        nullable=False
    )
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    association_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    
    __table_args__ = (
        PrimaryKeyConstraint('tweet_id', 'vote_id', name='pk_tweet_vote_association'),
    )
    
    def __repr__(self) -> str:
        return f"<TweetVoteAssociationModel(tweet_id={self.tweet_id}, vote_id={self.vote_id})>"
