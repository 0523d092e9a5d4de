"""
Vote models for server listings.

A missing Vote row means "no vote"; there is no stored neutral state.
VoteCounts is recounted from the votes table on every mutation.

Reference: https://docs.sqlalchemy.org/en/20/orm/declarative_styles.html
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class VoteType(str, Enum):
    """Stored vote direction."""

    UP = "up"
    DOWN = "down"


class Vote(Base):
    """
    A user's up or down vote on a listed server.

    Attributes:
        id: Primary key
        item_id: ID (slug) of the voted server
        user_id: WorkOS user ID of the voter
        vote_type: "up" or "down"
        created_at: Timestamp of the first vote
        updated_at: Timestamp of the last direction change
    """

    __tablename__ = "votes"

    __table_args__ = (
        UniqueConstraint("item_id", "user_id", name="uq_votes_item_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    item_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    vote_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="Vote direction: 'up' or 'down'",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Vote(id={self.id}, item_id='{self.item_id}', user_id={self.user_id}, vote_type='{self.vote_type}')>"


class VoteCounts(Base):
    """Derived vote tally for one server listing (score = upvotes - downvotes)."""

    __tablename__ = "vote_counts"

    item_id: Mapped[str] = mapped_column(String(100), primary_key=True)

    upvotes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    downvotes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<VoteCounts(item_id='{self.item_id}', upvotes={self.upvotes}, downvotes={self.downvotes})>"
