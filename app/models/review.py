"""
Review models for server listings.

- Review: one row per (item, author); rewriting a review overwrites it in place
- ReviewStats: derived per-item summary (count, average, 5-bucket histogram)

Author name and avatar are snapshotted when the review is written. Profile
changes made later in WorkOS do not propagate to reviews already posted.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

RATING_MIN = 1
RATING_MAX = 5
TITLE_MAX_LENGTH = 100
CONTENT_MAX_LENGTH = 1000


class Review(Base):
    """
    A user's review of a listed server.

    Attributes:
        id: Primary key
        item_id: ID (slug) of the reviewed server
        user_id: WorkOS user ID of the author
        user_name: Author display name captured at write time
        user_image_url: Author avatar URL captured at write time
        rating: Rating value (1-5)
        title: Optional headline
        content: Optional review body
        helpful_count: Reserved counter, always 0
        created_at: Timestamp when review was first submitted
        updated_at: Timestamp when review was last rewritten
    """

    __tablename__ = "reviews"

    __table_args__ = (
        UniqueConstraint("item_id", "user_id", name="uq_reviews_item_user"),
        Index("ix_reviews_item_created", "item_id", "created_at"),
        Index("ix_reviews_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    item_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="ID of the reviewed server listing",
    )

    user_id: Mapped[str] = mapped_column(
        String,
        nullable=False,
        comment="WorkOS user ID of the author",
    )

    user_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Author display name snapshotted at write time",
    )

    user_image_url: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True,
        comment="Author avatar URL snapshotted at write time",
    )

    rating: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Rating value (1-5 stars)",
    )

    title: Mapped[Optional[str]] = mapped_column(
        String(TITLE_MAX_LENGTH),
        nullable=True,
    )

    content: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    helpful_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
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
        """String representation of review"""
        return (
            f"<Review(id={self.id}, item_id='{self.item_id}', "
            f"user_id={self.user_id}, rating={self.rating})>"
        )


class ReviewStats(Base):
    """
    Derived review summary for one server listing.

    Always re-derivable from the reviews table. review_count equals the sum
    of the five rating buckets, and average_rating is their weighted mean
    (0 when there are no reviews). version increases on every write and
    guards the conditional update.
    """

    __tablename__ = "review_stats"

    item_id: Mapped[str] = mapped_column(String(100), primary_key=True)

    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    rating_1_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating_2_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating_3_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating_4_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating_5_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def rating_counts(self) -> list[int]:
        """Bucket counts ordered from 1 star to 5 stars"""
        return [
            self.rating_1_count or 0,
            self.rating_2_count or 0,
            self.rating_3_count or 0,
            self.rating_4_count or 0,
            self.rating_5_count or 0,
        ]

    def __repr__(self) -> str:
        return (
            f"<ReviewStats(item_id='{self.item_id}', count={self.review_count}, "
            f"average={self.average_rating})>"
        )
