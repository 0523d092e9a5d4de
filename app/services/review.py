"""
Review service for server listings.

Keeps the review_stats summary row of an item consistent with its reviews
while reviews are submitted, rewritten and deleted.

Reference: https://docs.sqlalchemy.org/en/20/orm/queryguide/
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationRequired,
    NotFound,
    StorageError,
    ValidationError,
)
from app.models.review import (
    CONTENT_MAX_LENGTH,
    RATING_MAX,
    RATING_MIN,
    TITLE_MAX_LENGTH,
    Review,
    ReviewStats,
)
from app.services.aggregates import compare_and_swap, lock_review_stats

logger = logging.getLogger(__name__)


def empty_review_stats(item_id: str) -> dict[str, Any]:
    """All-zero summary returned for items nobody has reviewed yet."""
    return {
        "item_id": item_id,
        "review_count": 0,
        "average_rating": 0.0,
        "rating_1_count": 0,
        "rating_2_count": 0,
        "rating_3_count": 0,
        "rating_4_count": 0,
        "rating_5_count": 0,
    }


def _is_valid_rating(rating: Optional[int]) -> bool:
    return rating is not None and RATING_MIN <= rating <= RATING_MAX


def apply_rating_change(
    stats: Optional[ReviewStats],
    new_rating: Optional[int],
    old_rating: Optional[int],
) -> dict[str, Any]:
    """
    Compute the next review summary from the current one.

    - old_rating set: its bucket loses one (never below 0); when new_rating
      is None this is a deletion and the count loses one as well
    - new_rating set: its bucket gains one; when old_rating is None this is
      a new review and the count gains one as well
    - an overwrite (both set) moves one review between buckets and keeps the
      count

    Args:
        stats: Current summary row, or None for an item without one
        new_rating: Rating being recorded, None when deleting
        old_rating: Rating being replaced or deleted, None for a new review

    Returns:
        Dict with review_count, average_rating and rating_1_count..rating_5_count
    """
    review_count = stats.review_count if stats else 0
    review_count = review_count or 0
    rating_counts = stats.rating_counts if stats else [0, 0, 0, 0, 0]

    if _is_valid_rating(old_rating):
        rating_counts[old_rating - 1] = max(0, rating_counts[old_rating - 1] - 1)
        if new_rating is None:
            review_count = max(0, review_count - 1)

    if _is_valid_rating(new_rating):
        rating_counts[new_rating - 1] += 1
        if old_rating is None:
            review_count += 1

    total = sum(count * (index + 1) for index, count in enumerate(rating_counts))
    average_rating = total / review_count if review_count > 0 else 0.0

    return {
        "review_count": review_count,
        "average_rating": average_rating,
        "rating_1_count": rating_counts[0],
        "rating_2_count": rating_counts[1],
        "rating_3_count": rating_counts[2],
        "rating_4_count": rating_counts[3],
        "rating_5_count": rating_counts[4],
    }


def parse_pagination(page: Any, limit: Any) -> tuple[int, int]:
    """
    Turn raw page/limit query values into usable numbers.

    Missing, non-numeric or non-positive values fall back to page 1 and the
    configured default page size; limit is capped at REVIEWS_MAX_PAGE_SIZE.
    """
    def _to_int(value: Any, default: int) -> int:
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return default
        return parsed if parsed >= 1 else default

    parsed_page = _to_int(page, 1)
    parsed_limit = _to_int(limit, settings.REVIEWS_DEFAULT_PAGE_SIZE)
    return parsed_page, min(parsed_limit, settings.REVIEWS_MAX_PAGE_SIZE)


def validate_review_input(
    item_id: Optional[str],
    rating: Any,
    title: Optional[str] = None,
    content: Optional[str] = None,
) -> None:
    """
    Reject a review submission before anything touches the database.

    Raises:
        ValidationError: If item_id or rating is missing, the rating is not an
            integer between 1 and 5, or title/content exceed their limits
    """
    if not item_id or rating is None:
        raise ValidationError("itemId and rating are required")

    # bool is an int subclass; True must not count as a 1-star rating
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("rating must be an integer between 1 and 5")
    if not _is_valid_rating(rating):
        raise ValidationError("rating must be an integer between 1 and 5")

    if title is not None and len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"title must be at most {TITLE_MAX_LENGTH} characters")
    if content is not None and len(content) > CONTENT_MAX_LENGTH:
        raise ValidationError(f"content must be at most {CONTENT_MAX_LENGTH} characters")


class ReviewService:
    """Service for managing server reviews and their summary rows"""

    @staticmethod
    async def get_user_review(
        db: AsyncSession, item_id: str, user_id: str
    ) -> Optional[Review]:
        """
        Get the review a user wrote for an item.

        Args:
            db: Database session
            item_id: ID of the listed server
            user_id: WorkOS user ID of the author

        Returns:
            Review if found, None otherwise
        """
        try:
            result = await db.execute(
                select(Review).where(Review.item_id == item_id, Review.user_id == user_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load review: {e}") from e

    @staticmethod
    async def get_stats(db: AsyncSession, item_id: str) -> dict[str, Any]:
        """
        Get the review summary of an item.

        Returns:
            Summary as a dict; an all-zero record when the item has none yet
        """
        try:
            result = await db.execute(
                select(ReviewStats).where(ReviewStats.item_id == item_id)
            )
            stats = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load review stats: {e}") from e

        return _stats_to_dict(stats) if stats else empty_review_stats(item_id)

    @staticmethod
    async def list_reviews(
        db: AsyncSession,
        item_id: str,
        page: int = 1,
        limit: int = 10,
    ) -> dict[str, Any]:
        """
        Get one page of an item's reviews, newest first, with its summary.

        Args:
            db: Database session
            item_id: ID of the listed server
            page: 1-based page number
            limit: Page size

        Returns:
            Dict with reviews, stats and pagination (page, limit, total, totalPages)

        Raises:
            ValidationError: If item_id is missing
            StorageError: If the store fails
        """
        if not item_id:
            raise ValidationError("itemId is required")

        offset = (page - 1) * limit
        try:
            result = await db.execute(
                select(Review)
                .where(Review.item_id == item_id)
                .order_by(Review.created_at.desc(), Review.id.desc())
                .offset(offset)
                .limit(limit)
            )
            reviews = list(result.scalars().all())

            total_result = await db.execute(
                select(func.count(Review.id)).where(Review.item_id == item_id)
            )
            total = total_result.scalar() or 0
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list reviews: {e}") from e

        stats = await ReviewService.get_stats(db, item_id)

        return {
            "reviews": reviews,
            "stats": stats,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if limit else 0,
            },
        }

    @staticmethod
    async def submit_review(
        db: AsyncSession,
        item_id: Optional[str],
        user_id: Optional[str],
        rating: Any,
        title: Optional[str] = None,
        content: Optional[str] = None,
        user_name: Optional[str] = None,
        user_image_url: Optional[str] = None,
    ) -> tuple[dict[str, Any], bool]:
        """
        Create the user's review of an item, or overwrite it in place.

        A rewrite keeps the review's id and created_at and refreshes rating,
        title, content and the author name/avatar snapshot.

        Args:
            db: Database session
            item_id: ID of the listed server
            user_id: WorkOS user ID of the author
            rating: Rating value (1-5)
            title: Optional headline; empty strings are stored as null
            content: Optional body; empty strings are stored as null
            user_name: Author display name to snapshot
            user_image_url: Author avatar URL to snapshot

        Returns:
            Tuple of (updated summary dict, True if a new review was created)

        Raises:
            AuthenticationRequired: If user_id is missing
            ValidationError: If the input is invalid
            StorageError: If the store fails
        """
        if not user_id:
            raise AuthenticationRequired()
        validate_review_input(item_id, rating, title, content)

        try:
            # Lock the item's summary first so the review read below cannot
            # race another writer of the same item
            stats = await lock_review_stats(db, item_id)

            review = await ReviewService.get_user_review(db, item_id, user_id)
            old_rating = review.rating if review else None

            if review:
                review.rating = rating
                review.title = title or None
                review.content = content or None
                review.user_name = user_name
                review.user_image_url = user_image_url
                review.updated_at = datetime.now(timezone.utc)
            else:
                review = Review(
                    item_id=item_id,
                    user_id=user_id,
                    user_name=user_name,
                    user_image_url=user_image_url,
                    rating=rating,
                    title=title or None,
                    content=content or None,
                    helpful_count=0,
                )
                db.add(review)
            await db.flush()

            values = apply_rating_change(stats, rating, old_rating)
            stats = await compare_and_swap(db, stats, values)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to submit review for item {item_id} by user {user_id}: {type(e).__name__}: {e}",
                exc_info=True,
            )
            raise StorageError("Failed to submit review") from e

        created = old_rating is None
        logger.info(
            f"{'Created' if created else 'Updated'} review for item {item_id} by user {user_id} "
            f"(rating {old_rating} -> {rating})"
        )
        return _stats_to_dict(stats), created

    @staticmethod
    async def delete_review(
        db: AsyncSession, item_id: Optional[str], user_id: Optional[str]
    ) -> dict[str, Any]:
        """
        Delete the user's review of an item.

        Args:
            db: Database session
            item_id: ID of the listed server
            user_id: WorkOS user ID of the author

        Returns:
            Updated summary dict

        Raises:
            AuthenticationRequired: If user_id is missing
            ValidationError: If item_id is missing
            NotFound: If the user has no review for the item
            StorageError: If the store fails
        """
        if not user_id:
            raise AuthenticationRequired()
        if not item_id:
            raise ValidationError("itemId is required")

        try:
            stats = await lock_review_stats(db, item_id)

            review = await ReviewService.get_user_review(db, item_id, user_id)
            if not review:
                logger.warning(f"User {user_id} has no review for item {item_id} to delete")
                raise NotFound("Review not found")

            old_rating = review.rating
            await db.delete(review)
            await db.flush()

            values = apply_rating_change(stats, None, old_rating)
            stats = await compare_and_swap(db, stats, values)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to delete review for item {item_id} by user {user_id}: {type(e).__name__}: {e}",
                exc_info=True,
            )
            raise StorageError("Failed to delete review") from e

        logger.info(f"Deleted review for item {item_id} by user {user_id}")
        return _stats_to_dict(stats)

    @staticmethod
    async def rebuild_stats(db: AsyncSession, item_id: str) -> dict[str, Any]:
        """
        Re-derive an item's review summary from its reviews.

        Used to repair a summary row that drifted from the reviews table.

        Returns:
            The rebuilt summary dict
        """
        try:
            stats = await lock_review_stats(db, item_id)
            result = await db.execute(
                select(
                    *[
                        func.coalesce(
                            func.sum(case((Review.rating == value, 1), else_=0)), 0
                        )
                        for value in range(RATING_MIN, RATING_MAX + 1)
                    ]
                ).where(Review.item_id == item_id)
            )
            rating_counts = [int(count or 0) for count in result.one()]
            review_count = sum(rating_counts)
            total = sum(count * (index + 1) for index, count in enumerate(rating_counts))

            stats = await compare_and_swap(
                db,
                stats,
                {
                    "review_count": review_count,
                    "average_rating": total / review_count if review_count else 0.0,
                    "rating_1_count": rating_counts[0],
                    "rating_2_count": rating_counts[1],
                    "rating_3_count": rating_counts[2],
                    "rating_4_count": rating_counts[3],
                    "rating_5_count": rating_counts[4],
                },
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to rebuild review stats for {item_id}: {e}") from e

        logger.info(f"Rebuilt review stats for item {item_id}: {review_count} reviews")
        return _stats_to_dict(stats)

    @staticmethod
    async def reviewed_item_ids(db: AsyncSession) -> list[str]:
        """IDs of every item that has a review or a review summary row."""
        try:
            reviewed = await db.execute(select(Review.item_id).distinct())
            summarized = await db.execute(select(ReviewStats.item_id))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list reviewed items: {e}") from e
        return sorted(set(reviewed.scalars().all()) | set(summarized.scalars().all()))


def _stats_to_dict(stats: ReviewStats) -> dict[str, Any]:
    return {
        "item_id": stats.item_id,
        "review_count": stats.review_count,
        "average_rating": float(stats.average_rating or 0.0),
        "rating_1_count": stats.rating_1_count,
        "rating_2_count": stats.rating_2_count,
        "rating_3_count": stats.rating_3_count,
        "rating_4_count": stats.rating_4_count,
        "rating_5_count": stats.rating_5_count,
    }
