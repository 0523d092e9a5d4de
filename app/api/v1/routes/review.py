"""
Routes for server reviews.

Reads never fail on storage errors: they log and answer with an empty page
and zero stats. Writes answer 500 with a generic message instead.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.schemas.auth import WorkOSUserResponse
from app.api.v1.schemas.review import (
    ReviewListResponse,
    ReviewMutationResponse,
    ReviewResponse,
    ReviewSubmitRequest,
    UserReviewResponse,
)
from app.core.database import get_db
from app.core.dependencies import get_current_user, get_optional_user
from app.core.exceptions import (
    AuthenticationRequired,
    NotFound,
    StorageError,
    ValidationError,
)
from app.services.review import ReviewService, empty_review_stats, parse_pagination

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reviews",
    tags=["reviews"],
)


@router.get(
    "",
    response_model=ReviewListResponse,
    summary="Get reviews",
    description="Get one page of a server's reviews (newest first) with its review summary.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Reviews retrieved successfully"},
        400: {"description": "itemId is required"},
    },
)
async def get_reviews(
    item_id: Optional[str] = Query(None, alias="itemId", description="ID of the server"),
    page: Optional[str] = Query(None, description="1-based page number (default 1)"),
    limit: Optional[str] = Query(None, description="Page size (default 10, capped)"),
    db: AsyncSession = Depends(get_db),
) -> ReviewListResponse:
    """
    Get reviews for a server.

    **Pagination:**
    - page and limit fall back to 1 and 10 when missing or not numbers
    - limit is capped at REVIEWS_MAX_PAGE_SIZE
    """
    if not item_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="itemId is required"
        )

    page_number, page_size = parse_pagination(page, limit)
    try:
        result = await ReviewService.list_reviews(db, item_id, page_number, page_size)
        logger.info(f"Retrieved {len(result['reviews'])} reviews for item {item_id}")
        return ReviewListResponse(
            reviews=[ReviewResponse.model_validate(review) for review in result["reviews"]],
            stats=result["stats"],
            pagination=result["pagination"],
        )
    except StorageError as e:
        logger.error(f"Error fetching reviews for item {item_id}: {e.message}", exc_info=True)
        await db.rollback()
        return ReviewListResponse(
            reviews=[],
            stats=empty_review_stats(item_id),
            pagination={"page": page_number, "limit": page_size, "total": 0, "totalPages": 0},
        )


@router.post(
    "",
    response_model=ReviewMutationResponse,
    summary="Submit review",
    description="Create the caller's review of a server, or overwrite their existing one.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Review submitted or updated"},
        400: {"description": "Missing itemId/rating or invalid rating"},
        401: {"description": "Unauthorized - authentication required"},
        500: {"description": "Internal server error"},
    },
)
async def submit_review(
    review_data: ReviewSubmitRequest,
    current_user: WorkOSUserResponse = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ReviewMutationResponse:
    """
    Submit a review.

    **Authorization:**
    - Requires authentication
    - One review per user and server; submitting again overwrites it

    The author's current name and avatar are stored with the review.
    """
    try:
        stats, created = await ReviewService.submit_review(
            db,
            item_id=review_data.item_id,
            user_id=current_user.id,
            rating=review_data.rating,
            title=review_data.title,
            content=review_data.content,
            user_name=current_user.display_name,
            user_image_url=current_user.avatar_url,
        )
        return ReviewMutationResponse(
            success=True,
            message="Review submitted" if created else "Review updated",
            stats=stats,
        )
    except ValidationError as e:
        logger.warning(f"Review submission rejected: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except AuthenticationRequired as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message) from e
    except StorageError as e:
        logger.error(
            f"Error submitting review for item {review_data.item_id} by user {current_user.id}: {e.message}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit review",
        ) from e


@router.delete(
    "",
    response_model=ReviewMutationResponse,
    summary="Delete review",
    description="Delete the caller's review of a server.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Review deleted"},
        400: {"description": "itemId is required"},
        401: {"description": "Unauthorized - authentication required"},
        404: {"description": "Review not found"},
        500: {"description": "Internal server error"},
    },
)
async def delete_review(
    item_id: Optional[str] = Query(None, alias="itemId", description="ID of the server"),
    current_user: WorkOSUserResponse = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ReviewMutationResponse:
    """
    Delete a review.

    **Authorization:**
    - Users can only delete their own review
    """
    try:
        stats = await ReviewService.delete_review(db, item_id, current_user.id)
        return ReviewMutationResponse(success=True, message="Review deleted", stats=stats)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except AuthenticationRequired as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message) from e
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except StorageError as e:
        logger.error(
            f"Error deleting review for item {item_id} by user {current_user.id}: {e.message}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete review",
        ) from e


@router.get(
    "/self",
    response_model=UserReviewResponse,
    summary="Get own review",
    description="Get the caller's review of a server; null when anonymous or not reviewed.",
    status_code=status.HTTP_200_OK,
)
async def get_own_review(
    item_id: Optional[str] = Query(None, alias="itemId", description="ID of the server"),
    current_user: Optional[WorkOSUserResponse] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> UserReviewResponse:
    """
    Get the caller's own review.

    Anonymous callers get {"review": null}.
    """
    if current_user is None:
        return UserReviewResponse(review=None)
    if not item_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="itemId is required"
        )

    try:
        review = await ReviewService.get_user_review(db, item_id, current_user.id)
        return UserReviewResponse(
            review=ReviewResponse.model_validate(review) if review else None
        )
    except StorageError as e:
        logger.error(f"Error fetching own review for item {item_id}: {e.message}", exc_info=True)
        await db.rollback()
        return UserReviewResponse(review=None)
