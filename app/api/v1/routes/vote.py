"""
Routes for server votes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.schemas.auth import WorkOSUserResponse
from app.api.v1.schemas.vote import (
    UserVoteResponse,
    VoteCountsResponse,
    VoteRequest,
    VoteResultResponse,
)
from app.core.database import get_db
from app.core.dependencies import get_current_user, get_optional_user
from app.core.exceptions import AuthenticationRequired, StorageError, ValidationError
from app.services.vote import VoteService, empty_vote_counts

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/votes",
    tags=["votes"],
)


@router.get(
    "",
    response_model=VoteCountsResponse,
    summary="Get vote counts",
    description="Get the cached vote tally of a server.",
    status_code=status.HTTP_200_OK,
    responses={400: {"description": "itemId is required"}},
)
async def get_votes(
    item_id: Optional[str] = Query(None, alias="itemId", description="ID of the server"),
    db: AsyncSession = Depends(get_db),
) -> VoteCountsResponse:
    """Get vote counts; zeros when the server has never been voted on."""
    if not item_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="itemId is required"
        )

    try:
        counts = await VoteService.get_counts(db, item_id)
    except StorageError as e:
        logger.error(f"Error fetching votes for item {item_id}: {e.message}", exc_info=True)
        await db.rollback()
        counts = empty_vote_counts()
    return VoteCountsResponse(**counts)


@router.post(
    "",
    response_model=VoteResultResponse,
    summary="Vote",
    description="Vote a server up or down, toggle a vote off, or remove it.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Vote recorded"},
        400: {"description": "Missing itemId/voteType or unknown voteType"},
        401: {"description": "Unauthorized - authentication required"},
        500: {"description": "Internal server error"},
    },
)
async def cast_vote(
    vote_data: VoteRequest,
    current_user: WorkOSUserResponse = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> VoteResultResponse:
    """
    Vote on a server.

    **Semantics:**
    - voting the same direction twice removes the vote
    - voting the other direction switches it
    - "remove" deletes the vote if there is one
    """
    try:
        counts, user_vote = await VoteService.cast_vote(
            db, vote_data.item_id, current_user.id, vote_data.vote_type
        )
        return VoteResultResponse(**counts, userVote=user_vote)
    except ValidationError as e:
        logger.warning(f"Vote rejected: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except AuthenticationRequired as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message) from e
    except StorageError as e:
        logger.error(
            f"Error submitting vote for item {vote_data.item_id} by user {current_user.id}: {e.message}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit vote",
        ) from e


@router.get(
    "/self",
    response_model=UserVoteResponse,
    summary="Get own vote",
    description="Get the caller's vote on a server; null when anonymous or not voted.",
    status_code=status.HTTP_200_OK,
)
async def get_own_vote(
    item_id: Optional[str] = Query(None, alias="itemId", description="ID of the server"),
    current_user: Optional[WorkOSUserResponse] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> UserVoteResponse:
    if current_user is None:
        return UserVoteResponse(userVote=None)
    if not item_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="itemId is required"
        )

    try:
        user_vote = await VoteService.get_user_vote(db, item_id, current_user.id)
    except StorageError as e:
        logger.error(f"Error fetching own vote for item {item_id}: {e.message}", exc_info=True)
        await db.rollback()
        user_vote = None
    return UserVoteResponse(userVote=user_vote)
