"""
Vote service for server listings.

Applies a user's up/down/remove request to their vote on an item and then
recounts the item's vote_counts row from the votes table.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationRequired, StorageError, ValidationError
from app.models.vote import Vote, VoteCounts, VoteType
from app.services.aggregates import compare_and_swap, lock_vote_counts

logger = logging.getLogger(__name__)

VOTE_DIRECTIONS = ("up", "down", "remove")


class VoteAction(str, Enum):
    """What a vote request does to the stored vote row."""

    CREATE = "create"
    DELETE = "delete"
    SWITCH = "switch"
    NOOP = "noop"


def resolve_vote_transition(current: Optional[str], direction: str) -> VoteAction:
    """
    Decide how a vote request changes the user's stored vote.

    - no vote + up/down: create it
    - same direction again: toggle it off (delete)
    - other direction: switch the stored direction
    - remove: delete if present, otherwise nothing

    Args:
        current: Stored direction ("up"/"down") or None
        direction: Requested direction ("up", "down" or "remove")

    Returns:
        The VoteAction to apply
    """
    if direction == "remove":
        return VoteAction.DELETE if current else VoteAction.NOOP
    if current is None:
        return VoteAction.CREATE
    if current == direction:
        return VoteAction.DELETE
    return VoteAction.SWITCH


def empty_vote_counts() -> dict[str, int]:
    return {"upvotes": 0, "downvotes": 0, "score": 0}


class VoteService:
    """Service for managing server votes and their tally rows"""

    @staticmethod
    async def get_vote(db: AsyncSession, item_id: str, user_id: str) -> Optional[Vote]:
        try:
            result = await db.execute(
                select(Vote).where(Vote.item_id == item_id, Vote.user_id == user_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load vote: {e}") from e

    @staticmethod
    async def get_user_vote(
        db: AsyncSession, item_id: str, user_id: Optional[str]
    ) -> Optional[str]:
        """
        Get the direction of a user's vote on an item.

        Returns:
            "up", "down", or None when anonymous or not voted
        """
        if not user_id:
            return None
        vote = await VoteService.get_vote(db, item_id, user_id)
        return vote.vote_type if vote else None

    @staticmethod
    async def get_counts(db: AsyncSession, item_id: str) -> dict[str, int]:
        """
        Get the cached vote tally of an item.

        Returns:
            Dict with upvotes, downvotes and score; zeros when no tally exists
        """
        try:
            result = await db.execute(
                select(VoteCounts).where(VoteCounts.item_id == item_id)
            )
            counts = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load vote counts: {e}") from e

        if not counts:
            return empty_vote_counts()
        return {
            "upvotes": counts.upvotes,
            "downvotes": counts.downvotes,
            "score": counts.score,
        }

    @staticmethod
    async def count_votes(db: AsyncSession, item_id: str) -> dict[str, int]:
        """
        Count an item's votes straight from the votes table.

        Every call scans the item's votes, so the tally cannot drift from the
        raw rows no matter what happened to the cached row.
        """
        result = await db.execute(
            select(
                func.coalesce(func.sum(case((Vote.vote_type == VoteType.UP.value, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Vote.vote_type == VoteType.DOWN.value, 1), else_=0)), 0),
            ).where(Vote.item_id == item_id)
        )
        upvotes, downvotes = result.one()
        upvotes = int(upvotes or 0)
        downvotes = int(downvotes or 0)
        return {"upvotes": upvotes, "downvotes": downvotes, "score": upvotes - downvotes}

    @staticmethod
    async def cast_vote(
        db: AsyncSession,
        item_id: Optional[str],
        user_id: Optional[str],
        direction: Optional[str],
    ) -> tuple[dict[str, int], Optional[str]]:
        """
        Apply an up/down/remove request and recount the item's votes.

        Args:
            db: Database session
            item_id: ID of the listed server
            user_id: WorkOS user ID of the voter
            direction: "up", "down" or "remove"

        Returns:
            Tuple of (fresh tally dict, the user's resulting vote or None)

        Raises:
            AuthenticationRequired: If user_id is missing
            ValidationError: If item_id/direction is missing or direction is unknown
            StorageError: If the store fails
        """
        if not user_id:
            raise AuthenticationRequired()
        if not item_id or not direction:
            raise ValidationError("itemId and voteType are required")
        if direction not in VOTE_DIRECTIONS:
            raise ValidationError("voteType must be 'up', 'down', or 'remove'")

        try:
            tally = await lock_vote_counts(db, item_id)

            vote = await VoteService.get_vote(db, item_id, user_id)
            action = resolve_vote_transition(vote.vote_type if vote else None, direction)

            if action == VoteAction.CREATE:
                vote = Vote(item_id=item_id, user_id=user_id, vote_type=direction)
                db.add(vote)
            elif action == VoteAction.DELETE:
                await db.delete(vote)
                vote = None
            elif action == VoteAction.SWITCH:
                vote.vote_type = direction
                vote.updated_at = datetime.now(timezone.utc)
            await db.flush()

            counts = await VoteService.count_votes(db, item_id)
            await compare_and_swap(db, tally, counts)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to record {direction} vote for item {item_id} by user {user_id}: {type(e).__name__}: {e}",
                exc_info=True,
            )
            raise StorageError("Failed to submit vote") from e

        user_vote = vote.vote_type if vote else None
        logger.info(
            f"Vote {action.value} for item {item_id} by user {user_id}: "
            f"score {counts['score']} (user vote: {user_vote})"
        )
        return counts, user_vote

    @staticmethod
    async def rebuild_counts(db: AsyncSession, item_id: str) -> dict[str, Any]:
        """Recount an item's votes and overwrite its cached tally."""
        try:
            tally = await lock_vote_counts(db, item_id)
            counts = await VoteService.count_votes(db, item_id)
            await compare_and_swap(db, tally, counts)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to rebuild vote counts for {item_id}: {e}") from e

        logger.info(f"Rebuilt vote counts for item {item_id}: {counts}")
        return counts

    @staticmethod
    async def voted_item_ids(db: AsyncSession) -> list[str]:
        """IDs of every item that has a vote or a tally row."""
        try:
            voted = await db.execute(select(Vote.item_id).distinct())
            tallied = await db.execute(select(VoteCounts.item_id))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list voted items: {e}") from e
        return sorted(set(voted.scalars().all()) | set(tallied.scalars().all()))
