"""
Schemas for server votes.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class VoteRequest(BaseModel):
    """
    Body of POST /votes.

    voteType is validated by the service so unknown values answer 400.
    """

    item_id: Optional[str] = Field(None, alias="itemId", description="ID of the voted server")
    vote_type: Optional[str] = Field(
        None, alias="voteType", description="'up', 'down', or 'remove'"
    )

    model_config = ConfigDict(populate_by_name=True)


class VoteCountsResponse(BaseModel):
    """Vote tally of one server."""

    upvotes: int = Field(0, ge=0)
    downvotes: int = Field(0, ge=0)
    score: int = 0


class VoteResultResponse(VoteCountsResponse):
    """Body of POST /votes: the fresh tally plus the caller's own vote."""

    user_vote: Optional[Literal["up", "down"]] = Field(None, alias="userVote")

    model_config = ConfigDict(populate_by_name=True)


class UserVoteResponse(BaseModel):
    """Body of GET /votes/self."""

    user_vote: Optional[Literal["up", "down"]] = Field(None, alias="userVote")

    model_config = ConfigDict(populate_by_name=True)
