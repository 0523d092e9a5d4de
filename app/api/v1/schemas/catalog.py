"""
Schemas for server listings
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from app.api.v1.schemas.vote import VoteCountsResponse


class ServerStatsSummary(BaseModel):
    review_count: int = Field(0, ge=0)
    average_rating: float = Field(0.0, ge=0)


class ServerResponse(BaseModel):
    """A listed server with its vote tally and review summary."""

    id: str = Field(..., description="Server ID (slug)")
    name: str
    description: Optional[str] = None
    author: str
    github_url: Optional[str] = None
    category: str
    tags: List[str] = Field(default_factory=list)
    votes: VoteCountsResponse
    stats: ServerStatsSummary
