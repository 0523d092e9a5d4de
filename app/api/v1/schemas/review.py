"""
Schemas for server reviews.

Reference: https://fastapi.tiangolo.com/tutorial/body/
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class ReviewSubmitRequest(BaseModel):
    """
    Body of POST /reviews.

    item_id and rating are optional here so that their absence is reported
    as a 400 by the service instead of a schema error.
    """

    item_id: Optional[str] = Field(None, alias="itemId", description="ID of the reviewed server")
    rating: Optional[StrictInt] = Field(None, description="Rating value (1-5 stars)")
    title: Optional[str] = Field(None, description="Optional headline (max 100 characters)")
    content: Optional[str] = Field(None, description="Optional review text (max 1000 characters)")

    model_config = ConfigDict(populate_by_name=True)


class ReviewStatsResponse(BaseModel):
    """Review summary of one server."""

    item_id: str = Field(..., description="ID of the server")
    review_count: int = Field(0, ge=0)
    average_rating: float = Field(0.0, ge=0)
    rating_1_count: int = Field(0, ge=0)
    rating_2_count: int = Field(0, ge=0)
    rating_3_count: int = Field(0, ge=0)
    rating_4_count: int = Field(0, ge=0)
    rating_5_count: int = Field(0, ge=0)

    model_config = ConfigDict(from_attributes=True)


class ReviewResponse(BaseModel):
    """A single review as shown to readers."""

    id: int = Field(..., description="Review ID")
    item_id: str = Field(..., description="ID of the reviewed server")
    user_id: str = Field(..., description="WorkOS user ID of the author")
    user_name: Optional[str] = Field(None, description="Author name when the review was written")
    user_image_url: Optional[str] = Field(None, description="Author avatar when the review was written")
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = None
    content: Optional[str] = None
    helpful_count: int = Field(0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(..., alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)


class ReviewListResponse(BaseModel):
    """Body of GET /reviews."""

    reviews: List[ReviewResponse] = Field(default_factory=list)
    stats: ReviewStatsResponse
    pagination: PaginationResponse


class ReviewMutationResponse(BaseModel):
    """Body of POST and DELETE /reviews."""

    success: bool = True
    message: str
    stats: ReviewStatsResponse


class UserReviewResponse(BaseModel):
    """Body of GET /reviews/self."""

    review: Optional[ReviewResponse] = None
