"""
Pydantic schemas for API request/response models
"""

from app.api.v1.schemas.catalog import ServerResponse, ServerStatsSummary
from app.api.v1.schemas.review import (
    ReviewListResponse,
    ReviewMutationResponse,
    ReviewResponse,
    ReviewStatsResponse,
    ReviewSubmitRequest,
    UserReviewResponse,
)
from app.api.v1.schemas.vote import (
    UserVoteResponse,
    VoteCountsResponse,
    VoteRequest,
    VoteResultResponse,
)

__all__ = [
    "ReviewListResponse",
    "ReviewMutationResponse",
    "ReviewResponse",
    "ReviewStatsResponse",
    "ReviewSubmitRequest",
    "ServerResponse",
    "ServerStatsSummary",
    "UserReviewResponse",
    "UserVoteResponse",
    "VoteCountsResponse",
    "VoteRequest",
    "VoteResultResponse",
]
