"""
API v1 router aggregation
Combines all v1 route handlers into a single router
Reference: https://fastapi.tiangolo.com/tutorial/bigger-applications/
"""
from fastapi import APIRouter

from app.api.v1.routes import catalog, health, review, vote
from app.core.config import settings


# All v1 routes are prefixed with /api/v1
api_router = APIRouter(prefix=settings.API_V1_PREFIX)

api_router.include_router(review.router)
api_router.include_router(vote.router)
api_router.include_router(catalog.router)
api_router.include_router(health.router)
