"""
Routes for browsing server listings.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.schemas.catalog import ServerResponse
from app.core.database import get_db
from app.core.exceptions import NotFound, StorageError, ValidationError
from app.services.catalog import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/servers",
    tags=["servers"],
)


@router.get(
    "",
    response_model=List[ServerResponse],
    summary="List servers",
    description="List servers with their vote tally and review summary, optionally filtered by category.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Servers retrieved successfully"},
        400: {"description": "Unknown sort option"},
    },
)
async def list_servers(
    category: Optional[str] = Query(None, description="Filter by category (e.g., 'database', 'search')"),
    sort: str = Query("score", description="Sort by 'score', 'rating' or 'name'"),
    skip: int = Query(0, ge=0, description="Number of servers to skip"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of servers to return"),
    db: AsyncSession = Depends(get_db),
) -> List[ServerResponse]:
    """
    List servers.

    **Sorting:**
    - score: net votes, highest first
    - rating: average rating, highest first
    - name: alphabetical
    """
    try:
        servers = await CatalogService.list_servers(
            db, category=category, sort=sort, skip=skip, limit=limit
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except StorageError as e:
        logger.error(f"Error listing servers: {e.message}", exc_info=True)
        await db.rollback()
        servers = []

    logger.info(f"Listed {len(servers)} servers (category={category}, sort={sort})")
    return [ServerResponse(**server) for server in servers]


@router.get(
    "/{server_id}",
    response_model=ServerResponse,
    summary="Get server",
    description="Get one server with its vote tally and review summary.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Server retrieved successfully"},
        404: {"description": "Server not found"},
        500: {"description": "Internal server error"},
    },
)
async def get_server(
    server_id: str,
    db: AsyncSession = Depends(get_db),
) -> ServerResponse:
    try:
        server = await CatalogService.get_server(db, server_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except StorageError as e:
        logger.error(f"Error fetching server {server_id}: {e.message}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load server",
        ) from e
    return ServerResponse(**server)
