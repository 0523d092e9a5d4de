#!/usr/bin/env python3
"""
Rebuild review summaries and vote tallies from the raw rows.

review_stats and vote_counts are derived data. This script re-derives them
for one item, or for every item that has reviews, votes or a derived row,
and reports the items whose stored values had drifted.

Usage:
    # Rebuild every item
    python scripts/rebuild_aggregates.py

    # Rebuild a single item
    python scripts/rebuild_aggregates.py --item filesystem-server
"""

import argparse
import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import async_session_maker, engine
from app.services.review import ReviewService
from app.services.vote import VoteService

logger = logging.getLogger(__name__)


async def rebuild_item(db: AsyncSession, item_id: str) -> bool:
    """
    Rebuild both aggregates of one item.

    Returns:
        True if either stored aggregate differed from the recomputed one
    """
    stored_stats = await ReviewService.get_stats(db, item_id)
    stored_counts = await VoteService.get_counts(db, item_id)

    stats = await ReviewService.rebuild_stats(db, item_id)
    counts = await VoteService.rebuild_counts(db, item_id)

    drifted = stats != stored_stats or counts != stored_counts
    if drifted:
        logger.warning(
            f"Item {item_id} drifted: stats {stored_stats} -> {stats}, "
            f"votes {stored_counts} -> {counts}"
        )
    return drifted


async def rebuild_all(item_id: Optional[str] = None) -> tuple[int, int]:
    """
    Rebuild one item or every known item, committing per item.

    Returns:
        (items rebuilt, items that had drifted)
    """
    async with async_session_maker() as db:
        if item_id:
            item_ids = [item_id]
        else:
            item_ids = sorted(
                set(await ReviewService.reviewed_item_ids(db))
                | set(await VoteService.voted_item_ids(db))
            )

        drifted = 0
        for current in item_ids:
            if await rebuild_item(db, current):
                drifted += 1
            await db.commit()

    return len(item_ids), drifted


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Rebuild review_stats and vote_counts from reviews and votes"
    )
    parser.add_argument(
        "--item",
        default=None,
        help="Only rebuild this item ID (default: every item)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    try:
        rebuilt, drifted = await rebuild_all(args.item)
    finally:
        await engine.dispose()

    print(f"✓ Rebuilt {rebuilt} items ({drifted} had drifted)")


if __name__ == "__main__":
    asyncio.run(main())
