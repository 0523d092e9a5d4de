"""
Per-item locking and versioned writes for the derived summary rows.

review_stats and vote_counts are read, recomputed and written back inside the
request transaction. Two concurrent requests for the same item must not both
read the old summary and then overwrite each other, so every mutation:

1. makes sure the summary row exists (INSERT ... ON CONFLICT DO NOTHING)
2. re-reads it with SELECT ... FOR UPDATE, serializing writers per item
3. writes it back with a compare-and-swap on its version column

Reference: https://docs.sqlalchemy.org/en/20/orm/queryguide/query.html#sqlalchemy.orm.Query.with_for_update
"""

import logging
from typing import Any, TypeVar

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageError
from app.models.review import ReviewStats
from app.models.vote import VoteCounts

logger = logging.getLogger(__name__)

AggregateRow = TypeVar("AggregateRow", ReviewStats, VoteCounts)

# Dialect name -> INSERT construct supporting ON CONFLICT
DIALECT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def _insert_if_missing(db: AsyncSession, model: type, item_id: str):
    """
    Build an INSERT that silently does nothing when the item already has a row.

    Both supported dialects spell the upsert the same way, but the construct
    lives in the dialect package.
    Reference: https://docs.sqlalchemy.org/en/20/dialects/postgresql.html#insert-on-conflict-upsert
    """
    dialect = db.bind.dialect.name
    insert = DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise StorageError(f"Unsupported database dialect for aggregate upsert: {dialect}")

    return (
        insert(model)
        .values(item_id=item_id)
        .on_conflict_do_nothing(index_elements=["item_id"])
    )


async def _select_aggregate(
    db: AsyncSession, model: type, item_id: str, for_update: bool = False
):
    query = select(model).where(model.item_id == item_id)
    if for_update:
        query = query.with_for_update()
    # populate_existing refreshes a row already in the identity map
    query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def lock_aggregate(db: AsyncSession, model: type[AggregateRow], item_id: str) -> AggregateRow:
    """
    Return the summary row for item_id, locked until the transaction ends.

    The row is created with all-zero counters on first use. A concurrent
    creator is harmless: the conflicting insert is ignored and both requests
    then queue on the same row lock.

    Args:
        db: Database session
        model: ReviewStats or VoteCounts
        item_id: ID of the listed server

    Returns:
        The locked summary row
    """
    await db.execute(_insert_if_missing(db, model, item_id))
    row = await _select_aggregate(db, model, item_id, for_update=True)
    if row is None:
        # Only possible if the row was deleted between insert and select
        raise StorageError(f"{model.__tablename__} row for {item_id} disappeared")
    return row


async def lock_review_stats(db: AsyncSession, item_id: str) -> ReviewStats:
    """Lock (creating if needed) the review_stats row of an item."""
    return await lock_aggregate(db, ReviewStats, item_id)


async def lock_vote_counts(db: AsyncSession, item_id: str) -> VoteCounts:
    """Lock (creating if needed) the vote_counts row of an item."""
    return await lock_aggregate(db, VoteCounts, item_id)


async def compare_and_swap(
    db: AsyncSession,
    row: AggregateRow,
    values: dict[str, Any],
) -> AggregateRow:
    """
    Overwrite every derived column of a summary row if nobody else did first.

    The UPDATE only matches while the row still carries the version we read.
    A miss means a concurrent writer slipped in (possible only on backends
    that ignore FOR UPDATE); the request transaction is then aborted rather
    than losing that writer's update.

    Args:
        db: Database session
        row: Summary row previously returned by lock_aggregate
        values: New values for the derived columns

    Returns:
        The refreshed summary row

    Raises:
        StorageError: If the version no longer matches
    """
    model = type(row)
    expected_version = row.version or 0
    result = await db.execute(
        update(model)
        .where(model.item_id == row.item_id, model.version == expected_version)
        .values(**values, version=expected_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.error(
            f"Concurrent modification of {model.__tablename__} for item {row.item_id} "
            f"(expected version {expected_version})"
        )
        raise StorageError("Concurrent update detected, please retry")

    refreshed = await _select_aggregate(db, model, row.item_id)
    return refreshed
