"""create_review_and_vote_tables

Revision ID: 3f9a1c2e7b40
Revises:
Create Date: 2026-10-18 10:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2e7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'servers',
        sa.Column('id', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('author', sa.String(length=255), nullable=False),
        sa.Column('github_url', sa.String(), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_servers_name'), 'servers', ['name'], unique=False)
    op.create_index(op.f('ix_servers_category'), 'servers', ['category'], unique=False)

    op.create_table(
        'reviews',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=100), nullable=False, comment='ID of the reviewed server listing'),
        sa.Column('user_id', sa.String(), nullable=False, comment='WorkOS user ID of the author'),
        sa.Column('user_name', sa.String(length=255), nullable=True, comment='Author display name snapshotted at write time'),
        sa.Column('user_image_url', sa.String(), nullable=True, comment='Author avatar URL snapshotted at write time'),
        sa.Column('rating', sa.Integer(), nullable=False, comment='Rating value (1-5 stars)'),
        sa.Column('title', sa.String(length=100), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('helpful_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('item_id', 'user_id', name='uq_reviews_item_user'),
    )
    op.create_index('ix_reviews_item_created', 'reviews', ['item_id', 'created_at'], unique=False)
    op.create_index('ix_reviews_user_id', 'reviews', ['user_id'], unique=False)

    op.create_table(
        'review_stats',
        sa.Column('item_id', sa.String(length=100), nullable=False),
        sa.Column('review_count', sa.Integer(), nullable=False),
        sa.Column('average_rating', sa.Float(), nullable=False),
        sa.Column('rating_1_count', sa.Integer(), nullable=False),
        sa.Column('rating_2_count', sa.Integer(), nullable=False),
        sa.Column('rating_3_count', sa.Integer(), nullable=False),
        sa.Column('rating_4_count', sa.Integer(), nullable=False),
        sa.Column('rating_5_count', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('item_id'),
    )

    op.create_table(
        'votes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=100), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('vote_type', sa.String(length=10), nullable=False, comment="Vote direction: 'up' or 'down'"),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('item_id', 'user_id', name='uq_votes_item_user'),
    )
    op.create_index(op.f('ix_votes_item_id'), 'votes', ['item_id'], unique=False)
    op.create_index(op.f('ix_votes_user_id'), 'votes', ['user_id'], unique=False)

    op.create_table(
        'vote_counts',
        sa.Column('item_id', sa.String(length=100), nullable=False),
        sa.Column('upvotes', sa.Integer(), nullable=False),
        sa.Column('downvotes', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('item_id'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('vote_counts')
    op.drop_index(op.f('ix_votes_user_id'), table_name='votes')
    op.drop_index(op.f('ix_votes_item_id'), table_name='votes')
    op.drop_table('votes')
    op.drop_table('review_stats')
    op.drop_index('ix_reviews_user_id', table_name='reviews')
    op.drop_index('ix_reviews_item_created', table_name='reviews')
    op.drop_table('reviews')
    op.drop_index(op.f('ix_servers_category'), table_name='servers')
    op.drop_index(op.f('ix_servers_name'), table_name='servers')
    op.drop_table('servers')
