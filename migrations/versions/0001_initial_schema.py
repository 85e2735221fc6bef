"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "feed_sources",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("favicon_url", sa.String(length=2048), nullable=True),
        sa.Column("channel_id", sa.String(length=100), nullable=True),
        sa.Column("disabled_reason", sa.Text(), nullable=True),
        sa.Column("last_fetched_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_feed_sources_url", "feed_sources", ["url"], unique=True)
    op.create_index("ix_feed_sources_type_active", "feed_sources", ["type", "is_active"])

    op.create_table(
        "user_feeds",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("subscriber_id", sa.String(length=100), nullable=False),
        sa.Column("feed_source_id", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["feed_source_id"], ["feed_sources.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subscriber_id", "feed_source_id", name="uq_user_feeds_subscriber_source"),
    )
    op.create_index("ix_user_feeds_feed_source_id", "user_feeds", ["feed_source_id"])
    op.create_index("ix_user_feeds_subscriber_active", "user_feeds", ["subscriber_id", "is_active"])

    op.create_table(
        "content_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("feed_source_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=1000), nullable=True),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(length=2048), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("content_type", sa.String(length=20), nullable=False),
        sa.Column("author", sa.String(length=500), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("num_comments", sa.Integer(), nullable=True),
        sa.Column("subreddit", sa.String(length=200), nullable=True),
        sa.Column("permalink", sa.String(length=2048), nullable=True),
        sa.Column("fetched_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["feed_source_id"], ["feed_sources.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("feed_source_id", "url", name="uq_content_items_source_url"),
    )
    op.create_index("ix_content_items_feed_source_id", "content_items", ["feed_source_id"])
    op.create_index("ix_content_items_published_at", "content_items", ["published_at"])
    op.create_index("ix_content_items_fetched_at", "content_items", ["fetched_at"])
    op.create_index(
        "ix_content_items_source_published", "content_items", ["feed_source_id", "published_at"]
    )

    op.create_table(
        "content_errors",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("feed_source_id", sa.Integer(), nullable=False),
        sa.Column("error_type", sa.String(length=20), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["feed_source_id"], ["feed_sources.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_errors_timestamp", "content_errors", ["timestamp"])
    op.create_index(
        "ix_content_errors_source_timestamp", "content_errors", ["feed_source_id", "timestamp"]
    )

    op.create_table(
        "daily_digests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("subscriber_id", sa.String(length=100), nullable=False),
        sa.Column("digest_date", sa.Date(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("total_items", sa.Integer(), nullable=False),
        sa.Column("estimated_read_time", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subscriber_id", "digest_date", name="uq_daily_digests_subscriber_date"),
    )
    op.create_index("ix_daily_digests_subscriber_id", "daily_digests", ["subscriber_id"])

    op.create_table(
        "daily_digest_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("digest_id", sa.Integer(), nullable=False),
        sa.Column("content_item_id", sa.Integer(), nullable=True),
        sa.Column("relevance_score", sa.Float(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("key_points", sa.Text(), nullable=False),
        sa.Column("estimated_read_time", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["digest_id"], ["daily_digests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["content_item_id"], ["content_items.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_daily_digest_items_digest_id", "daily_digest_items", ["digest_id"])
    op.create_index("ix_daily_digest_items_content_item_id", "daily_digest_items", ["content_item_id"])


def downgrade() -> None:
    op.drop_table("daily_digest_items")
    op.drop_table("daily_digests")
    op.drop_table("content_errors")
    op.drop_table("content_items")
    op.drop_table("user_feeds")
    op.drop_table("feed_sources")
