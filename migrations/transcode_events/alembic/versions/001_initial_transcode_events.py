"""Initial processed_videos and posts tables

Revision ID: 001_initial_transcode_events
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001_initial_transcode_events"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create enum types
    video_status = sa.Enum("PENDING", "COMPLETE", "FAILED", name="videostatus")
    post_status = sa.Enum("DRAFT", "PROCESSING", "PUBLISHED", name="post_status")

    video_status.create(op.get_bind(), checkfirst=True)
    post_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "processed_videos",
        sa.Column(
            "video_id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("job_id", sa.String(100), nullable=False),
        sa.Column("queue", sa.Text, nullable=True),
        sa.Column(
            "status",
            ENUM(name="videostatus", create_type=False),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("output_paths", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("hls_url", sa.Text, nullable=True),
        sa.Column("mp4_url", sa.Text, nullable=True),
        sa.Column("thumbnail_url", sa.Text, nullable=True),
        sa.Column("duration_secs", sa.Integer, nullable=True),
        sa.Column("resolution", sa.String(20), nullable=True),
        sa.Column("error_code", sa.Integer, nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("job_id", name="uq_processed_videos_job_id"),
    )
    op.create_index(
        "ix_processed_videos_status_created",
        "processed_videos",
        ["status", "created_at"],
    )

    op.create_table(
        "posts",
        sa.Column(
            "post_id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("author_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(300), nullable=True),
        sa.Column("transcode_job_id", sa.String(100), nullable=True),
        sa.Column(
            "processed_video_id",
            UUID(as_uuid=True),
            sa.ForeignKey("processed_videos.video_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("media_urls", JSONB, nullable=True),
        sa.Column(
            "status",
            ENUM(name="post_status", create_type=False),
            nullable=False,
            server_default="PROCESSING",
        ),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("transcode_job_id", name="uq_posts_transcode_job_id"),
    )
    op.create_index("ix_posts_author_id", "posts", ["author_id"])
    op.create_index("ix_posts_status", "posts", ["status"])


def downgrade() -> None:
    op.drop_table("posts")
    op.drop_table("processed_videos")
    op.execute("DROP TYPE IF EXISTS post_status")
    op.execute("DROP TYPE IF EXISTS videostatus")
