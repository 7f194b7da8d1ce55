"""create catalog and watch activity tables

Revision ID: 3b9d1c7e2a40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9d1c7e2a40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("youtube_playlist_id", sa.String(length=255), nullable=True),
        sa.Column(
            "total_duration_seconds", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.UniqueConstraint("youtube_playlist_id"),
    )
    op.create_index("ix_courses_user_id", "courses", ["user_id"])

    op.create_table(
        "videos",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("youtube_video_id", sa.String(length=255), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_videos_course_id", "videos", ["course_id"])

    op.create_table(
        "user_activity",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column(
            "video_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("videos.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("watched_seconds", sa.Integer(), nullable=False),
        sa.Column("occurred_at", sa.BigInteger(), nullable=False),
        sa.Column("seq", sa.BigInteger(), sa.Identity(), nullable=False),
    )
    op.create_index(
        "ix_user_activity_user_time", "user_activity", ["user_id", "occurred_at"]
    )

    op.create_table(
        "progress",
        sa.Column("user_id", sa.String(length=255), primary_key=True),
        sa.Column(
            "video_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("videos.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("watched_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("last_watched_at", sa.BigInteger(), nullable=False),
    )

    op.create_table(
        "daily_activity",
        sa.Column("user_id", sa.String(length=255), primary_key=True),
        sa.Column("date", sa.Date(), primary_key=True),
        sa.Column("total_seconds", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "course_progress",
        sa.Column("user_id", sa.String(length=255), primary_key=True),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "total_watched_seconds", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "completed_videos", sa.Integer(), nullable=False, server_default="0"
        ),
    )


def downgrade() -> None:
    op.drop_table("course_progress")
    op.drop_table("daily_activity")
    op.drop_table("progress")
    op.drop_index("ix_user_activity_user_time", table_name="user_activity")
    op.drop_table("user_activity")
    op.drop_index("ix_videos_course_id", table_name="videos")
    op.drop_table("videos")
    op.drop_index("ix_courses_user_id", table_name="courses")
    op.drop_table("courses")
