"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in watchtime/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.

user_id columns hold the opaque subject issued by the identity
provider, so they carry no foreign key.
"""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    ForeignKey,
    Identity,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from watchtime.db.engine import Base

# --- Catalog (owned by the course service, read-only here) ---


class CourseRow(Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    youtube_playlist_id: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True
    )
    total_duration_seconds: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )


class VideoRow(Base):
    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    course_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    youtube_video_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# --- Watch activity (owned by this service) ---


class WatchEventRow(Base):
    """Append-only event log. Rows go away only through video cascade."""

    __tablename__ = "user_activity"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    video_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("videos.id", ondelete="CASCADE"),
        nullable=False,
    )
    watched_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    occurred_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Insertion order; breaks ties between events in the same second
    seq: Mapped[int] = mapped_column(BigInteger, Identity(), nullable=False)

    __table_args__ = (Index("ix_user_activity_user_time", "user_id", "occurred_at"),)


class VideoProgressRow(Base):
    __tablename__ = "progress"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    video_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("videos.id", ondelete="CASCADE"),
        primary_key=True,
    )
    watched_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_watched_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class DailyActivityRow(Base):
    __tablename__ = "daily_activity"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    date: Mapped[datetime.date] = mapped_column(Date, primary_key=True)
    total_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class CourseProgressRow(Base):
    __tablename__ = "course_progress"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    course_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("courses.id", ondelete="CASCADE"),
        primary_key=True,
    )
    total_watched_seconds: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    completed_videos: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
