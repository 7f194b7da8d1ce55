from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """Append-only log entry: "uid watched +N seconds of video V"."""

    id: UUID
    user_id: str
    video_id: str
    watched_seconds: int
    occurred_at: int  # epoch seconds, UTC

    @staticmethod
    def new(
        *, user_id: str, video_id: str, watched_seconds: int, occurred_at: int
    ) -> WatchEvent:
        return WatchEvent(
            id=uuid4(),
            user_id=user_id,
            video_id=video_id,
            watched_seconds=watched_seconds,
            occurred_at=occurred_at,
        )


@dataclass(frozen=True, slots=True)
class VideoProgress:
    """Latest snapshot for one (user, video). Overwritten, never merged."""

    user_id: str
    video_id: str
    watched_seconds: int = 0
    completed: bool = False
    last_watched_at: int | None = None


@dataclass(frozen=True, slots=True)
class DailyAggregate:
    user_id: str
    date: datetime.date
    total_seconds: int = 0


@dataclass(frozen=True, slots=True)
class CourseAggregate:
    """Per-course rollup.

    total_watched_seconds is fed by chunk ingestion only and
    completed_videos by completion transitions only; the two are never
    reconciled against each other.
    """

    user_id: str
    course_id: str
    total_watched_seconds: int = 0
    completed_videos: int = 0
