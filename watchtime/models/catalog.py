from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class VideoRef:
    """Video-Course Index entry."""

    video_id: str
    course_id: str


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    user_id: str  # owner
    title: str
    description: str | None = None
    thumbnail_url: str | None = None
    total_duration_seconds: int = 0


@dataclass(frozen=True, slots=True)
class Video:
    id: str
    course_id: str
    external_video_id: str
    title: str
    duration_seconds: int
    thumbnail_url: str | None = None
    position: int = 0
