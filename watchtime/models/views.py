"""Read models assembled by the query layer."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field

from watchtime.models.activity import CourseAggregate, DailyAggregate, VideoProgress
from watchtime.models.catalog import Course, Video


@dataclass(frozen=True, slots=True)
class ActivityEntry:
    id: str
    video_id: str
    video_title: str | None
    course_name: str | None
    watched_seconds: int
    timestamp: int


@dataclass(frozen=True, slots=True)
class DayActivityView:
    date: datetime.date
    total_seconds: int
    videos_watched: int
    activities: list[ActivityEntry] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CourseProgressView:
    course: Course
    total_watched_seconds: int
    completed_videos: int
    total_videos: int
    total_duration_seconds: int
    videos: list[Video] = field(default_factory=list)
    video_progress: list[VideoProgress] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DashboardView:
    total_watch_time_seconds: int
    total_courses: int
    total_completed_videos: int
    courses_progress: list[CourseAggregate] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class HeatmapView:
    year: int
    data: list[DailyAggregate] = field(default_factory=list)
