"""Read side: heatmap, day detail, course progress and dashboard views.

Nothing here writes.  Every view reads back whatever the aggregation
service last committed; aggregates are never recomputed from the event
log.
"""

from __future__ import annotations

import datetime
import logging

from watchtime.core.config import SETTINGS
from watchtime.core.errors import InvalidInput, NotFound, Unauthorized
from watchtime.models.activity import VideoProgress
from watchtime.models.views import (
    ActivityEntry,
    CourseProgressView,
    DashboardView,
    DayActivityView,
    HeatmapView,
)
from watchtime.repos.activity_repo import ActivityRepo
from watchtime.repos.catalog_repo import CatalogRepo

logger = logging.getLogger(__name__)


def day_bounds(day: datetime.date) -> tuple[int, int]:
    """Epoch seconds for [day 00:00:00, day 23:59:59] in the activity timezone."""
    start = datetime.datetime.combine(day, datetime.time.min, tzinfo=SETTINGS.tz)
    end = datetime.datetime.combine(
        day + datetime.timedelta(days=1), datetime.time.min, tzinfo=SETTINGS.tz
    )
    return int(start.timestamp()), int(end.timestamp()) - 1


async def get_video_progress(
    repo: ActivityRepo, user_id: str, video_id: str
) -> VideoProgress | None:
    return await repo.get_video_progress(user_id, video_id)


async def get_course_progress(
    repo: ActivityRepo, catalog: CatalogRepo, user_id: str, course_id: str
) -> CourseProgressView:
    course = await catalog.get_course(course_id)
    if course is None:
        logger.warning("Course not found user=%s course=%s", user_id, course_id)
        raise NotFound("Course not found")
    if course.user_id != user_id:
        logger.warning(
            "Access denied: user=%s does not own course=%s", user_id, course_id
        )
        raise Unauthorized()

    aggregate = await repo.get_course_aggregate(user_id, course_id)
    videos = await catalog.list_course_videos(course_id)
    progress = await repo.list_video_progress(user_id, [v.id for v in videos])

    return CourseProgressView(
        course=course,
        total_watched_seconds=aggregate.total_watched_seconds if aggregate else 0,
        completed_videos=aggregate.completed_videos if aggregate else 0,
        total_videos=len(videos),
        total_duration_seconds=course.total_duration_seconds,
        videos=videos,
        video_progress=progress,
    )


async def get_day_activity(
    repo: ActivityRepo, catalog: CatalogRepo, user_id: str, day: datetime.date
) -> DayActivityView:
    daily = await repo.get_daily(user_id, day)
    start_ts, end_ts = day_bounds(day)
    events = await repo.list_events(user_id, start_ts, end_ts)

    # Titles are display-only; a video deleted from the catalog still
    # shows up with None titles (left-join semantics).
    videos = await catalog.get_videos({e.video_id for e in events})
    courses = await catalog.get_courses({v.course_id for v in videos.values()})

    activities = []
    for e in events:
        video = videos.get(e.video_id)
        course = courses.get(video.course_id) if video else None
        activities.append(
            ActivityEntry(
                id=str(e.id),
                video_id=e.video_id,
                video_title=video.title if video else None,
                course_name=course.title if course else None,
                watched_seconds=e.watched_seconds,
                timestamp=e.occurred_at,
            )
        )

    return DayActivityView(
        date=day,
        total_seconds=daily.total_seconds if daily else 0,
        videos_watched=len({e.video_id for e in events}),
        activities=activities,
    )


async def get_heatmap(repo: ActivityRepo, user_id: str, year: int) -> HeatmapView:
    """Daily totals for one calendar year; days without activity are absent."""
    try:
        start = datetime.date(year, 1, 1)
        end = datetime.date(year, 12, 31)
    except ValueError:
        raise InvalidInput(f"year out of range: {year}") from None
    data = await repo.list_daily(user_id, start, end)
    return HeatmapView(year=year, data=data)


async def get_dashboard(
    repo: ActivityRepo, catalog: CatalogRepo, user_id: str
) -> DashboardView:
    # Lifetime total comes from the daily rows, not the course rows.
    total_seconds = await repo.sum_daily_seconds(user_id)
    total_courses = await catalog.count_user_courses(user_id)
    courses_progress = await repo.list_course_aggregates(user_id)

    return DashboardView(
        total_watch_time_seconds=total_seconds,
        total_courses=total_courses,
        total_completed_videos=sum(c.completed_videos for c in courses_progress),
        courses_progress=courses_progress,
    )
