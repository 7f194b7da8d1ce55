"""Watch-activity endpoints.

  POST  /activity/log                     chunk ingestion
  PATCH /activity/progress/{video_id}     snapshot ingestion
  GET   /activity/progress/{video_id}     video progress (or null)
  GET   /activity/course-progress/{id}    course progress detail
  GET   /activity/day-activity?date=      one day's total + events
  GET   /activity/heatmap?year=           daily totals for a year
  GET   /activity/dashboard               lifetime summary

JSON bodies use camelCase field names.  Domain errors raised by the
services are mapped to status codes in watchtime/api/errors.py.
"""

from __future__ import annotations

import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from watchtime.api.dependencies import (
    get_activity_repo,
    get_catalog_repo,
    require_user,
)
from watchtime.core.config import SETTINGS
from watchtime.models.activity import CourseAggregate, DailyAggregate, VideoProgress
from watchtime.models.catalog import Course, Video
from watchtime.models.principal import Principal
from watchtime.models.views import ActivityEntry
from watchtime.repos.activity_repo import ActivityRepo
from watchtime.repos.catalog_repo import CatalogRepo
from watchtime.services import aggregation_service, query_service

router = APIRouter(prefix="/activity", tags=["activity"])

Repo = Annotated[ActivityRepo, Depends(get_activity_repo)]
Catalog = Annotated[CatalogRepo, Depends(get_catalog_repo)]
CurrentUser = Annotated[Principal, Depends(require_user)]


def _ts(epoch: int | None) -> datetime.datetime | None:
    if epoch is None:
        return None
    return datetime.datetime.fromtimestamp(epoch, tz=datetime.UTC)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class ChunkIn(_CamelModel):
    video_id: str = Field(min_length=1)
    watched_seconds_chunk: int = Field(ge=0)


class SnapshotIn(_CamelModel):
    watched_seconds_total: int = Field(ge=0)
    is_completed: bool


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class SuccessOut(_CamelModel):
    success: bool = True


class VideoProgressOut(_CamelModel):
    user_id: str
    video_id: str
    watched_seconds: int
    completed: bool
    last_watched_at: datetime.datetime | None

    @classmethod
    def of(cls, p: VideoProgress) -> VideoProgressOut:
        return cls(
            user_id=p.user_id,
            video_id=p.video_id,
            watched_seconds=p.watched_seconds,
            completed=p.completed,
            last_watched_at=_ts(p.last_watched_at),
        )


class ProgressEnvelopeOut(_CamelModel):
    progress: VideoProgressOut | None


class CourseOut(_CamelModel):
    id: str
    user_id: str
    title: str
    description: str | None
    thumbnail_url: str | None
    total_duration_seconds: int

    @classmethod
    def of(cls, c: Course) -> CourseOut:
        return cls(
            id=c.id,
            user_id=c.user_id,
            title=c.title,
            description=c.description,
            thumbnail_url=c.thumbnail_url,
            total_duration_seconds=c.total_duration_seconds,
        )


class VideoOut(_CamelModel):
    id: str
    course_id: str
    external_video_id: str
    title: str
    duration_seconds: int
    thumbnail_url: str | None
    position: int

    @classmethod
    def of(cls, v: Video) -> VideoOut:
        return cls(
            id=v.id,
            course_id=v.course_id,
            external_video_id=v.external_video_id,
            title=v.title,
            duration_seconds=v.duration_seconds,
            thumbnail_url=v.thumbnail_url,
            position=v.position,
        )


class CourseProgressOut(_CamelModel):
    course: CourseOut
    total_watched_seconds: int
    completed_videos: int
    total_videos: int
    total_duration_seconds: int
    videos: list[VideoOut]
    video_progress: list[VideoProgressOut]


class ActivityOut(_CamelModel):
    id: str
    video_id: str
    video_title: str | None
    course_name: str | None
    watched_seconds: int
    timestamp: datetime.datetime

    @classmethod
    def of(cls, a: ActivityEntry) -> ActivityOut:
        return cls(
            id=a.id,
            video_id=a.video_id,
            video_title=a.video_title,
            course_name=a.course_name,
            watched_seconds=a.watched_seconds,
            timestamp=_ts(a.timestamp),
        )


class DayActivityOut(_CamelModel):
    date: datetime.date
    total_seconds: int
    videos_watched: int
    activities: list[ActivityOut]


class DailyOut(_CamelModel):
    date: datetime.date
    total_seconds: int

    @classmethod
    def of(cls, d: DailyAggregate) -> DailyOut:
        return cls(date=d.date, total_seconds=d.total_seconds)


class HeatmapOut(_CamelModel):
    year: int
    data: list[DailyOut]


class CourseAggregateOut(_CamelModel):
    course_id: str
    total_watched_seconds: int
    completed_videos: int

    @classmethod
    def of(cls, c: CourseAggregate) -> CourseAggregateOut:
        return cls(
            course_id=c.course_id,
            total_watched_seconds=c.total_watched_seconds,
            completed_videos=c.completed_videos,
        )


class DashboardOut(_CamelModel):
    total_watch_time_seconds: int
    total_courses: int
    total_completed_videos: int
    courses_progress: list[CourseAggregateOut]


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post("/log", response_model=SuccessOut)
async def log_chunk(
    body: ChunkIn, principal: CurrentUser, repo: Repo, catalog: Catalog
) -> SuccessOut:
    await aggregation_service.record_chunk(
        repo, catalog, principal.user_id, body.video_id, body.watched_seconds_chunk
    )
    return SuccessOut()


@router.patch("/progress/{video_id}", response_model=SuccessOut)
async def update_snapshot(
    video_id: str,
    body: SnapshotIn,
    principal: CurrentUser,
    repo: Repo,
    catalog: Catalog,
) -> SuccessOut:
    await aggregation_service.record_snapshot(
        repo,
        catalog,
        principal.user_id,
        video_id,
        body.watched_seconds_total,
        body.is_completed,
    )
    return SuccessOut()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("/progress/{video_id}", response_model=ProgressEnvelopeOut)
async def get_video_progress(
    video_id: str, principal: CurrentUser, repo: Repo
) -> ProgressEnvelopeOut:
    p = await query_service.get_video_progress(repo, principal.user_id, video_id)
    return ProgressEnvelopeOut(progress=VideoProgressOut.of(p) if p else None)


@router.get("/course-progress/{course_id}", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: str, principal: CurrentUser, repo: Repo, catalog: Catalog
) -> CourseProgressOut:
    view = await query_service.get_course_progress(
        repo, catalog, principal.user_id, course_id
    )
    return CourseProgressOut(
        course=CourseOut.of(view.course),
        total_watched_seconds=view.total_watched_seconds,
        completed_videos=view.completed_videos,
        total_videos=view.total_videos,
        total_duration_seconds=view.total_duration_seconds,
        videos=[VideoOut.of(v) for v in view.videos],
        video_progress=[VideoProgressOut.of(p) for p in view.video_progress],
    )


@router.get("/day-activity", response_model=DayActivityOut)
async def get_day_activity(
    day: Annotated[datetime.date, Query(alias="date")],
    principal: CurrentUser,
    repo: Repo,
    catalog: Catalog,
) -> DayActivityOut:
    view = await query_service.get_day_activity(repo, catalog, principal.user_id, day)
    return DayActivityOut(
        date=view.date,
        total_seconds=view.total_seconds,
        videos_watched=view.videos_watched,
        activities=[ActivityOut.of(a) for a in view.activities],
    )


@router.get("/heatmap", response_model=HeatmapOut)
async def get_heatmap(
    principal: CurrentUser,
    repo: Repo,
    year: Annotated[int | None, Query(ge=1, le=9999)] = None,
) -> HeatmapOut:
    if year is None:
        year = datetime.datetime.now(SETTINGS.tz).year
    view = await query_service.get_heatmap(repo, principal.user_id, year)
    return HeatmapOut(year=view.year, data=[DailyOut.of(d) for d in view.data])


@router.get("/dashboard", response_model=DashboardOut)
async def get_dashboard(
    principal: CurrentUser, repo: Repo, catalog: Catalog
) -> DashboardOut:
    view = await query_service.get_dashboard(repo, catalog, principal.user_id)
    return DashboardOut(
        total_watch_time_seconds=view.total_watch_time_seconds,
        total_courses=view.total_courses,
        total_completed_videos=view.total_completed_videos,
        courses_progress=[CourseAggregateOut.of(c) for c in view.courses_progress],
    )
