"""Aggregation engine: turns watch reports into day/course/video state.

Two independent write paths:

  record_chunk     "uid watched +N seconds of video V just now"
                   -> append WatchEvent, add N to DailyAggregate(today)
                      and to CourseAggregate(course of V)

  record_snapshot  "uid's total on video V is now T, completed=C"
                   -> overwrite VideoProgress(uid, V); on a false->true
                      completion transition, +1 CourseAggregate.completed_videos

Chunk sums and snapshot totals are never reconciled with each other.
Each call runs as one repository transaction; nothing is retried.
"""

from __future__ import annotations

import datetime
import logging

from watchtime.core.config import SETTINGS
from watchtime.core.errors import InvalidInput, NotFound
from watchtime.core.metrics import (
    COMPLETION_TRANSITIONS,
    SNAPSHOTS,
    WATCH_CHUNKS,
    WATCH_SECONDS,
)
from watchtime.models.activity import VideoProgress, WatchEvent
from watchtime.models.catalog import VideoRef
from watchtime.repos.activity_repo import ActivityRepo
from watchtime.repos.catalog_repo import CatalogRepo

logger = logging.getLogger(__name__)


def _now(now: datetime.datetime | None) -> datetime.datetime:
    if now is None:
        return datetime.datetime.now(datetime.UTC)
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    return now


def local_date(moment: datetime.datetime) -> datetime.date:
    """Calendar date of ``moment`` in the configured activity timezone."""
    return moment.astimezone(SETTINGS.tz).date()


async def _resolve_video(catalog: CatalogRepo, user_id: str, video_id: str) -> VideoRef:
    ref = await catalog.lookup_video(video_id)
    if ref is None:
        logger.warning("Video not found user=%s video=%s", user_id, video_id)
        raise NotFound("Video not found")
    return ref


async def record_chunk(
    repo: ActivityRepo,
    catalog: CatalogRepo,
    user_id: str,
    video_id: str,
    chunk_seconds: int,
    *,
    now: datetime.datetime | None = None,
) -> None:
    """Log an incremental watch-time chunk and bump day and course totals.

    The chunk amount goes through arithmetic as given; range checks
    belong to the caller.
    """
    if chunk_seconds is None:
        raise InvalidInput("watchedSecondsChunk is required")

    ref = await _resolve_video(catalog, user_id, video_id)

    moment = _now(now)
    today = local_date(moment)
    event = WatchEvent.new(
        user_id=user_id,
        video_id=video_id,
        watched_seconds=chunk_seconds,
        occurred_at=int(moment.timestamp()),
    )

    async with repo.transaction() as tx:
        await tx.append_event(event)
        await tx.add_daily_seconds(user_id, today, chunk_seconds)
        await tx.add_course_seconds(user_id, ref.course_id, chunk_seconds)

    WATCH_CHUNKS.inc()
    WATCH_SECONDS.inc(max(chunk_seconds, 0))  # counters cannot go down
    logger.info(
        "Chunk logged user=%s video=%s course=%s seconds=%d date=%s",
        user_id,
        video_id,
        ref.course_id,
        chunk_seconds,
        today.isoformat(),
    )


async def record_snapshot(
    repo: ActivityRepo,
    catalog: CatalogRepo,
    user_id: str,
    video_id: str,
    watched_seconds_total: int,
    completed: bool,
    *,
    now: datetime.datetime | None = None,
) -> bool:
    """Overwrite the user's progress on a video.

    Returns True when this snapshot was a completion transition (and
    therefore incremented the course's completed-video counter).  A
    completed=False snapshot after completion clears the stored flag but
    leaves the counter alone.  When no course aggregate exists yet the
    increment creates one with zero watched seconds.
    """
    if watched_seconds_total is None or completed is None:
        raise InvalidInput("watchedSecondsTotal and isCompleted are required")

    ref = await _resolve_video(catalog, user_id, video_id)

    progress = VideoProgress(
        user_id=user_id,
        video_id=video_id,
        watched_seconds=watched_seconds_total,
        completed=completed,
        last_watched_at=int(_now(now).timestamp()),
    )

    async with repo.transaction() as tx:
        was_completed = await tx.upsert_video_progress(progress)
        transition = completed and not was_completed
        if transition:
            await tx.increment_completed_videos(user_id, ref.course_id)

    SNAPSHOTS.labels(completed="true" if completed else "false").inc()
    if transition:
        COMPLETION_TRANSITIONS.inc()
        logger.info(
            "Video completed user=%s video=%s course=%s",
            user_id,
            video_id,
            ref.course_id,
        )
    elif was_completed and not completed:
        logger.info(
            "Completion flag cleared user=%s video=%s (counter unchanged)",
            user_id,
            video_id,
        )
    logger.debug(
        "Snapshot stored user=%s video=%s total=%d completed=%s",
        user_id,
        video_id,
        watched_seconds_total,
        completed,
    )
    return transition
