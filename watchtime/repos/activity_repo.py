"""Storage contract for watch activity plus the in-memory implementation.

Writes only happen inside ``transaction()``: the unit of work it yields
applies every write or none of them.  Aggregate updates are expressed
as increments (``add_*``), never as read-then-write, so two concurrent
transactions touching the same row both land.
"""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import AsyncIterator, Iterable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import replace
from typing import Protocol

from watchtime.models.activity import (
    CourseAggregate,
    DailyAggregate,
    VideoProgress,
    WatchEvent,
)


class ActivityUnitOfWork(Protocol):
    async def append_event(self, event: WatchEvent) -> None: ...
    async def add_daily_seconds(
        self, user_id: str, day: datetime.date, seconds: int
    ) -> None: ...
    async def add_course_seconds(
        self, user_id: str, course_id: str, seconds: int
    ) -> None: ...
    async def upsert_video_progress(self, progress: VideoProgress) -> bool:
        """Overwrite (or create) the row; return the previous completed flag."""
        ...

    async def increment_completed_videos(self, user_id: str, course_id: str) -> None: ...


class ActivityRepo(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[ActivityUnitOfWork]: ...

    async def get_video_progress(
        self, user_id: str, video_id: str
    ) -> VideoProgress | None: ...
    async def list_video_progress(
        self, user_id: str, video_ids: Iterable[str]
    ) -> list[VideoProgress]: ...
    async def get_daily(
        self, user_id: str, day: datetime.date
    ) -> DailyAggregate | None: ...
    async def list_daily(
        self, user_id: str, start: datetime.date, end: datetime.date
    ) -> list[DailyAggregate]: ...
    async def sum_daily_seconds(self, user_id: str) -> int: ...
    async def list_events(
        self, user_id: str, start_ts: int, end_ts: int
    ) -> list[WatchEvent]: ...
    async def get_course_aggregate(
        self, user_id: str, course_id: str
    ) -> CourseAggregate | None: ...
    async def list_course_aggregates(self, user_id: str) -> list[CourseAggregate]: ...


class _InMemoryUnitOfWork:
    """Stages writes against private copies; the repo swaps them in on commit."""

    def __init__(self, repo: InMemoryActivityRepo) -> None:
        self.events: list[WatchEvent] = []
        self.progress = dict(repo._progress)
        self.daily = dict(repo._daily)
        self.courses = dict(repo._courses)

    async def append_event(self, event: WatchEvent) -> None:
        await asyncio.sleep(0)  # yield like a driver round-trip would
        self.events.append(event)

    async def add_daily_seconds(
        self, user_id: str, day: datetime.date, seconds: int
    ) -> None:
        await asyncio.sleep(0)
        key = (user_id, day)
        current = self.daily.get(key) or DailyAggregate(user_id=user_id, date=day)
        self.daily[key] = replace(
            current, total_seconds=current.total_seconds + seconds
        )

    async def add_course_seconds(
        self, user_id: str, course_id: str, seconds: int
    ) -> None:
        await asyncio.sleep(0)
        key = (user_id, course_id)
        current = self.courses.get(key) or CourseAggregate(
            user_id=user_id, course_id=course_id
        )
        self.courses[key] = replace(
            current, total_watched_seconds=current.total_watched_seconds + seconds
        )

    async def upsert_video_progress(self, progress: VideoProgress) -> bool:
        await asyncio.sleep(0)
        key = (progress.user_id, progress.video_id)
        existing = self.progress.get(key)
        self.progress[key] = progress
        return existing.completed if existing is not None else False

    async def increment_completed_videos(self, user_id: str, course_id: str) -> None:
        await asyncio.sleep(0)
        key = (user_id, course_id)
        current = self.courses.get(key) or CourseAggregate(
            user_id=user_id, course_id=course_id
        )
        self.courses[key] = replace(
            current, completed_videos=current.completed_videos + 1
        )


class InMemoryActivityRepo:
    """Dict-backed store for dev and tests.

    A single asyncio.Lock plays the role of the database's transaction
    isolation: one unit of work at a time, committed atomically.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._lock = asyncio.Lock()
        self._events: list[WatchEvent] = []
        self._progress: dict[tuple[str, str], VideoProgress] = {}
        self._daily: dict[tuple[str, datetime.date], DailyAggregate] = {}
        self._courses: dict[tuple[str, str], CourseAggregate] = {}

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_InMemoryUnitOfWork]:
        async with self._lock:
            uow = _InMemoryUnitOfWork(self)
            yield uow
            # Only reached when the block exits cleanly
            self._events.extend(uow.events)
            self._progress = uow.progress
            self._daily = uow.daily
            self._courses = uow.courses

    async def get_video_progress(
        self, user_id: str, video_id: str
    ) -> VideoProgress | None:
        return self._progress.get((user_id, video_id))

    async def list_video_progress(
        self, user_id: str, video_ids: Iterable[str]
    ) -> list[VideoProgress]:
        wanted = set(video_ids)
        return [
            p
            for (uid, vid), p in self._progress.items()
            if uid == user_id and vid in wanted
        ]

    async def get_daily(
        self, user_id: str, day: datetime.date
    ) -> DailyAggregate | None:
        return self._daily.get((user_id, day))

    async def list_daily(
        self, user_id: str, start: datetime.date, end: datetime.date
    ) -> list[DailyAggregate]:
        rows = [
            d
            for (uid, day), d in self._daily.items()
            if uid == user_id and start <= day <= end
        ]
        return sorted(rows, key=lambda d: d.date)

    async def sum_daily_seconds(self, user_id: str) -> int:
        return sum(
            d.total_seconds for (uid, _), d in self._daily.items() if uid == user_id
        )

    async def list_events(
        self, user_id: str, start_ts: int, end_ts: int
    ) -> list[WatchEvent]:
        events = [
            e
            for e in self._events
            if e.user_id == user_id and start_ts <= e.occurred_at <= end_ts
        ]
        # sorted() is stable, so same-second events keep insertion order
        return sorted(events, key=lambda e: e.occurred_at)

    async def get_course_aggregate(
        self, user_id: str, course_id: str
    ) -> CourseAggregate | None:
        return self._courses.get((user_id, course_id))

    async def list_course_aggregates(self, user_id: str) -> list[CourseAggregate]:
        return [c for (uid, _), c in self._courses.items() if uid == user_id]
