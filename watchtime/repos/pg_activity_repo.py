"""PostgreSQL implementation of ActivityRepo.

Every aggregate write is a single INSERT ... ON CONFLICT DO UPDATE that
increments in place, so concurrent chunk events for the same
(user, date) or (user, course) serialize on the row lock instead of
overwriting each other.
"""

from __future__ import annotations

import datetime
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from watchtime.db.engine import storage_errors
from watchtime.db.tables import (
    CourseProgressRow,
    DailyActivityRow,
    VideoProgressRow,
    WatchEventRow,
)
from watchtime.models.activity import (
    CourseAggregate,
    DailyAggregate,
    VideoProgress,
    WatchEvent,
)


class _PgUnitOfWork:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append_event(self, event: WatchEvent) -> None:
        self._session.add(
            WatchEventRow(
                id=str(event.id),
                user_id=event.user_id,
                video_id=event.video_id,
                watched_seconds=event.watched_seconds,
                occurred_at=event.occurred_at,
            )
        )
        await self._session.flush()

    async def add_daily_seconds(
        self, user_id: str, day: datetime.date, seconds: int
    ) -> None:
        stmt = pg_insert(DailyActivityRow).values(
            user_id=user_id, date=day, total_seconds=seconds
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DailyActivityRow.user_id, DailyActivityRow.date],
            set_={
                "total_seconds": DailyActivityRow.total_seconds
                + stmt.excluded.total_seconds
            },
        )
        await self._session.execute(stmt)

    async def add_course_seconds(
        self, user_id: str, course_id: str, seconds: int
    ) -> None:
        stmt = pg_insert(CourseProgressRow).values(
            user_id=user_id,
            course_id=course_id,
            total_watched_seconds=seconds,
            completed_videos=0,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CourseProgressRow.user_id, CourseProgressRow.course_id],
            set_={
                "total_watched_seconds": CourseProgressRow.total_watched_seconds
                + stmt.excluded.total_watched_seconds
            },
        )
        await self._session.execute(stmt)

    async def upsert_video_progress(self, progress: VideoProgress) -> bool:
        key = (
            VideoProgressRow.user_id == progress.user_id,
            VideoProgressRow.video_id == progress.video_id,
        )

        # Make sure a row exists so FOR UPDATE has something to lock.  A
        # concurrent first snapshot blocks here on the primary key until
        # the other transaction commits, then sees its row.
        placeholder = (
            pg_insert(VideoProgressRow)
            .values(
                user_id=progress.user_id,
                video_id=progress.video_id,
                watched_seconds=0,
                completed=False,
                last_watched_at=progress.last_watched_at,
            )
            .on_conflict_do_nothing(
                index_elements=[VideoProgressRow.user_id, VideoProgressRow.video_id]
            )
        )
        await self._session.execute(placeholder)

        locked = select(VideoProgressRow.completed).where(*key).with_for_update()
        was_completed = bool((await self._session.execute(locked)).scalar_one())

        await self._session.execute(
            update(VideoProgressRow)
            .where(*key)
            .values(
                watched_seconds=progress.watched_seconds,
                completed=progress.completed,
                last_watched_at=progress.last_watched_at,
            )
        )
        return was_completed

    async def increment_completed_videos(self, user_id: str, course_id: str) -> None:
        stmt = pg_insert(CourseProgressRow).values(
            user_id=user_id,
            course_id=course_id,
            total_watched_seconds=0,
            completed_videos=1,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CourseProgressRow.user_id, CourseProgressRow.course_id],
            set_={"completed_videos": CourseProgressRow.completed_videos + 1},
        )
        await self._session.execute(stmt)


class PgActivityRepo:
    """Satisfies the ActivityRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_PgUnitOfWork]:
        # session.begin() commits on clean exit and rolls back on any
        # exception, cancellation included.
        async with storage_errors(), self._session_factory() as session:
            async with session.begin():
                yield _PgUnitOfWork(session)

    async def get_video_progress(
        self, user_id: str, video_id: str
    ) -> VideoProgress | None:
        try:
            UUID(video_id)
        except ValueError:
            return None
        stmt = select(VideoProgressRow).where(
            VideoProgressRow.user_id == user_id,
            VideoProgressRow.video_id == video_id,
        )
        async with storage_errors(), self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_progress(row)

    async def list_video_progress(
        self, user_id: str, video_ids: Iterable[str]
    ) -> list[VideoProgress]:
        ids = list(video_ids)
        if not ids:
            return []
        stmt = select(VideoProgressRow).where(
            VideoProgressRow.user_id == user_id,
            VideoProgressRow.video_id.in_(ids),
        )
        async with storage_errors(), self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_progress(r) for r in rows]

    async def get_daily(
        self, user_id: str, day: datetime.date
    ) -> DailyAggregate | None:
        stmt = select(DailyActivityRow).where(
            DailyActivityRow.user_id == user_id, DailyActivityRow.date == day
        )
        async with storage_errors(), self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_daily(row)

    async def list_daily(
        self, user_id: str, start: datetime.date, end: datetime.date
    ) -> list[DailyAggregate]:
        stmt = (
            select(DailyActivityRow)
            .where(
                DailyActivityRow.user_id == user_id,
                DailyActivityRow.date >= start,
                DailyActivityRow.date <= end,
            )
            .order_by(DailyActivityRow.date)
        )
        async with storage_errors(), self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_daily(r) for r in rows]

    async def sum_daily_seconds(self, user_id: str) -> int:
        stmt = select(
            func.coalesce(func.sum(DailyActivityRow.total_seconds), 0)
        ).where(DailyActivityRow.user_id == user_id)
        async with storage_errors(), self._session_factory() as session:
            return int((await session.execute(stmt)).scalar_one())

    async def list_events(
        self, user_id: str, start_ts: int, end_ts: int
    ) -> list[WatchEvent]:
        stmt = (
            select(WatchEventRow)
            .where(
                WatchEventRow.user_id == user_id,
                WatchEventRow.occurred_at >= start_ts,
                WatchEventRow.occurred_at <= end_ts,
            )
            .order_by(WatchEventRow.occurred_at, WatchEventRow.seq)
        )
        async with storage_errors(), self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_event(r) for r in rows]

    async def get_course_aggregate(
        self, user_id: str, course_id: str
    ) -> CourseAggregate | None:
        stmt = select(CourseProgressRow).where(
            CourseProgressRow.user_id == user_id,
            CourseProgressRow.course_id == course_id,
        )
        async with storage_errors(), self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_course_aggregate(row)

    async def list_course_aggregates(self, user_id: str) -> list[CourseAggregate]:
        stmt = select(CourseProgressRow).where(CourseProgressRow.user_id == user_id)
        async with storage_errors(), self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_course_aggregate(r) for r in rows]


def _row_to_event(row: WatchEventRow) -> WatchEvent:
    return WatchEvent(
        id=UUID(row.id),
        user_id=row.user_id,
        video_id=row.video_id,
        watched_seconds=row.watched_seconds,
        occurred_at=row.occurred_at,
    )


def _row_to_progress(row: VideoProgressRow) -> VideoProgress:
    return VideoProgress(
        user_id=row.user_id,
        video_id=row.video_id,
        watched_seconds=row.watched_seconds,
        completed=row.completed,
        last_watched_at=row.last_watched_at,
    )


def _row_to_daily(row: DailyActivityRow) -> DailyAggregate:
    return DailyAggregate(
        user_id=row.user_id, date=row.date, total_seconds=row.total_seconds
    )


def _row_to_course_aggregate(row: CourseProgressRow) -> CourseAggregate:
    return CourseAggregate(
        user_id=row.user_id,
        course_id=row.course_id,
        total_watched_seconds=row.total_watched_seconds,
        completed_videos=row.completed_videos,
    )
