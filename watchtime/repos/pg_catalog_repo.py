"""PostgreSQL implementation of CatalogRepo."""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from watchtime.db.engine import storage_errors
from watchtime.db.tables import CourseRow, VideoRow
from watchtime.models.catalog import Course, Video, VideoRef


def _valid_ids(ids: Iterable[str]) -> list[str]:
    # Non-UUID path params would make Postgres raise a DataError; they
    # simply do not exist in the catalog.
    valid = []
    for raw in ids:
        try:
            uuid.UUID(raw)
        except (ValueError, TypeError, AttributeError):
            continue
        valid.append(raw)
    return valid


class PgCatalogRepo:
    """Satisfies the CatalogRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def lookup_video(self, video_id: str) -> VideoRef | None:
        if not _valid_ids([video_id]):
            return None
        stmt = select(VideoRow.id, VideoRow.course_id).where(VideoRow.id == video_id)
        async with storage_errors(), self._session_factory() as session:
            row = (await session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return VideoRef(video_id=row.id, course_id=row.course_id)

    async def get_course(self, course_id: str) -> Course | None:
        if not _valid_ids([course_id]):
            return None
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        async with storage_errors(), self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_course(row)

    async def get_courses(self, course_ids: Iterable[str]) -> dict[str, Course]:
        ids = _valid_ids(course_ids)
        if not ids:
            return {}
        stmt = select(CourseRow).where(CourseRow.id.in_(ids))
        async with storage_errors(), self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return {row.id: _row_to_course(row) for row in rows}

    async def list_course_videos(self, course_id: str) -> list[Video]:
        if not _valid_ids([course_id]):
            return []
        stmt = (
            select(VideoRow)
            .where(VideoRow.course_id == course_id)
            .order_by(VideoRow.position, VideoRow.id)
        )
        async with storage_errors(), self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_video(r) for r in rows]

    async def get_videos(self, video_ids: Iterable[str]) -> dict[str, Video]:
        ids = _valid_ids(video_ids)
        if not ids:
            return {}
        stmt = select(VideoRow).where(VideoRow.id.in_(ids))
        async with storage_errors(), self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return {row.id: _row_to_video(row) for row in rows}

    async def count_user_courses(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(CourseRow).where(
            CourseRow.user_id == user_id
        )
        async with storage_errors(), self._session_factory() as session:
            return int((await session.execute(stmt)).scalar_one())


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        thumbnail_url=row.thumbnail_url,
        total_duration_seconds=row.total_duration_seconds or 0,
    )


def _row_to_video(row: VideoRow) -> Video:
    return Video(
        id=row.id,
        course_id=row.course_id,
        external_video_id=row.youtube_video_id,
        title=row.title,
        duration_seconds=row.duration_seconds,
        thumbnail_url=row.thumbnail_url,
        position=row.position or 0,
    )
