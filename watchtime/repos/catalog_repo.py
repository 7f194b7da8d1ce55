from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from watchtime.models.catalog import Course, Video, VideoRef


class CatalogRepo(Protocol):
    """Read access to the course catalog owned by the course service."""

    async def lookup_video(self, video_id: str) -> VideoRef | None: ...
    async def get_course(self, course_id: str) -> Course | None: ...
    async def get_courses(self, course_ids: Iterable[str]) -> dict[str, Course]: ...
    async def list_course_videos(self, course_id: str) -> list[Video]: ...
    async def get_videos(self, video_ids: Iterable[str]) -> dict[str, Video]: ...
    async def count_user_courses(self, user_id: str) -> int: ...


class InMemoryCatalogRepo:
    def __init__(self) -> None:
        self._courses: dict[str, Course] = {}
        self._videos: dict[str, Video] = {}

    # Seeding helpers (tests, local dev). The real catalog is written by
    # the course service, never by the activity core.

    def add_course(self, course: Course) -> None:
        if course.id in self._courses:
            raise ValueError("course already exists")
        self._courses[course.id] = course

    def add_video(self, video: Video) -> None:
        if video.course_id not in self._courses:
            raise KeyError("course not found")
        self._videos[video.id] = video

    def clear(self) -> None:
        self._courses.clear()
        self._videos.clear()

    async def lookup_video(self, video_id: str) -> VideoRef | None:
        v = self._videos.get(video_id)
        if v is None:
            return None
        return VideoRef(video_id=v.id, course_id=v.course_id)

    async def get_course(self, course_id: str) -> Course | None:
        return self._courses.get(course_id)

    async def get_courses(self, course_ids: Iterable[str]) -> dict[str, Course]:
        return {cid: self._courses[cid] for cid in course_ids if cid in self._courses}

    async def list_course_videos(self, course_id: str) -> list[Video]:
        videos = [v for v in self._videos.values() if v.course_id == course_id]
        return sorted(videos, key=lambda v: v.position)

    async def get_videos(self, video_ids: Iterable[str]) -> dict[str, Video]:
        return {vid: self._videos[vid] for vid in video_ids if vid in self._videos}

    async def count_user_courses(self, user_id: str) -> int:
        return sum(1 for c in self._courses.values() if c.user_id == user_id)
