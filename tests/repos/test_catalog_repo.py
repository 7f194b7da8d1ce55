from __future__ import annotations

import asyncio

import pytest

from tests.conftest import seed_course
from watchtime.models.catalog import Video, VideoRef
from watchtime.repos.catalog_repo import InMemoryCatalogRepo


def test_lookup_video_returns_course(catalog: InMemoryCatalogRepo) -> None:
    course, (video, _) = seed_course(catalog)
    ref = asyncio.run(catalog.lookup_video(video.id))
    assert ref == VideoRef(video_id=video.id, course_id=course.id)


def test_lookup_unknown_video(catalog: InMemoryCatalogRepo) -> None:
    assert asyncio.run(catalog.lookup_video("missing")) is None


def test_add_video_requires_course(catalog: InMemoryCatalogRepo) -> None:
    with pytest.raises(KeyError):
        catalog.add_video(
            Video(
                id="v1",
                course_id="nope",
                external_video_id="yt",
                title="Orphan",
                duration_seconds=10,
            )
        )


def test_course_videos_ordered_by_position(catalog: InMemoryCatalogRepo) -> None:
    course, videos = seed_course(catalog, videos=3)
    listed = asyncio.run(catalog.list_course_videos(course.id))
    assert [v.position for v in listed] == [0, 1, 2]
    assert [v.id for v in listed] == [v.id for v in videos]


def test_count_user_courses(catalog: InMemoryCatalogRepo) -> None:
    seed_course(catalog, owner="u1")
    seed_course(catalog, owner="u1")
    seed_course(catalog, owner="u2")
    assert asyncio.run(catalog.count_user_courses("u1")) == 2
    assert asyncio.run(catalog.count_user_courses("u3")) == 0
